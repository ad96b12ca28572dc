"""
Structural selectors for markup and component markup.

Selectors are a CSS subset evaluated against an ElementArena: a flat list
of element records with explicit parent indices. Combinators are checked as
predicate chains over those indices, right to left.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .errors import InvalidSelectorError


@dataclass
class AttributeTest:
    """An [attr], [attr=value] or [attr<op>=value] qualifier."""
    name: str
    operator: Optional[str] = None
    value: Optional[str] = None

    def matches(self, actual: Optional[str]) -> bool:
        if self.operator is None:
            return True
        if actual is None:
            return False
        if self.operator == "=":
            return actual == self.value
        if self.operator == "^=":
            return bool(self.value) and actual.startswith(self.value)
        if self.operator == "$=":
            return bool(self.value) and actual.endswith(self.value)
        if self.operator == "*=":
            return bool(self.value) and self.value in actual
        if self.operator == "~=":
            return self.value in actual.split()
        return False


@dataclass
class Compound:
    """One compound selector such as ``h1.title[data-x]:first-child``."""
    tag: Optional[str] = None
    ids: List[str] = field(default_factory=list)
    classes: List[str] = field(default_factory=list)
    attributes: List[AttributeTest] = field(default_factory=list)
    pseudos: List[Tuple[str, Optional[int]]] = field(default_factory=list)


@dataclass
class ComplexSelector:
    """Compounds joined by combinators; combinators[i] sits between parts[i] and parts[i+1]."""
    text: str
    parts: List[Compound]
    combinators: List[str]

    @property
    def subject(self) -> Compound:
        return self.parts[-1]


@dataclass
class AttributeSlot:
    """An attribute on an element.

    kind is 'static' (quoted literal value), 'unquoted' (HTML value without
    quotes), 'dynamic' (computed expression) or 'bare' (no value).
    """
    name: str
    value: Optional[str]
    start: int
    end: int
    kind: str = "static"


@dataclass
class TextSlot:
    """A text child of an element.

    kind is 'text' (markup text), 'string' (static string literal inside an
    expression container) or 'dynamic' (any other expression).
    """
    parent: Optional[int]
    value: str
    start: int
    end: int
    kind: str = "text"
    quote: Optional[str] = None
    raw_text: bool = False


@dataclass
class ElementNode:
    index: int
    tag: str
    parent: Optional[int]
    start: int
    end: int
    attributes: Dict[str, AttributeSlot] = field(default_factory=dict)
    children: List[int] = field(default_factory=list)
    texts: List[int] = field(default_factory=list)


class ElementArena:
    """Flat storage of parsed elements and text slots."""

    def __init__(self, case_sensitive: bool = False):
        self.case_sensitive = case_sensitive
        self.nodes: List[ElementNode] = []
        self.texts: List[TextSlot] = []

    def add_element(self, tag: str, parent: Optional[int], start: int, end: int = -1) -> ElementNode:
        node = ElementNode(len(self.nodes), tag, parent, start, end)
        self.nodes.append(node)
        if parent is not None:
            self.nodes[parent].children.append(node.index)
        return node

    def add_text(self, slot: TextSlot) -> int:
        index = len(self.texts)
        self.texts.append(slot)
        if slot.parent is not None:
            self.nodes[slot.parent].texts.append(index)
        return index

    def normalize_tag(self, tag: str) -> str:
        return tag if self.case_sensitive else tag.lower()

    def siblings(self, index: int) -> List[int]:
        parent = self.nodes[index].parent
        if parent is None:
            return [n.index for n in self.nodes if n.parent is None]
        return self.nodes[parent].children

    def attribute_value(self, index: int, name: str) -> Optional[AttributeSlot]:
        attributes = self.nodes[index].attributes
        if name in attributes:
            return attributes[name]
        if name == "class" and "className" in attributes:
            return attributes["className"]
        if not self.case_sensitive:
            for key, slot in attributes.items():
                if key.lower() == name.lower():
                    return slot
        return None

    def select(self, selectors: List[ComplexSelector]) -> List[int]:
        """Indices of elements matching any selector, in document order."""
        return [
            node.index for node in self.nodes
            if any(match_complex(self, node.index, selector) for selector in selectors)
        ]


_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<comma>,)
  | (?P<child>>)
  | (?P<tag>\*|[A-Za-z][\w\-]*)
  | \.(?P<cls>-?[_a-zA-Z][\w\-]*)
  | \#(?P<id>-?[_a-zA-Z0-9][\w\-]*)
  | \[\s*(?P<attr>[^\s~^$*=\]]+)\s*(?:(?P<op>[~^$*]?=)\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|(?P<bare>[^\s\]]+))\s*)?\]
  | :(?P<pseudo>[a-z\-]+)(?:\(\s*(?P<arg>\d+)\s*\))?
    """,
    re.VERBOSE,
)

_PSEUDOS = {"first-child", "last-child", "first-of-type", "last-of-type", "nth-child", "only-child"}


def parse_selector(text: str) -> List[ComplexSelector]:
    """Parse a comma separated selector list.

    Raises:
        InvalidSelectorError: On syntax the subset does not support.
    """
    if not isinstance(text, str) or not text.strip():
        raise InvalidSelectorError(str(text), "empty selector")

    selectors = []
    for chunk in _split_commas(text):
        selectors.append(_parse_complex(chunk.strip(), text))
    return selectors


def _split_commas(text: str) -> List[str]:
    chunks, depth, quote, current = [], 0, None, []
    for char in text:
        if quote:
            if char == quote:
                quote = None
        elif char in "\"'":
            quote = char
        elif char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
        elif char == "," and depth == 0:
            chunks.append("".join(current))
            current = []
            continue
        current.append(char)
    chunks.append("".join(current))
    return chunks


def _parse_complex(chunk: str, full_text: str) -> ComplexSelector:
    if not chunk:
        raise InvalidSelectorError(full_text, "empty selector in list")

    parts: List[Compound] = []
    combinators: List[str] = []
    current: Optional[Compound] = None
    pending: Optional[str] = None
    position = 0

    while position < len(chunk):
        match = _TOKEN_RE.match(chunk, position)
        if not match or match.end() == position:
            raise InvalidSelectorError(full_text, f"unexpected text at '{chunk[position:]}'")
        position = match.end()
        kind = match.lastgroup

        if kind == "ws":
            if current is not None and pending is None:
                pending = " "
            continue
        if kind == "child":
            if current is None:
                raise InvalidSelectorError(full_text, "combinator without a left-hand selector")
            pending = ">"
            continue
        if kind == "comma":
            raise InvalidSelectorError(full_text, "unexpected comma")

        if pending is not None or current is None:
            if pending is not None and current is not None:
                combinators.append(pending)
            pending = None
            current = Compound()
            parts.append(current)
            if kind == "tag":
                current.tag = match.group("tag")
                continue
        elif kind == "tag":
            raise InvalidSelectorError(full_text, f"misplaced type selector '{match.group('tag')}'")

        if kind == "cls":
            current.classes.append(match.group("cls"))
        elif kind == "id":
            current.ids.append(match.group("id"))
        elif kind in ("attr", "op", "dq", "sq", "bare"):
            value = match.group("dq")
            if value is None:
                value = match.group("sq")
            if value is None:
                value = match.group("bare")
            current.attributes.append(AttributeTest(match.group("attr"), match.group("op"), value))
        elif kind in ("pseudo", "arg"):
            name = match.group("pseudo")
            if name not in _PSEUDOS:
                raise InvalidSelectorError(full_text, f"unsupported pseudo-class ':{name}'")
            arg = match.group("arg")
            if name == "nth-child" and arg is None:
                raise InvalidSelectorError(full_text, ":nth-child needs a numeric argument")
            current.pseudos.append((name, int(arg) if arg is not None else None))

    if pending == ">":
        raise InvalidSelectorError(full_text, "dangling combinator")
    if not parts:
        raise InvalidSelectorError(full_text, "empty selector")
    return ComplexSelector(chunk, parts, combinators)


def match_compound(arena: ElementArena, index: int, compound: Compound) -> bool:
    node = arena.nodes[index]
    if compound.tag and compound.tag != "*":
        if arena.normalize_tag(node.tag) != arena.normalize_tag(compound.tag):
            return False
    for wanted in compound.ids:
        slot = arena.attribute_value(index, "id")
        if slot is None or slot.value != wanted:
            return False
    if compound.classes:
        slot = arena.attribute_value(index, "class")
        present = (slot.value or "").split() if slot is not None else []
        if any(name not in present for name in compound.classes):
            return False
    for test in compound.attributes:
        slot = arena.attribute_value(index, test.name)
        if slot is None:
            return False
        if test.operator is not None and not test.matches(slot.value):
            return False
    for name, arg in compound.pseudos:
        if not _match_pseudo(arena, index, name, arg):
            return False
    return True


def _match_pseudo(arena: ElementArena, index: int, name: str, arg: Optional[int]) -> bool:
    siblings = arena.siblings(index)
    if name == "first-child":
        return siblings[0] == index
    if name == "last-child":
        return siblings[-1] == index
    if name == "only-child":
        return len(siblings) == 1
    if name == "nth-child":
        return arg is not None and 0 < arg <= len(siblings) and siblings[arg - 1] == index
    tag = arena.normalize_tag(arena.nodes[index].tag)
    same_type = [s for s in siblings if arena.normalize_tag(arena.nodes[s].tag) == tag]
    if name == "first-of-type":
        return same_type[0] == index
    if name == "last-of-type":
        return same_type[-1] == index
    return False


def match_complex(arena: ElementArena, index: int, selector: ComplexSelector) -> bool:
    """Evaluate a complex selector with ``index`` as its subject."""
    return _match_from(arena, index, selector, len(selector.parts) - 1)


def _match_from(arena: ElementArena, index: int, selector: ComplexSelector, part: int) -> bool:
    if not match_compound(arena, index, selector.parts[part]):
        return False
    if part == 0:
        return True
    combinator = selector.combinators[part - 1]
    parent = arena.nodes[index].parent
    if combinator == ">":
        return parent is not None and _match_from(arena, parent, selector, part - 1)
    while parent is not None:
        if _match_from(arena, parent, selector, part - 1):
            return True
        parent = arena.nodes[parent].parent
    return False


def attribute_of_last_test(selectors: List[ComplexSelector]) -> Optional[str]:
    """Name of the last attribute test in the final compound, used to infer attribute targets."""
    for selector in reversed(selectors):
        if selector.subject.attributes:
            return selector.subject.attributes[-1].name
    return None
