"""
Markup strategy for HTML.

The document is read with the standard library's tolerant HTMLParser into
an ElementArena. Only leaf text runs and attribute values are replaced;
tags, comments and nested markup are never touched.
"""

import html
import logging
import re
from html.parser import HTMLParser
from typing import List, Optional

from ..errors import InvalidSelectorError
from ..selectors import ElementArena, TextSlot, AttributeSlot, parse_selector
from ...utils import LineIndex
from .base import Candidate, Strategy, TokenSite
from .structured import text_of

logger = logging.getLogger(__name__)

VOID_ELEMENTS = {
    "area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta",
    "param", "source", "track", "wbr",
}
RAW_TEXT_ELEMENTS = {"script", "style"}

# opening tag -> open elements it implicitly closes
_AUTO_CLOSE = {
    "p": {"p"},
    "li": {"li"},
    "option": {"option"},
    "tr": {"tr", "td", "th"},
    "td": {"td", "th"},
    "th": {"td", "th"},
    "dt": {"dt", "dd"},
    "dd": {"dt", "dd"},
}

_TAG_NAME_RE = re.compile(r"<[^\s/>]+")
_ATTR_RE = re.compile(
    r"""(?P<name>[^\s/>"'=]+)
        (?:\s*=\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|(?P<bare>[^\s"'=<>`]+)))?""",
    re.VERBOSE,
)
_UNQUOTED_SAFE = re.compile(r"^[^\s\"'=<>`]+$")


def scan_attributes(tag_text: str, offset: int, lower_names: bool = True) -> List[AttributeSlot]:
    """
    Finds attribute value spans in the raw text of a start tag.

    Args:
        tag_text: Raw start tag, e.g. ``<meta name="x" content='y'>``.
        offset: Offset of the tag in the document.
        lower_names: Lower-case attribute names (HTML is case-insensitive).

    Returns:
        list: AttributeSlots whose start/end delimit the value without quotes.
    """
    slots = []
    name_match = _TAG_NAME_RE.match(tag_text)
    position = name_match.end() if name_match else 1
    for match in _ATTR_RE.finditer(tag_text, position):
        name = match.group("name").lower() if lower_names else match.group("name")
        for group in ("dq", "sq", "bare"):
            if match.group(group) is not None:
                start = offset + match.start(group)
                end = offset + match.end(group)
                slots.append(AttributeSlot(name, html.unescape(match.group(group)), start, end,
                                           "static" if group != "bare" else "unquoted"))
                break
        else:
            end = offset + match.end("name")
            slots.append(AttributeSlot(name, None, end, end, "bare"))
    return slots


class ArenaBuilder(HTMLParser):
    """Builds an ElementArena with source offsets from HTMLParser events."""

    def __init__(self, content: str):
        super().__init__(convert_charrefs=False)
        self.content = content
        self.lines = LineIndex(content)
        self.arena = ElementArena(case_sensitive=False)
        self.stack: List[int] = []
        self.text_start: Optional[int] = None

    def build(self) -> ElementArena:
        self.feed(self.content)
        self.close()
        self.flush_text(len(self.content))
        for index in self.stack:
            self.arena.nodes[index].end = len(self.content)
        self.stack = []
        return self.arena

    def position(self) -> int:
        line, column = self.getpos()
        return self.lines.offset(line, column)

    def flush_text(self, end: int):
        if self.text_start is None:
            return
        start, self.text_start = self.text_start, None
        raw = self.content[start:end]
        stripped = raw.strip()
        if not stripped:
            return
        start += len(raw) - len(raw.lstrip())
        end = start + len(stripped)
        parent = self.stack[-1] if self.stack else None
        raw_text = parent is not None and self.arena.nodes[parent].tag in RAW_TEXT_ELEMENTS
        value = stripped if raw_text else html.unescape(stripped)
        self.arena.add_text(TextSlot(parent, value, start, end, "text", raw_text=raw_text))

    def mark_text(self):
        if self.text_start is None:
            self.text_start = self.position()

    def handle_data(self, data):
        self.mark_text()

    def handle_entityref(self, name):
        self.mark_text()

    def handle_charref(self, name):
        self.mark_text()

    def handle_starttag(self, tag, attrs):
        start = self.position()
        self.flush_text(start)
        tag_text = self.get_starttag_text() or ""
        for _ in range(len(self.stack)):
            top = self.arena.nodes[self.stack[-1]]
            if top.tag in _AUTO_CLOSE.get(tag, ()):
                top.end = start
                self.stack.pop()
            else:
                break
        parent = self.stack[-1] if self.stack else None
        node = self.arena.add_element(tag, parent, start, start + len(tag_text))
        for slot in scan_attributes(tag_text, start):
            node.attributes.setdefault(slot.name, slot)
        if tag not in VOID_ELEMENTS and not tag_text.endswith("/>"):
            node.end = -1
            self.stack.append(node.index)

    def handle_startendtag(self, tag, attrs):
        start = self.position()
        self.flush_text(start)
        tag_text = self.get_starttag_text() or ""
        parent = self.stack[-1] if self.stack else None
        node = self.arena.add_element(tag, parent, start, start + len(tag_text))
        for slot in scan_attributes(tag_text, start):
            node.attributes.setdefault(slot.name, slot)

    def handle_endtag(self, tag):
        start = self.position()
        self.flush_text(start)
        close = self.content.find(">", start)
        end = len(self.content) if close == -1 else close + 1
        open_tags = [self.arena.nodes[index].tag for index in self.stack]
        if tag not in open_tags:
            return
        while self.stack:
            index = self.stack.pop()
            self.arena.nodes[index].end = end
            if self.arena.nodes[index].tag == tag:
                break

    def handle_comment(self, data):
        self.flush_text(self.position())

    def handle_decl(self, decl):
        self.flush_text(self.position())

    def handle_pi(self, data):
        self.flush_text(self.position())

    def unknown_decl(self, data):
        self.flush_text(self.position())


def match_arena(arena: ElementArena, selector: str, config, file_path=None) -> List[Candidate]:
    """
    Resolves a structural selector against an arena.

    In text mode each non-blank direct text child of a matched element is a
    candidate; in attribute mode (``config.attribute`` set) the named
    attribute's value is.
    """
    try:
        selectors = parse_selector(selector)
    except InvalidSelectorError as e:
        e.file_path = file_path
        raise

    candidates = []
    for index in arena.select(selectors):
        node = arena.nodes[index]
        scope = (node.start, node.end if node.end >= 0 else node.start)
        if config.attribute:
            slot = arena.attribute_value(index, config.attribute)
            if slot is None:
                continue
            path = f"{selector}@{config.attribute}"
            if slot.kind == "dynamic":
                candidates.append(Candidate(path, slot.start, slot.end, replaceable=False,
                                            reason="attribute value is a dynamic expression", scope=scope))
            elif slot.kind == "bare":
                candidates.append(Candidate(path, slot.start, slot.end, replaceable=False,
                                            reason="attribute has no value", scope=scope))
            else:
                candidates.append(Candidate(path, slot.start, slot.end, slot.value or "",
                                            f"attribute-{slot.kind}", scope=scope))
            continue

        for text_index in node.texts:
            text = arena.texts[text_index]
            if text.raw_text:
                continue
            if text.kind == "dynamic":
                candidates.append(Candidate(selector, text.start, text.end, replaceable=False,
                                            reason="text is a dynamic expression", scope=scope))
            else:
                candidates.append(Candidate(selector, text.start, text.end, text.value,
                                            f"text-{text.kind}", scope=scope))
    return candidates


def _escape_attribute(value) -> str:
    text = text_of(value)
    return html.escape(text, quote=True)


def _escape_text(value) -> str:
    text = text_of(value)
    return html.escape(text, quote=False)


def _unquoted_literal(value) -> str:
    text = text_of(value)
    if _UNQUOTED_SAFE.match(text):
        return text
    return f'"{_escape_attribute(text)}"'


class HtmlStrategy(Strategy):
    """HTML documents."""

    format_id = "html"
    skip_family = "markup"

    def parse(self, content, file_path=None):
        arena = ArenaBuilder(content).build()
        logger.debug(f"{file_path or 'html'}: {len(arena.nodes)} element(s), {len(arena.texts)} text run(s)")
        return arena

    def match(self, document, selector, config, file_path=None):
        return match_arena(document, selector, config, file_path)

    def restoration_sites(self, content, file_path=None):
        arena = ArenaBuilder(content).build()
        sites = [
            TokenSite(text.start, text.end, _escape_text)
            for text in arena.texts if not text.raw_text
        ]
        for node in arena.nodes:
            for slot in node.attributes.values():
                if slot.kind == "static":
                    sites.append(TokenSite(slot.start, slot.end, _escape_attribute))
                elif slot.kind == "unquoted":
                    sites.append(TokenSite(slot.start, slot.end, _escape_attribute,
                                           literal=(slot.start, slot.end), encode_literal=_unquoted_literal))
        return sites
