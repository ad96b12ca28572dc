"""
Structured-data strategy for JSON (JSONC) and YAML.

Selectors are paths such as ``name``, ``author.name``, ``$.keywords[0]``
or ``contributors[*].name``. Only string leaves are replaced, and only the
characters between the quotes (or the plain scalar itself), so key order,
indentation and comments survive untouched.
"""

import json
import re
from typing import Any, Callable, List, Optional, Tuple

import yaml

from ..errors import InvalidSelectorError, ParseError
from ..jsonscan import JsonNode, parse_json, string_literals
from .base import Candidate, Strategy, TokenSite

_SEGMENT_RE = re.compile(
    r"""
    (?P<dot>\.)?
    (?:
        (?P<key>[^.\[\]\s]+)
      | \[\s*(?P<index>\d+)\s*\]
      | \[\s*(?P<star>\*)\s*\]
      | \[\s*(?P<quoted>"(?:[^"\\]|\\.)*"|'[^']*')\s*\]
    )
    """,
    re.VERBOSE,
)
_PLAIN_KEY = re.compile(r"^[A-Za-z_$][\w$-]*$")

# Characters that cannot start a YAML plain scalar.
YAML_INDICATORS = set("-?:,[]{}#&*!|>'\"%@`")

WILDCARD = ("wild", None)


def parse_path(selector: str) -> List[Tuple[str, Any]]:
    """
    Splits a structured-data path into segments.

    Args:
        selector: Path such as ``$.author.name`` or ``items[0]["display name"]``.

    Returns:
        list: ('key', str), ('index', int) or ('wild', None) tuples.

    Raises:
        InvalidSelectorError: If the path is empty or malformed.
    """
    text = selector.strip() if isinstance(selector, str) else ""
    if text.startswith("$"):
        text = text[1:]
        if text.startswith("."):
            text = text[1:]
    if not text:
        raise InvalidSelectorError(str(selector), "empty path")

    segments = []
    position = 0
    while position < len(text):
        match = _SEGMENT_RE.match(text, position)
        if not match:
            raise InvalidSelectorError(selector, f"unexpected text at '{text[position:]}'")
        if match.group("key") is not None:
            if segments and not match.group("dot"):
                raise InvalidSelectorError(selector, f"missing '.' before '{match.group('key')}'")
            if not segments and match.group("dot"):
                raise InvalidSelectorError(selector, "path starts with '.'")
            key = match.group("key")
            segments.append(WILDCARD if key == "*" else ("key", key))
        elif match.group("dot"):
            raise InvalidSelectorError(selector, "'.' must be followed by a key")
        elif match.group("index") is not None:
            segments.append(("index", int(match.group("index"))))
        elif match.group("star") is not None:
            segments.append(WILDCARD)
        else:
            quoted = match.group("quoted")
            if quoted.startswith('"'):
                key = json.loads(quoted)
            else:
                key = quoted[1:-1]
            segments.append(("key", key))
        position = match.end()
    return segments


def format_path(segments: List[Tuple[str, Any]]) -> str:
    """Renders concrete segments back into a path string."""
    parts = []
    for kind, value in segments:
        if kind == "index":
            parts.append(f"[{value}]")
        elif _PLAIN_KEY.match(str(value)):
            parts.append(f".{value}" if parts else str(value))
        else:
            parts.append(f"[{json.dumps(value)}]")
    return "".join(parts)


def resolve_path(root, segments, members: Callable, items: Callable) -> List[Tuple[str, Any]]:
    """
    Walks a node tree along path segments.

    Args:
        root: The document's root node.
        segments: Output of parse_path.
        members: node -> list of (key, child) for mappings, else None.
        items: node -> list of children for sequences, else None.

    Returns:
        list: (concrete path, node) pairs in document order.
    """
    found = [([], root)]
    for kind, value in segments:
        step = []
        for trail, node in found:
            mapping = members(node)
            sequence = items(node)
            if kind == "key" and mapping is not None:
                step.extend((trail + [("key", k)], child) for k, child in mapping if k == value)
            elif kind == "index" and sequence is not None:
                if value < len(sequence):
                    step.append((trail + [("index", value)], sequence[value]))
            elif kind == "wild":
                if mapping is not None:
                    step.extend((trail + [("key", k)], child) for k, child in mapping)
                elif sequence is not None:
                    step.extend((trail + [("index", i)], child) for i, child in enumerate(sequence))
        found = step
    return [(format_path(trail), node) for trail, node in found]


def text_of(value: Any) -> str:
    """String form of a restored value when it lands inside a larger string."""
    if isinstance(value, str):
        return value
    return json.dumps(value)


def json_string_body(value: Any) -> str:
    return json.dumps(text_of(value), ensure_ascii=False)[1:-1]


def json_literal(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


# -- JSON -------------------------------------------------------------------

def _json_members(node: JsonNode):
    return node.members if node.kind == "object" else None


def _json_items(node: JsonNode):
    return node.items if node.kind == "array" else None


class JsonStrategy(Strategy):
    """JSON and JSONC documents."""

    format_id = "json"
    skip_family = "code"

    def parse(self, content, file_path=None):
        return parse_json(content, file_path)

    def match(self, document, selector, config, file_path=None):
        try:
            segments = parse_path(selector)
        except InvalidSelectorError as e:
            e.file_path = file_path
            raise
        candidates = []
        for path, node in resolve_path(document, segments, _json_members, _json_items):
            if node.kind == "string":
                candidates.append(Candidate(path, node.start + 1, node.end - 1, node.value, "json-string"))
            elif node.is_container:
                candidates.append(Candidate(path, node.start, node.end, replaceable=False,
                                            reason=f"{node.kind} is not a leaf value"))
            else:
                candidates.append(Candidate(path, node.start, node.end, replaceable=False,
                                            reason=f"non-string value ({node.kind})"))
        return candidates

    def substitute(self, candidate, token):
        return json_string_body(token)

    def restoration_sites(self, content, file_path=None):
        return [
            TokenSite(node.start + 1, node.end - 1, json_string_body,
                      literal=(node.start, node.end), encode_literal=json_literal)
            for node in string_literals(content, file_path)
        ]


# -- YAML -------------------------------------------------------------------

def yaml_members(node):
    if isinstance(node, yaml.MappingNode):
        return [(key.value, child) for key, child in node.value if isinstance(key, yaml.ScalarNode)]
    return None


def yaml_items(node):
    if isinstance(node, yaml.SequenceNode):
        return node.value
    return None


def load_yaml_documents(text: str, file_path: Optional[str] = None) -> List[Any]:
    """
    Composes every document of a YAML stream into node trees with source marks.

    Raises:
        ParseError: If the text is not valid YAML.
    """
    try:
        return [doc for doc in yaml.compose_all(text, Loader=yaml.SafeLoader) if doc is not None]
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        problem = getattr(e, "problem", None) or str(e)
        if mark is not None:
            raise ParseError(f"Invalid YAML: {problem}", file_path, mark.line + 1, mark.column + 1)
        raise ParseError(f"Invalid YAML: {problem}", file_path)


def yaml_candidate(content: str, path: str, node, offset: int = 0) -> Candidate:
    """
    Builds a candidate for a YAML node found at ``path``.

    ``offset`` shifts node marks when the YAML was parsed out of a larger
    document (Markdown frontmatter).
    """
    start = node.start_mark.index + offset
    end = node.end_mark.index + offset
    if not isinstance(node, yaml.ScalarNode):
        return Candidate(path, start, end, replaceable=False, reason="not a leaf value")
    if node.tag != "tag:yaml.org,2002:str":
        kind = node.tag.rsplit(":", 1)[-1]
        return Candidate(path, start, end, replaceable=False, reason=f"non-string value ({kind})")
    if node.style in ("|", ">"):
        return Candidate(path, start, end, replaceable=False, reason="block scalars are not supported")

    if node.style is None:
        raw = content[start:end]
        if raw != node.value:
            return Candidate(path, start, end, replaceable=False, reason="multi-line plain scalar")
        return Candidate(path, start, end, node.value, "yaml-plain")

    inner_start, inner_end = start + 1, end - 1
    raw = content[inner_start:inner_end]
    if "\n" in raw:
        return Candidate(path, start, end, replaceable=False, reason="multi-line quoted scalar")
    if node.style == "'":
        if raw.replace("''", "'") != node.value:
            return Candidate(path, start, end, replaceable=False, reason="unsupported quoting")
        return Candidate(path, inner_start, inner_end, node.value, "yaml-single")
    return Candidate(path, inner_start, inner_end, node.value, "yaml-double")


def substitute_yaml(candidate: Candidate, token: str) -> str:
    """Token text legal at the candidate's site."""
    if candidate.context == "yaml-plain" and token[:1] in YAML_INDICATORS:
        return json.dumps(token, ensure_ascii=False)
    if candidate.context == "yaml-double":
        return json_string_body(token)
    if candidate.context == "yaml-single":
        return token.replace("'", "''")
    return token


def yaml_plain_safe(text: str) -> bool:
    """True if text reads back as the same string when written as a plain scalar."""
    if not text or text != text.strip() or "\n" in text:
        return False
    try:
        return yaml.safe_load(f"k: {text}") == {"k": text}
    except yaml.YAMLError:
        return False


def _plain_literal(value: Any) -> str:
    if isinstance(value, str):
        return value if yaml_plain_safe(value) else json_literal(value)
    return json_literal(value)


def _plain_rewrite(text: str) -> str:
    if "\n" in text or yaml_plain_safe(text):
        return text
    return json_literal(text)


def _single_body(value: Any) -> str:
    return text_of(value).replace("'", "''")


def _single_literal(value: Any) -> str:
    if isinstance(value, str):
        return "'" + _single_body(value) + "'"
    return json_literal(value)


def _walk_scalars(node, seen=None):
    seen = set() if seen is None else seen
    if id(node) in seen:
        return
    seen.add(id(node))
    if isinstance(node, yaml.ScalarNode):
        yield node
    elif isinstance(node, yaml.MappingNode):
        for key, child in node.value:
            yield from _walk_scalars(key, seen)
            yield from _walk_scalars(child, seen)
    elif isinstance(node, yaml.SequenceNode):
        for child in node.value:
            yield from _walk_scalars(child, seen)


def yaml_restoration_sites(text: str, file_path: Optional[str] = None, offset: int = 0) -> List[TokenSite]:
    """Restoration sites for every flow scalar in a YAML stream."""
    sites = []
    for document in load_yaml_documents(text, file_path):
        for node in _walk_scalars(document):
            start = node.start_mark.index + offset
            end = node.end_mark.index + offset
            if node.style is None:
                sites.append(TokenSite(start, end, text_of, (start, end), _plain_literal, _plain_rewrite))
            elif node.style == '"':
                sites.append(TokenSite(start + 1, end - 1, json_string_body, (start, end), json_literal))
            elif node.style == "'":
                sites.append(TokenSite(start + 1, end - 1, _single_body, (start, end), _single_literal))
    return sites


class YamlStrategy(Strategy):
    """YAML documents; multi-document streams are searched document by document."""

    format_id = "yaml"
    skip_family = "hash"

    def parse(self, content, file_path=None):
        return content, load_yaml_documents(content, file_path)

    def match(self, document, selector, config, file_path=None):
        try:
            segments = parse_path(selector)
        except InvalidSelectorError as e:
            e.file_path = file_path
            raise
        content, documents = document
        candidates = []
        for root in documents:
            for path, node in resolve_path(root, segments, yaml_members, yaml_items):
                candidates.append(yaml_candidate(content, path, node))
        return candidates

    def substitute(self, candidate, token):
        return substitute_yaml(candidate, token)

    def restoration_sites(self, content, file_path=None):
        return yaml_restoration_sites(content, file_path)
