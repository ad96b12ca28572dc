"""
Offset-aware JSON reader.

json.loads discards source positions, which the structured-data strategy
needs to replace a leaf without reformatting the document. The tree-sitter
JSON grammar keeps them; this module turns its syntax tree into a small
node tree holding the character span of every value. JSONC is accepted:
the grammar treats // and /* */ comments as extras, and trailing commas
are blanked out before a second parse.
"""

import json
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from .errors import ParseError
from .syntax import SyntaxTree
from ..utils import offset_to_line_col

LITERAL_TYPES = {"true": True, "false": False, "null": None}


@dataclass
class JsonNode:
    """A JSON value with its source span [start, end)."""
    kind: str  # object, array, string, number, true, false, null
    start: int
    end: int
    value: Any = None
    members: List[Tuple[str, "JsonNode"]] = field(default_factory=list)
    items: List["JsonNode"] = field(default_factory=list)

    @property
    def is_container(self) -> bool:
        return self.kind in ("object", "array")

    def to_python(self) -> Any:
        if self.kind == "object":
            return {key: node.to_python() for key, node in self.members}
        if self.kind == "array":
            return [node.to_python() for node in self.items]
        return self.value


def _values(node):
    return [child for child in node.named_children if child.type != "comment"]


class _Builder:

    def __init__(self, syntax: SyntaxTree):
        self.syntax = syntax
        self.strings: List[JsonNode] = []

    def error(self, message: str, node) -> ParseError:
        line, column = offset_to_line_col(self.syntax.content, self.syntax.start(node))
        return ParseError(f"Invalid JSON: {message}", self.syntax.file_path, line, column)

    def build(self, node) -> JsonNode:
        syntax = self.syntax
        start, end = syntax.start(node), syntax.end(node)
        if node.type == "object":
            result = JsonNode("object", start, end)
            for pair in _values(node):
                key = pair.child_by_field_name("key")
                value = pair.child_by_field_name("value")
                if key is None or value is None or key.type != "string":
                    raise self.error("expected a property name", pair)
                result.members.append((self.build(key).value, self.build(value)))
            return result
        if node.type == "array":
            return JsonNode("array", start, end, items=[self.build(child) for child in _values(node)])
        if node.type == "string":
            try:
                value = json.loads(syntax.text(node))
            except json.JSONDecodeError as e:
                raise self.error(f"bad string literal ({e.msg})", node)
            result = JsonNode("string", start, end, value)
            self.strings.append(result)
            return result
        if node.type == "number":
            try:
                return JsonNode("number", start, end, json.loads(syntax.text(node)))
            except json.JSONDecodeError:
                raise self.error(f"bad number {syntax.text(node)!r}", node)
        if node.type in LITERAL_TYPES:
            return JsonNode(node.type, start, end, LITERAL_TYPES[node.type])
        raise self.error(f"unexpected {node.type}", node)


def _parse_tree(text: str, file_path: Optional[str]) -> SyntaxTree:
    start = 1 if text.startswith("\ufeff") else 0
    syntax = SyntaxTree(text, "json", file_path, start)
    errors = syntax.errors()
    if errors and all(not node.is_missing and syntax.text(node).strip() == "," for node in errors):
        # trailing commas; blanking keeps every offset in place
        chars = list(text)
        for node in errors:
            for index in range(syntax.start(node), syntax.end(node)):
                if chars[index] == ",":
                    chars[index] = " "
        syntax = SyntaxTree("".join(chars), "json", file_path, start)
        errors = syntax.errors()
    if errors:
        raise syntax.syntax_error("JSON")
    return syntax


def _read(text: str, file_path: Optional[str]) -> Tuple[JsonNode, List[JsonNode]]:
    syntax = _parse_tree(text, file_path)
    values = _values(syntax.root)
    builder = _Builder(syntax)
    if not values:
        line, column = offset_to_line_col(text, len(text))
        raise ParseError("Invalid JSON: unexpected end of input", file_path, line, column)
    if len(values) > 1:
        raise builder.error("unexpected content after the top-level value", values[1])
    root = builder.build(values[0])
    return root, sorted(builder.strings, key=lambda node: node.start)


def parse_json(text: str, file_path: Optional[str] = None) -> JsonNode:
    """Parse JSON/JSONC text into a span-preserving node tree.

    Raises:
        ParseError: If the text is not valid JSON (comments and trailing
            commas aside).
    """
    return _read(text, file_path)[0]


def string_literals(text: str, file_path: Optional[str] = None) -> List[JsonNode]:
    """All string literal nodes (keys and values) in document order."""
    return _read(text, file_path)[1]
