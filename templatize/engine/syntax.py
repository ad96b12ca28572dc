"""
tree-sitter parse trees with character offsets.

tree-sitter reports UTF-8 byte offsets; the engine works in character
offsets into the original content. SyntaxTree parses a slice of content
with one grammar and translates node positions back into the full text.
"""

from typing import Optional

from tree_sitter_language_pack import get_parser

from .errors import ParseError
from ..utils import ByteIndex, offset_to_line_col


class SyntaxTree:
    """A parsed slice of content.

    Args:
        content: The full file content.
        language: tree-sitter-language-pack grammar name.
        file_path: Used in error messages.
        start: Character offset where the parsed slice begins.
        end: Character offset where it ends (end of content if None).
    """

    def __init__(self, content: str, language: str, file_path: Optional[str] = None,
                 start: int = 0, end: Optional[int] = None):
        self.content = content
        self.language = language
        self.file_path = file_path
        self.offset = start
        text = content[start:end]
        self.source = text.encode("utf-8")
        self.bytes = ByteIndex(text)
        self.tree = get_parser(language).parse(self.source)

    @property
    def root(self):
        return self.tree.root_node

    def start(self, node) -> int:
        return self.offset + self.bytes.to_char(node.start_byte)

    def end(self, node) -> int:
        return self.offset + self.bytes.to_char(node.end_byte)

    def text(self, node) -> str:
        return self.source[node.start_byte:node.end_byte].decode("utf-8")

    def walk(self, node=None):
        """Pre-order traversal of every node."""
        stack = [node or self.root]
        while stack:
            current = stack.pop()
            yield current
            stack.extend(reversed(current.children))

    def errors(self):
        """ERROR and missing nodes, in document order."""
        if not self.root.has_error:
            return []
        return [node for node in self.walk() if node.type == "ERROR" or node.is_missing]

    def syntax_error(self, label: str, node=None) -> ParseError:
        node = node or (self.errors() or [self.root])[0]
        line, column = offset_to_line_col(self.content, self.start(node))
        reason = f"missing {node.type}" if node.is_missing else "syntax error"
        return ParseError(f"Invalid {label}: {reason}", self.file_path, line, column)
