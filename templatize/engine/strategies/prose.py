"""
Prose strategy for Markdown documents with optional YAML frontmatter.

Block structure (headings, paragraphs, fenced code) comes from the
tree-sitter Markdown grammar; inline content (code spans, links, images)
from its inline grammar, run over each inline node of the block tree.
Frontmatter values reuse the YAML rules of the structured-data strategy.
"""

import re
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from ..errors import InvalidSelectorError
from ..syntax import SyntaxTree
from ...utils import offset_to_line_col
from .base import Candidate, Strategy
from .structured import (load_yaml_documents, parse_path, resolve_path, substitute_yaml,
                         yaml_candidate, yaml_items, yaml_members, yaml_restoration_sites)

_FRONTMATTER_OPEN = re.compile(r"\A\ufeff?---[ \t]*\r?\n")
_FRONTMATTER_CLOSE = re.compile(r"^(?:---|\.\.\.)[ \t]*\r?$", re.MULTILINE)
_CLOSING_HASHES = re.compile(r"(?:^|[ \t]+)#+[ \t]*$")

_SELECTOR = re.compile(r"^(?P<kinds>[^/]*?)\s*(?:/(?P<pattern>.+)/(?P<flags>i?))?$")

HEADING_KINDS = {f"h{level}": level for level in range(1, 7)}
BLOCK_KINDS = {"heading", "p", "paragraph", "code"}
INLINE_KINDS = {"inline-code", "link", "image"}
NESTED_BLOCKS = {"list_item", "block_quote"}

# Relative links are left alone.
ACCEPTED_DESTINATIONS = {
    "link": ("http",),
    "image": ("http", "/", "./", "../"),
}


@dataclass
class Block:
    """A block or inline element with the span of its replaceable text."""
    kind: str  # heading, paragraph, code, inline-code, link, image
    start: int
    end: int
    value: str
    scope: Tuple[int, int]
    level: int = 0


@dataclass
class ProseDocument:
    content: str
    blocks: List[Block] = field(default_factory=list)
    inlines: List[Block] = field(default_factory=list)
    frontmatter: Optional[Tuple[int, int]] = None
    frontmatter_documents: List[Any] = field(default_factory=list)


@dataclass
class ProseSelector:
    kinds: List[str]
    pattern: Optional["re.Pattern"] = None
    first_only: bool = False
    frontmatter_path: Optional[str] = None


def find_frontmatter(content: str) -> Optional[Tuple[int, int, int]]:
    """
    Locates a leading YAML frontmatter block.

    Returns:
        tuple: (body start, body end, end of the closing delimiter line) or None.
    """
    opening = _FRONTMATTER_OPEN.match(content)
    if not opening:
        return None
    closing = _FRONTMATTER_CLOSE.search(content, opening.end())
    if not closing:
        return None
    block_end = closing.end()
    if content.startswith("\n", block_end):
        block_end += 1
    return opening.end(), closing.start(), block_end


def _trimmed(content: str, start: int, end: int) -> Tuple[int, int]:
    while start < end and content[start] in " \t\r\n":
        start += 1
    while end > start and content[end - 1] in " \t\r\n":
        end -= 1
    return start, end


def _scope(syntax: SyntaxTree, node) -> Tuple[int, int]:
    start, end = syntax.start(node), syntax.end(node)
    while end > start and syntax.content[end - 1] in "\r\n":
        end -= 1
    return start, end


def _child(node, *types):
    for child in node.children:
        if child.type in types:
            return child
    return None


class _BlockReader:

    def __init__(self, syntax: SyntaxTree):
        self.syntax = syntax
        self.content = syntax.content
        self.blocks: List[Block] = []

    def add(self, kind, start, end, scope, level=0):
        start, end = _trimmed(self.content, start, end)
        if end > start:
            self.blocks.append(Block(kind, start, end, self.content[start:end], scope, level))

    def visit(self, node):
        syntax = self.syntax
        kind = node.type
        if kind in NESTED_BLOCKS:
            return
        if kind == "atx_heading":
            marker = _child(node, *(f"atx_h{level}_marker" for level in range(1, 7)))
            text = _child(node, "inline")
            if marker is not None and text is not None:
                start = syntax.start(text)
                raw = syntax.text(text)
                closing = _CLOSING_HASHES.search(raw)
                end = start + (closing.start() if closing else len(raw))
                self.add("heading", start, end, _scope(syntax, node), int(marker.type[5]))
            return
        if kind == "setext_heading":
            paragraph = _child(node, "paragraph")
            level = 1 if _child(node, "setext_h1_underline") is not None else 2
            if paragraph is not None:
                self.add("heading", syntax.start(paragraph), syntax.end(paragraph),
                         _scope(syntax, node), level)
            return
        if kind == "paragraph":
            self.add("paragraph", syntax.start(node), syntax.end(node), _scope(syntax, node))
            return
        if kind == "fenced_code_block":
            code = _child(node, "code_fence_content")
            if code is not None:
                self.add("code", syntax.start(code), syntax.end(code), _scope(syntax, node))
            return
        for child in node.named_children:
            self.visit(child)


def _read_inline(syntax: SyntaxTree, inline) -> List[Block]:
    tree = SyntaxTree(syntax.content, "markdown_inline", syntax.file_path,
                      syntax.start(inline), syntax.end(inline))
    found = []
    for node in tree.walk():
        if node.type == "code_span":
            delimiters = [child for child in node.children if child.type == "code_span_delimiter"]
            if len(delimiters) < 2:
                continue
            start, end = tree.end(delimiters[0]), tree.start(delimiters[-1])
            kind = "inline-code"
        elif node.type in ("inline_link", "image"):
            destination = _child(node, "link_destination")
            if destination is None:
                continue
            start, end = tree.start(destination), tree.end(destination)
            kind = "link" if node.type == "inline_link" else "image"
        else:
            continue
        value = syntax.content[start:end]
        if value.strip():
            found.append(Block(kind, start, end, value, (tree.start(node), tree.end(node))))
    return found


def read_blocks(content: str, start: int = 0,
                file_path: Optional[str] = None) -> Tuple[List[Block], List[Block]]:
    """
    Reads the Markdown body starting at ``start``.

    Headings, paragraphs and fenced code inside list items or block quotes
    are not blocks; their inline content still is.

    Returns:
        tuple: (heading/paragraph/code blocks, inline code/link/image elements)
    """
    syntax = SyntaxTree(content, "markdown", file_path, start)
    reader = _BlockReader(syntax)
    reader.visit(syntax.root)
    inlines = []
    for node in syntax.walk():
        if node.type == "inline":
            inlines.extend(_read_inline(syntax, node))
    inlines.sort(key=lambda element: element.start)
    return reader.blocks, inlines


def parse_prose_selector(selector: str) -> ProseSelector:
    """
    Parses a prose selector.

    Supported forms: ``h1``..``h6``, ``heading``, comma lists such as
    ``h1, h2``, an optional ``/regex/`` (``h2 /^Install/``), ``p``,
    ``code``, ``inline-code``, ``link``, ``image``, ``frontmatter.<path>``,
    and a ``:first`` suffix on any of them.

    Raises:
        InvalidSelectorError: For unknown kinds or bad patterns.
    """
    text = selector.strip()
    first_only = False
    if text.endswith(":first"):
        first_only = True
        text = text[:-len(":first")].rstrip()
    if not text:
        raise InvalidSelectorError(selector, "empty selector")

    if text.startswith("frontmatter."):
        path = text[len("frontmatter."):]
        parse_path(path)
        return ProseSelector(["frontmatter"], first_only=first_only, frontmatter_path=path)

    match = _SELECTOR.match(text)
    if not match:
        raise InvalidSelectorError(selector, "expected heading levels, a content kind or /pattern/")
    kinds = [kind.strip().lower() for kind in match.group("kinds").split(",") if kind.strip()]
    pattern = None
    if match.group("pattern") is not None:
        try:
            pattern = re.compile(match.group("pattern"), re.IGNORECASE if match.group("flags") else 0)
        except re.error as e:
            raise InvalidSelectorError(selector, f"bad pattern: {e}")
        if not kinds:
            kinds = ["heading"]
    if not kinds:
        raise InvalidSelectorError(selector, "empty selector")
    for kind in kinds:
        if kind not in HEADING_KINDS and kind not in BLOCK_KINDS and kind not in INLINE_KINDS:
            raise InvalidSelectorError(selector, f"unknown content kind '{kind}'")
    return ProseSelector(kinds, pattern, first_only)


class MarkdownStrategy(Strategy):
    """Markdown headings, paragraphs, code, links, images and frontmatter values."""

    format_id = "markdown"
    skip_family = "markup"

    def parse(self, content, file_path=None):
        document = ProseDocument(content)
        body_start = 1 if content.startswith("\ufeff") else 0
        located = find_frontmatter(content)
        if located:
            fm_start, fm_end, body_start = located
            document.frontmatter = (fm_start, fm_end)
            document.frontmatter_documents = load_yaml_documents(content[fm_start:fm_end], file_path)
        document.blocks, document.inlines = read_blocks(content, body_start, file_path)
        return document

    def match(self, document, selector, config, file_path=None):
        try:
            parsed = parse_prose_selector(selector)
        except InvalidSelectorError as e:
            e.file_path = file_path
            raise

        if parsed.frontmatter_path is not None:
            candidates = self._match_frontmatter(document, parsed.frontmatter_path)
        else:
            candidates = self._match_blocks(document, parsed) + self._match_inline(document, parsed)
            candidates.sort(key=lambda c: c.start)

        if parsed.first_only:
            candidates = candidates[:1]
        return candidates

    def _match_frontmatter(self, document, path):
        if document.frontmatter is None:
            return []
        offset = document.frontmatter[0]
        segments = parse_path(path)
        candidates = []
        for root in document.frontmatter_documents:
            for concrete, node in resolve_path(root, segments, yaml_members, yaml_items):
                candidate = yaml_candidate(document.content, f"frontmatter.{concrete}", node, offset)
                candidates.append(candidate)
        return candidates

    def _match_blocks(self, document, parsed):
        candidates = []
        for block in document.blocks:
            if not self._block_selected(block, parsed.kinds):
                continue
            if parsed.pattern is not None and not parsed.pattern.search(block.value):
                continue
            label = f"h{block.level}" if block.kind == "heading" else block.kind
            line, _ = offset_to_line_col(document.content, block.start)
            candidates.append(Candidate(f"{label}@{line}", block.start, block.end, block.value,
                                        "prose", scope=block.scope))
        return candidates

    @staticmethod
    def _block_selected(block, kinds):
        if block.kind == "heading":
            return "heading" in kinds or f"h{block.level}" in kinds
        if block.kind == "paragraph":
            return "p" in kinds or "paragraph" in kinds
        return block.kind in kinds

    def _match_inline(self, document, parsed):
        candidates = []
        for element in document.inlines:
            if element.kind not in parsed.kinds:
                continue
            accepted = ACCEPTED_DESTINATIONS.get(element.kind)
            if accepted and not element.value.startswith(accepted):
                continue
            if parsed.pattern is not None and not parsed.pattern.search(element.value):
                continue
            line, _ = offset_to_line_col(document.content, element.start)
            candidates.append(Candidate(f"{element.kind}@{line}", element.start, element.end,
                                        element.value, "prose", scope=element.scope))
        return candidates

    def substitute(self, candidate, token):
        if candidate.context and candidate.context.startswith("yaml-"):
            return substitute_yaml(candidate, token)
        return token

    def restoration_sites(self, content, file_path=None):
        located = find_frontmatter(content)
        if not located:
            return []
        fm_start, fm_end, _ = located
        return yaml_restoration_sites(content[fm_start:fm_end], file_path, offset=fm_start)
