"""
Component-markup strategy for JSX and TSX.

Files are parsed with tree-sitter so that replacement sites nested in
components, expression containers and string literals are located from the
syntax tree rather than from raw text. Only static text children and static
string literals are replaced; dynamic expressions are reported instead.
"""

import html
import json
import logging
import re
from typing import Optional

from ..selectors import AttributeSlot, ElementArena, TextSlot
from ..syntax import SyntaxTree
from .base import Strategy, TokenSite
from .markup import match_arena
from .structured import text_of

logger = logging.getLogger(__name__)

ELEMENT_TYPES = ("jsx_element", "jsx_self_closing_element")
TEXT_TYPES = ("jsx_text", "html_character_reference")
JSX_TEXT_UNSAFE = set("{}<>")
# Marks the {"..."} containers substitute() writes around text-child tokens;
# only those restore to plain text.
TEXT_WRAPPER_MARK = "/* @template-text */"

_JS_ESCAPE = re.compile(r"\\(x[0-9a-fA-F]{2}|u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|\r\n|[\s\S])")
_JS_SIMPLE = {"n": "\n", "r": "\r", "t": "\t", "b": "\b", "f": "\f", "v": "\v", "0": "\0",
              "\n": "", "\r\n": ""}


def language_for(file_path: Optional[str]) -> str:
    """tree-sitter grammar name for a file; TSX files need the tsx grammar."""
    if file_path and str(file_path).lower().endswith(".tsx"):
        return "tsx"
    return "javascript"


def js_unescape(raw: str) -> str:
    """Decodes the escape sequences of a JavaScript string literal body."""
    def replace(match):
        escape = match.group(1)
        if escape in _JS_SIMPLE:
            return _JS_SIMPLE[escape]
        if escape.startswith("x"):
            return chr(int(escape[1:], 16))
        if escape.startswith("u{"):
            return chr(int(escape[2:-1], 16))
        if escape.startswith("u"):
            return chr(int(escape[1:], 16))
        return escape
    return _JS_ESCAPE.sub(replace, raw)


def js_escape(value, quote: str = '"') -> str:
    """Escapes text for the body of a JavaScript string literal delimited by ``quote``."""
    text = text_of(value)
    text = text.replace("\\", "\\\\").replace("\n", "\\n").replace("\r", "\\r")
    if quote == "`":
        return text.replace("`", "\\`").replace("${", "\\${")
    return text.replace(quote, "\\" + quote)


def jsx_text_escape(value) -> str:
    """Escapes text for a JSX text child."""
    text = text_of(value)
    return html.escape(text, quote=False).replace("{", "&#123;").replace("}", "&#125;")


def jsx_attribute_escape(value) -> str:
    text = text_of(value)
    return html.escape(text, quote=True)


class ComponentTree(SyntaxTree):
    """A parsed JSX file; syntax errors raise ParseError."""

    def __init__(self, content: str, file_path: Optional[str] = None):
        super().__init__(content, language_for(file_path), file_path)
        if self.root.has_error:
            raise self.syntax_error("JSX")


def string_body(tree: ComponentTree, node):
    """(start, end, quote) of the body of a string or template literal node."""
    start, end = tree.start(node), tree.end(node)
    quote = tree.content[start]
    return start + 1, end - 1, quote


def is_static_template(node) -> bool:
    return node.type == "template_string" and not any(
        child.type == "template_substitution" for child in node.children
    )


def expression_content(node):
    """Named children of a jsx_expression, comments excluded."""
    return [child for child in node.named_children if child.type != "comment"]


def is_static_string(node) -> bool:
    return node.type == "string" or is_static_template(node)


class ArenaWalker:
    """Builds an ElementArena from a component tree."""

    def __init__(self, tree: ComponentTree):
        self.tree = tree
        self.arena = ElementArena(case_sensitive=True)

    def build(self) -> ElementArena:
        self.visit(self.tree.root, None)
        return self.arena

    def visit(self, node, parent):
        if node.type in ELEMENT_TYPES:
            self.add_element(node, parent)
            return
        for child in node.children:
            self.visit(child, parent)

    def add_element(self, node, parent):
        tree = self.tree
        opening = node if node.type == "jsx_self_closing_element" else node.child_by_field_name("open_tag")
        if opening is None:
            opening = node.children[0]
        name_node = opening.child_by_field_name("name")
        tag = tree.text(name_node) if name_node is not None else "#fragment"
        element = self.arena.add_element(tag, parent, tree.start(node), tree.end(node))

        for attribute in opening.named_children:
            if attribute.type == "jsx_attribute":
                slot = self.attribute_slot(attribute, element.index)
                element.attributes.setdefault(slot.name, slot)
            elif attribute.type == "jsx_expression":
                # spread attributes
                for child in attribute.children:
                    self.visit(child, element.index)

        if node.type == "jsx_self_closing_element":
            return

        run = []
        for child in node.named_children:
            if child.type in ("jsx_opening_element", "jsx_closing_element"):
                continue
            if child.type in TEXT_TYPES:
                run.append(child)
                continue
            self.flush_text(run, element.index)
            run = []
            if child.type in ELEMENT_TYPES:
                self.add_element(child, element.index)
            elif child.type == "jsx_expression":
                self.expression_child(child, element.index)
            else:
                self.visit(child, element.index)
        self.flush_text(run, element.index)

    def attribute_slot(self, attribute, owner: int) -> AttributeSlot:
        tree = self.tree
        children = attribute.named_children
        name = tree.text(children[0]) if children else tree.text(attribute)
        value = children[1] if len(children) > 1 else None
        if value is None:
            end = tree.end(attribute)
            return AttributeSlot(name, None, end, end, "bare")
        if value.type == "string":
            start, end, _ = string_body(tree, value)
            return AttributeSlot(name, html.unescape(tree.content[start:end]), start, end, "static")
        if value.type == "jsx_expression":
            inner = expression_content(value)
            if len(inner) == 1 and is_static_string(inner[0]):
                start, end, _ = string_body(tree, inner[0])
                return AttributeSlot(name, js_unescape(tree.content[start:end]), start, end, "jsstring")
            for child in value.children:
                self.visit(child, owner)
        return AttributeSlot(name, None, tree.start(value), tree.end(value), "dynamic")

    def flush_text(self, run, parent):
        if not run:
            return
        tree = self.tree
        start, end = tree.start(run[0]), tree.end(run[-1])
        raw = tree.content[start:end]
        stripped = raw.strip()
        if not stripped:
            return
        start += len(raw) - len(raw.lstrip())
        end = start + len(stripped)
        self.arena.add_text(TextSlot(parent, html.unescape(stripped), start, end, "text"))

    def expression_child(self, node, parent):
        tree = self.tree
        inner = expression_content(node)
        if not inner:
            return
        if len(inner) == 1 and is_static_string(inner[0]):
            start, end, quote = string_body(tree, inner[0])
            self.arena.add_text(TextSlot(parent, js_unescape(tree.content[start:end]), start, end,
                                         "string", quote=quote))
            return
        self.arena.add_text(TextSlot(parent, tree.text(node), tree.start(node), tree.end(node), "dynamic"))
        for child in node.children:
            self.visit(child, parent)


class JsxStrategy(Strategy):
    """JSX/TSX components parsed with tree-sitter."""

    format_id = "jsx"
    skip_family = "code"

    def parse(self, content, file_path=None):
        tree = ComponentTree(content, file_path)
        arena = ArenaWalker(tree).build()
        logger.debug(f"{file_path or 'jsx'}: {len(arena.nodes)} element(s)")
        return arena

    def match(self, document, selector, config, file_path=None):
        return match_arena(document, selector, config, file_path)

    def substitute(self, candidate, token):
        if candidate.context == "text-text" and JSX_TEXT_UNSAFE & set(token):
            return "{" + TEXT_WRAPPER_MARK + json.dumps(token, ensure_ascii=False) + "}"
        if candidate.context in ("text-string", "attribute-jsstring"):
            return js_escape(token, '"')
        if candidate.context == "attribute-static":
            return jsx_attribute_escape(token)
        return token

    def restoration_sites(self, content, file_path=None):
        tree = ComponentTree(content, file_path)
        sites = []
        for node in tree.walk():
            if node.type == "jsx_text":
                sites.append(TokenSite(tree.start(node), tree.end(node), jsx_text_escape))
            elif node.type == "string" and node.parent is not None and node.parent.type == "jsx_attribute":
                start, end, _ = string_body(tree, node)
                sites.append(TokenSite(start, end, jsx_attribute_escape))
            elif is_static_string(node):
                start, end, quote = string_body(tree, node)
                encode = _quoted_encoder(quote)
                if is_text_wrapper(tree, node.parent):
                    sites.append(TokenSite(start, end, encode,
                                           literal=(tree.start(node.parent), tree.end(node.parent)),
                                           encode_literal=jsx_text_escape))
                else:
                    sites.append(TokenSite(start, end, encode))
        return sites


def is_text_wrapper(tree: ComponentTree, node) -> bool:
    """True for a {/* @template-text */"..."} text child written by substitute()."""
    if node is None or node.type != "jsx_expression":
        return False
    if node.parent is None or node.parent.type != "jsx_element":
        return False
    marked = any(child.type == "comment" and tree.text(child) == TEXT_WRAPPER_MARK
                 for child in node.named_children)
    inner = expression_content(node)
    return marked and len(inner) == 1 and is_static_string(inner[0])


def _quoted_encoder(quote):
    return lambda value: js_escape(value, quote)
