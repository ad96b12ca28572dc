"""
Tests for the component-markup (JSX/TSX) strategy.
"""

import pytest

from templatize.engine.changes import TemplatizeConfig
from templatize.engine.dispatcher import convert_content
from templatize.engine.errors import AmbiguousMatchError, ParseError
from templatize.engine.restore import restore_content
from templatize.engine.strategies.component import (ArenaWalker, ComponentTree, js_escape, js_unescape,
                                                    jsx_text_escape, language_for)

APP = """import React from 'react';

export default function App({ label }) {
  const name = "x";
  return (
    <div className="app">
      <h1>Hello World</h1>
      <p className="description">A {"static"} note</p>
      <span title="Tip" aria-label={label}>{name}</span>
      <Card heading={'Cards & more'} />
    </div>
  );
}
"""


def convert(content, selectors, placeholder="NAME", file_path="App.jsx", **kwargs):
    config = TemplatizeConfig(selectors, placeholder, **kwargs)
    return convert_content(content, config, "jsx", file_path=file_path)


class TestHelpers:

    def test_language_for(self):
        assert language_for("src/App.tsx") == "tsx"
        assert language_for("src/App.jsx") == "javascript"
        assert language_for(None) == "javascript"

    def test_js_unescape(self):
        assert js_unescape(r"a\nb\'c\x41B\u{43}") == "a\nb'cABC"

    def test_js_escape(self):
        assert js_escape('say "hi"', '"') == 'say \\"hi\\"'
        assert js_escape("it's", "'") == "it\\'s"
        assert js_escape("${x}`", "`") == "\\${x}\\`"

    def test_jsx_text_escape(self):
        assert jsx_text_escape("a < {b}") == "a &lt; &#123;b&#125;"


class TestArena:

    def test_elements_and_slots(self):
        arena = ArenaWalker(ComponentTree(APP, "App.jsx")).build()
        tags = [node.tag for node in arena.nodes]
        assert tags == ["div", "h1", "p", "span", "Card"]
        span = arena.nodes[3]
        assert span.attributes["title"].kind == "static"
        assert span.attributes["aria-label"].kind == "dynamic"
        card = arena.nodes[4]
        assert card.attributes["heading"].kind == "jsstring"
        assert card.attributes["heading"].value == "Cards & more"

    def test_syntax_error(self):
        with pytest.raises(ParseError) as excinfo:
            ComponentTree("const x = <div>;\n", "broken.jsx")
        assert "broken.jsx" in str(excinfo.value)


class TestJsxConversion:

    def test_text_child_uses_expression_for_brace_tokens(self):
        result = convert(APP, ["h1"], "TITLE")
        assert result.changes[0].original == "Hello World"
        assert '<h1>{/* @template-text */"{{TITLE}}"}</h1>' in result.apply(APP)

    def test_unicode_tokens_stay_plain_text(self):
        config = TemplatizeConfig("h1", "TITLE")
        result = convert_content(APP, config, "jsx", file_path="App.jsx", placeholder_format="unicode")
        assert "<h1>⦃TITLE⦄</h1>" in result.apply(APP)

    def test_string_expression_children(self):
        with pytest.raises(AmbiguousMatchError):
            convert(APP, [".description"])
        result = convert(APP, [".description"], allow_multiple=True)
        assert [c.original for c in result.changes] == ["A", "static", "note"]
        assert '{"{{NAME}}"}' in result.apply(APP)

    def test_static_attribute(self):
        result = convert(APP, ["span[title]"], "TIP", attribute="title")
        assert 'title="{{TIP}}"' in result.apply(APP)

    def test_string_literal_attribute(self):
        result = convert(APP, ["Card"], "HEADING", attribute="heading")
        assert result.changes[0].original == "Cards & more"
        assert "<Card heading={'{{HEADING}}'} />" in result.apply(APP)

    def test_dynamic_attribute_warns(self):
        result = convert(APP, ["span"], "LABEL", attribute="aria-label")
        assert result.changes == []
        assert "dynamic expression" in str(result.warnings[0])

    def test_dynamic_text_warns(self):
        result = convert(APP, ["span"])
        assert result.changes == []
        assert "text is a dynamic expression" in str(result.warnings[0])

    def test_class_name_and_child_combinator(self):
        assert convert(APP, [".app > h1"]).changes[0].original == "Hello World"

    def test_tags_are_case_sensitive(self):
        assert convert(APP, ["card"], attribute="heading").changes == []

    def test_skip_directive_in_comment_expression(self):
        content = (
            "const Page = () => (\n"
            "  <main>\n"
            "    {/* // @template-skip */}\n"
            "    <h2>Keep</h2>\n"
            "    {/* // @template-skip-end */}\n"
            "    <h2>Replace</h2>\n"
            "  </main>\n"
            ");\n"
        )
        result = convert(content, ["h2"])
        assert [c.original for c in result.changes] == ["Replace"]

    def test_tsx_grammar(self):
        content = "const App = (): JSX.Element => <h1 title=\"T\">Hi</h1>;\n"
        result = convert(content, ["h1"], "TITLE", file_path="App.tsx")
        assert result.changes[0].original == "Hi"


class TestJsxRestoration:

    def test_round_trip_through_expression(self):
        template = convert(APP, ["h1"], "TITLE").apply(APP)
        assert restore_content(template, {"TITLE": "Hello World"}, "jsx", "App.jsx") == APP

    def test_round_trip_attribute(self):
        template = convert(APP, ["span[title]"], "TIP", attribute="title").apply(APP)
        assert restore_content(template, {"TIP": "Tip"}, "jsx", "App.jsx") == APP

    def test_text_values_are_escaped(self):
        template = "const A = () => <p>⦃TEXT⦄</p>;\n"
        restored = restore_content(template, {"TEXT": "a {b}"}, "jsx", "A.jsx")
        assert restored == "const A = () => <p>a &#123;b&#125;</p>;\n"

    def test_string_literal_values_are_escaped(self):
        template = "const s = 'Hi {{NAME}}';\n"
        restored = restore_content(template, {"NAME": "O'Neil"}, "jsx", "a.js")
        assert restored == "const s = 'Hi O\\'Neil';\n"

    def test_string_child_stays_a_string(self):
        content = 'const A = () => <h1>{"Hello"}</h1>;\n'
        template = convert(content, ["h1"], "TITLE", file_path="A.jsx").apply(content)
        assert template == 'const A = () => <h1>{"{{TITLE}}"}</h1>;\n'
        assert restore_content(template, {"TITLE": "Hello"}, "jsx", "A.jsx") == content

    def test_string_child_value_is_js_escaped(self):
        template = 'const A = () => <h1>{"{{TITLE}}"}</h1>;\n'
        restored = restore_content(template, {"TITLE": 'Say "hi"'}, "jsx", "A.jsx")
        assert restored == 'const A = () => <h1>{"Say \\"hi\\""}</h1>;\n'

    def test_text_wrapper_restores_to_text(self):
        template = 'const A = () => <h1>{/* @template-text */"{{TITLE}}"}</h1>;\n'
        restored = restore_content(template, {"TITLE": "Hello"}, "jsx", "A.jsx")
        assert restored == "const A = () => <h1>Hello</h1>;\n"


class TestJsxIdempotence:

    def test_converting_a_template_again_changes_nothing(self):
        template = convert(APP, ["h1"], "TITLE").apply(APP)
        again = convert(template, ["h1"], "TITLE")
        assert again.apply(template) == template
        assert [c.original for c in again.changes] == ["{{TITLE}}"]

    def test_string_child_template_is_stable(self):
        template = 'const A = () => <h1>{"{{TITLE}}"}</h1>;\n'
        assert convert(template, ["h1"], "TITLE", file_path="A.jsx").apply(template) == template
