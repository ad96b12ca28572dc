"""
Tests for the markup (HTML) strategy and the structural selector engine.
"""

import pytest

from templatize.engine.changes import TemplatizeConfig
from templatize.engine.dispatcher import convert_content
from templatize.engine.errors import AmbiguousMatchError, InvalidSelectorError, InvalidSkipDirectiveError
from templatize.engine.restore import restore_content
from templatize.engine.selectors import attribute_of_last_test, parse_selector
from templatize.engine.strategies.markup import ArenaBuilder, scan_attributes

PAGE = """<!DOCTYPE html>
<html>
<head>
  <title>My Site</title>
  <meta name="description" content="A &amp; B site">
</head>
<body>
  <h1 class="hero main">Welcome</h1>
  <p>First <b>bold</b> tail</p>
  <ul><li>One<li>Two</ul>
  <img src=logo.png alt='Logo'>
  <input disabled>
  <script>var title = "My Site";</script>
</body>
</html>
"""


def convert(content, selectors, placeholder="NAME", **kwargs):
    return convert_content(content, TemplatizeConfig(selectors, placeholder, **kwargs), "html")


class TestSelectorParsing:

    def test_compound_parts(self):
        selector = parse_selector("div.card > h2#title[data-x^='a']:first-child")[0]
        assert selector.combinators == [">"]
        subject = selector.parts[-1]
        assert subject.tag == "h2"
        assert subject.ids == ["title"]
        assert subject.attributes[0].operator == "^="
        assert subject.attributes[0].value == "a"
        assert subject.pseudos == [("first-child", None)]

    def test_comma_list(self):
        assert len(parse_selector(".description, [data-description]")) == 2

    def test_comma_inside_attribute_value(self):
        assert len(parse_selector("[title='a, b']")) == 1

    @pytest.mark.parametrize("text", ["", "div >", "> p", "p:hover", "div,", "p:nth-child", "h1 ~ p"])
    def test_invalid(self, text):
        with pytest.raises(InvalidSelectorError):
            parse_selector(text)

    def test_attribute_of_last_test(self):
        assert attribute_of_last_test(parse_selector("meta[name='description'][content]")) == "content"
        assert attribute_of_last_test(parse_selector("h1")) is None


class TestArena:

    def test_attribute_spans(self):
        tag = '<meta name="d" content=\'x &amp; y\' data-n=5 hidden>'
        slots = {slot.name: slot for slot in scan_attributes(tag, 100)}
        assert slots["content"].value == "x & y"
        assert tag[slots["content"].start - 100:slots["content"].end - 100] == "x &amp; y"
        assert slots["data-n"].kind == "unquoted"
        assert slots["hidden"].kind == "bare"

    def test_implicit_close_and_text_runs(self):
        arena = ArenaBuilder(PAGE).build()
        items = [node for node in arena.nodes if node.tag == "li"]
        assert [arena.texts[node.texts[0]].value for node in items] == ["One", "Two"]
        assert items[0].parent == items[1].parent

    def test_script_text_is_raw(self):
        arena = ArenaBuilder(PAGE).build()
        script = next(node for node in arena.nodes if node.tag == "script")
        assert arena.texts[script.texts[0]].raw_text


class TestHtmlConversion:

    def test_title_text(self):
        result = convert(PAGE, ["title"], "TITLE")
        assert result.changes[0].original == "My Site"
        assert "<title>{{TITLE}}</title>" in result.apply(PAGE)

    def test_attribute_value_is_unescaped(self):
        result = convert(PAGE, ["meta[name='description']"], "DESCRIPTION", attribute="content")
        change = result.changes[0]
        assert change.original == "A & B site"
        assert change.path == "meta[name='description']@content"
        assert 'content="{{DESCRIPTION}}"' in result.apply(PAGE)

    def test_class_selector(self):
        assert convert(PAGE, ["h1.hero"]).changes[0].original == "Welcome"
        assert convert(PAGE, ["body > .main"]).changes[0].original == "Welcome"

    def test_mixed_content_text_children(self):
        with pytest.raises(AmbiguousMatchError):
            convert(PAGE, ["p"])
        result = convert(PAGE, ["p"], allow_multiple=True)
        assert [c.original for c in result.changes] == ["First", "tail"]
        assert "<p>{{NAME}} <b>bold</b> {{NAME}}</p>" in result.apply(PAGE)

    def test_pseudo_classes(self):
        assert convert(PAGE, ["li:first-child"]).changes[0].original == "One"
        assert convert(PAGE, ["li:last-child"]).changes[0].original == "Two"
        assert convert(PAGE, ["li:nth-child(2)"]).changes[0].original == "Two"

    def test_script_is_never_templatized(self):
        result = convert(PAGE, ["script"])
        assert result.changes == []
        assert result.warnings

    def test_unquoted_attribute(self):
        result = convert(PAGE, ["img"], "LOGO", attribute="src")
        assert "<img src={{LOGO}} alt='Logo'>" in result.apply(PAGE)

    def test_bare_attribute_warns(self):
        result = convert(PAGE, ["input"], attribute="disabled")
        assert "attribute has no value" in str(result.warnings[0])

    def test_case_insensitive_tags(self):
        result = convert("<DIV><H1 CLASS='x'>Hi</H1></DIV>", ["div h1.x"])
        assert result.changes[0].original == "Hi"

    def test_entities_in_text(self):
        result = convert("<p>Tom &amp; Jerry</p>", ["p"])
        assert result.changes[0].original == "Tom & Jerry"

    def test_skip_directive(self):
        content = "<!-- @template-skip --><h1>A</h1><!-- @template-skip-end --><h1>B</h1>"
        result = convert(content, ["h1"])
        assert [c.original for c in result.changes] == ["B"]

    def test_straddling_skip_directive(self):
        content = ("<div><p>x<!-- @template-skip --></p>"
                   "<p>y<!-- @template-skip-end --></p></div>")
        with pytest.raises(InvalidSkipDirectiveError):
            convert(content, ["p"], allow_multiple=True)


class TestHtmlRestoration:

    def test_round_trip(self):
        config = [
            TemplatizeConfig("title", "TITLE"),
            TemplatizeConfig("meta[name='description']", "DESCRIPTION", attribute="content"),
        ]
        result = convert_content(PAGE, config, "html")
        template = result.apply(PAGE)
        restored = restore_content(template, {"TITLE": "My Site", "DESCRIPTION": "A & B site"}, "html")
        assert restored == PAGE

    def test_text_is_escaped(self):
        assert restore_content("<p>{{TEXT}}</p>", {"TEXT": "a < b"}, "html") == "<p>a &lt; b</p>"

    def test_attribute_is_escaped(self):
        restored = restore_content('<a title="{{T}}">x</a>', {"T": 'say "hi"'}, "html")
        assert restored == '<a title="say &quot;hi&quot;">x</a>'

    def test_unquoted_attribute_gets_quotes_when_needed(self):
        assert restore_content("<img alt={{ALT}}>", {"ALT": "two words"}, "html") == '<img alt="two words">'
        assert restore_content("<img alt={{ALT}}>", {"ALT": "logo"}, "html") == "<img alt=logo>"


class TestHtmlIdempotence:

    CONFIG = [
        TemplatizeConfig("title", "TITLE"),
        TemplatizeConfig("meta[name='description']", "DESCRIPTION", attribute="content"),
        TemplatizeConfig("h1", "HEADING"),
    ]

    def test_converting_a_template_again_changes_nothing(self):
        template = convert_content(PAGE, self.CONFIG, "html").apply(PAGE)
        again = convert_content(template, self.CONFIG, "html")
        assert again.apply(template) == template
        assert [c.original for c in again.changes] == ["{{TITLE}}", "{{DESCRIPTION}}", "{{HEADING}}"]

    def test_other_placeholder_is_left_alone(self):
        template = "<title>{{OTHER}}</title>"
        result = convert(template, ["title"], "TITLE")
        assert result.apply(template) == template
        assert "already contains another placeholder" in str(result.warnings[0])
