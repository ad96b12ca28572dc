"""
Tests for templatize.engine.placeholders.
"""

import pytest

from templatize.engine.errors import ConfigurationError
from templatize.engine.placeholders import (PlaceholderFormat, extract_placeholders, find_tokens,
                                            format_token, get_format_descriptions, has_any_placeholder,
                                            normalize_format, parse_token, validate_name)


class TestFormatToken:
    """Rendering tokens in each delimiter style."""

    def test_default_is_mustache(self):
        assert format_token("PROJECT_NAME") == "{{PROJECT_NAME}}"

    @pytest.mark.parametrize("fmt, expected", [
        ("unicode", "⦃NAME⦄"),
        ("dollar", "$NAME$"),
        ("percent", "%NAME%"),
        (PlaceholderFormat.MUSTACHE, "{{NAME}}"),
    ])
    def test_other_formats(self, fmt, expected):
        assert format_token("NAME", fmt) == expected

    def test_invalid_name_is_rejected(self):
        with pytest.raises(ConfigurationError):
            format_token("project-name")


class TestNormalizeFormat:

    def test_none_gives_default(self):
        assert normalize_format(None) is PlaceholderFormat.MUSTACHE

    def test_names_are_case_insensitive(self):
        assert normalize_format("Unicode") is PlaceholderFormat.UNICODE

    def test_pattern_with_name(self):
        assert normalize_format("$NAME$") is PlaceholderFormat.DOLLAR

    def test_unknown_format(self):
        with pytest.raises(ConfigurationError, match="Invalid placeholder format"):
            normalize_format("<<NAME>>")


class TestNames:

    @pytest.mark.parametrize("name", ["A", "PROJECT_NAME", "V2_TITLE"])
    def test_valid(self, name):
        assert validate_name(name) == name

    @pytest.mark.parametrize("name", ["", "lower", "1ST", "_HIDDEN", "WITH-DASH", None])
    def test_invalid(self, name):
        with pytest.raises(ConfigurationError):
            validate_name(name)


class TestFindingTokens:

    def test_find_tokens_in_order(self):
        text = "{{B}} and {{A}} then {{B}}"
        assert [t.name for t in find_tokens(text)] == ["B", "A", "B"]
        assert find_tokens(text)[1].start == 10

    def test_whitespace_inside_delimiters(self):
        tokens = find_tokens("Hello {{ NAME }}!")
        assert tokens[0].name == "NAME"
        assert (tokens[0].start, tokens[0].end) == (6, 16)

    def test_other_format_is_ignored(self):
        assert find_tokens("⦃NAME⦄") == []
        assert find_tokens("⦃NAME⦄", "unicode")[0].name == "NAME"

    def test_lowercase_is_not_a_token(self):
        assert find_tokens("{{name}}") == []

    def test_extract_placeholders_is_sorted_and_unique(self):
        assert extract_placeholders("%B% %A% %B%", "percent") == ["A", "B"]

    def test_has_any_placeholder(self):
        assert has_any_placeholder("cost: $PRICE$")
        assert not has_any_placeholder("cost: $5")

    def test_parse_token(self):
        match = parse_token("  {{TITLE}} ")
        assert match.name == "TITLE"
        assert match.format is PlaceholderFormat.MUSTACHE
        assert parse_token("Title: {{TITLE}}") is None

    def test_format_descriptions(self):
        names = [entry["name"] for entry in get_format_descriptions()]
        assert names == ["mustache", "unicode", "dollar", "percent"]
