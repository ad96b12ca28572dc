"""
Tests for the change model and TemplatizeConfig.
"""

import pytest

from templatize.engine.changes import Change, ConversionResult, TemplatizeConfig, apply_changes
from templatize.engine.errors import ConfigurationError, ConflictingChangeError


def change(start, end, replacement, path="p", original="x", placeholder="NAME"):
    return Change(path, original, replacement, start, end, placeholder=placeholder)


class TestApplyChanges:

    def test_applies_back_to_front(self):
        content = "alpha beta gamma"
        changes = [change(0, 5, "{{A}}"), change(11, 16, "{{G}}")]
        assert apply_changes(content, changes) == "{{A}} beta {{G}}"

    def test_overlapping_changes_conflict(self):
        changes = [change(0, 5, "{{A}}", path="first"), change(3, 8, "{{B}}", path="second")]
        with pytest.raises(ConflictingChangeError) as excinfo:
            apply_changes("0123456789", changes)
        assert excinfo.value.first_path == "first"
        assert excinfo.value.second_path == "second"

    def test_adjacent_changes_do_not_conflict(self):
        assert apply_changes("abcd", [change(0, 2, "X"), change(2, 4, "Y")]) == "XY"

    def test_result_placeholders_keep_first_original(self):
        result = ConversionResult("json", changes=[
            change(0, 1, "{{N}}", original="first", placeholder="N"),
            change(5, 6, "{{N}}", original="second", placeholder="N"),
        ])
        assert result.placeholders == {"N": "first"}


class TestTemplatizeConfig:

    def test_single_selector_string(self):
        config = TemplatizeConfig("name", "PROJECT_NAME")
        assert config.selectors == ["name"]
        assert config.allow_multiple is False

    def test_from_dict_accepts_rule_keys(self):
        config = TemplatizeConfig.from_dict({
            "path": "$.name", "placeholder": "PACKAGE_NAME", "allowMultiple": True,
        })
        assert config.selectors == ["$.name"]
        assert config.allow_multiple is True

    def test_from_dict_snake_case_and_list(self):
        config = TemplatizeConfig.from_dict({
            "selectors": ["h1", "h2"], "placeholder": "TITLE", "allow_multiple": False,
            "attribute": "title", "format": "unicode",
        })
        assert config.selectors == ["h1", "h2"]
        assert config.attribute == "title"
        assert config.token_format().value == "unicode"

    def test_empty_selectors(self):
        with pytest.raises(ConfigurationError, match="no selectors"):
            TemplatizeConfig([], "NAME")

    def test_blank_selector(self):
        with pytest.raises(ConfigurationError, match="empty selector"):
            TemplatizeConfig(["name", "  "], "NAME")

    def test_invalid_placeholder(self):
        with pytest.raises(ConfigurationError):
            TemplatizeConfig.from_dict({"selector": "name", "placeholder": "name"})

    def test_allow_multiple_must_be_bool(self):
        with pytest.raises(ConfigurationError, match="allowMultiple"):
            TemplatizeConfig.from_dict({"selector": "a", "placeholder": "A", "allowMultiple": "yes"})
