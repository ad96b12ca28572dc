"""
Tests for rule file loading and routing.
"""

import json
from pathlib import Path

import pytest

from templatize.engine.errors import ConfigurationError
from templatize.engine.rules import (DEFAULT_RULES, default_rules, find_rule_file, generate_config_file,
                                     load_rules, parse_rules, pattern_matches)


def rules_with(pattern, entries, auto_detect=True, **extra):
    data = {"version": "1.0", "autoDetect": auto_detect, "rules": {pattern: entries}}
    data.update(extra)
    return data


class TestPatternMatching:

    @pytest.mark.parametrize("pattern, path", [
        ("package.json", "package.json"),
        ("package.json", "packages/web/package.json"),
        ("src/index.html", "src/index.html"),
        ("./README.md", "README.md"),
        (".jsx", "src/components/Card.jsx"),
        ("*.md", "docs/guide.md"),
        ("src/**/*.html", "src/pages/about.html"),
        ("src/**/*.html", "src/index.html"),
    ])
    def test_matches(self, pattern, path):
        assert pattern_matches(pattern, path)

    @pytest.mark.parametrize("pattern, path", [
        ("package.json", "package.json.bak"),
        (".jsx", "src/App.tsx"),
        ("src/**/*.html", "public/index.html"),
        ("README.md", "docs/README.md.txt"),
    ])
    def test_does_not_match(self, pattern, path):
        assert not pattern_matches(pattern, path)


class TestParseRules:

    def test_default_rules_parse(self):
        rule_set = parse_rules(default_rules())
        assert rule_set.auto_detect is True
        assert rule_set.placeholder_format == "mustache"
        assert rule_set.patterns == ["package.json", "README.md", ".jsx", ".html"]

    def test_default_rules_are_copied(self):
        data = default_rules()
        data["rules"].clear()
        assert DEFAULT_RULES["rules"]

    def test_plan_groups_configs_by_format(self):
        rule_set = parse_rules(default_rules())
        assert [len(c) for c in rule_set.plan_file("package.json").values()] == [3]
        assert list(rule_set.plan_file("README.md")) == ["markdown"]
        assert len(rule_set.plan_file("src/App.jsx")["jsx"]) == 5
        assert rule_set.plan_file("src/main.py") == {}

    def test_attribute_is_inferred_from_selector(self):
        rule_set = parse_rules(default_rules())
        meta = rule_set.rules_for_file("index.html")[1]
        assert meta.config.attribute == "content"
        assert meta.format_id == "html"

    def test_rule_without_context_uses_extension(self):
        rule_set = parse_rules(rules_with("*.html", [{"selector": "h1", "placeholder": "TITLE"}]))
        assert list(rule_set.plan_file("about.html")) == ["html"]

    def test_context_required_without_auto_detect(self):
        with pytest.raises(ConfigurationError, match="context is required"):
            parse_rules(rules_with("*.html", [{"selector": "h1", "placeholder": "T"}], auto_detect=False))

    def test_json_rule_needs_path(self):
        with pytest.raises(ConfigurationError, match="must have a path"):
            parse_rules(rules_with("package.json", [
                {"context": "application/json", "selector": "name", "placeholder": "NAME"},
            ]))

    def test_selector_rule_needs_selector(self):
        with pytest.raises(ConfigurationError, match="must have a selector"):
            parse_rules(rules_with("*.html", [{"context": "text/html", "placeholder": "NAME"}]))

    def test_yaml_rule_accepts_path(self):
        rule_set = parse_rules(rules_with("*.yml", [
            {"context": "application/yaml", "path": "name", "placeholder": "NAME"},
        ]))
        assert rule_set.rules[0].format_id == "yaml"

    def test_unknown_context_is_ignored(self, caplog):
        rule_set = parse_rules(rules_with("*.css", [
            {"context": "text/css", "selector": "body", "placeholder": "NAME"},
        ]))
        assert rule_set.rules == []
        assert "Unknown context" in caplog.text

    def test_unknown_top_level_key_is_ignored(self, caplog):
        parse_rules(rules_with("a.json", [], extra_setting=True))
        assert "extra_setting" in caplog.text

    def test_attribute_rule_without_attribute(self):
        with pytest.raises(ConfigurationError, match="attribute"):
            parse_rules(rules_with("*.html", [
                {"context": "text/html#attribute", "selector": "meta", "placeholder": "NAME"},
            ]))

    def test_bad_selector_in_attribute_rule(self):
        with pytest.raises(ConfigurationError, match="Invalid selector"):
            parse_rules(rules_with("*.html", [
                {"context": "text/html#attribute", "selector": "meta[", "placeholder": "NAME"},
            ]))

    @pytest.mark.parametrize("data, message", [
        ([], "must be an object"),
        ({"autoDetect": True, "rules": {}}, "version"),
        ({"version": "1.0", "autoDetect": "yes", "rules": {}}, "autoDetect"),
        ({"version": "1.0", "autoDetect": True}, "rules object"),
        ({"version": "1.0", "autoDetect": True, "rules": {"a.json": {}}}, "must be an array"),
        ({"version": "1.0", "autoDetect": True, "placeholderFormat": "<<>>", "rules": {}}, "placeholder format"),
    ])
    def test_invalid_files(self, data, message):
        with pytest.raises(ConfigurationError, match=message):
            parse_rules(data)


class TestRuleFiles:

    def test_find_and_load_json(self, rule_project):
        assert find_rule_file(rule_project) == Path("/project/.templatize.json")
        rule_set = load_rules(rule_project)
        assert rule_set.source == Path("/project/.templatize.json")
        assert len(rule_set.rules) == 13

    def test_load_yaml_rule_file(self, fs):
        fs.create_file("/project/.templatize.yaml", contents=(
            "version: '1.0'\n"
            "autoDetect: true\n"
            "rules:\n"
            "  config.yml:\n"
            "    - context: text/yaml\n"
            "      selector: service.name\n"
            "      placeholder: SERVICE_NAME\n"
        ))
        rule_set = load_rules("/project")
        assert rule_set.rules[0].config.selectors == ["service.name"]

    def test_load_toml_rule_file(self, fs):
        fs.create_file("/project/.templatize.toml", contents=(
            'version = "1.0"\n'
            "autoDetect = true\n"
            "[[rules.\"package.json\"]]\n"
            'context = "application/json"\n'
            'path = "$.name"\n'
            'placeholder = "PACKAGE_NAME"\n'
        ))
        assert load_rules("/project").rules[0].pattern == "package.json"

    def test_explicit_config_path(self, fs):
        fs.create_file("/elsewhere/rules.json", contents=json.dumps(default_rules()))
        fs.create_dir("/project")
        assert load_rules("/project", "/elsewhere/rules.json").source == Path("/elsewhere/rules.json")

    def test_missing_rule_file(self, fs):
        fs.create_dir("/project")
        with pytest.raises(ConfigurationError, match="templatize init"):
            load_rules("/project")

    def test_unreadable_rule_file(self, fs):
        fs.create_file("/project/.templatize.json", contents="{not json")
        with pytest.raises(ConfigurationError, match="Cannot read configuration"):
            load_rules("/project")

    def test_generate_config_file(self, fs):
        fs.create_dir("/project")
        path = generate_config_file("/project", placeholder_format="unicode")
        with open(path) as f:
            data = json.load(f)
        assert data["placeholderFormat"] == "unicode"
        assert data["rules"]["package.json"][0]["path"] == "$.name"

    def test_generate_refuses_to_overwrite(self, fs):
        fs.create_file("/project/.templatize.json", contents="{}")
        with pytest.raises(ConfigurationError, match="already exists"):
            generate_config_file("/project")
        generate_config_file("/project", force=True)
        assert load_rules("/project").version == "1.0"
