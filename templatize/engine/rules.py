"""
Rule file loading: the routing layer that expands a project's
``.templatize.json`` into per-file TemplatizeConfigs for the strategies.
"""

import copy
import fnmatch
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Optional

import toml
import yaml

from .changes import TemplatizeConfig
from .dispatcher import STRATEGIES, detect_format, normalize_format_id
from .errors import ConfigurationError, InvalidSelectorError
from .placeholders import normalize_format
from .selectors import attribute_of_last_test, parse_selector

logger = logging.getLogger(__name__)

RULE_FILE_NAMES = (".templatize.json", ".templatize.yaml", ".templatize.yml", ".templatize.toml")
KNOWN_KEYS = {"version", "autoDetect", "placeholderFormat", "rules"}

# Contexts that must carry a ``path`` instead of a ``selector``.
PATH_CONTEXTS = {"application/json"}
SELECTOR_CONTEXTS = {
    "application/yaml", "text/yaml", "text/markdown", "text/html", "text/jsx",
}

DEFAULT_RULES: Dict[str, Any] = {
    "version": "1.0",
    "autoDetect": True,
    "placeholderFormat": "mustache",
    "rules": {
        "package.json": [
            {"context": "application/json", "path": "$.name", "placeholder": "PACKAGE_NAME"},
            {"context": "application/json", "path": "$.description", "placeholder": "PACKAGE_DESCRIPTION"},
            {"context": "application/json", "path": "$.author", "placeholder": "PACKAGE_AUTHOR"},
        ],
        "README.md": [
            {"context": "text/markdown#heading", "selector": "h1:first", "placeholder": "CONTENT_TITLE"},
            {"context": "text/markdown#paragraph", "selector": "p:first", "placeholder": "CONTENT_DESCRIPTION"},
        ],
        ".jsx": [
            {"context": "text/jsx", "selector": "h1:first-child", "placeholder": "CONTENT_TITLE"},
            {"context": "text/jsx", "selector": "h2:first-child", "placeholder": "CONTENT_SUBTITLE"},
            {"context": "text/jsx", "selector": ".description, [data-description]",
             "placeholder": "CONTENT_DESCRIPTION", "allowMultiple": True},
            {"context": "text/jsx#attribute", "selector": "[title]", "placeholder": "CONTENT_TITLE",
             "allowMultiple": True},
            {"context": "text/jsx#attribute", "selector": "[aria-label]", "placeholder": "CONTENT_LABEL",
             "allowMultiple": True},
        ],
        ".html": [
            {"context": "text/html", "selector": "title", "placeholder": "CONTENT_TITLE"},
            {"context": "text/html#attribute", "selector": "meta[name='description'][content]",
             "placeholder": "CONTENT_DESCRIPTION"},
            {"context": "text/html", "selector": "h1:first-child", "placeholder": "CONTENT_TITLE"},
        ],
    },
}


@dataclass
class Rule:
    """One validated rule: a file pattern, the strategy to use and its config."""
    pattern: str
    context: Optional[str]
    format_id: Optional[str]
    config: TemplatizeConfig


@dataclass
class RuleSet:
    version: str
    auto_detect: bool
    rules: List[Rule] = field(default_factory=list)
    placeholder_format: Optional[str] = None
    source: Optional[Path] = None

    @property
    def patterns(self) -> List[str]:
        return list(dict.fromkeys(rule.pattern for rule in self.rules))

    def rules_for_file(self, relative_path: str) -> List[Rule]:
        """Rules whose pattern matches a project-relative path, in declaration order."""
        return [rule for rule in self.rules if pattern_matches(rule.pattern, relative_path)]

    def plan_file(self, relative_path: str) -> Dict[str, List[TemplatizeConfig]]:
        """
        Groups the configs that apply to a file by strategy format.

        Rules without a resolvable format fall back to the file extension
        when autoDetect is on; otherwise they are dropped with a warning.
        """
        plan: Dict[str, List[TemplatizeConfig]] = {}
        for rule in self.rules_for_file(relative_path):
            format_id = rule.format_id
            if format_id is None and self.auto_detect:
                format_id = detect_format(relative_path)
            if format_id is None:
                logger.warning(f"{relative_path}: no strategy for rule context '{rule.context}', skipping rule")
                continue
            plan.setdefault(format_id, []).append(rule.config)
        return plan


def pattern_matches(pattern: str, relative_path: str) -> bool:
    """
    Tests a rule file pattern against a project-relative POSIX path.

    Patterns match by exact file name, by relative path (or path suffix),
    by extension (``.jsx``) or as a glob (``src/**/*.html``).
    """
    path = PurePosixPath(relative_path)
    pattern = pattern.replace("\\", "/")
    if pattern.startswith("./"):
        pattern = pattern[2:]

    if not any(char in pattern for char in "*?["):
        if pattern in (path.name, relative_path) or relative_path.endswith("/" + pattern):
            return True
        return pattern.startswith(".") and "/" not in pattern and path.name.endswith(pattern)

    if fnmatch.fnmatch(relative_path, pattern):
        return True
    if "/" not in pattern:
        return fnmatch.fnmatch(path.name, pattern)
    # "**/" may also stand for no directory at all
    return fnmatch.fnmatch(relative_path, pattern.replace("**/", ""))


def _context_format(context: Optional[str]) -> Optional[str]:
    if not context:
        return None
    format_id = normalize_format_id(context)
    return format_id if format_id in STRATEGIES else None


def _build_rule(pattern: str, index: int, data: Any, auto_detect: bool) -> Optional[Rule]:
    where = f"rule {index + 1} for '{pattern}'"
    if not isinstance(data, dict):
        raise ConfigurationError(f"{where} must be an object")

    context = data.get("context")
    if context is not None and not isinstance(context, str):
        raise ConfigurationError(f"{where}: context must be a string (MIME-type format)")
    if context is None and not auto_detect:
        raise ConfigurationError(f"{where}: context is required when autoDetect is false")

    base_context = context.split("#", 1)[0] if context else None
    if base_context and base_context not in PATH_CONTEXTS and base_context not in SELECTOR_CONTEXTS:
        logger.warning(f"Unknown context '{context}' in {where}, ignoring it")
        return None

    if base_context in PATH_CONTEXTS and "path" not in data:
        raise ConfigurationError(f"{where}: {base_context} rules must have a path property")
    if base_context in SELECTOR_CONTEXTS and "selector" not in data and "selectors" not in data \
            and not (base_context in ("application/yaml", "text/yaml") and "path" in data):
        raise ConfigurationError(f"{where}: {base_context} rules must have a selector property")
    if not isinstance(data.get("placeholder"), str):
        raise ConfigurationError(f"{where}: placeholder must be a string")

    config_data = dict(data)
    if context and context.endswith("#attribute") and not config_data.get("attribute"):
        selectors = config_data.get("selectors") or [config_data.get("selector")]
        attribute = None
        for selector in selectors:
            if not isinstance(selector, str):
                continue
            try:
                attribute = attribute_of_last_test(parse_selector(selector)) or attribute
            except InvalidSelectorError as e:
                raise ConfigurationError(f"{where}: {e.message}")
        if not attribute:
            raise ConfigurationError(f"{where}: attribute rules need an attribute or an [attr] test")
        config_data["attribute"] = attribute

    try:
        config = TemplatizeConfig.from_dict(config_data)
    except ConfigurationError as e:
        raise ConfigurationError(f"{where}: {e.message}")
    return Rule(pattern, context, _context_format(context), config)


def parse_rules(data: Any, source: Optional[Path] = None) -> RuleSet:
    """
    Validates rule file data and builds a RuleSet.

    Raises:
        ConfigurationError: If required keys are missing or malformed.
    """
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration must be an object", str(source) if source else None)
    if not isinstance(data.get("version"), str):
        raise ConfigurationError("Configuration must have a version string")
    if not isinstance(data.get("autoDetect"), bool):
        raise ConfigurationError("Configuration autoDetect must be a boolean")
    if not isinstance(data.get("rules"), dict):
        raise ConfigurationError("Configuration must have a rules object")
    for key in data:
        if key not in KNOWN_KEYS:
            logger.warning(f"Unknown configuration key '{key}' ignored")

    placeholder_format = data.get("placeholderFormat")
    if placeholder_format is not None:
        normalize_format(placeholder_format)

    rule_set = RuleSet(data["version"], data["autoDetect"], placeholder_format=placeholder_format, source=source)
    for pattern, entries in data["rules"].items():
        if not isinstance(entries, list):
            raise ConfigurationError(f"Rules for '{pattern}' must be an array")
        for index, entry in enumerate(entries):
            rule = _build_rule(pattern, index, entry, rule_set.auto_detect)
            if rule is not None:
                rule_set.rules.append(rule)
    logger.debug(f"Loaded {len(rule_set.rules)} rule(s) for {len(rule_set.patterns)} pattern(s)")
    return rule_set


def find_rule_file(project_path) -> Optional[Path]:
    """The first rule file present in a project directory."""
    for name in RULE_FILE_NAMES:
        candidate = Path(project_path) / name
        if candidate.is_file():
            return candidate
    return None


def read_data_file(path) -> Any:
    """Reads a JSON, YAML or TOML file, chosen by extension."""
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        if path.suffix in (".yaml", ".yml"):
            return yaml.safe_load(f)
        if path.suffix == ".toml":
            return toml.load(f)
        return json.load(f)


def load_rules(project_path=None, config_path=None) -> RuleSet:
    """
    Loads the rule file of a project, or an explicit rule file.

    Raises:
        ConfigurationError: If no rule file exists or it is invalid.
    """
    path = Path(config_path) if config_path else find_rule_file(project_path or ".")
    if path is None or not path.is_file():
        raise ConfigurationError(
            f"No templatize configuration found in {project_path or '.'}; run 'templatize init' first"
        )
    try:
        data = read_data_file(path)
    except (json.JSONDecodeError, yaml.YAMLError, toml.TomlDecodeError) as e:
        raise ConfigurationError(f"Cannot read configuration: {e}", str(path))
    return parse_rules(data, path)


def default_rules() -> Dict[str, Any]:
    return copy.deepcopy(DEFAULT_RULES)


def generate_config_file(project_path, force: bool = False, placeholder_format: Optional[str] = None) -> Path:
    """
    Writes the default ``.templatize.json`` into a project.

    Raises:
        ConfigurationError: If a rule file exists and force is not set.
    """
    existing = find_rule_file(project_path)
    if existing is not None and not force:
        raise ConfigurationError(f"{existing.name} already exists (use --force to overwrite)")
    data = default_rules()
    if placeholder_format:
        data["placeholderFormat"] = normalize_format(placeholder_format).value
    path = Path(project_path) / RULE_FILE_NAMES[0]
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
        f.write("\n")
    logger.debug(f"Wrote {path}")
    return path
