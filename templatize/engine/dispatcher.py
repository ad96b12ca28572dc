"""
Strategy dispatcher.

Maps a format identifier (or a file name) to its Strategy through a lookup
table. Strategies hold no per-file state, so one instance per format is
shared by every caller.
"""

import logging
from dataclasses import dataclass
from pathlib import PurePath
from typing import Dict, List, Optional, Sequence, Union

from .changes import ConversionResult, TemplatizeConfig
from .errors import UnsupportedFormatError
from .strategies import (HtmlStrategy, JsonStrategy, JsxStrategy, MarkdownStrategy, Strategy,
                         YamlStrategy)

logger = logging.getLogger(__name__)

STRATEGIES: Dict[str, Strategy] = {
    strategy.format_id: strategy
    for strategy in (JsonStrategy(), YamlStrategy(), MarkdownStrategy(), HtmlStrategy(), JsxStrategy())
}

FORMAT_ALIASES = {
    "application/json": "json",
    "jsonc": "json",
    "application/yaml": "yaml",
    "text/yaml": "yaml",
    "yml": "yaml",
    "text/markdown": "markdown",
    "md": "markdown",
    "text/html": "html",
    "htm": "html",
    "text/jsx": "jsx",
    "tsx": "jsx",
}

EXTENSIONS = {
    ".json": "json",
    ".jsonc": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".md": "markdown",
    ".markdown": "markdown",
    ".html": "html",
    ".htm": "html",
    ".jsx": "jsx",
    ".js": "jsx",
    ".tsx": "jsx",
}


def normalize_format_id(format_id: str) -> str:
    """Canonical format id for a format name, MIME-like context or alias.

    A ``#suffix`` (``text/html#attribute``) is ignored.
    """
    key = str(format_id).split("#", 1)[0].strip().lower()
    return FORMAT_ALIASES.get(key, key)


def detect_format(file_path: Union[str, PurePath]) -> Optional[str]:
    """Format id for a file name, or None if no strategy handles its extension."""
    return EXTENSIONS.get(PurePath(str(file_path)).suffix.lower())


def register_strategy(strategy: Strategy, extensions: Sequence[str] = ()) -> None:
    """Adds (or replaces) the strategy for its format id."""
    STRATEGIES[strategy.format_id] = strategy
    for extension in extensions:
        EXTENSIONS[extension.lower()] = strategy.format_id


def supported_formats() -> List[str]:
    return sorted(STRATEGIES)


def get_strategy(format_id: str, file_path: Optional[str] = None) -> Strategy:
    """
    Looks up the strategy for a format.

    Raises:
        UnsupportedFormatError: If no strategy is registered for the format.
    """
    canonical = normalize_format_id(format_id) if format_id else ""
    strategy = STRATEGIES.get(canonical)
    if strategy is None:
        raise UnsupportedFormatError(str(format_id), file_path)
    return strategy


@dataclass(frozen=True)
class BoundStrategy:
    """A strategy paired with the configs it should apply."""
    strategy: Strategy
    configs: List[TemplatizeConfig]

    @property
    def format_id(self) -> str:
        return self.strategy.format_id

    def convert(self, content: str, file_path: Optional[str] = None,
                placeholder_format=None, strict: bool = False) -> ConversionResult:
        return self.strategy.convert(content, self.configs, file_path, placeholder_format, strict)


def dispatch(format_id: str,
             config: Union[TemplatizeConfig, Sequence[TemplatizeConfig]],
             file_path: Optional[str] = None) -> BoundStrategy:
    """Binds the strategy for a format to one or more TemplatizeConfigs."""
    configs = [config] if isinstance(config, TemplatizeConfig) else list(config)
    return BoundStrategy(get_strategy(format_id, file_path), configs)


def convert_content(content: str,
                    configs: Union[TemplatizeConfig, Sequence[TemplatizeConfig]],
                    format_id: Optional[str] = None,
                    file_path: Optional[str] = None,
                    placeholder_format=None,
                    strict: bool = False) -> ConversionResult:
    """
    Converts already-loaded content.

    Args:
        content: Raw file content.
        configs: TemplatizeConfig or list of them.
        format_id: Format to use; detected from file_path when omitted.
        file_path: Used for detection, grammar selection and messages.
        placeholder_format: Token format for the run (default mustache).
        strict: Raise the first NoMatchWarning instead of collecting it.

    Raises:
        UnsupportedFormatError: If the format is unknown or cannot be detected.
    """
    if format_id is None:
        format_id = detect_format(file_path) if file_path else None
        if format_id is None:
            raise UnsupportedFormatError(PurePath(str(file_path)).suffix or "unknown", file_path)
    bound = dispatch(format_id, configs, file_path)
    logger.debug(f"Converting {file_path or '<content>'} as {bound.format_id}")
    return bound.convert(content, file_path, placeholder_format, strict)
