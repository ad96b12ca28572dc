"""
Format-agnostic data model for templatization.

A Change describes one replacement of source content with a placeholder
token. Strategies produce Changes; callers apply them.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .errors import ConfigurationError, ConflictingChangeError, NoMatchWarning
from .placeholders import PlaceholderFormat, normalize_format, validate_name


@dataclass(frozen=True)
class Change:
    """A single proposed replacement.

    ``start``/``end`` delimit the raw source span that ``replacement``
    substitutes. ``original`` is the decoded value found there, so it can
    differ from the raw slice when the source uses escapes or entities.
    """
    path: str
    original: str
    replacement: str
    start: int
    end: int
    line: Optional[int] = None
    column: Optional[int] = None
    placeholder: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SkipSpan:
    """A content range excluded from matching by skip markers."""
    start: int
    end: int

    def intersects(self, start: int, end: int) -> bool:
        return start < self.end and end > self.start


@dataclass
class TemplatizeConfig:
    """Per-file conversion request: which selectors map onto which placeholder."""
    selectors: List[str]
    placeholder: str
    allow_multiple: bool = False
    attribute: Optional[str] = None
    format: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.selectors, str):
            self.selectors = [self.selectors]
        self.selectors = list(self.selectors or [])
        if not self.selectors:
            raise ConfigurationError(f"Placeholder '{self.placeholder}' has no selectors")
        for selector in self.selectors:
            if not isinstance(selector, str) or not selector.strip():
                raise ConfigurationError(f"Placeholder '{self.placeholder}' has an empty selector")
        validate_name(self.placeholder)
        if self.format is not None:
            normalize_format(self.format)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TemplatizeConfig":
        """Build a config from rule-file style keys (camelCase or snake_case)."""
        if not isinstance(data, dict):
            raise ConfigurationError("Templatize config must be a mapping")
        selectors = data.get("selectors")
        if selectors is None:
            single = data.get("selector", data.get("path"))
            selectors = [single] if single is not None else []
        allow_multiple = data.get("allowMultiple", data.get("allow_multiple", False))
        if not isinstance(allow_multiple, bool):
            raise ConfigurationError("allowMultiple must be a boolean")
        return cls(
            selectors=selectors,
            placeholder=data.get("placeholder"),
            allow_multiple=allow_multiple,
            attribute=data.get("attribute"),
            format=data.get("format"),
        )

    def token_format(self, default: Optional[PlaceholderFormat] = None) -> PlaceholderFormat:
        if self.format is not None:
            return normalize_format(self.format)
        return normalize_format(default)


@dataclass
class ConversionResult:
    """Outcome of converting one file's content."""
    format_id: str
    changes: List[Change] = field(default_factory=list)
    warnings: List[NoMatchWarning] = field(default_factory=list)
    skip_spans: List[SkipSpan] = field(default_factory=list)
    placeholder_format: Optional[PlaceholderFormat] = None

    @property
    def placeholders(self) -> Dict[str, str]:
        """Placeholder name -> first original value seen, in document order."""
        found = {}
        for change in self.changes:
            found.setdefault(change.placeholder, change.original)
        return found

    def apply(self, content: str) -> str:
        return apply_changes(content, self.changes)


def check_conflicts(changes: Sequence[Change]) -> None:
    """Raise ConflictingChangeError if any two changes overlap."""
    ordered = sorted(changes, key=lambda c: (c.start, c.end))
    for previous, current in zip(ordered, ordered[1:]):
        if current.start < previous.end:
            raise ConflictingChangeError(previous.path, current.path)


def apply_changes(content: str, changes: Sequence[Change]) -> str:
    """Splice changes into content, back to front so offsets stay valid."""
    check_conflicts(changes)
    result = content
    for change in sorted(changes, key=lambda c: c.start, reverse=True):
        result = result[:change.start] + change.replacement + result[change.end:]
    return result
