"""
Error taxonomy for the templatize engine.

Every fatal condition derives from TemplatizeError so the runner can isolate
per-file failures. NoMatchWarning is the only non-fatal condition: it is
collected into conversion results instead of being raised.
"""

from typing import Iterable, Optional


class TemplatizeError(Exception):
    """Base class for all engine failures."""

    def __init__(self, message: str, file_path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.file_path = file_path

    def __str__(self):
        if self.file_path:
            return f"{self.file_path}: {self.message}"
        return self.message


class ConfigurationError(TemplatizeError):
    """Invalid rule file, placeholder name or placeholder format."""


class UnsupportedFormatError(TemplatizeError):
    """No strategy is registered for the file's format."""

    def __init__(self, format_id: str, file_path: Optional[str] = None):
        super().__init__(f"No templatize strategy for format '{format_id}'", file_path)
        self.format_id = format_id


class ParseError(TemplatizeError):
    """Content cannot be parsed into the structure a strategy requires."""

    def __init__(self, message: str, file_path: Optional[str] = None,
                 line: Optional[int] = None, column: Optional[int] = None):
        if line is not None:
            message = f"{message} (line {line}, column {column})"
        super().__init__(message, file_path)
        self.line = line
        self.column = column


class InvalidSelectorError(TemplatizeError):
    """Selector syntax is malformed."""

    def __init__(self, selector: str, reason: str, file_path: Optional[str] = None):
        super().__init__(f"Invalid selector '{selector}': {reason}", file_path)
        self.selector = selector


class AmbiguousMatchError(TemplatizeError):
    """A selector matched several locations while allowMultiple is off."""

    def __init__(self, selector: str, count: int, file_path: Optional[str] = None):
        super().__init__(
            f"Selector '{selector}' matched {count} locations but allowMultiple is false",
            file_path,
        )
        self.selector = selector
        self.count = count


class InvalidSkipDirectiveError(TemplatizeError):
    """Skip markers are unterminated, unmatched, nested or straddle matched nodes."""


class PlaceholderMismatchError(TemplatizeError):
    """Restoration found tokens with no entry in the value map."""

    def __init__(self, missing: Iterable[str], file_path: Optional[str] = None):
        self.missing = sorted(set(missing))
        super().__init__(
            f"No value supplied for placeholder(s): {', '.join(self.missing)}",
            file_path,
        )


class ConflictingChangeError(TemplatizeError):
    """Two selectors address overlapping spans."""

    def __init__(self, first_path: str, second_path: str, file_path: Optional[str] = None):
        super().__init__(
            f"Selectors '{first_path}' and '{second_path}' address overlapping content",
            file_path,
        )
        self.first_path = first_path
        self.second_path = second_path


class NoMatchWarning(UserWarning):
    """A selector produced no change. Recorded, never fatal in non-strict mode."""

    def __init__(self, selector: str, reason: str = "no matching content",
                 file_path: Optional[str] = None):
        super().__init__(f"Selector '{selector}': {reason}")
        self.selector = selector
        self.reason = reason
        self.file_path = file_path

    def __str__(self):
        text = f"Selector '{self.selector}': {self.reason}"
        if self.file_path:
            return f"{self.file_path}: {text}"
        return text
