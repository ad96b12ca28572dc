"""
Placeholder token formats.

A token names exactly one placeholder and is written with one of four
delimiter styles. The mustache style is the default.
"""

import re
from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Tuple, Union

from .errors import ConfigurationError


class PlaceholderFormat(Enum):
    """Supported token delimiter styles."""
    MUSTACHE = "mustache"
    UNICODE = "unicode"
    DOLLAR = "dollar"
    PERCENT = "percent"


DEFAULT_FORMAT = PlaceholderFormat.MUSTACHE

# format -> (opening, closing, description)
FORMAT_SPECS: Dict[PlaceholderFormat, Tuple[str, str, str]] = {
    PlaceholderFormat.MUSTACHE: ("{{", "}}", "Mustache delimiters, work in most hosts"),
    PlaceholderFormat.UNICODE: ("⦃", "⦄", "Unicode delimiters, never collide with JSX braces"),
    PlaceholderFormat.DOLLAR: ("$", "$", "Dollar delimiters, avoid template literal braces"),
    PlaceholderFormat.PERCENT: ("%", "%", "Percent delimiters, avoid CSS and brace syntax"),
}

NAME_PATTERN = re.compile(r"^[A-Z][A-Z0-9_]*$")
_NAME_BODY = r"[A-Z][A-Z0-9_]*"


class TokenMatch(NamedTuple):
    """A token occurrence inside some text."""
    name: str
    start: int
    end: int
    format: PlaceholderFormat


def normalize_format(fmt: Union[str, PlaceholderFormat, None]) -> PlaceholderFormat:
    """Resolve a format name, pattern or enum member.

    Args:
        fmt: 'mustache', 'unicode', 'dollar', 'percent', a pattern such as
            '{{NAME}}', an enum member, or None for the default.

    Returns:
        The matching PlaceholderFormat.

    Raises:
        ConfigurationError: If the format is not recognised.
    """
    if fmt is None or fmt == "":
        return DEFAULT_FORMAT
    if isinstance(fmt, PlaceholderFormat):
        return fmt
    lowered = str(fmt).strip().lower()
    for candidate in PlaceholderFormat:
        if candidate.value == lowered:
            return candidate
    if "NAME" in str(fmt):
        for candidate, (opening, closing, _) in FORMAT_SPECS.items():
            if str(fmt).strip() == f"{opening}NAME{closing}":
                return candidate
    choices = ", ".join(f.value for f in PlaceholderFormat)
    raise ConfigurationError(f"Invalid placeholder format '{fmt}'. Must be one of: {choices}")


def validate_name(name: str) -> str:
    """Check that a placeholder name is well formed."""
    if not isinstance(name, str) or not NAME_PATTERN.match(name):
        raise ConfigurationError(
            f"Invalid placeholder name '{name}': use uppercase letters, digits and "
            f"underscores, starting with a letter"
        )
    return name


def format_token(name: str, fmt: Union[str, PlaceholderFormat, None] = None) -> str:
    """Render the token for a placeholder name, e.g. PROJECT_NAME -> {{PROJECT_NAME}}."""
    validate_name(name)
    opening, closing, _ = FORMAT_SPECS[normalize_format(fmt)]
    return f"{opening}{name}{closing}"


def token_pattern(fmt: Union[str, PlaceholderFormat, None] = None,
                  name: Optional[str] = None) -> "re.Pattern":
    """Compile a regex matching tokens of one format.

    Whitespace inside the delimiters is tolerated. The placeholder name is
    captured in group 'name'.
    """
    opening, closing, _ = FORMAT_SPECS[normalize_format(fmt)]
    body = re.escape(name) if name else _NAME_BODY
    return re.compile(rf"{re.escape(opening)}[ \t]*(?P<name>{body})[ \t]*{re.escape(closing)}")


def find_tokens(text: str, fmt: Union[str, PlaceholderFormat, None] = None) -> List[TokenMatch]:
    """Locate every token of the given format in text, in document order."""
    if not isinstance(text, str):
        return []
    resolved = normalize_format(fmt)
    return [
        TokenMatch(m.group("name"), m.start(), m.end(), resolved)
        for m in token_pattern(resolved).finditer(text)
    ]


def extract_placeholders(text: str, fmt: Union[str, PlaceholderFormat, None] = None) -> List[str]:
    """Return the sorted unique placeholder names used in text."""
    return sorted({match.name for match in find_tokens(text, fmt)})


def has_any_placeholder(text: str) -> bool:
    """True if text contains a token in any supported format."""
    if not isinstance(text, str):
        return False
    return any(token_pattern(fmt).search(text) for fmt in PlaceholderFormat)


def parse_token(text: str) -> Optional[TokenMatch]:
    """If text is exactly one token (surrounding whitespace ignored), describe it."""
    if not isinstance(text, str):
        return None
    stripped = text.strip()
    for fmt in PlaceholderFormat:
        match = token_pattern(fmt).fullmatch(stripped)
        if match:
            return TokenMatch(match.group("name"), 0, len(stripped), fmt)
    return None


def get_format_descriptions() -> List[Dict[str, str]]:
    """Human readable summary of every format, used by CLI help."""
    return [
        {"name": fmt.value, "example": f"{opening}NAME{closing}", "description": description}
        for fmt, (opening, closing, description) in FORMAT_SPECS.items()
    ]
