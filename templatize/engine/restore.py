"""
Restoration engine.

The inverse of conversion: every token in a template is replaced by its
value, encoded for the site the token sits in (JSON string, YAML scalar,
HTML text or attribute, JSX text or string literal). A token standing alone
in a literal may take the literal's place so numbers and booleans keep their
type.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from .dispatcher import detect_format, get_strategy
from .errors import PlaceholderMismatchError
from .placeholders import PlaceholderFormat, TokenMatch, find_tokens, normalize_format

logger = logging.getLogger(__name__)


def value_text(value: Any) -> str:
    """Plain-text rendering of a value."""
    if isinstance(value, str):
        return value
    return json.dumps(value)


def locate_tokens(content: str, placeholder_format=None) -> List[TokenMatch]:
    """
    Finds tokens in content.

    With no format given, every format is searched and overlapping matches
    are resolved in favour of the earliest one.
    """
    if placeholder_format is not None:
        return find_tokens(content, normalize_format(placeholder_format))
    found = sorted(
        (match for fmt in PlaceholderFormat for match in find_tokens(content, fmt)),
        key=lambda match: (match.start, -match.end),
    )
    tokens: List[TokenMatch] = []
    for match in found:
        if tokens and match.start < tokens[-1].end:
            continue
        tokens.append(match)
    return tokens


def restore_content(content: str, values: Dict[str, Any],
                    format_id: Optional[str] = None,
                    file_path: Optional[str] = None,
                    placeholder_format=None) -> str:
    """
    Substitutes values for the tokens in content.

    Args:
        content: Template content.
        values: ValueMap of placeholder name to value.
        format_id: Strategy whose escaping rules apply; detected from
            file_path, and plain text substitution when neither resolves.
        file_path: Used for detection and error messages.
        placeholder_format: Token format to look for; all formats if None.

    Returns:
        The restored content.

    Raises:
        PlaceholderMismatchError: If a token has no value. Nothing is
            substituted in that case.
        ParseError: If the template no longer parses in its format.
    """
    tokens = locate_tokens(content, placeholder_format)
    if not tokens:
        return content

    missing = {token.name for token in tokens if token.name not in values}
    if missing:
        raise PlaceholderMismatchError(missing, file_path)

    if format_id is None and file_path:
        format_id = detect_format(file_path)
    sites = []
    if format_id:
        sites = get_strategy(format_id, file_path).restoration_sites(content, file_path)

    edits: Dict[Tuple[int, int], str] = {}
    rewrites: Dict[Tuple[int, int], Tuple[Any, Dict[Tuple[int, int], str]]] = {}
    for token in tokens:
        value = values[token.name]
        site = _innermost_site(sites, token)
        if site is None:
            edits[(token.start, token.end)] = value_text(value)
            continue
        body = content[site.start:site.end].strip()
        if site.literal is not None and body == content[token.start:token.end]:
            edits[site.literal] = site.encode_literal(value)
        elif site.rewrite is not None:
            _, inner = rewrites.setdefault((site.start, site.end), (site, {}))
            inner[(token.start - site.start, token.end - site.start)] = site.encode(value)
        else:
            edits[(token.start, token.end)] = site.encode(value)

    for (start, end), (site, inner) in rewrites.items():
        edits[(start, end)] = site.rewrite(_apply_edits(content[start:end], inner))

    restored = _apply_edits(content, edits)
    logger.debug(f"Restored {len(tokens)} token(s) in {file_path or '<content>'}")
    return restored


def _apply_edits(text: str, edits: Dict[Tuple[int, int], str]) -> str:
    for (start, end), replacement in sorted(edits.items(), reverse=True):
        text = text[:start] + replacement + text[end:]
    return text


def _innermost_site(sites, token):
    best = None
    for site in sites:
        if site.start <= token.start and token.end <= site.end:
            if best is None or (site.end - site.start) < (best.end - best.start):
                best = site
    return best
