"""
Skip-directive filter.

Skip markers are found in raw content, before any strategy parses it, and
turned into SkipSpans. Strategies discard candidates that touch a span.
"""

import re
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .changes import SkipSpan
from .errors import InvalidSkipDirectiveError
from ..utils import offset_to_line_col

# family -> (start marker, end marker)
SKIP_MARKERS: Dict[str, Tuple[str, str]] = {
    "markup": ("<!-- @template-skip -->", "<!-- @template-skip-end -->"),
    "code": ("// @template-skip", "// @template-skip-end"),
    "hash": ("# @template-skip", "# @template-skip-end"),
}


def _marker_pattern(family: str) -> "re.Pattern":
    start, end = SKIP_MARKERS[family]
    # The start marker of the line-comment families is a prefix of the end marker.
    return re.compile(
        rf"(?P<end>{re.escape(end)})(?![\w-])|(?P<start>{re.escape(start)})(?![\w-])"
    )


def find_skip_spans(content: str, family: str, file_path: Optional[str] = None) -> List[SkipSpan]:
    """Compute the excluded spans of content.

    Args:
        content: Raw file content.
        family: Marker family ('markup', 'code' or 'hash').
        file_path: Used in error messages only.

    Returns:
        Spans from the start of each start marker to the end of its end
        marker, in document order.

    Raises:
        InvalidSkipDirectiveError: On nested, unmatched or unterminated markers.
    """
    if family not in SKIP_MARKERS:
        raise ValueError(f"Unknown skip marker family: {family}")

    spans = []
    open_at = None
    for match in _marker_pattern(family).finditer(content):
        line, column = offset_to_line_col(content, match.start())
        if match.group("start") is not None:
            if open_at is not None:
                raise InvalidSkipDirectiveError(
                    f"Nested skip directive at line {line}, column {column}", file_path
                )
            open_at = match.start()
        else:
            if open_at is None:
                raise InvalidSkipDirectiveError(
                    f"Skip end marker without a start marker at line {line}, column {column}",
                    file_path,
                )
            spans.append(SkipSpan(open_at, match.end()))
            open_at = None

    if open_at is not None:
        line, column = offset_to_line_col(content, open_at)
        raise InvalidSkipDirectiveError(
            f"Unterminated skip directive starting at line {line}, column {column}", file_path
        )
    return spans


def is_skipped(spans: Iterable[SkipSpan], start: int, end: int) -> bool:
    """True if the range [start, end) lies fully or partially inside any span."""
    return any(span.intersects(start, end) for span in spans)


def check_straddle(spans: Sequence[SkipSpan], scopes: Sequence[Tuple[int, int]],
                   file_path: Optional[str] = None) -> None:
    """Reject a skip span that starts inside one matched node and ends inside another.

    Args:
        spans: Skip spans of the file.
        scopes: (start, end) ranges of the nodes a selector matched.
    """
    for span in spans:
        opens_in = [s for s in scopes if s[0] < span.start < s[1] < span.end]
        closes_in = [s for s in scopes if span.start < s[0] < span.end < s[1]]
        if opens_in and closes_in:
            raise InvalidSkipDirectiveError(
                f"Skip directive spanning offsets {span.start}-{span.end} starts inside one "
                f"matched element and ends inside another",
                file_path,
            )
