"""
Strategy contract shared by every format.

A strategy parses content, matches selectors to candidates, extracts each
candidate's value and proposes the text that substitutes it. The convert
pipeline around those steps (skip filtering, ambiguity and conflict
checks) lives here so every format follows the same rules.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union

from ..changes import Change, ConversionResult, TemplatizeConfig, check_conflicts
from ..errors import AmbiguousMatchError, ConflictingChangeError, NoMatchWarning
from ..placeholders import DEFAULT_FORMAT, PlaceholderFormat, format_token, has_any_placeholder, parse_token
from ..skip import check_straddle, find_skip_spans, is_skipped
from ...utils import offset_to_line_col

logger = logging.getLogger(__name__)


@dataclass
class Candidate:
    """A location a selector resolved to.

    ``start``/``end`` is the raw span a change would replace. Candidates
    with ``replaceable=False`` are reported as NoMatchWarnings with
    ``reason``. ``scope`` is the range of the matched node, used to detect
    skip directives that straddle matched elements.
    """
    path: str
    start: int
    end: int
    value: str = ""
    context: Optional[str] = None
    replaceable: bool = True
    reason: Optional[str] = None
    scope: Optional[Tuple[int, int]] = None


@dataclass
class TokenSite:
    """A region whose tokens need host-specific encoding on restoration.

    ``encode`` renders a value placed inside the region. When the region
    holds nothing but the token, ``literal`` (the enclosing literal span,
    quotes included) is replaced by ``encode_literal(value)`` instead, which
    lets non-string values keep their type. Otherwise, if ``rewrite`` is
    set, the region's text is passed through it once all of its tokens are
    substituted.
    """
    start: int
    end: int
    encode: Callable[[Any], str]
    literal: Optional[Tuple[int, int]] = None
    encode_literal: Optional[Callable[[Any], str]] = None
    rewrite: Optional[Callable[[str], str]] = None


class Strategy(ABC):
    """Format-specific matcher and substituter."""

    format_id = ""
    skip_family = "code"
    default_format = DEFAULT_FORMAT

    @abstractmethod
    def parse(self, content: str, file_path: Optional[str] = None) -> Any:
        """Parse content into the structure match() works on.

        Raises:
            ParseError: If content cannot be parsed.
        """

    @abstractmethod
    def match(self, document: Any, selector: str, config: TemplatizeConfig,
              file_path: Optional[str] = None) -> List[Candidate]:
        """Resolve a selector to candidates in document order.

        Raises:
            InvalidSelectorError: If the selector is malformed.
        """

    def extract(self, candidate: Candidate) -> str:
        return candidate.value

    def substitute(self, candidate: Candidate, token: str) -> str:
        """Text that replaces the candidate's span; must be legal in the host."""
        return token

    def restoration_sites(self, content: str, file_path: Optional[str] = None) -> List[TokenSite]:
        """Regions needing escaping during restoration. Tokens elsewhere are replaced verbatim."""
        return []

    def skip_family_for(self, file_path: Optional[str]) -> str:
        return self.skip_family

    def convert(self, content: str,
                configs: Union[TemplatizeConfig, Sequence[TemplatizeConfig]],
                file_path: Optional[str] = None,
                placeholder_format: Union[str, PlaceholderFormat, None] = None,
                strict: bool = False) -> ConversionResult:
        """Produce the changes that templatize content.

        Args:
            content: Raw file content.
            configs: One or more TemplatizeConfig for this file.
            file_path: Used for parser selection and error messages.
            placeholder_format: Run-level token format; a config's own
                format wins over it.
            strict: Raise the first NoMatchWarning instead of collecting it.

        Returns:
            ConversionResult with changes in selector declaration order,
            then position order.
        """
        if isinstance(configs, TemplatizeConfig):
            configs = [configs]

        skip_spans = find_skip_spans(content, self.skip_family_for(file_path), file_path)
        logger.debug(f"{file_path or self.format_id}: {len(skip_spans)} skip span(s)")
        document = self.parse(content, file_path)

        run_format = placeholder_format if placeholder_format is not None else self.default_format
        result = ConversionResult(self.format_id, skip_spans=skip_spans)

        for config in configs:
            token_format = config.token_format(run_format)
            result.placeholder_format = result.placeholder_format or token_format
            token = format_token(config.placeholder, token_format)
            for selector in config.selectors:
                changes, warnings = self._convert_selector(
                    content, document, selector, config, token, skip_spans, file_path
                )
                result.changes.extend(changes)
                result.warnings.extend(warnings)

        try:
            check_conflicts(result.changes)
        except ConflictingChangeError as e:
            e.file_path = file_path
            raise

        for warning in result.warnings:
            logger.warning(str(warning))
        if strict and result.warnings:
            raise result.warnings[0]
        return result

    def _convert_selector(self, content, document, selector, config, token, skip_spans, file_path):
        candidates = self.match(document, selector, config, file_path)
        logger.debug(f"{selector}: {len(candidates)} candidate(s)")
        check_straddle(skip_spans, [c.scope for c in candidates if c.scope], file_path)

        kept: List[Candidate] = []
        warnings: List[NoMatchWarning] = []
        skipped = 0
        for candidate in candidates:
            if is_skipped(skip_spans, candidate.start, candidate.end):
                skipped += 1
                continue
            if not candidate.replaceable:
                warnings.append(NoMatchWarning(candidate.path, candidate.reason or "not replaceable", file_path))
                continue
            value = self.extract(candidate)
            if not value or not value.strip():
                continue
            if has_any_placeholder(value):
                existing = parse_token(value)
                if existing is None or existing.name != config.placeholder:
                    warnings.append(NoMatchWarning(
                        candidate.path, "value already contains another placeholder", file_path
                    ))
                    continue
            kept.append(candidate)

        if len(kept) > 1 and not config.allow_multiple:
            raise AmbiguousMatchError(selector, len(kept), file_path)

        if not kept and not warnings:
            reason = "all matches are inside skip directives" if skipped else "no matching content"
            warnings.append(NoMatchWarning(selector, reason, file_path))

        changes = []
        for candidate in sorted(kept, key=lambda c: c.start):
            line, column = offset_to_line_col(content, candidate.start)
            changes.append(Change(
                path=candidate.path,
                original=self.extract(candidate),
                replacement=self.substitute(candidate, token),
                start=candidate.start,
                end=candidate.end,
                line=line,
                column=column,
                placeholder=config.placeholder,
            ))
        return changes, warnings
