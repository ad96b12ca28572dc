"""
The templatize engine: format strategies, the dispatcher, restoration and
the multi-file runner.
"""

from .changes import Change, ConversionResult, SkipSpan, TemplatizeConfig, apply_changes
from .dispatcher import convert_content, detect_format, dispatch, get_strategy, register_strategy
from .errors import (AmbiguousMatchError, ConfigurationError, ConflictingChangeError,
                     InvalidSelectorError, InvalidSkipDirectiveError, NoMatchWarning, ParseError,
                     PlaceholderMismatchError, TemplatizeError, UnsupportedFormatError)
from .placeholders import PlaceholderFormat, find_tokens, format_token
from .restore import restore_content
from .rules import RuleSet, load_rules, parse_rules
from .runner import (FileReport, FileStatus, ProjectConverter, ProjectRestorer, RunReport,
                     run_template_test, validate_project)

__all__ = [
    "Change",
    "ConversionResult",
    "SkipSpan",
    "TemplatizeConfig",
    "apply_changes",
    "convert_content",
    "detect_format",
    "dispatch",
    "get_strategy",
    "register_strategy",
    "AmbiguousMatchError",
    "ConfigurationError",
    "ConflictingChangeError",
    "InvalidSelectorError",
    "InvalidSkipDirectiveError",
    "NoMatchWarning",
    "ParseError",
    "PlaceholderMismatchError",
    "TemplatizeError",
    "UnsupportedFormatError",
    "PlaceholderFormat",
    "find_tokens",
    "format_token",
    "restore_content",
    "RuleSet",
    "load_rules",
    "parse_rules",
    "FileReport",
    "FileStatus",
    "ProjectConverter",
    "ProjectRestorer",
    "RunReport",
    "run_template_test",
    "validate_project",
]
