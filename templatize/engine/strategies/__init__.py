"""Format strategies: one matcher/substituter per file kind."""

from .base import Candidate, Strategy, TokenSite
from .component import JsxStrategy
from .markup import HtmlStrategy
from .prose import MarkdownStrategy
from .structured import JsonStrategy, YamlStrategy

__all__ = [
    "Candidate",
    "Strategy",
    "TokenSite",
    "JsonStrategy",
    "YamlStrategy",
    "MarkdownStrategy",
    "HtmlStrategy",
    "JsxStrategy",
]
