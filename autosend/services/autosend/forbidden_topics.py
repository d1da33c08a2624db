"""
Forbidden Topic Scanner - configurable pattern matching over draft text.

Drafts that touch money, legal terms or returns must always be seen by a
human. The scanner holds an ordered list of named matchers; the order is
the order hits are reported in.

Usage:
    from autosend.services.autosend.forbidden_topics import default_scanner

    hits = default_scanner.scan("That will be $50, thanks")
    # hits == ["currency_amount"]
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass

from autosend.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class TopicMatcher:
    name: str
    pattern: re.Pattern

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


DEFAULT_MATCHERS: tuple[TopicMatcher, ...] = (
    TopicMatcher("pricing", re.compile(r"\b(price|pricing|cost|invoice|billing)\b", re.IGNORECASE)),
    TopicMatcher(
        "legal", re.compile(r"\b(contract|agreement|terms|legal|sue|lawsuit)\b", re.IGNORECASE)
    ),
    TopicMatcher("returns", re.compile(r"\b(refund|return|exchange|credit)\b", re.IGNORECASE)),
    TopicMatcher("currency_amount", re.compile(r"\$\d+")),
)


class ForbiddenTopicScanner:
    """Ordered set of topic matchers folded into a single gate."""

    def __init__(self, matchers: Iterable[TopicMatcher] = DEFAULT_MATCHERS):
        self.matchers = tuple(matchers)

    @classmethod
    def from_patterns(cls, patterns: Iterable[str]) -> "ForbiddenTopicScanner":
        """
        Build a scanner from raw regex strings (e.g. from settings).

        Patterns are compiled case-insensitively and named after their
        position. An invalid pattern raises re.error at startup rather than
        silently weakening the gate.
        """
        matchers = [
            TopicMatcher(f"pattern_{index}", re.compile(pattern, re.IGNORECASE))
            for index, pattern in enumerate(patterns, start=1)
        ]
        if not matchers:
            logger.warning("Forbidden topic scanner configured with no patterns")
        return cls(matchers)

    def scan(self, text: str | None) -> list[str]:
        """Return the names of all matchers that hit, in configured order."""
        if not text:
            return []
        return [matcher.name for matcher in self.matchers if matcher.matches(text)]


def build_scanner(patterns: list[str] | None = None) -> ForbiddenTopicScanner:
    if patterns is None:
        return ForbiddenTopicScanner()
    return ForbiddenTopicScanner.from_patterns(patterns)


default_scanner = ForbiddenTopicScanner()
