"""Domain-pattern rules that pick the fetcher or parser used for a URL."""
from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Any, Generic, List, Optional, Pattern, TypeVar

from sitecrawl.exceptions import RulePatternError

logger = logging.getLogger(__name__)

H = TypeVar("H")


class MatchType(str, Enum):
    EXACT = "exact"
    GLOB = "glob"
    REGEX = "regex"
    PREFIX = "prefix"
    SUFFIX = "suffix"


def glob_to_regex(pattern: str) -> str:
    """Translate a domain glob ("*.example.com", "api-?.example.com") to an anchored regex."""
    escaped = re.escape(pattern)
    escaped = escaped.replace(r"\*", ".*").replace(r"\?", ".")
    return "^" + escaped + "$"


class MatchRule:
    """Pattern + match type + priority. Higher priority rules are tried first."""

    def __init__(self, pattern: str, match_type: MatchType = MatchType.EXACT, priority: int = 0):
        self.pattern = pattern
        self.match_type = MatchType(match_type)
        self.priority = int(priority)
        self._compiled: Optional[Pattern[str]] = None

    def compile(self) -> None:
        if self.match_type == MatchType.REGEX:
            source = self.pattern
        elif self.match_type == MatchType.GLOB:
            source = glob_to_regex(self.pattern)
        else:
            return
        try:
            self._compiled = re.compile(source)
        except re.error as e:
            raise RulePatternError(self.pattern, e) from e

    def matches(self, domain: str) -> bool:
        if self.match_type == MatchType.EXACT:
            return self.pattern == domain
        if self.match_type == MatchType.PREFIX:
            return domain.startswith(self.pattern)
        if self.match_type == MatchType.SUFFIX:
            return domain.endswith(self.pattern)
        if self._compiled is None:
            # never compiled, so never matches
            return False
        return self._compiled.search(domain) is not None

    def __repr__(self):
        return f"<{type(self).__name__} {self.match_type.value}:{self.pattern!r} priority={self.priority}>"


class ParserRule(MatchRule):
    def __init__(self, pattern: str, parser: Any, *, match_type: MatchType = MatchType.EXACT, priority: int = 0):
        super().__init__(pattern, match_type, priority)
        self.parser = parser

    @property
    def handler(self) -> Any:
        return self.parser


class FetcherRule(MatchRule):
    def __init__(self, pattern: str, fetcher: Any, *, match_type: MatchType = MatchType.EXACT, priority: int = 0):
        super().__init__(pattern, match_type, priority)
        self.fetcher = fetcher

    @property
    def handler(self) -> Any:
        return self.fetcher


class RuleTable(Generic[H]):
    """Priority-sorted rules with a default handler.

    Rule counts are expected to be small, so the table is a plain list
    re-sorted after every insertion. Lookup is first match wins.
    Mutating the table while a crawl is running is not synchronized.
    """

    def __init__(self, default: Optional[H] = None):
        self.default = default
        self._rules: List[MatchRule] = []

    def add(self, *rules: MatchRule) -> None:
        """Compile and append rules, then re-sort by descending priority.

        Fails on the first invalid pattern. Rules appended before it in
        the same call stay in the table.
        """
        try:
            for rule in rules:
                rule.compile()
                self._rules.append(rule)
        finally:
            # stable sort keeps insertion order among equal priorities
            self._rules.sort(key=lambda r: r.priority, reverse=True)

    def resolve(self, domain: str) -> Optional[H]:
        for rule in self._rules:
            if rule.matches(domain):
                return rule.handler
        return self.default

    @property
    def rules(self) -> List[MatchRule]:
        return list(self._rules)

    def __len__(self) -> int:
        return len(self._rules)
