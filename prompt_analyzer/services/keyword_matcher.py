import re
from dataclasses import dataclass
from typing import Iterable, List, Tuple

from prompt_analyzer.domain.models import KeywordMatch


class KeywordMatcher:
    """Strategy interface."""
    def match(self, text: str, keywords: Iterable[str]) -> Tuple[KeywordMatch, ...]:
        raise NotImplementedError


def _scan(text: str, keywords: Iterable[str], compile_keyword) -> Tuple[KeywordMatch, ...]:
    out: List[KeywordMatch] = []
    for keyword in keywords:
        if not (keyword or "").strip():
            continue
        pattern = compile_keyword(keyword)
        # finditer resumes after the end of each match, so occurrences never overlap
        positions = tuple(m.start() for m in pattern.finditer(text or "") if m.end() > m.start())
        if positions:
            out.append(KeywordMatch(keyword=keyword, count=len(positions), positions=positions))
    return tuple(out)


@dataclass(frozen=True)
class LiteralKeywordMatcher(KeywordMatcher):
    """
    Case-insensitive literal substring search.
    Keyword text is escaped, so "a.b" only matches the three characters a, '.', b.
    """

    def match(self, text: str, keywords: Iterable[str]) -> Tuple[KeywordMatch, ...]:
        return _scan(text, keywords, lambda k: re.compile(re.escape(k), flags=re.IGNORECASE))


@dataclass(frozen=True)
class PatternKeywordMatcher(KeywordMatcher):
    """
    Case-insensitive search that treats each keyword as a regular expression.
    An invalid expression raises re.error.
    """

    def match(self, text: str, keywords: Iterable[str]) -> Tuple[KeywordMatch, ...]:
        return _scan(text, keywords, lambda k: re.compile(k, flags=re.IGNORECASE))


MATCHERS = {
    "literal": LiteralKeywordMatcher,
    "pattern": PatternKeywordMatcher,
}


def matcher_for_mode(mode: str) -> KeywordMatcher:
    key = (mode or "").strip().lower() or "literal"
    if key not in MATCHERS:
        raise ValueError(f"Unknown matching mode: {mode!r} (expected one of {sorted(MATCHERS)})")
    return MATCHERS[key]()
