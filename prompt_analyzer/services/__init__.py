from .analytics import progress, summarize, top_keywords
from .batch_parser import BATCH_TEMPLATE_CSV, parse_batch_csv
from .batch_runner import BatchRunner
from .keyword_matcher import KeywordMatcher, LiteralKeywordMatcher, PatternKeywordMatcher, matcher_for_mode
from .scheduler import SequentialScheduler
from .workspace import AnalysisWorkspace

__all__ = [
    "AnalysisWorkspace",
    "BatchRunner",
    "SequentialScheduler",
    "KeywordMatcher",
    "LiteralKeywordMatcher",
    "PatternKeywordMatcher",
    "matcher_for_mode",
    "parse_batch_csv",
    "BATCH_TEMPLATE_CSV",
    "summarize",
    "top_keywords",
    "progress",
]
