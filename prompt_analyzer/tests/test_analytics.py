from __future__ import annotations

from datetime import timedelta

import pytest

from prompt_analyzer.domain.models import AnalysisSession, KeywordMatch, PromptItem
from prompt_analyzer.services.analytics import (
    format_duration,
    progress,
    round_half_up,
    summarize,
    top_keywords,
)

from conftest import T0


# -----------------------------
# Helpers
# -----------------------------
def _done(response, *matches):
    return PromptItem.pending("p", now=T0).start(now=T0).complete(response, matches, now=T0)


def _failed():
    return PromptItem.pending("p", now=T0).start(now=T0).fail("boom", now=T0)


def _items():
    return [
        _done("abc", KeywordMatch("ai", 2, (0, 1))),
        _done("abcdef", KeywordMatch("ai", 1, (0,)), KeywordMatch("ml", 1, (3,))),
        _failed(),
    ]


def test_summarize_counts_and_frequency():
    a = summarize(_items())

    assert a.total_prompts == 3
    assert a.total_responses == 2
    assert a.total_keyword_matches == 4
    assert a.keyword_frequency == {"ai": 3, "ml": 1}
    # (3 + 6) / 2 = 4.5 rounds half up
    assert a.average_response_length == 5
    assert a.processing_time_ms == 0


def test_summarize_empty():
    a = summarize([])
    assert a.total_prompts == 0
    assert a.average_response_length == 0
    assert a.keyword_frequency == {}


def test_average_ignores_errored_items():
    assert summarize([_done("abcd"), _failed()]).average_response_length == 4


def test_processing_time_uses_end_time_when_finished():
    session = AnalysisSession(id="s", prompts=("p",), keywords=("k",), start_time=T0)
    session.end_time = T0 + timedelta(milliseconds=2500)
    assert summarize([], session, now=T0 + timedelta(hours=1)).processing_time_ms == 2500


def test_processing_time_uses_now_while_open():
    session = AnalysisSession(id="s", prompts=("p",), keywords=("k",), start_time=T0)
    assert summarize([], session, now=T0 + timedelta(seconds=1)).processing_time_ms == 1000


def test_top_keywords_share():
    ranks = top_keywords(summarize(_items()))
    assert [(r.keyword, r.count, r.share) for r in ranks] == [("ai", 3, 75.0), ("ml", 1, 25.0)]


def test_top_keywords_limit():
    items = [_done("x", *[KeywordMatch(f"k{i}", i + 1, (0,)) for i in range(7)])]
    ranks = top_keywords(summarize(items), limit=5)
    assert [r.keyword for r in ranks] == ["k6", "k5", "k4", "k3", "k2"]


def test_progress_snapshot():
    items = _items() + [PromptItem.pending("q", now=T0)]
    snap = progress(items)
    assert (snap.total, snap.pending, snap.processing, snap.completed, snap.errors) == (4, 1, 0, 2, 1)
    assert snap.percent == 50.0


def test_progress_empty():
    assert progress([]).percent == 0.0


@pytest.mark.parametrize("value,expected", [(0.5, 1), (1.49, 1), (2.5, 3), (0, 0)])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


@pytest.mark.parametrize("ms,label", [(500, "500ms"), (1500, "1.5s"), (90000, "1.5m")])
def test_format_duration(ms, label):
    assert format_duration(ms) == label
