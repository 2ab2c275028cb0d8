from __future__ import annotations

import math
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from prompt_analyzer.domain.models import (
    AnalysisSession,
    AnalyticsData,
    KeywordRank,
    ProgressSnapshot,
    PromptItem,
    PromptStatus,
    utcnow,
)


def round_half_up(value: float) -> int:
    # inputs are non-negative, so this rounds .5 away from zero
    return int(math.floor(value + 0.5))


def summarize(
    items: Sequence[PromptItem],
    session: Optional[AnalysisSession] = None,
    now: Optional[datetime] = None,
) -> AnalyticsData:
    """
    Pure projection of items into summary statistics; recomputed on every call.

    average_response_length covers completed items only.
    processing time is end - start, or now - start while the session is still open.
    """
    completed = [it for it in items if it.status is PromptStatus.COMPLETED]

    frequency: Dict[str, int] = {}
    total_matches = 0
    for item in items:
        for m in item.matches:
            frequency[m.keyword] = frequency.get(m.keyword, 0) + m.count
            total_matches += m.count

    average = round_half_up(sum(len(it.response) for it in completed) / len(completed)) if completed else 0

    processing_ms = 0
    if session is not None:
        end = session.end_time or now or utcnow()
        processing_ms = max(0, int((end - session.start_time).total_seconds() * 1000))

    return AnalyticsData(
        total_prompts=len(items),
        total_responses=len(completed),
        total_keyword_matches=total_matches,
        average_response_length=average,
        keyword_frequency=frequency,
        processing_time_ms=processing_ms,
    )


def top_keywords(analytics: AnalyticsData, limit: int = 5) -> List[KeywordRank]:
    # sorted() is stable, so ties keep first-seen keyword order
    ranked = sorted(analytics.keyword_frequency.items(), key=lambda kv: kv[1], reverse=True)[:limit]
    total = analytics.total_keyword_matches
    return [
        KeywordRank(keyword=k, count=c, share=round(c / total * 100, 1) if total > 0 else 0.0)
        for k, c in ranked
    ]


def progress(items: Sequence[PromptItem]) -> ProgressSnapshot:
    counts = {status: 0 for status in PromptStatus}
    for item in items:
        counts[item.status] += 1
    total = len(items)
    return ProgressSnapshot(
        total=total,
        pending=counts[PromptStatus.PENDING],
        processing=counts[PromptStatus.PROCESSING],
        completed=counts[PromptStatus.COMPLETED],
        errors=counts[PromptStatus.ERROR],
        percent=round(counts[PromptStatus.COMPLETED] / total * 100, 1) if total else 0.0,
    )


def format_duration(ms: int) -> str:
    if ms < 1000:
        return f"{ms}ms"
    if ms < 60000:
        return f"{ms / 1000:.1f}s"
    return f"{ms / 60000:.1f}m"
