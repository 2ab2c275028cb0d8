from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from prompt_analyzer.domain.errors import BatchParseError
from prompt_analyzer.domain.models import AnalysisSession, BatchRow, SessionKind, new_id
from prompt_analyzer.services.scheduler import Emit, IsCurrent, OnSession, SequentialScheduler

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROWS = 50


@dataclass
class BatchRunner:
    """
    Runs uploaded rows through the same sequential pipeline.
    Each row is matched against its own keywords; the session keyword snapshot stays empty.
    """
    scheduler: SequentialScheduler
    max_rows: int = DEFAULT_MAX_ROWS

    def validate(self, rows: Sequence[BatchRow]) -> None:
        if not rows:
            raise BatchParseError("No valid rows found in CSV file")
        if len(rows) > self.max_rows:
            raise BatchParseError(f"Maximum {self.max_rows} rows allowed per batch")
        for i, row in enumerate(rows, start=1):
            if not (row.prompt or "").strip() or not row.keywords:
                raise BatchParseError(f"Row {i} needs a prompt and at least one keyword")

    def run(
        self,
        rows: Sequence[BatchRow],
        emit: Emit,
        *,
        session_id: Optional[str] = None,
        is_current: Optional[IsCurrent] = None,
        on_session: Optional[OnSession] = None,
    ) -> AnalysisSession:
        rows = tuple(rows or ())
        self.validate(rows)

        start = self.scheduler.clock()
        session = AnalysisSession(
            id=session_id or new_id(),
            prompts=tuple(r.prompt for r in rows),
            keywords=(),
            start_time=start,
            kind=SessionKind.BATCH,
            name=f"Batch Analysis {start.strftime('%Y-%m-%d %H:%M:%S')}",
            rows=rows,
        )
        logger.info("Starting batch %s: %d rows", session.id, len(rows))
        return self.scheduler.drive(
            session, [r.keywords for r in rows], emit, is_current=is_current, on_session=on_session
        )
