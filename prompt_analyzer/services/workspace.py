from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable, Dict, List, Optional, Union

from prompt_analyzer.domain.errors import BatchParseError, InputRejectedError, PreconditionError
from prompt_analyzer.domain.models import (
    AnalysisSession,
    AnalyticsData,
    BatchRow,
    PromptItem,
    SessionKind,
    new_id,
    utcnow,
)
from prompt_analyzer.repositories.export_repository import build_export
from prompt_analyzer.services.analytics import summarize
from prompt_analyzer.services.batch_parser import parse_batch_csv
from prompt_analyzer.services.batch_runner import BatchRunner
from prompt_analyzer.services.scheduler import SequentialScheduler

logger = logging.getLogger(__name__)

DEFAULT_MAX_PROMPTS = 10


class AnalysisWorkspace:
    """
    In-memory state behind the UI for one running app.

    Owns the draft prompt/keyword lists, the parsed batch rows, and the current
    manual and batch sessions. Each kind has its own current-session id: a worker
    whose id is no longer current stops, and nothing it reports is applied.
    """

    def __init__(
        self,
        scheduler: SequentialScheduler,
        batch_runner: BatchRunner,
        *,
        max_prompts: int = DEFAULT_MAX_PROMPTS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.scheduler = scheduler
        self.batch_runner = batch_runner
        self.max_prompts = max_prompts
        self.clock = clock

        self._lock = threading.RLock()
        self._prompts: List[str] = []
        self._keywords: List[str] = []
        self._batch_rows: List[BatchRow] = []
        self._batch_error: Optional[str] = None

        self._sessions: Dict[SessionKind, Optional[AnalysisSession]] = {k: None for k in SessionKind}
        self._current_ids: Dict[SessionKind, Optional[str]] = {k: None for k in SessionKind}
        self._running_ids: Dict[SessionKind, Optional[str]] = {k: None for k in SessionKind}
        self._revisions: Dict[SessionKind, int] = {k: 0 for k in SessionKind}

    # -----------------------------
    # Draft inputs
    # -----------------------------
    @property
    def prompts(self) -> List[str]:
        with self._lock:
            return list(self._prompts)

    @property
    def keywords(self) -> List[str]:
        with self._lock:
            return list(self._keywords)

    def add_prompt(self, text: str) -> List[str]:
        prompt = (text or "").strip()
        with self._lock:
            if not prompt:
                raise InputRejectedError("Prompt is empty.")
            if len(self._prompts) >= self.max_prompts:
                raise InputRejectedError(f"At most {self.max_prompts} prompts are allowed.")
            self._prompts.append(prompt)
            return list(self._prompts)

    def remove_prompt(self, index: int) -> List[str]:
        with self._lock:
            if not 0 <= index < len(self._prompts):
                raise InputRejectedError(f"No prompt at position {index}.")
            del self._prompts[index]
            return list(self._prompts)

    def add_keyword(self, text: str) -> List[str]:
        keyword = (text or "").strip().lower()
        with self._lock:
            if not keyword:
                raise InputRejectedError("Keyword is empty.")
            if keyword in self._keywords:
                raise InputRejectedError(f"Keyword '{keyword}' is already tracked.")
            self._keywords.append(keyword)
            return list(self._keywords)

    def remove_keyword(self, keyword: str) -> List[str]:
        target = (keyword or "").strip().lower()
        with self._lock:
            self._keywords = [k for k in self._keywords if k != target]
            return list(self._keywords)

    # -----------------------------
    # Batch inputs
    # -----------------------------
    @property
    def batch_rows(self) -> List[BatchRow]:
        with self._lock:
            return list(self._batch_rows)

    @property
    def batch_error(self) -> Optional[str]:
        with self._lock:
            return self._batch_error

    def load_batch(self, data: Union[str, bytes]) -> List[BatchRow]:
        with self._lock:
            if self.is_running(SessionKind.BATCH):
                raise PreconditionError("A batch is already running.")
            try:
                rows = parse_batch_csv(data, max_rows=self.batch_runner.max_rows)
            except BatchParseError as e:
                self._batch_rows = []
                self._batch_error = str(e)
                raise
            self._batch_rows = rows
            self._batch_error = None
            logger.info("Batch loaded: %d rows", len(rows))
            return list(rows)

    # -----------------------------
    # Runs
    # -----------------------------
    def start_analysis(self, *, background: bool = True) -> str:
        with self._lock:
            if self.is_running(SessionKind.MANUAL):
                raise PreconditionError("An analysis is already running.")
            if not self._prompts or not self._keywords:
                raise PreconditionError("Add at least one prompt and one keyword before starting.")
            prompts, keywords = list(self._prompts), list(self._keywords)
            session_id = self._begin(SessionKind.MANUAL)

        def job() -> AnalysisSession:
            return self.scheduler.run(
                prompts,
                keywords,
                self._emitter(SessionKind.MANUAL, session_id),
                session_id=session_id,
                is_current=self._guard(SessionKind.MANUAL, session_id),
                on_session=self._session_listener(SessionKind.MANUAL, session_id),
            )

        self._launch(SessionKind.MANUAL, session_id, job, background)
        return session_id

    def start_batch(self, *, background: bool = True) -> str:
        with self._lock:
            if self.is_running(SessionKind.BATCH):
                raise PreconditionError("A batch is already running.")
            rows = list(self._batch_rows)
            self.batch_runner.validate(rows)
            session_id = self._begin(SessionKind.BATCH)

        def job() -> AnalysisSession:
            return self.batch_runner.run(
                rows,
                self._emitter(SessionKind.BATCH, session_id),
                session_id=session_id,
                is_current=self._guard(SessionKind.BATCH, session_id),
                on_session=self._session_listener(SessionKind.BATCH, session_id),
            )

        self._launch(SessionKind.BATCH, session_id, job, background)
        return session_id

    def reset(self, kind: SessionKind = SessionKind.MANUAL) -> None:
        """Discards the session of this kind; a worker still in flight is neutralized, not killed."""
        with self._lock:
            abandoned = self._current_ids[kind]
            self._current_ids[kind] = None
            self._running_ids[kind] = None
            self._sessions[kind] = None
            self._revisions[kind] += 1
            if kind is SessionKind.BATCH:
                self._batch_rows = []
                self._batch_error = None
        if abandoned:
            logger.info("Reset %s session %s", kind.value, abandoned)

    def is_running(self, kind: SessionKind = SessionKind.MANUAL) -> bool:
        with self._lock:
            running = self._running_ids[kind]
            return running is not None and running == self._current_ids[kind]

    # -----------------------------
    # Read side
    # -----------------------------
    def session(self, kind: SessionKind = SessionKind.MANUAL) -> Optional[AnalysisSession]:
        with self._lock:
            return self._sessions[kind]

    def items(self, kind: SessionKind = SessionKind.MANUAL) -> List[PromptItem]:
        session = self.session(kind)
        return list(session.items) if session else []

    def revision(self, kind: SessionKind = SessionKind.MANUAL) -> int:
        with self._lock:
            return self._revisions[kind]

    def analytics(self, kind: SessionKind = SessionKind.MANUAL, now: Optional[datetime] = None) -> AnalyticsData:
        session = self.session(kind)
        items = list(session.items) if session else []
        return summarize(items, session, now=now or self.clock())

    def export_payload(self, kind: SessionKind = SessionKind.MANUAL) -> dict:
        session = self.session(kind)
        if session is None:
            raise PreconditionError("Nothing to export yet.")
        now = self.clock()
        items = list(session.items)
        return build_export(session, items, summarize(items, session, now=now), now)

    # -----------------------------
    # Internals
    # -----------------------------
    def _begin(self, kind: SessionKind) -> str:
        session_id = new_id()
        self._current_ids[kind] = session_id
        self._running_ids[kind] = session_id
        self._sessions[kind] = None
        self._revisions[kind] += 1
        return session_id

    def _is_current(self, kind: SessionKind, session_id: str) -> bool:
        with self._lock:
            return self._current_ids[kind] == session_id

    def _guard(self, kind: SessionKind, session_id: str) -> Callable[[], bool]:
        return lambda: self._is_current(kind, session_id)

    def _emitter(self, kind: SessionKind, session_id: str) -> Callable[[PromptItem], None]:
        def emit(item: PromptItem) -> None:
            with self._lock:
                if self._current_ids[kind] != session_id:
                    return
                self._revisions[kind] += 1
        return emit

    def _session_listener(self, kind: SessionKind, session_id: str) -> Callable[[AnalysisSession], None]:
        def on_session(session: AnalysisSession) -> None:
            with self._lock:
                if self._current_ids[kind] != session_id:
                    return
                self._sessions[kind] = session
                self._revisions[kind] += 1
        return on_session

    def _launch(
        self,
        kind: SessionKind,
        session_id: str,
        job: Callable[[], AnalysisSession],
        background: bool,
    ) -> None:
        def target() -> None:
            try:
                session = job()
            except Exception:
                logger.exception("%s run %s failed to start", kind.value, session_id)
                session = None
            with self._lock:
                if self._current_ids[kind] == session_id:
                    if session is not None:
                        self._sessions[kind] = session
                    self._running_ids[kind] = None
                    self._revisions[kind] += 1

        if background:
            threading.Thread(target=target, name=f"{kind.value}-{session_id[:8]}", daemon=True).start()
        else:
            target()
