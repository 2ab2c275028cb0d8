from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional, Sequence, Tuple

from prompt_analyzer.domain.errors import PreconditionError, ProviderError
from prompt_analyzer.domain.models import (
    AnalysisSession,
    PromptItem,
    PromptStatus,
    SessionKind,
    SessionStatus,
    new_id,
    utcnow,
)
from prompt_analyzer.ports.text_provider import GenerationOptions, TextProvider
from prompt_analyzer.services.keyword_matcher import KeywordMatcher

logger = logging.getLogger(__name__)

Emit = Callable[[PromptItem], None]
IsCurrent = Callable[[], bool]
OnSession = Callable[[AnalysisSession], None]


def _describe(exc: BaseException) -> str:
    return str(exc).strip() or exc.__class__.__name__


def _always_current() -> bool:
    return True


@dataclass
class SequentialScheduler:
    """
    Service layer: drives one AnalysisSession through the provider, one prompt at a time.

    - never more than one provider call in flight
    - a failing prompt is recorded on its item and the run moves on
    - a fixed pause separates consecutive calls (courtesy to the provider, not a retry)
    - is_current() lets the owner abandon a session; late results are then dropped
    """
    provider: TextProvider
    matcher: KeywordMatcher
    options: GenerationOptions = field(default_factory=GenerationOptions)
    inter_call_delay_seconds: float = 1.0
    sleep: Callable[[float], None] = time.sleep
    clock: Callable[[], datetime] = utcnow

    def run(
        self,
        prompts: Sequence[str],
        keywords: Sequence[str],
        emit: Emit,
        *,
        session_id: Optional[str] = None,
        is_current: Optional[IsCurrent] = None,
        on_session: Optional[OnSession] = None,
    ) -> AnalysisSession:
        """
        Preconditions: prompts and keywords non-empty. The prompt cap (10) belongs
        to the input collaborator and is not checked again here.
        """
        prompts = tuple(prompts or ())
        keywords = tuple(keywords or ())
        if not prompts:
            raise PreconditionError("At least one prompt is required.")
        if not keywords:
            raise PreconditionError("At least one keyword is required.")

        session = AnalysisSession(
            id=session_id or new_id(),
            prompts=prompts,
            keywords=keywords,
            start_time=self.clock(),
            kind=SessionKind.MANUAL,
        )
        logger.info("Starting analysis %s: %d prompts, keywords=%s", session.id, len(prompts), list(keywords))
        return self.drive(
            session, [keywords] * len(prompts), emit, is_current=is_current, on_session=on_session
        )

    def drive(
        self,
        session: AnalysisSession,
        keyword_sets: Sequence[Tuple[str, ...]],
        emit: Emit,
        *,
        is_current: Optional[IsCurrent] = None,
        on_session: Optional[OnSession] = None,
    ) -> AnalysisSession:
        """Runs an already-created session. keyword_sets[i] is matched against response i."""
        is_current = is_current or _always_current

        now = self.clock()
        session.items = [PromptItem.pending(p, now=now) for p in session.prompts]
        session.status = SessionStatus.RUNNING

        try:
            for item in session.items:
                emit(item)
            self._notify(on_session, session)

            last = len(session.items) - 1
            for i in range(len(session.items)):
                if not is_current():
                    logger.info("Session %s abandoned before prompt %d; stopping.", session.id, i + 1)
                    return session

                if not self._process(session, i, keyword_sets[i], emit, is_current):
                    return session

                if i < last and self.inter_call_delay_seconds > 0:
                    self.sleep(self.inter_call_delay_seconds)

            session.end_time = self.clock()
            session.status = SessionStatus.COMPLETED
            logger.info(
                "Analysis %s completed: %d results, %d successful, %d errors, %dms",
                session.id,
                len(session.items),
                sum(1 for it in session.items if it.status is PromptStatus.COMPLETED),
                sum(1 for it in session.items if it.status is PromptStatus.ERROR),
                int((session.end_time - session.start_time).total_seconds() * 1000),
            )
            self._notify(on_session, session)
        except Exception as e:
            logger.exception("Analysis %s aborted", session.id)
            session.status = SessionStatus.ERROR
            session.error = _describe(e)
            session.end_time = self.clock()

        return session

    def _process(
        self,
        session: AnalysisSession,
        index: int,
        keywords: Tuple[str, ...],
        emit: Emit,
        is_current: IsCurrent,
    ) -> bool:
        total = len(session.items)
        item = session.items[index].start(now=self.clock())
        session.replace_item(index, item)
        emit(item)
        logger.info("Processing prompt %d/%d: %s...", index + 1, total, item.prompt[:50])

        failure: Optional[BaseException] = None
        text = ""
        try:
            text = self.provider.generate_text(item.prompt, self.options)
        except Exception as e:
            failure = e

        if not is_current():
            logger.info("Dropping late result for prompt %d of abandoned session %s", index + 1, session.id)
            return False

        done: Optional[PromptItem] = None
        if failure is None:
            try:
                if not text:
                    raise ProviderError("Provider returned an empty response.")
                matches = self.matcher.match(text, keywords)
                done = item.complete(text, matches, now=self.clock())
            except Exception as e:
                failure = e

        if failure is not None:
            logger.warning("Prompt %d/%d failed: %s", index + 1, total, _describe(failure))
            done = item.fail(_describe(failure), now=self.clock())
        else:
            logger.info(
                "Prompt %d/%d completed. Response length: %d, keyword matches: %d",
                index + 1,
                total,
                len(done.response),
                done.total_matches,
            )

        session.replace_item(index, done)
        emit(done)
        return True

    @staticmethod
    def _notify(on_session: Optional[OnSession], session: AnalysisSession) -> None:
        if on_session:
            on_session(session)
