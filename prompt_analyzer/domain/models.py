######## models.py
########

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from prompt_analyzer.domain.errors import InvalidTransitionError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


def _iso(ts: Optional[datetime]) -> Optional[str]:
    return ts.isoformat() if ts else None


class PromptStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (PromptStatus.COMPLETED, PromptStatus.ERROR)


class SessionStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class SessionKind(str, Enum):
    MANUAL = "manual"
    BATCH = "batch"


@dataclass(frozen=True)
class KeywordMatch:
    keyword: str
    count: int
    positions: Tuple[int, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {"keyword": self.keyword, "count": self.count, "positions": list(self.positions)}


@dataclass(frozen=True)
class PromptItem:
    """
    One prompt tracked through pending -> processing -> completed | error.

    Instances are immutable; each transition returns a new item with the same id.
    A completed item carries a non-empty response (matches may be empty),
    an errored item carries only the error message.
    """
    id: str
    prompt: str
    created_at: datetime
    status: PromptStatus = PromptStatus.PENDING
    response: str = ""
    matches: Tuple[KeywordMatch, ...] = ()
    error: Optional[str] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def pending(cls, prompt: str, *, now: Optional[datetime] = None) -> "PromptItem":
        ts = now or utcnow()
        return cls(id=new_id(), prompt=prompt, created_at=ts, updated_at=ts)

    def start(self, *, now: Optional[datetime] = None) -> "PromptItem":
        if self.status is not PromptStatus.PENDING:
            raise InvalidTransitionError(f"Cannot start item {self.id} from status '{self.status.value}'.")
        return replace(self, status=PromptStatus.PROCESSING, updated_at=now or utcnow())

    def complete(self, response: str, matches, *, now: Optional[datetime] = None) -> "PromptItem":
        if self.status is not PromptStatus.PROCESSING:
            raise InvalidTransitionError(f"Cannot complete item {self.id} from status '{self.status.value}'.")
        if not response:
            raise InvalidTransitionError(f"Cannot complete item {self.id} without a response.")
        return replace(
            self,
            status=PromptStatus.COMPLETED,
            response=response,
            matches=tuple(matches),
            error=None,
            updated_at=now or utcnow(),
        )

    def fail(self, message: str, *, now: Optional[datetime] = None) -> "PromptItem":
        if self.status.is_terminal:
            raise InvalidTransitionError(f"Item {self.id} already finished with status '{self.status.value}'.")
        return replace(
            self,
            status=PromptStatus.ERROR,
            response="",
            matches=(),
            error=(message or "").strip() or "Unknown error occurred",
            updated_at=now or utcnow(),
        )

    @property
    def total_matches(self) -> int:
        return sum(m.count for m in self.matches)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "prompt": self.prompt,
            "response": self.response,
            "matches": [m.to_dict() for m in self.matches],
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
            "status": self.status.value,
        }
        if self.status is PromptStatus.ERROR:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class BatchRow:
    prompt: str
    keywords: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {"prompt": self.prompt, "keywords": list(self.keywords)}


@dataclass
class AnalysisSession:
    id: str
    prompts: Tuple[str, ...]
    keywords: Tuple[str, ...]        # empty for batch sessions, rows carry their own
    start_time: datetime
    kind: SessionKind = SessionKind.MANUAL
    name: str = ""
    rows: Tuple[BatchRow, ...] = ()
    items: List[PromptItem] = field(default_factory=list)
    status: SessionStatus = SessionStatus.IDLE
    end_time: Optional[datetime] = None
    error: Optional[str] = None

    @property
    def processed_count(self) -> int:
        return sum(1 for item in self.items if item.status.is_terminal)

    @property
    def is_finished(self) -> bool:
        return self.status in (SessionStatus.COMPLETED, SessionStatus.ERROR)

    def replace_item(self, index: int, item: PromptItem) -> None:
        current = self.items[index]
        if current.id != item.id:
            raise InvalidTransitionError(f"Item {item.id} does not belong at index {index}.")
        self.items[index] = item

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "kind": self.kind.value,
            "name": self.name,
            "prompts": list(self.prompts),
            "keywords": list(self.keywords),
            "results": [item.to_dict() for item in self.items],
            "startTime": _iso(self.start_time),
            "endTime": _iso(self.end_time),
            "status": self.status.value,
            "totalRows": len(self.items),
            "processedRows": self.processed_count,
        }
        if self.rows:
            data["rows"] = [r.to_dict() for r in self.rows]
        if self.error:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class AnalyticsData:
    total_prompts: int
    total_responses: int
    total_keyword_matches: int
    average_response_length: int
    keyword_frequency: Dict[str, int]
    processing_time_ms: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalPrompts": self.total_prompts,
            "totalResponses": self.total_responses,
            "totalKeywordMatches": self.total_keyword_matches,
            "averageResponseLength": self.average_response_length,
            "keywordFrequency": dict(self.keyword_frequency),
            "processingTime": self.processing_time_ms,
        }


@dataclass(frozen=True)
class KeywordRank:
    keyword: str
    count: int
    share: float                # percent of all matches, one decimal

    def to_dict(self) -> Dict[str, Any]:
        return {"keyword": self.keyword, "count": self.count, "share": self.share}


@dataclass(frozen=True)
class ProgressSnapshot:
    total: int
    pending: int
    processing: int
    completed: int
    errors: int
    percent: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "pending": self.pending,
            "processing": self.processing,
            "completed": self.completed,
            "errors": self.errors,
            "percent": self.percent,
        }
