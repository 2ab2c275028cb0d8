from __future__ import annotations

import json
import re
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from prompt_analyzer.domain.models import AnalysisSession, AnalyticsData, PromptItem, SessionKind

_EXPORT_ID_RE = re.compile(r"^[A-Za-z0-9_]+$")


@dataclass(frozen=True)
class ExportRecord:
    export_id: str
    path: Path


def build_export(
    session: Optional[AnalysisSession],
    items: Sequence[PromptItem],
    analytics: AnalyticsData,
    exported_at: datetime,
) -> Dict[str, Any]:
    return {
        "session": session.to_dict() if session else None,
        "analyses": [item.to_dict() for item in items],
        "analytics": analytics.to_dict(),
        "exportedAt": exported_at.isoformat(),
    }


def export_filename(session: Optional[AnalysisSession], exported_at: datetime) -> str:
    if session is not None and session.kind is SessionKind.BATCH:
        return f"batch-analysis-{session.id}.json"
    return f"prompt-analysis-{int(exported_at.timestamp() * 1000)}.json"


@dataclass
class ExportRepository:
    """
    Repository pattern: encapsulates where export files are written and how they are found again.
    Each export gets its own folder under exports_base, named by export_id.
    """
    exports_base: Path

    def save(self, payload: Dict[str, Any], filename: str) -> ExportRecord:
        export_id = f"{datetime.now():%Y%m%d_%H%M%S}_{uuid.uuid4().hex[:8]}"
        export_dir = self.exports_base / export_id
        export_dir.mkdir(parents=True, exist_ok=True)

        path = export_dir / filename
        path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        return ExportRecord(export_id=export_id, path=path)

    def find_export_dir(self, export_id: str) -> Optional[Path]:
        if not export_id or not _EXPORT_ID_RE.match(export_id):
            return None
        export_dir = self.exports_base / export_id
        return export_dir if export_dir.is_dir() else None

    def list_exports(self) -> List[Path]:
        if not self.exports_base.exists():
            return []
        files = [p for d in self.exports_base.iterdir() if d.is_dir() for p in d.glob("*.json")]
        return sorted(files, key=lambda p: p.stat().st_mtime, reverse=True)
