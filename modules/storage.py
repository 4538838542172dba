"""
ログ保存・エクスポートモジュール
In-memory analysis log with JSON / CSV export.

Nothing here touches the disk. The log lives as long as the process and
is handed by reference to whoever needs to read or change it.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Iterator, Optional

import config
from modules.models import AnalysisRecord

logger = logging.getLogger(__name__)

CSV_HEADERS = ["ID", "Timestamp", "Description"]


class LogStore:
    """Newest-first log of completed analyses."""

    def __init__(self):
        self._records: list[AnalysisRecord] = []
        self._ids: set[str] = set()

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[AnalysisRecord]:
        return iter(tuple(self._records))

    @property
    def records(self) -> tuple[AnalysisRecord, ...]:
        return tuple(self._records)

    def append(self, record: AnalysisRecord) -> None:
        """Insert at the front. Duplicate ids are dropped, never raised."""
        if record.id in self._ids:
            logger.warning("Ignoring duplicate record %s", record.short_id)
            return
        self._records.insert(0, record)
        self._ids.add(record.id)
        logger.info("Logged analysis %s (%d total)", record.short_id, len(self._records))

    def clear(self) -> None:
        """
        Drop every record. Irreversible; callers must have the user confirm
        before calling this.
        """
        count = len(self._records)
        self._records = []
        self._ids = set()
        logger.info("Cleared %d log entries", count)

    # ── エクスポート ──

    def export_json(self) -> bytes:
        payload = [r.to_dict() for r in self.records]
        return json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8")

    def export_csv(self) -> bytes:
        """
        ID,Timestamp,Description rows. The description is always quoted with
        inner quotes doubled; image data is never exported here.
        """
        lines = [",".join(CSV_HEADERS)]
        for r in self.records:
            lines.append(",".join([r.id, r.timestamp, _quote(r.description)]))
        return "\n".join(lines).encode("utf-8")


def _quote(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def export_filename(extension: str, today: Optional[datetime] = None) -> str:
    """gemini_logs_<YYYY-MM-DD>.<extension>, dated in UTC."""
    today = today or datetime.now(timezone.utc)
    return f"{config.EXPORT_PREFIX}_{today.strftime('%Y-%m-%d')}.{extension}"
