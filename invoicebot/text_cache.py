"""SQLite-backed cache of extracted text to avoid re-running OCR."""

from __future__ import annotations

import sqlite3
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Optional

import sqlite_utils


class TextCache:
    """Store extracted text keyed by content checksum and processing method."""

    TABLE = "extracted_text"

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        # Shared by the batch worker threads; every access goes through the lock.
        self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self.db = sqlite_utils.Database(self._conn)
        self._lock = threading.Lock()
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        with self._lock:
            self.db[self.TABLE].create(
                {
                    "checksum": str,
                    "processing_method": str,
                    "text": str,
                    "extracted_at": str,
                },
                pk=("checksum", "processing_method"),
                if_not_exists=True,
            )

    def get(self, checksum: str, processing_method: str) -> Optional[str]:
        with self._lock:
            rows = list(
                self.db[self.TABLE].rows_where(
                    "checksum = ? and processing_method = ?",
                    [checksum, processing_method],
                    limit=1,
                )
            )
        return rows[0]["text"] if rows else None

    def store(self, *, checksum: str, processing_method: str, text: str) -> None:
        with self._lock:
            self.db[self.TABLE].upsert(
                {
                    "checksum": checksum,
                    "processing_method": processing_method,
                    "text": text,
                    "extracted_at": datetime.now(tz=UTC).isoformat(),
                },
                pk=("checksum", "processing_method"),
            )

    def count(self) -> int:
        with self._lock:
            return self.db[self.TABLE].count

    def close(self) -> None:
        self._conn.close()
