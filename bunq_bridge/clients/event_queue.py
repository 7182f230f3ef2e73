"""SQLite-backed queue holding webhook notifications until a workflow consumes them."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict


class SQLiteEventQueue:
    """Persist received Bunq notifications in arrival order."""

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS bunq_event_queue (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    category TEXT,
                    payload TEXT NOT NULL,
                    received_at TEXT NOT NULL
                )
                """
            )

    def enqueue_event(self, payload: Dict[str, Any]) -> int:
        """Store a notification and return its queue position id."""
        url_entry = payload.get("NotificationUrl") if isinstance(payload, dict) else None
        category = url_entry.get("category") if isinstance(url_entry, dict) else None
        received_at = datetime.now(timezone.utc).isoformat()
        with self._connect() as conn:
            cursor = conn.execute(
                "INSERT INTO bunq_event_queue (category, payload, received_at) VALUES (?, ?, ?)",
                (category, json.dumps(payload), received_at),
            )
            return int(cursor.lastrowid)

    def dequeue_event(self) -> Dict[str, Any] | None:
        """Pop the oldest notification, or return None when empty."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT id, payload, received_at FROM bunq_event_queue ORDER BY id LIMIT 1"
            ).fetchone()
            if not row:
                return None
            conn.execute("DELETE FROM bunq_event_queue WHERE id = ?", (row["id"],))
        return {
            "id": row["id"],
            "received_at": row["received_at"],
            "event": json.loads(row["payload"]),
        }

    def pending_count(self) -> int:
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) AS total FROM bunq_event_queue").fetchone()
        return int(row["total"])


__all__ = ["SQLiteEventQueue"]
