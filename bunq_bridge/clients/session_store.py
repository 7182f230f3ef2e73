"""Durable per-credential storage for Bunq session records."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Dict, Optional, Protocol

from bunq_bridge.models.session import SessionRecord

_SORT_KEY = "bunq#session"


def _partition_key(identity: str) -> str:
    return f"credential#{identity}"


class SessionStore(Protocol):
    """Read/write contract the session manager relies on."""

    def get(self, identity: str) -> Optional[SessionRecord]:
        ...

    def put(self, identity: str, record: SessionRecord) -> None:
        ...

    def delete(self, identity: str) -> None:
        ...


class InMemorySessionStore:
    """Process-local store; records vanish when the process exits."""

    def __init__(self) -> None:
        self._records: Dict[str, dict] = {}

    def get(self, identity: str) -> Optional[SessionRecord]:
        data = self._records.get(identity)
        if data is None:
            return None
        # Hand out copies so callers cannot mutate the stored state in place.
        return SessionRecord.model_validate(data)

    def put(self, identity: str, record: SessionRecord) -> None:
        self._records[identity] = record.to_item()

    def delete(self, identity: str) -> None:
        self._records.pop(identity, None)


class SQLiteSessionStore:
    """Key-value table keyed by (pk, sk), one row per credential identity."""

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
                CREATE TABLE IF NOT EXISTS session_records (
                    pk TEXT NOT NULL,
                    sk TEXT NOT NULL,
                    data TEXT NOT NULL,
                    PRIMARY KEY (pk, sk)
                )
                """
            )

    def get(self, identity: str) -> Optional[SessionRecord]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT data FROM session_records WHERE pk = ? AND sk = ?",
                (_partition_key(identity), _SORT_KEY),
            ).fetchone()
        if not row:
            return None
        return SessionRecord.model_validate(json.loads(row["data"]))

    def put(self, identity: str, record: SessionRecord) -> None:
        data_json = json.dumps(record.to_item())
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO session_records (pk, sk, data)
                VALUES (?, ?, ?)
                ON CONFLICT(pk, sk) DO UPDATE SET data = excluded.data
                """,
                (_partition_key(identity), _SORT_KEY, data_json),
            )

    def delete(self, identity: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "DELETE FROM session_records WHERE pk = ? AND sk = ?",
                (_partition_key(identity), _SORT_KEY),
            )


__all__ = ["InMemorySessionStore", "SQLiteSessionStore", "SessionStore"]
