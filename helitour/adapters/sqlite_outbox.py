"""
SQLite adapter for the notification Outbox.

Use ":memory:" for tests, a file path for production.
"""

import json
import sqlite3
from datetime import datetime, timezone
from typing import Any

from helitour.domain.outbox import Outbox, OutboxEntry, OutboxStatus

_SCHEMA = """
CREATE TABLE IF NOT EXISTS outbox (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    recipients    TEXT NOT NULL,
    kind          TEXT NOT NULL,
    data          TEXT NOT NULL,
    status        TEXT NOT NULL DEFAULT 'pending',
    attempts      INTEGER NOT NULL DEFAULT 0,
    error         TEXT,
    message_id    TEXT,
    next_retry_at TEXT,
    created_at    TEXT NOT NULL,
    updated_at    TEXT
);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_dt(s: str | None) -> datetime | None:
    return datetime.fromisoformat(s) if s else None


class SqliteOutbox(Outbox):

    def __init__(self, db_path: str = "outbox.db"):
        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)

    async def record(self, recipients: list[str], kind: str, data: dict[str, Any]) -> int:
        cur = self._conn.execute(
            "INSERT INTO outbox (recipients, kind, data, created_at) VALUES (?, ?, ?, ?)",
            (json.dumps(recipients), kind, json.dumps(data, default=str), _now()),
        )
        self._conn.commit()
        assert cur.lastrowid is not None
        return cur.lastrowid

    async def mark_sent(self, entry_id: int, message_id: str | None) -> None:
        self._conn.execute(
            "UPDATE outbox SET status = 'sent', attempts = attempts + 1, message_id = ?,"
            " error = NULL, next_retry_at = NULL, updated_at = ? WHERE id = ?",
            (message_id, _now(), entry_id),
        )
        self._conn.commit()

    async def mark_failed(
        self, entry_id: int, error: str | None, next_retry_at: datetime | None = None
    ) -> None:
        self._conn.execute(
            "UPDATE outbox SET status = 'failed', attempts = attempts + 1,"
            " error = ?, next_retry_at = ?, updated_at = ? WHERE id = ?",
            (error, next_retry_at.isoformat() if next_retry_at else None, _now(), entry_id),
        )
        self._conn.commit()

    async def mark_dead(self, entry_id: int, error: str | None) -> None:
        self._conn.execute(
            "UPDATE outbox SET status = 'dead', attempts = attempts + 1,"
            " error = ?, next_retry_at = NULL, updated_at = ? WHERE id = ?",
            (error, _now(), entry_id),
        )
        self._conn.commit()

    async def get(self, entry_id: int) -> OutboxEntry | None:
        row = self._conn.execute("SELECT * FROM outbox WHERE id = ?", (entry_id,)).fetchone()
        return self._row_to_entry(row) if row else None

    async def entries(self, status: OutboxStatus | None = None) -> list[OutboxEntry]:
        if status is None:
            rows = self._conn.execute("SELECT * FROM outbox ORDER BY id").fetchall()
        else:
            rows = self._conn.execute(
                "SELECT * FROM outbox WHERE status = ? ORDER BY id", (status,)
            ).fetchall()
        return [self._row_to_entry(r) for r in rows]

    @staticmethod
    def _row_to_entry(row) -> OutboxEntry:
        return OutboxEntry(
            entry_id=row["id"],
            recipients=json.loads(row["recipients"]),
            kind=row["kind"],
            data=json.loads(row["data"]),
            status=row["status"],
            attempts=row["attempts"],
            error=row["error"],
            message_id=row["message_id"],
            next_retry_at=_parse_dt(row["next_retry_at"]),
            created_at=_parse_dt(row["created_at"]),
            updated_at=_parse_dt(row["updated_at"]),
        )
