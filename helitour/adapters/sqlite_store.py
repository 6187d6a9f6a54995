"""
SQLite adapter for BookingStore.

Use ":memory:" for tests, a file path for production.  metadata is stored
as JSON text; ref_code carries the UNIQUE constraint that makes reference
code collisions surface as DuplicateRefCode.
"""

import json
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Any

from helitour.domain.booking import UPDATABLE_FIELDS, Booking, BookingStatus, Operator
from helitour.domain.errors import BookingNotFound, ConcurrentUpdate, DuplicateRefCode
from helitour.domain.store import BookingStore

_SCHEMA = """
CREATE TABLE IF NOT EXISTS bookings (
    id              TEXT PRIMARY KEY,
    ref_code        TEXT NOT NULL UNIQUE,
    status          TEXT NOT NULL,
    customer_name   TEXT,
    customer_email  TEXT,
    customer_phone  TEXT,
    party_size      INTEGER,
    preferred_date  TEXT,
    time_window     TEXT,
    doors_off       INTEGER,
    hotel           TEXT,
    special_requests TEXT,
    total_weight    INTEGER,
    operator_name   TEXT,
    operator_key    TEXT NOT NULL DEFAULT 'other',
    confirmation_number TEXT,
    total_amount    REAL,
    source          TEXT,
    metadata        TEXT NOT NULL DEFAULT '{}',
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL,
    version         INTEGER NOT NULL DEFAULT 1
);

CREATE INDEX IF NOT EXISTS idx_bookings_email ON bookings (lower(customer_email));
CREATE INDEX IF NOT EXISTS idx_bookings_operator ON bookings (operator_name);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_dt(s: str) -> datetime:
    return datetime.fromisoformat(s)


def _to_column(key: str, value: Any) -> Any:
    if value is None:
        return None
    if key in ("status", "operator_key"):
        return value.value if hasattr(value, "value") else str(value)
    if key == "metadata":
        return json.dumps(value)
    if key == "doors_off":
        return int(bool(value))
    return value


class SqliteBookingStore(BookingStore):

    def __init__(self, db_path: str = "bookings.db"):
        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)

    async def get(self, booking_id: str) -> Booking | None:
        row = self._conn.execute(
            "SELECT * FROM bookings WHERE id = ?", (booking_id,)
        ).fetchone()
        return self._row_to_booking(row) if row else None

    async def get_by_ref_code(self, ref_code: str) -> Booking | None:
        row = self._conn.execute(
            "SELECT * FROM bookings WHERE ref_code = ?", (ref_code.upper(),)
        ).fetchone()
        return self._row_to_booking(row) if row else None

    async def latest_for_customer(self, email: str) -> Booking | None:
        row = self._conn.execute(
            "SELECT * FROM bookings WHERE lower(customer_email) = lower(?)"
            " ORDER BY created_at DESC, rowid DESC LIMIT 1",
            (email.strip(),),
        ).fetchone()
        return self._row_to_booking(row) if row else None

    async def latest_for_operator(self, operator_name: str) -> Booking | None:
        row = self._conn.execute(
            "SELECT * FROM bookings WHERE operator_name = ?"
            " ORDER BY created_at DESC, rowid DESC LIMIT 1",
            (operator_name,),
        ).fetchone()
        return self._row_to_booking(row) if row else None

    async def create(self, fields: dict[str, Any]) -> Booking:
        unknown = set(fields) - UPDATABLE_FIELDS - {"ref_code"}
        if unknown:
            raise ValueError(f"Unknown booking fields: {sorted(unknown)}")

        now = _now()
        columns = {
            key: _to_column(key, value) for key, value in fields.items() if value is not None
        }
        columns["id"] = str(uuid.uuid4())
        columns["created_at"] = now
        columns["updated_at"] = now
        columns["version"] = 1

        names = ", ".join(columns)
        placeholders = ", ".join("?" for _ in columns)
        try:
            self._conn.execute(
                f"INSERT INTO bookings ({names}) VALUES ({placeholders})",
                tuple(columns.values()),
            )
        except sqlite3.IntegrityError as exc:
            if "ref_code" in str(exc):
                raise DuplicateRefCode(fields.get("ref_code")) from exc
            raise
        self._conn.commit()
        return await self.get(columns["id"])

    async def update(
        self,
        booking_id: str,
        changes: dict[str, Any],
        expected_version: int | None = None,
    ) -> Booking:
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown booking fields: {sorted(unknown)}")

        assignments = [f"{key} = ?" for key in changes]
        values = [_to_column(key, value) for key, value in changes.items()]
        assignments += ["updated_at = ?", "version = version + 1"]
        values.append(_now())

        sql = f"UPDATE bookings SET {', '.join(assignments)} WHERE id = ?"
        values.append(booking_id)
        if expected_version is not None:
            sql += " AND version = ?"
            values.append(expected_version)

        cur = self._conn.execute(sql, tuple(values))
        self._conn.commit()
        if cur.rowcount == 0:
            if await self.get(booking_id) is None:
                raise BookingNotFound(booking_id)
            raise ConcurrentUpdate(booking_id)
        return await self.get(booking_id)

    @staticmethod
    def _row_to_booking(row) -> Booking:
        doors_off = row["doors_off"]
        return Booking(
            id=row["id"],
            ref_code=row["ref_code"],
            status=BookingStatus(row["status"]),
            customer_name=row["customer_name"],
            customer_email=row["customer_email"],
            customer_phone=row["customer_phone"],
            party_size=row["party_size"],
            preferred_date=row["preferred_date"],
            time_window=row["time_window"],
            doors_off=bool(doors_off) if doors_off is not None else None,
            hotel=row["hotel"],
            special_requests=row["special_requests"],
            total_weight=row["total_weight"],
            operator_name=row["operator_name"],
            operator_key=Operator(row["operator_key"]),
            confirmation_number=row["confirmation_number"],
            total_amount=row["total_amount"],
            source=row["source"],
            metadata=json.loads(row["metadata"] or "{}"),
            created_at=_parse_dt(row["created_at"]),
            updated_at=_parse_dt(row["updated_at"]),
            version=row["version"],
        )
