"""In-memory adapter for BookingStore — for tests and local development."""

import copy
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from helitour.domain.booking import UPDATABLE_FIELDS, Booking, BookingStatus, Operator
from helitour.domain.errors import BookingNotFound, ConcurrentUpdate, DuplicateRefCode
from helitour.domain.store import BookingStore


class InMemoryBookingStore(BookingStore):
    """
    Keeps bookings in insertion order.  Returned objects are copies, so a
    handler holding a Booking never sees another writer's changes.
    """

    def __init__(self):
        self._rows: list[Booking] = []
        self.update_calls: list[tuple[str, dict[str, Any]]] = []

    def _find(self, booking_id: str) -> Booking | None:
        for row in self._rows:
            if row.id == booking_id:
                return row
        return None

    async def get(self, booking_id: str) -> Booking | None:
        row = self._find(booking_id)
        return copy.deepcopy(row) if row else None

    async def get_by_ref_code(self, ref_code: str) -> Booking | None:
        for row in self._rows:
            if row.ref_code == ref_code.upper():
                return copy.deepcopy(row)
        return None

    async def latest_for_customer(self, email: str) -> Booking | None:
        wanted = email.strip().lower()
        for row in reversed(self._rows):
            if (row.customer_email or "").lower() == wanted:
                return copy.deepcopy(row)
        return None

    async def latest_for_operator(self, operator_name: str) -> Booking | None:
        for row in reversed(self._rows):
            if row.operator_name == operator_name:
                return copy.deepcopy(row)
        return None

    async def create(self, fields: dict[str, Any]) -> Booking:
        unknown = set(fields) - UPDATABLE_FIELDS - {"ref_code"}
        if unknown:
            raise ValueError(f"Unknown booking fields: {sorted(unknown)}")
        if any(row.ref_code == fields["ref_code"] for row in self._rows):
            raise DuplicateRefCode(fields["ref_code"])

        values = {k: v for k, v in fields.items() if v is not None}
        values["status"] = BookingStatus(values["status"])
        values["operator_key"] = Operator(values.get("operator_key", Operator.OTHER))
        values["metadata"] = copy.deepcopy(values.get("metadata", {}))
        booking = Booking(id=str(uuid.uuid4()), **values)
        self._rows.append(booking)
        return copy.deepcopy(booking)

    async def update(
        self,
        booking_id: str,
        changes: dict[str, Any],
        expected_version: int | None = None,
    ) -> Booking:
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown booking fields: {sorted(unknown)}")
        row = self._find(booking_id)
        if row is None:
            raise BookingNotFound(booking_id)
        if expected_version is not None and row.version != expected_version:
            raise ConcurrentUpdate(booking_id)

        self.update_calls.append((booking_id, copy.deepcopy(changes)))
        values = copy.deepcopy(changes)
        if "status" in values:
            values["status"] = BookingStatus(values["status"])
        if "operator_key" in values:
            values["operator_key"] = Operator(values["operator_key"])
        updated = replace(
            row,
            **values,
            updated_at=datetime.now(timezone.utc),
            version=row.version + 1,
        )
        self._rows[self._rows.index(row)] = updated
        return copy.deepcopy(updated)
