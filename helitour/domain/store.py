"""
BookingStore port — one row per booking.

The store enforces reference-code uniqueness and single-row atomicity.
Nothing spans more than one call: handlers re-read before they compute an
update, and concurrent writers race with last-write-wins unless the caller
passes expected_version.
"""

from abc import ABC, abstractmethod
from typing import Any

from helitour.domain.booking import Booking


class BookingStore(ABC):

    @abstractmethod
    async def get(self, booking_id: str) -> Booking | None:
        ...

    @abstractmethod
    async def get_by_ref_code(self, ref_code: str) -> Booking | None:
        ...

    @abstractmethod
    async def latest_for_customer(self, email: str) -> Booking | None:
        """Most recently created booking for this customer email (case-insensitive)."""
        ...

    @abstractmethod
    async def latest_for_operator(self, operator_name: str) -> Booking | None:
        """Most recently created booking assigned to this operator name."""
        ...

    @abstractmethod
    async def create(self, fields: dict[str, Any]) -> Booking:
        """
        Insert a booking. *fields* must carry ref_code and status.

        Raises DuplicateRefCode if the reference code is already taken.
        """
        ...

    @abstractmethod
    async def update(
        self,
        booking_id: str,
        changes: dict[str, Any],
        expected_version: int | None = None,
    ) -> Booking:
        """
        Apply a partial update and refresh updated_at.

        metadata in *changes* replaces the stored bag, so callers merge first.
        Raises BookingNotFound, or ConcurrentUpdate when expected_version is
        given and no longer matches.
        """
        ...
