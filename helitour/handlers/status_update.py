"""
StatusUpdate — the one write path for status from outside the handlers
(dashboard, admin tools).  Only the nine named statuses are accepted.
"""

import logging
from typing import Any

from helitour.domain.booking import BookingStatus, can_transition, merge_metadata, utcnow_iso
from helitour.domain.errors import (
    BookingNotFound,
    ConcurrentUpdate,
    InvalidStatusTransition,
    ValidationError,
)
from helitour.handlers.base import Handler, HandlerResult

log = logging.getLogger(__name__)


class StatusUpdate(Handler):

    async def apply(
        self,
        booking_id: str,
        status: str,
        confirmation_number: str | None = None,
        total_amount: float | None = None,
        metadata: dict[str, Any] | None = None,
        expected_version: int | None = None,
    ) -> HandlerResult:
        target = BookingStatus.parse(status)
        if target is None:
            allowed = ", ".join(s.value for s in BookingStatus)
            return HandlerResult.failure(
                ValidationError(f"unknown status {status!r}; expected one of {allowed}"),
                action="invalid",
            )
        if total_amount is not None and total_amount < 0:
            return HandlerResult.failure(ValidationError("total_amount must not be negative"),
                                         action="invalid")

        booking = await self._cfg.store.get(booking_id)
        if booking is None:
            return HandlerResult.failure(BookingNotFound(booking_id), action="not_found")
        if not can_transition(booking.status, target):
            return HandlerResult.failure(
                InvalidStatusTransition(f"{booking.status.value} -> {target.value} is not allowed"),
                action="invalid",
            )

        changes: dict[str, Any] = {"status": target}
        if confirmation_number is not None:
            changes["confirmation_number"] = confirmation_number
        if total_amount is not None:
            changes["total_amount"] = total_amount
        changes["metadata"] = merge_metadata(
            booking.metadata,
            {**(metadata or {}), "status_updated_at": utcnow_iso(),
             "previous_status": booking.status.value},
        )

        try:
            booking = await self._cfg.store.update(booking.id, changes, expected_version)
        except ConcurrentUpdate as exc:
            log.warning("booking=%s status update lost a race: %s", booking_id, exc)
            return HandlerResult.failure(exc, action="conflict")

        log.info("booking=%s ref=%s status %s -> %s",
                 booking.id, booking.ref_code, changes["metadata"]["previous_status"], target.value)
        return HandlerResult(
            success=True,
            action="updated",
            data={
                "booking_id": booking.id,
                "ref_code": booking.ref_code,
                "status": booking.status.value,
                "version": booking.version,
            },
        )
