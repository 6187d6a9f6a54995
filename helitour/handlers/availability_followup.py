"""
AvailabilityFollowUp — the first customer-facing follow-up after a booking.

Flow:
  1. Code: preconditions (exists, not confirmed/cancelled/completed)
  2. Code: SAFETY GATE: the customer address must not be an operator,
     hub, internal or agent mailbox.  Checked before anything else happens.
  3. Store: status → checking_availability
  4. Probe: live availability (any failure becomes "unavailable, manual")
  5. Send: Rainbow holding message (+ agent alert) or generic slot list /
     "checking live availability" message
  6. Store: awaiting_payment if the customer send succeeded, otherwise stay
     in checking_availability so the trigger can be retried
"""

import logging
from typing import Any

from helitour.communication.ports import TemplateKind
from helitour.domain.availability import AvailabilityResult
from helitour.domain.booking import (
    TERMINAL_STATUSES,
    Booking,
    BookingStatus,
    Operator,
    merge_metadata,
    utcnow_iso,
)
from helitour.domain.errors import (
    AlreadyConfirmed,
    BookingNotFound,
    InvalidStatusTransition,
    NotificationFailure,
    SafetyViolationPrevented,
    ValidationError,
)
from helitour.domain.tours import find_tour
from helitour.handlers.base import Handler, HandlerResult

log = logging.getLogger(__name__)


class AvailabilityFollowUp(Handler):

    async def run(self, booking_id: str | None = None, ref_code: str | None = None) -> HandlerResult:
        if not booking_id and not ref_code:
            return HandlerResult.failure(ValidationError("booking_id or ref_code is required"))

        store = self._cfg.store
        booking = await store.get(booking_id) if booking_id else await store.get_by_ref_code(ref_code)
        if booking is None:
            return HandlerResult.failure(BookingNotFound(booking_id or ref_code), action="not_found")

        if booking.status == BookingStatus.CONFIRMED:
            log.info("ref=%s already confirmed, availability check refused", booking.ref_code)
            return HandlerResult.failure(AlreadyConfirmed(booking.ref_code), action="rejected")
        if booking.status in TERMINAL_STATUSES:
            return HandlerResult.failure(
                InvalidStatusTransition(f"booking is {booking.status.value}"), action="rejected"
            )
        if booking.status == BookingStatus.AWAITING_PAYMENT:
            log.warning("ref=%s already awaiting payment, re-sending follow-up", booking.ref_code)

        if not booking.customer_email:
            return HandlerResult.failure(ValidationError("booking has no customer email"))
        if self._cfg.directory.is_operator_or_internal(booking.customer_email):
            log.critical(
                "SAFETY GATE: ref=%s customer_email=%s is an operator/internal address; "
                "availability follow-up NOT sent",
                booking.ref_code, booking.customer_email,
            )
            return HandlerResult.failure(
                SafetyViolationPrevented(
                    f"follow-up for {booking.ref_code} would reach an internal mailbox"
                ),
                action="blocked",
            )

        booking = await store.update(booking.id, {
            "status": BookingStatus.CHECKING_AVAILABILITY,
            "metadata": merge_metadata(
                booking.metadata, {"availability_check_started_at": utcnow_iso()}
            ),
        })

        operator = booking.operator
        availability = await self._probe(booking, operator)

        if operator == Operator.RAINBOW:
            kind, data = TemplateKind.RAINBOW_HOLDING, self._template_data(booking)
        else:
            kind, data = self._generic_content(booking, availability)

        sent = await self._notify(booking.customer_email, kind, data, booking.ref_code)

        agent_notified = None
        if operator == Operator.RAINBOW and sent.success:
            await self._pause()
            agent = await self._notify(
                self._cfg.directory.agent,
                TemplateKind.AGENT_ARRANGE_RAINBOW,
                self._template_data(booking, context="holding message sent to customer"),
                booking.ref_code,
            )
            agent_notified = agent.success

        now = utcnow_iso()
        meta: dict[str, Any] = {
            "availability_check": availability.to_dict(),
            "availability_checked_at": now,
            "follow_up_email_sent": sent.success,
            "follow_up_template": kind.value,
        }
        if sent.success:
            meta["follow_up_email_sent_at"] = now
            meta["follow_up_error"] = None
        else:
            meta["follow_up_error"] = sent.error
        status = BookingStatus.AWAITING_PAYMENT if sent.success else BookingStatus.CHECKING_AVAILABILITY
        booking = await store.update(booking.id, {
            "status": status,
            "metadata": merge_metadata(booking.metadata, meta),
        })
        log.info("booking=%s ref=%s follow-up %s sent=%s status=%s",
                 booking.id, booking.ref_code, kind.value, sent.success, booking.status.value)

        data_out = {
            "booking_id": booking.id,
            "ref_code": booking.ref_code,
            "status": booking.status.value,
            "operator": operator.value,
            "template": kind.value,
            "availability": availability.to_dict(),
            "email_sent": sent.success,
        }
        if agent_notified is not None:
            data_out["agent_notified"] = agent_notified
        if not sent.success:
            return HandlerResult(
                success=False, action="follow_up_failed", data=data_out,
                error=NotificationFailure.code, message=sent.error,
            )
        return HandlerResult(success=True, action="follow_up_sent", data=data_out)

    async def _probe(self, booking: Booking, operator: Operator) -> AvailabilityResult:
        probe = self._cfg.probe
        if probe is None:
            return AvailabilityResult(
                available=False, source="manual", details={"manual_check_required": True}
            )
        try:
            return await probe.check(
                operator,
                booking.preferred_date or "",
                booking.party_size or 1,
                tour_name=booking.metadata.get("tour_name"),
                time_window=booking.time_window,
            )
        except Exception as exc:
            log.warning("ref=%s availability probe failed: %s", booking.ref_code, exc)
            return AvailabilityResult.failed(str(exc) or type(exc).__name__)

    def _per_person_fallback(self, booking: Booking) -> float:
        """(overall tour price / party size), from the catalog or the stored estimate."""
        party = booking.party_size or 1
        tour = find_tour(booking.metadata.get("tour_id"), booking.metadata.get("tour_name"))
        if tour:
            return tour.price_per_person
        estimated = booking.metadata.get("estimated_total")
        if estimated:
            return float(estimated) / party
        return self._cfg.settings.default_price_per_person

    def _generic_content(
        self, booking: Booking, availability: AvailabilityResult
    ) -> tuple[TemplateKind, dict[str, Any]]:
        party = booking.party_size or 1
        fallback = self._per_person_fallback(booking)
        slots = [s for s in availability.slots if s.available]
        if not slots:
            return TemplateKind.CHECKING_AVAILABILITY, self._template_data(
                booking, total_price=round(fallback * party, 2)
            )
        priced = [
            {
                "time": s.time,
                "price": s.price,
                "total_price": round((s.price if s.price is not None else fallback) * party, 2),
            }
            for s in slots
        ]
        return TemplateKind.AVAILABLE_TIMES, self._template_data(booking, slots=priced)
