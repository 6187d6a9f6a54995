"""
OperatorReplyHandler — interprets an operator's email about a booking.

Flow:
  1. Code: locate the booking (id → ref code → code in subject/body →
     latest booking for the operator)
  2. AI: parse the reply into independent flags (OperatorReply)
  3. Code: reduce the flags to exactly one OperatorDecision
  4. Store: one update with status, merged metadata, resolved operator
  5. Send: the customer email for that decision (Rainbow proposed times
     also alert the internal agent)

The status always advances on the decision; a failed send is logged and
reported in the result, never rolled back.
"""

import logging
from typing import Any

from helitour.communication.ports import TemplateKind
from helitour.communication.templates import logistics_for
from helitour.domain.booking import (
    Booking,
    BookingStatus,
    Operator,
    can_transition,
    find_ref_code,
    merge_metadata,
    utcnow_iso,
)
from helitour.domain.errors import BookingNotFound, ExtractionFailure
from helitour.domain.intent import OperatorDecision, OperatorReply, decide_operator_reply
from helitour.handlers.base import Handler, HandlerResult

log = logging.getLogger(__name__)

_TARGET_STATUS: dict[str, BookingStatus | None] = {
    "confirmation": BookingStatus.CONFIRMED,
    "rejection": BookingStatus.CANCELLED,
    "will_handle_directly": BookingStatus.AWAITING_OPERATOR_RESPONSE,
    "proposed_times": BookingStatus.AWAITING_PAYMENT,
    "alternative_dates": BookingStatus.AWAITING_PAYMENT,
    "unclear": None,
}


def _first_time(entries: list[str]) -> str | None:
    """First entry that is a time of day rather than a calendar date."""
    for entry in entries:
        if "AM" in entry.upper() or "PM" in entry.upper():
            return entry
    return None


class OperatorReplyHandler(Handler):

    async def handle(
        self,
        body: str,
        booking_id: str | None = None,
        ref_code: str | None = None,
        sender: str | None = None,
        subject: str | None = None,
        operator_name: str | None = None,
    ) -> HandlerResult:
        contact = self._cfg.directory.operator_by_email(sender)
        booking = await self._locate(
            body, booking_id, ref_code, subject,
            operator_name or (contact.name if contact else None),
        )
        if booking is None:
            log.warning("Operator reply from %s matched no booking (subject=%r)", sender, subject)
            return HandlerResult.failure(
                BookingNotFound("no booking matches this operator reply"), action="not_found"
            )

        operator = contact.key if contact else booking.operator
        log.info("booking=%s ref=%s operator reply from %s (operator=%s)",
                 booking.id, booking.ref_code, sender or "?", operator.value)

        try:
            reply = await self._cfg.extractor.parse_operator_reply(body)
        except ExtractionFailure as exc:
            log.warning("ref=%s operator reply unparseable, keeping as note: %s",
                        booking.ref_code, exc)
            reply = OperatorReply(notes=body.strip()[:2000] or None)

        decision = decide_operator_reply(reply, operator)
        target = _TARGET_STATUS[decision.kind]
        if target is not None and not can_transition(booking.status, target):
            log.warning("ref=%s decision=%s ignored: booking is already %s",
                        booking.ref_code, decision.kind, booking.status.value)
            target = None

        changes = self._changes(booking, decision, target, body, sender)
        if contact and (booking.operator_name != contact.name or booking.operator_key != contact.key):
            changes["operator_name"] = contact.name
            changes["operator_key"] = contact.key
        booking = await self._cfg.store.update(booking.id, changes)
        log.info("booking=%s ref=%s decision=%s status=%s",
                 booking.id, booking.ref_code, decision.kind, booking.status.value)

        notified = await self._notify_decision(booking, decision, operator, applied=target is not None)

        return HandlerResult(
            success=True,
            action=decision.kind,
            data={
                "booking_id": booking.id,
                "ref_code": booking.ref_code,
                "status": booking.status.value,
                "decision": decision.kind,
                "applied": target is not None,
                "operator": operator.value,
                "confirmation_number": booking.confirmation_number,
                **notified,
            },
        )

    async def _locate(
        self,
        body: str,
        booking_id: str | None,
        ref_code: str | None,
        subject: str | None,
        operator_name: str | None,
    ) -> Booking | None:
        store = self._cfg.store
        if booking_id:
            booking = await store.get(booking_id)
            if booking:
                return booking
        if ref_code:
            booking = await store.get_by_ref_code(ref_code)
            if booking:
                return booking
        found = find_ref_code(subject, body)
        if found:
            booking = await store.get_by_ref_code(found)
            if booking:
                return booking
        if operator_name:
            return await store.latest_for_operator(operator_name)
        return None

    def _changes(
        self,
        booking: Booking,
        decision: OperatorDecision,
        target: BookingStatus | None,
        body: str,
        sender: str | None,
    ) -> dict[str, Any]:
        reply = decision.reply
        now = utcnow_iso()
        meta: dict[str, Any] = {
            "operator_reply": {
                "body": body.strip()[:2000],
                "sender": sender,
                "received_at": now,
                "decision": decision.kind,
            },
        }
        changes: dict[str, Any] = {}

        if target is None:
            meta["operator_notes"] = reply.notes or body.strip()[:2000]
        elif decision.kind == "confirmation":
            meta["confirmed_at"] = now
            if reply.confirmation_number:
                changes["confirmation_number"] = reply.confirmation_number
            if reply.price is not None:
                changes["total_amount"] = reply.price
            if reply.available_dates:
                meta["confirmed_slot"] = _first_time(reply.available_dates)
        elif decision.kind == "rejection":
            meta["rejection_reason"] = reply.notes or body.strip()[:500]
            meta["cancelled_at"] = now
        elif decision.kind == "will_handle_directly":
            meta["operator_will_contact_customer"] = True
        elif decision.kind == "proposed_times":
            meta["proposed_times"] = list(reply.available_dates)
        elif decision.kind == "alternative_dates":
            meta["alternative_dates"] = list(reply.available_dates)

        if reply.price is not None:
            meta["quoted_price"] = reply.price
        if target is not None:
            changes["status"] = target
        changes["metadata"] = merge_metadata(booking.metadata, meta)
        return changes

    async def _notify_decision(
        self,
        booking: Booking,
        decision: OperatorDecision,
        operator: Operator,
        applied: bool,
    ) -> dict[str, Any]:
        """Send the decision's emails; returns the flags reported in the result."""
        if not applied or decision.kind == "unclear":
            return {"customer_notified": False}
        if not booking.customer_email:
            log.warning("ref=%s has no customer email, nothing sent", booking.ref_code)
            return {"customer_notified": False}

        reply = decision.reply
        data = self._template_data(booking)
        flags: dict[str, Any] = {}

        if decision.kind == "confirmation":
            island = data["island"]
            data.update(
                confirmation_number=booking.confirmation_number,
                total_amount=booking.total_amount,
                time=booking.metadata.get("confirmed_slot"),
                logistics=logistics_for(operator.value, island),
            )
            kind = (
                TemplateKind.RAINBOW_CONFIRMATION if operator == Operator.RAINBOW
                else TemplateKind.FINAL_CONFIRMATION
            )
        elif decision.kind == "rejection":
            data["reason"] = booking.metadata.get("rejection_reason")
            kind = TemplateKind.REJECTION
        elif decision.kind == "will_handle_directly":
            kind = TemplateKind.OPERATOR_DIRECT_CONTACT
        elif decision.kind == "proposed_times":
            data["proposed_times"] = list(reply.available_dates)
            kind = TemplateKind.CHOOSE_TIME
        else:
            data["alternative_dates"] = list(reply.available_dates)
            kind = TemplateKind.ALTERNATIVE_DATES

        sent = await self._notify(booking.customer_email, kind, data, booking.ref_code)
        flags["customer_notified"] = sent.success
        flags["customer_template"] = kind.value

        if decision.kind == "proposed_times":
            await self._pause()
            agent_data = dict(data, context="Rainbow proposed times; customer asked to choose",
                              notes=reply.notes)
            agent_sent = await self._notify(
                self._cfg.directory.agent, TemplateKind.AGENT_ARRANGE_RAINBOW, agent_data,
                booking.ref_code,
            )
            flags["agent_notified"] = agent_sent.success

        return flags

