"""
CustomerReplyHandler — a customer email arriving at the bookings inbox.

Flow:
  1. Code: validate the sender address
  2. AI: spam check (acts only above the confidence threshold)
  3. Store: most recent booking for this customer email
  4. AI: booking intent + fields
  5a. No booking, booking request with fields → new booking in collecting_info
  5b. No booking, anything else → "how to book" reply, no store action
  5c. Existing booking → merge fields, append to the conversation log

A bare customer reply never changes the booking status.
"""

import logging
from email.utils import parseaddr
from typing import Any

from helitour.communication.ports import TemplateKind
from helitour.domain.booking import (
    MIN_TOTAL_WEIGHT,
    Booking,
    BookingStatus,
    Operator,
    merge_extracted_fields,
    merge_metadata,
    utcnow_iso,
)
from helitour.domain.errors import ConstraintError, ExtractionFailure, ValidationError
from helitour.domain.intent import EmailAnalysis, SpamVerdict
from helitour.handlers.base import Handler, HandlerResult
from helitour.handlers.intake import create_booking_with_ref_code, is_valid_email

log = logging.getLogger(__name__)


def parse_sender(sender: str | None) -> str | None:
    """'Jane Doe <Jane@Example.com>' -> 'jane@example.com'; None if not an address."""
    _, address = parseaddr(sender or "")
    address = address.strip().lower()
    return address if is_valid_email(address) else None


class CustomerReplyHandler(Handler):

    async def handle(self, body: str, sender: str, subject: str | None = None) -> HandlerResult:
        email = parse_sender(sender)
        if email is None:
            return HandlerResult.failure(
                ValidationError(f"invalid sender address: {sender!r}"), action="invalid"
            )

        verdict = await self._spam_verdict(body, email, subject)
        if verdict.is_confident_spam(self._cfg.settings.spam_threshold):
            log.info("Spam from %s (conf=%.2f): %s", email, verdict.confidence, verdict.reason)
            replied = False
            if self._cfg.settings.reply_to_spam:
                sent = await self._notify(email, TemplateKind.SPAM_DEFLECTION, self._brand_data())
                replied = sent.success
            return HandlerResult(
                success=True,
                action="spam",
                data={"is_spam": True, "confidence": verdict.confidence, "replied": replied},
            )

        booking = await self._cfg.store.latest_for_customer(email)
        analysis = await self._analysis(body, email, subject)
        message = {"content": body.strip(), "subject": subject, "timestamp": utcnow_iso()}

        if booking is None:
            if analysis.is_booking_request and not analysis.fields.is_empty():
                return await self._new_inquiry(email, analysis, message)
            sent = await self._notify(email, TemplateKind.HOW_TO_BOOK, self._brand_data())
            log.info("Non-booking email from %s, sent how-to-book", email)
            return HandlerResult(
                success=True,
                action="how_to_book",
                data={"is_booking_request": analysis.is_booking_request, "replied": sent.success},
            )

        return await self._existing(booking, analysis, message, body, subject)

    async def _spam_verdict(self, body: str, email: str, subject: str | None) -> SpamVerdict:
        try:
            return await self._cfg.extractor.detect_spam(body, email, subject)
        except ExtractionFailure as exc:
            log.warning("Spam check failed for %s, treating as not spam: %s", email, exc)
            return SpamVerdict(is_spam=False, confidence=0.5, reason="analysis_failed")

    async def _analysis(self, body: str, email: str, subject: str | None) -> EmailAnalysis:
        try:
            return await self._cfg.extractor.analyze_email(body, email, subject)
        except ExtractionFailure as exc:
            log.warning("Email analysis failed for %s, no fields extracted: %s", email, exc)
            return EmailAnalysis(is_booking_request=False, intent="analysis_failed")

    async def _new_inquiry(
        self, email: str, analysis: EmailAnalysis, message: dict[str, Any]
    ) -> HandlerResult:
        fields = analysis.fields
        metadata: dict[str, Any] = {"customer_messages": [message], "intent": analysis.intent}
        weight = fields.total_weight
        if weight is None or weight < MIN_TOTAL_WEIGHT:
            # placeholder until the customer gives the real combined weight
            weight = MIN_TOTAL_WEIGHT
            metadata["total_weight_confirmed"] = False

        operator = Operator.infer(message["content"])
        operator_name = (
            self._cfg.directory.operator(operator).name if operator != Operator.OTHER else None
        )
        try:
            booking = await create_booking_with_ref_code(
                self._cfg.store,
                {
                    "status": BookingStatus.COLLECTING_INFO,
                    "customer_name": fields.name,
                    "customer_email": email,
                    "customer_phone": fields.phone,
                    "party_size": fields.party_size,
                    "preferred_date": fields.preferred_date,
                    "time_window": fields.time_window,
                    "doors_off": fields.doors_off,
                    "hotel": fields.hotel,
                    "special_requests": fields.special_requests,
                    "total_weight": weight,
                    "operator_name": operator_name,
                    "operator_key": operator,
                    "source": "email",
                    "metadata": metadata,
                },
                self._cfg.settings.ref_code_attempts,
            )
        except ConstraintError as exc:
            log.error("Could not create inquiry booking for %s: %s", email, exc)
            return HandlerResult.failure(exc)

        log.info("booking=%s ref=%s created from email inquiry", booking.id, booking.ref_code)
        sent = await self._notify(
            email, TemplateKind.INQUIRY_ACK, self._template_data(booking), booking.ref_code
        )
        return HandlerResult(
            success=True,
            action="created",
            data={
                "booking_id": booking.id,
                "ref_code": booking.ref_code,
                "status": booking.status.value,
                "acknowledged": sent.success,
            },
        )

    async def _existing(
        self,
        booking: Booking,
        analysis: EmailAnalysis,
        message: dict[str, Any],
        body: str,
        subject: str | None,
    ) -> HandlerResult:
        changes = merge_extracted_fields(booking, analysis.fields)

        meta: dict[str, Any] = {
            "customer_messages": [*booking.metadata.get("customer_messages", []), message],
        }
        if "total_weight" in changes:
            meta["total_weight_confirmed"] = True
        if booking.status == BookingStatus.AWAITING_PAYMENT:
            choice = await self._availability_choice(body, booking)
            if choice:
                meta["customer_availability_reply"] = choice
        changes["metadata"] = merge_metadata(booking.metadata, meta)

        booking = await self._cfg.store.update(booking.id, changes)
        log.info("booking=%s ref=%s customer reply merged fields=%s",
                 booking.id, booking.ref_code,
                 sorted(k for k in changes if k != "metadata") or "-")

        sent = await self._notify(
            booking.customer_email,
            TemplateKind.REPLY_ACK,
            self._template_data(booking, subject=subject),
            booking.ref_code,
        )
        return HandlerResult(
            success=True,
            action="updated",
            data={
                "booking_id": booking.id,
                "ref_code": booking.ref_code,
                "status": booking.status.value,
                "updated_fields": sorted(k for k in changes if k != "metadata"),
                "acknowledged": sent.success,
            },
        )

    async def _availability_choice(self, body: str, booking: Booking) -> dict[str, Any] | None:
        try:
            reply = await self._cfg.extractor.analyze_availability_reply(body)
        except ExtractionFailure as exc:
            log.warning("ref=%s availability reply not analyzed: %s", booking.ref_code, exc)
            return None
        if not reply.chosen_time_slot and not reply.confirms_proposed_time:
            return None
        return {
            "chosen_time_slot": reply.chosen_time_slot,
            "confirms_proposed_time": reply.confirms_proposed_time,
            "received_at": utcnow_iso(),
        }

    def _brand_data(self) -> dict[str, Any]:
        settings = self._cfg.settings
        return {"brand_name": settings.brand_name, "phone_number": settings.phone_number}
