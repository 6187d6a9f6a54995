"""
PhoneTranscriptHandler — a finished call from the voice booking agent.

Flow:
  1. Code: ignore in-progress events that carry no transcript yet
  2. AI: spam / off-topic check → polite end-of-call message
  3. AI: booking extraction; low confidence or not a booking → deflection
  4. Code: required-field gate, in a fixed order, BEFORE anything is stored
  5. Code: operator preference from the transcript text
  6. BookingIntake: create the pending booking and send both emails

The returned HandlerResult.message is what the voice agent says next.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from helitour.domain.booking import MIN_TOTAL_WEIGHT, ExtractedFields, Operator
from helitour.domain.errors import ExtractionFailure
from helitour.domain.intent import CallExtraction, SpamVerdict
from helitour.handlers.base import Handler, HandlerResult
from helitour.handlers.intake import BookingIntake, NewBookingRequest

log = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "email", "party_size", "preferred_date", "time_window", "total_weight")

_ENDED_STATUSES = {"ended", "ended-by-customer", "ended-by-assistant"}
_ENDED_EVENTS = {"end-of-call-report", "hang"}


@dataclass
class CallEvent:
    """One webhook event from the voice platform."""
    transcript: str | None = None
    turns: list[dict[str, str]] = field(default_factory=list)
    caller_phone: str | None = None
    call_status: str | None = None
    event_type: str | None = None
    ended_reason: str | None = None

    @property
    def is_ended(self) -> bool:
        return (
            self.call_status in _ENDED_STATUSES
            or self.event_type in _ENDED_EVENTS
            or bool(self.ended_reason)
        )

    def full_transcript(self) -> str:
        if self.transcript and self.transcript.strip():
            return self.transcript.strip()
        return "\n".join(
            f"{t.get('role', '')}: {t.get('content', '')}" for t in self.turns
        ).strip()

    @classmethod
    def from_webhook(cls, payload: dict[str, Any]) -> "CallEvent":
        """Build from a voice-platform webhook body ({"message": {...}} or flat)."""
        message = payload.get("message") or payload
        call = message.get("call") or {}
        customer = call.get("customer") or {}
        return cls(
            transcript=message.get("transcript") or payload.get("transcript"),
            turns=list(message.get("conversation") or []),
            caller_phone=customer.get("number") or call.get("phoneNumber"),
            call_status=call.get("status"),
            event_type=message.get("type"),
            ended_reason=call.get("endedReason"),
        )


def missing_fields(fields: ExtractedFields) -> list[str]:
    """Required fields that are absent, in the order the agent asks for them."""
    missing = []
    for name in REQUIRED_FIELDS:
        value = getattr(fields, name)
        if isinstance(value, str):
            value = value.strip()
        if name == "total_weight":
            if value is None or value < MIN_TOTAL_WEIGHT:
                missing.append(name)
        elif name == "party_size":
            if value is None or value < 1:
                missing.append(name)
        elif not value:
            missing.append(name)
    return missing


def operator_preference(transcript: str) -> Operator:
    lower = transcript.lower()
    if "rainbow" in lower:
        return Operator.RAINBOW
    return Operator.BLUE_HAWAIIAN


class PhoneTranscriptHandler(Handler):

    def __init__(self, config, intake: BookingIntake | None = None):
        super().__init__(config)
        self._intake = intake or BookingIntake(config)

    async def handle(self, event: CallEvent) -> HandlerResult:
        brand = self._cfg.settings.brand_name
        transcript = event.full_transcript()

        if not event.is_ended and not transcript:
            return HandlerResult(
                success=True, action="waiting",
                message="Event received, waiting for call completion",
            )
        if not transcript:
            return HandlerResult(success=True, action="no_transcript",
                                 message="No transcript available")

        verdict = await self._spam_verdict(transcript, event.caller_phone)
        if verdict.is_confident_spam(self._cfg.settings.spam_threshold):
            log.info("Spam call from %s ended politely", event.caller_phone or "unknown")
            return HandlerResult(
                success=True, action="end_call", data={"is_spam": True},
                message=(f"Thank you for calling {brand}. If you're interested in booking a "
                         "tour, please visit our website or call back. Have a great day!"),
            )

        extraction = await self._extraction(transcript, event.caller_phone)
        if (not extraction.is_booking_request
                or extraction.confidence < self._cfg.settings.call_confidence_floor):
            log.info("Call from %s is not a booking (conf=%.2f)",
                     event.caller_phone or "unknown", extraction.confidence)
            return HandlerResult(
                success=True, action="end_call",
                data={"is_booking_request": extraction.is_booking_request,
                      "confidence": extraction.confidence},
                message=(f"Thank you for calling {brand}. If you'd like to book a tour, "
                         "please call back or visit our website. Have a great day!"),
            )

        fields = extraction.fields
        if not fields.phone and event.caller_phone:
            fields.phone = event.caller_phone

        missing = missing_fields(fields)
        if missing:
            log.info("Call from %s missing fields: %s", event.caller_phone or "unknown", missing)
            return HandlerResult(
                success=True, action="need_more_info",
                data={"missing_fields": missing},
                message=("I need a bit more information to complete your booking. "
                         f"Please provide: {', '.join(missing)}. Thank you!"),
            )

        request = NewBookingRequest(
            name=fields.name,
            email=fields.email,
            party_size=fields.party_size,
            preferred_date=fields.preferred_date,
            total_weight=fields.total_weight,
            phone=fields.phone,
            time_window=fields.time_window,
            doors_off=bool(fields.doors_off),
            hotel=fields.hotel,
            special_requests=fields.special_requests,
            source="phone",
            operator_preference=operator_preference(transcript),
            metadata={"call_transcript": transcript[:10000], "call_intent": extraction.intent},
        )
        result = await self._intake.submit(request)
        if not result.success:
            log.warning("Phone booking not created: %s", result.message)
            return HandlerResult(
                success=False, action="failed", error=result.error, data=result.data,
                message=("I apologize, but we encountered an issue processing your booking. "
                         "Please call back or visit our website. Thank you!"),
            )

        ref_code = result.data["ref_code"]
        return HandlerResult(
            success=True,
            action="booking_created",
            data=result.data,
            message=(f"Perfect! I've submitted your booking request. Your reference code is "
                     f"{ref_code}. You'll receive a confirmation email shortly, and we'll "
                     f"check availability and get back to you soon. Thank you for calling {brand}!"),
        )

    async def _spam_verdict(self, transcript: str, caller_phone: str | None) -> SpamVerdict:
        try:
            return await self._cfg.extractor.detect_spam(transcript, caller_phone, "Phone Call")
        except ExtractionFailure as exc:
            log.warning("Call spam check failed, treating as not spam: %s", exc)
            return SpamVerdict(is_spam=False, confidence=0.5, reason="analysis_failed")

    async def _extraction(self, transcript: str, caller_phone: str | None) -> CallExtraction:
        try:
            return await self._cfg.extractor.extract_call(transcript, caller_phone)
        except ExtractionFailure as exc:
            log.warning("Call extraction failed, deflecting: %s", exc)
            return CallExtraction(is_booking_request=False, confidence=0.0, intent="analysis_failed")
