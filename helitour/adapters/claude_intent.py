"""
ClaudeIntentExtractor — uses the Claude API to classify inbound messages.

The system prompts in helitour/prompts/ are the source of truth for the
classification rules.  Each prompt returns JSON that maps directly onto the
dataclasses in helitour.domain.intent.  Any API error or malformed response
is raised as ExtractionFailure; callers decide the safe default.
"""

import json
import logging
import os
from typing import Any

import anthropic

from helitour.domain.booking import ExtractedFields
from helitour.domain.errors import ExtractionFailure
from helitour.domain.intent import (
    AvailabilityReply,
    CallExtraction,
    EmailAnalysis,
    IntentExtractor,
    OperatorReply,
    SpamVerdict,
)
from helitour.prompts import load_prompt

log = logging.getLogger(__name__)


class ClaudeIntentExtractor(IntentExtractor):
    """Intent extractor backed by Claude claude-haiku-4-5-20251001 (fast + cheap)."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "claude-haiku-4-5-20251001",
        bookings_hub: str = "bookings@helicoptertoursonoahu.com",
        brand_name: str = "Helicopter Tours on Oahu",
        client: Any = None,
    ):
        self._client = client or anthropic.Anthropic(
            api_key=api_key or os.environ["ANTHROPIC_API_KEY"]
        )
        self._model = model
        self._spam_prompt = load_prompt("spam", bookings_hub=bookings_hub)
        self._email_prompt = load_prompt("email_analysis")
        self._operator_prompt = load_prompt("operator_reply")
        self._call_prompt = load_prompt("call_transcript", brand_name=brand_name)
        self._availability_prompt = load_prompt("availability_reply")

    async def detect_spam(
        self, text: str, sender: str | None = None, subject: str | None = None
    ) -> SpamVerdict:
        user_content = (
            f"From: {sender or 'unknown'}\n"
            f"Subject: {subject or 'no subject'}\n"
            f"Content:\n{text}\n\n"
            "Is this spam or a real booking inquiry?"
        )
        data = self._ask(self._spam_prompt, user_content, max_tokens=200)
        return SpamVerdict(
            is_spam=bool(data.get("is_spam", False)),
            confidence=float(data.get("confidence", 0.5)),
            reason=data.get("reason"),
        )

    async def analyze_email(
        self, text: str, sender: str | None = None, subject: str | None = None
    ) -> EmailAnalysis:
        user_content = (
            f"From: {sender or 'unknown'}\n"
            f"Subject: {subject or 'no subject'}\n\n"
            f"Analyze this email:\n{text}"
        )
        data = self._ask(self._email_prompt, user_content, max_tokens=512)
        return EmailAnalysis(
            is_booking_request=bool(data.get("is_booking_request", False)),
            intent=data.get("intent"),
            fields=_to_fields(data.get("fields")),
        )

    async def parse_operator_reply(self, text: str) -> OperatorReply:
        data = self._ask(
            self._operator_prompt, f"Parse this operator reply:\n\n{text}", max_tokens=512
        )
        dates = data.get("available_dates")
        price = data.get("price")
        number = data.get("confirmation_number")
        return OperatorReply(
            is_confirmation=bool(data.get("is_confirmation", False)),
            is_rejection=bool(data.get("is_rejection", False)),
            will_handle_directly=bool(data.get("will_handle_directly", False)),
            confirmation_number=str(number) if number else None,
            available_dates=[str(d) for d in dates] if isinstance(dates, list) else [],
            price=float(price) if price is not None else None,
            notes=data.get("notes") or None,
        )

    async def extract_call(
        self, transcript: str, caller_phone: str | None = None
    ) -> CallExtraction:
        user_content = (
            "Analyze this phone call transcript and extract booking information:\n\n"
            f"{transcript}\n\n"
            f"Caller phone: {caller_phone or 'unknown'}"
        )
        data = self._ask(self._call_prompt, user_content, max_tokens=768)
        return CallExtraction(
            is_booking_request=bool(data.get("is_booking_request", False)),
            confidence=float(data.get("confidence", 0.5)),
            intent=data.get("intent"),
            fields=_to_fields(data.get("fields")),
        )

    async def analyze_availability_reply(self, text: str) -> AvailabilityReply:
        data = self._ask(self._availability_prompt, text, max_tokens=128)
        return AvailabilityReply(
            chosen_time_slot=data.get("chosen_time_slot") or None,
            confirms_proposed_time=data.get("confirms_proposed_time") is True,
        )

    # ------------------------------------------------------------------

    def _ask(self, system: str, user_content: str, max_tokens: int) -> dict:
        try:
            response = self._client.messages.create(
                model=self._model,
                max_tokens=max_tokens,
                system=system,
                messages=[{"role": "user", "content": user_content}],
            )
        except anthropic.APIError as exc:
            log.warning("Claude request failed: %s", exc)
            raise ExtractionFailure(str(exc)) from exc

        raw = response.content[0].text.strip()
        try:
            data = parse_json_reply(raw)
        except ValueError as exc:
            log.warning("Unparseable Claude reply: %r", raw[:200])
            raise ExtractionFailure(f"unparseable reply: {exc}") from exc
        if not isinstance(data, dict):
            raise ExtractionFailure("reply is not a JSON object")
        return data


def parse_json_reply(raw: str) -> Any:
    """json.loads, tolerating a markdown code fence around the payload."""
    raw = raw.strip()
    if raw.startswith("```"):
        raw = raw.split("```")[1]
        if raw.startswith("json"):
            raw = raw[4:]
    return json.loads(raw)


def _to_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def _to_fields(data: Any) -> ExtractedFields:
    if not isinstance(data, dict):
        return ExtractedFields()
    doors_off = data.get("doors_off")
    return ExtractedFields(
        name=data.get("name") or None,
        email=data.get("email") or None,
        phone=data.get("phone") or None,
        party_size=_to_int(data.get("party_size")),
        preferred_date=data.get("preferred_date") or None,
        time_window=data.get("time_window") or None,
        doors_off=doors_off if isinstance(doors_off, bool) else None,
        hotel=data.get("hotel") or None,
        special_requests=data.get("special_requests") or None,
        total_weight=_to_int(data.get("total_weight")),
    )
