"""
PhoneTranscriptHandler tests — what the voice agent says next, and when a
booking is (and is not) created from a call.
"""

import re

import pytest

from helitour.adapters.simulator_intent import SimulatorIntentExtractor
from helitour.communication.ports import TemplateKind
from helitour.domain.booking import BookingStatus, ExtractedFields, Operator
from helitour.handlers.phone_transcript import (
    CallEvent,
    PhoneTranscriptHandler,
    missing_fields,
    operator_preference,
)
from tests.mailboxes import RAINBOW_EMAIL

CALLER = "+18085550123"


def _transcript(window: str = " in the morning", weight: str = "320", extra: str = "") -> str:
    return (
        "assistant: Aloha, thanks for calling! How can I help?\n"
        "user: Hi, I want to book a helicopter tour. My name is Sam Carter.\n"
        "user: My email is sam.carter@example.com and we are a party of 2.\n"
        f"user: We'd like 2026-01-30{window}. Total weight is {weight} lbs.{extra}"
    )


def _ended(transcript: str) -> CallEvent:
    return CallEvent(transcript=transcript, caller_phone=CALLER, call_status="ended")


@pytest.fixture
def handler(config):
    return PhoneTranscriptHandler(config)


@pytest.mark.asyncio
async def test_complete_call_creates_pending_booking(handler, store, notifier):
    result = await handler.handle(_ended(_transcript()))

    assert result.success
    assert result.action == "booking_created"
    ref_code = result.data["ref_code"]
    assert re.fullmatch(r"HTO-[A-Z0-9]{6}", ref_code)
    assert ref_code in result.message

    booking = await store.get_by_ref_code(ref_code)
    assert booking.status == BookingStatus.PENDING
    assert booking.source == "phone"
    assert booking.total_weight == 320
    assert booking.customer_phone == CALLER
    assert booking.operator_key == Operator.BLUE_HAWAIIAN
    assert "party of 2" in booking.metadata["call_transcript"]

    [received] = notifier.sent_of_kind(TemplateKind.BOOKING_RECEIVED)
    assert received.to == ["sam.carter@example.com"]


@pytest.mark.asyncio
async def test_missing_time_window_asks_for_it(handler, store, notifier):
    result = await handler.handle(_ended(_transcript(window="")))

    assert result.action == "need_more_info"
    assert result.data["missing_fields"] == ["time_window"]
    assert "time_window" in result.message
    assert await store.latest_for_customer("sam.carter@example.com") is None
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_implausible_weight_blocks_booking(handler, store):
    result = await handler.handle(_ended(_transcript(weight="80")))

    assert result.action == "need_more_info"
    assert result.data["missing_fields"] == ["total_weight"]
    assert await store.latest_for_customer("sam.carter@example.com") is None


@pytest.mark.asyncio
async def test_rainbow_mentioned_routes_to_rainbow(handler, store, notifier):
    result = await handler.handle(
        _ended(_transcript(extra=" We saw the Rainbow doors-off flight online."))
    )

    booking = await store.get_by_ref_code(result.data["ref_code"])
    assert booking.operator_key == Operator.RAINBOW
    [inquiry] = notifier.sent_of_kind(TemplateKind.RAINBOW_INQUIRY)
    assert inquiry.to[0] == RAINBOW_EMAIL


@pytest.mark.asyncio
async def test_spam_call_ends_politely(handler, store, extractor):
    result = await handler.handle(_ended(
        "user: We're calling about your car's extended warranty, press one now."
    ))

    assert result.action == "end_call"
    assert result.data["is_spam"] is True
    assert "extract_call" not in extractor.calls
    assert await store.latest_for_customer("sam.carter@example.com") is None


@pytest.mark.asyncio
async def test_unrelated_call_is_deflected(handler):
    result = await handler.handle(_ended("user: Hi, is this the pizza place on King Street?"))

    assert result.action == "end_call"
    assert result.data["is_booking_request"] is False


@pytest.mark.asyncio
async def test_oversized_party_reported_as_failure(handler, store):
    result = await handler.handle(_ended(
        _transcript().replace("a party of 2", "a party of 25")
    ))

    assert not result.success
    assert result.action == "failed"
    assert result.error == "validation_error"
    assert await store.latest_for_customer("sam.carter@example.com") is None


@pytest.mark.asyncio
async def test_in_progress_event_waits(handler, extractor):
    result = await handler.handle(CallEvent(call_status="in-progress"))
    assert result.action == "waiting"
    assert extractor.calls == []


@pytest.mark.asyncio
async def test_ended_without_transcript(handler):
    result = await handler.handle(CallEvent(call_status="ended"))
    assert result.action == "no_transcript"


def test_event_from_webhook_payload():
    event = CallEvent.from_webhook({
        "message": {
            "type": "end-of-call-report",
            "conversation": [
                {"role": "assistant", "content": "How can I help?"},
                {"role": "user", "content": "I'd like to book a tour."},
            ],
            "call": {"status": "ended", "customer": {"number": CALLER}},
        }
    })
    assert event.is_ended
    assert event.caller_phone == CALLER
    assert event.full_transcript() == "assistant: How can I help?\nuser: I'd like to book a tour."


def test_missing_fields_in_asking_order():
    fields = ExtractedFields(name="Sam", party_size=2, total_weight=99)
    assert missing_fields(fields) == ["email", "preferred_date", "time_window", "total_weight"]


def test_blank_name_and_empty_party_count_as_missing():
    fields = ExtractedFields(
        name="  ", email="sam@example.com", party_size=0, preferred_date="2026-01-30",
        time_window=" ", total_weight=320,
    )
    assert missing_fields(fields) == ["name", "party_size", "time_window"]


class BlankNameExtractor(SimulatorIntentExtractor):
    """Hears the booking but catches a blank name and a party of zero."""

    async def extract_call(self, transcript, caller_phone=None):
        extraction = await super().extract_call(transcript, caller_phone)
        extraction.fields.name = "   "
        extraction.fields.party_size = 0
        return extraction


@pytest.mark.asyncio
async def test_blank_name_asks_again_instead_of_failing(config, store, notifier):
    config.extractor = BlankNameExtractor()

    result = await PhoneTranscriptHandler(config).handle(_ended(_transcript()))

    assert result.success
    assert result.action == "need_more_info"
    assert result.data["missing_fields"] == ["name", "party_size"]
    assert "name, party_size" in result.message
    assert await store.latest_for_customer("sam.carter@example.com") is None
    assert notifier.sent == []


def test_operator_preference():
    assert operator_preference("We want RAINBOW helicopters") == Operator.RAINBOW
    assert operator_preference("Any operator is fine") == Operator.BLUE_HAWAIIAN
