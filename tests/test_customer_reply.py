"""
CustomerReplyHandler tests — spam, new inquiries, replies on an existing
booking, and replies to the availability follow-up.
"""

from dataclasses import replace

import pytest

from helitour.adapters.simulator_intent import SimulatorIntentExtractor
from helitour.communication.ports import TemplateKind
from helitour.domain.booking import BookingStatus
from helitour.handlers.customer_reply import CustomerReplyHandler, parse_sender
from tests.mailboxes import CUSTOMER

SPAM = "Boost your SEO today! Premium backlinks, click here. Unsubscribe anytime."


@pytest.fixture
def handler(config):
    return CustomerReplyHandler(config)


def test_parse_sender():
    assert parse_sender("Jane Doe <Jane@Example.com>") == "jane@example.com"
    assert parse_sender("jane@example.com") == "jane@example.com"
    assert parse_sender("not an address") is None
    assert parse_sender(None) is None


@pytest.mark.asyncio
async def test_invalid_sender_rejected(handler, notifier):
    result = await handler.handle("hello", "nobody")
    assert not result.success
    assert result.error == "validation_error"
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_confident_spam_is_dropped_silently(handler, store, notifier):
    result = await handler.handle(SPAM, "seo@spam.example", "Grow your traffic")

    assert result.action == "spam"
    assert result.data["replied"] is False
    assert await store.latest_for_customer("seo@spam.example") is None
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_spam_deflection_when_enabled(config, notifier):
    config.settings = replace(config.settings, reply_to_spam=True)
    result = await CustomerReplyHandler(config).handle(SPAM, "seo@spam.example")

    assert result.action == "spam"
    assert result.data["replied"] is True
    [email] = notifier.sent
    assert email.kind == TemplateKind.SPAM_DEFLECTION


@pytest.mark.asyncio
async def test_weak_spam_signal_is_not_acted_on(handler, notifier):
    result = await handler.handle(
        "Loved your newsletter! What is your office address?", "fan@example.com"
    )
    assert result.action == "how_to_book"
    [email] = notifier.sent
    assert email.kind == TemplateKind.HOW_TO_BOOK


@pytest.mark.asyncio
async def test_new_inquiry_creates_collecting_info_booking(handler, store, notifier):
    result = await handler.handle(
        "Hi, I'd like to book a helicopter tour for 4 people on 2026-07-04 in the "
        "morning. My name is Sam Carter.",
        "Sam Carter <Sam@Example.com>",
        "Tour request",
    )

    assert result.action == "created"
    booking = await store.get(result.data["booking_id"])
    assert booking.status == BookingStatus.COLLECTING_INFO
    assert booking.source == "email"
    assert booking.customer_email == "sam@example.com"
    assert booking.customer_name == "Sam Carter"
    assert booking.party_size == 4
    assert booking.total_weight == 100
    assert booking.metadata["total_weight_confirmed"] is False
    assert booking.metadata["customer_messages"][0]["subject"] == "Tour request"

    [email] = notifier.sent_to("sam@example.com")
    assert email.kind == TemplateKind.INQUIRY_ACK
    assert booking.ref_code in email.rendered.subject


@pytest.mark.asyncio
async def test_inquiry_mentioning_rainbow_is_routed_to_rainbow(handler, store):
    result = await handler.handle(
        "Can we book the Rainbow doors-off tour for 2 people on 2026-07-04?",
        "sam@example.com",
    )
    booking = await store.get(result.data["booking_id"])
    assert booking.operator_name == "Rainbow Helicopters"
    assert booking.doors_off is True


@pytest.mark.asyncio
async def test_booking_words_without_details_get_how_to_book(handler, store, notifier):
    result = await handler.handle("Do you do helicopter tours?", "curious@example.com")

    assert result.action == "how_to_book"
    assert await store.latest_for_customer("curious@example.com") is None
    assert notifier.sent[0].kind == TemplateKind.HOW_TO_BOOK


@pytest.mark.asyncio
async def test_reply_merges_fields_without_touching_status(handler, make_booking, store, notifier):
    booking = await make_booking(status=BookingStatus.CONTACTED_OPERATOR)

    result = await handler.handle(
        "Quick update: we are 3 people now, total weight 480 lbs.",
        f"Jane Doe <{CUSTOMER.upper()}>",
        "Re: We received your helicopter tour request",
    )

    assert result.action == "updated"
    assert result.data["updated_fields"] == ["party_size", "total_weight"]
    stored = await store.get(booking.id)
    assert stored.status == BookingStatus.CONTACTED_OPERATOR
    assert stored.party_size == 3
    assert stored.total_weight == 480
    assert stored.metadata["total_weight_confirmed"] is True
    assert stored.metadata["tour_name"] == "Blue Skies of Oahu"
    assert len(stored.metadata["customer_messages"]) == 1

    [ack] = notifier.sent_to(CUSTOMER)
    assert ack.kind == TemplateKind.REPLY_ACK
    assert ack.rendered.subject == "Re: We received your helicopter tour request"


@pytest.mark.asyncio
async def test_messages_accumulate(handler, make_booking, store):
    booking = await make_booking()
    await handler.handle("First note", CUSTOMER)
    await handler.handle("Second note", CUSTOMER)

    messages = (await store.get(booking.id)).metadata["customer_messages"]
    assert [m["content"] for m in messages] == ["First note", "Second note"]


@pytest.mark.asyncio
async def test_reply_to_follow_up_records_chosen_slot(handler, make_booking, store):
    booking = await make_booking(status=BookingStatus.AWAITING_PAYMENT)

    await handler.handle("Yes, the 10:30 AM slot works for us, thanks!", CUSTOMER)

    stored = await store.get(booking.id)
    assert stored.status == BookingStatus.AWAITING_PAYMENT
    choice = stored.metadata["customer_availability_reply"]
    assert choice["chosen_time_slot"] == "10:30 AM"
    assert choice["confirms_proposed_time"] is True


@pytest.mark.asyncio
async def test_extraction_outage_still_acknowledges(config, make_booking, store, notifier):
    config.extractor = SimulatorIntentExtractor(fail=True)
    booking = await make_booking()

    result = await CustomerReplyHandler(config).handle("We are 5 people now", CUSTOMER)

    assert result.action == "updated"
    assert result.data["updated_fields"] == []
    assert (await store.get(booking.id)).party_size == 2
    assert notifier.sent_to(CUSTOMER)[0].kind == TemplateKind.REPLY_ACK
