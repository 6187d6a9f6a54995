"""
Router and daemon behaviour tests for poll_once().

Uses simulators only — no network, no credentials.
Covers: operator/customer routing, internal senders, invalid senders,
        error isolation between messages, and the outbox retry sweep.
"""

from datetime import timedelta

import pytest

from helitour.adapters.sqlite_outbox import SqliteOutbox
from helitour.communication.console_notifier import ConsoleInbox
from helitour.communication.outbox_notifier import OutboxNotifier
from helitour.communication.ports import InboundEmail, Inbox, TemplateKind
from helitour.daemon import poll_once
from helitour.domain.booking import BookingStatus
from helitour.router import InboundRouter
from tests.mailboxes import AGENT, BLUE_HAWAIIAN_EMAIL, CUSTOMER


@pytest.fixture
def router(config):
    return InboundRouter(config)


@pytest.fixture
def inbox():
    return ConsoleInbox()


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_operator_sender_goes_to_operator_handler(router, make_booking, store):
    booking = await make_booking()

    result = await router.route(InboundEmail(
        sender=f"Blue Hawaiian Reservations <{BLUE_HAWAIIAN_EMAIL}>",
        subject=f"Re: New Helicopter Tour Booking Request - {booking.ref_code}",
        body="Confirmed! Booking #12345.",
    ))

    assert result.action == "confirmation"
    assert (await store.get(booking.id)).status == BookingStatus.CONFIRMED


@pytest.mark.asyncio
async def test_other_sender_goes_to_customer_handler(router, make_booking, store):
    booking = await make_booking()

    result = await router.route(InboundEmail(
        sender=f"Jane <{CUSTOMER}>", subject="Re: your request", body="We are 3 people now."
    ))

    assert result.action == "updated"
    assert (await store.get(booking.id)).party_size == 3


@pytest.mark.asyncio
async def test_internal_sender_is_ignored(router, store, notifier):
    result = await router.route(InboundEmail(sender=AGENT, subject="fwd", body="Book a tour?"))

    assert result.action == "ignored"
    assert await store.latest_for_customer(AGENT) is None
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_unusable_sender(router, notifier):
    result = await router.route(InboundEmail(sender="MAILER-DAEMON", subject="", body="bounce"))
    assert result.error == "validation_error"
    assert notifier.sent == []


# ---------------------------------------------------------------------------
# poll_once
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_poll_once_routes_every_message(router, inbox, make_booking):
    await make_booking()
    inbox.simulate_message(CUSTOMER, "Re: tour", "Can we add a hotel pickup? Staying at Hilton Hawaiian Village.")
    inbox.simulate_message("new@example.com", "Hello", "What is your office address?")

    results = await poll_once(router, inbox)

    assert [r.action for r in results] == ["updated", "how_to_book"]
    assert await inbox.poll() == []


class ExplodingRouter(InboundRouter):
    """Raises on the first message, then behaves normally."""

    def __init__(self, config):
        super().__init__(config)
        self.exploded = False

    async def route(self, message):
        if not self.exploded:
            self.exploded = True
            raise RuntimeError("database is locked")
        return await super().route(message)


@pytest.mark.asyncio
async def test_poll_once_isolates_failures(config, inbox):
    inbox.simulate_message("first@example.com", "Hi", "hello")
    inbox.simulate_message("second@example.com", "Hi", "hello")

    results = await poll_once(ExplodingRouter(config), inbox)

    assert len(results) == 1
    assert results[0].action == "how_to_book"


class BrokenInbox(Inbox):

    async def poll(self):
        raise ConnectionError("IMAP server unreachable")


@pytest.mark.asyncio
async def test_poll_once_survives_inbox_outage(router):
    assert await poll_once(router, BrokenInbox()) == []


@pytest.mark.asyncio
async def test_poll_once_retries_failed_outbox_entries(config, inbox, notifier):
    outbox = SqliteOutbox(":memory:")
    wrapped = OutboxNotifier(notifier, outbox, base_delay=timedelta(0))
    config.notifier = wrapped
    router = InboundRouter(config)

    notifier.fail_recipients = {"new@example.com"}
    inbox.simulate_message("new@example.com", "Hello", "What is your office address?")
    await poll_once(router, inbox, wrapped)
    assert len(await outbox.entries("failed")) == 1

    notifier.fail_recipients = set()
    await poll_once(router, inbox, wrapped)

    assert await outbox.entries("failed") == []
    assert notifier.sent_of_kind(TemplateKind.HOW_TO_BOOK)[0].to == ["new@example.com"]
