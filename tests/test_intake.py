"""
BookingIntake tests — validation, reference codes, operator routing and the
two emails every new booking sends.
"""

import pytest

from helitour.adapters.memory_store import InMemoryBookingStore
from helitour.adapters.simulator_availability import SimulatorAvailabilityProbe
from helitour.communication.ports import TemplateKind
from helitour.domain.booking import BookingStatus, Operator
from helitour.domain.errors import ConstraintError, DuplicateRefCode
from helitour.handlers.intake import BookingIntake, NewBookingRequest, create_booking_with_ref_code
from tests.mailboxes import BLUE_HAWAIIAN_EMAIL, CUSTOMER, HUB, RAINBOW_EMAIL


def _request(**overrides) -> NewBookingRequest:
    values = dict(
        name="Jane Doe",
        email=CUSTOMER,
        party_size=2,
        preferred_date="2026-05-10",
        total_weight=340,
        phone="808-555-0100",
        time_window="morning",
        tour_name="Blue Skies of Oahu",
    )
    values.update(overrides)
    return NewBookingRequest(**values)


@pytest.fixture
def intake(config):
    return BookingIntake(config)


@pytest.mark.asyncio
async def test_creates_pending_booking_and_sends_both_emails(intake, store, notifier):
    result = await intake.submit(_request())

    assert result.success
    assert result.action == "created"
    assert result.data["operator_email_sent"] is True
    assert result.data["customer_email_sent"] is True

    booking = await store.get(result.data["booking_id"])
    assert booking.status == BookingStatus.PENDING
    assert booking.operator_key == Operator.BLUE_HAWAIIAN
    assert booking.metadata["tour_name"] == "Blue Skies of Oahu"
    assert booking.metadata["estimated_total"] == 598
    assert booking.total_amount is None

    [operator_email] = notifier.sent_of_kind(TemplateKind.BOOKING_REQUEST)
    assert operator_email.to == [BLUE_HAWAIIAN_EMAIL, HUB]
    assert booking.ref_code in operator_email.rendered.subject
    assert "8:00 AM" in operator_email.rendered.text      # probe result included

    [customer_email] = notifier.sent_of_kind(TemplateKind.BOOKING_RECEIVED)
    assert customer_email.to == [CUSTOMER]
    assert notifier.sent.index(operator_email) < notifier.sent.index(customer_email)


@pytest.mark.asyncio
async def test_rainbow_gets_inquiry_without_probe(intake, store, notifier, probe):
    result = await intake.submit(
        _request(operator_preference=Operator.RAINBOW, tour_name="Oahu Scenic Tour")
    )

    assert result.data["operator"] == "rainbow"
    assert probe.calls == []
    [inquiry] = notifier.sent_of_kind(TemplateKind.RAINBOW_INQUIRY)
    assert inquiry.to[0] == RAINBOW_EMAIL
    assert notifier.sent_of_kind(TemplateKind.BOOKING_REQUEST) == []


@pytest.mark.asyncio
async def test_probe_failure_does_not_block_booking(config, store, notifier):
    config.probe = SimulatorAvailabilityProbe(error="widget timed out")
    result = await BookingIntake(config).submit(_request())

    assert result.success
    booking = await store.get(result.data["booking_id"])
    assert booking.metadata["availability_check"]["source"] == "error"
    [operator_email] = notifier.sent_of_kind(TemplateKind.BOOKING_REQUEST)
    assert "manual check required" in operator_email.rendered.text


@pytest.mark.asyncio
@pytest.mark.parametrize("overrides, message", [
    ({"total_weight": 90}, "total_weight"),
    ({"email": "not-an-email"}, "email"),
    ({"party_size": 0}, "party_size"),
    ({"preferred_date": "May 10"}, "preferred_date"),
    ({"source": "fax"}, "source"),
])
async def test_invalid_request_creates_nothing(intake, store, notifier, overrides, message):
    result = await intake.submit(_request(**overrides))

    assert not result.success
    assert result.error == "validation_error"
    assert message in result.message
    assert await store.latest_for_customer(CUSTOMER) is None
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_customer_send_failure_keeps_booking(config, store, notifier):
    notifier.fail_recipients = {CUSTOMER}
    result = await BookingIntake(config).submit(_request())

    assert result.success
    assert result.data["customer_email_sent"] is False
    assert await store.get(result.data["booking_id"]) is not None


class CollidingStore(InMemoryBookingStore):
    """Rejects the first *collisions* inserts as duplicate reference codes."""

    def __init__(self, collisions: int):
        super().__init__()
        self.collisions = collisions
        self.attempts = 0

    async def create(self, fields):
        self.attempts += 1
        if self.attempts <= self.collisions:
            raise DuplicateRefCode(fields["ref_code"])
        return await super().create(fields)


@pytest.mark.asyncio
async def test_ref_code_collision_is_retried():
    store = CollidingStore(collisions=2)
    booking = await create_booking_with_ref_code(store, {"status": BookingStatus.PENDING}, attempts=3)
    assert booking.ref_code.startswith("HTO-")
    assert store.attempts == 3


@pytest.mark.asyncio
async def test_ref_code_collisions_exhausted():
    store = CollidingStore(collisions=3)
    with pytest.raises(ConstraintError):
        await create_booking_with_ref_code(store, {"status": BookingStatus.PENDING}, attempts=3)
