"""
StatusUpdate tests — the explicit status write path.
"""

import pytest

from helitour.domain.booking import BookingStatus
from helitour.handlers.status_update import StatusUpdate


@pytest.fixture
def updater(config):
    return StatusUpdate(config)


@pytest.mark.asyncio
async def test_confirm_with_number_and_amount(updater, make_booking, store):
    booking = await make_booking(status=BookingStatus.AWAITING_PAYMENT)

    result = await updater.apply(
        booking.id, "confirmed", confirmation_number="BH777", total_amount=598.0,
        metadata={"paid_via": "phone"},
    )

    assert result.success
    assert result.data["status"] == "confirmed"
    assert result.data["version"] == booking.version + 1
    stored = await store.get(booking.id)
    assert stored.confirmation_number == "BH777"
    assert stored.total_amount == 598.0
    assert stored.metadata["paid_via"] == "phone"
    assert stored.metadata["previous_status"] == "awaiting_payment"
    assert stored.metadata["tour_name"] == "Blue Skies of Oahu"


@pytest.mark.asyncio
async def test_unknown_status_rejected(updater, make_booking, store):
    booking = await make_booking()
    result = await updater.apply(booking.id, "paid")

    assert not result.success
    assert result.error == "validation_error"
    assert "awaiting_payment" in result.message
    assert (await store.get(booking.id)).status == BookingStatus.PENDING


@pytest.mark.asyncio
async def test_negative_amount_rejected(updater, make_booking):
    booking = await make_booking()
    result = await updater.apply(booking.id, "confirmed", total_amount=-1)
    assert result.error == "validation_error"


@pytest.mark.asyncio
async def test_unknown_booking(updater):
    result = await updater.apply("does-not-exist", "cancelled")
    assert result.error == "booking_not_found"


@pytest.mark.asyncio
async def test_terminal_status_is_final(updater, make_booking, store):
    booking = await make_booking(status=BookingStatus.CANCELLED)
    result = await updater.apply(booking.id, "pending")

    assert result.error == "invalid_status_transition"
    assert (await store.get(booking.id)).status == BookingStatus.CANCELLED


@pytest.mark.asyncio
async def test_confirmed_can_complete(updater, make_booking):
    booking = await make_booking(status=BookingStatus.CONFIRMED)
    result = await updater.apply(booking.id, "completed")
    assert result.success


@pytest.mark.asyncio
async def test_stale_version_is_a_conflict(updater, make_booking, store):
    booking = await make_booking()
    await updater.apply(booking.id, "contacted_operator", expected_version=booking.version)

    result = await updater.apply(booking.id, "cancelled", expected_version=booking.version)

    assert result.action == "conflict"
    assert result.error == "concurrent_update"
    assert (await store.get(booking.id)).status == BookingStatus.CONTACTED_OPERATOR
