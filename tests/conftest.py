"""
Shared fixtures: fixture mailboxes, simulators, and a booking factory.

No network, no credentials, no LLM API calls.
"""

import pytest

from helitour.adapters.memory_store import InMemoryBookingStore
from helitour.adapters.simulator_availability import SimulatorAvailabilityProbe
from helitour.adapters.simulator_intent import SimulatorIntentExtractor
from helitour.communication.console_notifier import ConsoleNotifier
from helitour.config import Settings
from helitour.domain.booking import BookingStatus, generate_ref_code
from helitour.domain.directory import Directory
from helitour.handlers.base import HandlerConfig
from tests.mailboxes import (
    AGENT,
    ALERTS,
    BLUE_HAWAIIAN,
    CUSTOMER,
    HUB,
    HUB_INBOUND,
    RAINBOW,
)


@pytest.fixture
def directory():
    return Directory(
        bookings_hub=HUB,
        bookings_hub_inbound=HUB_INBOUND,
        internal_alert=ALERTS,
        agent=AGENT,
        operators=(BLUE_HAWAIIAN, RAINBOW),
    )


@pytest.fixture
def settings():
    return Settings(send_delay=0)


@pytest.fixture
def store():
    return InMemoryBookingStore()


@pytest.fixture
def extractor():
    return SimulatorIntentExtractor()


@pytest.fixture
def notifier():
    return ConsoleNotifier(echo=False)


@pytest.fixture
def probe():
    return SimulatorAvailabilityProbe()


@pytest.fixture
def config(store, extractor, notifier, directory, settings, probe):
    return HandlerConfig(
        store=store,
        extractor=extractor,
        notifier=notifier,
        directory=directory,
        settings=settings,
        probe=probe,
    )


@pytest.fixture
def make_booking(store):
    """Insert a booking straight into the store; keyword overrides win."""

    async def _make(**overrides):
        contact = overrides.pop("contact", BLUE_HAWAIIAN)
        fields = {
            "ref_code": generate_ref_code(),
            "status": BookingStatus.PENDING,
            "customer_name": "Jane Doe",
            "customer_email": CUSTOMER,
            "customer_phone": "808-555-0100",
            "party_size": 2,
            "preferred_date": "2026-05-10",
            "time_window": "morning",
            "total_weight": 340,
            "operator_name": contact.name,
            "operator_key": contact.key,
            "source": "web",
            "metadata": {"tour_name": "Blue Skies of Oahu", "island": "Oahu"},
        }
        fields.update(overrides)
        return await store.create(fields)

    return _make
