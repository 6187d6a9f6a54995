"""
Adapter contract for BookingStore.

Any implementation (SQLite, in-memory, ...) must pass these tests.
Subclass this and provide create_store() to run the contract.
"""

from abc import ABC, abstractmethod

import pytest

from helitour.domain.booking import BookingStatus, Operator
from helitour.domain.errors import BookingNotFound, ConcurrentUpdate, DuplicateRefCode
from helitour.domain.store import BookingStore


def _fields(ref_code: str = "HTO-AAAAAA", **overrides) -> dict:
    fields = {
        "ref_code": ref_code,
        "status": BookingStatus.PENDING,
        "customer_name": "Jane Doe",
        "customer_email": "Jane@Example.com",
        "party_size": 2,
        "preferred_date": "2026-05-10",
        "doors_off": True,
        "total_weight": 340,
        "operator_name": "Blue Hawaiian Helicopters",
        "operator_key": Operator.BLUE_HAWAIIAN,
        "source": "web",
        "metadata": {"tour_name": "Blue Skies of Oahu", "island": "Oahu"},
    }
    fields.update(overrides)
    return fields


class BookingStoreContract(ABC):

    @abstractmethod
    def create_store(self) -> BookingStore:
        """Return a fresh, empty instance of the adapter under test."""
        ...

    @pytest.mark.asyncio
    async def test_create_assigns_id_and_version(self):
        store = self.create_store()
        booking = await store.create(_fields())
        assert booking.id
        assert booking.ref_code == "HTO-AAAAAA"
        assert booking.status == BookingStatus.PENDING
        assert booking.version == 1

    @pytest.mark.asyncio
    async def test_round_trip_preserves_types(self):
        store = self.create_store()
        created = await store.create(_fields())
        fetched = await store.get(created.id)
        assert fetched is not None
        assert fetched.doors_off is True
        assert fetched.party_size == 2
        assert fetched.operator_key == Operator.BLUE_HAWAIIAN
        assert fetched.metadata == {"tour_name": "Blue Skies of Oahu", "island": "Oahu"}

    @pytest.mark.asyncio
    async def test_get_unknown_returns_none(self):
        store = self.create_store()
        assert await store.get("does-not-exist") is None
        assert await store.get_by_ref_code("HTO-ZZZZZZ") is None

    @pytest.mark.asyncio
    async def test_duplicate_ref_code_rejected(self):
        store = self.create_store()
        await store.create(_fields())
        with pytest.raises(DuplicateRefCode):
            await store.create(_fields(customer_email="other@example.com"))

    @pytest.mark.asyncio
    async def test_get_by_ref_code(self):
        store = self.create_store()
        created = await store.create(_fields("HTO-BBBBBB"))
        found = await store.get_by_ref_code("HTO-BBBBBB")
        assert found is not None
        assert found.id == created.id

    @pytest.mark.asyncio
    async def test_latest_for_customer_is_case_insensitive_and_newest(self):
        store = self.create_store()
        await store.create(_fields("HTO-000001"))
        newest = await store.create(_fields("HTO-000002", customer_email="jane@example.com"))
        await store.create(_fields("HTO-000003", customer_email="someone@else.com"))
        found = await store.latest_for_customer("JANE@example.COM")
        assert found is not None
        assert found.id == newest.id

    @pytest.mark.asyncio
    async def test_latest_for_operator(self):
        store = self.create_store()
        await store.create(_fields("HTO-000001"))
        rainbow = await store.create(_fields(
            "HTO-000002", operator_name="Rainbow Helicopters", operator_key=Operator.RAINBOW
        ))
        found = await store.latest_for_operator("Rainbow Helicopters")
        assert found is not None
        assert found.id == rainbow.id
        assert await store.latest_for_operator("Nobody Air") is None

    @pytest.mark.asyncio
    async def test_update_is_partial_and_bumps_version(self):
        store = self.create_store()
        created = await store.create(_fields())
        updated = await store.update(created.id, {
            "status": BookingStatus.CONFIRMED,
            "confirmation_number": "BH12345",
        })
        assert updated.status == BookingStatus.CONFIRMED
        assert updated.confirmation_number == "BH12345"
        assert updated.customer_name == "Jane Doe"
        assert updated.version == 2
        assert updated.updated_at >= created.updated_at

    @pytest.mark.asyncio
    async def test_update_replaces_metadata_bag(self):
        store = self.create_store()
        created = await store.create(_fields())
        updated = await store.update(created.id, {"metadata": {"only": "this"}})
        assert updated.metadata == {"only": "this"}

    @pytest.mark.asyncio
    async def test_update_unknown_booking_raises(self):
        store = self.create_store()
        with pytest.raises(BookingNotFound):
            await store.update("does-not-exist", {"status": BookingStatus.CANCELLED})

    @pytest.mark.asyncio
    async def test_stale_version_rejected(self):
        store = self.create_store()
        created = await store.create(_fields())
        await store.update(created.id, {"party_size": 3}, expected_version=1)
        with pytest.raises(ConcurrentUpdate):
            await store.update(created.id, {"party_size": 4}, expected_version=1)
        current = await store.get(created.id)
        assert current.party_size == 3

    @pytest.mark.asyncio
    async def test_unknown_field_rejected(self):
        store = self.create_store()
        created = await store.create(_fields())
        with pytest.raises(ValueError):
            await store.update(created.id, {"favourite_colour": "blue"})
