"""
Adapter contract for Notifier.

Any implementation (console, SMTP, Resend, outbox wrapper, ...) must pass
these tests.  send() must never raise: a transport problem comes back as
SendResult(success=False).
"""

from abc import ABC, abstractmethod

import pytest

from helitour.communication.ports import Notifier, TemplateKind


def _data(**overrides) -> dict:
    data = {
        "brand_name": "Helicopter Tours on Oahu",
        "ref_code": "HTO-TEST01",
        "customer_name": "Jane Doe",
        "customer_email": "jane@example.com",
        "party_size": 2,
        "preferred_date": "2026-05-10",
        "operator_name": "Blue Hawaiian Helicopters",
    }
    data.update(overrides)
    return data


class NotifierContract(ABC):

    recipient: str = "jane@example.com"

    @abstractmethod
    def create_notifier(self) -> Notifier:
        """Return a fresh instance of the adapter under test."""
        ...

    @abstractmethod
    def create_failing_notifier(self) -> Notifier:
        """Return an instance whose transport fails on every send."""
        ...

    @pytest.mark.asyncio
    async def test_send_succeeds(self):
        notifier = self.create_notifier()
        result = await notifier.send(self.recipient, TemplateKind.BOOKING_RECEIVED, _data())
        assert result.success is True
        assert result.error is None

    @pytest.mark.asyncio
    async def test_send_accepts_recipient_list(self):
        notifier = self.create_notifier()
        result = await notifier.send(
            [self.recipient, "bookings@hub.test"], TemplateKind.BOOKING_REQUEST, _data()
        )
        assert result.success is True

    @pytest.mark.asyncio
    async def test_every_template_sends_with_sparse_data(self):
        notifier = self.create_notifier()
        for kind in TemplateKind:
            result = await notifier.send(self.recipient, kind, {"ref_code": "HTO-TEST01"})
            assert result.success, f"{kind.value} failed: {result.error}"

    @pytest.mark.asyncio
    async def test_transport_failure_is_reported_not_raised(self):
        notifier = self.create_failing_notifier()
        result = await notifier.send(self.recipient, TemplateKind.REJECTION, _data())
        assert result.success is False
        assert result.error
