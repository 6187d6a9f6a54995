import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

log = logging.getLogger(__name__)


class TemplateKind(str, Enum):
    # operator-facing
    BOOKING_REQUEST = "booking_request"
    RAINBOW_INQUIRY = "rainbow_inquiry"
    # internal
    AGENT_ARRANGE_RAINBOW = "agent_arrange_rainbow"
    # customer-facing
    BOOKING_RECEIVED = "booking_received"
    FINAL_CONFIRMATION = "final_confirmation"
    RAINBOW_CONFIRMATION = "rainbow_confirmation"
    REJECTION = "rejection"
    OPERATOR_DIRECT_CONTACT = "operator_direct_contact"
    CHOOSE_TIME = "choose_time"
    ALTERNATIVE_DATES = "alternative_dates"
    AVAILABLE_TIMES = "available_times"
    CHECKING_AVAILABILITY = "checking_availability"
    RAINBOW_HOLDING = "rainbow_holding"
    INQUIRY_ACK = "inquiry_ack"
    REPLY_ACK = "reply_ack"
    HOW_TO_BOOK = "how_to_book"
    SPAM_DEFLECTION = "spam_deflection"


# Follow-up kinds that must only ever reach the real customer.
FOLLOW_UP_KINDS = frozenset({
    TemplateKind.AVAILABLE_TIMES,
    TemplateKind.CHECKING_AVAILABILITY,
    TemplateKind.RAINBOW_HOLDING,
})


@dataclass
class RenderedEmail:
    subject: str
    text: str


@dataclass
class SendResult:
    success: bool
    message_id: str | None = None
    error: str | None = None


@dataclass
class InboundEmail:
    """A message that arrived at the bookings inbox."""
    sender: str          # raw From: header, e.g. "Jane <jane@example.com>"
    subject: str
    body: str
    received_at: datetime | None = None
    headers: dict[str, Any] = field(default_factory=dict)


class Notifier(ABC):
    """
    Port: how we send templated email.

    The handlers depend ONLY on this interface.  send() never raises: every
    transport error comes back as SendResult(success=False, error=...).
    """

    @abstractmethod
    async def send(
        self, to: str | list[str], kind: TemplateKind, data: dict[str, Any]
    ) -> SendResult:
        ...


class TemplatedNotifier(Notifier):
    """
    Base for transports: renders the template, then hands subject and body to
    deliver().  Any exception from the transport becomes a failed SendResult.
    """

    @abstractmethod
    def deliver(
        self,
        to: list[str],
        rendered: RenderedEmail,
        kind: TemplateKind,
        data: dict[str, Any],
    ) -> str | None:
        """Send the email; return the transport's message id if it has one."""
        ...

    async def send(
        self, to: str | list[str], kind: TemplateKind, data: dict[str, Any]
    ) -> SendResult:
        from helitour.communication.templates import render

        recipients = [to] if isinstance(to, str) else list(to)
        try:
            rendered = render(kind, data)
            message_id = self.deliver(recipients, rendered, TemplateKind(kind), data)
        except Exception as exc:
            log.error("Send failed kind=%s to=%s: %s", TemplateKind(kind).value, recipients, exc)
            return SendResult(success=False, error=str(exc) or type(exc).__name__)
        log.info("Sent kind=%s to=%s id=%s", TemplateKind(kind).value, recipients, message_id)
        return SendResult(success=True, message_id=message_id)


class Inbox(ABC):
    """Port: where inbound email is read from."""

    @abstractmethod
    async def poll(self) -> list[InboundEmail]:
        """Return all unprocessed messages since the last poll."""
        ...
