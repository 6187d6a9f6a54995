"""
Directory — the read-only map of operator and internal mailboxes.

Passed into every handler so tests can substitute fixture addresses.  It
answers two questions: "is this sender a known operator?" and "is this
recipient an address that must never receive customer-only content?".
"""

import os
from dataclasses import dataclass
from email.utils import parseaddr

from helitour.domain.booking import Operator


@dataclass(frozen=True)
class OperatorContact:
    key: Operator
    name: str
    email: str
    website: str = ""


@dataclass(frozen=True)
class Directory:
    bookings_hub: str           # From: on every outgoing email
    bookings_hub_inbound: str   # Reply-To: where inbound replies land
    internal_alert: str         # new-booking alerts, never shown to customers
    agent: str                  # human agent who arranges times with Rainbow
    operators: tuple[OperatorContact, ...]

    def operator_by_email(self, email: str | None) -> OperatorContact | None:
        normalized = normalize_email(email)
        if not normalized:
            return None
        for op in self.operators:
            if op.email.lower() == normalized:
                return op
        return None

    def operator(self, key: Operator) -> OperatorContact:
        """Contact for *key*; unknown operators fall back to the primary one."""
        for op in self.operators:
            if op.key == key:
                return op
        return self.primary_operator

    @property
    def primary_operator(self) -> OperatorContact:
        for op in self.operators:
            if op.key == Operator.BLUE_HAWAIIAN:
                return op
        return self.operators[0]

    def blocked_recipients(self) -> frozenset[str]:
        """Addresses that must never receive the customer follow-up."""
        addresses = {
            self.bookings_hub,
            self.bookings_hub_inbound,
            self.internal_alert,
            self.agent,
            *(op.email for op in self.operators),
        }
        return frozenset(a.lower() for a in addresses if a)

    def is_operator_or_internal(self, email: str | None) -> bool:
        return normalize_email(email) in self.blocked_recipients()

    @classmethod
    def from_env(cls) -> "Directory":
        """
        Build from environment variables.

        OPERATOR_EMAIL_BLUE_HAWAIIAN and OPERATOR_EMAIL_RAINBOW are required;
        the hub addresses default to the production mailboxes.
        """
        hub = os.environ.get("BOOKINGS_HUB_EMAIL", "bookings@helicoptertoursonoahu.com")
        return cls(
            bookings_hub=hub,
            bookings_hub_inbound=os.environ.get(
                "BOOKINGS_HUB_INBOUND_EMAIL", "bookings@booking.helicoptertoursonoahu.com"
            ),
            internal_alert=os.environ.get("INTERNAL_ALERT_EMAIL", hub),
            agent=os.environ.get("AGENT_EMAIL", hub),
            operators=(
                OperatorContact(
                    key=Operator.BLUE_HAWAIIAN,
                    name="Blue Hawaiian Helicopters",
                    email=os.environ["OPERATOR_EMAIL_BLUE_HAWAIIAN"],
                    website="https://www.bluehawaiian.com",
                ),
                OperatorContact(
                    key=Operator.RAINBOW,
                    name="Rainbow Helicopters",
                    email=os.environ["OPERATOR_EMAIL_RAINBOW"],
                    website="https://www.rainbowhelicopters.com",
                ),
            ),
        )


def normalize_email(email: str | None) -> str:
    """'Desk <Ops@Example.com>' -> 'ops@example.com'."""
    _, address = parseaddr(email or "")
    return (address or email or "").strip().lower()
