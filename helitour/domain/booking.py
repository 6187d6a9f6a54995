"""
Booking entity, status lifecycle, and the small pure helpers every handler
shares: reference codes, operator inference, field and metadata merging.

Handlers never mutate a Booking in place.  They compute a dict of changes
from a freshly fetched booking and hand it to the BookingStore.
"""

import re
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

REF_CODE_PREFIX = "HTO-"
REF_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
REF_CODE_LENGTH = 6
REF_CODE_PATTERN = re.compile(r"\bHTO-[A-Z0-9]{6}\b")

MIN_TOTAL_WEIGHT = 100  # lbs, combined passenger weight


class BookingStatus(str, Enum):
    PENDING = "pending"
    COLLECTING_INFO = "collecting_info"
    CHECKING_AVAILABILITY = "checking_availability"
    CONTACTED_OPERATOR = "contacted_operator"
    AWAITING_OPERATOR_RESPONSE = "awaiting_operator_response"
    AWAITING_PAYMENT = "awaiting_payment"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, value: str) -> "BookingStatus | None":
        """Return the status for *value*, or None if it is not one of the nine."""
        try:
            return cls(value)
        except ValueError:
            return None


# cancelled and completed never move again; confirmed only moves to completed.
TERMINAL_STATUSES = frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED})


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    """Guard for explicit status updates coming from outside the handlers."""
    if current == target:
        return True
    if current in TERMINAL_STATUSES:
        return False
    if current == BookingStatus.CONFIRMED:
        return target == BookingStatus.COMPLETED
    return target != BookingStatus.COMPLETED


class Operator(str, Enum):
    """Resolved operator identity. Free-text operator names map onto this once."""
    RAINBOW = "rainbow"
    BLUE_HAWAIIAN = "blue_hawaiian"
    OTHER = "other"

    @classmethod
    def infer(cls, text: str | None) -> "Operator":
        lower = (text or "").lower()
        if "rainbow" in lower:
            return cls.RAINBOW
        if "blue hawaii" in lower:
            return cls.BLUE_HAWAIIAN
        return cls.OTHER


@dataclass
class ExtractedFields:
    """Booking fields pulled out of free text. None means "not mentioned"."""
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    party_size: int | None = None
    preferred_date: str | None = None   # YYYY-MM-DD
    time_window: str | None = None      # morning / afternoon / evening / flexible
    doors_off: bool | None = None
    hotel: str | None = None
    special_requests: str | None = None
    total_weight: int | None = None     # lbs

    def is_empty(self) -> bool:
        return all(v is None for v in self.__dict__.values())


@dataclass
class Booking:
    id: str
    ref_code: str
    status: BookingStatus
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    party_size: int | None = None
    preferred_date: str | None = None
    time_window: str | None = None
    doors_off: bool | None = None
    hotel: str | None = None
    special_requests: str | None = None
    total_weight: int | None = None
    operator_name: str | None = None
    operator_key: Operator = Operator.OTHER
    confirmation_number: str | None = None
    total_amount: float | None = None
    source: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    version: int = 1

    @property
    def operator(self) -> Operator:
        if self.operator_key != Operator.OTHER:
            return self.operator_key
        return Operator.infer(self.operator_name)

    @property
    def island(self) -> str | None:
        return self.metadata.get("island")


# Columns a handler may change through BookingStore.update().
UPDATABLE_FIELDS = frozenset({
    "status", "customer_name", "customer_email", "customer_phone",
    "party_size", "preferred_date", "time_window", "doors_off", "hotel",
    "special_requests", "total_weight", "operator_name", "operator_key",
    "confirmation_number", "total_amount", "source", "metadata",
})


def generate_ref_code() -> str:
    """Return a fresh public reference code, e.g. HTO-7Q2XKD."""
    suffix = "".join(secrets.choice(REF_CODE_ALPHABET) for _ in range(REF_CODE_LENGTH))
    return f"{REF_CODE_PREFIX}{suffix}"


def find_ref_code(*texts: str | None) -> str | None:
    """First HTO-XXXXXX code found in the given texts, in order."""
    for text in texts:
        if not text:
            continue
        match = REF_CODE_PATTERN.search(text.upper())
        if match:
            return match.group(0)
    return None


def merge_metadata(existing: dict[str, Any] | None, updates: dict[str, Any]) -> dict[str, Any]:
    """Spread-then-add: keys not in *updates* are kept untouched."""
    merged = dict(existing or {})
    merged.update(updates)
    return merged


def merge_extracted_fields(booking: Booking, fields: ExtractedFields) -> dict[str, Any]:
    """
    Changes to apply to *booking* from newly extracted fields.

    Non-null incoming values overwrite, absent values preserve.  The customer
    email is the lookup key for replies and is never rewritten from free text.
    A weight under the minimum is ignored rather than stored.
    """
    mapping = {
        "customer_name": fields.name,
        "customer_phone": fields.phone,
        "party_size": fields.party_size,
        "preferred_date": fields.preferred_date,
        "time_window": fields.time_window,
        "doors_off": fields.doors_off,
        "hotel": fields.hotel,
        "special_requests": fields.special_requests,
    }
    if fields.total_weight is not None and fields.total_weight >= MIN_TOTAL_WEIGHT:
        mapping["total_weight"] = fields.total_weight

    return {
        key: value
        for key, value in mapping.items()
        if value is not None and value != getattr(booking, key)
    }


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
