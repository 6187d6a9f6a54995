"""
BookingIntake — turns a validated booking request into a pending booking.

Used by the web form, the chat widget, and the phone-transcript handler.
Flow:
  1. Code: validate the request (weight gate, party size, date format)
  2. Code: resolve the operator, look the tour up in the catalog
  3. Store: create the booking with a fresh reference code (bounded retry)
  4. Send: operator booking request (Rainbow gets the availability inquiry)
  5. Send: customer confirmation that the request was received

Notification failures are logged and never undo step 3.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any

from helitour.communication.ports import TemplateKind
from helitour.domain.availability import AvailabilityResult
from helitour.domain.booking import (
    MIN_TOTAL_WEIGHT,
    Booking,
    BookingStatus,
    Operator,
    generate_ref_code,
    utcnow_iso,
)
from helitour.domain.errors import ConstraintError, DuplicateRefCode, ValidationError
from helitour.domain.tours import find_tour, total_price
from helitour.handlers.base import Handler, HandlerResult

log = logging.getLogger(__name__)

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
SOURCES = ("web", "chatbot", "phone", "email")
MAX_PARTY_SIZE = 20


def is_valid_email(value: str | None) -> bool:
    return bool(value) and bool(_EMAIL_RE.match(value.strip()))


@dataclass
class NewBookingRequest:
    name: str
    email: str
    party_size: int
    preferred_date: str
    total_weight: int
    phone: str | None = None
    time_window: str | None = None
    doors_off: bool = False
    hotel: str | None = None
    special_requests: str | None = None
    tour_id: str | None = None
    tour_name: str | None = None
    source: str = "web"
    operator_preference: Operator | None = None
    metadata: dict[str, Any] | None = None

    def validate(self) -> None:
        """Raise ValidationError naming the first bad field."""
        if not self.name or not self.name.strip():
            raise ValidationError("name is required")
        if not is_valid_email(self.email):
            raise ValidationError(f"invalid email: {self.email!r}")
        if not isinstance(self.party_size, int) or not 1 <= self.party_size <= MAX_PARTY_SIZE:
            raise ValidationError(f"party_size must be between 1 and {MAX_PARTY_SIZE}")
        if not self.preferred_date or not _DATE_RE.match(self.preferred_date):
            raise ValidationError("preferred_date must be YYYY-MM-DD")
        if self.total_weight is None or self.total_weight < MIN_TOTAL_WEIGHT:
            raise ValidationError(f"total_weight must be at least {MIN_TOTAL_WEIGHT} lbs")
        if self.source not in SOURCES:
            raise ValidationError(f"source must be one of {', '.join(SOURCES)}")


async def create_booking_with_ref_code(store, fields: dict[str, Any], attempts: int = 3) -> Booking:
    """
    Insert *fields* under a freshly generated reference code.

    A duplicate code is regenerated up to *attempts* times in total; after
    that the collision is surfaced as ConstraintError.
    """
    for attempt in range(1, attempts + 1):
        ref_code = generate_ref_code()
        try:
            return await store.create({**fields, "ref_code": ref_code})
        except DuplicateRefCode:
            log.warning("ref=%s collision, regenerating (attempt %d/%d)", ref_code, attempt, attempts)
    raise ConstraintError(f"could not allocate a unique reference code after {attempts} attempts")


class BookingIntake(Handler):

    async def submit(self, request: NewBookingRequest) -> HandlerResult:
        try:
            request.validate()
        except ValidationError as exc:
            log.info("Booking request rejected: %s", exc)
            return HandlerResult.failure(exc, action="invalid")

        directory = self._cfg.directory
        settings = self._cfg.settings
        operator = directory.operator(request.operator_preference or Operator.BLUE_HAWAIIAN)

        tour = find_tour(request.tour_id, request.tour_name)
        tour_name = tour.name if tour else request.tour_name
        island = tour.island if tour else settings.default_island
        estimated_total = (
            total_price(tour, request.party_size, settings.default_price_per_person)
            if tour else None
        )

        availability = await self._probe(operator.key, request, tour_name)

        metadata: dict[str, Any] = dict(request.metadata or {})
        metadata.update({
            "tour_name": tour_name,
            "tour_id": tour.id if tour else request.tour_id,
            "island": island,
            "operator_preference": operator.key.value,
        })
        if estimated_total is not None:
            metadata["estimated_total"] = estimated_total
        if availability is not None:
            metadata["availability_check"] = availability.to_dict()
            metadata["availability_checked_at"] = utcnow_iso()

        fields = {
            "status": BookingStatus.PENDING,
            "customer_name": request.name.strip(),
            "customer_email": request.email.strip(),
            "customer_phone": request.phone,
            "party_size": request.party_size,
            "preferred_date": request.preferred_date,
            "time_window": request.time_window,
            "doors_off": request.doors_off,
            "hotel": request.hotel,
            "special_requests": request.special_requests,
            "total_weight": request.total_weight,
            "operator_name": operator.name,
            "operator_key": operator.key,
            "source": request.source,
            "metadata": metadata,
        }
        try:
            booking = await create_booking_with_ref_code(
                self._cfg.store, fields, settings.ref_code_attempts
            )
        except ConstraintError as exc:
            log.error("Booking creation failed for %s: %s", request.email, exc)
            return HandlerResult.failure(exc)

        log.info("booking=%s ref=%s created source=%s operator=%s",
                 booking.id, booking.ref_code, booking.source, operator.key.value)

        # Operator first (hub copied), then the customer
        operator_kind = (
            TemplateKind.RAINBOW_INQUIRY if operator.key == Operator.RAINBOW
            else TemplateKind.BOOKING_REQUEST
        )
        op_data = self._template_data(
            booking, availability=availability.to_dict() if availability else None
        )
        operator_sent = await self._notify(
            _with_hub(operator.email, directory.bookings_hub), operator_kind, op_data,
            booking.ref_code,
        )
        await self._pause()
        customer_sent = await self._notify(
            booking.customer_email,
            TemplateKind.BOOKING_RECEIVED,
            self._template_data(booking, total_amount=estimated_total),
            booking.ref_code,
        )

        return HandlerResult(
            success=True,
            action="created",
            data={
                "booking_id": booking.id,
                "ref_code": booking.ref_code,
                "status": booking.status.value,
                "operator": operator.key.value,
                "operator_email_sent": operator_sent.success,
                "customer_email_sent": customer_sent.success,
            },
            message=f"Booking request received. Your reference code is {booking.ref_code}.",
        )

    async def _probe(
        self, operator: Operator, request: NewBookingRequest, tour_name: str | None
    ) -> AvailabilityResult | None:
        """Best-effort live check to include in the operator email."""
        probe = self._cfg.probe
        if probe is None or operator == Operator.RAINBOW:
            return None
        try:
            return await probe.check(
                operator, request.preferred_date, request.party_size,
                tour_name=tour_name, time_window=request.time_window,
            )
        except Exception as exc:
            log.warning("Availability probe failed during intake: %s", exc)
            return AvailabilityResult.failed(str(exc))


def _with_hub(address: str, hub: str) -> list[str]:
    recipients = [address]
    if hub and hub.lower() != address.lower():
        recipients.append(hub)
    return recipients
