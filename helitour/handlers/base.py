"""
Shared wiring for the handlers.

Every handler is a stateless request/response unit: it reads the booking
fresh, asks the IntentExtractor, computes one update, persists it, then
sends.  HandlerConfig carries the ports; HandlerResult is what every
handler operation returns to the thin intake layer.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from helitour.communication.ports import FOLLOW_UP_KINDS, Notifier, SendResult, TemplateKind
from helitour.config import Settings
from helitour.domain.availability import AvailabilityProbe
from helitour.domain.booking import Booking
from helitour.domain.directory import Directory
from helitour.domain.errors import BookingError, SafetyViolationPrevented
from helitour.domain.intent import IntentExtractor
from helitour.domain.store import BookingStore

log = logging.getLogger(__name__)


@dataclass
class HandlerConfig:
    store: BookingStore
    extractor: IntentExtractor
    notifier: Notifier
    directory: Directory
    settings: Settings = field(default_factory=Settings)
    probe: AvailabilityProbe | None = None


@dataclass
class HandlerResult:
    success: bool
    action: str                        # what the handler decided, e.g. "confirmed"
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None           # error code from helitour.domain.errors
    message: str | None = None         # human-readable text (phone agent reply, ...)

    @classmethod
    def failure(cls, exc: BookingError, action: str = "failed") -> "HandlerResult":
        return cls(success=False, action=action, error=exc.code, message=str(exc) or None)

    def as_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"success": self.success}
        if self.data:
            out["data"] = self.data
        if self.error:
            out["error"] = self.error
        if self.message:
            out["message"] = self.message
        return out


class Handler:
    """Base class: holds the config and the send helpers."""

    def __init__(self, config: HandlerConfig):
        self._cfg = config

    async def _pause(self) -> None:
        """Space consecutive sends to respect the mail transport's rate limit."""
        if self._cfg.settings.send_delay > 0:
            await asyncio.sleep(self._cfg.settings.send_delay)

    async def _notify(
        self, to: str | list[str], kind: TemplateKind, data: dict[str, Any], ref: str = ""
    ) -> SendResult:
        recipients = [to] if isinstance(to, str) else list(to)
        if kind in FOLLOW_UP_KINDS:
            blocked = [a for a in recipients if self._cfg.directory.is_operator_or_internal(a)]
            if blocked:
                log.critical("ref=%s refusing to send %s to internal address(es) %s",
                             ref, kind.value, blocked)
                return SendResult(success=False, error=SafetyViolationPrevented.code)

        result = await self._cfg.notifier.send(to, kind, data)
        if not result.success:
            log.error("ref=%s send %s to %s failed: %s", ref, kind.value, to, result.error)
        return result

    def _template_data(self, booking: Booking, **extra: Any) -> dict[str, Any]:
        settings = self._cfg.settings
        data: dict[str, Any] = {
            "brand_name": settings.brand_name,
            "phone_number": settings.phone_number,
            "ref_code": booking.ref_code,
            "customer_name": booking.customer_name,
            "customer_email": booking.customer_email,
            "customer_phone": booking.customer_phone,
            "party_size": booking.party_size,
            "preferred_date": booking.preferred_date,
            "time_window": booking.time_window,
            "doors_off": booking.doors_off,
            "hotel": booking.hotel,
            "special_requests": booking.special_requests,
            "total_weight": booking.total_weight,
            "operator_name": booking.operator_name,
            "tour_name": booking.metadata.get("tour_name"),
            "island": booking.island or settings.default_island,
        }
        data.update(extra)
        return data
