"""
AvailabilityProbe port — live availability for an operator on a date.

The probe runs a third-party booking widget or API and is slow and
unreliable.  Rainbow has no live feed, so its probes always come back as a
manual check.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from typing import Any

from helitour.domain.booking import Operator


@dataclass
class TimeSlot:
    time: str                   # e.g. "8:00 AM"
    price: float | None = None  # per person, when the widget shows one
    available: bool = True


@dataclass
class AvailabilityResult:
    available: bool
    source: str                 # "fareharbor", "manual", "simulator", "error", ...
    slots: list[TimeSlot] = field(default_factory=list)
    error: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failed(cls, error: str) -> "AvailabilityResult":
        """Normalized result for a probe that raised."""
        return cls(
            available=False,
            source="error",
            error=error,
            details={"manual_check_required": True},
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class AvailabilityProbe(ABC):

    @abstractmethod
    async def check(
        self,
        operator: Operator,
        date: str,
        party_size: int,
        tour_name: str | None = None,
        time_window: str | None = None,
    ) -> AvailabilityResult:
        ...
