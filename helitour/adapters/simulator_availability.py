"""SimulatorAvailabilityProbe — canned availability for tests and local runs."""

from helitour.domain.availability import AvailabilityProbe, AvailabilityResult, TimeSlot
from helitour.domain.booking import Operator


class SimulatorAvailabilityProbe(AvailabilityProbe):
    """
    Returns *slots* for every non-Rainbow probe.  With error set, check()
    raises RuntimeError, the way a crashed browser session would.
    """

    def __init__(self, slots: list[TimeSlot] | None = None, error: str | None = None):
        self.slots = slots if slots is not None else [
            TimeSlot("8:00 AM", 299.0),
            TimeSlot("10:30 AM", 299.0),
            TimeSlot("2:00 PM"),
        ]
        self.error = error
        self.calls: list[dict] = []

    async def check(
        self,
        operator: Operator,
        date: str,
        party_size: int,
        tour_name: str | None = None,
        time_window: str | None = None,
    ) -> AvailabilityResult:
        self.calls.append({
            "operator": operator, "date": date, "party_size": party_size,
            "tour_name": tour_name, "time_window": time_window,
        })
        if self.error:
            raise RuntimeError(self.error)
        if operator == Operator.RAINBOW:
            return AvailabilityResult(
                available=False, source="manual", details={"manual_check_required": True}
            )
        return AvailabilityResult(
            available=bool(self.slots), source="simulator", slots=list(self.slots)
        )
