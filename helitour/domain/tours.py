"""
Tour catalog — pricing and island for each bookable tour.

Prices are approximate per-person rates; the operator quotes the final
amount on confirmation.
"""

from dataclasses import dataclass

from helitour.domain.booking import Operator

DEFAULT_PRICE_PER_PERSON = 299.0
DEFAULT_ISLAND = "Oahu"


@dataclass(frozen=True)
class Tour:
    id: str
    name: str
    operator: Operator
    island: str
    price_per_person: float
    doors_off: bool = False


TOURS: tuple[Tour, ...] = (
    Tour("bhh-oahu-blue-skies", "Blue Skies of Oahu", Operator.BLUE_HAWAIIAN, "Oahu", 299),
    Tour("bhh-oahu-complete", "Complete Island Oahu", Operator.BLUE_HAWAIIAN, "Oahu", 399),
    Tour("bhh-oahu-air-adventure", "Oahu Air Adventure", Operator.BLUE_HAWAIIAN, "Oahu", 349, doors_off=True),
    Tour("bhh-oahu-north-shore", "Discover North Shore", Operator.BLUE_HAWAIIAN, "Oahu", 329),
    Tour("bhh-big-island-spectacular", "Big Island Spectacular (Waikoloa)", Operator.BLUE_HAWAIIAN, "Big Island", 399),
    Tour("bhh-discover-hilo", "Discover Hilo", Operator.BLUE_HAWAIIAN, "Big Island", 299),
    Tour("bhh-maui-waterfalls", "Waterfalls of West Maui and Molokai", Operator.BLUE_HAWAIIAN, "Maui", 299),
    Tour("bhh-majestic-maui", "Majestic Maui", Operator.BLUE_HAWAIIAN, "Maui", 399),
    Tour("bhh-discover-kauai", "Discover Kauai", Operator.BLUE_HAWAIIAN, "Kauai", 299),
    Tour("rainbow-oahu-doors-off", "Oahu Doors-Off Adventure", Operator.RAINBOW, "Oahu", 249, doors_off=True),
    Tour("rainbow-oahu-scenic", "Oahu Scenic Tour", Operator.RAINBOW, "Oahu", 229),
    Tour("rainbow-oahu-complete", "Complete Oahu Experience", Operator.RAINBOW, "Oahu", 299),
)


def find_tour(tour_id: str | None = None, name: str | None = None) -> Tour | None:
    """Look a tour up by id first, then by case-insensitive name."""
    if tour_id:
        for tour in TOURS:
            if tour.id == tour_id:
                return tour
    if name:
        lowered = name.strip().lower()
        for tour in TOURS:
            if tour.name.lower() == lowered:
                return tour
    return None


def total_price(tour: Tour | None, party_size: int,
                default_per_person: float = DEFAULT_PRICE_PER_PERSON) -> float:
    per_person = tour.price_per_person if tour else default_per_person
    return per_person * max(party_size, 1)
