"""
Runtime settings shared by every handler.

Read from environment variables in from_env(); tests build Settings()
directly, usually with send_delay=0.
"""

import os
from dataclasses import dataclass

from helitour.domain.intent import CALL_CONFIDENCE_FLOOR, SPAM_CONFIDENCE_THRESHOLD
from helitour.domain.tours import DEFAULT_ISLAND, DEFAULT_PRICE_PER_PERSON


@dataclass(frozen=True)
class Settings:
    brand_name: str = "Helicopter Tours on Oahu"
    phone_number: str = "+1 (707) 381-2583"
    send_delay: float = 0.8               # seconds between sends (mail API rate limit)
    spam_threshold: float = SPAM_CONFIDENCE_THRESHOLD
    call_confidence_floor: float = CALL_CONFIDENCE_FLOOR
    reply_to_spam: bool = False
    default_island: str = DEFAULT_ISLAND
    default_price_per_person: float = DEFAULT_PRICE_PER_PERSON
    ref_code_attempts: int = 3

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        return cls(
            brand_name=os.environ.get("BRAND_NAME", defaults.brand_name),
            phone_number=os.environ.get("BOOKING_PHONE_NUMBER", defaults.phone_number),
            send_delay=float(os.environ.get("SEND_DELAY_SECONDS", str(defaults.send_delay))),
            reply_to_spam=os.environ.get("REPLY_TO_SPAM", "false").lower() == "true",
            default_island=os.environ.get("DEFAULT_ISLAND", defaults.default_island),
            default_price_per_person=float(
                os.environ.get("DEFAULT_PRICE_PER_PERSON", str(defaults.default_price_per_person))
            ),
        )
