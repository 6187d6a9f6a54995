#!/usr/bin/env python3
"""
Trigger the availability follow-up for one booking.

Usage (from project root):
    python scripts/check_availability.py HTO-7Q2XKD
    python scripts/check_availability.py --id 6f1c...

Uses the same environment as scripts/run.py (DB_PATH, NOTIFY_CHANNEL,
operator addresses, optional FareHarbor keys).  Claude is not needed.
"""

import asyncio
import json
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from helitour.adapters.fareharbor_probe import FareHarborProbe
from helitour.adapters.simulator_intent import SimulatorIntentExtractor
from helitour.adapters.sqlite_store import SqliteBookingStore
from helitour.communication.factory import create_notifier
from helitour.config import Settings
from helitour.domain.directory import Directory
from helitour.handlers.availability_followup import AvailabilityFollowUp
from helitour.handlers.base import HandlerConfig

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-7s  %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


async def main() -> int:
    args = sys.argv[1:]
    if not args:
        print(__doc__)
        return 2

    probe = None
    if os.environ.get("FAREHARBOR_APP_KEY") and os.environ.get("FAREHARBOR_USER_KEY"):
        probe = FareHarborProbe(os.environ["FAREHARBOR_APP_KEY"], os.environ["FAREHARBOR_USER_KEY"])

    config = HandlerConfig(
        store=SqliteBookingStore(os.environ.get("DB_PATH", "data/bookings.db")),
        # the follow-up never classifies text
        extractor=SimulatorIntentExtractor(),
        notifier=create_notifier(),
        directory=Directory.from_env(),
        settings=Settings.from_env(),
        probe=probe,
    )
    follow_up = AvailabilityFollowUp(config)

    if args[0] == "--id" and len(args) >= 2:
        result = await follow_up.run(booking_id=args[1])
    else:
        result = await follow_up.run(ref_code=args[0])

    print(json.dumps(result.as_dict(), indent=2, default=str))
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
