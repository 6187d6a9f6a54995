"""
Local process runner for the helicopter booking mail daemon.

Polls the bookings inbox every POLL_INTERVAL seconds, routes each new email
to the operator-reply or customer-reply handler, and retries failed sends
when an outbox is configured.

Usage:
    source .env && python scripts/run.py

Environment variables (all required unless noted):
    ANTHROPIC_API_KEY              - Anthropic/Claude API key
    OPERATOR_EMAIL_BLUE_HAWAIIAN   - Blue Hawaiian booking desk address
    OPERATOR_EMAIL_RAINBOW         - Rainbow Helicopters booking desk address
    NOTIFY_CHANNEL                 - "console", "smtp" or "resend" (default: console)
    INBOX_CHANNEL                  - "console" or "imap" (default: console)
    POLL_INTERVAL                  - seconds between polls (default: 60)
    DB_PATH                        - SQLite database path (default: data/bookings.db)
    OUTBOX_DB                      - optional SQLite outbox path

    # Live availability (optional; without it every check is manual)
    FAREHARBOR_APP_KEY, FAREHARBOR_USER_KEY

    # Email (only when NOTIFY_CHANNEL=smtp / INBOX_CHANNEL=imap)
    EMAIL_SMTP_HOST, EMAIL_SMTP_PORT, EMAIL_USER, EMAIL_PASSWORD
    EMAIL_IMAP_HOST, EMAIL_IMAP_PORT

    # Resend (only when NOTIFY_CHANNEL=resend)
    RESEND_API_KEY
"""

import asyncio
import logging
import os
import sys

# Make sure project root is on sys.path when run as a script
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from helitour.adapters.claude_intent import ClaudeIntentExtractor
from helitour.adapters.fareharbor_probe import FareHarborProbe
from helitour.adapters.sqlite_store import SqliteBookingStore
from helitour.communication.factory import create_inbox, create_notifier
from helitour.config import Settings
from helitour.daemon import poll_once
from helitour.domain.directory import Directory
from helitour.handlers.base import HandlerConfig
from helitour.router import InboundRouter

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-7s  %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
log = logging.getLogger(__name__)


def _require_env(name: str) -> str:
    value = os.environ.get(name)
    if not value:
        print(f"ERROR: environment variable {name!r} is not set.", file=sys.stderr)
        sys.exit(1)
    return value


def build_config() -> HandlerConfig:
    api_key = _require_env("ANTHROPIC_API_KEY")
    _require_env("OPERATOR_EMAIL_BLUE_HAWAIIAN")
    _require_env("OPERATOR_EMAIL_RAINBOW")
    db_path = os.environ.get("DB_PATH", "data/bookings.db")
    os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)

    directory = Directory.from_env()
    settings = Settings.from_env()

    probe = None
    app_key = os.environ.get("FAREHARBOR_APP_KEY")
    user_key = os.environ.get("FAREHARBOR_USER_KEY")
    if app_key and user_key:
        probe = FareHarborProbe(app_key=app_key, user_key=user_key)
    else:
        log.warning("FareHarbor keys not set — availability checks will be manual")

    return HandlerConfig(
        store=SqliteBookingStore(db_path=db_path),
        extractor=ClaudeIntentExtractor(
            api_key=api_key,
            bookings_hub=directory.bookings_hub,
            brand_name=settings.brand_name,
        ),
        notifier=create_notifier(),
        directory=directory,
        settings=settings,
        probe=probe,
    )


async def main() -> None:
    poll_interval = int(os.environ.get("POLL_INTERVAL", "60"))

    config = build_config()
    router = InboundRouter(config)
    inbox = create_inbox()

    log.info("Daemon started — interval=%ds", poll_interval)

    while True:
        await poll_once(router, inbox, config.notifier)
        log.info("Sleeping %ds …", poll_interval)
        await asyncio.sleep(poll_interval)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        log.info("Daemon stopped.")
