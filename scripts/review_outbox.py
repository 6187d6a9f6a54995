#!/usr/bin/env python3
"""
Outbox review CLI — inspect and retry outgoing booking emails.

Usage (from project root):
    python scripts/review_outbox.py                  # list failed entries
    python scripts/review_outbox.py all              # list every entry
    python scripts/review_outbox.py show 3           # show full entry details
    python scripts/review_outbox.py dead             # list entries given up on
    python scripts/review_outbox.py retry            # resend every failed entry now

The outbox path comes from OUTBOX_DB (default: data/outbox.db).  Retrying
uses the transport selected by NOTIFY_CHANNEL.
"""

import asyncio
import json
import os
import sys

# Allow running as `python scripts/review_outbox.py` from project root.
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from helitour.adapters.sqlite_outbox import SqliteOutbox
from helitour.communication.factory import create_notifier
from helitour.communication.outbox_notifier import OutboxNotifier

DB_PATH = os.environ.get("OUTBOX_DB", "data/outbox.db")


async def list_entries(outbox: SqliteOutbox, status: str | None) -> None:
    entries = await outbox.entries(status)
    if not entries:
        print(f"No {status} entries." if status else "Outbox is empty.")
        return

    print(f"\n{'ID':>4}  {'Status':<8}  {'Kind':<24}  {'Tries':>5}  Recipients")
    print("-" * 80)
    for e in entries:
        print(f"{e.entry_id:>4}  {e.status:<8}  {e.kind:<24}  {e.attempts:>5}  {', '.join(e.recipients)}")
    print()


async def show_entry(outbox: SqliteOutbox, entry_id: int) -> None:
    entry = await outbox.get(entry_id)
    if not entry:
        print(f"Entry #{entry_id} not found.")
        return

    print(f"\n{'=' * 60}")
    print(f"  Entry #{entry.entry_id}  |  {entry.kind}  |  {entry.status}")
    print(f"  To: {', '.join(entry.recipients)}")
    print(f"  Attempts: {entry.attempts}")
    print(f"  Created: {entry.created_at}")
    if entry.updated_at:
        print(f"  Updated: {entry.updated_at}")
    if entry.next_retry_at:
        print(f"  Next retry: {entry.next_retry_at}")
    if entry.message_id:
        print(f"  Message-ID: {entry.message_id}")
    if entry.error:
        print(f"  Error: {entry.error}")
    print(f"{'=' * 60}")
    print(json.dumps(entry.data, indent=2, default=str))
    print()


async def retry(outbox: SqliteOutbox) -> None:
    notifier = create_notifier()
    if not isinstance(notifier, OutboxNotifier):  # OUTBOX_DB unset: DB_PATH is the default
        notifier = OutboxNotifier(notifier, outbox)
    results = await notifier.retry_failed(force=True)
    if not results:
        print("Nothing to retry.")
        return
    sent = sum(r.success for r in results)
    print(f"Retried {len(results)} entr{'y' if len(results) == 1 else 'ies'}: {sent} sent, "
          f"{len(results) - sent} still failing.")


async def main() -> None:
    outbox = SqliteOutbox(DB_PATH)

    if len(sys.argv) < 2:
        await list_entries(outbox, "failed")
        return

    cmd = sys.argv[1]

    if cmd == "all":
        await list_entries(outbox, None)
    elif cmd == "dead":
        await list_entries(outbox, "dead")
    elif cmd == "show" and len(sys.argv) >= 3:
        await show_entry(outbox, int(sys.argv[2]))
    elif cmd == "retry":
        await retry(outbox)
    else:
        print(__doc__)


if __name__ == "__main__":
    asyncio.run(main())
