"""
Core polling logic for the booking mail daemon.

Kept apart from scripts/run.py so it can be imported and tested without
pulling in Claude or mail transport dependencies.
"""

import logging

from helitour.communication.outbox_notifier import OutboxNotifier
from helitour.communication.ports import Inbox, Notifier
from helitour.handlers.base import HandlerResult
from helitour.router import InboundRouter

log = logging.getLogger(__name__)


async def poll_once(
    router: InboundRouter,
    inbox: Inbox,
    notifier: Notifier | None = None,
) -> list[HandlerResult]:
    """
    One poll cycle.

    1. Fetch unseen messages from the inbox.
    2. Route each one; a failure on one message never stops the others.
    3. If the notifier keeps an outbox, retry the sends that failed.
    """
    try:
        messages = await inbox.poll()
    except Exception as exc:
        log.error("Failed to poll inbox: %s", exc)
        return []

    log.info("Inbox: %d new message(s)", len(messages))

    results = []
    for message in messages:
        try:
            result = await router.route(message)
        except Exception as exc:
            log.exception("Router error for message from %s: %s", message.sender, exc)
            continue
        results.append(result)
        log.info("%s → %s success=%s %s", message.sender, result.action, result.success,
                 result.error or "")

    if isinstance(notifier, OutboxNotifier):
        retried = await notifier.retry_failed()
        if retried:
            log.info("Outbox retry: %d/%d sent", sum(r.success for r in retried), len(retried))

    return results
