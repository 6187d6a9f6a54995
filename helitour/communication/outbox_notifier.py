"""
OutboxNotifier — wraps any Notifier with a persisted send log.

Handlers keep calling notifier.send(); the outbox makes every attempt
visible to a human reviewer and lets retry_failed() resend what bounced.

Failed sends are retried with exponential backoff (base_delay doubling per
attempt, capped at max_delay) until max_attempts is reached; then the entry
is marked dead.  Availability follow-ups are never retried from here: their
only resend path is re-running the follow-up, which also moves the booking
to awaiting_payment.  A failed follow-up is marked dead straight away.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from helitour.domain.outbox import Outbox

from .ports import FOLLOW_UP_KINDS, Notifier, SendResult, TemplateKind

log = logging.getLogger(__name__)

MAX_ATTEMPTS = 5
BASE_DELAY = timedelta(minutes=1)
MAX_DELAY = timedelta(hours=1)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def backoff(attempts: int, base: timedelta = BASE_DELAY, cap: timedelta = MAX_DELAY) -> timedelta:
    """Delay before the next try after *attempts* failed ones: 1, 2, 4, ... minutes."""
    return min(base * (2 ** max(attempts - 1, 0)), cap)


class OutboxNotifier(Notifier):

    def __init__(
        self,
        inner: Notifier,
        outbox: Outbox,
        max_attempts: int = MAX_ATTEMPTS,
        base_delay: timedelta = BASE_DELAY,
        max_delay: timedelta = MAX_DELAY,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._inner = inner
        self._outbox = outbox
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._clock = clock

    async def send(
        self, to: str | list[str], kind: TemplateKind, data: dict[str, Any]
    ) -> SendResult:
        recipients = [to] if isinstance(to, str) else list(to)
        kind = TemplateKind(kind)
        entry_id = await self._outbox.record(recipients, kind.value, data)
        result = await self._inner.send(recipients, kind, data)
        await self._settle(entry_id, kind, attempts_before=0, result=result)
        return result

    async def retry_failed(self, force: bool = False) -> list[SendResult]:
        """
        Resend failed entries with their stored payload.

        Only entries whose next_retry_at has passed are picked up, unless
        *force* is set (manual retry from the review CLI).  Dead entries are
        never resent.
        """
        if force:
            entries = await self._outbox.entries("failed")
        else:
            entries = await self._outbox.due(self._clock())
        results = []
        for entry in entries:
            kind = TemplateKind(entry.kind)
            if kind in FOLLOW_UP_KINDS:
                log.info("Outbox entry=%d kind=%s is a follow-up, not retried here",
                         entry.entry_id, entry.kind)
                await self._outbox.mark_dead(entry.entry_id, entry.error)
                continue
            log.info("Retrying outbox entry=%d kind=%s attempts=%d",
                     entry.entry_id, entry.kind, entry.attempts)
            result = await self._inner.send(entry.recipients, kind, entry.data)
            await self._settle(entry.entry_id, kind, entry.attempts, result)
            results.append(result)
        return results

    async def _settle(
        self, entry_id: int, kind: TemplateKind, attempts_before: int, result: SendResult
    ) -> None:
        if result.success:
            await self._outbox.mark_sent(entry_id, result.message_id)
            return

        attempts = attempts_before + 1
        if kind in FOLLOW_UP_KINDS:
            log.warning("Outbox entry=%d follow-up %s failed, left for the follow-up re-run: %s",
                        entry_id, kind.value, result.error)
            await self._outbox.mark_dead(entry_id, result.error)
        elif attempts >= self._max_attempts:
            log.error("Outbox entry=%d gave up after %d attempts: %s",
                      entry_id, attempts, result.error)
            await self._outbox.mark_dead(entry_id, result.error)
        else:
            next_retry_at = self._clock() + backoff(attempts, self._base_delay, self._max_delay)
            log.warning("Outbox entry=%d failed (attempt %d/%d), next try %s: %s",
                        entry_id, attempts, self._max_attempts,
                        next_retry_at.isoformat(), result.error)
            await self._outbox.mark_failed(entry_id, result.error, next_retry_at)
