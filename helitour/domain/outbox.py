"""
Outbox port — notification intents persisted around each send.

An entry is written as "pending" before the transport is called and marked
"sent" or "failed" afterwards.  Failed entries keep the full payload so a
retry sweep can resend without re-deriving anything from the booking.

A failed entry carries next_retry_at; the sweep only picks it up once that
time has passed.  Entries that must not be resent automatically, or that
ran out of attempts, are marked "dead" and stay visible for review.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

OutboxStatus = Literal["pending", "sent", "failed", "dead"]


@dataclass
class OutboxEntry:
    entry_id: int
    recipients: list[str]
    kind: str
    data: dict[str, Any]
    status: OutboxStatus = "pending"
    attempts: int = 0
    error: str | None = None
    message_id: str | None = None
    next_retry_at: datetime | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime | None = None

    def is_due(self, now: datetime) -> bool:
        return self.status == "failed" and (self.next_retry_at is None or self.next_retry_at <= now)


class Outbox(ABC):

    @abstractmethod
    async def record(self, recipients: list[str], kind: str, data: dict[str, Any]) -> int:
        """Persist a pending entry and return its id."""
        ...

    @abstractmethod
    async def mark_sent(self, entry_id: int, message_id: str | None) -> None:
        ...

    @abstractmethod
    async def mark_failed(
        self, entry_id: int, error: str | None, next_retry_at: datetime | None = None
    ) -> None:
        ...

    @abstractmethod
    async def mark_dead(self, entry_id: int, error: str | None) -> None:
        """Failed for good: counted as an attempt, never picked up by a sweep."""
        ...

    @abstractmethod
    async def get(self, entry_id: int) -> OutboxEntry | None:
        ...

    @abstractmethod
    async def entries(self, status: OutboxStatus | None = None) -> list[OutboxEntry]:
        """Entries in creation order, optionally filtered by status."""
        ...

    async def due(self, now: datetime) -> list[OutboxEntry]:
        """Failed entries whose next_retry_at has passed."""
        return [e for e in await self.entries("failed") if e.is_due(now)]


class InMemoryOutbox(Outbox):

    def __init__(self):
        self._entries: dict[int, OutboxEntry] = {}

    async def record(self, recipients: list[str], kind: str, data: dict[str, Any]) -> int:
        entry_id = len(self._entries) + 1
        self._entries[entry_id] = OutboxEntry(
            entry_id=entry_id, recipients=list(recipients), kind=kind, data=dict(data)
        )
        return entry_id

    async def mark_sent(self, entry_id: int, message_id: str | None) -> None:
        entry = self._entries[entry_id]
        entry.status = "sent"
        entry.attempts += 1
        entry.message_id = message_id
        entry.error = None
        entry.next_retry_at = None
        entry.updated_at = datetime.now(timezone.utc)

    async def mark_failed(
        self, entry_id: int, error: str | None, next_retry_at: datetime | None = None
    ) -> None:
        entry = self._entries[entry_id]
        entry.status = "failed"
        entry.attempts += 1
        entry.error = error
        entry.next_retry_at = next_retry_at
        entry.updated_at = datetime.now(timezone.utc)

    async def mark_dead(self, entry_id: int, error: str | None) -> None:
        entry = self._entries[entry_id]
        entry.status = "dead"
        entry.attempts += 1
        entry.error = error
        entry.next_retry_at = None
        entry.updated_at = datetime.now(timezone.utc)

    async def get(self, entry_id: int) -> OutboxEntry | None:
        return self._entries.get(entry_id)

    async def entries(self, status: OutboxStatus | None = None) -> list[OutboxEntry]:
        return [e for e in self._entries.values() if status is None or e.status == status]
