from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from .ports import Inbox, InboundEmail, RenderedEmail, TemplatedNotifier, TemplateKind


@dataclass
class SentEmail:
    to: list[str]
    kind: TemplateKind
    data: dict[str, Any]
    rendered: RenderedEmail


class ConsoleNotifier(TemplatedNotifier):
    """
    Adapter: print to console and keep every send in memory. For dev/testing.

    fail_recipients / fail_kinds make matching sends fail, the way a bounced
    address or a transport outage would.
    """

    def __init__(
        self,
        fail_recipients: set[str] | None = None,
        fail_kinds: set[TemplateKind] | None = None,
        echo: bool = True,
    ):
        self.fail_recipients = {a.lower() for a in (fail_recipients or set())}
        self.fail_kinds = set(fail_kinds or set())
        self.echo = echo
        self.sent: list[SentEmail] = []

    def deliver(
        self,
        to: list[str],
        rendered: RenderedEmail,
        kind: TemplateKind,
        data: dict[str, Any],
    ) -> str | None:
        if kind in self.fail_kinds:
            raise ConnectionError(f"simulated outage for {kind.value}")
        bounced = [a for a in to if a.lower() in self.fail_recipients]
        if bounced:
            raise ConnectionError(f"simulated bounce for {', '.join(bounced)}")

        self.sent.append(SentEmail(to=to, kind=kind, data=data, rendered=rendered))
        if self.echo:
            print(f"\n{'=' * 60}")
            print(f"  TO: {', '.join(to)}")
            print(f"  SUBJECT: {rendered.subject}")
            print(f"  KIND: {kind.value}")
            print(f"{'=' * 60}")
            print(rendered.text)
            print(f"{'=' * 60}\n")
        return f"console-{len(self.sent)}"

    # -- test helpers ---------------------------------------------------------

    def sent_to(self, address: str) -> list[SentEmail]:
        return [s for s in self.sent if address.lower() in (a.lower() for a in s.to)]

    def sent_of_kind(self, kind: TemplateKind) -> list[SentEmail]:
        return [s for s in self.sent if s.kind == kind]


class ConsoleInbox(Inbox):
    """Adapter: buffer inbound messages in memory. For dev/testing."""

    def __init__(self):
        self._pending: list[InboundEmail] = []

    async def poll(self) -> list[InboundEmail]:
        messages = self._pending.copy()
        self._pending.clear()
        return messages

    def simulate_message(self, sender: str, subject: str, body: str):
        """Call from tests or a dev CLI to simulate an inbound email."""
        self._pending.append(
            InboundEmail(
                sender=sender,
                subject=subject,
                body=body,
                received_at=datetime.now(timezone.utc),
            )
        )
