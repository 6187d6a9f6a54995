from typing import Any

import requests

from .ports import RenderedEmail, TemplatedNotifier, TemplateKind

RESEND_URL = "https://api.resend.com/emails"


class ResendNotifier(TemplatedNotifier):
    """Adapter: send templated email through the Resend HTTP API."""

    def __init__(self, api_key: str, from_addr: str, reply_to: str | None = None,
                 timeout: float = 15.0):
        self.from_addr = from_addr
        self.reply_to = reply_to
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            }
        )

    def deliver(
        self,
        to: list[str],
        rendered: RenderedEmail,
        kind: TemplateKind,
        data: dict[str, Any],
    ) -> str | None:
        payload = {
            "from": self.from_addr,
            "to": to,
            "subject": rendered.subject,
            "text": rendered.text,
            "tags": [{"name": "template", "value": kind.value}],
        }
        if self.reply_to:
            payload["reply_to"] = self.reply_to

        resp = self.session.post(RESEND_URL, json=payload, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json().get("id")
