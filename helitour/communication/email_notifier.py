import email.utils
import smtplib
from email.mime.text import MIMEText
from typing import Any

from .ports import RenderedEmail, TemplatedNotifier, TemplateKind


class SmtpNotifier(TemplatedNotifier):
    """Adapter: send templated email over SMTP (STARTTLS)."""

    def __init__(
        self,
        smtp_host: str,
        smtp_port: int,
        smtp_user: str,
        smtp_password: str,
        from_addr: str,
        reply_to: str | None = None,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.from_addr = from_addr
        self.reply_to = reply_to

    def deliver(
        self,
        to: list[str],
        rendered: RenderedEmail,
        kind: TemplateKind,
        data: dict[str, Any],
    ) -> str | None:
        msg = MIMEText(rendered.text, _charset="utf-8")
        msg["Subject"] = rendered.subject
        msg["From"] = self.from_addr
        msg["To"] = ", ".join(to)
        if self.reply_to:
            msg["Reply-To"] = self.reply_to
        msg["Message-ID"] = email.utils.make_msgid(domain="helitour")
        msg["X-Template"] = kind.value
        if data.get("ref_code"):
            msg["X-Booking-Ref"] = data["ref_code"]

        with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
            server.starttls()
            server.login(self.smtp_user, self.smtp_password)
            server.send_message(msg)

        return msg["Message-ID"]
