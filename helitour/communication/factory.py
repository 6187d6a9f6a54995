import os

from .ports import Inbox, Notifier


def create_notifier(channel: str | None = None) -> Notifier:
    """
    Factory: create the right mail transport based on config.

    The channel can be passed explicitly or read from the NOTIFY_CHANNEL env
    var ("console", "smtp" or "resend"). Defaults to "console".  When
    OUTBOX_DB is set the transport is wrapped in an OutboxNotifier.
    """
    channel = channel or os.environ.get("NOTIFY_CHANNEL", "console")
    from_addr = os.environ.get("BOOKINGS_HUB_EMAIL", "bookings@helicoptertoursonoahu.com")
    reply_to = os.environ.get("BOOKINGS_HUB_INBOUND_EMAIL")

    if channel == "smtp":
        from .email_notifier import SmtpNotifier

        notifier: Notifier = SmtpNotifier(
            smtp_host=os.environ.get("EMAIL_SMTP_HOST", "smtp.gmail.com"),
            smtp_port=int(os.environ.get("EMAIL_SMTP_PORT", "587")),
            smtp_user=os.environ["EMAIL_USER"],
            smtp_password=os.environ["EMAIL_PASSWORD"],
            from_addr=from_addr,
            reply_to=reply_to,
        )
    elif channel == "resend":
        from .resend_notifier import ResendNotifier

        notifier = ResendNotifier(
            api_key=os.environ["RESEND_API_KEY"],
            from_addr=from_addr,
            reply_to=reply_to,
        )
    elif channel == "console":
        from .console_notifier import ConsoleNotifier

        notifier = ConsoleNotifier()
    else:
        raise ValueError(f"Unknown notify channel: {channel!r}")

    outbox_db = os.environ.get("OUTBOX_DB")
    if outbox_db:
        from helitour.adapters.sqlite_outbox import SqliteOutbox
        from .outbox_notifier import OutboxNotifier

        notifier = OutboxNotifier(notifier, SqliteOutbox(outbox_db))
    return notifier


def create_inbox(channel: str | None = None) -> Inbox:
    """
    Inbound counterpart of create_notifier(), driven by INBOX_CHANNEL
    ("imap" or "console"). Defaults to "console".
    """
    channel = channel or os.environ.get("INBOX_CHANNEL", "console")

    if channel == "imap":
        from .imap_inbox import ImapInbox

        return ImapInbox(
            host=os.environ.get("EMAIL_IMAP_HOST", "imap.gmail.com"),
            port=int(os.environ.get("EMAIL_IMAP_PORT", "993")),
            user=os.environ["EMAIL_USER"],
            password=os.environ["EMAIL_PASSWORD"],
        )

    if channel == "console":
        from .console_notifier import ConsoleInbox

        return ConsoleInbox()

    raise ValueError(f"Unknown inbox channel: {channel!r}")
