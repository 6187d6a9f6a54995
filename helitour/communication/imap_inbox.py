import email as email_lib
from datetime import datetime, timezone

from imapclient import IMAPClient

from .ports import Inbox, InboundEmail


class ImapInbox(Inbox):
    """Adapter: read unseen messages from the bookings mailbox over IMAP."""

    def __init__(self, host: str, port: int, user: str, password: str, folder: str = "INBOX"):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.folder = folder

    async def poll(self) -> list[InboundEmail]:
        messages = []

        with IMAPClient(self.host, port=self.port, ssl=True) as client:
            client.login(self.user, self.password)
            client.select_folder(self.folder)

            uids = client.search(["UNSEEN"])
            if not uids:
                return messages

            fetched = client.fetch(uids, ["RFC822"])
            for uid, data in fetched.items():
                msg = email_lib.message_from_bytes(data[b"RFC822"])
                messages.append(
                    InboundEmail(
                        sender=msg["From"] or "",
                        subject=msg["Subject"] or "",
                        body=self._get_body(msg),
                        received_at=datetime.now(timezone.utc),
                        headers={"message_id": msg["Message-ID"], "uid": uid},
                    )
                )
                client.set_flags([uid], [b"\\Seen"])

        return messages

    @staticmethod
    def _get_body(msg) -> str:
        if msg.is_multipart():
            for part in msg.walk():
                if part.get_content_type() == "text/plain":
                    payload = part.get_payload(decode=True)
                    if payload:
                        return payload.decode("utf-8", errors="replace")
            return ""
        payload = msg.get_payload(decode=True)
        if payload:
            return payload.decode("utf-8", errors="replace")
        return ""
