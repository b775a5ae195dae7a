import logging
import smtplib
import ssl
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Optional

from pydantic import BaseModel

from vms.core.config import Settings
from vms.core.errors import NotificationError
from vms.models.outcome import NotificationOutcome

logger = logging.getLogger(__name__)


class NotificationMessage(BaseModel):
    recipient: str
    sender: str
    subject: str
    text: str
    html: str
    reply_to: Optional[str] = None
    image: Optional[bytes] = None
    image_cid: Optional[str] = None
    image_filename: str = "qr.png"


def build_mime(message: NotificationMessage, message_id: str) -> EmailMessage:
    mime = EmailMessage()
    mime["From"] = message.sender
    mime["To"] = message.recipient
    mime["Subject"] = message.subject
    mime["Message-ID"] = message_id
    if message.reply_to:
        mime["Reply-To"] = message.reply_to

    mime.set_content(message.text)
    mime.add_alternative(message.html, subtype="html")

    if message.image is not None:
        html_part = mime.get_payload()[1]
        html_part.add_related(
            message.image,
            maintype="image",
            subtype="png",
            cid=f"<{message.image_cid}>",
            filename=message.image_filename,
        )
    return mime


class SmtpNotifier:
    """SMTP delivery channel. Both operations return a NotificationOutcome."""

    def __init__(self, settings: Settings):
        if not settings.SMTP_HOST:
            raise NotificationError("SMTP not configured")
        self.settings = settings

    def _connect(self) -> smtplib.SMTP:
        s = self.settings
        if s.SMTP_SECURE:
            conn = smtplib.SMTP_SSL(
                s.SMTP_HOST, s.SMTP_PORT, timeout=s.SMTP_TIMEOUT,
                context=ssl.create_default_context(),
            )
        else:
            conn = smtplib.SMTP(s.SMTP_HOST, s.SMTP_PORT, timeout=s.SMTP_TIMEOUT)
            if s.SMTP_STARTTLS:
                conn.starttls(context=ssl.create_default_context())
        if s.SMTP_USER and s.SMTP_PASS:
            conn.login(s.SMTP_USER, s.SMTP_PASS)
        return conn

    def verify(self) -> NotificationOutcome:
        try:
            with self._connect() as conn:
                code, reply = conn.noop()
                if code != 250:
                    return NotificationOutcome.failure(f"SMTP NOOP returned {code}: {reply!r}")
            return NotificationOutcome.success()
        except (smtplib.SMTPException, OSError, ValueError) as e:
            return NotificationOutcome.failure(f"{type(e).__name__}: {e}")

    def send(self, message: NotificationMessage) -> NotificationOutcome:
        domain = message.sender.rsplit("@", 1)[-1].strip("> ") or None
        message_id = make_msgid(domain=domain)
        try:
            with self._connect() as conn:
                conn.send_message(build_mime(message, message_id))
            return NotificationOutcome.success(message_id)
        except (smtplib.SMTPException, OSError, ValueError) as e:
            return NotificationOutcome.failure(f"{type(e).__name__}: {e}")


def smtp_notifier_factory(settings: Settings):
    def factory() -> SmtpNotifier:
        return SmtpNotifier(settings)
    return factory
