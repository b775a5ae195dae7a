import logging
from typing import Callable, Optional

from pydantic import BaseModel

from vms.core.config import Settings
from vms.core.errors import BadRequestError, InternalError, NotificationError, StorageError
from vms.core.mongo_ops import log_mirror_outcome
from vms.core.store import RecordStore
from vms.models.outcome import NotificationOutcome
from vms.models.records import VISITORS, EmailStatus, Visitor, utc_now_iso
from vms.services.email_templates import (
    QR_CID,
    event_email_html,
    event_email_subject,
    event_email_text,
    qr_link,
)
from vms.services.notifier import NotificationMessage
from vms.utils.qr import Credential, CredentialIssuer

logger = logging.getLogger(__name__)


class RegistrationResult(BaseModel):
    id: str
    previewUrl: Optional[str] = None
    email_status: EmailStatus
    email_error: Optional[str] = None
    qr_url: str


class RegistrationWorkflow:
    """
    Registers a visitor and tries to email them their QR credential.

    Only credential generation and the first record store write can fail the
    call. Whatever happens with email afterwards is captured in the visitor's
    ``email_status`` / ``email_error`` and the registration still succeeds.
    """

    def __init__(self, store: RecordStore, mirror, issuer: CredentialIssuer,
                 notifier_factory: Callable, settings: Settings):
        self.store = store
        self.mirror = mirror
        self.issuer = issuer
        self.notifier_factory = notifier_factory
        self.settings = settings

    def register(self, name: Optional[str], email: Optional[str]) -> RegistrationResult:
        name = (name or "").strip()
        email = (email or "").strip()
        if not name or not email:
            raise BadRequestError("Name and email are required")

        # 1. Credential
        credential = self.issuer.issue()

        # 2. Pending visitor
        visitor = Visitor(
            id=credential.visitor_id,
            name=name,
            email=email,
            registered_at=utc_now_iso(),
            email_status=EmailStatus.PENDING,
        )
        try:
            self.store.insert(VISITORS, visitor.to_record())
        except StorageError as e:
            self.issuer.discard(credential.visitor_id)
            raise InternalError("Failed to register") from e

        mirrored = {**visitor.to_record(), "qr_path": credential.path}
        log_mirror_outcome(self.mirror.insert(VISITORS, mirrored), visitor.id)
        logger.info(f"📝 Registered visitor {visitor.id} ({visitor.email})")

        # 3-4. Notification, outside any store lock
        outcome = self._notify(visitor, credential)
        if outcome.ok:
            patch = {"email_status": EmailStatus.SENT.value, "email_message_id": outcome.message_id}
        else:
            patch = {"email_status": EmailStatus.FAILED.value, "email_error": outcome.error}

        # 5. Final status
        self._record_status(visitor.id, patch)

        return RegistrationResult(
            id=visitor.id,
            previewUrl=None,
            email_status=patch["email_status"],
            email_error=patch.get("email_error"),
            qr_url=qr_link(self.settings, visitor.id),
        )

    def _notify(self, visitor: Visitor, credential: Credential) -> NotificationOutcome:
        try:
            notifier = self.notifier_factory()
        except NotificationError as e:
            logger.warning(f"⚠️ Notification channel unavailable for {visitor.id}: {e}")
            return NotificationOutcome.failure(str(e))

        try:
            verified = notifier.verify()
        except Exception as e:
            verified = NotificationOutcome.failure(f"{type(e).__name__}: {e}")
        if not verified.ok:
            logger.warning(f"⚠️ SMTP verify failed for {visitor.id}: {verified.error}")
            return verified

        record = visitor.to_record()
        message = NotificationMessage(
            recipient=visitor.email,
            sender=self.settings.sender,
            reply_to=self.settings.SMTP_REPLY_TO,
            subject=event_email_subject(self.settings),
            text=event_email_text(self.settings, record),
            html=event_email_html(self.settings, record, QR_CID),
            image=credential.png,
            image_cid=QR_CID,
        )
        try:
            sent = notifier.send(message)
        except Exception as e:
            sent = NotificationOutcome.failure(f"{type(e).__name__}: {e}")
        if sent.ok:
            logger.info(f"📧 Sent QR email to {visitor.email} ({sent.message_id})")
        else:
            logger.warning(f"⚠️ SMTP send failed for {visitor.id}: {sent.error}")
        return sent

    def _record_status(self, visitor_id: str, patch: dict):
        try:
            self.store.update(VISITORS, visitor_id, patch)
        except StorageError:
            # The visitor is already committed; the response still reports the outcome
            logger.error(f"❌ Could not persist email status for {visitor_id}", exc_info=True)
            return
        log_mirror_outcome(self.mirror.update(VISITORS, visitor_id, patch), visitor_id)
