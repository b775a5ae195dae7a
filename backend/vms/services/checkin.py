import logging
from typing import Optional

from pydantic import BaseModel

from vms.core.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from vms.core.mongo_ops import log_mirror_outcome
from vms.core.store import RecordStore
from vms.models.records import SCANS, STALLS, VISITORS, Scan, Stall, Visitor, utc_now_iso
from vms.utils.crypto import generate_record_id, secrets_match
from vms.utils.qr import visitor_id_from_payload

logger = logging.getLogger(__name__)


class ScanResult(BaseModel):
    ok: bool = True
    repeat: bool
    message: str
    visitor: dict
    stall: dict


class CheckInEngine:
    """
    Decides whether a badge scan is accepted, refused or a harmless repeat.

    A visitor is locked to the stall of their first scan. Scanning again at
    that stall returns the same success shape without writing anything;
    scanning at any other stall is refused.
    """

    def __init__(self, store: RecordStore, mirror):
        self.store = store
        self.mirror = mirror

    def authenticate_stall(self, stall_id: Optional[str], access_code: Optional[str]) -> Stall:
        if not stall_id or not access_code:
            raise BadRequestError("stallId and accessCode required")

        record = self.store.find_one(STALLS, lambda s: s["id"] == stall_id)
        if record is None:
            raise NotFoundError("Stall not found")

        stall = Stall(**record)
        if not secrets_match(access_code, stall.access_code):
            logger.warning(f"🔒 Rejected access code for stall {stall_id}")
            raise ForbiddenError("Invalid stall access code")
        return stall

    def scan(self, visitor_id: Optional[str], stall_id: Optional[str],
             access_code: Optional[str]) -> ScanResult:
        visitor_id = visitor_id_from_payload(visitor_id)
        if not visitor_id or not stall_id or not access_code:
            raise BadRequestError("visitorId, stallId, accessCode required")

        stall = self.authenticate_stall(stall_id, access_code)

        new_scan = None
        with self.store.locked():
            record = self.store.find_one(VISITORS, lambda v: v["id"] == visitor_id)
            if record is None:
                raise NotFoundError("Visitor not found")
            visitor = Visitor(**record)

            # Any-stall lookup must come before the same-stall check
            prior = self.store.find_one(SCANS, lambda s: s["visitor_id"] == visitor_id)
            if prior is not None and prior["stall_id"] != stall.id:
                prior_stall = self.store.find_one(STALLS, lambda s: s["id"] == prior["stall_id"])
                where = prior_stall["name"] if prior_stall else prior["stall_id"]
                logger.info(f"⛔ Visitor {visitor_id} refused at {stall.id}, already checked in at {prior['stall_id']}")
                raise ConflictError(f"Visitor already scanned at {where}")

            if prior is None:
                new_scan = Scan(
                    id=generate_record_id(),
                    visitor_id=visitor.id,
                    stall_id=stall.id,
                    scanned_at=utc_now_iso(),
                )
                self.store.insert(SCANS, new_scan.to_record())

        if new_scan is None:
            return ScanResult(
                repeat=True,
                message="Already scanned at this stall",
                visitor=visitor.public(),
                stall=stall.public(),
            )

        logger.info(f"✅ Visitor {visitor.id} checked in at stall {stall.id}")
        log_mirror_outcome(self.mirror.insert(SCANS, new_scan.to_record()), new_scan.id)

        return ScanResult(
            repeat=False,
            message="Scan recorded",
            visitor=visitor.public(),
            stall=stall.public(),
        )
