from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel


VISITORS = "visitors"
STALLS = "stalls"
SCANS = "scans"
COLLECTIONS = (VISITORS, STALLS, SCANS)


def utc_now_iso() -> str:
    """UTC timestamp in the ``2025-01-31T09:15:00.123Z`` form used across the snapshot."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: Optional[str]) -> datetime:
    if not value:
        return datetime.min.replace(tzinfo=timezone.utc)
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class EmailStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class Visitor(BaseModel):
    id: str
    name: str
    email: str
    registered_at: str
    email_status: EmailStatus = EmailStatus.PENDING
    email_error: Optional[str] = None
    email_message_id: Optional[str] = None

    def to_record(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)

    def public(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email}


class Stall(BaseModel):
    id: str
    name: str
    access_code: str

    def public(self) -> dict:
        return {"id": self.id, "name": self.name}


class Scan(BaseModel):
    id: str
    visitor_id: str
    stall_id: str
    scanned_at: str

    def to_record(self) -> dict:
        return self.model_dump(mode="json")
