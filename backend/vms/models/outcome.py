"""Tagged results for the two best-effort collaborators.

Neither the mirror nor the notifier raises into the request path. They
return one of these values instead, and the caller decides what to log and
what to persist.
"""
from typing import Optional

from pydantic import BaseModel


class MirrorOutcome(BaseModel):
    ok: bool
    operation: str
    collection: str
    skipped: bool = False
    duplicate: bool = False
    error: Optional[str] = None

    @classmethod
    def success(cls, operation: str, collection: str, skipped: bool = False):
        return cls(ok=True, operation=operation, collection=collection, skipped=skipped)

    @classmethod
    def failure(cls, operation: str, collection: str, error: str, duplicate: bool = False):
        return cls(ok=False, operation=operation, collection=collection,
                   error=error, duplicate=duplicate)


class NotificationOutcome(BaseModel):
    ok: bool
    message_id: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, message_id: Optional[str] = None):
        return cls(ok=True, message_id=message_id)

    @classmethod
    def failure(cls, error: str):
        return cls(ok=False, error=error)
