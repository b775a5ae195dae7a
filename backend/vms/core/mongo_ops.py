import logging
from typing import Optional

from pymongo import ASCENDING, MongoClient
from pymongo.errors import DuplicateKeyError, PyMongoError

from vms.core.config import Settings
from vms.models.outcome import MirrorOutcome
from vms.models.records import SCANS, VISITORS

logger = logging.getLogger(__name__)


class NullMirror:
    """Stand-in used when no MongoDB is configured or reachable."""

    enabled = False

    def insert(self, collection: str, record: dict) -> MirrorOutcome:
        return MirrorOutcome.success("insert", collection, skipped=True)

    def update(self, collection: str, key: str, patch: dict) -> MirrorOutcome:
        return MirrorOutcome.success("update", collection, skipped=True)

    def close(self):
        pass


class MongoMirror:
    """
    Best-effort copy of every record store write.

    The record store stays authoritative. Every call here returns a
    MirrorOutcome instead of raising, so a broken mirror can never undo or
    block a committed write.
    """

    enabled = True

    def __init__(self, database, client: Optional[MongoClient] = None):
        self.db = database
        self.client = client

    def ensure_indexes(self):
        """Visitors are looked up by email; a visitor has at most one scan per stall."""
        self.db[VISITORS].create_index([("email", ASCENDING)])
        self.db[SCANS].create_index(
            [("visitor_id", ASCENDING), ("stall_id", ASCENDING)], unique=True
        )

    def insert(self, collection: str, record: dict) -> MirrorOutcome:
        try:
            # insert_one adds _id to the dict it is given
            self.db[collection].insert_one(dict(record))
            return MirrorOutcome.success("insert", collection)
        except DuplicateKeyError as e:
            return MirrorOutcome.failure("insert", collection, str(e), duplicate=True)
        except Exception as e:
            return MirrorOutcome.failure("insert", collection, str(e))

    def update(self, collection: str, key: str, patch: dict) -> MirrorOutcome:
        try:
            self.db[collection].update_one({"id": key}, {"$set": dict(patch)})
            return MirrorOutcome.success("update", collection)
        except Exception as e:
            return MirrorOutcome.failure("update", collection, str(e))

    def close(self):
        if self.client is not None:
            self.client.close()


def log_mirror_outcome(outcome: MirrorOutcome, key: str):
    if outcome.ok:
        return
    if outcome.duplicate:
        logger.info(f"Mirror {outcome.operation} on {outcome.collection} ignored duplicate for {key}")
    else:
        logger.warning(
            f"⚠️ Mirror {outcome.operation} on {outcome.collection} failed for {key}: {outcome.error}"
        )


def connect_mirror(settings: Settings):
    """Connect to MongoDB when configured, falling back to NullMirror on any failure."""
    if not settings.MONGODB_URI:
        logger.info("MongoDB not configured (MONGODB_URI missing). Mirror disabled.")
        return NullMirror()

    client = None
    try:
        client = MongoClient(
            settings.MONGODB_URI, serverSelectionTimeoutMS=settings.MONGODB_TIMEOUT_MS
        )
        client.admin.command("ping")
        mirror = MongoMirror(client[settings.MONGODB_DB], client=client)
        mirror.ensure_indexes()
        logger.info(f"✅ MongoDB mirror connected: {settings.MONGODB_DB}")
        return mirror
    except PyMongoError as e:
        logger.error(f"❌ MongoDB mirror init failed, continuing without it: {e}")
        if client is not None:
            client.close()
        return NullMirror()
