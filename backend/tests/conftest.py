import os
from contextlib import ExitStack

import pytest
from fastapi.testclient import TestClient
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

# Module-level settings are read on import; keep test runs from writing app.log
os.environ.setdefault("LOG_FILE", "")

from vms.core.config import DEFAULT_STALLS, Settings
from vms.core.errors import NotificationError
from vms.core.mongo_ops import MongoMirror
from vms.core.store import RecordStore
from vms.main import create_app
from vms.models.outcome import NotificationOutcome
from vms.models.records import VISITORS, Visitor, utc_now_iso


class FakeNotifier:
    def __init__(self, reachable=True, deliverable=True):
        self.reachable = reachable
        self.deliverable = deliverable
        self.verified = 0
        self.sent = []

    def verify(self):
        self.verified += 1
        if not self.reachable:
            return NotificationOutcome.failure("ConnectionRefusedError: [Errno 111] Connection refused")
        return NotificationOutcome.success()

    def send(self, message):
        if not self.deliverable:
            return NotificationOutcome.failure("SMTPRecipientsRefused: mailbox unavailable")
        self.sent.append(message)
        return NotificationOutcome.success(f"<msg-{len(self.sent)}@test>")


def unconfigured_notifier():
    raise NotificationError("SMTP not configured")


class FakeCollection:
    def __init__(self, unique_keys=None):
        self.docs = []
        self.updates = []
        self.indexes = []
        self.unique_keys = unique_keys

    def create_index(self, keys, unique=False):
        self.indexes.append((keys, unique))
        if unique:
            self.unique_keys = [k for k, _ in keys]

    def insert_one(self, doc):
        if self.unique_keys:
            key = tuple(doc.get(k) for k in self.unique_keys)
            if any(tuple(d.get(k) for k in self.unique_keys) == key for d in self.docs):
                raise DuplicateKeyError("E11000 duplicate key error")
        self.docs.append(doc)

    def update_one(self, query, update):
        self.updates.append((query, update))
        for doc in self.docs:
            if all(doc.get(k) == v for k, v in query.items()):
                doc.update(update["$set"])


class FailingCollection:
    def _fail(self, *args, **kwargs):
        raise ServerSelectionTimeoutError("mongo:27017: timed out")

    create_index = insert_one = update_one = _fail


class FakeDatabase:
    def __init__(self, collection_cls=FakeCollection):
        self.collection_cls = collection_cls
        self.collections = {}

    def __getitem__(self, name):
        if name not in self.collections:
            self.collections[name] = self.collection_cls()
        return self.collections[name]


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATA_DIR=str(tmp_path / "data"),
        QR_DIR=str(tmp_path / "qrcodes"),
        APP_BASE_URL="http://testserver",
        MONGODB_URI=None,
        SMTP_HOST=None,
        EVENT_NAME="Expo",
        LOG_FILE=None,
    )


@pytest.fixture
def store():
    return RecordStore.open(None, DEFAULT_STALLS)


@pytest.fixture
def mongo_db():
    return FakeDatabase()


@pytest.fixture
def mirror(mongo_db):
    m = MongoMirror(mongo_db)
    m.ensure_indexes()
    return m


@pytest.fixture
def failing_mirror():
    return MongoMirror(FakeDatabase(FailingCollection))


@pytest.fixture
def add_visitor(store):
    def _add(visitor_id="v-1", name="Ann", email="ann@x.com", target=None):
        visitor = Visitor(id=visitor_id, name=name, email=email, registered_at=utc_now_iso())
        (target or store).insert(VISITORS, visitor.to_record())
        return visitor
    return _add


@pytest.fixture
def make_client(settings):
    """Start the app with a given notifier and mirror; yields a factory."""
    with ExitStack() as stack:
        def _make(notifier=None, mirror=None, notifier_factory=None):
            if notifier_factory is None:
                notifier = notifier or FakeNotifier()
                notifier_factory = lambda: notifier
            app = create_app(settings, notifier_factory=notifier_factory,
                             mirror=mirror or MongoMirror(FakeDatabase()))
            return stack.enter_context(TestClient(app))
        yield _make


@pytest.fixture
def client(make_client):
    return make_client()
