from concurrent.futures import ThreadPoolExecutor

import pytest

from vms.core.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from vms.core.mongo_ops import NullMirror
from vms.models.records import SCANS
from vms.services.checkin import CheckInEngine


@pytest.fixture
def engine(store, mirror):
    return CheckInEngine(store, mirror)


def test_authenticate_stall(engine):
    stall = engine.authenticate_stall("A", "stallA2025")
    assert stall.public() == {"id": "A", "name": "STALL A"}


@pytest.mark.parametrize("stall_id, code, error", [
    ("A", "wrong", ForbiddenError),
    ("Z", "stallA2025", NotFoundError),
    ("A", "", BadRequestError),
    (None, "stallA2025", BadRequestError),
])
def test_authenticate_stall_failures_do_not_mutate(engine, store, stall_id, code, error):
    before = store.snapshot()
    with pytest.raises(error):
        engine.authenticate_stall(stall_id, code)
    assert store.snapshot() == before


def test_first_scan_creates_record(engine, store, add_visitor, mongo_db):
    add_visitor("v-1")

    result = engine.scan("v-1", "A", "stallA2025")

    assert result.ok and not result.repeat
    assert result.visitor == {"id": "v-1", "name": "Ann", "email": "ann@x.com"}
    assert result.stall == {"id": "A", "name": "STALL A"}
    scans = store.get(SCANS)
    assert len(scans) == 1
    assert scans[0]["visitor_id"] == "v-1" and scans[0]["stall_id"] == "A"
    assert mongo_db[SCANS].docs[0]["id"] == scans[0]["id"]


def test_repeat_scan_at_same_stall_is_idempotent(engine, store, add_visitor):
    add_visitor("v-1")

    first = engine.scan("v-1", "A", "stallA2025")
    second = engine.scan("v-1", "A", "stallA2025")

    assert second.repeat
    assert second.visitor == first.visitor and second.stall == first.stall
    assert set(second.model_dump()) == set(first.model_dump())
    assert len(store.get(SCANS)) == 1


def test_scan_at_other_stall_conflicts_and_names_first_stall(engine, store, add_visitor):
    add_visitor("v-1")
    engine.scan("v-1", "A", "stallA2025")

    with pytest.raises(ConflictError) as exc:
        engine.scan("v-1", "B", "stallB2025")

    assert exc.value.message == "Visitor already scanned at STALL A"
    assert exc.value.status_code == 403
    assert len(store.get(SCANS)) == 1


def test_stall_is_authenticated_before_visitor_lookup(engine):
    with pytest.raises(ForbiddenError):
        engine.scan("nobody", "A", "bad-code")


def test_unknown_visitor(engine):
    with pytest.raises(NotFoundError):
        engine.scan("nobody", "A", "stallA2025")


def test_missing_fields(engine):
    with pytest.raises(BadRequestError):
        engine.scan("", "A", "stallA2025")


def test_raw_badge_payload_is_accepted(engine, store, add_visitor):
    add_visitor("v-1")

    result = engine.scan("VMS:v-1", "A", "stallA2025")

    assert result.visitor["id"] == "v-1"
    assert store.get(SCANS)[0]["visitor_id"] == "v-1"


def test_mirror_failure_does_not_affect_scan(store, add_visitor, failing_mirror):
    engine = CheckInEngine(store, failing_mirror)
    add_visitor("v-1")

    result = engine.scan("v-1", "A", "stallA2025")

    assert not result.repeat
    assert len(store.get(SCANS)) == 1


def test_single_stall_lock_holds_for_any_scan_sequence(store, add_visitor):
    engine = CheckInEngine(store, NullMirror())
    for i in range(3):
        add_visitor(f"v-{i}")
    codes = {"A": "stallA2025", "B": "stallB2025"}

    sequence = ["A", "B", "A", "B", "B", "A"]
    for visitor_id in ("v-0", "v-1", "v-2"):
        for stall in sequence:
            try:
                engine.scan(visitor_id, stall, codes[stall])
            except ConflictError:
                pass
        sequence = sequence[1:] + sequence[:1]

    for visitor_id in ("v-0", "v-1", "v-2"):
        scans = store.get(SCANS, lambda s: s["visitor_id"] == visitor_id)
        assert len(scans) == 1
        assert len({s["stall_id"] for s in scans}) == 1


def test_concurrent_scans_at_two_stalls_keep_one_record(store, add_visitor):
    engine = CheckInEngine(store, NullMirror())
    add_visitor("v-1")
    attempts = [("A", "stallA2025"), ("B", "stallB2025")] * 10

    def attempt(args):
        try:
            return engine.scan("v-1", *args).stall["id"]
        except ConflictError:
            return None

    with ThreadPoolExecutor(max_workers=8) as pool:
        accepted = [r for r in pool.map(attempt, attempts) if r]

    scans = store.get(SCANS)
    assert len(scans) == 1
    assert set(accepted) == {scans[0]["stall_id"]}
