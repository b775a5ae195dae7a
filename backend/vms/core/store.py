import copy
import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from vms.core.errors import StorageError
from vms.models.records import COLLECTIONS, STALLS

logger = logging.getLogger(__name__)

Predicate = Callable[[dict], bool]


class RecordStore:
    """
    Durable key-value store for visitors, stalls and scans.

    The whole snapshot lives in memory and is written back in full on every
    mutation. A write is committed once the new snapshot has replaced the file
    on disk; until then neither the file nor the in-memory copy changes.
    """

    def __init__(self, path: Optional[Path], data: Dict[str, List[dict]]):
        self.path = Path(path) if path else None
        self._data = data
        self._lock = threading.RLock()

    @classmethod
    def open(cls, path: Optional[Path], seed_stalls: Iterable[dict] = ()) -> "RecordStore":
        """Load the snapshot at ``path`` or seed a new one with ``seed_stalls``."""
        empty = {name: [] for name in COLLECTIONS}

        if path is None:
            empty[STALLS] = [dict(s) for s in seed_stalls]
            return cls(None, empty)

        path = Path(path)
        if not path.exists():
            logger.info(f"📦 No snapshot at {path}, seeding stalls")
            empty[STALLS] = [dict(s) for s in seed_stalls]
            store = cls(path, {name: [] for name in COLLECTIONS})
            store._commit(empty)
            return store

        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise StorageError(f"Could not load record store {path}: {e}") from e

        if not isinstance(raw, dict):
            raise StorageError(f"Record store {path} is not a JSON object")

        data = {name: list(raw.get(name) or []) for name in COLLECTIONS}
        logger.info(
            f"📦 Loaded {len(data['visitors'])} visitors, "
            f"{len(data['stalls'])} stalls, {len(data['scans'])} scans from {path}"
        )
        return cls(path, data)

    @contextmanager
    def locked(self):
        """Hold the writer lock across several reads and writes."""
        with self._lock:
            yield self

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get(self, collection: str, predicate: Optional[Predicate] = None) -> List[dict]:
        with self._lock:
            records = self._collection(collection)
            return [copy.deepcopy(r) for r in records if predicate is None or predicate(r)]

    def find_one(self, collection: str, predicate: Predicate) -> Optional[dict]:
        with self._lock:
            for record in self._collection(collection):
                if predicate(record):
                    return copy.deepcopy(record)
        return None

    def snapshot(self) -> Dict[str, List[dict]]:
        with self._lock:
            return copy.deepcopy(self._data)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def insert(self, collection: str, record: dict) -> dict:
        with self._lock:
            self._collection(collection)
            staged = dict(self._data)
            staged[collection] = self._data[collection] + [copy.deepcopy(record)]
            self._commit(staged)
            return copy.deepcopy(record)

    def update(self, collection: str, key: str, patch: dict) -> Optional[dict]:
        with self._lock:
            records = self._collection(collection)
            for index, record in enumerate(records):
                if record.get("id") == key:
                    break
            else:
                return None

            updated = {**record, **copy.deepcopy(patch)}
            staged = dict(self._data)
            staged[collection] = records[:index] + [updated] + records[index + 1:]
            self._commit(staged)
            return copy.deepcopy(updated)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _collection(self, name: str) -> List[dict]:
        if name not in COLLECTIONS:
            raise StorageError(f"Unknown collection: {name}")
        return self._data[name]

    def _commit(self, staged: Dict[str, List[dict]]):
        if self.path is not None:
            try:
                payload = json.dumps(staged, indent=2, ensure_ascii=False)
            except (TypeError, ValueError) as e:
                raise StorageError(f"Could not serialize record store: {e}") from e
            self._write_atomic(payload)
        self._data = staged

    def _write_atomic(self, payload: str):
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            logger.error(f"❌ Record store write failed: {e}", exc_info=True)
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageError(f"Could not write record store: {e}") from e
