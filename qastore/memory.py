"""
MemoryDataStore — dict-backed DataStore and MetaStore.

Useful for tests and for embedding without a database. Rows are kept per
id together with their object type; meta rows keep insertion order.

    store = MemoryDataStore(on_meta_change=cache.evict)
    register("question", store)
"""

import copy
import logging
import threading
from typing import Callable, Optional

from qastore.data_store import DataStore
from qastore.dates import utc_now
from qastore.exceptions import NotFoundError, PersistenceError

logger = logging.getLogger(__name__)


class MemoryDataStore(DataStore):
    """In-process store. Thread-safe; values are deep-copied in and out.

    on_meta_change(object_id) is called after every meta write, the
    in-process counterpart of the PostgreSQL NOTIFY trigger.
    """

    def __init__(self, on_meta_change: Optional[Callable[[int], object]] = None):
        self._rows = {}         # id → {"object_type": str, "data": dict}
        self._meta = {}         # id → [(meta_id, key, value)]
        self._next_id = 1
        self._next_meta_id = 1
        self._lock = threading.Lock()
        self._failure = None
        self._on_meta_change = on_meta_change
        self.calls = []         # (operation, id, change keys)
        self.meta_fetches = 0

    # ── DataStore ────────────────────────────────────────────────────

    def read(self, entity) -> None:
        object_id = entity.get_id()
        with self._lock:
            row = self._rows.get(object_id)
            if row is None or row["object_type"] != entity.get_type():
                raise NotFoundError(entity.get_type(), object_id)
            data = copy.deepcopy(row["data"])
        for name, value in data.items():
            if entity.has_prop(name):
                entity.set_prop(name, value)
        self.calls.append(("read", object_id, ()))

    def create(self, entity) -> int:
        self._raise_injected("create")
        if entity.has_prop("date_created") and entity.get_prop("date_created") is None:
            entity.set_date_prop("date_created", utc_now())

        with self._lock:
            object_id = self._next_id
            self._next_id += 1
            self._rows[object_id] = {
                "object_type": entity.get_type(),
                "data": copy.deepcopy(entity.get_props()),
            }
        entity.set_id(object_id)
        self.calls.append(("create", object_id, ()))
        logger.debug("Created %s %s", entity.get_type(), object_id)
        return object_id

    def update(self, entity) -> None:
        self._raise_injected("update")
        object_id = entity.get_id()
        changes = entity.get_changes()
        if not changes:
            self.calls.append(("update", object_id, ()))
            return

        if entity.has_prop("date_modified") and "date_modified" not in changes:
            entity.set_date_prop("date_modified", utc_now())
            changes = entity.get_changes()

        with self._lock:
            row = self._rows.get(object_id)
            if row is None or row["object_type"] != entity.get_type():
                raise PersistenceError(
                    f"Cannot update missing {entity.get_type()} {object_id}",
                    entity_type=entity.get_type(),
                    entity_id=object_id,
                )
            row["data"].update(copy.deepcopy(changes))
        self.calls.append(("update", object_id, tuple(sorted(changes))))

    # ── MetaStore ────────────────────────────────────────────────────

    def fetch(self, object_id, group=None) -> list:
        with self._lock:
            self.meta_fetches += 1
            rows = self._meta.get(object_id, [])
            return [(key, copy.deepcopy(value)) for _, key, value in rows]

    def add_meta(self, object_id, key, value) -> int:
        with self._lock:
            meta_id = self._next_meta_id
            self._next_meta_id += 1
            self._meta.setdefault(object_id, []).append((meta_id, key, copy.deepcopy(value)))
        self._meta_changed(object_id)
        return meta_id

    def update_meta(self, object_id, key, value) -> None:
        """Replace the first value stored under key, or add one."""
        with self._lock:
            rows = self._meta.setdefault(object_id, [])
            for i, (meta_id, k, _) in enumerate(rows):
                if k == key:
                    rows[i] = (meta_id, key, copy.deepcopy(value))
                    break
            else:
                rows.append((self._next_meta_id, key, copy.deepcopy(value)))
                self._next_meta_id += 1
        self._meta_changed(object_id)

    def delete_meta(self, object_id, key) -> int:
        with self._lock:
            rows = self._meta.get(object_id, [])
            kept = [r for r in rows if r[1] != key]
            removed = len(rows) - len(kept)
            self._meta[object_id] = kept
        if removed:
            self._meta_changed(object_id)
        return removed

    # ── Helpers ──────────────────────────────────────────────────────

    def fail_next(self, exc: BaseException) -> None:
        """Make the next create() or update() raise exc."""
        self._failure = exc

    def delete(self, object_id) -> bool:
        """Drop a row and its meta, as another process deleting it would."""
        with self._lock:
            removed = self._rows.pop(object_id, None) is not None
            self._meta.pop(object_id, None)
        return removed

    def get_row(self, object_id) -> Optional[dict]:
        with self._lock:
            row = self._rows.get(object_id)
            return copy.deepcopy(row) if row is not None else None

    def count(self, object_type=None) -> int:
        with self._lock:
            if object_type is None:
                return len(self._rows)
            return sum(1 for r in self._rows.values() if r["object_type"] == object_type)

    def _raise_injected(self, operation):
        exc, self._failure = self._failure, None
        if exc is not None:
            logger.debug("Injected failure on %s: %r", operation, exc)
            raise exc

    def _meta_changed(self, object_id):
        if self._on_meta_change is not None:
            self._on_meta_change(object_id)
