"""
MetaCache — process-wide cache of auxiliary key/value data per entity.

Entries are keyed by (group, object_id) and live until explicitly
invalidated; there is no TTL. An entity kind without a cache group bypasses
the cache and hits the MetaStore on every read.

    cache = MetaCache(store)
    cache.get_meta(42, "questions")    # fetches, then retains
    cache.get_meta(42, "questions")    # served from the cache
    cache.invalidate(42, "questions")  # after anything writes meta
"""

import logging
import threading
from typing import Optional, Protocol, Sequence, Tuple, runtime_checkable

logger = logging.getLogger(__name__)

MetaRow = Tuple[str, object]


@runtime_checkable
class MetaStore(Protocol):
    """Backing source of meta rows."""

    def fetch(self, object_id: int, group: Optional[str]) -> Sequence[MetaRow]:
        """Return (key, value) pairs for an entity, in storage order."""
        ...



class MetaCache:
    """
    Thread-safe for concurrent readers. The fetch runs outside the lock;
    each object id carries a generation that every invalidation bumps, and
    a fetch that raced an invalidation is returned but not retained.
    """

    def __init__(self, store: Optional[MetaStore] = None):
        self._store = store
        self._entries: dict[tuple, tuple] = {}
        self._generations: dict[int, int] = {}   # object_id → generation
        self._epoch = 0                          # bumped by clear()
        self._lock = threading.Lock()

    @property
    def store(self) -> Optional[MetaStore]:
        return self._store

    def get_meta(self, object_id: int, group: Optional[str],
                 store: Optional[MetaStore] = None) -> list:
        """Ordered (key, value) pairs for object_id.

        store overrides the cache's default MetaStore for a cache miss.
        """
        source = store if store is not None else self._store
        if source is None:
            raise ValueError("MetaCache has no MetaStore to fetch from")

        if not group:
            return [tuple(row) for row in source.fetch(object_id, group)]

        key = (group, object_id)
        with self._lock:
            cached = self._entries.get(key)
            stamp = self._stamp(object_id)
        if cached is not None:
            return list(cached)

        rows = tuple(tuple(row) for row in source.fetch(object_id, group))
        with self._lock:
            if self._stamp(object_id) == stamp:
                self._entries[key] = rows
                logger.debug("Cached %d meta rows for %s", len(rows), key)
            else:
                logger.debug("Invalidated during fetch, not caching %s", key)
        return list(rows)

    def invalidate(self, object_id: int, group: Optional[str]) -> bool:
        """Forget one entry. Returns True if something was cached."""
        if not group:
            return False
        with self._lock:
            self._bump(object_id)
            return self._entries.pop((group, object_id), None) is not None

    def evict(self, object_id: int) -> int:
        """Forget object_id under every group. Returns entries dropped."""
        with self._lock:
            self._bump(object_id)
            keys = [k for k in self._entries if k[1] == object_id]
            for k in keys:
                del self._entries[k]
        return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._epoch += 1
            self._entries.clear()
            self._generations.clear()

    def __contains__(self, key):
        with self._lock:
            return key in self._entries

    def __len__(self):
        with self._lock:
            return len(self._entries)

    # ── Internal (call with the lock held) ───────────────────────────

    def _stamp(self, object_id):
        return self._epoch, self._generations.get(object_id, 0)

    def _bump(self, object_id):
        self._generations[object_id] = self._generations.get(object_id, 0) + 1
