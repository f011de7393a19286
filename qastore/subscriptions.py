"""
Notification plumbing for the entity store.

EventBus: in-process pub/sub used to announce status transitions.
MetaInvalidationListener: PostgreSQL LISTEN/NOTIFY consumer that evicts
    MetaCache entries when meta rows are written by another process.
"""

import json
import logging
import select
import threading
from typing import Callable

import psycopg2

from qastore.meta import MetaCache

logger = logging.getLogger(__name__)

META_CHANNEL = "qa_object_meta"


class EventBus:
    """
    In-process pub/sub keyed by event name.

    Listeners run synchronously, in subscription order, catch-all listeners
    first. A listener that raises stops the emit and the exception reaches
    the emitter; isolating failures is the emitter's job.
    Thread-safe for concurrent emit/subscribe.
    """

    def __init__(self):
        self._listeners = {}        # event_name → [callback]
        self._all_listeners = []    # [callback(event_name, *args)]
        self._lock = threading.Lock()

    def on(self, event_name: str, callback: Callable) -> None:
        """Subscribe to one event name."""
        with self._lock:
            self._listeners.setdefault(event_name, []).append(callback)

    def on_all(self, callback: Callable) -> None:
        """Subscribe to every event. The callback receives the name first."""
        with self._lock:
            self._all_listeners.append(callback)

    def off(self, event_name: str, callback: Callable) -> None:
        with self._lock:
            listeners = self._listeners.get(event_name, [])
            if callback in listeners:
                listeners.remove(callback)

    def off_all(self, callback: Callable) -> None:
        with self._lock:
            if callback in self._all_listeners:
                self._all_listeners.remove(callback)

    def has_listeners(self, event_name: str) -> bool:
        with self._lock:
            return bool(self._all_listeners or self._listeners.get(event_name))

    def emit(self, event_name: str, *args) -> None:
        """Call every listener for event_name with args."""
        with self._lock:
            catch_all = list(self._all_listeners)
            listeners = list(self._listeners.get(event_name, []))

        for cb in catch_all:
            cb(event_name, *args)
        for cb in listeners:
            cb(*args)


class MetaInvalidationListener:
    """
    Background listener that keeps a MetaCache honest across processes.

    The schema's trigger NOTIFYs META_CHANNEL with {"object_id": ...} on
    every meta write; each notification evicts that object from the cache.

    Args:
        meta_cache: the MetaCache to evict from
        host, port, dbname, user, password: PG connection params
    """

    def __init__(self, meta_cache: MetaCache, host, port, dbname, user,
                 password=None, poll_interval=0.5):
        self.meta_cache = meta_cache
        self._conn_params = dict(host=host, port=port, dbname=dbname,
                                 user=user, password=password)
        self._poll_interval = poll_interval
        self._conn = None
        self._thread = None
        self._stop_event = threading.Event()

    def start(self):
        """Start LISTENing on a background thread."""
        self._stop_event.clear()
        self._conn = psycopg2.connect(**self._conn_params)
        self._conn.autocommit = True

        with self._conn.cursor() as cur:
            cur.execute(f"LISTEN {META_CHANNEL};")

        self._thread = threading.Thread(target=self._listen_loop, daemon=True)
        self._thread.start()
        logger.info("Listening for meta changes on %s", META_CHANNEL)

    def stop(self):
        """Stop the listener and close the connection."""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=2)
            self._thread = None
        if self._conn and not self._conn.closed:
            self._conn.close()
            self._conn = None

    def _listen_loop(self):
        while not self._stop_event.is_set():
            if self._conn is None or self._conn.closed:
                break
            if select.select([self._conn], [], [], self._poll_interval) != ([], [], []):
                self._conn.poll()
                while self._conn.notifies:
                    notify = self._conn.notifies.pop(0)
                    self._handle_notify(notify)

    def _handle_notify(self, notify):
        """Parse a notification and evict the object it names."""
        try:
            payload = json.loads(notify.payload)
            object_id = int(payload["object_id"])
        except (json.JSONDecodeError, KeyError, TypeError, ValueError):
            logger.warning("Skipping malformed meta notification: %r",
                           getattr(notify, "payload", notify))
            return None
        dropped = self.meta_cache.evict(object_id)
        logger.debug("Evicted %d meta entries for object %s", dropped, object_id)
        return object_id

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *args):
        self.stop()
