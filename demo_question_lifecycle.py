#!/usr/bin/env python3
"""
Demo: Question lifecycle on an embedded PostgreSQL

Walks one question through the store:

  1. Create a draft, then publish it via an intermediate status.
     Only the collapsed draft → publish transition is announced.
  2. A listener that raises does not undo the save.
  3. Meta written by another connection evicts the cached copy
     through LISTEN/NOTIFY.

Usage:
    python demo_question_lifecycle.py
"""

import tempfile
import time

from qastore import Data, EventBus, MetaCache, Question, register
from qastore.client import PostgresDataStore
from qastore.log_config import setup_logging
from qastore.server import StoreServer
from qastore.subscriptions import MetaInvalidationListener


_event_log = []


def _record(name, *args):
    object_id, rest = args[0], args[1:-1]
    _event_log.append(f"  {name}({object_id}, {', '.join(map(repr, rest))})")


def _broken_listener(object_id, to_status, entity):
    raise RuntimeError("mail server unreachable")


def main():
    setup_logging()

    print("=" * 70)
    print("  Question Lifecycle Demo")
    print("=" * 70)

    tmp_dir = tempfile.mkdtemp(prefix="qastore_demo_")
    with StoreServer(data_dir=tmp_dir) as server:
        info = server.conn_info()
        store = PostgresDataStore(**info)
        register("question", store)

        bus = EventBus()
        bus.on_all(_record)
        cache = MetaCache(store)
        Data.configure(meta_cache=cache, dispatcher=bus)

        # ── Demo 1 ───────────────────────────────────────────────────
        print("\n── Demo 1: draft → pending → publish, one save ─────────────")
        q = Question()
        q.set_title("Why does my cache go stale?")
        q.set_content("Meta looks old after another worker writes it.")
        q_id = q.save()
        print(f"Created question {q_id} status={q.get_status()}")

        _event_log.clear()
        q.set_status("pending")
        q.set_status("publish")
        print(f"Pending: {q.get_pending_transition()}")
        q.save()
        print("Events after save:")
        for line in _event_log:
            print(line)

        # ── Demo 2 ───────────────────────────────────────────────────
        print("\n── Demo 2: a failing listener ──────────────────────────────")
        bus.on("question_status_entered", _broken_listener)
        _event_log.clear()
        result = q.update_status("closed")
        print(f"update_status returned {result!r}")
        print(f"Stored status: {Question(q_id).get_status()}")
        print(f"Events fired: {len(_event_log) - 1}")   # minus before_save
        bus.off("question_status_entered", _broken_listener)

        # ── Demo 3 ───────────────────────────────────────────────────
        print("\n── Demo 3: cross-connection meta invalidation ──────────────")
        store.add_meta(q_id, "subscriber", "alice")
        print(f"Subscribers: {q.get_meta('subscriber', single=False)}")

        with MetaInvalidationListener(cache, **info):
            other = PostgresDataStore(**info)
            other.add_meta(q_id, "subscriber", "bob")
            other.close()
            time.sleep(1.0)
            print(f"Subscribers: {q.get_meta('subscriber', single=False)}")

        store.close()

    print("\nDone.")


if __name__ == "__main__":
    main()
