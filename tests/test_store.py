"""
Tests for the PostgreSQL-backed store: JSONB serde, entity round trips,
partial updates, meta rows, and LISTEN/NOTIFY cache eviction.

Uses an embedded PostgreSQL (pgserver). Run with: pytest tests/test_store.py -v
"""

import os
import sys
import json
import time
import uuid
import tempfile
import pytest
from dataclasses import dataclass
from datetime import datetime, date, timezone
from decimal import Decimal

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

pytest.importorskip("pgserver")

from qastore.base import Data, _JSONEncoder, _json_decoder_hook
from qastore.client import PostgresDataStore, _decode
from qastore.exceptions import NotFoundError, PersistenceError
from qastore.meta import MetaCache
from qastore.models import Answer, Question
from qastore.schema import bootstrap_schema
from qastore.server import StoreServer
from qastore.subscriptions import EventBus, MetaInvalidationListener


# ── Fixtures ─────────────────────────────────────────────────────────────────

@pytest.fixture(scope="module")
def server():
    """Start an embedded PostgreSQL server for testing."""
    tmp_dir = tempfile.mkdtemp(prefix="test_qastore_")
    srv = StoreServer(data_dir=tmp_dir)
    try:
        srv.start()
    except Exception as exc:
        pytest.skip(f"Embedded PostgreSQL unavailable: {exc}")
    yield srv
    srv.stop()


@pytest.fixture(scope="module")
def conn_info(server):
    """Connection info dict."""
    return server.conn_info()


@pytest.fixture()
def pg(conn_info):
    """PostgresDataStore connected to the embedded server."""
    s = PostgresDataStore(**conn_info)
    yield s
    s.close()


@pytest.fixture(autouse=True)
def _no_shared_collaborators():
    Data.configure(meta_cache=None, dispatcher=None, date_normalizer=None)
    yield
    Data.configure(meta_cache=None, dispatcher=None, date_normalizer=None)


def _raw_data(server, object_id):
    conn = server.connect()
    try:
        with conn.cursor() as cur:
            cur.execute("SELECT status, data FROM qa_objects WHERE id = %s", (object_id,))
            return cur.fetchone()
    finally:
        conn.close()


# ── Serialization (no DB needed) ────────────────────────────────────────────

class TestSerde:
    def test_datetime_serde(self):
        dt = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
        encoded = json.dumps({"t": dt}, cls=_JSONEncoder)
        assert json.loads(encoded, object_hook=_json_decoder_hook)["t"] == dt

    def test_date_serde(self):
        encoded = json.dumps({"d": date(2024, 1, 15)}, cls=_JSONEncoder)
        assert _decode(encoded)["d"] == date(2024, 1, 15)

    def test_decimal_serde(self):
        encoded = json.dumps({"amount": Decimal("12.50")}, cls=_JSONEncoder)
        assert _decode(encoded)["amount"] == Decimal("12.50")

    def test_uuid_serde(self):
        u = uuid.uuid4()
        assert _decode(json.dumps({"u": u}, cls=_JSONEncoder))["u"] == u

    def test_dataclass_serde(self):
        @dataclass
        class Point:
            x: int
            y: int

        assert json.loads(json.dumps(Point(1, 2), cls=_JSONEncoder)) == {"x": 1, "y": 2}

    def test_decode_already_parsed(self):
        parsed = {"t": {"__type__": "datetime", "value": "2024-01-15T12:00:00+00:00"}}
        assert _decode(parsed)["t"] == datetime(2024, 1, 15, 12, tzinfo=timezone.utc)

    def test_decode_none(self):
        assert _decode(None) is None


# ── Entity round trips ───────────────────────────────────────────────────────

class TestRoundTrip:
    def test_create_assigns_id(self, pg):
        before = pg.count("question")
        q = Question(data_store=pg)
        q.set_title("Embedded?")
        assert q.save() == q.get_id() > 0
        assert pg.count("question") == before + 1

    def test_read_back(self, pg):
        q = Question(data_store=pg)
        q.set_title("Round trip")
        q.set_content("Body text")
        q.set_vote_net_counts(-2)
        q.set_date_created("2024-01-15T09:00:00+09:00")
        q.save()

        loaded = Question(q.get_id(), data_store=pg)
        assert loaded.get_title() == "Round trip"
        assert loaded.get_content() == "Body text"
        assert loaded.get_vote_net_counts() == -2
        assert loaded.get_date_created() == datetime(2024, 1, 15, tzinfo=timezone.utc)
        assert loaded.get_changes() == {}

    def test_status_column(self, server, pg):
        q = Question(data_store=pg)
        q.set_status("published")
        q.save()
        status, data = _raw_data(server, q.get_id())
        assert status == "published"
        assert "status" not in data
        assert q.get_id() in pg.ids_by_status("question", "published")

    def test_partial_update(self, server, pg):
        q = Question(data_store=pg)
        q.set_title("Original")
        q.set_content("Keep me")
        q.save()

        loaded = Question(q.get_id(), data_store=pg)
        loaded.set_title("Edited")
        assert loaded.save() == q.get_id()

        _, data = _raw_data(server, q.get_id())
        assert data["title"] == "Edited"
        assert data["content"] == "Keep me"
        assert data["date_modified"]["__type__"] == "datetime"

    def test_status_update(self, server, pg):
        q = Question(data_store=pg)
        q.save()
        bus = EventBus()
        heard = []
        bus.on("question_status_changed", lambda *args: heard.append(args[1:3]))

        loaded = Question(q.get_id(), data_store=pg, dispatcher=bus)
        assert loaded.update_status("closed") == q.get_id()
        assert _raw_data(server, q.get_id())[0] == "closed"
        assert heard == [("draft", "closed")]

    def test_read_missing(self, pg):
        with pytest.raises(NotFoundError):
            Question(10 ** 9, data_store=pg)

    def test_read_wrong_kind(self, pg):
        a = Answer(data_store=pg)
        a.save()
        with pytest.raises(NotFoundError):
            Question(a.get_id(), data_store=pg)

    def test_update_missing_row(self, pg):
        q = Question(data_store=pg)
        q.set_id(10 ** 9)
        q.set_title("Ghost")
        result = q.save()
        assert isinstance(result, PersistenceError)
        assert q.get_changes()["title"] == "Ghost"

    def test_closed_connection_is_persistence_error(self, conn_info):
        s = PostgresDataStore(**conn_info)
        s.close()
        with pytest.raises(PersistenceError):
            s.count()


# ── Meta rows ────────────────────────────────────────────────────────────────

class TestMeta:
    def test_fetch_in_insert_order(self, pg):
        q = Question(data_store=pg)
        q.save()
        pg.add_meta(q.get_id(), "subscriber", "alice")
        pg.add_meta(q.get_id(), "subscriber", "bob")
        pg.add_meta(q.get_id(), "flags", {"pinned": True})
        assert pg.fetch(q.get_id()) == [
            ("subscriber", "alice"),
            ("subscriber", "bob"),
            ("flags", {"pinned": True}),
        ]

    def test_string_values_stay_strings(self, pg):
        q = Question(data_store=pg)
        q.save()
        pg.add_meta(q.get_id(), "note", "plain")
        pg.add_meta(q.get_id(), "note", "[1, 2]")
        pg.add_meta(q.get_id(), "note", None)
        assert pg.fetch(q.get_id()) == [
            ("note", "plain"),
            ("note", "[1, 2]"),
            ("note", None),
        ]

    def test_delete_meta(self, pg):
        q = Question(data_store=pg)
        q.save()
        pg.add_meta(q.get_id(), "tmp", 1)
        pg.add_meta(q.get_id(), "tmp", 2)
        assert pg.delete_meta(q.get_id(), "tmp") == 2
        assert pg.fetch(q.get_id()) == []

    def test_entity_meta_through_cache(self, pg):
        cache = MetaCache(pg)
        q = Question(data_store=pg, meta_cache=cache)
        q.save()
        pg.add_meta(q.get_id(), "views_by", "carol")
        assert q.get_meta("views_by") == "carol"
        assert ("questions", q.get_id()) in cache


# ── LISTEN/NOTIFY invalidation ───────────────────────────────────────────────

class TestMetaInvalidation:
    def test_meta_write_evicts_cache(self, pg, conn_info):
        cache = MetaCache(pg)
        q = Question(data_store=pg, meta_cache=cache)
        q.save()
        pg.add_meta(q.get_id(), "subscriber", "alice")
        assert q.get_meta("subscriber", single=False) == ["alice"]

        with MetaInvalidationListener(cache, poll_interval=0.1, **conn_info):
            pg.add_meta(q.get_id(), "subscriber", "bob")
            deadline = time.time() + 5
            while ("questions", q.get_id()) in cache and time.time() < deadline:
                time.sleep(0.05)

        assert ("questions", q.get_id()) not in cache
        assert q.get_meta("subscriber", single=False) == ["alice", "bob"]


# ── Schema ───────────────────────────────────────────────────────────────────

class TestSchema:
    def test_bootstrap_is_idempotent(self, server, pg):
        q = Question(data_store=pg)
        q.set_title("Survives")
        q.save()

        conn = server.connect()
        try:
            bootstrap_schema(conn)
        finally:
            conn.close()

        assert Question(q.get_id(), data_store=pg).get_title() == "Survives"
