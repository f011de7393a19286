"""
PostgresDataStore — DataStore and MetaStore backed by PostgreSQL.

Properties live in one JSONB document per entity (status also gets its
own column). Updates send only the change set, merged with `data || delta`.
Every psycopg2 failure surfaces as PersistenceError.
"""

import json
import logging
from contextlib import contextmanager

import psycopg2

from qastore.base import _JSONEncoder, _json_decoder_hook
from qastore.config import get_settings
from qastore.data_store import DataStore
from qastore.dates import utc_now
from qastore.exceptions import NotFoundError, PersistenceError

logger = logging.getLogger(__name__)


def _decode(value):
    """Turn a JSONB value back into Python, restoring tagged types.

    Strings are JSON text: queries select JSONB columns as ::text so a
    stored JSON string is never mistaken for a document.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return json.loads(value, object_hook=_json_decoder_hook)
    return json.loads(json.dumps(value), object_hook=_json_decoder_hook)


def _encode(value) -> str:
    return json.dumps(value, cls=_JSONEncoder)


class PostgresDataStore(DataStore):
    """
    Connects to PostgreSQL and persists entities into qa_objects.

    Usage:
        store = PostgresDataStore(user="qa", password="secret", host="/tmp/pg")
        register("question", store)
        q = Question(); q.set_title("Why?"); q.save()
        store.close()

    Connection parameters default to the QASTORE_DATABASE_* settings.
    """

    def __init__(self, user=None, password=None, host=None, port=None, dbname=None):
        settings = get_settings()
        self.user = user or settings.database_user
        self.conn = psycopg2.connect(
            host=host or settings.database_host,
            port=port or settings.database_port,
            dbname=dbname or settings.database_name,
            user=self.user,
            password=password if password is not None else settings.database_password,
        )
        self.conn.autocommit = True

    @contextmanager
    def _cursor(self, action):
        """Cursor whose psycopg2 errors become PersistenceError."""
        try:
            with self.conn.cursor() as cur:
                yield cur
        except psycopg2.Error as exc:
            raise PersistenceError(f"{action} failed: {exc}".strip()) from exc

    # ── DataStore ────────────────────────────────────────────────────

    def read(self, entity) -> None:
        object_id = entity.get_id()
        with self._cursor("read") as cur:
            cur.execute(
                """
                SELECT status, data::text FROM qa_objects
                WHERE id = %s AND object_type = %s
                """,
                (object_id, entity.get_type()),
            )
            row = cur.fetchone()
        if row is None:
            raise NotFoundError(entity.get_type(), object_id)

        status, data = row
        data = _decode(data) or {}
        for name, value in data.items():
            if entity.has_prop(name):
                entity.set_prop(name, value)
        if entity.has_prop("status"):
            entity.set_prop("status", status)

    def create(self, entity) -> int:
        if entity.has_prop("date_created") and entity.get_prop("date_created") is None:
            entity.set_date_prop("date_created", utc_now())

        data = entity.get_props()
        status = data.pop("status", None) or "draft"

        with self._cursor("create") as cur:
            cur.execute(
                """
                INSERT INTO qa_objects (object_type, status, data)
                VALUES (%s, %s, %s::jsonb)
                RETURNING id
                """,
                (entity.get_type(), status, _encode(data)),
            )
            object_id = cur.fetchone()[0]

        entity.set_id(object_id)
        logger.debug("Created %s %s", entity.get_type(), object_id)
        return object_id

    def update(self, entity) -> None:
        object_id = entity.get_id()
        if not object_id:
            raise PersistenceError(
                f"{entity.get_type()} has no id; create() it first",
                entity_type=entity.get_type(),
            )

        changes = entity.get_changes()
        if not changes:
            logger.debug("No changes for %s %s", entity.get_type(), object_id)
            return

        if entity.has_prop("date_modified") and "date_modified" not in changes:
            entity.set_date_prop("date_modified", utc_now())
            changes = entity.get_changes()

        status = changes.pop("status", None)

        with self._cursor("update") as cur:
            cur.execute(
                """
                UPDATE qa_objects
                SET data = data || %s::jsonb,
                    status = COALESCE(%s, status),
                    updated_at = now()
                WHERE id = %s AND object_type = %s
                RETURNING id
                """,
                (_encode(changes), status, object_id, entity.get_type()),
            )
            row = cur.fetchone()
        if row is None:
            raise PersistenceError(
                f"Cannot update missing {entity.get_type()} {object_id}",
                entity_type=entity.get_type(),
                entity_id=object_id,
            )
        logger.debug("Updated %s %s: %s", entity.get_type(), object_id,
                     sorted(changes) + (["status"] if status is not None else []))

    # ── MetaStore ────────────────────────────────────────────────────

    def fetch(self, object_id, group=None) -> list:
        with self._cursor("fetch meta") as cur:
            cur.execute(
                """
                SELECT meta_key, meta_value::text FROM qa_object_meta
                WHERE object_id = %s
                ORDER BY meta_id ASC
                """,
                (object_id,),
            )
            return [(key, _decode(value)) for key, value in cur.fetchall()]

    def add_meta(self, object_id, key, value) -> int:
        """Append a meta row. The table trigger announces the write."""
        with self._cursor("add meta") as cur:
            cur.execute(
                """
                INSERT INTO qa_object_meta (object_id, meta_key, meta_value)
                VALUES (%s, %s, %s::jsonb)
                RETURNING meta_id
                """,
                (object_id, key, _encode(value)),
            )
            return cur.fetchone()[0]

    def delete_meta(self, object_id, key) -> int:
        with self._cursor("delete meta") as cur:
            cur.execute(
                "DELETE FROM qa_object_meta WHERE object_id = %s AND meta_key = %s",
                (object_id, key),
            )
            return cur.rowcount

    # ── Queries ──────────────────────────────────────────────────────

    def count(self, object_type=None) -> int:
        with self._cursor("count") as cur:
            if object_type:
                cur.execute(
                    "SELECT COUNT(*) FROM qa_objects WHERE object_type = %s",
                    (object_type,),
                )
            else:
                cur.execute("SELECT COUNT(*) FROM qa_objects")
            return cur.fetchone()[0]

    def ids_by_status(self, object_type, status) -> list:
        with self._cursor("query") as cur:
            cur.execute(
                """
                SELECT id FROM qa_objects
                WHERE object_type = %s AND status = %s
                ORDER BY id
                """,
                (object_type, status),
            )
            return [row[0] for row in cur.fetchall()]

    def close(self):
        """Close the database connection."""
        if self.conn and not self.conn.closed:
            self.conn.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
