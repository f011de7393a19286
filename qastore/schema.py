"""
Database schema for the PostgreSQL backend: qa_objects (one row per
entity, properties as JSONB), qa_object_meta (ordered key/value rows),
indexes, and the NOTIFY trigger that announces meta writes.
"""

from qastore.subscriptions import META_CHANNEL


def bootstrap_schema(conn):
    """Create tables, indexes and triggers. Idempotent."""
    conn.autocommit = True
    with conn.cursor() as cur:
        # ── Table: one row per entity ────────────────────────────────
        cur.execute("""
            CREATE TABLE IF NOT EXISTS qa_objects (
                id            BIGSERIAL PRIMARY KEY,
                object_type   TEXT NOT NULL,
                status        TEXT NOT NULL DEFAULT 'draft',
                data          JSONB NOT NULL DEFAULT '{}'::jsonb,
                created_at    TIMESTAMPTZ NOT NULL DEFAULT now(),
                updated_at    TIMESTAMPTZ NOT NULL DEFAULT now()
            );
        """)

        # ── Table: auxiliary meta, ordered by meta_id ────────────────
        cur.execute("""
            CREATE TABLE IF NOT EXISTS qa_object_meta (
                meta_id     BIGSERIAL PRIMARY KEY,
                object_id   BIGINT NOT NULL REFERENCES qa_objects (id)
                                ON DELETE CASCADE,
                meta_key    TEXT NOT NULL,
                meta_value  JSONB
            );
        """)

        # ── Indexes ──────────────────────────────────────────────────
        cur.execute("""
            CREATE INDEX IF NOT EXISTS idx_objects_type_status
                ON qa_objects (object_type, status);
        """)
        cur.execute("""
            CREATE INDEX IF NOT EXISTS idx_objects_data
                ON qa_objects USING GIN (data);
        """)
        cur.execute("""
            CREATE INDEX IF NOT EXISTS idx_meta_object
                ON qa_object_meta (object_id, meta_id);
        """)

        # ── NOTIFY trigger: fires on every meta write ────────────────
        cur.execute(f"""
            CREATE OR REPLACE FUNCTION notify_object_meta() RETURNS trigger AS $$
            DECLARE
                target BIGINT;
            BEGIN
                IF TG_OP = 'DELETE' THEN
                    target := OLD.object_id;
                ELSE
                    target := NEW.object_id;
                END IF;
                PERFORM pg_notify('{META_CHANNEL}',
                                  json_build_object('object_id', target)::text);
                RETURN NULL;
            END;
            $$ LANGUAGE plpgsql;
        """)
        cur.execute("""
            DROP TRIGGER IF EXISTS object_meta_notify ON qa_object_meta;
        """)
        cur.execute("""
            CREATE TRIGGER object_meta_notify
                AFTER INSERT OR UPDATE OR DELETE ON qa_object_meta
                FOR EACH ROW EXECUTE FUNCTION notify_object_meta();
        """)

