"""
Embedded PostgreSQL server for the entity store.
Uses pgserver for pip-installable PostgreSQL binaries and bootstraps the
qa_objects schema on start.
"""

import logging
import os
import urllib.parse

import pgserver
import psycopg2

from qastore.config import get_settings
from qastore.schema import bootstrap_schema

logger = logging.getLogger(__name__)


class StoreServer:
    """Manages an embedded PostgreSQL instance holding the entity tables."""

    def __init__(self, data_dir=None):
        self.data_dir = os.path.abspath(data_dir or get_settings().data_dir)
        self._pg = None

    def start(self):
        """Start the embedded server and create the schema if needed."""
        os.makedirs(self.data_dir, exist_ok=True)
        self._pg = pgserver.get_server(self.data_dir)
        conn = self.connect()
        try:
            bootstrap_schema(conn)
        finally:
            conn.close()
        logger.info("Embedded PostgreSQL ready in %s", self.data_dir)
        return self

    # ── Public API ───────────────────────────────────────────────────

    def connect(self):
        """A new connection as the server's superuser (local socket)."""
        return psycopg2.connect(self._pg.get_uri())

    def conn_info(self):
        """Return connection parameters for this server."""
        uri = self._pg.get_uri()
        parsed = urllib.parse.urlparse(uri)
        params = urllib.parse.parse_qs(parsed.query)

        return {
            "host": params.get("host", ["/tmp"])[0],
            "port": parsed.port or 5432,
            "dbname": parsed.path.lstrip("/") or "postgres",
            "user": parsed.username or os.getenv("USER", "postgres"),
            "password": parsed.password or "",
        }

    def stop(self):
        """Stop the embedded PostgreSQL server."""
        if self._pg:
            self._pg.cleanup()
            self._pg = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *args):
        self.stop()
