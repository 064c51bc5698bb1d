"""SQLite backing file for the Reverie local store.

The journal keeps JSON documents (session record, profile cache, dream
lists, pending ledgers) under string keys, so the schema is one key-value
table plus the migration bookkeeping.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"

# Ordered (version, statements); a fresh file runs all of them, an older one the tail
_MIGRATIONS: list[tuple[int, tuple[str, ...]]] = [
    (
        1,
        (
            """
            CREATE TABLE IF NOT EXISTS kv_store (
                key        TEXT PRIMARY KEY,
                value      TEXT NOT NULL,
                updated_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
            """,
        ),
    ),
]

SCHEMA_VERSION = _MIGRATIONS[-1][0]

_VERSION_TABLE = """
CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""


class DatabaseError(Exception):
    """Raised when the store is used before it is opened."""


class JournalDatabase:
    """Owns the single SQLite connection behind the key-value store.

    ``db_path`` may be a file path (``~`` is expanded and parent directories
    are created) or ``":memory:"``, which tests use.

    Usage::

        with JournalDatabase("~/.reverie/journal.db") as db:
            with db.transaction() as conn:
                conn.execute("DELETE FROM kv_store")
    """

    def __init__(self, db_path: str = MEMORY_PATH) -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    @property
    def path(self) -> str:
        return self._db_path

    @property
    def connection(self) -> sqlite3.Connection:
        """The open connection.

        Raises:
            DatabaseError: If :meth:`initialize` has not been called.
        """
        if self._conn is None:
            raise DatabaseError("Database not initialized. Call initialize() first.")
        return self._conn

    def initialize(self) -> None:
        """Open the connection and bring the schema up to date (idempotent)."""
        if self._conn is not None:
            return

        self._conn = sqlite3.connect(self._resolve_target())
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._migrate()
        logger.info("Journal database opened: %s", self._db_path)

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield the connection; commit on success, roll back on error."""
        conn = self.connection
        try:
            yield conn
        except Exception:
            conn.rollback()
            raise
        conn.commit()

    def get_schema_version(self) -> int:
        """Highest migration applied to this file (0 for a blank one)."""
        row = self.connection.execute("SELECT MAX(version) FROM schema_version").fetchone()
        return row[0] or 0

    def close(self) -> None:
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None
        logger.info("Journal database closed")

    def __enter__(self) -> JournalDatabase:
        self.initialize()
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _resolve_target(self) -> str:
        if self._db_path == MEMORY_PATH:
            return MEMORY_PATH
        db_file = Path(self._db_path).expanduser()
        db_file.parent.mkdir(parents=True, exist_ok=True)
        return str(db_file)

    def _migrate(self) -> None:
        self.connection.executescript(_VERSION_TABLE)
        start = self.get_schema_version()
        pending = [(version, stmts) for version, stmts in _MIGRATIONS if version > start]
        if not pending:
            return
        with self.transaction() as conn:
            # sqlite3 does not open a transaction for DDL on its own
            conn.execute("BEGIN")
            for version, statements in pending:
                for statement in statements:
                    conn.execute(statement)
                conn.execute("INSERT INTO schema_version (version) VALUES (?)", (version,))
        logger.info("Schema migrated from version %d to %d", start, pending[-1][0])
