"""Key-value store implementations: SQLite-backed and in-memory."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from reverie.core.storage.database import JournalDatabase
from reverie.core.storage.encryption import EncryptionError, FieldEncryptor

logger = logging.getLogger(__name__)


class SQLiteKeyValueStore:
    """Key-value storage persisted in the ``kv_store`` table.

    Values are optionally encrypted with a :class:`FieldEncryptor`; reads of
    a value written with another key raise ``EncryptionError``.

    Usage::

        db = JournalDatabase("~/.reverie/journal.db")
        db.initialize()
        store = SQLiteKeyValueStore(db, encryptor=FieldEncryptor(key))
        store.set_item("reverie-auth-user", '{"email": "a@x.com"}')
    """

    def __init__(
        self, database: JournalDatabase, encryptor: FieldEncryptor | None = None
    ) -> None:
        self._db = database
        self._enc = encryptor

    @property
    def encrypted(self) -> bool:
        return self._enc is not None

    def get_item(self, key: str) -> str | None:
        row = self._db.connection.execute(
            "SELECT value FROM kv_store WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return None
        value = row["value"]
        if self._enc is not None:
            return self._enc.decrypt(value)
        return value

    def set_item(self, key: str, value: str) -> None:
        stored = self._enc.encrypt(value) if self._enc is not None else value
        with self._db.transaction() as conn:
            conn.execute(
                """INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
                   ON CONFLICT(key) DO UPDATE SET
                       value = excluded.value,
                       updated_at = excluded.updated_at""",
                (key, stored, datetime.now(timezone.utc).isoformat()),
            )

    def remove_item(self, key: str) -> None:
        with self._db.transaction() as conn:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))

    def reencrypt_all(self) -> int:
        """Rewrite every value under the primary encryption key.

        Values no configured key can read are left in place; the
        repositories discard them on their next read.

        Returns:
            The number of values rewritten.
        """
        if self._enc is None:
            return 0
        rows = self._db.connection.execute("SELECT key, value FROM kv_store").fetchall()
        rewritten = 0
        with self._db.transaction() as conn:
            for row in rows:
                try:
                    token = self._enc.rotate(row["value"])
                except EncryptionError:
                    logger.warning("Cannot re-encrypt %s with any configured key", row["key"])
                    continue
                conn.execute("UPDATE kv_store SET value = ? WHERE key = ?", (token, row["key"]))
                rewritten += 1
        logger.info("Re-encrypted %d stored values under the primary key", rewritten)
        return rewritten

    def keys(self, prefix: str = "") -> list[str]:
        # Escape LIKE wildcards; emails routinely contain "_"
        escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        rows = self._db.connection.execute(
            "SELECT key FROM kv_store WHERE key LIKE ? ESCAPE '\\' ORDER BY key",
            (escaped + "%",),
        ).fetchall()
        return [row[0] for row in rows]


class MemoryKeyValueStore:
    """Process-local key-value storage (tests, ephemeral sessions)."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self._data if k.startswith(prefix))
