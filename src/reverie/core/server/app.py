"""Reverie dream journal MCP server — application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from reverie.core.api.client import ReverieAPIClient
from reverie.core.config.settings import get_settings
from reverie.core.storage import KeyValueStore
from reverie.core.storage.database import JournalDatabase
from reverie.core.storage.encryption import EncryptionError, FieldEncryptor
from reverie.core.storage.kv_store import SQLiteKeyValueStore
from reverie.domains.journal.alarms import AlarmBook
from reverie.domains.journal.auth import AuthService
from reverie.domains.journal.dreams import JournalStore
from reverie.domains.journal.repository import (
    AlarmRepository,
    JournalRepository,
    SessionRepository,
)
from reverie.domains.journal.session import SessionStore
from reverie.domains.journal.tools.alarm_tools import register_alarm_tools
from reverie.domains.journal.tools.journal_tools import register_journal_tools
from reverie.domains.journal.tools.session_tools import register_session_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "Reverie Dream Journal"
SERVER_VERSION = "0.1.0"


def _open_storage(db_path: str, encryption_key: str) -> KeyValueStore | None:
    """Open the SQLite key-value store, encrypted when a key is configured."""
    encryptor: FieldEncryptor | None = None
    if encryption_key:
        try:
            encryptor = FieldEncryptor(encryption_key)
        except EncryptionError as exc:
            logger.error("Failed to initialize encryption: %s", exc)
            logger.warning("Continuing without persistence — nothing will be stored")
            return None
    else:
        logger.info(
            "No ENCRYPTION_KEY configured — local journal data is stored unencrypted. "
            "Set ENCRYPTION_KEY to encrypt the session and journal at rest."
        )

    database = JournalDatabase(db_path)
    database.initialize()
    logger.info(
        "Local store initialized: %s (schema v%d)", db_path, database.get_schema_version()
    )
    store = SQLiteKeyValueStore(database, encryptor)
    if encryptor is not None and encryptor.key_count > 1:
        store.reencrypt_all()
    return store


def create_app(
    *,
    api_client_override: ReverieAPIClient | None = None,
    storage_override: KeyValueStore | None = None,
) -> FastMCP:
    """Create and configure the Reverie MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Opens local storage (unless persistence is disabled)
    3. Creates the REST client for the journal backend
    4. Builds the session store (restoring any persisted session), the
       journal store, the auth service and the alarm book, once
    5. Registers all tools
    """
    settings = get_settings()

    # --- Server instance ---
    server = FastMCP(
        SERVER_NAME,
        instructions=(
            "Reverie dream journal. Sign in, complete the celestial profile, "
            "then record, edit and review dreams. Changes are saved on this "
            "device first and synced to the journal service when it is reachable."
        ),
    )

    # --- Local storage ---
    storage: KeyValueStore | None
    if storage_override is not None:
        storage = storage_override
    elif settings.persist_session:
        storage = _open_storage(settings.db_path, settings.encryption_key)
    else:
        storage = None
        logger.info("PERSIST_SESSION disabled — running without persistence")

    # --- REST backend ---
    if api_client_override is not None:
        api = api_client_override
    else:
        api = ReverieAPIClient(
            settings.reverie_api_url, timeout_s=settings.reverie_request_timeout_s
        )
        logger.info("Journal backend configured for %s", settings.reverie_api_url)

    # --- Context objects, constructed once ---
    session = SessionStore(SessionRepository(storage))
    session.initialize()
    journal_repo = JournalRepository(storage)
    journal = JournalStore(
        session,
        journal_repo,
        api,
        resubmit_pending_on_start=settings.resubmit_pending_on_start,
    )
    auth = AuthService(session, api)
    alarms = AlarmBook(session, AlarmRepository(storage))

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        return {
            "status": "ok",
            "server": SERVER_NAME,
            "version": SERVER_VERSION,
            "api_url": api.base_url,
            "storage_enabled": storage is not None,
            "local_journals": len(journal_repo.owners()),
            "signed_in": session.is_authenticated,
        }

    register_session_tools(server, session, auth, journal)
    logger.info("Session tools registered")

    register_journal_tools(server, session, journal, api)
    logger.info("Journal tools registered")

    register_alarm_tools(server, alarms)
    logger.info("Alarm tools registered")

    return server


# Module-level instance for FastMCP discovery ("server": "...app.py:mcp").
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
