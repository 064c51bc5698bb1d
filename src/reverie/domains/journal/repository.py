"""Typed repositories over the key-value store.

The repositories mediate between domain objects (StoredSession, Profile,
Dream, PendingLedger, Alarm) and JSON documents in a :class:`KeyValueStore`.
Every method is a no-op (reads return the empty default) when no storage is
available, so the stores still work purely in memory.

Malformed documents are never raised to callers: they are logged, removed,
and treated as absent.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, TypeVar

from reverie.core.storage import KeyValueStore
from reverie.core.storage.encryption import EncryptionError
from reverie.domains.journal.models import Alarm, Dream, PendingLedger, Profile, StoredSession

logger = logging.getLogger(__name__)

T = TypeVar("T")

AUTH_STORAGE_KEY = "reverie-auth-user"
PROFILE_STORAGE_KEY = "reverie-user-profiles"

GUEST_OWNER = "guest"


def _owner_suffix(email: str | None) -> str:
    return email or GUEST_OWNER


DREAMS_KEY_PREFIX = "reverie_dreams_"


def dreams_key(email: str | None) -> str:
    return f"{DREAMS_KEY_PREFIX}{_owner_suffix(email)}"


def pending_edits_key(email: str | None) -> str:
    return f"reverie_pending_edits_{_owner_suffix(email)}"


def pending_deletes_key(email: str | None) -> str:
    return f"reverie_pending_deletes_{_owner_suffix(email)}"


def pending_creates_key(email: str | None) -> str:
    return f"reverie_pending_creates_{_owner_suffix(email)}"


class _JsonDocuments:
    """Shared read/write helpers for JSON documents in optional storage."""

    def __init__(self, storage: KeyValueStore | None) -> None:
        self._storage = storage

    @property
    def persistent(self) -> bool:
        return self._storage is not None

    def _read(self, key: str, parse: Callable[[Any], T], default: T) -> T:
        if self._storage is None:
            return default
        try:
            raw = self._storage.get_item(key)
        except EncryptionError:
            logger.warning("Discarding undecryptable value under %s", key)
            self._storage.remove_item(key)
            return default
        if not raw:
            return default
        try:
            return parse(json.loads(raw))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError):
            logger.warning("Discarding malformed value under %s", key)
            self._storage.remove_item(key)
            return default

    def _write(self, key: str, document: Any) -> None:
        if self._storage is None:
            return
        self._storage.set_item(key, json.dumps(document, ensure_ascii=False))

    def _remove(self, key: str) -> None:
        if self._storage is not None:
            self._storage.remove_item(key)


# ---------------------------------------------------------------------------
# Session record + profile cache
# ---------------------------------------------------------------------------

def _parse_session(data: Any) -> StoredSession:
    if not isinstance(data, dict):
        raise TypeError("session record must be an object")
    return StoredSession.from_dict(data)


def _parse_profiles(data: Any) -> dict[str, Profile]:
    if not isinstance(data, dict):
        raise TypeError("profile cache must be an object")
    return {email: Profile.from_dict(entry) for email, entry in data.items()}


class SessionRepository(_JsonDocuments):
    """Persisted session record and the per-email profile cache.

    Usage::

        repo = SessionRepository(MemoryKeyValueStore())
        repo.write_session(StoredSession(email="a@x.com", token="T1"))
        repo.read_session().email  # "a@x.com"
    """

    def read_session(self) -> StoredSession | None:
        return self._read(AUTH_STORAGE_KEY, _parse_session, None)

    def write_session(self, session: StoredSession) -> None:
        self._write(AUTH_STORAGE_KEY, session.to_dict())

    def clear_session(self) -> None:
        self._remove(AUTH_STORAGE_KEY)

    def read_profiles(self) -> dict[str, Profile]:
        return self._read(PROFILE_STORAGE_KEY, _parse_profiles, {})

    def get_profile(self, email: str) -> Profile | None:
        return self.read_profiles().get(email)

    def write_profile(self, email: str, profile: Profile) -> None:
        """Insert or replace the cached profile for ``email`` only."""
        profiles = self.read_profiles()
        profiles[email] = profile
        self._write(
            PROFILE_STORAGE_KEY,
            {key: value.to_dict() for key, value in profiles.items()},
        )


# ---------------------------------------------------------------------------
# Dream collection + pending ledgers
# ---------------------------------------------------------------------------

def _parse_dreams(data: Any) -> list[Dream]:
    if not isinstance(data, list):
        raise TypeError("dream collection must be a list")
    return [Dream.from_dict(entry) for entry in data]


def _parse_edits(data: Any) -> dict[str, Dream]:
    if not isinstance(data, dict):
        raise TypeError("pending edits must be an object")
    return {str(key): Dream.from_dict(entry) for key, entry in data.items()}


def _parse_id_set(data: Any) -> set[str]:
    if not isinstance(data, list):
        raise TypeError("pending id set must be a list")
    return {str(item) for item in data}


class JournalRepository(_JsonDocuments):
    """Per-owner dream collection and pending-mutation ledgers.

    The owner is the signed-in email, or ``None`` for the guest partition.
    """

    def load_dreams(self, owner: str | None) -> list[Dream] | None:
        """Return the persisted collection, or None if nothing is stored."""
        return self._read(dreams_key(owner), _parse_dreams, None)

    def save_dreams(self, owner: str | None, dreams: list[Dream]) -> None:
        self._write(dreams_key(owner), [dream.to_dict() for dream in dreams])

    def load_ledger(self, owner: str | None) -> PendingLedger:
        edits = self._read(pending_edits_key(owner), _parse_edits, {})
        deletes = self._read(pending_deletes_key(owner), _parse_id_set, set())
        creates = self._read(pending_creates_key(owner), _parse_id_set, set())
        # A create marker without its snapshot cannot be resubmitted
        return PendingLedger(edits=edits, deletes=deletes, creates=creates & edits.keys())

    def save_ledger(self, owner: str | None, ledger: PendingLedger) -> None:
        self._write(
            pending_edits_key(owner),
            {dream_id: dream.to_dict() for dream_id, dream in ledger.edits.items()},
        )
        self._write(pending_deletes_key(owner), sorted(ledger.deletes))
        self._write(pending_creates_key(owner), sorted(ledger.creates))

    def clear_owner(self, owner: str | None) -> None:
        """Remove the collection and ledgers for ``owner``."""
        for key in (
            dreams_key(owner),
            pending_edits_key(owner),
            pending_deletes_key(owner),
            pending_creates_key(owner),
        ):
            self._remove(key)

    def owners(self) -> list[str]:
        """Owners with a dream collection on this device (``guest`` included)."""
        if self._storage is None:
            return []
        return [
            key.removeprefix(DREAMS_KEY_PREFIX)
            for key in self._storage.keys(DREAMS_KEY_PREFIX)
        ]


# ---------------------------------------------------------------------------
# Alarms
# ---------------------------------------------------------------------------

def alarms_key(email: str | None) -> str:
    return f"reverie_alarms_{_owner_suffix(email)}"


def _parse_alarms(data: Any) -> list[Alarm]:
    if not isinstance(data, list):
        raise TypeError("alarm list must be a list")
    return [Alarm.from_dict(entry) for entry in data]


class AlarmRepository(_JsonDocuments):
    """Per-owner wake-up alarm list."""

    def load_alarms(self, owner: str | None) -> list[Alarm] | None:
        """Return the persisted alarms, or None if nothing is stored."""
        return self._read(alarms_key(owner), _parse_alarms, None)

    def save_alarms(self, owner: str | None, alarms: list[Alarm]) -> None:
        self._write(alarms_key(owner), [alarm.to_dict() for alarm in alarms])
