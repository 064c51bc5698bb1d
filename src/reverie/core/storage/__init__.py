"""Local key-value storage — the medium behind the session and journal repositories."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """Abstract string key-value storage.

    Repositories serialize their documents to JSON strings and never know
    whether the bytes land in SQLite, memory, or somewhere else.
    """

    def get_item(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""
        ...

    def set_item(self, key: str, value: str) -> None:
        """Insert or replace the value under ``key``."""
        ...

    def remove_item(self, key: str) -> None:
        """Delete ``key``; absent keys are ignored."""
        ...

    def keys(self, prefix: str = "") -> list[str]:
        """List stored keys starting with ``prefix``."""
        ...
