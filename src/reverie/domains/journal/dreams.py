"""Journal store: optimistic dream CRUD with deferred server reconciliation.

Every mutation updates the in-memory collection and the local store before
the first ``await``, so callers (and any other task) see the effect
immediately. The remote call follows; a failure is logged and the mutation
stays in the pending ledgers, which survive restarts and shadow the
server's data on every fetch until :meth:`JournalStore.sync_pending`
confirms them.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Callable

from reverie.core.api.client import APIResponseError, ReverieAPIClient, ReverieAPIError
from reverie.core.api.models import DreamListItem, DreamWriteRequest
from reverie.domains.journal.merge import (
    dream_from_remote,
    dream_to_request,
    merge_remote_dreams,
    updates_to_request,
)
from reverie.domains.journal.models import Dream, PendingLedger, new_dream_id
from reverie.domains.journal.repository import JournalRepository
from reverie.domains.journal.seed import initial_dreams, is_seed_id
from reverie.domains.journal.session import SessionStore

logger = logging.getLogger(__name__)

Mutation = Callable[[list[Dream], PendingLedger], None]


@dataclass
class SyncReport:
    """Outcome of one resubmission pass over the pending ledgers."""

    created: int = 0
    updated: int = 0
    deleted: int = 0
    failed: int = 0
    skipped: bool = False

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


class JournalStore:
    """Owns the signed-in user's dream collection.

    Usage::

        journal = JournalStore(session, JournalRepository(storage), api)
        await journal.initialize()
        dream = await journal.add_dream(Dream.create("Flying", "Over the sea"))
        await journal.update_dream(dream.id, {"lucidity": True})
        await journal.delete_dream(dream.id)
    """

    def __init__(
        self,
        session: SessionStore,
        repository: JournalRepository,
        api: ReverieAPIClient | None = None,
        *,
        resubmit_pending_on_start: bool = True,
    ) -> None:
        self._session = session
        self._repo = repository
        self._api = api
        self._resubmit_on_start = resubmit_pending_on_start

        self._dreams: list[Dream] = []
        self._ledger = PendingLedger()
        self._owner: str | None = None
        self._loaded = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def dreams(self) -> list[Dream]:
        """The visible collection, newest first by convention."""
        return list(self._dreams)

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def owner(self) -> str | None:
        """Email whose partition is loaded (None for the guest partition)."""
        return self._owner

    @property
    def ledger(self) -> PendingLedger:
        return self._ledger

    def get_dream(self, dream_id: str) -> Dream | None:
        index = self._index_of(dream_id)
        return self._dreams[index] if index is not None else None

    # ------------------------------------------------------------------
    # Loading and reconciliation
    # ------------------------------------------------------------------

    def load_local(self) -> None:
        """Make the persisted collection for the current identity visible."""
        self._owner = self._session.email
        self._dreams = self._repo.load_dreams(self._owner) or []
        self._ledger = self._repo.load_ledger(self._owner)
        self._loaded = True
        logger.debug(
            "Loaded %d local dreams for %s", len(self._dreams), self._owner or "guest"
        )

    async def initialize(self) -> None:
        """Load local data, then reconcile with the server when signed in.

        Fetch failures are logged and leave the local collection as the
        visible truth.
        """
        self.load_local()
        if self._remote_token() is None:
            return
        await self.refresh()
        if self._resubmit_on_start and not self._ledger.is_empty():
            await self.sync_pending()

    async def ensure_loaded(self) -> None:
        """Initialize on first use, or again after the identity changed."""
        if not self._loaded or self._owner != self._session.email:
            await self.initialize()

    async def refresh(self) -> bool:
        """Fetch the server collection and merge it with the pending ledgers.

        Returns:
            True if the merged collection replaced the local one.
        """
        token = self._remote_token()
        if token is None:
            return False

        owner = self._owner
        try:
            items = await self._api.list_dreams(token)
        except ReverieAPIError as exc:
            logger.warning("Failed to sync dreams from API, using local cache: %s", exc)
            return False

        if owner != self._owner:
            logger.debug("Identity changed during fetch; discarding result")
            return False

        remote = [dream_from_remote(item) for item in items]
        self._dreams = merge_remote_dreams(remote, self._ledger)
        self._repo.save_dreams(owner, self._dreams)
        logger.info(
            "Merged %d server dreams for %s (%d visible)",
            len(remote),
            owner,
            len(self._dreams),
        )
        return True

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def add_dream(self, dream: Dream) -> Dream:
        """Prepend ``dream`` and create it on the server.

        A dream without an id gets a client-generated one. When the server
        assigns its own id the record is renamed in place.

        Returns:
            The dream as held by the store after the call.
        """
        if not dream.id:
            dream = dataclasses.replace(dream, id=new_dream_id())
        owner = self._owner
        self._dreams.insert(0, dream)
        self._ledger.record_create(dream)
        self._persist()

        token = self._remote_token()
        if token is None:
            return dream

        server_id = await self._push_create(owner, dream, token)
        if server_id is None:
            return dream

        # An edit made while the create was in flight is now addressable
        pending = self._ledger.edits.get(server_id) if owner == self._owner else None
        if pending is not None:
            await self._push_update(owner, pending, dream_to_request(pending), token)
        return self.get_dream(server_id) or dataclasses.replace(dream, id=server_id)

    async def analyze_dream(self, dream_text: str) -> Dream | None:
        """Have the backend analyze ``dream_text`` and record the result.

        The backend stores the analyzed dream itself, so the record is
        already confirmed and never enters the pending ledgers. Returns None
        when signed out.

        Raises:
            ReverieAPIError: If the analysis call fails.
        """
        token = self._remote_token()
        if token is None:
            return None

        owner = self._owner
        analysis = await self._api.analyze_dream(dream_text, token)
        try:
            item = await self._api.get_dream(analysis.dream_id, token)
        except ReverieAPIError as exc:
            logger.warning(
                "Failed to fetch analyzed dream %s, using analysis response: %s",
                analysis.dream_id,
                exc,
            )
            item = DreamListItem(
                id=analysis.dream_id,
                title=analysis.title or "",
                dream_text=dream_text,
                summary=analysis.summary,
                is_lucid=bool(analysis.is_lucid),
                tags=analysis.tags,
                mood=analysis.mood,
            )
        dream = dream_from_remote(item)

        def record(dreams: list[Dream], ledger: PendingLedger) -> None:
            if all(existing.id != dream.id for existing in dreams):
                dreams.insert(0, dream)

        self._apply(owner, record)
        return dream

    async def update_dream(self, dream_id: str, updates: dict[str, Any]) -> Dream | None:
        """Apply a partial update; unknown ids are ignored.

        Raises:
            TypeError: If ``updates`` names a field a dream does not have.
        """
        index = self._index_of(dream_id)
        if index is None:
            logger.debug("update_dream: no dream %s", dream_id)
            return None

        updated = self._dreams[index].with_updates(updates)
        owner = self._owner
        self._dreams[index] = updated
        if is_seed_id(dream_id):
            self._repo.save_dreams(owner, self._dreams)
            return updated
        self._ledger.record_edit(updated)
        self._persist()

        token = self._remote_token()
        if token is None or dream_id in self._ledger.creates:
            # Not on the server yet; the pending create carries the edit
            return updated

        await self._push_update(owner, updated, updates_to_request(updates), token)
        return updated

    async def delete_dream(self, dream_id: str) -> bool:
        """Remove a dream; unknown ids are ignored.

        Returns:
            True if a dream was removed.
        """
        index = self._index_of(dream_id)
        if index is None:
            return False

        owner = self._owner
        del self._dreams[index]
        if is_seed_id(dream_id):
            self._repo.save_dreams(owner, self._dreams)
            return True
        never_created = dream_id in self._ledger.creates
        self._ledger.record_delete(dream_id)
        self._persist()

        token = self._remote_token()
        if token is None or never_created:
            return True

        await self._push_delete(owner, dream_id, token)
        return True

    def reset_dreams(self) -> None:
        """Replace the collection with the seed dreams (local only).

        The pending ledgers are kept: they describe server changes the user
        already made, so the next fetch still applies them. Seed dreams are
        never sent to the server and are dropped by that fetch.
        """
        self._dreams = initial_dreams()
        self._repo.save_dreams(self._owner, self._dreams)

    # ------------------------------------------------------------------
    # Resubmission
    # ------------------------------------------------------------------

    async def sync_pending(self) -> SyncReport:
        """Resubmit every pending create, edit and delete.

        Each entry is cleared on success and kept on failure.
        """
        token = self._remote_token()
        if token is None:
            return SyncReport(skipped=True)

        owner = self._owner
        ledger = self._ledger
        report = SyncReport()

        for local_id in sorted(ledger.creates):
            snapshot = ledger.edits.get(local_id)
            if snapshot is None:
                ledger.creates.discard(local_id)
                continue
            if await self._push_create(owner, snapshot, token) is not None:
                report.created += 1
            else:
                report.failed += 1

        for dream_id, snapshot in list(ledger.edits.items()):
            if dream_id in ledger.creates:
                continue
            if await self._push_update(owner, snapshot, dream_to_request(snapshot), token):
                report.updated += 1
            else:
                report.failed += 1

        for dream_id in sorted(ledger.deletes):
            if await self._push_delete(owner, dream_id, token):
                report.deleted += 1
            else:
                report.failed += 1

        logger.info(
            "Pending sync for %s: %d created, %d updated, %d deleted, %d failed",
            owner,
            report.created,
            report.updated,
            report.deleted,
            report.failed,
        )
        return report

    # ------------------------------------------------------------------
    # Remote calls
    # ------------------------------------------------------------------

    async def _push_create(self, owner: str | None, sent: Dream, token: str) -> str | None:
        """Create ``sent`` remotely; returns the server id, or None on failure."""
        try:
            response = await self._api.create_dream(dream_to_request(sent), token)
        except ReverieAPIError as exc:
            logger.warning("Failed to persist new dream %s to API: %s", sent.id, exc)
            return None

        server_id = response.dream_id or sent.id
        deleted_meanwhile = False

        def confirm(dreams: list[Dream], ledger: PendingLedger) -> None:
            nonlocal deleted_meanwhile
            deleted_meanwhile = sent.id not in ledger.creates
            ledger.confirm_create(sent, server_id)
            if deleted_meanwhile:
                ledger.deletes.add(server_id)
                return
            if server_id != sent.id:
                for i, dream in enumerate(dreams):
                    if dream.id == sent.id:
                        dreams[i] = dataclasses.replace(dream, id=server_id)

        self._apply(owner, confirm)
        if deleted_meanwhile:
            await self._push_delete(owner, server_id, token)
        return server_id

    async def _push_update(
        self, owner: str | None, snapshot: Dream, payload: DreamWriteRequest, token: str
    ) -> bool:
        try:
            await self._api.update_dream(snapshot.id, payload, token)
        except ReverieAPIError as exc:
            logger.warning("Failed to update dream %s on API: %s", snapshot.id, exc)
            return False

        def confirm(dreams: list[Dream], ledger: PendingLedger) -> None:
            # A newer local edit stays pending
            if ledger.edits.get(snapshot.id) == snapshot:
                ledger.confirm_edit(snapshot.id)

        self._apply(owner, confirm)
        return True

    async def _push_delete(self, owner: str | None, dream_id: str, token: str) -> bool:
        try:
            await self._api.delete_dream(dream_id, token)
        except APIResponseError as exc:
            if exc.status_code != 404:
                logger.warning("Failed to delete dream %s on API: %s", dream_id, exc)
                return False
            logger.debug("Dream %s already absent on the server", dream_id)
        except ReverieAPIError as exc:
            logger.warning("Failed to delete dream %s on API: %s", dream_id, exc)
            return False

        self._apply(owner, lambda dreams, ledger: ledger.confirm_delete(dream_id))
        return True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _remote_token(self) -> str | None:
        if self._api is None:
            return None
        return self._session.token

    def _index_of(self, dream_id: str) -> int | None:
        for index, dream in enumerate(self._dreams):
            if dream.id == dream_id:
                return index
        return None

    def _persist(self) -> None:
        self._repo.save_dreams(self._owner, self._dreams)
        self._repo.save_ledger(self._owner, self._ledger)

    def _apply(self, owner: str | None, mutate: Mutation) -> None:
        """Apply a confirmation to ``owner``'s data, in memory or on disk.

        A confirmation can arrive after the identity changed; it then lands
        on the persisted partition it belongs to.
        """
        if self._loaded and owner == self._owner:
            mutate(self._dreams, self._ledger)
            self._persist()
            return
        dreams = self._repo.load_dreams(owner) or []
        ledger = self._repo.load_ledger(owner)
        mutate(dreams, ledger)
        self._repo.save_dreams(owner, dreams)
        self._repo.save_ledger(owner, ledger)
