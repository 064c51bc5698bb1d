"""Reconciliation of a fetched server collection with local pending mutations.

Last-writer-wins at whole-record granularity: a pending local edit fully
shadows the server's copy of that dream, a pending delete hides it, and
pending records the server has never seen are surfaced at the head of
the list.
"""

from __future__ import annotations

from reverie.core.api.models import DreamListItem, DreamWriteRequest
from reverie.domains.journal.models import Dream, PendingLedger, normalize_mood, now_iso


def dream_from_remote(item: DreamListItem) -> Dream:
    """Map a backend dream into the local shape.

    The analysis falls back to the description when the backend has no
    summary for the dream.
    """
    description = item.dream_text or item.summary or ""
    return Dream(
        id=item.id,
        title=item.title,
        description=description,
        date=item.submitted_at or now_iso(),
        mood=normalize_mood(item.mood),
        tags=list(item.tags),
        lucidity=bool(item.is_lucid),
        analysis=item.summary or description,
    )


def dream_to_request(dream: Dream) -> DreamWriteRequest:
    """Full write payload for a dream (create, or resubmitted edit)."""
    return DreamWriteRequest(
        dream_text=dream.description,
        title=dream.title,
        is_lucid=dream.lucidity,
        tags=list(dream.tags),
        mood=dream.mood,
    )


def updates_to_request(updates: dict) -> DreamWriteRequest:
    """Partial write payload carrying only the fields in ``updates``."""
    return DreamWriteRequest(
        dream_text=updates.get("description"),
        title=updates.get("title"),
        is_lucid=updates.get("lucidity"),
        tags=updates.get("tags"),
        mood=updates.get("mood"),
    )


def merge_remote_dreams(remote: list[Dream], ledger: PendingLedger) -> list[Dream]:
    """Merge the server collection with the pending ledgers.

    1. Drop server records whose id is pending deletion.
    2. Replace server records that have a pending edit with the edit.
    3. Collect pending edits the server does not know (and that are not
       pending deletion), in ledger order.
    4. Return the local-only records followed by the merged server records.

    Example::

        merge_remote_dreams(
            [Dream(id="a", title="old", ...)],
            PendingLedger(edits={"a": Dream(id="a", title="new", ...)}),
        )  # -> [Dream(id="a", title="new", ...)]
    """
    merged = [
        ledger.edits.get(dream.id, dream)
        for dream in remote
        if dream.id not in ledger.deletes
    ]
    remote_ids = {dream.id for dream in remote}
    local_only = [
        dream
        for dream_id, dream in ledger.edits.items()
        if dream_id not in remote_ids and dream_id not in ledger.deletes
    ]
    return [*local_only, *merged]
