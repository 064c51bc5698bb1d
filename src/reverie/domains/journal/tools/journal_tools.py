"""MCP tools for the dream journal: CRUD, sync, analysis, dashboard, backend trends."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

from reverie.core.api.client import ReverieAPIError
from reverie.domains.journal.account import fetch_account_overview
from reverie.domains.journal.metrics import compute_dashboard_metrics
from reverie.domains.journal.models import MOODS, Dream, normalize_mood

if TYPE_CHECKING:
    from reverie.core.api.client import ReverieAPIClient
    from reverie.domains.journal.dreams import JournalStore
    from reverie.domains.journal.session import SessionStore

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = ("title", "description", "mood", "tags", "lucidity", "analysis")

TREND_KINDS = ("summary", "timeline", "streaks", "tags", "monthly", "weekday")


def _error(message: str) -> str:
    return json.dumps({"status": "error", "message": message})


def _check_mood(mood: str | None) -> str | None:
    if mood is not None and mood.strip().lower() not in MOODS:
        return f"Unknown mood {mood!r}. Valid: {', '.join(MOODS)}"
    return None


async def _fetch_trend(api: ReverieAPIClient, kind: str, token: str) -> Any:
    if kind == "summary":
        return (await api.get_trend_summary(token)).model_dump()
    if kind == "timeline":
        return [entry.model_dump() for entry in await api.get_trend_timeline(token)]
    if kind == "streaks":
        return (await api.get_trend_streaks(token)).model_dump()
    if kind == "tags":
        return (await api.get_tag_frequencies(token)).model_dump()
    if kind == "monthly":
        return [entry.model_dump() for entry in await api.get_monthly_activity(token)]
    return [entry.model_dump() for entry in await api.get_weekday_stats(token)]


def register_journal_tools(
    mcp: FastMCP,
    session: SessionStore,
    journal: JournalStore,
    api: ReverieAPIClient | None,
) -> None:
    """Register dream journal tools on the MCP server."""

    @mcp.tool
    async def list_dreams(ctx: Context, limit: int = 50) -> str:
        """List dreams, newest first.

        Args:
            limit: Maximum number of dreams to return.
        """
        await journal.ensure_loaded()
        dreams = journal.dreams
        return json.dumps({
            "owner": journal.owner,
            "total": len(dreams),
            "pending": not journal.ledger.is_empty(),
            "dreams": [dream.to_dict() for dream in dreams[: max(limit, 0)]],
        })

    @mcp.tool
    async def add_dream(
        ctx: Context,
        title: str,
        description: str,
        mood: str = "neutral",
        tags: list[str] | None = None,
        lucidity: bool = False,
    ) -> str:
        """Record a new dream. It is saved locally first, then sent to the server.

        Args:
            title: Short title.
            description: What happened in the dream.
            mood: One of happy, peaceful, excited, curious, confused, anxious, scared, sad, neutral.
            tags: Free-form tags.
            lucidity: Whether the dream was lucid.
        """
        if not title.strip() or not description.strip():
            return _error("A dream needs a title and a description.")
        problem = _check_mood(mood)
        if problem:
            return _error(problem)

        await journal.ensure_loaded()
        dream = await journal.add_dream(
            Dream.create(
                title,
                description,
                mood=normalize_mood(mood),
                tags=tags,
                lucidity=lucidity,
            )
        )
        return json.dumps({
            "status": "added",
            "synced": dream.id not in journal.ledger.edits,
            "dream": dream.to_dict(),
        })

    @mcp.tool
    async def update_dream(
        ctx: Context,
        dream_id: str,
        title: str | None = None,
        description: str | None = None,
        mood: str | None = None,
        tags: list[str] | None = None,
        lucidity: bool | None = None,
        analysis: str | None = None,
    ) -> str:
        """Change fields of an existing dream. Omitted fields stay as they are.

        Args:
            dream_id: Id of the dream to change.
        """
        problem = _check_mood(mood)
        if problem:
            return _error(problem)
        values = {
            "title": title,
            "description": description,
            "mood": normalize_mood(mood) if mood is not None else None,
            "tags": tags,
            "lucidity": lucidity,
            "analysis": analysis,
        }
        updates = {key: values[key] for key in _EDITABLE_FIELDS if values[key] is not None}
        if not updates:
            return _error("Nothing to update.")

        await journal.ensure_loaded()
        dream = await journal.update_dream(dream_id, updates)
        if dream is None:
            return json.dumps({"status": "not_found", "dream_id": dream_id})
        return json.dumps({
            "status": "updated",
            "synced": dream.id not in journal.ledger.edits,
            "dream": dream.to_dict(),
        })

    @mcp.tool
    async def delete_dream(ctx: Context, dream_id: str) -> str:
        """Delete a dream. Deleting an unknown id does nothing.

        Args:
            dream_id: Id of the dream to delete.
        """
        await journal.ensure_loaded()
        removed = await journal.delete_dream(dream_id)
        return json.dumps({
            "status": "deleted" if removed else "not_found",
            "dream_id": dream_id,
        })

    @mcp.tool
    async def reset_dreams(ctx: Context, confirm: bool = False) -> str:
        """Replace this device's journal with the sample dreams. Nothing is sent to the server.

        Args:
            confirm: Must be true; the current local collection is overwritten.
        """
        if not confirm:
            return json.dumps({
                "status": "confirmation_required",
                "message": "Call again with confirm=true to replace the local journal.",
            })
        await journal.ensure_loaded()
        journal.reset_dreams()
        return json.dumps({"status": "reset", "total": len(journal.dreams)})

    @mcp.tool
    async def sync_journal(ctx: Context) -> str:
        """Fetch the server journal and resubmit changes that have not reached it yet."""
        await journal.ensure_loaded()
        if session.token is None or api is None:
            return json.dumps({"status": "skipped", "message": "Sign in to sync."})
        refreshed = await journal.refresh()
        report = await journal.sync_pending()
        return json.dumps({
            "status": "synced" if report.failed == 0 else "partial",
            "refreshed": refreshed,
            **report.to_dict(),
            "total": len(journal.dreams),
        })

    @mcp.tool
    async def dashboard_metrics(ctx: Context) -> str:
        """Summary statistics over the local journal."""
        await journal.ensure_loaded()
        return json.dumps(compute_dashboard_metrics(journal.dreams).to_dict())

    @mcp.tool
    async def dream_trends(ctx: Context, kind: str = "summary") -> str:
        """Trend analytics computed by the journal backend.

        Args:
            kind: One of summary, timeline, streaks, tags, monthly, weekday.
        """
        if kind not in TREND_KINDS:
            return _error(f"Unknown trend {kind!r}. Valid: {', '.join(TREND_KINDS)}")
        token = session.token
        if token is None or api is None:
            return _error("Sign in to see trends.")
        try:
            data = await _fetch_trend(api, kind, token)
        except ReverieAPIError as exc:
            logger.warning("Failed to fetch %s trends: %s", kind, exc)
            return _error("Trends are unavailable right now.")
        return json.dumps({"kind": kind, "data": data})

    @mcp.tool
    async def analyze_dream(ctx: Context, description: str) -> str:
        """Have the journal service analyze a dream and add it to the journal.

        The service titles, tags and summarizes the dream and stores it.

        Args:
            description: What happened in the dream.
        """
        if not description.strip():
            return _error("Describe the dream to analyze it.")
        await journal.ensure_loaded()
        if session.token is None or api is None:
            return _error("Sign in to analyze dreams.")
        try:
            dream = await journal.analyze_dream(description.strip())
        except ReverieAPIError as exc:
            logger.warning("Dream analysis failed: %s", exc)
            return _error("Dream analysis is unavailable right now.")
        if dream is None:
            return _error("Sign in to analyze dreams.")
        return json.dumps({"status": "analyzed", "dream": dream.to_dict()})

    @mcp.tool
    async def account_overview(ctx: Context) -> str:
        """Profile, dream statistics, top tags, moods and streak held by the journal service."""
        identity = session.identity
        if identity is None or api is None:
            return _error("Sign in to see the account overview.")
        if not identity.user_id:
            return _error("The account id is unknown. Run session_status with verify=true.")
        overview = await fetch_account_overview(api, identity.user_id, identity.token)
        return json.dumps({
            "status": "ok" if overview.complete else "partial",
            **overview.to_dict(),
        })
