"""Account overview assembled from the backend's per-user profile and stats endpoints."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from reverie.core.api.client import ReverieAPIClient, ReverieAPIError

logger = logging.getLogger(__name__)


@dataclass
class AccountOverview:
    """What the backend knows about one user.

    Sections the backend could not serve are left empty and named in
    ``unavailable``.
    """

    user_id: str
    profile: dict[str, Any] = field(default_factory=dict)
    stats: dict[str, Any] = field(default_factory=dict)
    top_tags: list[dict[str, Any]] = field(default_factory=list)
    moods: list[dict[str, Any]] = field(default_factory=list)
    streak: int | None = None
    unavailable: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.unavailable

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "profile": self.profile,
            "stats": self.stats,
            "top_tags": self.top_tags,
            "moods": self.moods,
            "streak": self.streak,
            "unavailable": list(self.unavailable),
        }


async def fetch_account_overview(
    api: ReverieAPIClient, user_id: str, token: str
) -> AccountOverview:
    """Collect profile, dream stats, top tags, mood distribution and streak.

    Each endpoint is queried independently; a failing one is logged and
    recorded in ``unavailable`` while the rest are still returned.
    """
    overview = AccountOverview(user_id=user_id)

    try:
        record = await api.get_user_profile(user_id, token)
        overview.profile = record.model_dump(exclude={"user_id"})
    except ReverieAPIError as exc:
        logger.warning("Failed to fetch profile for user %s: %s", user_id, exc)
        overview.unavailable.append("profile")

    try:
        overview.stats = (await api.get_user_stats(user_id, token)).model_dump()
    except ReverieAPIError as exc:
        logger.warning("Failed to fetch stats for user %s: %s", user_id, exc)
        overview.unavailable.append("stats")

    try:
        tags = await api.get_top_tags(user_id, token)
        overview.top_tags = [entry.model_dump() for entry in tags.top_tags]
    except ReverieAPIError as exc:
        logger.warning("Failed to fetch top tags for user %s: %s", user_id, exc)
        overview.unavailable.append("top_tags")

    try:
        moods = await api.get_mood_distribution(user_id, token)
        overview.moods = [entry.model_dump() for entry in moods.moods]
    except ReverieAPIError as exc:
        logger.warning("Failed to fetch mood distribution for user %s: %s", user_id, exc)
        overview.unavailable.append("moods")

    try:
        overview.streak = (await api.get_streak(token)).streak
    except ReverieAPIError as exc:
        logger.warning("Failed to fetch streak: %s", exc)
        overview.unavailable.append("streak")

    return overview
