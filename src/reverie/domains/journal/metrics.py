"""Dashboard statistics derived from the local dream collection."""

from __future__ import annotations

from collections import Counter
from dataclasses import asdict, dataclass
from typing import Any

from reverie.domains.journal.models import MOOD_LABELS, Dream


@dataclass
class DashboardMetrics:
    total: int = 0
    lucid_count: int = 0
    lucidity_rate: int = 0  # whole percent
    unique_tags: int = 0
    recent_mood: str = "—"
    top_mood: str | None = None
    top_mood_count: int = 0
    top_tag: str | None = None
    top_tag_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _first_most_common(counts: Counter) -> tuple[str | None, int]:
    # Counter keeps insertion order, so the first maximum wins ties
    best, best_count = None, 0
    for key, count in counts.items():
        if count > best_count:
            best, best_count = key, count
    return best, best_count


def compute_dashboard_metrics(dreams: list[Dream]) -> DashboardMetrics:
    """Summarize a collection that is ordered newest first."""
    if not dreams:
        return DashboardMetrics()

    moods: Counter = Counter()
    tags: Counter = Counter()
    lucid = 0
    for dream in dreams:
        if dream.lucidity:
            lucid += 1
        moods[dream.mood] += 1
        tags.update(dream.tags)

    top_mood, top_mood_count = _first_most_common(moods)
    top_tag, top_tag_count = _first_most_common(tags)
    latest = dreams[0].mood

    return DashboardMetrics(
        total=len(dreams),
        lucid_count=lucid,
        lucidity_rate=round(lucid / len(dreams) * 100),
        unique_tags=len(tags),
        recent_mood=MOOD_LABELS.get(latest, latest),
        top_mood=top_mood,
        top_mood_count=top_mood_count,
        top_tag=top_tag,
        top_tag_count=top_tag_count,
    )
