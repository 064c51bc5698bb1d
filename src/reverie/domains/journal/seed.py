"""Seed dreams shown for demos and empty journals."""

from __future__ import annotations

from reverie.domains.journal.models import Dream

# Seed records never exist on the server
SEED_ID_PREFIX = "seed-"


def is_seed_id(dream_id: str) -> bool:
    return dream_id.startswith(SEED_ID_PREFIX)


def initial_dreams() -> list[Dream]:
    """Return a fresh copy of the seed collection (newest first)."""
    return [
        Dream(
            id=f"{SEED_ID_PREFIX}1",
            date="2025-10-26T00:00:00.000Z",
            title="Flying over mountains",
            mood="peaceful",
            description=(
                "I was gliding effortlessly above snow-capped mountains at sunset. "
                "The air felt crisp and the sky painted in shades of purple and gold."
            ),
            analysis="This dream suggests a desire for freedom and perspective in your life.",
            tags=["flying", "mountains", "sunset"],
            lucidity=True,
        ),
        Dream(
            id=f"{SEED_ID_PREFIX}2",
            date="2025-10-25T00:00:00.000Z",
            title="Ocean waves",
            mood="peaceful",
            description=(
                "I stood by a quiet shoreline at night, listening to rhythmic waves "
                "while constellations shimmered above. The water glowed softly."
            ),
            analysis="Water often represents emotions; calm waves suggest emotional balance.",
            tags=["ocean", "night", "stars"],
            lucidity=False,
        ),
    ]
