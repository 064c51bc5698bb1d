"""Domain models for the dream journal: dreams, profiles, identities, ledgers.

Persisted shapes use the JSON keys of the browser-era storage format
(``hasProfile``, ``favoriteElement``, ...) so existing local data loads
unchanged.
"""

from __future__ import annotations

import dataclasses
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from reverie.domains.journal.zodiac import ZodiacSign, classify_birth_date

# ---------------------------------------------------------------------------
# Fixed option lists
# ---------------------------------------------------------------------------

MOOD_LABELS: dict[str, str] = {
    "happy": "Happy",
    "peaceful": "Peaceful",
    "excited": "Excited",
    "curious": "Curious",
    "confused": "Confused",
    "anxious": "Anxious",
    "scared": "Scared",
    "sad": "Sad",
    "neutral": "Neutral",
}
MOODS: tuple[str, ...] = tuple(MOOD_LABELS)
DEFAULT_MOOD = "neutral"

ELEMENTS: tuple[str, ...] = ("Fire", "Earth", "Air", "Water")

DREAM_GOAL_OPTIONS: tuple[str, ...] = (
    "Increase lucid dreaming frequency",
    "Better dream recall",
    "Overcome nightmares",
    "Explore creativity through dreams",
    "Find personal insights",
    "Spiritual growth and connection",
    "Problem-solving through dreams",
    "Emotional healing",
)
MAX_DREAM_GOALS = 3


class ProfileValidationError(ValueError):
    """Raised when profile data violates the onboarding rules."""


def normalize_mood(value: str | None) -> str:
    """Map a mood value onto the nine known moods (unknown -> neutral)."""
    mood = (value or "").strip().lower()
    return mood if mood in MOOD_LABELS else DEFAULT_MOOD


def normalize_element(value: str) -> str:
    """Return the canonical spelling of an element ('fire' -> 'Fire')."""
    element = (value or "").strip().capitalize()
    if element not in ELEMENTS:
        raise ProfileValidationError(
            f"Unknown element {value!r}. Valid: {', '.join(ELEMENTS)}"
        )
    return element


def toggle_goal(goals: list[str], goal: str) -> list[str]:
    """Select or deselect a dream goal, honouring the three-goal cap.

    Returns a new list; the input is not modified. Selecting a fourth goal
    returns the selection unchanged.
    """
    if goal in goals:
        return [g for g in goals if g != goal]
    if goal not in DREAM_GOAL_OPTIONS:
        raise ProfileValidationError(f"Unknown dream goal: {goal!r}")
    if len(goals) >= MAX_DREAM_GOALS:
        return list(goals)
    return [*goals, goal]


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------

@dataclass
class Profile:
    """User-declared preference data collected during onboarding.

    The zodiac sign is a property of the birth date, never stored state.
    """

    name: str
    birthday: str  # ISO date, e.g. '1990-07-10'
    favorite_element: str
    dream_goals: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.favorite_element = normalize_element(self.favorite_element)
        self.dream_goals = list(dict.fromkeys(self.dream_goals))
        unknown = [goal for goal in self.dream_goals if goal not in DREAM_GOAL_OPTIONS]
        if unknown:
            raise ProfileValidationError(f"Unknown dream goal(s): {', '.join(unknown)}")
        if len(self.dream_goals) > MAX_DREAM_GOALS:
            raise ProfileValidationError(
                f"At most {MAX_DREAM_GOALS} dream goals may be selected, "
                f"got {len(self.dream_goals)}"
            )
        try:
            classify_birth_date(self.birthday)
        except ValueError as exc:
            raise ProfileValidationError(f"Invalid birth date {self.birthday!r}: {exc}") from exc

    @property
    def zodiac_sign(self) -> ZodiacSign:
        return classify_birth_date(self.birthday)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "birthday": self.birthday,
            "favoriteElement": self.favorite_element,
            "dreamGoals": list(self.dream_goals),
            # Written for display; recomputed on read
            "zodiacSign": self.zodiac_sign.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Profile:
        return cls(
            name=data.get("name", ""),
            birthday=data["birthday"],
            favorite_element=data["favoriteElement"],
            dream_goals=list(data.get("dreamGoals") or []),
        )


# ---------------------------------------------------------------------------
# Identity / session
# ---------------------------------------------------------------------------

@dataclass
class Identity:
    """The signed-in actor held by the session store."""

    email: str
    token: str
    user_id: str | None = None
    profile: Profile | None = None

    @property
    def has_profile(self) -> bool:
        return self.profile is not None


@dataclass
class StoredSession:
    """The persisted session record."""

    email: str
    has_profile: bool = False
    token: str = ""
    user_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "email": self.email,
            "hasProfile": self.has_profile,
            "token": self.token,
        }
        if self.user_id:
            data["id"] = self.user_id
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StoredSession:
        email = data.get("email")
        if not isinstance(email, str) or not email:
            raise ValueError("Stored session has no email")
        user_id = data.get("id")
        return cls(
            email=email,
            has_profile=bool(data.get("hasProfile", False)),
            token=str(data.get("token") or ""),
            user_id=str(user_id) if user_id else None,
        )


# ---------------------------------------------------------------------------
# Dreams
# ---------------------------------------------------------------------------

def new_dream_id() -> str:
    """Client-generated identifier for a dream not yet confirmed by the server."""
    return str(uuid.uuid4())


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Dream:
    """A single journal entry."""

    id: str
    title: str
    description: str
    date: str  # ISO 8601
    mood: str = DEFAULT_MOOD
    tags: list[str] = field(default_factory=list)
    lucidity: bool = False
    analysis: str = ""

    @classmethod
    def create(
        cls,
        title: str,
        description: str,
        *,
        mood: str = DEFAULT_MOOD,
        tags: list[str] | None = None,
        lucidity: bool = False,
        date: str | None = None,
        id: str = "",
    ) -> Dream:
        """Build a new entry; the analysis defaults to the description."""
        return cls(
            id=id or new_dream_id(),
            title=title.strip(),
            description=description.strip(),
            date=date or now_iso(),
            mood=mood,
            tags=list(dict.fromkeys(tags or [])),
            lucidity=lucidity,
            analysis=description.strip(),
        )

    def with_updates(self, updates: dict[str, Any]) -> Dream:
        """Return a copy with ``updates`` applied (the id never changes).

        Raises:
            TypeError: If ``updates`` names an unknown field.
        """
        changes = {k: v for k, v in updates.items() if k != "id"}
        if "tags" in changes:
            changes["tags"] = list(changes["tags"] or [])
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "date": self.date,
            "mood": self.mood,
            "tags": list(self.tags),
            "lucidity": self.lucidity,
            "analysis": self.analysis,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Dream:
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            description=data.get("description", ""),
            date=data.get("date", ""),
            mood=data.get("mood", DEFAULT_MOOD),
            tags=list(data.get("tags") or []),
            lucidity=bool(data.get("lucidity", False)),
            analysis=data.get("analysis", ""),
        )


@dataclass
class PendingLedger:
    """Local mutations not yet confirmed by the server.

    ``edits`` maps dream id to the full last local snapshot, ``deletes`` holds
    ids removed locally, ``creates`` marks the ids in ``edits`` whose create
    call has never been confirmed (they still carry a client id).
    """

    edits: dict[str, Dream] = field(default_factory=dict)
    deletes: set[str] = field(default_factory=set)
    creates: set[str] = field(default_factory=set)

    def is_empty(self) -> bool:
        return not (self.edits or self.deletes or self.creates)

    def record_create(self, dream: Dream) -> None:
        self.edits[dream.id] = dream
        self.creates.add(dream.id)

    def confirm_create(self, sent: Dream, server_id: str) -> None:
        """Clear a confirmed create of ``sent``.

        An edit recorded while the create call was in flight differs from
        ``sent``; it stays pending, re-keyed under the server id.
        """
        self.creates.discard(sent.id)
        snapshot = self.edits.pop(sent.id, None)
        if snapshot is not None and snapshot != sent:
            self.edits[server_id] = dataclasses.replace(snapshot, id=server_id)

    def record_edit(self, dream: Dream) -> None:
        self.edits[dream.id] = dream

    def confirm_edit(self, dream_id: str) -> None:
        self.edits.pop(dream_id, None)

    def record_delete(self, dream_id: str) -> None:
        self.edits.pop(dream_id, None)
        if dream_id in self.creates:
            # Never reached the server; nothing to delete remotely
            self.creates.discard(dream_id)
            return
        self.deletes.add(dream_id)

    def confirm_delete(self, dream_id: str) -> None:
        self.deletes.discard(dream_id)


# ---------------------------------------------------------------------------
# Alarms
# ---------------------------------------------------------------------------

class AlarmValidationError(ValueError):
    """Raised when an alarm time is out of range."""


@dataclass
class Alarm:
    """A wake-up reminder to record dreams while they are fresh."""

    id: str
    hour: int
    minute: int
    label: str
    enabled: bool = True

    def __post_init__(self) -> None:
        if not 0 <= self.hour <= 23:
            raise AlarmValidationError(f"Hour must be between 0 and 23, got {self.hour}")
        if not 0 <= self.minute <= 59:
            raise AlarmValidationError(f"Minute must be between 0 and 59, got {self.minute}")

    @property
    def display_time(self) -> str:
        """12-hour clock, e.g. '7:00 AM' or '12:30 PM'."""
        period = "PM" if self.hour >= 12 else "AM"
        hour = self.hour % 12 or 12
        return f"{hour}:{self.minute:02d} {period}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "hour": self.hour,
            "minute": self.minute,
            "label": self.label,
            "enabled": self.enabled,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Alarm:
        return cls(
            id=str(data["id"]),
            hour=int(data["hour"]),
            minute=int(data["minute"]),
            label=data.get("label", ""),
            enabled=bool(data.get("enabled", True)),
        )
