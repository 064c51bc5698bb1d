"""Request and response schemas for the Reverie REST backend.

Every response body is validated against one of these models at the client
boundary; extra keys are ignored so backend additions do not break older
clients.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Schema(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

class BackendProfileSnapshot(_Schema):
    """Profile fields the backend may return alongside a login."""

    has_profile: bool = False
    name: str | None = None
    birthdate: str | None = None
    favorite_element: str | None = None
    dream_goals: list[str] = Field(default_factory=list)


class LoginUser(_Schema):
    id: str | None = None
    email: str | None = None
    username: str | None = None
    profile: BackendProfileSnapshot | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return str(value) if value is not None else None


class LoginResponse(_Schema):
    token: str
    user: LoginUser | None = None


class RegisterResponse(_Schema):
    message: str | None = None
    error: str | None = None


class VerifyResponse(_Schema):
    valid: bool
    error: str | None = None


class UserMe(_Schema):
    id: str
    email: str
    created_at: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return str(value)


# ---------------------------------------------------------------------------
# Dreams
# ---------------------------------------------------------------------------

class DreamListItem(_Schema):
    """One dream as returned by ``GET /dream/dreams``."""

    id: str
    title: str = ""
    dream_text: str | None = None
    summary: str | None = None
    submitted_at: str | None = None
    is_lucid: bool = False
    tags: list[str] = Field(default_factory=list)
    mood: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return str(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _none_tags(cls, value):
        return value or []


class DreamWriteRequest(_Schema):
    """Body of ``POST /dream/dreams`` and ``PUT /dream/dreams/{id}``.

    Unset fields are omitted from the request so a PUT stays partial.
    """

    dream_text: str | None = Field(default=None, serialization_alias="dreamText")
    title: str | None = None
    is_lucid: bool | None = None
    tags: list[str] | None = None
    mood: str | None = None

    def to_body(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class DreamCreateResponse(_Schema):
    message: str = ""
    dream_id: str
    title: str | None = None
    is_lucid: bool | None = None
    tags: list[str] = Field(default_factory=list)
    mood: str | None = None

    @field_validator("dream_id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return str(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _none_tags(cls, value):
        return value or []


class DreamAnalysisResponse(DreamCreateResponse):
    summary: str = ""


class MessageResponse(_Schema):
    message: str = ""


# ---------------------------------------------------------------------------
# Profile / stats
# ---------------------------------------------------------------------------

class UserProfileRecord(_Schema):
    user_id: str
    birthdate: str | None = None
    favorite_element: str | None = None
    dream_goals: list[str] = Field(default_factory=list)

    @field_validator("user_id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return str(value)

    @field_validator("dream_goals", mode="before")
    @classmethod
    def _none_goals(cls, value):
        return value or []


class ProfileUpdateRequest(_Schema):
    birthdate: str | None = None
    favorite_element: str | None = None
    dream_goals: list[str] | None = None

    def to_body(self) -> dict:
        return self.model_dump(exclude_none=True)


class UpdatedProfileFields(_Schema):
    birthdate: str | None = None
    favorite_element: str | None = None
    dream_goals: list[str] = Field(default_factory=list)


class ProfileUpdateResponse(_Schema):
    message: str = ""
    updated_fields: UpdatedProfileFields = Field(default_factory=UpdatedProfileFields)


class UserDreamStats(_Schema):
    total_dreams: int
    lucid_dreams: int
    lucidity_rate: float
    unique_tags: list[str] = Field(default_factory=list)


class TagCount(_Schema):
    tag: str
    count: int


class TopTagsResponse(_Schema):
    top_tags: list[TagCount] = Field(default_factory=list)


class MoodCount(_Schema):
    mood: str
    count: int


class MoodDistributionResponse(_Schema):
    moods: list[MoodCount] = Field(default_factory=list)


class StreakResponse(_Schema):
    streak: int


# ---------------------------------------------------------------------------
# Trends
# ---------------------------------------------------------------------------

class TrendSummary(_Schema):
    total_dreams: int = 0
    avg_per_week: float = 0.0
    common_tags: list[tuple[str, int]] = Field(default_factory=list)
    message: str | None = None


class TrendTimelineEntry(_Schema):
    date: str
    dream_count: int


class TrendStreaks(_Schema):
    current_streak: int
    longest_streak: int


class TagFrequencies(_Schema):
    tags: list[tuple[str, int]] = Field(default_factory=list)
    message: str | None = None


class MonthlyActivityEntry(_Schema):
    month: str
    dream_count: int


class WeekdayStatsEntry(_Schema):
    weekday: int  # 0 = Monday ... 6 = Sunday
    dream_count: int
