"""Shared test fixtures for Reverie journal tests."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DB_PATH", ":memory:")
    monkeypatch.setenv("ENCRYPTION_KEY", "")
    monkeypatch.setenv("REVERIE_API_URL", "http://reverie.test")
    monkeypatch.setenv("RESUBMIT_PENDING_ON_START", "true")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from reverie.core.api.client import APIConnectionError, APIResponseError  # noqa: E402
from reverie.core.api.models import (  # noqa: E402
    BackendProfileSnapshot,
    DreamAnalysisResponse,
    DreamCreateResponse,
    DreamListItem,
    DreamWriteRequest,
    LoginResponse,
    LoginUser,
    MessageResponse,
    MoodCount,
    MoodDistributionResponse,
    ProfileUpdateRequest,
    ProfileUpdateResponse,
    RegisterResponse,
    StreakResponse,
    TagCount,
    TopTagsResponse,
    TrendStreaks,
    TrendSummary,
    UserDreamStats,
    UserMe,
    UserProfileRecord,
    VerifyResponse,
)
from reverie.core.storage.kv_store import MemoryKeyValueStore  # noqa: E402


# ---------------------------------------------------------------------------
# Fake REST backend
# ---------------------------------------------------------------------------

FAKE_USER_ID = "7"


class FakeDreamAPI:
    """In-memory stand-in for ReverieAPIClient.

    Holds a server-side dream table, a user table and a call log. Set
    ``fail`` to make every call raise ``APIConnectionError``, or add
    operation names ("list", "create", "update", "delete", "login", ...) to
    ``fail_ops`` to fail only those.
    """

    base_url = "http://reverie.test"

    def __init__(self) -> None:
        self.dreams: dict[str, DreamListItem] = {}
        self.passwords: dict[str, str] = {}
        self.login_profile: BackendProfileSnapshot | None = None
        self.token_valid = True
        self.profile_updates: list[tuple[str, dict[str, Any]]] = []
        self.calls: list[tuple[str, Any]] = []
        self.fail = False
        self.fail_ops: set[str] = set()
        self._next_id = 100

    def seed(self, dream_id: str, title: str, **fields: Any) -> DreamListItem:
        item = DreamListItem(
            id=dream_id,
            title=title,
            dream_text=fields.pop("dream_text", f"{title} text"),
            submitted_at=fields.pop("submitted_at", "2026-01-01T00:00:00+00:00"),
            **fields,
        )
        self.dreams[dream_id] = item
        return item

    def count(self, op: str) -> int:
        return sum(1 for name, _ in self.calls if name == op)

    def _check(self, op: str, arg: Any = None) -> None:
        self.calls.append((op, arg))
        if self.fail or op in self.fail_ops:
            raise APIConnectionError(f"{op} unavailable")

    # --- auth ---

    async def login(self, email: str, password: str) -> LoginResponse:
        self._check("login", email)
        if self.passwords.get(email) != password:
            raise APIResponseError(401, "Invalid credentials")
        return LoginResponse(
            token=f"token-{email}",
            user=LoginUser(id=FAKE_USER_ID, email=email, profile=self.login_profile),
        )

    async def register(
        self, email: str, password: str, username: str | None = None
    ) -> RegisterResponse:
        self._check("register", email)
        if email in self.passwords:
            return RegisterResponse(error="User already exists")
        self.passwords[email] = password
        return RegisterResponse(message="User registered successfully")

    async def verify_token(self, token: str) -> VerifyResponse:
        self._check("verify", token)
        if self.token_valid:
            return VerifyResponse(valid=True)
        return VerifyResponse(valid=False, error="Token expired")

    async def get_me(self, token: str) -> UserMe:
        self._check("me", token)
        return UserMe(id=FAKE_USER_ID, email=token.removeprefix("token-"))

    async def update_user_profile(
        self, user_id: str, payload: ProfileUpdateRequest, token: str | None = None
    ) -> ProfileUpdateResponse:
        self._check("profile", user_id)
        self.profile_updates.append((user_id, payload.to_body()))
        return ProfileUpdateResponse(message="Profile updated successfully")

    # --- dreams ---

    async def list_dreams(self, token: str) -> list[DreamListItem]:
        self._check("list")
        return list(self.dreams.values())

    async def create_dream(
        self, payload: DreamWriteRequest, token: str
    ) -> DreamCreateResponse:
        self._check("create", payload)
        dream_id = str(self._next_id)
        self._next_id += 1
        self.dreams[dream_id] = DreamListItem(
            id=dream_id,
            submitted_at="2026-01-02T00:00:00+00:00",
            **payload.model_dump(exclude_none=True),
        )
        return DreamCreateResponse(message="Dream created", dream_id=dream_id)

    async def update_dream(
        self, dream_id: str, payload: DreamWriteRequest, token: str
    ) -> dict[str, Any]:
        self._check("update", dream_id)
        if dream_id not in self.dreams:
            raise APIResponseError(404, "Dream not found")
        changes = payload.model_dump(exclude_none=True)
        self.dreams[dream_id] = self.dreams[dream_id].model_copy(update=changes)
        return {"message": "Dream updated", **changes}

    async def delete_dream(self, dream_id: str, token: str) -> MessageResponse:
        self._check("delete", dream_id)
        if self.dreams.pop(dream_id, None) is None:
            raise APIResponseError(404, "Dream not found")
        return MessageResponse(message="Dream deleted")

    async def get_dream(self, dream_id: str, token: str) -> DreamListItem:
        self._check("get", dream_id)
        if dream_id not in self.dreams:
            raise APIResponseError(404, "Dream not found")
        return self.dreams[dream_id]

    async def analyze_dream(self, dream_text: str, token: str) -> DreamAnalysisResponse:
        self._check("analyze", dream_text)
        dream_id = str(self._next_id)
        self._next_id += 1
        summary = f"Analysis: {dream_text}"
        self.dreams[dream_id] = DreamListItem(
            id=dream_id,
            title="Analyzed dream",
            dream_text=dream_text,
            summary=summary,
            submitted_at="2026-01-03T00:00:00+00:00",
            tags=["analyzed"],
            mood="curious",
        )
        return DreamAnalysisResponse(
            message="Dream analyzed",
            dream_id=dream_id,
            title="Analyzed dream",
            summary=summary,
            tags=["analyzed"],
            mood="curious",
        )

    # --- profile / stats ---

    async def get_user_profile(
        self, user_id: str, token: str | None = None
    ) -> UserProfileRecord:
        self._check("user_profile", user_id)
        return UserProfileRecord(
            user_id=user_id, birthdate="1990-07-10", favorite_element="water"
        )

    async def get_user_stats(self, user_id: str, token: str | None = None) -> UserDreamStats:
        self._check("stats", user_id)
        lucid = sum(1 for item in self.dreams.values() if item.is_lucid)
        total = len(self.dreams)
        return UserDreamStats(
            total_dreams=total,
            lucid_dreams=lucid,
            lucidity_rate=lucid / total if total else 0.0,
        )

    async def get_top_tags(self, user_id: str, token: str | None = None) -> TopTagsResponse:
        self._check("top_tags", user_id)
        return TopTagsResponse(top_tags=[TagCount(tag="flying", count=2)])

    async def get_mood_distribution(
        self, user_id: str, token: str | None = None
    ) -> MoodDistributionResponse:
        self._check("moods", user_id)
        return MoodDistributionResponse(moods=[MoodCount(mood="happy", count=3)])

    async def get_streak(self, token: str | None = None) -> StreakResponse:
        self._check("streak")
        return StreakResponse(streak=4)

    # --- trends ---

    async def get_trend_summary(self, token: str) -> TrendSummary:
        self._check("trends", "summary")
        return TrendSummary(
            total_dreams=len(self.dreams), avg_per_week=1.5, common_tags=[("flying", 2)]
        )

    async def get_trend_streaks(self, token: str) -> TrendStreaks:
        self._check("trends", "streaks")
        return TrendStreaks(current_streak=2, longest_streak=5)


@pytest.fixture
def fake_api() -> FakeDreamAPI:
    return FakeDreamAPI()


# ---------------------------------------------------------------------------
# In-memory storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def kv_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def journal_db():
    """Create an in-memory JournalDatabase for testing."""
    from reverie.core.storage.database import JournalDatabase

    db = JournalDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def field_encryptor():
    """Create a FieldEncryptor with a test key."""
    from cryptography.fernet import Fernet

    from reverie.core.storage.encryption import FieldEncryptor

    return FieldEncryptor(Fernet.generate_key().decode())
