"""Async REST client for the Reverie backend.

Thin wrappers over ``httpx.AsyncClient``: one method per endpoint, bearer
credential attached where the backend requires it, every body validated
against a schema from :mod:`reverie.core.api.models`.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import TypeAdapter, ValidationError

from reverie.core.api.models import (
    DreamAnalysisResponse,
    DreamCreateResponse,
    DreamListItem,
    DreamWriteRequest,
    LoginResponse,
    MessageResponse,
    MonthlyActivityEntry,
    MoodDistributionResponse,
    ProfileUpdateRequest,
    ProfileUpdateResponse,
    RegisterResponse,
    StreakResponse,
    TagFrequencies,
    TopTagsResponse,
    TrendStreaks,
    TrendSummary,
    TrendTimelineEntry,
    UserDreamStats,
    UserMe,
    UserProfileRecord,
    VerifyResponse,
    WeekdayStatsEntry,
)

logger = logging.getLogger(__name__)


class ReverieAPIClient:
    """Client for the Reverie REST backend.

    Usage::

        async with ReverieAPIClient("https://api.example.com") as api:
            auth = await api.login("a@x.com", "secret")
            dreams = await api.list_dreams(auth.token)

    An ``http_client`` may be injected (tests pass one built on
    ``httpx.MockTransport``); the client then does not own it.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout_s)

    @property
    def base_url(self) -> str:
        return self._base_url

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> ReverieAPIClient:
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    async def login(self, email: str, password: str) -> LoginResponse:
        data = await self._request(
            "POST", "/auth/login", body={"email": email, "password": password}
        )
        return _validate(LoginResponse, data, "/auth/login")

    async def register(
        self, email: str, password: str, username: str | None = None
    ) -> RegisterResponse:
        body: dict[str, Any] = {"email": email, "password": password}
        if username:
            body["username"] = username
        data = await self._request("POST", "/auth/register", body=body)
        return _validate(RegisterResponse, data, "/auth/register")

    async def verify_token(self, token: str) -> VerifyResponse:
        data = await self._request("GET", "/auth/verify", token=token)
        return _validate(VerifyResponse, data, "/auth/verify")

    async def get_me(self, token: str) -> UserMe:
        data = await self._request("GET", "/auth/me", token=token)
        return _validate(UserMe, data, "/auth/me")

    # ------------------------------------------------------------------
    # Dreams
    # ------------------------------------------------------------------

    async def list_dreams(self, token: str) -> list[DreamListItem]:
        data = await self._request("GET", "/dream/dreams", token=token)
        return _validate(list[DreamListItem], data, "/dream/dreams")

    async def get_dream(self, dream_id: str, token: str) -> DreamListItem:
        path = f"/dream/dreams/{dream_id}"
        data = await self._request("GET", path, token=token)
        return _validate(DreamListItem, data, path)

    async def create_dream(
        self, payload: DreamWriteRequest, token: str
    ) -> DreamCreateResponse:
        data = await self._request(
            "POST", "/dream/dreams", token=token, body=payload.to_body()
        )
        return _validate(DreamCreateResponse, data, "/dream/dreams")

    async def update_dream(
        self, dream_id: str, payload: DreamWriteRequest, token: str
    ) -> dict[str, Any]:
        """Partially update a dream.

        The backend echoes an ad hoc subset of fields; the raw object is
        returned since callers only need to know the call succeeded.
        """
        path = f"/dream/dreams/{dream_id}"
        data = await self._request("PUT", path, token=token, body=payload.to_body())
        return _validate(dict[str, Any], data, path)

    async def delete_dream(self, dream_id: str, token: str) -> MessageResponse:
        path = f"/dream/dreams/{dream_id}"
        data = await self._request("DELETE", path, token=token)
        return _validate(MessageResponse, data, path)

    async def analyze_dream(self, dream_text: str, token: str) -> DreamAnalysisResponse:
        data = await self._request(
            "POST", "/dream/analyze", token=token, body={"dreamText": dream_text}
        )
        return _validate(DreamAnalysisResponse, data, "/dream/analyze")

    # ------------------------------------------------------------------
    # Profile / stats
    # ------------------------------------------------------------------

    async def get_user_profile(
        self, user_id: str, token: str | None = None
    ) -> UserProfileRecord:
        path = f"/user_bp/users/{user_id}"
        data = await self._request("GET", path, token=token)
        return _validate(UserProfileRecord, data, path)

    async def update_user_profile(
        self, user_id: str, payload: ProfileUpdateRequest, token: str | None = None
    ) -> ProfileUpdateResponse:
        path = f"/user_bp/users/{user_id}"
        data = await self._request("PUT", path, token=token, body=payload.to_body())
        return _validate(ProfileUpdateResponse, data, path)

    async def get_user_stats(self, user_id: str, token: str | None = None) -> UserDreamStats:
        path = f"/user_bp/users/{user_id}/stats"
        data = await self._request("GET", path, token=token)
        return _validate(UserDreamStats, data, path)

    async def get_top_tags(self, user_id: str, token: str | None = None) -> TopTagsResponse:
        path = f"/user_bp/users/{user_id}/tags/top"
        data = await self._request("GET", path, token=token)
        return _validate(TopTagsResponse, data, path)

    async def get_mood_distribution(
        self, user_id: str, token: str | None = None
    ) -> MoodDistributionResponse:
        path = f"/user_bp/users/{user_id}/moods"
        data = await self._request("GET", path, token=token)
        return _validate(MoodDistributionResponse, data, path)

    async def get_streak(self, token: str | None = None) -> StreakResponse:
        data = await self._request("GET", "/user_bp/streak", token=token)
        return _validate(StreakResponse, data, "/user_bp/streak")

    # ------------------------------------------------------------------
    # Trends
    # ------------------------------------------------------------------

    async def get_trend_summary(self, token: str) -> TrendSummary:
        return await self._get_trend("summary", TrendSummary, token)

    async def get_trend_timeline(self, token: str) -> list[TrendTimelineEntry]:
        return await self._get_trend("timeline", list[TrendTimelineEntry], token)

    async def get_trend_streaks(self, token: str) -> TrendStreaks:
        return await self._get_trend("streaks", TrendStreaks, token)

    async def get_tag_frequencies(self, token: str) -> TagFrequencies:
        return await self._get_trend("tags", TagFrequencies, token)

    async def get_monthly_activity(self, token: str) -> list[MonthlyActivityEntry]:
        return await self._get_trend("monthly", list[MonthlyActivityEntry], token)

    async def get_weekday_stats(self, token: str) -> list[WeekdayStatsEntry]:
        return await self._get_trend("weekday", list[WeekdayStatsEntry], token)

    async def _get_trend(self, name: str, schema: Any, token: str) -> Any:
        path = f"/trend/trends/{name}"
        data = await self._request("GET", path, token=token)
        return _validate(schema, data, path)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        token: str | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            APIConnectionError: Transport failure or timeout.
            APIResponseError: Non-2xx status or a body that is not JSON.
        """
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        url = f"{self._base_url}{path}"
        logger.debug("%s %s", method, path)

        try:
            response = await self._http.request(method, url, headers=headers, json=body)
        except httpx.HTTPError as exc:
            raise APIConnectionError(f"{method} {path} failed: {exc}") from exc

        if not response.is_success:
            raise APIResponseError(
                response.status_code, response.text.strip() or "API Error"
            )

        try:
            return response.json()
        except ValueError as exc:
            raise APIResponseError(
                response.status_code, f"Invalid JSON from {path}: {exc}"
            ) from exc


# ------------------------------------------------------------------
# Exceptions
# ------------------------------------------------------------------

class ReverieAPIError(Exception):
    """Base exception for ReverieAPIClient errors."""


class APIConnectionError(ReverieAPIError):
    """Could not reach the backend."""


class APIResponseError(ReverieAPIError):
    """The backend answered with a non-2xx status."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class APISchemaError(ReverieAPIError):
    """The response body did not match the expected schema."""


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _validate(schema: Any, data: Any, path: str) -> Any:
    """Validate ``data`` against a model class or a typing expression such as ``list[Model]``."""
    try:
        return TypeAdapter(schema).validate_python(data)
    except ValidationError as exc:
        raise APISchemaError(f"Unexpected response shape from {path}: {exc}") from exc
