"""Sign-in, sign-up and onboarding flows against the REST backend.

The backend owns authentication; this service forwards credentials, then
hands the returned bearer token to the :class:`SessionStore`.
"""

from __future__ import annotations

import logging

from reverie.core.api.client import APIResponseError, ReverieAPIClient, ReverieAPIError
from reverie.core.api.models import ProfileUpdateRequest
from reverie.domains.journal.models import Identity, Profile
from reverie.domains.journal.session import InvalidCredentialsShape, SessionStore

logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """The backend rejected a sign-in or registration."""


class AuthService:
    """Composes the REST auth endpoints with the session store."""

    def __init__(self, session: SessionStore, api: ReverieAPIClient) -> None:
        self._session = session
        self._api = api

    async def sign_in(
        self, email: str, password: str, *, require_profile_setup: bool = False
    ) -> Identity:
        """Authenticate with the backend and start a session.

        Raises:
            InvalidCredentialsShape: Email or password missing.
            AuthenticationError: The backend refused the credentials.
            ReverieAPIError: The backend could not be reached.
        """
        email = (email or "").strip()
        if not email or not password:
            raise InvalidCredentialsShape("Email and password are required")

        try:
            response = await self._api.login(email, password)
        except APIResponseError as exc:
            raise AuthenticationError(exc.message) from exc

        user = response.user
        return self._session.login(
            email,
            response.token,
            user_id=user.id if user else None,
            require_profile_setup=require_profile_setup,
            profile_snapshot=user.profile if user else None,
        )

    async def sign_up(self, email: str, password: str, username: str | None = None) -> Identity:
        """Register, then sign in with onboarding required."""
        email = (email or "").strip()
        if not email or not password:
            raise InvalidCredentialsShape("Email and password are required")

        try:
            response = await self._api.register(email, password, username)
        except APIResponseError as exc:
            raise AuthenticationError(exc.message) from exc
        if response.error:
            raise AuthenticationError(response.error)

        logger.info("Registered %s", email)
        return await self.sign_in(email, password, require_profile_setup=True)

    async def validate_session(self) -> bool:
        """Check the stored credential with the backend.

        The session is ended only when the backend says the token is
        invalid; an unreachable backend keeps the session.
        """
        token = self._session.token
        if token is None:
            return False
        try:
            result = await self._api.verify_token(token)
        except APIResponseError as exc:
            if exc.status_code in (401, 403):
                logger.info("Stored credential rejected (%d); signing out", exc.status_code)
                self._session.logout()
                return False
            logger.warning("Token verification failed: %s", exc)
            return True
        except ReverieAPIError as exc:
            logger.warning("Token verification unavailable: %s", exc)
            return True

        if not result.valid:
            logger.info("Stored credential invalid (%s); signing out", result.error or "no reason")
            self._session.logout()
            return False

        identity = self._session.identity
        if identity is not None and identity.user_id is None:
            try:
                me = await self._api.get_me(token)
            except ReverieAPIError as exc:
                logger.debug("Could not resolve user id: %s", exc)
            else:
                self._session.set_user_id(me.id)
        return True

    async def complete_onboarding(self, profile: Profile) -> None:
        """Save the profile to the backend (best effort) and the session."""
        identity = self._session.identity
        if identity is not None and identity.user_id:
            payload = ProfileUpdateRequest(
                birthdate=profile.birthday,
                favorite_element=profile.favorite_element.lower(),
                dream_goals=list(profile.dream_goals),
            )
            try:
                await self._api.update_user_profile(identity.user_id, payload, self._session.token)
            except ReverieAPIError as exc:
                logger.warning("Failed to save profile to backend: %s", exc)
        self._session.complete_profile(profile)
