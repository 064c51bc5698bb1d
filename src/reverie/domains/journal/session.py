"""Session store: the current identity, its bearer credential, and the profile cache.

One instance is constructed at application start and passed to whatever
needs the identity; it is reset through :meth:`SessionStore.logout`, never
by re-import.
"""

from __future__ import annotations

import logging

from reverie.core.api.models import BackendProfileSnapshot
from reverie.domains.journal.models import (
    DREAM_GOAL_OPTIONS,
    MAX_DREAM_GOALS,
    Identity,
    Profile,
    ProfileValidationError,
    StoredSession,
)
from reverie.domains.journal.repository import SessionRepository

logger = logging.getLogger(__name__)


class InvalidCredentialsShape(ValueError):
    """Raised when login is attempted without an email or a credential."""


def profile_from_snapshot(
    snapshot: BackendProfileSnapshot, *, fallback_name: str = ""
) -> Profile | None:
    """Rebuild a full Profile from the backend's partial profile data.

    The zodiac sign is recomputed from the birth date and goals outside the
    onboarding list are dropped. Returns None when the snapshot is
    incomplete or not marked complete.
    """
    if not snapshot.has_profile or not snapshot.birthdate or not snapshot.favorite_element:
        return None
    known_goals = [
        goal for goal in dict.fromkeys(snapshot.dream_goals) if goal in DREAM_GOAL_OPTIONS
    ]
    try:
        return Profile(
            name=snapshot.name or fallback_name,
            birthday=snapshot.birthdate,
            favorite_element=snapshot.favorite_element,
            dream_goals=known_goals[:MAX_DREAM_GOALS],
        )
    except ProfileValidationError as exc:
        logger.warning("Ignoring invalid backend profile snapshot: %s", exc)
        return None


class SessionStore:
    """Owns the single current identity.

    Usage::

        session = SessionStore(SessionRepository(storage))
        session.initialize()
        session.login("a@x.com", "T1")
        session.complete_profile(profile)
        session.logout()
    """

    def __init__(self, repository: SessionRepository) -> None:
        self._repo = repository
        self._identity: Identity | None = None

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def is_authenticated(self) -> bool:
        return self._identity is not None

    @property
    def token(self) -> str | None:
        if self._identity is None or not self._identity.token:
            return None
        return self._identity.token

    @property
    def email(self) -> str | None:
        return self._identity.email if self._identity is not None else None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> Identity | None:
        """Restore the persisted session, if any."""
        stored = self._repo.read_session()
        if stored is None:
            self._identity = None
            return None

        profile = self._repo.get_profile(stored.email)
        onboarded = stored.has_profile or profile is not None
        if onboarded and profile is None:
            logger.warning(
                "Session for %s is marked onboarded but has no cached profile; "
                "onboarding is required again",
                stored.email,
            )

        self._identity = Identity(
            email=stored.email,
            token=stored.token,
            user_id=stored.user_id,
            profile=profile,
        )
        logger.info("Restored session for %s", stored.email)
        return self._identity

    def login(
        self,
        email: str,
        token: str,
        *,
        user_id: str | None = None,
        require_profile_setup: bool = False,
        profile_snapshot: BackendProfileSnapshot | None = None,
    ) -> Identity:
        """Start a session for ``email`` authenticated by ``token``.

        Raises:
            InvalidCredentialsShape: If the email or credential is empty.
        """
        email = (email or "").strip()
        if not email or not token:
            raise InvalidCredentialsShape("Email and password are required")

        backend_profile: Profile | None = None
        if profile_snapshot is not None:
            backend_profile = profile_from_snapshot(profile_snapshot)
            if backend_profile is not None:
                # The backend copy wins over whatever this device cached
                self._repo.write_profile(email, backend_profile)

        if require_profile_setup:
            profile = None
        elif profile_snapshot is not None:
            profile = backend_profile
        else:
            profile = self._repo.get_profile(email)

        self._identity = Identity(
            email=email, token=token, user_id=user_id, profile=profile
        )
        self._persist()
        logger.info(
            "Signed in %s (profile %s)", email, "complete" if profile else "pending"
        )
        return self._identity

    def logout(self) -> None:
        """End the session.

        Only the session record is removed; the profile cache and the
        journal data stay on disk for the next sign-in.
        """
        if self._identity is not None:
            logger.info("Signed out %s", self._identity.email)
        self._identity = None
        self._repo.clear_session()

    def complete_profile(self, profile: Profile) -> None:
        """Attach ``profile`` to the current identity (no-op when signed out)."""
        if self._identity is None:
            logger.debug("complete_profile called without a session; ignoring")
            return
        self._identity.profile = profile
        self._repo.write_profile(self._identity.email, profile)
        self._persist()

    def set_user_id(self, user_id: str) -> None:
        """Record the backend id once it is known."""
        if self._identity is None:
            return
        self._identity.user_id = user_id
        self._persist()

    def _persist(self) -> None:
        identity = self._identity
        if identity is None:
            return
        self._repo.write_session(
            StoredSession(
                email=identity.email,
                has_profile=identity.has_profile,
                token=identity.token,
                user_id=identity.user_id,
            )
        )
