"""MCP tools for signing in, signing out, and onboarding."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from reverie.core.api.client import ReverieAPIError
from reverie.domains.journal.auth import AuthenticationError
from reverie.domains.journal.models import Identity, Profile, ProfileValidationError
from reverie.domains.journal.session import InvalidCredentialsShape

if TYPE_CHECKING:
    from reverie.domains.journal.auth import AuthService
    from reverie.domains.journal.dreams import JournalStore
    from reverie.domains.journal.session import SessionStore

logger = logging.getLogger(__name__)


def _identity_payload(identity: Identity | None) -> dict:
    if identity is None:
        return {"authenticated": False}
    payload: dict = {
        "authenticated": True,
        "email": identity.email,
        "user_id": identity.user_id,
        "has_profile": identity.has_profile,
    }
    if identity.profile is not None:
        payload["profile"] = identity.profile.to_dict()
    return payload


def _error(message: str) -> str:
    return json.dumps({"status": "error", "message": message})


def register_session_tools(
    mcp: FastMCP,
    session: SessionStore,
    auth: AuthService,
    journal: JournalStore,
) -> None:
    """Register session and onboarding tools on the MCP server."""

    @mcp.tool
    async def sign_in(ctx: Context, email: str, password: str) -> str:
        """Sign in to Reverie and load the dream journal for this account.

        Args:
            email: Account email.
            password: Account password (forwarded to the backend, never stored).
        """
        try:
            identity = await auth.sign_in(email, password)
        except (InvalidCredentialsShape, AuthenticationError) as exc:
            return _error(str(exc))
        except ReverieAPIError as exc:
            logger.warning("Sign-in failed: %s", exc)
            return _error("The journal service is unreachable. Try again later.")

        await journal.initialize()
        return json.dumps({"status": "signed_in", **_identity_payload(identity)})

    @mcp.tool
    async def sign_up(
        ctx: Context, email: str, password: str, username: str = ""
    ) -> str:
        """Create a Reverie account; profile onboarding follows.

        Args:
            email: Account email.
            password: Account password.
            username: Optional display username.
        """
        try:
            identity = await auth.sign_up(email, password, username or None)
        except (InvalidCredentialsShape, AuthenticationError) as exc:
            return _error(str(exc))
        except ReverieAPIError as exc:
            logger.warning("Sign-up failed: %s", exc)
            return _error("The journal service is unreachable. Try again later.")

        await journal.initialize()
        return json.dumps({"status": "registered", **_identity_payload(identity)})

    @mcp.tool
    async def sign_out(ctx: Context) -> str:
        """Sign out. Journal data stays on this device for the next sign-in."""
        session.logout()
        journal.load_local()
        return json.dumps({"status": "signed_out"})

    @mcp.tool
    async def session_status(ctx: Context, verify: bool = False) -> str:
        """Show who is signed in and whether onboarding is complete.

        Args:
            verify: Also check the stored credential with the backend; a
                rejected credential ends the session.
        """
        if verify and session.identity is not None:
            if not await auth.validate_session():
                journal.load_local()
        return json.dumps(_identity_payload(session.identity))

    @mcp.tool
    async def complete_profile(
        ctx: Context,
        name: str,
        birthday: str,
        favorite_element: str,
        dream_goals: list[str],
    ) -> str:
        """Complete (or edit) the celestial profile.

        Args:
            name: Display name.
            birthday: Birth date (ISO 8601, e.g. '1990-07-10'); the zodiac sign is derived from it.
            favorite_element: One of Fire, Earth, Air, Water.
            dream_goals: Up to three goals from the onboarding list.
        """
        if session.identity is None:
            return _error("Sign in before completing a profile.")
        try:
            profile = Profile(
                name=name.strip(),
                birthday=birthday,
                favorite_element=favorite_element,
                dream_goals=dream_goals,
            )
        except ProfileValidationError as exc:
            return _error(str(exc))

        await auth.complete_onboarding(profile)
        return json.dumps({"status": "saved", **_identity_payload(session.identity)})
