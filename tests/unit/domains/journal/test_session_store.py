"""Tests for SessionStore — identity lifecycle, persistence and profile cache."""

from __future__ import annotations

import json

import pytest

from reverie.core.api.models import BackendProfileSnapshot
from reverie.domains.journal.models import DREAM_GOAL_OPTIONS, Profile, StoredSession
from reverie.domains.journal.repository import AUTH_STORAGE_KEY, SessionRepository
from reverie.domains.journal.session import (
    InvalidCredentialsShape,
    SessionStore,
    profile_from_snapshot,
)


def _profile(name: str = "Ada") -> Profile:
    return Profile(
        name=name,
        birthday="1990-07-10",
        favorite_element="Water",
        dream_goals=["Better dream recall"],
    )


@pytest.fixture
def repo(kv_store) -> SessionRepository:
    return SessionRepository(kv_store)


@pytest.fixture
def session(repo) -> SessionStore:
    store = SessionStore(repo)
    store.initialize()
    return store


class TestLogin:
    def test_login_sets_identity_and_persists(self, session, repo):
        identity = session.login("a@x.com", "T1")
        assert identity.email == "a@x.com"
        assert session.token == "T1"
        assert not identity.has_profile
        assert repo.read_session() == StoredSession(email="a@x.com", has_profile=False, token="T1")

    @pytest.mark.parametrize("email,token", [("", "T1"), ("a@x.com", ""), ("   ", "T1")])
    def test_missing_fields_rejected(self, session, repo, email, token):
        with pytest.raises(InvalidCredentialsShape, match="Email and password are required"):
            session.login(email, token)
        assert session.identity is None
        assert repo.read_session() is None

    def test_cached_profile_restored_for_same_email(self, session):
        session.login("a@x.com", "T1")
        session.complete_profile(_profile())
        session.logout()

        identity = session.login("a@x.com", "T2")
        assert identity.has_profile
        assert identity.profile.name == "Ada"

    def test_other_email_does_not_inherit_profile(self, session):
        session.login("a@x.com", "T1")
        session.complete_profile(_profile())
        session.logout()
        assert not session.login("b@x.com", "T2").has_profile

    def test_require_profile_setup_ignores_cache(self, session):
        session.login("a@x.com", "T1")
        session.complete_profile(_profile())
        identity = session.login("a@x.com", "T2", require_profile_setup=True)
        assert identity.profile is None

    def test_backend_snapshot_wins_and_is_cached(self, session, repo):
        session.login("a@x.com", "T1")
        session.complete_profile(_profile("Local"))
        snapshot = BackendProfileSnapshot(
            has_profile=True,
            name="Remote",
            birthdate="1991-01-01",
            favorite_element="earth",
            dream_goals=["Emotional healing"],
        )
        identity = session.login("a@x.com", "T2", profile_snapshot=snapshot)
        assert identity.profile.name == "Remote"
        assert identity.profile.zodiac_sign.sign == "Capricorn"
        assert repo.get_profile("a@x.com").favorite_element == "Earth"

    def test_incomplete_backend_snapshot_means_onboarding(self, session):
        snapshot = BackendProfileSnapshot(has_profile=False)
        assert not session.login("a@x.com", "T1", profile_snapshot=snapshot).has_profile


class TestLogout:
    def test_logout_leaves_no_session(self, session, repo):
        session.login("a@x.com", "T1")
        session.logout()
        assert session.identity is None
        assert session.token is None
        assert repo.read_session() is None

        fresh = SessionStore(repo)
        assert fresh.initialize() is None

    def test_logout_keeps_profile_cache(self, session, repo):
        session.login("a@x.com", "T1")
        session.complete_profile(_profile())
        session.logout()
        assert repo.get_profile("a@x.com") is not None

    def test_logout_when_signed_out(self, session):
        session.logout()
        assert session.identity is None


class TestInitialize:
    def test_restores_persisted_identity(self, session, repo):
        session.login("a@x.com", "T1", user_id="7")
        session.complete_profile(_profile())

        restored = SessionStore(repo).initialize()
        assert restored.email == "a@x.com"
        assert restored.token == "T1"
        assert restored.user_id == "7"
        assert restored.profile.name == "Ada"

    def test_onboarded_flag_without_profile_requires_onboarding(self, repo):
        repo.write_session(StoredSession(email="a@x.com", has_profile=True, token="T1"))
        restored = SessionStore(repo).initialize()
        assert restored.has_profile is False

    def test_malformed_session_is_cleared(self, kv_store, repo):
        kv_store.set_item(AUTH_STORAGE_KEY, "{not json")
        assert SessionStore(repo).initialize() is None
        assert kv_store.get_item(AUTH_STORAGE_KEY) is None

    def test_persisted_flag_follows_profile(self, session, kv_store):
        session.login("a@x.com", "T1")
        assert json.loads(kv_store.get_item(AUTH_STORAGE_KEY))["hasProfile"] is False
        session.complete_profile(_profile())
        assert json.loads(kv_store.get_item(AUTH_STORAGE_KEY))["hasProfile"] is True


class TestWithoutStorage:
    def test_memory_only_session(self):
        store = SessionStore(SessionRepository(None))
        assert store.initialize() is None
        store.login("a@x.com", "T1")
        store.complete_profile(_profile())
        assert store.identity.has_profile

        assert SessionStore(SessionRepository(None)).initialize() is None


class TestCompleteProfile:
    def test_signed_out_is_noop(self, session, repo):
        session.complete_profile(_profile())
        assert session.identity is None
        assert repo.read_profiles() == {}

    def test_set_user_id_persists(self, session, repo):
        session.login("a@x.com", "T1")
        session.set_user_id("7")
        assert repo.read_session().user_id == "7"


class TestProfileFromSnapshot:
    def test_goals_truncated(self):
        snapshot = BackendProfileSnapshot(
            has_profile=True,
            birthdate="1990-07-10",
            favorite_element="fire",
            dream_goals=list(DREAM_GOAL_OPTIONS[:4]),
        )
        assert profile_from_snapshot(snapshot).dream_goals == list(DREAM_GOAL_OPTIONS[:3])

    def test_unknown_goals_dropped(self):
        snapshot = BackendProfileSnapshot(
            has_profile=True,
            birthdate="1990-07-10",
            favorite_element="fire",
            dream_goals=["fly more", "Emotional healing", "Emotional healing"],
        )
        assert profile_from_snapshot(snapshot).dream_goals == ["Emotional healing"]

    def test_invalid_element_gives_none(self):
        snapshot = BackendProfileSnapshot(
            has_profile=True, birthdate="1990-07-10", favorite_element="plasma"
        )
        assert profile_from_snapshot(snapshot) is None

    def test_fallback_name(self):
        snapshot = BackendProfileSnapshot(
            has_profile=True, birthdate="1990-07-10", favorite_element="air"
        )
        assert profile_from_snapshot(snapshot, fallback_name="ada").name == "ada"
