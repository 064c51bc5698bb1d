"""Tests for journal domain models: profiles, goals, dreams, pending ledgers."""

from __future__ import annotations

import pytest

from reverie.domains.journal.models import (
    DREAM_GOAL_OPTIONS,
    Dream,
    PendingLedger,
    Profile,
    ProfileValidationError,
    StoredSession,
    normalize_mood,
    toggle_goal,
)


def _profile(**overrides) -> Profile:
    fields = {
        "name": "Ada",
        "birthday": "1990-07-10",
        "favorite_element": "Water",
        "dream_goals": ["Better dream recall"],
    }
    fields.update(overrides)
    return Profile(**fields)


class TestProfile:
    def test_zodiac_derived_from_birthday(self):
        assert _profile().zodiac_sign.sign == "Cancer"

    def test_element_is_canonicalized(self):
        assert _profile(favorite_element="fire").favorite_element == "Fire"

    def test_unknown_element_rejected(self):
        with pytest.raises(ProfileValidationError, match="Unknown element"):
            _profile(favorite_element="Aether")

    def test_more_than_three_goals_rejected(self):
        with pytest.raises(ProfileValidationError, match="At most 3"):
            _profile(dream_goals=list(DREAM_GOAL_OPTIONS[:4]))

    def test_unknown_goal_rejected(self):
        with pytest.raises(ProfileValidationError, match="Unknown dream goal"):
            _profile(dream_goals=["Become a bird"])

    def test_duplicate_goals_collapse(self):
        profile = _profile(dream_goals=["Better dream recall", "Better dream recall"])
        assert profile.dream_goals == ["Better dream recall"]

    def test_duplicates_do_not_count_against_the_cap(self):
        goals = list(DREAM_GOAL_OPTIONS[:3])
        assert _profile(dream_goals=goals + goals[:1]).dream_goals == goals

    def test_bad_birthday_rejected(self):
        with pytest.raises(ProfileValidationError, match="Invalid birth date"):
            _profile(birthday="yesterday")

    def test_dict_uses_storage_keys(self):
        data = _profile().to_dict()
        assert data["favoriteElement"] == "Water"
        assert data["dreamGoals"] == ["Better dream recall"]
        assert data["zodiacSign"]["sign"] == "Cancer"

    def test_stored_zodiac_is_ignored_on_read(self):
        data = _profile().to_dict()
        data["zodiacSign"] = {"sign": "Leo"}
        assert Profile.from_dict(data).zodiac_sign.sign == "Cancer"


class TestToggleGoal:
    def test_select_and_deselect(self):
        goals = toggle_goal([], "Better dream recall")
        assert goals == ["Better dream recall"]
        assert toggle_goal(goals, "Better dream recall") == []

    def test_fourth_goal_is_refused(self):
        three = list(DREAM_GOAL_OPTIONS[:3])
        assert toggle_goal(three, DREAM_GOAL_OPTIONS[3]) == three

    def test_input_not_mutated(self):
        goals = ["Better dream recall"]
        toggle_goal(goals, "Emotional healing")
        assert goals == ["Better dream recall"]

    def test_unknown_goal(self):
        with pytest.raises(ProfileValidationError):
            toggle_goal([], "Become a bird")


class TestStoredSession:
    def test_round_trip_keys(self):
        data = StoredSession(email="a@x.com", has_profile=True, token="T1", user_id="7").to_dict()
        assert data == {"email": "a@x.com", "hasProfile": True, "token": "T1", "id": "7"}
        assert StoredSession.from_dict(data).user_id == "7"

    def test_missing_email_rejected(self):
        with pytest.raises(ValueError):
            StoredSession.from_dict({"token": "T1"})


class TestDream:
    def test_create_defaults(self):
        dream = Dream.create("  Flying ", "Over the sea ", tags=["sea", "sea", "sky"])
        assert dream.id
        assert dream.title == "Flying"
        assert dream.analysis == "Over the sea"
        assert dream.mood == "neutral"
        assert dream.tags == ["sea", "sky"]

    def test_with_updates_keeps_id(self):
        dream = Dream.create("Flying", "Over the sea", id="d1")
        updated = dream.with_updates({"id": "other", "lucidity": True})
        assert updated.id == "d1"
        assert updated.lucidity is True
        assert dream.lucidity is False

    def test_with_updates_unknown_field(self):
        with pytest.raises(TypeError):
            Dream.create("Flying", "Over the sea").with_updates({"colour": "blue"})

    def test_unknown_mood_normalizes(self):
        assert normalize_mood("Ecstatic") == "neutral"
        assert normalize_mood("HAPPY") == "happy"
        assert normalize_mood(None) == "neutral"


class TestPendingLedger:
    def test_create_then_confirm_clears(self):
        ledger = PendingLedger()
        dream = Dream.create("Flying", "Over the sea", id="local")
        ledger.record_create(dream)
        ledger.confirm_create(dream, "42")
        assert ledger.is_empty()

    def test_edit_during_create_is_rekeyed(self):
        ledger = PendingLedger()
        sent = Dream.create("Flying", "Over the sea", id="local")
        ledger.record_create(sent)
        ledger.record_edit(sent.with_updates({"title": "Soaring"}))
        ledger.confirm_create(sent, "42")
        assert set(ledger.edits) == {"42"}
        assert ledger.edits["42"].title == "Soaring"
        assert ledger.edits["42"].id == "42"
        assert not ledger.creates

    def test_delete_of_unconfirmed_create_leaves_nothing(self):
        ledger = PendingLedger()
        ledger.record_create(Dream.create("Flying", "Over the sea", id="local"))
        ledger.record_delete("local")
        assert ledger.is_empty()

    def test_delete_drops_pending_edit(self):
        ledger = PendingLedger()
        ledger.record_edit(Dream.create("Flying", "Over the sea", id="5"))
        ledger.record_delete("5")
        assert ledger.edits == {}
        assert ledger.deletes == {"5"}
