"""Tests for wake-up alarms and the per-identity alarm book."""

from __future__ import annotations

import pytest

from reverie.domains.journal.alarms import DEFAULT_ALARM_ID, AlarmBook
from reverie.domains.journal.models import Alarm, AlarmValidationError
from reverie.domains.journal.repository import AlarmRepository, SessionRepository
from reverie.domains.journal.session import SessionStore


@pytest.fixture
def session(kv_store) -> SessionStore:
    return SessionStore(SessionRepository(kv_store))


@pytest.fixture
def book(session, kv_store) -> AlarmBook:
    return AlarmBook(session, AlarmRepository(kv_store))


class TestAlarm:
    @pytest.mark.parametrize(
        ("hour", "minute", "shown"),
        [(0, 5, "12:05 AM"), (7, 0, "7:00 AM"), (12, 30, "12:30 PM"), (23, 59, "11:59 PM")],
    )
    def test_display_time(self, hour, minute, shown):
        assert Alarm(id="a", hour=hour, minute=minute, label="x").display_time == shown

    @pytest.mark.parametrize(("hour", "minute"), [(24, 0), (-1, 0), (7, 60)])
    def test_out_of_range(self, hour, minute):
        with pytest.raises(AlarmValidationError):
            Alarm(id="a", hour=hour, minute=minute, label="x")


class TestAlarmBook:
    def test_starts_with_morning_alarm(self, book):
        alarms = book.list_alarms()
        assert [(a.id, a.hour, a.minute, a.label) for a in alarms] == [
            (DEFAULT_ALARM_ID, 7, 0, "Morning Wake-up")
        ]
        assert alarms[0].enabled

    def test_add_prepends_and_persists(self, book, session, kv_store):
        alarm = book.add(6, 30, "Early start")
        assert [a.id for a in book.list_alarms()] == [alarm.id, DEFAULT_ALARM_ID]

        reopened = AlarmBook(session, AlarmRepository(kv_store))
        assert reopened.get(alarm.id) == alarm

    def test_add_rejects_bad_time(self, book):
        with pytest.raises(AlarmValidationError):
            book.add(7, 75)
        assert len(book.list_alarms()) == 1

    def test_toggle_and_update(self, book):
        assert book.toggle(DEFAULT_ALARM_ID).enabled is False
        updated = book.update(DEFAULT_ALARM_ID, {"hour": 8, "label": "Later"})
        assert (updated.hour, updated.label, updated.enabled) == (8, "Later", False)

    def test_update_rejects_unknown_field(self, book):
        with pytest.raises(TypeError):
            book.update(DEFAULT_ALARM_ID, {"volume": 3})

    def test_unknown_ids(self, book):
        assert book.toggle("nope") is None
        assert book.update("nope", {"hour": 8}) is None
        assert book.delete("nope") is False

    def test_delete_default_stays_deleted(self, book, session, kv_store):
        assert book.delete(DEFAULT_ALARM_ID) is True
        assert book.list_alarms() == []
        assert AlarmBook(session, AlarmRepository(kv_store)).list_alarms() == []

    def test_alarms_are_per_identity(self, book, session):
        book.add(5, 0, "Guest alarm")
        session.login("a@x.com", "T1")
        assert [a.id for a in book.list_alarms()] == [DEFAULT_ALARM_ID]
        session.logout()
        assert [a.label for a in book.list_alarms()] == ["Guest alarm", "Morning Wake-up"]

    def test_works_without_storage(self, session):
        book = AlarmBook(session, AlarmRepository(None))
        alarm = book.add(6, 0)
        assert book.get(alarm.id) == alarm
