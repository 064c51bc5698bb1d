"""Wake-up alarms, kept per identity on this device only."""

from __future__ import annotations

import dataclasses
import logging
import uuid
from typing import Any, Callable

from reverie.domains.journal.models import Alarm
from reverie.domains.journal.repository import AlarmRepository
from reverie.domains.journal.session import SessionStore

logger = logging.getLogger(__name__)

DEFAULT_ALARM_ID = "default-alarm"
_ALARM_FIELDS = ("hour", "minute", "label", "enabled")


def default_alarm() -> Alarm:
    return Alarm(id=DEFAULT_ALARM_ID, hour=7, minute=0, label="Morning Wake-up")


class AlarmBook:
    """The current identity's alarm list.

    An owner with nothing stored starts with the 07:00 "Morning Wake-up"
    alarm. Every change is written straight back to storage.

    Usage::

        alarms = AlarmBook(session, AlarmRepository(storage))
        alarm = alarms.add(6, 30, "Early start")
        alarms.toggle(alarm.id)
        alarms.delete(DEFAULT_ALARM_ID)
    """

    def __init__(self, session: SessionStore, repository: AlarmRepository) -> None:
        self._session = session
        self._repo = repository
        self._cache: dict[str | None, list[Alarm]] = {}

    def list_alarms(self) -> list[Alarm]:
        owner = self._session.email
        if owner not in self._cache:
            alarms = self._repo.load_alarms(owner)
            if alarms is None:
                alarms = [default_alarm()]
                self._repo.save_alarms(owner, alarms)
            self._cache[owner] = alarms
        return list(self._cache[owner])

    def get(self, alarm_id: str) -> Alarm | None:
        return next((alarm for alarm in self.list_alarms() if alarm.id == alarm_id), None)

    def add(self, hour: int, minute: int, label: str = "New Alarm", enabled: bool = True) -> Alarm:
        """Prepend a new alarm.

        Raises:
            AlarmValidationError: If the time is out of range.
        """
        alarm = Alarm(
            id=str(uuid.uuid4()), hour=hour, minute=minute, label=label, enabled=enabled
        )
        self._save([alarm, *self.list_alarms()])
        logger.debug("Added alarm %s at %s", alarm.id, alarm.display_time)
        return alarm

    def update(self, alarm_id: str, updates: dict[str, Any]) -> Alarm | None:
        """Change fields of an alarm; unknown ids return None.

        Raises:
            AlarmValidationError: If the new time is out of range.
            TypeError: If ``updates`` names a field an alarm does not have.
        """
        unknown = set(updates) - set(_ALARM_FIELDS)
        if unknown:
            raise TypeError(f"Unknown alarm field(s): {', '.join(sorted(unknown))}")
        return self._replace(alarm_id, lambda alarm: dataclasses.replace(alarm, **updates))

    def toggle(self, alarm_id: str) -> Alarm | None:
        return self._replace(
            alarm_id, lambda alarm: dataclasses.replace(alarm, enabled=not alarm.enabled)
        )

    def delete(self, alarm_id: str) -> bool:
        alarms = self.list_alarms()
        remaining = [alarm for alarm in alarms if alarm.id != alarm_id]
        if len(remaining) == len(alarms):
            return False
        self._save(remaining)
        return True

    def _replace(self, alarm_id: str, change: Callable[[Alarm], Alarm]) -> Alarm | None:
        alarms = self.list_alarms()
        for index, alarm in enumerate(alarms):
            if alarm.id == alarm_id:
                alarms[index] = change(alarm)
                self._save(alarms)
                return alarms[index]
        return None

    def _save(self, alarms: list[Alarm]) -> None:
        owner = self._session.email
        self._cache[owner] = alarms
        self._repo.save_alarms(owner, alarms)
