"""MCP tools for wake-up alarms."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from reverie.domains.journal.models import Alarm, AlarmValidationError

if TYPE_CHECKING:
    from reverie.domains.journal.alarms import AlarmBook


def _alarm_payload(alarm: Alarm) -> dict:
    return {**alarm.to_dict(), "time": alarm.display_time}


def _error(message: str) -> str:
    return json.dumps({"status": "error", "message": message})


def register_alarm_tools(mcp: FastMCP, alarms: AlarmBook) -> None:
    """Register alarm tools on the MCP server."""

    @mcp.tool
    async def list_alarms(ctx: Context) -> str:
        """List wake-up alarms for the signed-in user (or the guest)."""
        return json.dumps({"alarms": [_alarm_payload(a) for a in alarms.list_alarms()]})

    @mcp.tool
    async def add_alarm(
        ctx: Context,
        hour: int = 7,
        minute: int = 0,
        label: str = "New Alarm",
        enabled: bool = True,
    ) -> str:
        """Add a wake-up alarm.

        Args:
            hour: Hour on the 24-hour clock (0-23).
            minute: Minute (0-59).
            label: Name shown with the alarm.
            enabled: Whether the alarm is active.
        """
        try:
            alarm = alarms.add(hour, minute, label.strip() or "New Alarm", enabled)
        except AlarmValidationError as exc:
            return _error(str(exc))
        return json.dumps({"status": "added", "alarm": _alarm_payload(alarm)})

    @mcp.tool
    async def update_alarm(
        ctx: Context,
        alarm_id: str,
        hour: int | None = None,
        minute: int | None = None,
        label: str | None = None,
    ) -> str:
        """Change the time or label of an alarm. Omitted fields stay as they are.

        Args:
            alarm_id: Id of the alarm to change.
        """
        values = {"hour": hour, "minute": minute, "label": label}
        updates = {key: value for key, value in values.items() if value is not None}
        if not updates:
            return _error("Nothing to update.")
        try:
            alarm = alarms.update(alarm_id, updates)
        except AlarmValidationError as exc:
            return _error(str(exc))
        if alarm is None:
            return json.dumps({"status": "not_found", "alarm_id": alarm_id})
        return json.dumps({"status": "updated", "alarm": _alarm_payload(alarm)})

    @mcp.tool
    async def toggle_alarm(ctx: Context, alarm_id: str) -> str:
        """Switch an alarm on or off.

        Args:
            alarm_id: Id of the alarm to switch.
        """
        alarm = alarms.toggle(alarm_id)
        if alarm is None:
            return json.dumps({"status": "not_found", "alarm_id": alarm_id})
        return json.dumps({"status": "updated", "alarm": _alarm_payload(alarm)})

    @mcp.tool
    async def delete_alarm(ctx: Context, alarm_id: str) -> str:
        """Delete an alarm.

        Args:
            alarm_id: Id of the alarm to delete.
        """
        removed = alarms.delete(alarm_id)
        return json.dumps({
            "status": "deleted" if removed else "not_found",
            "alarm_id": alarm_id,
        })
