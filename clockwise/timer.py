"""Start/stop timer logic for the ClockWise tracker.

The ``TimerManager`` enforces the single-active-timer rule.  There is no
in-memory "current session": the running timer is simply the time entry
of the logical day whose ``end_time`` is still NULL, and every transition
re-reads it inside one database transaction via ``clockwise.data``.
"""
from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, tzinfo
from threading import Lock
from typing import Any, Dict, Optional

from clockwise import data
from clockwise.errors import NoActiveTimer
from clockwise.utils import (
    DAY_BOUNDARY_HOUR,
    duration_minutes,
    format_timestamp,
    is_valid_duration,
    localize,
    resolve_logical_date,
)

logger = logging.getLogger(__name__)


class TimerManager:
    """
    Manages the daily timer (start, end, current, switch).

    A lock serialises transitions inside this process; ``BEGIN IMMEDIATE``
    serialises them against other processes sharing the database.
    """

    def __init__(self, tz: Optional[tzinfo] = None, boundary_hour: int = DAY_BOUNDARY_HOUR):
        self.tz = tz
        self.boundary_hour = boundary_hour
        self.lock = Lock()

    def _today(self, now: datetime) -> str:
        return resolve_logical_date(now, tz=self.tz, boundary_hour=self.boundary_hour)

    def _close(self, conn: sqlite3.Connection, entry: Dict[str, Any], now: datetime) -> Optional[int]:
        """End ``entry`` at ``now``; return its minutes, or ``None`` if it was discarded."""
        if not is_valid_duration(entry["start_time"], now):
            data.delete_entry(entry["id"], conn=conn)
            logger.info("Discarded entry %s for %r (shorter than a minute)", entry["id"], entry["task_name"])
            return None
        minutes = duration_minutes(entry["start_time"], now)
        data.close_entry(entry["id"], format_timestamp(now), minutes, conn=conn)
        logger.info("Closed entry %s for %r after %s min", entry["id"], entry["task_name"], minutes)
        return minutes

    def start(
        self, task_id: Any, now: Optional[datetime] = None, project_id: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Start timing ``task_id``, first ending whatever runs on the same logical day.

        With ``project_id`` the task is also linked to that project, in the
        same transaction.  Raises ``TaskNotFound`` or ``ProjectNotFound``.
        """
        now = localize(now, self.tz)
        today = self._today(now)
        start_time = format_timestamp(now)
        with self.lock, data.transaction() as conn:
            if project_id is not None:
                data.link_task(project_id, task_id, conn=conn)
            task = data.get_task(task_id, conn=conn)
            running = data.find_open_entry(today, conn=conn)
            if running is not None:
                self._close(conn, running, now)
            entry_id = data.insert_entry(task["id"], today, start_time, conn=conn)
        logger.info("Started timer for %r (entry %s, day %s)", task["name"], entry_id, today)
        return {
            "active": True,
            "entry_id": entry_id,
            "task_id": task["id"],
            "task_name": task["name"],
            "start_time": start_time,
        }

    def end(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Stop the running timer of the logical day.

        Entries shorter than a minute are deleted and reported as discarded.
        Raises ``NoActiveTimer`` if nothing is running.
        """
        now = localize(now, self.tz)
        today = self._today(now)
        with self.lock, data.transaction() as conn:
            running = data.find_open_entry(today, conn=conn)
            if running is None:
                raise NoActiveTimer("No active timer")
            minutes = self._close(conn, running, now)
        if minutes is None:
            return {"discarded": True}
        return {
            "discarded": False,
            "entry": {
                "id": running["id"],
                "task_name": running["task_name"],
                "duration_minutes": minutes,
            },
        }

    def current(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Return the running timer of the logical day with its elapsed minutes."""
        now = localize(now, self.tz)
        running = data.find_open_entry(self._today(now))
        if running is None:
            return {"active": False}
        return {
            "active": True,
            "entry_id": running["id"],
            "task_id": running["task_id"],
            "task_name": running["task_name"],
            "start_time": running["start_time"],
            "elapsed_minutes": duration_minutes(running["start_time"], now),
        }

    def switch(self, task_id: Any, project_id: Optional[int] = None, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Quick-switch to another task.

        When ``project_id`` is given the task is linked to that project first,
        so the new session is attributed to it.  Nothing is written if
        either the link or the start fails.
        """
        return self.start(task_id, now=now, project_id=project_id)
