"""Daily report queries for the ClockWise tracker.

These functions sit between the UI and the core: they resolve the requested
day into a ``DayWindow``, fetch the matching rows from ``clockwise.data`` and
hand them to ``clockwise.summary``.
"""
from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Any, Dict, List, Optional

from clockwise import data
from clockwise.errors import InvalidDate
from clockwise.summary import build_daily_summary
from clockwise.utils import (
    DayWindow,
    format_timestamp,
    is_valid_date_string,
    overlap_minutes,
    resolve_logical_date,
    window_for_date,
)


def resolve_day(date_str: Optional[str] = None, now: Optional[datetime] = None, tz: Optional[tzinfo] = None) -> str:
    """
    Return the logical date to report on.

    An empty request means today (after the 4 AM boundary); anything else
    must be a valid ``YYYY-MM-DD`` string or ``InvalidDate`` is raised.
    """
    if date_str is None or not str(date_str).strip():
        return resolve_logical_date(now, tz=tz)
    day = str(date_str).strip()
    if not is_valid_date_string(day):
        raise InvalidDate(f"Invalid date format: {date_str!r} (expected YYYY-MM-DD)")
    return day


def _window(day: str, tz: Optional[tzinfo]) -> DayWindow:
    window = window_for_date(day, tz=tz)
    if window is None:
        raise InvalidDate(f"Invalid date format: {day!r}")
    return window


def _entries_in(window: DayWindow) -> List[Dict[str, Any]]:
    return data.read_entries_in_window(format_timestamp(window.start), format_timestamp(window.end))


def daily_totals(
    date_str: Optional[str] = None,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> Dict[str, Any]:
    """Summaries by task, project and task per project for one logical day."""
    day = resolve_day(date_str, now=now, tz=tz)
    window = _window(day, tz)
    summary = build_daily_summary(_entries_in(window), data.list_projects(), window)
    return {"date": day, **summary}


def timesheet_entries(
    date_str: Optional[str] = None,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> List[Dict[str, Any]]:
    """Closed entries of one logical day in start order, with the minutes inside the day."""
    window = _window(resolve_day(date_str, now=now, tz=tz), tz)
    entries = _entries_in(window)
    for entry in entries:
        entry["overlap_minutes"] = overlap_minutes(entry["start_time"], entry["end_time"], window.start, window.end)
    return entries
