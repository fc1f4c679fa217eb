"""
Time helpers for the ClockWise tracker.

This module centralises the rules for what counts as "today" and how long
an interval is.  A logical day starts at ``DAY_BOUNDARY_HOUR`` (4 AM) local
time rather than at midnight, so a session that runs past midnight stays on
the day it was started.  Interval lengths are always floored to whole
minutes, and report totals only count the minutes of an entry that fall
inside the requested day window.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any, List, Optional


DAY_BOUNDARY_HOUR = 4

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_MINUTE = timedelta(minutes=1)


@dataclass(frozen=True)
class DayWindow:
    """Half-open ``[start, end)`` range covering one logical day."""

    start: datetime
    end: datetime


# --- Timestamps ---
def localize(moment: Optional[datetime] = None, tz: Optional[tzinfo] = None) -> datetime:
    """
    Return ``moment`` as an aware datetime in ``tz``.

    ``None`` means now.  Naive datetimes are wall-clock time in ``tz`` (or
    in the machine's local timezone when ``tz`` is not given).
    """
    if moment is None:
        return datetime.now(tz) if tz is not None else datetime.now().astimezone()
    if moment.tzinfo is None:
        return moment.replace(tzinfo=tz) if tz is not None else moment.astimezone()
    return moment.astimezone(tz)


def parse_timestamp(value: Any) -> datetime:
    """
    Convert a stored timestamp or ``datetime`` into an aware datetime.

    Accepts ISO-8601 strings with a ``Z`` suffix, an explicit offset, or no
    zone at all (read as local time).  Raises ``ValueError``/``TypeError``
    for anything else.
    """
    if isinstance(value, datetime):
        return localize(value)
    if not isinstance(value, str):
        raise TypeError(f"Unsupported timestamp: {value!r}")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return localize(datetime.fromisoformat(text))


def format_timestamp(moment: datetime) -> str:
    """Format a datetime as a UTC ``YYYY-MM-DDTHH:MM:SS.mmmZ`` string for storage."""
    utc = localize(moment).astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


# --- Day boundary ---
def resolve_logical_date(
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
    boundary_hour: int = DAY_BOUNDARY_HOUR,
) -> str:
    """
    Return the logical calendar date (``YYYY-MM-DD``) for ``now``.

    Before ``boundary_hour`` local time the previous day is still running.
    """
    local = localize(now, tz)
    if local.hour < boundary_hour:
        local -= timedelta(days=1)
    return local.date().isoformat()


def is_valid_date_string(value: Any) -> bool:
    """True if ``value`` is a ``YYYY-MM-DD`` string naming a real calendar date."""
    if not isinstance(value, str) or not _DATE_RE.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def window_for_date(
    date_str: Any,
    boundary_hour: int = DAY_BOUNDARY_HOUR,
    tz: Optional[tzinfo] = None,
) -> Optional[DayWindow]:
    """
    Return the ``DayWindow`` for a logical date, or ``None`` if the date is invalid.

    The window starts at ``boundary_hour:00`` local time on that date and
    ends exactly 24 hours later.
    """
    if not is_valid_date_string(date_str):
        return None
    day = date.fromisoformat(date_str)
    start = localize(datetime(day.year, day.month, day.day, boundary_hour), tz)
    # Absolute 24 hours, also across DST changes in zoneinfo zones.
    end = (start.astimezone(timezone.utc) + timedelta(hours=24)).astimezone(start.tzinfo)
    return DayWindow(start=start, end=end)


# --- Interval math ---
def duration_minutes(start: Any, end: Any) -> int:
    """Whole minutes from ``start`` to ``end``, floored (negative if ``end < start``)."""
    return (parse_timestamp(end) - parse_timestamp(start)) // _MINUTE


def is_valid_duration(start: Any, end: Any) -> bool:
    """An entry is worth keeping only if it lasted at least one full minute."""
    return duration_minutes(start, end) >= 1


def overlap_minutes(entry_start: Any, entry_end: Any, window_start: Any, window_end: Any) -> int:
    """
    Minutes of ``[entry_start, entry_end)`` that fall inside the window.

    Missing or unparseable inputs and empty overlaps yield 0.
    """
    try:
        bounds = [parse_timestamp(v) for v in (entry_start, entry_end, window_start, window_end)]
    except (TypeError, ValueError):
        return 0
    start = max(bounds[0], bounds[2])
    end = min(bounds[1], bounds[3])
    if end <= start:
        return 0
    return max((end - start) // _MINUTE, 0)


def split_ids(value: Any) -> List[int]:
    """
    Return linked project ids as a list.

    Accepts the comma-joined form produced by ``GROUP_CONCAT`` (``"2,3"``),
    a list of ids, or ``None``.
    """
    if not value:
        return []
    if isinstance(value, str):
        return [int(part) for part in value.split(",") if part.strip()]
    return list(value)


def format_duration(minutes: Optional[int]) -> str:
    """Format minutes as ``HH:MM`` for display."""
    if not minutes:
        return "00:00"
    hours, mins = divmod(int(minutes), 60)
    return f"{hours:02d}:{mins:02d}"
