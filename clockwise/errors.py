"""Error kinds raised by the ClockWise core and its storage layer.

All of these are local validation failures.  The UI catches
``ClockwiseError`` and shows the message to the user; anything else
(for example a locked SQLite file) propagates unchanged.
"""
from __future__ import annotations


class ClockwiseError(Exception):
    """Base class for every error the application reports to the user."""


class InvalidDate(ClockwiseError, ValueError):
    """A requested report date is not a valid ``YYYY-MM-DD`` string."""


class TaskNotFound(ClockwiseError, LookupError):
    pass


class ProjectNotFound(ClockwiseError, LookupError):
    pass


class NoActiveTimer(ClockwiseError):
    """Ending the timer was requested while nothing is running today."""


class InvalidName(ClockwiseError, ValueError):
    pass


class DuplicateName(ClockwiseError, ValueError):
    pass


class BuiltinProjectError(ClockwiseError):
    """The builtin "No Project" bucket cannot be renamed or deleted."""
