"""Daily aggregation for the ClockWise tracker.

``build_daily_summary`` turns closed time entries into the three views the
totals screen and the PDF timesheet show: minutes per task, per project and
per task within each project.  Only the part of an entry that overlaps the
requested ``DayWindow`` is counted.  A task linked to several projects
contributes its full overlap to each of them; tasks without links fall into
the builtin "No Project" bucket.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from clockwise.utils import DayWindow, overlap_minutes, split_ids


Summary = Dict[str, List[Dict[str, Any]]]


def empty_summary() -> Summary:
    return {"by_task": [], "by_project": [], "by_task_per_project": []}


def name_key(name: Any) -> tuple:
    """Case-insensitive collation with the raw name as tie-breaker."""
    text = "" if name is None else str(name)
    return (text.casefold(), text)


def _effective_project_ids(entry: Dict[str, Any], builtin: Optional[Dict[str, Any]]) -> List[Any]:
    linked = list(dict.fromkeys(split_ids(entry.get("project_ids"))))
    if linked:
        return linked
    return [builtin["id"]] if builtin is not None else []


def build_daily_summary(
    entries: Sequence[Dict[str, Any]],
    projects: Sequence[Dict[str, Any]],
    window: Optional[DayWindow],
) -> Summary:
    """
    Aggregate overlap minutes of ``entries`` inside ``window``.

    :param entries: Closed entries with ``task_id``, ``task_name``,
        ``start_time``, ``end_time`` and ``project_ids`` (a list or a
        comma-joined string).
    :param projects: The full project catalog (``id``, ``name``, ``is_builtin``).
    :param window: The day to report on.
    :return: ``by_task`` (total descending), ``by_project`` (builtin first,
        then by name) and ``by_task_per_project`` (builtin first, then project
        name, then total descending).  Malformed input gives empty lists.
    """
    if not isinstance(entries, (list, tuple)) or not isinstance(projects, (list, tuple)) or window is None:
        return empty_summary()

    catalog = {p["id"]: p for p in projects}
    builtin = next((p for p in projects if p.get("is_builtin")), None)

    by_task: Dict[Any, Dict[str, Any]] = {}
    by_project: Dict[Any, Dict[str, Any]] = {}
    by_pair: Dict[tuple, Dict[str, Any]] = {}

    for entry in entries:
        minutes = overlap_minutes(entry.get("start_time"), entry.get("end_time"), window.start, window.end)
        if minutes <= 0:
            continue

        task_id = entry.get("task_id")
        task_row = by_task.setdefault(
            task_id, {"id": task_id, "name": entry.get("task_name"), "total_minutes": 0}
        )
        task_row["total_minutes"] += minutes

        # An entry with no resolvable project still counts in by_task above.
        for project_id in _effective_project_ids(entry, builtin):
            project = catalog.get(project_id)
            if project is None:
                continue
            is_builtin = bool(project.get("is_builtin"))
            project_row = by_project.setdefault(
                project_id,
                {"id": project_id, "name": project["name"], "total_minutes": 0, "is_builtin": is_builtin},
            )
            project_row["total_minutes"] += minutes

            pair_row = by_pair.setdefault(
                (project_id, task_id),
                {
                    "project_id": project_id,
                    "project_name": project["name"],
                    "task_id": task_id,
                    "task_name": entry.get("task_name"),
                    "total_minutes": 0,
                    "project_is_builtin": is_builtin,
                },
            )
            pair_row["total_minutes"] += minutes

    return {
        "by_task": sorted(by_task.values(), key=lambda r: -r["total_minutes"]),
        "by_project": sorted(
            by_project.values(), key=lambda r: (not r["is_builtin"], name_key(r["name"]))
        ),
        "by_task_per_project": sorted(
            by_pair.values(),
            key=lambda r: (not r["project_is_builtin"], name_key(r["project_name"]), -r["total_minutes"]),
        ),
    }
