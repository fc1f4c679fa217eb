"""PDF timesheet export for the ClockWise tracker.

A timesheet covers one logical day and contains up to four tables: time by
task per project, total time by project, total time by task and the
chronological list of entries.  The tables are assembled as pandas
DataFrames and drawn onto A4 pages with matplotlib's PDF backend.
"""
from __future__ import annotations

import logging
import os
from datetime import date, datetime, tzinfo
from typing import Any, Dict, List, Optional, Tuple

import matplotlib
# Use a non-interactive backend; pages are only ever written to disk
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib.backends.backend_pdf import PdfPages
import pandas as pd

from clockwise.reports import daily_totals, resolve_day, timesheet_entries
from clockwise.utils import format_duration, localize, parse_timestamp

logger = logging.getLogger(__name__)

Section = Tuple[str, pd.DataFrame, Dict[str, str]]

PAGE_SIZE = (8.27, 11.69)  # A4 portrait, inches
MARGIN_X = 0.08
PAGE_TOP = 0.89
PAGE_BOTTOM = 0.06
ROW_HEIGHT = 0.024
TITLE_GAP = 0.03
SECTION_GAP = 0.035

# Header fill, header text and alternate row fill per section.
STYLES = {
    "task_per_project": {"header": "#0d6efd", "text": "white", "stripe": "#f0f2f5"},
    "project": {"header": "#198754", "text": "white", "stripe": "#f0f5f2"},
    "task": {"header": "#0dcaf0", "text": "black", "stripe": "#f0f8ff"},
    "entries": {"header": "#dc3545", "text": "white", "stripe": "#fff8f7"},
}


def _clock(value: Any, tz: Optional[tzinfo]) -> str:
    if not value:
        return "In Progress"
    return localize(parse_timestamp(value), tz).strftime("%I:%M:%S %p")


def _entry_duration(row: pd.Series) -> str:
    overlap = row.get("overlap_minutes")
    if overlap is not None and not pd.isna(overlap):
        return format_duration(int(overlap))
    minutes = row.get("duration_minutes")
    if minutes is not None and not pd.isna(minutes) and minutes:
        return format_duration(int(minutes))
    return "N/A"


def build_timesheet_tables(
    totals: Dict[str, Any],
    entries: List[Dict[str, Any]],
    tz: Optional[tzinfo] = None,
) -> List[Section]:
    """
    Turn daily totals and timesheet entries into titled DataFrames.

    Sections without rows are left out, so an empty day yields an empty list.
    """
    sections: List[Section] = []

    per_project = totals.get("by_task_per_project") or []
    if per_project:
        df = pd.DataFrame(per_project)
        frame = pd.DataFrame(
            {
                "Project": df["project_name"],
                "Task": df["task_name"],
                "Time": df["total_minutes"].map(format_duration),
            }
        )
        sections.append(("Time by Task per Project", frame, STYLES["task_per_project"]))

    by_project = totals.get("by_project") or []
    if by_project:
        df = pd.DataFrame(by_project)
        frame = pd.DataFrame({"Project": df["name"], "Total Time": df["total_minutes"].map(format_duration)})
        sections.append(("Total Time by Project", frame, STYLES["project"]))

    by_task = totals.get("by_task") or []
    if by_task:
        df = pd.DataFrame(by_task)
        frame = pd.DataFrame({"Task": df["name"], "Total Time": df["total_minutes"].map(format_duration)})
        sections.append(("Total Time by Task", frame, STYLES["task"]))

    if entries:
        df = pd.DataFrame(entries)
        if "end_time" not in df.columns:
            df["end_time"] = None
        frame = pd.DataFrame(
            {
                "Task": df["task_name"],
                "Start Time": df["start_time"].map(lambda v: _clock(v, tz)),
                "End Time": df["end_time"].map(lambda v: _clock(v, tz)),
                "Duration": df.apply(_entry_duration, axis=1),
            }
        )
        sections.append(("Time Entries (Chronological)", frame, STYLES["entries"]))

    return sections


def long_date(day: str) -> str:
    """``2026-01-15`` -> ``Thursday, January 15, 2026``."""
    d = date.fromisoformat(day)
    return f"{d.strftime('%A, %B')} {d.day}, {d.year}"


def _new_page(day: str) -> Tuple[plt.Figure, float]:
    fig = plt.Figure(figsize=PAGE_SIZE)
    fig.text(MARGIN_X, 0.95, "Daily Timesheet", fontsize=18, va="top")
    fig.text(MARGIN_X, 0.915, f"Date: {long_date(day)}", fontsize=11, color="#646464", va="top")
    return fig, PAGE_TOP


def _draw_table(fig: plt.Figure, y: float, title: str, frame: pd.DataFrame, style: Dict[str, str]) -> float:
    """Draw ``frame`` under ``title`` starting at height ``y``; return the new bottom."""
    fig.text(MARGIN_X, y, title, fontsize=12, fontweight="bold", va="top")
    top = y - TITLE_GAP
    height = ROW_HEIGHT * (len(frame) + 1)
    ax = fig.add_axes([MARGIN_X, top - height, 1 - 2 * MARGIN_X, height])
    ax.axis("off")
    table = ax.table(
        cellText=frame.astype(str).values.tolist(),
        colLabels=[str(c) for c in frame.columns],
        cellLoc="left",
        bbox=[0, 0, 1, 1],
    )
    table.auto_set_font_size(False)
    table.set_fontsize(9)
    for (row, _col), cell in table.get_celld().items():
        cell.set_edgecolor("#c8c8c8")
        if row == 0:
            cell.set_facecolor(style["header"])
            cell.get_text().set_color(style["text"])
            cell.get_text().set_fontweight("bold")
        elif row % 2 == 0:
            cell.set_facecolor(style["stripe"])
    return top - height


def render_timesheet_pdf(path: str, day: str, sections: List[Section]) -> str:
    """
    Write the timesheet for ``day`` to ``path``.

    Tables flow down the page and continue on the next one when they do not
    fit; a day without entries gets a single page saying so.
    """
    with PdfPages(path) as pdf:
        fig, y = _new_page(day)
        if not sections:
            fig.text(MARGIN_X, y, "No time recorded for this day.", fontsize=11, va="top")
        for title, frame, style in sections:
            offset = 0
            while offset < len(frame):
                capacity = int((y - PAGE_BOTTOM - TITLE_GAP) / ROW_HEIGHT) - 1
                if capacity < 1:
                    pdf.savefig(fig)
                    fig, y = _new_page(day)
                    continue
                chunk = frame.iloc[offset:offset + capacity]
                label = title if offset == 0 else f"{title} (continued)"
                y = _draw_table(fig, y, label, chunk, style)
                offset += len(chunk)
            y -= SECTION_GAP
        pdf.savefig(fig)
    return path


def export_timesheet(
    directory: str,
    date_str: Optional[str] = None,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> str:
    """Write ``timesheet_<date>.pdf`` for the requested (or current) day into ``directory``."""
    day = resolve_day(date_str, now=now, tz=tz)
    totals = daily_totals(day, tz=tz)
    entries = timesheet_entries(day, tz=tz)
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, f"timesheet_{day}.pdf")
    render_timesheet_pdf(path, day, build_timesheet_tables(totals, entries, tz=tz))
    logger.info("Exported timesheet for %s to %s", day, path)
    return path
