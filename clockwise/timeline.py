"""Day timeline viewer for the ClockWise tracker.

The ``TimelineView`` window lists the recorded entries of one logical day in
the order they were started, with the minutes each contributes to that day.
This is a read-only view; totals are shown by ``clockwise.analytics``.
"""
from __future__ import annotations

from typing import Any, Dict

import customtkinter as ctk

from clockwise.errors import ClockwiseError
from clockwise.reports import resolve_day, timesheet_entries
from clockwise.utils import format_duration, localize, parse_timestamp


def time_only(ts: Any) -> str:
    """Return the local ``HH:MM:SS`` of a stored timestamp."""
    if not ts:
        return "In Progress"
    return localize(parse_timestamp(ts)).strftime("%H:%M:%S")


class TimelineView(ctk.CTkToplevel):
    """A toplevel window for viewing the entries of a single day."""

    COLUMNS = [("Task", 260), ("Start", 100), ("End", 100), ("Duration", 100), ("In Day", 100)]

    def __init__(self, parent: ctk.CTk) -> None:
        super().__init__(parent)
        self.title("Timeline View")
        self.geometry("800x600")
        self.resizable(True, True)

        self._build_filters()
        self._build_list()
        self.apply_filters()

    def _build_filters(self) -> None:
        frame = ctk.CTkFrame(self)
        frame.pack(fill="x", padx=10, pady=5)
        ctk.CTkLabel(frame, text="Date (YYYY-MM-DD):").pack(side="left", padx=2)
        self.date_entry = ctk.CTkEntry(frame, width=120)
        self.date_entry.insert(0, resolve_day())
        self.date_entry.pack(side="left", padx=2)
        ctk.CTkButton(frame, text="Show", command=self.apply_filters).pack(side="left", padx=5)
        self.status_label = ctk.CTkLabel(frame, text="")
        self.status_label.pack(side="left", padx=10)

    def _build_list(self) -> None:
        self.list_frame = ctk.CTkScrollableFrame(self)
        self.list_frame.pack(fill="both", expand=True, padx=10, pady=5)
        header = ctk.CTkFrame(self.list_frame)
        header.pack(fill="x", pady=2)
        for text, width in self.COLUMNS:
            ctk.CTkLabel(header, text=text, width=width, anchor="w").pack(side="left")

    def apply_filters(self) -> None:
        """Load the entries of the date in the entry field and display them."""
        try:
            entries = timesheet_entries(self.date_entry.get())
        except ClockwiseError as exc:
            self.status_label.configure(text=str(exc))
            return
        for widget in self.list_frame.winfo_children()[1:]:
            widget.destroy()
        self.status_label.configure(text=f"{len(entries)} entries")
        for entry in entries:
            self._add_row(entry)

    def _add_row(self, entry: Dict[str, Any]) -> None:
        frame = ctk.CTkFrame(self.list_frame)
        frame.pack(fill="x", pady=1)
        values = [
            entry.get("task_name"),
            time_only(entry.get("start_time")),
            time_only(entry.get("end_time")),
            format_duration(entry.get("duration_minutes")),
            format_duration(entry.get("overlap_minutes")),
        ]
        for val, (_, width) in zip(values, self.COLUMNS):
            ctk.CTkLabel(frame, text=str(val) if val is not None else "", width=width, anchor="w").pack(side="left")
