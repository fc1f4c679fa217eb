"""Totals dashboard for the ClockWise tracker.

The ``TotalsView`` window shows the daily summary of a chosen logical day:
time by task, by project and by task per project, a pie chart of the
project split drawn with matplotlib, and a button that exports the day as a
PDF timesheet.
"""
from __future__ import annotations

from tkinter import filedialog
from typing import Any, Dict, List, Optional

import customtkinter as ctk
import matplotlib.pyplot as plt
import pandas as pd
from matplotlib.backends.backend_tkagg import FigureCanvasTkAgg

from clockwise.errors import ClockwiseError
from clockwise.export import export_timesheet
from clockwise.reports import daily_totals, resolve_day
from clockwise.utils import format_duration


def project_shares(by_project: List[Dict[str, Any]]) -> pd.Series:
    """Hours per project name, largest first, for the pie chart."""
    if not by_project:
        return pd.Series(dtype=float)
    df = pd.DataFrame(by_project)
    hours = df.set_index("name")["total_minutes"] / 60.0
    return hours[hours > 0].sort_values(ascending=False)


class TotalsView(ctk.CTkToplevel):
    """A toplevel window displaying the daily totals."""

    TABLES = [
        ("by_task_per_project", "Time by Task per Project", ["project_name", "task_name"]),
        ("by_project", "Total Time by Project", ["name"]),
        ("by_task", "Total Time by Task", ["name"]),
    ]

    def __init__(self, parent: ctk.CTk) -> None:
        super().__init__(parent)
        self.title("Totals")
        self.geometry("1000x650")
        self.resizable(True, True)

        self.totals: Optional[Dict[str, Any]] = None
        self.canvas: Optional[FigureCanvasTkAgg] = None

        self._build_controls()
        body = ctk.CTkFrame(self)
        body.pack(fill="both", expand=True, padx=10, pady=5)
        self.tables_frame = ctk.CTkScrollableFrame(body)
        self.tables_frame.pack(side="left", fill="both", expand=True)
        self.chart_frame = ctk.CTkFrame(body, width=400)
        self.chart_frame.pack(side="right", fill="both", expand=True, padx=(10, 0))
        self.refresh()

    def _build_controls(self) -> None:
        frame = ctk.CTkFrame(self)
        frame.pack(fill="x", padx=10, pady=5)
        ctk.CTkLabel(frame, text="Date (YYYY-MM-DD):").pack(side="left", padx=2)
        self.date_entry = ctk.CTkEntry(frame, width=120)
        self.date_entry.insert(0, resolve_day())
        self.date_entry.pack(side="left", padx=2)
        ctk.CTkButton(frame, text="Update", command=self.refresh).pack(side="left", padx=5)
        ctk.CTkButton(frame, text="Generate PDF", command=self.export_pdf).pack(side="left", padx=5)
        self.status_label = ctk.CTkLabel(frame, text="")
        self.status_label.pack(side="left", padx=10)

    def refresh(self) -> None:
        """Recompute the summary for the entered date and redraw tables and chart."""
        try:
            self.totals = daily_totals(self.date_entry.get())
        except ClockwiseError as exc:
            self.status_label.configure(text=str(exc))
            return
        self.status_label.configure(text=f"Day of {self.totals['date']} (starts 4:00 AM)")
        for widget in self.tables_frame.winfo_children():
            widget.destroy()
        for key, title, name_cols in self.TABLES:
            self._add_table(title, self.totals[key], name_cols)
        self._draw_chart(self.totals["by_project"])

    def _add_table(self, title: str, rows: List[Dict[str, Any]], name_cols: List[str]) -> None:
        ctk.CTkLabel(self.tables_frame, text=title, font=ctk.CTkFont(weight="bold"), anchor="w").pack(
            fill="x", pady=(10, 2)
        )
        if not rows:
            ctk.CTkLabel(self.tables_frame, text="No time recorded.", anchor="w").pack(fill="x")
            return
        for row in rows:
            line = ctk.CTkFrame(self.tables_frame)
            line.pack(fill="x", pady=1)
            for col in name_cols:
                ctk.CTkLabel(line, text=str(row[col]), width=180, anchor="w").pack(side="left")
            ctk.CTkLabel(line, text=format_duration(row["total_minutes"]), width=80, anchor="e").pack(side="right")

    def _draw_chart(self, by_project: List[Dict[str, Any]]) -> None:
        if self.canvas:
            self.canvas.get_tk_widget().destroy()
            self.canvas = None
        shares = project_shares(by_project)
        if shares.empty:
            return
        fig = plt.Figure(figsize=(4, 4))
        ax = fig.add_subplot(111)
        ax.pie(shares.values.tolist(), labels=shares.index.tolist(), autopct="%1.1f%%", startangle=90)
        ax.axis("equal")  # equal aspect ratio ensures a circle
        ax.set_title("Time by Project")
        fig.tight_layout()
        self.canvas = FigureCanvasTkAgg(fig, master=self.chart_frame)
        self.canvas.draw()
        self.canvas.get_tk_widget().pack(fill="both", expand=True)

    def export_pdf(self) -> None:
        """Ask for a folder and write the timesheet PDF of the entered date there."""
        directory = filedialog.askdirectory(parent=self, title="Save timesheet to")
        if not directory:
            return
        try:
            path = export_timesheet(directory, self.date_entry.get())
        except ClockwiseError as exc:
            self.status_label.configure(text=f"Error generating PDF: {exc}")
            return
        self.status_label.configure(text=f"Saved {path}")
