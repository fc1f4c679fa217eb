"""User interface for the ClockWise time tracker.

This module builds the primary customtkinter window: a sidebar with
navigation to the other screens (tasks & projects, timeline, totals) and a
home screen that drives the ``TimerManager``.  The running timer is polled
from the database once a second so the elapsed clock stays current.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Optional

import customtkinter as ctk

from clockwise import data
from clockwise.analytics import TotalsView
from clockwise.editor import TaskProjectEditor
from clockwise.errors import ClockwiseError
from clockwise.timeline import TimelineView
from clockwise.timer import TimerManager
from clockwise.utils import parse_timestamp

logger = logging.getLogger(__name__)

NO_SELECTION = "(none)"


def format_elapsed(seconds: float) -> str:
    """Format seconds into ``HH:MM:SS`` for the running clock."""
    seconds = max(int(seconds), 0)
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


class ClockWiseApp(ctk.CTk):
    """Main application window for the time tracker."""

    def __init__(self) -> None:
        super().__init__()
        self.title("ClockWise")
        self.geometry("900x600")

        ctk.set_appearance_mode("light")

        self.sidebar = ctk.CTkFrame(self, width=200)
        self.sidebar.pack(side="left", fill="y")

        self.main = ctk.CTkFrame(self)
        self.main.pack(side="right", expand=True, fill="both")

        self.timer = TimerManager()
        self.tasks: Dict[str, int] = {}
        self.projects: Dict[str, int] = {}

        self.build_sidebar()
        self.show_home()
        self.update_ui_loop()

    def build_sidebar(self) -> None:
        """Create navigation buttons and appearance mode selector."""
        label = ctk.CTkLabel(self.sidebar, text="ClockWise", font=ctk.CTkFont(weight="bold"))
        label.pack(pady=20)

        ctk.CTkButton(self.sidebar, text="Timer", command=self.show_home).pack(pady=10, padx=10, fill="x")
        ctk.CTkButton(self.sidebar, text="Tasks & Projects", command=self.open_editor).pack(pady=5, padx=10, fill="x")
        ctk.CTkButton(self.sidebar, text="Timeline", command=self.open_timeline_view).pack(pady=5, padx=10, fill="x")
        ctk.CTkButton(self.sidebar, text="Totals", command=self.open_totals_view).pack(pady=5, padx=10, fill="x")

        mode_frame = ctk.CTkFrame(self.sidebar)
        mode_frame.pack(pady=10, padx=10, fill="x")
        ctk.CTkLabel(mode_frame, text="Mode:").pack(side="left")
        self.mode_var = ctk.StringVar(value="light")
        mode_menu = ctk.CTkOptionMenu(mode_frame, variable=self.mode_var, values=["light", "dark"], command=self._set_mode)
        mode_menu.pack(side="left", padx=5)

        btn_exit = ctk.CTkButton(
            self.sidebar,
            text="Exit",
            fg_color="#c72626",
            hover_color="#d23b3b",
            command=self.destroy,
        )
        btn_exit.pack(pady=(20, 5), padx=10, fill="x")

    def _set_mode(self, mode: str) -> None:
        ctk.set_appearance_mode("dark" if mode.lower() == "dark" else "light")

    # --- Home screen ---
    def show_home(self) -> None:
        """Rebuild the timer screen with fresh task and project lists."""
        for widget in self.main.winfo_children():
            widget.destroy()

        self.activity_label = ctk.CTkLabel(self.main, text="No active timer.", font=ctk.CTkFont(size=20))
        self.activity_label.pack(pady=(30, 5))
        self.clock_label = ctk.CTkLabel(self.main, text="00:00:00", font=ctk.CTkFont(size=36, weight="bold"))
        self.clock_label.pack(pady=5)

        form = ctk.CTkFrame(self.main)
        form.pack(pady=10)
        ctk.CTkLabel(form, text="Project:").grid(row=0, column=0, padx=5, pady=5, sticky="w")
        self.project_var = ctk.StringVar(value=NO_SELECTION)
        self.project_menu = ctk.CTkOptionMenu(form, variable=self.project_var, values=[NO_SELECTION], width=220)
        self.project_menu.grid(row=0, column=1, padx=5, pady=5)
        ctk.CTkLabel(form, text="Task:").grid(row=1, column=0, padx=5, pady=5, sticky="w")
        self.task_var = ctk.StringVar(value=NO_SELECTION)
        self.task_menu = ctk.CTkOptionMenu(form, variable=self.task_var, values=[NO_SELECTION], width=220)
        self.task_menu.grid(row=1, column=1, padx=5, pady=5)

        buttons = ctk.CTkFrame(self.main)
        buttons.pack(pady=10)
        ctk.CTkButton(buttons, text="Start", command=self.start_timer).pack(side="left", padx=5)
        ctk.CTkButton(buttons, text="Switch Task", command=self.switch_task).pack(side="left", padx=5)
        ctk.CTkButton(buttons, text="Stop", fg_color="#c72626", hover_color="#d23b3b",
                      command=self.end_timer).pack(side="left", padx=5)

        self.status_label = ctk.CTkLabel(self.main, text="")
        self.status_label.pack(pady=10)

        self.refresh_choices()

    def refresh_choices(self) -> None:
        """Reload the task and project option menus from the database."""
        self.tasks = {t["name"]: t["id"] for t in data.list_tasks()}
        self.projects = {p["name"]: p["id"] for p in data.list_projects() if not p["is_builtin"]}
        self.task_menu.configure(values=[NO_SELECTION] + list(self.tasks))
        self.project_menu.configure(values=[NO_SELECTION] + list(self.projects))
        if self.task_var.get() not in self.tasks:
            self.task_var.set(NO_SELECTION)
        if self.project_var.get() not in self.projects:
            self.project_var.set(NO_SELECTION)

    def _selected_task(self) -> Optional[int]:
        return self.tasks.get(self.task_var.get())

    def _selected_project(self) -> Optional[int]:
        return self.projects.get(self.project_var.get())

    def _status(self, text: str) -> None:
        if hasattr(self, "status_label"):
            self.status_label.configure(text=text)

    def start_timer(self) -> None:
        task_id = self._selected_task()
        if task_id is None:
            self._status("Please select a task.")
            return
        project_id = self._selected_project()
        if project_id is not None:
            linked = [t["id"] for t in data.list_project_tasks(project_id)]
            if not linked:
                self._status("Link a task to this project before starting the timer.")
                return
            if task_id not in linked:
                self._status("Start the linked task for this project.")
                return
        try:
            result = self.timer.start(task_id)
        except ClockwiseError as exc:
            self._status(str(exc))
            return
        self._status(f"Started {result['task_name']}.")
        self.update_clock()

    def switch_task(self) -> None:
        """End the running timer, link the task to the active project and start it."""
        task_id = self._selected_task()
        if task_id is None:
            self._status("Please select a task.")
            return
        try:
            result = self.timer.switch(task_id, project_id=self._selected_project())
        except ClockwiseError as exc:
            self._status(str(exc))
            return
        self._status(f"Switched to {result['task_name']}.")
        self.update_clock()

    def end_timer(self) -> None:
        try:
            result = self.timer.end()
        except ClockwiseError as exc:
            self._status(str(exc))
            return
        if result["discarded"]:
            self._status("Entry was too short (less than 1 minute) and was not recorded.")
        else:
            entry = result["entry"]
            self._status(f"Recorded {entry['duration_minutes']} min on {entry['task_name']}.")
        self.update_clock()

    def update_clock(self) -> None:
        """Show the running task and its elapsed time."""
        if not hasattr(self, "clock_label") or not self.clock_label.winfo_exists():
            return
        current = self.timer.current()
        if current["active"]:
            started = parse_timestamp(current["start_time"])
            elapsed = (datetime.now().astimezone() - started).total_seconds()
            self.activity_label.configure(text=f"Currently tracking:\n{current['task_name']}")
            self.clock_label.configure(text=format_elapsed(elapsed))
        else:
            self.activity_label.configure(text="No active timer.")
            self.clock_label.configure(text="00:00:00")

    def update_ui_loop(self) -> None:
        """Refresh the elapsed clock every second."""
        try:
            self.update_clock()
        except Exception:
            logger.exception("Failed to refresh the timer display")
        self.after(1000, self.update_ui_loop)

    # --- Other screens ---
    def _raise(self, window: ctk.CTkToplevel) -> None:
        window.focus()
        window.lift()

    def open_editor(self) -> None:
        """Open the task/project editor; the home lists refresh when it closes."""
        editor = TaskProjectEditor(self, on_change=self._on_catalog_change)
        self._raise(editor)

    def _on_catalog_change(self) -> None:
        if hasattr(self, "task_menu") and self.task_menu.winfo_exists():
            self.refresh_choices()

    def open_timeline_view(self) -> None:
        self._raise(TimelineView(self))

    def open_totals_view(self) -> None:
        self._raise(TotalsView(self))
