"""Task and project editing interface for the ClockWise tracker.

This module exposes a ``TaskProjectEditor`` window where users create,
rename and delete tasks and projects, and link tasks to projects.  All
changes are immediately persisted through ``clockwise.data``; validation
errors (empty or duplicate names, the builtin project) are shown in the
window's status line.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, Optional

import customtkinter as ctk

from clockwise import data
from clockwise.errors import ClockwiseError


class TaskProjectEditor(ctk.CTkToplevel):
    """A toplevel window for managing tasks, projects and their links."""

    def __init__(self, parent: ctk.CTk, on_change: Optional[Callable[[], None]] = None) -> None:
        super().__init__(parent)
        self.title("Tasks & Projects")
        self.geometry("1000x600")
        self.resizable(True, True)
        self.on_change = on_change

        self._build_columns()
        self.status_label = ctk.CTkLabel(self, text="")
        self.status_label.pack(fill="x", padx=10, pady=5)
        self.refresh()

    def _build_columns(self) -> None:
        body = ctk.CTkFrame(self)
        body.pack(fill="both", expand=True, padx=10, pady=5)

        # Tasks column
        tasks_col = ctk.CTkFrame(body)
        tasks_col.pack(side="left", fill="both", expand=True, padx=5)
        add_task = ctk.CTkFrame(tasks_col)
        add_task.pack(fill="x", pady=5)
        self.task_entry = ctk.CTkEntry(add_task, placeholder_text="New task name")
        self.task_entry.pack(side="left", fill="x", expand=True, padx=5)
        ctk.CTkButton(add_task, text="Add Task", width=90, command=self._add_task).pack(side="left", padx=5)
        self.task_list = ctk.CTkScrollableFrame(tasks_col, label_text="Tasks")
        self.task_list.pack(fill="both", expand=True)

        # Projects column
        projects_col = ctk.CTkFrame(body)
        projects_col.pack(side="left", fill="both", expand=True, padx=5)
        add_project = ctk.CTkFrame(projects_col)
        add_project.pack(fill="x", pady=5)
        self.project_entry = ctk.CTkEntry(add_project, placeholder_text="New project name")
        self.project_entry.pack(side="left", fill="x", expand=True, padx=5)
        ctk.CTkButton(add_project, text="Add Project", width=90, command=self._add_project).pack(side="left", padx=5)
        self.project_list = ctk.CTkScrollableFrame(projects_col, label_text="Projects")
        self.project_list.pack(fill="both", expand=True)

    def _status(self, text: str) -> None:
        self.status_label.configure(text=text)

    def _run(self, action: Callable[[], Any], done: str) -> None:
        """Run a data-layer action, report the outcome and refresh the lists."""
        try:
            action()
        except ClockwiseError as exc:
            self._status(str(exc))
            return
        self._status(done)
        self.refresh()
        if self.on_change is not None:
            self.on_change()

    def refresh(self) -> None:
        """Repopulate both lists from the database."""
        for frame in (self.task_list, self.project_list):
            for widget in frame.winfo_children():
                widget.destroy()
        for task in data.list_tasks():
            self._add_task_row(task)
        for project in data.list_projects():
            self._add_project_row(project)

    # --- Tasks ---
    def _add_task(self) -> None:
        name = self.task_entry.get()
        self._run(lambda: data.create_task(name), f"Added task {name.strip()}.")
        self.task_entry.delete(0, "end")

    def _add_task_row(self, task: Dict[str, Any]) -> None:
        row = ctk.CTkFrame(self.task_list)
        row.pack(fill="x", pady=1)
        ctk.CTkLabel(row, text=task["name"], anchor="w").pack(side="left", fill="x", expand=True, padx=5)
        ctk.CTkButton(row, text="Delete", width=60, fg_color="#c72626", hover_color="#d23b3b",
                      command=lambda t=task: self._delete_task(t)).pack(side="right", padx=2)
        ctk.CTkButton(row, text="Rename", width=60,
                      command=lambda t=task: self._rename_task(t)).pack(side="right", padx=2)

    def _rename_task(self, task: Dict[str, Any]) -> None:
        name = ctk.CTkInputDialog(text=f"New name for {task['name']}:", title="Rename Task").get_input()
        if name is None:
            return
        self._run(lambda: data.rename_task(task["id"], name), "Task renamed.")

    def _delete_task(self, task: Dict[str, Any]) -> None:
        # Deleting a task also removes all of its recorded time.
        self._run(lambda: data.delete_task(task["id"]), f"Deleted task {task['name']}.")

    # --- Projects ---
    def _add_project(self) -> None:
        name = self.project_entry.get()
        self._run(lambda: data.create_project(name), f"Added project {name.strip()}.")
        self.project_entry.delete(0, "end")

    def _add_project_row(self, project: Dict[str, Any]) -> None:
        row = ctk.CTkFrame(self.project_list)
        row.pack(fill="x", pady=1)
        label = project["name"] + (" (built-in)" if project["is_builtin"] else "")
        ctk.CTkLabel(row, text=label, anchor="w").pack(side="left", fill="x", expand=True, padx=5)
        if project["is_builtin"]:
            return
        ctk.CTkButton(row, text="Delete", width=60, fg_color="#c72626", hover_color="#d23b3b",
                      command=lambda p=project: self._delete_project(p)).pack(side="right", padx=2)
        ctk.CTkButton(row, text="Rename", width=60,
                      command=lambda p=project: self._rename_project(p)).pack(side="right", padx=2)
        ctk.CTkButton(row, text="Tasks", width=60,
                      command=lambda p=project: self._open_links_dialog(p)).pack(side="right", padx=2)

    def _rename_project(self, project: Dict[str, Any]) -> None:
        name = ctk.CTkInputDialog(text=f"New name for {project['name']}:", title="Rename Project").get_input()
        if name is None:
            return
        self._run(lambda: data.rename_project(project["id"], name), "Project renamed.")

    def _delete_project(self, project: Dict[str, Any]) -> None:
        self._run(lambda: data.delete_project(project["id"]), f"Deleted project {project['name']}.")

    def _open_links_dialog(self, project: Dict[str, Any]) -> None:
        """Open a small window listing the tasks linked to ``project``."""
        dlg = ctk.CTkToplevel(self)
        dlg.title(f"Tasks in {project['name']}")
        dlg.geometry("420x400")

        picker = ctk.CTkFrame(dlg)
        picker.pack(fill="x", padx=10, pady=5)
        tasks = {t["name"]: t["id"] for t in data.list_tasks()}
        task_var = ctk.StringVar(value=next(iter(tasks), ""))
        ctk.CTkOptionMenu(picker, variable=task_var, values=list(tasks) or [""]).pack(side="left", padx=5)

        linked_frame = ctk.CTkScrollableFrame(dlg, label_text="Linked tasks")
        linked_frame.pack(fill="both", expand=True, padx=10, pady=5)

        def redraw() -> None:
            for widget in linked_frame.winfo_children():
                widget.destroy()
            for task in data.list_project_tasks(project["id"]):
                row = ctk.CTkFrame(linked_frame)
                row.pack(fill="x", pady=1)
                ctk.CTkLabel(row, text=task["name"], anchor="w").pack(side="left", fill="x", expand=True, padx=5)
                ctk.CTkButton(row, text="Unlink", width=60,
                              command=lambda t=task: unlink(t["id"])).pack(side="right", padx=2)

        def link() -> None:
            task_id = tasks.get(task_var.get())
            if task_id is None:
                return
            self._run(lambda: data.link_task(project["id"], task_id), "Task linked.")
            redraw()

        def unlink(task_id: int) -> None:
            self._run(lambda: data.unlink_task(project["id"], task_id), "Task unlinked.")
            redraw()

        ctk.CTkButton(picker, text="Link", width=60, command=link).pack(side="left", padx=5)
        redraw()
