"""
Data layer for the ClockWise time tracker.

This module provides the SQLite backend for tasks, projects, the links
between them and the time entries recorded by the timer.  Catalog
functions open their own connection; time-entry functions also accept an
open connection so that ``TimerManager`` can run a whole transition inside
a single ``transaction()``.
"""
from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import closing, contextmanager
from typing import Any, Dict, Iterator, List, Optional

from clockwise.errors import (
    BuiltinProjectError,
    DuplicateName,
    InvalidName,
    ProjectNotFound,
    TaskNotFound,
)
from clockwise.utils import split_ids

logger = logging.getLogger(__name__)

BUILTIN_PROJECT_NAME = "No Project"
MAX_NAME_LENGTH = 50
DB_NAME = "clockwise.db"

# Resolved lazily by ``db_path``; tests point this at a temporary file.
DB_FILE: Optional[str] = None

# --- Database Schema ---
# Table: projects       -- id, unique name, is_builtin flag ("No Project")
# Table: tasks          -- id, unique name
# Table: task_projects  -- many-to-many links between tasks and projects
# Table: time_entries
#   id               integer primary key autoincrement
#   task_id          integer      -- owning task, removed with it
#   date             text         -- logical date (YYYY-MM-DD, 4 AM boundary)
#   start_time       text         -- UTC ISO timestamp when the timer started
#   end_time         text         -- UTC ISO timestamp, NULL while running
#   duration_minutes integer      -- whole minutes, set once closed
SCHEMA = """
CREATE TABLE IF NOT EXISTS projects (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    is_builtin INTEGER DEFAULT 0,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
CREATE TABLE IF NOT EXISTS tasks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
CREATE TABLE IF NOT EXISTS task_projects (
    task_id INTEGER NOT NULL,
    project_id INTEGER NOT NULL,
    PRIMARY KEY (task_id, project_id),
    FOREIGN KEY (task_id) REFERENCES tasks(id) ON DELETE CASCADE,
    FOREIGN KEY (project_id) REFERENCES projects(id) ON DELETE CASCADE
);
CREATE TABLE IF NOT EXISTS time_entries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    task_id INTEGER NOT NULL,
    date TEXT NOT NULL,
    start_time TEXT NOT NULL,
    end_time TEXT,
    duration_minutes INTEGER,
    FOREIGN KEY (task_id) REFERENCES tasks(id) ON DELETE CASCADE,
    UNIQUE (task_id, date, start_time)
);
CREATE INDEX IF NOT EXISTS idx_time_entries_date ON time_entries (date, end_time);
"""


# --- Configuration and connections ---
def _writable_dir(path: str) -> Optional[str]:
    try:
        os.makedirs(path, exist_ok=True)
    except OSError as exc:
        logger.warning("Cannot use database directory %r: %s", path, exc)
        return None
    if not os.access(path, os.W_OK):
        logger.warning("Cannot use database directory %r: not writable", path)
        return None
    return path


def resolve_db_dir() -> str:
    """
    Pick the directory holding the database and log file.

    ``CLOCKWISE_DB_DIR`` wins, then ``~/.clockwise``; if neither is writable
    a ``data`` directory under the working directory is used.
    """
    preferred = os.environ.get("CLOCKWISE_DB_DIR") or os.path.join(os.path.expanduser("~"), ".clockwise")
    resolved = _writable_dir(preferred) or _writable_dir(os.path.join(os.getcwd(), "data"))
    if resolved is None:
        raise RuntimeError("Unable to find a writable directory for the database")
    return resolved


def db_path() -> str:
    global DB_FILE
    if DB_FILE is None:
        DB_FILE = os.path.join(resolve_db_dir(), DB_NAME)
        logger.info("Using SQLite database at %s", DB_FILE)
    return DB_FILE


def get_conn() -> sqlite3.Connection:
    """Open a connection to the SQLite database with foreign keys enabled."""
    conn = sqlite3.connect(db_path())
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db() -> None:
    """Create the schema and the builtin "No Project" bucket if missing."""
    with closing(get_conn()) as conn, conn:
        conn.executescript(SCHEMA)
        conn.execute(
            "INSERT OR IGNORE INTO projects (name, is_builtin) VALUES (?, 1)",
            (BUILTIN_PROJECT_NAME,),
        )


@contextmanager
def transaction() -> Iterator[sqlite3.Connection]:
    """
    Yield a connection holding the database write lock until the block ends.

    ``BEGIN IMMEDIATE`` makes the whole block atomic against other writers;
    it is committed on success and rolled back on any exception.
    """
    conn = get_conn()
    try:
        conn.execute("BEGIN IMMEDIATE")
        yield conn
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def _connection(conn: Optional[sqlite3.Connection]) -> Iterator[sqlite3.Connection]:
    # Reuse the caller's transaction, or open and commit our own.
    if conn is not None:
        yield conn
        return
    with closing(get_conn()) as own, own:
        yield own


def _rows(cur: sqlite3.Cursor) -> List[Dict[str, Any]]:
    cols = [d[0] for d in cur.description]
    return [dict(zip(cols, row)) for row in cur.fetchall()]


def _one(cur: sqlite3.Cursor) -> Optional[Dict[str, Any]]:
    rows = _rows(cur)
    return rows[0] if rows else None


def validate_name(name: Any, kind: str) -> str:
    """Return the trimmed name or raise ``InvalidName``."""
    cleaned = name.strip() if isinstance(name, str) else ""
    if not cleaned or len(cleaned) > MAX_NAME_LENGTH:
        raise InvalidName(f"{kind} name must be 1-{MAX_NAME_LENGTH} characters")
    return cleaned


def _as_project(row: Dict[str, Any]) -> Dict[str, Any]:
    row["is_builtin"] = bool(row["is_builtin"])
    return row


# --- Projects ---
def list_projects() -> List[Dict[str, Any]]:
    """Return the project catalog, builtin first and then by name."""
    with _connection(None) as conn:
        cur = conn.execute("SELECT id, name, is_builtin FROM projects ORDER BY is_builtin DESC, name")
        return [_as_project(row) for row in _rows(cur)]


def get_project(project_id: int) -> Dict[str, Any]:
    with _connection(None) as conn:
        row = _one(conn.execute("SELECT id, name, is_builtin FROM projects WHERE id = ?", (project_id,)))
    if row is None:
        raise ProjectNotFound("Project not found")
    return _as_project(row)


def create_project(name: str) -> Dict[str, Any]:
    cleaned = validate_name(name, "Project")
    try:
        with _connection(None) as conn:
            cur = conn.execute("INSERT INTO projects (name, is_builtin) VALUES (?, 0)", (cleaned,))
    except sqlite3.IntegrityError as exc:
        raise DuplicateName("Project name already exists") from exc
    logger.info("Created project %r (id=%s)", cleaned, cur.lastrowid)
    return {"id": cur.lastrowid, "name": cleaned, "is_builtin": False}


def rename_project(project_id: int, name: str) -> Dict[str, Any]:
    project = get_project(project_id)
    if project["is_builtin"]:
        raise BuiltinProjectError("Cannot rename built-in project")
    cleaned = validate_name(name, "Project")
    try:
        with _connection(None) as conn:
            conn.execute("UPDATE projects SET name = ? WHERE id = ?", (cleaned, project_id))
    except sqlite3.IntegrityError as exc:
        raise DuplicateName("Project name already exists") from exc
    logger.info("Renamed project %s to %r", project_id, cleaned)
    return {"id": project_id, "name": cleaned, "is_builtin": False}


def delete_project(project_id: int) -> None:
    """Delete a project; its task links go with it, tasks and entries stay."""
    project = get_project(project_id)
    if project["is_builtin"]:
        raise BuiltinProjectError("Cannot delete built-in project")
    with _connection(None) as conn:
        conn.execute("DELETE FROM projects WHERE id = ?", (project_id,))
    logger.info("Deleted project %r (id=%s)", project["name"], project_id)


# --- Tasks ---
def list_tasks() -> List[Dict[str, Any]]:
    with _connection(None) as conn:
        return _rows(conn.execute("SELECT id, name FROM tasks ORDER BY name"))


def get_task(task_id: Any, conn: Optional[sqlite3.Connection] = None) -> Dict[str, Any]:
    with _connection(conn) as c:
        row = _one(c.execute("SELECT id, name FROM tasks WHERE id = ?", (task_id,)))
    if row is None:
        raise TaskNotFound("Task not found")
    return row


def create_task(name: str) -> Dict[str, Any]:
    cleaned = validate_name(name, "Task")
    try:
        with _connection(None) as conn:
            cur = conn.execute("INSERT INTO tasks (name) VALUES (?)", (cleaned,))
    except sqlite3.IntegrityError as exc:
        raise DuplicateName("Task already exists") from exc
    logger.info("Created task %r (id=%s)", cleaned, cur.lastrowid)
    return {"id": cur.lastrowid, "name": cleaned}


def rename_task(task_id: int, name: str) -> Dict[str, Any]:
    get_task(task_id)
    cleaned = validate_name(name, "Task")
    try:
        with _connection(None) as conn:
            conn.execute("UPDATE tasks SET name = ? WHERE id = ?", (cleaned, task_id))
    except sqlite3.IntegrityError as exc:
        raise DuplicateName("Task already exists") from exc
    logger.info("Renamed task %s to %r", task_id, cleaned)
    return {"id": task_id, "name": cleaned}


def delete_task(task_id: int) -> None:
    """Remove a task together with its time entries and project links."""
    with transaction() as conn:
        task = get_task(task_id, conn=conn)
        conn.execute("DELETE FROM time_entries WHERE task_id = ?", (task_id,))
        conn.execute("DELETE FROM task_projects WHERE task_id = ?", (task_id,))
        conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
    logger.info("Deleted task %r (id=%s)", task["name"], task_id)


# --- Task/project links ---
def list_project_tasks(project_id: int) -> List[Dict[str, Any]]:
    with _connection(None) as conn:
        cur = conn.execute(
            """
            SELECT t.id, t.name
            FROM tasks t
            JOIN task_projects tp ON t.id = tp.task_id
            WHERE tp.project_id = ?
            ORDER BY t.name
            """,
            (project_id,),
        )
        return _rows(cur)


def link_task(project_id: int, task_id: int, conn: Optional[sqlite3.Connection] = None) -> None:
    """Link a task to a project; linking twice is a no-op."""
    with _connection(conn) as c:
        if _one(c.execute("SELECT id FROM projects WHERE id = ?", (project_id,))) is None:
            raise ProjectNotFound("Project not found")
        get_task(task_id, conn=c)
        c.execute(
            "INSERT OR IGNORE INTO task_projects (task_id, project_id) VALUES (?, ?)",
            (task_id, project_id),
        )


def unlink_task(project_id: int, task_id: int) -> None:
    with _connection(None) as conn:
        conn.execute(
            "DELETE FROM task_projects WHERE task_id = ? AND project_id = ?",
            (task_id, project_id),
        )


# --- Time entries ---
def find_open_entry(date: str, conn: Optional[sqlite3.Connection] = None) -> Optional[Dict[str, Any]]:
    """Return the most recently started running entry of a logical date, if any."""
    with _connection(conn) as c:
        cur = c.execute(
            """
            SELECT te.id, te.task_id, te.date, te.start_time, t.name AS task_name
            FROM time_entries te
            JOIN tasks t ON te.task_id = t.id
            WHERE te.date = ? AND te.end_time IS NULL
            ORDER BY te.start_time DESC
            LIMIT 1
            """,
            (date,),
        )
        return _one(cur)


def insert_entry(task_id: int, date: str, start_time: str, conn: Optional[sqlite3.Connection] = None) -> int:
    """Insert a running entry and return its id."""
    with _connection(conn) as c:
        cur = c.execute(
            "INSERT INTO time_entries (task_id, date, start_time) VALUES (?, ?, ?)",
            (task_id, date, start_time),
        )
        return cur.lastrowid


def close_entry(
    entry_id: int,
    end_time: str,
    duration_minutes: int,
    conn: Optional[sqlite3.Connection] = None,
) -> None:
    with _connection(conn) as c:
        c.execute(
            "UPDATE time_entries SET end_time = ?, duration_minutes = ? WHERE id = ?",
            (end_time, duration_minutes, entry_id),
        )


def delete_entry(entry_id: int, conn: Optional[sqlite3.Connection] = None) -> None:
    with _connection(conn) as c:
        c.execute("DELETE FROM time_entries WHERE id = ?", (entry_id,))


def read_entries_in_window(window_start: str, window_end: str) -> List[Dict[str, Any]]:
    """
    Return closed entries overlapping ``[window_start, window_end)``.

    Bounds are stored-format timestamps.  Each row carries the task name and
    a ``project_ids`` list of the task's linked projects, ordered by start.
    """
    with _connection(None) as conn:
        cur = conn.execute(
            """
            SELECT te.id, te.task_id, te.date, te.start_time, te.end_time, te.duration_minutes,
                   t.name AS task_name,
                   GROUP_CONCAT(tp.project_id) AS project_ids
            FROM time_entries te
            JOIN tasks t ON te.task_id = t.id
            LEFT JOIN task_projects tp ON t.id = tp.task_id
            WHERE te.start_time < ? AND te.end_time IS NOT NULL AND te.end_time > ?
            GROUP BY te.id
            ORDER BY te.start_time
            """,
            (window_end, window_start),
        )
        rows = _rows(cur)
    for row in rows:
        row["project_ids"] = split_ids(row["project_ids"])
    return rows
