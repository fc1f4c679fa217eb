import os
import sqlite3
import tempfile
import threading
import unittest
from datetime import datetime, timedelta, timezone
from unittest import mock

from clockwise import data
from clockwise.errors import NoActiveTimer, ProjectNotFound, TaskNotFound
from clockwise.timer import TimerManager

UTC = timezone.utc


def at(hour, minute=0, second=0, day=15):
    return datetime(2026, 1, day, hour, minute, second, tzinfo=UTC)


class TestTimerManager(unittest.TestCase):
    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        patcher = mock.patch.object(data, "DB_FILE", os.path.join(tmp.name, "clockwise.db"))
        patcher.start()
        self.addCleanup(patcher.stop)
        data.init_db()

        self.timer = TimerManager(tz=UTC)
        self.design = data.create_task("Design")
        self.review = data.create_task("Review")

    def _entries(self):
        with data.transaction() as conn:
            rows = conn.execute(
                "SELECT task_id, date, start_time, end_time, duration_minutes FROM time_entries ORDER BY id"
            ).fetchall()
        return rows

    def test_start_then_end_records_duration(self) -> None:
        started = self.timer.start(self.design["id"], now=at(9))
        self.assertEqual(started["task_name"], "Design")
        self.assertEqual(started["start_time"], "2026-01-15T09:00:00.000Z")

        ended = self.timer.end(now=at(9, 30, 40))

        self.assertEqual(
            ended,
            {"discarded": False, "entry": {"id": started["entry_id"], "task_name": "Design", "duration_minutes": 30}},
        )
        self.assertEqual(
            self._entries(),
            [(self.design["id"], "2026-01-15", "2026-01-15T09:00:00.000Z", "2026-01-15T09:30:40.000Z", 30)],
        )

    def test_short_session_is_discarded(self) -> None:
        self.timer.start(self.design["id"], now=at(9))
        self.assertEqual(self.timer.end(now=at(9, 0, 45)), {"discarded": True})
        self.assertEqual(self._entries(), [])
        self.assertEqual(self.timer.current(now=at(9, 1)), {"active": False})

    def test_exactly_one_minute_is_kept(self) -> None:
        self.timer.start(self.design["id"], now=at(9))
        result = self.timer.end(now=at(9, 1))
        self.assertFalse(result["discarded"])
        self.assertEqual(result["entry"]["duration_minutes"], 1)

    def test_end_without_running_timer(self) -> None:
        with self.assertRaises(NoActiveTimer):
            self.timer.end(now=at(9))

    def test_start_unknown_task(self) -> None:
        with self.assertRaises(TaskNotFound):
            self.timer.start(9999, now=at(9))
        self.assertEqual(self._entries(), [])

    def test_start_closes_running_timer_first(self) -> None:
        self.timer.start(self.design["id"], now=at(9))
        second = self.timer.start(self.review["id"], now=at(10, 15))

        rows = self._entries()
        self.assertEqual(len(rows), 2)
        self.assertEqual(rows[0][3:], ("2026-01-15T10:15:00.000Z", 75))
        self.assertEqual(rows[1][3:], (None, None))

        current = self.timer.current(now=at(10, 20))
        self.assertEqual(current["entry_id"], second["entry_id"])
        self.assertEqual(current["task_name"], "Review")
        self.assertEqual(current["elapsed_minutes"], 5)

    def test_start_discards_short_running_timer(self) -> None:
        self.timer.start(self.design["id"], now=at(9))
        self.timer.start(self.review["id"], now=at(9, 0, 30))
        rows = self._entries()
        self.assertEqual([r[0] for r in rows], [self.review["id"]])

    def test_never_two_open_entries_for_a_day(self) -> None:
        for minute in (0, 10, 20, 30):
            self.timer.start(self.design["id"], now=at(9, minute))
        open_rows = [r for r in self._entries() if r[3] is None]
        self.assertEqual(len(open_rows), 1)

    def test_logical_day_runs_until_four_am(self) -> None:
        self.timer.start(self.design["id"], now=at(23))
        current = self.timer.current(now=at(2, day=16))
        self.assertTrue(current["active"])
        self.assertEqual(current["elapsed_minutes"], 180)
        result = self.timer.end(now=at(3, 30, day=16))
        self.assertEqual(result["entry"]["duration_minutes"], 270)

    def test_new_logical_day_does_not_see_yesterdays_timer(self) -> None:
        self.timer.start(self.design["id"], now=at(23))
        self.assertEqual(self.timer.current(now=at(5, day=16)), {"active": False})
        self.timer.start(self.review["id"], now=at(5, day=16))
        rows = self._entries()
        self.assertEqual([(r[1], r[3]) for r in rows], [("2026-01-15", None), ("2026-01-16", None)])

    def test_switch_links_task_to_project(self) -> None:
        project = data.create_project("Client A")
        self.timer.start(self.design["id"], now=at(9))
        result = self.timer.switch(self.review["id"], project_id=project["id"], now=at(9, 45))
        self.assertEqual(result["task_name"], "Review")
        self.assertEqual(data.list_project_tasks(project["id"]), [{"id": self.review["id"], "name": "Review"}])
        self.assertEqual(self._entries()[0][4], 45)

    def test_switch_to_unknown_project_leaves_timer_running(self) -> None:
        started = self.timer.start(self.design["id"], now=at(9))
        with self.assertRaises(ProjectNotFound):
            self.timer.switch(self.review["id"], project_id=9999, now=at(9, 45))
        self.assertEqual(self.timer.current(now=at(9, 50))["entry_id"], started["entry_id"])
        self.assertEqual(len(self._entries()), 1)

    def test_failed_switch_rolls_back_project_link(self) -> None:
        project = data.create_project("Client A")
        started = self.timer.start(self.design["id"], now=at(9))
        with mock.patch.object(data, "insert_entry", side_effect=sqlite3.OperationalError("disk I/O error")):
            with self.assertRaises(sqlite3.OperationalError):
                self.timer.switch(self.review["id"], project_id=project["id"], now=at(9, 45))

        self.assertEqual(data.list_project_tasks(project["id"]), [])
        self.assertEqual(self._entries(), [(self.design["id"], "2026-01-15", started["start_time"], None, None)])

    def test_concurrent_starts_leave_one_running_timer(self) -> None:
        errors = []

        def worker(index: int) -> None:
            # Separate managers share no lock, so only the database serialises them.
            timer = TimerManager(tz=UTC)
            task_id = (self.design, self.review)[index % 2]["id"]
            try:
                for call in range(5):
                    timer.start(task_id, now=at(9, index, call))
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(errors, [])
        open_rows = [r for r in self._entries() if r[1] == "2026-01-15" and r[3] is None]
        self.assertEqual(len(open_rows), 1)

    def test_current_reports_elapsed_minutes(self) -> None:
        self.timer.start(self.design["id"], now=at(9))
        current = self.timer.current(now=at(9, 12, 59))
        self.assertEqual(current["elapsed_minutes"], 12)
        self.assertEqual(current["task_id"], self.design["id"])
        self.assertEqual(current["start_time"], "2026-01-15T09:00:00.000Z")


if __name__ == "__main__":
    unittest.main(verbosity=2)
