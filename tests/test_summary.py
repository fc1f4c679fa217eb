import unittest
from datetime import timedelta, timezone

from clockwise.summary import build_daily_summary, empty_summary
from clockwise.utils import format_timestamp, window_for_date

UTC = timezone.utc
HOUR = timedelta(hours=1)

PROJECTS = [
    {"id": 1, "name": "No Project", "is_builtin": True},
    {"id": 2, "name": "Client A", "is_builtin": False},
    {"id": 3, "name": "Internal", "is_builtin": False},
]


def make_entry(entry_id, task_id, task_name, start, end, project_ids):
    return {
        "id": entry_id,
        "task_id": task_id,
        "task_name": task_name,
        "start_time": format_timestamp(start),
        "end_time": format_timestamp(end),
        "project_ids": project_ids,
    }


class TestDailySummary(unittest.TestCase):
    def setUp(self) -> None:
        self.window = window_for_date("2026-01-15", tz=UTC)
        self.base = self.window.start

    def test_groups_tasks_and_projects_for_the_day(self) -> None:
        b = self.base
        entries = [
            make_entry(1, 10, "Task One", b + 1 * HOUR, b + 3 * HOUR, [2]),
            make_entry(2, 11, "Task Two", b - 2 * HOUR, b + 2 * HOUR, []),
            make_entry(3, 10, "Task One", b + 4 * HOUR, b + 5 * HOUR, [2, 3]),
        ]

        summary = build_daily_summary(entries, PROJECTS, self.window)

        self.assertEqual(
            summary["by_task"],
            [
                {"id": 10, "name": "Task One", "total_minutes": 180},
                {"id": 11, "name": "Task Two", "total_minutes": 120},
            ],
        )
        self.assertEqual(
            summary["by_project"],
            [
                {"id": 1, "name": "No Project", "total_minutes": 120, "is_builtin": True},
                {"id": 2, "name": "Client A", "total_minutes": 180, "is_builtin": False},
                {"id": 3, "name": "Internal", "total_minutes": 60, "is_builtin": False},
            ],
        )
        self.assertEqual(
            summary["by_task_per_project"],
            [
                {
                    "project_id": 1,
                    "project_name": "No Project",
                    "task_id": 11,
                    "task_name": "Task Two",
                    "total_minutes": 120,
                    "project_is_builtin": True,
                },
                {
                    "project_id": 2,
                    "project_name": "Client A",
                    "task_id": 10,
                    "task_name": "Task One",
                    "total_minutes": 180,
                    "project_is_builtin": False,
                },
                {
                    "project_id": 3,
                    "project_name": "Internal",
                    "task_id": 10,
                    "task_name": "Task One",
                    "total_minutes": 60,
                    "project_is_builtin": False,
                },
            ],
        )

    def test_malformed_input_gives_empty_summary(self) -> None:
        entry = make_entry(1, 10, "Task", self.base, self.base + HOUR, [])
        self.assertEqual(build_daily_summary(None, PROJECTS, self.window), empty_summary())
        self.assertEqual(build_daily_summary({"x": 1}, PROJECTS, self.window), empty_summary())
        self.assertEqual(build_daily_summary([entry], "projects", self.window), empty_summary())
        self.assertEqual(build_daily_summary([entry], PROJECTS, None), empty_summary())

    def test_entries_outside_window_are_skipped_everywhere(self) -> None:
        b = self.base
        entries = [
            make_entry(1, 10, "Yesterday", b - 5 * HOUR, b - 1 * HOUR, [2]),
            make_entry(2, 11, "Tomorrow", b + 25 * HOUR, b + 26 * HOUR, []),
            make_entry(3, 12, "Sub minute", b + HOUR, b + HOUR + timedelta(seconds=50), [3]),
        ]
        self.assertEqual(build_daily_summary(entries, PROJECTS, self.window), empty_summary())

    def test_without_builtin_unlinked_time_counts_only_by_task(self) -> None:
        projects = [p for p in PROJECTS if not p["is_builtin"]]
        entries = [make_entry(1, 10, "Loose", self.base, self.base + HOUR, [])]
        summary = build_daily_summary(entries, projects, self.window)
        self.assertEqual(summary["by_task"], [{"id": 10, "name": "Loose", "total_minutes": 60}])
        self.assertEqual(summary["by_project"], [])
        self.assertEqual(summary["by_task_per_project"], [])

    def test_unknown_project_ids_are_ignored(self) -> None:
        entries = [make_entry(1, 10, "Task", self.base, self.base + HOUR, [99, 3])]
        summary = build_daily_summary(entries, PROJECTS, self.window)
        self.assertEqual([r["id"] for r in summary["by_project"]], [3])
        self.assertEqual(summary["by_task"][0]["total_minutes"], 60)

    def test_comma_joined_project_ids_match_lists(self) -> None:
        b = self.base

        def summarize(linked, unlinked):
            entries = [
                make_entry(1, 10, "Linked", b, b + HOUR, linked),
                make_entry(2, 11, "Loose", b + HOUR, b + 3 * HOUR, unlinked),
            ]
            return build_daily_summary(entries, PROJECTS, self.window)

        joined = summarize("2,3", None)
        self.assertEqual(joined, summarize([2, 3], []))
        self.assertEqual(
            [(r["name"], r["total_minutes"]) for r in joined["by_project"]],
            [("No Project", 120), ("Client A", 60), ("Internal", 60)],
        )

    def test_task_ties_keep_accumulation_order(self) -> None:
        b = self.base
        entries = [
            make_entry(1, 20, "Zeta", b, b + HOUR, []),
            make_entry(2, 21, "Alpha", b + HOUR, b + 2 * HOUR, []),
            make_entry(3, 22, "Mid", b + 2 * HOUR, b + 4 * HOUR, []),
        ]
        summary = build_daily_summary(entries, PROJECTS, self.window)
        self.assertEqual([r["id"] for r in summary["by_task"]], [22, 20, 21])

    def test_project_names_sort_case_insensitively_after_builtin(self) -> None:
        projects = [
            {"id": 5, "name": "beta", "is_builtin": False},
            {"id": 6, "name": "Alpha", "is_builtin": False},
            {"id": 7, "name": "No Project", "is_builtin": True},
        ]
        b = self.base
        entries = [
            make_entry(1, 10, "One", b, b + HOUR, [5]),
            make_entry(2, 11, "Two", b + HOUR, b + 3 * HOUR, [6]),
            make_entry(3, 12, "Three", b + 3 * HOUR, b + 4 * HOUR, []),
        ]
        summary = build_daily_summary(entries, projects, self.window)
        self.assertEqual([r["name"] for r in summary["by_project"]], ["No Project", "Alpha", "beta"])

    def test_tasks_within_a_project_sort_by_total_descending(self) -> None:
        b = self.base
        entries = [
            make_entry(1, 10, "Short", b, b + HOUR, [2]),
            make_entry(2, 11, "Long", b + HOUR, b + 4 * HOUR, [2]),
            make_entry(3, 12, "Other", b + 4 * HOUR, b + 5 * HOUR, [3]),
        ]
        summary = build_daily_summary(entries, PROJECTS, self.window)
        rows = [(r["project_name"], r["task_name"]) for r in summary["by_task_per_project"]]
        self.assertEqual(rows, [("Client A", "Long"), ("Client A", "Short"), ("Internal", "Other")])

    def test_entry_inside_window_totals_its_duration(self) -> None:
        start = self.base + 2 * HOUR
        end = start + timedelta(minutes=47, seconds=30)
        summary = build_daily_summary([make_entry(1, 10, "Task", start, end, [2])], PROJECTS, self.window)
        self.assertEqual(sum(r["total_minutes"] for r in summary["by_task"]), 47)


if __name__ == "__main__":
    unittest.main(verbosity=2)
