import os
import sys
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from completion_service import CompletionTracker
from db import AppStateRepository, HistoryRepository, KeyValueRepository
from program_catalog import ProgramCatalog
from session_models import HistoryRecord

DAYS = ["Day 1", "Day 2", "Day 3", "Day 4", "Day 5", "Day 6", "Day 7", "Day 8"]

PROGRAM = {
    "weeks": [
        {
            "week": 1,
            "label": "Intro",
            "days": [{"day_type": d, "exercises": []} for d in DAYS],
        },
        {
            "week": 2,
            "days": [
                {"day_type": "Upper", "exercises": []},
                {"day_type": "Lower", "exercises": []},
                {"day_type": "Arms", "exercises": []},
            ],
        },
        {"week": 3, "days": []},
    ]
}


class CompletionTrackerTest(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_completion.db"
        if os.path.exists(self.db_path):
            os.remove(self.db_path)
        store = KeyValueRepository(self.db_path)
        self.history = HistoryRepository(store)
        self.state = AppStateRepository(store)
        self.tracker = CompletionTracker(
            ProgramCatalog(data=PROGRAM), self.history, self.state
        )

    def tearDown(self) -> None:
        if os.path.exists(self.db_path):
            os.remove(self.db_path)

    def _complete(self, week: int, day_type: str, date: str) -> str:
        return self.history.save(
            HistoryRecord(week=week, day_type=day_type, completed_at=date)
        )

    def test_is_completed(self) -> None:
        self.assertEqual(self.tracker.is_completed(2, "Upper"), {"completed": False})
        key = self._complete(2, "Upper", "2024-03-11T09:00:00+00:00")
        self.assertEqual(
            self.tracker.is_completed(2, "Upper"),
            {"completed": True, "completed_at": "2024-03-11T09:00:00+00:00", "key": key},
        )
        self.assertFalse(self.tracker.is_completed(1, "Upper")["completed"])
        self.assertFalse(self.tracker.is_completed(2, "upper")["completed"])

    def test_week_without_days_is_zero_percent(self) -> None:
        self.assertEqual(
            self.tracker.week_completion_stats(3),
            {"total": 0, "completed": 0, "percentage": 0},
        )
        self.assertEqual(
            self.tracker.week_completion_stats(42),
            {"total": 0, "completed": 0, "percentage": 0},
        )

    def test_percentage_rounds_half_up(self) -> None:
        self._complete(1, "Day 1", "2024-03-04T09:00:00+00:00")
        self.assertEqual(self.tracker.week_completion_stats(1)["percentage"], 13)
        self._complete(1, "Day 2", "2024-03-05T09:00:00+00:00")
        self._complete(1, "Day 3", "2024-03-06T09:00:00+00:00")
        # 3/8 = 37.5
        self.assertEqual(
            self.tracker.week_completion_stats(1),
            {"total": 8, "completed": 3, "percentage": 38},
        )
        self._complete(2, "Upper", "2024-03-11T09:00:00+00:00")
        self.assertEqual(self.tracker.week_completion_stats(2)["percentage"], 33)

    def test_repeated_completion_counts_once(self) -> None:
        self._complete(2, "Lower", "2024-03-11T09:00:00+00:00")
        self._complete(2, "Lower", "2024-03-12T09:00:00+00:00")
        self.assertEqual(self.tracker.week_completion_stats(2)["completed"], 1)

    def test_current_week(self) -> None:
        self.assertEqual(self.tracker.current_week(), 1)
        self.assertEqual(self.tracker.set_current_week(2), 2)
        self.assertEqual(self.tracker.current_week(), 2)
        with self.assertRaises(ValueError):
            self.tracker.set_current_week(0)

    def test_week_timeline(self) -> None:
        self.tracker.set_current_week(2)
        for day in ("Upper", "Lower", "Arms"):
            self._complete(2, day, "2024-03-11T09:00:00+00:00")
        timeline = self.tracker.week_timeline()
        self.assertEqual([w["week"] for w in timeline], [1, 2, 3])
        self.assertEqual(timeline[0]["label"], "Intro")
        self.assertEqual(timeline[1]["label"], "Week 2")
        self.assertFalse(timeline[0]["is_complete"])
        self.assertTrue(timeline[1]["is_complete"])
        self.assertTrue(timeline[1]["is_current"])
        self.assertTrue(timeline[2]["is_future"])
        self.assertFalse(timeline[2]["is_complete"])
        self.assertEqual(
            [d["day_type"] for d in timeline[1]["days"]], ["Upper", "Lower", "Arms"]
        )
        self.assertTrue(all(d["completed"] for d in timeline[1]["days"]))


if __name__ == "__main__":
    unittest.main()
