import os
import sys
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import HistoryRepository, KeyValueRepository, SettingsRepository
from session_models import HistoryExercise, HistoryRecord, HistorySet
from stats_service import StatisticsService


def record(week, day_type, date, exercises):
    return HistoryRecord(
        week=week,
        day_type=day_type,
        completed_at=date,
        exercises=[
            HistoryExercise(
                name=name, sets=[HistorySet(weight=w, reps=r) for w, r in sets]
            )
            for name, sets in exercises
        ],
    )


class StatisticsServiceTest(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_stats.db"
        self.yaml_path = "test_stats.yaml"
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)
        self.history = HistoryRepository(KeyValueRepository(self.db_path))
        self.settings = SettingsRepository(self.db_path, self.yaml_path)
        self.stats = StatisticsService(self.history, self.settings)

    def tearDown(self) -> None:
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)

    def test_squat_progress_summary(self) -> None:
        # saved out of order to check date sorting
        self.history.save(
            record(2, "Lower", "2024-03-12T09:00:00+00:00", [("Squat", [(220, 5), (210, 5)])])
        )
        self.history.save(
            record(1, "Lower", "2024-03-05T09:00:00+00:00", [("Squat", [(200, 5), (190, 6)])])
        )
        series = self.stats.build_series()
        squat = series["Squat"]
        self.assertEqual([s["date"][:10] for s in squat], ["2024-03-05", "2024-03-12"])
        self.assertEqual([s["max_weight"] for s in squat], [200.0, 220.0])
        self.assertEqual(squat[0]["total_volume"], 200 * 5 + 190 * 6)
        self.assertEqual(squat[0]["week"], 1)
        self.assertEqual(squat[0]["day_type"], "Lower")

        summary = self.stats.exercise_summary("Squat")
        self.assertEqual(summary["starting_weight"], 200)
        self.assertEqual(summary["current_weight"], 220)
        self.assertEqual(summary["personal_record"], 220)
        self.assertEqual(summary["gain"], 20)
        self.assertEqual(summary["percent_gain"], 10.0)
        self.assertTrue(summary["is_current_pr"])
        self.assertEqual(summary["total_sessions"], 2)
        self.assertEqual(summary["unit"], "lbs")

    def test_current_below_record(self) -> None:
        sessions = [
            {"date": "a", "max_weight": 100.0},
            {"date": "b", "max_weight": 120.0},
            {"date": "c", "max_weight": 110.0},
        ]
        summary = StatisticsService.summarize(sessions)
        self.assertEqual(summary["personal_record"], 120.0)
        self.assertFalse(summary["is_current_pr"])
        self.assertEqual(summary["percent_gain"], 10.0)

    def test_zero_starting_weight(self) -> None:
        summary = StatisticsService.summarize(
            [{"date": "a", "max_weight": 0.0}, {"date": "b", "max_weight": 50.0}]
        )
        self.assertEqual(summary["percent_gain"], 0)
        self.assertEqual(summary["gain"], 50.0)
        self.assertIsNone(StatisticsService.summarize([]))

    def test_exercises_without_sets_are_omitted(self) -> None:
        self.history.save(
            record(
                1,
                "Upper",
                "2024-03-04T09:00:00+00:00",
                [("Bench Press", [(100, 8)]), ("Curl", [])],
            )
        )
        series = self.stats.build_series()
        self.assertEqual(list(series), ["Bench Press"])
        self.assertEqual(self.stats.exercise_names(), ["Bench Press"])
        self.assertIsNone(self.stats.exercise_summary("Curl"))

    def test_build_series_from_given_history(self) -> None:
        rec = record(1, "Upper", "2024-03-04T09:00:00Z", [("Row", [(80, 10), (80, 9)])])
        series = self.stats.build_series({"k": rec})
        self.assertEqual(series["Row"][0]["total_volume"], 80 * 19)
        self.assertEqual(self.history.count(), 0)

    def test_history_stats(self) -> None:
        self.assertEqual(
            self.stats.history_stats(),
            {
                "total_workouts": 0,
                "first_workout": None,
                "last_workout": None,
                "workouts_by_type": {},
            },
        )
        self.history.save(record(1, "Upper", "2024-03-04T09:00:00+00:00", []))
        self.history.save(record(1, "Lower", "2024-03-05T09:00:00+00:00", []))
        self.history.save(record(2, "Upper", "2024-03-11T09:00:00+00:00", []))
        stats = self.stats.history_stats()
        self.assertEqual(stats["total_workouts"], 3)
        self.assertEqual(stats["first_workout"], "2024-03-04T09:00:00+00:00")
        self.assertEqual(stats["last_workout"], "2024-03-11T09:00:00+00:00")
        self.assertEqual(stats["workouts_by_type"], {"Upper": 2, "Lower": 1})


if __name__ == "__main__":
    unittest.main()
