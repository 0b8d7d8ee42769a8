import os
import sys
import unittest
from fastapi.testclient import TestClient

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from client import WorkoutClient
from rest_api import WorkoutAPI
from session_models import HistoryExercise, HistoryRecord, HistorySet
from session_timer import ManualTimer


class ClientTest(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_client.db"
        self.yaml_path = "test_client.yaml"
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)
        self.api = WorkoutAPI(
            db_path=self.db_path, yaml_path=self.yaml_path, timer_factory=ManualTimer
        )
        # TestClient speaks the requests-style interface the client uses
        self.client = WorkoutClient(
            base_url="http://testserver", session=TestClient(self.api.app)
        )

    def tearDown(self) -> None:
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)

    def test_workout_roundtrip(self) -> None:
        self.assertEqual(self.client.health()["status"], "ok")
        self.assertIsNone(self.client.get_session())
        session = self.client.start_workout(1, "Lower")
        self.assertEqual(session["dayType"], "Lower")
        self.client.update_set(0, 0, weight=225, reps=5)
        self.assertTrue(self.client.log_set(0, 0)["logged"])
        self.assertFalse(self.client.edit_set(0, 0)["logged"])
        self.client.log_set(0, 0)
        self.assertEqual(self.client.resume()["week"], 1)

        result = self.client.finish_workout(confirm=True)
        self.assertTrue(result["key"].startswith("week-1-lower-"))
        self.assertEqual(self.client.week_completion(1)["completed"], 1)
        self.assertEqual(len(self.client.history()), 1)
        progress = self.client.progress("Squat")
        self.assertEqual(progress["summary"]["current_weight"], 225.0)
        self.assertIn("Squat", self.client.progress())

    def test_progress_for_name_with_reserved_characters(self) -> None:
        name = "Cable Fly 1/2 #drop?"
        self.api.history.save(
            HistoryRecord(
                week=1,
                day_type="Upper",
                completed_at="2024-03-04T10:00:00+00:00",
                exercises=[
                    HistoryExercise(name=name, sets=[HistorySet(weight=40, reps=12)])
                ],
            )
        )
        progress = self.client.progress(name)
        self.assertEqual(progress["exercise"], name)
        self.assertEqual(progress["summary"]["current_weight"], 40.0)

    def test_cancel(self) -> None:
        self.client.start_workout(1, "Upper")
        self.assertFalse(self.client.cancel_workout())
        self.assertTrue(self.client.cancel_workout(confirm=True))
        self.assertIsNone(self.client.get_session())


if __name__ == "__main__":
    unittest.main()
