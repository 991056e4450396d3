import datetime
import os
import sys
import unittest

import requests
from fastapi.testclient import TestClient

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from client import ApiError, AuthenticationError, FitnessClient, MalformedResponseError
from config import YamlConfig
from rest_api import FitnessAPI
from schemas import WeightGoalInput, WeightLogInput, WorkoutTemplateInput
from session import AuthSession

NOW = datetime.datetime(2026, 10, 17, 12, 0, tzinfo=datetime.timezone.utc)


class FailingHttp:
    def request(self, method, url, **kwargs):
        raise requests.ConnectionError("connection refused")


class GarbageResponse:
    status_code = 200

    def json(self):
        return {"workouts": "not a list"}


class GarbageHttp:
    def request(self, method, url, **kwargs):
        return GarbageResponse()


class ClientTest(unittest.TestCase):
    def setUp(self) -> None:
        os.environ.pop("ENCRYPT_SETTINGS", None)
        self.db_path = "test_fitdash_client.db"
        self.config_path = "test_fitdash_client.yaml"
        for path in (self.db_path, self.config_path):
            if os.path.exists(path):
                os.remove(path)
        self.api = FitnessAPI(db_path=self.db_path, clock=lambda: NOW)
        self.session = AuthSession(YamlConfig(self.config_path))
        self.client = FitnessClient(
            base_url="http://testserver/api/",
            auth=self.session,
            http=TestClient(self.api.app),
        )
        self.session.register(self.client, "Alex", "alex@example.com", "secret1", "secret1")

    def tearDown(self) -> None:
        for path in (self.db_path, self.config_path):
            if os.path.exists(path):
                os.remove(path)

    def test_register_stores_token(self) -> None:
        self.assertTrue(self.session.is_authenticated)
        self.assertEqual(self.client.profile().email, "alex@example.com")
        self.assertEqual(self.client.current_user().name, "Alex")

    def test_workout_logs(self) -> None:
        bench = next(
            e for e in self.client.exercises(search="Bench Press").exercises
            if e.name == "Bench Press"
        )
        entry = self.client.log_workout(
            {
                "exercise": bench.id,
                "startTime": "2026-10-12T08:00:00Z",
                "totalDuration": 900,
                "sets": [{"setNumber": 1, "weight": 60, "reps": 8}],
            }
        )
        self.assertEqual(entry.exercise_name, "Bench Press")
        page = self.client.workout_logs(
            start_date=datetime.datetime(2026, 10, 1),
            end_date=NOW,
            limit=5,
            exercise_id="",
        )
        self.assertEqual(page.pagination.total, 1)
        self.assertEqual(page.workouts[0].id, entry.id)
        self.assertEqual(self.client.workout_log(entry.id).total_duration, 900)

        stats = self.client.dashboard_stats()
        self.assertEqual(stats.workouts_this_month, 1)
        self.assertEqual(stats.total_weight_lifted, 480)

        self.client.delete_workout_log(entry.id)
        with self.assertRaises(ApiError) as ctx:
            self.client.workout_log(entry.id)
        self.assertEqual(ctx.exception.status_code, 404)
        self.assertEqual(ctx.exception.message, "Workout log not found")

    def test_weight_and_goal(self) -> None:
        self.assertIsNone(self.client.weight_goal())
        entry = self.client.log_weight(
            WeightLogInput(weight=81.5, unit="kg", date=datetime.datetime(2026, 10, 10))
        )
        self.client.log_weight({"weight": 80.0, "date": "2026-10-16T07:00:00Z"})
        entries = self.client.weight_logs()
        self.assertEqual([e.weight for e in entries], [80.0, 81.5])
        self.assertEqual(len(self.client.weight_logs(limit=1)), 1)
        updated = self.client.update_weight_log(entry.id, {"notes": "morning"})
        self.assertEqual(updated.notes, "morning")
        self.assertEqual(self.client.weight_stats().weight_change, -1.5)

        goal = self.client.set_weight_goal(
            WeightGoalInput(target_weight=75, target_date=datetime.datetime(2026, 12, 31))
        )
        self.assertEqual(goal.target_weight, 75)
        self.assertTrue(self.client.complete_weight_goal().completed)
        self.client.delete_weight_goal()
        self.assertIsNone(self.client.weight_goal())

        self.client.delete_weight_log(entry.id)
        self.assertEqual(len(self.client.weight_logs()), 1)

    def test_exercises(self) -> None:
        page = self.client.exercises(category="Cardio", limit=50)
        self.assertTrue(all(e.category == "Cardio" for e in page.exercises))
        custom = self.client.create_exercise({"name": "Sled Push", "category": "Conditioning"})
        self.assertTrue(custom.is_custom)
        self.assertEqual(self.client.update_exercise(custom.id, {"difficulty": "Advanced"}).difficulty, "Advanced")
        self.client.add_favorite(custom.id)
        self.assertEqual([e.id for e in self.client.favorites()], [custom.id])
        self.client.remove_favorite(custom.id)
        self.assertEqual(self.client.favorites(), [])
        self.client.add_recent_exercise(custom.id)
        self.assertEqual([e.name for e in self.client.recent_exercises()], ["Sled Push"])
        self.client.delete_exercise(custom.id)
        with self.assertRaises(ApiError):
            self.client.exercise(custom.id)

    def test_templates(self) -> None:
        created = self.client.create_template(
            WorkoutTemplateInput(plan_name="Full Body", tags=["beginner"])
        )
        self.assertEqual(self.client.template(created.id).plan_name, "Full Body")
        updated = self.client.update_template(created.id, {"time": "45 min"})
        self.assertEqual(updated.time, "45 min")
        self.assertEqual([t.id for t in self.client.templates()], [created.id])
        self.client.delete_template(created.id)
        self.assertEqual(self.client.templates(), [])

    def test_rejected_token_logs_out(self) -> None:
        self.api.users.revoke_token(self.session.token)
        with self.assertRaises(AuthenticationError) as ctx:
            self.client.dashboard_stats()
        self.assertEqual(ctx.exception.status_code, 401)
        self.assertFalse(self.session.is_authenticated)
        self.assertNotIn("token", YamlConfig(self.config_path).load())

    def test_network_error(self) -> None:
        client = FitnessClient(base_url="http://localhost:1/api", http=FailingHttp())
        with self.assertRaises(ApiError) as ctx:
            client.weight_logs()
        self.assertTrue(ctx.exception.message.startswith("Network error"))
        self.assertIsNone(ctx.exception.status_code)

    def test_malformed_response(self) -> None:
        client = FitnessClient(base_url="http://localhost:1/api", http=GarbageHttp())
        with self.assertRaises(MalformedResponseError):
            client.workout_logs()


if __name__ == "__main__":
    unittest.main()
