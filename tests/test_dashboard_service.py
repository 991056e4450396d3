import datetime
import os
import sys
import threading
import unittest

from fastapi.testclient import TestClient

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from client import ApiError, FitnessClient
from config import YamlConfig
from dashboard_service import (
    DashboardService,
    FetchGuard,
    ViewState,
    WeightTrackingService,
    WorkoutHistoryService,
)
from rest_api import FitnessAPI
from session import AuthSession

UTC = datetime.timezone.utc
NOW = datetime.datetime(2026, 10, 17, 12, 0, tzinfo=UTC)


class BrokenClient:
    auth = None

    def dashboard_stats(self):
        raise ApiError("boom", 500)

    def workout_logs(self, **kwargs):
        raise ApiError("boom", 500)

    def weight_logs(self):
        raise ApiError("boom", 500)


class ServiceTestCase(unittest.TestCase):
    def setUp(self) -> None:
        os.environ.pop("ENCRYPT_SETTINGS", None)
        self.db_path = "test_fitdash_services.db"
        self.config_path = "test_fitdash_services.yaml"
        for path in (self.db_path, self.config_path):
            if os.path.exists(path):
                os.remove(path)
        self.api = FitnessAPI(db_path=self.db_path, clock=lambda: NOW)
        self.session = AuthSession(YamlConfig(self.config_path))
        self.client = FitnessClient(
            base_url="http://testserver/api",
            auth=self.session,
            http=TestClient(self.api.app),
        )
        self.session.register(self.client, "Alex", "alex@example.com", "secret1")
        self.bench = next(
            e.id for e in self.client.exercises(search="Bench Press").exercises
            if e.name == "Bench Press"
        )

    def tearDown(self) -> None:
        for path in (self.db_path, self.config_path):
            if os.path.exists(path):
                os.remove(path)

    def log(self, start: str, duration: float = 1800, exercise=None) -> None:
        self.client.log_workout(
            {
                "exercise": exercise or self.bench,
                "startTime": start,
                "totalDuration": duration,
                "sets": [{"setNumber": 1, "weight": 50, "reps": 10}],
            }
        )


class DashboardServiceTest(ServiceTestCase):
    def test_empty_dashboard(self) -> None:
        state = DashboardService(self.client).load_dashboard()
        self.assertTrue(state.ok)
        self.assertTrue(state.empty)

    def test_dashboard(self) -> None:
        self.log("2026-10-12T09:00:00Z", 3900)
        state = DashboardService(self.client).load_dashboard()
        self.assertFalse(state.empty)
        self.assertEqual(state.data["avg_duration"], "1h 5m")
        self.assertEqual(state.data["activity"][1], {"day": "Mon", "workouts": 1})
        self.assertEqual(state.data["progress"][0]["volume"], 500)
        self.assertEqual(state.data["recent"][0]["exercise"], "Bench Press")

    def test_dashboard_error(self) -> None:
        state = DashboardService(BrokenClient()).load_dashboard()
        self.assertFalse(state.ok)
        self.assertEqual(state.error, "Failed to load dashboard statistics: boom")

    def test_quick_stats(self) -> None:
        self.log("2026-10-13T09:00:00Z", 1800)
        self.log("2026-10-06T09:00:00Z", 2400)
        self.log("2026-09-15T09:00:00Z", 600)
        self.log("2026-09-16T09:00:00Z", 600)
        state = DashboardService(self.client).load_quick_stats(NOW)
        self.assertTrue(state.ok)
        stats = state.data
        self.assertEqual(
            (stats["this_month"], stats["last_month"], stats["this_week"], stats["last_week"]),
            (2, 2, 1, 1),
        )
        self.assertEqual(stats["total_lifted_weight"], 1000)
        self.assertEqual(stats["avg_duration_minutes"], 35)
        self.assertEqual(stats["month_change"], "0%")
        self.assertTrue(stats["week_positive"])

    def test_quick_stats_without_workouts(self) -> None:
        state = DashboardService(self.client).load_quick_stats(NOW)
        self.assertTrue(state.empty)
        self.assertEqual(state.data["this_month"], 0)

    def test_quick_stats_requires_login(self) -> None:
        self.session.logout()
        state = DashboardService(self.client).load_quick_stats(NOW)
        self.assertEqual(state.error, "User not properly authenticated")


class WorkoutHistoryServiceTest(ServiceTestCase):
    def test_pages_and_search(self) -> None:
        deadlift = next(
            e.id for e in self.client.exercises(search="Deadlift").exercises
            if e.name == "Deadlift"
        )
        for day in range(1, 4):
            self.log(f"2026-10-0{day}T09:00:00Z")
        self.log("2026-10-05T09:00:00Z", exercise=deadlift)
        history = WorkoutHistoryService(self.client, per_page=3)
        state = history.load_page(1)
        self.assertEqual(state.data["pages"], 2)
        self.assertEqual(state.data["total"], 4)
        self.assertEqual(state.data["workouts"][0].exercise_name, "Deadlift")

        state = history.load_page(1, search="dead")
        self.assertEqual(len(state.data["workouts"]), 1)

        state = history.load_page(
            1, start=datetime.date(2026, 10, 2), end=datetime.date(2026, 10, 3)
        )
        self.assertEqual(state.data["total"], 2)

        with self.assertRaises(ValueError):
            history.load_page(0)

    def test_empty_history(self) -> None:
        state = WorkoutHistoryService(self.client).load_page(1)
        self.assertTrue(state.empty)
        self.assertEqual(state.data["pages"], 1)

    def test_unknown_exercise_name(self) -> None:
        history = WorkoutHistoryService(self.client)
        self.assertEqual(history.exercise_name("9999"), "Unknown Exercise")
        self.assertEqual(history.exercise_name(None), "Unknown Exercise")
        self.assertEqual(history.exercise_name(self.bench), "Bench Press")

    def test_history_error(self) -> None:
        state = WorkoutHistoryService(BrokenClient()).load_page(1)
        self.assertEqual(state.error, "Failed to load workout history")


class WeightTrackingServiceTest(ServiceTestCase):
    def test_load_with_goal(self) -> None:
        tracker = WeightTrackingService(self.client, period=30)
        for days_ago, weight in ((20, 82.0), (10, 81.0), (1, 80.0)):
            tracker.log_weight(weight, "kg", date=NOW - datetime.timedelta(days=days_ago))
        self.client.set_weight_goal(
            {"targetWeight": 78, "targetDate": "2026-10-27T12:00:00Z", "unit": "kg"}
        )
        state = tracker.load(NOW)
        self.assertTrue(state.ok)
        self.assertEqual([e.weight for e in state.data["entries"]], [80.0, 81.0, 82.0])
        self.assertEqual([p["weight"] for p in state.data["chart"]], [82.0, 81.0, 80.0])
        self.assertEqual(state.data["moving_average"], [])
        self.assertEqual(state.data["bounds"], (76.0, 84.0))
        projection = state.data["projection"]
        self.assertEqual(projection["days_remaining"], 10)
        self.assertEqual(projection["daily_calories"], -1540)
        self.assertTrue(projection["is_deficit"])

    def test_completed_goal_has_no_projection(self) -> None:
        tracker = WeightTrackingService(self.client)
        tracker.log_weight("80", date=NOW)
        self.client.set_weight_goal({"targetWeight": 78, "targetDate": "2026-12-01T00:00:00Z"})
        self.client.complete_weight_goal()
        state = tracker.load(NOW)
        self.assertIsNone(state.data["projection"])
        self.assertEqual(state.data["bounds"], (78.0, 82.0))

    def test_empty_weights(self) -> None:
        tracker = WeightTrackingService(self.client)
        state = tracker.load(NOW)
        self.assertTrue(state.empty)
        with self.assertRaisesRegex(ValueError, "No weight data to export"):
            tracker.export_csv()

    def test_log_weight_validation(self) -> None:
        tracker = WeightTrackingService(self.client)
        for bad in ("", "abc", 0, -5):
            with self.assertRaisesRegex(ValueError, "Please enter a valid weight"):
                tracker.log_weight(bad)

    def test_export(self) -> None:
        tracker = WeightTrackingService(self.client)
        tracker.log_weight(81, date=datetime.datetime(2026, 10, 2, tzinfo=UTC))
        tracker.log_weight(80.5, notes="new scale", date=datetime.datetime(2026, 10, 9, tzinfo=UTC))
        export = tracker.export_csv(datetime.date(2026, 10, 17))
        self.assertEqual(export["filename"], "weight-data-2026-10-17.csv")
        self.assertEqual(
            export["content"].splitlines(),
            ["Date,Weight,Unit,Notes", "2026-10-02,81,kg,", "2026-10-09,80.5,kg,new scale"],
        )

    def test_invalid_period(self) -> None:
        with self.assertRaises(ValueError):
            WeightTrackingService(self.client, period=14)

    def test_load_error(self) -> None:
        state = WeightTrackingService(BrokenClient()).load(NOW)
        self.assertEqual(state.error, "Failed to load weight logs. Please try again later.")


class FetchGuardTest(unittest.TestCase):
    def test_result_delivered(self) -> None:
        received = []
        guard = FetchGuard()
        guard.start(lambda: 42, received.append).result(timeout=5)
        guard.close()
        self.assertEqual(received, [42])

    def test_cancelled_result_discarded(self) -> None:
        release = threading.Event()
        received = []
        guard = FetchGuard()

        def slow_fetch():
            release.wait(5)
            return "late"

        future = guard.start(slow_fetch, received.append)
        guard.cancel()
        release.set()
        if not future.cancelled():
            self.assertIsNone(future.result(timeout=5))
        self.assertTrue(guard.cancelled)
        self.assertEqual(received, [])

    def test_view_state(self) -> None:
        self.assertTrue(ViewState(data=1).ok)
        self.assertFalse(ViewState.failed("nope").ok)


if __name__ == "__main__":
    unittest.main()
