import datetime
import os
import random
import sys
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from avatar_service import AvatarService
from schemas import User, WorkoutLogEntry
from seed_sample_data import generate_test_workouts, random_sets, sample_dashboard_stats
from stats_service import StatisticsService

NOW = datetime.datetime(2026, 10, 17, 12, 0, tzinfo=datetime.timezone.utc)


class RecordingClient:
    def __init__(self) -> None:
        self.logged = []
        self.recent = []

    def log_workout(self, payload):
        self.logged.append(payload)
        data = payload.to_wire()
        data["_id"] = str(len(self.logged))
        return WorkoutLogEntry.model_validate(data)

    def add_recent_exercise(self, exercise_id):
        self.recent.append(exercise_id)
        return {}


class SeedSampleDataTest(unittest.TestCase):
    def test_random_sets_ranges(self) -> None:
        rng = random.Random(7)
        for _ in range(20):
            sets = random_sets(rng)
            self.assertTrue(3 <= len(sets) <= 5)
            for s in sets:
                self.assertTrue(10 <= int(s["weight"]) <= 99)
                self.assertTrue(6 <= int(s["reps"]) <= 15)

    def test_generate_test_workouts(self) -> None:
        client = RecordingClient()
        created = generate_test_workouts(client, "ex1", count=4, rng=random.Random(1), now=NOW)
        self.assertEqual(len(created), 4)
        self.assertEqual(client.recent, ["ex1"] * 4)
        for i, payload in enumerate(client.logged, start=1):
            self.assertEqual(payload.notes, f"Test workout #{i}")
            self.assertTrue(1200 <= payload.total_duration <= 3540)
            self.assertEqual(payload.total_duration % 60, 0)
            self.assertLessEqual(payload.start_time, NOW)
            self.assertGreaterEqual(payload.start_time, NOW - datetime.timedelta(days=29))

    def test_generate_requires_exercise(self) -> None:
        with self.assertRaisesRegex(ValueError, "Please select an exercise first"):
            generate_test_workouts(RecordingClient(), "", count=1)
        with self.assertRaises(ValueError):
            generate_test_workouts(RecordingClient(), "ex1", count=0)

    def test_sample_dashboard_stats(self) -> None:
        stats = sample_dashboard_stats(NOW)
        self.assertEqual(stats.workouts_this_month, 12)
        self.assertEqual(stats.activity_by_day(), [2, 3, 1, 2, 3, 1, 0])
        self.assertEqual(len(stats.recent_workouts), 5)
        self.assertEqual(StatisticsService.workout_volume(stats.recent_workouts[0]), 1600)
        self.assertTrue(StatisticsService.has_data(stats))
        self.assertIn("demo data", stats.message)


class AvatarServiceTest(unittest.TestCase):
    def test_discord_avatar(self) -> None:
        user = User.model_validate(
            {"_id": "u1", "name": "Sam", "discord": {"id": "123", "username": "sam", "avatar": "abc"}}
        )
        self.assertEqual(
            AvatarService.avatar_url(user), "https://cdn.discordapp.com/avatars/123/abc.png"
        )

    def test_stored_avatar(self) -> None:
        user = User(id="u1", name="Sam", avatar_url="https://example.com/me.png")
        self.assertEqual(AvatarService.avatar_url(user), "https://example.com/me.png")

    def test_generated_avatar(self) -> None:
        user = User(id="u1", name="Jo Ann")
        self.assertEqual(AvatarService.avatar_url(user), "https://ui-avatars.com/api/?name=Jo%20Ann")
        self.assertEqual(
            AvatarService.avatar_url(User(id="u2", name="")),
            "https://ui-avatars.com/api/?name=User",
        )

    def test_initials(self) -> None:
        self.assertEqual(AvatarService.initials("jo ann smith"), "JA")
        self.assertEqual(AvatarService.initials(""), "U")


if __name__ == "__main__":
    unittest.main()
