import os
import sys
import unittest

from pydantic import ValidationError

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from schemas import (
    DashboardStats,
    Exercise,
    User,
    WeightEntryList,
    WorkoutLogEntry,
    WorkoutLogInput,
)


class SchemasTest(unittest.TestCase):
    def test_workout_log_with_populated_exercise(self) -> None:
        entry = WorkoutLogEntry.model_validate(
            {
                "_id": 7,
                "exercise": {"_id": "ex1", "name": "Squat"},
                "startTime": "2026-10-10T08:00:00Z",
                "totalDuration": 1200,
                "sets": [{"setNumber": 1, "weight": 100, "reps": 5}],
            }
        )
        self.assertEqual(entry.id, "7")
        self.assertEqual(entry.exercise_id, "ex1")
        self.assertEqual(entry.exercise_name, "Squat")
        self.assertTrue(entry.sets[0].completed)

    def test_workout_log_keeps_unusable_set_values(self) -> None:
        entry = WorkoutLogEntry.model_validate(
            {
                "_id": "a",
                "startTime": "2026-10-10T08:00:00Z",
                "sets": [
                    {"weight": "50", "reps": "10"},
                    {"weight": None, "reps": "8"},
                    {"weight": True, "reps": [3]},
                    {"weight": {"kg": 20}, "reps": None},
                ],
            }
        )
        self.assertEqual(len(entry.sets), 4)
        self.assertIsNone(entry.sets[1].weight)
        self.assertEqual(entry.sets[2].reps, [3])

    def test_workout_log_with_exercise_id(self) -> None:
        entry = WorkoutLogEntry.model_validate(
            {"_id": "a", "exerciseId": "ex9", "startTime": "2026-10-10T08:00:00"}
        )
        self.assertEqual(entry.exercise_id, "ex9")
        self.assertIsNone(entry.exercise_name)
        self.assertIsNotNone(entry.start_time.tzinfo)

    def test_workout_log_input_wire_names(self) -> None:
        payload = WorkoutLogInput(
            exercise_id="ex1",
            start_time="2026-10-10T08:00:00Z",
            total_duration=60,
            rest_time=18,
            active_time=42,
        ).to_wire()
        self.assertEqual(payload["exercise"], "ex1")
        self.assertEqual(payload["totalDuration"], 60)
        self.assertEqual(payload["restTime"], 18)
        self.assertNotIn("notes", payload)

    def test_negative_duration_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            WorkoutLogInput(start_time="2026-10-10T08:00:00Z", total_duration=-1)

    def test_activity_by_day_fills_gaps(self) -> None:
        stats = DashboardStats.model_validate(
            {"weeklyActivity": [{"_id": 2, "count": 3}, {"_id": 7, "count": 1}]}
        )
        self.assertEqual(stats.activity_by_day(), [0, 3, 0, 0, 0, 0, 1])

    def test_activity_day_out_of_range(self) -> None:
        with self.assertRaises(ValidationError):
            DashboardStats.model_validate({"weeklyActivity": [{"_id": 8, "count": 1}]})

    def test_weight_entries_require_positive_weight(self) -> None:
        with self.assertRaises(ValidationError):
            WeightEntryList.validate_python([{"date": "2026-10-10T00:00:00Z", "weight": 0}])

    def test_weight_unit_restricted(self) -> None:
        with self.assertRaises(ValidationError):
            WeightEntryList.validate_python(
                [{"date": "2026-10-10T00:00:00Z", "weight": 70, "unit": "stone"}]
            )

    def test_exercise_defaults(self) -> None:
        exercise = Exercise.model_validate({"_id": 3, "name": "Plank"})
        self.assertEqual(exercise.id, "3")
        self.assertEqual(exercise.target_muscles.primary, [])
        self.assertFalse(exercise.is_custom)

    def test_user_discord_profile(self) -> None:
        user = User.model_validate(
            {
                "_id": "u1",
                "name": "Sam",
                "authProvider": "discord",
                "discord": {"id": 42, "username": "sam", "avatar": "abc"},
            }
        )
        self.assertEqual(user.discord.id, "42")
        self.assertEqual(user.auth_provider, "discord")


if __name__ == "__main__":
    unittest.main()
