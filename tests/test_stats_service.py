import datetime
import os
import sys
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from schemas import DashboardStats, Pagination, WorkoutLogEntry, WorkoutLogPage
from stats_service import StatisticsService

UTC = datetime.timezone.utc
# a Saturday
NOW = datetime.datetime(2026, 10, 17, 18, 0, tzinfo=UTC)


def log(log_id: str, start: datetime.datetime, duration: float = 1800, sets=None, name=None):
    return WorkoutLogEntry.model_validate(
        {
            "_id": log_id,
            "startTime": start.isoformat(),
            "totalDuration": duration,
            "sets": sets if sets is not None else [{"weight": 50, "reps": 10}],
            "exercise": {"_id": "ex1", "name": name or "Bench Press"},
        }
    )


class StatisticsServiceTest(unittest.TestCase):
    def setUp(self) -> None:
        self.stats = StatisticsService()

    def test_empty_input(self) -> None:
        result = self.stats.dashboard_stats([], NOW)
        self.assertEqual(result.workouts_this_month, 0)
        self.assertEqual(result.avg_workout_duration, 0)
        self.assertEqual(result.total_weight_lifted, 0)
        self.assertEqual(result.recent_workouts, [])
        self.assertEqual(result.activity_by_day(), [0] * 7)
        self.assertEqual(len(result.weekly_activity), 7)
        self.assertFalse(self.stats.has_data(result))

    def test_dashboard_stats(self) -> None:
        entries = [
            log("a", datetime.datetime(2026, 10, 11, 9, tzinfo=UTC), 1200),  # Sunday
            log("b", datetime.datetime(2026, 10, 12, 9, tzinfo=UTC), 2400),  # Monday
            log("c", datetime.datetime(2026, 9, 28, 9, tzinfo=UTC), 3600),  # Monday
        ]
        result = self.stats.dashboard_stats(entries, NOW)
        self.assertEqual(result.workouts_this_month, 2)
        self.assertEqual(result.avg_workout_duration, 2400)
        self.assertEqual(result.total_weight_lifted, 1500)
        self.assertEqual(result.activity_by_day(), [1, 2, 0, 0, 0, 0, 0])
        self.assertEqual([w.id for w in result.recent_workouts], ["b", "a", "c"])
        self.assertTrue(self.stats.has_data(result))

    def test_recent_workouts_limited(self) -> None:
        entries = [log(str(i), NOW - datetime.timedelta(days=i)) for i in range(8)]
        result = self.stats.dashboard_stats(entries, NOW)
        self.assertEqual([w.id for w in result.recent_workouts], ["0", "1", "2", "3", "4"])

    def test_unparseable_sets_count_as_zero(self) -> None:
        entry = log("a", NOW, sets=[{"weight": "50", "reps": "10"}, {"weight": "bad", "reps": "8"}])
        self.assertEqual(StatisticsService.workout_volume(entry), 500)

    def test_null_and_non_numeric_sets_count_as_zero(self) -> None:
        entry = log(
            "a",
            NOW,
            sets=[
                {"weight": "50", "reps": "10"},
                {"weight": None, "reps": "8"},
                {"weight": True, "reps": 5},
                {"weight": 20, "reps": [4]},
            ],
        )
        self.assertEqual(StatisticsService.workout_volume(entry), 500)
        stats = self.stats.dashboard_stats([entry], NOW)
        self.assertEqual(stats.total_weight_lifted, 500)

    def test_day_bucket(self) -> None:
        self.assertEqual(StatisticsService.day_bucket(datetime.datetime(2026, 10, 11)), 1)
        self.assertEqual(StatisticsService.day_bucket(datetime.datetime(2026, 10, 17)), 7)

    def test_date_windows(self) -> None:
        windows = StatisticsService.date_windows(NOW)
        this_month, now = windows["this_month"]
        self.assertEqual(this_month, datetime.datetime(2026, 10, 1, tzinfo=UTC))
        self.assertEqual(now, NOW)
        start, end = windows["last_month"]
        self.assertEqual(start, datetime.datetime(2026, 9, 1, tzinfo=UTC))
        self.assertEqual(end, datetime.datetime(2026, 9, 30, 23, 59, 59, 999000, tzinfo=UTC))
        week_start, _ = windows["this_week"]
        self.assertEqual(week_start, datetime.datetime(2026, 10, 12, tzinfo=UTC))
        start, end = windows["last_week"]
        self.assertEqual(start, datetime.datetime(2026, 10, 5, tzinfo=UTC))
        self.assertEqual(end, datetime.datetime(2026, 10, 11, 23, 59, 59, 999000, tzinfo=UTC))

    def test_date_windows_on_monday(self) -> None:
        monday = datetime.datetime(2026, 10, 12, 8, tzinfo=UTC)
        week_start, _ = StatisticsService.date_windows(monday)["this_week"]
        self.assertEqual(week_start, datetime.datetime(2026, 10, 12, tzinfo=UTC))

    def test_quick_stats(self) -> None:
        month = WorkoutLogPage(
            workouts=[log("a", NOW, 1800), log("b", NOW, 2700, sets=[{"weight": "20.5", "reps": 3}])],
            pagination=Pagination(total=8),
        )
        result = StatisticsService.quick_stats(
            month,
            WorkoutLogPage(pagination=Pagination(total=4)),
            WorkoutLogPage(pagination=Pagination(total=3)),
            WorkoutLogPage(pagination=Pagination(total=4)),
        )
        self.assertEqual(result["this_month"], 8)
        self.assertEqual(result["total_lifted_weight"], 562)
        self.assertEqual(result["avg_duration_minutes"], 38)
        self.assertEqual(result["month_change"], "100%")
        self.assertTrue(result["month_positive"])
        self.assertEqual(result["week_change"], "25%")
        self.assertFalse(result["week_positive"])

    def test_empty_quick_stats(self) -> None:
        result = StatisticsService.empty_quick_stats()
        self.assertEqual(result["this_month"], 0)
        self.assertEqual(result["avg_duration_minutes"], 0)
        self.assertEqual(result["month_change"], "0%")

    def test_progress_data_oldest_first(self) -> None:
        recent = [log("b", NOW, sets=[{"weight": 10, "reps": 10}]), log("a", NOW - datetime.timedelta(days=2))]
        points = StatisticsService.progress_data(recent)
        self.assertEqual(points[0], {"date": "Oct 15", "volume": 500})
        self.assertEqual(points[1], {"date": "Oct 17", "volume": 100})

    def test_workout_summary(self) -> None:
        summary = StatisticsService.workout_summary(log("a", NOW, 125))
        self.assertEqual(summary["exercise"], "Bench Press")
        self.assertEqual(summary["clock"], "2:05")
        self.assertEqual(summary["duration"], "2 min")
        self.assertEqual(summary["sets"][0]["volume"], 500)

    def test_filter_by_name(self) -> None:
        entries = [log("a", NOW, name="Bench Press"), log("b", NOW, name="Deadlift")]
        self.assertEqual([e.id for e in StatisticsService.filter_by_name(entries, "dead")], ["b"])
        self.assertEqual(len(StatisticsService.filter_by_name(entries, "  ")), 2)

    def test_page_count(self) -> None:
        self.assertEqual(StatisticsService.page_count(41, 20), 3)
        self.assertEqual(StatisticsService.page_count(0, 20), 0)
        with self.assertRaises(ValueError):
            StatisticsService.page_count(5, 0)

    def test_has_data_with_only_recent(self) -> None:
        stats = DashboardStats(recent_workouts=[log("a", NOW)])
        self.assertTrue(StatisticsService.has_data(stats))


if __name__ == "__main__":
    unittest.main()
