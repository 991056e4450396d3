from __future__ import annotations
import datetime
import math
from typing import Dict, Iterable, List, Optional, Tuple

from algorithms import MathTools
from formatters import format_clock, format_date, format_minutes, format_short_date
from schemas import (
    ActivityBucket,
    DashboardStats,
    WorkoutLogEntry,
    WorkoutLogPage,
    WorkoutSet,
)

Window = Tuple[datetime.datetime, datetime.datetime]


class StatisticsService:
    """Compute workout statistics for the dashboard.

    Every method is a pure function of its arguments. ``now`` decides the
    calendar used for month starts and weekday buckets; timestamps are
    converted into its timezone before they are compared.
    """

    RECENT_LIMIT = 5
    DAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")

    def __init__(self, recent_limit: int = RECENT_LIMIT) -> None:
        self.recent_limit = recent_limit

    @staticmethod
    def _reference_time(now: Optional[datetime.datetime] = None) -> datetime.datetime:
        """Return ``now`` as a timezone-aware datetime (local time by default)."""
        if now is None:
            return datetime.datetime.now(datetime.timezone.utc).astimezone()
        if now.tzinfo is None:
            return now.replace(tzinfo=datetime.timezone.utc)
        return now

    @staticmethod
    def _local(ts: datetime.datetime, now: datetime.datetime) -> datetime.datetime:
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=datetime.timezone.utc)
        return ts.astimezone(now.tzinfo)

    @staticmethod
    def day_bucket(ts: datetime.datetime) -> int:
        """Return the weekday bucket of ``ts``: 1 for Sunday through 7 for Saturday."""
        return ts.isoweekday() % 7 + 1

    @staticmethod
    def month_start(now: datetime.datetime) -> datetime.datetime:
        return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

    @staticmethod
    def set_volume(workout_set: WorkoutSet) -> float:
        return MathTools.set_volume(workout_set.weight, workout_set.reps)

    @classmethod
    def workout_volume(cls, entry: WorkoutLogEntry) -> float:
        """Sum of weight times reps over the sets of one workout."""
        return MathTools.volume((s.weight, s.reps) for s in entry.sets)

    @classmethod
    def total_weight_lifted(cls, entries: Iterable[WorkoutLogEntry]) -> float:
        return sum(cls.workout_volume(e) for e in entries)

    @classmethod
    def workouts_this_month(
        cls,
        entries: Iterable[WorkoutLogEntry],
        now: Optional[datetime.datetime] = None,
    ) -> int:
        now = cls._reference_time(now)
        start = cls.month_start(now)
        count = 0
        for e in entries:
            ts = cls._local(e.start_time, now)
            if start <= ts <= now:
                count += 1
        return count

    @staticmethod
    def avg_workout_duration(entries: Iterable[WorkoutLogEntry]) -> float:
        return MathTools.mean([float(e.total_duration) for e in entries])

    @classmethod
    def weekly_activity(
        cls,
        entries: Iterable[WorkoutLogEntry],
        now: Optional[datetime.datetime] = None,
    ) -> List[ActivityBucket]:
        """Count workouts per weekday, always returning all seven buckets."""
        now = cls._reference_time(now)
        counts = {day: 0 for day in range(1, 8)}
        for e in entries:
            counts[cls.day_bucket(cls._local(e.start_time, now))] += 1
        return [ActivityBucket(day=day, count=counts[day]) for day in range(1, 8)]

    def recent_workouts(self, entries: Iterable[WorkoutLogEntry]) -> List[WorkoutLogEntry]:
        ordered = sorted(entries, key=lambda e: e.start_time, reverse=True)
        return ordered[: self.recent_limit]

    def dashboard_stats(
        self,
        entries: Iterable[WorkoutLogEntry],
        now: Optional[datetime.datetime] = None,
    ) -> DashboardStats:
        """Return dashboard metrics for the workouts of the queried window.

        An empty window is the "no data" state: zero counts, seven empty
        weekday buckets and no recent workouts.
        """
        now = self._reference_time(now)
        entries = list(entries)
        return DashboardStats(
            workouts_this_month=self.workouts_this_month(entries, now),
            avg_workout_duration=self.avg_workout_duration(entries),
            weekly_activity=self.weekly_activity(entries, now),
            total_weight_lifted=self.total_weight_lifted(entries),
            recent_workouts=self.recent_workouts(entries),
        )

    @staticmethod
    def has_data(stats: DashboardStats) -> bool:
        return (
            stats.workouts_this_month > 0
            or stats.avg_workout_duration > 0
            or stats.total_weight_lifted > 0
            or len(stats.recent_workouts) > 0
        )

    @staticmethod
    def percent_change(current: float, previous: float) -> str:
        return MathTools.percent_change(current, previous)

    @staticmethod
    def is_positive_change(current: float, previous: float) -> bool:
        return MathTools.is_positive_change(current, previous)

    @classmethod
    def date_windows(cls, now: Optional[datetime.datetime] = None) -> Dict[str, Window]:
        """Return this/last month and this/last week ranges; weeks start on Monday."""
        now = cls._reference_time(now)
        this_month_start = cls.month_start(now)
        last_month_end = this_month_start - datetime.timedelta(microseconds=1000)
        last_month_start = cls.month_start(last_month_end)
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
        this_week_start = midnight - datetime.timedelta(days=now.weekday())
        last_week_start = this_week_start - datetime.timedelta(days=7)
        last_week_end = this_week_start - datetime.timedelta(microseconds=1000)
        return {
            "this_month": (this_month_start, now),
            "last_month": (last_month_start, last_month_end),
            "this_week": (this_week_start, now),
            "last_week": (last_week_start, last_week_end),
        }

    @classmethod
    def quick_stats(
        cls,
        this_month: WorkoutLogPage,
        last_month: WorkoutLogPage,
        this_week: WorkoutLogPage,
        last_week: WorkoutLogPage,
    ) -> Dict[str, object]:
        """Summarize the four period queries behind the quick stat cards.

        Counts come from the server-side pagination totals; lifted weight
        and average duration are computed from this month's workouts.
        """
        month_logs = this_month.workouts
        total_duration = sum(float(e.total_duration) for e in month_logs)
        avg_minutes = 0
        if month_logs:
            avg_minutes = MathTools.round_half_up(total_duration / len(month_logs) / 60)
        counts = {
            "this_month": this_month.pagination.total,
            "last_month": last_month.pagination.total,
            "this_week": this_week.pagination.total,
            "last_week": last_week.pagination.total,
        }
        return {
            **counts,
            "total_lifted_weight": MathTools.round_half_up(
                cls.total_weight_lifted(month_logs)
            ),
            "avg_duration_minutes": avg_minutes,
            "month_change": cls.percent_change(counts["this_month"], counts["last_month"]),
            "month_positive": cls.is_positive_change(
                counts["this_month"], counts["last_month"]
            ),
            "week_change": cls.percent_change(counts["this_week"], counts["last_week"]),
            "week_positive": cls.is_positive_change(
                counts["this_week"], counts["last_week"]
            ),
        }

    @classmethod
    def empty_quick_stats(cls) -> Dict[str, object]:
        empty = WorkoutLogPage()
        return cls.quick_stats(empty, empty, empty, empty)

    @classmethod
    def progress_data(cls, recent: List[WorkoutLogEntry]) -> List[Dict[str, object]]:
        """Per-workout volume for the progress chart, oldest first."""
        points = []
        for i, workout in enumerate(recent):
            label = format_short_date(workout.start_time) if workout.start_time else f"Workout {i + 1}"
            points.append({"date": label, "volume": cls.workout_volume(workout)})
        points.reverse()
        return points

    @classmethod
    def workout_summary(cls, entry: WorkoutLogEntry) -> Dict[str, object]:
        """Detail view of a single workout with per-set volume."""
        rows = []
        for s in entry.sets:
            rows.append(
                {
                    "set": s.set_number,
                    "weight": s.weight,
                    "reps": s.reps,
                    "volume": cls.set_volume(s),
                    "completed": s.completed,
                }
            )
        return {
            "id": entry.id,
            "exercise": entry.exercise_name or entry.exercise_id or "Unknown exercise",
            "date": format_date(entry.start_time),
            "duration": format_minutes(entry.total_duration),
            "clock": format_clock(entry.total_duration),
            "volume": cls.workout_volume(entry),
            "sets": rows,
            "notes": entry.notes or "",
        }

    @staticmethod
    def filter_by_name(
        entries: Iterable[WorkoutLogEntry], term: Optional[str]
    ) -> List[WorkoutLogEntry]:
        """Case-insensitive exercise name search; a blank term keeps everything."""
        entries = list(entries)
        if not term or not term.strip():
            return entries
        needle = term.strip().lower()
        return [e for e in entries if needle in (e.exercise_name or "").lower()]

    @staticmethod
    def page_count(total: int, per_page: int) -> int:
        if per_page <= 0:
            raise ValueError("per_page must be positive")
        return math.ceil(total / per_page)
