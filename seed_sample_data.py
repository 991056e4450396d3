from __future__ import annotations
import datetime
import logging
import random
from typing import TYPE_CHECKING, List, Optional

from schemas import ActivityBucket, DashboardStats, WorkoutLogEntry, WorkoutSet
from workout_service import WorkoutLogger

if TYPE_CHECKING:
    from client import FitnessClient

LOGGER = logging.getLogger(__name__)

SAMPLE_ACTIVITY = (2, 3, 1, 2, 3, 1, 0)


def random_sets(rng: random.Random) -> List[dict]:
    """Three to five sets of 10-99 kg for 6-15 reps, as entered in the tracker."""
    return [
        {"weight": str(rng.randint(10, 99)), "reps": str(rng.randint(6, 15)), "notes": ""}
        for _ in range(rng.randint(3, 5))
    ]


def generate_test_workouts(
    client: FitnessClient,
    exercise_id: str,
    count: int = 5,
    rng: Optional[random.Random] = None,
    now: Optional[datetime.datetime] = None,
) -> List[WorkoutLogEntry]:
    """Log ``count`` random workouts spread over the last 30 days."""
    if count < 1:
        raise ValueError("count must be at least 1")
    if not exercise_id:
        raise ValueError("Please select an exercise first")
    rng = rng or random.Random()
    now = now or datetime.datetime.now(datetime.timezone.utc)
    logger = WorkoutLogger(client)
    created = []
    for i in range(count):
        start = now - datetime.timedelta(days=rng.randint(0, 29))
        duration = rng.randint(20, 59) * 60
        entry = logger.log_workout(
            exercise_id,
            duration,
            random_sets(rng),
            start_time=start,
            notes=f"Test workout #{i + 1}",
        )
        created.append(entry)
    LOGGER.info("Created %d test workout logs", len(created))
    return created


def sample_dashboard_stats(now: Optional[datetime.datetime] = None) -> DashboardStats:
    """Fixed demo statistics shown when the user asks for sample data."""
    now = now or datetime.datetime.now(datetime.timezone.utc)
    sets = [WorkoutSet(set_number=n, weight=40, reps=10) for n in range(1, 5)]
    recent = [
        WorkoutLogEntry(
            id=f"sample-{i}",
            start_time=now - datetime.timedelta(days=i),
            exercise_name=f"Sample Exercise {i + 1}",
            sets=sets,
        )
        for i in range(5)
    ]
    return DashboardStats(
        workouts_this_month=12,
        avg_workout_duration=3600,
        weekly_activity=[
            ActivityBucket(day=day, count=count)
            for day, count in enumerate(SAMPLE_ACTIVITY, start=1)
        ],
        total_weight_lifted=15000,
        recent_workouts=recent,
        message="This is demo data for visualization purposes only.",
    )
