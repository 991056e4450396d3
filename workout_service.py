from __future__ import annotations
import datetime
import logging
from typing import TYPE_CHECKING, Iterable, List, Mapping, Optional

from algorithms import MathTools
from schemas import WorkoutLogEntry, WorkoutLogInput, WorkoutSet

if TYPE_CHECKING:
    from client import FitnessClient

LOGGER = logging.getLogger(__name__)


class WorkoutLogger:
    """Build and submit workout log payloads from tracked sets."""

    # share of a session assumed to be rest; the tracker does not time rests
    REST_FRACTION = 0.3

    def __init__(self, client: Optional[FitnessClient] = None) -> None:
        self.client = client

    @staticmethod
    def completed_sets(sets: Iterable[Mapping[str, object]]) -> List[WorkoutSet]:
        """Keep only sets with both a weight and reps, numbered from 1."""
        kept = [s for s in sets if s.get("weight") and s.get("reps")]
        return [
            WorkoutSet(
                set_number=i,
                weight=s["weight"],
                reps=s["reps"],
                completed=True,
                notes=s.get("notes") or None,
            )
            for i, s in enumerate(kept, start=1)
        ]

    @classmethod
    def build_payload(
        cls,
        exercise_id: str,
        duration: float,
        sets: Iterable[Mapping[str, object]],
        start_time: Optional[datetime.datetime] = None,
        notes: Optional[str] = None,
    ) -> WorkoutLogInput:
        if not exercise_id:
            raise ValueError("An exercise is required")
        completed = cls.completed_sets(sets)
        if not completed:
            raise ValueError("Please complete at least one set before finishing")
        duration = max(0, int(duration or 0))
        start = start_time or datetime.datetime.now(datetime.timezone.utc)
        rest_time = MathTools.round_half_up(duration * cls.REST_FRACTION)
        return WorkoutLogInput(
            exercise_id=exercise_id,
            start_time=start,
            end_time=start + datetime.timedelta(seconds=duration),
            total_duration=duration,
            rest_time=rest_time,
            active_time=duration - rest_time,
            sets=completed,
            notes=notes or None,
        )

    def log_workout(
        self,
        exercise_id: str,
        duration: float,
        sets: Iterable[Mapping[str, object]],
        start_time: Optional[datetime.datetime] = None,
        notes: Optional[str] = None,
    ) -> WorkoutLogEntry:
        """Post a workout and mark its exercise as recently used."""
        if self.client is None:
            raise ValueError("WorkoutLogger needs a client to submit workouts")
        payload = self.build_payload(exercise_id, duration, sets, start_time, notes)
        entry = self.client.log_workout(payload)
        LOGGER.info("Logged workout %s with %d sets", entry.id, len(payload.sets))
        self.client.add_recent_exercise(exercise_id)
        return entry
