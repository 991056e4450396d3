from __future__ import annotations
import datetime
import math
from typing import Dict, Iterable, List, Optional

import pandas as pd

from formatters import format_chart_date
from schemas import WeightEntry, WeightGoal
from .math_tools import MathTools
from .weight_converter import WeightConverter


class WeightTrendAnalyzer:
    """Derive chart series and goal projections from body weight entries."""

    PERIODS = (7, 30, 90)
    MOVING_AVERAGE_WINDOW = 7
    AXIS_PADDING = 2
    DEFAULT_BOUNDS = (50.0, 100.0)
    KCAL_PER_KG = 7700
    MS_PER_DAY = 86_400_000

    @staticmethod
    def _aware(now: datetime.datetime) -> datetime.datetime:
        """Treat a naive ``now`` as UTC, matching the parsed timestamps."""
        if now.tzinfo is None:
            return now.replace(tzinfo=datetime.timezone.utc)
        return now

    @staticmethod
    def sort_entries(entries: Iterable[WeightEntry]) -> List[WeightEntry]:
        """Return entries ordered oldest first."""
        return sorted(entries, key=lambda e: e.date)

    @classmethod
    def filter_period(
        cls,
        entries: Iterable[WeightEntry],
        period: int,
        now: datetime.datetime,
    ) -> List[WeightEntry]:
        """Return entries dated within ``period`` days of ``now``, oldest first."""
        if period not in cls.PERIODS:
            raise ValueError(f"period must be one of {cls.PERIODS}")
        now = cls._aware(now)
        cutoff = now - datetime.timedelta(days=period)
        return cls.sort_entries(e for e in entries if e.date >= cutoff)

    @classmethod
    def chart_points(
        cls,
        entries: Iterable[WeightEntry],
        period: int,
        now: datetime.datetime,
    ) -> List[Dict[str, object]]:
        return [
            {
                "date": e.date,
                "label": format_chart_date(e.date),
                "weight": e.weight,
                "unit": e.unit,
            }
            for e in cls.filter_period(entries, period, now)
        ]

    @classmethod
    def moving_average(cls, entries: List[WeightEntry]) -> List[Dict[str, object]]:
        """Return the centered moving average over sorted ``entries``.

        A point exists only where a full window fits around it, so the first
        and last three entries never receive one and fewer than seven
        entries yield an empty series. Weights are averaged in the unit of
        the newest entry.
        """
        window = cls.MOVING_AVERAGE_WINDOW
        if len(entries) < window:
            return []
        unit = entries[-1].unit
        weights = pd.Series(
            [WeightConverter.convert(e.weight, e.unit, unit) for e in entries], dtype="float64"
        )
        rolled = weights.rolling(window=window, center=True).mean()
        result: List[Dict[str, object]] = []
        for idx, avg in rolled.items():
            if pd.isna(avg):
                continue
            entry = entries[int(idx)]
            result.append({"date": entry.date, "avg": float(avg), "unit": unit})
        return result

    @classmethod
    def axis_bounds(
        cls,
        entries: Iterable[WeightEntry],
        goal_weight: Optional[float] = None,
    ) -> tuple[float, float]:
        """Return (min, max) for the weight axis, padded around data and goal."""
        weights = [e.weight for e in entries]
        if not weights:
            return cls.DEFAULT_BOUNDS
        if goal_weight:
            weights.append(goal_weight)
        return (min(weights) - cls.AXIS_PADDING, max(weights) + cls.AXIS_PADDING)

    @staticmethod
    def current_entry(entries: Iterable[WeightEntry]) -> Optional[WeightEntry]:
        latest = None
        for e in entries:
            if latest is None or e.date >= latest.date:
                latest = e
        return latest

    @classmethod
    def calorie_projection(
        cls,
        current_weight: float,
        goal: WeightGoal,
        now: datetime.datetime,
        unit: Optional[str] = None,
    ) -> Dict[str, object]:
        """Project the daily calorie change needed to reach ``goal``.

        Linear heuristic at 7700 kcal per kilogram, not a medical
        calculation. ``current_weight`` is expressed in ``unit`` (the goal's
        unit by default); a negative ``daily_calories`` is a deficit.
        """
        unit = unit or goal.unit
        now = cls._aware(now)
        current = WeightConverter.convert(current_weight, unit, goal.unit)
        weight_diff = WeightConverter.to_kg(goal.target_weight - current, goal.unit)
        millis = (goal.target_date - now).total_seconds() * 1000
        days_remaining = max(1, math.ceil(millis / cls.MS_PER_DAY))
        total_calories = weight_diff * cls.KCAL_PER_KG
        daily_calories = MathTools.round_half_up(total_calories / days_remaining)
        return {
            "weight_diff": weight_diff,
            "days_remaining": days_remaining,
            "total_calories": total_calories,
            "daily_calories": daily_calories,
            "is_deficit": daily_calories < 0,
        }

    @classmethod
    def projection_for_entries(
        cls,
        entries: Iterable[WeightEntry],
        goal: Optional[WeightGoal],
        now: datetime.datetime,
    ) -> Optional[Dict[str, object]]:
        """Projection from the most recent entry, ``None`` without data or goal."""
        if goal is None:
            return None
        latest = cls.current_entry(entries)
        if latest is None:
            return None
        return cls.calorie_projection(latest.weight, goal, now, unit=latest.unit)

    @classmethod
    def weight_stats(cls, entries: Iterable[WeightEntry]) -> Dict[str, object]:
        """Summarize a weight history: current, starting, change and range."""
        history = cls.sort_entries(entries)
        if not history:
            return {
                "current_weight": None,
                "starting_weight": None,
                "weight_change": 0.0,
                "weight_change_pct": 0.0,
                "min_weight": 0.0,
                "max_weight": 0.0,
                "avg_weight": 0.0,
                "count": 0,
                "unit": "kg",
            }
        latest = history[-1]
        unit = latest.unit
        weights = [WeightConverter.convert(e.weight, e.unit, unit) for e in history]
        start = weights[0]
        change = weights[-1] - start
        return {
            "current_weight": round(weights[-1], 2),
            "starting_weight": round(start, 2),
            "weight_change": round(change, 2),
            "weight_change_pct": round(change / start * 100, 2),
            "min_weight": round(min(weights), 2),
            "max_weight": round(max(weights), 2),
            "avg_weight": round(MathTools.mean(weights), 2),
            "count": len(weights),
            "unit": unit,
        }
