import math
import re
from typing import Iterable, List, Optional

_FLOAT_PREFIX = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")
_INT_PREFIX = re.compile(r"^[+-]?\d+")


class MathTools:
    """Provides essential mathematical utilities for workout calculations."""

    @staticmethod
    def round_half_up(value: float) -> int:
        """Round to the nearest integer with halves going toward +inf."""
        return int(math.floor(value + 0.5))

    @staticmethod
    def parse_float(value: object) -> Optional[float]:
        """Parse the leading decimal number of ``value``.

        Numbers pass through, strings are read up to the first character
        that cannot continue a number (``"50kg"`` gives 50.0). Returns
        ``None`` when nothing numeric is found or the result is not finite.
        """
        if isinstance(value, bool) or value is None:
            return None
        if isinstance(value, (int, float)):
            result = float(value)
        else:
            match = _FLOAT_PREFIX.match(str(value).strip())
            if match is None:
                return None
            result = float(match.group(0))
        if not math.isfinite(result):
            return None
        return result

    @staticmethod
    def parse_int(value: object) -> Optional[int]:
        """Parse the leading integer of ``value`` (``"8.7"`` gives 8)."""
        if isinstance(value, bool) or value is None:
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            if not math.isfinite(value):
                return None
            return int(value)
        match = _INT_PREFIX.match(str(value).strip())
        if match is None:
            return None
        return int(match.group(0))

    @classmethod
    def set_volume(cls, weight: object, reps: object) -> float:
        """Return ``weight * reps`` or 0 when either side is not usable."""
        w = cls.parse_float(weight)
        r = cls.parse_int(reps)
        if w is None or r is None or w < 0 or r < 0:
            return 0.0
        return w * r

    @classmethod
    def volume(cls, sets: Iterable[tuple[object, object]]) -> float:
        """Compute training volume as the sum of weight times reps."""
        vol = 0.0
        for weight, reps in sets:
            vol += cls.set_volume(weight, reps)
        return vol

    @staticmethod
    def mean(values: List[float]) -> float:
        """Arithmetic mean, 0 for an empty list."""
        if not values:
            return 0.0
        return sum(values) / len(values)

    @classmethod
    def percent_change(cls, current: float, previous: float) -> str:
        """Return the absolute relative change as a percent string."""
        if previous == 0:
            return "100%" if current > 0 else "0%"
        change = (current - previous) / previous * 100
        return f"{abs(cls.round_half_up(change))}%"

    @staticmethod
    def is_positive_change(current: float, previous: float) -> bool:
        return current >= previous
