from __future__ import annotations
import datetime
import math
from typing import Mapping, Optional

MONTHS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def _seconds(value: float) -> int:
    """Whole non-negative seconds; negative or non-finite input counts as 0."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(value) or value < 0:
        return 0
    return int(value)


def format_duration(seconds: float) -> str:
    """Return ``"Xh Ym"``, or ``"Ym"`` below one hour."""
    minutes = _seconds(seconds) // 60
    hours = minutes // 60
    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    return f"{minutes}m"


def format_clock(seconds: float) -> str:
    """Return ``"M:SS"`` as shown next to individual sets."""
    total = _seconds(seconds)
    return f"{total // 60}:{total % 60:02d}"


def format_minutes(seconds: float) -> str:
    total = _seconds(seconds)
    return f"{math.floor(total / 60 + 0.5)} min"


def _hour12(dt: datetime.datetime) -> str:
    hour = dt.hour % 12 or 12
    suffix = "AM" if dt.hour < 12 else "PM"
    return f"{hour}:{dt.minute:02d} {suffix}"


def format_date(dt: datetime.datetime) -> str:
    """Return e.g. ``"Oct 17, 2026 • 5:37 PM"``."""
    return f"{MONTHS[dt.month - 1]} {dt.day}, {dt.year} • {_hour12(dt)}"


def format_chart_date(dt: datetime.date) -> str:
    return f"{MONTHS[dt.month - 1]} {dt.day:02d}"


def format_short_date(dt: datetime.date) -> str:
    return f"{MONTHS[dt.month - 1]} {dt.day}"


def format_iso_date(dt: datetime.date) -> str:
    return f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}"


def format_number(value: float) -> str:
    """Group thousands and drop a trailing ``.0``."""
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.2f}".rstrip("0").rstrip(".")


def format_weight(value: float, unit: str = "kg") -> str:
    return f"{format_number(value)} {unit}"


def format_weight_stats(stats: Mapping[str, object], unit: str = "kg") -> Optional[str]:
    """Return the one-line current weight summary or ``None`` without data."""
    current = stats.get("current_weight")
    if not current:
        return None
    change = float(stats.get("weight_change") or 0.0)
    pct = float(stats.get("weight_change_pct") or 0.0)
    if change != 0:
        sign = "+" if change > 0 else ""
        change_text = f"{sign}{change:.1f} {unit} ({pct:.1f}%)"
    else:
        change_text = "No change"
    return f"Current: {format_number(float(current))} {unit} | Change: {change_text}"
