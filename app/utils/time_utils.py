# app/utils/time_utils.py
"""Time-of-day arithmetic for scheduling (half-open intervals, minute resolution)"""
from datetime import date, datetime, time, timezone
from typing import Optional, Union

from app.core.exceptions import ValidationError

MINUTES_PER_DAY = 24 * 60


def to_minutes(value: time) -> int:
    """Minutes since midnight, seconds are ignored"""
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    """Inverse of to_minutes; 1440 is not representable as a time"""
    if minutes < 0 or minutes >= MINUTES_PER_DAY:
        raise ValidationError(f"Time offset {minutes} is outside a single day")
    return time(minutes // 60, minutes % 60)


def end_minutes(start: time, duration_minutes: int) -> int:
    """End of [start, start+duration) in minutes; may exceed 1440"""
    return to_minutes(start) + duration_minutes


def add_minutes(start: time, duration_minutes: int) -> time:
    """start + duration, rejecting intervals that cross midnight"""
    return from_minutes(end_minutes(start, duration_minutes))


def intervals_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """Half-open overlap test: [a_start, a_end) and [b_start, b_end) share an instant"""
    return a_start < b_end and b_start < a_end


def parse_time(value: Union[str, time]) -> time:
    """Accept "HH:MM" / "HH:MM:SS" strings or time objects"""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    try:
        parsed = time.fromisoformat(value.strip())
    except (AttributeError, ValueError):
        raise ValidationError(f"Invalid time: {value!r}", field="time")
    return parsed.replace(second=0, microsecond=0)


def format_time(value: time) -> str:
    return value.strftime("%H:%M")


def combine(day: date, value: time, tzinfo=None) -> datetime:
    return datetime.combine(day, value, tzinfo=tzinfo)


def validate_duration(duration_minutes: Optional[int], field: str = "duration_minutes") -> int:
    if duration_minutes is None or duration_minutes <= 0:
        raise ValidationError(f"{field} must be a positive number of minutes", field=field)
    if duration_minutes >= MINUTES_PER_DAY:
        raise ValidationError(f"{field} must be shorter than a day", field=field)
    return duration_minutes


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes read back from the database as UTC"""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
