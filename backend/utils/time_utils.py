"""Naive time-of-day and calendar-date helpers.

Availability and session times are wall-clock values with no timezone. All
arithmetic happens on minutes since midnight so that no conversion can shift
a value across a day boundary.
"""

from datetime import date, datetime, time

from backend.core.errors import ValidationError

MINUTES_PER_DAY = 24 * 60

WEEKDAY_ORDER = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

_WEEKDAY_LOOKUP = {name.lower(): name for name in WEEKDAY_ORDER}


def parse_time_of_day(value: str | time | None, field_name: str = "time") -> time:
    """Parse ``HH:mm`` or ``HH:mm:ss`` into a minute-precision ``time``."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0, tzinfo=None)

    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Invalid {field_name}: expected HH:mm.")

    parts = value.strip().split(":")
    if len(parts) not in (2, 3) or not all(part.isdigit() for part in parts):
        raise ValidationError(f"Invalid {field_name}: {value!r}. Expected HH:mm.")

    hour, minute = int(parts[0]), int(parts[1])
    second = int(parts[2]) if len(parts) == 3 else 0
    if not (0 <= hour < 24 and 0 <= minute < 60 and 0 <= second < 60):
        raise ValidationError(f"Invalid {field_name}: {value!r}. Expected HH:mm.")

    return time(hour, minute)


def parse_calendar_date(value: str | date | None, field_name: str = "date") -> date:
    """Parse ``YYYY-MM-DD`` (or the date part of an ISO datetime)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Invalid {field_name} format.")

    raw = value.strip()
    try:
        return date.fromisoformat(raw)
    except ValueError:
        pass

    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(raw).date()
    except ValueError as exc:
        raise ValidationError(f"Invalid {field_name} format.") from exc


def to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"{minutes} is outside a single day.")
    return time(minutes // 60, minutes % 60)


def format_hhmm(value: time) -> str:
    return f"{value.hour:02d}:{value.minute:02d}"


def weekday_name(value: date) -> str:
    # date.weekday() is calendar arithmetic only, so a date always maps to the
    # weekday printed on a wall calendar regardless of the server timezone.
    return WEEKDAY_ORDER[value.weekday()]


def normalize_day_name(value: str | None) -> str:
    if not isinstance(value, str) or value.strip().lower() not in _WEEKDAY_LOOKUP:
        raise ValidationError(f"Invalid dayOfWeek: {value!r}.")
    return _WEEKDAY_LOOKUP[value.strip().lower()]


def weekday_sort_key(day_name: str) -> int:
    return WEEKDAY_ORDER.index(normalize_day_name(day_name))
