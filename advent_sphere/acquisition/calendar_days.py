"""
Calendar day arithmetic

Day numbers are 1-based offsets from a room's start instant, truncated to
whole 24 hour periods. All instants are compared in UTC; naive datetimes
(as returned by SQLite) are taken to be UTC already.
"""
from datetime import datetime, timedelta, timezone

DAY = timedelta(days=1)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def day_number(start_at: datetime, instant: datetime) -> int:
    """floor((instant - start_at) / 1 day) + 1"""
    return (as_utc(instant) - as_utc(start_at)) // DAY + 1


def today_day(start_at: datetime, now: datetime) -> int:
    return day_number(start_at, now)


def day_start(start_at: datetime, day: int) -> datetime:
    """First instant belonging to the given day number."""
    return as_utc(start_at) + (day - 1) * DAY


def is_within_span(day: int, span_days: int) -> bool:
    return 1 <= day <= span_days
