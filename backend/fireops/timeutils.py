"""Clock helpers shared by the lifecycle services."""

from collections.abc import Callable
from datetime import UTC, datetime, time, timedelta
from zoneinfo import ZoneInfo

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on round-trip)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def isoformat(value: datetime | None) -> str | None:
    """ISO-8601 string in UTC, or None."""
    value = ensure_utc(value)
    return value.isoformat() if value else None


def next_day_at(value: datetime, hour: int, tz: ZoneInfo) -> datetime:
    """`hour`:00 local time on the calendar day after `value`, returned in UTC."""
    local = ensure_utc(value).astimezone(tz)
    threshold = datetime.combine(local.date() + timedelta(days=1), time(hour), tzinfo=tz)
    return threshold.astimezone(UTC)


def minutes_between(start: datetime | None, end: datetime | None) -> int | None:
    """Whole minutes from start to end, or None if either is missing."""
    if start is None or end is None:
        return None
    return round((ensure_utc(end) - ensure_utc(start)).total_seconds() / 60)
