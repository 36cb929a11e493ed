"""Time helpers for naive-UTC timestamps"""
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time as a naive UTC datetime (the storage convention)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(dt: datetime | None) -> datetime | None:
    """
    Normalize an incoming datetime to naive UTC.

    Args:
        dt: Aware datetime in any zone, naive datetime assumed to be UTC, or None

    Returns:
        Naive UTC datetime, or None if input is None
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def seconds_between(start: datetime, end: datetime) -> float:
    """Elapsed seconds from start to end"""
    return (end - start).total_seconds()
