"""Time utilities."""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Return a timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def seconds_until(target: datetime, now: datetime | None = None) -> float:
    """Seconds from ``now`` until ``target`` (negative when in the past)."""
    now = now or utc_now()
    return (ensure_aware(target) - ensure_aware(now)) / timedelta(seconds=1)
