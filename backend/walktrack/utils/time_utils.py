"""
Time Helpers
============

Everything in WalkTrack talks UTC. These helpers make sure of it.
"""

from datetime import datetime, timezone
from typing import Optional


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC.

    Naive datetimes are assumed to already be UTC (that's what the
    device and the server send us).
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """
    Format a datetime the way the wire format expects it.

    Example:
        2026-01-06T03:00:00.000Z
    """
    if value is None:
        return None
    return ensure_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def start_of_day(value: datetime) -> datetime:
    """Midnight (UTC) of the day containing ``value``."""
    return ensure_utc(value).replace(hour=0, minute=0, second=0, microsecond=0)
