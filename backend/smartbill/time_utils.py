from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def days_ago(days: int, *, now: Optional[datetime] = None) -> datetime:
    """UTC-naive instant `days` days before now (analytics windows)."""
    return (now or utcnow()) - timedelta(days=days)


def as_utc_naive(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime coming back from the driver.

    SQLite hands back naive values, PostgreSQL timezone-aware ones; analytics
    arithmetic needs them comparable.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")
