"""Timestamps are timezone-aware UTC in Python and `timestamptz` in the database."""
from datetime import datetime, UTC
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure datetime is timezone-aware in UTC.

    Backends without timezone support (SQLite) hand back naive values; those
    are treated as UTC already.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)
