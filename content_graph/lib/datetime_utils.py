"""
Timezone-aware datetime helpers.

All graph timestamps are UTC and timezone-aware so values coming back from
Postgres (timestamptz) compare cleanly against values produced in-process.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def isoformat_utc(dt: datetime) -> str:
    """ISO-8601 string for a datetime, treating naive values as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()
