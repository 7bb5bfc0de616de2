"""
Datetime utilities.

Provides timezone-aware datetime functions.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """
    Get current UTC datetime with timezone info.

    Returns:
        Current datetime in UTC with timezone awareness
    """
    return datetime.now(UTC)


def elapsed_seconds(start: datetime, end: datetime | None = None) -> float:
    """Seconds between two aware datetimes (end defaults to now), never negative."""
    end = end or utc_now()
    return max((end - start).total_seconds(), 0.0)
