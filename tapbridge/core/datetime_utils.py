"""Datetime utilities for consistent UTC handling across the application.

Stripe reports ``created`` as unix seconds and reasons about days in UTC, so every
day boundary in this service is a UTC midnight.
"""

from datetime import date, datetime, timedelta, timezone

SECONDS_PER_DAY = 86400


def utc_now() -> datetime:
    """Get current UTC time - standardized across the application."""
    return datetime.now(timezone.utc)


def utc_now_naive() -> datetime:
    """Get current UTC time as naive datetime for database operations.

    Returns:
        Current datetime in UTC as naive datetime (no timezone info).

    Note:
        This is specifically for SQLAlchemy models that use TIMESTAMP WITHOUT TIME ZONE
        columns.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utc_midnight(day: date) -> datetime:
    """Return the aware UTC midnight that starts the given calendar day."""
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


def to_unix_seconds(moment: datetime) -> int:
    """Convert an aware datetime to whole unix seconds, flooring sub-second parts."""
    return int(moment.timestamp() // 1)


def utc_day_of(timestamp: int) -> date:
    """Return the UTC calendar day a unix timestamp (seconds) falls on."""
    return date(1970, 1, 1) + timedelta(days=timestamp // SECONDS_PER_DAY)


def iter_days(start: date, end: date):
    """Yield every calendar day from start to end, both inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
