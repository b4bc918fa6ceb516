"""Time helpers.

Timestamps are stored as naive UTC so they round-trip through both
PostgreSQL ``timestamp without time zone`` columns and SQLite.
"""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Current UTC time without tzinfo."""
    return datetime.now(UTC).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)
