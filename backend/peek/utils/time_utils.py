"""Time helpers - the store keeps naive UTC datetimes."""
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def format_timestamp(value: datetime) -> str:
    """Format a datetime the way result lines and warnings print it."""
    return value.strftime("%Y-%m-%d %H:%M:%S")
