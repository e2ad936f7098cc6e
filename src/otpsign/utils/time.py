"""
Time utilities for signing timestamps and log records.
Timestamps are ISO 8601 formatted with an explicit fixed UTC offset.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from ..config import TIMESTAMP_FORMAT, TIMEZONE_OFFSET_HOURS, TIMEZONE_OFFSET_MINUTES


def fixed_offset(hours: int = TIMEZONE_OFFSET_HOURS, minutes: int = TIMEZONE_OFFSET_MINUTES) -> timezone:
    """
    Build a fixed-offset timezone.

    Args:
        hours: Hours east of UTC (negative for west)
        minutes: Additional minutes, same sign as hours

    Returns:
        timezone object
    """
    sign = -1 if hours < 0 else 1
    return timezone(timedelta(hours=hours, minutes=sign * abs(minutes)))


def format_timestamp(moment: datetime) -> str:
    """
    Format an aware datetime as `YYYY-MM-DDTHH:MM:SS+HH:MM`.

    Args:
        moment: Timezone-aware datetime

    Returns:
        ISO 8601 string with offset

    Raises:
        ValueError: If moment is naive
    """
    offset = moment.utcoffset()
    if offset is None:
        raise ValueError("Cannot format a naive datetime")

    total_minutes = int(offset.total_seconds() // 60)
    sign = '+' if total_minutes >= 0 else '-'
    hours, minutes = divmod(abs(total_minutes), 60)
    return f"{moment.strftime(TIMESTAMP_FORMAT)}{sign}{hours:02d}:{minutes:02d}"


def now_with_offset(
    hours: int = TIMEZONE_OFFSET_HOURS,
    minutes: int = TIMEZONE_OFFSET_MINUTES,
    clock: Optional[datetime] = None,
) -> str:
    """
    Get the current time in a fixed UTC offset.

    Args:
        hours: Offset hours
        minutes: Offset minutes
        clock: Optional UTC instant to format instead of the current time

    Returns:
        Timestamp such as `2024-05-01T15:04:05+03:00`
    """
    instant = clock if clock is not None else datetime.now(timezone.utc)
    return format_timestamp(instant.astimezone(fixed_offset(hours, minutes)))


def parse_timestamp(timestamp_str: str) -> datetime:
    """
    Parse a timestamp produced by `format_timestamp`.

    Raises:
        ValueError: If the format is invalid
    """
    try:
        return datetime.fromisoformat(timestamp_str.replace('Z', '+00:00'))
    except ValueError as e:
        raise ValueError(f"Invalid timestamp format: {e}")


def is_valid_timestamp(timestamp_str: str) -> bool:
    """Check whether a string parses as an offset timestamp."""
    try:
        return parse_timestamp(timestamp_str).utcoffset() is not None
    except ValueError:
        return False
