"""
Period bucketing for time-series reports.

Maps a timestamp to the canonical key of the calendar period it falls in.
The calendar timezone is always explicit; nothing here reads the machine's
local time.
"""

from datetime import datetime, timedelta, timezone, tzinfo
from enum import Enum

from .errors import InvalidRecord


class Interval(Enum):
    """Bucket width for time-series reports."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


def to_calendar_time(timestamp: datetime, tz: tzinfo = timezone.utc) -> datetime:
    """Express a timestamp in the calendar timezone.

    Naive datetimes are taken to be UTC.

    Raises:
        InvalidRecord: If timestamp is not a datetime
    """
    if not isinstance(timestamp, datetime):
        raise InvalidRecord(f"Timestamp must be a datetime, got {timestamp!r}")
    if timestamp.tzinfo is None or timestamp.utcoffset() is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(tz)


def period_key(
    timestamp: datetime,
    interval: Interval,
    tz: tzinfo = timezone.utc,
) -> str:
    """Derive the bucket key for a timestamp.

    Keys sort lexicographically in chronological order for one interval:

    - daily: ``YYYY-MM-DD``
    - weekly: the Monday starting the ISO week, ``YYYY-MM-DD``. A Sunday is
      the last day of its week, so it maps to the Monday six days earlier.
    - monthly: ``YYYY-MM``
    - quarterly: ``YYYY-Qn``
    - yearly: ``YYYY``

    Args:
        timestamp: Point in time the record occurred
        interval: Bucket width
        tz: Calendar timezone used to read the date fields

    Returns:
        Bucket key string

    Raises:
        InvalidRecord: If timestamp is not a datetime
        ValueError: If interval is not an Interval
    """
    local = to_calendar_time(timestamp, tz)
    day = local.date()

    if interval is Interval.DAILY:
        return day.isoformat()
    if interval is Interval.WEEKLY:
        monday = day - timedelta(days=day.weekday())
        return monday.isoformat()
    if interval is Interval.MONTHLY:
        return f"{day.year:04d}-{day.month:02d}"
    if interval is Interval.QUARTERLY:
        quarter = (day.month - 1) // 3 + 1
        return f"{day.year:04d}-Q{quarter}"
    if interval is Interval.YEARLY:
        return f"{day.year:04d}"
    raise ValueError(f"Unsupported interval: {interval!r}")
