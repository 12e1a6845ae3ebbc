"""Timezone helpers. All timestamps in the domain are UTC-aware."""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to aware UTC.
    
    Naive values (SQLite round-trips, clients omitting an offset)
    are taken to already be UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def months_before(moment: datetime, months: int) -> datetime:
    """
    Same wall-clock instant a number of calendar months earlier.
    
    The day is clamped to the target month's length, so
    31 May minus 3 months is 28/29 February.
    """
    year = moment.year
    month = moment.month - months
    while month <= 0:
        month += 12
        year -= 1
    
    # Days in target month: first day of next month minus one day
    if month == 12:
        next_month_start = moment.replace(year=year + 1, month=1, day=1)
    else:
        next_month_start = moment.replace(year=year, month=month + 1, day=1)
    last_day = (next_month_start - moment.replace(year=year, month=month, day=1)).days
    
    return moment.replace(year=year, month=month, day=min(moment.day, last_day))


def parse_datetime(value: datetime | str) -> datetime:
    """Parse an ISO-8601 string (or pass a datetime through) as aware UTC."""
    if isinstance(value, datetime):
        return as_utc(value)
    return as_utc(datetime.fromisoformat(str(value)))
