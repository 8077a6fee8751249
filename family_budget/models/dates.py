"""
Date and time helpers shared by the models and the synchronizer.

The backend exchanges every instant as an ISO-8601 UTC string with
millisecond precision (e.g. 2024-02-10T08:30:00.000Z). Period filters
are chosen as calendar dates and widened to whole UTC days.
"""

from datetime import date, datetime, time, timezone
from typing import Annotated, Optional

from pydantic import AfterValidator


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# Every datetime held by a model is timezone-aware so they always compare
UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_wire_datetime(value: datetime) -> str:
    """
    Format a datetime the way the backend expects it.

    >>> format_wire_datetime(datetime(2024, 2, 10, 8, 30, tzinfo=timezone.utc))
    '2024-02-10T08:30:00.000Z'
    """
    value = ensure_utc(value)
    millis = value.microsecond // 1000
    return value.strftime("%Y-%m-%dT%H:%M:%S") + f".{millis:03d}Z"


def start_of_day_utc(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def end_of_day_utc(day: date) -> datetime:
    """Last millisecond of the UTC day (matches the wire precision)."""
    return datetime.combine(day, time(23, 59, 59, 999000), tzinfo=timezone.utc)


def start_of_month(today: Optional[date] = None) -> date:
    today = today or utc_now().date()
    return today.replace(day=1)
