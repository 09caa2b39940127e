"""
Datetime helpers.

Timestamps are persisted as naive UTC. Anything coming from a client is
normalised with ``to_storage`` and anything going out is rendered with
``isoformat_utc``.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta

from ..config import STUDIO_TIMEZONE


def studio_tz() -> ZoneInfo:
    return ZoneInfo(STUDIO_TIMEZONE)


def utcnow() -> datetime:
    """Current UTC time, naive (storage representation)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_storage(value: Optional[datetime]) -> Optional[datetime]:
    """
    Convert a client-supplied datetime to naive UTC.

    Aware values are converted; naive values are taken as studio local time.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=studio_tz())
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def to_local(value: datetime) -> datetime:
    """Naive UTC (storage) -> aware studio local time"""
    return value.replace(tzinfo=timezone.utc).astimezone(studio_tz())


def local_day_bounds(day: date) -> tuple[datetime, datetime]:
    """Storage-time [start, end) covering one local calendar day"""
    start = datetime.combine(day, time.min).replace(tzinfo=studio_tz())
    end = datetime.combine(day + timedelta(days=1), time.min).replace(tzinfo=studio_tz())
    return to_storage(start), to_storage(end)


def isoformat_utc(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat() + "Z"


def add_months(value: datetime, months: int) -> datetime:
    return value + relativedelta(months=months)
