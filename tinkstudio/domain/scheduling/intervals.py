"""
Half-open time interval helpers.

Two windows [s1, e1) and [s2, e2) overlap iff s1 < e2 and s2 < e1, so a
window ending exactly when another begins is not an overlap.
"""

from datetime import datetime, timedelta

from sqlalchemy import and_


def appointment_window(starts_at: datetime, duration_minutes: int) -> tuple[datetime, datetime]:
    return starts_at, starts_at + timedelta(minutes=duration_minutes)


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    return start_a < end_b and start_b < end_a


def overlap_clause(start_column, end_column, starts_at: datetime, ends_at: datetime):
    """The same predicate as ``overlaps`` expressed as an SQL filter"""
    return and_(start_column < ends_at, end_column > starts_at)
