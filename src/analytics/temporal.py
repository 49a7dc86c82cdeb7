from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, Optional, Tuple

from src.models.stats import BookingRecord

ONE_DAY = timedelta(days=1)


def inclusive_days_between(start: datetime, end: datetime) -> int:
    """Whole days from start to end counting both ends; 0 when end precedes start."""
    diff = (end - start) // ONE_DAY
    return diff + 1 if diff >= 0 else 0


def clamp_to_range(value: datetime, low: datetime, high: datetime) -> datetime:
    if value < low:
        return low
    if value > high:
        return high
    return value


def booked_days_in_range(booking: BookingRecord, range_start: datetime, range_end: datetime) -> int:
    start = clamp_to_range(booking.from_date, range_start, range_end)
    end = clamp_to_range(booking.to_date, range_start, range_end)
    if end < start:
        return 0
    return inclusive_days_between(start, end)


def month_key(value: datetime) -> str:
    return f"{value.year}-{value.month:02d}"


def iso_week_key(value: datetime) -> str:
    # The ISO year differs from the calendar year around New Year.
    iso_year, week, _ = value.isocalendar()
    return f"{iso_year}-W{week:02d}"


def year_bounds(reference: datetime) -> Tuple[datetime, datetime]:
    start = reference.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
    end = reference.replace(month=12, day=31, hour=23, minute=59, second=59, microsecond=999000)
    return start, end


def last_booking_activity(bookings: Iterable[BookingRecord]) -> Optional[datetime]:
    latest: Optional[datetime] = None
    for booking in bookings:
        for candidate in (booking.from_date, booking.to_date, booking.updated_at):
            if candidate is not None and (latest is None or candidate > latest):
                latest = candidate
    return latest
