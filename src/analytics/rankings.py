from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Mapping, Optional, Tuple

from src.analytics.grouping import group_by_key
from src.analytics.temporal import booked_days_in_range, inclusive_days_between
from src.models.stats import BookingRecord
from src.schemas.stats import AgencyAverageDurationPoint, ModelOccupancyStat, ModelRevenueStat, TopModelStat


def _accepted(bookings: Iterable[BookingRecord]) -> List[BookingRecord]:
    return [booking for booking in bookings if booking.is_accepted]


def top_models_by_bookings(bookings: Iterable[BookingRecord], limit: Optional[int] = None) -> List[TopModelStat]:
    """Rank cars by accepted bookings, ties broken by car id.

    Names are taken from the last booking seen for each car.
    """
    grouped = group_by_key(
        _accepted(bookings),
        lambda booking: booking.car_id,
        lambda entry, booking: (entry[0] + 1, booking),
        lambda: (0, None),
    )
    ranked = sorted(grouped, key=lambda item: (-item[1][0], item[0]))
    if limit is not None:
        ranked = ranked[:limit]
    return [
        TopModelStat(
            model=latest.car_name,
            bookings=count,
            agency_id=latest.supplier_id,
            agency_name=latest.supplier_name,
            model_id=car_id,
        )
        for car_id, (count, latest) in ranked
    ]


def model_revenue(bookings: Iterable[BookingRecord]) -> List[ModelRevenueStat]:
    grouped = group_by_key(
        _accepted(bookings),
        lambda booking: booking.car_id,
        lambda entry, booking: (booking.car_name, entry[1] + booking.price, entry[2] + 1),
        lambda: ("", 0.0, 0),
    )
    stats = [
        ModelRevenueStat(model_id=car_id, model_name=name, revenue=revenue, bookings=count)
        for car_id, (name, revenue, count) in grouped
    ]
    return sorted(stats, key=lambda stat: (-stat.revenue, stat.model_id))


def model_occupancy(
    bookings: Iterable[BookingRecord], range_start: datetime, range_end: datetime
) -> List[ModelOccupancyStat]:
    total_days = inclusive_days_between(range_start, range_end)
    if total_days <= 0:
        return []
    grouped = group_by_key(
        _accepted(bookings),
        lambda booking: booking.car_id,
        lambda entry, booking: (
            booking.car_name,
            entry[1] + booked_days_in_range(booking, range_start, range_end),
        ),
        lambda: ("", 0),
    )
    stats = [
        ModelOccupancyStat(
            model_id=car_id,
            model_name=name,
            booked_days=booked_days,
            total_days=total_days,
            occupancy_rate=min(booked_days / total_days, 1.0),
        )
        for car_id, (name, booked_days) in grouped
    ]
    return sorted(stats, key=lambda stat: (-stat.occupancy_rate, stat.model_id))


def average_duration_by_agency(
    bookings: Iterable[BookingRecord], supplier_names: Optional[Mapping[str, str]] = None
) -> List[AgencyAverageDurationPoint]:
    names = supplier_names or {}

    def add_duration(entry: Tuple[str, int, int], booking: BookingRecord) -> Tuple[str, int, int]:
        name, days, count = entry
        return (
            name or booking.supplier_name,
            days + inclusive_days_between(booking.from_date, booking.to_date),
            count + 1,
        )

    grouped = group_by_key(_accepted(bookings), lambda booking: booking.supplier_id, add_duration, lambda: ("", 0, 0))
    return [
        AgencyAverageDurationPoint(
            agency_id=supplier_id,
            agency_name=names.get(supplier_id) or embedded_name,
            average_duration=days / count if count else 0.0,
        )
        for supplier_id, (embedded_name, days, count) in grouped
    ]
