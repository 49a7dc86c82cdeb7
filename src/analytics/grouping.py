from __future__ import annotations

from datetime import datetime
from typing import Callable, Dict, Iterable, List, Tuple, TypeVar

from src.analytics.temporal import iso_week_key
from src.models.stats import BookingRecord, BookingStatus, ViewRecord
from src.schemas.stats import RevenueTimePoint, StatusBreakdownItem, ViewsTimePoint, WeeklyTrendPoint

R = TypeVar("R")
K = TypeVar("K")
A = TypeVar("A")

PeriodKey = Callable[[datetime], str]


def group_by_key(
    records: Iterable[R],
    key_fn: Callable[[R], K],
    aggregate_fn: Callable[[A, R], A],
    initial: Callable[[], A],
) -> List[Tuple[K, A]]:
    """Fold records into one accumulator per derived key.

    Entries come back in first-seen key order; callers sort as they need.
    """
    buckets: Dict[K, A] = {}
    for record in records:
        key = key_fn(record)
        current = buckets[key] if key in buckets else initial()
        buckets[key] = aggregate_fn(current, record)
    return list(buckets.items())


def _add_booking(totals: Tuple[float, int], booking: BookingRecord) -> Tuple[float, int]:
    revenue, count = totals
    return revenue + booking.price, count + 1


def build_revenue_series(bookings: Iterable[BookingRecord], key_fn: PeriodKey) -> List[RevenueTimePoint]:
    grouped = group_by_key(
        (booking for booking in bookings if booking.is_accepted),
        lambda booking: key_fn(booking.from_date),
        _add_booking,
        lambda: (0.0, 0),
    )
    return [
        RevenueTimePoint(period=period, revenue=revenue, bookings=count)
        for period, (revenue, count) in sorted(grouped, key=lambda item: item[0])
    ]


def build_weekly_trend(bookings: Iterable[BookingRecord]) -> List[WeeklyTrendPoint]:
    return [
        WeeklyTrendPoint(week=point.period, revenue=point.revenue, bookings=point.bookings)
        for point in build_revenue_series(bookings, iso_week_key)
    ]


def build_status_breakdown(bookings: Iterable[BookingRecord]) -> List[StatusBreakdownItem]:
    grouped = group_by_key(
        bookings,
        lambda booking: booking.status or BookingStatus.PENDING,
        _add_booking,
        lambda: (0.0, 0),
    )
    return [
        StatusBreakdownItem(status=status, count=count, total_price=total_price)
        for status, (total_price, count) in grouped
    ]


def _add_view(counts: Tuple[int, int], view: ViewRecord) -> Tuple[int, int]:
    organic, paid = counts
    if view.paid_view:
        return organic, paid + 1
    return organic + 1, paid


def build_views_over_time(views: Iterable[ViewRecord]) -> List[ViewsTimePoint]:
    grouped = group_by_key(
        views,
        lambda view: view.view_date.isoformat(),
        _add_view,
        lambda: (0, 0),
    )
    return [
        ViewsTimePoint(date=day, organique=organic, paid=paid, total=organic + paid)
        for day, (organic, paid) in sorted(grouped, key=lambda item: item[0])
    ]
