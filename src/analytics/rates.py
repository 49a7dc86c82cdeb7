from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, NamedTuple, Sequence

from src.analytics.temporal import ONE_DAY, booked_days_in_range, inclusive_days_between
from src.models.stats import BookingRecord
from src.schemas.stats import PaymentStatusCancellationStat


class BookingCounts(NamedTuple):
    total: int
    accepted: int
    cancelled: int


def summarize_counts(bookings: Sequence[BookingRecord]) -> BookingCounts:
    return BookingCounts(
        total=len(bookings),
        accepted=sum(1 for booking in bookings if booking.is_accepted),
        cancelled=sum(1 for booking in bookings if booking.is_cancelled),
    )


def total_revenue(bookings: Iterable[BookingRecord]) -> float:
    return sum((booking.price for booking in bookings if booking.is_accepted), 0.0)


def average_revenue_per_booking(revenue: float, accepted: int) -> float:
    return revenue / accepted if accepted > 0 else 0.0


def acceptance_rate(accepted: int, total: int) -> float:
    return (accepted / total) * 100 if total else 0.0


def cancellation_rate(cancelled: int, total: int) -> float:
    return (cancelled / total) * 100 if total else 0.0


def conversion_rate(accepted_count: int, total_views: int) -> float:
    """Accepted bookings per page view, as a raw ratio rather than a percentage."""
    return accepted_count / total_views if total_views > 0 else 0.0


def _mean(values: List[int]) -> float:
    return sum(values) / len(values) if values else 0.0


def occupancy_rate(
    bookings: Iterable[BookingRecord],
    total_cars: int,
    range_start: datetime,
    range_end: datetime,
) -> float:
    if total_cars <= 0:
        return 0.0
    total_days = inclusive_days_between(range_start, range_end)
    if total_days <= 0:
        return 0.0
    booked_days = sum(
        booked_days_in_range(booking, range_start, range_end) for booking in bookings if booking.is_accepted
    )
    return min(booked_days / (total_days * total_cars), 1.0)


def average_duration(bookings: Iterable[BookingRecord]) -> float:
    return _mean(
        [inclusive_days_between(booking.from_date, booking.to_date) for booking in bookings if booking.is_accepted]
    )


def average_lead_time(bookings: Iterable[BookingRecord]) -> float:
    return _mean(
        [
            max(0, (booking.from_date - booking.created_at) // ONE_DAY)
            for booking in bookings
            if booking.is_accepted and booking.created_at is not None
        ]
    )


def rebooking_rate(bookings: Iterable[BookingRecord]) -> float:
    """Share of distinct renters with more than one accepted booking.

    Guest bookings carry no driver and are left out of both counts.
    """
    per_driver: Dict[str, int] = {}
    for booking in bookings:
        if booking.is_accepted and booking.driver_id:
            per_driver[booking.driver_id] = per_driver.get(booking.driver_id, 0) + 1
    if not per_driver:
        return 0.0
    repeaters = sum(1 for count in per_driver.values() if count > 1)
    return repeaters / len(per_driver)


def cancellation_by_payment_status(bookings: Iterable[BookingRecord]) -> List[PaymentStatusCancellationStat]:
    deposit = 0
    paid = 0
    for booking in bookings:
        if not booking.is_cancelled:
            continue
        if booking.payment_intent_id:
            paid += 1
        else:
            deposit += 1
    return [
        PaymentStatusCancellationStat(payment_status="deposit", count=deposit),
        PaymentStatusCancellationStat(payment_status="paid", count=paid),
    ]
