from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from typing import Any, Callable, Dict, List

from src.analytics.grouping import (
    build_revenue_series,
    build_status_breakdown,
    build_views_over_time,
    build_weekly_trend,
)
from src.analytics.rankings import (
    average_duration_by_agency,
    model_occupancy,
    model_revenue,
    top_models_by_bookings,
)
from src.analytics.rates import (
    acceptance_rate,
    average_duration,
    average_lead_time,
    average_revenue_per_booking,
    cancellation_by_payment_status,
    cancellation_rate,
    conversion_rate,
    occupancy_rate,
    rebooking_rate,
    summarize_counts,
    total_revenue,
)
from src.analytics.temporal import last_booking_activity, month_key, year_bounds
from src.core.config import get_settings
from src.core.errors import ReportGenerationError
from src.models.stats import BookingRecord, ViewRecord
from src.repositories.stats_repository import StatsRecordSource
from src.schemas.stats import (
    AdminStatsResponse,
    AdminStatsSummary,
    AgencyStatsResponse,
    AgencyStatsSummary,
)

logger = logging.getLogger(__name__)


class StatsService:
    """Assembles agency and platform KPI reports from fetched records.

    Fetches without a data dependency on each other run side by side on a
    small thread pool; every computation after that is a pure function of
    the fetched records.
    """

    def __init__(self, repository: StatsRecordSource) -> None:
        self.repository = repository
        self.settings = get_settings()

    def build_agency_report(self, agency_id: str, start: datetime, end: datetime) -> AgencyStatsResponse:
        fetched = self._fetch_all(
            {
                "bookings": lambda: self.repository.fetch_bookings(start, end, agency_id),
                "total_cars": lambda: self.repository.fetch_car_count([agency_id]),
                "views": lambda: self.repository.fetch_views(start, end, agency_id),
            }
        )
        bookings: List[BookingRecord] = fetched["bookings"]
        views: List[ViewRecord] = fetched["views"]

        summary = self._summary_fields(bookings, fetched["total_cars"], start, end)
        sections = self._report_sections(bookings, views, start, end)
        logger.info(
            "Built agency stats agency_id=%s bookings=%d views=%d",
            agency_id,
            summary["total_bookings"],
            len(views),
        )
        return AgencyStatsResponse(summary=AgencyStatsSummary(**summary), **sections)

    def build_admin_report(self, start: datetime, end: datetime) -> AdminStatsResponse:
        # Year-over-year sums always cover calendar years, whatever window was asked for.
        current_year_start, current_year_end = year_bounds(end)
        previous_year_start = current_year_start.replace(year=current_year_start.year - 1)
        previous_year_end = current_year_end.replace(year=current_year_end.year - 1)
        fetched = self._fetch_all(
            {
                "bookings": lambda: self.repository.fetch_bookings(start, end),
                "views": lambda: self.repository.fetch_views(start, end),
                "current_year": lambda: self.repository.fetch_bookings(current_year_start, end),
                "previous_year": lambda: self.repository.fetch_bookings(previous_year_start, previous_year_end),
            }
        )
        bookings: List[BookingRecord] = fetched["bookings"]
        views: List[ViewRecord] = fetched["views"]

        supplier_ids = list(dict.fromkeys(booking.supplier_id for booking in bookings if booking.supplier_id))
        suppliers = self._fetch_all(
            {
                "total_cars": lambda: self.repository.fetch_car_count(supplier_ids) if supplier_ids else 0,
                "names": lambda: self.repository.fetch_supplier_names(supplier_ids) if supplier_ids else {},
            }
        )

        summary = self._summary_fields(bookings, suppliers["total_cars"], start, end)
        total_views = sum(point.total for point in build_views_over_time(views))
        sections = self._report_sections(bookings, views, start, end)
        logger.info(
            "Built admin stats agencies=%d bookings=%d views=%d",
            len(supplier_ids),
            summary["total_bookings"],
            total_views,
        )
        return AdminStatsResponse(
            summary=AdminStatsSummary(
                **summary,
                active_agencies=len(supplier_ids),
                current_year_revenue=total_revenue(fetched["current_year"]),
                previous_year_revenue=total_revenue(fetched["previous_year"]),
                conversion_rate=conversion_rate(summary["accepted_bookings"], total_views),
            ),
            average_duration_by_agency=average_duration_by_agency(bookings, suppliers["names"]),
            **sections,
        )

    def _fetch_all(self, calls: Dict[str, Callable[[], Any]]) -> Dict[str, Any]:
        executor = ThreadPoolExecutor(
            max_workers=max(1, min(self.settings.stats_fetch_workers, len(calls))),
            thread_name_prefix="stats-fetch",
        )
        futures: Dict[str, Future] = {name: executor.submit(call) for name, call in calls.items()}
        results: Dict[str, Any] = {}
        try:
            for name, future in futures.items():
                try:
                    results[name] = future.result()
                except Exception as exc:
                    logger.exception("Stats fetch failed fetch=%s", name)
                    raise ReportGenerationError(details={"fetch": name}) from exc
        finally:
            # Drops whatever has not started yet once a sibling fetch has failed.
            executor.shutdown(wait=False, cancel_futures=True)
        return results

    def _summary_fields(
        self,
        bookings: List[BookingRecord],
        total_cars: int,
        start: datetime,
        end: datetime,
    ) -> Dict[str, Any]:
        counts = summarize_counts(bookings)
        revenue = total_revenue(bookings)
        return {
            "total_revenue": revenue,
            "total_bookings": counts.total,
            "accepted_bookings": counts.accepted,
            "cancelled_bookings": counts.cancelled,
            "acceptance_rate": acceptance_rate(counts.accepted, counts.total),
            "cancellation_rate": cancellation_rate(counts.cancelled, counts.total),
            "average_revenue_per_booking": average_revenue_per_booking(revenue, counts.accepted),
            "average_duration": average_duration(bookings),
            "occupancy_rate": occupancy_rate(bookings, total_cars, start, end),
            "rebooking_rate": rebooking_rate(bookings),
            "average_lead_time": average_lead_time(bookings),
            "last_booking_activity": last_booking_activity(bookings),
        }

    def _report_sections(
        self,
        bookings: List[BookingRecord],
        views: List[ViewRecord],
        start: datetime,
        end: datetime,
    ) -> Dict[str, Any]:
        top_n = self.settings.stats_top_n
        status_breakdown = build_status_breakdown(bookings)
        return {
            "status_breakdown": status_breakdown,
            "revenue_by_status": status_breakdown,
            "monthly_revenue": build_revenue_series(bookings, month_key),
            "weekly_trend": build_weekly_trend(bookings),
            "views_over_time": build_views_over_time(views),
            "revenue_by_model": model_revenue(bookings)[:top_n],
            "occupancy_by_model": model_occupancy(bookings, start, end)[:top_n],
            "cancellations_by_payment_status": cancellation_by_payment_status(bookings),
            "top_models": top_models_by_bookings(bookings, top_n),
        }
