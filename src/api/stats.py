from __future__ import annotations

from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends

from src.api.dependencies import get_stats_service
from src.core.config import get_settings
from src.schemas.stats import AdminStatsResponse, AgencyStatsResponse, StatsRangeFilters
from src.services.stats_service import StatsService
from src.shared.response import Meta, ResponseEnvelope
from src.shared.time import resolve_report_window


router = APIRouter(prefix="/stats", tags=["stats"])


def _build_meta(source: str, start: datetime, end: datetime) -> Meta:
    return Meta(
        as_of_date=date.today().isoformat(),
        source=source,
        time_window="custom",
        calculation_version="v1",
        range_start=start.isoformat(),
        range_end=end.isoformat(),
        generated_at=datetime.now(timezone.utc).isoformat(),
    )


@router.get("/agencies/{agency_id}")
def agency_stats(
    agency_id: str,
    filters: StatsRangeFilters = Depends(),
    service: StatsService = Depends(get_stats_service),
) -> ResponseEnvelope[AgencyStatsResponse]:
    start, end = resolve_report_window(
        filters.start, filters.end, get_settings().stats_default_window_days
    )
    data = service.build_agency_report(agency_id, start, end)
    return ResponseEnvelope(data=data, meta=_build_meta("booking_metrics,car_views,cars", start, end))


@router.get("/admin")
def admin_stats(
    filters: StatsRangeFilters = Depends(),
    service: StatsService = Depends(get_stats_service),
) -> ResponseEnvelope[AdminStatsResponse]:
    start, end = resolve_report_window(
        filters.start, filters.end, get_settings().stats_default_window_days
    )
    data = service.build_admin_report(start, end)
    return ResponseEnvelope(
        data=data,
        meta=_build_meta("booking_metrics,car_views,cars,suppliers", start, end),
    )
