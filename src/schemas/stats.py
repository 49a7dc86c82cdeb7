from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import ConfigDict, Field

from src.models.stats import BookingStatus
from src.shared.base import BaseSchema


class StatusBreakdownItem(BaseSchema):
    status: BookingStatus
    count: int
    total_price: float


class RevenueTimePoint(BaseSchema):
    period: str
    revenue: float
    bookings: int


class WeeklyTrendPoint(BaseSchema):
    week: str
    revenue: float
    bookings: int


class ViewsTimePoint(BaseSchema):
    date: str
    organique: int
    paid: int
    total: int


class ModelRevenueStat(BaseSchema):
    model_config = ConfigDict(protected_namespaces=())

    model_id: str
    model_name: str
    revenue: float
    bookings: int


class ModelOccupancyStat(BaseSchema):
    model_config = ConfigDict(protected_namespaces=())

    model_id: str
    model_name: str
    booked_days: int
    total_days: int
    occupancy_rate: float = Field(..., ge=0.0, le=1.0)


class PaymentStatusCancellationStat(BaseSchema):
    payment_status: Literal["deposit", "paid"]
    count: int


class TopModelStat(BaseSchema):
    model_config = ConfigDict(protected_namespaces=())

    model: str
    bookings: int
    agency_id: str
    agency_name: str
    model_id: str


class AgencyAverageDurationPoint(BaseSchema):
    agency_id: str
    agency_name: str
    average_duration: float


class AgencyStatsSummary(BaseSchema):
    total_revenue: float
    total_bookings: int
    accepted_bookings: int
    cancelled_bookings: int
    acceptance_rate: float
    cancellation_rate: float
    average_revenue_per_booking: float
    average_duration: float
    occupancy_rate: float = Field(..., ge=0.0, le=1.0)
    rebooking_rate: float = Field(..., ge=0.0, le=1.0)
    average_lead_time: float
    last_booking_activity: Optional[datetime] = None


class AdminStatsSummary(AgencyStatsSummary):
    active_agencies: int
    current_year_revenue: float
    previous_year_revenue: float
    conversion_rate: float


class AgencyStatsResponse(BaseSchema):
    summary: AgencyStatsSummary
    status_breakdown: List[StatusBreakdownItem]
    revenue_by_status: List[StatusBreakdownItem]
    monthly_revenue: List[RevenueTimePoint]
    weekly_trend: List[WeeklyTrendPoint]
    views_over_time: List[ViewsTimePoint]
    revenue_by_model: List[ModelRevenueStat]
    occupancy_by_model: List[ModelOccupancyStat]
    cancellations_by_payment_status: List[PaymentStatusCancellationStat]
    top_models: List[TopModelStat]


class AdminStatsResponse(AgencyStatsResponse):
    summary: AdminStatsSummary
    average_duration_by_agency: List[AgencyAverageDurationPoint]


class StatsRangeFilters(BaseSchema):
    start: Optional[datetime] = None
    end: Optional[datetime] = None
