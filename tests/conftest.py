from __future__ import annotations

import os

os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")

from datetime import datetime, timezone
from typing import Any, Callable, List, Tuple

import pytest
from fastapi.testclient import TestClient

from src.api.dependencies import get_stats_service
from src.main import create_app
from src.models.stats import BookingRecord, BookingStatus
from src.schemas.stats import (
    AdminStatsResponse,
    AdminStatsSummary,
    AgencyStatsResponse,
    AgencyStatsSummary,
    PaymentStatusCancellationStat,
    RevenueTimePoint,
    StatusBreakdownItem,
    TopModelStat,
)


def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


def _summary_values() -> dict:
    return {
        "total_revenue": 250.0,
        "total_bookings": 3,
        "accepted_bookings": 2,
        "cancelled_bookings": 1,
        "acceptance_rate": 66.66666666666667,
        "cancellation_rate": 33.333333333333336,
        "average_revenue_per_booking": 125.0,
        "average_duration": 3.0,
        "occupancy_rate": 0.2,
        "rebooking_rate": 0.5,
        "average_lead_time": 9.0,
    }


def _sections() -> dict:
    breakdown = [
        StatusBreakdownItem(status=BookingStatus.PAID, count=2, total_price=250.0),
        StatusBreakdownItem(status=BookingStatus.CANCELLED, count=1, total_price=80.0),
    ]
    return {
        "status_breakdown": breakdown,
        "revenue_by_status": breakdown,
        "monthly_revenue": [RevenueTimePoint(period="2024-04", revenue=250.0, bookings=2)],
        "weekly_trend": [],
        "views_over_time": [],
        "revenue_by_model": [],
        "occupancy_by_model": [],
        "cancellations_by_payment_status": [
            PaymentStatusCancellationStat(payment_status="deposit", count=1),
            PaymentStatusCancellationStat(payment_status="paid", count=0),
        ],
        "top_models": [
            TopModelStat(
                model="Model A",
                bookings=2,
                agency_id="supplier-1",
                agency_name="Agency One",
                model_id="car-1",
            )
        ],
    }


class FakeStatsService:
    def __init__(self) -> None:
        self.agency_calls: List[Tuple[str, datetime, datetime]] = []
        self.admin_calls: List[Tuple[datetime, datetime]] = []

    def build_agency_report(self, agency_id: str, start: datetime, end: datetime) -> AgencyStatsResponse:
        self.agency_calls.append((agency_id, start, end))
        return AgencyStatsResponse(summary=AgencyStatsSummary(**_summary_values()), **_sections())

    def build_admin_report(self, start: datetime, end: datetime) -> AdminStatsResponse:
        self.admin_calls.append((start, end))
        return AdminStatsResponse(
            summary=AdminStatsSummary(
                **_summary_values(),
                active_agencies=2,
                current_year_revenue=1200.0,
                previous_year_revenue=900.0,
                conversion_rate=0.04,
            ),
            average_duration_by_agency=[],
            **_sections(),
        )


@pytest.fixture()
def fake_stats_service() -> FakeStatsService:
    return FakeStatsService()


@pytest.fixture()
def client(fake_stats_service: FakeStatsService) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_stats_service] = lambda: fake_stats_service
    return TestClient(app)


@pytest.fixture()
def make_booking() -> Callable[..., BookingRecord]:
    def factory(**overrides: Any) -> BookingRecord:
        values: dict = {
            "status": BookingStatus.PAID,
            "price": 100,
            "from_date": utc(2024, 1, 10),
            "to_date": utc(2024, 1, 12),
            "created_at": utc(2024, 1, 1),
            "updated_at": utc(2024, 1, 12),
            "supplier_id": "supplier-1",
            "supplier_name": "Agency One",
            "car_id": "car-1",
            "car_name": "Model A",
            "driver_id": "driver-1",
            "payment_intent_id": "pi_1",
            "session_id": "sess_1",
        }
        values.update(overrides)
        return BookingRecord.model_validate(values)

    return factory
