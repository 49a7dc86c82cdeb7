from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from src.core.errors import ReportGenerationError
from src.models.stats import BookingRecord, BookingStatus, ViewRecord
from src.services.stats_service import StatsService


def utc(year: int, month: int, day: int, hour: int = 0) -> datetime:
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


class StubStatsRepository:
    def __init__(self) -> None:
        self.bookings: List[BookingRecord] = []
        self.yearly_bookings: Dict[int, List[BookingRecord]] = {}
        self.views: List[ViewRecord] = []
        self.car_count = 0
        self.supplier_names: Dict[str, str] = {}
        self.booking_calls: List[Tuple[datetime, datetime, Optional[str]]] = []
        self.car_count_calls: List[List[str]] = []
        self.view_calls: List[Tuple[datetime, datetime, Optional[str]]] = []
        self.failing_fetch: Optional[str] = None

    def _maybe_fail(self, name: str) -> None:
        if self.failing_fetch == name:
            raise RuntimeError(f"{name} unavailable")

    def fetch_bookings(
        self, start: datetime, end: datetime, agency_id: Optional[str] = None
    ) -> List[BookingRecord]:
        self._maybe_fail("bookings")
        self.booking_calls.append((start, end, agency_id))
        if start.month == 1 and start.day == 1 and start.year in self.yearly_bookings:
            return self.yearly_bookings[start.year]
        return self.bookings

    def fetch_car_count(self, agency_ids: Sequence[str]) -> int:
        self._maybe_fail("cars")
        self.car_count_calls.append(list(agency_ids))
        return self.car_count

    def fetch_views(
        self, start: datetime, end: datetime, agency_id: Optional[str] = None
    ) -> List[ViewRecord]:
        self._maybe_fail("views")
        self.view_calls.append((start, end, agency_id))
        return self.views

    def fetch_supplier_names(self, supplier_ids: Sequence[str]) -> Dict[str, str]:
        self._maybe_fail("suppliers")
        return {key: value for key, value in self.supplier_names.items() if key in supplier_ids}


def build_service(repository: StubStatsRepository, top_n: int = 5) -> StatsService:
    service = StatsService(repository=repository)
    service.settings = SimpleNamespace(stats_top_n=top_n, stats_fetch_workers=4)
    return service


def view(day: str, paid: bool) -> ViewRecord:
    return ViewRecord.model_validate({"date": day, "paid_view": paid})


def test_agency_report_summary(make_booking) -> None:
    repository = StubStatsRepository()
    repository.bookings = [
        make_booking(price=200, from_date=utc(2024, 4, 10), to_date=utc(2024, 4, 12), created_at=utc(2024, 4, 1)),
        make_booking(price=50, from_date=utc(2024, 4, 15), to_date=utc(2024, 4, 15), created_at=utc(2024, 4, 1)),
        make_booking(price=100, from_date=utc(2024, 5, 1), to_date=utc(2024, 5, 2), driver_id="driver-2"),
        make_booking(status=BookingStatus.CANCELLED, price=80, payment_intent_id=None),
    ]
    repository.car_count = 2
    repository.views = [view("2024-04-10", False), view("2024-04-10", True), view("2024-04-11", False)]
    service = build_service(repository)

    start, end = utc(2024, 4, 1), utc(2024, 5, 30)
    report = service.build_agency_report("supplier-1", start, end)

    summary = report.summary
    assert summary.total_bookings == 4
    assert summary.accepted_bookings == 3
    assert summary.cancelled_bookings == 1
    assert summary.total_revenue == 350.0
    assert summary.acceptance_rate == pytest.approx(75.0)
    assert summary.cancellation_rate == pytest.approx(25.0)
    assert summary.average_revenue_per_booking == pytest.approx(350 / 3)
    assert summary.average_duration == pytest.approx(2.0)
    assert summary.rebooking_rate == pytest.approx(0.5)
    # 6 booked days over 60 days of a two-car fleet.
    assert summary.occupancy_rate == pytest.approx(6 / 120)

    assert [(point.period, point.revenue) for point in report.monthly_revenue] == [
        ("2024-04", 250.0),
        ("2024-05", 100.0),
    ]
    assert report.revenue_by_status == report.status_breakdown
    assert [(point.date, point.total) for point in report.views_over_time] == [
        ("2024-04-10", 2),
        ("2024-04-11", 1),
    ]
    assert {item.payment_status: item.count for item in report.cancellations_by_payment_status} == {
        "deposit": 1,
        "paid": 0,
    }

    assert repository.booking_calls == [(start, end, "supplier-1")]
    assert repository.view_calls == [(start, end, "supplier-1")]
    assert repository.car_count_calls == [["supplier-1"]]


def test_agency_report_cuts_rankings_to_top_n(make_booking) -> None:
    repository = StubStatsRepository()
    repository.bookings = [
        make_booking(car_id=f"car-{index}", car_name=f"Model {index}", price=10 * (index + 1))
        for index in range(7)
    ]
    repository.car_count = 7
    service = build_service(repository, top_n=5)

    report = service.build_agency_report("supplier-1", utc(2024, 1, 1), utc(2024, 1, 31))

    assert len(report.top_models) == 5
    assert len(report.revenue_by_model) == 5
    assert len(report.occupancy_by_model) == 5
    assert report.revenue_by_model[0].model_id == "car-6"


def test_agency_report_with_no_records() -> None:
    repository = StubStatsRepository()
    service = build_service(repository)

    report = service.build_agency_report("supplier-1", utc(2024, 1, 1), utc(2024, 1, 31))

    assert report.summary.total_revenue == 0.0
    assert report.summary.occupancy_rate == 0.0
    assert report.summary.average_lead_time == 0.0
    assert report.summary.last_booking_activity is None
    assert report.monthly_revenue == []
    assert report.top_models == []
    assert [item.count for item in report.cancellations_by_payment_status] == [0, 0]


def test_admin_report_adds_platform_metrics(make_booking) -> None:
    repository = StubStatsRepository()
    repository.bookings = [
        make_booking(supplier_id="supplier-1", supplier_name="Embedded One", price=100),
        make_booking(supplier_id="supplier-2", supplier_name="Agency Two", price=300, car_id="car-2"),
        make_booking(supplier_id="supplier-2", status=BookingStatus.PENDING, car_id="car-2"),
    ]
    repository.yearly_bookings = {
        2024: [make_booking(price=500), make_booking(price=250, status=BookingStatus.CANCELLED)],
        2023: [make_booking(price=400), make_booking(price=600, status=BookingStatus.DEPOSIT)],
    }
    repository.views = [view("2024-01-10", True) for _ in range(40)]
    repository.car_count = 4
    repository.supplier_names = {"supplier-1": "Agency One"}
    service = build_service(repository)

    start, end = utc(2024, 1, 5), utc(2024, 1, 20, 12)
    report = service.build_admin_report(start, end)

    summary = report.summary
    assert summary.active_agencies == 2
    assert summary.total_revenue == 400.0
    assert summary.conversion_rate == pytest.approx(2 / 40)
    assert summary.current_year_revenue == 500.0
    assert summary.previous_year_revenue == 1000.0
    assert [(point.agency_id, point.agency_name) for point in report.average_duration_by_agency] == [
        ("supplier-1", "Agency One"),
        ("supplier-2", "Agency Two"),
    ]
    assert repository.car_count_calls == [["supplier-1", "supplier-2"]]

    windows = repository.booking_calls
    assert (utc(2023, 1, 1), datetime(2023, 12, 31, 23, 59, 59, 999000, tzinfo=timezone.utc), None) in windows
    assert (utc(2024, 1, 1), end, None) in windows
    assert (start, end, None) in windows
    assert repository.view_calls == [(start, end, None)]


def test_admin_report_without_bookings_skips_supplier_fetches() -> None:
    repository = StubStatsRepository()
    service = build_service(repository)

    report = service.build_admin_report(utc(2024, 1, 1), utc(2024, 1, 31))

    assert report.summary.active_agencies == 0
    assert report.summary.conversion_rate == 0.0
    assert report.average_duration_by_agency == []
    assert repository.car_count_calls == []


@pytest.mark.parametrize("failing_fetch", ["bookings", "cars", "views"])
def test_agency_report_fails_when_a_fetch_fails(make_booking, failing_fetch: str) -> None:
    repository = StubStatsRepository()
    repository.bookings = [make_booking()]
    repository.failing_fetch = failing_fetch
    service = build_service(repository)

    with pytest.raises(ReportGenerationError) as excinfo:
        service.build_agency_report("supplier-1", utc(2024, 1, 1), utc(2024, 1, 31))

    assert excinfo.value.status_code == 500
    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_admin_report_fails_when_supplier_lookup_fails(make_booking) -> None:
    repository = StubStatsRepository()
    repository.bookings = [make_booking()]
    repository.failing_fetch = "suppliers"
    service = build_service(repository)

    with pytest.raises(ReportGenerationError) as excinfo:
        service.build_admin_report(utc(2024, 1, 1), utc(2024, 1, 31))

    assert excinfo.value.details == {"fetch": "names"}
