from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from src.core.config import get_settings
from src.core.supabase import SupabaseClient
from src.models.stats import BookingRecord, ViewRecord

BOOKING_COLUMNS = (
    "status,price,from,to,created_at,updated_at,supplier_id,supplier_name,"
    "car_id,car_name,driver_id,payment_intent_id,session_id"
)


class StatsRecordSource(Protocol):
    def fetch_bookings(
        self, start: datetime, end: datetime, agency_id: Optional[str] = None
    ) -> List[BookingRecord]: ...

    def fetch_car_count(self, agency_ids: Sequence[str]) -> int: ...

    def fetch_views(
        self, start: datetime, end: datetime, agency_id: Optional[str] = None
    ) -> List[ViewRecord]: ...

    def fetch_supplier_names(self, supplier_ids: Sequence[str]) -> Dict[str, str]: ...


class StatsRepository:
    def __init__(self) -> None:
        self.client = SupabaseClient()
        self.page_size = max(1, get_settings().stats_page_size)

    def fetch_bookings(
        self, start: datetime, end: datetime, agency_id: Optional[str] = None
    ) -> List[BookingRecord]:
        # Bookings belong to the window their rental starts in.
        filters: List[Tuple[str, str]] = [
            ("from", f"gte.{start.isoformat()}"),
            ("from", f"lte.{end.isoformat()}"),
        ]
        if agency_id:
            filters.append(("supplier_id", f"eq.{agency_id}"))
        rows = self._select_all(
            table="booking_metrics",
            select=BOOKING_COLUMNS,
            filters=filters,
            order="from.asc,id.asc",
        )
        return [BookingRecord.model_validate(row) for row in rows]

    def fetch_car_count(self, agency_ids: Sequence[str]) -> int:
        if not agency_ids:
            return 0
        return self.client.count(
            table="cars",
            filters=[
                ("supplier_id", f"in.({','.join(agency_ids)})"),
                ("deleted", "not.is.true"),
            ],
        )

    def fetch_views(
        self, start: datetime, end: datetime, agency_id: Optional[str] = None
    ) -> List[ViewRecord]:
        filters: List[Tuple[str, str]] = [
            ("viewed_at", f"gte.{start.isoformat()}"),
            ("viewed_at", f"lte.{end.isoformat()}"),
        ]
        if agency_id:
            filters.append(("supplier_id", f"eq.{agency_id}"))
        rows = self._select_all(
            table="car_views",
            select="viewed_at,paid_view",
            filters=filters,
            order="viewed_at.asc,id.asc",
        )
        return [ViewRecord.model_validate(row) for row in rows]

    def fetch_supplier_names(self, supplier_ids: Sequence[str]) -> Dict[str, str]:
        if not supplier_ids:
            return {}
        rows = self._select_all(
            table="suppliers",
            select="id,full_name",
            filters=[("id", f"in.({','.join(supplier_ids)})")],
            order="id.asc",
        )
        return {str(row["id"]): str(row.get("full_name") or "") for row in rows if row.get("id")}

    def _select_all(
        self, table: str, select: str, filters: List[Tuple[str, str]], order: str
    ) -> List[Dict[str, Any]]:
        # A short page is the last one; the order needs a unique tail so pages never overlap.
        rows: List[Dict[str, Any]] = []
        offset = 0
        while True:
            page = self.client.select(
                table=table,
                select=select,
                filters=filters,
                limit=self.page_size,
                offset=offset,
                order=order,
            )
            rows.extend(page)
            if len(page) < self.page_size:
                return rows
            offset += len(page)
