from __future__ import annotations

import math
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from src.shared.time import as_utc


class BookingStatus(str, Enum):
    VOID = "void"
    PENDING = "pending"
    DEPOSIT = "deposit"
    PAID = "paid"
    RESERVED = "reserved"
    CANCELLED = "cancelled"


ACCEPTED_STATUSES = frozenset({BookingStatus.PAID, BookingStatus.DEPOSIT, BookingStatus.RESERVED})
CANCELLED_STATUSES = frozenset({BookingStatus.CANCELLED, BookingStatus.VOID})


class BookingRecord(BaseModel):
    """One reservation as read for reporting.

    Bad values degrade instead of failing validation: an unknown status reads
    as pending, a missing or non-finite price reads as zero and timestamps
    without a zone read as UTC, so one broken row never sinks a whole report.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    status: BookingStatus = BookingStatus.PENDING
    price: float = 0.0
    from_date: datetime = Field(validation_alias=AliasChoices("from", "from_date"))
    to_date: datetime = Field(validation_alias=AliasChoices("to", "to_date"))
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    supplier_id: str = ""
    supplier_name: str = ""
    car_id: str = ""
    car_name: str = ""
    driver_id: Optional[str] = None
    payment_intent_id: Optional[str] = None
    session_id: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> BookingStatus:
        if isinstance(value, BookingStatus):
            return value
        if isinstance(value, str):
            try:
                return BookingStatus(value.strip().lower())
            except ValueError:
                return BookingStatus.PENDING
        return BookingStatus.PENDING

    @field_validator("price", mode="before")
    @classmethod
    def _coerce_price(cls, value: Any) -> float:
        if value is None or isinstance(value, bool):
            return 0.0
        try:
            price = float(value)
        except (TypeError, ValueError):
            return 0.0
        return price if math.isfinite(price) else 0.0

    @field_validator("supplier_id", "supplier_name", "car_id", "car_name", mode="before")
    @classmethod
    def _coerce_label(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("from_date", "to_date", "created_at", "updated_at", mode="after")
    @classmethod
    def _normalise_timestamp(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Timestamp columns without a zone hold UTC.
        return as_utc(value) if value is not None else None

    @field_validator("driver_id", "payment_intent_id", "session_id", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @property
    def is_accepted(self) -> bool:
        return self.status in ACCEPTED_STATUSES

    @property
    def is_cancelled(self) -> bool:
        return self.status in CANCELLED_STATUSES


class ViewRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    view_date: date = Field(validation_alias=AliasChoices("date", "viewed_at", "view_date"))
    paid_view: bool = False

    @field_validator("view_date", mode="before")
    @classmethod
    def _truncate_to_day(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str) and len(value) > 10:
            return value[:10]
        return value

    @field_validator("paid_view", mode="before")
    @classmethod
    def _coerce_paid_view(cls, value: Any) -> bool:
        return bool(value)
