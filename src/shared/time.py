from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from src.core.errors import BadRequestError


def resolve_report_window(
    start: Optional[datetime],
    end: Optional[datetime],
    default_days: int,
    now: Optional[datetime] = None,
) -> Tuple[datetime, datetime]:
    """Fill in a missing bound and reject windows that run backwards.

    A missing ``end`` means now; a missing ``start`` means ``default_days``
    before the end. Naive datetimes are read as UTC so both bounds compare.
    """
    reference = now or datetime.now(timezone.utc)
    range_end = as_utc(end) if end else reference
    range_start = as_utc(start) if start else range_end - timedelta(days=default_days)
    if range_start > range_end:
        raise BadRequestError(
            "INVALID_RANGE",
            details={"start": range_start.isoformat(), "end": range_end.isoformat()},
        )
    return range_start, range_end


def as_utc(value: datetime) -> datetime:
    """Read naive datetimes as UTC and convert aware ones to it."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
