from __future__ import annotations

from datetime import date, datetime
from typing import Any

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def coerce_date(value: Any, field_name: str = "Date") -> date:
    """Accept date/datetime objects or ISO strings (time part is ignored)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        raise ValidationError(f"{field_name} is required")
    try:
        return parse_iso_date(str(value).strip()[:10])
    except ValueError:
        raise ValidationError(f"{field_name} is not a valid date (YYYY-MM-DD): {value}")


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mock easier.
    """
    return datetime.now()


def months_between(start: date, end: date) -> list[tuple[int, int]]:
    """Expand a date range into the (month, year) pairs it touches, oldest first."""
    if end < start:
        raise ValidationError("End date must be on or after start date")

    periods: list[tuple[int, int]] = []
    for year in range(start.year, end.year + 1):
        first = start.month if year == start.year else 1
        last = end.month if year == end.year else 12
        for month in range(first, last + 1):
            periods.append((month, year))
    return periods
