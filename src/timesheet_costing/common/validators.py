from __future__ import annotations

import math
from typing import Any, Optional

from ..core.constants import MAX_DAILY_HOURS
from ..core.exceptions import ValidationError


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_hours(value: Any, field_name: str) -> float:
    """Coerce to float and check the 0..24 range of a single day."""
    if value is None or value == "":
        return 0.0
    try:
        hours = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if not math.isfinite(hours):
        raise ValidationError(f"{field_name} must be a finite number")
    if hours < 0 or hours > MAX_DAILY_HOURS:
        raise ValidationError(f"{field_name} must be between 0 and {MAX_DAILY_HOURS}")
    return hours


def require_month(value: Any) -> int:
    try:
        month = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Month must be a number between 1 and 12")
    if month < 1 or month > 12:
        raise ValidationError("Month must be a number between 1 and 12")
    return month


def require_year(value: Any) -> int:
    try:
        year = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Year must be a number")
    if year < 1900 or year > 9999:
        raise ValidationError("Year is out of range")
    return year


def require_id(value: Any, field_name: str) -> int:
    try:
        ident = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field_name} format")
    if ident <= 0:
        raise ValidationError(f"Invalid {field_name} format")
    return ident
