"""Input cleaning for discipline codes, areas and platforms.

All helpers are pure: same input, same output, no side effects.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from ..core.constants import MAX_DISCIPLINE_CODES
from ..core.exceptions import ValidationError


def _as_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


def _clean(values: Iterable[Any]) -> list[str]:
    out = []
    for v in values:
        text = "" if v is None else str(v).strip()
        if text:
            out.append(text)
    return out


def normalize_discipline_codes(value: Any, *, required: bool = False) -> list[str]:
    """Trim, upper-case and de-duplicate discipline codes (first seen wins)."""
    codes: list[str] = []
    for code in _clean(_as_list(value)):
        code = code.upper()
        if code not in codes:
            codes.append(code)

    if required and not codes:
        raise ValidationError("Discipline code is required")
    if len(codes) > MAX_DISCIPLINE_CODES:
        raise ValidationError(
            f"too many codes: at most {MAX_DISCIPLINE_CODES} discipline codes are allowed, got {len(codes)}"
        )
    return codes


def normalize_areas(value: Any) -> Optional[list[str]]:
    """De-duplicate areas case-insensitively, keeping the first spelling.

    Returns None for None so callers can tell "no change" from "clear".
    """
    if value is None:
        return None

    seen: set[str] = set()
    areas: list[str] = []
    for area in _clean(_as_list(value)):
        key = area.casefold()
        if key in seen:
            continue
        seen.add(key)
        areas.append(area)
    return areas


def normalize_platforms(value: Any) -> Optional[list[str]]:
    if value is None:
        return None

    platforms: list[str] = []
    for platform in _clean(_as_list(value)):
        if platform not in platforms:
            platforms.append(platform)
    return platforms


def normalize_optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
