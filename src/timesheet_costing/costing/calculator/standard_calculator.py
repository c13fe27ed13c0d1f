from __future__ import annotations

import math
from typing import Any, Optional

from ...core.constants import DEFAULT_HOURLY_RATE, DEFAULT_OVERTIME_MULTIPLIER
from .base import CostCalculator


def parse_rate(value: Any) -> Optional[float]:
    """Positive finite float, or None for absent/non-numeric/zero rates."""
    if value is None or isinstance(value, bool):
        return None
    try:
        rate = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(rate) or math.isinf(rate) or rate <= 0:
        return None
    return rate


class StandardCostCalculator(CostCalculator):
    """Standard rule: cost = hours x rate; OT uses the same rate times the multiplier (1.0 by default)."""

    def __init__(self, *, overtime_multiplier: float = DEFAULT_OVERTIME_MULTIPLIER):
        self._overtime_multiplier = float(overtime_multiplier)

    @property
    def overtime_multiplier(self) -> float:
        return self._overtime_multiplier

    def effective_rate(self, user_rate: Any, default_rate: float) -> float:
        rate = parse_rate(user_rate)
        if rate is not None:
            return rate
        fallback = parse_rate(default_rate)
        return fallback if fallback is not None else DEFAULT_HOURLY_RATE

    def normal_cost(self, hours: float, rate: float) -> float:
        return hours * rate

    def ot_cost(self, hours: float, rate: float) -> float:
        return hours * rate * self._overtime_multiplier
