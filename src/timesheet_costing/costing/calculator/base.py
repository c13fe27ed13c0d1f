from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class CostCalculator(ABC):
    """Calculator interface (Strategy Pattern for manhour costing)."""

    @abstractmethod
    def effective_rate(self, user_rate: Any, default_rate: float) -> float:
        raise NotImplementedError

    @abstractmethod
    def normal_cost(self, hours: float, rate: float) -> float:
        raise NotImplementedError

    @abstractmethod
    def ot_cost(self, hours: float, rate: float) -> float:
        raise NotImplementedError

    @property
    @abstractmethod
    def overtime_multiplier(self) -> float:
        raise NotImplementedError
