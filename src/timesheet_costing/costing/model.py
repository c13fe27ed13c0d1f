from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..projects.model import Project


def _r(value: float) -> float:
    return round(value, 2)


@dataclass
class CostBucket:
    """Running hour/cost totals for one rollup row."""

    normal_hours: float = 0.0
    ot_hours: float = 0.0
    normal_cost: float = 0.0
    ot_cost: float = 0.0

    @property
    def total_hours(self) -> float:
        return self.normal_hours + self.ot_hours

    @property
    def total_cost(self) -> float:
        return self.normal_cost + self.ot_cost

    def add(self, *, normal_hours: float, ot_hours: float, normal_cost: float, ot_cost: float) -> None:
        self.normal_hours += normal_hours
        self.ot_hours += ot_hours
        self.normal_cost += normal_cost
        self.ot_cost += ot_cost

    def to_dict(self) -> dict:
        return {
            "normalHours": _r(self.normal_hours),
            "otHours": _r(self.ot_hours),
            "totalHours": _r(self.total_hours),
            "normalCost": _r(self.normal_cost),
            "otCost": _r(self.ot_cost),
            "totalCost": _r(self.total_cost),
        }


@dataclass
class EmployeeCost:
    user_id: int
    name: str
    email: Optional[str]
    hourly_rate: float
    costs: CostBucket = field(default_factory=CostBucket)
    timesheet_ids: set[int] = field(default_factory=set)

    def to_dict(self) -> dict:
        return {
            "user": {"id": self.user_id, "name": self.name, "email": self.email},
            "hourlyRate": self.hourly_rate,
            "timesheetCount": len(self.timesheet_ids),
            **self.costs.to_dict(),
        }


@dataclass
class DisciplineCost:
    discipline_code: str
    costs: CostBucket = field(default_factory=CostBucket)
    user_ids: set[int] = field(default_factory=set)

    def to_dict(self) -> dict:
        return {
            "disciplineCode": self.discipline_code,
            "employeeCount": len(self.user_ids),
            **self.costs.to_dict(),
        }


@dataclass
class MonthlyCost:
    month: int
    year: int
    costs: CostBucket = field(default_factory=CostBucket)
    user_ids: set[int] = field(default_factory=set)

    def to_dict(self) -> dict:
        return {
            "month": self.month,
            "year": self.year,
            "employeeCount": len(self.user_ids),
            **self.costs.to_dict(),
        }


@dataclass(frozen=True)
class CostingParameters:
    hourly_rate: float
    overtime_multiplier: float
    periods: Optional[tuple[tuple[int, int], ...]]
    discipline_code: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "hourlyRate": self.hourly_rate,
            "overtimeMultiplier": self.overtime_multiplier,
            "overtimeRate": self.hourly_rate * self.overtime_multiplier,
            "periods": [{"month": m, "year": y} for m, y in self.periods] if self.periods is not None else "All time",
            "disciplineCode": self.discipline_code,
        }


@dataclass(frozen=True)
class CostingSummary:
    totals: CostBucket
    employee_count: int
    timesheet_count: int

    @property
    def average_cost_per_employee(self) -> float:
        return self.totals.total_cost / self.employee_count if self.employee_count else 0.0

    @property
    def average_hours_per_employee(self) -> float:
        return self.totals.total_hours / self.employee_count if self.employee_count else 0.0

    def to_dict(self) -> dict:
        return {
            "totalNormalHours": _r(self.totals.normal_hours),
            "totalOTHours": _r(self.totals.ot_hours),
            "totalHours": _r(self.totals.total_hours),
            "totalNormalCost": _r(self.totals.normal_cost),
            "totalOTCost": _r(self.totals.ot_cost),
            "totalCost": _r(self.totals.total_cost),
            "employeeCount": self.employee_count,
            "timesheetCount": self.timesheet_count,
            "averageCostPerEmployee": _r(self.average_cost_per_employee),
            "averageHoursPerEmployee": _r(self.average_hours_per_employee),
        }


@dataclass(frozen=True)
class ProjectCostingReport:
    project: Project
    parameters: CostingParameters
    summary: CostingSummary
    employee_costs: list[EmployeeCost]
    discipline_costs: list[DisciplineCost]
    monthly_breakdown: list[MonthlyCost]

    def to_dict(self) -> dict:
        return {
            "project": self.project.summary(),
            "costingParameters": self.parameters.to_dict(),
            "summary": self.summary.to_dict(),
            "employeeCosts": [e.to_dict() for e in self.employee_costs],
            "disciplineCosts": [d.to_dict() for d in self.discipline_costs],
            "monthlyBreakdown": [m.to_dict() for m in self.monthly_breakdown],
        }


@dataclass(frozen=True)
class ProjectCostLine:
    project: Project
    costs: CostBucket
    employee_count: int
    timesheet_count: int

    def to_dict(self) -> dict:
        return {
            "project": self.project.summary(),
            "employeeCount": self.employee_count,
            "timesheetCount": self.timesheet_count,
            **self.costs.to_dict(),
        }


@dataclass(frozen=True)
class PortfolioSummary:
    hourly_rate: float
    overtime_multiplier: float
    projects: list[ProjectCostLine]

    @property
    def grand_total_cost(self) -> float:
        return sum(p.costs.total_cost for p in self.projects)

    @property
    def grand_total_hours(self) -> float:
        return sum(p.costs.total_hours for p in self.projects)

    @property
    def average_cost_per_project(self) -> float:
        return self.grand_total_cost / len(self.projects) if self.projects else 0.0

    def to_dict(self) -> dict:
        return {
            "costingParameters": {
                "hourlyRate": self.hourly_rate,
                "overtimeMultiplier": self.overtime_multiplier,
                "overtimeRate": self.hourly_rate * self.overtime_multiplier,
            },
            "summary": {
                "totalProjects": len(self.projects),
                "grandTotalCost": _r(self.grand_total_cost),
                "grandTotalHours": _r(self.grand_total_hours),
                "averageCostPerProject": _r(self.average_cost_per_project),
            },
            "projects": [p.to_dict() for p in self.projects],
        }
