from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from ..common.datetime_utils import coerce_date, months_between
from ..common.normalizers import normalize_discipline_codes
from ..common.validators import require_month, require_year
from ..core.constants import DEFAULT_HOURLY_RATE, UNASSIGNED_DISCIPLINE
from ..core.enums import ProjectStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..projects.repository import ProjectRepository
from ..timesheets.model import Timesheet, TimesheetEntry
from ..timesheets.repository import TimesheetRepository
from ..users.repository import UserRepository
from .calculator.base import CostCalculator
from .calculator.standard_calculator import StandardCostCalculator
from .model import (
    CostBucket,
    CostingParameters,
    CostingSummary,
    DisciplineCost,
    EmployeeCost,
    MonthlyCost,
    PortfolioSummary,
    ProjectCostingReport,
    ProjectCostLine,
)

logger = logging.getLogger(__name__)


def entry_disciplines(entry: TimesheetEntry, timesheet: Timesheet) -> tuple[str, ...]:
    """Codes an entry's hours are split across: its own, else the timesheet's."""
    return entry.discipline_codes or timesheet.discipline_codes or (UNASSIGNED_DISCIPLINE,)


def resolve_periods(
    *,
    month: Any = None,
    year: Any = None,
    start_date: Any = None,
    end_date: Any = None,
) -> Optional[tuple[tuple[int, int], ...]]:
    """Explicit (month, year), or the months a date range covers; None for all time."""
    if month is not None or year is not None:
        if month is None or year is None:
            raise ValidationError("Both month and year are required")
        return ((require_month(month), require_year(year)),)
    if start_date or end_date:
        if not (start_date and end_date):
            raise ValidationError("Both startDate and endDate are required")
        start = coerce_date(start_date, "Start date")
        end = coerce_date(end_date, "End date")
        return tuple(months_between(start, end))
    return None


class CostingReportService:
    """Read-only costing projections over approved timesheets."""

    def __init__(
        self,
        timesheets: TimesheetRepository,
        users: UserRepository,
        projects: ProjectRepository,
        *,
        calculator: Optional[CostCalculator] = None,
        default_hourly_rate: float = DEFAULT_HOURLY_RATE,
    ):
        self._timesheets = timesheets
        self._users = users
        self._projects = projects
        self._calculator = calculator or StandardCostCalculator()
        self._default_hourly_rate = float(default_hourly_rate)

    def _default_rate(self, requested: Any) -> float:
        return self._calculator.effective_rate(requested, self._default_hourly_rate)

    def build_project_costing(
        self,
        *,
        project_id: int,
        month: Any = None,
        year: Any = None,
        start_date: Any = None,
        end_date: Any = None,
        default_hourly_rate: Any = None,
        discipline_code: Optional[str] = None,
    ) -> ProjectCostingReport:
        project = self._projects.get_by_id(int(project_id))
        if not project:
            raise NotFoundError("Project not found")

        periods = resolve_periods(month=month, year=year, start_date=start_date, end_date=end_date)
        default_rate = self._default_rate(default_hourly_rate)
        codes = normalize_discipline_codes(discipline_code)
        only = codes[0] if codes else None

        timesheets = self._timesheets.list_approved_for_project(project_id=project.project_id, periods=periods)
        users = self._users.get_many(ts.user_id for ts in timesheets)

        employees: dict[int, EmployeeCost] = {}
        disciplines: dict[str, DisciplineCost] = {}
        months: dict[tuple[int, int], MonthlyCost] = {}
        totals = CostBucket()
        counted: set[int] = set()

        for ts in timesheets:
            user = users.get(ts.user_id)
            rate = self._calculator.effective_rate(user.hourly_rate if user else None, default_rate)

            for entry in ts.entries:
                split = entry_disciplines(entry, ts)
                share = 1.0 / len(split)
                if only is not None and only not in split:
                    continue

                for code in split:
                    if only is not None and code != only:
                        continue
                    normal = entry.normal_hours * share
                    ot = entry.ot_hours * share
                    portion = dict(
                        normal_hours=normal,
                        ot_hours=ot,
                        normal_cost=self._calculator.normal_cost(normal, rate),
                        ot_cost=self._calculator.ot_cost(ot, rate),
                    )

                    emp = employees.get(ts.user_id)
                    if emp is None:
                        emp = EmployeeCost(
                            user_id=ts.user_id,
                            name=user.full_name if user else f"User {ts.user_id}",
                            email=user.email if user else None,
                            hourly_rate=rate,
                        )
                        employees[ts.user_id] = emp
                    emp.costs.add(**portion)
                    emp.timesheet_ids.add(ts.timesheet_id)

                    disc = disciplines.setdefault(code, DisciplineCost(discipline_code=code))
                    disc.costs.add(**portion)
                    disc.user_ids.add(ts.user_id)

                    mon = months.setdefault((ts.year, ts.month), MonthlyCost(month=ts.month, year=ts.year))
                    mon.costs.add(**portion)
                    mon.user_ids.add(ts.user_id)

                    totals.add(**portion)
                    counted.add(ts.timesheet_id)

        logger.debug(
            "Costing for project %s: %s timesheets, %s employees",
            project.project_id,
            len(counted),
            len(employees),
        )

        return ProjectCostingReport(
            project=project,
            parameters=CostingParameters(
                hourly_rate=default_rate,
                overtime_multiplier=self._calculator.overtime_multiplier,
                periods=periods,
                discipline_code=only,
            ),
            summary=CostingSummary(totals=totals, employee_count=len(employees), timesheet_count=len(counted)),
            employee_costs=sorted(employees.values(), key=lambda e: e.costs.total_cost, reverse=True),
            discipline_costs=sorted(disciplines.values(), key=lambda d: d.costs.total_cost, reverse=True),
            monthly_breakdown=[months[k] for k in sorted(months)],
        )

    def build_portfolio_summary(self, *, default_hourly_rate: Any = None) -> PortfolioSummary:
        """Totals per active project using each user's own rate."""
        default_rate = self._default_rate(default_hourly_rate)
        lines: list[ProjectCostLine] = []

        for project in self._projects.list_by_status(ProjectStatus.ACTIVE):
            timesheets: Sequence[Timesheet] = self._timesheets.list_approved_for_project(project_id=project.project_id)
            users = self._users.get_many(ts.user_id for ts in timesheets)
            costs = CostBucket()
            for ts in timesheets:
                user = users.get(ts.user_id)
                rate = self._calculator.effective_rate(user.hourly_rate if user else None, default_rate)
                costs.add(
                    normal_hours=ts.total_normal_hours,
                    ot_hours=ts.total_ot_hours,
                    normal_cost=self._calculator.normal_cost(ts.total_normal_hours, rate),
                    ot_cost=self._calculator.ot_cost(ts.total_ot_hours, rate),
                )
            lines.append(
                ProjectCostLine(
                    project=project,
                    costs=costs,
                    employee_count=len({ts.user_id for ts in timesheets}),
                    timesheet_count=len(timesheets),
                )
            )

        lines.sort(key=lambda p: p.costs.total_cost, reverse=True)
        return PortfolioSummary(
            hourly_rate=default_rate,
            overtime_multiplier=self._calculator.overtime_multiplier,
            projects=lines,
        )
