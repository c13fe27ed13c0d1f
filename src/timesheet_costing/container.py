from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .core.constants import DEFAULT_HOURLY_RATE, DEFAULT_OVERTIME_MULTIPLIER
from .costing.calculator.standard_calculator import StandardCostCalculator
from .costing.service import CostingReportService
from .database.connection import DBConfig, DatabaseConnection
from .overtime.mysql_overtime_repository import MySQLOvertimeRequestRepository
from .overtime.repository import OvertimeRequestRepository
from .overtime.service import OvertimeService
from .projects.mysql_project_repository import MySQLProjectRepository
from .projects.repository import ProjectRepository
from .timesheets.mysql_timesheet_repository import MySQLTimesheetRepository
from .timesheets.repository import TimesheetRepository
from .timesheets.service import TimesheetService
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository


@dataclass(frozen=True)
class Container:
    users_repo: UserRepository
    projects_repo: ProjectRepository
    timesheets_repo: TimesheetRepository
    overtime_repo: OvertimeRequestRepository

    overtime_service: OvertimeService
    timesheet_service: TimesheetService
    costing_service: CostingReportService

    conn: Optional[DatabaseConnection] = None


def wire_services(
    *,
    users_repo: UserRepository,
    projects_repo: ProjectRepository,
    timesheets_repo: TimesheetRepository,
    overtime_repo: OvertimeRequestRepository,
    default_hourly_rate: float = DEFAULT_HOURLY_RATE,
    overtime_multiplier: float = DEFAULT_OVERTIME_MULTIPLIER,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    overtime_service = OvertimeService(overtime_repo)
    timesheet_service = TimesheetService(timesheets_repo, overtime_service, users_repo)
    costing_service = CostingReportService(
        timesheets_repo,
        users_repo,
        projects_repo,
        calculator=StandardCostCalculator(overtime_multiplier=overtime_multiplier),
        default_hourly_rate=default_hourly_rate,
    )

    return Container(
        users_repo=users_repo,
        projects_repo=projects_repo,
        timesheets_repo=timesheets_repo,
        overtime_repo=overtime_repo,
        overtime_service=overtime_service,
        timesheet_service=timesheet_service,
        costing_service=costing_service,
        conn=conn,
    )


def build_container(
    *,
    db_config: dict,
    default_hourly_rate: float = DEFAULT_HOURLY_RATE,
    overtime_multiplier: float = DEFAULT_OVERTIME_MULTIPLIER,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_settings(db_config))

    return wire_services(
        users_repo=MySQLUserRepository(conn),
        projects_repo=MySQLProjectRepository(conn),
        timesheets_repo=MySQLTimesheetRepository(conn),
        overtime_repo=MySQLOvertimeRequestRepository(conn),
        default_hourly_rate=default_hourly_rate,
        overtime_multiplier=overtime_multiplier,
        conn=conn,
    )
