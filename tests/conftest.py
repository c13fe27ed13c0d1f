from __future__ import annotations

import copy
from dataclasses import replace
from datetime import date, datetime, timedelta
import pytest

from timesheet_costing.core.enums import OvertimeStatus, ProjectStatus, Role
from timesheet_costing.core.exceptions import DuplicateKeyError
from timesheet_costing.overtime.model import DailyOvertime, NewOvertimeRequest, OvertimeRequest
from timesheet_costing.overtime.service import OvertimeService
from timesheet_costing.projects.model import Project
from timesheet_costing.timesheets.model import Timesheet, TimesheetQuery
from timesheet_costing.timesheets.service import TimesheetService
from timesheet_costing.users.model import User


class FakeUsersRepo:
    def __init__(self, users=()):
        self._users = {u.user_id: u for u in users}

    def get_by_id(self, user_id):
        return self._users.get(int(user_id))

    def get_many(self, user_ids):
        return {uid: self._users[uid] for uid in set(user_ids) if uid in self._users}

    def search_ids_by_name(self, name):
        needle = name.strip().lower()
        return [
            u.user_id
            for u in self._users.values()
            if needle in u.full_name.lower() or needle in u.email.lower()
        ]


class FakeProjectsRepo:
    def __init__(self, projects=()):
        self._projects = {p.project_id: p for p in projects}

    def get_by_id(self, project_id):
        return self._projects.get(int(project_id))

    def list_by_status(self, status):
        return sorted(
            (p for p in self._projects.values() if p.status == status),
            key=lambda p: p.project_code,
        )


class FakeTimesheetsRepo:
    """In-memory store enforcing the (user, project, month, year) unique key."""

    def __init__(self):
        self._next_id = 1
        self._rows: dict[int, Timesheet] = {}

    def _clash(self, ts: Timesheet) -> bool:
        return any(
            (o.user_id, o.project_id, o.month, o.year) == (ts.user_id, ts.project_id, ts.month, ts.year)
            and o.timesheet_id != ts.timesheet_id
            for o in self._rows.values()
        )

    def create(self, timesheet):
        if self._clash(timesheet):
            raise DuplicateKeyError("Duplicate entry for key 'uq_timesheet_period'")
        tid = self._next_id
        self._next_id += 1
        stored = copy.deepcopy(timesheet)
        stored.timesheet_id = tid
        stored.created_at = datetime(2024, 3, 1, 9, 0)
        self._rows[tid] = stored
        timesheet.timesheet_id = tid
        return tid

    def get(self, *, timesheet_id):
        ts = self._rows.get(int(timesheet_id))
        return copy.deepcopy(ts) if ts else None

    def find_for_period(self, *, user_id, project_id, month, year):
        for ts in self._rows.values():
            if (ts.user_id, ts.project_id, ts.month, ts.year) == (user_id, project_id, month, year):
                return copy.deepcopy(ts)
        return None

    def save(self, timesheet):
        if timesheet.timesheet_id not in self._rows:
            return False
        self._rows[timesheet.timesheet_id] = copy.deepcopy(timesheet)
        return True

    def delete(self, *, timesheet_id):
        return self._rows.pop(int(timesheet_id), None) is not None

    def list_timesheets(self, query: TimesheetQuery):
        out = []
        for ts in self._rows.values():
            if query.statuses is not None and ts.status not in query.statuses:
                continue
            if query.month is not None and ts.month != query.month:
                continue
            if query.year is not None and ts.year != query.year:
                continue
            if query.user_ids is not None and ts.user_id not in query.user_ids:
                continue
            if query.project_id is not None and ts.project_id != query.project_id:
                continue
            out.append(copy.deepcopy(ts))
        out.sort(key=lambda t: (t.year, t.month), reverse=True)
        return out[: query.limit]

    def list_approved_for_project(self, *, project_id, periods=None):
        wanted = set(periods) if periods is not None else None
        out = [
            copy.deepcopy(ts)
            for ts in self._rows.values()
            if ts.project_id == project_id
            and ts.status.value == "approved"
            and (wanted is None or (ts.month, ts.year) in wanted)
        ]
        out.sort(key=lambda t: (t.year, t.month))
        return out


class FakeOvertimeRepo:
    """In-memory ledger enforcing at most one active request per overlapping week."""

    def __init__(self):
        self._next_id = 1
        self._rows: dict[int, OvertimeRequest] = {}
        # Simulates a concurrent writer that passed the service pre-check.
        self.skip_overlap_lookup = False

    def _overlapping(self, *, user_id, project_id, start, end, exclude_request_id=None):
        return [
            r
            for r in self._rows.values()
            if r.user_id == user_id
            and r.project_id == project_id
            and r.is_active
            and r.overlaps(start, end)
            and r.request_id != exclude_request_id
        ]

    def _build(self, request_id, new: NewOvertimeRequest, *, status, created_at, **extra):
        return OvertimeRequest(
            request_id=request_id,
            user_id=new.user_id,
            project_id=new.project_id,
            week_start_date=new.week_start_date,
            week_end_date=new.week_end_date,
            daily_hours=new.daily_hours,
            reason=new.reason,
            status=status,
            created_at=created_at,
            work_description=new.work_description,
            discipline_code=new.discipline_code,
            area=new.area,
            **extra,
        )

    def create(self, request):
        if self._overlapping(
            user_id=request.user_id,
            project_id=request.project_id,
            start=request.week_start_date,
            end=request.week_end_date,
        ):
            raise DuplicateKeyError("Duplicate entry for key 'uq_ot_active_week'")
        rid = self._next_id
        self._next_id += 1
        self._rows[rid] = self._build(
            rid,
            request,
            status=OvertimeStatus.PENDING,
            created_at=datetime(2024, 3, 1, 8, 0) + timedelta(minutes=rid),
        )
        return rid

    def get(self, *, request_id):
        return self._rows.get(int(request_id))

    def find_active_overlapping(self, *, user_id, project_id, start, end, exclude_request_id=None):
        if self.skip_overlap_lookup:
            return []
        return self._overlapping(
            user_id=user_id,
            project_id=project_id,
            start=start,
            end=end,
            exclude_request_id=exclude_request_id,
        )

    def find_approved_for_day(self, *, user_id, project_id, work_date):
        for r in self._rows.values():
            if (
                r.user_id == user_id
                and r.project_id == project_id
                and r.status == OvertimeStatus.APPROVED
                and r.hours_for(work_date) is not None
            ):
                return r
        return None

    def update_pending(self, *, request_id, request):
        current = self._rows.get(int(request_id))
        if not current or current.status != OvertimeStatus.PENDING:
            return False
        self._rows[current.request_id] = self._build(
            current.request_id,
            request,
            status=current.status,
            created_at=current.created_at,
        )
        return True

    def delete_pending(self, *, request_id):
        current = self._rows.get(int(request_id))
        if not current or current.status != OvertimeStatus.PENDING:
            return False
        del self._rows[current.request_id]
        return True

    def decide(self, *, request_id, status, decided_by, rejection_reason=None):
        current = self._rows.get(int(request_id))
        if not current or current.status != OvertimeStatus.PENDING:
            return False
        self._rows[current.request_id] = replace(
            current,
            status=status,
            decided_by=int(decided_by),
            decided_at=datetime(2024, 3, 2, 9, 0),
            rejection_reason=rejection_reason,
        )
        return True

    def set_actual_hours(self, *, request_id, work_date, actual_hours):
        current = self._rows.get(int(request_id))
        if not current:
            return False
        days = tuple(
            DailyOvertime(work_date=d.work_date, hours=d.hours, actual_hours=actual_hours)
            if d.work_date == work_date
            else d
            for d in current.daily_hours
        )
        self._rows[current.request_id] = replace(current, daily_hours=days)
        return True

    def list_requests(self, *, status=None, user_id=None, project_id=None, limit=500):
        out = [
            r
            for r in self._rows.values()
            if (status is None or r.status == status)
            and (user_id is None or r.user_id == user_id)
            and (project_id is None or r.project_id == project_id)
        ]
        out.sort(key=lambda r: r.created_at, reverse=True)
        return out[:limit]


EMPLOYEE_ID = 2
OTHER_EMPLOYEE_ID = 3
MANAGER_ID = 10
ADMIN_ID = 1
PROJECT_ID = 7


def make_users():
    return [
        User(user_id=ADMIN_ID, full_name="Ada Admin", email="admin@example.com", role=Role.ADMIN),
        User(user_id=EMPLOYEE_ID, full_name="Linh Tran", email="linh@example.com", role=Role.EMPLOYEE, hourly_rate=40.0),
        User(user_id=OTHER_EMPLOYEE_ID, full_name="Minh Pham", email="minh@example.com", role=Role.EMPLOYEE),
        User(user_id=MANAGER_ID, full_name="Mai Nguyen", email="mai@example.com", role=Role.MANAGER, hourly_rate=80.0),
    ]


def make_projects():
    return [
        Project.build(project_id=PROJECT_ID, project_code="prj-007", project_name="Platform Upgrade"),
        Project.build(project_id=8, project_code="prj-008", project_name="Subsea Tieback"),
        Project.build(project_id=9, project_code="prj-009", project_name="Old Works", status=ProjectStatus.COMPLETED),
    ]


@pytest.fixture
def users_repo():
    return FakeUsersRepo(make_users())


@pytest.fixture
def projects_repo():
    return FakeProjectsRepo(make_projects())


@pytest.fixture
def timesheets_repo():
    return FakeTimesheetsRepo()


@pytest.fixture
def overtime_repo():
    return FakeOvertimeRepo()


@pytest.fixture
def overtime_service(overtime_repo):
    return OvertimeService(overtime_repo)


@pytest.fixture
def timesheet_service(timesheets_repo, overtime_service, users_repo):
    return TimesheetService(timesheets_repo, overtime_service, users_repo)


@pytest.fixture
def approved_ot(overtime_service):
    """Approve `hours` of overtime for EMPLOYEE_ID on PROJECT_ID for one day."""

    def _approve(work_date: date, hours: float, *, user_id: int = EMPLOYEE_ID, project_id: int = PROJECT_ID):
        req = overtime_service.create_single_day(
            current_role=Role.EMPLOYEE,
            user_id=user_id,
            project_id=project_id,
            work_date=work_date,
            requested_hours=hours,
            reason="Shutdown window",
        )
        return overtime_service.approve(current_role=Role.MANAGER, approver_id=MANAGER_ID, request_id=req.request_id)

    return _approve
