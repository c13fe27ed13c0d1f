from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Iterable, Optional, Sequence

from ..common.datetime_utils import coerce_date, now_local
from ..common.normalizers import normalize_discipline_codes, normalize_optional_text
from ..common.validators import require_hours, require_month, require_non_empty, require_year
from ..core.enums import Role, TimesheetStatus
from ..core.exceptions import (
    AuthorizationError,
    ConflictError,
    DuplicateKeyError,
    NotFoundError,
    ValidationError,
)
from ..overtime.model import OvertimeCoverage
from ..overtime.service import OvertimeService
from ..users.repository import UserRepository
from .model import Timesheet, TimesheetEntry, TimesheetQuery
from .repository import TimesheetRepository
from .state import PENDING_REVIEW_STATUSES

logger = logging.getLogger(__name__)

DUPLICATE_PERIOD_MESSAGE = "Timesheet already exists for this project and period"


def parse_entry(raw: Any) -> TimesheetEntry:
    """Build an entry from API input (dict) or pass an entry through re-validated."""
    if isinstance(raw, TimesheetEntry):
        raw = {
            "date": raw.work_date,
            "normalHours": raw.normal_hours,
            "otHours": raw.ot_hours,
            "disciplineCodes": list(raw.discipline_codes),
            "platform": raw.platform,
            "hoursCode": raw.hours_code,
            "description": raw.description,
            "detailedDescription": raw.detailed_description,
        }
    if not isinstance(raw, dict):
        raise ValidationError("Each entry must be an object")

    work_date = coerce_date(raw.get("date"), "Entry date")
    day = work_date.isoformat()
    return TimesheetEntry(
        work_date=work_date,
        normal_hours=require_hours(raw.get("normalHours"), f"Normal hours on {day}"),
        ot_hours=require_hours(raw.get("otHours"), f"OT hours on {day}"),
        discipline_codes=tuple(normalize_discipline_codes(raw.get("disciplineCodes"))),
        platform=normalize_optional_text(raw.get("platform")),
        hours_code=normalize_optional_text(raw.get("hoursCode")),
        description=normalize_optional_text(raw.get("description")),
        detailed_description=normalize_optional_text(raw.get("detailedDescription")),
    )


def parse_entries(raw_entries: Optional[Iterable[Any]], *, month: int, year: int) -> tuple[TimesheetEntry, ...]:
    """Validate entries: every day inside (month, year), at most one entry per day."""
    entries: list[TimesheetEntry] = []
    seen: set[date] = set()
    for raw in list(raw_entries or []):
        entry = parse_entry(raw)
        if entry.work_date.month != month or entry.work_date.year != year:
            raise ValidationError(f"Entry date {entry.work_date.isoformat()} is outside {year}-{month:02d}")
        if entry.work_date in seen:
            raise ValidationError(f"Duplicate entry for {entry.work_date.isoformat()}")
        seen.add(entry.work_date)
        entries.append(entry)
    return tuple(entries)


class TimesheetService:
    """Timesheet lifecycle: create/update/submit/approve/reject/delete and queries."""

    def __init__(
        self,
        timesheets: TimesheetRepository,
        overtime: OvertimeService,
        users: Optional[UserRepository] = None,
    ):
        self._timesheets = timesheets
        self._overtime = overtime
        self._users = users

    # -------- helpers --------
    def _get_or_404(self, timesheet_id: int) -> Timesheet:
        ts = self._timesheets.get(timesheet_id=int(timesheet_id))
        if not ts:
            raise NotFoundError("Timesheet not found")
        return ts

    def _persist(self, ts: Timesheet) -> Timesheet:
        if not self._timesheets.save(ts):
            raise NotFoundError("Timesheet not found")
        return self._get_or_404(ts.timesheet_id)

    @staticmethod
    def _ensure_owner_or_admin(ts: Timesheet, requester_id: int, current_role: Role, action: str) -> None:
        if ts.user_id != int(requester_id) and current_role != Role.ADMIN:
            raise AuthorizationError(f"Not authorized to {action} this timesheet")

    @staticmethod
    def _ensure_reviewer(current_role: Role, action: str) -> None:
        if not current_role.can_review:
            raise AuthorizationError(f"Only managers or admins can {action} timesheets")

    def _check_overtime(
        self,
        *,
        user_id: int,
        project_id: int,
        entries: Iterable[TimesheetEntry],
    ) -> list[tuple[OvertimeCoverage, float]]:
        """Every OT hour needs an approved request for that exact day and project."""
        consumed: list[tuple[OvertimeCoverage, float]] = []
        for entry in entries:
            if entry.ot_hours <= 0:
                continue
            day = entry.work_date.isoformat()
            coverage = self._overtime.find_approved_coverage(
                user_id=user_id,
                project_id=project_id,
                work_date=entry.work_date,
            )
            if coverage is None:
                raise ValidationError(
                    f"No approved overtime request for {day}: OT hours cannot be entered for this day"
                )
            if entry.ot_hours > coverage.approved_hours:
                raise ValidationError(
                    f"OT hours on {day} ({entry.ot_hours:g}) exceed approved overtime ({coverage.approved_hours:g} hours)"
                )
            consumed.append((coverage, entry.ot_hours))
        return consumed

    def _record_overtime(self, consumed: Sequence[tuple[OvertimeCoverage, float]]) -> None:
        for coverage, hours in consumed:
            self._overtime.record_actual_hours(coverage, hours)

    def _release_overtime(self, ts: Timesheet, days: Iterable[date]) -> None:
        for work_date in sorted(days):
            self._overtime.release_actual_hours(user_id=ts.user_id, project_id=ts.project_id, work_date=work_date)

    # -------- lifecycle --------
    def create(
        self,
        *,
        current_role: Role,
        user_id: int,
        project_id: int,
        month: Any,
        year: Any,
        discipline_codes: Any,
        entries: Optional[Iterable[Any]] = None,
        area: Optional[str] = None,
        platform: Optional[str] = None,
        comments: Optional[str] = None,
    ) -> Timesheet:
        month = require_month(month)
        year = require_year(year)
        codes = normalize_discipline_codes(discipline_codes, required=True)
        parsed = parse_entries(entries, month=month, year=year)

        if self._timesheets.find_for_period(user_id=int(user_id), project_id=int(project_id), month=month, year=year):
            raise ConflictError(DUPLICATE_PERIOD_MESSAGE)

        consumed = self._check_overtime(user_id=int(user_id), project_id=int(project_id), entries=parsed)

        ts = Timesheet(
            timesheet_id=None,
            user_id=int(user_id),
            project_id=int(project_id),
            month=month,
            year=year,
            discipline_codes=tuple(codes),
            area=normalize_optional_text(area),
            platform=normalize_optional_text(platform),
            entries=parsed,
            comments=normalize_optional_text(comments),
        )
        try:
            timesheet_id = self._timesheets.create(ts)
        except DuplicateKeyError:
            logger.warning(
                "Duplicate timesheet rejected by store: user=%s project=%s period=%s-%02d",
                user_id,
                project_id,
                year,
                month,
            )
            raise ConflictError(DUPLICATE_PERIOD_MESSAGE)

        self._record_overtime(consumed)
        logger.info("Timesheet %s created by user %s (%s)", timesheet_id, user_id, current_role.value)
        return self._get_or_404(timesheet_id)

    def update(
        self,
        *,
        timesheet_id: int,
        requester_id: int,
        current_role: Role,
        entries: Optional[Iterable[Any]] = None,
        area: Optional[str] = None,
        comments: Optional[str] = None,
        discipline_codes: Any = None,
    ) -> Timesheet:
        ts = self._get_or_404(timesheet_id)
        self._ensure_owner_or_admin(ts, requester_id, current_role, "update")
        ts.ensure_editable()

        parsed = parse_entries(entries, month=ts.month, year=ts.year) if entries is not None else None
        codes = normalize_discipline_codes(discipline_codes, required=True) if discipline_codes is not None else None
        consumed = (
            self._check_overtime(user_id=ts.user_id, project_id=ts.project_id, entries=parsed)
            if parsed is not None
            else []
        )

        previous = ts.status
        claimed_before = {e.work_date for e in ts.entries if e.ot_hours > 0}
        ts.apply_edit(
            entries=parsed,
            area=area.strip() if isinstance(area, str) else area,
            comments=comments.strip() if isinstance(comments, str) else comments,
            discipline_codes=codes,
        )
        saved = self._persist(ts)
        self._record_overtime(consumed)
        if parsed is not None:
            self._release_overtime(ts, claimed_before - {coverage.work_date for coverage, _ in consumed})

        if previous == TimesheetStatus.REJECTED:
            logger.info("Timesheet %s edited after rejection; back to draft", ts.timesheet_id)
        return saved

    def submit(self, *, timesheet_id: int, requester_id: int, now: Optional[datetime] = None) -> Timesheet:
        ts = self._get_or_404(timesheet_id)
        if ts.user_id != int(requester_id):
            raise AuthorizationError("Not authorized to submit this timesheet")

        ts.submit(now=now or now_local())
        saved = self._persist(ts)
        logger.info(
            "Timesheet %s %s (resubmissions=%s)",
            ts.timesheet_id,
            saved.status.value,
            saved.resubmission_count,
        )
        return saved

    def approve(
        self,
        *,
        timesheet_id: int,
        approver_id: int,
        current_role: Role,
        comments: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Timesheet:
        self._ensure_reviewer(current_role, "approve")
        ts = self._get_or_404(timesheet_id)

        ts.approve(approver_id=int(approver_id), now=now or now_local(), comments=normalize_optional_text(comments))
        saved = self._persist(ts)
        logger.info("Timesheet %s approved by %s", ts.timesheet_id, approver_id)
        return saved

    def reject(
        self,
        *,
        timesheet_id: int,
        approver_id: int,
        current_role: Role,
        rejection_reason: Optional[str],
        comments: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Timesheet:
        self._ensure_reviewer(current_role, "reject")
        reason = require_non_empty(rejection_reason, "Rejection reason")
        ts = self._get_or_404(timesheet_id)

        ts.reject(
            approver_id=int(approver_id),
            now=now or now_local(),
            reason=reason,
            comments=normalize_optional_text(comments),
        )
        saved = self._persist(ts)
        logger.info("Timesheet %s rejected by %s: %s", ts.timesheet_id, approver_id, reason)
        return saved

    def delete(self, *, timesheet_id: int, requester_id: int, current_role: Role) -> None:
        ts = self._get_or_404(timesheet_id)
        self._ensure_owner_or_admin(ts, requester_id, current_role, "delete")
        ts.ensure_deletable()
        if not self._timesheets.delete(timesheet_id=ts.timesheet_id):
            raise NotFoundError("Timesheet not found")
        self._release_overtime(ts, {e.work_date for e in ts.entries if e.ot_hours > 0})

    # -------- queries --------
    def get(self, *, timesheet_id: int, requester_id: int, current_role: Role) -> Timesheet:
        ts = self._get_or_404(timesheet_id)
        if current_role == Role.EMPLOYEE and ts.user_id != int(requester_id):
            raise AuthorizationError("Not authorized to view this timesheet")
        return ts

    def list_timesheets(
        self,
        *,
        current_role: Role,
        requester_id: int,
        status: Optional[TimesheetStatus] = None,
        month: Optional[int] = None,
        year: Optional[int] = None,
        user_id: Optional[int] = None,
        project_id: Optional[int] = None,
        name: Optional[str] = None,
    ) -> Sequence[Timesheet]:
        """Filter timesheets; employees only ever see their own."""
        user_ids: Optional[set[int]] = None
        if current_role == Role.EMPLOYEE:
            user_ids = {int(requester_id)}
        elif user_id is not None:
            user_ids = {int(user_id)}

        if name and name.strip():
            if self._users is None:
                raise ValidationError("Name search is not available")
            matches = set(self._users.search_ids_by_name(name))
            user_ids = matches if user_ids is None else user_ids & matches

        query = TimesheetQuery(
            statuses=(status,) if status else None,
            month=require_month(month) if month is not None else None,
            year=require_year(year) if year is not None else None,
            user_ids=tuple(sorted(user_ids)) if user_ids is not None else None,
            project_id=int(project_id) if project_id is not None else None,
        )
        return self._timesheets.list_timesheets(query)

    def list_by_user(self, *, current_role: Role, requester_id: int, user_id: int) -> Sequence[Timesheet]:
        if current_role == Role.EMPLOYEE and int(user_id) != int(requester_id):
            raise AuthorizationError("Not authorized to view timesheets of another user")
        return self.list_timesheets(current_role=current_role, requester_id=requester_id, user_id=user_id)

    def list_by_project(self, *, current_role: Role, requester_id: int, project_id: int) -> Sequence[Timesheet]:
        return self.list_timesheets(current_role=current_role, requester_id=requester_id, project_id=project_id)

    def list_pending_review(self, *, current_role: Role) -> Sequence[Timesheet]:
        self._ensure_reviewer(current_role, "review")
        return self._timesheets.list_timesheets(
            TimesheetQuery(statuses=tuple(sorted(PENDING_REVIEW_STATUSES, key=lambda s: s.value)))
        )
