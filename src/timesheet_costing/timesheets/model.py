from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, Optional

from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import TimesheetStatus
from ..core.exceptions import StateError
from .state import TimesheetAction, next_status


@dataclass(frozen=True)
class TimesheetEntry:
    """One calendar day of a timesheet."""

    work_date: date
    normal_hours: float = 0.0
    ot_hours: float = 0.0
    discipline_codes: tuple[str, ...] = ()
    platform: Optional[str] = None
    hours_code: Optional[str] = None
    description: Optional[str] = None
    detailed_description: Optional[str] = None

    @property
    def total_hours(self) -> float:
        return self.normal_hours + self.ot_hours

    def to_dict(self) -> dict:
        return {
            "date": self.work_date.isoformat(),
            "normalHours": self.normal_hours,
            "otHours": self.ot_hours,
            "disciplineCodes": list(self.discipline_codes),
            "platform": self.platform or "",
            "hoursCode": self.hours_code,
            "description": self.description,
            "detailedDescription": self.detailed_description,
        }


@dataclass(frozen=True)
class HourTotals:
    normal_hours: float
    ot_hours: float
    total_hours: float


def compute_totals(entries: Iterable[TimesheetEntry]) -> HourTotals:
    """Sum normal/OT hours over entries; the only source of timesheet totals."""
    entries = list(entries)
    normal = sum(e.normal_hours for e in entries)
    ot = sum(e.ot_hours for e in entries)
    return HourTotals(normal_hours=normal, ot_hours=ot, total_hours=normal + ot)


@dataclass
class Timesheet:
    """Aggregate: one user's month on one project.

    Status changes go through the methods below so the state machine and the
    totals invariant cannot be bypassed.
    """

    timesheet_id: Optional[int]
    user_id: int
    project_id: int
    month: int
    year: int
    discipline_codes: tuple[str, ...] = ()
    area: Optional[str] = None
    platform: Optional[str] = None
    entries: tuple[TimesheetEntry, ...] = ()
    status: TimesheetStatus = TimesheetStatus.DRAFT
    resubmission_count: int = 0
    rejection_reason: Optional[str] = None
    comments: Optional[str] = None
    submitted_at: Optional[datetime] = None
    approved_by: Optional[int] = None
    approval_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    total_normal_hours: float = field(default=0.0, init=False)
    total_ot_hours: float = field(default=0.0, init=False)
    total_hours: float = field(default=0.0, init=False)

    def __post_init__(self) -> None:
        self.entries = tuple(sorted(self.entries, key=lambda e: e.work_date))
        self.recompute_totals()

    def recompute_totals(self) -> None:
        totals = compute_totals(self.entries)
        self.total_normal_hours = totals.normal_hours
        self.total_ot_hours = totals.ot_hours
        self.total_hours = totals.total_hours

    def ensure_editable(self) -> None:
        next_status(self.status, TimesheetAction.EDIT)

    def apply_edit(
        self,
        *,
        entries: Optional[Iterable[TimesheetEntry]] = None,
        area: Optional[str] = None,
        comments: Optional[str] = None,
        discipline_codes: Optional[Iterable[str]] = None,
    ) -> None:
        """Owner edit. Editing a rejected timesheet puts it back to draft."""
        self.status = next_status(self.status, TimesheetAction.EDIT)
        if entries is not None:
            self.entries = tuple(sorted(entries, key=lambda e: e.work_date))
        if area is not None:
            self.area = area or None
        if comments is not None:
            self.comments = comments or None
        if discipline_codes is not None:
            self.discipline_codes = tuple(discipline_codes)

        if self.approved_by is not None or self.rejection_reason is not None:
            self.approved_by = None
            self.approval_date = None
            self.rejection_reason = None
        self.recompute_totals()

    def submit(self, *, now: datetime) -> None:
        target = next_status(
            self.status,
            TimesheetAction.SUBMIT,
            previously_submitted=self.submitted_at is not None,
        )
        if target == TimesheetStatus.RESUBMITTED:
            self.resubmission_count += 1
        self.status = target
        self.submitted_at = now
        self.recompute_totals()

    def approve(self, *, approver_id: int, now: datetime, comments: Optional[str] = None) -> None:
        self.status = next_status(self.status, TimesheetAction.APPROVE)
        self.approved_by = int(approver_id)
        self.approval_date = now
        self.rejection_reason = None
        if comments:
            self.comments = comments
        self.recompute_totals()

    def reject(self, *, approver_id: int, now: datetime, reason: str, comments: Optional[str] = None) -> None:
        self.status = next_status(self.status, TimesheetAction.REJECT)
        self.approved_by = int(approver_id)
        self.approval_date = now
        self.rejection_reason = reason
        if comments:
            self.comments = comments
        self.recompute_totals()

    def ensure_deletable(self) -> None:
        if self.status == TimesheetStatus.APPROVED:
            raise StateError("Cannot delete approved timesheet")

    def to_dict(self) -> dict:
        def _iso(v: Optional[datetime]) -> Optional[str]:
            return v.isoformat() if v else None

        return {
            "id": self.timesheet_id,
            "userId": self.user_id,
            "projectId": self.project_id,
            "disciplineCodes": list(self.discipline_codes),
            "area": self.area,
            "platform": self.platform,
            "month": self.month,
            "year": self.year,
            "entries": [e.to_dict() for e in self.entries],
            "status": self.status.value,
            "totalNormalHours": self.total_normal_hours,
            "totalOTHours": self.total_ot_hours,
            "totalHours": self.total_hours,
            "resubmissionCount": self.resubmission_count,
            "rejectionReason": self.rejection_reason,
            "comments": self.comments,
            "submittedAt": _iso(self.submitted_at),
            "approvedBy": self.approved_by,
            "approvalDate": _iso(self.approval_date),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


@dataclass(frozen=True)
class TimesheetQuery:
    """Filter for listing timesheets; None means "any"."""

    statuses: Optional[tuple[TimesheetStatus, ...]] = None
    month: Optional[int] = None
    year: Optional[int] = None
    user_ids: Optional[tuple[int, ...]] = None
    project_id: Optional[int] = None
    limit: int = DEFAULT_LIST_LIMIT
