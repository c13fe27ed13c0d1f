from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.enums import OvertimeStatus


@dataclass(frozen=True)
class DailyOvertime:
    """Requested overtime for one calendar day inside a request week."""

    work_date: date
    hours: float
    actual_hours: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "date": self.work_date.isoformat(),
            "hours": self.hours,
            "actualHours": self.actual_hours,
        }


@dataclass(frozen=True)
class OvertimeRequest:
    """Weekly overtime request. A single-day request is a one-day week."""

    request_id: int
    user_id: int
    project_id: int
    week_start_date: date
    week_end_date: date
    daily_hours: tuple[DailyOvertime, ...]
    reason: str
    status: OvertimeStatus
    created_at: datetime
    work_description: Optional[str] = None
    discipline_code: Optional[str] = None
    area: Optional[str] = None
    decided_by: Optional[int] = None
    decided_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    @property
    def total_requested_hours(self) -> float:
        return sum(d.hours for d in self.daily_hours)

    @property
    def is_active(self) -> bool:
        return self.status in {OvertimeStatus.PENDING, OvertimeStatus.APPROVED}

    def hours_for(self, work_date: date) -> Optional[float]:
        for day in self.daily_hours:
            if day.work_date == work_date:
                return day.hours
        return None

    def overlaps(self, start: date, end: date) -> bool:
        return self.week_start_date <= end and self.week_end_date >= start

    def to_dict(self) -> dict:
        return {
            "id": self.request_id,
            "userId": self.user_id,
            "projectId": self.project_id,
            "weekStartDate": self.week_start_date.isoformat(),
            "weekEndDate": self.week_end_date.isoformat(),
            "dailyHours": [d.to_dict() for d in self.daily_hours],
            "totalRequestedHours": self.total_requested_hours,
            "reason": self.reason,
            "workDescription": self.work_description,
            "disciplineCode": self.discipline_code,
            "area": self.area,
            "status": self.status.value,
            "decidedBy": self.decided_by,
            "decidedAt": self.decided_at.isoformat() if self.decided_at else None,
            "rejectionReason": self.rejection_reason,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class NewOvertimeRequest:
    """Validated input for the repository insert/update."""

    user_id: int
    project_id: int
    week_start_date: date
    week_end_date: date
    daily_hours: tuple[DailyOvertime, ...]
    reason: str
    work_description: Optional[str] = None
    discipline_code: Optional[str] = None
    area: Optional[str] = None


@dataclass(frozen=True)
class OvertimeCoverage:
    """Approved overtime for one day, as seen by the timesheet workflow."""

    request_id: int
    work_date: date
    approved_hours: float


@dataclass(frozen=True)
class OvertimeValidation:
    valid: bool
    message: Optional[str] = None
    coverage: Optional[OvertimeCoverage] = field(default=None)

    def to_dict(self) -> dict:
        out: dict = {"valid": self.valid}
        if self.message:
            out["message"] = self.message
        if self.coverage:
            out["approvedRequestId"] = self.coverage.request_id
            out["approvedHours"] = self.coverage.approved_hours
        return out
