from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Iterable, Optional, Sequence

from ..common.datetime_utils import coerce_date
from ..common.normalizers import normalize_discipline_codes, normalize_optional_text
from ..common.validators import require_hours, require_non_empty
from ..core.constants import MAX_OVERTIME_DAYS, WEEK_LENGTH_DAYS
from ..core.enums import OvertimeStatus, Role
from ..core.exceptions import (
    AuthorizationError,
    ConflictError,
    DuplicateKeyError,
    NotFoundError,
    StateError,
    ValidationError,
)
from .model import DailyOvertime, NewOvertimeRequest, OvertimeCoverage, OvertimeRequest, OvertimeValidation
from .repository import OvertimeRequestRepository

logger = logging.getLogger(__name__)

OVERLAP_MESSAGE = "You already have an overtime request for this project overlapping that week"


def week_end_for(week_start: date) -> date:
    return week_start + timedelta(days=WEEK_LENGTH_DAYS - 1)


def parse_daily_hours(week_start: date, daily_hours: Iterable[Any]) -> tuple[DailyOvertime, ...]:
    """Validate the per-day hours of a week starting on `week_start`.

    Items may be DailyOvertime, dicts with date/hours keys, or (date, hours) pairs.
    """
    week_end = week_end_for(week_start)
    days: list[DailyOvertime] = []
    seen: set[date] = set()

    for item in list(daily_hours or []):
        if isinstance(item, DailyOvertime):
            raw_date, raw_hours = item.work_date, item.hours
        elif isinstance(item, dict):
            raw_date, raw_hours = item.get("date"), item.get("hours")
        else:
            raw_date, raw_hours = item

        work_date = coerce_date(raw_date, "Overtime date")
        if raw_hours is None or raw_hours == "":
            raise ValidationError(f"Hours are required for {work_date.isoformat()}")
        hours = require_hours(raw_hours, f"Overtime hours for {work_date.isoformat()}")

        if work_date < week_start or work_date > week_end:
            raise ValidationError(
                f"{work_date.isoformat()} is outside the requested week "
                f"{week_start.isoformat()} - {week_end.isoformat()}"
            )
        if work_date in seen:
            raise ValidationError(f"{work_date.isoformat()} is listed more than once")
        seen.add(work_date)
        days.append(DailyOvertime(work_date=work_date, hours=hours))

    if not days or len(days) > MAX_OVERTIME_DAYS:
        raise ValidationError(f"Weekly request must have between 1 and {MAX_OVERTIME_DAYS} days")

    days.sort(key=lambda d: d.work_date)
    return tuple(days)


def _single_discipline_code(value: Any) -> Optional[str]:
    codes = normalize_discipline_codes(value)
    if len(codes) > 1:
        raise ValidationError("An overtime request carries a single discipline code")
    return codes[0] if codes else None


class OvertimeService:
    """Overtime request ledger: pending -> approved/rejected, plus coverage lookups."""

    def __init__(self, requests: OvertimeRequestRepository):
        self._requests = requests

    def _get_or_404(self, request_id: int) -> OvertimeRequest:
        req = self._requests.get(request_id=int(request_id))
        if not req:
            raise NotFoundError("Overtime request not found")
        return req

    def _ensure_no_overlap(self, new: NewOvertimeRequest, *, exclude_request_id: Optional[int] = None) -> None:
        overlapping = self._requests.find_active_overlapping(
            user_id=new.user_id,
            project_id=new.project_id,
            start=new.week_start_date,
            end=new.week_end_date,
            exclude_request_id=exclude_request_id,
        )
        if overlapping:
            raise ConflictError(OVERLAP_MESSAGE)

    @staticmethod
    def _ensure_owner_and_pending(req: OvertimeRequest, requester_id: int, action: str) -> None:
        if req.user_id != int(requester_id):
            raise AuthorizationError(f"Not authorized to {action} this request")
        if req.status != OvertimeStatus.PENDING:
            raise StateError(f"Cannot {action} a request that has already been {req.status.value}")

    # -------- owner operations --------
    def create(
        self,
        *,
        current_role: Role,
        user_id: int,
        project_id: int,
        week_start_date: Any,
        daily_hours: Iterable[Any],
        reason: str,
        work_description: Optional[str] = None,
        discipline_code: Any = None,
        area: Optional[str] = None,
    ) -> OvertimeRequest:
        week_start = coerce_date(week_start_date, "Week start date")
        new = NewOvertimeRequest(
            user_id=int(user_id),
            project_id=int(project_id),
            week_start_date=week_start,
            week_end_date=week_end_for(week_start),
            daily_hours=parse_daily_hours(week_start, daily_hours),
            reason=require_non_empty(reason, "Reason"),
            work_description=normalize_optional_text(work_description),
            discipline_code=_single_discipline_code(discipline_code),
            area=normalize_optional_text(area),
        )

        self._ensure_no_overlap(new)
        try:
            request_id = self._requests.create(new)
        except DuplicateKeyError:
            logger.warning(
                "Overtime request race lost: user=%s project=%s week=%s",
                new.user_id,
                new.project_id,
                new.week_start_date,
            )
            raise ConflictError(OVERLAP_MESSAGE)

        logger.info("Overtime request %s created by user %s (%s)", request_id, new.user_id, current_role.value)
        return self._get_or_404(request_id)

    def create_single_day(
        self,
        *,
        current_role: Role,
        user_id: int,
        project_id: int,
        work_date: Any,
        requested_hours: Any,
        reason: str,
        work_description: Optional[str] = None,
        discipline_code: Any = None,
        area: Optional[str] = None,
    ) -> OvertimeRequest:
        """Legacy date + requestedHours form, stored as a one-day week."""
        day = coerce_date(work_date, "Date")
        return self.create(
            current_role=current_role,
            user_id=user_id,
            project_id=project_id,
            week_start_date=day,
            daily_hours=[{"date": day, "hours": requested_hours}],
            reason=reason,
            work_description=work_description,
            discipline_code=discipline_code,
            area=area,
        )

    def update(
        self,
        *,
        request_id: int,
        requester_id: int,
        project_id: Optional[int] = None,
        week_start_date: Any = None,
        daily_hours: Optional[Iterable[Any]] = None,
        reason: Optional[str] = None,
        work_description: Optional[str] = None,
        discipline_code: Any = None,
        area: Optional[str] = None,
    ) -> OvertimeRequest:
        """Patch a pending request; None leaves a field unchanged."""
        req = self._get_or_404(request_id)
        self._ensure_owner_and_pending(req, requester_id, "update")

        week_start = coerce_date(week_start_date, "Week start date") if week_start_date else req.week_start_date
        if daily_hours is not None:
            days = parse_daily_hours(week_start, daily_hours)
        else:
            # Re-check the kept days against a possibly moved week.
            days = parse_daily_hours(week_start, req.daily_hours)

        new = NewOvertimeRequest(
            user_id=req.user_id,
            project_id=int(project_id) if project_id else req.project_id,
            week_start_date=week_start,
            week_end_date=week_end_for(week_start),
            daily_hours=days,
            reason=require_non_empty(reason, "Reason") if reason is not None else req.reason,
            work_description=(
                normalize_optional_text(work_description) if work_description is not None else req.work_description
            ),
            discipline_code=(
                _single_discipline_code(discipline_code) if discipline_code is not None else req.discipline_code
            ),
            area=normalize_optional_text(area) if area is not None else req.area,
        )

        self._ensure_no_overlap(new, exclude_request_id=req.request_id)
        try:
            ok = self._requests.update_pending(request_id=req.request_id, request=new)
        except DuplicateKeyError:
            raise ConflictError(OVERLAP_MESSAGE)
        if not ok:
            raise StateError("Cannot update a request that has already been approved or rejected")
        return self._get_or_404(req.request_id)

    def delete(self, *, request_id: int, requester_id: int) -> None:
        req = self._get_or_404(request_id)
        self._ensure_owner_and_pending(req, requester_id, "delete")
        if not self._requests.delete_pending(request_id=req.request_id):
            raise StateError("Cannot delete a request that has already been approved or rejected")

    # -------- manager/admin decisions --------
    def approve(self, *, current_role: Role, approver_id: int, request_id: int) -> OvertimeRequest:
        if not current_role.can_review:
            raise AuthorizationError("Only managers or admins can approve overtime requests")

        req = self._get_or_404(request_id)
        if req.status != OvertimeStatus.PENDING:
            raise StateError("Request has already been processed")

        if not self._requests.decide(
            request_id=req.request_id,
            status=OvertimeStatus.APPROVED,
            decided_by=int(approver_id),
        ):
            raise StateError("Request has already been processed")

        logger.info("Overtime request %s approved by %s", req.request_id, approver_id)
        return self._get_or_404(req.request_id)

    def reject(
        self,
        *,
        current_role: Role,
        approver_id: int,
        request_id: int,
        rejection_reason: str,
    ) -> OvertimeRequest:
        if not current_role.can_review:
            raise AuthorizationError("Only managers or admins can reject overtime requests")
        if not rejection_reason or not str(rejection_reason).strip():
            raise ValidationError("Rejection reason is required")

        req = self._get_or_404(request_id)
        if req.status != OvertimeStatus.PENDING:
            raise StateError("Request has already been processed")

        if not self._requests.decide(
            request_id=req.request_id,
            status=OvertimeStatus.REJECTED,
            decided_by=int(approver_id),
            rejection_reason=str(rejection_reason).strip(),
        ):
            raise StateError("Request has already been processed")

        logger.info("Overtime request %s rejected by %s", req.request_id, approver_id)
        return self._get_or_404(req.request_id)

    # -------- timesheet linkage --------
    def find_approved_coverage(self, *, user_id: int, project_id: int, work_date: date) -> Optional[OvertimeCoverage]:
        req = self._requests.find_approved_for_day(
            user_id=int(user_id),
            project_id=int(project_id),
            work_date=work_date,
        )
        if not req:
            return None
        hours = req.hours_for(work_date)
        if hours is None:
            return None
        return OvertimeCoverage(request_id=req.request_id, work_date=work_date, approved_hours=hours)

    def validate_for_entry(
        self,
        *,
        user_id: int,
        project_id: int,
        work_date: Any,
        hours: Any,
        timesheet_type: str = "ot",
    ) -> OvertimeValidation:
        """Pre-check used by the UI before it lets a user type OT hours."""
        if (timesheet_type or "").lower() != "ot":
            return OvertimeValidation(valid=True)

        day = coerce_date(work_date, "Date")
        requested = require_hours(hours, "Hours")
        coverage = self.find_approved_coverage(user_id=user_id, project_id=project_id, work_date=day)
        if not coverage:
            return OvertimeValidation(
                valid=False,
                message=f"No approved overtime request found for {day.isoformat()} on this project",
            )
        if requested > coverage.approved_hours:
            return OvertimeValidation(
                valid=False,
                message=(
                    f"Overtime hours ({requested:g}) exceed approved request "
                    f"({coverage.approved_hours:g} hours) for {day.isoformat()}"
                ),
                coverage=coverage,
            )
        return OvertimeValidation(valid=True, coverage=coverage)

    def record_actual_hours(self, coverage: OvertimeCoverage, actual_hours: float) -> None:
        self._requests.set_actual_hours(
            request_id=coverage.request_id,
            work_date=coverage.work_date,
            actual_hours=float(actual_hours),
        )

    def release_actual_hours(self, *, user_id: int, project_id: int, work_date: date) -> None:
        """Clear the consumed hours of a day whose timesheet entry no longer claims OT."""
        coverage = self.find_approved_coverage(user_id=user_id, project_id=project_id, work_date=work_date)
        if coverage is None:
            return
        self._requests.set_actual_hours(
            request_id=coverage.request_id,
            work_date=coverage.work_date,
            actual_hours=None,
        )

    # -------- queries --------
    def get(self, *, request_id: int, requester_id: int, current_role: Role) -> OvertimeRequest:
        req = self._get_or_404(request_id)
        if current_role == Role.EMPLOYEE and req.user_id != int(requester_id):
            raise AuthorizationError("Not authorized to view this request")
        return req

    def list_my_requests(self, *, user_id: int) -> Sequence[OvertimeRequest]:
        return self._requests.list_requests(user_id=int(user_id))

    def list_requests(
        self,
        *,
        current_role: Role,
        status: Optional[OvertimeStatus] = None,
        user_id: Optional[int] = None,
        project_id: Optional[int] = None,
    ) -> Sequence[OvertimeRequest]:
        if not current_role.can_review:
            raise AuthorizationError("Only managers or admins can list all overtime requests")
        return self._requests.list_requests(status=status, user_id=user_id, project_id=project_id)
