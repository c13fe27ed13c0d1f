from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import OvertimeStatus
from .model import NewOvertimeRequest, OvertimeRequest


class OvertimeRequestRepository(Protocol):
    def create(self, request: NewOvertimeRequest) -> int:
        """Insert a pending request.

        Must raise DuplicateKeyError when an active request of the same user and
        project already overlaps the week.
        """

        raise NotImplementedError

    def get(self, *, request_id: int) -> Optional[OvertimeRequest]:
        raise NotImplementedError

    def find_active_overlapping(
        self,
        *,
        user_id: int,
        project_id: int,
        start: date,
        end: date,
        exclude_request_id: Optional[int] = None,
    ) -> Sequence[OvertimeRequest]:
        raise NotImplementedError

    def find_approved_for_day(self, *, user_id: int, project_id: int, work_date: date) -> Optional[OvertimeRequest]:
        """Approved request that has a daily entry for exactly `work_date`."""

        raise NotImplementedError

    def update_pending(self, *, request_id: int, request: NewOvertimeRequest) -> bool:
        """Rewrite a request (and its days) only while it is still pending."""

        raise NotImplementedError

    def delete_pending(self, *, request_id: int) -> bool:
        raise NotImplementedError

    def decide(
        self,
        *,
        request_id: int,
        status: OvertimeStatus,
        decided_by: int,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        """Conditional pending -> approved/rejected update; False if already decided."""

        raise NotImplementedError

    def set_actual_hours(self, *, request_id: int, work_date: date, actual_hours: Optional[float]) -> bool:
        raise NotImplementedError

    def list_requests(
        self,
        *,
        status: Optional[OvertimeStatus] = None,
        user_id: Optional[int] = None,
        project_id: Optional[int] = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> Sequence[OvertimeRequest]:
        """Newest first."""

        raise NotImplementedError
