from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Timesheet, TimesheetQuery


class TimesheetRepository(Protocol):
    def create(self, timesheet: Timesheet) -> int:
        """Insert header and entries in one transaction.

        Must raise DuplicateKeyError when (user, project, month, year) already exists.
        """

        raise NotImplementedError

    def get(self, *, timesheet_id: int) -> Optional[Timesheet]:
        raise NotImplementedError

    def find_for_period(self, *, user_id: int, project_id: int, month: int, year: int) -> Optional[Timesheet]:
        raise NotImplementedError

    def save(self, timesheet: Timesheet) -> bool:
        """Persist header, totals and the full entry set in one transaction."""

        raise NotImplementedError

    def delete(self, *, timesheet_id: int) -> bool:
        raise NotImplementedError

    def list_timesheets(self, query: TimesheetQuery) -> Sequence[Timesheet]:
        """Newest period first."""

        raise NotImplementedError

    def list_approved_for_project(
        self,
        *,
        project_id: int,
        periods: Optional[Sequence[tuple[int, int]]] = None,
    ) -> Sequence[Timesheet]:
        """Approved timesheets of a project, optionally limited to (month, year) pairs; oldest first."""

        raise NotImplementedError
