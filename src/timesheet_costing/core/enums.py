from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for authorization checks."""

    EMPLOYEE = "employee"
    MANAGER = "manager"
    ADMIN = "admin"

    @property
    def can_review(self) -> bool:
        return self in {Role.MANAGER, Role.ADMIN}


class ProjectStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ON_HOLD = "on-hold"
    CANCELLED = "cancelled"


class TimesheetStatus(str, Enum):
    """Timesheet approval workflow states as stored in the database."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    RESUBMITTED = "resubmitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class OvertimeStatus(str, Enum):
    """Overtime request workflow states."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
