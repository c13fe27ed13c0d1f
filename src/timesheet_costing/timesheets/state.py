"""Timesheet approval state machine.

    draft --submit--> submitted --approve--> approved
    submitted/resubmitted --reject--> rejected
    rejected --edit--> draft
    rejected --submit--> resubmitted

A draft that was already submitted once (i.e. reset after a rejection) is
resubmitted, not submitted. `approved` is terminal.
"""

from __future__ import annotations

from enum import Enum

from ..core.enums import TimesheetStatus
from ..core.exceptions import StateError


class TimesheetAction(str, Enum):
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    EDIT = "edit"


EDITABLE_STATUSES = frozenset({TimesheetStatus.DRAFT, TimesheetStatus.REJECTED})
PENDING_REVIEW_STATUSES = frozenset({TimesheetStatus.SUBMITTED, TimesheetStatus.RESUBMITTED})

_TRANSITIONS: dict[tuple[TimesheetStatus, TimesheetAction], TimesheetStatus] = {
    (TimesheetStatus.DRAFT, TimesheetAction.SUBMIT): TimesheetStatus.SUBMITTED,
    (TimesheetStatus.REJECTED, TimesheetAction.SUBMIT): TimesheetStatus.RESUBMITTED,
    (TimesheetStatus.SUBMITTED, TimesheetAction.APPROVE): TimesheetStatus.APPROVED,
    (TimesheetStatus.RESUBMITTED, TimesheetAction.APPROVE): TimesheetStatus.APPROVED,
    (TimesheetStatus.SUBMITTED, TimesheetAction.REJECT): TimesheetStatus.REJECTED,
    (TimesheetStatus.RESUBMITTED, TimesheetAction.REJECT): TimesheetStatus.REJECTED,
    (TimesheetStatus.DRAFT, TimesheetAction.EDIT): TimesheetStatus.DRAFT,
    (TimesheetStatus.REJECTED, TimesheetAction.EDIT): TimesheetStatus.DRAFT,
}

_REFUSALS = {
    TimesheetAction.SUBMIT: "Only draft or rejected timesheets can be submitted",
    TimesheetAction.APPROVE: "Timesheet must be submitted before it can be approved",
    TimesheetAction.REJECT: "Timesheet must be submitted before it can be rejected",
    TimesheetAction.EDIT: "Timesheet cannot be edited while it is pending review or approved",
}


def next_status(
    current: TimesheetStatus,
    action: TimesheetAction,
    *,
    previously_submitted: bool = False,
) -> TimesheetStatus:
    """Return the status reached by `action` from `current`, or raise StateError."""
    target = _TRANSITIONS.get((current, action))
    if target is None:
        raise StateError(f"{_REFUSALS[action]} (current status: {current.value})")
    if target == TimesheetStatus.SUBMITTED and previously_submitted:
        return TimesheetStatus.RESUBMITTED
    return target
