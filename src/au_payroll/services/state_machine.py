"""Payroll run state machine with transition validation."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from au_payroll.models import PayrollRun


class PayrollRunStatus(str, Enum):
    """Payroll run status values."""

    DRAFT = "draft"
    EMPLOYEES_SELECTED = "employees_selected"
    REVIEWED = "reviewed"
    FINALIZED = "finalized"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PayrollRunStateMachine:
    """State machine for payroll run status transitions.

    Allowed transitions:
    - draft → employees_selected
    - employees_selected → employees_selected (reselect)
    - employees_selected → reviewed
    - reviewed → employees_selected (reopen)
    - reviewed → finalized
    - finalized → completed
    - draft / employees_selected / reviewed → cancelled
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayrollRunStatus.DRAFT.value: [
            PayrollRunStatus.EMPLOYEES_SELECTED.value,
            PayrollRunStatus.CANCELLED.value,
        ],
        PayrollRunStatus.EMPLOYEES_SELECTED.value: [
            PayrollRunStatus.EMPLOYEES_SELECTED.value,
            PayrollRunStatus.REVIEWED.value,
            PayrollRunStatus.CANCELLED.value,
        ],
        PayrollRunStatus.REVIEWED.value: [
            PayrollRunStatus.EMPLOYEES_SELECTED.value,
            PayrollRunStatus.FINALIZED.value,
            PayrollRunStatus.CANCELLED.value,
        ],
        PayrollRunStatus.FINALIZED.value: [PayrollRunStatus.COMPLETED.value],
        PayrollRunStatus.COMPLETED.value: [],  # Terminal state
        PayrollRunStatus.CANCELLED.value: [],  # Terminal state
    }

    # Statuses where employees can be (re)selected and items recalculated
    ITEMS_MUTABLE = {
        PayrollRunStatus.DRAFT.value,
        PayrollRunStatus.EMPLOYEES_SELECTED.value,
        PayrollRunStatus.REVIEWED.value,
    }

    # Statuses whose items may be reported via STP
    REPORTABLE = {
        PayrollRunStatus.FINALIZED.value,
        PayrollRunStatus.COMPLETED.value,
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def can_modify_items(cls, status: str) -> bool:
        return status in cls.ITEMS_MUTABLE

    @classmethod
    def is_reportable(cls, status: str) -> bool:
        """Only finalized (or completed) runs are reported via STP."""
        return status in cls.REPORTABLE

    @classmethod
    def is_reopen(cls, from_status: str, to_status: str) -> bool:
        """Check if this transition is a reopen (reviewed → employees_selected)."""
        return (
            from_status == PayrollRunStatus.REVIEWED.value
            and to_status == PayrollRunStatus.EMPLOYEES_SELECTED.value
        )

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])

    @classmethod
    def validate_run_for_transition(
        cls, payroll_run: PayrollRun, to_status: str
    ) -> list[str]:
        """Validate a payroll run for a specific transition, returning any errors.

        Returns list of error messages (empty if valid).
        """
        errors: list[str] = []
        from_status = payroll_run.status

        if not cls.can_transition(from_status, to_status):
            errors.append(f"Cannot transition from '{from_status}' to '{to_status}'")
            return errors

        if to_status in (PayrollRunStatus.REVIEWED.value, PayrollRunStatus.FINALIZED.value):
            if not payroll_run.items:
                errors.append("Payroll run has no employees")

        return errors
