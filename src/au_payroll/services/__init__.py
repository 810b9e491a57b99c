"""Payroll services."""

from au_payroll.services.pay_run_service import (
    PayrollRunService,
    PayRunNotFoundError,
    PayRunValidationError,
)
from au_payroll.services.state_machine import (
    InvalidTransitionError,
    PayrollRunStateMachine,
    PayrollRunStatus,
)
from au_payroll.services.leave_service import EmployeeNotFoundError, LeaveAdjustmentError, LeaveService
from au_payroll.services.stp_service import StpService
from au_payroll.services.ytd_service import YTDLookupError, YTDService

__all__ = [
    "PayrollRunStateMachine",
    "PayrollRunStatus",
    "InvalidTransitionError",
    "PayrollRunService",
    "PayRunNotFoundError",
    "PayRunValidationError",
    "EmployeeNotFoundError",
    "LeaveAdjustmentError",
    "LeaveService",
    "StpService",
    "YTDLookupError",
    "YTDService",
]
