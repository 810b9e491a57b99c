"""ORM models for the payroll record store."""

from au_payroll.models.base import Base, TimestampMixin
from au_payroll.models.employee import Employee, LeaveTransaction
from au_payroll.models.organisation import Organisation
from au_payroll.models.payroll import PayrollItem, PayrollRun, StpReportRecord

__all__ = [
    "Base",
    "TimestampMixin",
    "Employee",
    "LeaveTransaction",
    "Organisation",
    "PayrollItem",
    "PayrollRun",
    "StpReportRecord",
]
