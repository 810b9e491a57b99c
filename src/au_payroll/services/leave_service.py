"""Manual leave ledger entries: adjustments and leave taken."""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from au_payroll.calculators.leave_calculator import apply_leave_transaction
from au_payroll.constants import LEAVE_HOURS_PRECISION, LeaveTransactionType, LeaveType
from au_payroll.models import Employee, LeaveTransaction

logger = logging.getLogger(__name__)

# Accruals come from finalized runs; payouts and carryovers are not entered by hand.
MANUAL_TRANSACTION_TYPES = frozenset(
    {LeaveTransactionType.ADJUSTMENT, LeaveTransactionType.TAKEN}
)


class EmployeeNotFoundError(Exception):
    """Raised when an employee does not exist for the organisation."""

    def __init__(self, employee_id: UUID):
        self.employee_id = employee_id
        super().__init__(f"Employee {employee_id} not found")


class LeaveAdjustmentError(Exception):
    """Raised when a manual leave entry is malformed."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


class LeaveService:
    """Writes manual leave ledger entries against an employee's balance.

    The balance update and the ledger row are flushed together; the caller
    commits (or rolls back) both.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def adjust_leave(
        self,
        employee_id: UUID,
        org_id: UUID,
        leave_type: LeaveType | str,
        hours: Decimal,
        transaction_type: LeaveTransactionType | str = LeaveTransactionType.ADJUSTMENT,
        notes: str | None = None,
    ) -> LeaveTransaction:
        """Apply a signed change of hours to one leave balance.

        Raises NegativeLeaveBalanceError if the balance would drop below zero.
        """
        leave_type = LeaveType(leave_type)
        transaction_type = LeaveTransactionType(transaction_type)
        hours = Decimal(hours).quantize(LEAVE_HOURS_PRECISION, rounding=ROUND_HALF_UP)
        notes = notes.strip() if notes else None

        errors = []
        if transaction_type not in MANUAL_TRANSACTION_TYPES:
            errors.append(f"'{transaction_type.value}' entries cannot be recorded manually")
        if hours == 0:
            errors.append("Hours must be non-zero")
        if transaction_type is LeaveTransactionType.TAKEN and hours > 0:
            errors.append("Leave taken must reduce the balance")
        if transaction_type is LeaveTransactionType.ADJUSTMENT and not notes:
            errors.append("A reason is required for leave adjustments")
        if errors:
            raise LeaveAdjustmentError(errors)

        employee = await self._lock_employee(employee_id, org_id)
        balance_after = apply_leave_transaction(
            employee.leave_balance(leave_type.value), hours, transaction_type, leave_type
        )
        employee.set_leave_balance(leave_type.value, balance_after)

        transaction = LeaveTransaction(
            employee_id=employee.employee_id,
            org_id=org_id,
            transaction_type=transaction_type.value,
            leave_type=leave_type.value,
            hours=hours,
            balance_after=balance_after,
            notes=notes,
        )
        self.session.add(transaction)
        await self.session.flush()

        logger.info(
            "Recorded %s of %sh %s leave for employee %s (balance %sh)",
            transaction_type.value,
            hours,
            leave_type.value,
            employee_id,
            balance_after,
        )
        return transaction

    async def list_transactions(self, employee_id: UUID, org_id: UUID) -> list[LeaveTransaction]:
        """Ledger entries for an employee, newest first."""
        await self._get_employee(employee_id, org_id)
        result = await self.session.execute(
            select(LeaveTransaction)
            .where(
                LeaveTransaction.employee_id == employee_id,
                LeaveTransaction.org_id == org_id,
            )
            .order_by(LeaveTransaction.created_at.desc())
        )
        return list(result.scalars().all())

    async def _get_employee(self, employee_id: UUID, org_id: UUID) -> Employee:
        employee = await self.session.get(Employee, employee_id)
        if employee is None or employee.org_id != org_id:
            raise EmployeeNotFoundError(employee_id)
        return employee

    async def _lock_employee(self, employee_id: UUID, org_id: UUID) -> Employee:
        # Re-read the balance under a row lock so concurrent entries serialize
        result = await self.session.execute(
            select(Employee)
            .where(Employee.employee_id == employee_id, Employee.org_id == org_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        employee = result.scalar_one_or_none()
        if employee is None:
            raise EmployeeNotFoundError(employee_id)
        return employee
