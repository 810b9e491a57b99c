"""Payroll run service - orchestrates the pay run workflow."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from au_payroll.calculators.engine import calculate_employee_pay
from au_payroll.calculators.leave_calculator import (
    apply_leave_transaction,
    calculate_annual_leave_accrual,
    calculate_sick_leave_accrual,
    is_eligible_for_leave,
)
from au_payroll.constants import (
    LEAVE_HOURS_PRECISION,
    ZERO,
    LeaveTransactionType,
    LeaveType,
    PayFrequency,
)
from au_payroll.models import (
    Employee,
    LeaveTransaction,
    Organisation,
    PayrollItem,
    PayrollRun,
)
from au_payroll.services.state_machine import (
    InvalidTransitionError,
    PayrollRunStateMachine,
    PayrollRunStatus,
)

logger = logging.getLogger(__name__)


class PayRunNotFoundError(Exception):
    """Raised when a payroll run does not exist for the organisation."""

    def __init__(self, payroll_run_id: UUID):
        self.payroll_run_id = payroll_run_id
        super().__init__(f"Payroll run {payroll_run_id} not found")


class PayRunValidationError(Exception):
    """Raised when pay run input fails business validation."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


class PayrollRunService:
    """Service for managing the payroll run lifecycle.

    Operations:
    - create_payroll_run: open a draft run for a pay period
    - select_employees: calculate one payroll item per selected employee
    - mark_reviewed / reopen_payroll_run: review gate before finalizing
    - finalize_payroll_run: lock totals and accrue leave
    - complete_payroll_run / cancel_payroll_run: terminal transitions
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_payroll_run(
        self,
        payroll_run_id: UUID,
        org_id: UUID | None = None,
        load_items: bool = True,
    ) -> PayrollRun | None:
        """Load a payroll run, optionally scoped to an organisation."""
        stmt = select(PayrollRun).where(PayrollRun.payroll_run_id == payroll_run_id)
        if org_id is not None:
            stmt = stmt.where(PayrollRun.org_id == org_id)
        if load_items:
            stmt = stmt.options(
                selectinload(PayrollRun.items).selectinload(PayrollItem.employee)
            )

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def require_payroll_run(
        self, payroll_run_id: UUID, org_id: UUID | None = None
    ) -> PayrollRun:
        payroll_run = await self.get_payroll_run(payroll_run_id, org_id)
        if payroll_run is None:
            raise PayRunNotFoundError(payroll_run_id)
        return payroll_run

    async def create_payroll_run(
        self,
        org_id: UUID,
        frequency: PayFrequency | str,
        pay_period_start: date,
        pay_period_end: date,
        pay_date: date | None = None,
    ) -> PayrollRun:
        """Open a draft run. Periods may not overlap another live run."""
        errors: list[str] = []
        if pay_period_end < pay_period_start:
            errors.append("Pay period end must be on or after the period start")
        try:
            frequency = PayFrequency.parse(frequency)
        except ValueError:
            errors.append(f"Unknown pay frequency '{frequency}'")
        if errors:
            raise PayRunValidationError(errors)

        if pay_date is not None and pay_date < pay_period_end:
            logger.warning(
                "Pay date %s is before the end of the pay period %s", pay_date, pay_period_end
            )

        overlapping = await self.session.execute(
            select(PayrollRun.payroll_run_id).where(
                PayrollRun.org_id == org_id,
                PayrollRun.status != PayrollRunStatus.CANCELLED.value,
                PayrollRun.pay_period_start <= pay_period_end,
                PayrollRun.pay_period_end >= pay_period_start,
            )
        )
        existing = overlapping.scalars().first()
        if existing is not None:
            raise PayRunValidationError(
                [f"Pay period overlaps existing payroll run {existing}"]
            )

        payroll_run = PayrollRun(
            org_id=org_id,
            frequency=frequency.value.upper(),
            pay_period_start=pay_period_start,
            pay_period_end=pay_period_end,
            pay_date=pay_date,
            status=PayrollRunStatus.DRAFT.value,
            total_gross=ZERO,
            total_tax=ZERO,
            total_super=ZERO,
            total_net=ZERO,
            stp_lodged=False,
            items=[],
        )
        self.session.add(payroll_run)
        await self.session.flush()

        logger.info(
            "Created %s payroll run %s for %s to %s",
            frequency.value,
            payroll_run.payroll_run_id,
            pay_period_start,
            pay_period_end,
        )
        return payroll_run

    async def select_employees(
        self,
        payroll_run_id: UUID,
        org_id: UUID,
        employee_ids: Iterable[UUID],
        hours_worked: Mapping[UUID, Decimal] | None = None,
    ) -> PayrollRun:
        """Calculate pay for the selected employees, replacing earlier items.

        hours_worked optionally overrides an employee's weekly hours.
        """
        payroll_run = await self.require_payroll_run(payroll_run_id, org_id)
        to_status = PayrollRunStatus.EMPLOYEES_SELECTED.value
        PayrollRunStateMachine.validate_transition(payroll_run.status, to_status)

        employee_ids = list(dict.fromkeys(employee_ids))
        if not employee_ids:
            raise PayRunValidationError(["Select at least one employee"])

        result = await self.session.execute(
            select(Employee).where(
                Employee.employee_id.in_(employee_ids),
                Employee.org_id == org_id,
                Employee.active.is_(True),
            )
        )
        employees = {emp.employee_id: emp for emp in result.scalars()}
        missing = [str(emp_id) for emp_id in employee_ids if emp_id not in employees]
        if missing:
            raise PayRunValidationError(
                [f"Employees not found or inactive: {', '.join(missing)}"]
            )

        organisation = await self.session.get(Organisation, org_id)
        hours_worked = hours_worked or {}

        payroll_run.items.clear()
        await self.session.flush()

        for employee_id in employee_ids:
            employee = employees[employee_id]
            hours = hours_worked.get(employee_id)
            pay = calculate_employee_pay(
                employee, payroll_run.frequency, hours_worked=hours, organisation=organisation
            )
            payroll_run.items.append(
                PayrollItem(
                    employee_id=employee.employee_id,
                    employee=employee,
                    gross=pay.gross,
                    tax=pay.tax,
                    super_amount=pay.super_amount,
                    net=pay.net,
                    hours_worked=hours if hours is not None else employee.hours_per_week,
                    description=(
                        f"Pay for {payroll_run.pay_period_start} to {payroll_run.pay_period_end}"
                    ),
                )
            )

        self._update_totals(payroll_run)
        payroll_run.status = to_status
        await self.session.flush()

        logger.info(
            "Selected %d employees for payroll run %s (gross %s)",
            len(employee_ids),
            payroll_run_id,
            payroll_run.total_gross,
        )
        return payroll_run

    async def transition_status(self, payroll_run: PayrollRun, to_status: str) -> PayrollRun:
        """Move a run to a new status after validating the transition."""
        from_status = payroll_run.status
        errors = PayrollRunStateMachine.validate_run_for_transition(payroll_run, to_status)
        if errors:
            raise InvalidTransitionError(from_status, to_status, "; ".join(errors))

        payroll_run.status = to_status
        await self.session.flush()
        logger.info(
            "Payroll run %s: %s -> %s", payroll_run.payroll_run_id, from_status, to_status
        )
        return payroll_run

    async def mark_reviewed(self, payroll_run_id: UUID, org_id: UUID) -> PayrollRun:
        payroll_run = await self.require_payroll_run(payroll_run_id, org_id)
        return await self.transition_status(payroll_run, PayrollRunStatus.REVIEWED.value)

    async def reopen_payroll_run(self, payroll_run_id: UUID, org_id: UUID) -> PayrollRun:
        """Send a reviewed run back for employee changes."""
        payroll_run = await self.require_payroll_run(payroll_run_id, org_id)
        if payroll_run.status != PayrollRunStatus.REVIEWED.value:
            raise InvalidTransitionError(
                payroll_run.status,
                PayrollRunStatus.EMPLOYEES_SELECTED.value,
                "Can only reopen from reviewed status",
            )
        return await self.transition_status(
            payroll_run, PayrollRunStatus.EMPLOYEES_SELECTED.value
        )

    async def cancel_payroll_run(self, payroll_run_id: UUID, org_id: UUID) -> PayrollRun:
        payroll_run = await self.require_payroll_run(payroll_run_id, org_id)
        return await self.transition_status(payroll_run, PayrollRunStatus.CANCELLED.value)

    async def complete_payroll_run(self, payroll_run_id: UUID, org_id: UUID) -> PayrollRun:
        payroll_run = await self.require_payroll_run(payroll_run_id, org_id)
        return await self.transition_status(payroll_run, PayrollRunStatus.COMPLETED.value)

    async def finalize_payroll_run(self, payroll_run_id: UUID, org_id: UUID) -> PayrollRun:
        """Finalize a reviewed run.

        Totals, leave accruals and the status change are written in the
        session's transaction, so a failure leaves nothing half-applied once
        the caller rolls back.
        """
        payroll_run = await self.require_payroll_run(payroll_run_id, org_id)
        from_status = payroll_run.status
        to_status = PayrollRunStatus.FINALIZED.value

        errors = PayrollRunStateMachine.validate_run_for_transition(payroll_run, to_status)
        if errors:
            raise InvalidTransitionError(from_status, to_status, "; ".join(errors))

        self._update_totals(payroll_run)
        finalized_at = datetime.now(timezone.utc)

        # Conditional update guards against a concurrent finalize
        result = await self.session.execute(
            update(PayrollRun)
            .where(
                PayrollRun.payroll_run_id == payroll_run_id,
                PayrollRun.status == PayrollRunStatus.REVIEWED.value,
            )
            .values(
                status=to_status,
                finalized_at=finalized_at,
                total_gross=payroll_run.total_gross,
                total_tax=payroll_run.total_tax,
                total_super=payroll_run.total_super,
                total_net=payroll_run.total_net,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise InvalidTransitionError(from_status, to_status, "Status changed during finalize")

        payroll_run.status = to_status
        payroll_run.finalized_at = finalized_at

        transactions = await self.accrue_leave_for_run(payroll_run)
        await self.session.flush()

        logger.info(
            "Finalized payroll run %s: %d items, %d leave accruals",
            payroll_run_id,
            len(payroll_run.items),
            len(transactions),
        )
        return payroll_run

    async def accrue_leave_for_run(self, payroll_run: PayrollRun) -> list[LeaveTransaction]:
        """Write annual and sick leave accrual ledger rows for each item.

        Casuals and contractors accrue nothing and get no ledger rows.
        """
        transactions: list[LeaveTransaction] = []

        for item in payroll_run.items:
            employee = item.employee
            accruals = (
                (LeaveType.ANNUAL, calculate_annual_leave_accrual),
                (LeaveType.SICK, calculate_sick_leave_accrual),
            )
            for leave_type, accrue in accruals:
                if not is_eligible_for_leave(employee, leave_type, payroll_run.pay_period_end):
                    continue
                hours = accrue(employee, payroll_run.frequency).quantize(
                    LEAVE_HOURS_PRECISION, rounding=ROUND_HALF_UP
                )
                if hours <= 0:
                    continue

                balance_after = apply_leave_transaction(
                    employee.leave_balance(leave_type.value),
                    hours,
                    LeaveTransactionType.ACCRUAL,
                    leave_type,
                )
                employee.set_leave_balance(leave_type.value, balance_after)

                transaction = LeaveTransaction(
                    employee_id=employee.employee_id,
                    org_id=payroll_run.org_id,
                    transaction_type=LeaveTransactionType.ACCRUAL.value,
                    leave_type=leave_type.value,
                    hours=hours,
                    balance_after=balance_after,
                    payroll_run_id=payroll_run.payroll_run_id,
                    reference=f"Pay period ending {payroll_run.pay_period_end}",
                )
                self.session.add(transaction)
                transactions.append(transaction)

        return transactions

    @staticmethod
    def _update_totals(payroll_run: PayrollRun) -> None:
        items = payroll_run.items
        payroll_run.total_gross = sum((Decimal(i.gross) for i in items), ZERO)
        payroll_run.total_tax = sum((Decimal(i.tax) for i in items), ZERO)
        payroll_run.total_super = sum((Decimal(i.super_amount) for i in items), ZERO)
        payroll_run.total_net = sum((Decimal(i.net) for i in items), ZERO)
