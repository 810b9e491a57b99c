"""Year-to-date aggregation over persisted payroll items."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from au_payroll.calculators.types import YTDTotals
from au_payroll.constants import CENTS, FINANCIAL_YEAR_START_MONTH
from au_payroll.models import PayrollItem, PayrollRun
from au_payroll.services.state_machine import PayrollRunStateMachine

logger = logging.getLogger(__name__)


class YTDLookupError(Exception):
    """Raised when YTD totals cannot be read from the record store."""

    def __init__(self, employee_id: UUID, org_id: UUID):
        self.employee_id = employee_id
        self.org_id = org_id
        super().__init__(f"Could not load YTD totals for employee {employee_id} in org {org_id}")


def financial_year_start(as_of: date) -> date:
    """1 July of the financial year containing as_of."""
    year = as_of.year if as_of.month >= FINANCIAL_YEAR_START_MONTH else as_of.year - 1
    return date(year, FINANCIAL_YEAR_START_MONTH, 1)


def _start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _money(value: Decimal | None) -> Decimal:
    return Decimal(value or 0).quantize(CENTS, rounding=ROUND_HALF_UP)


class YTDService:
    """Sums payroll items for an employee within a financial year."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def calculate_ytd(
        self,
        employee_id: UUID,
        org_id: UUID,
        as_of: date | None = None,
        exclude_payroll_run_id: UUID | None = None,
        strict: bool = True,
    ) -> YTDTotals:
        """YTD gross, tax and super from 1 July up to and including as_of.

        Only items on finalized or completed runs of org_id count.
        exclude_payroll_run_id leaves out the run being reported so it is not
        counted twice.

        With strict=False a failed lookup is logged and reported as zero totals;
        otherwise YTDLookupError is raised.
        """
        as_of = as_of or date.today()
        window_start = _start_of_day(financial_year_start(as_of))
        window_end = _start_of_day(as_of + timedelta(days=1))

        stmt = (
            select(
                func.coalesce(func.sum(PayrollItem.gross), 0),
                func.coalesce(func.sum(PayrollItem.tax), 0),
                func.coalesce(func.sum(PayrollItem.super_amount), 0),
            )
            .join(PayrollRun, PayrollItem.payroll_run_id == PayrollRun.payroll_run_id)
            .where(
                PayrollItem.employee_id == employee_id,
                PayrollRun.org_id == org_id,
                PayrollRun.status.in_(sorted(PayrollRunStateMachine.REPORTABLE)),
                PayrollItem.created_at >= window_start,
                PayrollItem.created_at < window_end,
            )
        )
        if exclude_payroll_run_id is not None:
            stmt = stmt.where(PayrollItem.payroll_run_id != exclude_payroll_run_id)

        try:
            result = await self.session.execute(stmt)
            gross, tax, super_amount = result.one()
        except SQLAlchemyError as exc:
            if strict:
                raise YTDLookupError(employee_id, org_id) from exc
            logger.exception("YTD lookup failed for employee %s; using zero totals", employee_id)
            return YTDTotals()

        return YTDTotals(
            gross=_money(gross),
            tax=_money(tax),
            super_amount=_money(super_amount),
        )

    async def calculate_ytd_for_run(
        self,
        payroll_run: PayrollRun,
        employee_ids: Iterable[UUID],
        strict: bool = True,
    ) -> dict[UUID, YTDTotals]:
        """Prior YTD totals for each employee, as of the run's pay date."""
        ytd_data: dict[UUID, YTDTotals] = {}
        for employee_id in employee_ids:
            ytd_data[employee_id] = await self.calculate_ytd(
                employee_id,
                payroll_run.org_id,
                as_of=payroll_run.effective_pay_date,
                exclude_payroll_run_id=payroll_run.payroll_run_id,
                strict=strict,
            )
        return ytd_data
