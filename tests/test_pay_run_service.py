"""Tests for the payroll run workflow."""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select, update

from au_payroll.constants import LeaveType
from au_payroll.models import LeaveTransaction, PayrollRun
from au_payroll.services import pay_run_service
from au_payroll.services.pay_run_service import (
    PayrollRunService,
    PayRunNotFoundError,
    PayRunValidationError,
)
from au_payroll.services.state_machine import InvalidTransitionError
from tests.factories import make_employee, make_organisation

START = date(2025, 6, 16)
END = date(2025, 6, 29)
PAY_DATE = date(2025, 7, 2)


async def create_run(service, org, start=START, end=END):
    return await service.create_payroll_run(
        org.organisation_id, "fortnightly", start, end, PAY_DATE
    )


async def reviewed_run(session, org, employees):
    service = PayrollRunService(session)
    run = await create_run(service, org)
    await service.select_employees(
        run.payroll_run_id, org.organisation_id, [e.employee_id for e in employees]
    )
    await service.mark_reviewed(run.payroll_run_id, org.organisation_id)
    await session.commit()
    return run


class TestCreatePayrollRun:
    async def test_creates_draft(self, session, stored_org):
        run = await create_run(PayrollRunService(session), stored_org)

        assert run.status == "draft"
        assert run.frequency == "FORTNIGHTLY"
        assert run.pay_date == PAY_DATE
        assert run.total_gross == Decimal("0")
        assert run.items == []
        assert run.created_at is not None

    async def test_end_before_start(self, session, stored_org):
        with pytest.raises(PayRunValidationError) as exc_info:
            await create_run(PayrollRunService(session), stored_org, start=END, end=START)

        assert exc_info.value.errors == ["Pay period end must be on or after the period start"]

    async def test_unknown_frequency(self, session, stored_org):
        with pytest.raises(PayRunValidationError) as exc_info:
            await PayrollRunService(session).create_payroll_run(
                stored_org.organisation_id, "quarterly", START, END
            )

        assert exc_info.value.errors == ["Unknown pay frequency 'quarterly'"]

    async def test_overlapping_period_rejected(self, session, stored_org):
        service = PayrollRunService(session)
        first = await create_run(service, stored_org)

        with pytest.raises(PayRunValidationError) as exc_info:
            await create_run(service, stored_org, start=END, end=END + timedelta(days=13))

        assert str(first.payroll_run_id) in exc_info.value.errors[0]

    async def test_cancelled_run_does_not_block(self, session, stored_org):
        service = PayrollRunService(session)
        first = await create_run(service, stored_org)
        await service.cancel_payroll_run(first.payroll_run_id, stored_org.organisation_id)

        second = await create_run(service, stored_org)
        assert second.status == "draft"

    async def test_adjacent_periods_allowed(self, session, stored_org):
        service = PayrollRunService(session)
        await create_run(service, stored_org)
        nxt = await create_run(
            service, stored_org, start=END + timedelta(days=1), end=END + timedelta(days=14)
        )
        assert nxt.status == "draft"


class TestSelectEmployees:
    async def test_calculates_items_and_totals(self, session, stored_org, stored_employees):
        service = PayrollRunService(session)
        run = await create_run(service, stored_org)

        run = await service.select_employees(
            run.payroll_run_id,
            stored_org.organisation_id,
            [e.employee_id for e in stored_employees],
        )

        assert run.status == "employees_selected"
        by_name = {item.employee.full_name: item for item in run.items}
        assert by_name["Jane Citizen"].gross == Decimal("3000.00")
        assert by_name["Jane Citizen"].tax == Decimal("668.35")
        assert by_name["Jane Citizen"].hours_worked == Decimal("38")
        assert by_name["Tom Part"].gross == Decimal("1400.00")
        assert by_name["Casey Casual"].gross == Decimal("800.00")
        assert by_name["Casey Casual"].tax == Decimal("19.00")
        assert by_name["Con Tractor"].tax == Decimal("0")
        assert by_name["Con Tractor"].net == Decimal("2000.00")

        assert run.total_gross == Decimal("7200.00")
        assert run.total_tax == Decimal("848.35")
        assert run.total_super == Decimal("598.00")
        assert run.total_net == Decimal("6351.65")

    async def test_hours_override(self, session, stored_org, stored_employees):
        tom = stored_employees[1]
        service = PayrollRunService(session)
        run = await create_run(service, stored_org)

        run = await service.select_employees(
            run.payroll_run_id,
            stored_org.organisation_id,
            [tom.employee_id],
            hours_worked={tom.employee_id: Decimal("30")},
        )

        assert run.items[0].gross == Decimal("2100.00")
        assert run.items[0].hours_worked == Decimal("30")

    async def test_reselect_replaces_items(self, session, stored_org, stored_employees):
        service = PayrollRunService(session)
        run = await create_run(service, stored_org)
        org_id = stored_org.organisation_id

        await service.select_employees(
            run.payroll_run_id, org_id, [e.employee_id for e in stored_employees]
        )
        run = await service.select_employees(
            run.payroll_run_id, org_id, [stored_employees[0].employee_id]
        )

        assert len(run.items) == 1
        assert run.total_gross == Decimal("3000.00")

    async def test_unknown_or_inactive_employee(self, session, stored_org, stored_employees):
        inactive = make_employee(stored_org, full_name="Left Already", active=False)
        outsider_org = make_organisation(name="Elsewhere")
        outsider = make_employee(outsider_org)
        session.add_all([inactive, outsider_org, outsider])
        await session.commit()

        service = PayrollRunService(session)
        run = await create_run(service, stored_org)

        for employee_id in (inactive.employee_id, outsider.employee_id, uuid4()):
            with pytest.raises(PayRunValidationError) as exc_info:
                await service.select_employees(
                    run.payroll_run_id, stored_org.organisation_id, [employee_id]
                )
            assert str(employee_id) in exc_info.value.errors[0]

    async def test_empty_selection(self, session, stored_org):
        service = PayrollRunService(session)
        run = await create_run(service, stored_org)

        with pytest.raises(PayRunValidationError):
            await service.select_employees(run.payroll_run_id, stored_org.organisation_id, [])

    async def test_finalized_run_is_locked(self, session, stored_org, stored_employees):
        run = await reviewed_run(session, stored_org, stored_employees[:1])
        service = PayrollRunService(session)
        await service.finalize_payroll_run(run.payroll_run_id, stored_org.organisation_id)

        with pytest.raises(InvalidTransitionError):
            await service.select_employees(
                run.payroll_run_id,
                stored_org.organisation_id,
                [stored_employees[0].employee_id],
            )


class TestTransitions:
    async def test_not_found(self, session, stored_org):
        with pytest.raises(PayRunNotFoundError):
            await PayrollRunService(session).mark_reviewed(uuid4(), stored_org.organisation_id)

    async def test_other_organisation_cannot_see_run(self, session, stored_org):
        service = PayrollRunService(session)
        run = await create_run(service, stored_org)

        with pytest.raises(PayRunNotFoundError):
            await service.require_payroll_run(run.payroll_run_id, uuid4())

    async def test_review_requires_selection(self, session, stored_org):
        service = PayrollRunService(session)
        run = await create_run(service, stored_org)

        with pytest.raises(InvalidTransitionError) as exc_info:
            await service.mark_reviewed(run.payroll_run_id, stored_org.organisation_id)

        assert exc_info.value.from_status == "draft"
        assert exc_info.value.to_status == "reviewed"

    async def test_reopen(self, session, stored_org, stored_employees):
        run = await reviewed_run(session, stored_org, stored_employees[:1])
        service = PayrollRunService(session)

        run = await service.reopen_payroll_run(run.payroll_run_id, stored_org.organisation_id)
        assert run.status == "employees_selected"

        with pytest.raises(InvalidTransitionError) as exc_info:
            await service.reopen_payroll_run(run.payroll_run_id, stored_org.organisation_id)
        assert exc_info.value.reason == "Can only reopen from reviewed status"

    async def test_cancel_and_complete(self, session, stored_org, stored_employees):
        service = PayrollRunService(session)
        draft = await create_run(service, stored_org)
        cancelled = await service.cancel_payroll_run(
            draft.payroll_run_id, stored_org.organisation_id
        )
        assert cancelled.status == "cancelled"

        run = await reviewed_run(session, stored_org, stored_employees[:1])
        await service.finalize_payroll_run(run.payroll_run_id, stored_org.organisation_id)

        with pytest.raises(InvalidTransitionError):
            await service.cancel_payroll_run(run.payroll_run_id, stored_org.organisation_id)

        completed = await service.complete_payroll_run(
            run.payroll_run_id, stored_org.organisation_id
        )
        assert completed.status == "completed"


class TestFinalize:
    async def test_finalize_accrues_leave(self, session, stored_org, stored_employees):
        jane, tom, casey, con = stored_employees
        run = await reviewed_run(session, stored_org, stored_employees)

        run = await PayrollRunService(session).finalize_payroll_run(
            run.payroll_run_id, stored_org.organisation_id
        )
        await session.commit()

        assert run.status == "finalized"
        assert run.finalized_at is not None
        assert run.total_gross == Decimal("7200.00")

        assert jane.annual_leave_hours == Decimal("5.8462")
        assert jane.sick_leave_hours == Decimal("2.9231")
        assert tom.annual_leave_hours == Decimal("3.0769")
        assert tom.sick_leave_hours == Decimal("1.5385")
        assert casey.annual_leave_hours == Decimal("0")
        assert con.annual_leave_hours == Decimal("0")

        result = await session.execute(
            select(LeaveTransaction).where(LeaveTransaction.payroll_run_id == run.payroll_run_id)
        )
        transactions = result.scalars().all()
        assert len(transactions) == 4
        assert {t.employee_id for t in transactions} == {jane.employee_id, tom.employee_id}
        assert all(t.transaction_type == "accrual" for t in transactions)
        assert all(t.reference == "Pay period ending 2025-06-29" for t in transactions)

        jane_annual = next(
            t
            for t in transactions
            if t.employee_id == jane.employee_id and t.leave_type == "annual"
        )
        assert jane_annual.hours == Decimal("5.8462")
        assert jane_annual.balance_after == Decimal("5.8462")

    async def test_accrual_consults_eligibility(
        self, session, stored_org, stored_employees, monkeypatch
    ):
        jane = stored_employees[0]
        checked = []

        def annual_only(employee, leave_type, as_of=None):
            checked.append((employee.full_name, LeaveType(leave_type), as_of))
            return LeaveType(leave_type) is LeaveType.ANNUAL

        monkeypatch.setattr(pay_run_service, "is_eligible_for_leave", annual_only)
        run = await reviewed_run(session, stored_org, [jane])

        await PayrollRunService(session).finalize_payroll_run(
            run.payroll_run_id, stored_org.organisation_id
        )

        assert checked == [
            ("Jane Citizen", LeaveType.ANNUAL, END),
            ("Jane Citizen", LeaveType.SICK, END),
        ]
        assert jane.annual_leave_hours == Decimal("5.8462")
        assert jane.sick_leave_hours == Decimal("0")

    async def test_finalize_requires_review(self, session, stored_org, stored_employees):
        service = PayrollRunService(session)
        run = await create_run(service, stored_org)
        await service.select_employees(
            run.payroll_run_id, stored_org.organisation_id, [stored_employees[0].employee_id]
        )

        with pytest.raises(InvalidTransitionError):
            await service.finalize_payroll_run(run.payroll_run_id, stored_org.organisation_id)

        assert stored_employees[0].annual_leave_hours == Decimal("0")

    async def test_finalize_twice_rejected(self, session, stored_org, stored_employees):
        run = await reviewed_run(session, stored_org, stored_employees[:1])
        service = PayrollRunService(session)
        await service.finalize_payroll_run(run.payroll_run_id, stored_org.organisation_id)

        with pytest.raises(InvalidTransitionError):
            await service.finalize_payroll_run(run.payroll_run_id, stored_org.organisation_id)

    async def test_concurrent_status_change_detected(self, session, stored_org, stored_employees):
        run = await reviewed_run(session, stored_org, stored_employees[:1])

        # Another writer finalizes the row behind this session's back
        await session.execute(
            update(PayrollRun)
            .where(PayrollRun.payroll_run_id == run.payroll_run_id)
            .values(status="finalized")
            .execution_options(synchronize_session=False)
        )

        with pytest.raises(InvalidTransitionError) as exc_info:
            await PayrollRunService(session).finalize_payroll_run(
                run.payroll_run_id, stored_org.organisation_id
            )

        assert exc_info.value.reason == "Status changed during finalize"
        await session.rollback()
