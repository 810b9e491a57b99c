"""Tests for STP report preparation and lodgement tracking."""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from au_payroll.services.pay_run_service import PayrollRunService
from au_payroll.services.stp_service import (
    RunNotReportableError,
    StpReportNotFoundError,
    StpService,
    new_submission_key,
)
from au_payroll.stp.csv_exporter import DETAIL_COLUMNS
from au_payroll.stp.generator import MissingTfnError, StpPreconditionError
from tests.factories import make_employee, today_utc


async def finalized_run(session, org, employees, weeks_back: int = 0, finalize: bool = True):
    """Create, select, review and (optionally) finalize a fortnightly run."""
    end = today_utc() - timedelta(weeks=weeks_back)
    service = PayrollRunService(session)
    org_id = org.organisation_id

    run = await service.create_payroll_run(
        org_id, "fortnightly", end - timedelta(days=13), end, end
    )
    await service.select_employees(run.payroll_run_id, org_id, [e.employee_id for e in employees])
    await service.mark_reviewed(run.payroll_run_id, org_id)
    if finalize:
        await service.finalize_payroll_run(run.payroll_run_id, org_id)
    await session.commit()
    return run


class TestPrepareReport:
    async def test_report_for_finalized_run(self, session, stored_org, stored_employees):
        await finalized_run(session, stored_org, stored_employees, weeks_back=2)
        run = await finalized_run(session, stored_org, stored_employees)

        prepared = await StpService(session).prepare_report(
            run.payroll_run_id, stored_org.organisation_id
        )
        report = prepared.report

        assert prepared.validation.valid is True
        assert report.payment_date == today_utc().isoformat()
        # Contractor with an ABN is not a payee
        assert [p.display_name for p in report.payees] == [
            "Jane Citizen",
            "Tom Part",
            "Casey Casual",
        ]
        assert report.total_gross == Decimal("5200.00")

        jane = report.payees[0]
        assert jane.gross_payment == Decimal("3000.00")
        assert jane.ytd_gross == Decimal("6000.00")
        assert jane.ytd_payg_withheld == Decimal("1336.70")
        assert jane.annual_leave_accrued == Decimal("11.6924")

    async def test_first_run_ytd_equals_payment(self, session, stored_org, stored_employees):
        run = await finalized_run(session, stored_org, stored_employees[:1])

        prepared = await StpService(session).prepare_report(
            run.payroll_run_id, stored_org.organisation_id
        )
        assert prepared.report.payees[0].ytd_gross == Decimal("3000.00")

    async def test_unfinalized_run_rejected(self, session, stored_org, stored_employees):
        run = await finalized_run(session, stored_org, stored_employees[:1], finalize=False)

        with pytest.raises(RunNotReportableError) as exc_info:
            await StpService(session).prepare_report(run.payroll_run_id, stored_org.organisation_id)

        assert exc_info.value.status == "reviewed"
        assert isinstance(exc_info.value, StpPreconditionError)

    async def test_missing_tfn(self, session, stored_org):
        no_tfn = make_employee(stored_org, full_name="No Tfn", tfn=None)
        session.add(no_tfn)
        await session.commit()
        run = await finalized_run(session, stored_org, [no_tfn])

        with pytest.raises(MissingTfnError) as exc_info:
            await StpService(session).prepare_report(run.payroll_run_id, stored_org.organisation_id)

        assert exc_info.value.employee_id == no_tfn.employee_id

    async def test_missing_address_is_a_warning(self, session, stored_org, stored_employees):
        stored_org.address_line1 = None
        await session.commit()
        run = await finalized_run(session, stored_org, stored_employees[:1])

        prepared = await StpService(session).prepare_report(
            run.payroll_run_id, stored_org.organisation_id
        )

        assert prepared.validation.valid is True
        assert [w.field for w in prepared.validation.warnings] == ["payer.address"]


class TestReportRecords:
    async def test_save_and_lodge(self, session, stored_org, stored_employees):
        run = await finalized_run(session, stored_org, stored_employees)
        service = StpService(session)
        org_id = stored_org.organisation_id

        prepared = await service.prepare_report(run.payroll_run_id, org_id)
        record = await service.save_report(prepared.report, run.payroll_run_id, org_id)
        await session.commit()

        assert record.report_id == prepared.report.report_id
        assert record.report_type == "update"
        assert record.lodgement_method == "manual"
        assert record.lodgement_status == "pending"
        assert record.submission_key.startswith("STP-")
        assert record.report_data["total_employees"] == 3
        assert record.report_data["payees"][0]["gross_payment"] == 3000.0
        assert record.csv_data.splitlines()[0] == ",".join(f'"{c}"' for c in DETAIL_COLUMNS)

        lodged = await service.mark_report_lodged(record.stp_report_id, org_id, "ATO-RECEIPT-1")
        await session.commit()

        assert lodged.lodgement_status == "lodged"
        assert lodged.lodged_at is not None
        assert lodged.stp_identifier == "ATO-RECEIPT-1"
        assert run.stp_lodged is True
        assert run.stp_report_id == record.stp_report_id

    async def test_list_reports(self, session, stored_org, stored_employees):
        run = await finalized_run(session, stored_org, stored_employees[:1])
        service = StpService(session)
        org_id = stored_org.organisation_id

        prepared = await service.prepare_report(run.payroll_run_id, org_id)
        first = await service.save_report(prepared.report, run.payroll_run_id, org_id)
        second = await service.save_report(prepared.report, run.payroll_run_id, org_id)
        await session.commit()

        records = await service.list_reports(org_id)
        assert {r.stp_report_id for r in records} == {first.stp_report_id, second.stp_report_id}
        assert records[0].created_at >= records[1].created_at

        assert await service.list_reports(uuid4()) == []

    async def test_lodge_unknown_report(self, session, stored_org):
        with pytest.raises(StpReportNotFoundError):
            await StpService(session).mark_report_lodged(uuid4(), stored_org.organisation_id)

    async def test_report_scoped_to_organisation(self, session, stored_org, stored_employees):
        run = await finalized_run(session, stored_org, stored_employees[:1])
        service = StpService(session)
        prepared = await service.prepare_report(run.payroll_run_id, stored_org.organisation_id)
        record = await service.save_report(
            prepared.report, run.payroll_run_id, stored_org.organisation_id
        )

        assert await service.get_report(record.stp_report_id, uuid4()) is None


def test_submission_keys_are_unique():
    keys = {new_submission_key() for _ in range(50)}
    assert len(keys) == 50
