"""STP report preparation and lodgement records."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from au_payroll.models import Organisation, PayrollRun, StpReportRecord
from au_payroll.services.pay_run_service import PayrollRunService
from au_payroll.services.state_machine import PayrollRunStateMachine
from au_payroll.services.ytd_service import YTDService
from au_payroll.stp.csv_exporter import export_stp_to_csv
from au_payroll.stp.generator import StpPreconditionError, generate_stp_report
from au_payroll.stp.json_exporter import export_stp_to_json
from au_payroll.stp.types import StpReport, StpValidationIssue, StpValidationResult
from au_payroll.stp.validator import validate_stp_report

logger = logging.getLogger(__name__)


class RunNotReportableError(StpPreconditionError):
    def __init__(self, payroll_run_id: UUID, status: str):
        self.payroll_run_id = payroll_run_id
        self.status = status
        super().__init__(
            f"Payroll run {payroll_run_id} is {status}; only finalized runs can be reported"
        )


class StpValidationFailedError(StpPreconditionError):
    """A report with validation errors cannot be stored for lodgement."""

    def __init__(self, errors: list[StpValidationIssue]):
        self.errors = errors
        super().__init__(
            "STP report failed validation: " + "; ".join(e.message for e in errors)
        )


class StpReportNotFoundError(Exception):
    def __init__(self, stp_report_id: UUID):
        self.stp_report_id = stp_report_id
        super().__init__(f"STP report {stp_report_id} not found")


@dataclass
class PreparedStpReport:
    """A generated report together with its validation outcome."""

    report: StpReport
    validation: StpValidationResult


def new_submission_key() -> str:
    return f"STP-{int(datetime.now(timezone.utc).timestamp() * 1000)}-{uuid4().hex[:9]}"


class StpService:
    """Builds STP reports for finalized runs and tracks their lodgement."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.pay_runs = PayrollRunService(session)
        self.ytd = YTDService(session)

    async def prepare_report(
        self,
        payroll_run_id: UUID,
        org_id: UUID,
        strict_ytd: bool = True,
    ) -> PreparedStpReport:
        """Generate and validate the STP report for a finalized run.

        Prior YTD totals exclude the run itself; the generator adds it back.
        """
        payroll_run = await self.pay_runs.require_payroll_run(payroll_run_id, org_id)
        if not PayrollRunStateMachine.is_reportable(payroll_run.status):
            raise RunNotReportableError(payroll_run_id, payroll_run.status)

        organisation = await self.session.get(Organisation, org_id)
        if organisation is None:
            raise StpPreconditionError(f"Organisation {org_id} not found")

        employee_ids = [item.employee_id for item in payroll_run.items]
        ytd_data = await self.ytd.calculate_ytd_for_run(
            payroll_run, employee_ids, strict=strict_ytd
        )

        report = generate_stp_report(payroll_run, payroll_run.items, organisation, ytd_data)
        validation = validate_stp_report(report)
        if not validation.valid:
            logger.warning(
                "STP report %s has %d validation errors",
                report.report_id,
                len(validation.errors),
            )
        return PreparedStpReport(report=report, validation=validation)

    async def save_report(
        self,
        report: StpReport,
        payroll_run_id: UUID,
        org_id: UUID,
        created_by: UUID | None = None,
    ) -> StpReportRecord:
        """Store the report's JSON and CSV as a pending manual lodgement."""
        record = StpReportRecord(
            org_id=org_id,
            payroll_run_id=payroll_run_id,
            report_id=report.report_id,
            report_type=report.report_type,
            lodgement_method="manual",
            lodgement_status="pending",
            submission_key=new_submission_key(),
            report_data=json.loads(export_stp_to_json(report)),
            csv_data=export_stp_to_csv(report),
            created_by=created_by,
        )
        self.session.add(record)
        await self.session.flush()

        logger.info("Saved STP report %s as %s", report.report_id, record.stp_report_id)
        return record

    async def mark_report_lodged(
        self,
        stp_report_id: UUID,
        org_id: UUID,
        stp_identifier: str | None = None,
    ) -> StpReportRecord:
        """Record a lodgement and flag the payroll run as lodged."""
        record = await self.get_report(stp_report_id, org_id)
        if record is None:
            raise StpReportNotFoundError(stp_report_id)

        lodged_at = datetime.now(timezone.utc)
        record.lodgement_status = "lodged"
        record.lodged_at = lodged_at
        record.stp_identifier = stp_identifier

        payroll_run = await self.session.get(PayrollRun, record.payroll_run_id)
        if payroll_run is not None:
            payroll_run.stp_lodged = True
            payroll_run.stp_lodged_at = lodged_at
            payroll_run.stp_report_id = record.stp_report_id

        await self.session.flush()
        logger.info("STP report %s marked lodged", record.report_id)
        return record

    async def list_reports(self, org_id: UUID) -> list[StpReportRecord]:
        """All reports for the organisation, newest first."""
        result = await self.session.execute(
            select(StpReportRecord)
            .where(StpReportRecord.org_id == org_id)
            .order_by(StpReportRecord.created_at.desc())
        )
        return list(result.scalars())

    async def get_report(self, stp_report_id: UUID, org_id: UUID) -> StpReportRecord | None:
        result = await self.session.execute(
            select(StpReportRecord).where(
                StpReportRecord.stp_report_id == stp_report_id,
                StpReportRecord.org_id == org_id,
            )
        )
        return result.scalar_one_or_none()
