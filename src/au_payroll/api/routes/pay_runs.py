"""Payroll run API endpoints."""

import json
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Response, status

from au_payroll.api.dependencies import DbSession, OrgId
from au_payroll.api.schemas import (
    ErrorResponse,
    PayrollRunCreate,
    PayrollRunResponse,
    SelectEmployeesRequest,
    StpReportRecordResponse,
    StpReportResponse,
    StpValidationResponse,
)
from au_payroll.services.pay_run_service import PayrollRunService
from au_payroll.services.stp_service import StpService, StpValidationFailedError
from au_payroll.stp.csv_exporter import (
    export_stp_to_csv,
    generate_stp_summary_csv,
    stp_export_filename,
)
from au_payroll.stp.json_exporter import export_ato_json, export_stp_to_json

router = APIRouter(prefix="/pay-runs", tags=["pay-runs"])

RunId = Annotated[UUID, Path()]


def _attachment(content: str, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ============================================================================
# Payroll run workflow
# ============================================================================


@router.post(
    "",
    response_model=PayrollRunResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": ErrorResponse}},
)
async def create_payroll_run(
    db: DbSession,
    org_id: OrgId,
    payload: PayrollRunCreate,
) -> PayrollRunResponse:
    """Create a new payroll run in draft status."""
    service = PayrollRunService(db)
    payroll_run = await service.create_payroll_run(
        org_id,
        payload.frequency,
        payload.pay_period_start,
        payload.pay_period_end,
        payload.pay_date,
    )
    await db.commit()
    return PayrollRunResponse.model_validate(payroll_run)


@router.get(
    "/{payroll_run_id}",
    response_model=PayrollRunResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_payroll_run(
    db: DbSession,
    org_id: OrgId,
    payroll_run_id: RunId,
) -> PayrollRunResponse:
    """Get a payroll run with its items."""
    payroll_run = await PayrollRunService(db).require_payroll_run(payroll_run_id, org_id)
    return PayrollRunResponse.model_validate(payroll_run)


@router.post(
    "/{payroll_run_id}/employees",
    response_model=PayrollRunResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def select_employees(
    db: DbSession,
    org_id: OrgId,
    payroll_run_id: RunId,
    payload: SelectEmployeesRequest,
) -> PayrollRunResponse:
    """Calculate pay for the selected employees."""
    payroll_run = await PayrollRunService(db).select_employees(
        payroll_run_id, org_id, payload.employee_ids, payload.hours_worked
    )
    await db.commit()
    return PayrollRunResponse.model_validate(payroll_run)


@router.post(
    "/{payroll_run_id}/review",
    response_model=PayrollRunResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def review_payroll_run(
    db: DbSession,
    org_id: OrgId,
    payroll_run_id: RunId,
) -> PayrollRunResponse:
    payroll_run = await PayrollRunService(db).mark_reviewed(payroll_run_id, org_id)
    await db.commit()
    return PayrollRunResponse.model_validate(payroll_run)


@router.post(
    "/{payroll_run_id}/reopen",
    response_model=PayrollRunResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def reopen_payroll_run(
    db: DbSession,
    org_id: OrgId,
    payroll_run_id: RunId,
) -> PayrollRunResponse:
    payroll_run = await PayrollRunService(db).reopen_payroll_run(payroll_run_id, org_id)
    await db.commit()
    return PayrollRunResponse.model_validate(payroll_run)


@router.post(
    "/{payroll_run_id}/finalize",
    response_model=PayrollRunResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def finalize_payroll_run(
    db: DbSession,
    org_id: OrgId,
    payroll_run_id: RunId,
) -> PayrollRunResponse:
    """Finalize the run and accrue leave in one transaction."""
    payroll_run = await PayrollRunService(db).finalize_payroll_run(payroll_run_id, org_id)
    await db.commit()
    return PayrollRunResponse.model_validate(payroll_run)


@router.post(
    "/{payroll_run_id}/complete",
    response_model=PayrollRunResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def complete_payroll_run(
    db: DbSession,
    org_id: OrgId,
    payroll_run_id: RunId,
) -> PayrollRunResponse:
    payroll_run = await PayrollRunService(db).complete_payroll_run(payroll_run_id, org_id)
    await db.commit()
    return PayrollRunResponse.model_validate(payroll_run)


@router.post(
    "/{payroll_run_id}/cancel",
    response_model=PayrollRunResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def cancel_payroll_run(
    db: DbSession,
    org_id: OrgId,
    payroll_run_id: RunId,
) -> PayrollRunResponse:
    payroll_run = await PayrollRunService(db).cancel_payroll_run(payroll_run_id, org_id)
    await db.commit()
    return PayrollRunResponse.model_validate(payroll_run)


# ============================================================================
# STP reporting
# ============================================================================


@router.get(
    "/{payroll_run_id}/stp",
    response_model=StpReportResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def get_stp_report(
    db: DbSession,
    org_id: OrgId,
    payroll_run_id: RunId,
) -> StpReportResponse:
    """Generate and validate the STP report for a finalized run."""
    prepared = await StpService(db).prepare_report(payroll_run_id, org_id)
    return StpReportResponse(
        report=json.loads(export_stp_to_json(prepared.report)),
        validation=StpValidationResponse.model_validate(prepared.validation),
    )


@router.get("/{payroll_run_id}/stp.csv", responses={404: {"model": ErrorResponse}})
async def download_stp_csv(db: DbSession, org_id: OrgId, payroll_run_id: RunId) -> Response:
    prepared = await StpService(db).prepare_report(payroll_run_id, org_id)
    report = prepared.report
    return _attachment(export_stp_to_csv(report), "text/csv", stp_export_filename(report, "csv"))


@router.get("/{payroll_run_id}/stp-summary.csv", responses={404: {"model": ErrorResponse}})
async def download_stp_summary_csv(
    db: DbSession, org_id: OrgId, payroll_run_id: RunId
) -> Response:
    prepared = await StpService(db).prepare_report(payroll_run_id, org_id)
    report = prepared.report
    return _attachment(
        generate_stp_summary_csv(report),
        "text/csv",
        stp_export_filename(report, "csv").replace("STP_Report_", "STP_Summary_"),
    )


@router.get("/{payroll_run_id}/stp.json", responses={404: {"model": ErrorResponse}})
async def download_stp_json(db: DbSession, org_id: OrgId, payroll_run_id: RunId) -> Response:
    prepared = await StpService(db).prepare_report(payroll_run_id, org_id)
    report = prepared.report
    return _attachment(
        export_stp_to_json(report), "application/json", stp_export_filename(report, "json")
    )


@router.get("/{payroll_run_id}/stp/ato-payload", responses={404: {"model": ErrorResponse}})
async def get_ato_payload(db: DbSession, org_id: OrgId, payroll_run_id: RunId) -> Response:
    prepared = await StpService(db).prepare_report(payroll_run_id, org_id)
    return Response(content=export_ato_json(prepared.report), media_type="application/json")


@router.post(
    "/{payroll_run_id}/stp/reports",
    response_model=StpReportRecordResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def save_stp_report(
    db: DbSession,
    org_id: OrgId,
    payroll_run_id: RunId,
) -> StpReportRecordResponse:
    """Store a validated report as a pending manual lodgement."""
    service = StpService(db)
    prepared = await service.prepare_report(payroll_run_id, org_id)
    if not prepared.validation.valid:
        raise StpValidationFailedError(prepared.validation.errors)
    record = await service.save_report(prepared.report, payroll_run_id, org_id)
    await db.commit()
    return StpReportRecordResponse.model_validate(record)
