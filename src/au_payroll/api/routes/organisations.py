"""Organisation-level STP endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, status

from au_payroll.api.dependencies import DbSession, OrgId
from au_payroll.api.schemas import (
    ErrorResponse,
    StpLodgementRequest,
    StpReadinessResponse,
    StpReportRecordResponse,
)
from au_payroll.models import Organisation
from au_payroll.services.stp_service import StpService
from au_payroll.stp.generator import is_stp_ready

router = APIRouter(tags=["organisations"])


@router.get(
    "/organisations/{organisation_id}/stp-readiness",
    response_model=StpReadinessResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_stp_readiness(
    db: DbSession,
    org_id: OrgId,
    organisation_id: Annotated[UUID, Path()],
) -> StpReadinessResponse:
    """List organisation settings still needed before STP reporting."""
    organisation = await db.get(Organisation, organisation_id)
    if organisation is None or organisation_id != org_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Organisation not found",
        )

    ready, missing = is_stp_ready(organisation)
    return StpReadinessResponse(organisation_id=organisation_id, ready=ready, missing=missing)


@router.get("/stp-reports", response_model=list[StpReportRecordResponse])
async def list_stp_reports(db: DbSession, org_id: OrgId) -> list[StpReportRecordResponse]:
    records = await StpService(db).list_reports(org_id)
    return [StpReportRecordResponse.model_validate(r) for r in records]


@router.post(
    "/stp-reports/{stp_report_id}/lodged",
    response_model=StpReportRecordResponse,
    responses={404: {"model": ErrorResponse}},
)
async def mark_stp_report_lodged(
    db: DbSession,
    org_id: OrgId,
    stp_report_id: Annotated[UUID, Path()],
    payload: StpLodgementRequest,
) -> StpReportRecordResponse:
    """Record that a stored report was lodged with the ATO."""
    record = await StpService(db).mark_report_lodged(
        stp_report_id, org_id, payload.stp_identifier
    )
    await db.commit()
    return StpReportRecordResponse.model_validate(record)
