"""Employee leave ledger endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from au_payroll.api.dependencies import DbSession, OrgId
from au_payroll.api.schemas import (
    ErrorResponse,
    LeaveAdjustmentRequest,
    LeaveTransactionResponse,
)
from au_payroll.services.leave_service import LeaveService

router = APIRouter(prefix="/employees", tags=["employees"])

EmployeeId = Annotated[UUID, Path()]


@router.post(
    "/{employee_id}/leave-transactions",
    response_model=LeaveTransactionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def record_leave_transaction(
    db: DbSession,
    org_id: OrgId,
    employee_id: EmployeeId,
    payload: LeaveAdjustmentRequest,
) -> LeaveTransactionResponse:
    """Adjust a leave balance or record leave taken."""
    transaction = await LeaveService(db).adjust_leave(
        employee_id,
        org_id,
        payload.leave_type,
        payload.hours,
        payload.transaction_type,
        payload.notes,
    )
    await db.commit()
    return LeaveTransactionResponse.model_validate(transaction)


@router.get(
    "/{employee_id}/leave-transactions",
    response_model=list[LeaveTransactionResponse],
    responses={404: {"model": ErrorResponse}},
)
async def list_leave_transactions(
    db: DbSession,
    org_id: OrgId,
    employee_id: EmployeeId,
) -> list[LeaveTransactionResponse]:
    transactions = await LeaveService(db).list_transactions(employee_id, org_id)
    return [LeaveTransactionResponse.model_validate(t) for t in transactions]
