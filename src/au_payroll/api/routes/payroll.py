"""Stateless payroll calculation endpoint."""

from fastapi import APIRouter

from au_payroll.api.schemas import PayrollCalculationRequest, PayrollCalculationResponse
from au_payroll.calculators.engine import calculate_payroll
from au_payroll.calculators.types import PayrollCalculationInput

router = APIRouter(prefix="/payroll", tags=["payroll"])


@router.post("/calculate", response_model=PayrollCalculationResponse)
async def calculate(payload: PayrollCalculationRequest) -> PayrollCalculationResponse:
    """Calculate tax, super and net pay for one period's gross."""
    result = calculate_payroll(
        PayrollCalculationInput(
            gross_pay=payload.gross_pay,
            pay_frequency=payload.pay_frequency,
            has_tax_free_threshold=payload.has_tax_free_threshold,
            super_rate=payload.super_rate,
            is_contractor=payload.is_contractor,
        )
    )
    return PayrollCalculationResponse.model_validate(result)
