"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from au_payroll.constants import DEFAULT_SUPER_RATE, LeaveTransactionType, LeaveType, PayFrequency


# ============================================================================
# Payroll calculation schemas
# ============================================================================


class PayrollCalculationRequest(BaseModel):
    """Schema for a one-off payroll calculation."""

    gross_pay: Decimal
    pay_frequency: PayFrequency
    has_tax_free_threshold: bool = True
    super_rate: Decimal = DEFAULT_SUPER_RATE
    is_contractor: bool = False

    @field_validator("pay_frequency", mode="before")
    @classmethod
    def parse_frequency(cls, value: object) -> PayFrequency:
        """Accept 'FORTNIGHTLY' as well as 'fortnightly'."""
        return PayFrequency.parse(value)


class PayrollCalculationResponse(BaseModel):
    """Schema for payroll calculation result."""

    model_config = ConfigDict(from_attributes=True)

    gross: Decimal
    tax: Decimal
    super_amount: Decimal
    net: Decimal
    total_cost: Decimal


# ============================================================================
# Payroll run schemas
# ============================================================================


class PayrollRunCreate(BaseModel):
    """Schema for creating a new payroll run."""

    frequency: PayFrequency
    pay_period_start: date
    pay_period_end: date
    pay_date: date | None = None

    @field_validator("frequency", mode="before")
    @classmethod
    def parse_frequency(cls, value: object) -> PayFrequency:
        return PayFrequency.parse(value)


class SelectEmployeesRequest(BaseModel):
    """Schema for selecting employees into a payroll run."""

    employee_ids: list[UUID] = Field(min_length=1)
    hours_worked: dict[UUID, Decimal] = Field(default_factory=dict)


class PayrollItemResponse(BaseModel):
    """Schema for a payroll item."""

    model_config = ConfigDict(from_attributes=True)

    payroll_item_id: UUID
    employee_id: UUID
    gross: Decimal
    tax: Decimal
    super_amount: Decimal
    net: Decimal
    hours_worked: Decimal | None = None
    description: str | None = None


class PayrollRunResponse(BaseModel):
    """Schema for payroll run response."""

    model_config = ConfigDict(from_attributes=True)

    payroll_run_id: UUID
    org_id: UUID
    frequency: str
    pay_period_start: date
    pay_period_end: date
    pay_date: date | None = None
    status: str
    total_gross: Decimal
    total_tax: Decimal
    total_super: Decimal
    total_net: Decimal
    finalized_at: datetime | None = None
    stp_lodged: bool = False
    stp_lodged_at: datetime | None = None
    created_at: datetime
    items: list[PayrollItemResponse] = Field(default_factory=list)


# ============================================================================
# STP schemas
# ============================================================================


class StpValidationIssueResponse(BaseModel):
    """Schema for a single STP validation issue."""

    model_config = ConfigDict(from_attributes=True)

    field: str
    message: str
    severity: str


class StpValidationResponse(BaseModel):
    """Schema for STP validation outcome."""

    model_config = ConfigDict(from_attributes=True)

    valid: bool
    errors: list[StpValidationIssueResponse]
    warnings: list[StpValidationIssueResponse]


class StpReportResponse(BaseModel):
    """Schema for a generated STP report with its validation."""

    report: dict[str, Any]
    validation: StpValidationResponse


class StpReadinessResponse(BaseModel):
    """Schema for organisation STP readiness."""

    organisation_id: UUID
    ready: bool
    missing: list[str]


class StpLodgementRequest(BaseModel):
    """Schema for recording a manual lodgement."""

    stp_identifier: str | None = None


class StpReportRecordResponse(BaseModel):
    """Schema for a stored STP report."""

    model_config = ConfigDict(from_attributes=True)

    stp_report_id: UUID
    payroll_run_id: UUID
    report_id: str
    report_type: str
    lodgement_method: str
    lodgement_status: str
    submission_key: str | None = None
    stp_identifier: str | None = None
    lodged_at: datetime | None = None
    created_at: datetime


# ============================================================================
# Leave schemas
# ============================================================================


class LeaveAdjustmentRequest(BaseModel):
    """Schema for a manual leave ledger entry; hours are a signed change."""

    leave_type: LeaveType
    hours: Decimal
    transaction_type: LeaveTransactionType = LeaveTransactionType.ADJUSTMENT
    notes: str | None = None


class LeaveTransactionResponse(BaseModel):
    """Schema for a leave ledger entry."""

    model_config = ConfigDict(from_attributes=True)

    leave_transaction_id: UUID
    employee_id: UUID
    transaction_type: str
    leave_type: str
    hours: Decimal
    balance_after: Decimal
    payroll_run_id: UUID | None = None
    reference: str | None = None
    notes: str | None = None
    created_at: datetime


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None
