"""Build STP pay event reports from finalized payroll runs."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable, Mapping
from uuid import UUID

from au_payroll.calculators.types import YTDTotals
from au_payroll.constants import (
    ABN_LENGTH,
    DEFAULT_COUNTRY_CODE,
    FINANCIAL_YEAR_START_MONTH,
    STP_DEFAULT_BRANCH,
    ZERO,
)
from au_payroll.stp.types import (
    EmploymentBasis,
    StpPayeeRecord,
    StpPayerRecord,
    StpReport,
    TaxTreatment,
)

if TYPE_CHECKING:
    from au_payroll.models import Employee, Organisation, PayrollItem, PayrollRun

logger = logging.getLogger(__name__)

# Contractors are reported as casual; labour hire (L) is never inferred.
_EMPLOYMENT_BASIS = {
    "full_time": EmploymentBasis.FULL_TIME,
    "part_time": EmploymentBasis.PART_TIME,
    "casual": EmploymentBasis.CASUAL,
    "contractor": EmploymentBasis.CASUAL,
}


class StpPreconditionError(Exception):
    """Report cannot be generated until the underlying records are fixed."""


class MissingAbnError(StpPreconditionError):
    def __init__(self) -> None:
        super().__init__(
            "ABN is required for STP reporting. Please complete organisation settings."
        )


class MissingBusinessNameError(StpPreconditionError):
    def __init__(self) -> None:
        super().__init__(
            "Business name is required for STP reporting. Please complete organisation settings."
        )


class MissingTfnError(StpPreconditionError):
    def __init__(self, employee_id: UUID, employee_name: str):
        self.employee_id = employee_id
        self.employee_name = employee_name
        super().__init__(f"TFN is required for {employee_name}. Please add the employee's TFN.")


class NoEligiblePayeesError(StpPreconditionError):
    def __init__(self) -> None:
        super().__init__("No eligible employees found for STP reporting")


def _strip_spaces(value: str | None) -> str:
    return re.sub(r"\s", "", value or "")


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None


def financial_year_label(pay_date: date) -> str:
    """'2024-25' for any pay date from 1 July 2024 to 30 June 2025."""
    if pay_date.month >= FINANCIAL_YEAR_START_MONTH:
        return f"{pay_date.year}-{str(pay_date.year + 1)[2:]}"
    return f"{pay_date.year - 1}-{str(pay_date.year)[2:]}"


def split_full_name(full_name: str) -> tuple[str, str]:
    """First token is the given name, the rest the family name.

    A single-token name is used as both given and family name.
    """
    parts = full_name.split()
    if not parts:
        return "", ""
    given = parts[0]
    family = " ".join(parts[1:]) or given
    return given, family


def map_employment_basis(employment_type: str) -> str:
    return _EMPLOYMENT_BASIS.get(
        (employment_type or "").lower(), EmploymentBasis.FULL_TIME
    ).value


def determine_tax_treatment_code(employee: Employee) -> str:
    if not employee.tfn:
        return TaxTreatment.NO_TFN.value
    if employee.tax_scale_type == "foreign_resident":
        return TaxTreatment.FOREIGN_RESIDENT.value
    if employee.tax_scale_type == "working_holiday_maker":
        return TaxTreatment.WORKING_HOLIDAY_MAKER.value
    return TaxTreatment.REGULAR.value


def is_excluded_from_stp(employee: Employee) -> bool:
    """Contractors holding their own ABN are invoiced, not reported."""
    return employee.is_contractor and bool(employee.abn)


def is_stp_ready(organisation: Organisation) -> tuple[bool, list[str]]:
    """Organisation settings still missing before a report can be lodged."""
    missing: list[str] = []
    if len(_strip_spaces(organisation.abn)) != ABN_LENGTH:
        missing.append("Valid ABN (11 digits)")
    if not organisation.name:
        missing.append("Business name")
    if not organisation.has_complete_address:
        missing.append("Business address")
    return not missing, missing


def generate_payer_record(organisation: Organisation) -> StpPayerRecord:
    return StpPayerRecord(
        abn=_strip_spaces(organisation.abn),
        business_name=organisation.name or "",
        branch_number=STP_DEFAULT_BRANCH,
        contact_name=organisation.contact_name or None,
        contact_phone=organisation.contact_phone or None,
        contact_email=organisation.contact_email or None,
        address_line1=organisation.address_line1 or "",
        address_line2=organisation.address_line2 or None,
        suburb=organisation.suburb or "",
        state=organisation.state or "",
        postcode=organisation.postcode or "",
    )


def generate_payee_record(
    employee: Employee,
    item: PayrollItem,
    payroll_run: PayrollRun,
    ytd: YTDTotals,
) -> StpPayeeRecord:
    """Payee record; YTD figures include this payment."""
    if not employee.tfn:
        raise MissingTfnError(employee.employee_id, employee.full_name)

    given_name, family_name = split_full_name(employee.full_name)
    gross = Decimal(item.gross)
    tax = Decimal(item.tax)
    super_amount = Decimal(item.super_amount)

    return StpPayeeRecord(
        tfn=_strip_spaces(employee.tfn),
        employment_start_date=_iso(employee.start_date),
        employment_end_date=_iso(employee.end_date),
        given_name=given_name,
        family_name=family_name,
        country_code=employee.country_code or DEFAULT_COUNTRY_CODE,
        employment_basis=map_employment_basis(employee.employment_type),
        payment_date=payroll_run.effective_pay_date.isoformat(),
        gross_ordinary_time_earnings=gross,
        gross_payment=gross,
        payg_withheld=tax,
        tax_treatment_code=determine_tax_treatment_code(employee),
        tax_free_threshold_claimed=employee.tax_free_threshold is not False,
        help_debt=bool(employee.help_debt),
        super_contribution=super_amount,
        super_guarantee_amount=super_amount,
        ytd_gross=ytd.gross + gross,
        ytd_payg_withheld=ytd.tax + tax,
        ytd_super=ytd.super_amount + super_amount,
        annual_leave_accrued=employee.leave_balance("annual"),
        personal_leave_accrued=employee.leave_balance("sick"),
    )


def generate_stp_report(
    payroll_run: PayrollRun,
    payroll_items: Iterable[PayrollItem],
    organisation: Organisation,
    ytd_data: Mapping[UUID, YTDTotals] | None = None,
    generated_at: datetime | None = None,
) -> StpReport:
    """Build the STP report for a finalized payroll run.

    ytd_data holds each employee's YTD totals before this run.

    Raises StpPreconditionError when the organisation lacks an ABN or name,
    when an included employee has no TFN, or when no payees remain.
    """
    if not _strip_spaces(organisation.abn):
        raise MissingAbnError()
    if not organisation.name:
        raise MissingBusinessNameError()

    ytd_data = ytd_data or {}
    generated_at = generated_at or datetime.now(timezone.utc)
    payer = generate_payer_record(organisation)

    payees: list[StpPayeeRecord] = []
    for item in payroll_items:
        employee = item.employee
        if employee is None:
            logger.warning("Skipping payroll item %s: no employee data", item.payroll_item_id)
            continue

        if is_excluded_from_stp(employee):
            continue

        ytd = ytd_data.get(employee.employee_id, YTDTotals())
        payees.append(generate_payee_record(employee, item, payroll_run, ytd))

    if not payees:
        raise NoEligiblePayeesError()

    pay_date = payroll_run.effective_pay_date
    report = StpReport(
        report_id=(
            f"STP-{generated_at:%Y%m%d-%H%M%S}-{str(payroll_run.payroll_run_id)[:8]}"
        ),
        report_type="update",
        reporting_period_start_date=payroll_run.pay_period_start.isoformat(),
        reporting_period_end_date=payroll_run.pay_period_end.isoformat(),
        payment_date=pay_date.isoformat(),
        payer=payer,
        payees=payees,
        total_gross=sum((p.gross_payment for p in payees), ZERO),
        total_payg_withheld=sum((p.payg_withheld for p in payees), ZERO),
        total_super=sum((p.super_contribution for p in payees), ZERO),
        total_employees=len(payees),
        created_at=generated_at.isoformat(),
        financial_year=financial_year_label(pay_date),
    )

    logger.info(
        "Generated STP report %s for run %s with %d payees",
        report.report_id,
        payroll_run.payroll_run_id,
        report.total_employees,
    )
    return report
