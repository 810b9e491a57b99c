"""STP report validation prior to lodgement.

Errors block lodgement; warnings are advisory. The validator never raises.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from au_payroll.constants import ABN_LENGTH, STP_TOTAL_TOLERANCE, TFN_LENGTH, ZERO
from au_payroll.stp.types import (
    EmploymentBasis,
    StpPayeeRecord,
    StpReport,
    StpValidationIssue,
    StpValidationResult,
)

_VALID_BASIS_CODES = frozenset(basis.value for basis in EmploymentBasis)


def _is_iso_date(value: str | None) -> bool:
    try:
        date.fromisoformat(value or "")
    except (TypeError, ValueError):
        return False
    return True


def _validate_payer(report: StpReport, result: StpValidationResult) -> None:
    payer = report.payer

    if not payer.abn or len(payer.abn) != ABN_LENGTH:
        result.errors.append(
            StpValidationIssue("payer.abn", "ABN must be exactly 11 digits", "error")
        )

    if not payer.business_name:
        result.errors.append(
            StpValidationIssue("payer.businessName", "Business name is required", "error")
        )

    if not (payer.address_line1 and payer.suburb and payer.state and payer.postcode):
        result.warnings.append(
            StpValidationIssue(
                "payer.address", "Complete business address is recommended", "warning"
            )
        )


def _validate_payee(
    index: int, payee: StpPayeeRecord, result: StpValidationResult
) -> None:
    prefix = f"payee[{index}]"
    name = payee.display_name

    def error(field: str, message: str) -> None:
        result.errors.append(StpValidationIssue(f"{prefix}.{field}", f"{name}: {message}", "error"))

    if not payee.tfn or len(payee.tfn) != TFN_LENGTH:
        error("tfn", "TFN must be exactly 9 digits")

    if not payee.given_name or not payee.family_name:
        error("name", "Given name and family name are required")

    if payee.gross_payment <= 0:
        result.warnings.append(
            StpValidationIssue(
                f"{prefix}.grossPayment",
                f"{name}: Gross payment is zero or negative",
                "warning",
            )
        )

    if payee.payg_withheld < 0:
        error("paygWithheld", "PAYG withheld cannot be negative")

    if payee.super_contribution < 0:
        error("superContribution", "Super contribution cannot be negative")

    if payee.ytd_gross < payee.gross_payment:
        error("ytdGross", "YTD gross cannot be less than current payment")

    if payee.employment_basis not in _VALID_BASIS_CODES:
        error("employmentBasis", "Invalid employment basis code")

    if not _is_iso_date(payee.payment_date):
        error("paymentDate", "Invalid payment date")


def validate_stp_report(report: StpReport) -> StpValidationResult:
    """Check a generated report against structural and business rules."""
    result = StpValidationResult()

    _validate_payer(report, result)

    for index, payee in enumerate(report.payees):
        _validate_payee(index, payee, result)

    calculated_gross = sum((Decimal(p.gross_payment) for p in report.payees), ZERO)
    calculated_tax = sum((Decimal(p.payg_withheld) for p in report.payees), ZERO)

    if abs(calculated_gross - Decimal(report.total_gross)) > STP_TOTAL_TOLERANCE:
        result.errors.append(
            StpValidationIssue(
                "totalGross",
                "Total gross does not match sum of individual payments",
                "error",
            )
        )

    if abs(calculated_tax - Decimal(report.total_payg_withheld)) > STP_TOTAL_TOLERANCE:
        result.warnings.append(
            StpValidationIssue(
                "totalPaygWithheld",
                "Total PAYG does not match sum of individual withholdings",
                "warning",
            )
        )

    return result
