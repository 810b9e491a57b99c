"""CSV exports of STP reports."""

from __future__ import annotations

import csv
import io
from decimal import ROUND_HALF_UP, Decimal

from au_payroll.stp.types import (
    EMPLOYMENT_BASIS_DESCRIPTIONS,
    TAX_TREATMENT_DESCRIPTIONS,
    StpPayeeRecord,
    StpReport,
)

DETAIL_COLUMNS = [
    "Tax File Number",
    "Given Name",
    "Family Name",
    "Other Given Name",
    "Employment Start Date",
    "Employment End Date",
    "Employment Basis",
    "Country Code",
    "Payment Date",
    "Gross Ordinary Time Earnings",
    "Gross Overtime",
    "Gross Bonuses",
    "Gross Commissions",
    "Gross Allowances",
    "Gross Other",
    "Total Gross",
    "PAYG Withheld",
    "Tax Treatment",
    "Tax Free Threshold Claimed",
    "HELP Debt",
    "Super Contribution",
    "Super Guarantee",
    "YTD Gross",
    "YTD PAYG",
    "YTD Super",
    "Annual Leave Balance (hours)",
    "Personal Leave Balance (hours)",
]


def format_number(value: Decimal | None, places: int = 2) -> str:
    exponent = Decimal(1).scaleb(-places)
    return str(Decimal(value or 0).quantize(exponent, rounding=ROUND_HALF_UP))


def format_currency(value: Decimal) -> str:
    return f"${format_number(value)}"


def employment_basis_description(code: str) -> str:
    return EMPLOYMENT_BASIS_DESCRIPTIONS.get(code, code)


def tax_treatment_description(code: str) -> str:
    return TAX_TREATMENT_DESCRIPTIONS.get(code, code)


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def _detail_row(payee: StpPayeeRecord) -> list[str]:
    return [
        payee.tfn,
        payee.given_name,
        payee.family_name,
        payee.other_given_name or "",
        payee.employment_start_date or "",
        payee.employment_end_date or "",
        employment_basis_description(payee.employment_basis),
        payee.country_code,
        payee.payment_date,
        format_number(payee.gross_ordinary_time_earnings),
        format_number(payee.gross_overtime_earnings),
        format_number(payee.gross_bonuses),
        format_number(payee.gross_commissions),
        format_number(payee.gross_allowances),
        format_number(payee.gross_other_earnings),
        format_number(payee.gross_payment),
        format_number(payee.payg_withheld),
        tax_treatment_description(payee.tax_treatment_code),
        _yes_no(payee.tax_free_threshold_claimed),
        _yes_no(payee.help_debt),
        format_number(payee.super_contribution),
        format_number(payee.super_guarantee_amount),
        format_number(payee.ytd_gross),
        format_number(payee.ytd_payg_withheld),
        format_number(payee.ytd_super),
        format_number(payee.annual_leave_accrued, 1),
        format_number(payee.personal_leave_accrued, 1),
    ]


def export_stp_to_csv(report: StpReport) -> str:
    """One fully quoted row per payee, for import into the ATO Business Portal."""
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL)
    writer.writerow(DETAIL_COLUMNS)
    for payee in report.payees:
        writer.writerow(_detail_row(payee))
    return output.getvalue()


def generate_stp_summary_csv(report: StpReport) -> str:
    """Human-readable summary: metadata, payer, totals, then a per-employee table."""
    payer = report.payer
    rows: list[list[str]] = [
        ["STP Report Summary"],
        [],
        ["Report Details"],
        ["Report ID", report.report_id],
        ["Report Type", report.report_type],
        ["Financial Year", report.financial_year],
        ["Pay Period Start", report.reporting_period_start_date],
        ["Pay Period End", report.reporting_period_end_date],
        ["Payment Date", report.payment_date],
        [],
        ["Payer Details"],
        ["ABN", payer.abn],
        ["Business Name", payer.business_name],
        ["Contact Email", payer.contact_email or ""],
        ["Contact Phone", payer.contact_phone or ""],
        [],
        ["Totals"],
        ["Total Employees", str(report.total_employees)],
        ["Total Gross", format_currency(report.total_gross)],
        ["Total PAYG Withheld", format_currency(report.total_payg_withheld)],
        ["Total Super", format_currency(report.total_super)],
        [],
        ["Employee Breakdown"],
        ["Name", "TFN", "Gross", "Tax", "Super", "Net", "Employment Basis"],
    ]

    for payee in report.payees:
        rows.append([
            payee.display_name,
            payee.tfn,
            format_currency(payee.gross_payment),
            format_currency(payee.payg_withheld),
            format_currency(payee.super_contribution),
            format_currency(payee.gross_payment - payee.payg_withheld),
            employment_basis_description(payee.employment_basis),
        ])

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerows(rows)
    return output.getvalue()


def stp_export_filename(report: StpReport, extension: str) -> str:
    return f"STP_Report_{report.reporting_period_end_date}_{report.report_id}.{extension}"
