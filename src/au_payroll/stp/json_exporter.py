"""JSON exports of STP reports.

Both transforms assume the report has already been validated.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from decimal import Decimal
from typing import Any

from au_payroll.stp.types import StpReport


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def report_to_dict(report: StpReport) -> dict[str, Any]:
    return asdict(report)


def export_stp_to_json(report: StpReport) -> str:
    """Full structural dump of the report."""
    return json.dumps(report_to_dict(report), indent=2, default=_json_default)


def generate_ato_json_payload(report: StpReport) -> dict[str, Any]:
    """Reshape the report into the nested, API-oriented payload."""
    payer = report.payer
    return {
        "reportHeader": {
            "reportId": report.report_id,
            "reportType": report.report_type,
            "reportingPeriod": {
                "startDate": report.reporting_period_start_date,
                "endDate": report.reporting_period_end_date,
            },
            "paymentDate": report.payment_date,
            "financialYear": report.financial_year,
        },
        "payer": {
            "abn": payer.abn,
            "businessName": payer.business_name,
            "branchNumber": payer.branch_number,
            "contactDetails": {
                "name": payer.contact_name,
                "phone": payer.contact_phone,
                "email": payer.contact_email,
            },
            "address": {
                "line1": payer.address_line1,
                "line2": payer.address_line2,
                "suburb": payer.suburb,
                "state": payer.state,
                "postcode": payer.postcode,
            },
        },
        "payees": [
            {
                "identity": {
                    "tfn": payee.tfn,
                    "name": {
                        "given": payee.given_name,
                        "family": payee.family_name,
                        "other": payee.other_given_name,
                    },
                },
                "employment": {
                    "startDate": payee.employment_start_date,
                    "endDate": payee.employment_end_date,
                    "basis": payee.employment_basis,
                    "countryCode": payee.country_code,
                },
                "payment": {
                    "date": payee.payment_date,
                    "income": {
                        "ordinaryTime": payee.gross_ordinary_time_earnings,
                        "overtime": payee.gross_overtime_earnings,
                        "bonuses": payee.gross_bonuses,
                        "commissions": payee.gross_commissions,
                        "allowances": payee.gross_allowances,
                        "other": payee.gross_other_earnings,
                        "total": payee.gross_payment,
                    },
                    "tax": {
                        "withheld": payee.payg_withheld,
                        "treatment": payee.tax_treatment_code,
                        "taxFreeThreshold": payee.tax_free_threshold_claimed,
                        "helpDebt": payee.help_debt,
                        "sfssDebt": payee.financial_supplement_debt,
                    },
                    "superannuation": {
                        "contribution": payee.super_contribution,
                        "guarantee": payee.super_guarantee_amount,
                    },
                },
                "yearToDate": {
                    "gross": payee.ytd_gross,
                    "tax": payee.ytd_payg_withheld,
                    "super": payee.ytd_super,
                },
                "leave": {
                    "annual": payee.annual_leave_accrued,
                    "personal": payee.personal_leave_accrued,
                },
            }
            for payee in report.payees
        ],
        "totals": {
            "employees": report.total_employees,
            "gross": report.total_gross,
            "tax": report.total_payg_withheld,
            "super": report.total_super,
        },
    }


def export_ato_json(report: StpReport) -> str:
    return json.dumps(generate_ato_json_payload(report), indent=2, default=_json_default)
