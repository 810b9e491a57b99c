"""Tests for STP CSV and JSON exports."""

import csv
import io
import json
from decimal import Decimal

import pytest

from au_payroll.stp.csv_exporter import (
    DETAIL_COLUMNS,
    export_stp_to_csv,
    format_currency,
    format_number,
    generate_stp_summary_csv,
    stp_export_filename,
)
from au_payroll.stp.json_exporter import (
    export_ato_json,
    export_stp_to_json,
    generate_ato_json_payload,
)
from tests.factories import make_payee, make_stp_report


@pytest.fixture
def report():
    payees = [
        make_payee(
            Decimal("3000.00"),
            Decimal("668.35"),
            super_contribution=Decimal("345.00"),
            super_guarantee_amount=Decimal("345.00"),
            ytd_gross=Decimal("9000.00"),
            ytd_payg_withheld=Decimal("2005.05"),
            ytd_super=Decimal("1035.00"),
            employment_start_date="2020-01-06",
            annual_leave_accrued=Decimal("40.4615"),
            personal_leave_accrued=Decimal("12"),
        ),
        make_payee(
            Decimal("1400.00"),
            Decimal("161.00"),
            given_name="Tom",
            family_name="Part",
            employment_basis="P",
            tax_treatment_code="N",
            tax_free_threshold_claimed=False,
            super_contribution=Decimal("161.00"),
            super_guarantee_amount=Decimal("161.00"),
            ytd_super=Decimal("161.00"),
        ),
    ]
    return make_stp_report(
        [],
        payees=payees,
        total_gross=Decimal("4400.00"),
        total_payg_withheld=Decimal("829.35"),
        total_super=Decimal("506.00"),
        total_employees=2,
    )


def read_rows(text: str) -> list[list[str]]:
    return list(csv.reader(io.StringIO(text)))


class TestFormatting:
    def test_format_number(self):
        assert format_number(Decimal("1.005")) == "1.01"
        assert format_number(Decimal("12"), 1) == "12.0"
        assert format_number(None) == "0.00"

    def test_format_currency(self):
        assert format_currency(Decimal("1234.5")) == "$1234.50"


class TestDetailCsv:
    def test_header_and_rows(self, report):
        text = export_stp_to_csv(report)
        rows = read_rows(text)

        assert text.startswith('"Tax File Number","Given Name"')
        assert rows[0] == DETAIL_COLUMNS
        assert len(rows) == 3

        jane = dict(zip(DETAIL_COLUMNS, rows[1]))
        assert jane["Tax File Number"] == "123456782"
        assert jane["Employment Basis"] == "Full-time"
        assert jane["Employment Start Date"] == "2020-01-06"
        assert jane["Employment End Date"] == ""
        assert jane["Total Gross"] == "3000.00"
        assert jane["Gross Overtime"] == "0.00"
        assert jane["PAYG Withheld"] == "668.35"
        assert jane["Tax Treatment"] == "Regular"
        assert jane["Tax Free Threshold Claimed"] == "Yes"
        assert jane["HELP Debt"] == "No"
        assert jane["YTD Gross"] == "9000.00"
        assert jane["Annual Leave Balance (hours)"] == "40.5"
        assert jane["Personal Leave Balance (hours)"] == "12.0"

        tom = dict(zip(DETAIL_COLUMNS, rows[2]))
        assert tom["Employment Basis"] == "Part-time"
        assert tom["Tax Treatment"] == "No TFN quoted"
        assert tom["Tax Free Threshold Claimed"] == "No"
        assert tom["Annual Leave Balance (hours)"] == "0.0"

    def test_filename(self, report):
        assert stp_export_filename(report, "csv") == (
            "STP_Report_2025-06-29_STP-20250702-090000-abcdef12.csv"
        )


class TestSummaryCsv:
    def test_sections(self, report):
        rows = read_rows(generate_stp_summary_csv(report))
        labelled = {row[0]: row[1:] for row in rows if row}

        assert rows[0] == ["STP Report Summary"]
        assert labelled["Report ID"] == ["STP-20250702-090000-abcdef12"]
        assert labelled["Financial Year"] == ["2025-26"]
        assert labelled["ABN"] == ["51824753556"]
        assert labelled["Contact Email"] == [""]
        assert labelled["Total Employees"] == ["2"]
        assert labelled["Total Gross"] == ["$4400.00"]
        assert labelled["Total PAYG Withheld"] == ["$829.35"]
        assert labelled["Total Super"] == ["$506.00"]

    def test_employee_breakdown(self, report):
        rows = read_rows(generate_stp_summary_csv(report))
        header = rows.index(["Name", "TFN", "Gross", "Tax", "Super", "Net", "Employment Basis"])

        assert rows[header - 1] == ["Employee Breakdown"]
        assert rows[header + 1] == [
            "Jane Citizen",
            "123456782",
            "$3000.00",
            "$668.35",
            "$345.00",
            "$2331.65",
            "Full-time",
        ]
        assert rows[header + 2][0] == "Tom Part"
        assert rows[header + 2][5] == "$1239.00"


class TestJsonExport:
    def test_structural_dump(self, report):
        data = json.loads(export_stp_to_json(report))

        assert data["report_id"] == "STP-20250702-090000-abcdef12"
        assert data["payer"]["abn"] == "51824753556"
        assert data["payees"][0]["gross_payment"] == 3000.0
        assert data["payees"][0]["payg_withheld"] == 668.35
        assert data["total_gross"] == 4400.0
        assert data["total_employees"] == 2

    def test_ato_payload_shape(self, report):
        payload = generate_ato_json_payload(report)

        assert set(payload) == {"reportHeader", "payer", "payees", "totals"}
        assert payload["reportHeader"]["reportingPeriod"] == {
            "startDate": "2025-06-16",
            "endDate": "2025-06-29",
        }
        assert payload["payer"]["branchNumber"] == "001"
        assert payload["payer"]["address"]["postcode"] == "2000"

        jane = payload["payees"][0]
        assert jane["identity"]["name"] == {"given": "Jane", "family": "Citizen", "other": None}
        assert jane["employment"]["basis"] == "F"
        assert jane["payment"]["income"]["total"] == Decimal("3000.00")
        assert jane["payment"]["tax"]["withheld"] == Decimal("668.35")
        assert jane["yearToDate"]["gross"] == Decimal("9000.00")
        assert payload["totals"] == {
            "employees": 2,
            "gross": Decimal("4400.00"),
            "tax": Decimal("829.35"),
            "super": Decimal("506.00"),
        }

    def test_ato_json_serialises_decimals(self, report):
        data = json.loads(export_ato_json(report))
        assert data["totals"]["gross"] == 4400.0
        assert data["payees"][1]["payment"]["tax"]["treatment"] == "N"
