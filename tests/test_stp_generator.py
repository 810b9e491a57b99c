"""Tests for STP report generation."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from au_payroll.calculators.types import YTDTotals
from au_payroll.stp.generator import (
    MissingAbnError,
    MissingBusinessNameError,
    MissingTfnError,
    NoEligiblePayeesError,
    determine_tax_treatment_code,
    financial_year_label,
    generate_payer_record,
    generate_stp_report,
    is_excluded_from_stp,
    is_stp_ready,
    map_employment_basis,
    split_full_name,
)
from tests.factories import make_employee, make_item, make_organisation, make_payroll_run

GENERATED_AT = datetime(2025, 7, 2, 9, 30, 15, tzinfo=timezone.utc)


@pytest.fixture
def org():
    return make_organisation()


@pytest.fixture
def run(org):
    return make_payroll_run(org)


class TestHelpers:
    def test_financial_year_label(self):
        assert financial_year_label(date(2025, 6, 30)) == "2024-25"
        assert financial_year_label(date(2025, 7, 1)) == "2025-26"
        assert financial_year_label(date(2000, 1, 15)) == "1999-00"

    def test_split_full_name(self):
        assert split_full_name("Mary Jane Watson") == ("Mary", "Jane Watson")
        assert split_full_name("  Jane   Citizen ") == ("Jane", "Citizen")
        assert split_full_name("Cher") == ("Cher", "Cher")
        assert split_full_name("") == ("", "")

    def test_map_employment_basis(self):
        assert map_employment_basis("full_time") == "F"
        assert map_employment_basis("part_time") == "P"
        assert map_employment_basis("casual") == "C"
        assert map_employment_basis("contractor") == "C"
        assert map_employment_basis("unknown") == "F"

    def test_tax_treatment_codes(self, org):
        assert determine_tax_treatment_code(make_employee(org)) == "R"
        assert determine_tax_treatment_code(make_employee(org, tfn=None)) == "N"
        assert (
            determine_tax_treatment_code(make_employee(org, tax_scale_type="foreign_resident"))
            == "F"
        )
        assert (
            determine_tax_treatment_code(
                make_employee(org, tax_scale_type="working_holiday_maker")
            )
            == "H"
        )

    def test_contractor_exclusion_requires_abn(self, org):
        with_abn = make_employee(org, employment_type="contractor", abn="12345678901")
        without_abn = make_employee(org, employment_type="contractor", abn=None)
        assert is_excluded_from_stp(with_abn) is True
        assert is_excluded_from_stp(without_abn) is False
        assert is_excluded_from_stp(make_employee(org, abn="12345678901")) is False


class TestStpReadiness:
    def test_ready(self, org):
        assert is_stp_ready(org) == (True, [])

    def test_missing_settings(self):
        org = make_organisation(abn="1234", name=None, postcode=None)
        ready, missing = is_stp_ready(org)

        assert ready is False
        assert missing == ["Valid ABN (11 digits)", "Business name", "Business address"]

    def test_payer_record(self, org):
        payer = generate_payer_record(org)

        assert payer.abn == "51824753556"
        assert payer.business_name == "Harbour Coffee Pty Ltd"
        assert payer.branch_number == "001"
        assert payer.suburb == "Sydney"
        assert payer.address_line2 is None


class TestGenerateReport:
    def test_report_header_and_totals(self, org, run):
        jane = make_employee(org, full_name="Jane Citizen")
        tom = make_employee(org, full_name="Tom Part", employment_type="part_time")
        items = [
            make_item(run, jane),
            make_item(run, tom, gross="1400.00", tax="161.00", super_amount="161.00"),
        ]

        report = generate_stp_report(run, items, org, generated_at=GENERATED_AT)

        assert report.report_id == f"STP-20250702-093015-{str(run.payroll_run_id)[:8]}"
        assert report.report_type == "update"
        assert report.reporting_period_start_date == "2025-06-16"
        assert report.reporting_period_end_date == "2025-06-29"
        assert report.payment_date == "2025-07-02"
        assert report.financial_year == "2025-26"
        assert report.created_at == GENERATED_AT.isoformat()
        assert report.total_employees == 2
        assert report.total_gross == Decimal("4400.00")
        assert report.total_payg_withheld == Decimal("829.35")
        assert report.total_super == Decimal("506.00")

    def test_payee_record(self, org, run):
        jane = make_employee(
            org,
            full_name="Jane Citizen",
            tfn="123 456 782",
            annual_leave_hours=Decimal("40.5"),
            sick_leave_hours=Decimal("12"),
            help_debt=True,
        )
        report = generate_stp_report(run, [make_item(run, jane)], org, generated_at=GENERATED_AT)
        payee = report.payees[0]

        assert payee.tfn == "123456782"
        assert payee.given_name == "Jane"
        assert payee.family_name == "Citizen"
        assert payee.employment_basis == "F"
        assert payee.payment_date == "2025-07-02"
        assert payee.employment_start_date == "2020-01-06"
        assert payee.gross_ordinary_time_earnings == Decimal("3000.00")
        assert payee.gross_payment == Decimal("3000.00")
        assert payee.payg_withheld == Decimal("668.35")
        assert payee.super_contribution == Decimal("345.00")
        assert payee.super_guarantee_amount == Decimal("345.00")
        assert payee.tax_treatment_code == "R"
        assert payee.help_debt is True
        assert payee.country_code == "AU"
        assert payee.annual_leave_accrued == Decimal("40.5")
        assert payee.personal_leave_accrued == Decimal("12")

    def test_ytd_includes_current_payment(self, org, run):
        jane = make_employee(org)
        prior = YTDTotals(
            gross=Decimal("6000.00"), tax=Decimal("1336.70"), super_amount=Decimal("690.00")
        )

        report = generate_stp_report(
            run, [make_item(run, jane)], org, {jane.employee_id: prior}, GENERATED_AT
        )
        payee = report.payees[0]

        assert payee.ytd_gross == Decimal("9000.00")
        assert payee.ytd_payg_withheld == Decimal("2005.05")
        assert payee.ytd_super == Decimal("1035.00")

    def test_missing_ytd_defaults_to_current_payment(self, org, run):
        jane = make_employee(org)
        report = generate_stp_report(run, [make_item(run, jane)], org, generated_at=GENERATED_AT)
        assert report.payees[0].ytd_gross == Decimal("3000.00")

    def test_pay_date_falls_back_to_period_end(self, org):
        run = make_payroll_run(org, pay_date=None)
        jane = make_employee(org)
        report = generate_stp_report(run, [make_item(run, jane)], org, generated_at=GENERATED_AT)

        assert report.payment_date == "2025-06-29"
        assert report.financial_year == "2024-25"

    def test_contractor_with_abn_excluded(self, org, run):
        jane = make_employee(org)
        contractor = make_employee(
            org, full_name="Con Tractor", employment_type="contractor", abn="12345678901"
        )
        sole = make_employee(org, full_name="Sole Trader", employment_type="contractor", abn=None)
        items = [
            make_item(run, jane),
            make_item(run, contractor, tax="0", super_amount="0"),
            make_item(run, sole, gross="500.00", tax="0", super_amount="0"),
        ]

        report = generate_stp_report(run, items, org, generated_at=GENERATED_AT)

        assert [p.display_name for p in report.payees] == ["Jane Citizen", "Sole Trader"]
        assert report.payees[1].employment_basis == "C"
        assert report.total_gross == Decimal("3500.00")

    def test_item_without_employee_skipped(self, org, run):
        jane = make_employee(org)
        orphan = make_item(run, make_employee(org, full_name="Gone Away"))
        orphan.employee = None

        report = generate_stp_report(
            run, [make_item(run, jane), orphan], org, generated_at=GENERATED_AT
        )
        assert report.total_employees == 1

    def test_missing_abn(self, run):
        org = make_organisation(abn=None)
        with pytest.raises(MissingAbnError):
            generate_stp_report(run, [make_item(run, make_employee(org))], org)

    def test_missing_business_name(self, run):
        org = make_organisation(name="")
        with pytest.raises(MissingBusinessNameError):
            generate_stp_report(run, [make_item(run, make_employee(org))], org)

    def test_missing_tfn(self, org, run):
        no_tfn = make_employee(org, full_name="No Tfn", tfn=None)
        with pytest.raises(MissingTfnError) as exc_info:
            generate_stp_report(run, [make_item(run, no_tfn)], org)

        assert exc_info.value.employee_id == no_tfn.employee_id
        assert "No Tfn" in str(exc_info.value)

    def test_no_eligible_payees(self, org, run):
        contractor = make_employee(org, employment_type="contractor", abn="12345678901")
        with pytest.raises(NoEligiblePayeesError):
            generate_stp_report(run, [make_item(run, contractor)], org)

        with pytest.raises(NoEligiblePayeesError):
            generate_stp_report(run, [], org)
