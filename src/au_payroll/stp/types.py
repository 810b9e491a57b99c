"""Single Touch Payroll report structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from au_payroll.constants import DEFAULT_COUNTRY_CODE, ZERO


class EmploymentBasis(str, Enum):
    """STP employment basis codes."""

    FULL_TIME = "F"
    PART_TIME = "P"
    CASUAL = "C"
    LABOUR_HIRE = "L"
    DEATH_BENEFICIARY = "D"


class TaxTreatment(str, Enum):
    """STP tax treatment codes."""

    REGULAR = "R"
    FOREIGN_RESIDENT = "F"
    WORKING_HOLIDAY_MAKER = "H"
    NO_TFN = "N"


EMPLOYMENT_BASIS_DESCRIPTIONS = {
    "F": "Full-time",
    "P": "Part-time",
    "C": "Casual",
    "L": "Labour hire",
    "D": "Death beneficiary",
}

TAX_TREATMENT_DESCRIPTIONS = {
    "R": "Regular",
    "F": "Foreign resident",
    "H": "Working holiday maker",
    "N": "No TFN quoted",
}


@dataclass
class StpPayerRecord:
    """Employer (payer) details. Dates in these records are ISO strings."""

    abn: str
    business_name: str
    address_line1: str = ""
    suburb: str = ""
    state: str = ""
    postcode: str = ""
    address_line2: str | None = None
    branch_number: str | None = None
    contact_name: str | None = None
    contact_phone: str | None = None
    contact_email: str | None = None


@dataclass
class StpPayeeRecord:
    """One employee's payment within the report."""

    tfn: str
    given_name: str
    family_name: str
    employment_basis: str
    payment_date: str

    gross_ordinary_time_earnings: Decimal
    gross_payment: Decimal
    payg_withheld: Decimal
    tax_treatment_code: str
    super_contribution: Decimal
    super_guarantee_amount: Decimal

    ytd_gross: Decimal
    ytd_payg_withheld: Decimal
    ytd_super: Decimal

    country_code: str = DEFAULT_COUNTRY_CODE
    other_given_name: str | None = None
    employment_start_date: str | None = None
    employment_end_date: str | None = None

    # Disaggregated income; all pay is currently ordinary time
    gross_overtime_earnings: Decimal = ZERO
    gross_bonuses: Decimal = ZERO
    gross_commissions: Decimal = ZERO
    gross_allowances: Decimal = ZERO
    gross_other_earnings: Decimal = ZERO

    tax_free_threshold_claimed: bool = True
    help_debt: bool = False
    financial_supplement_debt: bool = False

    annual_leave_accrued: Decimal | None = None  # hours
    personal_leave_accrued: Decimal | None = None  # hours

    @property
    def display_name(self) -> str:
        return f"{self.given_name} {self.family_name}"


@dataclass
class StpReport:
    """Pay event report for one payroll run. Never mutated after generation."""

    report_id: str
    report_type: str
    reporting_period_start_date: str
    reporting_period_end_date: str
    payment_date: str
    payer: StpPayerRecord
    payees: list[StpPayeeRecord]
    total_gross: Decimal
    total_payg_withheld: Decimal
    total_super: Decimal
    total_employees: int
    created_at: str
    financial_year: str


@dataclass(frozen=True)
class StpValidationIssue:
    field: str
    message: str
    severity: str  # error | warning


@dataclass
class StpValidationResult:
    errors: list[StpValidationIssue] = field(default_factory=list)
    warnings: list[StpValidationIssue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors
