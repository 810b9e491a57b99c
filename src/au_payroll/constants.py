"""Business constants shared by every calculator.

All default rates, entitlements and thresholds live here so that fallbacks
(e.g. a missing super rate or unknown weekly hours) resolve to one value.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum


class PayFrequency(str, Enum):
    """Pay cycle frequency."""

    WEEKLY = "weekly"
    FORTNIGHTLY = "fortnightly"
    MONTHLY = "monthly"

    @classmethod
    def parse(cls, value: str | PayFrequency) -> PayFrequency:
        """Accept either case ('FORTNIGHTLY' on runs, 'fortnightly' on employees)."""
        if isinstance(value, PayFrequency):
            return value
        return cls(str(value).strip().lower())


class EmploymentType(str, Enum):
    """Employment classification."""

    FULL_TIME = "full_time"
    PART_TIME = "part_time"
    CASUAL = "casual"
    CONTRACTOR = "contractor"


class LeaveType(str, Enum):
    """Leave categories tracked on the ledger."""

    ANNUAL = "annual"
    SICK = "sick"
    PERSONAL = "personal"
    LONG_SERVICE = "long_service"


class LeaveTransactionType(str, Enum):
    """Leave ledger entry kinds."""

    ACCRUAL = "accrual"
    TAKEN = "taken"
    ADJUSTMENT = "adjustment"
    PAYOUT = "payout"
    CARRYOVER = "carryover"


CENTS = Decimal("0.01")
ZERO = Decimal("0")

# Working time
STANDARD_HOURS_PER_WEEK = Decimal("38")
DEFAULT_HOURS_PER_DAY = Decimal("7.6")
WORK_DAYS_PER_WEEK = Decimal("5")

# Monthly hourly pay uses an average month rather than calendar month lengths,
# so consecutive monthly periods do not vary with the number of days.
AVERAGE_WEEKS_PER_MONTH = Decimal("4.33")

PERIODS_PER_YEAR: dict[PayFrequency, int] = {
    PayFrequency.WEEKLY: 52,
    PayFrequency.FORTNIGHTLY: 26,
    PayFrequency.MONTHLY: 12,
}

WEEKS_PER_PERIOD: dict[PayFrequency, Decimal] = {
    PayFrequency.WEEKLY: Decimal("1"),
    PayFrequency.FORTNIGHTLY: Decimal("2"),
    PayFrequency.MONTHLY: AVERAGE_WEEKS_PER_MONTH,
}

# Leave entitlements (hours per year for a 38 hour week)
ANNUAL_LEAVE_HOURS_FULL_TIME = Decimal("152")  # 4 weeks x 38h
SICK_LEAVE_HOURS_FULL_TIME = Decimal("76")  # 10 days x 7.6h
PERSONAL_LEAVE_HOURS_FULL_TIME = Decimal("76")
LONG_SERVICE_LEAVE_WEEKS = Decimal("8.67")
LONG_SERVICE_LEAVE_YEARS = 10
LEAVE_LOADING_RATE = Decimal("17.5")  # percent
LEAVE_HOURS_PRECISION = Decimal("0.0001")  # ledger and balance columns

# Leave alert thresholds, in days of the employee's working day
LOW_LEAVE_BALANCE_DAYS = Decimal("5")
HIGH_LEAVE_BALANCE_DAYS = Decimal("40")

LEAVE_ACCRUING_TYPES = frozenset({EmploymentType.FULL_TIME, EmploymentType.PART_TIME})

# Superannuation
DEFAULT_SUPER_RATE = Decimal("11.5")  # percent of gross

# PAYG withholding (resident scale, 2024-25 shape).
# (lower, upper, base tax at lower, marginal rate); upper None = no limit.
TAX_BRACKETS: tuple[tuple[Decimal, Decimal | None, Decimal, Decimal], ...] = (
    (Decimal("0"), Decimal("18200"), Decimal("0"), Decimal("0")),
    (Decimal("18200"), Decimal("45000"), Decimal("0"), Decimal("0.19")),
    (Decimal("45000"), Decimal("120000"), Decimal("5092"), Decimal("0.325")),
    (Decimal("120000"), Decimal("180000"), Decimal("29467"), Decimal("0.37")),
    (Decimal("180000"), None, Decimal("51667"), Decimal("0.45")),
)

# Stands in for the "no tax-free threshold" schedule; not a progressive scale.
NO_TAX_FREE_THRESHOLD_RATE = Decimal("0.47")

MEDICARE_LEVY_RATE = Decimal("0.02")
MEDICARE_LEVY_THRESHOLD = Decimal("26000")

# Financial year runs July 1 - June 30
FINANCIAL_YEAR_START_MONTH = 7

# STP
STP_DEFAULT_BRANCH = "001"
DEFAULT_COUNTRY_CODE = "AU"
ABN_LENGTH = 11
TFN_LENGTH = 9
STP_TOTAL_TOLERANCE = CENTS

# Payslip email delivery
EMAIL_BATCH_DELAY_SECONDS = 1.0
EMAIL_MAX_RETRIES = 3
EMAIL_RETRY_DELAY_SECONDS = 2.0
