"""Organisation (payer) model."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from au_payroll.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from au_payroll.models.employee import Employee
    from au_payroll.models.payroll import PayrollRun


class Organisation(Base, TimestampMixin):
    """Business running payroll; the STP payer."""

    __tablename__ = "organisation"

    organisation_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str | None] = mapped_column(String, nullable=True)
    abn: Mapped[str | None] = mapped_column(String, nullable=True)

    contact_name: Mapped[str | None] = mapped_column(String, nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String, nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String, nullable=True)

    # Registered address
    address_line1: Mapped[str | None] = mapped_column(String, nullable=True)
    address_line2: Mapped[str | None] = mapped_column(String, nullable=True)
    suburb: Mapped[str | None] = mapped_column(String, nullable=True)
    state: Mapped[str | None] = mapped_column(String, nullable=True)
    postcode: Mapped[str | None] = mapped_column(String, nullable=True)

    # Banking (payslip footer)
    bank_bsb: Mapped[str | None] = mapped_column(String, nullable=True)
    bank_account: Mapped[str | None] = mapped_column(String, nullable=True)
    bank_account_name: Mapped[str | None] = mapped_column(String, nullable=True)

    gst_registered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    gst_cycle: Mapped[str | None] = mapped_column(String, nullable=True)
    financial_year_start_month: Mapped[int] = mapped_column(Integer, nullable=False, default=7)
    default_super_rate: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    default_pay_frequency: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "gst_cycle IS NULL OR gst_cycle IN ('monthly', 'quarterly', 'annual')",
            name="organisation_gst_cycle_check",
        ),
    )

    # Relationships
    employees: Mapped[list[Employee]] = relationship(back_populates="organisation")
    payroll_runs: Mapped[list[PayrollRun]] = relationship(back_populates="organisation")

    @property
    def has_complete_address(self) -> bool:
        return all((self.address_line1, self.suburb, self.state, self.postcode))
