"""Payslip email content: subject, HTML and plain-text bodies, attachment name."""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from au_payroll.constants import CENTS


@dataclass(frozen=True)
class PayslipEmailData:
    """Display-ready values for one payslip email."""

    employee_name: str
    business_name: str
    pay_period_end: str
    gross_pay: str
    tax_withheld: str
    net_pay: str


def format_display_date(value: date) -> str:
    """'30 Jun 2025'."""
    return f"{value.day:02d} {value:%b %Y}"


def format_aud(amount: Decimal | None) -> str:
    value = Decimal(amount or 0).quantize(CENTS, rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def build_email_data(
    employee_name: str | None,
    business_name: str,
    pay_period_end: date,
    gross: Decimal,
    tax: Decimal,
    net: Decimal,
) -> PayslipEmailData:
    return PayslipEmailData(
        employee_name=employee_name or "Employee",
        business_name=business_name,
        pay_period_end=format_display_date(pay_period_end),
        gross_pay=format_aud(gross),
        tax_withheld=format_aud(tax),
        net_pay=format_aud(net),
    )


def payslip_subject(business_name: str, pay_period_end: str) -> str:
    return f"Payslip - {pay_period_end} - {business_name}"


def payslip_filename(employee_name: str, pay_period_end: str) -> str:
    """Attachment name with the employee name reduced to letters, digits and hyphens."""
    name = re.sub(r"[^a-zA-Z0-9\s-]", "", employee_name or "")
    name = re.sub(r"\s+", "-", name.strip())
    name = re.sub(r"-+", "-", name)
    date_part = re.sub(r"\s+", "-", pay_period_end)
    return f"Payslip-{name}-{date_part}.pdf"


_HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Your Payslip - {period_end}</title>
  <style>
    body {{ margin: 0; padding: 0; font-family: -apple-system, 'Segoe UI', Roboto, Arial, sans-serif; color: #333333; background-color: #f5f7fa; }}
    .email-container {{ max-width: 600px; margin: 0 auto; background-color: #ffffff; }}
    .header {{ background-color: #1e40af; padding: 32px 24px; text-align: center; color: #ffffff; }}
    .content {{ padding: 32px 24px; }}
    .payment-card {{ border: 2px solid #2563eb; border-radius: 12px; padding: 24px; margin: 24px 0; }}
    .payment-row {{ display: flex; justify-content: space-between; padding: 12px 0; }}
    .net-pay {{ font-size: 20px; font-weight: 800; }}
    .footer {{ background-color: #f9fafb; padding: 24px; text-align: center; font-size: 12px; color: #6b7280; }}
    .confidential {{ font-weight: 600; color: #dc2626; }}
  </style>
</head>
<body>
  <div class="email-container">
    <div class="header">
      <h1>Your Payslip is Ready</h1>
      <p>Pay period ending {period_end}</p>
    </div>
    <div class="content">
      <p>Hi {employee_name},</p>
      <p>Your payslip for the pay period ending <strong>{period_end}</strong> is attached to this email.
      Below is a summary of your payment details.</p>
      <div class="payment-card">
        <div class="payment-row"><span>Gross Pay</span><span>{gross_pay}</span></div>
        <div class="payment-row"><span>Tax Withheld (PAYG)</span><span>{tax_withheld}</span></div>
        <div class="payment-row"><span>Net Pay</span><span class="net-pay">{net_pay}</span></div>
      </div>
      <p>Your detailed payslip PDF is attached. It includes your earnings breakdown,
      PAYG withholding, superannuation contributions, year-to-date totals and leave balances.</p>
      <p><strong>Keep this payslip.</strong> You may need it for tax returns, loan or rental
      applications, Centrelink claims or superannuation tracking.</p>
    </div>
    <div class="footer">
      <p>This email was sent by <strong>{business_name}</strong></p>
      <p class="confidential">CONFIDENTIAL: This email contains your personal financial information.<br>
      Please store it securely and do not forward to others.</p>
      <p>Questions about your payslip? Contact your employer directly.</p>
    </div>
  </div>
</body>
</html>"""


_TEXT_TEMPLATE = """YOUR PAYSLIP IS READY
Pay Period Ending: {period_end}

Hi {employee_name},

Your payslip for the pay period ending {period_end} is attached to this email.

PAYMENT SUMMARY
===============
Gross Pay:        {gross_pay}
Tax Withheld:     {tax_withheld}
NET PAY:          {net_pay}

The attached PDF contains your complete payslip including earnings, PAYG
withholding, superannuation contributions, year-to-date totals and leave balances.

IMPORTANT: KEEP THIS PAYSLIP
You may need it for tax returns, loan or rental applications, Centrelink claims
or superannuation tracking.

---
This email was sent by {business_name}

CONFIDENTIAL: This email contains your personal financial information.
Please store it securely and do not forward to others.

Questions? Contact your employer directly."""


def payslip_html(data: PayslipEmailData) -> str:
    return _HTML_TEMPLATE.format(
        period_end=html.escape(data.pay_period_end),
        employee_name=html.escape(data.employee_name),
        business_name=html.escape(data.business_name),
        gross_pay=html.escape(data.gross_pay),
        tax_withheld=html.escape(data.tax_withheld),
        net_pay=html.escape(data.net_pay),
    )


def payslip_text(data: PayslipEmailData) -> str:
    return _TEXT_TEMPLATE.format(
        period_end=data.pay_period_end,
        employee_name=data.employee_name,
        business_name=data.business_name,
        gross_pay=data.gross_pay,
        tax_withheld=data.tax_withheld,
        net_pay=data.net_pay,
    )
