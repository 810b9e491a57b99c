"""Payslip email composition and delivery."""

from au_payroll.payslips.delivery import (
    BatchSendResult,
    EmailTransport,
    ResendTransport,
    SendResult,
    send_batch_payslips,
    send_payslip_email,
)

__all__ = [
    "BatchSendResult",
    "EmailTransport",
    "ResendTransport",
    "SendResult",
    "send_batch_payslips",
    "send_payslip_email",
]
