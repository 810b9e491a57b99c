"""Payslip email delivery.

Recipients are processed strictly one at a time with a fixed delay between
sends to respect the provider's rate limit. Each send retries transient
failures with a linearly increasing delay; permanent failures (bad address,
invalid payload) stop retrying for that recipient only.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping, Protocol
from uuid import UUID

import httpx

from au_payroll.config import get_settings
from au_payroll.payslips.templates import (
    build_email_data,
    payslip_filename,
    payslip_html,
    payslip_subject,
    payslip_text,
)

if TYPE_CHECKING:
    from au_payroll.models import Employee, Organisation, PayrollItem, PayrollRun

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"

PERMANENT_ERRORS = (
    "invalid_email",
    "invalid_from",
    "missing_required_field",
    "validation_error",
)

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Average provider round trip used for batch duration estimates
_SECONDS_PER_EMAIL = 1.0


@dataclass
class EmailAttachment:
    filename: str
    content: str  # base64


@dataclass
class EmailMessage:
    from_email: str
    to: str
    subject: str
    html: str
    text: str
    attachments: list[EmailAttachment] = field(default_factory=list)
    tags: dict[str, str] = field(default_factory=dict)


@dataclass
class SendResult:
    success: bool
    message_id: str | None = None
    error: str | None = None
    retries: int = 0


class EmailTransport(Protocol):
    """Sends one message; provider-side rejections come back as a failed SendResult."""

    async def send(self, message: EmailMessage) -> SendResult: ...


class ResendTransport:
    """EmailTransport backed by the Resend REST API."""

    def __init__(
        self,
        api_key: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        self.api_key = api_key
        self.client = client
        self.timeout = timeout

    def _payload(self, message: EmailMessage) -> dict:
        return {
            "from": message.from_email,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
            "text": message.text,
            "attachments": [
                {"filename": a.filename, "content": a.content} for a in message.attachments
            ],
            "tags": [{"name": k, "value": v} for k, v in message.tags.items()],
        }

    async def send(self, message: EmailMessage) -> SendResult:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        if self.client is not None:
            response = await self.client.post(
                RESEND_API_URL, json=self._payload(message), headers=headers
            )
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    RESEND_API_URL, json=self._payload(message), headers=headers
                )

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_success:
            return SendResult(success=True, message_id=body.get("id"))

        name = body.get("name") or f"http_{response.status_code}"
        detail = body.get("message") or response.reason_phrase
        return SendResult(success=False, error=f"{name}: {detail}")


def is_valid_email(email: str | None) -> bool:
    return bool(email) and bool(_EMAIL_RE.match(email))


def is_permanent_error(error: str | None) -> bool:
    message = (error or "").lower()
    return any(code in message for code in PERMANENT_ERRORS)


def get_recipient_email(employee_email: str, test_recipient: str | None = None) -> str:
    """Redirect every payslip to the test recipient when one is configured."""
    return test_recipient or employee_email


def can_send_payslip_email(
    employee: Employee, organisation: Organisation
) -> tuple[bool, str | None]:
    if not employee.email:
        return False, "Employee has no email address"
    if not is_valid_email(employee.email):
        return False, "Employee email address is invalid"
    if not organisation.name:
        return False, "Business name is required in organisation settings"
    return True, None


async def send_payslip_email(
    payroll_run: PayrollRun,
    payroll_item: PayrollItem,
    employee: Employee,
    organisation: Organisation,
    pdf_base64: str,
    transport: EmailTransport,
    from_email: str | None = None,
    max_retries: int | None = None,
    retry_delay: float | None = None,
    test_recipient: str | None = None,
) -> SendResult:
    """Send one payslip, retrying transient failures.

    Attempt n waits retry_delay * n seconds before attempt n + 1.
    """
    if not employee.email:
        return SendResult(success=False, error="Employee has no email address")
    if not organisation.name:
        return SendResult(
            success=False, error="Business name is required in organisation settings"
        )
    if not pdf_base64:
        return SendResult(success=False, error="PDF data is required")

    settings = get_settings()
    from_email = from_email or settings.resend_from_email
    max_retries = max_retries if max_retries is not None else settings.email_max_retries
    retry_delay = retry_delay if retry_delay is not None else settings.email_retry_delay_seconds
    test_recipient = test_recipient or settings.email_test_recipient

    data = build_email_data(
        employee.full_name,
        organisation.name,
        payroll_run.pay_period_end,
        payroll_item.gross,
        payroll_item.tax,
        payroll_item.net,
    )
    message = EmailMessage(
        from_email=from_email,
        to=get_recipient_email(employee.email, test_recipient),
        subject=payslip_subject(data.business_name, data.pay_period_end),
        html=payslip_html(data),
        text=payslip_text(data),
        attachments=[
            EmailAttachment(
                filename=payslip_filename(employee.full_name, data.pay_period_end),
                content=pdf_base64,
            )
        ],
        tags={
            "type": "payslip",
            "org_id": str(organisation.organisation_id),
            "payroll_run_id": str(payroll_run.payroll_run_id),
        },
    )

    last_error: str | None = None
    for attempt in range(1, max_retries + 1):
        logger.info("Sending payslip to %s (attempt %d)", message.to, attempt)
        try:
            result = await transport.send(message)
        except httpx.HTTPError as exc:
            last_error = str(exc) or type(exc).__name__
            logger.warning("Payslip send to %s failed: %s", message.to, last_error)
        else:
            if result.success:
                logger.info("Payslip sent to %s (message %s)", message.to, result.message_id)
                return SendResult(success=True, message_id=result.message_id, retries=attempt)

            last_error = result.error
            logger.warning("Payslip send to %s rejected: %s", message.to, last_error)
            if is_permanent_error(last_error):
                return SendResult(success=False, error=last_error, retries=attempt)

        if attempt < max_retries:
            await asyncio.sleep(retry_delay * attempt)

    return SendResult(
        success=False,
        error=last_error or "Failed to send email after multiple retries",
        retries=max_retries,
    )


@dataclass
class BatchEmployeeResult:
    employee_id: UUID | None
    employee_name: str
    success: bool
    message_id: str | None = None
    error: str | None = None
    skipped: bool = False
    skip_reason: str | None = None


@dataclass
class BatchSendResult:
    total: int
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    cancelled: bool = False
    results: list[BatchEmployeeResult] = field(default_factory=list)
    duration_seconds: float = 0.0

    def record(self, outcome: BatchEmployeeResult) -> None:
        if outcome.skipped:
            self.skipped += 1
        elif outcome.success:
            self.sent += 1
        else:
            self.failed += 1
        self.results.append(outcome)


ProgressCallback = Callable[[int, int, BatchEmployeeResult], Any]


async def send_batch_payslips(
    payroll_run: PayrollRun,
    payroll_items: Iterable[PayrollItem],
    pdf_cache: Mapping[UUID, str],
    organisation: Organisation,
    transport: EmailTransport,
    on_progress: ProgressCallback | None = None,
    cancel_event: asyncio.Event | None = None,
    batch_delay: float | None = None,
    **send_options,
) -> BatchSendResult:
    """Send payslips for a run, one recipient at a time.

    pdf_cache maps employee_id to the base64 PDF. on_progress is called with
    (processed, total, outcome) after every recipient and may be async.
    Setting cancel_event stops the batch before the next recipient.
    """
    items = list(payroll_items)
    if batch_delay is None:
        batch_delay = get_settings().email_batch_delay_seconds
    started = time.monotonic()
    result = BatchSendResult(total=len(items))

    for index, item in enumerate(items):
        if cancel_event is not None and cancel_event.is_set():
            result.cancelled = True
            logger.info(
                "Payslip batch for run %s cancelled after %d of %d",
                payroll_run.payroll_run_id,
                index,
                len(items),
            )
            break

        attempted_send = False
        employee = item.employee
        if employee is None:
            outcome = BatchEmployeeResult(
                employee_id=None,
                employee_name="Unknown",
                success=False,
                error="Employee data not found",
            )
        else:
            can_send, reason = can_send_payslip_email(employee, organisation)
            pdf_base64 = pdf_cache.get(employee.employee_id)
            if not can_send:
                outcome = BatchEmployeeResult(
                    employee_id=employee.employee_id,
                    employee_name=employee.full_name,
                    success=False,
                    skipped=True,
                    skip_reason=reason,
                )
            elif not pdf_base64:
                outcome = BatchEmployeeResult(
                    employee_id=employee.employee_id,
                    employee_name=employee.full_name,
                    success=False,
                    error="PDF not generated",
                )
            else:
                attempted_send = True
                sent = await send_payslip_email(
                    payroll_run,
                    item,
                    employee,
                    organisation,
                    pdf_base64,
                    transport,
                    **send_options,
                )
                outcome = BatchEmployeeResult(
                    employee_id=employee.employee_id,
                    employee_name=employee.full_name,
                    success=sent.success,
                    message_id=sent.message_id,
                    error=sent.error,
                )

        result.record(outcome)

        if on_progress is not None:
            maybe_awaitable = on_progress(index + 1, len(items), outcome)
            if asyncio.iscoroutine(maybe_awaitable):
                await maybe_awaitable

        if attempted_send and index < len(items) - 1:
            await asyncio.sleep(batch_delay)

    result.duration_seconds = time.monotonic() - started
    logger.info(
        "Payslip batch for run %s: %d sent, %d failed, %d skipped",
        payroll_run.payroll_run_id,
        result.sent,
        result.failed,
        result.skipped,
    )
    return result


def get_batch_summary_message(result: BatchSendResult) -> str:
    if result.total and result.sent == result.total:
        return f"Successfully sent all {result.total} payslips"
    if result.sent == 0:
        return (
            f"Failed to send any payslips ({result.failed} errors, {result.skipped} skipped)"
        )

    parts = [f"Sent {result.sent} of {result.total}"]
    if result.failed:
        parts.append(f"{result.failed} failed")
    if result.skipped:
        parts.append(f"{result.skipped} skipped")
    return ", ".join(parts)


def get_failed_email_details(result: BatchSendResult) -> list[str]:
    return [
        f"{r.employee_name}: {r.error or 'Unknown error'}"
        for r in result.results
        if not r.success and not r.skipped
    ]


def get_skipped_email_details(result: BatchSendResult) -> list[str]:
    return [
        f"{r.employee_name}: {r.skip_reason or 'Unknown reason'}"
        for r in result.results
        if r.skipped
    ]


def validate_all_employee_emails(
    payroll_items: Iterable[PayrollItem], organisation: Organisation
) -> tuple[bool, list[str]]:
    issues: list[str] = []
    for item in payroll_items:
        employee = item.employee
        if employee is None:
            issues.append("Some employees have missing data")
            continue
        can_send, reason = can_send_payslip_email(employee, organisation)
        if not can_send:
            issues.append(f"{employee.full_name}: {reason}")
    return not issues, issues


def estimate_batch_duration(item_count: int, batch_delay: float | None = None) -> float:
    """Rough seconds needed to send item_count payslips."""
    if item_count <= 0:
        return 0.0
    if batch_delay is None:
        batch_delay = get_settings().email_batch_delay_seconds
    return _SECONDS_PER_EMAIL * item_count + batch_delay * (item_count - 1)


def format_duration(seconds: float) -> str:
    total = int(seconds)
    if total < 60:
        return f"{total} second{'s' if total != 1 else ''}"
    minutes, remainder = divmod(total, 60)
    if remainder == 0:
        return f"{minutes} minute{'s' if minutes != 1 else ''}"
    return f"{minutes} min {remainder} sec"
