"""Notification dispatcher: organization emails sent through the Resend API.

Emails are selected by a ``type`` discriminator and rendered from the
organization / contact payload. Without a configured API key the dispatcher
logs the message and reports it as not sent.
"""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx

from hess.core.config import Settings, get_settings
from hess.core.metrics import observe_email
from hess.core.structured_logging import log_json
from hess.services.http_service import DEFAULT_RETRY_STATUSES, request_with_retries

logger = logging.getLogger(__name__)


class EmailType(str, Enum):
    WELCOME_APPROVED = "welcome_approved"
    PROFILE_UPDATE_APPROVED = "profile_update_approved"
    PASSWORD_RESET = "password_reset"
    REGISTRATION_REJECTED = "registration_rejected"


class NotificationError(Exception):
    """Raised when the email API rejects a message."""


@dataclass
class EmailMessage:
    email_type: EmailType
    to: list[str]
    subject: str
    html: str
    cc: list[str] = field(default_factory=list)


SUBMISSION_LABELS = (
    ("primary_contact_title", "Primary Contact Title"),
    ("student_fte", "Student FTE"),
    ("address_line_1", "Address"),
    ("city", "City"),
    ("state", "State"),
    ("zip_code", "Zip Code"),
    ("phone", "Phone"),
    ("email", "Email"),
    ("website", "Website"),
    ("secondary_contact_email", "Secondary Email"),
)

SYSTEM_LABELS = (
    ("student_information_system", "Student Information System"),
    ("financial_system", "Financial System"),
    ("financial_aid", "Financial Aid"),
    ("hcm_hr", "HCM/HR"),
    ("payroll_system", "Payroll System"),
    ("purchasing_system", "Purchasing System"),
    ("housing_management", "Housing Management"),
    ("learning_management", "Learning Management"),
    ("admissions_crm", "Admissions CRM"),
    ("alumni_advancement_crm", "Alumni/Advancement CRM"),
)


def _e(value: Any) -> str:
    return html.escape(str(value))


def _rows(data: dict[str, Any], labels: tuple[tuple[str, str], ...]) -> str:
    rows = []
    for key, label in labels:
        value = data.get(key)
        if value in (None, ""):
            continue
        rows.append(f"<tr><td><strong>{_e(label)}:</strong></td><td>{_e(value)}</td></tr>")
    return "".join(rows)


def _wrap(body: str) -> str:
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f"{body}<p>Best regards,<br>HESS Consortium Team</p></div>"
    )


def render_email(
    email_type: EmailType,
    to: str,
    organization_name: str,
    *,
    contact_name: str | None = None,
    organization_data: dict[str, Any] | None = None,
    reason: str | None = None,
    recovery_link: str | None = None,
    secondary_email: str | None = None,
    settings: Settings | None = None,
) -> EmailMessage:
    """Render the subject and HTML body for one email type."""
    settings = settings or get_settings()
    org = _e(organization_name)
    greeting = f"<p>{_e(contact_name or 'Member')},</p>"
    data = organization_data or {}

    if email_type is EmailType.WELCOME_APPROVED:
        recipients = [to]
        if secondary_email and secondary_email.lower() != to.lower():
            recipients.append(secondary_email)
        details = ""
        if data:
            details = (
                "<h2>Your submitted information is listed below.</h2>"
                f"<table><tr><td><strong>Organization:</strong></td><td>{org}</td></tr>"
                f"{_rows(data, SUBMISSION_LABELS)}</table>"
                f"<h3>Systems Information</h3><table>{_rows(data, SYSTEM_LABELS)}</table>"
            )
        body = (
            f"{greeting}<p>Thank you for your registration for HESS Consortium membership. "
            f"Welcome to the consortium, {org} is now an active member.</p>"
            f'<p>You can sign in to the member portal at <a href="{_e(settings.app_url)}">'
            f"{_e(settings.app_url)}</a>.</p>{details}"
        )
        return EmailMessage(
            email_type=email_type,
            to=recipients,
            subject=f"Welcome to HESS Consortium - {organization_name}",
            html=_wrap(body),
            cc=list(settings.email_welcome_cc),
        )

    if email_type is EmailType.PROFILE_UPDATE_APPROVED:
        body = (
            f"{greeting}<p>The update to the member record of <strong>{org}</strong> "
            "has been approved. You are now the primary contact for the organization.</p>"
        )
        return EmailMessage(
            email_type=email_type,
            to=[to],
            subject=f"HESS Consortium - {organization_name} profile update approved",
            html=_wrap(body),
        )

    if email_type is EmailType.PASSWORD_RESET:
        if not recovery_link:
            raise ValueError("password_reset emails require a recovery link")
        body = (
            f"{greeting}<p>An account has been created for you as the primary contact of "
            f"<strong>{org}</strong>. Choose your password to sign in:</p>"
            f'<p><a href="{_e(recovery_link)}">Set your password</a></p>'
            f"<p>If you did not expect this email, contact {_e(settings.support_email)}.</p>"
        )
        return EmailMessage(
            email_type=email_type,
            to=[to],
            subject="HESS Consortium - Set your password",
            html=_wrap(body),
        )

    if email_type is EmailType.REGISTRATION_REJECTED:
        reason_html = f"<p><strong>Reason:</strong><br>{_e(reason)}</p>" if reason else ""
        body = (
            "<p>Thank you for your interest in joining HESS Consortium.</p>"
            f"<p>After careful review, we are unable to approve the application for "
            f"<strong>{org}</strong> at this time.</p>{reason_html}"
            f"<p>If you have questions about this decision, please contact us at "
            f"{_e(settings.support_email)}.</p>"
        )
        return EmailMessage(
            email_type=email_type,
            to=[to],
            subject=f"HESS Consortium Application Update - {organization_name}",
            html=_wrap(body),
        )

    raise ValueError(f"Unknown email type: {email_type}")


class NotificationService:
    """Sends organization emails through the Resend HTTP API."""

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings or get_settings()
        self._transport = transport

    async def send(
        self,
        email_type: EmailType,
        to: str,
        organization_name: str,
        **context: Any,
    ) -> bool:
        """Render and send one email.

        Returns:
            True if the API accepted the message, False if sending is disabled.

        Raises:
            NotificationError: If the API rejected the message.
            httpx.RequestError: If the API could not be reached after retries.
        """
        message = render_email(
            email_type, to, organization_name, settings=self.settings, **context
        )

        if not self.settings.resend_api_key:
            observe_email(email_type=email_type.value, outcome="disabled")
            log_json(
                logger,
                logging.INFO,
                "email_disabled",
                email_type=email_type.value,
                to=message.to,
                subject=message.subject,
            )
            return False

        payload: dict[str, Any] = {
            "from": self.settings.email_from,
            "to": message.to,
            "subject": message.subject,
            "html": message.html,
        }
        if message.cc:
            payload["cc"] = message.cc
        if self.settings.email_reply_to:
            payload["reply_to"] = self.settings.email_reply_to

        headers = {
            "Authorization": f"Bearer {self.settings.resend_api_key}",
            "Content-Type": "application/json",
        }

        async with httpx.AsyncClient(
            timeout=self.settings.email_timeout_seconds, transport=self._transport
        ) as client:

            async def request_fn() -> httpx.Response:
                return await client.post(self.settings.resend_api_url, headers=headers, json=payload)

            response = await request_with_retries(
                request_fn,
                operation=f"email.{email_type.value}",
                max_attempts=self.settings.email_max_attempts,
                retry_statuses=DEFAULT_RETRY_STATUSES,
            )

        if response.status_code >= 400:
            observe_email(email_type=email_type.value, outcome="failed")
            raise NotificationError(
                f"Email API returned {response.status_code}: {response.text[:200]}"
            )

        observe_email(email_type=email_type.value, outcome="sent")
        log_json(
            logger,
            logging.INFO,
            "email_sent",
            email_type=email_type.value,
            to=message.to,
        )
        return True


def get_notifier() -> NotificationService:
    """FastAPI dependency providing the notification dispatcher."""
    return NotificationService()
