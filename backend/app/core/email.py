from __future__ import annotations

from html import escape
from typing import Optional

import structlog

from app.core.config import settings


class EmailService:
    """
    Outbound mail. Delivery is not wired to a provider: every message is
    written to the log as an `email.sent` event instead.
    """

    def __init__(self, frontend_url: Optional[str] = None):
        self.frontend_url = (frontend_url or settings.FRONTEND_URL).rstrip("/")
        self.logger = structlog.get_logger(__name__)

    def send(self, to: str, subject: str, html: str, text: Optional[str] = None) -> bool:
        self.logger.info(
            "email.sent",
            to=to,
            subject=subject,
            html_length=len(html),
            has_text=text is not None,
        )
        return True

    def send_verification_code(self, to: str, first_name: str, code: str) -> bool:
        subject = "Verify your email address"
        html = (
            f"<p>Hello {escape(first_name)},</p>"
            f"<p>Your verification code is <strong>{code}</strong>.</p>"
            "<p>The code expires in 10 minutes.</p>"
            f'<p><a href="{self.frontend_url}/verify-email">Verify now</a></p>'
        )
        text = f"Hello {first_name}, your verification code is {code}. It expires in 10 minutes."
        return self.send(to, subject, html, text)

    def send_password_reset_code(self, to: str, first_name: str, code: str) -> bool:
        subject = "Reset your password"
        html = (
            f"<p>Hello {escape(first_name)},</p>"
            f"<p>Your password reset code is <strong>{code}</strong>.</p>"
            "<p>The code expires in 10 minutes. Ignore this email if you did not ask for it.</p>"
            f'<p><a href="{self.frontend_url}/reset-password">Reset password</a></p>'
        )
        text = f"Hello {first_name}, your password reset code is {code}. It expires in 10 minutes."
        return self.send(to, subject, html, text)

    def send_access_request_notification(
        self,
        to: str,
        admin_name: str,
        requester_name: str,
        requester_email: str,
        tenant_name: str,
        requested_role: str,
        message: Optional[str] = None,
    ) -> bool:
        subject = f"New access request for {tenant_name}"
        note = f"<p>Message: {escape(message)}</p>" if message else ""
        html = (
            f"<p>Hello {escape(admin_name)},</p>"
            f"<p>{escape(requester_name)} ({escape(requester_email)}) requested "
            f"<strong>{escape(requested_role)}</strong> access to {escape(tenant_name)}.</p>"
            f"{note}"
            f'<p><a href="{self.frontend_url}/tenant-access/requests">Review request</a></p>'
        )
        return self.send(to, subject, html)

    def send_access_approved(self, to: str, first_name: str, tenant_name: str, role: str) -> bool:
        subject = f"Your access to {tenant_name} was approved"
        html = (
            f"<p>Hello {escape(first_name)},</p>"
            f"<p>You now have <strong>{escape(role)}</strong> access to {escape(tenant_name)}.</p>"
            f'<p><a href="{self.frontend_url}/login">Sign in</a></p>'
        )
        return self.send(to, subject, html)

    def send_access_rejected(self, to: str, first_name: str, tenant_name: str, reason: str) -> bool:
        subject = f"Your access request to {tenant_name} was declined"
        html = (
            f"<p>Hello {escape(first_name)},</p>"
            f"<p>Your request to join {escape(tenant_name)} was declined.</p>"
            f"<p>Reason: {escape(reason)}</p>"
        )
        return self.send(to, subject, html)


email_service = EmailService()
