"""Email delivery for account notifications."""

import asyncio
import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from ..domain.ports.notifications import NotificationError, NotificationSink

logger = logging.getLogger(__name__)

_HEADER = """
<div style="background-color: #0f172a; padding: 30px; border-radius: 10px; text-align: center;">
    <h1 style="color: #93c5fd; margin: 0;">{title}</h1>
</div>
"""

_FOOTER = """
<div style="border-top: 1px solid #e2e8f0; padding-top: 20px; text-align: center;">
    <p style="color: #94a3b8; font-size: 12px;">This is an automated message, please do not reply.</p>
</div>
"""


def _hours(count: int) -> str:
    return "1 hour" if count == 1 else f"{count} hours"


def _wrap(title: str, body: str) -> str:
    return (
        '<html><body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">'
        f"{_HEADER.format(title=title)}"
        f'<div style="padding: 30px 0;">{body}</div>'
        f"{_FOOTER}"
        "</body></html>"
    )


class SmtpNotificationSink(NotificationSink):
    """Sends account notifications through an SMTP relay."""

    def __init__(
        self,
        smtp_host: str,
        smtp_port: int,
        smtp_username: str,
        smtp_password: str,
        from_email: str,
        from_name: str = "Auth Company",
        verification_ttl_hours: int = 24,
        reset_ttl_hours: int = 1,
    ) -> None:
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_username = smtp_username
        self.smtp_password = smtp_password
        self.from_email = from_email
        self.from_name = from_name
        self.verification_ttl_hours = verification_ttl_hours
        self.reset_ttl_hours = reset_ttl_hours

    async def send_verification(self, email: str, code: str) -> None:
        html_body = _wrap(
            "Verify Your Email",
            f"""
            <p style="color: #475569; line-height: 1.6;">Thank you for signing up! Your verification code is:</p>
            <div style="text-align: center; margin: 30px 0;">
                <span style="font-size: 32px; font-weight: bold; letter-spacing: 5px; color: #3b82f6;">{code}</span>
            </div>
            <p style="color: #475569;">Enter this code on the verification page to complete your registration.</p>
            <p style="color: #64748b; font-size: 14px;">This code will expire in {_hours(self.verification_ttl_hours)}.</p>
            <p style="color: #64748b; font-size: 14px;">If you didn't create an account with us, please ignore this email.</p>
            """,
        )
        text_body = (
            "Thank you for signing up!\n\n"
            f"Your verification code is: {code}\n\n"
            f"This code will expire in {_hours(self.verification_ttl_hours)}.\n"
        )
        await self._send(email, "Verify your email", html_body, text_body)

    async def send_welcome(self, email: str, name: str) -> None:
        safe_name = html.escape(name)
        html_body = _wrap(
            f"Welcome to {self.from_name}",
            f"""
            <p style="color: #475569; line-height: 1.6;">Hello {safe_name},</p>
            <p style="color: #475569; line-height: 1.6;">Your email has been verified and your account is ready.</p>
            """,
        )
        text_body = f"Hello {name},\n\nYour email has been verified and your account is ready.\n"
        await self._send(email, f"Welcome to {self.from_name}", html_body, text_body)

    async def send_reset_link(self, email: str, url: str) -> None:
        html_body = _wrap(
            "Password Reset",
            f"""
            <p style="color: #475569; line-height: 1.6;">We received a request to reset your password.
            If you didn't make this request, please ignore this email.</p>
            <div style="text-align: center; margin: 30px 0;">
                <a href="{url}"
                   style="background-color: #3b82f6; color: white; padding: 15px 30px;
                          text-decoration: none; border-radius: 5px; display: inline-block;
                          font-weight: bold;">
                    Reset Password
                </a>
            </div>
            <p style="color: #64748b; font-size: 14px;">This link will expire in {_hours(self.reset_ttl_hours)} for security reasons.</p>
            """,
        )
        text_body = (
            "We received a request to reset your password.\n\n"
            f"Reset it here: {url}\n\n"
            f"This link will expire in {_hours(self.reset_ttl_hours)}.\n"
        )
        await self._send(email, "Reset your password", html_body, text_body)

    async def send_reset_success(self, email: str) -> None:
        html_body = _wrap(
            "Password Reset Successful",
            """
            <p style="color: #475569; line-height: 1.6;">Your password has been successfully reset.</p>
            <p style="color: #475569; line-height: 1.6;">If you did not initiate this password reset,
            please contact our support team immediately.</p>
            """,
        )
        text_body = "Your password has been successfully reset.\n"
        await self._send(email, "Password Reset Successful", html_body, text_body)

    async def _send(self, to_email: str, subject: str, html_body: str, text_body: str) -> None:
        await asyncio.to_thread(self._send_email, to_email, subject, html_body, text_body)
        logger.info("Email '%s' sent to %s", subject, to_email)

    def _send_email(self, to_email: str, subject: str, html_body: str, text_body: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email

        msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                server.starttls()
                server.login(self.smtp_username, self.smtp_password)
                server.send_message(msg)
        except Exception as exc:
            raise NotificationError(f"Failed to send '{subject}' to {to_email}: {exc}") from exc


class LoggingNotificationSink(NotificationSink):
    """Development sink: logs what would have been sent."""

    async def send_verification(self, email: str, code: str) -> None:
        logger.info("[EMAIL] Verification code for %s: %s", email, code)

    async def send_welcome(self, email: str, name: str) -> None:
        logger.info("[EMAIL] Welcome email for %s (%s)", email, name)

    async def send_reset_link(self, email: str, url: str) -> None:
        logger.info("[EMAIL] Password reset URL for %s: %s", email, url)

    async def send_reset_success(self, email: str) -> None:
        logger.info("[EMAIL] Password reset confirmation for %s", email)
