"""
Email Utility

Helper functions for sending account emails (verification, password reset).
Each sender reports success as a bool; callers decide whether a failure
matters.
"""

import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import List
from urllib.parse import urlencode
import logging

from fastapi.concurrency import run_in_threadpool

from launchpad.core.config import settings

logger = logging.getLogger(__name__)


def send_email(
    recipients: List[str],
    subject: str,
    content: str,
    content_type: str = "plain"
) -> bool:
    """
    Send an email using SMTP settings from config.

    When SMTP is not configured the message is skipped and reported as sent,
    so local development works without a mail server.

    Args:
        recipients: List of email addresses
        subject: Email subject
        content: Email body
        content_type: "plain" or "html"

    Returns:
        True if sent (or skipped), False if delivery failed
    """
    if not settings.SMTP_SERVER or not settings.SMTP_EMAIL:
        logger.warning(f"SMTP settings not configured. Skipping email '{subject}' to {recipients}")
        return True

    try:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = settings.SMTP_EMAIL
        msg["To"] = ", ".join(recipients)

        part = MIMEText(content, content_type)
        msg.attach(part)

        # Explicitly convert port to int if present, else default
        port = int(settings.SMTP_PORT) if settings.SMTP_PORT else 587

        with smtplib.SMTP(settings.SMTP_SERVER, port) as server:
            server.starttls()
            if settings.SMTP_PASSWORD:
                server.login(settings.SMTP_EMAIL, settings.SMTP_PASSWORD)
            server.send_message(msg)

        logger.info(f"Email sent to {recipients}")
        return True

    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send email: {str(e)}")
        return False


def _frontend_link(path: str, **params) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}{path}?{urlencode(params)}"


async def send_verification_email(email: str, token: str) -> bool:
    """
    Send the email-verification link.

    Args:
        email: Recipient (normalized)
        token: Raw verification secret

    Returns:
        True if email sent successfully, False otherwise
    """
    verify_url = _frontend_link("/auth/verify", token=token, email=email)
    subject = f"Verify your {settings.PROJECT_NAME} account"
    html_content = f"""
    <p>Thanks for signing up. Please verify your email by clicking the link below.</p>
    <p><a href="{verify_url}">Verify your email</a></p>
    <p>This link expires in 24 hours. If you didn't create an account, you can ignore this email.</p>
    """
    return await run_in_threadpool(send_email, [email], subject, html_content, "html")


async def send_password_reset_email(email: str, token: str) -> bool:
    """
    Send the password-reset link.

    Args:
        email: Recipient (normalized)
        token: Raw reset secret

    Returns:
        True if email sent successfully, False otherwise
    """
    reset_url = _frontend_link("/auth/reset", token=token, email=email)
    subject = f"Reset your {settings.PROJECT_NAME} password"
    html_content = f"""
    <p>You requested a password reset. Click the link below to set a new password.</p>
    <p><a href="{reset_url}">Reset password</a></p>
    <p>This link expires in 1 hour. If you didn't request this, you can ignore this email.</p>
    """
    return await run_in_threadpool(send_email, [email], subject, html_content, "html")


async def send_password_reset_success_email(email: str) -> bool:
    """Tell the user their password was changed."""
    subject = f"Your {settings.PROJECT_NAME} password was reset"
    html_content = (
        "<p>Your password was successfully changed. "
        "If you didn't make this change, please contact support.</p>"
    )
    return await run_in_threadpool(send_email, [email], subject, html_content, "html")
