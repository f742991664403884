"""
Outgoing e-mail seam. Delivery itself belongs to an external provider.
"""

import logging

from app.config import settings

logger = logging.getLogger(__name__)


class Mailer:
    """Base mailer interface."""

    def send(self, to: str, subject: str, html: str) -> None:
        raise NotImplementedError


class LoggingMailer(Mailer):
    """Logs messages instead of delivering them."""

    def send(self, to: str, subject: str, html: str) -> None:
        logger.info(f"Email to {to}: {subject}")


def send_verify_email(mailer: Mailer, to: str, token: str) -> None:
    link = f"{settings.frontend_url}/verify-email?token={token}"
    html = f"""
<p>Hi there,</p>
<p>Thanks for signing up for <strong>{settings.app_name}</strong>! Please verify your email by clicking the link below.</p>
<p><a href="{link}">Verify Email</a></p>
<p>This link expires in {settings.email_verify_ttl_hours} hours.</p>
"""
    try:
        mailer.send(to, f"Verify your {settings.app_name} email", html)
    except Exception as e:
        logger.error(f"Failed to send verification email to {to}: {e}")


def send_password_reset_email(mailer: Mailer, to: str, token: str) -> None:
    link = f"{settings.frontend_url}/reset-password?token={token}"
    html = f"""
<p>Hi,</p>
<p>We received a request to reset your <strong>{settings.app_name}</strong> password.</p>
<p><a href="{link}">Reset Password</a></p>
<p>This link expires in {settings.password_reset_ttl_hours} hour(s). If you did not request a reset, ignore this email.</p>
"""
    try:
        mailer.send(to, f"Reset your {settings.app_name} password", html)
    except Exception as e:
        logger.error(f"Failed to send password reset email to {to}: {e}")
