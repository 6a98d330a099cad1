"""Email delivery for account notifications.

Backends only know how to move a rendered message. ``EmailService`` owns the
wording of each account email and never raises on delivery problems: callers
get ``False`` back and decide whether to log it.
"""

import logging
from abc import ABC, abstractmethod
from email.message import EmailMessage
from html import escape

import aiosmtplib

from userhub.config import Settings, settings

logger = logging.getLogger(__name__)


class EmailBackend(ABC):
    """Delivers a rendered email. Returns whether it was accepted."""

    @abstractmethod
    async def send(self, to: str, subject: str, html: str, text: str | None = None) -> bool: ...


class ConsoleEmailBackend(EmailBackend):
    """Writes emails to the log instead of delivering them (development)."""

    async def send(self, to: str, subject: str, html: str, text: str | None = None) -> bool:
        logger.info("Email to %s: %s\n%s", to, subject, text or html)
        return True


class SMTPEmailBackend(EmailBackend):
    """Delivers emails through an SMTP relay."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        from_address: str = "",
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_address = from_address

    @classmethod
    def from_settings(cls, config: Settings) -> "SMTPEmailBackend":
        return cls(
            host=config.smtp_host,
            port=config.smtp_port,
            username=config.smtp_username,
            password=config.smtp_password,
            use_tls=config.smtp_use_tls,
            from_address=config.email_from,
        )

    def build_message(self, to: str, subject: str, html: str, text: str | None) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.from_address
        message["To"] = to
        message["Subject"] = subject
        if text:
            message.set_content(text)
            message.add_alternative(html, subtype="html")
        else:
            message.set_content(html, subtype="html")
        return message

    async def send(self, to: str, subject: str, html: str, text: str | None = None) -> bool:
        message = self.build_message(to, subject, html, text)
        try:
            await aiosmtplib.send(
                message,
                hostname=self.host,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                start_tls=self.use_tls,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error("SMTP delivery to %s via %s:%s failed: %s", to, self.host, self.port, e)
            return False
        logger.info("Email sent via SMTP to %s", to)
        return True


def get_email_backend(config: Settings | None = None) -> EmailBackend:
    """Build the backend selected by ``email_backend``."""
    config = config or settings
    if config.email_backend == "console":
        return ConsoleEmailBackend()
    if config.email_backend == "smtp":
        return SMTPEmailBackend.from_settings(config)
    raise ValueError(f"Unknown email backend: {config.email_backend}")


def _layout(title: str, body: str) -> str:
    return f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
    <div style="background: #f9fafb; border-radius: 8px; padding: 30px;">
        <h2 style="margin-top: 0; color: #1a1a1a;">{title}</h2>
        {body}
    </div>
</body>
</html>
"""


class EmailService:
    """High-level email service for sending account emails.

    Links point at ``app_url`` when one is configured. Without it the raw token
    is included along with the API route it should be posted to.
    """

    def __init__(self, backend: EmailBackend | None = None, app_url: str | None = None):
        self._backend = backend
        self._app_url = app_url

    @property
    def backend(self) -> EmailBackend:
        """Lazy-load the backend."""
        if self._backend is None:
            self._backend = get_email_backend()
        return self._backend

    @property
    def app_url(self) -> str:
        url = self._app_url if self._app_url is not None else settings.app_url
        return url.rstrip("/")

    async def send_verification_email(self, to: str, token: str) -> bool:
        """Send the sign-up verification email."""
        subject = "Verify your email address"

        if self.app_url:
            verify_url = f"{self.app_url}/verify-email?token={token}"
            action_html = (
                "<p>Please click the link below to verify your email address:</p>"
                f'<p><a href="{escape(verify_url)}">{escape(verify_url)}</a></p>'
            )
            action_text = f"Please open this link to verify your email address:\n\n{verify_url}"
        else:
            action_html = (
                "<p>Please use the token below to verify your email address with the "
                "<code>/api/users/verify-email</code> route:</p>"
                f"<p><code>{token}</code></p>"
            )
            action_text = (
                "Please use this token to verify your email address with the "
                f"/api/users/verify-email route:\n\n{token}"
            )

        html = _layout("Verify Email", f"<p>Thanks for registering!</p>{action_html}")
        text = f"Verify Email\n============\n\nThanks for registering!\n\n{action_text}\n"

        return await self.backend.send(to=to, subject=subject, html=html, text=text)

    async def send_already_registered_email(self, to: str) -> bool:
        """Tell the owner of an address that someone tried to register it again."""
        subject = "Email already registered"

        if self.app_url:
            forgot_url = f"{self.app_url}/forgot-password"
            hint_html = (
                "<p>If you don't know your password please visit the "
                f'<a href="{escape(forgot_url)}">forgot password</a> page.</p>'
            )
            hint_text = f"If you don't know your password please visit {forgot_url}"
        else:
            hint_html = (
                "<p>If you don't know your password you can reset it via the "
                "<code>/api/users/forgot-password</code> route.</p>"
            )
            hint_text = (
                "If you don't know your password you can reset it via the "
                "/api/users/forgot-password route."
            )

        html = _layout(
            "Email Already Registered",
            f"<p>Your email <strong>{escape(to)}</strong> is already registered.</p>{hint_html}",
        )
        text = (
            "Email Already Registered\n========================\n\n"
            f"Your email {to} is already registered.\n\n{hint_text}\n"
        )

        return await self.backend.send(to=to, subject=subject, html=html, text=text)

    async def send_password_reset_email(self, to: str, token: str, valid_hours: int) -> bool:
        """Send the password reset email."""
        subject = "Reset your password"

        if self.app_url:
            reset_url = f"{self.app_url}/reset-password?token={token}"
            action_html = (
                "<p>Please click the link below to reset your password, the link will be "
                f"valid for {valid_hours} hours:</p>"
                f'<p><a href="{escape(reset_url)}">{escape(reset_url)}</a></p>'
            )
            action_text = (
                f"Please open this link to reset your password (valid for {valid_hours} hours):"
                f"\n\n{reset_url}"
            )
        else:
            action_html = (
                "<p>Please use the token below to reset your password with the "
                "<code>/api/users/reset-password</code> route:</p>"
                f"<p><code>{token}</code></p>"
            )
            action_text = (
                "Please use this token to reset your password with the "
                f"/api/users/reset-password route (valid for {valid_hours} hours):\n\n{token}"
            )

        html = _layout(
            "Reset Password",
            f"{action_html}<p style=\"color: #666; font-size: 14px;\">"
            "If you didn't request this email, you can safely ignore it.</p>",
        )
        text = (
            f"Reset Password\n==============\n\n{action_text}\n\n"
            "If you didn't request this email, you can safely ignore it.\n"
        )

        return await self.backend.send(to=to, subject=subject, html=html, text=text)


# Global email service instance
email_service = EmailService()
