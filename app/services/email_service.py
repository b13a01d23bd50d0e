"""
Email Service
=============

Outbound email over SMTP.

The dispatcher is built once in the application lifespan and stored on
``app.state.email_dispatcher``; routes and the reminder sweep receive it
through dependency injection. ``smtplib`` is blocking, so every send is
offloaded to a worker thread.
"""

import asyncio
from dataclasses import asdict, dataclass
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
import logging
import smtplib
from typing import Any, Optional

from app.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class EmailResult:
    """Outcome of a single send attempt."""

    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


class EmailDispatcher:
    """Interface for anything that can deliver an HTML email."""

    async def send(self, to: str, subject: str, html: str) -> EmailResult:
        raise NotImplementedError


class SmtpEmailDispatcher(EmailDispatcher):
    """
    SMTP-backed dispatcher.

    Uses implicit TLS when ``secure`` is set (port 465), otherwise upgrades
    the connection with STARTTLS when the server offers it.
    """

    def __init__(
        self,
        host: str,
        port: int = 587,
        secure: bool = False,
        user: str = "",
        password: str = "",
        from_email: str = "",
        from_name: str = "Progress App",
        timeout: int = 30,
    ):
        self.host = host
        self.port = port
        self.secure = secure
        self.user = user
        self.password = password
        self.from_email = from_email
        self.from_name = from_name
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpEmailDispatcher":
        """Build a dispatcher from application settings."""
        return cls(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            secure=settings.SMTP_SECURE,
            user=settings.SMTP_USER,
            password=settings.SMTP_PASS,
            from_email=settings.SMTP_FROM_EMAIL,
            from_name=settings.SMTP_FROM_NAME,
            timeout=settings.SMTP_TIMEOUT_SECONDS,
        )

    def build_message(self, to: str, subject: str, html: str) -> EmailMessage:
        """Assemble a multipart message with a plain-text fallback."""
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = formataddr((self.from_name, self.from_email))
        msg["To"] = to
        domain = self.from_email.split("@")[-1] if "@" in self.from_email else None
        msg["Message-ID"] = make_msgid(domain=domain)
        msg.set_content("This message requires an HTML-capable email client.")
        msg.add_alternative(html, subtype="html")
        return msg

    def _send_sync(self, msg: EmailMessage) -> None:
        smtp_cls = smtplib.SMTP_SSL if self.secure else smtplib.SMTP
        with smtp_cls(self.host, self.port, timeout=self.timeout) as client:
            if not self.secure:
                client.ehlo()
                if client.has_extn("starttls"):
                    client.starttls()
                    client.ehlo()
            if self.user:
                client.login(self.user, self.password)
            client.send_message(msg)

    async def send(self, to: str, subject: str, html: str) -> EmailResult:
        """
        Send an email.

        Never raises for delivery problems; failures come back as an
        ``EmailResult`` with ``success=False`` and the error text.
        """
        if not self.host:
            logger.warning("SMTP is not configured; dropping email to %s", to)
            return EmailResult(success=False, error="SMTP is not configured")

        msg = self.build_message(to, subject, html)
        logger.info("Sending email '%s' to %s", subject, to)

        try:
            await asyncio.to_thread(self._send_sync, msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Email to %s failed: %s", to, exc)
            return EmailResult(success=False, error=str(exc))

        logger.info("Email sent to %s (%s)", to, msg["Message-ID"])
        return EmailResult(success=True, message_id=msg["Message-ID"])

    async def verify_connection(self) -> bool:
        """Open and close a connection to check the SMTP settings."""
        if not self.host:
            return False

        def _probe() -> None:
            smtp_cls = smtplib.SMTP_SSL if self.secure else smtplib.SMTP
            with smtp_cls(self.host, self.port, timeout=self.timeout) as client:
                client.noop()

        try:
            await asyncio.to_thread(_probe)
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("SMTP connection check failed: %s", exc)
            return False
        return True
