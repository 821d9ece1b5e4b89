"""
DevCamper Backend — Mail Service
==================================

What:  Sends transactional email (password reset links).
How:   smtplib session per message, run in a worker thread so the event loop
       keeps serving other requests while the SMTP conversation happens.
"""

import asyncio
import logging
import smtplib
from email.message import EmailMessage

from devcamper.config import settings
from devcamper.exceptions import UpstreamFailure

logger = logging.getLogger(__name__)


class MailService:
    """Thin SMTP client configured from settings."""

    def _build_message(self, to: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = f"{settings.from_name} <{settings.from_email}>"
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)
        return message

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(host=settings.smtp_host, port=settings.smtp_port, timeout=10) as conn:
            if settings.smtp_use_tls:
                conn.starttls()
            if settings.smtp_username:
                conn.login(settings.smtp_username, settings.smtp_password)
            conn.send_message(message)

    async def send(self, to: str, subject: str, body: str) -> None:
        """
        Deliver one message.

        Raises:
            UpstreamFailure: the SMTP server refused or could not be reached
        """
        message = self._build_message(to, subject, body)
        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Sending mail to %s failed: %s", to, str(e))
            raise UpstreamFailure(
                message="Email could not be sent",
                context={"error_type": type(e).__name__},
            ) from e
        logger.info("Mail sent to %s: %s", to, subject)


mail_service = MailService()
