"""
services/notification/notifier.py
Transactional email via Resend.

send_email() raises on failure; deliver() is the fire-and-forget wrapper
used by business flows: it renders, sends, logs the attempt and never
raises, so an email failure cannot fail the transaction it reports on.
"""

import asyncio
import logging
from typing import Optional

import resend

from config.settings import settings
from services.notification.templates import render

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    pass


class Notifier:
    def __init__(
        self,
        api_key: Optional[str] = None,
        sender: Optional[str] = None,
        disabled: Optional[bool] = None,
    ):
        self.api_key = settings.RESEND_API_KEY if api_key is None else api_key
        self.sender = sender or f"{settings.EMAIL_FROM_NAME} <{settings.EMAIL_FROM}>"
        self.disabled = settings.DISABLE_EMAIL_SENDING if disabled is None else disabled

    async def send_email(self, to: str, subject: str, html: str) -> None:
        """Send one email. Raises EmailDeliveryError on any failure."""
        if self.disabled:
            logger.info(f"Email sending disabled, skipping '{subject}' to {to}")
            return

        if not self.api_key:
            if settings.is_production:
                raise EmailDeliveryError("RESEND_API_KEY is not configured")
            logger.info(f"No RESEND_API_KEY set, would send '{subject}' to {to}")
            return

        resend.api_key = self.api_key
        try:
            # resend's client is synchronous
            await asyncio.to_thread(
                resend.Emails.send,
                {
                    "from": self.sender,
                    "to": [to],
                    "subject": subject,
                    "html": html,
                },
            )
        except Exception as e:
            raise EmailDeliveryError(str(e)) from e

    def log_email_sent(
        self,
        address: str,
        template: str,
        success: bool,
        error: Optional[str] = None,
    ) -> None:
        """Delivery log line, written for every attempted send."""
        extra = {"email_to": address, "email_template": template, "email_success": success}
        if success:
            logger.info(f"email_sent template={template} to={address}", extra=extra)
        else:
            logger.warning(
                f"email_failed template={template} to={address} error={error}", extra=extra
            )

    async def send_template(self, to: str, template: str, **context) -> None:
        """Render and send; logs the attempt, then re-raises on failure."""
        try:
            subject, html = render(template, **context)
            await self.send_email(to, subject, html)
        except Exception as e:
            self.log_email_sent(to, template, False, str(e))
            if isinstance(e, EmailDeliveryError):
                raise
            raise EmailDeliveryError(str(e)) from e
        self.log_email_sent(to, template, True)

    async def deliver(self, to: Optional[str], template: str, **context) -> bool:
        """Best-effort send. Returns whether the email went out."""
        if not to:
            logger.warning(f"No recipient for '{template}' email, skipping")
            return False
        try:
            await self.send_template(to, template, **context)
            return True
        except EmailDeliveryError:
            return False


def get_notifier() -> Notifier:
    """FastAPI dependency; overridden in tests."""
    return Notifier()
