"""
Notification Service - outbound email (SMTP) and SMS (Twilio REST API).

Delivery failures raise NotificationError. Call sites where the message is
a side effect (e.g. the welcome/verification email after registration) use
notify_safely(), which logs the failure and lets the primary operation
succeed.
"""

import logging
import smtplib
from email.message import EmailMessage
from typing import Callable

import requests

from civic_api.core.errors import NotificationError
from civic_api.core.settings import settings

logger = logging.getLogger(__name__)

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"


class NotificationService:
    """Sends transactional email and SMS."""

    def __init__(self, config=None):
        self.config = config or settings

    def send_email(self, to: str, subject: str, html: str) -> None:
        cfg = self.config
        if not cfg.SMTP_HOST or not cfg.SMTP_USER:
            raise NotificationError("Email delivery is not configured")

        message = EmailMessage()
        message["From"] = f'"{cfg.EMAIL_FROM_NAME}" <{cfg.SMTP_USER}>'
        message["To"] = to
        message["Subject"] = subject
        message.set_content("This message requires an HTML-capable email client.")
        message.add_alternative(html, subtype="html")

        try:
            with smtplib.SMTP(cfg.SMTP_HOST, cfg.SMTP_PORT, timeout=cfg.NOTIFICATION_TIMEOUT_SECONDS) as server:
                server.starttls()
                if cfg.SMTP_PASSWORD:
                    server.login(cfg.SMTP_USER, cfg.SMTP_PASSWORD)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Email to {to} failed: {e}")
            raise NotificationError(f"Failed to send email: {e}")

        logger.info(f"Email sent to {to}")

    def send_sms(self, to: str, body: str) -> None:
        cfg = self.config
        if not (cfg.TWILIO_ACCOUNT_SID and cfg.TWILIO_AUTH_TOKEN and cfg.TWILIO_PHONE_NUMBER):
            raise NotificationError("SMS delivery is not configured")

        try:
            resp = requests.post(
                TWILIO_MESSAGES_URL.format(sid=cfg.TWILIO_ACCOUNT_SID),
                data={"To": to, "From": cfg.TWILIO_PHONE_NUMBER, "Body": body},
                auth=(cfg.TWILIO_ACCOUNT_SID, cfg.TWILIO_AUTH_TOKEN),
                timeout=cfg.NOTIFICATION_TIMEOUT_SECONDS,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"SMS to {to} failed: {e}")
            raise NotificationError(f"Failed to send SMS: {e}")

        logger.info(f"SMS sent to {to}")

    def notify_safely(self, send: Callable, *args, **kwargs) -> bool:
        """
        Fire-and-forget delivery. Returns True when the message went out.
        """
        try:
            send(*args, **kwargs)
            return True
        except NotificationError as e:
            logger.warning(f"Notification skipped: {e.message}")
            return False


# Global service instance
_notification_service = None


def get_notification_service() -> NotificationService:
    """Get or create NotificationService singleton."""
    global _notification_service
    if _notification_service is None:
        _notification_service = NotificationService()
    return _notification_service
