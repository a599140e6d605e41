"""Outgoing mail over SMTP. Without SMTP_HOST messages are only logged."""

import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import TYPE_CHECKING

from fastapi import status

from gleaner_users.core.errors import UsersApiError

if TYPE_CHECKING:
    from gleaner_users.core.config import Settings

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SEC = 30


class MailDeliveryError(UsersApiError):
    """Raised when the SMTP server rejects the message or cannot be reached."""

    status_code = status.HTTP_502_BAD_GATEWAY


def build_message(settings: "Settings", to: str, subject: str, body: str) -> EmailMessage:
    message = EmailMessage()
    message["From"] = formataddr((settings.SMTP_FROM_NAME, settings.SMTP_FROM_ADDRESS))
    message["To"] = to
    message["Subject"] = subject
    message.set_content(body)
    return message


def _connect(settings: "Settings") -> smtplib.SMTP:
    if settings.SMTP_SSL:
        return smtplib.SMTP_SSL(settings.SMTP_HOST, settings.SMTP_PORT, timeout=SMTP_TIMEOUT_SEC)
    return smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=SMTP_TIMEOUT_SEC)


def send_mail(settings: "Settings", to: str, subject: str, body: str) -> bool:
    """
    Send a plain-text message. Returns False when SMTP is not configured.
    Raises MailDeliveryError when delivery fails.
    """
    message = build_message(settings, to, subject, body)
    if not settings.SMTP_HOST:
        logger.info("SMTP not configured; mail to %s not sent (subject=%r)", to, subject)
        return False
    try:
        with _connect(settings) as conn:
            if settings.SMTP_USERNAME and settings.SMTP_PASSWORD is not None:
                conn.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD.get_secret_value())
            conn.send_message(message)
    except (smtplib.SMTPException, OSError) as e:
        raise MailDeliveryError(f"Could not deliver mail to {to}: {e!s}") from e
    logger.info("Mail sent to %s (subject=%r)", to, subject)
    return True
