"""SMTP delivery for risk alerts and reports."""
from __future__ import annotations

import asyncio
import logging
import smtplib
from email.message import EmailMessage

from ..config import EmailConfig

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT = "Portfolio risk alert"


def parse_recipients(value: str) -> list[str]:
    """``alert_email`` may hold several comma-separated addresses."""
    return [addr.strip() for addr in value.split(",") if addr.strip()]


class EmailNotifier:
    """Mails each alert to the configured recipients over STARTTLS.

    There is no email channel for metrics logs; ``send_log`` always
    returns False.
    """

    def __init__(self, config: EmailConfig) -> None:
        self.recipients = parse_recipients(config.alert_email)
        self.smtp_server = config.smtp_server
        self.smtp_port = config.smtp_port
        self.sender_email = config.sender_email
        self.sender_password = config.sender_password

    def _build_message(self, body: str, subject: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender_email
        msg["To"] = ", ".join(self.recipients)
        msg["Subject"] = subject or DEFAULT_SUBJECT
        msg.set_content(body)
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        server = smtplib.SMTP(self.smtp_server, self.smtp_port, timeout=30)
        try:
            server.starttls()
            server.login(self.sender_email, self.sender_password)
            server.send_message(msg)
        finally:
            server.quit()

    async def send_alert(self, message: str, subject: str = "") -> bool:
        if not self.recipients:
            logger.debug("No alert recipients configured, skipping email")
            return False
        if not self.sender_email or not self.sender_password:
            logger.warning("Email credentials not configured")
            return False

        msg = self._build_message(message, subject)
        try:
            # smtplib blocks; keep it off the event loop
            await asyncio.to_thread(self._deliver, msg)
        except (OSError, smtplib.SMTPException) as e:
            logger.error("Failed to send risk alert email: %s", e)
            return False
        logger.info("Risk alert emailed to %d recipient(s)", len(self.recipients))
        return True

    async def send_log(self, message: str, silent: bool = True) -> bool:
        return False
