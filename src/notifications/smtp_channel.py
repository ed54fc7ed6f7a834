# src/notifications/smtp_channel.py

"""Deliver price update notifications by email over SMTP."""

import logging
import smtplib
from email.errors import MessageError
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from src.config.settings import Settings
from src.config.tracking_config import EmailSettings
from src.models.errors import NotificationConfigMissing, NotificationError
from src.notifications.base import NotificationChannel, NotificationPayload

logger = logging.getLogger("pricy.notifications")


class SmtpChannel(NotificationChannel):
    """Sends one multipart (plain + HTML) email per recipient."""

    def __init__(self, config: EmailSettings) -> None:
        self.config = config

    def _build_message(
        self, payload: NotificationPayload, recipient: str,
    ) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = payload.subject
        msg["From"] = self.config.sender
        msg["To"] = recipient
        msg.attach(MIMEText(payload.text_body(), "plain"))
        msg.attach(MIMEText(payload.html_body(), "html"))
        return msg

    def _connect(self) -> smtplib.SMTP:
        if self.config.use_ssl:
            return smtplib.SMTP_SSL(
                self.config.smtp_host,
                self.config.smtp_port,
                timeout=Settings.SMTP_TIMEOUT,
            )
        server = smtplib.SMTP(
            self.config.smtp_host,
            self.config.smtp_port,
            timeout=Settings.SMTP_TIMEOUT,
        )
        server.starttls()
        return server

    def deliver(
        self, payload: NotificationPayload, recipients: list[str],
    ) -> None:
        if not recipients:
            raise NotificationConfigMissing(
                payload.url, "no notification recipients configured"
            )

        try:
            with self._connect() as server:
                if self.config.smtp_username:
                    server.login(
                        self.config.smtp_username,
                        self.config.smtp_password,
                    )
                for recipient in recipients:
                    server.send_message(
                        self._build_message(payload, recipient)
                    )
                    logger.info(
                        "Sent email notification to %s", recipient,
                    )
        except (
            smtplib.SMTPException, MessageError, OSError, ValueError,
        ) as exc:
            raise NotificationError(payload.url, exc) from exc
