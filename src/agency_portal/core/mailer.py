"""Outbound mail: SMTP relay or a structlog sink when mail is disabled."""

from __future__ import annotations

import mimetypes
import smtplib
from dataclasses import dataclass, field
from email.message import EmailMessage
from typing import Protocol

import structlog

from agency_portal.core.config import MailConfig
from agency_portal.core.errors import ExternalServiceFailure

logger = structlog.get_logger()


@dataclass(frozen=True)
class MailAttachment:
    file_name: str
    content: bytes


@dataclass
class OutgoingMail:
    to: str
    subject: str
    text: str
    html: str | None = None
    cc: str | None = None
    attachments: list[MailAttachment] = field(default_factory=list)


class Mailer(Protocol):
    def send(self, mail: OutgoingMail) -> None:
        ...


class SmtpMailer:
    """Sends mail through the configured SMTP relay."""

    def __init__(self, config: MailConfig, password: str = ""):
        self._config = config
        self._password = password

    def _build_message(self, mail: OutgoingMail) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self._config.sender or self._config.username
        message["To"] = mail.to
        if mail.cc:
            message["Cc"] = mail.cc
        message["Subject"] = mail.subject
        message.set_content(mail.text)
        if mail.html:
            message.add_alternative(mail.html, subtype="html")
        for attachment in mail.attachments:
            mime_type, _ = mimetypes.guess_type(attachment.file_name)
            maintype, subtype = (mime_type or "application/octet-stream").split("/", 1)
            message.add_attachment(
                attachment.content,
                maintype=maintype,
                subtype=subtype,
                filename=attachment.file_name,
            )
        return message

    def send(self, mail: OutgoingMail) -> None:
        message = self._build_message(mail)
        try:
            with smtplib.SMTP(self._config.host, self._config.port, timeout=30) as client:
                if self._config.use_tls:
                    client.starttls()
                if self._config.username:
                    client.login(self._config.username, self._password)
                client.send_message(message)
        except (smtplib.SMTPException, OSError) as error:
            raise ExternalServiceFailure(f"Mail delivery failed: {error}") from error
        logger.info("mail_sent", to=mail.to, subject=mail.subject)


class LogMailer:
    """Logs outgoing mail instead of sending it. Used when mail is disabled."""

    def __init__(self) -> None:
        self.sent: list[OutgoingMail] = []

    def send(self, mail: OutgoingMail) -> None:
        self.sent.append(mail)
        logger.info(
            "mail_suppressed",
            to=mail.to,
            cc=mail.cc,
            subject=mail.subject,
            attachments=[attachment.file_name for attachment in mail.attachments],
        )
