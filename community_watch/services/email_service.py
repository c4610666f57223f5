"""
Email Service for Community Watch
=================================
Outbound mail for forwarded reports. Recipients are always passed per call;
nothing about a send is kept on the service between calls.

Delivery is over SMTP with aiosmtplib. When no SMTP account is configured the
sender logs and returns, so a local deployment can still exercise forwarding.
"""

import mimetypes
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional, Protocol, Sequence

import aiosmtplib

from community_watch.core.config import settings
from community_watch.core.logging_config import logger


@dataclass
class Attachment:
    filename: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def maintype_subtype(self):
        content_type = self.content_type or mimetypes.guess_type(self.filename)[0] or "application/octet-stream"
        maintype, _, subtype = content_type.partition("/")
        return maintype, subtype or "octet-stream"


class MailSender(Protocol):
    """Anything that can deliver one message to an explicit recipient list"""

    async def send(
        self,
        recipients: Sequence[str],
        subject: str,
        body: str,
        attachments: Sequence[Attachment] = (),
    ) -> None:
        ...


class SmtpMailSender:
    """Async mail sender using SMTP"""

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.use_tls = settings.SMTP_USE_TLS
        self.from_email = settings.EMAIL_FROM or settings.SMTP_USER
        self.from_name = settings.EMAIL_FROM_NAME
        self.timeout = settings.MAIL_SEND_TIMEOUT

    @property
    def is_configured(self) -> bool:
        """Check if email service is properly configured"""
        return bool(self.smtp_user)

    def build_message(
        self,
        recipients: Sequence[str],
        subject: str,
        body: str,
        attachments: Sequence[Attachment] = (),
    ) -> EmailMessage:
        message = EmailMessage()
        message["From"] = formataddr((self.from_name, self.from_email))
        message["To"] = ", ".join(recipients)
        message["Subject"] = subject
        message.set_content(body)

        for attachment in attachments:
            maintype, subtype = attachment.maintype_subtype
            message.add_attachment(
                attachment.content,
                maintype=maintype,
                subtype=subtype,
                filename=attachment.filename,
            )
        return message

    async def send(
        self,
        recipients: Sequence[str],
        subject: str,
        body: str,
        attachments: Sequence[Attachment] = (),
    ) -> None:
        """
        Send one message. Transport errors propagate to the caller.
        """
        if not self.is_configured:
            logger.warning("[Email] Email not configured. Skipping notification.")
            return

        if not recipients:
            raise ValueError("No recipients")

        message = self.build_message(recipients, subject, body, attachments)

        await aiosmtplib.send(
            message,
            recipients=list(recipients),
            hostname=self.smtp_host,
            port=self.smtp_port,
            username=self.smtp_user,
            password=self.smtp_password,
            use_tls=self.use_tls,
            timeout=self.timeout,
        )

        logger.info(
            f"[Email/SMTP] Sent '{subject}' to {len(recipients)} recipient(s)"
            + (f" with {len(attachments)} attachment(s)" if attachments else "")
        )


_mail_sender: Optional[SmtpMailSender] = None


def get_mail_sender() -> MailSender:
    """FastAPI dependency returning the configured mail sender"""
    global _mail_sender
    if _mail_sender is None:
        _mail_sender = SmtpMailSender()
        logger.info(
            "[Email] Using SMTP for email delivery" if _mail_sender.is_configured
            else "[Email] SMTP not configured; forwards will be recorded without sending"
        )
    return _mail_sender


__all__ = ["Attachment", "MailSender", "SmtpMailSender", "get_mail_sender"]
