from __future__ import annotations

import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional, Protocol, Sequence

logger = logging.getLogger(__name__)


class MailError(Exception):
    """Raised when mail sending fails."""


@dataclass(frozen=True)
class Attachment:
    filename: str
    content: str
    mimetype: str = "text/csv"


class MailSender(Protocol):
    provider: str

    def send(
        self,
        subject: str,
        text_body: str,
        html_body: str | None = None,
        attachments: Sequence[Attachment] = (),
    ) -> None: ...


@dataclass(frozen=True)
class MailConfig:
    host: str
    port: int
    user: str
    password: str
    from_email: str
    to_email: str


class SmtpMailer:
    """Sends through an SMTP relay over implicit TLS (SMTP_SSL)."""

    provider = "smtp"

    def __init__(self, config: MailConfig, timeout: float = 30.0):
        self._config = config
        self._timeout = timeout

    def build_message(
        self,
        subject: str,
        text_body: str,
        html_body: str | None = None,
        attachments: Sequence[Attachment] = (),
    ) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self._config.from_email
        message["To"] = self._config.to_email
        message["Subject"] = subject
        message.set_content(text_body)
        if html_body:
            message.add_alternative(html_body, subtype="html")
        for attachment in attachments:
            maintype, _, subtype = attachment.mimetype.partition("/")
            message.add_attachment(
                attachment.content.encode("utf-8"),
                maintype=maintype,
                subtype=subtype or "octet-stream",
                filename=attachment.filename,
            )
        return message

    def send(
        self,
        subject: str,
        text_body: str,
        html_body: str | None = None,
        attachments: Sequence[Attachment] = (),
    ) -> None:
        message = self.build_message(subject, text_body, html_body, attachments)
        context = ssl.create_default_context()
        try:
            with smtplib.SMTP_SSL(
                self._config.host, self._config.port, context=context, timeout=self._timeout
            ) as server:
                server.login(self._config.user, self._config.password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise MailError(f"Failed to send email: {exc}") from exc
        logger.info(
            "Mail sent via %s:%s to %s (%s attachment(s))",
            self._config.host,
            self._config.port,
            self._config.to_email,
            len(attachments),
        )


def build_mailer(
    *,
    host: Optional[str],
    port: Optional[int],
    user: Optional[str],
    password: Optional[str],
    to_email: Optional[str],
    from_email: Optional[str] = None,
) -> MailSender:
    """
    SMTP settings are checked again here even though Settings.from_env
    already requires them; a mailer is never built from partial settings.
    """
    required = {
        "SMTP_HOST": host,
        "SMTP_PORT": port,
        "SMTP_USER": user,
        "SMTP_PASS": password,
        "SMTP_TO": to_email,
    }
    missing = [name for name, value in required.items() if value is None or not str(value).strip()]
    if missing:
        raise MailError(f"Missing SMTP settings: {', '.join(missing)}. Cannot send email.")

    config = MailConfig(
        host=host.strip(),
        port=int(port),
        user=user.strip(),
        password=password,
        from_email=(from_email or "").strip() or user.strip(),
        to_email=to_email.strip(),
    )
    return SmtpMailer(config)
