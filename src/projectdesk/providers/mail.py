"""Mail senders.

``SmtpMailSender`` delivers through an SMTP relay. ``OutboxMailSender``
writes each message to an ``.eml`` file instead, which is the default
when no relay is configured.
"""

from __future__ import annotations

import logging
import re
import smtplib
import uuid
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate
from pathlib import Path

from projectdesk.exceptions import ProviderError, RateLimitError, TransientProviderError
from projectdesk.providers.base import MailSender

logger = logging.getLogger(__name__)


def _html_to_text(html: str) -> str:
    text = re.sub(r"<br\s*/?>", "\n", html, flags=re.IGNORECASE)
    return re.sub(r"<[^>]+>", "", text)


def build_message(
    sender: str,
    sender_name: str,
    to: list[str],
    subject: str,
    body: str,
    cc: list[str] | None = None,
) -> MIMEMultipart:
    """Build a multipart/alternative message with plain text and HTML parts."""
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = formataddr((sender_name, sender))
    msg["To"] = ", ".join(to)
    if cc:
        msg["Cc"] = ", ".join(cc)
    msg["Date"] = formatdate(localtime=True)
    msg.attach(MIMEText(_html_to_text(body), "plain"))
    msg.attach(MIMEText(body, "html"))
    return msg


class OutboxMailSender(MailSender):
    """Writes messages to ``outbox/`` as ``.eml`` files."""

    def __init__(self, outbox_dir: Path, sender: str, sender_name: str = "Teaming Tool"):
        self.outbox_dir = Path(outbox_dir)
        self.sender = sender
        self.sender_name = sender_name

    def send(self, to: list[str], subject: str, body: str, cc: list[str] | None = None) -> None:
        if not to:
            raise ProviderError("Cannot send a message without recipients")
        msg = build_message(self.sender, self.sender_name, to, subject, body, cc)
        self.outbox_dir.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        path = self.outbox_dir / f"{stamp}-{uuid.uuid4().hex[:8]}.eml"
        path.write_text(msg.as_string(), encoding="utf-8")
        logger.info(f"Queued email to {', '.join(to)}: \"{subject}\"")

    def messages(self) -> list[Path]:
        """Queued message files, oldest first."""
        if not self.outbox_dir.exists():
            return []
        return sorted(self.outbox_dir.glob("*.eml"))


class SmtpMailSender(MailSender):
    """Sends through an SMTP relay."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        use_tls: bool = True,
        username: str | None = None,
        password: str | None = None,
        sender: str = "projectdesk@localhost",
        sender_name: str = "Teaming Tool",
    ):
        self.host = host
        self.port = port
        self.use_tls = use_tls
        self.username = username
        self.password = password
        self.sender = sender
        self.sender_name = sender_name

    def send(self, to: list[str], subject: str, body: str, cc: list[str] | None = None) -> None:
        if not to:
            raise ProviderError("Cannot send a message without recipients")
        msg = build_message(self.sender, self.sender_name, to, subject, body, cc)
        recipients = list(to) + list(cc or [])
        try:
            with smtplib.SMTP(self.host, self.port, timeout=30) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username and self.password:
                    smtp.login(self.username, self.password)
                smtp.sendmail(self.sender, recipients, msg.as_string())
        except smtplib.SMTPResponseException as e:
            if e.smtp_code in (421, 450, 451, 452):
                raise RateLimitError(f"SMTP server deferred the message: {e.smtp_code}") from e
            raise ProviderError(f"SMTP error {e.smtp_code}: {e.smtp_error!r}") from e
        except (smtplib.SMTPException, OSError) as e:
            raise TransientProviderError(f"SMTP server unavailable: {e}") from e
        logger.info(f"Sent email to {', '.join(to)}: \"{subject}\"")
