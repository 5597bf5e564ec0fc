from __future__ import annotations

import logging
import os
import smtplib
from dataclasses import dataclass
from datetime import date, datetime
from email.mime.text import MIMEText
from email.utils import formatdate, make_msgid

from .config import MailConfig
from .errors import NotificationError
from .models import CellKind, CellValue, RowRecord

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Notification:
    to: str
    subject: str
    body: str


def format_date(value: CellValue) -> str:
    """Render a date cell as 'Month day', falling back to the cell text."""

    if value.kind is CellKind.DATETIME and value.moment is not None:
        moment: date = value.moment
    else:
        text = value.as_text().strip()
        if not text:
            return ""
        try:
            moment = datetime.fromisoformat(text)
        except ValueError:
            return text
    return f"{moment:%B} {moment.day}"


def build_notification(record: RowRecord, conf: MailConfig) -> Notification:
    name = record.get("name").as_text().strip() or "Member"
    lines = [
        f"Hello {name},",
        "",
        "You've been added to the late sheet with the following details:",
        "",
    ]

    details = (
        ("Date", format_date(record.get("date"))),
        ("Violation", record.get("violation").as_text()),
        ("How Late", record.get("howLate").as_text()),
        ("Notes", record.get("notes").as_text()),
    )
    for label, value in details:
        if value.strip():
            lines.append(f"{label}: {value}")

    lines.extend(["", "Best regards,", conf.signature])
    return Notification(
        to=f"{name}@{conf.domain}",
        subject=conf.subject,
        body="\n".join(lines),
    )


class SmtpNotifier:
    """Deliver plain-text notifications over SMTP."""

    def __init__(self, conf: MailConfig) -> None:
        self._conf = conf

    def _credentials(self) -> tuple[str, str]:
        user = os.environ.get(self._conf.username_env, "").strip()
        password = os.environ.get(self._conf.password_env, "")
        return user, password

    def send(self, to: str, subject: str, body: str) -> str:
        """Send one message and return its Message-ID."""

        msg = MIMEText(body, "plain", "utf-8")
        msg["Subject"] = subject
        msg["From"] = self._conf.sender
        msg["To"] = to
        msg["Date"] = formatdate(localtime=True)
        msg["Message-ID"] = make_msgid()

        user, password = self._credentials()
        host, port = self._conf.smtp_host, self._conf.smtp_port
        try:
            if port == 465:
                with smtplib.SMTP_SSL(host, port, timeout=self._conf.timeout) as server:
                    if user:
                        server.login(user, password)
                    server.send_message(msg)
            else:
                with smtplib.SMTP(host, port, timeout=self._conf.timeout) as server:
                    server.starttls()
                    if user:
                        server.login(user, password)
                    server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError(f"Failed to send notification to {to}: {exc}") from exc

        LOGGER.debug("Sent notification %s to %s", msg["Message-ID"], to)
        return msg["Message-ID"]
