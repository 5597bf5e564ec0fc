from __future__ import annotations

import smtplib
from datetime import datetime

import pytest

from late_sheet.errors import NotificationError
from late_sheet.models import CellValue, RowRecord
from late_sheet.notifier import SmtpNotifier, build_notification, format_date


def _record(**values) -> RowRecord:
    return RowRecord(row_number=2, values=values)


def test_message_lists_only_filled_fields(app_config):
    record = _record(
        name=CellValue.of_text(" Alice "),
        date=CellValue.of_datetime(datetime(2026, 10, 3)),
        violation=CellValue.of_text("Late to meeting"),
        howLate=CellValue.empty(),
        notes=CellValue.of_text("   "),
    )

    notification = build_notification(record, app_config.mail)

    assert notification.to == "Alice@example.org"
    assert notification.subject == "You've been added to the late sheet."
    assert notification.body == (
        "Hello Alice,\n\n"
        "You've been added to the late sheet with the following details:\n\n"
        "Date: October 3\n"
        "Violation: Late to meeting\n"
        "\nBest regards,\nLate Sheet System"
    )


def test_number_lateness_is_rendered_without_decimals(app_config):
    record = _record(name=CellValue.of_text("Bob"), howLate=CellValue.of_number(15))

    assert "How Late: 15\n" in build_notification(record, app_config.mail).body


@pytest.mark.parametrize(
    "value, expected",
    [
        (CellValue.of_datetime(datetime(2026, 1, 9, 8, 15)), "January 9"),
        (CellValue.of_text("2026-02-14"), "February 14"),
        (CellValue.of_text("last Tuesday"), "last Tuesday"),
        (CellValue.empty(), ""),
    ],
)
def test_format_date(value, expected):
    assert format_date(value) == expected


class _FakeSMTP:
    instances = []

    def __init__(self, host, port, timeout=None):
        self.host, self.port = host, port
        self.calls = []
        self.sent = []
        _FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.calls.append("starttls")

    def login(self, user, password):
        self.calls.append(("login", user, password))

    def send_message(self, msg):
        self.sent.append(msg)


def test_smtp_notifier_uses_starttls_and_env_credentials(app_config, monkeypatch):
    _FakeSMTP.instances = []
    monkeypatch.setattr(smtplib, "SMTP", _FakeSMTP)
    monkeypatch.setenv("SMTP_USER", "bot@example.org")
    monkeypatch.setenv("SMTP_PASS", "secret")

    message_id = SmtpNotifier(app_config.mail).send("Alice@example.org", "Subject", "Body")

    server = _FakeSMTP.instances[0]
    assert (server.host, server.port) == ("smtp.example.org", 587)
    assert server.calls == ["starttls", ("login", "bot@example.org", "secret")]
    assert server.sent[0]["To"] == "Alice@example.org"
    assert server.sent[0]["From"] == "late@example.org"
    assert message_id == server.sent[0]["Message-ID"]


def test_smtp_failure_raises_notification_error(app_config, monkeypatch):
    class _Refusing(_FakeSMTP):
        def send_message(self, msg):
            raise smtplib.SMTPRecipientsRefused({msg["To"]: (550, b"no such user")})

    monkeypatch.setattr(smtplib, "SMTP", _Refusing)
    monkeypatch.delenv("SMTP_USER", raising=False)

    with pytest.raises(NotificationError):
        SmtpNotifier(app_config.mail).send("Nobody@example.org", "Subject", "Body")
