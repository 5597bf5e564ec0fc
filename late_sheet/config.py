from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class ColumnsConfig(BaseModel):
    """Header labels for each logical column of the late sheet."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field("Name", description="Column holding the member name")
    date: str = Field("Date", description="Column holding the date of the entry")
    violation: str = Field("Violation", description="Column describing the violation")
    how_late: str = Field("How Late?", alias="howLate", description="Lateness descriptor")
    notes: str = Field("Notes", description="Free-form notes column")
    email_sent: str = Field(
        "Email sent",
        alias="emailSent",
        description="Column that receives the notification timestamp or the invalid marker",
    )
    coach_notified: str = Field(
        "Coach notified",
        alias="coachNotified",
        description="Column tracked for coach follow-up; must exist in the header",
    )

    def labels(self) -> Dict[str, str]:
        """Return logical key -> header label in declaration order."""

        return {
            "name": self.name,
            "date": self.date,
            "violation": self.violation,
            "howLate": self.how_late,
            "notes": self.notes,
            "emailSent": self.email_sent,
            "coachNotified": self.coach_notified,
        }


class SheetsConfig(BaseModel):
    credentials_file: Path = Field(
        ..., description="Path to the Google service account JSON credentials"
    )
    spreadsheet_id: str = Field(..., description="ID of the spreadsheet holding the late sheet")
    sheet_name: Optional[str] = Field(
        None,
        description="Tab to process; defaults to the current year (e.g. '2026')",
    )

    @field_validator("credentials_file")
    @classmethod
    def _expand_credentials_path(cls, value: Path) -> Path:
        return value.expanduser().resolve()


class MailConfig(BaseModel):
    domain: str = Field(..., description="Domain appended to the member name to build the address")
    sender: str = Field(..., description="From address used for notifications")
    subject: str = Field("You've been added to the late sheet.")
    signature: str = Field("Late Sheet System", description="Closing line of the message body")
    smtp_host: str = Field(..., description="SMTP server host name")
    smtp_port: int = Field(587, gt=0, description="465 uses implicit TLS, anything else STARTTLS")
    username_env: str = Field("SMTP_USER", description="Environment variable with the SMTP login")
    password_env: str = Field("SMTP_PASS", description="Environment variable with the SMTP password")
    timeout: int = Field(30, gt=0, description="Socket timeout in seconds")

    @field_validator("domain")
    @classmethod
    def _strip_domain(cls, value: str) -> str:
        value = value.strip().lstrip("@")
        if not value:
            raise ValueError("mail.domain must not be empty")
        return value


class AppConfig(BaseModel):
    sheets: SheetsConfig
    columns: ColumnsConfig = Field(default_factory=ColumnsConfig)
    mail: MailConfig
    invalid_marker: str = Field(
        "invalid name",
        description="Value written to the email column when the name fails validation",
    )
    recency_window_minutes: float = Field(
        10,
        gt=0,
        description="Skip guarded runs when the spreadsheet changed within this many minutes",
    )
    first_active_year: Optional[int] = Field(
        None,
        description="Runs before this calendar year end without touching the sheet",
    )
    timezone: str = Field("UTC", description="IANA zone used for timestamps and the current year")
    timestamp_format: str = Field("%Y-%m-%d %H:%M:%S")

    @field_validator("invalid_marker")
    @classmethod
    def _validate_marker(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("invalid_marker must be non-blank or rows would be reprocessed")
        return value

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def load_config(path: str | Path) -> AppConfig:
    """Load configuration from a YAML file and return a validated object."""

    config_path = Path(path).expanduser().resolve()
    if not config_path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise FileNotFoundError(msg)

    with config_path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)

    if data is None:
        msg = f"Configuration file is empty: {config_path}"
        raise ValueError(msg)

    try:
        return AppConfig.model_validate(data)
    except ValidationError as exc:  # pragma: no cover - passthrough for readability
        raise ValueError(f"Invalid configuration: {exc}") from exc
