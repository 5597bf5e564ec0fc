from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from late_sheet.config import AppConfig
from late_sheet.models import CellValue, TableSnapshot, ValidationRule

HEADER = ["Name", "Date", "Violation", "How Late?", "Notes", "Email sent", "Coach notified"]
NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def to_cell(value) -> CellValue:
    if value is None or value == "":
        return CellValue.empty()
    if isinstance(value, CellValue):
        return value
    if isinstance(value, datetime):
        return CellValue.of_datetime(value)
    if isinstance(value, (int, float)):
        return CellValue.of_number(float(value))
    return CellValue.of_text(str(value))


def make_snapshot(
    rows: List[list],
    rules: Optional[Dict[Tuple[int, int], ValidationRule]] = None,
) -> TableSnapshot:
    return TableSnapshot(
        rows=[[to_cell(value) for value in row] for row in rows],
        rules=dict(rules or {}),
    )


class FakeStore:
    """In-memory table store that applies writes to its own grid."""

    def __init__(self, rows: List[list], rules=None, *, sheet_name: str = "2026") -> None:
        self.sheet_name = sheet_name
        self.rows = [list(row) for row in rows]
        self.rules = dict(rules or {})
        self.ranges: Dict[str, List[str]] = {}
        self.range_reads: List[str] = []
        self.last_modified: datetime | Exception = datetime(2026, 1, 1, tzinfo=timezone.utc)
        self.writes: List[Tuple[str, int, int, str]] = []
        self.fail_writes_for_rows: set[int] = set()

    def sheet_titles(self) -> List[str]:
        return [self.sheet_name]

    def fetch_snapshot(self, sheet_name: str) -> TableSnapshot:
        assert sheet_name == self.sheet_name
        return make_snapshot(self.rows, self.rules)

    def fetch_range_values(self, a1_range: str) -> List[str]:
        self.range_reads.append(a1_range)
        if a1_range not in self.ranges:
            raise LookupError(f"Unknown range {a1_range}")
        return list(self.ranges[a1_range])

    def fetch_last_modified(self) -> datetime:
        if isinstance(self.last_modified, Exception):
            raise self.last_modified
        return self.last_modified

    def write_cell(self, sheet_name: str, row_number: int, column_index: int, value: str) -> None:
        if row_number in self.fail_writes_for_rows:
            raise RuntimeError("write rejected")
        self.writes.append((sheet_name, row_number, column_index, value))
        row = self.rows[row_number - 1]
        while len(row) <= column_index:
            row.append("")
        row[column_index] = value


class FakeNotifier:
    def __init__(self) -> None:
        self.sent: List[Tuple[str, str, str]] = []
        self.fail_for: set[str] = set()

    def send(self, to: str, subject: str, body: str) -> str:
        if to in self.fail_for:
            raise ConnectionError(f"SMTP refused {to}")
        self.sent.append((to, subject, body))
        return f"<{len(self.sent)}@test>"


@pytest.fixture()
def app_config(tmp_path: Path) -> AppConfig:
    return AppConfig.model_validate(
        {
            "sheets": {
                "credentials_file": str(tmp_path / "creds.json"),
                "spreadsheet_id": "sheet-id",
            },
            "mail": {
                "domain": "example.org",
                "sender": "late@example.org",
                "smtp_host": "smtp.example.org",
            },
        }
    )


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()
