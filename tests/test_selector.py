from __future__ import annotations

from datetime import datetime

from late_sheet.models import CellKind
from late_sheet.selector import processed_row_numbers, select_unprocessed

from conftest import HEADER, make_snapshot

COLUMN_MAP = {
    "name": 0,
    "date": 1,
    "violation": 2,
    "howLate": 3,
    "notes": 4,
    "emailSent": 5,
    "coachNotified": 6,
}


def test_selects_blank_email_rows_in_order():
    snapshot = make_snapshot(
        [
            HEADER,
            ["Alice", "", "", "", "", "2026-01-02 10:00:00", ""],
            ["Bob", "", "", "", "", "", ""],
            ["Carol", "", "", "", "", "   ", ""],
            ["Dan", "", "", "", "", "invalid name", ""],
            ["Eve"],
        ]
    )

    records = select_unprocessed(snapshot, COLUMN_MAP)

    assert [record.row_number for record in records] == [3, 4, 6]
    assert [record.get("name").text for record in records] == ["Bob", "Carol", "Eve"]


def test_short_rows_are_padded_with_empty_cells():
    snapshot = make_snapshot([HEADER, ["Eve"]])

    record = select_unprocessed(snapshot, COLUMN_MAP)[0]

    assert set(record.values) == set(COLUMN_MAP)
    assert record.get("notes").kind is CellKind.EMPTY


def test_datetime_email_value_counts_as_processed():
    snapshot = make_snapshot(
        [HEADER, ["Alice", "", "", "", "", datetime(2026, 3, 1, 9, 30), ""]]
    )

    assert select_unprocessed(snapshot, COLUMN_MAP) == []
    assert processed_row_numbers(snapshot, COLUMN_MAP) == [2]


def test_header_only_snapshot_has_no_rows():
    assert select_unprocessed(make_snapshot([HEADER]), COLUMN_MAP) == []
