from __future__ import annotations

import pytest

from late_sheet.config import ColumnsConfig
from late_sheet.errors import SchemaResolutionError
from late_sheet.models import CellValue
from late_sheet.schema import resolve_columns

from conftest import HEADER, to_cell


def test_resolves_every_column_by_position():
    header = [to_cell(label) for label in ["ID"] + HEADER]

    indices = resolve_columns(header, ColumnsConfig())

    assert indices == {
        "name": 1,
        "date": 2,
        "violation": 3,
        "howLate": 4,
        "notes": 5,
        "emailSent": 6,
        "coachNotified": 7,
    }


def test_missing_column_fails_and_names_label():
    header = [to_cell(label) for label in HEADER if label != "Notes"]

    with pytest.raises(SchemaResolutionError) as excinfo:
        resolve_columns(header, ColumnsConfig())

    assert excinfo.value.missing == ["Notes"]


def test_match_is_exact():
    header = [to_cell(label) for label in HEADER]
    header[0] = to_cell("name ")

    with pytest.raises(SchemaResolutionError) as excinfo:
        resolve_columns(header, ColumnsConfig())

    assert excinfo.value.missing == ["Name"]


def test_non_text_header_cells_are_ignored():
    header = [to_cell(label) for label in HEADER] + [CellValue.of_number(2026)]

    assert resolve_columns(header, ColumnsConfig())["name"] == 0


def test_custom_labels():
    columns = ColumnsConfig(name="Member", emailSent="Mailed")
    header = [to_cell(label) for label in ["Member", "Date", "Violation", "How Late?", "Notes", "Mailed", "Coach notified"]]

    indices = resolve_columns(header, columns)

    assert indices["name"] == 0
    assert indices["emailSent"] == 5
