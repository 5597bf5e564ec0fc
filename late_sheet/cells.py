"""Conversion of raw Sheets API grid payloads into typed values."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .models import CellKind, CellValue, RuleKind, TableSnapshot, ValidationRule

# Google Sheets serial dates count days from 1899-12-30.
SHEETS_EPOCH = datetime(1899, 12, 30)

_DATE_FORMAT_TYPES = {"DATE", "DATE_TIME"}
_LIST_CONDITIONS = {"ONE_OF_LIST"}
_RANGE_CONDITIONS = {"ONE_OF_RANGE"}


def serial_to_datetime(serial: float) -> datetime:
    return SHEETS_EPOCH + timedelta(days=serial)


def cell_from_api(cell: Mapping[str, Any] | None) -> CellValue:
    """Map a ``CellData`` object to a :class:`CellValue`."""

    if not cell:
        return CellValue.empty()

    effective = cell.get("effectiveValue") or {}
    formatted = cell.get("formattedValue")

    if "stringValue" in effective:
        return CellValue.of_text(str(effective["stringValue"]))

    if "numberValue" in effective:
        number = float(effective["numberValue"])
        number_format = (cell.get("effectiveFormat") or {}).get("numberFormat") or {}
        if number_format.get("type") in _DATE_FORMAT_TYPES:
            return CellValue.of_datetime(serial_to_datetime(number))
        return CellValue.of_number(number)

    if "boolValue" in effective:
        return CellValue.of_text("TRUE" if effective["boolValue"] else "FALSE")

    if "errorValue" in effective or formatted:
        return CellValue.of_text(str(formatted or ""))

    return CellValue.empty()


def rule_from_api(validation: Mapping[str, Any] | None) -> Optional[ValidationRule]:
    """Map a ``DataValidationRule`` object to a :class:`ValidationRule`."""

    if not validation:
        return None

    condition = validation.get("condition") or {}
    criteria_type = str(condition.get("type") or "")
    criteria = tuple(
        str(item.get("userEnteredValue", ""))
        for item in condition.get("values") or []
        if isinstance(item, Mapping)
    )

    if criteria_type in _LIST_CONDITIONS:
        kind = RuleKind.LIST
    elif criteria_type in _RANGE_CONDITIONS:
        kind = RuleKind.RANGE
    else:
        kind = RuleKind.UNKNOWN
    return ValidationRule(kind=kind, criteria_type=criteria_type, criteria=criteria)


def snapshot_from_grid(row_data: Sequence[Mapping[str, Any]]) -> TableSnapshot:
    """Build a snapshot from the ``rowData`` list of a ``GridData`` block."""

    rows: List[List[CellValue]] = []
    rules: Dict[tuple[int, int], ValidationRule] = {}
    for row_index, row in enumerate(row_data):
        cells = (row or {}).get("values") or []
        rows.append([cell_from_api(cell) for cell in cells])
        for column_index, cell in enumerate(cells):
            rule = rule_from_api((cell or {}).get("dataValidation"))
            if rule is not None:
                rules[(row_index + 1, column_index)] = rule

    # Trailing rows with no cell content are outside the data range.
    while rows and all(value.kind is CellKind.EMPTY for value in rows[-1]):
        rows.pop()
    return TableSnapshot(rows=rows, rules=rules)


def flatten_values(values: Sequence[Sequence[Any]]) -> List[str]:
    """Flatten a ``ValueRange.values`` block into a list of strings."""

    return [str(value) for row in values for value in row]
