from __future__ import annotations

from typing import Dict, List

from .models import CellValue, RowRecord, TableSnapshot


def build_record(row: List[CellValue], row_number: int, column_map: Dict[str, int]) -> RowRecord:
    values = {
        key: row[index] if index < len(row) else CellValue.empty()
        for key, index in column_map.items()
    }
    return RowRecord(row_number=row_number, values=values)


def select_unprocessed(snapshot: TableSnapshot, column_map: Dict[str, int]) -> List[RowRecord]:
    """Return data rows whose email column is still blank, top to bottom."""

    records: List[RowRecord] = []
    for absolute_idx in range(1, len(snapshot.rows)):
        record = build_record(snapshot.rows[absolute_idx], absolute_idx + 1, column_map)
        if record.get("emailSent").is_blank():
            records.append(record)
    return records


def processed_row_numbers(snapshot: TableSnapshot, column_map: Dict[str, int]) -> List[int]:
    """Return row numbers that already carry a timestamp or the invalid marker."""

    email_idx = column_map["emailSent"]
    return [
        absolute_idx + 1
        for absolute_idx in range(1, len(snapshot.rows))
        if email_idx < len(snapshot.rows[absolute_idx])
        and not snapshot.rows[absolute_idx][email_idx].is_blank()
    ]
