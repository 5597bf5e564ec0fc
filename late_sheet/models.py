from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Generic, List, Optional, Tuple, TypeVar

T = TypeVar("T")


class CellKind(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    DATETIME = "datetime"
    EMPTY = "empty"


@dataclass(frozen=True, slots=True)
class CellValue:
    """A single grid value, tagged with the kind it was ingested as."""

    kind: CellKind
    text: str = ""
    number: Optional[float] = None
    moment: Optional[datetime] = None

    @classmethod
    def empty(cls) -> "CellValue":
        return cls(CellKind.EMPTY)

    @classmethod
    def of_text(cls, value: str) -> "CellValue":
        return cls(CellKind.TEXT, text=value)

    @classmethod
    def of_number(cls, value: float) -> "CellValue":
        return cls(CellKind.NUMBER, number=float(value))

    @classmethod
    def of_datetime(cls, value: datetime) -> "CellValue":
        return cls(CellKind.DATETIME, moment=value)

    def is_blank(self) -> bool:
        if self.kind is CellKind.EMPTY:
            return True
        return self.kind is CellKind.TEXT and not self.text.strip()

    def as_text(self) -> str:
        if self.kind is CellKind.TEXT:
            return self.text
        if self.kind is CellKind.NUMBER and self.number is not None:
            if self.number.is_integer():
                return str(int(self.number))
            return str(self.number)
        if self.kind is CellKind.DATETIME and self.moment is not None:
            return self.moment.isoformat(sep=" ")
        return ""


class RuleKind(str, Enum):
    LIST = "list"
    RANGE = "range"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class ValidationRule:
    """Data-validation rule attached to the name column."""

    kind: RuleKind
    criteria_type: str
    criteria: Tuple[str, ...] = ()


@dataclass(slots=True)
class TableSnapshot:
    """Full grid of one tab read at the start of a run; rows[0] is the header."""

    rows: List[List[CellValue]]
    rules: Dict[Tuple[int, int], ValidationRule] = field(default_factory=dict)

    @property
    def header(self) -> List[CellValue]:
        return self.rows[0] if self.rows else []

    def rule_at(self, row_number: int, column_index: int) -> Optional[ValidationRule]:
        """Return the validation rule of a cell by 1-based row and 0-based column."""

        return self.rules.get((row_number, column_index))


@dataclass(slots=True)
class RowRecord:
    row_number: int  # spreadsheet 1-based row number (including header)
    values: Dict[str, CellValue]

    def get(self, key: str) -> CellValue:
        return self.values.get(key, CellValue.empty())


class ProcessingOutcome(str, Enum):
    NOTIFIED = "notified"
    MARKED_INVALID = "marked_invalid"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class CheckResult(Generic[T]):
    """Outcome of a fallible check; callers decide the fallback explicitly."""

    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def value_or(self, default: T) -> T:
        if self.error is not None or self.value is None:
            return default
        return self.value


@dataclass(slots=True)
class RunSummary:
    sheet_name: Optional[str] = None
    skipped_reason: Optional[str] = None
    outcomes: Dict[int, ProcessingOutcome] = field(default_factory=dict)
    failed_rows: List[int] = field(default_factory=list)

    @property
    def ran(self) -> bool:
        return self.skipped_reason is None

    def count(self, outcome: ProcessingOutcome) -> int:
        return sum(1 for value in self.outcomes.values() if value is outcome)

    @property
    def notified(self) -> int:
        return self.count(ProcessingOutcome.NOTIFIED)

    @property
    def marked_invalid(self) -> int:
        return self.count(ProcessingOutcome.MARKED_INVALID)

    @property
    def already_processed(self) -> int:
        return self.count(ProcessingOutcome.SKIPPED)
