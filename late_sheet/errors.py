from __future__ import annotations

from typing import Sequence


class LateSheetError(Exception):
    """Base class for errors raised while processing the late sheet."""


class SchemaResolutionError(LateSheetError):
    """One or more declared columns are missing from the header row."""

    def __init__(self, missing: Sequence[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Missing columns: {', '.join(self.missing)}")


class ValidationResolutionError(LateSheetError):
    """The allow-list referenced by a range rule could not be read."""


class RecencyCheckError(LateSheetError):
    """The last modification time of the spreadsheet could not be read."""


class NotificationError(LateSheetError):
    """The notification transport failed to deliver a message."""


class RowProcessingError(LateSheetError):
    """Failure while resolving a single row; the row stays unprocessed."""

    def __init__(self, row_number: int, stage: str, cause: BaseException) -> None:
        self.row_number = row_number
        self.stage = stage
        self.cause = cause
        super().__init__(f"Row {row_number} failed during {stage}: {cause}")
