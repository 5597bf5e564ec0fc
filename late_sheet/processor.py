from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional, Protocol

from .config import MailConfig
from .errors import RowProcessingError
from .models import ProcessingOutcome, RowRecord, RunSummary, ValidationRule
from .notifier import build_notification
from .validation import RangeReader, is_valid_name

LOGGER = logging.getLogger(__name__)

CellWriter = Callable[[int, int, str], None]


class Notifier(Protocol):
    def send(self, to: str, subject: str, body: str) -> object: ...


class RowProcessor:
    """Resolve unprocessed rows: mark invalid names or notify and stamp."""

    def __init__(
        self,
        *,
        write_cell: CellWriter,
        email_column: int,
        read_range: RangeReader,
        notifier: Notifier,
        mail: MailConfig,
        invalid_marker: str,
        timestamp: Callable[[], str],
        dry_run: bool = False,
    ) -> None:
        self._write_cell = write_cell
        self._email_column = email_column
        self._read_range = read_range
        self._notifier = notifier
        self._mail = mail
        self._invalid_marker = invalid_marker
        self._timestamp = timestamp
        self._dry_run = dry_run

    def _mark(self, record: RowRecord, value: str) -> None:
        if self._dry_run:
            LOGGER.info("[dry-run] Would write %r to row %s", value, record.row_number)
            return
        self._write_cell(record.row_number, self._email_column, value)

    def process(self, record: RowRecord, rule: Optional[ValidationRule]) -> ProcessingOutcome:
        """Move one row to its terminal state; raises :class:`RowProcessingError`."""

        stage = "validate"
        try:
            name = record.get("name").as_text()
            if not is_valid_name(rule, name, self._read_range):
                stage = "mark-invalid"
                self._mark(record, self._invalid_marker)
                LOGGER.info(
                    "Invalid name for row %s, marked as %r",
                    record.row_number,
                    self._invalid_marker,
                )
                return ProcessingOutcome.MARKED_INVALID

            stage = "notify"
            notification = build_notification(record, self._mail)
            if self._dry_run:
                LOGGER.info(
                    "[dry-run] Would email %s for row %s", notification.to, record.row_number
                )
            else:
                self._notifier.send(notification.to, notification.subject, notification.body)

            # Only stamp after a successful send; a failed send leaves the row eligible.
            stage = "stamp"
            self._mark(record, self._timestamp())
            LOGGER.info("Email sent and timestamp recorded for row %s", record.row_number)
            return ProcessingOutcome.NOTIFIED
        except Exception as exc:
            raise RowProcessingError(record.row_number, stage, exc) from exc

    def process_all(
        self,
        records: Iterable[RowRecord],
        rule: Optional[ValidationRule],
        summary: RunSummary,
    ) -> RunSummary:
        for record in records:
            try:
                summary.outcomes[record.row_number] = self.process(record, rule)
            except RowProcessingError as exc:
                LOGGER.exception("Error processing row %s during %s", exc.row_number, exc.stage)
                summary.failed_rows.append(exc.row_number)
        return summary
