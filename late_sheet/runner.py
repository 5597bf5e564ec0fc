from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, List, Protocol

from .config import AppConfig
from .errors import SchemaResolutionError
from .models import ProcessingOutcome, RunSummary, TableSnapshot
from .processor import Notifier, RowProcessor
from .recency import should_skip_run
from .schema import resolve_columns
from .selector import processed_row_numbers, select_unprocessed
from .validation import memoize_range_reader

LOGGER = logging.getLogger(__name__)

# Row 1 is the header; the name rule is read from the first data row.
RULE_ROW = 2


class TableStore(Protocol):
    def sheet_titles(self) -> List[str]: ...

    def fetch_snapshot(self, sheet_name: str) -> TableSnapshot: ...

    def fetch_range_values(self, a1_range: str) -> List[str]: ...

    def fetch_last_modified(self) -> datetime: ...

    def write_cell(self, sheet_name: str, row_number: int, column_index: int, value: str) -> None: ...


class LateSheetRunner:
    """Entry points invoked by the scheduler for one spreadsheet."""

    def __init__(
        self,
        config: AppConfig,
        store: TableStore,
        notifier: Notifier,
        *,
        clock: Callable[[], datetime] | None = None,
        dry_run: bool = False,
    ) -> None:
        self._config = config
        self._store = store
        self._notifier = notifier
        self._clock = clock or (lambda: datetime.now(config.tzinfo))
        self._dry_run = dry_run

    def run_guarded(self) -> RunSummary:
        """Process the sheet unless it was edited within the recency window."""

        window = timedelta(minutes=self._config.recency_window_minutes)
        if should_skip_run(self._store.fetch_last_modified, self._clock(), window):
            LOGGER.info("Skipping processing of sheet since it was modified in the last %s", window)
            return RunSummary(skipped_reason="recently modified")
        return self.run_now()

    def run_now(self) -> RunSummary:
        """Process the sheet without consulting the recency guard."""

        now = self._clock()
        if self._config.first_active_year is not None and now.year < self._config.first_active_year:
            LOGGER.info("Processing starts in %s; nothing to do", self._config.first_active_year)
            return RunSummary(skipped_reason="before first active year")

        sheet_name = self._period_sheet_name(now)
        if sheet_name not in self._store.sheet_titles():
            LOGGER.warning('Sheet named "%s" not found', sheet_name)
            return RunSummary(sheet_name=sheet_name, skipped_reason="sheet not found")

        return self._process_sheet(sheet_name)

    def _period_sheet_name(self, now: datetime) -> str:
        return self._config.sheets.sheet_name or str(now.year)

    def _process_sheet(self, sheet_name: str) -> RunSummary:
        summary = RunSummary(sheet_name=sheet_name)
        snapshot = self._store.fetch_snapshot(sheet_name)
        if len(snapshot.rows) < 2:
            LOGGER.info("No data rows found in sheet %s", sheet_name)
            return summary

        try:
            column_map = resolve_columns(snapshot.header, self._config.columns)
        except SchemaResolutionError as exc:
            LOGGER.error("%s; aborting run for sheet %s", exc, sheet_name)
            summary.skipped_reason = "schema unresolved"
            return summary

        rule = snapshot.rule_at(RULE_ROW, column_map["name"])
        if rule is not None:
            LOGGER.info('Found validation rule for "%s" column', self._config.columns.name)
        else:
            LOGGER.info('No validation rule found for "%s" column', self._config.columns.name)

        for row_number in processed_row_numbers(snapshot, column_map):
            summary.outcomes[row_number] = ProcessingOutcome.SKIPPED

        records = select_unprocessed(snapshot, column_map)
        LOGGER.info("Found %s unprocessed rows", len(records))

        processor = RowProcessor(
            write_cell=lambda row, column, value: self._store.write_cell(
                sheet_name, row, column, value
            ),
            email_column=column_map["emailSent"],
            read_range=memoize_range_reader(self._store.fetch_range_values),
            notifier=self._notifier,
            mail=self._config.mail,
            invalid_marker=self._config.invalid_marker,
            timestamp=self._timestamp,
            dry_run=self._dry_run,
        )
        processor.process_all(records, rule, summary)

        LOGGER.info(
            "Completed sheet %s: %s notified, %s marked invalid, %s already processed, %s failed",
            sheet_name,
            summary.notified,
            summary.marked_invalid,
            summary.already_processed,
            len(summary.failed_rows),
        )
        return summary

    def _timestamp(self) -> str:
        return self._clock().strftime(self._config.timestamp_format)
