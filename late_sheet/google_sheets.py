from __future__ import annotations

from datetime import datetime
from typing import Callable, List

import logging
import ssl
import time

from google.oauth2.service_account import Credentials
from googleapiclient.discovery import Resource
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import HttpRequest
from httplib2 import HttpLib2Error

from .cells import flatten_values, snapshot_from_grid
from .config import SheetsConfig
from .models import TableSnapshot

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive.metadata.readonly",
]

LOGGER = logging.getLogger(__name__)

_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
_MAX_RETRY_ATTEMPTS = 4
_INITIAL_BACKOFF_SECONDS = 1.0
_MAX_BACKOFF_SECONDS = 8.0
_RETRYABLE_EXCEPTIONS = (ssl.SSLEOFError, HttpLib2Error)

_GRID_FIELDS = (
    "sheets(properties(title),"
    "data(rowData(values(effectiveValue,formattedValue,"
    "effectiveFormat/numberFormat/type,dataValidation))))"
)


def quote_sheet_name(name: str) -> str:
    """Quote a tab title for use in A1 notation ('2026' needs quoting)."""

    return "'" + name.replace("'", "''") + "'"


def column_letter(index: int) -> str:
    """Convert a 0-based column index to its A1 letter (0 -> A, 26 -> AA)."""

    if index < 0:
        raise ValueError(f"Column index must be non-negative; received {index}")
    letters = ""
    index += 1
    while index:
        index, remainder = divmod(index - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def parse_rfc3339(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class GoogleSheetsClient:
    """Thin wrapper around the Google Sheets and Drive APIs for this project."""

    def __init__(self, conf: SheetsConfig) -> None:
        self._conf = conf
        self._service: Resource | None = None
        self._drive: Resource | None = None

    def _credentials(self) -> Credentials:
        return Credentials.from_service_account_file(
            str(self._conf.credentials_file), scopes=SCOPES
        )

    def _service_client(self) -> Resource:
        if self._service is None:
            self._service = build("sheets", "v4", credentials=self._credentials())
        return self._service

    def _drive_client(self) -> Resource:
        if self._drive is None:
            self._drive = build("drive", "v3", credentials=self._credentials())
        return self._drive

    # Reading -----------------------------------------------------------------
    def sheet_titles(self) -> List[str]:
        """Return the titles of every tab in the spreadsheet."""

        def _build_request() -> HttpRequest:
            service = self._service_client()
            return service.spreadsheets().get(
                spreadsheetId=self._conf.spreadsheet_id,
                fields="sheets(properties(title))",
            )

        result = self._execute_with_retry(_build_request, operation="list sheets")
        return [
            sheet.get("properties", {}).get("title", "")
            for sheet in result.get("sheets", [])
        ]

    def fetch_snapshot(self, sheet_name: str) -> TableSnapshot:
        """Load every value and validation rule of a tab in a single read."""

        def _build_request() -> HttpRequest:
            service = self._service_client()
            return service.spreadsheets().get(
                spreadsheetId=self._conf.spreadsheet_id,
                ranges=[quote_sheet_name(sheet_name)],
                includeGridData=True,
                fields=_GRID_FIELDS,
            )

        result = self._execute_with_retry(_build_request, operation="fetch sheet grid")
        sheets = result.get("sheets", [])
        if not sheets:
            return TableSnapshot(rows=[])
        grid_blocks = sheets[0].get("data", [])
        row_data = grid_blocks[0].get("rowData", []) if grid_blocks else []
        return snapshot_from_grid(row_data)

    def fetch_range_values(self, a1_range: str) -> List[str]:
        """Return the values of an A1 range flattened row by row."""

        def _build_request() -> HttpRequest:
            service = self._service_client()
            return (
                service.spreadsheets()
                .values()
                .get(spreadsheetId=self._conf.spreadsheet_id, range=a1_range)
            )

        result = self._execute_with_retry(_build_request, operation="fetch range values")
        return flatten_values(result.get("values", []))

    def fetch_last_modified(self) -> datetime:
        """Return the Drive modification time of the spreadsheet file."""

        def _build_request() -> HttpRequest:
            drive = self._drive_client()
            return drive.files().get(
                fileId=self._conf.spreadsheet_id,
                fields="modifiedTime",
                supportsAllDrives=True,
            )

        result = self._execute_with_retry(_build_request, operation="fetch modified time")
        modified = result.get("modifiedTime")
        if not modified:
            raise ValueError("Drive response did not include modifiedTime")
        return parse_rfc3339(modified)

    # Writing -----------------------------------------------------------------
    def write_cell(self, sheet_name: str, row_number: int, column_index: int, value: str) -> None:
        """Write a single cell addressed by 1-based row and 0-based column."""

        if row_number < 1:
            msg = f"Row numbers must be 1-based; received {row_number}"
            raise ValueError(msg)
        target_range = f"{quote_sheet_name(sheet_name)}!{column_letter(column_index)}{row_number}"

        def _update_request() -> HttpRequest:
            service = self._service_client()
            return (
                service.spreadsheets()
                .values()
                .update(
                    spreadsheetId=self._conf.spreadsheet_id,
                    range=target_range,
                    valueInputOption="USER_ENTERED",
                    body={"values": [[value]]},
                )
            )

        self._execute_with_retry(_update_request, operation=f"write {target_range}")

    # Internal ----------------------------------------------------------------
    def _reset_service(self) -> None:
        self._service = None
        self._drive = None

    def _execute_with_retry(
        self,
        request_builder: Callable[[], HttpRequest],
        *,
        operation: str,
    ) -> dict:
        """Execute an API request with retries for transient failures."""

        backoff = _INITIAL_BACKOFF_SECONDS
        last_exc: Exception | None = None

        for attempt in range(1, _MAX_RETRY_ATTEMPTS + 1):
            try:
                return request_builder().execute()
            except _RETRYABLE_EXCEPTIONS as exc:
                last_exc = exc
            except HttpError as exc:
                status = getattr(exc.resp, "status", None)
                if status not in _RETRYABLE_STATUS_CODES:
                    raise
                last_exc = exc

            if attempt == _MAX_RETRY_ATTEMPTS:
                raise last_exc

            wait_time = min(backoff, _MAX_BACKOFF_SECONDS)
            LOGGER.warning(
                "Google API %s failed on attempt %s/%s (%s); retrying in %.1f seconds",
                operation,
                attempt,
                _MAX_RETRY_ATTEMPTS,
                last_exc,
                wait_time,
            )
            self._reset_service()
            time.sleep(wait_time)
            backoff *= 2

        raise RuntimeError("Google API request failed without capturing an exception")
