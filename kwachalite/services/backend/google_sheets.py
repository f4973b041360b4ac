"""
Google Sheets Remote Backend

DESIGN DECISION: Google Sheets is used as the remote backend because:
1. Non-technical users can view their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

Each collection lives in its own worksheet with three columns:

    id | updated_at | payload_json

Rows are keyed by the client-generated id, so an upsert finds the row by id
and overwrites it, or appends a new row. Delivering the same mutation twice
leaves the sheet unchanged after the first delivery.

TRADEOFFS:
- Every upsert reads the id column to locate the row (fine for personal use)
- No transactions (the sync worker delivers one row at a time anyway)
"""

import json
from typing import Any, Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from kwachalite.config import GoogleSheetsSettings, get_settings
from kwachalite.models.finance import EntityType, utcnow
from kwachalite.services.backend.interface import (
    BackendConnectionError,
    BackendError,
    BackendRejectedError,
    RemoteBackendInterface,
)


ROW_COLUMNS = ["id", "updated_at", "payload_json"]

# Statuses worth retrying later; everything else in the 4xx range is a refusal
_TRANSIENT_STATUSES = {408, 429}


def _wrap_api_error(action: str, error: gspread.exceptions.APIError) -> BackendError:
    status = getattr(error.response, "status_code", None)
    if status is not None and 400 <= status < 500 and status not in _TRANSIENT_STATUSES:
        return BackendRejectedError(f"{action} rejected ({status}): {error}")
    return BackendConnectionError(f"{action} failed: {error}")


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for the connection.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._worksheets: dict[EntityType, gspread.Worksheet] = {}
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise BackendConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise BackendConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise BackendRejectedError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def worksheet_title(self, collection: EntityType) -> str:
        return f"{self._settings.worksheet_prefix}{collection.value}"

    def get_worksheet(self, collection: EntityType) -> gspread.Worksheet:
        """Get or create the worksheet backing a collection."""
        if collection in self._worksheets:
            return self._worksheets[collection]

        spreadsheet = self.get_spreadsheet()
        title = self.worksheet_title(collection)
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(ROW_COLUMNS),
            )
            sheet.append_row(ROW_COLUMNS)
        self._worksheets[collection] = sheet
        return sheet


class GoogleSheetsBackend(RemoteBackendInterface):
    """
    Google Sheets implementation of the remote row store.

    The full record is kept JSON-serialized in `payload_json`; `id` and
    `updated_at` are broken out so the sheet stays readable.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _payload_to_row(self, record_id: str, payload: dict[str, Any]) -> list:
        return [
            record_id,
            utcnow().isoformat(),
            json.dumps(payload, sort_keys=True),
        ]

    def _row_to_payload(self, row: list) -> Optional[dict[str, Any]]:
        if len(row) < 3 or not row[0] or not row[2]:
            return None
        payload = json.loads(row[2])
        payload.setdefault("id", row[0])
        return payload

    def _find_row(self, sheet: gspread.Worksheet, record_id: str) -> Optional[int]:
        """1-based sheet row holding record_id, or None."""
        ids = sheet.col_values(1)
        for idx, value in enumerate(ids[1:], start=2):  # Row 1 is the header
            if value == record_id:
                return idx
        return None

    async def upsert(
        self,
        collection: EntityType,
        record_id: str,
        payload: dict[str, Any],
    ) -> None:
        """Insert or overwrite the row for record_id."""
        try:
            sheet = self._client.get_worksheet(collection)
            row = self._payload_to_row(record_id, payload)
            row_idx = self._find_row(sheet, record_id)
            if row_idx is None:
                sheet.append_row(row, value_input_option="RAW")
            else:
                sheet.update(
                    values=[row],
                    range_name=f"A{row_idx}:C{row_idx}",
                    value_input_option="RAW",
                )
        except BackendError:
            raise
        except gspread.exceptions.APIError as e:
            raise _wrap_api_error(f"Upsert {collection.value}/{record_id}", e)
        except Exception as e:
            raise BackendConnectionError(f"Failed to upsert {collection.value}/{record_id}: {e}")

    async def delete(
        self,
        collection: EntityType,
        record_id: str,
    ) -> bool:
        """Delete the row for record_id. Absent rows are not an error."""
        try:
            sheet = self._client.get_worksheet(collection)
            row_idx = self._find_row(sheet, record_id)
            if row_idx is None:
                return False
            sheet.delete_rows(row_idx)
            return True
        except BackendError:
            raise
        except gspread.exceptions.APIError as e:
            raise _wrap_api_error(f"Delete {collection.value}/{record_id}", e)
        except Exception as e:
            raise BackendConnectionError(f"Failed to delete {collection.value}/{record_id}: {e}")

    async def fetch_all(
        self,
        collection: EntityType,
    ) -> list[dict[str, Any]]:
        """Fetch every record in a collection, skipping blank rows."""
        try:
            sheet = self._client.get_worksheet(collection)
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except BackendError:
            raise
        except gspread.exceptions.APIError as e:
            raise _wrap_api_error(f"Fetch {collection.value}", e)
        except Exception as e:
            raise BackendConnectionError(f"Failed to fetch {collection.value}: {e}")

        records = []
        for row in all_rows:
            try:
                payload = self._row_to_payload(row)
            except json.JSONDecodeError as e:
                raise BackendRejectedError(
                    f"Malformed payload in {collection.value} row {row[0]}: {e}"
                )
            if payload is not None:
                records.append(payload)
        return records

    async def ping(self) -> bool:
        try:
            self._client.get_spreadsheet()
            return True
        except Exception:
            return False
