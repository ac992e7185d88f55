"""
Google Sheets Storage Implementation

The remote store keeps one budget document per user: a row of the budgets
worksheet holding the user id, the whole Ledger as JSON and the time of
the last save. Audit events go to a separate append-only worksheet.

TRADEOFFS:
- A cell holds at most 50,000 characters, which bounds the size of one
  user's ledger (years of monthly data for personal use)
- No transactions: a save rewrites the user's row in place
- Transient API errors are retried; anything else surfaces as StorageError
"""

import json
from datetime import datetime
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from budget_ledger.config import GoogleSheetsSettings, get_settings
from budget_ledger.models.audit import AuditEvent, AuditEventType, AuditSeverity
from budget_ledger.models.ledger import Ledger, LedgerDocument, salvage_ledger
from budget_ledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    LedgerStorageInterface,
    StorageError,
)


# Column mappings for the Budgets sheet
BUDGET_COLUMNS = [
    "user_id",
    "monthly_budgets_json",
    "updated_at",
]

# Column mappings for the Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "user_id",
    "event_type",
    "severity",
    "month",
    "entity_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

_transient_retry = retry(
    retry=retry_if_exception_type(gspread.exceptions.APIError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)

logger = structlog.get_logger(__name__)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
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
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

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
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_budgets_sheet(self) -> gspread.Worksheet:
        """Get or create the Budgets worksheet."""
        return self._get_or_create_sheet(
            self._settings.budgets_sheet_name, BUDGET_COLUMNS, rows=1000
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """
    Google Sheets implementation of ledger storage, scoped to one user.

    The user id is opaque: it is whatever the authentication provider
    assigned, and only used to find the user's row.
    """

    def __init__(self, user_id: str, client: Optional[GoogleSheetsClient] = None):
        if not user_id or not user_id.strip():
            raise ValueError("user_id is required for remote storage")
        self._user_id = user_id.strip()
        self._client = client or GoogleSheetsClient()

    @property
    def user_id(self) -> str:
        return self._user_id

    def _find_row(self, sheet: gspread.Worksheet) -> Optional[tuple[int, list]]:
        """Return (1-based row number, row) of this user's document."""
        all_rows = sheet.get_all_values()
        for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is the header
            if row and row[0] == self._user_id:
                return idx, row
        return None

    @_transient_retry
    def _read_document(self) -> Optional[str]:
        sheet = self._client.get_budgets_sheet()
        found = self._find_row(sheet)
        if found is None:
            return None
        _, row = found
        return row[1] if len(row) > 1 and row[1] else None

    @_transient_retry
    def _write_document(self, payload: str, updated_at: str) -> None:
        sheet = self._client.get_budgets_sheet()
        found = self._find_row(sheet)
        if found is None:
            sheet.append_row(
                [self._user_id, payload, updated_at],
                value_input_option="RAW",
            )
            return
        idx, _ = found
        sheet.update_cell(idx, 2, payload)
        sheet.update_cell(idx, 3, updated_at)

    @_transient_retry
    def _delete_document(self) -> bool:
        sheet = self._client.get_budgets_sheet()
        found = self._find_row(sheet)
        if found is None:
            return False
        sheet.delete_rows(found[0])
        return True

    async def load(self) -> Ledger:
        """Load this user's Ledger, or an empty one if the user has no row."""
        try:
            payload = self._read_document()
            if payload is None:
                logger.info("remote_ledger_not_found", user_id=self._user_id)
                return {}
            data = json.loads(payload)
            if isinstance(data, dict) and "monthlyBudgets" in data:
                data = data["monthlyBudgets"]
            ledger, dropped = salvage_ledger(data)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to load ledger: {e}")

        if dropped:
            logger.warning("remote_ledger_entries_dropped", user_id=self._user_id, dropped=dropped)
        logger.info(
            "remote_ledger_loaded",
            user_id=self._user_id,
            month_count=len(ledger),
        )
        return ledger

    async def save(self, ledger: Ledger) -> bool:
        """Replace this user's saved Ledger."""
        document = LedgerDocument(monthly_budgets=ledger)
        payload = json.dumps(document.to_storage_dict())
        try:
            self._write_document(payload, document.updated_at.isoformat())
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save ledger: {e}")
        return True

    async def clear(self) -> bool:
        try:
            return self._delete_document()
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to clear ledger: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None, user_id: str = ""):
        self._client = client or GoogleSheetsClient()
        self._user_id = user_id

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(3)),
            severity=AuditSeverity(safe_get(4)),
            month=safe_get(5) or None,
            entity_id=safe_get(6) or None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
        )

    @_transient_retry
    def _append_row(self, row: list) -> None:
        sheet = self._client.get_audit_sheet()
        sheet.append_row(row, value_input_option="RAW")

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._append_row(event.to_sheets_row(self._user_id))
            return True
        except Exception as e:
            # Audit logging must not break the main flow
            logger.error(
                "audit_event_write_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """Get this user's recent events, newest first."""
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]

            events = []
            for row in all_rows:
                if not row or not row[0]:
                    continue
                if self._user_id and (len(row) < 3 or row[2] != self._user_id):
                    continue
                try:
                    events.append(self._row_to_event(row))
                except (ValueError, json.JSONDecodeError):
                    continue  # Skip malformed rows

            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
