"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the persistent backend because:
1. Users can view and fix their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

Each collection lives in its own worksheet. Saving a collection clears
the worksheet and rewrites header plus rows, matching the whole-collection
contract of the ledger store. Loading maps cells by header name, so
columns can be reordered by hand without breaking anything.

TRADEOFFS:
- Not suitable for high-volume data (fine for a personal ledger)
- No transactions: a failure between the two collection saves leaves the
  ledger and the rule watermarks out of step
"""

import json
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from pydantic import ValidationError
from tenacity import retry, stop_after_attempt, wait_exponential

from finance_tracker.config import get_settings
from finance_tracker.models.audit import AuditEvent, AuditEventType, AuditSeverity
from finance_tracker.models.ledger import (
    FinanceConfig,
    RecurringRule,
    Transaction,
)
from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    LedgerStorageInterface,
    StorageError,
)
from finance_tracker.validation.sanitizer import (
    sanitize_config,
    sanitize_many,
    sanitize_rule,
    sanitize_transaction,
)


TRANSACTION_COLUMNS = [
    "id",
    "description",
    "amount",
    "kind",
    "date",
    "category",
    "is_recurring",
    "recurring_rule_id",
]

RULE_COLUMNS = [
    "id",
    "description",
    "category",
    "kind",
    "amount",
    "day_of_month",
    "last_generated",
]

CONFIG_COLUMNS = ["key", "value"]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @_retry
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

    def get_worksheet(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
        """Get a worksheet, creating it with a header row if missing."""
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

    def get_transactions_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(
            self._settings.transactions_sheet_name, TRANSACTION_COLUMNS, rows=5000
        )

    def get_rules_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.rules_sheet_name, RULE_COLUMNS)

    def get_config_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.config_sheet_name, CONFIG_COLUMNS, rows=20)

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


def _rows_to_records(values: list[list[str]]) -> list[dict[str, str]]:
    """Map sheet rows to dicts keyed by the header row, skipping blank rows."""
    if not values:
        return []
    header = [cell.strip() for cell in values[0]]
    records = []
    for row in values[1:]:
        if not any(cell.strip() for cell in row):
            continue
        padded = row + [""] * (len(header) - len(row))
        records.append({
            name: padded[idx]
            for idx, name in enumerate(header)
            if name
        })
    return records


def _rewrite(sheet: gspread.Worksheet, columns: list[str], rows: list[list]) -> None:
    sheet.clear()
    sheet.append_rows([columns, *rows], value_input_option="RAW")


class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """
    Google Sheets implementation of the ledger store.

    One row per transaction or rule. Amounts are written as decimal
    strings so no precision is lost in the sheet.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _transaction_to_row(self, t: Transaction) -> list:
        return [
            str(t.id),
            t.description,
            str(t.amount),
            t.kind.value,
            t.date.isoformat(),
            t.category.value,
            str(t.is_recurring),
            str(t.recurring_rule_id) if t.recurring_rule_id else "",
        ]

    def _rule_to_row(self, r: RecurringRule) -> list:
        return [
            str(r.id),
            r.description,
            r.category.value,
            r.kind.value,
            str(r.amount),
            str(r.day_of_month),
            r.last_generated.isoformat() if r.last_generated else "",
        ]

    async def load_transactions(self) -> list[Transaction]:
        """Read every transaction row."""
        try:
            values = self._client.get_transactions_sheet().get_all_values()
        except Exception as e:
            raise StorageError(f"Failed to load transactions: {e}")
        try:
            return sanitize_many(_rows_to_records(values), sanitize_transaction)
        except ValidationError as e:
            raise StorageError(f"Malformed transaction row: {e}")

    @_retry
    async def save_transactions(self, transactions: list[Transaction]) -> bool:
        """Rewrite the transactions worksheet."""
        try:
            sheet = self._client.get_transactions_sheet()
            _rewrite(
                sheet,
                TRANSACTION_COLUMNS,
                [self._transaction_to_row(t) for t in transactions],
            )
            return True
        except Exception as e:
            raise StorageError(f"Failed to save transactions: {e}")

    async def load_rules(self) -> list[RecurringRule]:
        """Read every recurring rule row."""
        try:
            values = self._client.get_rules_sheet().get_all_values()
        except Exception as e:
            raise StorageError(f"Failed to load recurring rules: {e}")
        try:
            return sanitize_many(_rows_to_records(values), sanitize_rule)
        except ValidationError as e:
            raise StorageError(f"Malformed recurring rule row: {e}")

    @_retry
    async def save_rules(self, rules: list[RecurringRule]) -> bool:
        """Rewrite the recurring rules worksheet."""
        try:
            sheet = self._client.get_rules_sheet()
            _rewrite(sheet, RULE_COLUMNS, [self._rule_to_row(r) for r in rules])
            return True
        except Exception as e:
            raise StorageError(f"Failed to save recurring rules: {e}")

    async def load_config(self) -> Optional[FinanceConfig]:
        """Read the key/value config worksheet."""
        try:
            values = self._client.get_config_sheet().get_all_values()
        except Exception as e:
            raise StorageError(f"Failed to load config: {e}")
        raw = {
            record["key"]: record.get("value", "")
            for record in _rows_to_records(values)
            if record.get("key")
        }
        try:
            return sanitize_config(raw)
        except ValidationError as e:
            raise StorageError(f"Malformed config: {e}")

    @_retry
    async def save_config(self, config: FinanceConfig) -> bool:
        """Rewrite the config worksheet."""
        try:
            sheet = self._client.get_config_sheet()
            rows = [[key, str(value)] for key, value in config.model_dump().items()]
            _rewrite(sheet, CONFIG_COLUMNS, rows)
            return True
        except Exception as e:
            raise StorageError(f"Failed to save config: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, record: dict[str, Any]) -> AuditEvent:
        return AuditEvent(
            event_id=UUID(record["event_id"]),
            timestamp=datetime.fromisoformat(record["timestamp"]),
            event_type=AuditEventType(record["event_type"]),
            severity=AuditSeverity(record["severity"]),
            entity_type=record.get("entity_type") or None,
            entity_id=UUID(record["entity_id"]) if record.get("entity_id") else None,
            correlation_id=(
                UUID(record["correlation_id"]) if record.get("correlation_id") else None
            ),
            description=record.get("description", ""),
            details=json.loads(record["details_json"]) if record.get("details_json") else {},
            error_message=record.get("error_message") or None,
            is_user_action=record.get("is_user_action", "").lower() == "true",
        )

    @_retry
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events, newest first."""
        try:
            values = self._client.get_audit_sheet().get_all_values()
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for record in _rows_to_records(values):
            try:
                events.append(self._row_to_event(record))
            except (KeyError, ValueError):
                continue  # Skip malformed rows

        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
