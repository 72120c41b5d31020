"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as an optional backend because:
1. Users can view and chart their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions (we handle this with careful ordering)
- Limited query capabilities (we filter in Python)

The implementation follows the abstract interfaces, so the rest of the
application does not know which backend it is talking to.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from pixelledger.config import get_settings
from pixelledger.config.settings import GoogleSheetsSettings
from pixelledger.models.audit import AuditEvent, AuditEventType, AuditSeverity
from pixelledger.models.ledger import (
    Account,
    AccountType,
    Category,
    CategoryType,
    ExpenseItem,
)
from pixelledger.services.storage.interface import (
    AuditStorageInterface,
    CatalogStorageInterface,
    ConnectionError,
    DuplicateError,
    ExpenseStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


EXPENSE_COLUMNS = [
    "id",
    "date",
    "amount",
    "title",
    "category",
    "type",
    "account_name",
]

CATEGORY_COLUMNS = [
    "id",
    "name",
    "symbol_name",
    "hex_color",
    "type",
    "usage_count",
    "created_at",
]

ACCOUNT_COLUMNS = [
    "id",
    "name",
    "balance",
    "type",
    "hex_color",
    "icon_name",
    "created_at",
]

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


def _safe_get(row: list, index: int, default: str = "") -> str:
    """Read a cell, tolerating short rows."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


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

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
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

    def get_expenses_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.expenses_sheet_name, EXPENSE_COLUMNS
        )

    def get_categories_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.categories_sheet_name, CATEGORY_COLUMNS, rows=200
        )

    def get_accounts_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.accounts_sheet_name, ACCOUNT_COLUMNS, rows=100
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        # More rows for audit log
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


def _upsert_row(sheet: gspread.Worksheet, key: str, row: list) -> None:
    """Replace the row whose first cell equals key, or append a new one."""
    all_rows = sheet.get_all_values()
    for idx, existing in enumerate(all_rows[1:], start=2):  # row 1 is header
        if existing and existing[0] == key:
            for col_idx, value in enumerate(row, start=1):
                sheet.update_cell(idx, col_idx, value)
            return
    sheet.append_row(row, value_input_option="RAW")


class GoogleSheetsExpenseStorage(ExpenseStorageInterface):
    """
    Google Sheets implementation of expense storage.

    One expense per row; amounts are written as plain decimal strings.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _expense_to_row(self, expense: ExpenseItem) -> list:
        return [
            str(expense.id),
            expense.date.isoformat(),
            str(expense.amount),
            expense.title,
            expense.category,
            expense.type.value,
            expense.account_name or "",
        ]

    def _row_to_expense(self, row: list) -> ExpenseItem:
        return ExpenseItem(
            id=UUID(_safe_get(row, 0)),
            date=datetime.fromisoformat(_safe_get(row, 1)),
            amount=Decimal(_safe_get(row, 2, "0")),
            title=_safe_get(row, 3),
            category=_safe_get(row, 4),
            type=CategoryType(_safe_get(row, 5, CategoryType.EXPENSE.value)),
            account_name=_safe_get(row, 6) or None,
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_expense(self, expense: ExpenseItem) -> bool:
        try:
            sheet = self._client.get_expenses_sheet()
            _upsert_row(sheet, str(expense.id), self._expense_to_row(expense))
            return True
        except Exception as e:
            raise StorageError(f"Failed to save expense: {e}")

    async def get_expense_by_id(self, expense_id: UUID) -> Optional[ExpenseItem]:
        try:
            sheet = self._client.get_expenses_sheet()
            for row in sheet.get_all_values()[1:]:
                if row and row[0] == str(expense_id):
                    return self._row_to_expense(row)
            return None
        except Exception as e:
            raise StorageError(f"Failed to get expense: {e}")

    async def delete_expense(self, expense_id: UUID) -> bool:
        try:
            sheet = self._client.get_expenses_sheet()
            all_rows = sheet.get_all_values()
            for idx, row in enumerate(all_rows[1:], start=2):
                if row and row[0] == str(expense_id):
                    sheet.delete_rows(idx)
                    return True
            return False
        except Exception as e:
            raise StorageError(f"Failed to delete expense: {e}")

    async def list_expenses(
        self,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> list[ExpenseItem]:
        try:
            sheet = self._client.get_expenses_sheet()
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except Exception as e:
            raise StorageError(f"Failed to list expenses: {e}")

        expenses = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            try:
                expense = self._row_to_expense(row)
            except (ValueError, ArithmeticError) as e:
                logger.warning("malformed_expense_row", row_id=row[0], error=str(e))
                continue

            if date_from and expense.date < date_from:
                continue
            if date_to and expense.date > date_to:
                continue
            expenses.append(expense)

        # Sort by date descending (newest first)
        expenses.sort(key=lambda e: e.date, reverse=True)
        return expenses


class GoogleSheetsCatalogStorage(CatalogStorageInterface):
    """Categories and accounts, one worksheet each."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _category_to_row(self, category: Category) -> list:
        return [
            str(category.id),
            category.name,
            category.symbol_name,
            category.hex_color,
            category.type.value,
            str(category.usage_count),
            category.created_at.isoformat(),
        ]

    def _row_to_category(self, row: list) -> Category:
        return Category(
            id=UUID(_safe_get(row, 0)),
            name=_safe_get(row, 1),
            symbol_name=_safe_get(row, 2, "questionmark.circle"),
            hex_color=_safe_get(row, 3, "#8E8E93"),
            type=CategoryType(_safe_get(row, 4, CategoryType.EXPENSE.value)),
            usage_count=int(_safe_get(row, 5, "0")),
            created_at=datetime.fromisoformat(_safe_get(row, 6)),
        )

    def _account_to_row(self, account: Account) -> list:
        return [
            str(account.id),
            account.name,
            str(account.balance),
            account.type.value,
            account.hex_color,
            account.icon_name,
            account.created_at.isoformat(),
        ]

    def _row_to_account(self, row: list) -> Account:
        return Account(
            id=UUID(_safe_get(row, 0)),
            name=_safe_get(row, 1),
            balance=Decimal(_safe_get(row, 2, "0")),
            type=AccountType(_safe_get(row, 3, AccountType.CASH.value)),
            hex_color=_safe_get(row, 4, "#8E8E93"),
            icon_name=_safe_get(row, 5, "creditcard.fill"),
            created_at=datetime.fromisoformat(_safe_get(row, 6)),
        )

    async def list_categories(self) -> list[Category]:
        try:
            rows = self._client.get_categories_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to list categories: {e}")
        return [self._row_to_category(row) for row in rows if row and row[0]]

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(DuplicateError),
        reraise=True,
    )
    async def save_category(self, category: Category) -> bool:
        existing = await self.get_category_by_name(category.name, category.type)
        if existing and existing.id != category.id:
            raise DuplicateError(f"Category already exists: {category.name}")
        try:
            sheet = self._client.get_categories_sheet()
            _upsert_row(sheet, str(category.id), self._category_to_row(category))
            return True
        except Exception as e:
            raise StorageError(f"Failed to save category: {e}")

    async def list_accounts(self) -> list[Account]:
        try:
            rows = self._client.get_accounts_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to list accounts: {e}")
        return [self._row_to_account(row) for row in rows if row and row[0]]

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(DuplicateError),
        reraise=True,
    )
    async def save_account(self, account: Account) -> bool:
        existing = await self.get_account_by_name(account.name)
        if existing and existing.id != account.id:
            raise DuplicateError(f"Account already exists: {account.name}")
        try:
            sheet = self._client.get_accounts_sheet()
            _upsert_row(sheet, str(account.id), self._account_to_row(account))
            return True
        except Exception as e:
            raise StorageError(f"Failed to save account: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        return AuditEvent(
            event_id=UUID(_safe_get(row, 0)),
            timestamp=datetime.fromisoformat(_safe_get(row, 1)),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            entity_type=_safe_get(row, 4) or None,
            entity_id=UUID(_safe_get(row, 5)) if _safe_get(row, 5) else None,
            correlation_id=UUID(_safe_get(row, 6)) if _safe_get(row, 6) else None,
            description=_safe_get(row, 7),
            details=json.loads(_safe_get(row, 8)) if _safe_get(row, 8) else {},
            error_message=_safe_get(row, 9) or None,
            is_user_action=_safe_get(row, 10).lower() == "true",
        )

    def _rows_to_events(self, rows: list[list]) -> list[AuditEvent]:
        events = []
        for row in rows:
            try:
                events.append(self._row_to_event(row))
            except (ValueError, json.JSONDecodeError) as e:
                logger.warning("malformed_audit_row", error=str(e))
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging must not break the main flow
            logger.warning(
                "audit_sheet_write_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            all_rows = self._client.get_audit_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        rows = [r for r in all_rows if len(r) > 6 and r[6] == str(correlation_id)]
        events = self._rows_to_events(rows)
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        try:
            all_rows = self._client.get_audit_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = self._rows_to_events([r for r in all_rows if r and r[0]])
        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
