"""
CSV Backup

Export writes every record to a spreadsheet-friendly CSV: a UTF-8 BOM so
Excel picks the right encoding, then one row per record with the columns

    Date,Time,Type,Amount,Category,Account,Note

Import reads the same layout back. Rows already in the ledger (same amount,
timestamp, note and direction) are skipped, unknown categories and accounts
are created on the fly, and balances move exactly as they would for a
record entered by hand.

IMPORTANT: A bad row never aborts an import. It is counted as failed and
the rest of the file still goes in.
"""

import csv
import io
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional, Union

import structlog
from pydantic import BaseModel, ValidationError

from pixelledger.audit import AuditLogger
from pixelledger.ledger.accounts import apply_to_balance
from pixelledger.models.audit import AuditEventBuilder
from pixelledger.models.ledger import (
    Account,
    AccountType,
    Category,
    CategoryType,
    ExpenseItem,
)
from pixelledger.services.storage.interface import (
    CatalogStorageInterface,
    ExpenseStorageInterface,
)


logger = structlog.get_logger(__name__)

CSV_HEADER = ["Date", "Time", "Type", "Amount", "Category", "Account", "Note"]
BOM = "\ufeff"
UNCATEGORIZED = "未分类"
DATETIME_FORMAT = "%Y-%m-%d %H:%M"


class CSVImportError(Exception):
    """Base exception for CSV import."""
    pass


class CannotReadFileError(CSVImportError):
    """The backup file could not be read or decoded."""

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"Cannot read file: {cause}")


class InvalidCSVFormatError(CSVImportError):
    """The file is not a backup this importer understands."""

    def __init__(self, reason: str):
        super().__init__(f"Invalid file format: {reason}")


class ImportResult(BaseModel):
    """Counts from one import run. Skipped duplicates are in neither."""
    success: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.success + self.failed


def export_filename(day: Optional[date] = None) -> str:
    """PixelLedger_Backup_YYYY-MM-DD.csv"""
    day = day or date.today()
    return f"PixelLedger_Backup_{day.isoformat()}.csv"


def generate_csv(expenses: list[ExpenseItem]) -> str:
    """Render records as CSV text, BOM first."""
    buffer = io.StringIO()
    buffer.write(BOM)
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)

    for expense in expenses:
        writer.writerow([
            expense.date.strftime("%Y-%m-%d"),
            expense.date.strftime("%H:%M"),
            expense.type.value,
            f"{expense.amount:.2f}",
            expense.category,
            expense.account_name or "",
            expense.title,
        ])

    return buffer.getvalue()


def _duplicate_key(
    amount: Decimal,
    when: datetime,
    note: str,
    category_type: CategoryType,
) -> tuple:
    return (amount.normalize(), when.replace(second=0, microsecond=0), note, category_type)


class CSVBackupService:
    """Exports the ledger to CSV and imports CSV backups into it."""

    def __init__(
        self,
        expense_storage: ExpenseStorageInterface,
        catalog_storage: CatalogStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._expenses = expense_storage
        self._catalog = catalog_storage
        self._audit = audit_logger or AuditLogger()

    async def export_csv(self) -> str:
        """Render the whole ledger, newest first."""
        expenses = await self._expenses.list_expenses()
        content = generate_csv(expenses)
        await self._audit.log(
            AuditEventBuilder.csv_exported(export_filename(), len(expenses))
        )
        return content

    async def write_backup(
        self,
        directory: Union[str, Path],
        day: Optional[date] = None,
    ) -> Path:
        """Export to a dated file inside directory and return its path."""
        target = Path(directory).expanduser() / export_filename(day)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(await self.export_csv(), encoding="utf-8")
        return target

    async def import_file(self, path: Union[str, Path]) -> ImportResult:
        """
        Import a backup file from disk.

        Raises:
            CannotReadFileError: If the file cannot be read as UTF-8
            InvalidCSVFormatError: If it has no data rows
        """
        try:
            content = Path(path).expanduser().read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise CannotReadFileError(e)
        return await self.import_csv(content)

    async def import_csv(self, content: str) -> ImportResult:
        """
        Import CSV text.

        Raises:
            InvalidCSVFormatError: If there is no header plus at least one row
        """
        content = content.lstrip(BOM)
        lines = [line.strip() for line in content.splitlines()]
        lines = [line for line in lines if line]
        if len(lines) <= 1:
            raise InvalidCSVFormatError("file is empty or has no data rows")

        categories: dict[tuple[str, CategoryType], Category] = {
            (c.name, c.type): c for c in await self._catalog.list_categories()
        }
        accounts = {a.name: a for a in await self._catalog.list_accounts()}
        existing = {
            _duplicate_key(e.amount, e.date, e.title or e.category, e.type)
            for e in await self._expenses.list_expenses()
        }

        result = ImportResult()
        # Line numbers count the header as line 1
        for line_no, fields in enumerate(csv.reader(lines[1:]), start=2):
            if len(fields) < len(CSV_HEADER):
                logger.warning("csv_row_too_short", line=line_no, fields=len(fields))
                result.failed += 1
                continue

            date_str, time_str, type_str, amount_str, category_name, account_name, note = (
                f.strip() for f in fields[:7]
            )

            try:
                when = datetime.strptime(f"{date_str} {time_str}", DATETIME_FORMAT)
            except ValueError:
                logger.warning("csv_bad_date", line=line_no, value=f"{date_str} {time_str}")
                result.failed += 1
                continue

            try:
                amount = Decimal(amount_str)
            except InvalidOperation:
                amount = None
            if amount is None or not amount.is_finite() or amount < 0:
                logger.warning("csv_bad_amount", line=line_no, value=amount_str)
                result.failed += 1
                continue

            category_type = (
                CategoryType.INCOME if type_str.lower() == "income" else CategoryType.EXPENSE
            )

            # Records imported without a note carry the category name as title
            title = note or category_name or UNCATEGORIZED
            if _duplicate_key(amount, when, title, category_type) in existing:
                logger.debug("csv_duplicate_skipped", line=line_no)
                continue

            try:
                category = await self._get_or_create_category(
                    categories, category_name, category_type
                )
                account = None
                if account_name:
                    account = await self._get_or_create_account(accounts, account_name)

                expense = ExpenseItem(
                    amount=amount,
                    title=title,
                    date=when,
                    category=category.name,
                    type=category.type,
                    account_name=account.name if account else None,
                )
            except ValidationError as e:
                logger.warning("csv_row_invalid", line=line_no, error=str(e))
                result.failed += 1
                continue

            await self._expenses.save_expense(expense)

            if account is not None:
                apply_to_balance(account, expense.amount, expense.type)
                await self._catalog.save_account(account)

            category.usage_count += 1
            await self._catalog.save_category(category)

            result.success += 1

        logger.info("csv_import_finished", success=result.success, failed=result.failed)
        await self._audit.log(
            AuditEventBuilder.csv_imported(result.success, result.failed)
        )
        return result

    async def _get_or_create_category(
        self,
        categories: dict[tuple[str, CategoryType], Category],
        name: str,
        category_type: CategoryType,
    ) -> Category:
        name = name or UNCATEGORIZED
        key = (name, category_type)
        if key in categories:
            return categories[key]

        category = Category(name=name, type=category_type)
        await self._catalog.save_category(category)
        categories[key] = category
        logger.info("csv_category_created", category=name, type=category_type.value)
        return category

    async def _get_or_create_account(
        self,
        accounts: dict[str, Account],
        name: str,
    ) -> Account:
        if name in accounts:
            return accounts[name]

        account = Account(
            name=name,
            type=AccountType.CASH,
            icon_name="creditcard.fill",
        )
        await self._catalog.save_account(account)
        accounts[name] = account
        logger.info("csv_account_created", account=name)
        return account
