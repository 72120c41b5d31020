"""Ledger write services: balances, defaults, and CSV backup."""

from pixelledger.ledger.accounts import (
    BALANCE_ADJUSTMENT_CATEGORY,
    BALANCE_ADJUSTMENT_TITLE,
    AccountService,
    LedgerService,
    increment_category_usage,
)
from pixelledger.ledger.csv_io import (
    CannotReadFileError,
    CSVBackupService,
    CSVImportError,
    ImportResult,
    InvalidCSVFormatError,
    export_filename,
    generate_csv,
)
from pixelledger.ledger.seeder import (
    DataSeeder,
    default_accounts,
    default_categories,
)

__all__ = [
    "BALANCE_ADJUSTMENT_CATEGORY",
    "BALANCE_ADJUSTMENT_TITLE",
    "AccountService",
    "LedgerService",
    "increment_category_usage",
    "CannotReadFileError",
    "CSVBackupService",
    "CSVImportError",
    "ImportResult",
    "InvalidCSVFormatError",
    "export_filename",
    "generate_csv",
    "DataSeeder",
    "default_accounts",
    "default_categories",
]
