"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
The JSON file backend is the default; Google Sheets is optional.
"""

from pixelledger.services.storage.interface import (
    AuditStorageInterface,
    CatalogStorageInterface,
    ConnectionError,
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    StorageError,
)
from pixelledger.services.storage.local import InMemoryStorage, JSONFileStorage
from pixelledger.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsCatalogStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "CatalogStorageInterface",
    "ExpenseStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # Local implementations
    "InMemoryStorage",
    "JSONFileStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsCatalogStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStorage",
]
