"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the ledger in a local JSON file by default
2. Use in-memory storage for testing
3. Mirror the ledger into Google Sheets for users who want to see it there
4. Keep business logic decoupled from storage implementation

The interface is intentionally simple - we're not building a full ORM.
Just the operations the assistant and the ledger services need.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from pixelledger.models.audit import AuditEvent
from pixelledger.models.ledger import Account, Category, CategoryType, ExpenseItem


class ExpenseStorageInterface(ABC):
    """
    Abstract interface for expense record storage.

    Any storage implementation (JSON file, Google Sheets, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def save_expense(self, expense: ExpenseItem) -> bool:
        """
        Save an expense record. An existing record with the same ID is replaced.

        Returns:
            True if saved successfully

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_expense_by_id(self, expense_id: UUID) -> Optional[ExpenseItem]:
        """
        Retrieve an expense by its ID.

        Returns:
            The expense if found, None otherwise
        """
        pass

    @abstractmethod
    async def delete_expense(self, expense_id: UUID) -> bool:
        """
        Delete an expense by ID.

        Returns:
            True if a record was deleted
        """
        pass

    @abstractmethod
    async def list_expenses(
        self,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> list[ExpenseItem]:
        """
        List expenses, optionally restricted to an inclusive date range.

        Category and account filtering happen in the query layer.

        Args:
            date_from: Only records on or after this instant
            date_to: Only records on or before this instant

        Returns:
            Matching records, newest first
        """
        pass


class CatalogStorageInterface(ABC):
    """
    Abstract interface for categories and accounts.

    Account names are unique. Category names are unique per type, so an
    expense and an income category may share a name. Saving an entity
    whose ID already exists replaces it.
    """

    @abstractmethod
    async def list_categories(self) -> list[Category]:
        pass

    @abstractmethod
    async def save_category(self, category: Category) -> bool:
        pass

    @abstractmethod
    async def list_accounts(self) -> list[Account]:
        pass

    @abstractmethod
    async def save_account(self, account: Account) -> bool:
        pass

    async def get_category_by_name(
        self,
        name: str,
        category_type: Optional[CategoryType] = None,
    ) -> Optional[Category]:
        """Find a category by exact name, optionally of one type."""
        for category in await self.list_categories():
            if category.name == name and (
                category_type is None or category.type == category_type
            ):
                return category
        return None

    async def get_account_by_name(self, name: str) -> Optional[Account]:
        """Find an account by exact name."""
        for account in await self.list_accounts():
            if account.name == name:
                return account
        return None


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one chat message).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
