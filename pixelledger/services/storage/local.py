"""
Local Storage Implementations

InMemoryStorage keeps everything in dictionaries and is what the tests use.
JSONFileStorage is the default on-device backend: the same in-memory maps,
written through to a single JSON document after every mutation.

DESIGN DECISION: Both classes return copies of stored models. Callers that
mutate an Account must save it again, exactly as they would with a remote
backend, so behaviour does not change when the backend is swapped.
"""

import json
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Optional, Union
from uuid import UUID

import structlog

from pixelledger.models.audit import AuditEvent
from pixelledger.models.ledger import Account, Category, ExpenseItem
from pixelledger.services.storage.interface import (
    AuditStorageInterface,
    CatalogStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


class InMemoryStorage(
    ExpenseStorageInterface,
    CatalogStorageInterface,
    AuditStorageInterface,
):
    """Dictionary-backed storage for every collection."""

    def __init__(self):
        self._expenses: dict[UUID, ExpenseItem] = {}
        self._categories: dict[UUID, Category] = {}
        self._accounts: dict[UUID, Account] = {}
        self._events: list[AuditEvent] = []

    def _persist(self) -> None:
        """Hook for write-through subclasses."""

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------

    async def save_expense(self, expense: ExpenseItem) -> bool:
        self._expenses[expense.id] = expense.model_copy()
        self._persist()
        return True

    async def get_expense_by_id(self, expense_id: UUID) -> Optional[ExpenseItem]:
        expense = self._expenses.get(expense_id)
        return expense.model_copy() if expense else None

    async def delete_expense(self, expense_id: UUID) -> bool:
        if self._expenses.pop(expense_id, None) is None:
            return False
        self._persist()
        return True

    async def list_expenses(
        self,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> list[ExpenseItem]:
        expenses = [
            e.model_copy()
            for e in self._expenses.values()
            if (date_from is None or e.date >= date_from)
            and (date_to is None or e.date <= date_to)
        ]
        expenses.sort(key=lambda e: e.date, reverse=True)
        return expenses

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    async def list_categories(self) -> list[Category]:
        return [c.model_copy() for c in self._categories.values()]

    async def save_category(self, category: Category) -> bool:
        for existing in self._categories.values():
            if (
                existing.name == category.name
                and existing.type == category.type
                and existing.id != category.id
            ):
                raise DuplicateError(f"Category already exists: {category.name}")
        self._categories[category.id] = category.model_copy()
        self._persist()
        return True

    async def list_accounts(self) -> list[Account]:
        return [a.model_copy() for a in self._accounts.values()]

    async def save_account(self, account: Account) -> bool:
        for existing in self._accounts.values():
            if existing.name == account.name and existing.id != account.id:
                raise DuplicateError(f"Account already exists: {account.name}")
        self._accounts[account.id] = account.model_copy()
        self._persist()
        return True

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        self._persist()
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]


class JSONFileStorage(InMemoryStorage):
    """
    Write-through JSON persistence.

    File layout:
        {"expenses": [...], "categories": [...], "accounts": [...], "audit": [...]}

    Writes go to a temporary file in the same directory and are then
    renamed over the target, so a crash never leaves half a ledger behind.
    """

    def __init__(self, path: Union[str, Path], max_audit_events: int = 1000):
        super().__init__()
        self._path = Path(path).expanduser()
        self._max_audit_events = max_audit_events
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read ledger file {self._path}: {e}")

        for raw in data.get("expenses", []):
            expense = ExpenseItem.model_validate(raw)
            self._expenses[expense.id] = expense
        for raw in data.get("categories", []):
            category = Category.model_validate(raw)
            self._categories[category.id] = category
        for raw in data.get("accounts", []):
            account = Account.model_validate(raw)
            self._accounts[account.id] = account
        self._events = [AuditEvent.model_validate(raw) for raw in data.get("audit", [])]

        logger.debug(
            "ledger_loaded",
            path=str(self._path),
            expenses=len(self._expenses),
            categories=len(self._categories),
            accounts=len(self._accounts),
        )

    def _persist(self) -> None:
        """
        Rewrite the ledger file from the in-memory maps.

        Callers mutate memory first, so after a StorageError the process
        holds changes the file does not. The previous file is left intact.
        """
        if len(self._events) > self._max_audit_events:
            self._events = self._events[-self._max_audit_events:]

        document = {
            "expenses": [e.model_dump(mode="json") for e in self._expenses.values()],
            "categories": [c.model_dump(mode="json") for c in self._categories.values()],
            "accounts": [a.model_dump(mode="json") for a in self._accounts.values()],
            "audit": [e.model_dump(mode="json") for e in self._events],
        }

        tmp_name = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent, prefix=".ledger-", suffix=".json"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self._path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Failed to write ledger file {self._path}: {e}")
