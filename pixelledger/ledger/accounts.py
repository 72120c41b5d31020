"""
Ledger Services

Writes that touch more than one collection live here: saving an expense
moves money on its account and bumps its category's usage counter, and a
manual balance correction leaves a visible adjustment record behind.

DESIGN DECISION: Balances are stored on the Account, not recomputed from
history. Every path that creates a record therefore goes through
LedgerService so the balance and the history cannot drift apart.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog

from pixelledger.audit import AuditLogger
from pixelledger.models.ledger import (
    Account,
    Category,
    CategoryType,
    ExpenseItem,
)
from pixelledger.services.storage.interface import (
    CatalogStorageInterface,
    ExpenseStorageInterface,
    NotFoundError,
)


logger = structlog.get_logger(__name__)

BALANCE_ADJUSTMENT_CATEGORY = "Balance Adjustment"
BALANCE_ADJUSTMENT_TITLE = "Balance adjustment (manual correction)"
BALANCE_ADJUSTMENT_SYMBOL = "slider.horizontal.3"
BALANCE_ADJUSTMENT_COLOR = "#8E8E93"

# Differences at or below this are treated as rounding noise
BALANCE_EPSILON = Decimal("0.001")


def apply_to_balance(account: Account, amount: Decimal, category_type: CategoryType) -> None:
    """Move money on an account: income adds, expense subtracts."""
    if category_type == CategoryType.INCOME:
        account.balance += amount
    else:
        account.balance -= amount


async def increment_category_usage(
    catalog: CatalogStorageInterface,
    category_name: str,
    category_type: Optional[CategoryType] = None,
) -> Optional[Category]:
    """Bump a category's usage counter. Unknown names are ignored."""
    category = await catalog.get_category_by_name(category_name, category_type)
    if category is None:
        return None
    category.usage_count += 1
    await catalog.save_category(category)
    return category


class LedgerService:
    """Creates ledger records and keeps account balances in step."""

    def __init__(
        self,
        expense_storage: ExpenseStorageInterface,
        catalog_storage: CatalogStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._expenses = expense_storage
        self._catalog = catalog_storage
        self._audit = audit_logger or AuditLogger()

    async def add_expense(
        self,
        amount: Decimal,
        category_name: str,
        title: str = "",
        date: Optional[datetime] = None,
        account_name: Optional[str] = None,
        category_type: Optional[CategoryType] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ExpenseItem:
        """
        Record a transaction.

        The direction is category_type when given, else the type of the
        first category with that name. A category that does not exist is
        treated as an expense. The account, when named, must exist.

        Raises:
            NotFoundError: If account_name names no account
        """
        account = None
        if account_name:
            account = await self._catalog.get_account_by_name(account_name)
            if account is None:
                raise NotFoundError(f"Account not found: {account_name}")

        category = await self._catalog.get_category_by_name(category_name, category_type)
        if category_type is None:
            category_type = category.type if category else CategoryType.EXPENSE

        expense = ExpenseItem(
            amount=amount,
            title=title,
            date=date or datetime.now(),
            category=category_name,
            type=category_type,
            account_name=account_name,
        )
        await self._expenses.save_expense(expense)

        if account is not None:
            apply_to_balance(account, expense.amount, expense.type)
            await self._catalog.save_account(account)

        if category is not None:
            category.usage_count += 1
            await self._catalog.save_category(category)

        await self._audit.log_expense_saved(
            expense_id=expense.id,
            category=expense.category,
            amount=expense.amount,
            correlation_id=correlation_id,
        )
        return expense


class AccountService:
    """Manual account maintenance."""

    def __init__(
        self,
        expense_storage: ExpenseStorageInterface,
        catalog_storage: CatalogStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._expenses = expense_storage
        self._catalog = catalog_storage
        self._audit = audit_logger or AuditLogger()

    async def adjust_balance(
        self,
        account: Account,
        new_balance: Decimal,
    ) -> Optional[ExpenseItem]:
        """
        Set an account's balance and record the correction.

        The balance is set directly; the adjustment record is history
        only and is not applied to the balance a second time.

        Returns:
            The adjustment record, or None when the change is negligible
        """
        new_balance = Decimal(str(new_balance))
        old_balance = account.balance
        difference = new_balance - old_balance

        if abs(difference) <= BALANCE_EPSILON:
            logger.debug("balance_adjustment_skipped", account=account.name)
            return None

        account.balance = new_balance
        await self._catalog.save_account(account)

        category_type = (
            CategoryType.INCOME if difference > 0 else CategoryType.EXPENSE
        )
        category = await self._get_or_create_adjustment_category(category_type)

        adjustment = ExpenseItem(
            amount=abs(difference),
            title=BALANCE_ADJUSTMENT_TITLE,
            date=datetime.now(),
            category=category.name,
            type=category_type,
            account_name=account.name,
        )
        await self._expenses.save_expense(adjustment)

        category.usage_count += 1
        await self._catalog.save_category(category)

        await self._audit.log_balance_adjusted(
            account_id=account.id,
            account_name=account.name,
            old_balance=old_balance,
            new_balance=new_balance,
        )
        return adjustment

    async def _get_or_create_adjustment_category(
        self,
        category_type: CategoryType,
    ) -> Category:
        category = await self._catalog.get_category_by_name(
            BALANCE_ADJUSTMENT_CATEGORY, category_type
        )
        if category is not None:
            return category

        category = Category(
            name=BALANCE_ADJUSTMENT_CATEGORY,
            symbol_name=BALANCE_ADJUSTMENT_SYMBOL,
            hex_color=BALANCE_ADJUSTMENT_COLOR,
            type=category_type,
        )
        await self._catalog.save_category(category)
        logger.info("adjustment_category_created", type=category_type.value)
        return category
