"""
Shared fixtures.

All tests run against InMemoryStorage and mocked LLM clients.
No real API calls are made.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from unittest.mock import AsyncMock

import pytest

from pixelledger.config.settings import AppSettings
from pixelledger.models.ledger import (
    Account,
    AccountType,
    Category,
    CategoryType,
    ExpenseItem,
)
from pixelledger.services.llm import LLMClient
from pixelledger.services.storage import InMemoryStorage


# Wednesday afternoon, mid-month
NOW = datetime(2024, 5, 15, 14, 30, 0)


def make_expense(
    amount: str,
    category: str = "餐饮",
    title: str = "",
    date: Optional[datetime] = None,
    account_name: Optional[str] = None,
    category_type: CategoryType = CategoryType.EXPENSE,
) -> ExpenseItem:
    return ExpenseItem(
        amount=Decimal(amount),
        category=category,
        type=category_type,
        title=title,
        date=date or NOW,
        account_name=account_name,
    )


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def app_settings() -> AppSettings:
    return AppSettings(
        currency_symbol="¥",
        display_list_limit=10,
        context_list_limit=20,
        summarize_results=False,
        rule_based_fallback=True,
        max_transaction_amount=1000000.0,
        future_date_tolerance_days=1,
    )


@pytest.fixture
def food_category() -> Category:
    return Category(name="餐饮", symbol_name="fork.knife", hex_color="#FF9500")


@pytest.fixture
def salary_category() -> Category:
    return Category(
        name="工资",
        symbol_name="banknote.fill",
        hex_color="#FFCC00",
        type=CategoryType.INCOME,
    )


@pytest.fixture
def wechat_account() -> Account:
    return Account(
        name="微信支付",
        balance=Decimal("100.00"),
        type=AccountType.EWALLET,
        hex_color="#07C160",
        icon_name="message.fill",
    )


@pytest.fixture
def mock_client() -> AsyncMock:
    """An LLMClient whose complete() is scripted per test."""
    client = AsyncMock(spec=LLMClient)
    client.complete = AsyncMock()
    return client


async def seed_catalog(storage, *items) -> None:
    """Save categories and accounts into storage."""
    for item in items:
        if isinstance(item, Category):
            await storage.save_category(item)
        else:
            await storage.save_account(item)
