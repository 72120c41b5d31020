"""Tests for ledger services and the default catalog."""

import pytest
from datetime import datetime
from decimal import Decimal

from pixelledger.audit import AuditLogger
from pixelledger.ledger import (
    BALANCE_ADJUSTMENT_CATEGORY,
    BALANCE_ADJUSTMENT_TITLE,
    AccountService,
    DataSeeder,
    LedgerService,
    default_accounts,
    default_categories,
)
from pixelledger.models.audit import AuditEventType
from pixelledger.models.ledger import Account, Category, CategoryType
from pixelledger.services.storage import NotFoundError

from conftest import NOW, seed_catalog


@pytest.fixture
def ledger(storage) -> LedgerService:
    return LedgerService(storage, storage, AuditLogger(storage))


@pytest.fixture
def accounts(storage) -> AccountService:
    return AccountService(storage, storage, AuditLogger(storage))


class TestLedgerService:
    """Tests for recording transactions."""

    @pytest.mark.asyncio
    async def test_expense_reduces_balance(self, storage, ledger, food_category, wechat_account):
        await seed_catalog(storage, food_category, wechat_account)

        expense = await ledger.add_expense(
            Decimal("35.50"), "餐饮", title="Lunch", date=NOW, account_name="微信支付"
        )

        assert await storage.get_expense_by_id(expense.id) == expense
        account = await storage.get_account_by_name("微信支付")
        assert account.balance == Decimal("64.50")
        category = await storage.get_category_by_name("餐饮")
        assert category.usage_count == 1

    @pytest.mark.asyncio
    async def test_income_increases_balance(self, storage, ledger, salary_category, wechat_account):
        await seed_catalog(storage, salary_category, wechat_account)

        await ledger.add_expense(Decimal("5000"), "工资", account_name="微信支付")

        account = await storage.get_account_by_name("微信支付")
        assert account.balance == Decimal("5100.00")

    @pytest.mark.asyncio
    async def test_income_is_recorded_on_the_entry(self, storage, ledger, salary_category):
        await seed_catalog(storage, salary_category)
        expense = await ledger.add_expense(Decimal("5000"), "工资")
        assert expense.type == CategoryType.INCOME
        assert (await storage.get_expense_by_id(expense.id)).type == CategoryType.INCOME

    @pytest.mark.asyncio
    async def test_explicit_type_picks_same_named_category(self, storage, ledger, wechat_account):
        await seed_catalog(
            storage,
            wechat_account,
            Category(name="Refund", type=CategoryType.EXPENSE),
            Category(name="Refund", type=CategoryType.INCOME),
        )

        expense = await ledger.add_expense(
            Decimal("20"), "Refund", account_name="微信支付", category_type=CategoryType.INCOME
        )

        assert expense.type == CategoryType.INCOME
        assert (await storage.get_account_by_name("微信支付")).balance == Decimal("120.00")
        income = await storage.get_category_by_name("Refund", CategoryType.INCOME)
        expense_side = await storage.get_category_by_name("Refund", CategoryType.EXPENSE)
        assert (income.usage_count, expense_side.usage_count) == (1, 0)

    @pytest.mark.asyncio
    async def test_without_account_leaves_balances(self, storage, ledger, food_category, wechat_account):
        await seed_catalog(storage, food_category, wechat_account)
        await ledger.add_expense(Decimal("10"), "餐饮")
        account = await storage.get_account_by_name("微信支付")
        assert account.balance == Decimal("100.00")

    @pytest.mark.asyncio
    async def test_unknown_category_is_an_expense(self, storage, ledger, wechat_account):
        await seed_catalog(storage, wechat_account)
        expense = await ledger.add_expense(Decimal("8"), "Parking", account_name="微信支付")

        assert expense.category == "Parking"
        account = await storage.get_account_by_name("微信支付")
        assert account.balance == Decimal("92.00")

    @pytest.mark.asyncio
    async def test_unknown_account_raises(self, storage, ledger, food_category):
        await seed_catalog(storage, food_category)
        with pytest.raises(NotFoundError):
            await ledger.add_expense(Decimal("8"), "餐饮", account_name="Visa")
        assert await storage.list_expenses() == []

    @pytest.mark.asyncio
    async def test_save_is_audited(self, storage, ledger, food_category):
        await seed_catalog(storage, food_category)
        await ledger.add_expense(Decimal("8"), "餐饮")
        events = await storage.get_recent_events()
        assert [e.event_type for e in events] == [AuditEventType.EXPENSE_SAVED]


class TestAccountService:
    """Tests for manual balance corrections."""

    @pytest.mark.asyncio
    async def test_negligible_change_is_ignored(self, storage, accounts, wechat_account):
        await seed_catalog(storage, wechat_account)
        result = await accounts.adjust_balance(wechat_account, Decimal("100.0005"))
        assert result is None
        assert await storage.list_expenses() == []

    @pytest.mark.asyncio
    async def test_increase_records_income(self, storage, accounts, wechat_account):
        await seed_catalog(storage, wechat_account)

        adjustment = await accounts.adjust_balance(wechat_account, Decimal("150"))

        assert adjustment.amount == Decimal("50.00")
        assert adjustment.type == CategoryType.INCOME
        assert adjustment.title == BALANCE_ADJUSTMENT_TITLE
        assert adjustment.account_name == "微信支付"
        category = await storage.get_category_by_name(
            BALANCE_ADJUSTMENT_CATEGORY, CategoryType.INCOME
        )
        assert category is not None
        assert category.usage_count == 1

    @pytest.mark.asyncio
    async def test_decrease_records_expense(self, storage, accounts, wechat_account):
        await seed_catalog(storage, wechat_account)

        adjustment = await accounts.adjust_balance(wechat_account, Decimal("70"))

        assert adjustment.amount == Decimal("30.00")
        assert adjustment.type == CategoryType.EXPENSE
        assert adjustment.category == BALANCE_ADJUSTMENT_CATEGORY
        assert await storage.get_category_by_name(
            BALANCE_ADJUSTMENT_CATEGORY, CategoryType.EXPENSE
        ) is not None

    @pytest.mark.asyncio
    async def test_balance_is_set_not_reapplied(self, storage, accounts, wechat_account):
        await seed_catalog(storage, wechat_account)
        await accounts.adjust_balance(wechat_account, Decimal("70"))
        account = await storage.get_account_by_name("微信支付")
        assert account.balance == Decimal("70")

    @pytest.mark.asyncio
    async def test_adjustment_category_is_reused(self, storage, accounts, wechat_account):
        await seed_catalog(storage, wechat_account)
        await accounts.adjust_balance(wechat_account, Decimal("70"))
        await accounts.adjust_balance(wechat_account, Decimal("60"))

        categories = await storage.list_categories()
        assert len(categories) == 1
        assert categories[0].usage_count == 2
        assert len(await storage.list_expenses()) == 2

    @pytest.mark.asyncio
    async def test_adjustment_is_audited(self, storage, accounts, wechat_account):
        await seed_catalog(storage, wechat_account)
        await accounts.adjust_balance(wechat_account, Decimal("70"))
        events = await storage.get_recent_events()
        assert events[0].event_type == AuditEventType.BALANCE_ADJUSTED


class TestDataSeeder:
    """Tests for the default catalog."""

    def test_defaults(self):
        categories = default_categories()
        assert len(categories) == 27
        assert sum(1 for c in categories if c.is_income) == 5
        assert [a.name for a in default_accounts()] == [
            "微信支付", "支付宝", "银行卡", "现金", "信用卡/花呗",
        ]

    @pytest.mark.asyncio
    async def test_empty_catalog_is_seeded(self, storage):
        seeder = DataSeeder(storage, AuditLogger(storage))
        assert await seeder.ensure_defaults() == (27, 5)

        events = await storage.get_recent_events()
        assert events[0].event_type == AuditEventType.DEFAULTS_SEEDED

    @pytest.mark.asyncio
    async def test_second_run_creates_nothing(self, storage):
        seeder = DataSeeder(storage)
        await seeder.ensure_defaults()
        assert await seeder.ensure_defaults() == (0, 0)
        assert len(await storage.list_categories()) == 27

    @pytest.mark.asyncio
    async def test_existing_categories_are_kept(self, storage, food_category):
        await seed_catalog(storage, food_category)
        created = await DataSeeder(storage).ensure_defaults()
        assert created == (0, 5)
        assert len(await storage.list_categories()) == 1

    @pytest.mark.asyncio
    async def test_existing_account_icons_are_refreshed(self, storage):
        await seed_catalog(
            storage,
            Account(name="支付宝", icon_name="creditcard.fill"),
            Account(name="My Bank", icon_name="building.columns"),
        )

        assert await DataSeeder(storage).ensure_defaults() == (27, 0)

        assert (await storage.get_account_by_name("支付宝")).icon_name == "qrcode.viewfinder"
        assert (await storage.get_account_by_name("My Bank")).icon_name == "building.columns"
