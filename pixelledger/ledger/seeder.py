"""
Default catalog for a fresh ledger.

Categories are seeded only when none exist and accounts only when none
exist, so user edits are never overwritten. Accounts that already exist
under a default name get their icon refreshed.
"""

from typing import Optional

import structlog

from pixelledger.audit import AuditLogger
from pixelledger.models.audit import AuditEventBuilder
from pixelledger.models.ledger import (
    Account,
    AccountType,
    Category,
    CategoryType,
)
from pixelledger.services.storage.interface import CatalogStorageInterface


logger = structlog.get_logger(__name__)


# (name, symbol, colour) grouped by colour family
DEFAULT_EXPENSE_CATEGORIES = [
    # Food
    ("餐饮", "fork.knife", "#FF9500"),
    ("零食", "cup.and.saucer.fill", "#FF9500"),
    ("杂货", "basket.fill", "#FF9500"),
    ("酒精", "wineglass.fill", "#FF9500"),
    # Transport
    ("公共交通", "tram.fill", "#007AFF"),
    ("出租车", "car.fill", "#007AFF"),
    ("旅行", "airplane", "#007AFF"),
    # Shopping
    ("日常需求", "cart.fill", "#FF2D55"),
    ("衣服", "tshirt.fill", "#FF2D55"),
    ("电子产品", "desktopcomputer", "#FF2D55"),
    ("家具", "chair.lounge.fill", "#FF2D55"),
    # Housing
    ("房租/房贷", "house.fill", "#34C759"),
    ("水电费", "bolt.fill", "#34C759"),
    ("网络", "wifi", "#34C759"),
    # Entertainment
    ("电影", "movieclapper.fill", "#AF52DE"),
    ("游戏", "gamecontroller.fill", "#AF52DE"),
    ("运动", "figure.run", "#AF52DE"),
    ("宠物", "pawprint.fill", "#AF52DE"),
    # Medical and others
    ("医疗", "cross.case.fill", "#8E8E93"),
    ("教育", "book.closed.fill", "#8E8E93"),
    ("社交", "envelope.fill", "#8E8E93"),
    ("其他", "ellipsis.circle.fill", "#8E8E93"),
]

DEFAULT_INCOME_CATEGORIES = [
    ("工资", "banknote.fill", "#FFCC00"),
    ("奖金", "dollarsign.circle.fill", "#FFCC00"),
    ("投资", "chart.line.uptrend.xyaxis", "#FFCC00"),
    ("兼职", "briefcase.fill", "#FFCC00"),
    ("其他收入", "tray.and.arrow.down.fill", "#FFCC00"),
]

# (name, type, colour, icon)
DEFAULT_ACCOUNTS = [
    ("微信支付", AccountType.EWALLET, "#07C160", "message.fill"),
    ("支付宝", AccountType.EWALLET, "#1677FF", "qrcode.viewfinder"),
    ("银行卡", AccountType.DEBIT_CARD, "#FF3B30", "creditcard.fill"),
    ("现金", AccountType.CASH, "#FF9500", "banknote.fill"),
    ("信用卡/花呗", AccountType.CREDIT_CARD, "#5856D6", "creditcard.fill"),
]

ACCOUNT_ICONS = {name: icon for name, _, _, icon in DEFAULT_ACCOUNTS}


def default_categories() -> list[Category]:
    categories = [
        Category(name=name, symbol_name=symbol, hex_color=color, type=CategoryType.EXPENSE)
        for name, symbol, color in DEFAULT_EXPENSE_CATEGORIES
    ]
    categories.extend(
        Category(name=name, symbol_name=symbol, hex_color=color, type=CategoryType.INCOME)
        for name, symbol, color in DEFAULT_INCOME_CATEGORIES
    )
    return categories


def default_accounts() -> list[Account]:
    return [
        Account(name=name, type=account_type, hex_color=color, icon_name=icon)
        for name, account_type, color, icon in DEFAULT_ACCOUNTS
    ]


class DataSeeder:
    """Fills an empty catalog with the default categories and accounts."""

    def __init__(
        self,
        catalog_storage: CatalogStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._catalog = catalog_storage
        self._audit = audit_logger or AuditLogger()

    async def ensure_defaults(self) -> tuple[int, int]:
        """
        Seed whatever part of the catalog is empty.

        Returns:
            (categories_created, accounts_created)
        """
        categories_created = 0
        accounts_created = 0

        if not await self._catalog.list_categories():
            for category in default_categories():
                await self._catalog.save_category(category)
                categories_created += 1

        existing_accounts = await self._catalog.list_accounts()
        if not existing_accounts:
            for account in default_accounts():
                await self._catalog.save_account(account)
                accounts_created += 1
        else:
            await self._refresh_account_icons(existing_accounts)

        if categories_created or accounts_created:
            await self._audit.log(
                AuditEventBuilder.defaults_seeded(categories_created, accounts_created)
            )
        return categories_created, accounts_created

    async def _refresh_account_icons(self, accounts: list[Account]) -> None:
        for account in accounts:
            icon = ACCOUNT_ICONS.get(account.name)
            if icon and account.icon_name != icon:
                account.icon_name = icon
                await self._catalog.save_account(account)
                logger.info("account_icon_updated", account=account.name, icon=icon)
