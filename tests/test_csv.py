"""Tests for CSV export and import."""

import pytest
from datetime import date, datetime
from decimal import Decimal

from pixelledger.audit import AuditLogger
from pixelledger.ledger import (
    BALANCE_ADJUSTMENT_CATEGORY,
    AccountService,
    CannotReadFileError,
    CSVBackupService,
    InvalidCSVFormatError,
    export_filename,
    generate_csv,
)
from pixelledger.models.audit import AuditEventType
from pixelledger.models.ledger import Account, Category, CategoryType
from pixelledger.services.storage import InMemoryStorage

from conftest import make_expense, seed_catalog


HEADER = "Date,Time,Type,Amount,Category,Account,Note"


@pytest.fixture
def backup(storage) -> CSVBackupService:
    return CSVBackupService(storage, storage, AuditLogger(storage))


class TestGenerateCSV:
    """Tests for rendering records."""

    def test_layout(self):
        expenses = [
            make_expense("35.5", title="Lunch", account_name="微信支付"),
            make_expense(
                "5000",
                category="工资",
                date=datetime(2024, 5, 1, 9, 5),
                category_type=CategoryType.INCOME,
            ),
        ]

        content = generate_csv(expenses)

        assert content.startswith("\ufeff")
        lines = content.lstrip("\ufeff").splitlines()
        assert lines == [
            HEADER,
            "2024-05-15,14:30,Expense,35.50,餐饮,微信支付,Lunch",
            "2024-05-01,09:05,Income,5000.00,工资,,",
        ]

    def test_fields_with_commas_are_quoted(self):
        content = generate_csv([make_expense("3", title='Tea, "large"')])
        assert content.splitlines()[1].endswith(',"Tea, ""large"""')

    def test_empty_ledger_is_header_only(self):
        assert generate_csv([]) == "\ufeff" + HEADER + "\n"

    def test_filename(self):
        assert export_filename(date(2024, 5, 15)) == "PixelLedger_Backup_2024-05-15.csv"


class TestExport:
    """Tests for exporting from storage."""

    @pytest.mark.asyncio
    async def test_export_is_audited(self, storage, backup):
        await storage.save_expense(make_expense("1"))
        content = await backup.export_csv()

        assert len(content.splitlines()) == 2
        events = await storage.get_recent_events()
        assert events[0].event_type == AuditEventType.CSV_EXPORTED
        assert events[0].details["record_count"] == 1

    @pytest.mark.asyncio
    async def test_write_backup(self, storage, backup, tmp_path):
        await storage.save_expense(make_expense("1"))
        path = await backup.write_backup(tmp_path / "exports", day=date(2024, 5, 15))

        assert path.name == "PixelLedger_Backup_2024-05-15.csv"
        assert path.read_text(encoding="utf-8").startswith("\ufeff" + HEADER)


class TestImport:
    """Tests for reading backups back in."""

    @pytest.mark.asyncio
    async def test_rows_are_imported(self, storage, backup, food_category, wechat_account):
        await seed_catalog(storage, food_category, wechat_account)
        content = "\n".join([
            HEADER,
            "2024-05-15,12:00,Expense,35.50,餐饮,微信支付,Lunch",
            "2024-05-14,09:00,Income,20,红包,微信支付,",
        ])

        result = await backup.import_csv(content)

        assert (result.success, result.failed, result.total) == (2, 0, 2)
        account = await storage.get_account_by_name("微信支付")
        assert account.balance == Decimal("84.50")
        assert (await storage.get_category_by_name("餐饮")).usage_count == 1

        red_packet = await storage.get_category_by_name("红包")
        assert red_packet.type == CategoryType.INCOME

        titles = sorted(e.title for e in await storage.list_expenses())
        assert titles == ["Lunch", "红包"]

    @pytest.mark.asyncio
    async def test_missing_names_are_created(self, storage, backup):
        content = HEADER + "\n2024-05-15,12:00,Expense,8,,Visa,Parking\n"

        result = await backup.import_csv(content)

        assert result.success == 1
        assert await storage.get_category_by_name("未分类") is not None
        visa = await storage.get_account_by_name("Visa")
        assert visa.icon_name == "creditcard.fill"
        assert visa.balance == Decimal("-8")

    @pytest.mark.asyncio
    async def test_bad_rows_are_counted(self, storage, backup):
        content = "\n".join([
            HEADER,
            "2024-05-15,12:00,Expense,8,餐饮",
            "15/05/2024,12:00,Expense,8,餐饮,,",
            "2024-05-15,12:00,Expense,abc,餐饮,,",
            "2024-05-15,12:00,Expense,-5,餐饮,,",
            "2024-05-15,12:00,Expense,NaN,餐饮,,",
            "2024-05-15,12:00,Expense,8,餐饮,,ok",
        ])

        result = await backup.import_csv(content)

        assert (result.success, result.failed) == (1, 5)

    @pytest.mark.asyncio
    async def test_reimport_skips_duplicates(self, storage, backup, food_category, wechat_account):
        await seed_catalog(storage, food_category, wechat_account)
        await storage.save_expense(make_expense("35.50", title="Lunch", account_name="微信支付"))
        await storage.save_expense(make_expense("12", date=datetime(2024, 5, 14, 8, 0)))

        result = await backup.import_csv(await backup.export_csv())

        assert (result.success, result.failed) == (0, 0)
        assert len(await storage.list_expenses()) == 2
        assert (await storage.get_account_by_name("微信支付")).balance == Decimal("100.00")

    @pytest.mark.asyncio
    async def test_adjustments_keep_direction_across_backup(self, storage, backup, wechat_account):
        await seed_catalog(storage, wechat_account)
        service = AccountService(storage, storage)
        await service.adjust_balance(wechat_account, Decimal("50"))
        await service.adjust_balance(wechat_account, Decimal("200"))

        content = await backup.export_csv()
        rows = content.lstrip("\ufeff").splitlines()[1:]
        assert sorted(row.split(",")[2] for row in rows) == ["Expense", "Income"]

        fresh = InMemoryStorage()
        await seed_catalog(fresh, Account(name="微信支付", balance=Decimal("100.00")))
        result = await CSVBackupService(fresh, fresh).import_csv(content)

        assert result.success == 2
        assert (await fresh.get_account_by_name("微信支付")).balance == Decimal("200.00")
        for category_type in CategoryType:
            category = await fresh.get_category_by_name(
                BALANCE_ADJUSTMENT_CATEGORY, category_type
            )
            assert category.usage_count == 1

    @pytest.mark.asyncio
    async def test_type_column_selects_category(self, storage, backup, wechat_account):
        await seed_catalog(storage, wechat_account, Category(name="Refund"))

        result = await backup.import_csv(
            HEADER + "\n2024-05-15,12:00,Income,20,Refund,微信支付,\n"
        )

        assert result.success == 1
        assert (await storage.get_account_by_name("微信支付")).balance == Decimal("120.00")
        income = await storage.get_category_by_name("Refund", CategoryType.INCOME)
        assert income.usage_count == 1
        assert (await storage.get_category_by_name("Refund", CategoryType.EXPENSE)).usage_count == 0
        assert (await storage.list_expenses())[0].type == CategoryType.INCOME

    @pytest.mark.asyncio
    async def test_bom_and_blank_lines(self, storage, backup):
        content = "\ufeff" + HEADER + "\n\n2024-05-15,12:00,Expense,8,餐饮,,\n\n"
        result = await backup.import_csv(content)
        assert result.success == 1

    @pytest.mark.parametrize("content", ["", "\ufeff", HEADER, HEADER + "\n\n  \n"])
    @pytest.mark.asyncio
    async def test_no_data_rows_is_invalid(self, backup, content):
        with pytest.raises(InvalidCSVFormatError) as exc_info:
            await backup.import_csv(content)
        assert str(exc_info.value).startswith("Invalid file format:")

    @pytest.mark.asyncio
    async def test_import_is_audited(self, storage, backup):
        await backup.import_csv(HEADER + "\n2024-05-15,12:00,Expense,x,餐饮,,\n")
        events = await storage.get_recent_events()
        assert events[0].event_type == AuditEventType.CSV_IMPORTED
        assert events[0].details == {"success_count": 0, "failed_count": 1}

    @pytest.mark.asyncio
    async def test_import_file(self, storage, backup, tmp_path):
        path = tmp_path / "backup.csv"
        path.write_text(HEADER + "\n2024-05-15,12:00,Expense,8,餐饮,,\n", encoding="utf-8")
        result = await backup.import_file(path)
        assert result.success == 1

    @pytest.mark.asyncio
    async def test_unreadable_file(self, backup, tmp_path):
        with pytest.raises(CannotReadFileError):
            await backup.import_file(tmp_path / "missing.csv")

    @pytest.mark.asyncio
    async def test_not_utf8(self, backup, tmp_path):
        path = tmp_path / "backup.csv"
        path.write_bytes(b"\xff\xfe\x00bad")
        with pytest.raises(CannotReadFileError):
            await backup.import_file(path)
