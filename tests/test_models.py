"""
Tests for PixelLedger

Test strategy:
1. Unit tests for individual components (models, validators)
2. Integration tests for flows (with mocked external services)
3. No real API calls in tests (use mocks)
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from pixelledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from pixelledger.models.intent import (
    ChatMessage,
    QueryResult,
    Operation,
    TransactionDraft,
)
from pixelledger.models.ledger import (
    Account,
    Category,
    CategoryType,
    ExpenseItem,
    ValidationIssue,
    ValidationResult,
)
from pixelledger.models.llm_config import LLMConfig, LLMProviderType

from conftest import NOW


class TestLedgerModels:
    """Tests for ledger Pydantic models."""

    def test_expense_item_creation(self):
        """Test ExpenseItem model creation."""
        expense = ExpenseItem(
            amount=Decimal("35.50"),
            title="Lunch",
            category="餐饮",
            account_name="微信支付",
            date=NOW,
        )
        assert expense.amount == Decimal("35.50")
        assert expense.category == "餐饮"
        assert expense.account_name == "微信支付"

    def test_expense_item_rejects_negative_amount(self):
        """Amounts are absolute; direction comes from the category."""
        with pytest.raises(ValueError):
            ExpenseItem(amount=Decimal("-1"), category="餐饮")

    def test_expense_item_blank_account_is_none(self):
        """Test that an empty account name is stored as None."""
        expense = ExpenseItem(amount=Decimal("1"), category="餐饮", account_name="  ")
        assert expense.account_name is None

    def test_expense_item_converts_zoned_date_to_local(self):
        """Ledger dates are naive local time."""
        zoned = datetime(2024, 5, 15, 6, 30, tzinfo=timezone.utc)
        expense = ExpenseItem(amount=Decimal("1"), category="餐饮", date=zoned)
        assert expense.date.tzinfo is None
        assert expense.date == zoned.astimezone().replace(tzinfo=None)

    def test_category_defaults(self):
        """Test Category defaults to an expense category."""
        category = Category(name="  餐饮  ")
        assert category.name == "餐饮"
        assert category.type == CategoryType.EXPENSE
        assert category.usage_count == 0
        assert category.is_income is False

    def test_category_rejects_bad_color(self):
        """Test hex colour validation."""
        with pytest.raises(ValueError):
            Category(name="Food", hex_color="orange")

    def test_account_balance_is_decimal(self):
        """Test Account balance coercion."""
        account = Account(name="现金", balance="12.30")
        assert account.balance == Decimal("12.30")


class TestTransactionDraft:
    """Tests for the AI-parsed transaction draft."""

    def test_amount_is_rounded_to_cents(self):
        draft = TransactionDraft(amount=35.456)
        assert draft.amount == Decimal("35.46")

    def test_unparseable_amount_is_none(self):
        draft = TransactionDraft(amount="about fifty")
        assert draft.amount is None

    def test_null_words_become_none(self):
        draft = TransactionDraft(amount=10, category_name="null", account_name="None")
        assert draft.category_name is None
        assert draft.account_name is None

    def test_relative_date_keeps_time_of_day(self):
        """A relative offset moves the day but keeps the clock time."""
        draft = TransactionDraft(amount=10, date="-1d")
        assert draft.resolve_date(NOW) == NOW - timedelta(days=1)

    def test_missing_date_is_now(self):
        draft = TransactionDraft(amount=10)
        assert draft.resolve_date(NOW) == NOW

    def test_from_llm_text_strips_fences(self):
        draft = TransactionDraft.from_llm_text(
            '```json\n{"amount": 30, "category_name": "出租车", "note": "打车"}\n```'
        )
        assert draft.amount == Decimal("30.00")
        assert draft.category_name == "出租车"
        assert draft.note == "打车"


class TestResultModels:
    """Tests for QueryResult and ChatMessage."""

    def test_query_result_data_found(self):
        result = QueryResult(operation=Operation.COUNT, record_count=3)
        assert result.data_found is True
        assert QueryResult(operation=Operation.COUNT).data_found is False

    def test_chat_message_defaults(self):
        message = ChatMessage(content="hi", is_user=True)
        assert message.id is not None
        assert message.timestamp is not None


class TestLLMConfig:
    """Tests for provider configuration models."""

    def test_preset_fills_endpoint(self):
        config = LLMConfig.preset(LLMProviderType.DEEPSEEK)
        assert config.base_url == "https://api.deepseek.com"
        assert config.model_name == "deepseek-chat"
        assert config.name == "DeepSeek"

    def test_display_names(self):
        assert LLMProviderType.QWEN.display_name == "通义千问"
        assert LLMProviderType.OPENAI.display_name == "OpenAI"

    def test_only_gemini_is_not_openai_compatible(self):
        incompatible = [p for p in LLMProviderType if not p.is_openai_compatible]
        assert incompatible == [LLMProviderType.GEMINI]

    def test_trailing_slash_is_removed(self):
        config = LLMConfig(
            name="Local",
            provider_type=LLMProviderType.OLLAMA,
            base_url="http://localhost:11434/v1/",
            model_name="llama3",
        )
        assert config.base_url == "http://localhost:11434/v1"


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.QUERY_RECEIVED,
            description="Test query",
        )
        assert event.event_type == AuditEventType.QUERY_RECEIVED
        assert event.severity == AuditSeverity.INFO
        assert event.timestamp.tzinfo is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.EXPENSE_SAVED,
            description="Expense saved",
            details={"category": "餐饮", "amount": "35.00"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "expense_saved"
        assert log_dict["details"]["category"] == "餐饮"

    def test_audit_event_to_row(self):
        """Test conversion to a tabular row."""
        event = AuditEvent(
            event_type=AuditEventType.BALANCE_ADJUSTED,
            description="Balance adjusted",
            is_user_action=True,
        )
        row = event.to_row()
        assert len(row) == 11
        assert row[2] == "balance_adjusted"
        assert row[10] == "True"

    def test_builder_query_received(self):
        correlation_id = uuid4()
        event = AuditEventBuilder.query_received("How much this month?", correlation_id)
        assert event.event_type == AuditEventType.QUERY_RECEIVED
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True

    def test_builder_csv_imported_with_failures_is_warning(self):
        event = AuditEventBuilder.csv_imported(success_count=5, failed_count=2)
        assert event.severity == AuditSeverity.WARNING
        assert event.details == {"success_count": 5, "failed_count": 2}

    def test_builder_csv_imported_clean_is_info(self):
        event = AuditEventBuilder.csv_imported(success_count=5, failed_count=0)
        assert event.severity == AuditSeverity.INFO


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            draft_id=uuid4(),
            schema_valid=False,
            semantic_valid=False,
            is_valid=False,
            can_save=False,
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="missing",
                    message="Amount required",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            draft_id=uuid4(),
            schema_valid=True,
            semantic_valid=True,
            is_valid=True,
            can_save=True,
            issues=[
                ValidationIssue(
                    field="date",
                    issue_type="future_date",
                    message="Date in future",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
