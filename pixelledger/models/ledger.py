"""
Core Data Models for PixelLedger

These models define the schemas for everything the ledger stores:
expense records, categories, and accounts. They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging

DESIGN DECISION: An ExpenseItem references its category and account by NAME,
not by ID. Renaming a category therefore does not rewrite history, and the
AI pipeline can filter on the same strings it shows to the model.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class CategoryType(str, Enum):
    """Whether a category records money going out or coming in."""
    EXPENSE = "Expense"
    INCOME = "Income"


class AccountType(str, Enum):
    """Kinds of accounts a user can hold."""
    CASH = "cash"
    DEBIT_CARD = "debitCard"
    CREDIT_CARD = "creditCard"
    EWALLET = "ewallet"
    INVESTMENT = "investment"
    RENOVATION = "renovation"
    OTHER = "other"


# =============================================================================
# LEDGER RECORDS
# =============================================================================

class ExpenseItem(BaseModel):
    """
    A single ledger entry.

    Despite the name this covers income too. The direction is fixed when
    the record is saved, since the same category name may exist once as
    income and once as expense.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique record ID"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Absolute amount of the transaction"
    )
    title: str = Field(
        default="",
        max_length=200,
        description="Free-text note shown in lists"
    )
    date: datetime = Field(
        default_factory=datetime.now,
        description="When the transaction happened (local time)"
    )
    category: str = Field(
        ...,
        min_length=1,
        description="Category name"
    )
    type: CategoryType = Field(
        default=CategoryType.EXPENSE,
        description="Direction of the money: Expense subtracts, Income adds"
    )
    account_name: Optional[str] = Field(
        default=None,
        description="Account (payment method) name, if known"
    )

    @field_validator('account_name')
    @classmethod
    def blank_account_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @field_validator('date')
    @classmethod
    def drop_timezone(cls, v: datetime) -> datetime:
        """Ledger dates are naive local time."""
        if v.tzinfo is not None:
            return v.astimezone().replace(tzinfo=None)
        return v


class Category(BaseModel):
    """A spending or income category."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=50)
    symbol_name: str = Field(default="questionmark.circle")
    hex_color: str = Field(default="#8E8E93", pattern=r"^#[0-9A-Fa-f]{3,8}$")
    type: CategoryType = Field(default=CategoryType.EXPENSE)
    usage_count: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def is_income(self) -> bool:
        return self.type == CategoryType.INCOME


class Account(BaseModel):
    """A place money lives: a wallet, a card, cash in hand."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=50)
    balance: Decimal = Field(default=Decimal("0"))
    type: AccountType = Field(default=AccountType.CASH)
    hex_color: str = Field(default="#8E8E93", pattern=r"^#[0-9A-Fa-f]{3,8}$")
    icon_name: str = Field(default="creditcard.fill")
    created_at: datetime = Field(default_factory=datetime.now)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation of an AI-parsed transaction.

    Stage 1: Schema validation (amount present and positive)
    Stage 2: Semantic validation (dates, magnitudes, known names, duplicates)
    """

    draft_id: UUID = Field(
        ...,
        description="ID of the draft being validated"
    )
    validated_at: datetime = Field(
        default_factory=datetime.now
    )

    schema_valid: bool
    semantic_valid: bool
    is_valid: bool
    can_save: bool = Field(
        ...,
        description="Can the draft be turned into an ExpenseItem?"
    )

    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
