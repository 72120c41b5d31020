"""
Data Models Package

This package contains all Pydantic models used by PixelLedger.
All data flowing through the system must conform to these schemas.
"""

from pixelledger.models.ledger import (
    Account,
    AccountType,
    Category,
    CategoryType,
    ExpenseItem,
    ValidationIssue,
    ValidationResult,
)
from pixelledger.models.intent import (
    ChatMessage,
    IntentParseError,
    Operation,
    QueryIntent,
    QueryResult,
    TransactionDraft,
    format_intent_date,
    parse_intent_date,
    strip_code_fences,
)
from pixelledger.models.llm_config import LLMConfig, LLMProviderType
from pixelledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Account",
    "AccountType",
    "Category",
    "CategoryType",
    "ExpenseItem",
    "ValidationIssue",
    "ValidationResult",
    # Intent models
    "ChatMessage",
    "IntentParseError",
    "Operation",
    "QueryIntent",
    "QueryResult",
    "TransactionDraft",
    "format_intent_date",
    "parse_intent_date",
    "strip_code_fences",
    # LLM configuration
    "LLMConfig",
    "LLMProviderType",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
