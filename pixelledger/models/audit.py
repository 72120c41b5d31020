"""
Audit Models for PixelLedger

Every significant action in the assistant and the ledger is logged.
This provides:
1. Traceability from a chat question to the records that answered it
2. Debugging information when an LLM reply goes wrong
3. A history of balance changes the user did not type in by hand

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Each step of the question pipeline and each ledger mutation
    has its own event type.
    """
    # Assistant pipeline
    QUERY_RECEIVED = "query_received"
    INTENT_PARSED = "intent_parsed"
    QUERY_EXECUTED = "query_executed"
    QUERY_FAILED = "query_failed"
    RESPONSE_GENERATED = "response_generated"

    # Ledger mutations
    EXPENSE_SAVED = "expense_saved"
    BALANCE_ADJUSTED = "balance_adjusted"
    DEFAULTS_SEEDED = "defaults_seeded"
    TRANSACTION_VALIDATION_FAILED = "transaction_validation_failed"

    # Backup
    CSV_EXPORTED = "csv_exported"
    CSV_IMPORTED = "csv_imported"

    # LLM configuration
    LLM_CONFIG_SAVED = "llm_config_saved"
    LLM_CONFIG_DELETED = "llm_config_deleted"
    LLM_CONFIG_ACTIVATED = "llm_config_activated"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'account', 'query')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events of one chat message)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_row(self) -> list:
        """
        Flatten into a row for tabular audit stores.

        Columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, ensure_ascii=False, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.query_received(query_text, correlation_id)
        event = AuditEventBuilder.expense_saved(expense_id, "餐饮", "35.00", correlation_id)
    """

    @staticmethod
    def query_received(
        query_text: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.QUERY_RECEIVED,
            entity_type="query",
            correlation_id=correlation_id,
            description="Question received from user",
            details={"query_text": query_text[:200]},
            is_user_action=True,
        )

    @staticmethod
    def intent_parsed(
        operation: str,
        intent: dict,
        source: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INTENT_PARSED,
            entity_type="query",
            correlation_id=correlation_id,
            description=f"Intent parsed as '{operation}' by {source}",
            details={"intent": intent, "source": source},
        )

    @staticmethod
    def query_executed(
        query_id: UUID,
        operation: str,
        result_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.QUERY_EXECUTED,
            entity_type="query",
            entity_id=query_id,
            correlation_id=correlation_id,
            description=f"Query executed: {operation} matched {result_count} records",
            details={
                "operation": operation,
                "result_count": result_count,
            },
        )

    @staticmethod
    def query_failed(
        query_text: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.QUERY_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="query",
            correlation_id=correlation_id,
            description="Question could not be answered",
            error_message=error_message,
            details={"query_text": query_text[:200]},
        )

    @staticmethod
    def response_generated(
        summarized: bool,
        response_length: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RESPONSE_GENERATED,
            entity_type="query",
            correlation_id=correlation_id,
            description="Assistant reply generated",
            details={
                "summarized": summarized,
                "response_length": response_length,
            },
        )

    @staticmethod
    def expense_saved(
        expense_id: UUID,
        category: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_SAVED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense saved: {category} - {amount}",
            details={
                "category": category,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def balance_adjusted(
        account_id: UUID,
        account_name: str,
        old_balance: str,
        new_balance: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCE_ADJUSTED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Balance of {account_name} adjusted from {old_balance} to {new_balance}",
            details={
                "account": account_name,
                "old_balance": old_balance,
                "new_balance": new_balance,
            },
            is_user_action=True,
        )

    @staticmethod
    def defaults_seeded(
        categories_created: int,
        accounts_created: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEFAULTS_SEEDED,
            entity_type="catalog",
            description=(
                f"Seeded {categories_created} categories and "
                f"{accounts_created} accounts"
            ),
            details={
                "categories_created": categories_created,
                "accounts_created": accounts_created,
            },
        )

    @staticmethod
    def validation_failed(
        draft_id: UUID,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="draft",
            entity_id=draft_id,
            correlation_id=correlation_id,
            description=f"Transaction draft failed validation with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def csv_exported(
        filename: str,
        record_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CSV_EXPORTED,
            entity_type="backup",
            description=f"Exported {record_count} records to {filename}",
            details={
                "filename": filename,
                "record_count": record_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def csv_imported(
        success_count: int,
        failed_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CSV_IMPORTED,
            severity=AuditSeverity.WARNING if failed_count else AuditSeverity.INFO,
            entity_type="backup",
            description=f"Imported {success_count} records, {failed_count} failed",
            details={
                "success_count": success_count,
                "failed_count": failed_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def llm_config_changed(
        event_type: AuditEventType,
        config_id: UUID,
        config_name: str,
    ) -> AuditEvent:
        verb = {
            AuditEventType.LLM_CONFIG_SAVED: "saved",
            AuditEventType.LLM_CONFIG_DELETED: "deleted",
            AuditEventType.LLM_CONFIG_ACTIVATED: "activated",
        }.get(event_type, "changed")
        return AuditEvent(
            event_type=event_type,
            entity_type="llm_config",
            entity_id=config_id,
            description=f"LLM config {verb}: {config_name}",
            details={"name": config_name},
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
