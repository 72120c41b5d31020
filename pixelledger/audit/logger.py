"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Complete traceability
2. Debugging capability
3. User can see how a chat answer was produced
4. A record of every balance change

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from pixelledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from pixelledger.services.storage.interface import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(ensure_ascii=False)
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit store (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("pixelledger.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_query_received(
        self,
        query_text: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.query_received(query_text, correlation_id))

    async def log_intent_parsed(
        self,
        operation: str,
        intent: dict,
        source: str,
        correlation_id: UUID,
    ) -> None:
        """Log which parser produced the intent and what it said."""
        event = AuditEventBuilder.intent_parsed(
            operation=operation,
            intent=intent,
            source=source,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_query_executed(
        self,
        query_id: UUID,
        operation: str,
        result_count: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.query_executed(
            query_id=query_id,
            operation=operation,
            result_count=result_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_query_failed(
        self,
        query_text: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.query_failed(
            query_text=query_text,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_response_generated(
        self,
        summarized: bool,
        response_length: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.response_generated(
            summarized=summarized,
            response_length=response_length,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_expense_saved(
        self,
        expense_id: UUID,
        category: str,
        amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log expense save."""
        event = AuditEventBuilder.expense_saved(
            expense_id=expense_id,
            category=category,
            amount=f"{amount:.2f}",
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_balance_adjusted(
        self,
        account_id: UUID,
        account_name: str,
        old_balance: Decimal,
        new_balance: Decimal,
    ) -> None:
        event = AuditEventBuilder.balance_adjusted(
            account_id=account_id,
            account_name=account_name,
            old_balance=f"{old_balance:.2f}",
            new_balance=f"{new_balance:.2f}",
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        draft_id: UUID,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log validation failure."""
        event = AuditEventBuilder.validation_failed(
            draft_id=draft_id,
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., one chat message).
    Pass it through all subsequent operations.
    """
    return uuid4()
