"""
Main Orchestrator for PixelLedger

This module ties together all the components and defines the
end-to-end flows for:
1. Assistant chat (question → parse → execute → optionally summarize)
2. Transaction entry (sentence → draft → validate → confirm → save)

DESIGN DECISION: The orchestrator enforces the boundaries:
- No answer without a data lookup
- No record saved without human confirmation
- Every step is audited

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

from datetime import datetime
from typing import Callable, NamedTuple, Optional
from uuid import UUID

import structlog

from pixelledger.agents import QueryAgent, RuleBasedIntentParser, TransactionAgent
from pixelledger.audit import AuditLogger, create_correlation_id
from pixelledger.config import Settings, get_settings
from pixelledger.config.settings import AppSettings
from pixelledger.ledger import (
    AccountService,
    CSVBackupService,
    DataSeeder,
    LedgerService,
)
from pixelledger.models.intent import ChatMessage, QueryIntent, TransactionDraft
from pixelledger.models.ledger import ExpenseItem, ValidationResult
from pixelledger.models.llm_config import LLMConfig
from pixelledger.queries import QueryExecutionError, QueryExecutor
from pixelledger.services.llm import (
    InvalidConfigurationError,
    LLMClient,
    LLMServiceError,
    create_llm_client,
)
from pixelledger.services.llm_manager import LLMConfigManager
from pixelledger.services.storage import (
    AuditStorageInterface,
    CatalogStorageInterface,
    ExpenseStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsCatalogStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    InMemoryStorage,
    JSONFileStorage,
)
from pixelledger.validation import TransactionValidator


logger = structlog.get_logger(__name__)

NOT_CONFIGURED_REPLY = "Please configure an AI service in settings first."
ERROR_REPLY_PREFIX = "An error occurred while processing your request: "

ClientFactory = Callable[[LLMConfig, str], LLMClient]


class ChatSession:
    """
    Orchestrates the assistant conversation.

    CRITICAL BOUNDARIES:
    1. User question → LLM (or offline rules) parses intent
    2. Intent → executed on storage (deterministic)
    3. Results → optionally phrased by a second LLM call

    The LLM is NEVER allowed to answer directly.
    It can only work with actual data from storage.
    """

    def __init__(
        self,
        expense_storage: ExpenseStorageInterface,
        catalog_storage: CatalogStorageInterface,
        llm_manager: LLMConfigManager,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
        client_factory: Optional[ClientFactory] = None,
        rule_parser: Optional[RuleBasedIntentParser] = None,
    ):
        self._settings = settings or get_settings().app
        self._catalog = catalog_storage
        self._llm_manager = llm_manager
        self._audit = audit_logger or AuditLogger()
        self._client_factory = client_factory or create_llm_client
        self._rules = rule_parser or RuleBasedIntentParser()
        self._executor = QueryExecutor(
            expense_storage,
            currency_symbol=self._settings.currency_symbol,
            display_limit=self._settings.display_list_limit,
            context_limit=self._settings.context_list_limit,
        )

        self.messages: list[ChatMessage] = []
        self.is_loading: bool = False
        self.error_message: Optional[str] = None

    async def send_message(self, text: str) -> ChatMessage:
        """
        Handle one user message and append the assistant's reply.

        Failures never escape: they become the reply and are kept in
        error_message until the next message.

        Returns:
            The assistant message that was appended
        """
        correlation_id = create_correlation_id()
        self.messages.append(ChatMessage(content=text, is_user=True))
        self.is_loading = True
        self.error_message = None

        await self._audit.log_query_received(text, correlation_id)

        try:
            reply = await self._answer(text, correlation_id)
        except Exception as e:
            # Surfaced to the user as the reply
            logger.exception("chat_message_failed", correlation_id=str(correlation_id))
            reply = f"{ERROR_REPLY_PREFIX}{e}"
            self.error_message = reply
            if isinstance(e, LLMServiceError):
                await self._audit.log_external_service_error("llm", str(e), correlation_id)
            else:
                await self._audit.log_error(type(e).__name__, str(e), correlation_id=correlation_id)
            await self._audit.log_query_failed(text, str(e), correlation_id)
        finally:
            self.is_loading = False

        message = ChatMessage(content=reply, is_user=False)
        self.messages.append(message)
        return message

    async def _answer(self, text: str, correlation_id: UUID) -> str:
        categories = [c.name for c in await self._catalog.list_categories()]
        accounts = [a.name for a in await self._catalog.list_accounts()]

        agent: Optional[QueryAgent] = None
        resolved = self._llm_manager.resolve_active()

        if resolved is not None:
            config, api_key = resolved
            agent = QueryAgent(self._client_factory(config, api_key))
            intent = await agent.parse_question(text, categories, accounts)
            source = config.provider_type.value
        elif self._settings.rule_based_fallback:
            intent = self._rules.parse(text, categories, accounts)
            source = "rules"
        else:
            return NOT_CONFIGURED_REPLY

        await self._audit.log_intent_parsed(
            operation=intent.operation.value,
            intent=intent.to_json_dict(),
            source=source,
            correlation_id=correlation_id,
        )

        return await self._execute(text, intent, agent, correlation_id)

    async def _execute(
        self,
        text: str,
        intent: QueryIntent,
        agent: Optional[QueryAgent],
        correlation_id: UUID,
    ) -> str:
        result = await self._executor.execute(intent)
        if not result.success:
            raise QueryExecutionError(result.error_message or "query failed")

        await self._audit.log_query_executed(
            query_id=result.query_id,
            operation=result.operation.value,
            result_count=result.record_count,
            correlation_id=correlation_id,
        )

        reply = result.text
        summarized = False
        if agent is not None and self._settings.summarize_results and intent.is_data_query:
            reply = await agent.generate_final_answer(
                text, result.context_text, fallback_text=result.text
            )
            summarized = reply != result.text

        await self._audit.log_response_generated(
            summarized=summarized,
            response_length=len(reply),
            correlation_id=correlation_id,
        )
        return reply

    def clear_messages(self) -> None:
        self.messages.clear()
        self.error_message = None


class TransactionFlow:
    """
    Orchestrates recording a transaction from a sentence.

    Flow:
    1. Parse → LLM extracts a TransactionDraft
    2. Validate → Two-stage validation
    3. Review → Present to user (PAUSE - require confirmation)
    4. Confirm → Save through LedgerService

    Human confirmation (step 4) is MANDATORY.
    The system NEVER auto-saves.
    """

    def __init__(
        self,
        catalog_storage: CatalogStorageInterface,
        llm_manager: LLMConfigManager,
        ledger: LedgerService,
        validator: TransactionValidator,
        audit_logger: Optional[AuditLogger] = None,
        client_factory: Optional[ClientFactory] = None,
    ):
        self._catalog = catalog_storage
        self._llm_manager = llm_manager
        self._ledger = ledger
        self._validator = validator
        self._audit = audit_logger or AuditLogger()
        self._client_factory = client_factory or create_llm_client

    async def draft_from_text(
        self,
        text: str,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[TransactionDraft, ValidationResult]:
        """
        Extract and validate a draft. Nothing is saved.

        Raises:
            InvalidConfigurationError: No AI service is configured
        """
        correlation_id = correlation_id or create_correlation_id()

        resolved = self._llm_manager.resolve_active()
        if resolved is None:
            raise InvalidConfigurationError(NOT_CONFIGURED_REPLY)

        config, api_key = resolved
        agent = TransactionAgent(self._client_factory(config, api_key))

        categories = [c.name for c in await self._catalog.list_categories()]
        accounts = [a.name for a in await self._catalog.list_accounts()]
        draft = await agent.parse_transaction(text, categories, accounts)

        validation = await self._validator.validate(draft)
        if not validation.is_valid:
            await self._audit.log_validation_failed(
                draft_id=draft.draft_id,
                issues=[issue.model_dump() for issue in validation.issues],
                correlation_id=correlation_id,
            )

        return draft, validation

    async def confirm_and_save(
        self,
        draft: TransactionDraft,
        validation: ValidationResult,
        now: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ExpenseItem:
        """
        Save a reviewed draft.

        CRITICAL: This is called ONLY after explicit user confirmation.
        The user may have edited the draft since it was validated.

        Raises:
            ValueError: If the draft cannot be saved
        """
        if not validation.can_save or draft.amount is None or not draft.category_name:
            raise ValueError("Draft is not ready to save; fix the reported issues first")

        return await self._ledger.add_expense(
            amount=draft.amount,
            category_name=draft.category_name,
            title=draft.note or draft.category_name,
            date=draft.resolve_date(now),
            account_name=draft.account_name,
            correlation_id=correlation_id,
        )


class AppComponents(NamedTuple):
    chat: ChatSession
    transactions: TransactionFlow
    ledger: LedgerService
    accounts: AccountService
    seeder: DataSeeder
    backup: CSVBackupService
    llm_manager: LLMConfigManager


def create_storage(
    settings: Settings,
) -> tuple[ExpenseStorageInterface, CatalogStorageInterface, AuditStorageInterface]:
    """Build the configured storage backend."""
    backend = settings.storage.backend

    if backend == "google_sheets":
        sheets_client = GoogleSheetsClient(settings.google_sheets)
        return (
            GoogleSheetsExpenseStorage(sheets_client),
            GoogleSheetsCatalogStorage(sheets_client),
            GoogleSheetsAuditStorage(sheets_client),
        )

    if backend == "memory":
        store = InMemoryStorage()
    else:
        store = JSONFileStorage(settings.storage.ledger_path)
    return store, store, store


def create_app_components(
    settings: Optional[Settings] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Returns:
        AppComponents wired to the configured storage backend
    """
    settings = settings or get_settings()

    expense_storage, catalog_storage, audit_storage = create_storage(settings)
    audit_logger = AuditLogger(audit_storage)

    llm_manager = LLMConfigManager(
        path=None if settings.storage.backend == "memory" else settings.storage.llm_configs_path,
        audit_logger=audit_logger,
        fallback_settings=settings.llm,
        gemini_settings=settings.gemini,
    )

    def client_factory(config: LLMConfig, api_key: str) -> LLMClient:
        return create_llm_client(config, api_key, settings.llm)

    ledger = LedgerService(expense_storage, catalog_storage, audit_logger)

    chat = ChatSession(
        expense_storage=expense_storage,
        catalog_storage=catalog_storage,
        llm_manager=llm_manager,
        audit_logger=audit_logger,
        settings=settings.app,
        client_factory=client_factory,
    )

    transactions = TransactionFlow(
        catalog_storage=catalog_storage,
        llm_manager=llm_manager,
        ledger=ledger,
        validator=TransactionValidator(catalog_storage, expense_storage, settings.app),
        audit_logger=audit_logger,
        client_factory=client_factory,
    )

    logger.info("app_components_created", backend=settings.storage.backend)

    return AppComponents(
        chat=chat,
        transactions=transactions,
        ledger=ledger,
        accounts=AccountService(expense_storage, catalog_storage, audit_logger),
        seeder=DataSeeder(catalog_storage, audit_logger),
        backup=CSVBackupService(expense_storage, catalog_storage, audit_logger),
        llm_manager=llm_manager,
    )
