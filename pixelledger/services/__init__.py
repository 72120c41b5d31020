"""Services package."""

from pixelledger.services.llm import (
    GeminiClient,
    InvalidConfigurationError,
    InvalidResponseError,
    LLMAPIError,
    LLMClient,
    LLMNetworkError,
    LLMServiceError,
    OpenAICompatibleClient,
    create_llm_client,
)
from pixelledger.services.storage import (
    AuditStorageInterface,
    CatalogStorageInterface,
    ConnectionError,
    DuplicateError,
    ExpenseStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsCatalogStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    InMemoryStorage,
    JSONFileStorage,
    NotFoundError,
    StorageError,
)

__all__ = [
    # LLM services
    "GeminiClient",
    "InvalidConfigurationError",
    "InvalidResponseError",
    "LLMAPIError",
    "LLMClient",
    "LLMNetworkError",
    "LLMServiceError",
    "OpenAICompatibleClient",
    "create_llm_client",
    # Storage services
    "AuditStorageInterface",
    "CatalogStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "ExpenseStorageInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsCatalogStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStorage",
    "InMemoryStorage",
    "JSONFileStorage",
    "NotFoundError",
    "StorageError",
]
