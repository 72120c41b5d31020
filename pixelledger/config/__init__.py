"""Configuration package."""

from pixelledger.config.settings import (
    AppSettings,
    GeminiSettings,
    GoogleSheetsSettings,
    LLMSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GeminiSettings",
    "GoogleSheetsSettings",
    "LLMSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
