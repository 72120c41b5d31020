"""Tests for environment-driven settings."""

from pathlib import Path

from pixelledger.config import get_settings, validate_all_settings
from pixelledger.config.settings import AppSettings, LLMSettings, StorageSettings


class TestSettings:
    """Tests for the settings classes."""

    def test_llm_base_url_is_normalized(self):
        assert LLMSettings(base_url=" https://api.example.com/v1/ ").base_url == (
            "https://api.example.com/v1"
        )

    def test_storage_paths(self, monkeypatch, tmp_path):
        monkeypatch.setenv("STORAGE_DATA_DIR", str(tmp_path))
        storage = StorageSettings()
        assert storage.ledger_path == tmp_path / "ledger.json"
        assert storage.llm_configs_path == tmp_path / "llm_configs.json"

    def test_data_dir_expands_home(self):
        storage = StorageSettings(data_dir=Path("~/ledger"))
        assert "~" not in str(storage.resolved_data_dir)

    def test_app_settings_from_environment(self, monkeypatch):
        monkeypatch.setenv("SUMMARIZE_RESULTS", "true")
        monkeypatch.setenv("DISPLAY_LIST_LIMIT", "5")
        settings = AppSettings()
        assert settings.summarize_results is True
        assert settings.display_list_limit == 5

    def test_get_settings_is_cached(self):
        get_settings.cache_clear()
        assert get_settings() is get_settings()


class TestValidateAllSettings:
    """Tests for the startup check."""

    def test_missing_sheets_config_is_reported(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)
        get_settings.cache_clear()

        results = validate_all_settings()

        assert results["llm"] is True
        assert results["storage"] is True
        assert results["app"] is True
        assert results["google_sheets"] is False
        assert "google_sheets_error" in results
