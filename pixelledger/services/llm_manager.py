"""
LLM Configuration Manager

Keeps the list of saved LLM endpoints and which one is active.

DESIGN DECISION: Config metadata and API keys are stored separately.
Metadata goes to a plain JSON file; keys go to a KeyStore. The default
KeyStore is an in-memory mapping; a platform keychain can be plugged in
by implementing the three KeyStore methods.

Rules:
- The first config ever saved becomes the active one
- Deleting the active config activates the first remaining config
- If the active ID points nowhere, the first config is treated as active
- API keys are returned with surrounding whitespace trimmed
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union
from uuid import UUID

import structlog

from pixelledger.audit.logger import AuditLogger
from pixelledger.config.settings import GeminiSettings, LLMSettings
from pixelledger.models.audit import AuditEventBuilder, AuditEventType
from pixelledger.models.llm_config import LLMConfig, LLMProviderType


logger = structlog.get_logger(__name__)


class KeyStore(ABC):
    """Secret storage for API keys, addressed by config ID."""

    @abstractmethod
    def save(self, key: str, secret: str) -> bool:
        pass

    @abstractmethod
    def read(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass


class InMemoryKeyStore(KeyStore):
    """Process-local key store. Keys are lost on exit."""

    def __init__(self):
        self._secrets: dict[str, str] = {}

    def save(self, key: str, secret: str) -> bool:
        self._secrets[key] = secret
        return True

    def read(self, key: str) -> Optional[str]:
        return self._secrets.get(key)

    def delete(self, key: str) -> None:
        self._secrets.pop(key, None)


def _key_name(config_id: UUID) -> str:
    return f"llm_api_key_{config_id}"


class LLMConfigManager:
    """
    CRUD over saved LLM configs plus the active selection.

    Pass a path to persist configs between runs; without one the
    manager keeps them in memory only.
    """

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        key_store: Optional[KeyStore] = None,
        audit_logger: Optional[AuditLogger] = None,
        fallback_settings: Optional[LLMSettings] = None,
        gemini_settings: Optional[GeminiSettings] = None,
    ):
        self._path = Path(path).expanduser() if path else None
        self._key_store = key_store or InMemoryKeyStore()
        self._audit = audit_logger
        self._fallback = fallback_settings
        self._gemini_fallback = gemini_settings
        self._configs: list[LLMConfig] = []
        self._active_id: Optional[str] = None
        self._load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> None:
        if self._path is None or not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            self._configs = [LLMConfig.model_validate(c) for c in data.get("configs", [])]
            self._active_id = data.get("active_config_id") or None
        except (OSError, ValueError) as e:
            # A broken config file should not stop the app from starting
            logger.error("llm_configs_load_failed", path=str(self._path), error=str(e))
            self._configs = []
            self._active_id = None

    def _save(self) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        document = {
            "configs": [c.model_dump(mode="json") for c in self._configs],
            "active_config_id": self._active_id or "",
        }
        self._path.write_text(
            json.dumps(document, ensure_ascii=False, indent=2),
            encoding="utf-8",
        )

    async def _audit_change(self, event_type: AuditEventType, config: LLMConfig) -> None:
        if self._audit:
            await self._audit.log(
                AuditEventBuilder.llm_config_changed(event_type, config.id, config.name)
            )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def configs(self) -> list[LLMConfig]:
        return list(self._configs)

    @property
    def active_config(self) -> Optional[LLMConfig]:
        if self._active_id:
            for config in self._configs:
                if str(config.id) == self._active_id:
                    return config
        return self._configs[0] if self._configs else None

    def get_api_key(self, config: LLMConfig) -> Optional[str]:
        secret = self._key_store.read(_key_name(config.id))
        if secret is None:
            return None
        return secret.strip()

    def resolve_active(self) -> Optional[tuple[LLMConfig, str]]:
        """
        The config and key the assistant should use right now.

        Falls back to LLM_* environment settings, then GEMINI_*, when no
        saved config has a key. Returns None when nothing usable is configured.
        """
        config = self.active_config
        if config is not None:
            api_key = self.get_api_key(config)
            if api_key:
                return config, api_key

        if self._fallback and self._fallback.api_key:
            api_key = self._fallback.api_key.get_secret_value().strip()
            if api_key:
                env_config = LLMConfig(
                    name="Environment",
                    provider_type=LLMProviderType.CUSTOM,
                    base_url=self._fallback.base_url,
                    model_name=self._fallback.model_name,
                )
                return env_config, api_key

        if self._gemini_fallback and self._gemini_fallback.api_key:
            api_key = self._gemini_fallback.api_key.get_secret_value().strip()
            if api_key:
                env_config = LLMConfig.preset(LLMProviderType.GEMINI).model_copy(
                    update={"name": "Environment", "model_name": self._gemini_fallback.model_name}
                )
                return env_config, api_key

        return None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def save_config(self, config: LLMConfig, api_key: str) -> bool:
        """
        Add or replace a config and store its API key.

        Returns False (and changes nothing) if the key store refuses the key.
        """
        if not self._key_store.save(_key_name(config.id), api_key):
            logger.error("llm_api_key_save_failed", config_id=str(config.id))
            return False

        for idx, existing in enumerate(self._configs):
            if existing.id == config.id:
                self._configs[idx] = config
                break
        else:
            self._configs.append(config)

        if not self._active_id:
            self._active_id = str(config.id)

        self._save()
        logger.info("llm_config_saved", config_id=str(config.id), name=config.name)
        await self._audit_change(AuditEventType.LLM_CONFIG_SAVED, config)
        return True

    async def delete_config(self, config: LLMConfig) -> None:
        self._key_store.delete(_key_name(config.id))
        self._configs = [c for c in self._configs if c.id != config.id]

        if self._active_id == str(config.id):
            self._active_id = str(self._configs[0].id) if self._configs else None

        self._save()
        logger.info("llm_config_deleted", config_id=str(config.id), name=config.name)
        await self._audit_change(AuditEventType.LLM_CONFIG_DELETED, config)

    async def set_active_config(self, config: LLMConfig) -> None:
        self._active_id = str(config.id)
        self._save()
        logger.info("llm_config_activated", config_id=str(config.id), name=config.name)
        await self._audit_change(AuditEventType.LLM_CONFIG_ACTIVATED, config)
