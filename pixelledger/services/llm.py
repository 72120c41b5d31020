"""
LLM Client Adapters

DESIGN DECISION: The assistant talks to the model through one tiny interface,
complete(system_prompt, user_prompt) -> text. Everything provider-specific
lives behind it:

- OpenAICompatibleClient: any endpoint that speaks chat/completions
  (OpenAI, DeepSeek, Qwen, GLM, Moonshot, Ollama, ...) via the openai SDK
- GeminiClient: Google's models via google-generativeai

Errors are translated into the LLMServiceError family so callers never
need to import a vendor SDK to handle failures.

Retries: only network failures are retried (3 attempts, exponential back-off).
An HTTP 4xx will not get better by asking again.
"""

from abc import ABC, abstractmethod
from typing import Optional

import google.generativeai as genai
import structlog
from google.api_core import exceptions as google_exceptions
from openai import APIConnectionError, APIStatusError, AsyncOpenAI
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from pixelledger.config import get_settings
from pixelledger.config.settings import LLMSettings
from pixelledger.models.intent import strip_code_fences
from pixelledger.models.llm_config import LLMConfig, LLMProviderType


logger = structlog.get_logger(__name__)


# =============================================================================
# ERRORS
# =============================================================================

class LLMServiceError(Exception):
    """Base exception for LLM calls."""
    pass


class InvalidConfigurationError(LLMServiceError):
    """Missing API key, base URL or model name."""

    def __init__(self, message: str = "AI service configuration is invalid. Check the API key and base URL."):
        super().__init__(message)


class LLMNetworkError(LLMServiceError):
    """The endpoint could not be reached (DNS, refused, timeout)."""

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"Network error: {cause}")


class InvalidResponseError(LLMServiceError):
    """The endpoint answered, but not with a usable completion."""

    def __init__(self, message: str = "The server returned an invalid response"):
        super().__init__(message)


class LLMAPIError(LLMServiceError):
    """The endpoint returned an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(f"API error: {message}")


_network_retry = retry(
    retry=retry_if_exception_type(LLMNetworkError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


# =============================================================================
# CLIENTS
# =============================================================================

class LLMClient(ABC):
    """A chat model that turns a system + user prompt into text."""

    provider: str = "llm"

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
    ) -> str:
        """
        Run one completion.

        Returns the reply text with surrounding whitespace and markdown
        code fences removed.

        Raises:
            LLMNetworkError: endpoint unreachable (after retries)
            LLMAPIError: endpoint returned an error status
            InvalidResponseError: reply had no text
        """
        pass

    @abstractmethod
    async def test_connection(self) -> bool:
        """
        Send a tiny probe request.

        Returns True when the endpoint answered with a status below 500,
        even if that status is an auth error: the URL is right, the
        key may not be. Network failures raise LLMNetworkError.
        """
        pass


class OpenAICompatibleClient(LLMClient):
    """chat/completions over the openai SDK, pointed at any base URL."""

    provider = "openai_compatible"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model_name: str,
        timeout: float = 30.0,
        probe_timeout: float = 10.0,
        client: Optional[AsyncOpenAI] = None,
    ):
        base_url = (base_url or "").strip().rstrip("/")
        api_key = (api_key or "").strip()
        if not base_url or not api_key or not model_name:
            raise InvalidConfigurationError()

        self.base_url = base_url
        self.model_name = model_name
        self._probe_timeout = probe_timeout
        # Retries are handled by tenacity, not the SDK
        self._client = client or AsyncOpenAI(
            base_url=base_url,
            api_key=api_key,
            timeout=timeout,
            max_retries=0,
        )

    @_network_retry
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
    ) -> str:
        kwargs = {
            "model": self.model_name,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
        }
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = await self._client.chat.completions.create(**kwargs)
        except APIConnectionError as e:
            logger.warning("llm_network_error", base_url=self.base_url, error=str(e))
            raise LLMNetworkError(e)
        except APIStatusError as e:
            raise LLMAPIError(f"HTTP {e.status_code}: {e.message}", status_code=e.status_code)

        if not response.choices:
            raise InvalidResponseError()
        content = response.choices[0].message.content
        if content is None:
            raise InvalidResponseError()

        return strip_code_fences(content)

    async def test_connection(self) -> bool:
        try:
            await self._client.with_options(timeout=self._probe_timeout).chat.completions.create(
                model=self.model_name,
                messages=[{"role": "user", "content": "Hello"}],
                max_tokens=5,
            )
        except APIConnectionError as e:
            raise LLMNetworkError(e)
        except APIStatusError as e:
            logger.info("llm_probe_status", base_url=self.base_url, status_code=e.status_code)
            return e.status_code < 500
        return True


class GeminiClient(LLMClient):
    """
    Google Gemini via google-generativeai.

    The SDK holds a single process-wide API key, so each client applies
    its own key right before building the model it sends a request with.
    Nothing awaits between the two, so clients with different keys can
    share one event loop.
    """

    provider = "gemini"

    def __init__(self, api_key: str, model_name: str):
        api_key = (api_key or "").strip()
        if not api_key or not model_name:
            raise InvalidConfigurationError()
        self.model_name = model_name
        self._api_key = api_key

    def _model(
        self,
        system_prompt: Optional[str],
        temperature: float,
        max_tokens: Optional[int],
        json_mode: bool = False,
    ) -> genai.GenerativeModel:
        generation_config = {"temperature": temperature}
        if max_tokens is not None:
            generation_config["max_output_tokens"] = max_tokens
        if json_mode:
            generation_config["response_mime_type"] = "application/json"
        genai.configure(api_key=self._api_key)
        return genai.GenerativeModel(
            model_name=self.model_name,
            system_instruction=system_prompt,
            generation_config=generation_config,
        )

    @_network_retry
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
    ) -> str:
        model = self._model(system_prompt, temperature, max_tokens, json_mode)
        try:
            response = await model.generate_content_async(user_prompt)
        except (google_exceptions.ServiceUnavailable, google_exceptions.DeadlineExceeded) as e:
            logger.warning("llm_network_error", provider=self.provider, error=str(e))
            raise LLMNetworkError(e)
        except google_exceptions.GoogleAPICallError as e:
            raise LLMAPIError(f"HTTP {e.code}: {e.message}", status_code=e.code)

        try:
            text = response.text
        except ValueError:
            # Blocked or empty candidates
            raise InvalidResponseError()

        return strip_code_fences(text)

    async def test_connection(self) -> bool:
        model = self._model(None, temperature=0.0, max_tokens=5)
        try:
            await model.generate_content_async("Hello")
        except (google_exceptions.ServiceUnavailable, google_exceptions.DeadlineExceeded) as e:
            raise LLMNetworkError(e)
        except google_exceptions.GoogleAPICallError as e:
            return (e.code or 500) < 500
        return True


def create_llm_client(
    config: LLMConfig,
    api_key: str,
    settings: Optional[LLMSettings] = None,
) -> LLMClient:
    """Build the right client for a saved config."""
    settings = settings or get_settings().llm

    if config.provider_type == LLMProviderType.GEMINI:
        return GeminiClient(api_key=api_key, model_name=config.model_name)

    return OpenAICompatibleClient(
        base_url=config.base_url,
        api_key=api_key,
        model_name=config.model_name,
        timeout=settings.request_timeout_seconds,
        probe_timeout=settings.probe_timeout_seconds,
    )
