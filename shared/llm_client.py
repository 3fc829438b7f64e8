# shared/llm_client.py
"""
Text generation provider chain for recipehub services.

A chain is an ordered list of providers that all expose the same
``generate(request) -> str`` capability. The chain tries them strictly one
after another and stops at the first provider whose output yields a JSON
object. There are no retries within a provider and no backoff.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol

import httpx

from shared.json_utils import extract_json_object

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Base exception for LLM client errors"""

    def __init__(self, message: str, provider: str = None, status_code: int = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class ProviderConfigurationError(LLMError):
    """Raised when no provider has a configured credential"""


@dataclass(frozen=True)
class ProviderSpec:
    """Static description of one text generation backend"""

    name: str
    url: str
    model: str
    request_shape: str  # "chat" or "gemini"
    text_path: tuple
    api_key: str = field(repr=False)
    auth_header: str = "Authorization"
    auth_prefix: str = "Bearer "


@dataclass(frozen=True)
class GenerationRequest:
    system: str
    user: str
    temperature: float = 0.7
    max_tokens: int = 200


@dataclass
class GenerationAttempt:
    provider: str
    status_code: Optional[int] = None
    raw_text: Optional[str] = None
    parsed: bool = False
    error: Optional[str] = None
    elapsed_ms: int = 0


@dataclass
class ChainResult:
    result: Optional[dict]
    attempts: list[GenerationAttempt]
    provider: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.result is not None


class TextProvider(Protocol):
    name: str

    async def generate(self, request: GenerationRequest) -> str: ...


def _dig(payload: Any, path: tuple) -> Any:
    """Follow a key/index path through a decoded JSON payload"""
    node = payload
    for key in path:
        node = node[key]
    return node


class HTTPTextProvider(ABC):
    """Provider that POSTs to a vendor endpoint and reads text from a fixed field path"""

    def __init__(self, spec: ProviderSpec, client: httpx.AsyncClient):
        self.spec = spec
        self.client = client
        self.name = spec.name
        self.last_status_code: Optional[int] = None

    @abstractmethod
    def build_payload(self, request: GenerationRequest) -> dict:
        """Vendor-specific request body"""

    def build_headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            self.spec.auth_header: f"{self.spec.auth_prefix}{self.spec.api_key}",
        }

    async def generate(self, request: GenerationRequest) -> str:
        self.last_status_code = None
        try:
            response = await self.client.post(
                self.spec.url, headers=self.build_headers(), json=self.build_payload(request)
            )
        except httpx.TimeoutException:
            raise LLMError(f"Timeout calling {self.name}", provider=self.name, status_code=408)
        except httpx.HTTPError as e:
            raise LLMError(f"Connection error to {self.name}: {e}", provider=self.name)

        self.last_status_code = response.status_code
        if not response.is_success:
            raise LLMError(
                f"{self.name} API error {response.status_code}: {response.text[:200]}",
                provider=self.name,
                status_code=response.status_code,
            )

        try:
            text = _dig(response.json(), self.spec.text_path)
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise LLMError(
                f"Invalid {self.name} response structure: {e}",
                provider=self.name,
                status_code=response.status_code,
            )

        if not isinstance(text, str):
            raise LLMError(f"{self.name} returned non-text content", provider=self.name)

        return text.strip()


class ChatCompletionsProvider(HTTPTextProvider):
    """OpenAI-compatible chat completions (OpenRouter, Groq, ...)"""

    def build_payload(self, request: GenerationRequest) -> dict:
        return {
            "model": self.spec.model,
            "messages": [
                {"role": "system", "content": request.system},
                {"role": "user", "content": request.user},
            ],
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
        }


class GeminiProvider(HTTPTextProvider):
    """Google Gemini generateContent"""

    def build_payload(self, request: GenerationRequest) -> dict:
        return {
            "systemInstruction": {"parts": [{"text": request.system}]},
            "contents": [{"role": "user", "parts": [{"text": request.user}]}],
            "generationConfig": {
                "temperature": request.temperature,
                "maxOutputTokens": request.max_tokens,
            },
        }


PROVIDER_CLASSES = {
    "chat": ChatCompletionsProvider,
    "gemini": GeminiProvider,
}


def build_provider(spec: ProviderSpec, client: httpx.AsyncClient) -> HTTPTextProvider:
    try:
        provider_class = PROVIDER_CLASSES[spec.request_shape]
    except KeyError:
        raise ValueError(f"Unsupported request shape: {spec.request_shape}")
    return provider_class(spec, client)


class ProviderChain:
    """
    Sequential fail-fast-to-next executor over an ordered provider list.

    A provider is abandoned when it raises LLMError (non-2xx, transport error,
    malformed envelope) or when its text contains no extractable JSON object.
    """

    def __init__(self, providers: list[TextProvider]):
        self.providers = list(providers)

    @classmethod
    def from_specs(cls, specs: list[ProviderSpec], client: httpx.AsyncClient) -> "ProviderChain":
        return cls([build_provider(spec, client) for spec in specs])

    @property
    def configured(self) -> bool:
        return bool(self.providers)

    def ensure_configured(self) -> None:
        if not self.providers:
            raise ProviderConfigurationError("No AI provider API key is configured")

    async def run(
        self,
        request: GenerationRequest,
        extract: Callable[[Optional[str]], Optional[dict]] = extract_json_object,
    ) -> ChainResult:
        """
        Attempt each provider in order until one yields a parsed object.

        Raises:
            ProviderConfigurationError: When the chain is empty
        """
        self.ensure_configured()

        attempts: list[GenerationAttempt] = []
        total = len(self.providers)

        for attempt_num, provider in enumerate(self.providers, start=1):
            attempt = GenerationAttempt(provider=provider.name)
            attempts.append(attempt)
            start_time = time.monotonic()

            logger.info(f"LLM_CLIENT: Attempt {attempt_num}/{total} - {provider.name}")

            try:
                attempt.raw_text = await provider.generate(request)
            except LLMError as e:
                attempt.error = str(e)
                attempt.status_code = e.status_code
            finally:
                attempt.elapsed_ms = int((time.monotonic() - start_time) * 1000)

            if attempt.status_code is None:
                attempt.status_code = getattr(provider, "last_status_code", None)

            if attempt.error:
                logger.warning(
                    f"LLM_CLIENT: {provider.name} failed "
                    f"(status={attempt.status_code}, {attempt.elapsed_ms}ms): {attempt.error}"
                )
                continue

            result = extract(attempt.raw_text)
            if result is None:
                attempt.error = "no JSON object in response"
                logger.warning(
                    f"LLM_CLIENT: {provider.name} returned unparsable content "
                    f"({attempt.elapsed_ms}ms)"
                )
                continue

            attempt.parsed = True
            logger.info(f"LLM_CLIENT: {provider.name} succeeded in {attempt.elapsed_ms}ms")
            return ChainResult(result=result, attempts=attempts, provider=provider.name)

        logger.error(f"LLM_CLIENT: All {total} providers exhausted")
        return ChainResult(result=None, attempts=attempts)
