import asyncio
import logging
import time
from typing import Any, Protocol, runtime_checkable

import httpx
from openai import (
    APIConnectionError,
    APIResponseValidationError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    AuthenticationError,
    InternalServerError,
    PermissionDeniedError,
    RateLimitError,
)

from hybrid_ai.config import Settings
from hybrid_ai.constants import (
    LLM_DEFAULT_MAX_TOKENS,
    LLM_TEMPERATURE,
    OPENROUTER_REFERER,
    OPENROUTER_TITLE,
)
from hybrid_ai.errors import (
    AuthError,
    BackendError,
    BackendTimeout,
    BackendUnavailable,
    ProtocolError,
    RateLimited,
)
from hybrid_ai.schemas import Backend, Credentials

logger = logging.getLogger(__name__)


@runtime_checkable
class BackendClient(Protocol):
    async def execute_task(self, prompt: str, model_id: str) -> str: ...

    async def aclose(self) -> None: ...


def _http_timeout(seconds: float) -> httpx.Timeout:
    return httpx.Timeout(connect=min(30.0, seconds), read=seconds, write=60.0, pool=60.0)


def _status_error(status: int, message: str) -> BackendError:
    if status in (401, 403):
        return AuthError(message)
    if status == 429:
        return RateLimited(message)
    if status >= 500:
        return BackendUnavailable(message)
    return ProtocolError(message)


def map_backend_exception(exc: BaseException, provider: str) -> BackendError:
    """Translate SDK/transport exceptions into the backend error taxonomy."""
    if isinstance(exc, BackendError):
        return exc
    message = f"{provider}: {type(exc).__name__}: {exc}"

    # APITimeoutError subclasses APIConnectionError, so it must be checked first.
    if isinstance(exc, (APITimeoutError, httpx.TimeoutException, TimeoutError)):
        return BackendTimeout(message)
    if isinstance(exc, (AuthenticationError, PermissionDeniedError)):
        return AuthError(message)
    if isinstance(exc, RateLimitError):
        return RateLimited(message)
    if isinstance(exc, (APIConnectionError, InternalServerError, httpx.TransportError)):
        return BackendUnavailable(message)
    if isinstance(exc, APIStatusError):
        return _status_error(exc.status_code, message)
    if isinstance(exc, httpx.HTTPStatusError):
        return _status_error(exc.response.status_code, message)
    if isinstance(exc, (APIResponseValidationError, ValueError, KeyError, TypeError)):
        return ProtocolError(message)
    return BackendUnavailable(message)


class _TimedBackend:
    provider = "backend"

    def __init__(self, timeout_seconds: float) -> None:
        self._timeout_seconds = timeout_seconds

    async def _complete(self, prompt: str, model_id: str) -> str:
        raise NotImplementedError

    async def execute_task(self, prompt: str, model_id: str) -> str:
        logger.info(
            "%s request starting (model=%s, prompt_chars=%d)",
            self.provider,
            model_id,
            len(prompt),
        )
        start_time = time.perf_counter()
        try:
            text = await asyncio.wait_for(
                self._complete(prompt, model_id), timeout=self._timeout_seconds
            )
        except TimeoutError as e:
            elapsed = time.perf_counter() - start_time
            logger.error("%s request timed out after %.2fs", self.provider, elapsed)
            raise BackendTimeout(
                f"{self.provider}: no response within {self._timeout_seconds:.0f}s"
            ) from e
        except BackendError:
            raise
        except Exception as e:
            elapsed = time.perf_counter() - start_time
            logger.error(
                "%s request failed after %.2fs: %s: %s",
                self.provider,
                elapsed,
                type(e).__name__,
                e,
            )
            raise map_backend_exception(e, self.provider) from e

        elapsed = time.perf_counter() - start_time
        logger.info("%s request completed in %.2fs", self.provider, elapsed)
        if not text or not text.strip():
            raise ProtocolError(f"{self.provider}: returned an empty response")
        return text


class OllamaBackend(_TimedBackend):
    provider = "Ollama"

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(timeout_seconds)
        self._base_url = base_url.rstrip("/")
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=_http_timeout(self._timeout_seconds),
                transport=self._transport,
            )
        return self._client

    async def _complete(self, prompt: str, model_id: str) -> str:
        try:
            resp = await self._get_client().post(
                "/api/generate",
                json={"model": model_id, "prompt": prompt, "stream": False},
            )
        except httpx.ConnectError as e:
            raise BackendUnavailable(
                "Cannot connect to Ollama. Please make sure Ollama is running."
            ) from e
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, dict):
            raise ProtocolError(f"Ollama: unexpected payload type {type(data).__name__}")
        return data.get("response") or data.get("generated_text") or ""

    async def list_models(self) -> list[str]:
        try:
            resp = await self._get_client().get("/api/tags")
            resp.raise_for_status()
            return [m["name"] for m in resp.json().get("models", [])]
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.warning("Ollama model listing failed: %s", e)
            return []

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class _OpenAICompatibleBackend(_TimedBackend):
    def __init__(
        self,
        api_key: str | None,
        base_url: str,
        timeout_seconds: float,
        default_headers: dict[str, str] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(timeout_seconds)
        self._api_key = api_key
        self._base_url = base_url
        self._default_headers = default_headers
        self._http_client = http_client
        self._client: AsyncOpenAI | None = None

    def _missing_key_message(self) -> str:
        return f"{self.provider} API key is not configured"

    def _get_client(self) -> AsyncOpenAI:
        if not self._api_key:
            raise AuthError(self._missing_key_message())
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=_http_timeout(self._timeout_seconds),
                max_retries=0,
                default_headers=self._default_headers,
                http_client=self._http_client,
            )
        return self._client

    async def _complete(self, prompt: str, model_id: str) -> str:
        client = self._get_client()
        kwargs: dict[str, Any] = {
            "model": model_id,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": LLM_TEMPERATURE,
            "max_tokens": LLM_DEFAULT_MAX_TOKENS,
        }
        completion = await client.chat.completions.create(**kwargs)
        if not completion.choices:
            raise ProtocolError(f"{self.provider}: response has no choices")
        return completion.choices[0].message.content or ""

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None


class OpenRouterBackend(_OpenAICompatibleBackend):
    provider = "OpenRouter"

    def __init__(
        self,
        api_key: str | None,
        base_url: str,
        timeout_seconds: float,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(
            api_key,
            base_url,
            timeout_seconds,
            default_headers={"HTTP-Referer": OPENROUTER_REFERER, "X-Title": OPENROUTER_TITLE},
            http_client=http_client,
        )

    def _missing_key_message(self) -> str:
        return (
            "OpenRouter API key is not configured. Set OPENROUTER_API_KEY in your .env "
            "file or use --openrouter-key."
        )


class GeminiBackend(_OpenAICompatibleBackend):
    provider = "Gemini"

    def _missing_key_message(self) -> str:
        return "Gemini API key is not configured. Set GEMINI_API_KEY or use --gemini-key."


class QwenBackend(_OpenAICompatibleBackend):
    provider = "Qwen"

    def _missing_key_message(self) -> str:
        return "Qwen API key is not configured. Set QWEN_API_KEY or use --qwen-key."


class RemoteBackend:
    """Direct cloud APIs: ``qwen*`` model ids go to Qwen, everything else to Gemini."""

    def __init__(self, gemini: GeminiBackend, qwen: QwenBackend) -> None:
        self._gemini = gemini
        self._qwen = qwen

    def route(self, model_id: str) -> _OpenAICompatibleBackend:
        if model_id.lower().startswith("qwen"):
            return self._qwen
        return self._gemini

    async def execute_task(self, prompt: str, model_id: str) -> str:
        return await self.route(model_id).execute_task(prompt, model_id)

    async def aclose(self) -> None:
        await self._gemini.aclose()
        await self._qwen.aclose()


def build_backends(settings: Settings, credentials: Credentials) -> dict[Backend, BackendClient]:
    timeout = settings.backend_timeout_seconds
    return {
        Backend.LOCAL: OllamaBackend(settings.local_base_url, timeout),
        Backend.AGGREGATOR: OpenRouterBackend(
            credentials.openrouter, settings.openrouter_base_url, timeout
        ),
        Backend.REMOTE: RemoteBackend(
            GeminiBackend(credentials.gemini, settings.gemini_base_url, timeout),
            QwenBackend(credentials.qwen, settings.qwen_base_url, timeout),
        ),
    }


async def close_backends(backends: dict[Backend, BackendClient]) -> None:
    for backend in backends.values():
        try:
            await backend.aclose()
        except Exception as e:
            logger.warning("Failed to close backend client: %s", e)
