"""Abstract base class for provider adapters.

Defines the interface every AI provider implementation follows, the error
taxonomy adapters raise, and the server-sent event helpers shared by the
streaming implementations. Adapters talk to vendor HTTP APIs directly
through httpx so streaming framing is owned here rather than by a vendor
SDK.
"""

import inspect
import json
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from ...config import EnvVar, get_environment
from ...core.log import redact_secrets
from ...ir import GenerateRequest, GenerateResponse, Usage
from .model_spec import (
    DEFAULT_MODELS,
    PROVIDER_DISPLAY_NAMES,
    LLMModel,
    LLMProviderType,
    suggest_alternative_model,
)

logger = logging.getLogger(__name__)

StreamChunkCallback = Callable[[str], Awaitable[None] | None]

_FENCE_PATTERN = re.compile(r"^```(?:\w+)?\s*\n([\s\S]*?)\n```\s*$")

_AUTH_HINTS = ("api key", "api_key", "x-api-key", "authentication", "unauthorized")
_QUOTA_HINTS = ("quota", "rate limit", "rate_limit", "resource_exhausted")
_SAFETY_HINTS = ("safety", "blocked", "content_filter", "content policy")
_MODEL_HINTS = ("not found", "not_found", "does not exist", "no such model")


# =============================================================================
# Error Taxonomy
# =============================================================================


class LLMError(Exception):
    """Base exception for provider adapter errors."""


class TransportError(LLMError):
    """Raised for non-2xx responses and network failures.

    Attributes:
        status_code: HTTP status, or None for network-level failures.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(LLMError):
    """Raised when the API key is missing, invalid or lacks access.

    Attributes:
        provider: Provider id the key belongs to.
    """

    def __init__(self, message: str, provider: str | None = None):
        super().__init__(message)
        self.provider = provider


class QuotaError(LLMError):
    """Raised when a quota or rate limit is exceeded. Never retried automatically.

    Attributes:
        retry_after: Suggested wait time in seconds before retry.
    """

    def __init__(self, message: str, retry_after: float | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class ContentPolicyError(LLMError):
    """Raised when the request or response was blocked by a safety filter."""


class ModelUnavailableError(LLMError):
    """Raised when the requested model is unknown to the provider.

    Attributes:
        model: The model that was requested.
        suggestion: A registered model to try instead, if any.
    """

    def __init__(self, message: str, model: str, suggestion: str | None = None):
        super().__init__(message)
        self.model = model
        self.suggestion = suggestion


class EmptyResponseError(LLMError):
    """Raised when neither the stream nor the fallback call produced text."""


class MalformedEventError(LLMError):
    """Raised for an unparseable stream event. Callers drop the record."""


def missing_key_message(provider_name: str) -> str:
    return (
        f"No API key configured for {provider_name}. "
        f"Open Settings and add your {provider_name} API key."
    )


def describe_error(error: BaseException) -> str:
    """Turn any generation failure into one user-facing sentence."""
    if isinstance(error, LLMError):
        return redact_secrets(str(error)) or type(error).__name__
    return redact_secrets(f"Unexpected error: {error}")


def extract_error_message(body: str) -> str | None:
    """Pull the vendor's message out of a JSON error body.

    Handles ``{"error": {"message": ...}}``, ``{"error": "..."}`` and
    ``{"message": ...}``, plus a list wrapping any of those.
    """
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, TypeError):
        return None

    if isinstance(data, list) and data:
        data = data[0]
    if not isinstance(data, dict):
        return None

    error = data.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        return message if isinstance(message, str) and message else None
    if isinstance(error, str) and error:
        return error
    message = data.get("message")
    return message if isinstance(message, str) and message else None


def _mentions(text: str, hints: tuple[str, ...]) -> bool:
    return any(hint in text for hint in hints)


def _parse_retry_after(headers: Mapping[str, str] | None) -> float | None:
    if not headers:
        return None
    value = headers.get("retry-after")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def classify_http_error(
    provider: LLMProviderType,
    status_code: int | None,
    body: str,
    model: str,
    headers: Mapping[str, str] | None = None,
) -> LLMError:
    """Map a failed vendor response onto the error taxonomy.

    Args:
        provider: Provider that produced the error.
        status_code: HTTP status, or None for an error event inside a stream.
        body: Raw response body (or error event JSON).
        model: Model that was requested.
        headers: Response headers, used for Retry-After.

    Returns:
        The exception to raise. Never raises itself.
    """
    name = PROVIDER_DISPLAY_NAMES[provider]
    vendor_message = extract_error_message(body)
    text = (vendor_message or body).lower()
    logger.warning(
        f"{name} error (status={status_code}): {redact_secrets(vendor_message or body[:200])}"
    )

    if status_code in (401, 403) or _mentions(text, _AUTH_HINTS):
        return AuthenticationError(
            f"{name} authentication error: Please check your API key is valid "
            f"and has access to the {name} API.",
            provider=provider.value,
        )

    if status_code == 429 or _mentions(text, _QUOTA_HINTS):
        return QuotaError(
            f"{name} quota exceeded: You've reached your API rate limit. "
            "Please try again later.",
            retry_after=_parse_retry_after(headers),
        )

    if _mentions(text, _SAFETY_HINTS):
        return content_blocked(provider)

    if status_code == 404 or _mentions(text, _MODEL_HINTS):
        suggestion = suggest_alternative_model(provider, model)
        message = f'{name} model error: The model "{model}" may not be available.'
        if suggestion:
            message += f' Try using "{suggestion}" instead.'
        return ModelUnavailableError(message, model=model, suggestion=suggestion)

    if vendor_message:
        return TransportError(redact_secrets(vendor_message), status_code=status_code)
    detail = f"{status_code}" if status_code is not None else "stream error"
    snippet = redact_secrets(body[:200]).strip()
    if snippet:
        detail += f" - {snippet}"
    return TransportError(f"{name} API error: {detail}", status_code=status_code)


def content_blocked(provider: LLMProviderType) -> ContentPolicyError:
    name = PROVIDER_DISPLAY_NAMES[provider]
    return ContentPolicyError(
        f"{name} content blocked: The request was filtered by safety settings. "
        "Try rephrasing your prompt."
    )


# =============================================================================
# Text and Event Helpers
# =============================================================================


def strip_code_fences(code: str) -> str:
    """Strip one enclosing markdown code fence, trimming whitespace.

    Example:
        >>> strip_code_fences("```tsx\\nexport const A = 1;\\n```")
        'export const A = 1;'
    """
    trimmed = code.strip()
    match = _FENCE_PATTERN.match(trimmed)
    if match:
        return match.group(1)
    return trimmed


def sse_data(line: str) -> str | None:
    """Return the payload of an SSE ``data:`` line, or None for other lines."""
    line = line.strip()
    if not line.startswith("data:"):
        return None
    return line[5:].strip()


def decode_event(payload: str) -> dict[str, Any]:
    """Decode one SSE payload into a JSON object.

    Raises:
        MalformedEventError: If the payload is not a JSON object.
    """
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise MalformedEventError(f"Invalid event JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedEventError(f"Expected an event object, got {type(data).__name__}")
    return data


def make_usage(prompt_tokens: int | None, completion_tokens: int | None) -> Usage | None:
    """Build a Usage when both counters are known."""
    if prompt_tokens is None or completion_tokens is None:
        return None
    return Usage(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens)


@dataclass
class StreamEvent:
    """What one decoded stream event contributes.

    Attributes:
        text: Text delta, if the event carried one.
        prompt_tokens: Prompt token count, if reported.
        completion_tokens: Completion token count, if reported.
    """

    text: str | None = None
    prompt_tokens: int | None = None
    completion_tokens: int | None = None


# =============================================================================
# Adapter Interface
# =============================================================================


class ProviderAdapter(ABC):
    """Abstract interface for AI provider adapters.

    Subclasses describe the vendor's wire format (endpoint, headers,
    payload, event and response shapes). The base class owns transport,
    streaming, fence stripping, the empty-stream fallback and error
    classification.

    Example:
        >>> adapter = OpenAIAdapter()
        >>> response = await adapter.generate(request, api_key, on_chunk=print)
        >>> print(response.code)
    """

    provider_type: LLMProviderType
    base_url: str = ""
    default_max_tokens: int = 4096

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the adapter.

        Args:
            base_url: Optional custom API endpoint.
            timeout: Request timeout in seconds. Falls back to
                LATTICE_REQUEST_TIMEOUT.
            transport: Optional httpx transport, used by tests.
        """
        self._base_url = base_url or self.base_url
        self._timeout = get_environment(EnvVar.LATTICE_REQUEST_TIMEOUT, override=timeout)
        self._transport = transport

    @property
    def id(self) -> str:
        """Provider id, e.g. 'openai'."""
        return self.provider_type.value

    @property
    def name(self) -> str:
        """Human-readable provider name."""
        return PROVIDER_DISPLAY_NAMES[self.provider_type]

    @property
    def models(self) -> list[str]:
        """Registered models for this provider."""
        return [m.spec.name for m in LLMModel.list_by_provider(self.provider_type)]

    @property
    def default_model(self) -> str:
        return DEFAULT_MODELS[self.provider_type].spec.name

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def generate(
        self,
        request: GenerateRequest,
        api_key: str | None,
        on_chunk: StreamChunkCallback | None = None,
    ) -> GenerateResponse:
        """Send a generation request.

        Streams text deltas through ``on_chunk`` when it is given and the
        request does not set ``stream=False``. A stream that yields no text
        is retried once without streaming.

        Args:
            request: Prompt, system prompt, model and sampling settings.
            api_key: Provider API key.
            on_chunk: Optional callback (sync or async) for text deltas.

        Returns:
            GenerateResponse with fence-stripped code and usage when reported.

        Raises:
            AuthenticationError: If the key is missing (before any network
                call) or rejected.
            QuotaError: If a quota or rate limit is hit.
            ContentPolicyError: If a safety filter blocked the request.
            ModelUnavailableError: If the model is unknown to the provider.
            EmptyResponseError: If no text was produced.
            TransportError: For other HTTP or network failures.
        """
        if not api_key:
            raise AuthenticationError(missing_key_message(self.name), provider=self.id)

        model = request.model or self.default_model
        should_stream = on_chunk is not None and request.stream is not False
        logger.info(f"{self.name} generation with {model} (stream={should_stream})")

        async with self._client() as client:
            try:
                if should_stream:
                    text, usage = await self._stream(client, request, model, api_key, on_chunk)
                    if text.strip():
                        return GenerateResponse(code=strip_code_fences(text), usage=usage)
                    logger.warning(
                        f"{self.name} stream produced no text, retrying without streaming"
                    )
                text, usage = await self._complete(client, request, model, api_key)
            except httpx.HTTPError as e:
                raise TransportError(f"{self.name} request failed: {e}") from e

        if not text.strip():
            raise EmptyResponseError(
                f"{self.name} returned an empty response. Check that the model "
                f'"{model}" is correct and your API key has access to it.'
            )
        return GenerateResponse(code=strip_code_fences(text), usage=usage)

    async def _stream(
        self,
        client: httpx.AsyncClient,
        request: GenerateRequest,
        model: str,
        api_key: str,
        on_chunk: StreamChunkCallback,
    ) -> tuple[str, Usage | None]:
        parts: list[str] = []
        prompt_tokens: int | None = None
        completion_tokens: int | None = None

        async with client.stream(
            "POST",
            self._endpoint(model, stream=True),
            headers=self._headers(api_key),
            json=self._payload(request, model, stream=True),
        ) as response:
            if response.status_code >= 400:
                body = (await response.aread()).decode("utf-8", errors="replace")
                raise classify_http_error(
                    self.provider_type, response.status_code, body, model, response.headers
                )

            async for line in response.aiter_lines():
                payload = sse_data(line)
                if payload is None:
                    continue
                if payload == "[DONE]":
                    break

                try:
                    data = decode_event(payload)
                except MalformedEventError as e:
                    logger.debug(f"Skipping malformed event: {e}")
                    continue

                if "error" in data:
                    raise classify_http_error(
                        self.provider_type, None, json.dumps(data), model
                    )

                event = self._parse_event(data)
                if event.prompt_tokens is not None:
                    prompt_tokens = event.prompt_tokens
                if event.completion_tokens is not None:
                    completion_tokens = event.completion_tokens
                if event.text:
                    parts.append(event.text)
                    result = on_chunk(event.text)
                    if inspect.isawaitable(result):
                        await result

        return "".join(parts), make_usage(prompt_tokens, completion_tokens)

    async def _complete(
        self,
        client: httpx.AsyncClient,
        request: GenerateRequest,
        model: str,
        api_key: str,
    ) -> tuple[str, Usage | None]:
        response = await client.post(
            self._endpoint(model, stream=False),
            headers=self._headers(api_key),
            json=self._payload(request, model, stream=False),
        )
        if response.status_code >= 400:
            raise classify_http_error(
                self.provider_type, response.status_code, response.text, model, response.headers
            )

        try:
            data = response.json()
        except json.JSONDecodeError as e:
            raise TransportError(
                f"{self.name} returned a non-JSON response", status_code=response.status_code
            ) from e
        return self._parse_response(data)

    # =========================================================================
    # Wire Format
    # =========================================================================

    @abstractmethod
    def _endpoint(self, model: str, stream: bool) -> str:
        """URL path (relative to base_url) for a generation call."""

    @abstractmethod
    def _headers(self, api_key: str) -> dict[str, str]:
        """Request headers, including authentication."""

    @abstractmethod
    def _payload(self, request: GenerateRequest, model: str, stream: bool) -> dict[str, Any]:
        """JSON request body."""

    @abstractmethod
    def _parse_event(self, data: dict[str, Any]) -> StreamEvent:
        """Extract text and usage from one decoded stream event."""

    @abstractmethod
    def _parse_response(self, data: dict[str, Any]) -> tuple[str, Usage | None]:
        """Extract text and usage from a non-streaming response body."""

    def _temperature(self, request: GenerateRequest) -> float:
        return request.temperature if request.temperature is not None else 0.7

    def _max_tokens(self, request: GenerateRequest, model: str) -> int:
        """Requested output budget, capped at the registered model's limit."""
        requested = request.max_tokens
        if requested is None:
            requested = self.default_max_tokens
        known = LLMModel.by_name(model)
        if known is not None and requested > known.spec.max_output_tokens:
            logger.debug(
                f"Capping max tokens for {model} at {known.spec.max_output_tokens} (asked {requested})"
            )
            return known.spec.max_output_tokens
        return requested


__all__ = [
    "ProviderAdapter",
    "StreamChunkCallback",
    "StreamEvent",
    "LLMError",
    "TransportError",
    "AuthenticationError",
    "QuotaError",
    "ContentPolicyError",
    "ModelUnavailableError",
    "EmptyResponseError",
    "MalformedEventError",
    "classify_http_error",
    "content_blocked",
    "decode_event",
    "describe_error",
    "extract_error_message",
    "make_usage",
    "missing_key_message",
    "sse_data",
    "strip_code_fences",
]
