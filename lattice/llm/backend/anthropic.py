"""Anthropic Claude adapter.

Uses the Messages API. Streaming responses are typed events: text arrives
in ``content_block_delta`` events, input tokens in ``message_start`` and
output tokens in ``message_delta``.
"""

from typing import Any

from ...ir import GenerateRequest, Usage
from .base import ProviderAdapter, StreamEvent, make_usage
from .model_spec import LLMProviderType

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicAdapter(ProviderAdapter):
    """Anthropic Claude adapter.

    Example:
        >>> adapter = AnthropicAdapter()
        >>> response = await adapter.generate(
        ...     GenerateRequest(prompt="Build a hero", model="claude-3-haiku-20240307"),
        ...     api_key,
        ...     on_chunk=print,
        ... )
    """

    provider_type = LLMProviderType.ANTHROPIC
    base_url = "https://api.anthropic.com/v1"

    def _endpoint(self, model: str, stream: bool) -> str:
        return "/messages"

    def _headers(self, api_key: str) -> dict[str, str]:
        return {
            "x-api-key": api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "Content-Type": "application/json",
        }

    def _payload(self, request: GenerateRequest, model: str, stream: bool) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": model,
            "messages": [{"role": "user", "content": request.prompt}],
            "temperature": self._temperature(request),
            "max_tokens": self._max_tokens(request, model),
            "stream": stream,
        }
        if request.system_prompt:
            payload["system"] = request.system_prompt
        return payload

    def _parse_event(self, data: dict[str, Any]) -> StreamEvent:
        event_type = data.get("type")

        if event_type == "content_block_delta":
            delta = data.get("delta") or {}
            if delta.get("type") == "text_delta" and isinstance(delta.get("text"), str):
                return StreamEvent(text=delta["text"])
            return StreamEvent()

        if event_type == "message_start":
            usage = (data.get("message") or {}).get("usage") or {}
            return StreamEvent(
                prompt_tokens=usage.get("input_tokens"),
                completion_tokens=usage.get("output_tokens"),
            )

        if event_type == "message_delta":
            usage = data.get("usage") or {}
            return StreamEvent(completion_tokens=usage.get("output_tokens"))

        return StreamEvent()

    def _parse_response(self, data: dict[str, Any]) -> tuple[str, Usage | None]:
        blocks = data.get("content") or []
        text = "".join(
            block.get("text", "")
            for block in blocks
            if isinstance(block, dict) and block.get("type") == "text"
        )
        usage = data.get("usage") or {}
        return text, make_usage(usage.get("input_tokens"), usage.get("output_tokens"))


__all__ = ["AnthropicAdapter"]
