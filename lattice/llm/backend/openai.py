"""OpenAI chat completions adapter.

Streams server-sent events from ``/v1/chat/completions`` and asks for a
final usage record via ``stream_options.include_usage``.
"""

from typing import Any

from ...ir import GenerateRequest, Usage
from .base import ProviderAdapter, StreamEvent, make_usage
from .model_spec import LLMProviderType


def _usage_counts(usage: Any) -> tuple[int | None, int | None]:
    if not isinstance(usage, dict):
        return None, None
    return usage.get("prompt_tokens"), usage.get("completion_tokens")


class OpenAIAdapter(ProviderAdapter):
    """OpenAI GPT adapter.

    Example:
        >>> adapter = OpenAIAdapter()
        >>> response = await adapter.generate(
        ...     GenerateRequest(prompt="Build a pricing card", model="gpt-4o-mini"),
        ...     api_key,
        ... )
        >>> print(response.code)
    """

    provider_type = LLMProviderType.OPENAI
    base_url = "https://api.openai.com/v1"

    def _endpoint(self, model: str, stream: bool) -> str:
        return "/chat/completions"

    def _headers(self, api_key: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    def _payload(self, request: GenerateRequest, model: str, stream: bool) -> dict[str, Any]:
        messages: list[dict[str, str]] = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})
        messages.append({"role": "user", "content": request.prompt})

        payload: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": self._temperature(request),
            "max_tokens": self._max_tokens(request, model),
            "stream": stream,
        }
        # Usage arrives in a final chunk with an empty choices list
        if stream:
            payload["stream_options"] = {"include_usage": True}
        return payload

    def _parse_event(self, data: dict[str, Any]) -> StreamEvent:
        prompt_tokens, completion_tokens = _usage_counts(data.get("usage"))
        text = None
        choices = data.get("choices") or []
        if choices and isinstance(choices[0], dict):
            delta = choices[0].get("delta") or {}
            content = delta.get("content")
            if isinstance(content, str):
                text = content
        return StreamEvent(
            text=text,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
        )

    def _parse_response(self, data: dict[str, Any]) -> tuple[str, Usage | None]:
        text = ""
        choices = data.get("choices") or []
        if choices and isinstance(choices[0], dict):
            message = choices[0].get("message") or {}
            text = message.get("content") or ""
        return text, make_usage(*_usage_counts(data.get("usage")))


__all__ = ["OpenAIAdapter"]
