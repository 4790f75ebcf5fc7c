"""Google Gemini adapter.

Calls ``models/{model}:streamGenerateContent?alt=sse`` for streaming and
``models/{model}:generateContent`` otherwise. The API key travels in the
``x-goog-api-key`` header so it never appears in a URL.
"""

from typing import Any

from ...ir import GenerateRequest, Usage
from .base import ProviderAdapter, StreamEvent, content_blocked, make_usage
from .model_spec import LLMProviderType

_BLOCKED_FINISH_REASONS = {"SAFETY", "BLOCKLIST", "PROHIBITED_CONTENT", "SPII"}


class GeminiAdapter(ProviderAdapter):
    """Google Gemini adapter.

    Gemini follows instructions better when the system prompt is prepended
    to the user prompt, so both are sent as one user turn.

    Example:
        >>> adapter = GeminiAdapter()
        >>> response = await adapter.generate(
        ...     GenerateRequest(prompt="Build a footer", model="gemini-2.5-flash"),
        ...     api_key,
        ... )
    """

    provider_type = LLMProviderType.GEMINI
    base_url = "https://generativelanguage.googleapis.com/v1beta"
    default_max_tokens = 8192

    def _endpoint(self, model: str, stream: bool) -> str:
        if stream:
            return f"/models/{model}:streamGenerateContent?alt=sse"
        return f"/models/{model}:generateContent"

    def _headers(self, api_key: str) -> dict[str, str]:
        return {
            "x-goog-api-key": api_key,
            "Content-Type": "application/json",
        }

    def _payload(self, request: GenerateRequest, model: str, stream: bool) -> dict[str, Any]:
        prompt = request.prompt
        if request.system_prompt:
            prompt = f"{request.system_prompt}\n\n{request.prompt}"
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self._temperature(request),
                "maxOutputTokens": self._max_tokens(request, model),
            },
        }

    def _extract(self, data: dict[str, Any]) -> tuple[str, int | None, int | None]:
        feedback = data.get("promptFeedback") or {}
        if feedback.get("blockReason"):
            raise content_blocked(self.provider_type)

        parts_text: list[str] = []
        candidates = data.get("candidates") or []
        if candidates and isinstance(candidates[0], dict):
            candidate = candidates[0]
            if candidate.get("finishReason") in _BLOCKED_FINISH_REASONS:
                raise content_blocked(self.provider_type)
            parts = (candidate.get("content") or {}).get("parts") or []
            for part in parts:
                # Thought summaries are not code
                if isinstance(part, dict) and not part.get("thought"):
                    text = part.get("text")
                    if isinstance(text, str):
                        parts_text.append(text)

        usage = data.get("usageMetadata") or {}
        return (
            "".join(parts_text),
            usage.get("promptTokenCount"),
            usage.get("candidatesTokenCount"),
        )

    def _parse_event(self, data: dict[str, Any]) -> StreamEvent:
        text, prompt_tokens, completion_tokens = self._extract(data)
        return StreamEvent(
            text=text or None,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
        )

    def _parse_response(self, data: dict[str, Any]) -> tuple[str, Usage | None]:
        text, prompt_tokens, completion_tokens = self._extract(data)
        return text, make_usage(prompt_tokens, completion_tokens)


__all__ = ["GeminiAdapter"]
