"""DeepSeek adapter (OpenAI-compatible API).

Supports deepseek-chat and deepseek-reasoner.
"""

from .model_spec import LLMProviderType
from .openai import OpenAIAdapter


class DeepSeekAdapter(OpenAIAdapter):
    """DeepSeek adapter using the OpenAI-compatible chat completions API.

    DeepSeek speaks the OpenAI wire format, so only the provider identity
    and base URL differ. Reasoning tokens streamed by deepseek-reasoner
    arrive under ``reasoning_content`` and are not surfaced as code.

    Example:
        >>> adapter = DeepSeekAdapter()
        >>> response = await adapter.generate(request, api_key)
    """

    provider_type = LLMProviderType.DEEPSEEK
    base_url = "https://api.deepseek.com"


__all__ = ["DeepSeekAdapter"]
