"""Adapter factory for creating provider adapters by provider id.

Provides a unified entry point for creating any supported adapter.
"""

from .base import LLMError, ProviderAdapter
from .model_spec import LLMProviderType


def create_provider_adapter(
    provider: str | LLMProviderType,
    *,
    base_url: str | None = None,
    **kwargs,
) -> ProviderAdapter:
    """Create a provider adapter.

    Adapter modules are imported lazily so only the selected provider's
    module is loaded.

    Args:
        provider: Provider id ("openai", "anthropic", "gemini", "deepseek")
            or LLMProviderType.
        base_url: Optional custom API endpoint. Uses provider default if None.
        **kwargs: Additional arguments passed to the adapter constructor
            (e.g., timeout, transport).

    Returns:
        Configured ProviderAdapter instance.

    Raises:
        LLMError: If the provider is unknown.

    Example:
        >>> adapter = create_provider_adapter("gemini")
        >>> adapter.default_model
        'gemini-2.5-flash'
    """
    try:
        provider_type = LLMProviderType(provider)
    except ValueError as e:
        raise LLMError(f"Unknown AI provider: {provider}") from e

    if provider_type == LLMProviderType.OPENAI:
        from .openai import OpenAIAdapter

        return OpenAIAdapter(base_url=base_url, **kwargs)

    if provider_type == LLMProviderType.ANTHROPIC:
        from .anthropic import AnthropicAdapter

        return AnthropicAdapter(base_url=base_url, **kwargs)

    if provider_type == LLMProviderType.GEMINI:
        from .gemini import GeminiAdapter

        return GeminiAdapter(base_url=base_url, **kwargs)

    if provider_type == LLMProviderType.DEEPSEEK:
        from .deepseek import DeepSeekAdapter

        return DeepSeekAdapter(base_url=base_url, **kwargs)

    raise LLMError(f"Unsupported provider type: {provider_type}")


__all__ = ["create_provider_adapter"]
