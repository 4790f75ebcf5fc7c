"""Provider adapter implementations.

Provides the abstract adapter, the error taxonomy and concrete adapters
for the supported AI providers (OpenAI, Anthropic, Gemini, DeepSeek).
"""

from .base import (
    AuthenticationError,
    ContentPolicyError,
    EmptyResponseError,
    LLMError,
    MalformedEventError,
    ModelUnavailableError,
    ProviderAdapter,
    QuotaError,
    StreamChunkCallback,
    TransportError,
    classify_http_error,
    describe_error,
    missing_key_message,
    strip_code_fences,
)
from .factory import create_provider_adapter
from .model_spec import (
    DEFAULT_ANTHROPIC_MODEL,
    DEFAULT_DEEPSEEK_MODEL,
    DEFAULT_GEMINI_MODEL,
    DEFAULT_MODEL,
    DEFAULT_MODELS,
    DEFAULT_OPENAI_MODEL,
    PROVIDER_DISPLAY_NAMES,
    LLMModel,
    LLMProviderType,
    LLMSpec,
    suggest_alternative_model,
)

__all__ = [
    # Base classes and types
    "ProviderAdapter",
    "StreamChunkCallback",
    # Exceptions
    "LLMError",
    "TransportError",
    "AuthenticationError",
    "QuotaError",
    "ContentPolicyError",
    "ModelUnavailableError",
    "EmptyResponseError",
    "MalformedEventError",
    # Helpers
    "classify_http_error",
    "describe_error",
    "missing_key_message",
    "strip_code_fences",
    # Model specification
    "LLMProviderType",
    "LLMSpec",
    "LLMModel",
    "PROVIDER_DISPLAY_NAMES",
    "suggest_alternative_model",
    # Defaults
    "DEFAULT_MODEL",
    "DEFAULT_MODELS",
    "DEFAULT_OPENAI_MODEL",
    "DEFAULT_ANTHROPIC_MODEL",
    "DEFAULT_GEMINI_MODEL",
    "DEFAULT_DEEPSEEK_MODEL",
    # Factory
    "create_provider_adapter",
]
