"""AI provider integration layer for code generation.

Main components:
- AIService: Resolves settings and keys, routes requests to providers
- ProviderAdapter: Abstract interface for AI providers
- create_provider_adapter: Factory function for creating adapters

Supported providers:
- OpenAI (GPT-4o family)
- Anthropic (Claude Sonnet 4, Claude 3.x)
- Google Gemini (2.5, 2.0, 1.5)
- DeepSeek (chat, reasoner)

Example:
    >>> from lattice.llm import AIService
    >>> service = AIService()
    >>> response = await service.generate(request, on_chunk=print)
    >>> print(response.code)
"""

from .backend import (
    DEFAULT_MODEL,
    AuthenticationError,
    ContentPolicyError,
    EmptyResponseError,
    LLMError,
    LLMModel,
    LLMProviderType,
    MalformedEventError,
    ModelUnavailableError,
    ProviderAdapter,
    QuotaError,
    TransportError,
    create_provider_adapter,
    describe_error,
)
from .service import AIService, FileSecretStore, SecretStore

__all__ = [
    # Service
    "AIService",
    "SecretStore",
    "FileSecretStore",
    # Backend
    "ProviderAdapter",
    "create_provider_adapter",
    "LLMModel",
    "LLMProviderType",
    "DEFAULT_MODEL",
    # Exceptions
    "LLMError",
    "TransportError",
    "AuthenticationError",
    "QuotaError",
    "ContentPolicyError",
    "ModelUnavailableError",
    "EmptyResponseError",
    "MalformedEventError",
    "describe_error",
]
