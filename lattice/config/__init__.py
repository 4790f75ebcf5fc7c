"""Centralized configuration management for lattice.

Provides unified access to all configuration via the `get_environment()` function.

Example:
    >>> from lattice.config import EnvVar, get_environment
    >>>
    >>> provider = get_environment(EnvVar.LATTICE_PROVIDER)  # "openai"
    >>> api_key = get_environment(EnvVar.OPENAI_API_KEY)  # str | None
    >>>
    >>> for var in list_environment_variables("llm"):
    ...     info = get_environment_info(var)
    ...     print(f"{info.name}: {info.description}")

Environment Variable Categories:
    llm: API keys for AI providers (OpenAI, Anthropic, Gemini, DeepSeek)
    generation: Default provider, model, temperature, token budget, timeout
    storage: Location of persisted AI config and secrets
    logging: Log level
"""

from .lib import (
    PROVIDER_KEY_VARS,
    # Core types
    EnvConfig,
    EnvVar,
    # Main interface
    get_available_llm_providers,
    get_config_dir,
    get_environment,
    get_environment_info,
    get_provider_api_key,
    # Introspection
    list_environment_variables,
)

__all__ = [
    # Core types
    "EnvConfig",
    "EnvVar",
    "PROVIDER_KEY_VARS",
    # Main interface
    "get_environment",
    "get_environment_info",
    # Convenience functions
    "get_config_dir",
    "get_provider_api_key",
    "get_available_llm_providers",
    # Introspection
    "list_environment_variables",
]
