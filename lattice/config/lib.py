"""Centralized environment configuration management for lattice.

Provides a unified interface for all environment variables with:
- Single `get_environment()` function for all configuration
- Type-safe enum with metadata (default, type, description)
- Consistent resolution: override > environment > default

Example:
    >>> from lattice.config import EnvVar, get_environment
    >>>
    >>> # Get values with automatic type conversion
    >>> max_tokens = get_environment(EnvVar.LATTICE_MAX_TOKENS)  # Returns int
    >>> api_key = get_environment(EnvVar.OPENAI_API_KEY)  # Returns str | None
    >>>
    >>> # Override at runtime
    >>> timeout = get_environment(EnvVar.LATTICE_REQUEST_TIMEOUT, override=30.0)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, overload

# =============================================================================
# Environment Variable Configuration
# =============================================================================


@dataclass(frozen=True)
class EnvConfig:
    """Metadata for an environment variable.

    Attributes:
        name: Environment variable name (e.g., "LATTICE_MODEL").
        default: Default value if not set in environment.
        var_type: Python type for value conversion (str, int, float, bool, Path).
        description: Human-readable description.
        category: Grouping category for documentation.
    """

    name: str
    default: Any
    var_type: type
    description: str = ""
    category: str = "general"


class EnvVar(Enum):
    """All environment variables used by lattice.

    Each member contains an EnvConfig with name, default, type, and description.
    Use with `get_environment()` for type-safe access.

    Categories:
        - llm: LLM provider API keys
        - generation: Default generation settings
        - storage: Local config and secret storage
        - logging: Log output
    """

    # -------------------------------------------------------------------------
    # LLM API Keys
    # -------------------------------------------------------------------------
    OPENAI_API_KEY = EnvConfig(
        name="OPENAI_API_KEY",
        default=None,
        var_type=str,
        description="OpenAI API key for GPT models",
        category="llm",
    )
    ANTHROPIC_API_KEY = EnvConfig(
        name="ANTHROPIC_API_KEY",
        default=None,
        var_type=str,
        description="Anthropic API key for Claude models",
        category="llm",
    )
    GEMINI_API_KEY = EnvConfig(
        name="GEMINI_API_KEY",
        default=None,
        var_type=str,
        description="Google Gemini API key",
        category="llm",
    )
    DEEPSEEK_API_KEY = EnvConfig(
        name="DEEPSEEK_API_KEY",
        default=None,
        var_type=str,
        description="DeepSeek API key",
        category="llm",
    )

    # -------------------------------------------------------------------------
    # Generation Defaults
    # -------------------------------------------------------------------------
    LATTICE_PROVIDER = EnvConfig(
        name="LATTICE_PROVIDER",
        default="openai",
        var_type=str,
        description="Default AI provider (openai, anthropic, gemini, deepseek)",
        category="generation",
    )
    LATTICE_MODEL = EnvConfig(
        name="LATTICE_MODEL",
        default=None,
        var_type=str,
        description="Default model name (provider default when unset)",
        category="generation",
    )
    LATTICE_TEMPERATURE = EnvConfig(
        name="LATTICE_TEMPERATURE",
        default=0.7,
        var_type=float,
        description="Default sampling temperature",
        category="generation",
    )
    LATTICE_MAX_TOKENS = EnvConfig(
        name="LATTICE_MAX_TOKENS",
        default=4096,
        var_type=int,
        description="Default maximum output tokens",
        category="generation",
    )
    LATTICE_REQUEST_TIMEOUT = EnvConfig(
        name="LATTICE_REQUEST_TIMEOUT",
        default=120.0,
        var_type=float,
        description="HTTP timeout in seconds for provider calls",
        category="generation",
    )

    # -------------------------------------------------------------------------
    # Storage
    # -------------------------------------------------------------------------
    LATTICE_CONFIG_DIR = EnvConfig(
        name="LATTICE_CONFIG_DIR",
        default=None,
        var_type=Path,
        description="Directory for ai-config.json and secrets.json (default: ~/.lattice)",
        category="storage",
    )
    LATTICE_SECRET_KEY = EnvConfig(
        name="LATTICE_SECRET_KEY",
        default=None,
        var_type=str,
        description="Master key for encrypting secrets.json (default: generated secret.key)",
        category="storage",
    )

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    LATTICE_LOG_LEVEL = EnvConfig(
        name="LATTICE_LOG_LEVEL",
        default="INFO",
        var_type=str,
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
        category="logging",
    )


# Provider id -> environment variable holding its API key
PROVIDER_KEY_VARS: dict[str, EnvVar] = {
    "openai": EnvVar.OPENAI_API_KEY,
    "anthropic": EnvVar.ANTHROPIC_API_KEY,
    "gemini": EnvVar.GEMINI_API_KEY,
    "deepseek": EnvVar.DEEPSEEK_API_KEY,
}


# =============================================================================
# Value Conversion
# =============================================================================


def _parse_bool(value: str) -> bool | None:
    """Parse string to boolean.

    Recognizes: true/false, 1/0, yes/no (case-insensitive).
    Returns None for unrecognized values.
    """
    normalized = value.lower().strip()
    if normalized in ("true", "1", "yes"):
        return True
    if normalized in ("false", "0", "no"):
        return False
    return None


def _convert_value(value: str | None, var_type: type, default: Any) -> Any:
    """Convert string value to target type.

    Args:
        value: Raw string value from environment (or None).
        var_type: Target Python type.
        default: Default value if conversion fails or value is None.

    Returns:
        Converted value or default.
    """
    if value is None or value == "":
        return default

    if var_type is str:
        return value

    if var_type is int:
        try:
            return int(value)
        except ValueError:
            return default

    if var_type is float:
        try:
            return float(value)
        except ValueError:
            return default

    if var_type is bool:
        result = _parse_bool(value)
        return result if result is not None else default

    if var_type is Path:
        return Path(value).expanduser()

    return value


# =============================================================================
# Main Interface
# =============================================================================


@overload
def get_environment(env_var: EnvVar, override: int) -> int: ...
@overload
def get_environment(env_var: EnvVar, override: float) -> float: ...
@overload
def get_environment(env_var: EnvVar, override: str) -> str: ...
@overload
def get_environment(env_var: EnvVar, override: bool) -> bool: ...
@overload
def get_environment(env_var: EnvVar, override: Path) -> Path: ...
@overload
def get_environment(env_var: EnvVar, override: None = None) -> Any: ...


def get_environment(env_var: EnvVar, override: Any = None) -> Any:
    """Get environment variable value with type conversion.

    Resolution priority:
        1. Explicit override parameter (highest)
        2. Environment variable value
        3. Default from EnvConfig (lowest)

    Args:
        env_var: Environment variable enum member.
        override: Optional override value (bypasses env lookup).

    Returns:
        Value converted to the appropriate type.

    Example:
        >>> get_environment(EnvVar.LATTICE_MAX_TOKENS)
        4096
        >>> get_environment(EnvVar.LATTICE_MAX_TOKENS, override=1024)
        1024
    """
    config: EnvConfig = env_var.value

    if override is not None:
        return override

    raw_value = os.environ.get(config.name)
    return _convert_value(raw_value, config.var_type, config.default)


def get_environment_info(env_var: EnvVar) -> EnvConfig:
    """Get metadata for an environment variable.

    Args:
        env_var: Environment variable enum member.

    Returns:
        EnvConfig with name, default, type, and description.
    """
    return env_var.value


# =============================================================================
# Convenience Functions
# =============================================================================


def get_config_dir(override: Path | str | None = None) -> Path:
    """Get the directory holding persisted AI config and secrets.

    Resolution: override > LATTICE_CONFIG_DIR > ~/.lattice
    """
    if override:
        return Path(override).expanduser()

    configured = get_environment(EnvVar.LATTICE_CONFIG_DIR)
    if configured:
        return configured

    return Path.home() / ".lattice"


def get_provider_api_key(provider: str) -> str | None:
    """Get a provider's API key from the environment.

    Args:
        provider: Provider id (openai, anthropic, gemini, deepseek).

    Returns:
        The key, or None when unset or the provider is unknown.
    """
    env_var = PROVIDER_KEY_VARS.get(provider)
    if env_var is None:
        return None
    return get_environment(env_var)


def get_available_llm_providers() -> list[str]:
    """Get providers that have an API key in the environment.

    Returns:
        List of provider ids (e.g., ["openai", "gemini"]).
    """
    return [
        provider
        for provider in PROVIDER_KEY_VARS
        if get_provider_api_key(provider)
    ]


def list_environment_variables(category: str | None = None) -> list[EnvVar]:
    """List all environment variables, optionally filtered by category.

    Args:
        category: Filter by category (llm, generation, storage, logging).
                 None returns all variables.

    Returns:
        List of EnvVar enum members.
    """
    if category is None:
        return list(EnvVar)

    return [var for var in EnvVar if var.value.category == category]


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
