"""AIService: provider registry, settings persistence and request routing.

The service owns one adapter per provider, resolves the active provider
and its API key from stored settings, fills request defaults from those
settings and forwards the request to the adapter.
"""

import logging
from pathlib import Path
from typing import Any

import httpx

from lattice.config import EnvVar, get_config_dir, get_environment, get_provider_api_key
from lattice.ir import AIConfig, GenerateRequest, GenerateResponse

from ..backend import (
    AuthenticationError,
    LLMError,
    LLMProviderType,
    ProviderAdapter,
    StreamChunkCallback,
    create_provider_adapter,
    missing_key_message,
)
from .storage import ConfigStore, FileSecretStore, SecretStore

logger = logging.getLogger(__name__)


class AIService:
    """Central AI service routing generation requests to providers.

    Settings resolve as: stored settings > LATTICE_* environment > defaults.
    API keys resolve as: secret store > provider environment variable.

    Example:
        >>> service = AIService()
        >>> service.set_config(AIConfig(provider="gemini", model="gemini-2.5-flash"))
        >>> response = await service.generate(
        ...     GenerateRequest(prompt=user_prompt, system_prompt=system_prompt),
        ...     on_chunk=print,
        ... )
    """

    def __init__(
        self,
        config_dir: Path | str | None = None,
        *,
        secrets: SecretStore | None = None,
        adapters: dict[str, ProviderAdapter] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the service.

        Args:
            config_dir: Directory for ai-config.json and secrets.json.
                Falls back to LATTICE_CONFIG_DIR, then ~/.lattice.
            secrets: Secret store. Defaults to a FileSecretStore in config_dir.
            adapters: Adapters by provider id. Defaults to every built-in provider.
            transport: Optional httpx transport for the default adapters.
        """
        self._config_dir = get_config_dir(config_dir)
        self._config_store = ConfigStore(self._config_dir)
        self._secrets = secrets or FileSecretStore(self._config_dir)

        if adapters is None:
            adapters = {
                provider.value: create_provider_adapter(provider, transport=transport)
                for provider in LLMProviderType
            }
        self._adapters = dict(adapters)

    @property
    def config_dir(self) -> Path:
        return self._config_dir

    def get_providers(self) -> list[ProviderAdapter]:
        return list(self._adapters.values())

    def get_provider(self, provider_id: str) -> ProviderAdapter | None:
        return self._adapters.get(provider_id)

    # =========================================================================
    # Settings
    # =========================================================================

    def get_config(self) -> AIConfig:
        """Current settings, with the active provider's key attached.

        The returned config holds the key as a SecretStr. Use
        ``AIConfig.masked()`` before sending it anywhere.
        """
        stored = self._config_store.load()
        provider = stored.get("provider") or get_environment(EnvVar.LATTICE_PROVIDER)

        model = stored.get("model") or get_environment(EnvVar.LATTICE_MODEL)
        if not model:
            adapter = self._adapters.get(provider)
            model = adapter.default_model if adapter else AIConfig().model

        temperature = stored.get("temperature")
        if temperature is None:
            temperature = get_environment(EnvVar.LATTICE_TEMPERATURE)
        max_tokens = stored.get("max_tokens")
        if max_tokens is None:
            max_tokens = get_environment(EnvVar.LATTICE_MAX_TOKENS)

        api_key = self._secrets.get(provider) or get_provider_api_key(provider)
        return AIConfig(
            provider=provider,
            model=model,
            api_key=api_key,
            temperature=temperature,
            max_tokens=max_tokens,
            has_api_key=bool(api_key),
        )

    def set_config(self, config: AIConfig) -> None:
        """Persist settings. The key goes to the secret store only.

        A config without a key leaves any stored key untouched.

        Raises:
            LLMError: If the provider is unknown.
        """
        if config.provider not in self._adapters:
            raise LLMError(f"Unknown AI provider: {config.provider}")

        secret = config.secret()
        if secret:
            self._secrets.set(config.provider, secret)

        self._config_store.save(
            {
                "provider": config.provider,
                "model": config.model,
                "temperature": config.temperature,
                "max_tokens": config.max_tokens,
            }
        )
        logger.info(f"AI settings saved: {config.provider} / {config.model}")

    def provider_info(self) -> dict[str, dict[str, Any]]:
        """Display names, models and defaults per provider, for settings UIs."""
        return {
            provider_id: {
                "name": adapter.name,
                "models": adapter.models,
                "defaultModel": adapter.default_model,
            }
            for provider_id, adapter in self._adapters.items()
        }

    # =========================================================================
    # Generation
    # =========================================================================

    async def generate(
        self,
        request: GenerateRequest,
        on_chunk: StreamChunkCallback | None = None,
    ) -> GenerateResponse:
        """Run a generation against the configured provider.

        Model, temperature and max tokens default to the stored settings.
        Streaming is on unless the request sets ``stream=False``.

        Raises:
            LLMError: If the configured provider is unknown.
            AuthenticationError: If no key is configured, before any network call.
        """
        config = self.get_config()
        adapter = self._adapters.get(config.provider)
        if adapter is None:
            raise LLMError(f"Unknown AI provider: {config.provider}")

        api_key = config.secret()
        if not api_key:
            raise AuthenticationError(missing_key_message(adapter.name), provider=adapter.id)

        resolved = request.model_copy(
            update={
                "model": request.model or config.model,
                "temperature": (
                    request.temperature
                    if request.temperature is not None
                    else config.temperature
                ),
                "max_tokens": (
                    request.max_tokens if request.max_tokens is not None else config.max_tokens
                ),
                "stream": request.stream is not False,
            }
        )
        return await adapter.generate(resolved, api_key, on_chunk)


__all__ = ["AIService"]
