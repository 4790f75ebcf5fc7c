"""Tests for AIService and its storage."""

import json
import stat

import pytest

from lattice.ir import AIConfig, GenerateRequest

from ..backend import AuthenticationError, LLMError
from .lib import AIService
from .storage import ConfigStore, FileSecretStore


def _openai_delta(text: str) -> dict:
    return {"choices": [{"index": 0, "delta": {"content": text}}]}


@pytest.fixture
def service_factory(tmp_path, clean_provider_env):
    """Build an AIService rooted in a temporary config directory."""

    def _build(transport=None) -> AIService:
        return AIService(tmp_path, transport=transport)

    return _build


# =============================================================================
# Storage
# =============================================================================


class TestFileSecretStore:
    """Tests for the file-backed secret store."""

    @pytest.mark.unit
    def test_roundtrip_and_delete(self, tmp_path):
        store = FileSecretStore(tmp_path)
        assert store.get("openai") is None
        store.set("openai", "sk-one")
        store.set("gemini", "AIza-two")
        assert store.get("openai") == "sk-one"
        assert store.delete("openai")
        assert not store.delete("openai")
        assert store.get("gemini") == "AIza-two"

    @pytest.mark.unit
    def test_file_is_owner_only(self, tmp_path):
        store = FileSecretStore(tmp_path)
        store.set("openai", "sk-one")
        mode = stat.S_IMODE(store.path.stat().st_mode)
        assert mode == 0o600

    @pytest.mark.unit
    def test_key_is_encrypted_at_rest(self, tmp_path, monkeypatch):
        monkeypatch.delenv("LATTICE_SECRET_KEY", raising=False)
        store = FileSecretStore(tmp_path)
        store.set("openai", "sk-live-SECRET-123456789")

        raw = store.path.read_text()
        assert "sk-live-SECRET-123456789" not in raw
        assert set(json.loads(raw)) == {"openai"}
        assert stat.S_IMODE(store.key_path.stat().st_mode) == 0o600
        assert FileSecretStore(tmp_path).get("openai") == "sk-live-SECRET-123456789"

    @pytest.mark.unit
    def test_master_key_replaces_key_file(self, tmp_path):
        store = FileSecretStore(tmp_path, master_key="correct horse battery staple")
        store.set("openai", "sk-one")

        assert not store.key_path.exists()
        assert FileSecretStore(tmp_path, master_key="correct horse battery staple").get(
            "openai"
        ) == "sk-one"

    @pytest.mark.unit
    def test_wrong_key_reads_as_missing(self, tmp_path):
        FileSecretStore(tmp_path, master_key="first").set("openai", "sk-one")
        assert FileSecretStore(tmp_path, master_key="second").get("openai") is None

    @pytest.mark.unit
    def test_ignores_corrupt_file(self, tmp_path):
        store = FileSecretStore(tmp_path)
        store.path.write_text("{broken")
        assert store.get("openai") is None


class TestConfigStore:
    """Tests for the non-secret settings file."""

    @pytest.mark.unit
    def test_drops_unknown_keys(self, tmp_path):
        store = ConfigStore(tmp_path)
        store.save({"provider": "gemini", "api_key": "sk-leak", "temperature": 0.2})
        saved = json.loads(store.path.read_text())
        assert saved == {"provider": "gemini", "temperature": 0.2}
        assert store.load() == saved


# =============================================================================
# Settings
# =============================================================================


class TestAIServiceConfig:
    """Tests for settings resolution and persistence."""

    @pytest.mark.unit
    def test_defaults(self, service_factory):
        config = service_factory().get_config()
        assert config.provider == "openai"
        assert config.model == "gpt-4o"
        assert config.temperature == 0.7
        assert config.max_tokens == 4096
        assert config.api_key is None
        assert not config.has_api_key

    @pytest.mark.unit
    def test_environment_defaults(self, service_factory, monkeypatch):
        monkeypatch.setenv("LATTICE_PROVIDER", "gemini")
        monkeypatch.setenv("GEMINI_API_KEY", "AIza-env")
        config = service_factory().get_config()
        assert config.provider == "gemini"
        assert config.model == "gemini-2.5-flash"
        assert config.secret() == "AIza-env"

    @pytest.mark.unit
    def test_set_config_splits_secret(self, service_factory, tmp_path):
        service = service_factory()
        service.set_config(
            AIConfig(provider="anthropic", model="claude-3-haiku-20240307", api_key="sk-ant-secret")
        )

        settings = (tmp_path / "ai-config.json").read_text()
        assert "sk-ant-secret" not in settings
        secrets = (tmp_path / "secrets.json").read_text()
        assert "sk-ant-secret" not in secrets
        assert set(json.loads(secrets)) == {"anthropic"}

        config = service.get_config()
        assert config.provider == "anthropic"
        assert config.model == "claude-3-haiku-20240307"
        assert config.secret() == "sk-ant-secret"
        assert config.has_api_key

    @pytest.mark.unit
    def test_set_config_without_key_keeps_stored_key(self, service_factory):
        service = service_factory()
        service.set_config(AIConfig(provider="openai", api_key="sk-keepme123"))
        service.set_config(AIConfig(provider="openai", temperature=0.1))
        config = service.get_config()
        assert config.secret() == "sk-keepme123"
        assert config.temperature == 0.1

    @pytest.mark.unit
    def test_stored_key_beats_environment(self, service_factory, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-from-env")
        service = service_factory()
        service.set_config(AIConfig(provider="openai", api_key="sk-stored"))
        assert service.get_config().secret() == "sk-stored"

    @pytest.mark.unit
    def test_unknown_provider_rejected(self, service_factory):
        with pytest.raises(LLMError, match="Unknown AI provider"):
            service_factory().set_config(AIConfig(provider="mistral"))

    @pytest.mark.unit
    def test_masked_config_hides_key(self, service_factory):
        service = service_factory()
        service.set_config(AIConfig(provider="openai", api_key="sk-secret-value"))
        masked = service.get_config().masked()
        dumped = masked.to_json_dict()
        assert "apiKey" not in dumped
        assert dumped["hasApiKey"] is True
        assert "sk-secret-value" not in json.dumps(dumped)

    @pytest.mark.unit
    def test_provider_info(self, service_factory):
        info = service_factory().provider_info()
        assert set(info) == {"openai", "anthropic", "gemini", "deepseek"}
        assert info["gemini"]["name"] == "Google Gemini"
        assert "gpt-4o-mini" in info["openai"]["models"]


# =============================================================================
# Generation
# =============================================================================


class TestAIServiceGenerate:
    """Tests for request routing."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_key_names_provider(self, service_factory, scripted):
        api = scripted()
        service = service_factory(api.transport)
        with pytest.raises(AuthenticationError) as info:
            await service.generate(GenerateRequest(prompt="p"))
        assert str(info.value) == (
            "No API key configured for OpenAI. Open Settings and add your OpenAI API key."
        )
        assert api.requests == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_fills_defaults_from_config(self, service_factory, scripted, sse):
        api = scripted(sse([_openai_delta("<div/>")]))
        service = service_factory(api.transport)
        service.set_config(
            AIConfig(provider="openai", model="gpt-4o-mini", api_key="sk-test1234", temperature=0.2, max_tokens=900)
        )
        chunks = []
        response = await service.generate(GenerateRequest(prompt="p"), on_chunk=chunks.append)

        payload = api.payload()
        assert payload["model"] == "gpt-4o-mini"
        assert payload["temperature"] == 0.2
        assert payload["max_tokens"] == 900
        assert payload["stream"] is True
        assert chunks == ["<div/>"]
        assert response.code == "<div/>"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_request_overrides_config(self, service_factory, scripted, sse):
        api = scripted(sse([_openai_delta("x")]))
        service = service_factory(api.transport)
        service.set_config(AIConfig(provider="openai", api_key="sk-test1234"))
        await service.generate(
            GenerateRequest(prompt="p", model="gpt-4-turbo", temperature=0.0, max_tokens=10),
            on_chunk=lambda text: None,
        )
        payload = api.payload()
        assert (payload["model"], payload["temperature"], payload["max_tokens"]) == (
            "gpt-4-turbo",
            0.0,
            10,
        )

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_routes_to_configured_provider(self, service_factory, scripted, sse):
        api = scripted(
            sse(
                [{"candidates": [{"content": {"parts": [{"text": "ok"}]}}]}],
                done=False,
            )
        )
        service = service_factory(api.transport)
        service.set_config(AIConfig(provider="gemini", model="gemini-1.5-pro", api_key="AIza-test"))
        await service.generate(GenerateRequest(prompt="p"), on_chunk=lambda text: None)
        assert api.requests[0].url.host == "generativelanguage.googleapis.com"
        assert "gemini-1.5-pro" in api.requests[0].url.path
