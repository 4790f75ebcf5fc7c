"""Tests for configuration management."""

from pathlib import Path

import pytest

from .lib import (
    PROVIDER_KEY_VARS,
    EnvConfig,
    EnvVar,
    _convert_value,
    get_available_llm_providers,
    get_config_dir,
    get_environment,
    get_environment_info,
    get_provider_api_key,
    list_environment_variables,
)

# =============================================================================
# Tests for get_environment (main interface)
# =============================================================================


class TestGetEnvironment:
    """Tests for the unified get_environment interface."""

    @pytest.mark.unit
    def test_returns_default_when_not_set(self, monkeypatch):
        """Returns default value when env var is not set."""
        monkeypatch.delenv("LATTICE_MAX_TOKENS", raising=False)
        assert get_environment(EnvVar.LATTICE_MAX_TOKENS) == 4096

    @pytest.mark.unit
    def test_override_takes_priority(self, monkeypatch):
        """Override parameter takes highest priority."""
        monkeypatch.setenv("LATTICE_MAX_TOKENS", "9999")
        assert get_environment(EnvVar.LATTICE_MAX_TOKENS, override=512) == 512

    @pytest.mark.unit
    def test_env_var_overrides_default(self, monkeypatch):
        """Environment variable overrides default value."""
        monkeypatch.setenv("LATTICE_PROVIDER", "gemini")
        assert get_environment(EnvVar.LATTICE_PROVIDER) == "gemini"

    @pytest.mark.unit
    def test_float_type_conversion(self, monkeypatch):
        """Float type conversion from string."""
        monkeypatch.setenv("LATTICE_TEMPERATURE", "0.2")
        result = get_environment(EnvVar.LATTICE_TEMPERATURE)
        assert result == pytest.approx(0.2)
        assert isinstance(result, float)

    @pytest.mark.unit
    def test_invalid_int_falls_back_to_default(self, monkeypatch):
        """Unparseable values fall back to the default."""
        monkeypatch.setenv("LATTICE_MAX_TOKENS", "lots")
        assert get_environment(EnvVar.LATTICE_MAX_TOKENS) == 4096

    @pytest.mark.unit
    def test_empty_string_is_unset(self, monkeypatch):
        """An empty variable counts as unset."""
        monkeypatch.setenv("OPENAI_API_KEY", "")
        assert get_environment(EnvVar.OPENAI_API_KEY) is None

    @pytest.mark.unit
    def test_path_type(self, monkeypatch, tmp_path):
        """Path type returns a Path."""
        monkeypatch.setenv("LATTICE_CONFIG_DIR", str(tmp_path))
        assert get_environment(EnvVar.LATTICE_CONFIG_DIR) == tmp_path


class TestConvertValue:
    """Tests for raw value conversion."""

    @pytest.mark.unit
    def test_bool_values(self):
        for value in ("true", "1", "yes", "TRUE"):
            assert _convert_value(value, bool, False) is True
        for value in ("false", "0", "no"):
            assert _convert_value(value, bool, True) is False

    @pytest.mark.unit
    def test_unrecognized_bool_uses_default(self):
        assert _convert_value("maybe", bool, True) is True


# =============================================================================
# Tests for metadata and convenience helpers
# =============================================================================


class TestEnvironmentInfo:
    """Tests for EnvVar metadata."""

    @pytest.mark.unit
    def test_info_returns_config(self):
        info = get_environment_info(EnvVar.GEMINI_API_KEY)
        assert isinstance(info, EnvConfig)
        assert info.name == "GEMINI_API_KEY"
        assert info.category == "llm"

    @pytest.mark.unit
    def test_names_match_members(self):
        """Each member's config name matches the member name."""
        for var in EnvVar:
            assert var.value.name == var.name

    @pytest.mark.unit
    def test_list_by_category(self):
        llm_vars = list_environment_variables("llm")
        assert set(llm_vars) == set(PROVIDER_KEY_VARS.values())
        assert len(list_environment_variables()) == len(EnvVar)


class TestProviderKeys:
    """Tests for provider key lookups."""

    @pytest.mark.unit
    def test_get_provider_api_key(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        assert get_provider_api_key("anthropic") == "sk-ant-test"

    @pytest.mark.unit
    def test_unknown_provider_has_no_key(self):
        assert get_provider_api_key("nope") is None

    @pytest.mark.unit
    def test_available_providers(self, monkeypatch):
        for var in PROVIDER_KEY_VARS.values():
            monkeypatch.delenv(var.value.name, raising=False)
        monkeypatch.setenv("GEMINI_API_KEY", "AIza-test")
        assert get_available_llm_providers() == ["gemini"]


class TestConfigDir:
    """Tests for config directory resolution."""

    @pytest.mark.unit
    def test_override(self, tmp_path):
        assert get_config_dir(tmp_path) == tmp_path

    @pytest.mark.unit
    def test_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("LATTICE_CONFIG_DIR", str(tmp_path / "cfg"))
        assert get_config_dir() == tmp_path / "cfg"

    @pytest.mark.unit
    def test_default_under_home(self, monkeypatch):
        monkeypatch.delenv("LATTICE_CONFIG_DIR", raising=False)
        assert get_config_dir() == Path.home() / ".lattice"
