"""Tests for configuration management."""

from pathlib import Path

import pytest

from .lib import (
    EnvConfig,
    EnvVar,
    get_available_llm_providers,
    get_data_dir,
    get_environment,
    get_environment_info,
    get_history_db_path,
    get_preview_settings,
    get_retry_settings,
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
        monkeypatch.delenv("RETRY_MAX_ATTEMPTS", raising=False)
        assert get_environment(EnvVar.RETRY_MAX_ATTEMPTS) == 3

    @pytest.mark.unit
    def test_override_takes_priority(self, monkeypatch):
        """Override parameter takes highest priority."""
        monkeypatch.setenv("HISTORY_QUOTA_BYTES", "9999")
        assert get_environment(EnvVar.HISTORY_QUOTA_BYTES, override=512) == 512

    @pytest.mark.unit
    def test_int_type_conversion(self, monkeypatch):
        """Integer type conversion from string."""
        monkeypatch.setenv("MCP_PORT", "8081")
        result = get_environment(EnvVar.MCP_PORT)
        assert result == 8081
        assert isinstance(result, int)

    @pytest.mark.unit
    def test_invalid_int_returns_default(self, monkeypatch):
        """Invalid integer value returns default."""
        monkeypatch.setenv("RETRY_BASE_DELAY_MS", "soon")
        assert get_environment(EnvVar.RETRY_BASE_DELAY_MS) == 1000

    @pytest.mark.unit
    def test_path_type_conversion(self, monkeypatch, tmp_path):
        """Path variables are converted to Path objects."""
        monkeypatch.setenv("STUDIO_DATA_DIR", str(tmp_path))
        result = get_environment(EnvVar.STUDIO_DATA_DIR)
        assert result == tmp_path
        assert isinstance(result, Path)

    @pytest.mark.unit
    def test_none_default_for_api_keys(self, monkeypatch):
        """API keys default to None when not set."""
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        assert get_environment(EnvVar.GEMINI_API_KEY) is None


class TestGetEnvironmentInfo:
    """Tests for environment variable metadata."""

    @pytest.mark.unit
    def test_returns_env_config(self):
        """Returns EnvConfig dataclass."""
        info = get_environment_info(EnvVar.HISTORY_SLOT)
        assert isinstance(info, EnvConfig)
        assert info.name == "HISTORY_SLOT"
        assert info.default == "artifact_history"
        assert info.var_type is str
        assert info.category == "storage"


class TestListEnvironmentVariables:
    """Tests for listing environment variables."""

    @pytest.mark.unit
    def test_returns_all_variables(self):
        """Returns all EnvVar members when no category."""
        assert len(list_environment_variables()) == len(EnvVar)

    @pytest.mark.unit
    def test_filter_by_category(self):
        """Filters by category correctly."""
        retry_vars = list_environment_variables("retry")
        assert EnvVar.RETRY_MAX_ATTEMPTS in retry_vars
        assert EnvVar.RETRY_BASE_DELAY_MS in retry_vars
        assert EnvVar.GEMINI_API_KEY not in retry_vars


# =============================================================================
# Tests for convenience functions
# =============================================================================


class TestDataPaths:
    """Tests for data directory resolution."""

    @pytest.mark.unit
    def test_override_takes_priority(self, tmp_path, monkeypatch):
        """Override beats environment variable."""
        monkeypatch.setenv("STUDIO_DATA_DIR", str(tmp_path / "env"))
        assert get_data_dir(tmp_path / "override") == tmp_path / "override"

    @pytest.mark.unit
    def test_env_var_used(self, tmp_path, monkeypatch):
        """STUDIO_DATA_DIR used when no override."""
        monkeypatch.setenv("STUDIO_DATA_DIR", str(tmp_path))
        assert get_data_dir() == tmp_path

    @pytest.mark.unit
    def test_default_is_relative_data(self, monkeypatch):
        """Falls back to ./data."""
        monkeypatch.delenv("STUDIO_DATA_DIR", raising=False)
        assert get_data_dir() == Path("data")

    @pytest.mark.unit
    def test_history_db_inside_data_dir(self, tmp_path):
        """History database lives in the data directory."""
        assert get_history_db_path(tmp_path) == tmp_path / "history.db"


class TestRetrySettings:
    """Tests for retry configuration helper."""

    @pytest.mark.unit
    def test_defaults(self, monkeypatch):
        """Three attempts, one second base delay."""
        monkeypatch.delenv("RETRY_MAX_ATTEMPTS", raising=False)
        monkeypatch.delenv("RETRY_BASE_DELAY_MS", raising=False)
        assert get_retry_settings() == (3, 1.0)

    @pytest.mark.unit
    def test_clamps_attempts(self, monkeypatch):
        """At least one attempt is always made."""
        monkeypatch.setenv("RETRY_MAX_ATTEMPTS", "0")
        monkeypatch.setenv("RETRY_BASE_DELAY_MS", "250")
        assert get_retry_settings() == (1, 0.25)


class TestPreviewSettings:
    """Tests for preview browser configuration helper."""

    @pytest.mark.unit
    def test_defaults(self, monkeypatch):
        """Fifteen second timeout, headless."""
        monkeypatch.delenv("PREVIEW_TIMEOUT_MS", raising=False)
        monkeypatch.delenv("PREVIEW_HEADLESS", raising=False)
        assert get_preview_settings() == (15000, True)

    @pytest.mark.unit
    def test_headed_from_env(self, monkeypatch):
        """PREVIEW_HEADLESS accepts the usual boolean spellings."""
        monkeypatch.setenv("PREVIEW_HEADLESS", "no")
        monkeypatch.setenv("PREVIEW_TIMEOUT_MS", "0")
        assert get_preview_settings() == (1, False)


class TestAvailableProviders:
    """Tests for provider detection."""

    @pytest.mark.unit
    def test_detects_keys(self, monkeypatch):
        """Providers with keys are reported in a stable order."""
        monkeypatch.setenv("GEMINI_API_KEY", "g")
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.setenv("ANTHROPIC_API_KEY", "a")
        assert get_available_llm_providers() == ["gemini", "anthropic"]
