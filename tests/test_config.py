"""Tests for environment-driven settings."""
import pytest
from pydantic import ValidationError

from ado_core.config import Settings, get_settings


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("ORGANIZATION_URL", "PERSONAL_ACCESS_TOKEN", "DEFAULT_PROJECT", "API_VERSION",
                 "REQUEST_TIMEOUT", "ALLOWED_TEAM_BOARDS", "ENFORCE_TEAM_BOARDS", "LOG_LEVEL"):
        monkeypatch.delenv(f"AZURE_DEVOPS_{name}", raising=False)
    return monkeypatch


class TestSettings:
    """Test loading of AZURE_DEVOPS_* variables."""

    def test_defaults(self, clean_env):
        settings = Settings(_env_file=None)
        assert settings.organization_url == ""
        assert settings.personal_access_token is None
        assert settings.allowed_team_boards is None
        assert settings.enforce_team_boards is True
        assert settings.api_version == "7.1"
        assert settings.request_timeout == 30.0

    def test_reads_prefixed_environment(self, clean_env):
        clean_env.setenv("AZURE_DEVOPS_ORGANIZATION_URL", "https://dev.azure.com/contoso/")
        clean_env.setenv("AZURE_DEVOPS_ALLOWED_TEAM_BOARDS", "Team Alpha, Team Beta")
        clean_env.setenv("AZURE_DEVOPS_ENFORCE_TEAM_BOARDS", "false")
        clean_env.setenv("AZURE_DEVOPS_REQUEST_TIMEOUT", "5")

        settings = Settings(_env_file=None)

        assert settings.organization_url == "https://dev.azure.com/contoso"
        assert settings.allowed_team_boards == "Team Alpha, Team Beta"
        assert settings.enforce_team_boards is False
        assert settings.request_timeout == 5.0

    def test_token_hidden_from_repr(self, clean_env):
        settings = Settings(_env_file=None, personal_access_token="secret-pat")
        assert "secret-pat" not in repr(settings)

    def test_rejects_non_positive_timeout(self, clean_env):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, request_timeout=0)

    def test_frozen(self, clean_env):
        settings = Settings(_env_file=None)
        with pytest.raises(ValidationError):
            settings.allowed_team_boards = "Team Alpha"

    def test_get_settings_is_cached(self, clean_env):
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()
