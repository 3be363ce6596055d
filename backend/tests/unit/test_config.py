"""
Unit tests for backend.app.core.config module.

Tests the Settings class and configuration loading from the environment.
"""

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from backend.app.core.config import Settings, get_settings

ENV_VARS = [
    "API_HOST", "API_PORT", "WEB_PORT", "AUTH_DOMAIN", "AUTH_CLIENT_ID",
    "AUTH_CLIENT_SECRET", "AUTH_REDIRECT_URI", "SESSION_SECRET_KEY", "ADMIN_ROLE",
    "DEFAULT_FEED_USERNAME", "LISTENBRAINZ_BASE_URL", "HTTP_TIMEOUT_SECONDS",
    "LOG_LEVEL", "LOG_JSON",
]


@pytest.fixture
def clean_env(monkeypatch):
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    test_config = Settings.model_config.copy()
    test_config["env_file"] = None
    with patch.object(Settings, "model_config", test_config):
        yield monkeypatch


class TestSettings:
    """Test cases for the Settings class."""

    def test_settings_default_values(self, clean_env):
        """Settings loads with default values when no env vars are set."""
        settings = Settings()

        assert settings.api_host == "localhost"
        assert settings.api_port == 8090
        assert settings.web_port == 8089
        assert settings.default_feed_username == "xcrochet"
        assert settings.listenbrainz_base_url == "https://listenbrainz.org"
        assert settings.http_timeout_seconds == 5.0
        assert settings.admin_role == "admin"
        assert settings.auth_client_secret is None
        assert settings.has_client_secret is False
        assert settings.log_level == "INFO"
        assert settings.log_json is True

    def test_settings_with_environment_variables(self, clean_env):
        """Settings loads custom values from environment variables."""
        clean_env.setenv("API_HOST", "feed-api")
        clean_env.setenv("API_PORT", "9000")
        clean_env.setenv("AUTH_DOMAIN", "https://example.zitadel.cloud/")
        clean_env.setenv("AUTH_CLIENT_SECRET", "s3cret")
        clean_env.setenv("DEFAULT_FEED_USERNAME", "alice")
        clean_env.setenv("LOG_JSON", "false")

        settings = Settings()

        assert settings.api_host == "feed-api"
        assert settings.api_port == 9000
        assert settings.issuer == "https://example.zitadel.cloud"
        assert settings.has_client_secret is True
        assert settings.default_feed_username == "alice"
        assert settings.log_json is False

    def test_settings_case_insensitive(self, clean_env):
        clean_env.setenv("admin_role", "owner")

        assert Settings().admin_role == "owner"

    @pytest.mark.parametrize("port", ["0", "70000", "not-a-port"])
    def test_invalid_port_rejected(self, clean_env, port):
        clean_env.setenv("API_PORT", port)

        with pytest.raises(ValidationError):
            Settings()

    def test_timeout_bounds(self, clean_env):
        clean_env.setenv("HTTP_TIMEOUT_SECONDS", "0")

        with pytest.raises(ValidationError):
            Settings()


class TestGetSettings:
    def test_get_settings_returns_settings(self, clean_env):
        assert isinstance(get_settings(), Settings)

    def test_get_settings_reports_errors(self, clean_env, capsys):
        clean_env.setenv("WEB_PORT", "-1")

        with pytest.raises(ValidationError):
            get_settings()

        assert "Configuration validation error" in capsys.readouterr().err
