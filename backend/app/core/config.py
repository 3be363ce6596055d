"""
Configuration module for the listen-feed services.

This module provides the Settings class shared by the API and the web
frontend. Values are loaded from environment variables (and ``.env``) through
Pydantic BaseSettings for type validation and default value handling.
"""

from __future__ import annotations

import sys

from pydantic import Field, ValidationError, ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Both services read the same settings; each one only uses the fields that
    concern it.
    """

    # Service addresses
    api_host: str = Field(
        default="localhost",
        description="Hostname the web frontend uses to reach the feed API"
    )
    api_port: int = Field(
        default=8090,
        ge=1,
        le=65535,
        description="Port of the feed API"
    )
    web_port: int = Field(
        default=8089,
        ge=1,
        le=65535,
        description="Port of the web frontend"
    )

    # Identity provider
    auth_domain: str = Field(
        default="",
        description="Issuer URL of the identity provider (https://<instance>.zitadel.cloud)"
    )
    auth_client_id: str = Field(
        default="",
        description="OAuth client ID registered at the identity provider"
    )
    auth_client_secret: str | None = Field(
        default=None,
        description="OAuth client secret, used for the code exchange and token introspection"
    )
    auth_redirect_uri: str = Field(
        default="http://localhost:8089/auth/callback",
        description="Redirect URI registered at the identity provider"
    )
    session_secret_key: str = Field(
        default="change-me",
        description="Key signing the web frontend's session cookie"
    )
    admin_role: str = Field(
        default="admin",
        description="Role allowed to change the selected feed"
    )

    # Feed
    default_feed_username: str = Field(
        default="xcrochet",
        description="ListenBrainz username served until an admin selects another feed"
    )
    listenbrainz_base_url: str = Field(
        default="https://listenbrainz.org",
        description="Base URL of the ListenBrainz syndication API"
    )
    http_timeout_seconds: float = Field(
        default=5.0,
        ge=0.1,
        le=60.0,
        description="Timeout (in seconds) applied to every outbound HTTP call"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_json: bool = Field(
        default=True,
        description="Render logs as JSON (False for human-readable console output)"
    )

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def issuer(self) -> str:
        """Issuer URL without a trailing slash."""
        return self.auth_domain.rstrip("/")

    @property
    def has_client_secret(self) -> bool:
        """Check if an OAuth client secret is available."""
        return bool(self.auth_client_secret)


def get_settings() -> Settings:
    """
    Get application settings instance.

    Returns:
        Settings: Validated application settings

    Raises:
        ValidationError: If environment variables are invalid
    """
    try:
        return Settings()
    except ValidationError as e:
        print(f"Configuration validation error: {e}", file=sys.stderr)
        raise


def validate_env_cli() -> None:
    """
    CLI command to validate environment configuration.

    This function can be called via: python -m backend.app.core.config --check
    """
    try:
        settings = get_settings()
        print("✅ Environment configuration is valid")
        print(f"Feed API: http://{settings.api_host}:{settings.api_port}")
        print(f"Web port: {settings.web_port}")
        print(f"Identity provider: {settings.issuer or '❌ Not set'}")
        print(f"Client secret: {'✅ Set' if settings.has_client_secret else '❌ Not set'}")
        print(f"Default feed username: {settings.default_feed_username}")
        print(f"HTTP timeout: {settings.http_timeout_seconds}s")
        print(f"Log level: {settings.log_level}")
    except ValidationError as e:
        print("❌ Environment configuration is invalid:")
        for error in e.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            print(f"  - {field}: {error['msg']}")
        sys.exit(1)


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Configuration validation utility")
    parser.add_argument("--check", action="store_true", help="Validate environment configuration")

    args = parser.parse_args()

    if args.check:
        validate_env_cli()
    else:
        parser.print_help()
