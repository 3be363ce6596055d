"""Unit tests for the OpenID Connect adapter of the web frontend."""

from __future__ import annotations

from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from backend.app.core.config import Settings
from backend.app.core.errors import DecodeError, NotAuthenticatedError, RequestFailedError, TransportError
from frontend.auth import (
    TOKEN_PATH,
    USERINFO_PATH,
    OIDCAuthenticator,
    UserSession,
)


def _settings() -> Settings:
    return Settings(
        auth_domain="https://idp.test/",
        auth_client_id="web-client",
        auth_client_secret="s3cret",
        auth_redirect_uri="http://localhost:8089/auth/callback",
    )


def _authenticator(handler) -> OIDCAuthenticator:
    return OIDCAuthenticator(settings=_settings(), transport=httpx.MockTransport(handler))


def identity_provider(request: httpx.Request) -> httpx.Response:
    if request.url.path == TOKEN_PATH:
        form = parse_qs(request.content.decode())
        if form.get("code") != ["good-code"]:
            return httpx.Response(400, json={"error": "invalid_grant"})
        return httpx.Response(200, json={"access_token": "access-1", "token_type": "Bearer"})
    if request.url.path == USERINFO_PATH:
        if request.headers.get("Authorization") != "Bearer access-1":
            return httpx.Response(401)
        return httpx.Response(200, json={"given_name": "Ada", "family_name": "Lovelace"})
    return httpx.Response(404)


class TestUserSession:
    def test_display_name(self):
        assert UserSession("Ada", "Lovelace", "t").display_name == "Ada Lovelace"
        assert UserSession("Ada", "", "t").display_name == "Ada"

    def test_from_session(self):
        user = UserSession.from_session({"given_name": "Ada", "access_token": "t"})

        assert user == UserSession(given_name="Ada", family_name="", access_token="t")


class TestOIDCAuthenticator:
    def test_authorization_url(self):
        url = urlsplit(_authenticator(identity_provider).authorization_url("state-1"))
        query = parse_qs(url.query)

        assert f"{url.scheme}://{url.netloc}{url.path}" == "https://idp.test/oauth/v2/authorize"
        assert query["client_id"] == ["web-client"]
        assert query["redirect_uri"] == ["http://localhost:8089/auth/callback"]
        assert query["response_type"] == ["code"]
        assert query["state"] == ["state-1"]
        assert "openid" in query["scope"][0].split()

    def test_logout_url(self):
        assert _authenticator(identity_provider).logout_url() == "https://idp.test/oidc/v1/end_session"

    @pytest.mark.asyncio
    async def test_exchange_code(self):
        user = await _authenticator(identity_provider).exchange_code("good-code")

        assert user == UserSession(given_name="Ada", family_name="Lovelace", access_token="access-1")

    @pytest.mark.asyncio
    async def test_rejected_code_raises_status_error(self):
        with pytest.raises(RequestFailedError) as exc_info:
            await _authenticator(identity_provider).exchange_code("bad-code")

        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_rejected_userinfo_is_not_authenticated(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == TOKEN_PATH:
                return httpx.Response(200, json={"access_token": "other"})
            return identity_provider(request)

        with pytest.raises(NotAuthenticatedError):
            await _authenticator(handler).exchange_code("good-code")

    @pytest.mark.asyncio
    async def test_token_response_without_access_token(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"token_type": "Bearer"})

        with pytest.raises(DecodeError):
            await _authenticator(handler).exchange_code("good-code")

    @pytest.mark.asyncio
    async def test_unreachable_provider(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(TransportError):
            await _authenticator(handler).exchange_code("good-code")
