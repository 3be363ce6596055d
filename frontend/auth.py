"""
Browser authentication for the web frontend.

A thin OpenID Connect authorization-code adapter: ``/auth/login`` sends the
browser to the identity provider, ``/auth/callback`` exchanges the code for
tokens and stores the user in the signed session cookie, ``/auth/logout``
clears it. Everything else (token issuance, user management, roles) stays
with the identity provider.
"""

from __future__ import annotations

import secrets
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from backend.app.core.config import Settings, get_settings
from backend.app.core.errors import DecodeError, NotAuthenticatedError, TransportError, raise_for_status
from backend.app.core.http import http_client
from backend.app.core.logging import get_logger
from backend.app.core.tracing import TraceContext, get_trace_context

AUTHORIZE_PATH = "/oauth/v2/authorize"
TOKEN_PATH = "/oauth/v2/token"
USERINFO_PATH = "/oidc/v1/userinfo"
END_SESSION_PATH = "/oidc/v1/end_session"
SCOPES = "openid profile email"

SESSION_USER_KEY = "user"
SESSION_STATE_KEY = "oidc_state"


@dataclass(slots=True)
class UserSession:
    """The signed-in user as kept in the session cookie."""

    given_name: str
    family_name: str
    access_token: str

    @property
    def display_name(self) -> str:
        return f"{self.given_name} {self.family_name}".strip()

    @classmethod
    def from_session(cls, data: Dict[str, Any]) -> "UserSession":
        return cls(
            given_name=data.get("given_name", ""),
            family_name=data.get("family_name", ""),
            access_token=data["access_token"],
        )


class LoginRequired(Exception):
    """Raised by ``require_user`` when the browser has no session."""


class OIDCAuthenticator:
    """Authorization-code flow against the identity provider."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.transport = transport

    def authorization_url(self, state: str) -> str:
        query = urlencode({
            "client_id": self.settings.auth_client_id,
            "redirect_uri": self.settings.auth_redirect_uri,
            "response_type": "code",
            "scope": SCOPES,
            "state": state,
        })
        return f"{self.settings.issuer}{AUTHORIZE_PATH}?{query}"

    def logout_url(self) -> str:
        return f"{self.settings.issuer}{END_SESSION_PATH}"

    async def exchange_code(self, code: str) -> UserSession:
        """
        Trade an authorization code for an access token and the user's profile.

        Raises:
            StatusError: When the identity provider rejects the code or token
            TransportError: When the identity provider cannot be reached
            DecodeError: When an answer is not the expected JSON
        """
        try:
            async with http_client(
                base_url=self.settings.issuer,
                timeout=self.settings.http_timeout_seconds,
                transport=self.transport,
            ) as client:
                token_response = await client.post(
                    TOKEN_PATH,
                    data={
                        "grant_type": "authorization_code",
                        "code": code,
                        "redirect_uri": self.settings.auth_redirect_uri,
                        "client_id": self.settings.auth_client_id,
                        "client_secret": self.settings.auth_client_secret or "",
                    },
                )
                raise_for_status(token_response, context="token exchange failed")
                access_token = _json(token_response).get("access_token")
                if not access_token:
                    raise DecodeError("token response carries no access_token")

                userinfo_response = await client.get(
                    USERINFO_PATH,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                raise_for_status(userinfo_response, context="userinfo call failed")
                userinfo = _json(userinfo_response)
        except httpx.RequestError as exc:
            raise TransportError(f"identity provider unreachable: {exc}") from exc

        return UserSession(
            given_name=userinfo.get("given_name", ""),
            family_name=userinfo.get("family_name", ""),
            access_token=access_token,
        )


def _json(response: httpx.Response) -> Dict[str, Any]:
    try:
        data = response.json()
    except ValueError as exc:
        raise DecodeError("identity provider returned invalid json") from exc
    if not isinstance(data, dict):
        raise DecodeError("identity provider returned unexpected json")
    return data


def get_authenticator(request: Request) -> OIDCAuthenticator:
    return request.app.state.authenticator


def current_user(request: Request) -> Optional[UserSession]:
    """FastAPI dependency returning the signed-in user, if any."""
    data = request.session.get(SESSION_USER_KEY)
    if not data or not data.get("access_token"):
        return None
    return UserSession.from_session(data)


def require_user(user: Optional[UserSession] = Depends(current_user)) -> UserSession:
    """FastAPI dependency sending browsers without a session to ``/auth/login``."""
    if user is None:
        raise LoginRequired()
    return user


async def login_required_handler(request: Request, exc: LoginRequired) -> RedirectResponse:
    return RedirectResponse("/auth/login", status_code=302)


router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/login")
async def login(
    request: Request,
    authenticator: OIDCAuthenticator = Depends(get_authenticator),
) -> RedirectResponse:
    state = secrets.token_urlsafe(24)
    request.session[SESSION_STATE_KEY] = state
    return RedirectResponse(authenticator.authorization_url(state), status_code=302)


@router.get("/callback")
async def callback(
    request: Request,
    code: str = "",
    state: str = "",
    authenticator: OIDCAuthenticator = Depends(get_authenticator),
    trace: TraceContext = Depends(get_trace_context),
) -> RedirectResponse:
    logger = get_logger(__name__, trace)
    expected_state = request.session.pop(SESSION_STATE_KEY, None)
    if not code or not expected_state or not secrets.compare_digest(state, expected_state):
        logger.warning("oidc_callback_rejected", has_code=bool(code))
        raise NotAuthenticatedError("invalid authorization callback")

    user = await authenticator.exchange_code(code)
    request.session[SESSION_USER_KEY] = asdict(user)
    logger.info("user_signed_in", user=user.display_name)
    return RedirectResponse("/feed", status_code=302)


@router.get("/logout")
async def logout(
    request: Request,
    authenticator: OIDCAuthenticator = Depends(get_authenticator),
) -> RedirectResponse:
    request.session.clear()
    return RedirectResponse(authenticator.logout_url(), status_code=302)
