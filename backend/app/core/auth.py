"""
Bearer-token authorization for the feed API.

Tokens are validated by the identity provider through OAuth 2.0 token
introspection (RFC 7662); the API only reads back who the caller is and which
project roles they were granted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Protocol

import httpx
from fastapi import Depends, Request

from backend.app.core.config import Settings, get_settings
from backend.app.core.errors import (
    DecodeError,
    NotAuthenticatedError,
    RequestFailedError,
    TransportError,
)
from backend.app.core.http import http_client
from backend.app.core.logging import get_logger
from backend.app.core.tracing import TraceContext, get_trace_context

INTROSPECTION_PATH = "/oauth/v2/introspect"
ROLES_CLAIM = "urn:zitadel:iam:org:project:roles"


@dataclass(frozen=True, slots=True)
class AuthContext:
    """Identity of an authorized caller."""

    user_id: str
    username: str = ""
    roles: FrozenSet[str] = field(default_factory=frozenset)

    def is_granted_role(self, role: str) -> bool:
        return role in self.roles


class Authorizer(Protocol):
    async def authorize(self, token: str) -> AuthContext:
        ...


def _roles_from_claims(claims: Dict[str, Any]) -> FrozenSet[str]:
    roles = claims.get(ROLES_CLAIM) or {}
    if isinstance(roles, dict):
        return frozenset(roles)
    if isinstance(roles, (list, tuple)):
        return frozenset(str(role) for role in roles)
    return frozenset()


class TokenIntrospectionAuthorizer:
    """Validates access tokens against the identity provider's introspection endpoint."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.transport = transport

    async def authorize(self, token: str) -> AuthContext:
        try:
            async with http_client(
                base_url=self.settings.issuer,
                timeout=self.settings.http_timeout_seconds,
                transport=self.transport,
            ) as client:
                response = await client.post(
                    INTROSPECTION_PATH,
                    data={"token": token},
                    auth=(self.settings.auth_client_id, self.settings.auth_client_secret or ""),
                )
        except httpx.RequestError as exc:
            raise TransportError(f"token introspection failed: {exc}") from exc

        if response.status_code != 200:
            # Any status here concerns the API's client credentials, not the caller's token.
            raise RequestFailedError(
                f"token introspection failed (status {response.status_code})",
                status_code=response.status_code,
            )
        try:
            claims = response.json()
        except ValueError as exc:
            raise DecodeError("token introspection returned invalid json") from exc
        if not claims.get("active"):
            raise NotAuthenticatedError("token is not active")

        return AuthContext(
            user_id=str(claims.get("sub", "")),
            username=str(claims.get("username", "")),
            roles=_roles_from_claims(claims),
        )


def get_authorizer(request: Request) -> Authorizer:
    """FastAPI dependency returning the app's authorizer."""
    return request.app.state.authorizer


def _bearer_token(request: Request) -> str:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise NotAuthenticatedError("missing bearer token")
    return token.strip()


async def require_authorization(
    request: Request,
    authorizer: Authorizer = Depends(get_authorizer),
    trace: TraceContext = Depends(get_trace_context),
) -> AuthContext:
    """FastAPI dependency rejecting requests without a valid bearer token (401)."""
    token = _bearer_token(request)
    try:
        auth = await authorizer.authorize(token)
    except NotAuthenticatedError:
        get_logger(__name__, trace).info("authorization_rejected", path=request.url.path)
        raise
    return auth
