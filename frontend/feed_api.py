"""Async client the web frontend uses to call the feed API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

import httpx
from fastapi import Request
from pydantic import ValidationError

from backend.app.core.errors import ApiError, DecodeError, TransportError, classify_status, raise_for_status
from backend.app.core.http import http_client
from backend.app.core.logging import get_logger
from backend.app.core.tracing import TraceContext
from backend.app.models import FeedResponse

logger = get_logger(__name__)


@dataclass(slots=True)
class HealthCheck:
    """Outcome of a feed API health probe."""

    healthy: bool
    error: Optional[ApiError] = None


class FeedClient:
    """
    Client for the ``/api`` endpoints of the feed API.

    Every call forwards the current request's trace id so the API logs it as
    its sender trace id. No call is retried.
    """

    def __init__(
        self,
        hostname: str,
        port: int | str,
        *,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.hostname = hostname
        self.port = port
        self.timeout = timeout
        self.transport = transport

    @property
    def base_url(self) -> str:
        return f"http://{self.hostname}:{self.port}/api/"

    def _headers(self, trace: TraceContext, access_token: str | None = None) -> Dict[str, str]:
        headers = trace.outbound_headers()
        if access_token is not None:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    async def _send(
        self,
        method: str,
        path: str,
        *,
        headers: Dict[str, str],
        json: Optional[dict] = None,
    ) -> httpx.Response:
        try:
            async with http_client(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                return await client.request(method, path, headers=headers, json=json)
        except httpx.TimeoutException as exc:
            raise TransportError(f"feed api {path} timed out") from exc
        except httpx.RequestError as exc:
            raise TransportError(f"failed to query feed api: {exc}") from exc

    async def check_health(self, trace: TraceContext) -> HealthCheck:
        """
        Probe ``/api/healthz``.

        Returns:
            HealthCheck: healthy on a 200, otherwise the classified or transport error
        """
        try:
            response = await self._send("GET", "healthz", headers=self._headers(trace))
        except TransportError as exc:
            return HealthCheck(healthy=False, error=exc)

        error = classify_status(response.status_code, context="feed api health check failed")
        if error is not None:
            return HealthCheck(healthy=False, error=error)
        return HealthCheck(healthy=True)

    async def select_feed(self, name: str, access_token: str, trace: TraceContext) -> None:
        """
        Ask the API to serve ``name``'s feed from now on.

        Raises:
            StatusError: The classification of a non-200 answer
            TransportError: When the API cannot be reached
        """
        response = await self._send(
            "POST",
            "select_feed",
            headers=self._headers(trace, access_token),
            json={"name": name},
        )
        raise_for_status(response, context="select feed api call failed")

    async def get_feed(self, access_token: str, trace: TraceContext) -> FeedResponse:
        """
        Retrieve the currently selected feed.

        Raises:
            StatusError: The classification of a non-200 answer
            TransportError: When the API cannot be reached
            DecodeError: When the body is not a valid feed response
        """
        response = await self._send("GET", "feed", headers=self._headers(trace, access_token))
        raise_for_status(response, context="feed api call failed")

        try:
            return FeedResponse.model_validate_json(response.content)
        except ValidationError as exc:
            logger.warning("feed_response_invalid", error_count=exc.error_count(), **trace.log_fields())
            raise DecodeError("failed to deserialize feed api response") from exc


def get_feed_client(request: Request) -> FeedClient:
    """FastAPI dependency returning the app's feed API client."""
    return request.app.state.feed_client
