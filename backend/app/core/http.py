"""Outbound HTTP client shared by every upstream integration."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

import httpx

DEFAULT_TIMEOUT = 5.0
DEFAULT_USER_AGENT = "listen-feed/0.1 (+https://github.com/xaviercrochet/listen-feed)"


@asynccontextmanager
async def http_client(
    *,
    base_url: str = "",
    timeout: float = DEFAULT_TIMEOUT,
    headers: Optional[Dict[str, str]] = None,
    transport: httpx.AsyncBaseTransport | None = None,
    user_agent: str = DEFAULT_USER_AGENT,
) -> AsyncIterator[httpx.AsyncClient]:
    """
    Context manager for an HTTP client with proper lifecycle management.

    This ensures the client is always closed after use, preventing connection
    leaks. ``transport`` lets tests plug in an ``httpx.MockTransport``.
    """
    client_headers = {"User-Agent": user_agent}
    if headers:
        client_headers.update(headers)

    client = httpx.AsyncClient(
        base_url=base_url,
        timeout=timeout,
        headers=client_headers,
        transport=transport,
    )
    try:
        yield client
    finally:
        await client.aclose()
