"""Unit tests for the request-scoped trace context middleware."""

from __future__ import annotations

import uuid

import httpx
import pytest
from fastapi import Depends, FastAPI

from backend.app.core.tracing import (
    HEADER_SENDER_TRACE_ID,
    TraceContext,
    TraceContextMiddleware,
    generate_trace_id,
    get_trace_context,
)


def _echo_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(TraceContextMiddleware)

    @app.get("/echo")
    async def echo(trace: TraceContext = Depends(get_trace_context)):
        return {"trace_id": trace.trace_id, "fields": trace.log_fields()}

    return app


class TestTraceContext:
    def test_log_fields_without_sender(self):
        trace = TraceContext(trace_id="abc")

        assert trace.log_fields() == {"trace_id": "abc"}

    def test_log_fields_with_sender(self):
        trace = TraceContext(trace_id="abc", sender_trace_id="upstream-1")

        assert trace.log_fields() == {"trace_id": "abc", "sender_trace_id": "upstream-1"}

    def test_outbound_headers_forward_own_trace_id(self):
        trace = TraceContext(trace_id="abc", sender_trace_id="upstream-1")

        assert trace.outbound_headers() == {HEADER_SENDER_TRACE_ID: "abc"}

    def test_trace_context_is_immutable(self):
        trace = TraceContext(trace_id="abc")

        with pytest.raises(AttributeError):
            trace.trace_id = "other"  # type: ignore[misc]

    def test_generate_trace_id_is_unique_uuid(self):
        ids = {generate_trace_id() for _ in range(100)}

        assert len(ids) == 100
        for value in ids:
            assert uuid.UUID(value)


@pytest.mark.asyncio
async def test_middleware_generates_fresh_id_per_request() -> None:
    transport = httpx.ASGITransport(app=_echo_app())
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        first = (await client.get("/echo")).json()
        second = (await client.get("/echo")).json()

    assert first["trace_id"]
    assert first["trace_id"] != second["trace_id"]
    assert "sender_trace_id" not in first["fields"]


@pytest.mark.asyncio
async def test_middleware_keeps_sender_header_verbatim() -> None:
    transport = httpx.ASGITransport(app=_echo_app())
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        body = (await client.get("/echo", headers={HEADER_SENDER_TRACE_ID: "Upstream-ID 42"})).json()

    assert body["fields"]["sender_trace_id"] == "Upstream-ID 42"
    assert body["trace_id"] != "Upstream-ID 42"


@pytest.mark.asyncio
async def test_middleware_ignores_empty_sender_header() -> None:
    transport = httpx.ASGITransport(app=_echo_app())
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        body = (await client.get("/echo", headers={HEADER_SENDER_TRACE_ID: ""})).json()

    assert "sender_trace_id" not in body["fields"]


@pytest.mark.asyncio
async def test_middleware_passes_non_http_scopes_through() -> None:
    seen = []

    async def inner(scope, receive, send):
        seen.append(scope)

    middleware = TraceContextMiddleware(inner)
    await middleware({"type": "lifespan"}, None, None)

    assert seen == [{"type": "lifespan"}]
