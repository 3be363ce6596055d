"""
Request-scoped trace context.

Every inbound request gets a freshly generated trace id. A caller may forward
its own trace id in ``X-Sender-Trace-Id``; that value is kept alongside as the
sender id so log lines can be joined across the frontend and the API.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import Request

HEADER_SENDER_TRACE_ID = "X-Sender-Trace-Id"
STATE_KEY = "trace"


@dataclass(frozen=True, slots=True)
class TraceContext:
    """Correlation identifiers of a single request."""

    trace_id: str
    sender_trace_id: Optional[str] = None

    def log_fields(self) -> Dict[str, str]:
        """Fields bound to every log record emitted for this request."""
        fields = {"trace_id": self.trace_id}
        if self.sender_trace_id:
            fields["sender_trace_id"] = self.sender_trace_id
        return fields

    def outbound_headers(self) -> Dict[str, str]:
        """Headers that forward this request's trace id to a downstream service."""
        return {HEADER_SENDER_TRACE_ID: self.trace_id}


def generate_trace_id() -> str:
    """Generate a new uuid4-based trace id."""
    return str(uuid.uuid4())


def new_trace_context(sender_trace_id: Optional[str] = None) -> TraceContext:
    """Build a context with a fresh trace id and an optional sender id."""
    return TraceContext(trace_id=generate_trace_id(), sender_trace_id=sender_trace_id or None)


def _header_value(scope: Dict[str, Any], header_name: str) -> Optional[str]:
    wanted = header_name.lower().encode("latin-1")
    for name, value in scope.get("headers", []):
        if name.lower() == wanted:
            return value.decode("latin-1")
    return None


class TraceContextMiddleware:
    """
    ASGI middleware attaching a ``TraceContext`` to every HTTP request.

    The context is stored in the request state, where handlers read it through
    the ``get_trace_context`` dependency and ``RequestLogMiddleware`` picks it
    up for the request log line.
    """

    def __init__(self, app: Any, header_name: str = HEADER_SENDER_TRACE_ID):
        self.app = app
        self.header_name = header_name

    async def __call__(self, scope: Dict[str, Any], receive: Any, send: Any) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        trace = new_trace_context(_header_value(scope, self.header_name))
        scope.setdefault("state", {})[STATE_KEY] = trace

        await self.app(scope, receive, send)


def trace_from_scope(scope: Dict[str, Any]) -> Optional[TraceContext]:
    return scope.get("state", {}).get(STATE_KEY)


def get_trace_context(request: Request) -> TraceContext:
    """FastAPI dependency returning the current request's trace context."""
    trace = trace_from_scope(request.scope)
    if trace is None:
        # Apps mounted without the middleware still get a usable id.
        trace = new_trace_context(request.headers.get(HEADER_SENDER_TRACE_ID))
        request.scope.setdefault("state", {})[STATE_KEY] = trace
    return trace
