"""Liveness endpoint of the feed API; open to anyone."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from backend.app.core.logging import get_logger
from backend.app.core.tracing import TraceContext, get_trace_context

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/healthz", status_code=status.HTTP_200_OK)
async def health_check(trace: TraceContext = Depends(get_trace_context)) -> JSONResponse:
    """Always answers 200 "OK" while the process is serving requests."""
    get_logger(__name__, trace).debug("health_check_completed")
    return JSONResponse(status_code=status.HTTP_200_OK, content="OK")
