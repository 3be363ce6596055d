from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from backend.app.core.auth import Authorizer, TokenIntrospectionAuthorizer
from backend.app.core.config import Settings, get_settings
from backend.app.core.errors import ApiError
from backend.app.core.logging import (
    RequestLogMiddleware,
    configure_logging,
    get_logger,
    log_exception,
)
from backend.app.core.state import SelectedUsername
from backend.app.core.tracing import TraceContextMiddleware, get_trace_context
from backend.app.feeds.listenbrainz import ListenBrainzClient
from backend.app.routers import feed_router, health_router


def _json_api_error(status_code: int, *, code: str, message: str, details: Any | None = None) -> JSONResponse:
    content: dict[str, Any] = {"error": {"code": code, "message": message}}
    if details is not None:
        content["error"]["details"] = details
    return JSONResponse(status_code=status_code, content=content)


async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
    """Translate an ``ApiError`` into its HTTP status with a safe message."""
    trace = get_trace_context(request)
    logger = get_logger(__name__, trace)
    if exc.http_status >= 500:
        log_exception(logger, exc, {"http_method": request.method, "path": request.url.path})
    else:
        logger.info(
            "request_rejected",
            http_method=request.method,
            path=request.url.path,
            status_code=exc.http_status,
            reason=str(exc),
        )
    return _json_api_error(exc.http_status, code=exc.code, message=exc.public_message)


def create_app(
    settings: Settings | None = None,
    *,
    authorizer: Authorizer | None = None,
    feed_source: ListenBrainzClient | None = None,
) -> FastAPI:
    """Build the feed API with its shared state and collaborators."""
    settings = settings or get_settings()

    app = FastAPI(title="Listen Feed API", version="0.1.0")
    app.state.settings = settings
    app.state.selection = SelectedUsername(settings.default_feed_username)
    app.state.authorizer = authorizer or TokenIntrospectionAuthorizer(settings=settings)
    app.state.feed_source = feed_source or ListenBrainzClient(settings=settings)

    app.add_exception_handler(ApiError, handle_api_error)

    # Last added runs first: tracing must wrap request logging.
    app.add_middleware(RequestLogMiddleware, logger_name="backend.http")
    app.add_middleware(TraceContextMiddleware)

    app.include_router(health_router)
    app.include_router(feed_router)
    return app


def build_app() -> FastAPI:
    """Uvicorn factory: configure logging from settings, then build the app."""
    settings = get_settings()
    configure_logging(log_level=settings.log_level, json_format=settings.log_json)
    return create_app(settings)
