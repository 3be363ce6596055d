"""
Structured logging configuration for the listen-feed services.

This module sets up structlog on top of the standard library logging and
provides the request logging middleware shared by the API and the web
frontend. Every request produces exactly one ``http_request_completed`` record
carrying the method, path, status, duration and trace identifiers.
"""

from __future__ import annotations

import logging
import sys
import time
from typing import Any, Awaitable, Callable, Dict, Optional

import structlog

from backend.app.core.tracing import TraceContext, trace_from_scope

Message = Dict[str, Any]
Send = Callable[[Message], Awaitable[None]]


def configure_logging(log_level: str = "INFO", json_format: bool = True) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Whether to use JSON formatting (True for production, False for dev)
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
    )
    logging.getLogger().setLevel(numeric_level)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]

    if json_format:
        processors.extend([
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer()
        ])
    else:
        processors.extend([
            structlog.dev.ConsoleRenderer(colors=True)
        ])

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str, trace: Optional[TraceContext] = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance, bound to a request's trace ids if given.

    Args:
        name: Logger name (typically __name__)
        trace: Optional trace context of the current request

    Returns:
        structlog.stdlib.BoundLogger: Configured logger instance
    """
    logger = structlog.get_logger(name)
    if trace is not None:
        logger = logger.bind(**trace.log_fields())
    return logger


def log_exception(logger: structlog.stdlib.BoundLogger, exception: Exception, context: Optional[Dict[str, Any]] = None) -> None:
    """
    Log an exception with its type, message and optional request context.

    Args:
        logger: Structured logger instance
        exception: Exception to log
        context: Additional context to include in log
    """
    log_context: Dict[str, Any] = {"exc_info": exception}
    if context:
        log_context.update(context)

    logger.error(
        "exception_occurred",
        exception_type=type(exception).__name__,
        exception_message=str(exception),
        **log_context
    )


def log_request_end(logger: structlog.stdlib.BoundLogger, method: str, path: str, status_code: int, duration_ms: float, **kwargs: Any) -> None:
    """Log the end of a request with timing and status."""
    logger.info(
        "http_request_completed",
        http_method=method,
        path=path,
        status_code=status_code,
        duration_ms=duration_ms,
        **kwargs
    )


class ResponseRecorder:
    """
    Wraps an ASGI ``send`` callable to observe the response status.

    Only the first ``http.response.start`` message is honoured; later ones are
    dropped. A body sent without a preceding start message is answered with an
    implicit 200.
    """

    def __init__(self, send: Send):
        self._send = send
        self.status: Optional[int] = None

    @property
    def wrote_header(self) -> bool:
        return self.status is not None

    async def write_header(self, status_code: int, headers: Optional[list] = None) -> None:
        if self.wrote_header:
            return
        self.status = status_code
        await self._send({
            "type": "http.response.start",
            "status": status_code,
            "headers": headers or [],
        })

    async def __call__(self, message: Message) -> None:
        if message["type"] == "http.response.start":
            if self.wrote_header:
                return
            self.status = message["status"]
            await self._send(message)
            return

        if message["type"] == "http.response.body" and not self.wrote_header:
            await self.write_header(200)

        await self._send(message)


class RequestLogMiddleware:
    """
    ASGI middleware emitting one structured log record per HTTP request.

    Must run inside ``TraceContextMiddleware`` so the record carries the
    request's trace ids.
    """

    def __init__(self, app: Any, logger_name: str = "http"):
        self.app = app
        self.logger_name = logger_name

    async def __call__(self, scope: Dict[str, Any], receive: Any, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()
        recorder = ResponseRecorder(send)
        try:
            await self.app(scope, receive, recorder)
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            logger = get_logger(self.logger_name, trace_from_scope(scope))
            log_request_end(
                logger,
                scope.get("method", ""),
                scope.get("path", ""),
                recorder.status if recorder.status is not None else 500,
                duration_ms,
            )
