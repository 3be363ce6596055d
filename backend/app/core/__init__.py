"""
Core utilities for the listen-feed services.

This module provides the foundation shared by the API and the web frontend:
configuration, error classification, request tracing and structured logging.
"""

from .config import Settings, get_settings, validate_env_cli
from .errors import (
    ApiError,
    DecodeError,
    InvalidInputError,
    NoAccessError,
    NotAuthenticatedError,
    NotFoundError,
    RequestFailedError,
    StatusError,
    TransportError,
    classify_status,
    raise_for_status,
)
from .logging import (
    configure_logging,
    get_logger,
    log_exception,
    log_request_end,
    RequestLogMiddleware,
    ResponseRecorder,
)
from .tracing import (
    HEADER_SENDER_TRACE_ID,
    TraceContext,
    TraceContextMiddleware,
    generate_trace_id,
    get_trace_context,
)

__all__ = [
    # Configuration
    "Settings",
    "get_settings",
    "validate_env_cli",
    # Errors
    "ApiError",
    "DecodeError",
    "InvalidInputError",
    "NoAccessError",
    "NotAuthenticatedError",
    "NotFoundError",
    "RequestFailedError",
    "StatusError",
    "TransportError",
    "classify_status",
    "raise_for_status",
    # Logging
    "configure_logging",
    "get_logger",
    "log_exception",
    "log_request_end",
    "RequestLogMiddleware",
    "ResponseRecorder",
    # Tracing
    "HEADER_SENDER_TRACE_ID",
    "TraceContext",
    "TraceContextMiddleware",
    "generate_trace_id",
    "get_trace_context",
]
