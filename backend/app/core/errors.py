"""
Error taxonomy shared by the API and the web frontend.

Outbound HTTP calls (ListenBrainz, the feed API, the identity provider) are
classified by status code into a small closed set of errors. Routes translate
each error into their own HTTP status through ``http_status`` and only ever
expose ``public_message`` to callers.
"""

from __future__ import annotations

from typing import Optional

import httpx


class ApiError(RuntimeError):
    """Base exception for every failure surfaced by the services."""

    http_status: int = 500
    code: str = "INTERNAL_ERROR"
    public_message: str = "request failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)


class StatusError(ApiError):
    """Raised when an upstream service answers with a non-success status."""

    def __init__(self, message: str | None = None, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotAuthenticatedError(StatusError):
    http_status = 401
    code = "NOT_AUTHENTICATED"
    public_message = "not authenticated"


class NoAccessError(StatusError):
    http_status = 403
    code = "NO_ACCESS"
    public_message = "not authorized"


class NotFoundError(StatusError):
    http_status = 404
    code = "NOT_FOUND"
    public_message = "resource not found"


class RequestFailedError(StatusError):
    code = "REQUEST_FAILED"
    public_message = "request failed"


class TransportError(ApiError):
    """Raised when an upstream service cannot be reached or times out."""

    code = "TRANSPORT_FAILED"
    public_message = "upstream service unreachable"


class DecodeError(ApiError):
    """Raised when an upstream payload (XML or JSON) cannot be decoded."""

    code = "DECODE_FAILED"
    public_message = "invalid upstream response"


class InvalidInputError(ApiError):
    http_status = 400
    code = "INVALID_INPUT"
    public_message = "invalid input"


_STATUS_ERRORS: dict[int, type[StatusError]] = {
    401: NotAuthenticatedError,
    403: NoAccessError,
    404: NotFoundError,
}


def classify_status(status_code: int, *, context: Optional[str] = None) -> Optional[StatusError]:
    """
    Map an HTTP status code to its error class.

    200 is the only success; 401, 403 and 404 have dedicated errors and every
    other code is a ``RequestFailedError``.

    Args:
        status_code: Status code of the upstream response
        context: Optional prefix describing the failed call

    Returns:
        None on success, otherwise a new error instance carrying the status code
    """
    if status_code == 200:
        return None

    error_class = _STATUS_ERRORS.get(status_code, RequestFailedError)
    message = error_class.public_message
    if context:
        message = f"{context}: {message} (status {status_code})"
    return error_class(message, status_code=status_code)


def raise_for_status(response: httpx.Response, *, context: Optional[str] = None) -> None:
    """Raise the classified error for ``response`` unless it is a 200."""
    error = classify_status(response.status_code, context=context)
    if error is not None:
        raise error
