"""
Feed endpoints of the API.

Both routes require a valid bearer token. ``/api/select_feed`` additionally
requires the admin role and changes which ListenBrainz user ``/api/feed``
serves. Routes accept every verb so that a wrong verb answers 404 only after
the caller has been authenticated.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from backend.app.core.auth import AuthContext, require_authorization
from backend.app.core.config import Settings, get_settings
from backend.app.core.errors import (
    InvalidInputError,
    NoAccessError,
    NotFoundError,
    RequestFailedError,
    StatusError,
)
from backend.app.core.logging import get_logger
from backend.app.core.state import SelectedUsername, get_selection
from backend.app.core.tracing import TraceContext, get_trace_context
from backend.app.feeds.listenbrainz import ListenBrainzClient, get_feed_source
from backend.app.models import FeedResponse, SelectedFeed

router = APIRouter(prefix="/api", tags=["feed"])

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def _require_method(request: Request, method: str) -> None:
    if request.method != method:
        raise NotFoundError(f"{request.method} {request.url.path} is not routed")


@router.api_route("/select_feed", methods=ALL_METHODS)
async def select_feed(
    request: Request,
    auth: AuthContext = Depends(require_authorization),
    selection: SelectedUsername = Depends(get_selection),
    settings: Settings = Depends(get_app_settings),
    trace: TraceContext = Depends(get_trace_context),
) -> JSONResponse:
    """Update the username ``/api/feed`` reads from (admin only)."""
    _require_method(request, "POST")
    logger = get_logger(__name__, trace).bind(user_id=auth.user_id, username=auth.username)

    if not auth.is_granted_role(settings.admin_role):
        logger.warning("select_feed_forbidden")
        raise NoAccessError("admin role required to select a feed")

    body = await request.body()
    try:
        selected = SelectedFeed.model_validate_json(body)
    except ValidationError as exc:
        logger.warning("select_feed_invalid_body", error_count=exc.error_count())
        raise InvalidInputError("failed to deserialize request body") from exc

    selection.set(selected.name)
    logger.info("selected_feed_updated", feed_username=selected.name)
    return JSONResponse(status_code=status.HTTP_200_OK, content="OK")


@router.api_route("/feed", methods=ALL_METHODS)
async def get_feed(
    request: Request,
    auth: AuthContext = Depends(require_authorization),
    selection: SelectedUsername = Depends(get_selection),
    feed_source: ListenBrainzClient = Depends(get_feed_source),
    settings: Settings = Depends(get_app_settings),
    trace: TraceContext = Depends(get_trace_context),
) -> JSONResponse:
    """Return the selected user's listens and whether the caller may change the selection."""
    _require_method(request, "GET")
    username = selection.get()
    get_logger(__name__, trace).info(
        "retrieving_feed",
        user_id=auth.user_id,
        username=auth.username,
        feed_username=username,
    )

    try:
        feed = await feed_source.fetch(username, trace=trace)
    except StatusError as exc:
        # A ListenBrainz status is an upstream failure, whatever its code.
        raise RequestFailedError(
            "listenbrainz feed call failed", status_code=exc.status_code
        ) from exc
    response = FeedResponse(
        write_access=auth.is_granted_role(settings.admin_role),
        feed=feed,
    )
    return JSONResponse(status_code=status.HTTP_200_OK, content=response.model_dump(mode="json"))
