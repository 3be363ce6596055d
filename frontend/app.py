from __future__ import annotations

import html
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, Form, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from starlette.middleware.sessions import SessionMiddleware

from backend.app.core.config import Settings, get_settings
from backend.app.core.errors import (
    ApiError,
    InvalidInputError,
    NoAccessError,
    NotAuthenticatedError,
    RequestFailedError,
    StatusError,
)
from backend.app.core.logging import RequestLogMiddleware, configure_logging, get_logger, log_exception
from backend.app.core.tracing import TraceContext, TraceContextMiddleware, get_trace_context
from backend.app.models import FeedResponse
from frontend.auth import (
    LoginRequired,
    OIDCAuthenticator,
    UserSession,
    current_user,
    login_required_handler,
    require_user,
    router as auth_router,
)
from frontend.feed_api import FeedClient, get_feed_client

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


@dataclass(slots=True)
class FeedPage:
    """State rendered by feed.html."""

    logged_in_user: str
    health: bool = True
    feed: Optional[FeedResponse] = None


async def handle_api_error(request: Request, exc: ApiError) -> PlainTextResponse:
    """Answer with the error's status and public message; log server-side failures."""
    logger = get_logger(__name__, get_trace_context(request))
    if exc.http_status >= 500:
        log_exception(logger, exc, {"http_method": request.method, "path": request.url.path})
    return PlainTextResponse(exc.public_message, status_code=exc.http_status)


async def index(request: Request, user: Optional[UserSession] = Depends(current_user)):
    if user is not None:
        return RedirectResponse("/feed", status_code=302)
    return templates.TemplateResponse(request, "home.html", {})


async def feed(
    request: Request,
    user: UserSession = Depends(require_user),
    feed_client: FeedClient = Depends(get_feed_client),
    trace: TraceContext = Depends(get_trace_context),
):
    logger = get_logger(__name__, trace)
    page = FeedPage(logged_in_user=user.display_name)

    health = await feed_client.check_health(trace)
    if not health.healthy:
        page.health = False
        if health.error is not None:
            logger.error("feed_api_unhealthy", error=str(health.error))
    else:
        try:
            page.feed = await feed_client.get_feed(user.access_token, trace)
        except NotAuthenticatedError:
            # The access token expired; start over with a fresh session.
            return RedirectResponse("/auth/logout", status_code=302)
        except StatusError as exc:
            raise RequestFailedError("feed api call failed", status_code=exc.status_code) from exc

    return templates.TemplateResponse(request, "feed.html", {"page": page})


async def select_feed(
    request: Request,
    name: str = Form(""),
    user: UserSession = Depends(require_user),
    feed_client: FeedClient = Depends(get_feed_client),
    trace: TraceContext = Depends(get_trace_context),
):
    if not name:
        raise InvalidInputError("name can't be empty")

    try:
        await feed_client.select_feed(html.escape(name), user.access_token, trace)
    except (NoAccessError, NotAuthenticatedError) as exc:
        get_logger(__name__, trace).warning("select_feed_rejected", error=str(exc))
        raise
    except StatusError as exc:
        raise RequestFailedError("select feed api call failed", status_code=exc.status_code) from exc

    # Browsers only follow a POST with a GET on a 303.
    return RedirectResponse("/feed", status_code=303)


def create_app(
    settings: Settings | None = None,
    *,
    feed_client: FeedClient | None = None,
    authenticator: OIDCAuthenticator | None = None,
) -> FastAPI:
    """Build the web frontend with its collaborators."""
    settings = settings or get_settings()

    app = FastAPI(title="Listen Feed Web")
    app.state.settings = settings
    app.state.feed_client = feed_client or FeedClient(
        settings.api_host,
        settings.api_port,
        timeout=settings.http_timeout_seconds,
    )
    app.state.authenticator = authenticator or OIDCAuthenticator(settings=settings)

    app.add_exception_handler(ApiError, handle_api_error)
    app.add_exception_handler(LoginRequired, login_required_handler)

    # Last added runs first: tracing, then request logging, then sessions.
    app.add_middleware(SessionMiddleware, secret_key=settings.session_secret_key, same_site="lax")
    app.add_middleware(RequestLogMiddleware, logger_name="frontend.http")
    app.add_middleware(TraceContextMiddleware)

    app.include_router(auth_router)
    app.add_api_route("/", index, methods=["GET"], response_class=HTMLResponse)
    app.add_api_route("/feed", feed, methods=["GET"], response_class=HTMLResponse)
    app.add_api_route("/select_feed", select_feed, methods=["POST"])
    return app


def build_app() -> FastAPI:
    """Uvicorn factory: configure logging from settings, then build the app."""
    settings = get_settings()
    configure_logging(log_level=settings.log_level, json_format=settings.log_json)
    return create_app(settings)
