"""
ListenBrainz syndication feed reader.

Fetches the Atom feed of a user's recent listens and normalizes it into a
``Feed``. Each Atom entry becomes one ``Song`` whose listen time is the entry's
``updated`` timestamp.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Optional
from urllib.parse import quote

import feedparser
import httpx
from fastapi import Request
from dateutil import parser

from backend.app.core.config import Settings, get_settings
from backend.app.core.errors import DecodeError, TransportError, raise_for_status
from backend.app.core.http import http_client
from backend.app.core.logging import get_logger
from backend.app.core.tracing import TraceContext
from backend.app.models import Feed, Song

# Largest time range (in minutes) the syndication endpoint accepts
MAX_MINUTES = 5000


def _parse_listened_at(entry: Any) -> datetime:
    # FeedParserDict maps a missing "updated" to "published" on lookup; membership does not.
    value = entry["updated"] if "updated" in entry else None
    if not value:
        raise DecodeError(f"feed entry {entry.get('id', 'unknown')!r} has no updated timestamp")
    try:
        return parser.parse(value)
    except (ValueError, TypeError, OverflowError) as exc:
        raise DecodeError(f"feed entry has an invalid updated timestamp: {value!r}") from exc


def feed_from_entries(username: str, entries: Iterable[Any]) -> Feed:
    """Map parsed Atom entries to a ``Feed``, keeping the entry order."""
    songs = tuple(
        Song(title=entry.get("title", ""), listened_at=_parse_listened_at(entry))
        for entry in entries
    )
    return Feed(username=username, songs=songs)


def parse_feed(username: str, content: bytes) -> Feed:
    """
    Parse a raw syndication payload.

    Raises:
        DecodeError: When the payload is empty, not well-formed XML or not a feed
    """
    if not content.strip():
        raise DecodeError("failed to deserialize xml: empty payload")
    parsed = feedparser.parse(content)
    if parsed.bozo and not isinstance(parsed.bozo_exception, feedparser.CharacterEncodingOverride):
        raise DecodeError(f"failed to deserialize xml: {parsed.bozo_exception}")
    if not parsed.version:
        raise DecodeError("failed to deserialize xml: no feed document found")
    return feed_from_entries(username, parsed.entries)


class ListenBrainzClient:
    """Async client for the ListenBrainz syndication feed."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.transport = transport

    @property
    def base_url(self) -> str:
        return self.settings.listenbrainz_base_url.rstrip("/")

    @staticmethod
    def listens_path(username: str) -> str:
        return f"/syndication-feed/user/{quote(username, safe='')}/listens"

    async def fetch(self, username: str, *, trace: Optional[TraceContext] = None) -> Feed:
        """
        Fetch the recent listens of ``username``.

        A user unknown to ListenBrainz yields an empty feed rather than an error.

        Raises:
            TransportError: When ListenBrainz cannot be reached
            StatusError: When ListenBrainz answers with any other non-200 status
            DecodeError: When the payload cannot be parsed
        """
        logger = get_logger(__name__, trace).bind(feed_username=username)

        try:
            async with http_client(
                base_url=self.base_url,
                timeout=self.settings.http_timeout_seconds,
                transport=self.transport,
            ) as client:
                response = await client.get(
                    self.listens_path(username),
                    params={"minutes": MAX_MINUTES},
                )
        except httpx.TimeoutException as exc:
            logger.warning("listenbrainz_request_timeout", error=str(exc))
            raise TransportError("listenbrainz feed call timed out") from exc
        except httpx.RequestError as exc:
            logger.warning("listenbrainz_request_failed", error=str(exc))
            raise TransportError(f"failed to query listenbrainz: {exc}") from exc

        if response.status_code == 404:
            logger.info("listenbrainz_feed_not_found")
            return Feed(username=username, songs=())

        raise_for_status(response, context="listenbrainz feed call failed")

        feed = parse_feed(username, response.content)
        logger.info("listenbrainz_feed_fetched", song_count=len(feed.songs))
        return feed


def get_feed_source(request: Request) -> ListenBrainzClient:
    """FastAPI dependency returning the app's ListenBrainz client."""
    return request.app.state.feed_source
