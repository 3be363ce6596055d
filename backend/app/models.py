from __future__ import annotations

from datetime import datetime
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Song(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    listened_at: datetime


class Feed(BaseModel):
    """Listening history of one ListenBrainz user, songs in feed order."""

    model_config = ConfigDict(frozen=True)

    username: str
    songs: Tuple[Song, ...] = ()


class SelectedFeed(BaseModel):
    name: str = Field(..., description="ListenBrainz username served by /api/feed")


class FeedResponse(BaseModel):
    write_access: bool
    feed: Optional[Feed] = None
