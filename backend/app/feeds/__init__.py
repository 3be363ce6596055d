from .listenbrainz import ListenBrainzClient, MAX_MINUTES, feed_from_entries, parse_feed

__all__ = [
    "ListenBrainzClient",
    "MAX_MINUTES",
    "feed_from_entries",
    "parse_feed",
]
