"""
Utility functions for spot-reshuffle.

Helpers shared by the configuration layer, the CLI and the pipeline:
    - Spotify ID extraction from URLs, URIs and bare IDs
    - Splitting a sequence into bounded, ordered batches
"""

import re
from collections.abc import Iterator, Sequence
from typing import TypeVar

T = TypeVar("T")

_SPOTIFY_ID_PATTERN = re.compile(r"[0-9A-Za-z]+")


def extract_spotify_id(url_or_id: str) -> str:
    """
    Extract Spotify ID from a URL or return ID as-is.

    Handles various Spotify URL formats:
        - https://open.spotify.com/playlist/ID
        - https://open.spotify.com/playlist/ID?si=xxx
        - spotify:playlist:ID
        - Just the ID

    Args:
        url_or_id: Spotify URL, URI or bare ID.

    Returns:
        The Spotify ID (last path or URI segment).

    Examples:
        extract_spotify_id("https://open.spotify.com/track/abc123?si=xyz")
        # Returns: "abc123"

        extract_spotify_id("spotify:track:abc123")
        # Returns: "abc123"
    """
    url_or_id = url_or_id.strip()

    if url_or_id.startswith("spotify:"):
        return url_or_id.split(":")[-1]

    if "spotify.com" in url_or_id:
        url_or_id = url_or_id.split("?")[0]
        return url_or_id.rstrip("/").split("/")[-1]

    return url_or_id


def extract_playlist_id(url_or_id: str) -> str:
    """
    Extract playlist ID from a Spotify playlist URL, URI or bare ID.

    Args:
        url_or_id: "https://open.spotify.com/playlist/ID",
                   "spotify:playlist:ID" or "ID".

    Returns:
        The playlist ID.

    Raises:
        ValueError: If the value points to another kind of object
                    (track, album, ...) or the ID has invalid characters.

    Examples:
        extract_playlist_id("https://open.spotify.com/playlist/37i9dQZF1DXcBWIGoYBM5M")
        # Returns: "37i9dQZF1DXcBWIGoYBM5M"
    """
    value = url_or_id.strip()
    is_uri = value.startswith("spotify:")
    is_url = "spotify.com" in value

    if (is_uri or is_url) and "playlist" not in value:
        raise ValueError(f"Not a playlist URL: {url_or_id}")

    if is_uri and value.split(":")[1] != "playlist":
        raise ValueError(f"Not a playlist URI: {url_or_id}")

    playlist_id = extract_spotify_id(value)
    if not _SPOTIFY_ID_PATTERN.fullmatch(playlist_id):
        raise ValueError(f"Invalid playlist ID: {url_or_id!r}")

    return playlist_id


def chunked(items: Sequence[T], size: int) -> Iterator[list[T]]:
    """
    Split a sequence into contiguous, ordered chunks of at most `size`.

    Yields ceil(len(items) / size) lists whose concatenation is `items`.
    An empty sequence yields nothing.

    Raises:
        ValueError: If size is not positive.
    """
    if size < 1:
        raise ValueError(f"Chunk size must be positive, got {size}")

    for start in range(0, len(items), size):
        yield list(items[start:start + size])
