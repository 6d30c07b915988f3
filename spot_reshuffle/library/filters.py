"""
Identity filter for collected tracks.

Decides whether a track identifier can be added to a playlist through
the Web API. The check is a pure predicate over the URI plus the
availability flags reported by the listing; it never raises.

Rejected:
    - Local files ("spotify:local:..." URIs or items flagged is_local):
      the API cannot add them to a playlist
    - Empty identifiers (deleted tracks come back with no track object)
    - Malformed identifiers: anything other than "spotify:track:<id>"
      (episodes, albums, URLs, wrong case, extra segments)
    - Tracks the API reports as not playable in the user's market

Usage:
    valid, reason = check_track(item.uri, item.is_local, item.is_playable)
    if not valid:
        context.record_rejection(source_name, reason.value)
"""

from collections.abc import Iterable
from enum import Enum

# Prefix of local file URIs
LOCAL_FILE_PREFIX = "spotify:local:"


class FilterReason(str, Enum):
    """Outcome of the identity filter."""

    OK = "ok"
    EMPTY = "empty"
    LOCAL_FILE = "local_file"
    MALFORMED = "malformed"
    UNAVAILABLE = "unavailable"


def is_valid_track_uri(uri: str) -> bool:
    """
    Check that a URI has the exact form "spotify:track:<id>".

    The ID must be non-blank and carry no surrounding whitespace;
    prefixes are case-sensitive.

    Examples:
        is_valid_track_uri("spotify:track:4iV5W9uYEdYUVa79Axb7Rh")  # True
        is_valid_track_uri("spotify:album:4iV5W9uYEdYUVa79Axb7Rh")  # False
        is_valid_track_uri("SPOTIFY:TRACK:123")                     # False
        is_valid_track_uri("spotify:track: ")                       # False
    """
    parts = uri.split(":")
    return (
        len(parts) == 3
        and parts[0] == "spotify"
        and parts[1] == "track"
        and parts[2].strip() != ""
        and parts[2] == parts[2].strip()
    )


def check_track(
    uri: str | None,
    is_local: bool = False,
    is_playable: bool | None = None
) -> tuple[bool, FilterReason]:
    """
    Validate one collected track.

    Args:
        uri: Track URI as listed by Spotify.
        is_local: Local-file flag of the listing entry.
        is_playable: Availability flag; None means "not reported".

    Returns:
        (True, FilterReason.OK) for tracks that can be added,
        (False, reason) otherwise.
    """
    if is_local or (uri is not None and uri.startswith(LOCAL_FILE_PREFIX)):
        return False, FilterReason.LOCAL_FILE

    if uri is None or not uri.strip():
        return False, FilterReason.EMPTY

    if not is_valid_track_uri(uri):
        return False, FilterReason.MALFORMED

    if is_playable is False:
        return False, FilterReason.UNAVAILABLE

    return True, FilterReason.OK


def filter_valid_track_uris(uris: Iterable[str]) -> list[str]:
    """Keep the well-formed track URIs, preserving order."""
    return [uri for uri in uris if is_valid_track_uri(uri)]


def deduplicate_track_uris(uris: Iterable[str]) -> list[str]:
    """Drop repeated URIs, keeping the first occurrence of each."""
    seen: set[str] = set()
    unique = []
    for uri in uris:
        if uri not in seen:
            seen.add(uri)
            unique.append(uri)
    return unique
