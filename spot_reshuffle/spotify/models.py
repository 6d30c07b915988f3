"""
Data models for Spotify entities.

This module defines the immutable dataclasses passed between the stages
of the reshuffle pipeline and the Web API client.

Design Decisions:
    - All dataclasses are frozen (immutable)
    - A track is reduced to its identity: only the URI matters
    - TrackRef equality and hashing use the URI alone, so the same track
      coming from a playlist and from Liked Songs compares equal
    - Pagination cursors are opaque strings, passed back verbatim

Usage:
    from spot_reshuffle.spotify.models import SourceSpec, TrackRef

    sources = [SourceSpec.playlist("37i9dQZF1DXcBWIGoYBM5M"), SourceSpec.liked()]
    ref = TrackRef("spotify:track:4iV5W9uYEdYUVa79Axb7Rh", SourceKind.LIKED_TRACK)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from spot_reshuffle.utils import extract_playlist_id

T = TypeVar("T")

# Display name of the Liked Songs source
LIKED_SONGS_NAME = "Liked Songs"


class SourceKind(str, Enum):
    """Where a TrackRef was collected from."""

    PLAYLIST_TRACK = "playlist_track"
    LIKED_TRACK = "liked_track"


class SourceType(str, Enum):
    """Type of a configured source."""

    PLAYLIST = "playlist"
    LIKED = "liked"


@dataclass(frozen=True)
class SourceSpec:
    """
    A configured source: one playlist, or the user's Liked Songs.

    Constructed once from configuration, read-only for the run.

    Attributes:
        source_type: SourceType.PLAYLIST or SourceType.LIKED.
        playlist_id: Bare Spotify playlist ID for playlist sources,
                     None for Liked Songs.
    """
    source_type: SourceType
    playlist_id: str | None = None

    @classmethod
    def playlist(cls, url_or_id: str) -> "SourceSpec":
        """
        Build a playlist source from a bare ID, URI or open.spotify.com URL.

        Raises:
            ValueError: If the value is not a playlist reference.
        """
        return cls(SourceType.PLAYLIST, extract_playlist_id(url_or_id))

    @classmethod
    def liked(cls) -> "SourceSpec":
        return cls(SourceType.LIKED)

    @property
    def is_liked(self) -> bool:
        return self.source_type == SourceType.LIKED

    @property
    def track_kind(self) -> SourceKind:
        """SourceKind of the tracks collected from this source."""
        return SourceKind.LIKED_TRACK if self.is_liked else SourceKind.PLAYLIST_TRACK

    def __str__(self) -> str:
        if self.is_liked:
            return LIKED_SONGS_NAME
        return f"playlist {self.playlist_id}"


@dataclass(frozen=True)
class TrackRef:
    """
    Identity of one track as known by Spotify.

    Attributes:
        id: Track URI, e.g. "spotify:track:4iV5W9uYEdYUVa79Axb7Rh".
        source_kind: Whether it came from a playlist or Liked Songs.
                     Ignored by equality.
        origin_collection: Source it came from, for diagnostics only.
                           Ignored by equality.
    """
    id: str
    source_kind: SourceKind = field(default=SourceKind.PLAYLIST_TRACK, compare=False)
    origin_collection: str | None = field(default=None, compare=False)


@dataclass(frozen=True)
class RawTrackItem:
    """
    One entry of a track listing, before identity filtering.

    Attributes:
        uri: Track URI as returned by Spotify, None when the entry has no
             track (deleted track, unsupported item).
        is_local: True for local files added through the desktop client.
        is_playable: Availability in the requested market. None when the
                     API did not report it (no market requested).
        name: Track title, for log messages only.
        linked_from_uri: URI stored in the playlist when Spotify relinked
                         the entry to another track for the market.
    """
    uri: str | None
    is_local: bool = False
    is_playable: bool | None = None
    name: str | None = None
    linked_from_uri: str | None = None

    @property
    def entry_uri(self) -> str | None:
        """URI the playlist entry was added with, the one removals must name."""
        return self.linked_from_uri or self.uri

    @classmethod
    def from_spotify_api(cls, item: dict[str, Any]) -> "RawTrackItem":
        """
        Create from a playlist item or saved track object.

        Both objects wrap the track under 'track'; playlist items also
        carry their own 'is_local' flag.

        Example:
            RawTrackItem.from_spotify_api({
                "is_local": False,
                "track": {"uri": "spotify:track:abc", "is_playable": True}
            })
        """
        track = item.get("track") or {}
        return cls(
            uri=track.get("uri"),
            is_local=bool(item.get("is_local") or track.get("is_local")),
            is_playable=track.get("is_playable"),
            name=track.get("name"),
            linked_from_uri=(track.get("linked_from") or {}).get("uri"),
        )


@dataclass(frozen=True)
class TargetCollection:
    """
    A playlist that receives the shuffled tracks.

    Attributes:
        id: Spotify playlist ID.
        name: Playlist name.
        owner: Spotify user ID of the owner.
        existing_item_count: Number of items when it was looked up.
        url: External open.spotify.com URL, None if not reported.
        newly_created: True when created by this run.
    """
    id: str
    name: str
    owner: str
    existing_item_count: int = 0
    url: str | None = None
    newly_created: bool = False

    @classmethod
    def from_spotify_api(
        cls,
        data: dict[str, Any],
        newly_created: bool = False
    ) -> "TargetCollection":
        """
        Create from a simplified or full playlist object.

        The item count is read from 'tracks.total' (or 'items.total'
        on newer API responses).
        """
        totals = data.get("tracks") or data.get("items") or {}
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            owner=(data.get("owner") or {}).get("id", ""),
            existing_item_count=int(totals.get("total") or 0),
            url=(data.get("external_urls") or {}).get("spotify"),
            newly_created=newly_created,
        )


@dataclass(frozen=True)
class Page(Generic[T]):
    """
    One page of a paginated listing.

    Attributes:
        items: Entries of this page, in listing order.
        next_cursor: Opaque token for the next page, None on the last page.
    """
    items: list[T]
    next_cursor: str | None = None
