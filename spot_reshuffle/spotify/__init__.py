"""
Spotify module for spot-reshuffle.

This module handles all interaction with the Spotify Web API:
    - auth: OAuth token provider (spotipy) with single-flight refresh
    - api: Async HTTP client (aiohttp) for listings and playlist edits
    - models: Track, source, page and playlist dataclasses

Usage:
    from spot_reshuffle.spotify import SpotifyTokenProvider, SpotifyWebApi

    tokens = SpotifyTokenProvider.from_config(config.spotify)
    async with SpotifyWebApi.from_config(tokens, config.network) as api:
        user_id = await api.current_user_id()
"""

from spot_reshuffle.spotify.api import SpotifyWebApi, WebApi
from spot_reshuffle.spotify.auth import SpotifyTokenProvider
from spot_reshuffle.spotify.models import (
    LIKED_SONGS_NAME,
    Page,
    RawTrackItem,
    SourceKind,
    SourceSpec,
    SourceType,
    TargetCollection,
    TrackRef,
)

__all__ = [
    "SpotifyWebApi",
    "WebApi",
    "SpotifyTokenProvider",
    "LIKED_SONGS_NAME",
    "Page",
    "RawTrackItem",
    "SourceKind",
    "SourceSpec",
    "SourceType",
    "TargetCollection",
    "TrackRef",
]
