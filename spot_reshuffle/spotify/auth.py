"""
Spotify authentication for spot-reshuffle.

The OAuth login flow and token persistence are delegated to spotipy's
SpotifyOAuth: on first use it opens the browser, receives the code on the
redirect URI and caches the token (with its refresh token) on disk.

SpotifyTokenProvider puts that blocking auth manager behind an async
get_token() shared by every concurrent request of a run:

    - The current bearer token is read-only shared state
    - Obtaining or refreshing it is single-flight: concurrent callers that
      find the token missing or expired wait on one lock, the first one
      refreshes, the others reuse its result
    - After an HTTP 401, invalidate() forces one refresh; callers holding
      the same stale token share that refresh too

Usage:
    tokens = SpotifyTokenProvider.from_config(config.spotify)
    token = await tokens.get_token()
"""

import asyncio
import time
from collections.abc import Callable
from typing import Any

import requests
import spotipy
from spotipy.oauth2 import SpotifyOAuth, SpotifyOauthError

from spot_reshuffle.core.config import SpotifyConfig
from spot_reshuffle.core.exceptions import AuthError
from spot_reshuffle.core.logger import get_logger

logger = get_logger(__name__)

# Read sources and Liked Songs, list and modify own private playlists
SPOTIFY_SCOPES = "user-library-read playlist-read-private playlist-modify-private"

# Refresh tokens this many seconds before they actually expire
TOKEN_REFRESH_MARGIN = 60.0

# Lifetime assumed when the auth manager does not report one
DEFAULT_TOKEN_LIFETIME = 3600.0


class SpotifyTokenProvider:
    """
    Single-flight async access to a spotipy OAuth token.

    Attributes:
        refresh_count: Number of times the auth manager was asked for a
                       token; exposed for diagnostics and tests.
    """

    def __init__(
        self,
        auth_manager: Any,
        refresh_margin: float = TOKEN_REFRESH_MARGIN,
        clock: Callable[[], float] = time.time
    ) -> None:
        """
        Args:
            auth_manager: A spotipy SpotifyOAuth (or compatible) instance.
            refresh_margin: Seconds before expiry at which a token is
                            considered stale.
            clock: Time source returning epoch seconds.
        """
        self._auth_manager = auth_manager
        self._refresh_margin = refresh_margin
        self._clock = clock
        self._lock = asyncio.Lock()
        self._token: str | None = None
        self._expires_at = 0.0
        self.refresh_count = 0

    @classmethod
    def from_config(cls, spotify_config: SpotifyConfig) -> "SpotifyTokenProvider":
        """
        Create a provider backed by spotipy's SpotifyOAuth.

        The token cache path from the config is passed to spotipy; without
        one, spotipy caches the token in .cache in the working directory.
        """
        cache_path = spotify_config.cache_path
        if cache_path is not None:
            cache_path.parent.mkdir(parents=True, exist_ok=True)

        auth_manager = SpotifyOAuth(
            client_id=spotify_config.client_id,
            client_secret=spotify_config.client_secret,
            redirect_uri=spotify_config.redirect_uri,
            scope=SPOTIFY_SCOPES,
            cache_path=str(cache_path) if cache_path is not None else None,
            open_browser=True
        )
        return cls(auth_manager)

    def _is_fresh(self) -> bool:
        return (
            self._token is not None
            and self._clock() < self._expires_at - self._refresh_margin
        )

    async def get_token(self) -> str:
        """
        Return a valid bearer token, refreshing it if needed.

        Raises:
            AuthError: If no token can be obtained.
        """
        if self._is_fresh():
            return self._token

        async with self._lock:
            if not self._is_fresh():
                await self._refresh(force=False)
            return self._token

    async def invalidate(self, stale_token: str) -> str:
        """
        Replace a token the API rejected with HTTP 401.

        If another caller already replaced stale_token, its result is
        returned without a new refresh.

        Raises:
            AuthError: If no new token can be obtained.
        """
        async with self._lock:
            if self._token != stale_token and self._is_fresh():
                return self._token
            await self._refresh(force=True)
            return self._token

    async def _refresh(self, force: bool) -> None:
        """Fetch a token in a worker thread (spotipy is blocking)."""
        self.refresh_count += 1
        try:
            token_info = await asyncio.to_thread(self._fetch_token_info, force)
        except (SpotifyOauthError, spotipy.SpotifyException) as e:
            raise AuthError(
                f"Spotify authentication failed: {e}",
                details={"original_error": str(e)}
            ) from e
        except requests.RequestException as e:
            raise AuthError(
                f"Could not reach the Spotify accounts service: {e}",
                details={"original_error": str(e)}
            ) from e

        token = token_info.get("access_token")
        if not token:
            raise AuthError("Spotify returned no access token")

        expires_at = token_info.get("expires_at")
        if expires_at is None:
            expires_at = self._clock() + DEFAULT_TOKEN_LIFETIME

        self._token = token
        self._expires_at = float(expires_at)
        logger.debug("Obtained Spotify access token")

    def _fetch_token_info(self, force: bool) -> dict[str, Any]:
        """
        Ask the auth manager for a token (runs in a worker thread).

        A forced refresh uses the cached refresh token; otherwise spotipy
        returns the cached token, refreshes it if expired, or runs the
        interactive login when nothing is cached.
        """
        cache_handler = self._auth_manager.cache_handler
        cached = cache_handler.get_cached_token()

        if force and cached and cached.get("refresh_token"):
            return self._auth_manager.refresh_access_token(cached["refresh_token"])

        token = self._auth_manager.get_access_token(as_dict=False)
        token_info = cache_handler.get_cached_token() or {}
        return {"access_token": token, "expires_at": token_info.get("expires_at")}
