"""
Async Spotify Web API client for spot-reshuffle.

This module implements the small subset of the Spotify Web API the
pipeline needs, on top of an aiohttp session:

    list_playlist_items(playlist_id, cursor) -> Page[RawTrackItem]
    list_liked_items(cursor)                 -> Page[RawTrackItem]
    list_own_playlists(cursor)               -> Page[TargetCollection]
    current_user_id()                        -> str
    create_playlist(name)                    -> TargetCollection
    remove_items(playlist_id, uris)          -> snapshot id
    add_items(playlist_id, uris)             -> snapshot id

Pagination:
    The cursor of a page is the 'next' URL returned by Spotify. It is
    opaque: pass it back verbatim to get the following page.

Errors:
    Every call may raise RateLimited (429, with Retry-After), Unauthorized
    (401 after one forced token refresh), NotFound (404 and 403),
    TransientError (5xx, connection errors, timeouts) or SpotifyApiError
    (other 4xx). Retrying is the caller's business (see core.retry).

Concurrency:
    Outstanding requests are bounded by a semaphore and the request rate
    by an asyncio-throttle Throttler, both shared by all tasks using the
    client.

Usage:
    async with SpotifyWebApi(tokens, market="from_token") as api:
        page = await api.list_liked_items()
        while page.next_cursor:
            page = await api.list_liked_items(page.next_cursor)
"""

import asyncio
from collections.abc import Sequence
from typing import Any, Protocol

import aiohttp
from asyncio_throttle import Throttler

from spot_reshuffle.core.config import DEFAULT_MARKET, NetworkConfig
from spot_reshuffle.core.exceptions import (
    NotFound,
    RateLimited,
    SpotifyApiError,
    TransientError,
    Unauthorized,
)
from spot_reshuffle.core.logger import get_logger
from spot_reshuffle.spotify.auth import SpotifyTokenProvider
from spot_reshuffle.spotify.models import Page, RawTrackItem, TargetCollection

logger = get_logger(__name__)


SPOTIFY_API_BASE = "https://api.spotify.com/v1"

# Page sizes (Spotify API maximums)
PLAYLIST_PAGE_SIZE = 100
LIKED_PAGE_SIZE = 50
OWN_PLAYLISTS_PAGE_SIZE = 50

# Maximum number of items per add/remove request
MAX_ITEMS_PER_REQUEST = 100

# What the identity filter looks at, plus the relinking origin for removals
PLAYLIST_ITEM_FIELDS = (
    "items(is_local,track(uri,type,is_local,is_playable,name,linked_from(uri))),next"
)

DEFAULT_PLAYLIST_DESCRIPTION = "Automatically generated shuffled playlist"


class WebApi(Protocol):
    """Interface of the Web API client used by the pipeline stages."""

    async def list_playlist_items(
        self, playlist_id: str, cursor: str | None = None
    ) -> Page[RawTrackItem]: ...

    async def list_liked_items(self, cursor: str | None = None) -> Page[RawTrackItem]: ...

    async def list_own_playlists(self, cursor: str | None = None) -> Page[TargetCollection]: ...

    async def current_user_id(self) -> str: ...

    async def create_playlist(self, name: str) -> TargetCollection: ...

    async def remove_items(self, playlist_id: str, uris: Sequence[str]) -> str: ...

    async def add_items(self, playlist_id: str, uris: Sequence[str]) -> str: ...


def parse_retry_after(value: str | None) -> float | None:
    """
    Parse a Retry-After header given in seconds.

    Returns:
        The delay in seconds, or None when absent or not a number.
    """
    if value is None:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    return seconds if seconds >= 0 else None


def _error_message(payload: Any, fallback: str) -> str:
    """Extract the message of a Spotify error object, if any."""
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return payload.get("error_description") or error
    return fallback


class SpotifyWebApi:
    """
    aiohttp-based client for the Spotify Web API.

    Attributes:
        market: Market sent with track listings ('from_token', a country
                code, or None to omit it).
    """

    def __init__(
        self,
        token_provider: SpotifyTokenProvider,
        session: aiohttp.ClientSession | None = None,
        base_url: str = SPOTIFY_API_BASE,
        market: str | None = DEFAULT_MARKET,
        max_concurrent_requests: int = 4,
        requests_per_second: int = 10,
        timeout: float = 30.0
    ) -> None:
        """
        Args:
            token_provider: Source of bearer tokens.
            session: Existing aiohttp session. If None, one is created
                     when entering the context manager and closed on exit.
            base_url: API root, overridable for tests.
            market: Market for track availability.
            max_concurrent_requests: Semaphore size.
            requests_per_second: Throttler rate.
            timeout: Total timeout of one request in seconds.
        """
        self._tokens = token_provider
        self._session = session
        self._owns_session = session is None
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._semaphore = asyncio.Semaphore(max_concurrent_requests)
        self._throttler = Throttler(rate_limit=requests_per_second, period=1.0)
        self._user_id: str | None = None
        self.market = market

    @classmethod
    def from_config(
        cls,
        token_provider: SpotifyTokenProvider,
        network: NetworkConfig,
        market: str | None = DEFAULT_MARKET
    ) -> "SpotifyWebApi":
        return cls(
            token_provider,
            market=market,
            max_concurrent_requests=network.max_concurrent_requests,
            requests_per_second=network.requests_per_second,
            timeout=network.timeout,
        )

    async def __aenter__(self) -> "SpotifyWebApi":
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the session if this client created it."""
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    # =========================================================================
    # Listing Operations
    # =========================================================================

    async def list_playlist_items(
        self,
        playlist_id: str,
        cursor: str | None = None
    ) -> Page[RawTrackItem]:
        """
        Get one page of a playlist's items (100 per page).

        Args:
            playlist_id: Bare Spotify playlist ID.
            cursor: 'next' URL of the previous page, None for the first.

        Raises:
            NotFound: If the playlist does not exist or is not accessible.
        """
        if cursor is not None:
            data = await self._request("GET", cursor)
        else:
            data = await self._request(
                "GET",
                f"/playlists/{playlist_id}/tracks",
                params=self._with_market({
                    "limit": PLAYLIST_PAGE_SIZE,
                    "fields": PLAYLIST_ITEM_FIELDS,
                    "additional_types": "track",
                }),
            )
        return Page(
            items=[RawTrackItem.from_spotify_api(item) for item in data.get("items") or []],
            next_cursor=data.get("next"),
        )

    async def list_liked_items(self, cursor: str | None = None) -> Page[RawTrackItem]:
        """Get one page of the user's Liked Songs (50 per page)."""
        if cursor is not None:
            data = await self._request("GET", cursor)
        else:
            data = await self._request(
                "GET",
                "/me/tracks",
                params=self._with_market({"limit": LIKED_PAGE_SIZE}),
            )
        return Page(
            items=[RawTrackItem.from_spotify_api(item) for item in data.get("items") or []],
            next_cursor=data.get("next"),
        )

    async def list_own_playlists(self, cursor: str | None = None) -> Page[TargetCollection]:
        """
        Get one page of the playlists in the user's library.

        The listing includes followed playlists owned by other users;
        callers filter on TargetCollection.owner.
        """
        if cursor is not None:
            data = await self._request("GET", cursor)
        else:
            data = await self._request(
                "GET", "/me/playlists", params={"limit": OWN_PLAYLISTS_PAGE_SIZE}
            )
        return Page(
            items=[
                TargetCollection.from_spotify_api(item)
                for item in data.get("items") or []
                if item
            ],
            next_cursor=data.get("next"),
        )

    async def current_user_id(self) -> str:
        """Spotify user ID of the authenticated user (cached)."""
        if self._user_id is None:
            data = await self._request("GET", "/me")
            self._user_id = data["id"]
        return self._user_id

    # =========================================================================
    # Mutating Operations
    # =========================================================================

    async def create_playlist(
        self,
        name: str,
        description: str = DEFAULT_PLAYLIST_DESCRIPTION
    ) -> TargetCollection:
        """Create an empty private playlist owned by the current user."""
        user_id = await self.current_user_id()
        data = await self._request(
            "POST",
            f"/users/{user_id}/playlists",
            json={"name": name, "public": False, "description": description},
        )
        return TargetCollection.from_spotify_api(data, newly_created=True)

    async def remove_items(self, playlist_id: str, uris: Sequence[str]) -> str:
        """
        Remove every occurrence of up to 100 tracks from a playlist.

        Returns:
            The playlist snapshot ID after the change.

        Raises:
            ValueError: If more than 100 URIs are given.
        """
        self._check_batch(uris)
        data = await self._request(
            "DELETE",
            f"/playlists/{playlist_id}/tracks",
            json={"tracks": [{"uri": uri} for uri in uris]},
        )
        return data.get("snapshot_id", "")

    async def add_items(self, playlist_id: str, uris: Sequence[str]) -> str:
        """
        Append up to 100 tracks to a playlist, in the given order.

        Returns:
            The playlist snapshot ID after the change.

        Raises:
            ValueError: If more than 100 URIs are given.
        """
        self._check_batch(uris)
        data = await self._request(
            "POST",
            f"/playlists/{playlist_id}/tracks",
            json={"uris": list(uris)},
        )
        return data.get("snapshot_id", "")

    # =========================================================================
    # HTTP Plumbing
    # =========================================================================

    @staticmethod
    def _check_batch(uris: Sequence[str]) -> None:
        if len(uris) > MAX_ITEMS_PER_REQUEST:
            raise ValueError(
                f"At most {MAX_ITEMS_PER_REQUEST} items per request, got {len(uris)}"
            )

    def _with_market(self, params: dict[str, Any]) -> dict[str, Any]:
        if self.market:
            params["market"] = self.market
        return params

    async def _request(
        self,
        method: str,
        path_or_url: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
        allow_refresh: bool = True
    ) -> dict[str, Any]:
        """
        Send one authenticated request and decode the JSON answer.

        An HTTP 401 forces one token refresh and replays the request once.
        """
        if self._session is None:
            raise RuntimeError("SpotifyWebApi used outside of 'async with'")

        if path_or_url.startswith(("http://", "https://")):
            url = path_or_url
        else:
            url = f"{self._base_url}{path_or_url}"

        token = await self._tokens.get_token()
        headers = {"Authorization": f"Bearer {token}"}

        async with self._semaphore:
            async with self._throttler:
                try:
                    async with self._session.request(
                        method, url, params=params, json=json, headers=headers,
                        timeout=self._timeout
                    ) as response:
                        if response.status != 401 or not allow_refresh:
                            return await self._decode(response, method, url)
                except asyncio.TimeoutError as e:
                    raise TransientError(
                        f"Request timed out: {method} {url}",
                        details={"method": method, "url": url}
                    ) from e
                except aiohttp.ClientError as e:
                    raise TransientError(
                        f"Network error on {method} {url}: {e}",
                        details={"method": method, "url": url, "original_error": str(e)}
                    ) from e

        logger.debug(f"{method} {url}: token rejected, refreshing")
        await self._tokens.invalidate(token)
        return await self._request(method, path_or_url, params, json, allow_refresh=False)

    @staticmethod
    async def _decode(
        response: aiohttp.ClientResponse,
        method: str,
        url: str
    ) -> dict[str, Any]:
        """Map a response to its JSON body or to the matching error."""
        status = response.status

        if 200 <= status < 300:
            if status == 204:
                return {}
            try:
                data = await response.json(content_type=None)
            except ValueError as e:
                raise TransientError(
                    f"Malformed JSON answer to {method} {url}",
                    details={"http_status": status, "method": method, "url": url},
                    status=status
                ) from e
            return data if isinstance(data, dict) else {}

        try:
            payload = await response.json(content_type=None)
        except ValueError:
            payload = None

        reason = _error_message(payload, response.reason or f"HTTP {status}")
        message = f"{method} {url} failed ({status}): {reason}"
        details = {"http_status": status, "method": method, "url": url}

        if status == 429:
            retry_after = parse_retry_after(response.headers.get("Retry-After"))
            raise RateLimited(message, details=details, retry_after=retry_after)
        if status == 401:
            raise Unauthorized(message, details=details)
        if status in (403, 404):
            raise NotFound(message, details=details, status=status)
        if status >= 500:
            raise TransientError(message, details=details, status=status)
        raise SpotifyApiError(message, details=details, status=status)
