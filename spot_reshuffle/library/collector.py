"""
Paginated collection of one source.

PaginatedCollector.collect() is an async generator: it requests one page
at a time, follows the opaque cursor until Spotify reports no next page,
passes every entry through the identity filter and yields the valid
tracks as TrackRef, in playlist order.

Page sizes:
    - Playlists: 100 items per request
    - Liked Songs: 50 items per request

Failure handling:
    - Every page request goes through with_retry()
    - Retries exhausted on a page  -> CollectionFailed(source, cause)
    - Playlist not found / private -> SourceUnavailable(source), no retry
    - Any other refused request    -> SourceUnavailable(source), no retry
    - Token rejected after refresh -> AuthError
"""

import asyncio
from collections.abc import AsyncIterator

from spot_reshuffle.core.context import RunContext
from spot_reshuffle.core.exceptions import (
    AuthError,
    CollectionFailed,
    NotFound,
    RateLimited,
    SourceUnavailable,
    SpotifyApiError,
    TransientError,
    Unauthorized,
)
from spot_reshuffle.core.logger import get_logger, log_rejected_track
from spot_reshuffle.core.retry import RetryPolicy, with_retry
from spot_reshuffle.library.filters import check_track
from spot_reshuffle.spotify.api import WebApi
from spot_reshuffle.spotify.models import Page, RawTrackItem, SourceSpec, TrackRef

logger = get_logger(__name__)


class PaginatedCollector:
    """
    Retrieves every valid track of a source.

    Rejections are counted in the RunContext and reported to the
    rejected-tracks log; they never interrupt collection.
    """

    def __init__(
        self,
        api: WebApi,
        context: RunContext,
        policy: RetryPolicy | None = None,
        sleep=asyncio.sleep
    ) -> None:
        self._api = api
        self._context = context
        self._policy = policy or RetryPolicy()
        self._sleep = sleep

    async def collect(self, source: SourceSpec) -> AsyncIterator[TrackRef]:
        """
        Yield the valid tracks of one source, lazily, in listing order.

        The generator is finite and cannot be restarted; call collect()
        again for a fresh pass.

        Raises:
            CollectionFailed: A page exhausted its retry budget.
            SourceUnavailable: The playlist does not exist or is not
                               accessible to the user.
            AuthError: The token was rejected even after a refresh.
        """
        source_name = str(source)
        stats = self._context.source_stats(source_name)
        cursor: str | None = None

        while True:
            page = await self._fetch_page(source, cursor)
            self._context.record_page(source_name)

            for item in page.items:
                valid, reason = check_track(item.uri, item.is_local, item.is_playable)
                if not valid:
                    self._context.record_rejection(source_name, reason.value)
                    log_rejected_track(logger, item.uri, reason.value, origin=source_name)
                    continue
                yield TrackRef(item.uri, source.track_kind, source_name)

            if page.next_cursor is None:
                break
            cursor = page.next_cursor

        if stats.rejected:
            logger.warning(f"{stats.rejected} invalid tracks ignored from {source_name}")
        logger.debug(f"Finished {source_name} after {stats.pages} pages")

    async def _fetch_page(
        self,
        source: SourceSpec,
        cursor: str | None
    ) -> Page[RawTrackItem]:
        if source.is_liked:
            def call():
                return self._api.list_liked_items(cursor)
        else:
            def call():
                return self._api.list_playlist_items(source.playlist_id, cursor)

        try:
            return await with_retry(
                call,
                self._policy,
                description=f"Page of {source}",
                sleep=self._sleep,
            )
        except NotFound as e:
            raise SourceUnavailable(
                source,
                details={"source": str(source), "http_status": e.status}
            ) from e
        except Unauthorized as e:
            raise AuthError(
                f"Spotify rejected the access token while reading {source}",
                details={"source": str(source)}
            ) from e
        except (RateLimited, TransientError) as e:
            raise CollectionFailed(source, e) from e
        except SpotifyApiError as e:
            raise SourceUnavailable(
                source,
                details={
                    "source": str(source),
                    "http_status": e.status,
                    "original_error": str(e),
                }
            ) from e
