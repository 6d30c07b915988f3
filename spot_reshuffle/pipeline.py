"""
End-to-end reshuffle run.

The pipeline chains the four stages with an explicit RunContext:

    STEP 1 (library.aggregator): collect every source concurrently,
        filter and deduplicate into the TrackSet
    STEP 2 (library.shuffler): uniform shuffle of the TrackSet
    STEP 3 (playlist.resolver): find or create the target playlist
    STEP 4 (playlist.synchronizer): clear the target, add the shuffled
        tracks in batches of 100

Collection finishes completely before the target is looked at, so any
collection or authentication failure aborts the run with the target
untouched. An empty TrackSet stops the run before step 3.

Usage:
    request = ReshuffleRequest.from_options(
        ["37i9dQZF1DXcBWIGoYBM5M"], include_liked=True, target_name="Shuffled"
    )
    async with SpotifyWebApi(tokens) as api:
        summary = await run_reshuffle(api, request)
    summary.log(logger)
"""

import asyncio
import logging
import random
from collections.abc import Iterable
from dataclasses import dataclass, field

from spot_reshuffle.core.context import RunContext
from spot_reshuffle.core.exceptions import ConfigError
from spot_reshuffle.core.logger import get_logger
from spot_reshuffle.core.retry import RetryPolicy
from spot_reshuffle.library.aggregator import SourceAggregator
from spot_reshuffle.library.collector import PaginatedCollector
from spot_reshuffle.library.shuffler import shuffle_tracks
from spot_reshuffle.playlist.resolver import TargetResolver
from spot_reshuffle.playlist.synchronizer import BatchSynchronizer
from spot_reshuffle.spotify.api import WebApi
from spot_reshuffle.spotify.models import SourceSpec

logger = get_logger(__name__)


@dataclass(frozen=True)
class ReshuffleRequest:
    """
    What to combine and where to write it.

    Attributes:
        sources: Sources in merge order (playlists, then Liked Songs).
        target_name: Name of the target playlist.
    """
    sources: tuple[SourceSpec, ...]
    target_name: str

    @classmethod
    def from_options(
        cls,
        playlists: Iterable[str],
        include_liked: bool,
        target_name: str | None
    ) -> "ReshuffleRequest":
        """
        Build and validate a request from user input.

        Args:
            playlists: Playlist IDs, URIs or URLs, in order.
            include_liked: Add Liked Songs after the playlists.
            target_name: Target playlist name.

        Raises:
            ConfigError: No source, a value that is not a playlist
                         reference, or a blank target name.
        """
        sources: list[SourceSpec] = []
        for value in playlists:
            if not value.strip():
                continue
            try:
                sources.append(SourceSpec.playlist(value))
            except ValueError as e:
                raise ConfigError(str(e), details={"source": value}) from e

        if include_liked:
            sources.append(SourceSpec.liked())

        if not sources:
            raise ConfigError(
                "No sources given: pass source playlists, Liked Songs, or both"
            )
        if not target_name or not target_name.strip():
            raise ConfigError("A target playlist name is required")

        return cls(sources=tuple(sources), target_name=target_name)


@dataclass(frozen=True)
class RunSummary:
    """
    Outcome of a successful run.

    Attributes:
        total_retrieved: Valid tracks over all sources, duplicates included.
        duplicates_removed: Tracks dropped as duplicates.
        invalid_skipped: Tracks rejected by the identity filter.
        items_synced: Tracks in the target after the run.
        target_collection_url: Spotify URL of the target, None when the
                               run stopped before resolving it.
        target_name: Name of the target playlist.
        newly_created: Whether the target was created by this run.
        items_removed: Tracks removed from the target before refilling.
        rejections: Rejected track count per reason.
    """
    total_retrieved: int
    duplicates_removed: int
    invalid_skipped: int
    items_synced: int
    target_collection_url: str | None
    target_name: str
    newly_created: bool = False
    items_removed: int = 0
    rejections: dict[str, int] = field(default_factory=dict)

    def log(self, log: logging.Logger) -> None:
        """Log the final statistics block."""
        log.info("=" * 60)
        log.info("RESHUFFLE SUMMARY")
        log.info("=" * 60)
        log.info(f"Tracks retrieved:    {self.total_retrieved}")
        log.info(f"Duplicates removed:  {self.duplicates_removed}")
        log.info(f"Invalid skipped:     {self.invalid_skipped}")
        for reason, count in sorted(self.rejections.items()):
            log.info(f"  - {reason}: {count}")
        log.info(f"Tracks removed:      {self.items_removed}")
        log.info(f"Tracks added:        {self.items_synced}")
        if self.target_collection_url:
            state = "created" if self.newly_created else "updated"
            log.info(f"Playlist '{self.target_name}' {state}: {self.target_collection_url}")
        log.info("=" * 60)


async def run_reshuffle(
    api: WebApi,
    request: ReshuffleRequest,
    policy: RetryPolicy | None = None,
    context: RunContext | None = None,
    rng: random.Random | None = None,
    show_progress: bool = False,
    sleep=asyncio.sleep
) -> RunSummary:
    """
    Run the whole reshuffle pipeline.

    Args:
        api: Web API client.
        request: Sources and target name.
        policy: Retry policy of every remote call.
        context: Run counters; a fresh one is created if None.
        rng: Random source of the shuffle (OS entropy if None).
        show_progress: Show rich progress bars while synchronizing.
        sleep: Backoff sleep, injectable for tests.

    Returns:
        RunSummary of the run.

    Raises:
        ConfigError, AuthError, SourceUnavailable, CollectionFailed:
            Before any change to the target.
        SyncFailure: The target was changed partially.
    """
    policy = policy or RetryPolicy()
    context = context or RunContext()

    # STEP 1: collect, filter, deduplicate
    collector = PaginatedCollector(api, context, policy, sleep=sleep)
    tracks = await SourceAggregator(collector, context).aggregate(request.sources)

    if not tracks:
        logger.warning("No valid tracks found, target playlist left unchanged")
        return _summary(context, request, items_synced=0)

    # STEP 2: shuffle
    shuffled = shuffle_tracks(tracks, rng)
    logger.info(f"Shuffled {len(shuffled)} tracks")

    # STEP 3: find or create the target
    target = await TargetResolver(api, policy, sleep=sleep).resolve(request.target_name)

    # STEP 4: replace its contents
    synchronizer = BatchSynchronizer(api, policy, sleep=sleep, show_progress=show_progress)
    result = await synchronizer.synchronize(target, shuffled)

    return _summary(
        context,
        request,
        items_synced=result.items_added,
        target_url=target.url,
        newly_created=result.newly_created,
        items_removed=result.items_removed,
    )


def _summary(
    context: RunContext,
    request: ReshuffleRequest,
    items_synced: int,
    target_url: str | None = None,
    newly_created: bool = False,
    items_removed: int = 0
) -> RunSummary:
    return RunSummary(
        total_retrieved=context.total_retrieved,
        duplicates_removed=context.duplicates_removed,
        invalid_skipped=context.invalid_skipped,
        items_synced=items_synced,
        target_collection_url=target_url,
        target_name=request.target_name,
        newly_created=newly_created,
        items_removed=items_removed,
        rejections=dict(context.rejections),
    )
