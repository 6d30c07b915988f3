"""
Merging of all configured sources into one deduplicated TrackSet.

Each source is collected by its own task, so pages of different sources
are requested concurrently. A source's tracks are buffered until that
source is complete; the merge then walks the buffers in configured
source order, which keeps the result independent of network timing:

    sources:  [A, B, A, C]  [C, B, D]
    merged:   [A, B, C, D]  duplicates_removed = 3

The first failure of any source cancels the other collection tasks and
propagates. A run never continues with a subset of its sources.
"""

import asyncio
from collections.abc import Iterable, Sequence

from spot_reshuffle.core.context import RunContext
from spot_reshuffle.core.exceptions import ConfigError
from spot_reshuffle.core.logger import get_logger
from spot_reshuffle.library.collector import PaginatedCollector
from spot_reshuffle.spotify.models import SourceSpec, TrackRef

logger = get_logger(__name__)


class SourceAggregator:
    """Collects every source and deduplicates by track URI."""

    def __init__(self, collector: PaginatedCollector, context: RunContext) -> None:
        self._collector = collector
        self._context = context

    async def aggregate(self, sources: Sequence[SourceSpec]) -> list[TrackRef]:
        """
        Collect all sources and return the TrackSet.

        Args:
            sources: Sources in configured order (playlists first,
                     then Liked Songs when enabled).

        Returns:
            Tracks in first-occurrence order, each URI exactly once.

        Raises:
            ConfigError: If no source is given.
            CollectionFailed, SourceUnavailable, AuthError: From the
                first source that fails.
        """
        if not sources:
            raise ConfigError(
                "No sources configured: give at least one source playlist "
                "or include Liked Songs"
            )

        tasks = [
            asyncio.create_task(self._buffer(source), name=f"collect {source}")
            for source in sources
        ]
        try:
            buffers = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        tracks = self.merge(buffers)
        logger.info(f"Total tracks retrieved: {self._context.total_retrieved}")
        logger.info(f"After deduplication: {len(tracks)} unique tracks")
        return tracks

    async def _buffer(self, source: SourceSpec) -> list[TrackRef]:
        logger.info(f"Retrieving tracks from {source}...")
        tracks = [track async for track in self._collector.collect(source)]
        logger.info(f"   {len(tracks)} tracks from {source}")
        return tracks

    def merge(self, buffers: Iterable[Iterable[TrackRef]]) -> list[TrackRef]:
        """
        Concatenate buffers in order, keeping the first occurrence of each URI.

        Updates total_retrieved and duplicates_removed in the context.
        """
        seen: set[str] = set()
        merged: list[TrackRef] = []

        for buffer in buffers:
            for track in buffer:
                self._context.total_retrieved += 1
                self._context.record_retrieved(track.origin_collection or "")
                if track.id in seen:
                    self._context.duplicates_removed += 1
                    continue
                seen.add(track.id)
                merged.append(track)

        return merged
