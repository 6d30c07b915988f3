"""
Replacement of the target playlist's contents.

The BatchSynchronizer walks a small state machine:

    RESOLVED -> CLEARING -> POPULATING -> DONE
         \\          \\            \\
          +----------+------------+--> FAILED

CLEARING:
    Snapshot the entries currently in the target (paginated listing) and
    remove them in batches of at most 100. A removal drops every
    occurrence of a URI, and entries Spotify relinked for the market are
    removed by the URI they were added with. Local files cannot be removed
    through the Web API and are left in place. Removal counts are playlist
    entries, so a URI present three times counts three.

POPULATING:
    Append the shuffled tracks in contiguous batches of at most 100, in
    order, so the playlist ends up in exactly the shuffled order.

Each batch is retried on its own. When a batch exhausts its retries the
run stops with a SyncFailure naming the stage and the number of tracks
already removed or added; nothing is rolled back. Population never
starts on a partially cleared playlist.
"""

import asyncio
from collections import Counter
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TypeVar

from spot_reshuffle.core.exceptions import (
    AuthError,
    SpotifyApiError,
    SyncFailure,
    SyncStage,
)
from spot_reshuffle.core.logger import get_logger
from spot_reshuffle.core.progress import SyncProgressBar
from spot_reshuffle.core.retry import RetryPolicy, with_retry
from spot_reshuffle.library.filters import LOCAL_FILE_PREFIX
from spot_reshuffle.spotify.api import MAX_ITEMS_PER_REQUEST, WebApi
from spot_reshuffle.spotify.models import TargetCollection, TrackRef
from spot_reshuffle.utils import chunked

logger = get_logger(__name__)

T = TypeVar("T")

BATCH_SIZE = MAX_ITEMS_PER_REQUEST


def split_batches(items: Sequence[T], size: int = BATCH_SIZE) -> list[list[T]]:
    """
    Split items into ceil(len(items) / size) contiguous batches.

    Concatenating the batches gives back the input, in order.
    """
    return list(chunked(items, size))


@dataclass(frozen=True)
class SyncResult:
    """
    Outcome of a completed synchronization.

    Attributes:
        items_added: Tracks appended to the target.
        items_removed: Playlist entries removed while clearing.
        local_files_kept: Local-file entries that could not be removed.
        newly_created: Whether the target was created by this run.
    """
    items_added: int
    items_removed: int
    newly_created: bool
    local_files_kept: int = 0


class BatchSynchronizer:
    """
    Clears a target playlist and fills it with the final TrackSet.

    A synchronizer handles one target for one run.

    Attributes:
        state: Current SyncStage.
        history: Every stage entered, in order, starting with RESOLVED.
    """

    def __init__(
        self,
        api: WebApi,
        policy: RetryPolicy | None = None,
        sleep=asyncio.sleep,
        show_progress: bool = False
    ) -> None:
        self._api = api
        self._policy = policy or RetryPolicy()
        self._sleep = sleep
        self._show_progress = show_progress
        self.state = SyncStage.RESOLVED
        self.history: list[SyncStage] = [SyncStage.RESOLVED]

    async def synchronize(
        self,
        target: TargetCollection,
        tracks: Sequence[TrackRef]
    ) -> SyncResult:
        """
        Make the target contain exactly the given tracks, in order.

        Args:
            target: Playlist returned by the TargetResolver.
            tracks: Final shuffled TrackSet.

        Returns:
            SyncResult with the number of tracks removed and added.

        Raises:
            SyncFailure: A batch or the target listing failed for good.
            RuntimeError: If this synchronizer already ran.
        """
        if self.state != SyncStage.RESOLVED:
            raise RuntimeError(f"Synchronizer already used (state: {self.state.value})")

        try:
            self._transition(SyncStage.CLEARING)
            removed, local_files = await self._clear(target)

            self._transition(SyncStage.POPULATING)
            added = await self._populate(target, tracks)
        except BaseException:
            self._transition(SyncStage.FAILED)
            raise

        self._transition(SyncStage.DONE)
        return SyncResult(
            items_added=added,
            items_removed=removed,
            newly_created=target.newly_created,
            local_files_kept=local_files,
        )

    def _transition(self, stage: SyncStage) -> None:
        logger.debug(f"Synchronization: {self.state.value} -> {stage.value}")
        self.state = stage
        self.history.append(stage)

    # =========================================================================
    # Clearing
    # =========================================================================

    async def _clear(self, target: TargetCollection) -> tuple[int, int]:
        if target.existing_item_count == 0:
            logger.debug(f"Playlist '{target.name}' is empty, nothing to clear")
            return 0, 0

        try:
            occurrences, local_files = await self._snapshot(target)
        except (SpotifyApiError, AuthError) as e:
            raise SyncFailure(SyncStage.CLEARING, 0, e, details={"target": target.id}) from e

        if local_files:
            logger.warning(
                f"{local_files} local files in '{target.name}' cannot be "
                f"removed through the Web API and are kept"
            )
        if not occurrences:
            return 0, local_files

        total = sum(occurrences.values())
        batches = split_batches(list(occurrences))
        logger.info(f"Clearing {total} tracks from '{target.name}'...")
        removed = 0

        with self._progress(total, "Clearing") as progress:
            for index, batch in enumerate(batches, start=1):
                try:
                    await with_retry(
                        lambda: self._api.remove_items(target.id, batch),
                        self._policy,
                        description=f"Removal batch {index}/{len(batches)}",
                        sleep=self._sleep,
                    )
                except (SpotifyApiError, AuthError) as e:
                    raise SyncFailure(
                        SyncStage.CLEARING, removed, e,
                        details={"target": target.id, "batch": index}
                    ) from e
                cleared = sum(occurrences[uri] for uri in batch)
                removed += cleared
                if progress is not None:
                    progress.advance(cleared)

        logger.info(f"Removed {removed} tracks")
        return removed, local_files

    async def _snapshot(self, target: TargetCollection) -> tuple[Counter, int]:
        """Occurrences of each removable entry URI, and the local file count."""
        occurrences: Counter = Counter()
        local_files = 0
        cursor: str | None = None

        while True:
            page = await with_retry(
                lambda: self._api.list_playlist_items(target.id, cursor),
                self._policy,
                description=f"Page of playlist '{target.name}'",
                sleep=self._sleep,
            )
            for item in page.items:
                if item.is_local or (item.uri or "").startswith(LOCAL_FILE_PREFIX):
                    local_files += 1
                elif item.entry_uri:
                    occurrences[item.entry_uri] += 1
            if page.next_cursor is None:
                break
            cursor = page.next_cursor

        return occurrences, local_files

    # =========================================================================
    # Populating
    # =========================================================================

    async def _populate(self, target: TargetCollection, tracks: Sequence[TrackRef]) -> int:
        uris = [track.id for track in tracks]
        batches = split_batches(uris)
        logger.info(f"Adding {len(uris)} tracks in {len(batches)} batches...")
        added = 0

        with self._progress(len(uris), "Populating") as progress:
            for index, batch in enumerate(batches, start=1):
                try:
                    await with_retry(
                        lambda: self._api.add_items(target.id, batch),
                        self._policy,
                        description=f"Addition batch {index}/{len(batches)}",
                        sleep=self._sleep,
                    )
                except (SpotifyApiError, AuthError) as e:
                    raise SyncFailure(
                        SyncStage.POPULATING, added, e,
                        details={"target": target.id, "batch": index}
                    ) from e
                added += len(batch)
                logger.debug(f"Batch {index}/{len(batches)} added ({added}/{len(uris)})")
                if progress is not None:
                    progress.advance(len(batch))

        return added

    @contextmanager
    def _progress(self, total: int, description: str) -> Iterator[SyncProgressBar | None]:
        if not self._show_progress or total == 0:
            yield None
            return
        with SyncProgressBar(total=total, description=description) as progress:
            yield progress
