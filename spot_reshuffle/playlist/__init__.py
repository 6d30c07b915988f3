"""
Playlist module for spot-reshuffle.

Writes the shuffled TrackSet to the target playlist:
    - resolver: Find the user's playlist by name or create it
    - synchronizer: Clear it and refill it in batches of 100
"""

from spot_reshuffle.playlist.resolver import TargetResolver
from spot_reshuffle.playlist.synchronizer import (
    BATCH_SIZE,
    BatchSynchronizer,
    SyncResult,
    split_batches,
)

__all__ = [
    "TargetResolver",
    "BatchSynchronizer",
    "SyncResult",
    "BATCH_SIZE",
    "split_batches",
]
