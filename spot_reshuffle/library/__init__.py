"""
Library module for spot-reshuffle.

Turns the configured sources into the final shuffled TrackSet:
    - filters: Identity filter (local files, malformed or unavailable tracks)
    - collector: Paginated retrieval of one source
    - aggregator: Concurrent collection and first-occurrence deduplication
    - shuffler: Uniform Fisher-Yates shuffle
"""

from spot_reshuffle.library.aggregator import SourceAggregator
from spot_reshuffle.library.collector import PaginatedCollector
from spot_reshuffle.library.filters import (
    FilterReason,
    check_track,
    deduplicate_track_uris,
    filter_valid_track_uris,
    is_valid_track_uri,
)
from spot_reshuffle.library.shuffler import shuffle_tracks

__all__ = [
    "SourceAggregator",
    "PaginatedCollector",
    "FilterReason",
    "check_track",
    "deduplicate_track_uris",
    "filter_valid_track_uris",
    "is_valid_track_uri",
    "shuffle_tracks",
]
