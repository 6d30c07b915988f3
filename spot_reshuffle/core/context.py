"""
Run state threaded through the pipeline stages.

A RunContext is created once per run and passed explicitly to the
collector, the aggregator and the pipeline runner. It only holds
counters; the TrackSet itself is returned by the aggregator.
"""

from collections import Counter
from dataclasses import dataclass, field


@dataclass
class SourceStats:
    """Per-source counters, keyed by the source's display name."""
    source: str
    pages: int = 0
    retrieved: int = 0
    rejected: int = 0


@dataclass
class RunContext:
    """
    Mutable counters of one reshuffle run.

    Attributes:
        total_retrieved: Valid tracks yielded by all sources, duplicates
                         included.
        duplicates_removed: Tracks dropped because an earlier source (or
                            an earlier position) already had them.
        invalid_skipped: Tracks rejected by the identity filter.
        rejections: Rejection count per FilterReason value.
        sources: Per-source counters, in the order sources were seen.
    """
    total_retrieved: int = 0
    duplicates_removed: int = 0
    invalid_skipped: int = 0
    rejections: Counter = field(default_factory=Counter)
    sources: dict[str, SourceStats] = field(default_factory=dict)

    def source_stats(self, source: str) -> SourceStats:
        if source not in self.sources:
            self.sources[source] = SourceStats(source)
        return self.sources[source]

    def record_page(self, source: str) -> None:
        self.source_stats(source).pages += 1

    def record_retrieved(self, source: str) -> None:
        self.source_stats(source).retrieved += 1

    def record_rejection(self, source: str, reason: str) -> None:
        self.invalid_skipped += 1
        self.rejections[reason] += 1
        self.source_stats(source).rejected += 1
