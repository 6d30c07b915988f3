"""
spot-reshuffle: Combine Spotify playlists into one shuffled playlist.

This package collects the tracks of several Spotify playlists and,
optionally, the user's Liked Songs, removes duplicates and tracks that
cannot be added to a playlist, shuffles the result uniformly and writes
it to a playlist owned by the user.

Architecture:
    The run is a pipeline of four steps:

    STEP 1 (library/): Collect
        - Page through every source concurrently
        - Skip local files, malformed and unavailable tracks
        - Merge in source order, keeping the first occurrence of each track

    STEP 2 (library/): Shuffle
        - Fisher-Yates over OS entropy

    STEP 3 (playlist/): Resolve the target
        - Exact name match among the user's own playlists
        - Create a private playlist when none exists

    STEP 4 (playlist/): Synchronize
        - Remove the current contents in batches of 100
        - Add the shuffled tracks in batches of 100

Modules:
    core/       - Configuration, logging, exceptions, retry, progress bars
    spotify/    - OAuth token provider and async Web API client
    library/    - Filtering, collection, aggregation, shuffling
    playlist/   - Target resolution and batch synchronization
    pipeline.py - End-to-end run
    cli.py      - Command-line interface

Usage:
    Command Line:
        spot-reshuffle -s ID1,ID2 -t "Shuffled Mix"
        spot-reshuffle -s ID1 --include-liked -t "Everything"

    Python API:
        import asyncio
        from spot_reshuffle.core import load_config, setup_logging
        from spot_reshuffle.pipeline import ReshuffleRequest, run_reshuffle
        from spot_reshuffle.spotify import SpotifyTokenProvider, SpotifyWebApi

        config = load_config()
        setup_logging()
        request = ReshuffleRequest.from_options(["37i9dQZF1DXcBWIGoYBM5M"], True, "Mix")

        async def main():
            tokens = SpotifyTokenProvider.from_config(config.spotify)
            async with SpotifyWebApi.from_config(tokens, config.network) as api:
                return await run_reshuffle(api, request)

        summary = asyncio.run(main())

Dependencies:
    - spotipy: OAuth login and token cache
    - aiohttp: Async HTTP client for the Web API
    - asyncio-throttle: Request rate limiting
    - click / rich-click: CLI framework and colors
    - rich: Progress bars
    - tqdm: Log output that does not break progress bars
    - pyyaml: Configuration file parsing
"""

__version__ = "0.1.0"
__author__ = "spot-reshuffle"
__license__ = "MIT"

# Convenience imports for common usage
from spot_reshuffle.core import (
    AuthError,
    CollectionFailed,
    Config,
    ConfigError,
    ReshuffleError,
    SourceUnavailable,
    SyncFailure,
    get_logger,
    load_config,
    setup_logging,
)
from spot_reshuffle.spotify import SourceSpec, TargetCollection, TrackRef

__all__ = [
    # Version
    "__version__",
    # Core
    "Config",
    "load_config",
    "setup_logging",
    "get_logger",
    # Exceptions
    "ReshuffleError",
    "ConfigError",
    "AuthError",
    "SourceUnavailable",
    "CollectionFailed",
    "SyncFailure",
    # Models
    "SourceSpec",
    "TargetCollection",
    "TrackRef",
]
