"""
Core module for spot-reshuffle.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and validation
    - logger: Logging system with multiple outputs
    - retry: Bounded exponential backoff for remote calls
    - context: Counters of one run
    - progress: Rich progress bars for playlist synchronization

Usage:
    from spot_reshuffle.core import (
        Config, load_config,
        setup_logging, get_logger,
        ReshuffleError, ConfigError, SyncFailure
    )
"""

from spot_reshuffle.core.config import (
    Config,
    LoggingConfig,
    NetworkConfig,
    ReshuffleConfig,
    SpotifyConfig,
    load_config,
)
from spot_reshuffle.core.context import RunContext, SourceStats
from spot_reshuffle.core.exceptions import (
    AuthError,
    CollectionFailed,
    ConfigError,
    NotFound,
    RateLimited,
    ReshuffleError,
    SourceUnavailable,
    SpotifyApiError,
    SyncFailure,
    SyncStage,
    TransientError,
    Unauthorized,
)
from spot_reshuffle.core.logger import (
    get_logger,
    log_rejected_track,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    # Config
    "Config",
    "SpotifyConfig",
    "ReshuffleConfig",
    "NetworkConfig",
    "LoggingConfig",
    "load_config",
    # Context
    "RunContext",
    "SourceStats",
    # Exceptions
    "ReshuffleError",
    "ConfigError",
    "AuthError",
    "SpotifyApiError",
    "RateLimited",
    "Unauthorized",
    "NotFound",
    "TransientError",
    "SourceUnavailable",
    "CollectionFailed",
    "SyncFailure",
    "SyncStage",
    # Logger
    "setup_logging",
    "get_logger",
    "log_rejected_track",
    "shutdown_logging",
]
