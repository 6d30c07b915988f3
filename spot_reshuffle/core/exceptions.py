"""
Exception classes for spot-reshuffle.

This module defines all custom exceptions used throughout the application.
Each exception carries a human-readable message plus a details dictionary,
and distinguishes between the failure modes the pipeline reacts to
differently (retry, abort the run, report partial remote state).

Exception Hierarchy:
    ReshuffleError (base)
        ConfigError - Configuration file / CLI input issues
        AuthError - No valid Spotify credential obtainable
        SpotifyApiError - Web API call failed (carries HTTP status)
            RateLimited - HTTP 429, may carry a Retry-After hint
            Unauthorized - HTTP 401 after a forced token refresh
            NotFound - HTTP 404 / 403, resource missing or not accessible
            TransientError - 5xx, connection reset, timeout
        SourceUnavailable - A configured source cannot be read
        CollectionFailed - A source's pagination exhausted its retries
        SyncFailure - The target playlist was partially mutated
"""

from enum import Enum
from typing import Any


class ReshuffleError(Exception):
    """
    Base exception for all spot-reshuffle errors.

    All custom exceptions in this project inherit from this class,
    allowing callers to catch every pipeline failure with a single
    except clause.

    Attributes:
        message: Human-readable error description.
        details: Dictionary with additional context (source ids, statuses).

    Example:
        try:
            summary = await run_reshuffle(api, request)
        except ReshuffleError as e:
            logger.error(f"Reshuffle failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description shown to the user.
            details: Optional dictionary containing additional context.
                     Common keys include:
                     - 'source': source identifier involved in the error
                     - 'http_status': HTTP status of a failed API call
                     - 'original_error': the wrapped exception as text
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(ReshuffleError):
    """
    Raised when there's an issue with the configuration.

    This is a CRITICAL error raised before any remote call.

    Common causes:
        - Explicit config file not found or invalid YAML
        - Missing Spotify credentials (neither config nor environment)
        - No sources configured (no playlists and Liked Songs disabled)
        - Blank target playlist name
    """
    pass


class AuthError(ReshuffleError):
    """
    Raised when no valid Spotify credential can be obtained.

    This is a CRITICAL error. Since the pipeline collects every source
    before touching the target playlist, an AuthError always aborts the
    run before any remote mutation.
    """
    pass


class SpotifyApiError(ReshuffleError):
    """
    Raised when a Spotify Web API call fails.

    The subclasses mirror the failure classes of the HTTP contract.
    A bare SpotifyApiError is used for unexpected 4xx answers
    (bad request, payload too large) which are never retried.

    Attributes:
        status: HTTP status code of the failed response, or None
                when the request never produced a response.
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        status: int | None = None
    ) -> None:
        super().__init__(message, details)
        self.status = status


class RateLimited(SpotifyApiError):
    """
    Raised on HTTP 429 Too Many Requests.

    Attributes:
        retry_after: Seconds the service asked us to wait, parsed from
                     the Retry-After header. None when absent or invalid.
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        retry_after: float | None = None
    ) -> None:
        super().__init__(message, details, status=429)
        self.retry_after = retry_after


class Unauthorized(SpotifyApiError):
    """Raised on HTTP 401 when a forced token refresh did not help."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message, details, status=401)


class NotFound(SpotifyApiError):
    """Raised on HTTP 404, and on HTTP 403 (resource not accessible)."""
    pass


class TransientError(SpotifyApiError):
    """
    Raised for failures that may succeed when repeated.

    Common causes:
        - HTTP 500, 502, 503, 504
        - Connection reset or refused
        - Request timeout
    """
    pass


class SourceUnavailable(ReshuffleError):
    """
    Raised when a configured source cannot be read (not found, access denied).

    Policy: abort the whole run, no partial combination.

    Attributes:
        source: The SourceSpec that could not be read.
    """

    def __init__(self, source: Any, details: dict | None = None) -> None:
        super().__init__(f"Source unavailable: {source}", details)
        self.source = source


class CollectionFailed(ReshuffleError):
    """
    Raised when a page request for a source exhausted its retry budget.

    Attributes:
        source: The SourceSpec whose collection failed.
        cause: The last error raised by the page request.
    """

    def __init__(self, source: Any, cause: Exception) -> None:
        super().__init__(
            f"Failed to collect {source}: {cause}",
            details={"source": str(source), "original_error": str(cause)}
        )
        self.source = source
        self.cause = cause


class SyncStage(str, Enum):
    """Stages of the target playlist synchronization."""

    RESOLVED = "resolved"
    CLEARING = "clearing"
    POPULATING = "populating"
    DONE = "done"
    FAILED = "failed"


class SyncFailure(ReshuffleError):
    """
    Raised when synchronizing the target playlist failed part-way.

    The target playlist is left as it is, nothing is rolled back.
    Re-running the whole pipeline is the recovery path: the next run's
    clearing stage removes whatever this run managed to add.

    Attributes:
        stage: SyncStage.CLEARING or SyncStage.POPULATING.
        items_completed: Items already removed (clearing) or added
                         (populating) when the failure happened.
        cause: The last error raised by the failing batch.
    """

    def __init__(
        self,
        stage: SyncStage,
        items_completed: int,
        cause: Exception,
        details: dict | None = None
    ) -> None:
        verb = "removed" if stage == SyncStage.CLEARING else "added"
        super().__init__(
            f"Synchronization failed while {stage.value} "
            f"({items_completed} tracks {verb} before the failure): {cause}",
            details={
                "stage": stage.value,
                "items_completed": items_completed,
                "original_error": str(cause),
                **(details or {}),
            }
        )
        self.stage = stage
        self.items_completed = items_completed
        self.cause = cause
