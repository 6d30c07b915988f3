"""
Retry combinator for remote calls.

Every remote call of the pipeline (one page request, one batch mutation)
is wrapped with with_retry(), which retries rate-limit and transient
failures with exponential backoff and jitter, up to a bounded number of
attempts. Any other error propagates on the first occurrence.

Retry Strategy:
    - Rate limit (HTTP 429) with Retry-After: wait exactly the hint; a
      hint longer than max_retry_after is re-raised at once
    - Rate limit without hint: exponential backoff, 2x multiplier
    - Transient errors: exponential backoff 1s → 2s → 4s → 8s (capped)
    - Jitter: ±30% randomization so concurrent streams do not retry
      in lockstep
    - After max_attempts the last error is re-raised and the caller
      turns it into its stage failure (CollectionFailed, SyncFailure)

Usage:
    page = await with_retry(
        lambda: api.list_playlist_items(playlist_id, cursor),
        policy,
        description=f"Page of playlist {playlist_id}",
    )
"""

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from spot_reshuffle.core.config import NetworkConfig
from spot_reshuffle.core.exceptions import RateLimited, TransientError
from spot_reshuffle.core.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# Jitter factor (±30%) applied to computed backoff delays
RETRY_JITTER_FACTOR = 0.3

# Extra delay multiplier when rate limited without a Retry-After hint
RATE_LIMIT_DELAY_MULTIPLIER = 2.0

RETRYABLE_ERRORS = (RateLimited, TransientError)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded exponential backoff parameters.

    Attributes:
        max_attempts: Total attempts, including the first one.
        base_delay: Delay before the second attempt, in seconds.
        max_delay: Cap of the exponential delay, in seconds.
        max_retry_after: Longest Retry-After worth waiting for; a longer
            hint fails the call instead of retrying early.
        jitter: Relative jitter applied to computed delays (0.3 = ±30%).
    """
    max_attempts: int = 5
    base_delay: float = 1.0
    max_delay: float = 30.0
    max_retry_after: float = 60.0
    jitter: float = RETRY_JITTER_FACTOR

    @classmethod
    def from_config(cls, network: NetworkConfig) -> "RetryPolicy":
        return cls(
            max_attempts=network.max_attempts,
            base_delay=network.base_delay,
            max_delay=network.max_delay,
            max_retry_after=network.max_retry_after,
        )

    def delay_for(
        self,
        error: Exception,
        attempt: int,
        rng: random.Random | None = None
    ) -> float:
        """
        Compute the wait before the next attempt.

        Args:
            error: The error raised by the failed attempt.
            attempt: Zero-based index of the failed attempt.
            rng: Random source for the jitter (module random if None).

        Returns:
            Delay in seconds, never negative.
        """
        if isinstance(error, RateLimited) and error.retry_after is not None:
            return max(0.0, error.retry_after)

        delay = min(self.base_delay * (2 ** attempt), self.max_delay)
        if isinstance(error, RateLimited):
            delay = min(delay * RATE_LIMIT_DELAY_MULTIPLIER, self.max_delay)

        uniform = (rng or random).random()
        delay += delay * self.jitter * (2 * uniform - 1)
        return max(0.0, delay)


async def with_retry(
    call: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    description: str,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    rng: random.Random | None = None
) -> T:
    """
    Await call(), retrying RateLimited and TransientError failures.

    Args:
        call: Zero-argument factory returning a fresh awaitable per attempt.
        policy: Backoff parameters.
        description: What is being attempted, for log messages.
        sleep: Awaitable sleep, injectable for tests.
        rng: Random source for the jitter.

    Returns:
        The result of the first successful attempt.

    Raises:
        RateLimited, TransientError: The last error once attempts run out.
        RateLimited: Immediately, when Retry-After exceeds max_retry_after.
        Any other exception raised by call(), immediately.

    Cancellation:
        A cancelled task stops during the backoff sleep; no further
        attempt is issued.
    """
    attempt = 0
    while True:
        try:
            return await call()
        except RETRYABLE_ERRORS as e:
            attempt += 1
            if attempt >= policy.max_attempts:
                logger.warning(
                    f"{description} failed after {policy.max_attempts} attempts: {e}"
                )
                raise

            if (
                isinstance(e, RateLimited)
                and e.retry_after is not None
                and e.retry_after > policy.max_retry_after
            ):
                logger.warning(
                    f"{description}: rate limited for {e.retry_after:.0f}s, "
                    f"more than the {policy.max_retry_after:.0f}s allowed. Giving up"
                )
                raise

            delay = policy.delay_for(e, attempt - 1, rng)
            log_msg = (
                f"{description}: attempt {attempt}/{policy.max_attempts} failed ({e}). "
                f"Retrying in {delay:.1f}s"
            )
            if isinstance(e, RateLimited):
                logger.warning(log_msg + " (rate limited)")
            else:
                logger.debug(log_msg)

            await sleep(delay)
