"""
Retry Logic for Model Host Calls

Provides the error types raised by the inference transport and a small
retry helper with linear or exponential backoff.

Usage:
    from formsense_core.retry import RetryContext, NetworkError

    async with RetryContext(max_attempts=3, initial_delay=1.0) as ctx:
        while ctx.should_retry():
            try:
                result = await risky_operation()
                ctx.success()
                break
            except NetworkError as e:
                await ctx.failed(e)

The linear policy sleeps ``attempt * initial_delay`` between attempts. It is
meant for a single local process talking to a local model host and has no
jitter.
"""

import asyncio
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class NetworkError(Exception):
    """Network-related error (timeout, connection refused, bad status, etc.)"""
    pass


class RetryExhaustedError(Exception):
    """All retry attempts have been exhausted"""
    pass


def backoff_delay(
    attempt: int,
    initial_delay: float,
    backoff: str = "linear",
    max_delay: Optional[float] = None,
) -> float:
    """
    Delay to wait after the given (1-based) failed attempt.

    Args:
        attempt: Number of the attempt that just failed, starting at 1
        initial_delay: Base delay in seconds
        backoff: "linear" (attempt * delay) or "exponential" (delay * 2**(attempt-1))
        max_delay: Optional upper bound

    Returns:
        Delay in seconds
    """
    if backoff == "linear":
        delay = initial_delay * attempt
    elif backoff == "exponential":
        delay = initial_delay * (2 ** (attempt - 1))
    else:
        raise ValueError(f"Unknown backoff policy: {backoff}")
    if max_delay is not None:
        delay = min(delay, max_delay)
    return delay


class RetryContext:
    """
    Context manager for retry operations with state tracking.

    ``failed()`` records an error and sleeps before the next attempt, raising
    ``RetryExhaustedError`` once the budget is spent. ``skip()`` consumes an
    attempt without sleeping, for results that are well-formed on the wire
    but unusable.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        initial_delay: float = 1.0,
        backoff: str = "linear",
        max_delay: Optional[float] = None,
    ):
        self.max_attempts = max(1, max_attempts)
        self.initial_delay = initial_delay
        self.backoff = backoff
        self.max_delay = max_delay
        self.attempt = 0
        self.last_error: Optional[Exception] = None
        self._succeeded = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        pass

    @property
    def succeeded(self) -> bool:
        return self._succeeded

    def should_retry(self) -> bool:
        """Check if another attempt should be made."""
        return self.attempt < self.max_attempts and not self._succeeded

    def success(self):
        """Mark operation as successful."""
        self._succeeded = True

    def skip(self):
        """Consume an attempt without waiting."""
        self.attempt += 1

    async def failed(self, error: Exception):
        """
        Record failure and wait before next attempt.

        Args:
            error: The exception that occurred

        Raises:
            RetryExhaustedError: when this was the last allowed attempt
        """
        self.attempt += 1
        self.last_error = error

        if self.attempt < self.max_attempts:
            delay = backoff_delay(
                self.attempt, self.initial_delay, self.backoff, self.max_delay
            )
            logger.warning(
                f"Attempt {self.attempt}/{self.max_attempts} failed: {error}. "
                f"Retrying in {delay:.2f}s..."
            )
            await asyncio.sleep(delay)
        else:
            raise RetryExhaustedError(
                f"Failed after {self.max_attempts} attempts"
            ) from error
