"""
Retry helpers.

- with_retry: async, linear backoff, wraps a whole generation pipeline
- RetryStrategy: sync, capped exponential backoff with a retryable-error
  predicate, used around single vision calls
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    delay_ms: int = 1000,
    non_retryable: Tuple[Type[BaseException], ...] = (),
) -> T:
    """
    Run an async operation up to max_retries times.

    Waits delay_ms * attempt milliseconds after each failed attempt
    (1x, 2x, ...). Exceptions in non_retryable are raised immediately.

    Returns:
        The first successful result

    Raises:
        The last attempt's exception, unmodified
    """
    attempts = max(1, max_retries)

    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except non_retryable:
            raise
        except Exception as e:
            if attempt == attempts:
                logger.error(f"Giving up after {attempts} attempts: {e}")
                raise
            wait_ms = delay_ms * attempt
            logger.warning(f"Attempt {attempt}/{attempts} failed: {e}; retrying in {wait_ms}ms")
            await asyncio.sleep(wait_ms / 1000)


class RetryStrategy:
    """Synchronous retry with capped exponential backoff."""

    def __init__(
        self,
        max_retries: int = 3,
        base_delay_ms: int = 1000,
        max_delay_ms: int = 10000,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self._sleep = sleep

    def delay_for(self, attempt: int) -> int:
        """Backoff before retry number `attempt` (1-based), in milliseconds."""
        return min(self.base_delay_ms * (2 ** (attempt - 1)), self.max_delay_ms)

    def execute(
        self,
        operation: Callable[[], T],
        should_retry: Optional[Callable[[Exception], bool]] = None,
    ) -> T:
        """
        Run operation up to max_retries times in total.

        should_retry decides per error whether another attempt is worth it;
        a False answer re-raises straight away.
        """
        attempts = max(1, self.max_retries)

        for attempt in range(1, attempts + 1):
            try:
                return operation()
            except Exception as e:
                if attempt == attempts or (should_retry and not should_retry(e)):
                    raise
                delay = self.delay_for(attempt)
                logger.warning(f"Attempt {attempt}/{attempts} failed, retrying in {delay}ms: {e}")
                self._sleep(delay / 1000)
