"""Retry utility with exponential backoff and jitter."""
import asyncio
import logging
import random
from typing import Awaitable, Callable, TypeVar

from .api import ApiError, get_error_info

logger = logging.getLogger(__name__)

T = TypeVar("T")

JITTER_RATIO = 0.1


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    rand: Callable[[], float] = random.random,
) -> T:
    """Retry an async operation with exponential backoff and jitter.

    Attempts run strictly one after another. A failure classified as
    non-retryable is raised at once; otherwise the wait before attempt
    ``n + 1`` is ``base_delay * 2 ** (n - 1)`` plus up to 10% jitter.

    Args:
        operation: Async callable taking no arguments
        max_retries: Maximum number of attempts in total (default: 3)
        base_delay: Delay in seconds before the second attempt (default: 1.0)
        sleep: Awaitable sleep, replaceable in tests
        rand: Source of uniform [0, 1) values for jitter

    Returns:
        Result of the operation if successful

    Raises:
        ValueError: If max_retries is less than 1
        Exception: The non-retryable failure, or the last failure once attempts run out
    """
    if max_retries < 1:
        raise ValueError(f"max_retries must be at least 1, got {max_retries}")

    for attempt in range(1, max_retries + 1):
        try:
            return await operation()
        except Exception as e:
            if isinstance(e, ApiError) and not get_error_info(e).retryable:
                logger.info(f"Non-retryable error (status {e.status}), not retrying")
                raise

            if attempt == max_retries:
                logger.warning(f"All {max_retries} attempts exhausted: {e}")
                raise

            delay = base_delay * (2 ** (attempt - 1))
            jitter = rand() * JITTER_RATIO * delay
            logger.info(
                f"Attempt {attempt}/{max_retries} failed ({e}), retrying in {delay + jitter:.2f}s"
            )
            await sleep(delay + jitter)
