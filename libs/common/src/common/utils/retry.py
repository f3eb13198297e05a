"""Retry utility for optimistic writes and other transient failures."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


def default_is_transient_error(error: Exception) -> bool:
    """Check if an error is transient and worth retrying.

    Type-based detection covers standard Python exceptions (asyncio.TimeoutError,
    ConnectionError, TimeoutError). For library-specific conflicts such as
    ``redis.exceptions.WatchError`` pass a custom predicate to
    :func:`retry_with_backoff`.

    Args:
        error: Exception to check

    Returns:
        True if error is transient, False otherwise
    """
    return isinstance(error, asyncio.TimeoutError | ConnectionError | TimeoutError)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    retry_delay: float = 0.05,
    is_transient_error: Callable[[Exception], bool] | None = None,
    description: str = "operation",
) -> T:
    """Execute an async operation, retrying transient failures with exponential backoff.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt.
        max_retries: Maximum number of retries after the first attempt.
        retry_delay: Initial delay in seconds, doubled on each retry.
        is_transient_error: Predicate deciding whether an error is retryable.
        description: Human-readable name used in log messages.

    Returns:
        Result of the first successful attempt.

    Raises:
        ValueError: If max_retries or retry_delay are negative.
        Exception: The last error when retries are exhausted or the error is
            not transient.
    """
    if max_retries < 0:
        raise ValueError("max_retries must be >= 0")  # noqa: TRY003
    if retry_delay < 0:
        raise ValueError("retry_delay must be >= 0")  # noqa: TRY003

    check = is_transient_error or default_is_transient_error
    attempt = 0

    while True:
        try:
            return await operation()
        except Exception as e:
            attempt += 1
            if not check(e) or attempt > max_retries:
                if attempt > max_retries:
                    logger.warning(
                        f"{description} failed after {max_retries} retries: {e}"
                    )
                raise

            delay = retry_delay * (2 ** (attempt - 1))
            logger.debug(
                f"Transient error in {description} on attempt {attempt}/{max_retries + 1}: "
                f"{e}. Retrying in {delay}s..."
            )
            await asyncio.sleep(delay)
