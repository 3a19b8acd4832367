"""Retry logic with exponential backoff for document store writes.

Firestore occasionally answers with transient errors (unavailable, deadline
exceeded, quota). This module provides a decorator that retries those with
exponential backoff and jitter and lets every other error through at once.
"""

import asyncio
import functools
import inspect
import logging
import random
import time
from typing import Any, Callable, Set, Type, TypeVar, cast

from google.api_core import exceptions as gexc

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

# Google API errors worth another attempt
TRANSIENT_EXCEPTIONS: tuple[Type[Exception], ...] = (
    gexc.ServiceUnavailable,
    gexc.DeadlineExceeded,
    gexc.InternalServerError,
    gexc.TooManyRequests,
    gexc.Aborted,
    ConnectionError,
    TimeoutError,
)

# HTTP status codes that should trigger retry when an error only carries a code
RETRYABLE_STATUS_CODES: Set[int] = {429, 500, 503, 504}

# Retry configuration
MAX_RETRIES = 3
BASE_DELAY = 0.5  # seconds
MAX_JITTER = 0.5  # seconds


def is_transient(exception: Exception) -> bool:
    """Return True if the error is worth retrying.

    Args:
        exception: The exception that was raised

    Returns:
        True for transient Google API / network errors, False otherwise
    """
    if isinstance(exception, TRANSIENT_EXCEPTIONS):
        return True
    code = getattr(exception, "code", None)
    if isinstance(code, int) and code in RETRYABLE_STATUS_CODES:
        return True
    return False


def _backoff_delay(attempt: int, base_delay: float, max_jitter: float) -> float:
    return (base_delay * (2 ** attempt)) + (random.random() * max_jitter)


def retry_with_backoff(
    max_retries: int = MAX_RETRIES,
    base_delay: float = BASE_DELAY,
    max_jitter: float = MAX_JITTER,
) -> Callable[[F], F]:
    """Decorator that retries transient failures with exponential backoff.

    Works on both coroutine functions and plain functions. Non-transient
    errors are raised immediately; transient ones are raised after
    max_retries further attempts.

    Args:
        max_retries: Maximum number of retry attempts (default: 3)
        base_delay: Base delay in seconds for exponential backoff (default: 0.5)
        max_jitter: Maximum random jitter in seconds (default: 0.5)

    Returns:
        Decorated function with retry logic
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if not is_transient(e) or attempt >= max_retries:
                        if attempt >= max_retries:
                            logger.error(f"{func.__name__} failed after {max_retries} retries: {e}")
                        raise
                    delay = _backoff_delay(attempt, base_delay, max_jitter)
                    attempt += 1
                    logger.warning(
                        f"{func.__name__} attempt {attempt}/{max_retries} failed: {e}. "
                        f"Retrying in {delay:.2f}s..."
                    )
                    await asyncio.sleep(delay)

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    if not is_transient(e) or attempt >= max_retries:
                        if attempt >= max_retries:
                            logger.error(f"{func.__name__} failed after {max_retries} retries: {e}")
                        raise
                    delay = _backoff_delay(attempt, base_delay, max_jitter)
                    attempt += 1
                    logger.warning(
                        f"{func.__name__} attempt {attempt}/{max_retries} failed: {e}. "
                        f"Retrying in {delay:.2f}s..."
                    )
                    time.sleep(delay)

        if inspect.iscoroutinefunction(func):
            return cast(F, async_wrapper)
        return cast(F, sync_wrapper)

    return decorator
