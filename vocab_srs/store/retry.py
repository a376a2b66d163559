"""
Retry helper for store reads.
"""

from __future__ import annotations

import time
from typing import Callable, Optional, TypeVar

from loguru import logger

from vocab_srs.errors import PersistenceError

T = TypeVar("T")

DEFAULT_BASE_DELAY = 1.0   # Seconds before the second attempt
DEFAULT_MAX_DELAY = 10.0


def backoff_delay(attempt: int, base_delay: float = DEFAULT_BASE_DELAY, max_delay: float = DEFAULT_MAX_DELAY) -> float:
    """Exponential backoff: 1s, 2s, 4s, ... capped at max_delay."""
    return min(base_delay * (2 ** (attempt - 1)), max_delay)


def call_with_retry(
    fn: Callable[[], T],
    operation: str,
    attempts: int = 3,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    sleep: Optional[Callable[[float], None]] = None
) -> T:
    """
    Call `fn`, retrying on PersistenceError with exponential backoff.

    Only PersistenceError is retried; anything else propagates at once.
    After the last attempt the last PersistenceError is re-raised.
    """
    if attempts < 1:
        raise ValueError("attempts must be >= 1")
    sleep = sleep or time.sleep

    last_error: Optional[PersistenceError] = None
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except PersistenceError as exc:
            last_error = exc
            if attempt < attempts:
                delay = backoff_delay(attempt, base_delay, max_delay)
                logger.warning(
                    f"{operation} failed on attempt {attempt}/{attempts}: {exc}. "
                    f"Retrying in {delay:.1f}s..."
                )
                sleep(delay)
            else:
                logger.error(f"{operation} failed after {attempts} attempts: {exc}")

    raise last_error
