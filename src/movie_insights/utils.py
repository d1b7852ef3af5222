"""Utility functions and decorators for movie_insights."""

import asyncio
import logging
import math
import threading
from functools import wraps
from typing import Any, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


def round_half_up(value: float, digits: int = 0) -> float:
    """
    Round halves upward (2.45 -> 2.5, 37.5 -> 38), unlike the built-in
    round() which rounds halves to even. Non-finite inputs round to 0.
    """
    if not math.isfinite(value):
        return 0.0
    factor = 10 ** digits
    # The small epsilon absorbs binary representation error (e.g. 4.45 -> 4.4499999)
    return math.floor(value * factor + 0.5 + 1e-9) / factor


def round_percent(fraction: float) -> int:
    """Express a 0-1 fraction as an integer percentage."""
    return int(round_half_up(fraction * 100))


class VersionedCache(Generic[T]):
    """
    Memoize one derived value per dataset version.

    The cached value is replaced as soon as a different version is requested,
    so at most one generation is kept alive. Safe to share between threads;
    concurrent misses may compute the value twice but never return a stale
    generation.
    """

    def __init__(self, factory: Callable[..., T]):
        self._factory = factory
        self._lock = threading.Lock()
        self._version: int | None = None
        self._value: T | None = None

    def get(self, key: int, *args: Any, **kwargs: Any) -> T:
        """Return the value for ``key``, calling the factory with the remaining arguments on a miss."""
        with self._lock:
            if self._version == key:
                return self._value
        value = self._factory(*args, **kwargs)
        with self._lock:
            self._version = key
            self._value = value
        logger.debug(f"{getattr(self._factory, '__name__', 'cache')} rebuilt for version {key}")
        return value

    def clear(self) -> None:
        with self._lock:
            self._version = None
            self._value = None


def async_retry_with_backoff(
    max_retries: int = 3,
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
    exceptions: tuple = (Exception,)
):
    """
    Async decorator that retries a coroutine with exponential backoff on failure.

    Args:
        max_retries: Maximum number of attempts
        initial_delay: Initial delay in seconds before first retry
        backoff_factor: Multiplier for delay between retries (exponential backoff)
        exceptions: Tuple of exception types to catch and retry

    Example:
        @async_retry_with_backoff(max_retries=3, initial_delay=2.0)
        async def fetch_data():
            # ... async code that might fail
            pass
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            delay = initial_delay
            last_exception = None

            for attempt in range(max_retries):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    last_exception = e
                    if attempt < max_retries - 1:
                        logger.warning(
                            f"{func.__name__} failed (attempt {attempt + 1}/{max_retries}): {e}. "
                            f"Retrying in {delay:.1f}s..."
                        )
                        await asyncio.sleep(delay)
                        delay *= backoff_factor
                    else:
                        logger.error(
                            f"{func.__name__} failed after {max_retries} attempts: {e}"
                        )

            raise last_exception

        return wrapper
    return decorator
