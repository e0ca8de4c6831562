"""Exponential backoff for remote writes that are safe to repeat."""

import time
from functools import wraps
from typing import Callable, Tuple, Type

import structlog

log = structlog.stdlib.get_logger()


def backoff_delays(max_retries: int, base_delay: float, max_delay: float) -> list[float]:
    """Return the wait before each retry: base_delay doubling, capped at max_delay."""
    return [min(base_delay * (2**attempt), max_delay) for attempt in range(max_retries)]


def exponential_backoff_retry(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
    operation: str | None = None,
) -> Callable:
    """
    Decorator that retries a function with exponential backoff.

    Only wrap operations that are safe to repeat. Writes that create new
    documents must not be retried, since a lost acknowledgement would
    produce a duplicate.

    Args:
        max_retries: Maximum number of retry attempts (0 disables retrying)
        base_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds
        exceptions: Tuple of exception types to catch and retry
        sleep: Function used to wait between attempts
        operation: Label used in log events, e.g. ``products.update``;
            defaults to the function name

    Returns:
        Decorated function with retry logic
    """
    if max_retries < 0:
        raise ValueError("max_retries must be >= 0")

    delays = backoff_delays(max_retries, base_delay, max_delay)

    def decorator(func: Callable) -> Callable:
        label = operation or getattr(func, "__name__", repr(func))

        @wraps(func)
        def wrapper(*args, **kwargs):
            for attempt, delay in enumerate(delays, start=1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    log.warning(
                        "retrying_after_error",
                        operation=label,
                        attempt=attempt,
                        max_retries=max_retries,
                        delay_seconds=delay,
                        error=str(e),
                    )
                    sleep(delay)

            try:
                return func(*args, **kwargs)
            except exceptions as e:
                if max_retries > 0:
                    log.error(
                        "max_retries_reached",
                        operation=label,
                        max_retries=max_retries,
                        error=str(e),
                    )
                raise

        return wrapper

    return decorator
