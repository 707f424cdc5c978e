"""Retry with exponential backoff for transient remote store failures."""

import time
from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

import structlog

log = structlog.stdlib.get_logger()

F = TypeVar("F", bound=Callable[..., Any])


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Delay before retry number ``attempt`` (zero-based), capped at ``max_delay``."""
    return min(base_delay * (2**attempt), max_delay)


def exponential_backoff_retry(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exceptions: tuple[type[Exception], ...] = (Exception,),
    retry_if: Callable[[Exception], bool] | None = None,
) -> Callable[[F], F]:
    """
    Decorator that retries a function with exponential backoff.

    An error is retried when it is an instance of ``exceptions`` and, if
    ``retry_if`` is given, the predicate accepts it. Anything else propagates
    on the first attempt. Once ``max_retries`` retries are used up the last
    error is re-raised unchanged, so callers see the transport's own
    exception type.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds
        exceptions: Exception types eligible for retry
        retry_if: Optional predicate narrowing which eligible errors are retried

    Returns:
        Decorated function with retry logic

    Example:
        >>> @exponential_backoff_retry(max_retries=2, exceptions=(ConnectionError,))
        ... def fetch_state():
        ...     ...
    """

    def is_transient(error: Exception) -> bool:
        return isinstance(error, exceptions) and (retry_if is None or retry_if(error))

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    if not is_transient(e):
                        raise
                    if attempt >= max_retries:
                        log.error(
                            "max_retries_reached",
                            function=func.__name__,
                            max_retries=max_retries,
                            error=str(e),
                        )
                        raise

                    delay = backoff_delay(attempt, base_delay, max_delay)
                    attempt += 1
                    log.warning(
                        "retrying_after_error",
                        function=func.__name__,
                        attempt=attempt,
                        max_retries=max_retries,
                        delay_seconds=delay,
                        error_type=type(e).__name__,
                        error=str(e),
                    )
                    time.sleep(delay)

        return wrapper  # type: ignore[return-value]

    return decorator
