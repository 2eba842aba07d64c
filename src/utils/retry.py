"""Retry utilities with exponential backoff.

Used around controller transport calls. Navigation retries are not
handled here: those go through the checkpoint state machine, which
must observe the screen between attempts.
"""

import functools
import logging
import random
import time
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


def compute_backoff_delay(
    attempt: int,
    base_delay: float = 0.2,
    max_delay: float = 5.0,
    exponential_base: float = 2.0,
    jitter: bool = True
) -> float:
    """
    Delay before retry number ``attempt`` (0-based), in seconds.

    Args:
        attempt: Zero-based retry index
        base_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds
        exponential_base: Base for exponential calculation
        jitter: Scale by a random factor in [0.5, 1.5)

    Returns:
        Delay in seconds
    """
    delay = min(base_delay * (exponential_base ** attempt), max_delay)
    if jitter:
        delay = delay * (0.5 + random.random())
    return delay


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 0.2,
    max_delay: float = 5.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    exceptions: tuple[type[Exception], ...] = (Exception,),
    on_retry: Callable[[Exception, int, float], None] | None = None
):
    """
    Decorator for retrying a function with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds
        exponential_base: Base for exponential calculation
        jitter: Add random jitter to delays
        exceptions: Tuple of exception types to retry on
        on_retry: Callback called on each retry (exception, attempt, delay)

    Returns:
        Decorated function

    Example:
        @retry_with_backoff(max_retries=3, exceptions=(requests.RequestException,))
        def post_action(payload):
            return session.post(url, json=payload, timeout=10)
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_retries:
                        logger.error(
                            f"All {max_retries} retry attempts failed for {func.__name__}"
                        )
                        raise

                    delay = compute_backoff_delay(
                        attempt, base_delay, max_delay, exponential_base, jitter
                    )

                    logger.warning(
                        f"Retry {attempt + 1}/{max_retries} for {func.__name__} "
                        f"after {delay:.2f}s due to: {e}"
                    )

                    if on_retry:
                        on_retry(e, attempt + 1, delay)

                    time.sleep(delay)

        return wrapper
    return decorator
