"""
Retry helpers for transient errors from cloud APIs.

Google Drive and the other services this tool talks to fail now and then
with rate limiting (HTTP 429), overloaded servers (HTTP 5xx) or dropped
connections. Those calls are retried with exponential backoff and jitter:
each wait doubles (1s, 2s, 4s, ...) up to a cap, and is multiplied by a
random factor in [0.5, 1.5) so parallel workers don't retry in lockstep.

Errors that retrying cannot fix (404, 403, bad requests) are raised
immediately; each API client decides which is which via `is_retryable`.

USAGE:
------
    from utils.retry import retry_on_transient_error

    @retry_on_transient_error(is_retryable=lambda e: isinstance(e, ConnectionError))
    def fetch():
        return api.get()
"""

import time
import random
from functools import wraps
from typing import Callable, Optional


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Delay before retry number `attempt` (0-indexed), with jitter applied."""
    delay = min(base_delay * (2 ** attempt), max_delay)
    return delay * (0.5 + random.random())


def retry_on_transient_error(
    is_retryable: Callable[[Exception], bool],
    max_retries: int = 5,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    on_retry: Optional[Callable[[Exception, int, float], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
):
    """
    Decorator that retries a function on transient errors with exponential backoff.

    Args:
        is_retryable: Returns True if the exception is transient.
        max_retries: Retries after the first attempt (so max_retries + 1 calls).
        base_delay: Delay in seconds before the first retry.
        max_delay: Upper bound for a single delay, before jitter.
        on_retry: Called as on_retry(exc, attempt, delay) before each wait;
                  attempt is 1-indexed.
        sleep: Sleep function (tests pass a no-op).

    Returns:
        A decorator that wraps functions with retry logic.

    Raises:
        The last exception once retries are exhausted, or the first
        non-retryable exception immediately.
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except Exception as exc:
                    if not is_retryable(exc) or attempt >= max_retries:
                        raise

                    delay = backoff_delay(attempt, base_delay, max_delay)
                    attempt += 1
                    if on_retry:
                        on_retry(exc, attempt, delay)
                    sleep(delay)

        return wrapper
    return decorator


# ---------------------------------------------------------------------------
# Common retry condition helpers
# ---------------------------------------------------------------------------

# HTTP status codes that indicate transient server issues
TRANSIENT_HTTP_STATUS_CODES = {
    429,  # Too Many Requests
    500,  # Internal Server Error
    502,  # Bad Gateway
    503,  # Service Unavailable
    504,  # Gateway Timeout
}

# Network exception types that are typically transient
TRANSIENT_NETWORK_EXCEPTIONS = (
    ConnectionError,
    TimeoutError,
    OSError,  # includes socket errors
)


def is_transient_network_error(exc: Exception) -> bool:
    """Check if an exception is a transient network error."""
    return isinstance(exc, TRANSIENT_NETWORK_EXCEPTIONS)
