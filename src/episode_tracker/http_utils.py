"""HTTP utilities: timeouts and retries for transient failures."""

import logging
import time
from typing import Any, Callable

logger = logging.getLogger(__name__)

# Default timeouts: (connect_timeout, read_timeout)
DEFAULT_TIMEOUT = (3, 15)
API_TIMEOUT = (5, 30)

TRANSIENT_STATUS_CODES = (429, 502, 503, 504)


def retry_on_transient(
    func: Callable,
    *args: Any,
    max_retries: int = 2,
    backoff_factor: float = 2.0,
    sleep: Callable[[float], None] = time.sleep,
    **kwargs: Any,
) -> Any:
    """Call func, retrying on rate limits, gateway errors and dropped connections.

    Args:
        func: Callable returning a response (e.g. session.get)
        *args: Positional arguments to func
        max_retries: Number of retries after the first attempt
        backoff_factor: Exponential backoff base (2.0 = 1s, 2s, 4s)
        sleep: Sleep function (overridable in tests)
        **kwargs: Keyword arguments to func

    Returns:
        The last response, which may still carry a transient status code

    Raises:
        The connection error from the final attempt
    """
    attempt = 0

    while True:
        try:
            response = func(*args, **kwargs)
        except (TimeoutError, ConnectionError, OSError) as e:
            if attempt >= max_retries:
                raise
            wait = backoff_factor ** attempt
            logger.debug(f"Connection error: {e}. Retrying in {wait}s (attempt {attempt + 1}/{max_retries})")
            sleep(wait)
            attempt += 1
            continue

        if response.status_code in TRANSIENT_STATUS_CODES and attempt < max_retries:
            wait = backoff_factor ** attempt
            logger.debug(
                f"Transient error {response.status_code}, "
                f"retrying in {wait}s (attempt {attempt + 1}/{max_retries})"
            )
            sleep(wait)
            attempt += 1
            continue

        return response


__all__ = [
    "DEFAULT_TIMEOUT",
    "API_TIMEOUT",
    "TRANSIENT_STATUS_CODES",
    "retry_on_transient",
]
