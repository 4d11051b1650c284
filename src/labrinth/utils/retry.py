"""
Retry decorators for transient network failures, with exponential backoff.
"""
import time
import logging
import functools
from typing import Callable, Optional, Type, Tuple, Any
import requests


# Failures worth resending an idempotent request for. HTTP error statuses are
# answers from the server and are never retried here.
NETWORK_ERRORS: Tuple[Type[Exception], ...] = (
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
    requests.exceptions.ChunkedEncodingError,
)

# Failures where the request never reached the server. These are the only
# ones retried for methods that are not idempotent.
CONNECT_ERRORS: Tuple[Type[Exception], ...] = (
    requests.exceptions.ConnectTimeout,
)

IDEMPOTENT_METHODS = frozenset({'GET', 'HEAD', 'OPTIONS', 'PUT', 'DELETE'})


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        exponential_base: float = 2.0,
        max_delay: float = 60.0,
        retry_on: Tuple[Type[Exception], ...] = NETWORK_ERRORS,
        logger: Optional[logging.Logger] = None
    ):
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.exponential_base = exponential_base
        self.max_delay = max_delay
        self.retry_on = retry_on
        self.logger = logger or logging.getLogger(__name__)

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given zero-based failed attempt."""
        return min(self.base_delay * (self.exponential_base ** attempt), self.max_delay)


def retry_with_backoff(config: Optional[RetryConfig] = None, **config_kwargs) -> Callable:
    """
    Decorator that retries a function when it raises one of ``config.retry_on``.

    Args:
        config: RetryConfig instance, or None to build one from config_kwargs
        **config_kwargs: Parameters passed to RetryConfig if config is None

    Example:
        @retry_with_backoff(max_attempts=3, base_delay=0.5)
        def send():
            ...
    """
    if config is None:
        config = RetryConfig(**config_kwargs)

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            for attempt in range(config.max_attempts):
                try:
                    return func(*args, **kwargs)
                except config.retry_on as e:
                    if attempt == config.max_attempts - 1:
                        config.logger.error(
                            f"{func.__name__} failed after {config.max_attempts} attempts: {e}"
                        )
                        raise

                    delay = config.delay_for(attempt)
                    config.logger.warning(
                        f"{func.__name__} failed (attempt {attempt + 1}/{config.max_attempts}): {e}. "
                        f"Retrying in {delay:.1f}s..."
                    )
                    time.sleep(delay)

        return wrapper
    return decorator


def retry_on_network_failure(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    exponential_base: float = 2.0,
    max_delay: float = 60.0,
    idempotent: bool = True,
    logger: Optional[logging.Logger] = None
) -> Callable:
    """
    Shorthand for retry_with_backoff limited to network failures.

    Idempotent requests are retried on connection errors and timeouts. Other
    requests may already have reached the server, so only connect timeouts
    are retried for them.
    """
    config = RetryConfig(
        max_attempts=max_attempts,
        base_delay=base_delay,
        exponential_base=exponential_base,
        max_delay=max_delay,
        retry_on=NETWORK_ERRORS if idempotent else CONNECT_ERRORS,
        logger=logger
    )
    return retry_with_backoff(config)
