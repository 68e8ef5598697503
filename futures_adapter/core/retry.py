"""
Retry decorator with exponential backoff for idempotent Gate.io reads.

Only read endpoints (accounts, positions, contracts, tickers, price order
listing) are wrapped. Order-mutating calls are never retried: resubmitting a
market order after an ambiguous failure risks duplicate execution.
"""

import logging
import time
from functools import wraps
from typing import Callable, Tuple, Type

import ccxt

# ccxt.NetworkError covers RequestTimeout, ExchangeNotAvailable,
# DDoSProtection and RateLimitExceeded
RETRYABLE_EXCEPTIONS: Tuple[Type[Exception], ...] = (ccxt.NetworkError,)


def retry_with_backoff(
    max_retries: int = 2,
    initial_delay: float = 0.5,
    backoff_factor: float = 2.0,
    retryable_exceptions: Tuple[Type[Exception], ...] = RETRYABLE_EXCEPTIONS,
):
    """
    Decorator that retries transient upstream failures with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts (default: 2)
        initial_delay: Initial delay in seconds before first retry (default: 0.5)
        backoff_factor: Multiplier for delay after each retry (default: 2.0)
        retryable_exceptions: Exception types that trigger a retry

    Retry Logic:
        - Delay sequence with defaults: 0.5s, 1s
        - Authentication and exchange-side rejections are raised immediately
        - Logs each retry attempt with error details

    Usage:
        @retry_with_backoff(max_retries=2, initial_delay=0.5)
        def list_contracts(self):
            return self.exchange.public_futures_get_settle_contracts(...)
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            logger = logging.getLogger(func.__module__)
            delay = initial_delay

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)

                except retryable_exceptions as e:
                    if attempt == max_retries:
                        logger.error(
                            f"{func.__name__} failed after {attempt + 1} attempts: "
                            f"{type(e).__name__}: {e}"
                        )
                        raise

                    logger.warning(
                        f"{func.__name__} attempt {attempt + 1}/{max_retries} failed: "
                        f"{type(e).__name__}: {e}. Retrying in {delay}s..."
                    )

                    time.sleep(delay)
                    delay *= backoff_factor

        return wrapper

    return decorator
