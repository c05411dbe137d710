# stable_arb/utils/retry.py
"""
Exponential backoff for transient quote failures.

Only errors classified as network, timeout or rate-limit are retried;
everything else surfaces on the first attempt.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from ..exceptions import QuoteError, QuoteErrorType
from .logger import get_logger

logger = get_logger(__name__)

T = TypeVar('T')


@dataclass(frozen=True)
class RetryOptions:
    """Backoff schedule, all delays in seconds"""
    max_retries: int = 3
    initial_delay: float = 1.0
    backoff_multiplier: float = 2.0
    max_delay: float = 30.0
    rate_limit_initial_delay: float = 2.0


def is_transient(error: BaseException) -> bool:
    return isinstance(error, QuoteError) and error.retryable


def compute_backoff_delay(attempt: int, options: RetryOptions, error: Optional[BaseException] = None) -> float:
    """
    Delay before the retry that follows a failed attempt.

    Args:
        attempt: Zero-based index of the attempt that just failed
        options: Backoff schedule
        error: The failure, rate-limit errors start from a longer base delay

    Returns:
        Seconds to sleep, capped at options.max_delay
    """
    base = options.initial_delay
    if isinstance(error, QuoteError) and error.error_type is QuoteErrorType.RATE_LIMIT:
        base = max(base, options.rate_limit_initial_delay)

    return min(base * (options.backoff_multiplier ** attempt), options.max_delay)


async def retry_async(fn: Callable[[], Awaitable[T]], options: RetryOptions, context: str,
                      should_retry: Optional[Callable[[BaseException], bool]] = None) -> T:
    """
    Await fn() until it succeeds, a non-retryable error occurs or retries run out.

    Args:
        fn: Zero-argument coroutine factory
        options: Backoff schedule
        context: Label used in log lines
        should_retry: Predicate deciding which errors are retried

    Returns:
        fn's result
    """
    predicate = should_retry or is_transient

    attempt = 0
    while True:
        try:
            return await fn()
        except Exception as e:
            if not predicate(e):
                raise

            if attempt >= options.max_retries:
                logger.error(f"{context}: all {options.max_retries} retries failed: {e}")
                raise

            delay = compute_backoff_delay(attempt, options, e)
            logger.warning(
                f"{context}: attempt {attempt + 1}/{options.max_retries + 1} failed ({e}), "
                f"retrying in {delay:.1f}s"
            )
            await asyncio.sleep(delay)
            attempt += 1
