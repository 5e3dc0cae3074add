"""Bounded retry with exponential backoff for remote model calls."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from ..errors import StudioError, TransportUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_DELAY = 2.0

# Overloaded, internal error, rate limited
RETRYABLE_STATUS_CODES = frozenset({429, 500, 503})


def _status_code(error: BaseException) -> Optional[int]:
    for attr in ("code", "status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    return None


def is_transient(error: BaseException) -> bool:
    """Return True for failures worth retrying.

    Matches by status code (429, 500, 503) or by an "overloaded" message.
    Studio errors other than ``TransportUnavailable`` are deterministic and
    never retried.
    """
    if isinstance(error, StudioError) and not isinstance(error, TransportUnavailable):
        return False
    if _status_code(error) in RETRYABLE_STATUS_CODES:
        return True
    return "overloaded" in str(error).lower()


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    is_retryable: Callable[[BaseException], bool] = is_transient,
    max_retries: int = DEFAULT_MAX_RETRIES,
    initial_delay: float = DEFAULT_INITIAL_DELAY,
    description: str = "remote call",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation`` with up to ``max_retries`` retries.

    Delays double from ``initial_delay`` (2s, 4s, 8s with the defaults).

    Args:
        operation: Zero-argument coroutine factory; called once per attempt.
        is_retryable: Classifier deciding whether a failure is transient.
        max_retries: Retries allowed after the first attempt.
        initial_delay: Seconds to wait before the first retry.
        description: Label used in log messages.
        sleep: Awaitable sleep function.

    Returns:
        The operation's result.

    Raises:
        TransportUnavailable: If every attempt failed with a retryable error.
        Exception: Any non-retryable error, unchanged, on first occurrence.
    """
    delay = initial_delay
    attempt = 0

    while True:
        attempt += 1
        try:
            return await operation()
        except Exception as e:
            if not is_retryable(e):
                raise
            if attempt > max_retries:
                logger.error(f"{description} still failing after {attempt} attempts: {e}")
                raise TransportUnavailable(
                    f"{description} unavailable after {attempt} attempts: {e}",
                    attempts=attempt,
                ) from e

            logger.warning(
                f"{description} failed ({e}). Retrying in {delay:.1f}s "
                f"(attempt {attempt + 1}/{max_retries + 1})..."
            )
            await sleep(delay)
            delay *= 2
