"""
Retry-with-backoff combinator shared by payments, mints and NFT fetches.

    result = await retry_async(
        operation,
        max_attempts=3,
        delay=1.0,
        is_retryable=lambda exc: isinstance(exc, TimeoutError),
    )

Rules:
    - ``operation`` is a zero-argument coroutine function; it is called
      afresh on every attempt (callers rebuild transactions inside it).
    - An exception for which ``is_retryable`` returns False propagates
      unchanged, immediately.
    - A retryable exception on the final attempt raises ``RetryExhausted``
      carrying the attempt count and the last exception.
    - Delay is ``delay * backoff ** (attempt - 1)``; ``backoff=1.0`` (the
      default) gives a fixed pause.
    - ``sleep`` is injectable so tests never wait on the wall clock.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from impact_ledger.errors import RetryExhausted

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]


def _always(exc: BaseException) -> bool:
    return True


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int,
    delay: float,
    is_retryable: Callable[[BaseException], bool] = _always,
    backoff: float = 1.0,
    sleep: SleepFn = asyncio.sleep,
    label: str = "operation",
) -> T:
    """Run ``operation`` until it succeeds or the attempt budget is spent.

    Args:
        operation: Zero-argument coroutine function to run.
        max_attempts: Total attempts, including the first (>= 1).
        delay: Seconds to pause before the second attempt.
        is_retryable: Predicate deciding whether an exception is transient.
        backoff: Multiplier applied to the delay after each retry.
        sleep: Awaitable sleep function (``asyncio.sleep`` by default).
        label: Name used in log lines.

    Returns:
        Whatever ``operation`` returns on its first successful attempt.

    Raises:
        RetryExhausted: If every attempt failed with a retryable error.
        ValueError: If max_attempts < 1 or delay < 0.
        Exception: Any non-retryable exception raised by ``operation``.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got: {max_attempts}")
    if delay < 0:
        raise ValueError(f"delay must be >= 0, got: {delay}")

    pause = delay
    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if not is_retryable(exc):
                raise
            if attempt == max_attempts:
                logger.error(
                    "%s failed on attempt %d/%d, giving up: %s",
                    label, attempt, max_attempts, exc,
                )
                raise RetryExhausted(attempt, exc) from exc
            logger.warning(
                "%s failed on attempt %d/%d, retrying in %.1fs: %s",
                label, attempt, max_attempts, pause, exc,
            )
        await sleep(pause)
        pause *= backoff

    # Unreachable: the loop either returns or raises.
    raise AssertionError("retry loop exited without result")
