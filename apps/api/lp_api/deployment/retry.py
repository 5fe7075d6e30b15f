"""Exponential backoff retries driven by error classification."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from lp_api.deployment.errors import is_retryable as is_retryable_error

logger = structlog.get_logger()

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY_MS = 2000
MAX_DELAY_MS = 30_000


def calculate_backoff_delay(attempt: int, base_delay_ms: int = DEFAULT_BASE_DELAY_MS) -> int:
    """Delay before retry number ``attempt`` (1-based), in milliseconds.

    Attempt 0 is the initial try and never waits. No jitter is applied.
    """
    if attempt <= 0:
        return 0
    return min(base_delay_ms * 2 ** (attempt - 1), MAX_DELAY_MS)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    is_retryable: Callable[[BaseException], bool] = is_retryable_error,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation`` with retries.

    Args:
        operation: Zero argument coroutine function to run
        is_retryable: Predicate deciding whether an error may be retried
        max_attempts: Retries allowed after the first try
        base_delay_ms: Delay before the first retry
        sleep: Sleep coroutine, replaceable in tests

    Returns:
        Result of the first successful attempt

    Raises:
        Exception: The first non retryable error, or the last error once
            attempts are exhausted
    """

    def wait(retry_state: RetryCallState) -> float:
        return calculate_backoff_delay(retry_state.attempt_number, base_delay_ms) / 1000

    def log_retry(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "Attempt failed, retrying",
            attempt=retry_state.attempt_number,
            total_attempts=max_attempts + 1,
            delay_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
            error=str(error),
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts + 1),
        wait=wait,
        retry=retry_if_exception(is_retryable),
        before_sleep=log_retry,
        sleep=sleep,
        reraise=True,
    )

    # tenacity only awaits coroutine functions, so lambdas returning a
    # coroutine are wrapped
    async def call() -> T:
        return await operation()

    return await retrying(call)
