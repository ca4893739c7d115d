"""Bounded retry helper built on tenacity.

Retries only failures accepted by an eligibility predicate, waits a fixed
backoff between attempts, and converts the final failure into a
``ClassifiedError`` through the supplied classifier so callers never see raw
transport exceptions.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

from threadsync.domain.errors import ClassifiedError
from threadsync.threads.models import ErrorState

logger = structlog.get_logger()

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_SECONDS = 2.0


def _before_sleep_log(operation_name: str) -> Callable[[RetryCallState], None]:
    """Build a tenacity hook that logs a warning before each retry."""

    def log(retry_state: RetryCallState) -> None:
        exception = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "Retrying API call",
            operation=operation_name,
            attempt=retry_state.attempt_number,
            wait=retry_state.next_action.sleep if retry_state.next_action else 0,
            exception=str(exception),
        )

    return log


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    operation_name: str,
    is_eligible: Callable[[BaseException], bool],
    classify: Callable[[BaseException], ErrorState],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    backoff: float = DEFAULT_BACKOFF_SECONDS,
    sleep: Callable[[float], Awaitable[None]] | None = None,
) -> T:
    """Await *operation*, re-issuing it on retry-eligible failures.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt.
        operation_name: Human-readable name used in logs.
        is_eligible: Predicate deciding whether a failure may be retried.
        classify: Maps the final failure to an ``ErrorState``.
        max_attempts: Total attempts including the first (default 3).
        backoff: Fixed delay in seconds between attempts (default 2.0).
        sleep: Awaitable sleep used between attempts; ``asyncio.sleep``
            when omitted.

    Returns:
        The value of the first successful attempt.

    Raises:
        ClassifiedError: When attempts are exhausted or a failure is not
            eligible for retry.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_fixed(backoff),
        retry=retry_if_exception(is_eligible),
        before_sleep=_before_sleep_log(operation_name),
        sleep=sleep or asyncio.sleep,
        reraise=True,
    )
    try:
        async for attempt in retrying:
            with attempt:
                return await operation()
    except Exception as exc:
        error_state = classify(exc)
        logger.error(
            "API call failed",
            operation=operation_name,
            attempts=retrying.statistics.get("attempt_number", 1),
            kind=error_state.kind,
            exception=str(exc),
        )
        raise ClassifiedError(error_state) from exc
    # AsyncRetrying either returns from inside the loop or raises
    raise AssertionError("unreachable")  # pragma: no cover
