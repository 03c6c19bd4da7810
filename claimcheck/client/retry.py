"""Bounded retries with jittered exponential backoff.

Attempt ``operation`` up to ``max_retries + 1`` times. Between attempts,
when the policy's predicate accepts the failure, sleep

    base_backoff_ms * 2**attempt_index * U(0.8, 1.2)

with the jitter drawn fresh per attempt so concurrent callers do not retry
in lockstep. Exhaustion or a rejected failure re-raises the last exception
as-is.

Usage:
    policy = RetryPolicy(max_retries=2, base_backoff_ms=600)
    data = await execute(lambda: http.request_json("GET", url), policy)
"""

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
)
from tenacity.wait import wait_base

from claimcheck.errors import status_of

T = TypeVar("T")

JITTER_LOW = 0.8
JITTER_HIGH = 1.2


def default_should_retry(exc: BaseException) -> bool:
    """Retry network/timeout failures (no status) and 5xx; never 4xx."""
    status = status_of(exc)
    return status is None or 500 <= status < 600


@dataclass(frozen=True)
class RetryPolicy:
    """Pure retry configuration; safe to share across calls."""

    max_retries: int = 2
    base_backoff_ms: int = 500
    should_retry: Callable[[BaseException], bool] = default_should_retry


class wait_jittered_exponential(wait_base):
    """Exponential wait in seconds with multiplicative jitter per attempt."""

    def __init__(
        self,
        base_backoff_ms: float,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.base_backoff_ms = base_backoff_ms
        self._rng = rng or random

    def __call__(self, retry_state: RetryCallState) -> float:
        attempt_index = retry_state.attempt_number - 1
        jitter = self._rng.uniform(JITTER_LOW, JITTER_HIGH)
        return self.base_backoff_ms * (2 ** attempt_index) * jitter / 1000.0


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.bind(component="retry").warning(
        "Retrying after failure",
        attempt=retry_state.attempt_number,
        delay_s=round(delay, 3),
        error=str(exc),
        status=status_of(exc) if exc else None,
    )


async def execute(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    rng: Optional[random.Random] = None,
) -> T:
    """
    Run ``operation`` under ``policy``.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        policy: Retry count, base backoff and retry predicate
        sleep: Awaitable sleep (injectable for tests)
        rng: Jitter source (injectable for tests)

    Returns:
        The first successful result

    Raises:
        The last failure, unchanged, once retries are exhausted or the
        predicate rejects it
    """
    # Cancellation is a BaseException, never a retryable failure
    def _retryable(exc: BaseException) -> bool:
        return isinstance(exc, Exception) and policy.should_retry(exc)

    # tenacity only awaits coroutine functions; lambdas returning a coroutine are not
    async def _attempt() -> T:
        return await operation()

    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.max_retries + 1),
        wait=wait_jittered_exponential(policy.base_backoff_ms, rng=rng),
        retry=retry_if_exception(_retryable),
        before_sleep=_log_retry,
        sleep=sleep,
        reraise=True,
    )
    return await retrying(_attempt)
