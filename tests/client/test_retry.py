"""Tests for the retry/backoff executor.

Tests cover:
- Retry predicate (no status, 5xx retried; 4xx and 413 not)
- Attempt counts for transient and caller failures
- Exhaustion re-raises the same exception object
- Jittered exponential backoff bounds
- Cancellation is never retried
- Lambdas returning a coroutine are awaited and retried
"""

import asyncio
import random
from unittest.mock import MagicMock

import httpx
import pytest

from claimcheck.client.retry import (
    RetryPolicy,
    default_should_retry,
    execute,
    wait_jittered_exponential,
)
from claimcheck.errors import PayloadTooLarge, RequestTimeout, UpstreamError


# ── Fixtures ──────────────────────────────────────────────────────────────


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def fake_sleep(sleeps):
    async def _sleep(seconds: float) -> None:
        sleeps.append(float(seconds))

    return _sleep


@pytest.fixture
def policy() -> RetryPolicy:
    return RetryPolicy(max_retries=2, base_backoff_ms=600)


# ── Retry predicate ──────────────────────────────────────────────────────


class TestDefaultShouldRetry:
    def test_no_status_is_retryable(self):
        assert default_should_retry(RequestTimeout("slow")) is True
        assert default_should_retry(httpx.ConnectError("refused")) is True

    def test_server_errors_are_retryable(self):
        assert default_should_retry(UpstreamError("bad gateway", status=502)) is True
        assert default_should_retry(UpstreamError("unavailable", status=503)) is True

    def test_client_errors_are_not_retryable(self):
        assert default_should_retry(UpstreamError("bad request", status=400)) is False
        assert default_should_retry(UpstreamError("not found", status=404)) is False

    def test_payload_too_large_is_not_retryable(self):
        assert default_should_retry(PayloadTooLarge("too big")) is False

    def test_httpx_status_error_uses_response_status(self):
        request = httpx.Request("GET", "https://api.parallel.ai/x")
        exc = httpx.HTTPStatusError(
            "server error", request=request, response=httpx.Response(500, request=request)
        )
        assert default_should_retry(exc) is True


# ── Attempt counts ───────────────────────────────────────────────────────


class TestExecute:
    @pytest.mark.asyncio
    async def test_success_first_try(self, policy, fake_sleep, sleeps):
        calls = 0

        async def op():
            nonlocal calls
            calls += 1
            return "ok"

        assert await execute(op, policy, sleep=fake_sleep) == "ok"
        assert calls == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_503_twice_then_success_makes_three_calls(self, policy, fake_sleep, sleeps):
        calls = 0

        async def op():
            nonlocal calls
            calls += 1
            if calls <= 2:
                raise UpstreamError("unavailable", status=503)
            return {"results": []}

        result = await execute(op, policy, sleep=fake_sleep, rng=random.Random(7))

        assert result == {"results": []}
        assert calls == 3
        assert len(sleeps) == 2

    @pytest.mark.asyncio
    async def test_400_makes_one_call(self, policy, fake_sleep, sleeps):
        calls = 0
        error = UpstreamError("bad request", status=400)

        async def op():
            nonlocal calls
            calls += 1
            raise error

        with pytest.raises(UpstreamError) as exc_info:
            await execute(op, policy, sleep=fake_sleep)

        assert exc_info.value is error
        assert calls == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_exhaustion_reraises_same_object(self, policy, fake_sleep):
        calls = 0
        error = UpstreamError("still down", status=503)

        async def op():
            nonlocal calls
            calls += 1
            raise error

        with pytest.raises(UpstreamError) as exc_info:
            await execute(op, policy, sleep=fake_sleep)

        assert exc_info.value is error
        assert calls == policy.max_retries + 1

    @pytest.mark.asyncio
    async def test_transport_errors_are_retried(self, policy, fake_sleep):
        calls = 0

        async def op():
            nonlocal calls
            calls += 1
            if calls == 1:
                raise httpx.ConnectError("connection reset")
            return "recovered"

        assert await execute(op, policy, sleep=fake_sleep) == "recovered"
        assert calls == 2

    @pytest.mark.asyncio
    async def test_lambda_returning_coroutine_is_awaited(self, fake_sleep):
        calls = 0

        async def op(value):
            nonlocal calls
            calls += 1
            return value

        result = await execute(lambda: op("value"), RetryPolicy(max_retries=0), sleep=fake_sleep)

        assert result == "value"
        assert calls == 1

    @pytest.mark.asyncio
    async def test_lambda_operation_is_retried(self, policy, fake_sleep, sleeps):
        calls = 0

        async def fetch(job_id):
            nonlocal calls
            calls += 1
            if calls == 1:
                raise UpstreamError("unavailable", status=503)
            return {"run_id": job_id, "status": "completed"}

        result = await execute(lambda: fetch("run_1"), policy, sleep=fake_sleep)

        assert result == {"run_id": "run_1", "status": "completed"}
        assert calls == 2
        assert len(sleeps) == 1

    @pytest.mark.asyncio
    async def test_custom_predicate(self, fake_sleep):
        calls = 0
        never = RetryPolicy(max_retries=5, base_backoff_ms=10, should_retry=lambda exc: False)

        async def op():
            nonlocal calls
            calls += 1
            raise UpstreamError("unavailable", status=503)

        with pytest.raises(UpstreamError):
            await execute(op, never, sleep=fake_sleep)
        assert calls == 1

    @pytest.mark.asyncio
    async def test_zero_retries_means_single_attempt(self, fake_sleep):
        calls = 0

        async def op():
            nonlocal calls
            calls += 1
            raise RequestTimeout("slow")

        with pytest.raises(RequestTimeout):
            await execute(op, RetryPolicy(max_retries=0, base_backoff_ms=10), sleep=fake_sleep)
        assert calls == 1

    @pytest.mark.asyncio
    async def test_cancellation_is_not_retried(self, policy, fake_sleep):
        calls = 0

        async def op():
            nonlocal calls
            calls += 1
            raise asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await execute(op, policy, sleep=fake_sleep)
        assert calls == 1


# ── Backoff ──────────────────────────────────────────────────────────────


class TestBackoff:
    @pytest.mark.asyncio
    async def test_sleeps_grow_exponentially_within_jitter(self, policy, fake_sleep, sleeps):
        async def op():
            raise UpstreamError("unavailable", status=503)

        with pytest.raises(UpstreamError):
            await execute(op, policy, sleep=fake_sleep)

        assert len(sleeps) == 2
        # 600ms * 2**i * U(0.8, 1.2)
        assert 0.48 <= sleeps[0] <= 0.72
        assert 0.96 <= sleeps[1] <= 1.44

    def test_wait_bounds_per_attempt(self):
        wait = wait_jittered_exponential(500, rng=random.Random(3))
        for attempt_number in range(1, 6):
            delay = wait(MagicMock(attempt_number=attempt_number))
            nominal = 0.5 * 2 ** (attempt_number - 1)
            assert nominal * 0.8 <= delay <= nominal * 1.2

    def test_jitter_is_drawn_per_attempt(self):
        wait = wait_jittered_exponential(1000, rng=random.Random(11))
        delays = {wait(MagicMock(attempt_number=1)) for _ in range(5)}
        assert len(delays) > 1
