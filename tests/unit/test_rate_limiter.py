"""
tests/unit/test_rate_limiter.py

Pacing between dispatches, rate-limit classification and bounded backoff.
All timing runs on FakeClock, so nothing here actually sleeps except the
timeout test.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from kitchen_ai.errors import (
    PermanentProviderError,
    ProviderTimeoutError,
    TransientRateLimitError,
)
from kitchen_ai.rate_limiter import RateLimiter, RequestTiming, is_rate_limit_error


class StatusError(Exception):
    def __init__(self, message="", status=None, code=None):
        super().__init__(message)
        self.status = status
        self.code = code


# ─────────────────────────────────────────────────────
# Classification
# ─────────────────────────────────────────────────────


class TestIsRateLimitError:
    @pytest.mark.parametrize("exc", [
        TransientRateLimitError(),
        StatusError("too many", status=429),
        StatusError("too many", code=429),
        StatusError("quota", status="RESOURCE_EXHAUSTED"),
        Exception("429 Resource has been exhausted (e.g. check quota)."),
        RuntimeError("upstream said: resource exhausted"),
    ])
    def test_rate_limit_errors(self, exc):
        assert is_rate_limit_error(exc)

    @pytest.mark.parametrize("exc", [
        ValueError("boom"),
        PermanentProviderError("API key not valid", status=400),
        StatusError("server error", status=500),
        StatusError("unavailable", status="UNAVAILABLE"),
    ])
    def test_other_errors(self, exc):
        assert not is_rate_limit_error(exc)


# ─────────────────────────────────────────────────────
# Backoff
# ─────────────────────────────────────────────────────


class TestBackoff:
    @pytest.mark.asyncio
    async def test_always_rate_limited_makes_max_retries_plus_one_attempts(self, clock, timing):
        operation = AsyncMock(side_effect=TransientRateLimitError())
        limiter = RateLimiter(min_delay=0.0, max_retries=3, initial_retry_delay=1.0, timing=timing)

        with pytest.raises(TransientRateLimitError):
            await limiter.call(operation)

        assert operation.call_count == 4
        assert clock.sleeps == [1.0, 2.0, 4.0]

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failure(self, timing):
        operation = AsyncMock(side_effect=[TransientRateLimitError(), "ok"])
        limiter = RateLimiter(min_delay=0.0, timing=timing)

        assert await limiter.call(operation) == "ok"
        assert operation.call_count == 2

    @pytest.mark.asyncio
    async def test_other_errors_propagate_unchanged(self, timing):
        error = PermanentProviderError("API key not valid", status=400)
        operation = AsyncMock(side_effect=error)
        limiter = RateLimiter(min_delay=0.0, timing=timing)

        with pytest.raises(PermanentProviderError) as excinfo:
            await limiter.call(operation)

        assert excinfo.value is error
        assert operation.call_count == 1

    @pytest.mark.asyncio
    async def test_zero_retries_means_single_attempt(self, timing):
        operation = AsyncMock(side_effect=TransientRateLimitError())
        limiter = RateLimiter(min_delay=0.0, max_retries=0, timing=timing)

        with pytest.raises(TransientRateLimitError):
            await limiter.call(operation)
        assert operation.call_count == 1

    def test_backoff_grows_exponentially(self):
        limiter = RateLimiter(initial_retry_delay=0.5)
        assert [limiter.backoff_delay(n) for n in range(4)] == [0.5, 1.0, 2.0, 4.0]

    def test_negative_retries_rejected(self):
        with pytest.raises(ValueError):
            RateLimiter(max_retries=-1)

    @pytest.mark.asyncio
    async def test_sync_operation_supported(self, timing):
        limiter = RateLimiter(min_delay=0.0, timing=timing)
        assert await limiter.call(lambda: "sync result") == "sync result"


# ─────────────────────────────────────────────────────
# Pacing
# ─────────────────────────────────────────────────────


class TestPacing:
    @pytest.mark.asyncio
    async def test_first_call_does_not_wait(self, clock, timing):
        limiter = RateLimiter(min_delay=1.0, timing=timing)
        await limiter.call(AsyncMock(return_value="a"))
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_back_to_back_calls_are_spaced(self, clock, timing):
        dispatched = []

        async def operation():
            dispatched.append(clock())
            return "ok"

        limiter = RateLimiter(min_delay=1.0, timing=timing)
        await limiter.call(operation)
        await limiter.call(operation)

        assert dispatched[1] - dispatched[0] >= 1.0

    @pytest.mark.asyncio
    async def test_elapsed_time_counts_toward_delay(self, clock, timing):
        limiter = RateLimiter(min_delay=1.0, timing=timing)
        await limiter.call(AsyncMock(return_value="a"))
        clock.now += 0.4
        await limiter.call(AsyncMock(return_value="b"))

        assert clock.sleeps == [pytest.approx(0.6)]

    @pytest.mark.asyncio
    async def test_concurrent_callers_are_spaced(self, clock, timing):
        dispatched = []

        async def operation():
            dispatched.append(clock())
            return len(dispatched)

        limiter = RateLimiter(min_delay=1.0, timing=timing)
        await asyncio.gather(*(limiter.call(operation) for _ in range(3)))

        gaps = [b - a for a, b in zip(dispatched, dispatched[1:])]
        assert len(dispatched) == 3
        assert all(gap >= 1.0 for gap in gaps)

    @pytest.mark.asyncio
    async def test_limiters_sharing_timing_share_the_budget(self, clock, timing):
        first = RateLimiter(min_delay=2.0, timing=timing)
        second = RateLimiter(min_delay=2.0, timing=timing)

        await first.call(AsyncMock(return_value="a"))
        await second.call(AsyncMock(return_value="b"))

        assert clock.sleeps == [2.0]

    def test_fresh_timing_has_no_wait(self):
        assert RequestTiming().time_to_wait(5.0) == 0.0


# ─────────────────────────────────────────────────────
# Timeout
# ─────────────────────────────────────────────────────


class TestTimeout:
    @pytest.mark.asyncio
    async def test_hanging_call_times_out_without_retry(self):
        calls = 0

        async def hang():
            nonlocal calls
            calls += 1
            await asyncio.sleep(10)

        limiter = RateLimiter(min_delay=0.0, timeout=0.01)
        with pytest.raises(ProviderTimeoutError):
            await limiter.call(hang)
        assert calls == 1
