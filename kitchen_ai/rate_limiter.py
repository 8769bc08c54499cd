"""
rate_limiter.py  —  Request pacing and rate-limit backoff

Two behaviours around every call to the text provider:

  Pacing   — consecutive dispatches sharing one RequestTiming are spaced at
             least `min_delay` seconds apart. The read-check-stamp of
             last_request_time happens under an asyncio.Lock, so concurrent
             callers queue up for their slot instead of racing past it.
  Backoff  — an attempt that fails with a rate-limit error (HTTP 429 /
             RESOURCE_EXHAUSTED) is retried after initial_retry_delay * 2**attempt,
             at most max_retries times. Every other error propagates untouched.

The wait is an asyncio.sleep, so a paced caller never blocks the event loop.
"""

import asyncio
import inspect
import logging
import time
from typing import Any, Awaitable, Callable

from .config import DEFAULT_INITIAL_RETRY_DELAY, DEFAULT_MAX_RETRIES, DEFAULT_MIN_DELAY
from .errors import ProviderTimeoutError, TransientRateLimitError

log = logging.getLogger(__name__)

Operation = Callable[[], Any]

_RATE_LIMIT_MARKERS = ("resource has been exhausted", "resource_exhausted", "resource exhausted")


async def run_operation(operation: Operation) -> Any:
    result = operation()
    if inspect.isawaitable(result):
        result = await result
    return result


# ──────────────────────────────────────────────────────────────────────────────
# Shared timing state
# ──────────────────────────────────────────────────────────────────────────────

class RequestTiming:
    """
    Process-wide record of the last dispatch time.

    Build one at startup and hand the same instance to every RateLimiter and
    SerialRequestQueue that should share a pacing budget. `clock` and `sleep`
    are injectable so tests can run on a fake timeline.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.clock = clock
        self.sleep = sleep
        self.last_request_time: float | None = None
        self._lock = asyncio.Lock()

    def time_to_wait(self, min_delay: float) -> float:
        if self.last_request_time is None:
            return 0.0
        return max(0.0, min_delay - (self.clock() - self.last_request_time))

    async def reserve(self, min_delay: float) -> float:
        """
        Waits until a dispatch is allowed, then claims the slot.
        Returns the stamped dispatch time.
        """
        async with self._lock:
            wait = self.time_to_wait(min_delay)
            if wait > 0:
                log.debug("Pacing: waiting %.3fs before next request.", wait)
                await self.sleep(wait)
            self.last_request_time = self.clock()
            return self.last_request_time

    def touch(self) -> None:
        self.last_request_time = self.clock()


# ──────────────────────────────────────────────────────────────────────────────
# Error classification
# ──────────────────────────────────────────────────────────────────────────────

def is_rate_limit_error(exc: BaseException) -> bool:
    """
    True for 'too many requests' failures, whichever client raised them.

    Checks our own TransientRateLimitError, then any status/code attribute
    equal to 429 or RESOURCE_EXHAUSTED (google.genai APIError carries both),
    then the message text.
    """
    if isinstance(exc, TransientRateLimitError):
        return True

    for attr in ("status", "code", "status_code"):
        value = getattr(exc, attr, None)
        if value is None:
            continue
        if isinstance(value, int) and value == 429:
            return True
        if isinstance(value, str) and value.strip().upper() in ("429", "RESOURCE_EXHAUSTED"):
            return True

    message = str(exc).lower()
    return any(marker in message for marker in _RATE_LIMIT_MARKERS)


# ──────────────────────────────────────────────────────────────────────────────
# Backoff wrapper
# ──────────────────────────────────────────────────────────────────────────────

class RateLimiter:
    """
    Paces and retries calls to the text provider.

    When a SerialRequestQueue is supplied, each attempt is dispatched through it
    and the queue owns the pacing: the limiter adopts queue.timing and
    queue.min_delay, and the `min_delay` argument is ignored. Passing a `timing`
    other than queue.timing is rejected.
    """

    def __init__(
        self,
        min_delay: float = DEFAULT_MIN_DELAY,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_retry_delay: float = DEFAULT_INITIAL_RETRY_DELAY,
        timeout: float | None = None,
        timing: RequestTiming | None = None,
        queue=None,
    ):
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if queue is not None:
            if timing is not None and timing is not queue.timing:
                raise ValueError("timing must be the queue's RequestTiming when a queue is given")
            timing = queue.timing
            min_delay = queue.min_delay
        self.min_delay = min_delay
        self.max_retries = max_retries
        self.initial_retry_delay = initial_retry_delay
        self.timeout = timeout
        self.timing = timing or RequestTiming()
        self.queue = queue

    def backoff_delay(self, attempt: int) -> float:
        return self.initial_retry_delay * (2 ** attempt)

    async def _attempt(self, operation: Operation) -> Any:
        if self.timeout is None:
            return await run_operation(operation)
        try:
            return await asyncio.wait_for(run_operation(operation), self.timeout)
        except asyncio.TimeoutError as e:
            raise ProviderTimeoutError(
                f"Text provider did not answer within {self.timeout:g}s."
            ) from e

    async def _dispatch(self, operation: Operation) -> Any:
        if self.queue is not None:
            return await self.queue.enqueue(lambda: self._attempt(operation))
        await self.timing.reserve(self.min_delay)
        return await self._attempt(operation)

    async def call(self, operation: Operation) -> Any:
        """
        Runs `operation` (a zero-argument callable, sync or async) with pacing
        and rate-limit backoff. At most max_retries + 1 attempts are made.
        """
        attempt = 0
        while True:
            try:
                result = await self._dispatch(operation)
            except Exception as e:
                if attempt >= self.max_retries or not is_rate_limit_error(e):
                    raise
                delay = self.backoff_delay(attempt)
                attempt += 1
                log.warning(
                    "Rate limit hit, retrying in %.2fs (attempt %d/%d).",
                    delay, attempt, self.max_retries,
                )
                await self.timing.sleep(delay)
                continue

            self.timing.touch()
            return result
