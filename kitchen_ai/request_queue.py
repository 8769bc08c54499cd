"""
request_queue.py  —  Serialized dispatch with in-flight tracking

Callers that must never burst (batch jobs filling many pantry items, for
example) go through a SerialRequestQueue: each new operation waits for its
pacing slot on the shared RequestTiming, is started as an asyncio.Task and
tracked until it settles. Completion order is not guaranteed; a short call
queued later can finish before a long one queued earlier.
"""

import asyncio
import logging
from typing import Any

from .config import DEFAULT_MIN_DELAY
from .rate_limiter import Operation, RequestTiming, run_operation

log = logging.getLogger(__name__)


class SerialRequestQueue:
    def __init__(self, min_delay: float = DEFAULT_MIN_DELAY, timing: RequestTiming | None = None):
        self.min_delay = min_delay
        self.timing = timing or RequestTiming()
        self._in_flight: set[asyncio.Task] = set()

    @property
    def in_flight(self) -> frozenset:
        return frozenset(self._in_flight)

    @property
    def pending_count(self) -> int:
        return len(self._in_flight)

    async def enqueue(self, operation: Operation) -> Any:
        """Waits for a dispatch slot, runs `operation`, and returns its result."""
        await self.timing.reserve(self.min_delay)
        task = asyncio.ensure_future(run_operation(operation))
        self._in_flight.add(task)
        log.debug("Dispatched queued request (%d in flight).", len(self._in_flight))
        try:
            return await task
        finally:
            self._in_flight.discard(task)
