"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add project root to sys.path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from kitchen_ai.pipeline import ContentPipeline  # noqa: E402
from kitchen_ai.rate_limiter import RateLimiter, RequestTiming  # noqa: E402


class FakeClock:
    """Manual timeline: sleep() advances `now` instead of waiting."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class ScriptedProvider:
    """Text provider that replays canned replies; Exception entries are raised."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def timing(clock):
    return RequestTiming(clock=clock, sleep=clock.sleep)


@pytest.fixture
def make_pipeline(timing):
    """Builds a pipeline over ScriptedProvider replies with no pacing delay."""

    def _make(*replies, max_retries: int = 3, min_delay: float = 0.0):
        provider = ScriptedProvider(*replies)
        limiter = RateLimiter(min_delay=min_delay, max_retries=max_retries, timing=timing)
        return ContentPipeline(provider, limiter)

    return _make
