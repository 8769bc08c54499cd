"""
pipeline.py  —  prompt in, typed data out

ContentPipeline ties the pieces together for every AI service:

  prompt ─▶ RateLimiter (pacing + backoff, optional SerialRequestQueue)
         ─▶ TextProvider.generate()           (Gemini in production)
         ─▶ safe_json_parse()                 (fences, prose, stray braces)
         ─▶ coerce_shape()                    (defaults for every field)

The pipeline never substitutes data on failure. Services decide whether a
static fallback applies; otherwise the error reaches the HTTP layer.
"""

import logging
from typing import Any

from .config import Settings, load_settings
from .errors import EmptyResponseError
from .gemini_client import GeminiProvider
from .json_extract import safe_json_parse
from .rate_limiter import RateLimiter, RequestTiming
from .request_queue import SerialRequestQueue
from .shapes import ShapeT, coerce_shape

log = logging.getLogger(__name__)


class ContentPipeline:
    def __init__(self, provider, limiter: RateLimiter | None = None):
        self.provider = provider
        self.limiter = limiter or RateLimiter()

    async def generate_content(self, prompt: str) -> str:
        log.debug("Sending prompt (%d chars) to text provider.", len(prompt))
        text = await self.limiter.call(lambda: self.provider.generate(prompt))
        if not isinstance(text, str) or not text.strip():
            raise EmptyResponseError("Received empty response from AI service")
        return text

    async def generate_json(self, prompt: str) -> Any:
        return safe_json_parse(await self.generate_content(prompt))

    async def generate_shape(self, prompt: str, shape: type[ShapeT]) -> ShapeT:
        return coerce_shape(shape, await self.generate_json(prompt))


def build_limiter(settings: Settings, timing: RequestTiming | None = None) -> RateLimiter:
    timing = timing or RequestTiming()
    queue = SerialRequestQueue(settings.min_delay, timing) if settings.use_serial_queue else None
    return RateLimiter(
        min_delay=settings.min_delay,
        max_retries=settings.max_retries,
        initial_retry_delay=settings.initial_retry_delay,
        timeout=settings.request_timeout,
        timing=timing,
        queue=queue,
    )


def build_pipeline(settings: Settings | None = None, provider=None) -> ContentPipeline:
    """
    Wires a pipeline from settings. Call once per process and share the result:
    the limiter's RequestTiming is the process-wide pacing budget.
    """
    settings = settings or load_settings()
    if provider is None:
        provider = GeminiProvider(model=settings.model, api_key=settings.api_key)
    log.info(
        "AI pipeline ready  model=%s  min_delay=%.1fs  max_retries=%d  serial_queue=%s",
        settings.model, settings.min_delay, settings.max_retries, settings.use_serial_queue,
    )
    return ContentPipeline(provider, build_limiter(settings))
