"""
gemini_client.py  —  google.genai adapter for the pipeline

The pipeline only needs `async generate(prompt) -> str`. GeminiProvider is the
production implementation: it calls the async google.genai client, returns the
response text, and maps SDK failures onto kitchen_ai.errors so the rate limiter
and the HTTP layer can classify them without knowing about the SDK.
"""

import logging
from typing import Protocol

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from .config import DEFAULT_MODEL
from .errors import EmptyResponseError, PermanentProviderError, TransientRateLimitError

log = logging.getLogger(__name__)


class TextProvider(Protocol):
    async def generate(self, prompt: str) -> str: ...


SAFETY_SETTINGS = [
    types.SafetySetting(
        category=types.HarmCategory.HARM_CATEGORY_HARASSMENT,
        threshold=types.HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    ),
]


def translate_api_error(e: genai_errors.APIError) -> Exception:
    """Maps a google.genai APIError onto the pipeline's error taxonomy."""
    message = getattr(e, "message", None) or str(e)
    code = getattr(e, "code", None)
    status = getattr(e, "status", None)
    if code == 429 or status == "RESOURCE_EXHAUSTED":
        return TransientRateLimitError(message, status=429)
    return PermanentProviderError(message, status=code)


class GeminiProvider:
    def __init__(self, model: str = DEFAULT_MODEL, api_key: str | None = None, client=None):
        self.model = model
        if client is None:
            client = genai.Client(api_key=api_key) if api_key else genai.Client()
        self._client = client
        self._config = types.GenerateContentConfig(safety_settings=SAFETY_SETTINGS)

    async def generate(self, prompt: str) -> str:
        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=self._config,
            )
        except genai_errors.APIError as e:
            log.error("Gemini API error (code=%s): %s", getattr(e, "code", None), e)
            raise translate_api_error(e) from e
        except httpx.HTTPError as e:
            log.error("Network error talking to Gemini: %s", e)
            raise PermanentProviderError(f"Network error: {e}") from e

        text = getattr(response, "text", None) if response is not None else None
        if not text or not text.strip():
            log.error("Empty response text from Gemini: %r", response)
            raise EmptyResponseError("Received empty response from AI service")
        return text
