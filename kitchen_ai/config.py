"""
config.py  —  Runtime settings for the AI pipeline

All knobs come from the environment (a local .env file is loaded first), so the
same code runs unchanged in a dev shell, a container, or a Cloud Function.

  GEMINI_API_KEY                   — passed to google.genai.Client
  GEMINI_MODEL                     — model name (default gemini-2.0-flash-lite)
  AI_MIN_DELAY_SECONDS             — minimum spacing between dispatches (2.0)
  AI_MAX_RETRIES                   — rate-limit retries after the first try (3)
  AI_INITIAL_RETRY_DELAY_SECONDS   — first backoff step, doubled per retry (1.0)
  AI_REQUEST_TIMEOUT_SECONDS       — per-attempt timeout; unset = wait forever
  AI_USE_SERIAL_QUEUE              — also funnel calls through the serial queue
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


DEFAULT_MODEL               = "gemini-2.0-flash-lite"
DEFAULT_MIN_DELAY           = 2.0
DEFAULT_MAX_RETRIES         = 3
DEFAULT_INITIAL_RETRY_DELAY = 1.0

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    api_key:             str | None = None
    model:               str = DEFAULT_MODEL
    min_delay:           float = DEFAULT_MIN_DELAY
    max_retries:         int = DEFAULT_MAX_RETRIES
    initial_retry_delay: float = DEFAULT_INITIAL_RETRY_DELAY
    request_timeout:     float | None = None
    use_serial_queue:    bool = False


def _env_float(name: str, default: float | None) -> float | None:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def load_settings() -> Settings:
    """Reads the current environment into an immutable Settings object."""
    max_retries = os.environ.get("AI_MAX_RETRIES", "").strip()
    try:
        retries = int(max_retries) if max_retries else DEFAULT_MAX_RETRIES
    except ValueError:
        raise ValueError(f"AI_MAX_RETRIES must be an integer, got {max_retries!r}") from None

    return Settings(
        api_key=os.environ.get("GEMINI_API_KEY") or None,
        model=os.environ.get("GEMINI_MODEL") or DEFAULT_MODEL,
        min_delay=_env_float("AI_MIN_DELAY_SECONDS", DEFAULT_MIN_DELAY),
        max_retries=retries,
        initial_retry_delay=_env_float("AI_INITIAL_RETRY_DELAY_SECONDS", DEFAULT_INITIAL_RETRY_DELAY),
        request_timeout=_env_float("AI_REQUEST_TIMEOUT_SECONDS", None),
        use_serial_queue=os.environ.get("AI_USE_SERIAL_QUEUE", "").strip().lower() in _TRUTHY,
    )
