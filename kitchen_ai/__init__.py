"""Kitchen AI — resilient prompt → JSON pipeline for recipe and kitchen services."""

from .errors import (
    AIServiceError,
    EmptyResponseError,
    MalformedResponseError,
    ParseError,
    PermanentProviderError,
    ProviderError,
    ProviderTimeoutError,
    TransientRateLimitError,
)
from .json_extract import clean_json_string, safe_json_parse
from .pipeline import ContentPipeline, build_pipeline
from .rate_limiter import RateLimiter, RequestTiming, is_rate_limit_error
from .request_queue import SerialRequestQueue
from .shapes import coerce_shape

__all__ = [
    "AIServiceError",
    "ContentPipeline",
    "EmptyResponseError",
    "MalformedResponseError",
    "ParseError",
    "PermanentProviderError",
    "ProviderError",
    "ProviderTimeoutError",
    "RateLimiter",
    "RequestTiming",
    "SerialRequestQueue",
    "TransientRateLimitError",
    "build_pipeline",
    "clean_json_string",
    "coerce_shape",
    "is_rate_limit_error",
    "safe_json_parse",
]
