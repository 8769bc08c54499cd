"""
errors.py  —  Failure taxonomy for the AI pipeline

  AIServiceError
  ├── ProviderError               the text-generation call itself failed
  │   ├── TransientRateLimitError   429 / resource exhausted → retried with backoff
  │   └── PermanentProviderError    anything else → propagated immediately
  │       └── ProviderTimeoutError
  ├── MalformedResponseError      no JSON could be recovered from the text
  └── EmptyResponseError          the provider returned no usable text

Callers decide what to do with these: apply a static fallback, or let the HTTP
layer turn them into a 5xx.
"""


class AIServiceError(Exception):
    """Base class for every error raised by the pipeline."""


class ProviderError(AIServiceError):
    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class TransientRateLimitError(ProviderError):
    def __init__(self, message: str = "Resource has been exhausted", status: int | None = 429):
        super().__init__(message, status)


class PermanentProviderError(ProviderError):
    pass


class ProviderTimeoutError(PermanentProviderError):
    pass


class MalformedResponseError(AIServiceError):
    """Raised when no JSON value can be extracted; keeps the raw text for diagnosis."""

    def __init__(self, message: str, raw_text=None):
        super().__init__(message)
        self.raw_text = raw_text


# Shorter name used by the extractor and its callers.
ParseError = MalformedResponseError


class EmptyResponseError(AIServiceError):
    pass
