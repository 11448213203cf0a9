"""
Error types for chat completion streaming.

This module provides the error taxonomy surfaced to callers:
- Transport failures (network errors, non-2xx responses)
- Retry exhaustion when a retry policy caps attempts
- Malformed SSE payloads
"""

from __future__ import annotations


class LLMError(Exception):
    """Base LLM error with rich context."""

    def __init__(
        self,
        message: str,
        provider: str = "openai",
        model: str = "unknown",
        status_code: int | None = None,
        response_data: dict | None = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.model = model
        self.status_code = status_code
        self.response_data = response_data or {}


class TransportError(LLMError):
    """Request failed before or while receiving the response."""
    pass


class RetryExhaustedError(TransportError):
    """Every attempt allowed by the retry policy timed out."""

    def __init__(self, message: str, attempts: int, **kwargs):
        super().__init__(message, **kwargs)
        self.attempts = attempts


class StreamingError(LLMError):
    """An SSE payload could not be interpreted."""

    def __init__(
        self,
        message: str,
        raw_data: str = "",
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.raw_data = raw_data
