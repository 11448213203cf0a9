"""
Streaming chat completion client.

This package provides:
- A retrying HTTP fetcher for slow-to-answer endpoints
- An incremental SSE parser
- Delta accumulation with callback delivery
"""

from __future__ import annotations

from .client import ChatGPTClient
from .exceptions import LLMError, RetryExhaustedError, StreamingError, TransportError
from .models import Conversation, LLMMessage, LLMRequest, MessageRole, RequestConfig
from .retry import RetryingFetcher, RetryPolicy

__all__ = [
    # Client
    "ChatGPTClient",
    # Models
    "Conversation",
    # Exceptions
    "LLMError",
    "LLMMessage",
    "LLMRequest",
    "MessageRole",
    "RequestConfig",
    "RetryExhaustedError",
    "RetryPolicy",
    "RetryingFetcher",
    "StreamingError",
    "TransportError",
]
