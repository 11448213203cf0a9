"""Streaming client for OpenAI-compatible chat completion APIs."""

from .llm import (
    ChatGPTClient,
    Conversation,
    LLMError,
    RetryExhaustedError,
    RetryPolicy,
    StreamingError,
    TransportError,
)

__all__ = [
    "ChatGPTClient",
    "Conversation",
    "LLMError",
    "RetryExhaustedError",
    "RetryPolicy",
    "StreamingError",
    "TransportError",
]

__version__ = "0.1.0"
