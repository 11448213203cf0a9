"""
Streaming functionality for chat completion clients.

- SSE frame parsing
- Delta accumulation
"""

from .accumulator import DeltaAccumulator, classify_payload
from .models import ClassifiedPayload, PayloadKind, SessionState, SSEEvent
from .parser import SSEFrameParser, StreamingParser, fetch_sse, iter_byte_chunks

__all__ = [
    "ClassifiedPayload",
    "DeltaAccumulator",
    "PayloadKind",
    "SSEEvent",
    "SSEFrameParser",
    "SessionState",
    "StreamingParser",
    "classify_payload",
    "fetch_sse",
    "iter_byte_chunks",
]
