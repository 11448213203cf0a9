"""
Streaming-specific dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

DEFAULT_EVENT_TYPE = "event"
DONE_MARKER = "[DONE]"


@dataclass(frozen=True)
class SSEEvent:
    """One complete Server-Sent Events frame."""
    type: str
    data: str
    id: str | None = None
    retry: int | None = None


class PayloadKind(Enum):
    """Closed set of interpretations of an SSE data payload."""
    DONE = "done"
    CONTENT_DELTA = "content_delta"
    OTHER = "other"


@dataclass(frozen=True)
class ClassifiedPayload:
    """An SSE payload after classification; ``content`` set for deltas only."""
    kind: PayloadKind
    content: str | None = None


class SessionState(Enum):
    """Per-request accumulation states."""
    AWAITING_FIRST_CONTENT = "awaiting_first_content"
    STREAMING = "streaming"
    DONE = "done"


@dataclass
class AccumulatorState:
    """Mutable state for one streaming session."""
    state: SessionState = SessionState.AWAITING_FIRST_CONTENT
    content_buffer: str = ""
    first_content_seen: bool = False
    accepted_chunks: int = 0
    ignored_chunks: int = 0
