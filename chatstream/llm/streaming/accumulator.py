"""
Delta accumulation for streamed chat completions.

Every SSE payload is first classified into a closed set of cases, then run
through a small state machine that drops the leading blank fragments and
concatenates everything after them.
"""

from __future__ import annotations

import inspect
import json
from collections.abc import Awaitable, Callable

from ..exceptions import StreamingError
from .models import (
    DONE_MARKER,
    AccumulatorState,
    ClassifiedPayload,
    PayloadKind,
    SessionState,
)

DeltaCallback = Callable[[str], Awaitable[None] | None]

_OTHER = ClassifiedPayload(PayloadKind.OTHER)


def classify_payload(data: str) -> ClassifiedPayload:
    """
    Interpret one SSE data field.

    Raises:
        StreamingError: the payload is neither the done marker nor valid JSON
    """
    if data == DONE_MARKER:
        return ClassifiedPayload(PayloadKind.DONE)

    try:
        chunk = json.loads(data)
    except json.JSONDecodeError as e:
        raise StreamingError(
            f"Invalid JSON in stream chunk: {e}", raw_data=data
        ) from e

    if not isinstance(chunk, dict):
        return _OTHER

    choices = chunk.get("choices")
    if not isinstance(choices, list) or not choices:
        return _OTHER

    choice = choices[0]
    delta = choice.get("delta") if isinstance(choice, dict) else None
    if not isinstance(delta, dict):
        return _OTHER

    content = delta.get("content")
    if not isinstance(content, str):
        return _OTHER

    return ClassifiedPayload(PayloadKind.CONTENT_DELTA, content)


def is_blank(content: str) -> bool:
    """True when only newlines and spaces remain."""
    return not content.replace("\n", "").replace(" ", "")


class DeltaAccumulator:
    """
    Builds the response text of one streaming session.

    Fragments that are blank before any real content arrives are dropped;
    from the first non-blank fragment on, every fragment is kept verbatim and
    forwarded to ``on_delta``.
    """

    def __init__(self, on_delta: DeltaCallback | None = None):
        self.on_delta = on_delta
        self.state = AccumulatorState()

    @property
    def response(self) -> str:
        return self.state.content_buffer

    @property
    def done(self) -> bool:
        return self.state.state is SessionState.DONE

    async def process(self, data: str) -> str | None:
        """Handle one payload; return the accepted fragment, if any."""
        if self.done:
            self.state.ignored_chunks += 1
            return None

        payload = classify_payload(data)

        if payload.kind is PayloadKind.DONE:
            self.state.state = SessionState.DONE
            return None

        if payload.kind is PayloadKind.OTHER or payload.content is None:
            self.state.ignored_chunks += 1
            return None

        content = payload.content
        if not self.state.first_content_seen:
            if is_blank(content):
                self.state.ignored_chunks += 1
                return None
            self.state.first_content_seen = True
            self.state.state = SessionState.STREAMING

        self.state.content_buffer += content
        self.state.accepted_chunks += 1

        if self.on_delta is not None:
            result = self.on_delta(content)
            if inspect.isawaitable(result):
                await result

        return content
