"""
SSE parsing for streamed chat completions.

The pipeline turns an httpx streaming response into SSE events:
bytes are pulled from the body, decoded incrementally, reassembled into
blank-line delimited frames and handed on one event at a time.
"""

from __future__ import annotations

import codecs
import inspect
import re
from collections import deque
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import aclosing

import httpx

from ..exceptions import TransportError
from ..retry import RetryingFetcher
from .models import DEFAULT_EVENT_TYPE, SSEEvent

# A lone trailing "\r" may be the first half of "\r\n", so it waits for more input
_LINE_END = re.compile(r"\r\n|\r(?!\Z)|\n")
_BOM = "\ufeff"


async def iter_byte_chunks(response: httpx.Response) -> AsyncGenerator[bytes]:
    """Yield body chunks until the stream ends, closing the response either way."""
    try:
        async for chunk in response.aiter_bytes():
            yield chunk
    finally:
        await response.aclose()


class SSEFrameParser:
    """
    Incremental Server-Sent Events parser.

    Text is fed in arbitrary pieces; ``on_event`` fires once per complete
    frame, so a frame split across reads is only reported after its
    terminating blank line arrives.
    """

    def __init__(self, on_event: Callable[[SSEEvent], None]):
        self.on_event = on_event
        self.reset()

    def reset(self) -> None:
        """Drop any partially received frame."""
        self._buffer = ""
        self._is_first_chunk = True
        self._data_lines: list[str] = []
        self._event_type: str | None = None
        self._event_id: str | None = None
        self._retry: int | None = None

    def feed(self, chunk: str) -> None:
        if self._is_first_chunk and chunk:
            chunk = chunk.removeprefix(_BOM)
            self._is_first_chunk = False

        self._buffer += chunk
        position = 0
        for match in _LINE_END.finditer(self._buffer):
            self._process_line(self._buffer[position:match.start()])
            position = match.end()
        self._buffer = self._buffer[position:]

    def _process_line(self, line: str) -> None:
        if not line:
            self._dispatch()
            return

        if line.startswith(":"):
            return  # comment

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if field == "data":
            self._data_lines.append(value)
        elif field == "event":
            self._event_type = value
        elif field == "id":
            if "\0" not in value:
                self._event_id = value
        elif field == "retry":
            if value.isdigit():
                self._retry = int(value)

    def _dispatch(self) -> None:
        if self._data_lines:
            self.on_event(
                SSEEvent(
                    type=self._event_type or DEFAULT_EVENT_TYPE,
                    data="\n".join(self._data_lines),
                    id=self._event_id,
                    retry=self._retry,
                )
            )
        self._data_lines = []
        self._event_type = None
        self._event_id = None
        self._retry = None


class StreamingParser:
    """Reads an SSE response body and yields its generic message events."""

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding
        self.stats = {
            'total_chunks': 0,
            'total_bytes': 0,
            'total_events': 0,
            'skipped_events': 0,
        }

    async def parse_sse_stream(
        self,
        response: httpx.Response,
    ) -> AsyncGenerator[SSEEvent]:
        """
        Parse the body of ``response`` into SSE events of the default type.

        Multi-byte characters split across chunks are decoded correctly.
        The response is closed when the stream ends or iteration stops early.
        """
        decoder = codecs.getincrementaldecoder(self.encoding)(errors="replace")
        pending: deque[SSEEvent] = deque()
        frame_parser = SSEFrameParser(pending.append)

        async with aclosing(iter_byte_chunks(response)) as chunks:
            async for chunk in chunks:
                self.stats['total_chunks'] += 1
                self.stats['total_bytes'] += len(chunk)
                frame_parser.feed(decoder.decode(chunk))
                while pending:
                    event = pending.popleft()
                    if self._accept(event):
                        yield event

        frame_parser.feed(decoder.decode(b"", final=True))
        while pending:
            event = pending.popleft()
            if self._accept(event):
                yield event
        frame_parser.reset()

    def _accept(self, event: SSEEvent) -> bool:
        if event.type != DEFAULT_EVENT_TYPE:
            self.stats['skipped_events'] += 1
            return False
        self.stats['total_events'] += 1
        return True

    def get_stats(self) -> dict[str, int]:
        """Get streaming statistics for monitoring."""
        return self.stats.copy()


async def fetch_sse(
    fetcher: RetryingFetcher,
    request: httpx.Request,
    on_message: Callable[[str], Awaitable[object] | object],
    parser: StreamingParser | None = None,
) -> None:
    """
    Send ``request`` and pass the data of every SSE event to ``on_message``.

    Raises:
        TransportError: the request failed or the status was not 2xx
        StreamingError: ``on_message`` rejected a payload
    """
    parser = parser or StreamingParser()
    response = await fetcher.fetch(request)

    if not response.is_success:
        try:
            body = (await response.aread()).decode(errors="replace")
        except httpx.HTTPError as e:
            raise TransportError(
                f"Streaming API error {response.status_code}, body unreadable: {e}",
                status_code=response.status_code,
            ) from e
        finally:
            await response.aclose()
        raise TransportError(
            f"Streaming API error {response.status_code}: {body}",
            status_code=response.status_code,
            response_data={"body": body},
        )

    try:
        async with aclosing(parser.parse_sse_stream(response)) as events:
            async for event in events:
                result = on_message(event.data)
                if inspect.isawaitable(result):
                    await result
    except httpx.HTTPError as e:
        raise TransportError(
            f"Stream from {request.url} interrupted: {e}"
        ) from e
