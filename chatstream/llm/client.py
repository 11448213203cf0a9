"""
Streaming chat completion client.

Posts a chat request, follows the SSE response and hands each accepted text
fragment to an optional callback while building the full answer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import structlog

from ..logging_utils import log_operation
from .exceptions import LLMError
from .models import (
    DEFAULT_BASE_URL,
    DEFAULT_MODEL,
    Conversation,
    LLMMessage,
    LLMRequest,
    MessageRole,
    RequestConfig,
)
from .retry import RetryHook, RetryingFetcher, RetryPolicy
from .streaming.accumulator import DeltaAccumulator, DeltaCallback
from .streaming.parser import StreamingParser, fetch_sse

if TYPE_CHECKING:                                        # pragma: no cover
    from ..config import Configuration

logger = structlog.get_logger(__name__)

# Applies to body reads once headers arrived; header waits follow the retry policy
STREAM_TIMEOUT = httpx.Timeout(60.0, connect=10.0)


class ChatGPTClient:
    """
    Client for an OpenAI-compatible chat completions endpoint.

    The request configuration is immutable and shared by concurrent ``ask``
    calls; every call runs its own accumulator and parser.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        max_tokens: int = 2048,
        temperature: float = 0.0,
        top_p: float = 1.0,
        frequency_penalty: float = 0.2,
        presence_penalty: float = 0.1,
        *,
        base_url: str = DEFAULT_BASE_URL,
        retry_policy: RetryPolicy | None = None,
        http_client: httpx.AsyncClient | None = None,
        on_event: RetryHook | None = None,
    ):
        self.config = RequestConfig(
            api_key=api_key,
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            top_p=top_p,
            frequency_penalty=frequency_penalty,
            presence_penalty=presence_penalty,
            base_url=base_url,
        )
        self._owns_client = http_client is None
        self.client: httpx.AsyncClient = http_client or httpx.AsyncClient(
            timeout=STREAM_TIMEOUT
        )
        self.fetcher = RetryingFetcher(self.client, retry_policy, on_event)
        self.logger = logger.bind(model=model, url=self.config.completions_url)

    @classmethod
    def from_config(cls, configuration: Configuration) -> ChatGPTClient:
        """Build a client from YAML settings and the environment API key."""
        settings = configuration.get_llm_settings()
        return cls(
            configuration.llm_api_key,
            model=settings.model,
            max_tokens=settings.max_tokens,
            temperature=settings.temperature,
            top_p=settings.top_p,
            frequency_penalty=settings.frequency_penalty,
            presence_penalty=settings.presence_penalty,
            base_url=settings.base_url,
            retry_policy=configuration.get_retry_policy(),
        )

    @log_operation("chat.ask")
    async def ask(
        self,
        question: str,
        on_delta: DeltaCallback | None = None,
        conversation: Conversation | None = None,
    ) -> str:
        """
        Ask a question and return the full streamed answer.

        Without ``conversation`` only the question is sent. With one, its
        history precedes the question, and the question and answer are
        appended to it once the stream completes.
        """
        question_msg = LLMMessage(MessageRole.USER, question)
        if conversation is None:
            return await self._fetch([question_msg], on_delta)

        answer = await self._fetch([*conversation.messages(), question_msg], on_delta)
        conversation.add_user(question)
        conversation.add_assistant(answer)
        return answer

    async def _fetch(
        self,
        messages: list[LLMMessage],
        on_delta: DeltaCallback | None = None,
    ) -> str:
        request = LLMRequest(self.config, tuple(messages))
        http_request = self.client.build_request(
            "POST",
            self.config.completions_url,
            headers=self.config.headers,
            json=request.to_payload(),
        )

        accumulator = DeltaAccumulator(on_delta)
        parser = StreamingParser()
        try:
            await fetch_sse(self.fetcher, http_request, accumulator.process, parser)
        except LLMError as e:
            e.model = self.config.model
            raise

        self.logger.debug(
            "Stream finished",
            accepted_chunks=accumulator.state.accepted_chunks,
            ignored_chunks=accumulator.state.ignored_chunks,
            done_marker_seen=accumulator.done,
            **parser.get_stats(),
        )
        return accumulator.response

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> ChatGPTClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
