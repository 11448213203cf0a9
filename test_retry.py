#!/usr/bin/env python3
"""
Tests for the timeout-triggered retry around request sending.
"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from chatstream.llm.exceptions import RetryExhaustedError, TransportError
from chatstream.llm.retry import RetryingFetcher, RetryPolicy

URL = "https://api.example.test/v1/chat/completions"


class RecordingHook:
    """Collects observability events instead of logging them."""

    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    def __call__(self, event: str, **fields) -> None:
        self.events.append((event, fields))

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.events]


def make_fetcher(handler, policy: RetryPolicy, hook: RecordingHook) -> RetryingFetcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RetryingFetcher(client, policy, hook)


class TestRetryPolicy:
    """Policy arithmetic and validation."""

    def test_defaults_retry_forever_without_backoff(self):
        policy = RetryPolicy()
        assert policy.timeout == 1.0
        assert policy.max_attempts is None
        assert policy.allows(10_000)
        assert policy.delay_for(5) == 0.0

    def test_exponential_backoff_capped(self):
        policy = RetryPolicy(backoff_base=0.5, backoff_factor=2.0, backoff_max=3.0)
        assert [policy.delay_for(n) for n in (1, 2, 3, 4)] == [0.5, 1.0, 2.0, 3.0]

    def test_attempt_cap(self):
        policy = RetryPolicy(max_attempts=3)
        assert policy.allows(2)
        assert not policy.allows(3)

    @pytest.mark.parametrize(
        "kwargs",
        [{"timeout": 0}, {"max_attempts": 0}, {"backoff_base": -1.0}],
    )
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            RetryPolicy(**kwargs)


class TestRetryingFetcher:
    """Sending with a header timeout."""

    @pytest.mark.asyncio
    async def test_returns_response_without_retry(self):
        calls: list[httpx.Request] = []

        async def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, text="ok")

        hook = RecordingHook()
        fetcher = make_fetcher(handler, RetryPolicy(timeout=1.0), hook)
        response = await fetcher.fetch(fetcher.client.build_request("POST", URL))

        assert response.status_code == 200
        assert len(calls) == 1
        assert hook.events == []
        await response.aclose()

    @pytest.mark.asyncio
    async def test_timeout_resends_identical_request(self):
        calls: list[tuple[str, str, bytes]] = []

        async def handler(request: httpx.Request) -> httpx.Response:
            calls.append((request.method, str(request.url), request.content))
            if len(calls) == 1:
                await asyncio.sleep(5)
            return httpx.Response(200, text="ok")

        hook = RecordingHook()
        fetcher = make_fetcher(handler, RetryPolicy(timeout=0.05), hook)
        request = fetcher.client.build_request("POST", URL, json={"stream": True})
        response = await fetcher.fetch(request)

        assert response.status_code == 200
        assert len(calls) == 2
        assert calls[0] == calls[1]
        assert calls[0][1] == URL
        assert hook.names == ["retry.timeout"]
        assert hook.events[0][1]["attempt"] == 1
        await response.aclose()

    @pytest.mark.asyncio
    async def test_httpx_timeout_counts_as_timeout(self):
        attempts = 0

        async def handler(request: httpx.Request) -> httpx.Response:
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise httpx.ConnectTimeout("slow", request=request)
            return httpx.Response(200)

        hook = RecordingHook()
        fetcher = make_fetcher(handler, RetryPolicy(timeout=1.0), hook)
        response = await fetcher.fetch(fetcher.client.build_request("POST", URL))

        assert response.status_code == 200
        assert attempts == 2
        await response.aclose()

    @pytest.mark.asyncio
    async def test_error_status_returned_not_retried(self):
        attempts = 0

        async def handler(request: httpx.Request) -> httpx.Response:
            nonlocal attempts
            attempts += 1
            return httpx.Response(503)

        fetcher = make_fetcher(handler, RetryPolicy(timeout=1.0), RecordingHook())
        response = await fetcher.fetch(fetcher.client.build_request("POST", URL))

        assert response.status_code == 503
        assert attempts == 1
        await response.aclose()

    @pytest.mark.asyncio
    async def test_network_error_propagates(self):
        attempts = 0

        async def handler(request: httpx.Request) -> httpx.Response:
            nonlocal attempts
            attempts += 1
            raise httpx.ConnectError("connection refused", request=request)

        hook = RecordingHook()
        fetcher = make_fetcher(handler, RetryPolicy(timeout=1.0), hook)

        with pytest.raises(TransportError) as exc_info:
            await fetcher.fetch(fetcher.client.build_request("POST", URL))

        assert not isinstance(exc_info.value, RetryExhaustedError)
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        assert exc_info.value.status_code is None
        assert attempts == 1
        assert hook.events == []

    @pytest.mark.asyncio
    async def test_attempt_cap_raises_retry_exhausted(self):
        attempts = 0

        async def handler(request: httpx.Request) -> httpx.Response:
            nonlocal attempts
            attempts += 1
            await asyncio.sleep(5)
            return httpx.Response(200)

        hook = RecordingHook()
        policy = RetryPolicy(timeout=0.02, max_attempts=3)
        fetcher = make_fetcher(handler, policy, hook)

        with pytest.raises(RetryExhaustedError) as exc_info:
            await fetcher.fetch(fetcher.client.build_request("POST", URL))

        assert exc_info.value.attempts == 3
        assert attempts == 3
        assert hook.names == ["retry.timeout", "retry.timeout", "retry.exhausted"]

    @pytest.mark.asyncio
    async def test_backoff_delay_reported(self):
        attempts = 0

        async def handler(request: httpx.Request) -> httpx.Response:
            nonlocal attempts
            attempts += 1
            if attempts < 3:
                await asyncio.sleep(5)
            return httpx.Response(200)

        hook = RecordingHook()
        policy = RetryPolicy(timeout=0.02, backoff_base=0.01, backoff_factor=2.0)
        fetcher = make_fetcher(handler, policy, hook)
        response = await fetcher.fetch(fetcher.client.build_request("POST", URL))

        assert attempts == 3
        assert [fields["delay"] for _, fields in hook.events] == [0.01, 0.02]
        await response.aclose()
