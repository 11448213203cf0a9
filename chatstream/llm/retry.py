"""
Timeout-triggered request retry.

The fetcher waits a bounded time for response headers. When none arrive the
attempt is cancelled and an identical request is sent again, as often as the
policy allows. Everything other than a timeout propagates to the caller.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from .exceptions import RetryExhaustedError, TransportError

logger = structlog.get_logger(__name__)

RetryHook = Callable[..., None]


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration. The defaults retry forever without backoff."""
    timeout: float = 1.0  # seconds to wait for response headers
    max_attempts: int | None = None
    backoff_base: float = 0.0
    backoff_factor: float = 2.0
    backoff_max: float = 30.0

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.backoff_base < 0 or self.backoff_max < 0:
            raise ValueError("backoff values must not be negative")

    def delay_for(self, attempt: int) -> float:
        """Pause before the attempt following ``attempt`` (1-based)."""
        if self.backoff_base <= 0:
            return 0.0
        delay = self.backoff_base * self.backoff_factor ** (attempt - 1)
        return min(delay, self.backoff_max)

    def allows(self, attempt: int) -> bool:
        return self.max_attempts is None or attempt < self.max_attempts


def log_retry_event(event: str, **fields: Any) -> None:
    """Default observability hook."""
    if event == "retry.exhausted":
        logger.error("Retries exhausted", retry_event=event, **fields)
    else:
        logger.warning("Request timed out, retrying", retry_event=event, **fields)


class RetryingFetcher:
    """Sends a request, re-sending it whenever headers do not arrive in time."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        policy: RetryPolicy | None = None,
        on_event: RetryHook | None = None,
    ):
        self.client = client
        self.policy = policy or RetryPolicy()
        self.on_event = on_event or log_retry_event

    async def fetch(self, request: httpx.Request) -> httpx.Response:
        """
        Return the streaming response for ``request``, whatever its status.

        Raises:
            RetryExhaustedError: every permitted attempt timed out
            TransportError: any non-timeout failure
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return await asyncio.wait_for(
                    self.client.send(request, stream=True),
                    timeout=self.policy.timeout,
                )
            except (TimeoutError, httpx.TimeoutException) as e:
                fields = {
                    "url": str(request.url),
                    "attempt": attempt,
                    "timeout": self.policy.timeout,
                }
                if not self.policy.allows(attempt):
                    self.on_event("retry.exhausted", **fields)
                    raise RetryExhaustedError(
                        f"No response from {request.url} after {attempt} attempts",
                        attempts=attempt,
                    ) from e

                delay = self.policy.delay_for(attempt)
                self.on_event("retry.timeout", delay=delay, **fields)
                if delay > 0:
                    await asyncio.sleep(delay)
            except (httpx.HTTPError, OSError) as e:
                raise TransportError(f"Request to {request.url} failed: {e}") from e
