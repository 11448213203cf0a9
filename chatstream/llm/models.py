"""
Core dataclasses for chat completion requests.

This module provides:
- Message structures
- Immutable request configuration
- Request body construction
- A caller-managed conversation buffer
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-3.5-turbo"


class MessageRole(Enum):
    """OpenAI-compatible message roles."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class LLMMessage:
    """OpenAI-compatible message structure."""
    role: MessageRole
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass(frozen=True)
class RequestConfig:
    """Connection and sampling settings, fixed for the lifetime of a client.

    Numeric ranges are enforced by the remote service, not here.
    """
    api_key: str = field(repr=False)
    model: str = DEFAULT_MODEL
    max_tokens: int = 2048
    temperature: float = 0.0
    top_p: float = 1.0
    frequency_penalty: float = 0.2
    presence_penalty: float = 0.1
    base_url: str = DEFAULT_BASE_URL

    @property
    def completions_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/chat/completions"

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }


@dataclass(frozen=True)
class LLMRequest:
    """Complete streaming request structure."""
    config: RequestConfig
    messages: tuple[LLMMessage, ...]
    stream: bool = True

    def to_payload(self) -> dict[str, Any]:
        """Build the JSON request body."""
        return {
            "stream": self.stream,
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "top_p": self.config.top_p,
            "frequency_penalty": self.config.frequency_penalty,
            "presence_penalty": self.config.presence_penalty,
            "messages": [message.to_dict() for message in self.messages],
        }


@dataclass
class Conversation:
    """Multi-turn history owned by the caller and passed into each ``ask``."""
    system_prompt: str | None = None
    _turns: list[LLMMessage] = field(default_factory=list)

    def add_user(self, content: str) -> None:
        self._turns.append(LLMMessage(MessageRole.USER, content))

    def add_assistant(self, content: str) -> None:
        self._turns.append(LLMMessage(MessageRole.ASSISTANT, content))

    def messages(self) -> list[LLMMessage]:
        """Messages to send, system prompt first when set."""
        prefix = (
            [LLMMessage(MessageRole.SYSTEM, self.system_prompt)]
            if self.system_prompt else []
        )
        return prefix + list(self._turns)

    def clear(self) -> None:
        self._turns.clear()

    def __len__(self) -> int:
        return len(self._turns)
