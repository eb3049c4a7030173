"""LLM Provider protocol and ChatMessage dataclass."""

from __future__ import annotations

from dataclasses import dataclass
from typing import AsyncIterator, Protocol, runtime_checkable


@dataclass(frozen=True)
class ChatMessage:
    """A single chat message."""

    role: str  # "user", "assistant", "system"
    content: str


def prompt_messages(prompt: str) -> list[ChatMessage]:
    """Build the request for a stand-alone prompt (no earlier turns)."""
    return [ChatMessage(role="user", content=prompt)]


@runtime_checkable
class LLMProvider(Protocol):
    """Protocol for LLM providers with async streaming."""

    @property
    def name(self) -> str:
        """Human-readable provider name (e.g. 'OpenAI (gpt-4o-mini)')."""
        ...

    def stream_response(
        self, messages: list[ChatMessage]
    ) -> AsyncIterator[str]:
        """Stream response text for the given messages.

        Args:
            messages: Messages to send; a stand-alone prompt is a single
                user message.

        Yields:
            Text fragments in the order the endpoint produced them.

        Raises:
            StreamError: The endpoint refused the request or the stream
                broke off.
        """
        ...
