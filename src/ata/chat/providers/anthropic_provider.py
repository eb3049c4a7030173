"""Anthropic Claude provider with async streaming."""

from __future__ import annotations

from typing import Any, AsyncIterator

import anthropic
import httpx

from ...config import Config
from ..errors import StreamError, StreamErrorKind, kind_for_status
from ..llm_provider import ChatMessage


class AnthropicProvider:
    """LLM provider using Anthropic's Claude API."""

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-20250514",
        base_url: str | None = None,
        timeout: float = 600.0,
        max_retries: int = 0,
        params: dict[str, Any] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = anthropic.AsyncAnthropic(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
            http_client=http_client,
        )
        self._model = model
        self._params = params or {"max_tokens": 2048}

    @classmethod
    def from_config(cls, config: Config, http_client: httpx.AsyncClient | None = None) -> AnthropicProvider:
        # Anthropic rejects temperatures above 1
        params: dict[str, Any] = {
            "max_tokens": config.max_tokens,
            "temperature": min(config.temperature, 1.0),
        }
        if config.top_p < 1.0:
            params["top_p"] = config.top_p
        if config.stop:
            params["stop_sequences"] = list(config.stop)
        return cls(
            api_key=config.api_key or "",
            model=config.model,
            base_url=config.base_url,
            timeout=config.timeout,
            max_retries=config.max_retries,
            params=params,
            http_client=http_client,
        )

    @property
    def name(self) -> str:
        return f"Claude ({self._model})"

    async def stream_response(
        self, messages: list[ChatMessage]
    ) -> AsyncIterator[str]:
        """Stream response tokens from Claude."""
        # Separate system message from conversation
        system_text = ""
        conversation = []
        for msg in messages:
            if msg.role == "system":
                system_text = msg.content
            else:
                conversation.append({"role": msg.role, "content": msg.content})

        kwargs = dict(self._params)
        if system_text:
            kwargs["system"] = system_text

        try:
            async with self._client.messages.stream(
                model=self._model,
                messages=conversation,
                **kwargs,
            ) as stream:
                async for text in stream.text_stream:
                    if text:
                        yield text
        except anthropic.APIStatusError as e:
            raise StreamError(kind_for_status(e.status_code), e.message, status=e.status_code) from e
        except anthropic.APIConnectionError as e:
            raise StreamError(StreamErrorKind.NETWORK, str(e)) from e
        except anthropic.APIError as e:
            raise StreamError(StreamErrorKind.MALFORMED, e.message) from e
        except ValueError as e:
            raise StreamError(StreamErrorKind.MALFORMED, f"Undecodable stream data: {e}") from e
