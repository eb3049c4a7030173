"""OpenAI provider with async streaming."""

from __future__ import annotations

from typing import Any, AsyncIterator

import httpx
import openai
from openai import AsyncOpenAI

from ...config import Config
from ..errors import StreamError, StreamErrorKind, kind_for_status
from ..llm_provider import ChatMessage


class OpenAIProvider:
    """LLM provider using OpenAI's chat completions API."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        timeout: float = 600.0,
        max_retries: int = 0,
        params: dict[str, Any] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
            http_client=http_client,
        )
        self._model = model
        self._params = params or {}

    @classmethod
    def from_config(cls, config: Config, http_client: httpx.AsyncClient | None = None) -> OpenAIProvider:
        params: dict[str, Any] = {
            "max_tokens": config.max_tokens,
            "temperature": config.temperature,
            "top_p": config.top_p,
            "presence_penalty": config.presence_penalty,
            "frequency_penalty": config.frequency_penalty,
        }
        if config.stop:
            params["stop"] = list(config.stop)
        if config.logit_bias:
            params["logit_bias"] = dict(config.logit_bias)
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
        return f"OpenAI ({self._model})"

    async def stream_response(
        self, messages: list[ChatMessage]
    ) -> AsyncIterator[str]:
        """Stream response tokens from OpenAI."""
        api_messages = [{"role": m.role, "content": m.content} for m in messages]

        try:
            stream = await self._client.chat.completions.create(
                model=self._model,
                messages=api_messages,
                stream=True,
                **self._params,
            )
            async with stream:
                async for chunk in stream:
                    if not chunk.choices:
                        continue
                    delta = chunk.choices[0].delta
                    # Role-only deltas carry no text
                    if delta is not None and delta.content:
                        yield delta.content
        except openai.APIStatusError as e:
            raise StreamError(kind_for_status(e.status_code), e.message, status=e.status_code) from e
        except openai.APIConnectionError as e:
            raise StreamError(StreamErrorKind.NETWORK, str(e)) from e
        except openai.APIError as e:
            # Error objects sent inside the event stream
            raise StreamError(StreamErrorKind.MALFORMED, e.message) from e
        except ValueError as e:
            raise StreamError(StreamErrorKind.MALFORMED, f"Undecodable stream data: {e}") from e
