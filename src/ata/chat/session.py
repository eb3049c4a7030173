"""Session runner - one stand-alone prompt, one streamed response.

``start()`` kicks off the network exchange as an asyncio task and hands
back a ``StreamHandle``. The handle is an async iterator over response
fragments; a one-slot queue sits between the network task and the
consumer, so fragments arrive in order and at most one is read ahead.

Cancellation is cooperative: ``cancel()`` marks the handle cancelled,
cancels the network task (closing the HTTP response) and wakes the
consumer, which stops without delivering anything else.

    handle = start(config, "What is 2+2?")
    outcome = await handle.deliver(print)

A consumer that breaks out of ``async for`` early must call
``handle.aclose()`` (or use ``contextlib.aclosing(handle)``), otherwise
the network task stays blocked on the queue.

Prompts are sent without earlier turns, so repeating one means calling
``start()`` again with the same text (see ``SessionRunner.replay``).
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
import logging
from contextlib import aclosing
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

import httpx

from ..config import Config
from .errors import ConfigError, StreamError, StreamErrorKind
from .llm_provider import LLMProvider, prompt_messages

logger = logging.getLogger(__name__)

_END = object()
_ids = itertools.count(1)


class SessionState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.COMPLETED, SessionState.FAILED, SessionState.CANCELLED)

    @property
    def is_active(self) -> bool:
        return self in (SessionState.SENDING, SessionState.STREAMING)


@dataclass(frozen=True)
class Outcome:
    """How a session ended."""

    state: SessionState
    error: StreamError | None = None

    @property
    def ok(self) -> bool:
        return self.state is SessionState.COMPLETED

    def __str__(self) -> str:
        if self.error is not None:
            return f"{self.state.value}: {self.error}"
        return self.state.value


class StreamHandle:
    """One in-flight exchange: prompt, state and the fragments received."""

    def __init__(self, prompt: str, provider: LLMProvider) -> None:
        self.id = next(_ids)
        self._prompt = prompt
        self._provider = provider
        self._state = SessionState.IDLE
        self._fragments: list[str] = []
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=1)
        self._task: asyncio.Task | None = None
        self._outcome: Outcome | None = None
        self._iterated = False

    def __repr__(self) -> str:
        return f"<StreamHandle #{self.id} {self._state.value}>"

    @property
    def prompt(self) -> str:
        return self._prompt

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def outcome(self) -> Outcome | None:
        """The terminal outcome, or None while the session is running."""
        return self._outcome

    @property
    def fragments(self) -> tuple[str, ...]:
        return tuple(self._fragments)

    @property
    def text(self) -> str:
        return "".join(self._fragments)

    # --- Lifecycle ---

    def _begin(self) -> None:
        loop = asyncio.get_running_loop()
        self._state = SessionState.SENDING
        self._task = loop.create_task(self._produce(), name=f"ata-session-{self.id}")
        logger.debug("Session #%d: sending prompt (%d chars) to %s",
                     self.id, len(self._prompt), self._provider.name)

    async def _produce(self) -> None:
        """Network side: read fragments and hand them to the consumer."""
        try:
            async with aclosing(self._provider.stream_response(prompt_messages(self._prompt))) as stream:
                async for fragment in stream:
                    if self._state is SessionState.SENDING:
                        self._state = SessionState.STREAMING
                        logger.debug("Session #%d: first fragment received", self.id)
                    await self._queue.put(fragment)
        except asyncio.CancelledError:
            raise
        except StreamError as e:
            await self._queue.put(e)
        except (httpx.HTTPError, OSError) as e:
            await self._queue.put(StreamError(StreamErrorKind.NETWORK, str(e)))
        except Exception as e:
            logger.exception("Session #%d: unexpected error while streaming", self.id)
            await self._queue.put(StreamError(StreamErrorKind.MALFORMED, str(e)))
        else:
            await self._queue.put(_END)

    def _finish(self, state: SessionState, error: StreamError | None = None) -> None:
        if self._state.is_terminal:
            return
        self._state = state
        self._outcome = Outcome(state=state, error=error)
        if state is SessionState.FAILED:
            logger.warning("Session #%d failed: %s", self.id, error)
        elif state is SessionState.CANCELLED:
            logger.info("Session #%d cancelled after %d fragments", self.id, len(self._fragments))
        else:
            logger.debug("Session #%d completed with %d fragments", self.id, len(self._fragments))

    def cancel(self) -> bool:
        """Stop the exchange; returns False if there was nothing to stop."""
        if not self._state.is_active:
            return False
        self._finish(SessionState.CANCELLED)
        if self._task is not None:
            self._task.cancel()
        # Wake a consumer blocked on the queue
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
        self._queue.put_nowait(_END)
        return True

    async def _teardown(self) -> None:
        if self._task is None:
            return
        if not self._task.done():
            self._task.cancel()
        await asyncio.wait({self._task})

    async def aclose(self) -> None:
        """Cancel the session if it is still running and wait for the network side to close.

        Code that may stop iterating early should wrap the handle:

            async with aclosing(handle):
                async for fragment in handle:
                    ...
        """
        self.cancel()
        await self._teardown()

    # --- Consumption ---

    def __aiter__(self) -> StreamHandle:
        if self._iterated:
            raise RuntimeError(
                f"Session #{self.id} was already consumed; start a new session to repeat the prompt"
            )
        self._iterated = True
        return self

    async def __anext__(self) -> str:
        while True:
            if self._state.is_terminal:
                await self._teardown()
                raise StopAsyncIteration

            try:
                item = await self._queue.get()
            except asyncio.CancelledError:
                self.cancel()
                raise

            if self._state is SessionState.CANCELLED:
                continue
            if item is _END:
                self._finish(SessionState.COMPLETED)
                continue
            if isinstance(item, StreamError):
                self._finish(SessionState.FAILED, item)
                await self._teardown()
                raise item

            self._fragments.append(item)
            return item

    async def deliver(self, sink: Callable[[str], Any]) -> Outcome:
        """Feed every fragment to ``sink`` and return the outcome.

        ``sink`` may be a plain function or a coroutine function. Failures
        end up in the returned outcome instead of being raised.
        """
        try:
            async for fragment in self:
                result = sink(fragment)
                if inspect.isawaitable(result):
                    await result
        except StreamError:
            pass  # recorded in self.outcome
        finally:
            # The sink raised or the caller was cancelled
            if not self._state.is_terminal:
                self.cancel()
        assert self._outcome is not None
        return self._outcome

    def raise_for_outcome(self) -> None:
        """Raise a StreamError unless the session completed."""
        if self._outcome is None:
            raise RuntimeError(f"Session #{self.id} is still {self._state.value}")
        if self._outcome.state is SessionState.CANCELLED:
            raise StreamError(StreamErrorKind.CANCELLED, "Response was cancelled")
        if self._outcome.error is not None:
            raise self._outcome.error


def _check_request(config: Config, prompt: str) -> None:
    if not prompt or not prompt.strip():
        raise ConfigError("Prompt is empty")
    if not config.api_key or not config.api_key.strip():
        raise ConfigError("API key is missing")


def start(config: Config, prompt: str, provider: LLMProvider | None = None) -> StreamHandle:
    """Begin streaming the response to ``prompt``.

    Must be called from a running event loop.

    Raises:
        ConfigError: The prompt or the API key is empty. Nothing is sent.
    """
    _check_request(config, prompt)
    if provider is None:
        from .providers import create_provider

        provider = create_provider(config)
    handle = StreamHandle(prompt, provider)
    handle._begin()
    return handle


def cancel(handle: StreamHandle) -> None:
    """Cancel ``handle``; a no-op once it has finished."""
    handle.cancel()


class SessionRunner:
    """Runs one session at a time and remembers the last prompt."""

    def __init__(self, config: Config, provider: LLMProvider | None = None) -> None:
        self._config = config
        self._provider = provider
        self._active: StreamHandle | None = None
        self._last_prompt: str | None = None

    @property
    def config(self) -> Config:
        return self._config

    @property
    def active(self) -> StreamHandle | None:
        """The running session, if any."""
        if self._active is not None and self._active.state.is_terminal:
            return None
        return self._active

    @property
    def last_prompt(self) -> str | None:
        return self._last_prompt

    @property
    def provider(self) -> LLMProvider:
        if self._provider is None:
            from .providers import create_provider

            self._provider = create_provider(self._config)
        return self._provider

    def start(self, prompt: str) -> StreamHandle:
        """Start a session for ``prompt``, cancelling any running one."""
        _check_request(self._config, prompt)
        if self._active is not None:
            self._active.cancel()
        self._active = start(self._config, prompt, provider=self.provider)
        self._last_prompt = prompt
        return self._active

    def replay(self) -> StreamHandle:
        """Send the previous prompt again as a fresh session."""
        if self._last_prompt is None:
            raise ConfigError("No previous prompt to repeat")
        return self.start(self._last_prompt)

    def cancel(self) -> bool:
        if self._active is None:
            return False
        return self._active.cancel()
