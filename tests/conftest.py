"""Shared fixtures: configs and scripted providers."""

from __future__ import annotations

import asyncio

import pytest

from ata.config import Config


class ScriptedProvider:
    """Yields a fixed list of fragments, then optionally raises."""

    name = "Scripted"

    def __init__(self, fragments=(), error: Exception | None = None) -> None:
        self.fragments = list(fragments)
        self.error = error
        self.calls = []
        self.closed = False

    async def stream_response(self, messages):
        self.calls.append(list(messages))
        try:
            for fragment in self.fragments:
                yield fragment
            if self.error is not None:
                raise self.error
        finally:
            self.closed = True


class GatedProvider:
    """Yields whatever the test puts into ``feed``; None ends the stream."""

    name = "Gated"

    def __init__(self) -> None:
        self.feed: asyncio.Queue = asyncio.Queue()
        self.started = asyncio.Event()
        self.calls = []
        self.closed = False

    async def stream_response(self, messages):
        self.calls.append(list(messages))
        self.started.set()
        try:
            while True:
                item = await self.feed.get()
                if item is None:
                    return
                if isinstance(item, Exception):
                    raise item
                yield item
        finally:
            self.closed = True


@pytest.fixture
def config() -> Config:
    return Config(api_key="sk-test", model="gpt-4o-mini")


@pytest.fixture
def isolated_env(tmp_path, monkeypatch):
    """Run in an empty directory with no ata/OpenAI/Anthropic environment."""
    for name in ("ATA_API_KEY", "ATA_MODEL", "ATA_BASE_URL", "ATA_LOG", "OPENAI_API_KEY", "ANTHROPIC_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("ata.config.config_dir", lambda: tmp_path / "config")
    monkeypatch.setattr("ata.config.legacy_config_dir", lambda: tmp_path / "legacy")
    return tmp_path
