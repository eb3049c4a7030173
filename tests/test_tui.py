"""TUI tests driven through Textual's pilot."""

from dataclasses import replace

import pytest
from textual.widgets import Input, Markdown, Static

from ata.chat.session import SessionRunner, SessionState
from ata.tui.app import AtaApp
from ata.tui.widgets.status_bar import StatusBar

from conftest import GatedProvider, ScriptedProvider


def _app(config, provider):
    return AtaApp(config, runner=SessionRunner(config, provider=provider), show_config=False)


async def _type(pilot, text):
    await pilot.press(*text)
    await pilot.press("enter")
    await pilot.pause()


@pytest.mark.asyncio
async def test_prompt_streams_into_markdown(config):
    provider = ScriptedProvider(["4"])
    app = _app(config, provider)

    async with app.run_test() as pilot:
        await _type(pilot, "sum")
        await app.workers.wait_for_complete()
        await pilot.pause()

        assert app.query_one("#chat-input", Input).value == ""
        assert len(app.query(Markdown)) == 1
        assert app.query_one(StatusBar).session_state == SessionState.COMPLETED.value
        assert app.query_one(StatusBar).provider == "Scripted"

    assert provider.calls[0][0].content == "sum"


@pytest.mark.asyncio
async def test_escape_stops_the_response(config):
    provider = GatedProvider()
    app = _app(config, provider)

    async with app.run_test() as pilot:
        await _type(pilot, "story")
        await provider.started.wait()

        await pilot.press("escape")
        await app.workers.wait_for_complete()
        await pilot.pause()

        assert app.query_one(StatusBar).session_state == SessionState.CANCELLED.value
        assert provider.closed


@pytest.mark.asyncio
async def test_new_prompt_keeps_its_own_status(config):
    provider = GatedProvider()
    app = _app(config, provider)

    async with app.run_test() as pilot:
        await _type(pilot, "first")
        await provider.started.wait()

        await _type(pilot, "second")
        await pilot.pause()
        await pilot.pause()

        assert len(provider.calls) == 2
        assert app.query_one(StatusBar).session_state == SessionState.SENDING.value


@pytest.mark.asyncio
async def test_help_command_is_not_sent(config):
    provider = ScriptedProvider(["never"])
    app = _app(config, provider)

    async with app.run_test() as pilot:
        before = len(app.query(".chat-system"))
        await _type(pilot, "/help")

        assert len(app.query(".chat-system")) == before + 1
        assert len(app.query(Markdown)) == 0

    assert provider.calls == []


@pytest.mark.asyncio
async def test_replay_without_prompt_shows_error(config):
    app = _app(config, ScriptedProvider())

    async with app.run_test() as pilot:
        await pilot.press("ctrl+r")
        await pilot.pause()

        assert len(app.query(".chat-error")) == 1


@pytest.mark.asyncio
async def test_up_recalls_previous_prompt(config):
    app = _app(config, ScriptedProvider(["ok"]))

    async with app.run_test() as pilot:
        await _type(pilot, "hello")
        await app.workers.wait_for_complete()

        await pilot.press("up")
        await pilot.pause()

        assert app.query_one("#chat-input", Input).value == "hello"


@pytest.mark.asyncio
async def test_first_ctrl_c_only_warns(config):
    app = _app(config, ScriptedProvider())

    async with app.run_test() as pilot:
        await pilot.press("ctrl+c")
        await pilot.pause()

        assert app.is_running


@pytest.mark.asyncio
async def test_missing_key_reported_on_start(config):
    config = replace(config, api_key=None)
    app = AtaApp(config, show_config=False)

    async with app.run_test() as pilot:
        await pilot.pause()
        assert len(app.query(".chat-error")) == 1
        assert isinstance(app.query(".chat-error").first(), Static)
