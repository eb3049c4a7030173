"""ata TUI Application - single-screen prompt/response terminal."""

from __future__ import annotations

import logging

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer

from ata.chat.errors import ConfigError
from ata.chat.session import SessionRunner
from ata.config import Config

from .widgets.chat_panel import ChatPanel
from .widgets.status_bar import StatusBar

logger = logging.getLogger(__name__)


class AtaApp(App):
    """Ask the Terminal Anything - streamed answers to stand-alone prompts."""

    TITLE = "Ask the Terminal Anything²"

    BINDINGS = [
        Binding("escape", "cancel_response", "Stop", show=True),
        Binding("ctrl+r", "replay", "Repeat prompt", show=True),
        Binding("ctrl+c", "interrupt", "Quit", show=True, priority=True),
        Binding("ctrl+q", "quit_app", "Quit", show=False),
    ]

    def __init__(self, config: Config, runner: SessionRunner | None = None, show_config: bool = True) -> None:
        super().__init__()
        self._config = config
        self._runner = runner or SessionRunner(config)
        self._show_config = show_config and not config.ui.hide_config
        self._had_first_interrupt = False

    def compose(self) -> ComposeResult:
        yield StatusBar(id="status-bar")
        yield ChatPanel(self._runner, id="chat-panel")
        yield Footer()

    def on_mount(self) -> None:
        status = self._status_bar
        status.model = self._config.model
        try:
            status.provider = self._runner.provider.name
        except ConfigError as e:
            status.provider = self._config.provider
            self._chat_panel.render_error(f"Error: {e}")
        if self._show_config:
            self._chat_panel.render_system_message(self._config.describe())

    # --- Widget accessors ---

    @property
    def _chat_panel(self) -> ChatPanel:
        return self.query_one("#chat-panel", ChatPanel)

    @property
    def _status_bar(self) -> StatusBar:
        return self.query_one("#status-bar", StatusBar)

    # --- Message handlers ---

    def on_chat_panel_session_state_changed(self, message: ChatPanel.SessionStateChanged) -> None:
        self._status_bar.session_state = message.state.value

    def on_chat_panel_prompt_submitted(self, _message: ChatPanel.PromptSubmitted) -> None:
        self._had_first_interrupt = False

    # --- Actions ---

    def action_cancel_response(self) -> None:
        """Stop the response that is streaming in."""
        if not self._chat_panel.cancel_response():
            logger.debug("Nothing to cancel")

    def action_replay(self) -> None:
        self._chat_panel.replay()

    def action_interrupt(self) -> None:
        """Ctrl-C: stop a running response, otherwise quit."""
        if self._chat_panel.cancel_response():
            return
        if self._config.ui.double_ctrlc and not self._had_first_interrupt:
            self._had_first_interrupt = True
            self.notify("Press Ctrl-C again to exit.", timeout=3)
            return
        self.action_quit_app()

    def action_quit_app(self) -> None:
        self._runner.cancel()
        self.exit()
