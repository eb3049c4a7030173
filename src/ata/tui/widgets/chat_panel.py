"""ChatPanel widget - prompt line and streamed, markdown-rendered responses."""

from __future__ import annotations

import logging

from textual import work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import VerticalScroll
from textual.message import Message
from textual.widget import Widget
from textual.widgets import Input, Markdown, Static, TextArea

from ata.chat.errors import ConfigError
from ata.chat.session import SessionRunner, SessionState, StreamHandle
from ata.help import KEYBINDINGS
from ata.tui.commands import COMMANDS, parse_command

logger = logging.getLogger(__name__)


class PromptArea(TextArea):
    """Multi-line prompt editor: Enter inserts a newline, Ctrl-D sends."""

    BINDINGS = [Binding("ctrl+d", "submit", "Send", show=True)]

    class Submitted(Message):
        def __init__(self, area: PromptArea, value: str) -> None:
            self.area = area
            self.value = value
            super().__init__()

    def action_submit(self) -> None:
        self.post_message(self.Submitted(self, self.text))


class ChatPanel(Widget):
    """Chat panel with prompt input and response streaming."""

    DEFAULT_CSS = """
    ChatPanel {
        height: 100%;
        width: 100%;
        layout: vertical;
    }
    ChatPanel #chat-messages {
        height: 1fr;
        padding: 0 1;
    }
    ChatPanel .chat-user {
        color: $accent;
        text-style: bold;
        margin: 1 0 0 0;
    }
    ChatPanel .chat-assistant {
        margin: 0 0 0 2;
    }
    ChatPanel .chat-error {
        color: $error;
        margin: 0 0 0 2;
    }
    ChatPanel .chat-info {
        color: $text-muted;
        content-align: center middle;
        margin: 1 0;
    }
    ChatPanel .chat-system {
        color: $text-muted;
        margin: 0 0 0 2;
    }
    ChatPanel #chat-input {
        dock: bottom;
        margin: 0;
    }
    ChatPanel PromptArea#chat-input {
        height: 6;
    }
    """

    BINDINGS = [
        Binding("up", "recall_prompt", "Previous prompt", show=False),
    ]

    class SessionStateChanged(Message):
        """Posted whenever the state of the running response changes."""

        def __init__(self, state: SessionState) -> None:
            self.state = state
            super().__init__()

    class PromptSubmitted(Message):
        """Posted when a prompt line (not a command) was sent."""

    def __init__(self, runner: SessionRunner, **kwargs) -> None:
        super().__init__(**kwargs)
        self._runner = runner
        self._multiline = runner.config.ui.multiline_insertions

    def compose(self) -> ComposeResult:
        yield VerticalScroll(id="chat-messages")
        if self._multiline:
            yield PromptArea(id="chat-input")
        else:
            yield Input(
                placeholder="Ask anything, or /help",
                id="chat-input",
            )

    def on_mount(self) -> None:
        self.query_one("#chat-input").focus()

    # --- Input handling ---

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id != "chat-input":
            return
        text = event.value
        event.input.value = ""
        self._submit(text)

    def on_prompt_area_submitted(self, event: PromptArea.Submitted) -> None:
        text = event.value
        event.area.clear()
        self._submit(text)

    def _submit(self, text: str) -> None:
        if not text.strip():
            return

        cmd = parse_command(text)
        if cmd is not None:
            self._handle_command(cmd)
            return

        self.post_message(self.PromptSubmitted())
        self._add_user_bubble(text)
        self._start(text)

    def _start(self, prompt: str | None) -> None:
        """Start a session; ``None`` repeats the previous prompt."""
        try:
            if prompt is None:
                handle = self._runner.replay()
                self._add_user_bubble(handle.prompt)
            else:
                handle = self._runner.start(prompt)
        except ConfigError as e:
            logger.warning("Prompt not sent: %s", e)
            self._add_error(f"Error: {e}")
            return
        self.post_message(self.SessionStateChanged(handle.state))
        self._stream_response(handle)

    def _handle_command(self, cmd) -> None:
        """Route a parsed ChatCommand to the appropriate handler."""
        if cmd.name == "clear":
            self._clear_chat()
        elif cmd.name == "help":
            self._add_user_bubble("/help")
            self._add_system_message(KEYBINDINGS)
        elif cmd.name == "config":
            self._add_user_bubble("/config")
            self._add_system_message(self._runner.config.describe())
        elif cmd.name == "retry":
            self.replay()
        else:
            self._add_user_bubble(f"/{cmd.name}" + (f" {cmd.args}" if cmd.args else ""))
            known = ", ".join(f"/{name}" for name in COMMANDS)
            self._add_error(f"Unknown command: /{cmd.name}. Available: {known}")

    def action_recall_prompt(self) -> None:
        """Put the previous prompt back into an empty input line."""
        if self._multiline or self._runner.last_prompt is None:
            return
        input_widget = self.query_one("#chat-input", Input)
        if not input_widget.value:
            input_widget.value = self._runner.last_prompt
            input_widget.cursor_position = len(input_widget.value)

    # --- Public API for the app ---

    def replay(self) -> None:
        """Send the previous prompt again."""
        self._start(None)

    def cancel_response(self) -> bool:
        """Stop the streaming response; False if nothing was running."""
        return self._runner.cancel()

    def render_system_message(self, text: str) -> None:
        self._add_system_message(text)

    def render_error(self, text: str) -> None:
        self._add_error(text)

    # --- Streaming ---

    @work(exclusive=True, group="session")
    async def _stream_response(self, handle: StreamHandle) -> None:
        """Stream one response into a Markdown widget."""
        container = self.query_one("#chat-messages", VerticalScroll)
        response_widget = Markdown("...", classes="chat-assistant")
        await container.mount(response_widget)
        container.scroll_end(animate=False)

        last_state = handle.state

        async def show(_fragment: str) -> None:
            nonlocal last_state
            if handle.state is not last_state:
                last_state = handle.state
                self.post_message(self.SessionStateChanged(last_state))
            await response_widget.update(handle.text)
            container.scroll_end(animate=False)

        try:
            outcome = await handle.deliver(show)
        finally:
            # A newer session owns the status bar once it has started
            if self._runner.active in (None, handle):
                self.post_message(self.SessionStateChanged(handle.state))

        if outcome.ok:
            return

        # Keep partial output; drop the placeholder if nothing arrived
        if not handle.text:
            await response_widget.remove()
        if outcome.state is SessionState.CANCELLED:
            self._add_system_message("(stopped)")
        else:
            self._add_error(f"Error: {outcome.error}")

    # --- Rendering helpers ---

    def _add_user_bubble(self, text: str) -> None:
        container = self.query_one("#chat-messages", VerticalScroll)
        widget = Static(f"> {text}", classes="chat-user", markup=False)
        container.mount(widget)
        container.scroll_end(animate=False)

    def _add_error(self, text: str) -> None:
        container = self.query_one("#chat-messages", VerticalScroll)
        widget = Static(text, classes="chat-error", markup=False)
        container.mount(widget)
        container.scroll_end(animate=False)

    def _add_info(self, text: str) -> None:
        container = self.query_one("#chat-messages", VerticalScroll)
        widget = Static(text, classes="chat-info", markup=False)
        container.mount(widget)
        container.scroll_end(animate=False)

    def _add_system_message(self, text: str) -> None:
        container = self.query_one("#chat-messages", VerticalScroll)
        widget = Static(text, classes="chat-system", markup=False)
        container.mount(widget)
        container.scroll_end(animate=False)

    def _clear_chat(self) -> None:
        container = self.query_one("#chat-messages", VerticalScroll)
        container.remove_children()
        self._add_info("Screen cleared")
