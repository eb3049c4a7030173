"""StatusBar widget - reactive status line at the top of the TUI."""

from textual.app import ComposeResult
from textual.css.query import NoMatches
from textual.reactive import reactive
from textual.widget import Widget
from textual.widgets import Static

STATE_LABELS = {
    "idle": "ready",
    "sending": "waiting for response...",
    "streaming": "streaming (Esc to stop)",
    "completed": "ready",
    "failed": "failed",
    "cancelled": "stopped",
}


class StatusBar(Widget):
    """Displays provider, model and the state of the current response."""

    DEFAULT_CSS = """
    StatusBar {
        dock: top;
        height: 1;
        background: $accent;
        color: $text;
    }
    StatusBar Static {
        width: 1fr;
        content-align: center middle;
    }
    """

    provider: reactive[str] = reactive("-")
    model: reactive[str] = reactive("-")
    session_state: reactive[str] = reactive("idle")

    def compose(self) -> ComposeResult:
        yield Static(id="status-text")

    def _render_status(self) -> str:
        state = STATE_LABELS.get(self.session_state, self.session_state)
        return f" {self.provider}  |  Model: {self.model}  |  {state}"

    def watch_provider(self) -> None:
        self._update_display()

    def watch_model(self) -> None:
        self._update_display()

    def watch_session_state(self) -> None:
        self._update_display()

    def _update_display(self) -> None:
        try:
            self.query_one("#status-text", Static).update(self._render_status())
        except NoMatches:
            pass

    def on_mount(self) -> None:
        self._update_display()
