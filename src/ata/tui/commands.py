"""Command parser for slash commands typed into the prompt line."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ChatCommand:
    """Parsed chat command with name and optional arguments."""

    name: str
    args: str


COMMANDS: dict[str, str] = {
    "help": "Show keyboard shortcuts and commands",
    "clear": "Clear the screen",
    "config": "Show the active configuration",
    "retry": "Send the previous prompt again",
}


def parse_command(text: str) -> ChatCommand | None:
    """Parse a prompt line into a ChatCommand if it starts with /.

    Returns None if text does not start with / or is only "/".
    Splits on first space: "/retry now" -> ChatCommand(name="retry", args="now").
    Returns ChatCommand for ANY /command (known or unknown).
    """
    stripped = text.strip()
    if not stripped.startswith("/"):
        return None

    without_slash = stripped[1:]
    if not without_slash:
        return None

    parts = without_slash.split(None, 1)
    name = parts[0].lower()
    args = parts[1] if len(parts) > 1 else ""

    return ChatCommand(name=name, args=args)
