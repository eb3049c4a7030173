"""Command-line entry point.

With a terminal on stdin this starts the TUI. With piped input the whole
of stdin is sent as one prompt and the response is written to stdout:

    echo "What is 2+2?" | ata
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import sys
from typing import TextIO

from rich.console import Console

from . import __version__
from .chat.errors import ConfigError, ConfigNotFoundError
from .chat.llm_provider import LLMProvider
from .chat.session import Outcome, SessionState, start
from .config import Config, load_config, write_example_config
from .help import KEYBINDINGS, missing_config_text

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ata",
        description="Ask the Terminal Anything - stream answers from a chat-completion API",
    )
    parser.add_argument(
        "-c", "--config", default="",
        help="Config file path, or a config name looked up in the config directory",
    )
    parser.add_argument("--hide-config", action="store_true", help="Do not print the configuration on start")
    parser.add_argument("--print-shortcuts", action="store_true", help="Print the keyboard shortcuts and exit")
    parser.add_argument(
        "--log-level", default=None,
        help="Logging level (default: $ATA_LOG or INFO)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def setup_logging(level: str | None) -> None:
    name = (level or os.getenv("ATA_LOG") or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )


def _offer_example_config(path) -> None:
    """Ask whether to write the example config (interactive terminals only)."""
    if not (sys.stdin.isatty() and sys.stderr.isatty()):
        return
    print(f"Do you want me to write this example file to {path} for you to edit?", file=sys.stderr)
    try:
        answer = input("[y/N] ")
    except EOFError:
        return
    if answer.strip().lower().startswith("y"):
        write_example_config(path)
        print(f"Wrote {path}", file=sys.stderr)


async def run_once(
    config: Config,
    prompt: str,
    out: TextIO | None = None,
    provider: LLMProvider | None = None,
) -> Outcome:
    """Stream the answer to one prompt into ``out``; Ctrl-C cancels it."""
    out = out or sys.stdout
    handle = start(config, prompt, provider=provider)

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, handle.cancel)
        handles_sigint = True
    except (NotImplementedError, RuntimeError, ValueError):
        # No signal handlers on this platform or outside the main thread
        handles_sigint = False

    def write(fragment: str) -> None:
        out.write(fragment)
        out.flush()

    try:
        outcome = await handle.deliver(write)
    finally:
        if handles_sigint:
            loop.remove_signal_handler(signal.SIGINT)

    if handle.text and not handle.text.endswith("\n"):
        out.write("\n")
        out.flush()
    return outcome


def _exit_code(outcome: Outcome) -> int:
    if outcome.state is SessionState.COMPLETED:
        return EXIT_OK
    if outcome.state is SessionState.CANCELLED:
        return EXIT_CANCELLED
    return EXIT_FAILED


def run_pipe(config: Config, stdin: TextIO, show_config: bool) -> int:
    console = Console(stderr=True)
    if console.is_terminal:
        console.print("Ask the Terminal Anything²\n", style="bold")
        if show_config:
            console.print(config.describe(), markup=False, highlight=False)

    prompt = stdin.read().rstrip("\n")
    try:
        outcome = asyncio.run(run_once(config, prompt))
    except ConfigError as e:
        logger.error("Config error: %s", e)
        return EXIT_FAILED

    if outcome.error is not None:
        logger.error("Request failed: %s", outcome.error)
    return _exit_code(outcome)


def run_tui(config: Config, show_config: bool) -> int:
    from textual.logging import TextualHandler

    from .tui.app import AtaApp

    level = logging.getLogger().level
    logging.basicConfig(level=level, handlers=[TextualHandler()], force=True)
    AtaApp(config, show_config=show_config).run()
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.print_shortcuts:
        print(KEYBINDINGS)
        return EXIT_OK

    setup_logging(args.log_level)

    try:
        config = load_config(args.config)
    except ConfigNotFoundError as e:
        print(missing_config_text(e.path), file=sys.stderr)
        _offer_example_config(e.path)
        return EXIT_FAILED
    except ConfigError as e:
        logger.error("Config error: %s", e)
        return EXIT_FAILED

    show_config = not (args.hide_config or config.ui.hide_config)
    if not sys.stdin.isatty():
        return run_pipe(config, sys.stdin, show_config)
    return run_tui(config, show_config)


if __name__ == "__main__":
    sys.exit(main())
