"""Configuration loading and validation.

Settings come from a TOML file in the user config directory, with a few
environment overrides (a ``.env`` file is honoured). The resulting
``Config`` is immutable and is passed explicitly to whatever needs it.
"""

from __future__ import annotations

import logging
import os
import shutil
import tomllib
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Mapping

from dotenv import find_dotenv, load_dotenv
from platformdirs import user_config_dir

from .chat.errors import ConfigError, ConfigNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = "ata2.toml"
LEGACY_CONFIG_FILENAME = "ata.toml"

PROVIDERS = ("openai", "anthropic")

DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "anthropic": "claude-sonnet-4-20250514",
}

API_KEY_ENV = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}

# Prompt history is not persisted; ata¹ config files may still set these
OBSOLETE_UI_KEYS = frozenset({"save_history", "history_file"})


def config_dir() -> Path:
    return Path(user_config_dir("ata2", appauthor=False))


def legacy_config_dir() -> Path:
    return Path(user_config_dir("ata", appauthor=False))


@dataclass(frozen=True)
class UiConfig:
    """Terminal behaviour settings (the ``[ui]`` table)."""

    double_ctrlc: bool = True  # require Ctrl-C twice to quit
    hide_config: bool = False  # skip the config listing on start
    redact_api_key: bool = True
    multiline_insertions: bool = False  # Enter inserts a newline, Ctrl-D sends


@dataclass(frozen=True)
class Config:
    """Resolved settings for talking to the chat endpoint."""

    api_key: str | None = field(default=None, repr=False)
    provider: str = "openai"
    model: str = DEFAULT_MODELS["openai"]
    base_url: str | None = None
    max_tokens: int = 2048
    temperature: float = 0.8
    top_p: float = 1.0
    stop: tuple[str, ...] = ()
    presence_penalty: float = 0.0
    frequency_penalty: float = 0.0
    logit_bias: Mapping[str, float] = field(default_factory=dict)
    timeout: float = 600.0
    max_retries: int = 0
    ui: UiConfig = field(default_factory=UiConfig)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Config:
        """Build a Config from parsed TOML, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                logger.warning("Ignoring unknown config key %r", key)
                continue
            kwargs[key] = value

        if "ui" in kwargs:
            if not isinstance(kwargs["ui"], Mapping):
                raise ConfigError("[ui] must be a table")
            kwargs["ui"] = _ui_from_mapping(kwargs["ui"])
        if "stop" in kwargs:
            stop = kwargs["stop"]
            kwargs["stop"] = (stop,) if isinstance(stop, str) else tuple(stop)
        if "logit_bias" in kwargs:
            if not isinstance(kwargs["logit_bias"], Mapping):
                raise ConfigError("logit_bias must be a table of token IDs to biases")
            kwargs["logit_bias"] = dict(kwargs["logit_bias"])
        if "provider" in kwargs and "model" not in kwargs:
            kwargs["model"] = DEFAULT_MODELS.get(kwargs["provider"], "")
        return cls(**kwargs)

    def validate(self) -> Config:
        """Check value ranges.

        Returns:
            self, so calls can be chained.

        Raises:
            ConfigError: The first invalid setting found.
        """
        if self.provider not in PROVIDERS:
            raise ConfigError(
                f"Unknown provider {self.provider!r} (expected one of {', '.join(PROVIDERS)})"
            )
        if self.api_key is not None and not self.api_key.strip():
            raise ConfigError("API key is empty")
        if not self.model:
            raise ConfigError("Model ID is missing")
        if not 1 <= self.max_tokens <= 128000:
            raise ConfigError("max_tokens must be between 1 and 128000")
        if not 0.0 <= self.temperature <= 2.0:
            raise ConfigError("temperature must be between 0.0 and 2.0")
        if not 0.0 <= self.top_p <= 1.0:
            raise ConfigError("top_p must be between 0.0 and 1.0")
        if len(self.stop) > 4 or any(not s for s in self.stop):
            raise ConfigError("stop accepts at most 4 non-empty phrases")
        if not -2.0 <= self.presence_penalty <= 2.0:
            raise ConfigError("presence_penalty must be between -2.0 and 2.0")
        if not -2.0 <= self.frequency_penalty <= 2.0:
            raise ConfigError("frequency_penalty must be between -2.0 and 2.0")
        for token, bias in self.logit_bias.items():
            if not -100.0 <= bias <= 100.0:
                raise ConfigError(f"logit_bias for {token} must be between -100 and 100")
        if self.timeout <= 0:
            raise ConfigError("timeout must be positive")
        if self.max_retries < 0:
            raise ConfigError("max_retries cannot be negative")
        return self

    def describe(self) -> str:
        """Human-readable listing shown when the client starts."""
        lines = ["Configuration:"]
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "api_key":
                if value and self.ui.redact_api_key:
                    value = "[redacted]"
                elif not value:
                    value = "<not set>"
            elif f.name == "ui":
                value = ", ".join(f"{u.name}={getattr(value, u.name)}" for u in fields(value))
            elif f.name == "logit_bias":
                value = dict(value)
            elif f.name == "base_url" and value is None:
                value = "<provider default>"
            lines.append(f"  {f.name}: {value}")
        return "\n".join(lines)


def _ui_from_mapping(data: Mapping[str, Any]) -> UiConfig:
    known = {f.name for f in fields(UiConfig)}
    ui: dict[str, Any] = {}
    for key, value in data.items():
        if key in known:
            ui[key] = value
        elif key in OBSOLETE_UI_KEYS:
            logger.debug("Ignoring obsolete [ui] config key %r", key)
        else:
            logger.warning("Ignoring unknown [ui] config key %r", key)
    return UiConfig(**ui)


def resolve_config_path(value: str | os.PathLike | None = None) -> Path:
    """Work out which config file to read.

    - empty: ``ata2.toml`` in the working directory if present
      (deprecated), else ``<config dir>/ata2.toml``;
    - no dot in the value: a named config, ``<config dir>/<name>.toml``;
    - otherwise: a literal path.
    """
    text = os.fspath(value) if value is not None else ""
    if not text.strip():
        local = Path(DEFAULT_CONFIG_FILENAME)
        if local.exists():
            logger.warning(
                "%s found in working directory BUT UNSPECIFIED. This behavior is "
                "DEPRECATED. Please move it to %s.",
                local,
                config_dir(),
            )
            return local
        return config_dir() / DEFAULT_CONFIG_FILENAME
    if "." not in text:
        return config_dir() / f"{text}.toml"
    return Path(text).expanduser()


def migrate_legacy_config(path: Path) -> bool:
    """Copy an ata¹ config into ``path`` if only the old one exists."""
    legacy = legacy_config_dir() / LEGACY_CONFIG_FILENAME
    if path.exists() or not legacy.exists():
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(legacy, path)
    logger.warning("Copied old configuration file %s to %s", legacy, path)
    return True


def _apply_env(config: Config) -> Config:
    overrides: dict[str, Any] = {}
    if os.getenv("ATA_MODEL"):
        overrides["model"] = os.environ["ATA_MODEL"]
    if os.getenv("ATA_BASE_URL"):
        overrides["base_url"] = os.environ["ATA_BASE_URL"]
    if not config.api_key:
        api_key = os.getenv("ATA_API_KEY") or os.getenv(API_KEY_ENV.get(config.provider, ""), "")
        if api_key:
            overrides["api_key"] = api_key
    return replace(config, **overrides) if overrides else config


def load_config(location: str | os.PathLike | None = None) -> Config:
    """Read, override and validate the configuration.

    Args:
        location: Value of ``--config`` (empty for the default location).

    Raises:
        ConfigNotFoundError: No file at the resolved location.
        ConfigError: The file does not parse or a value is out of range.
    """
    load_dotenv(find_dotenv(usecwd=True))

    path = resolve_config_path(location)
    if not path.exists():
        migrate_legacy_config(path)
    if not path.exists():
        raise ConfigNotFoundError(path)

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Could not parse {path}: {e}") from e

    try:
        config = _apply_env(Config.from_mapping(data)).validate()
    except TypeError as e:
        raise ConfigError(f"Invalid value in {path}: {e}") from e

    logger.debug("Loaded configuration from %s", path)
    return config


def write_example_config(path: Path) -> None:
    from .help import EXAMPLE_TOML

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(EXAMPLE_TOML + "\n")
