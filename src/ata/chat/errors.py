"""Error types shared by the config loader, providers and the session runner."""

from __future__ import annotations

from enum import Enum


class ConfigError(ValueError):
    """Configuration is missing or invalid, or the prompt is empty."""


class ConfigNotFoundError(ConfigError):
    """No configuration file exists at the resolved location."""

    def __init__(self, path) -> None:
        self.path = path
        super().__init__(f"Configuration file not found: {path}")


class StreamErrorKind(str, Enum):
    NETWORK = "network"
    AUTH = "auth"
    RATE_LIMITED = "rate_limited"
    MALFORMED = "malformed"
    CANCELLED = "cancelled"


class StreamError(Exception):
    """A streaming exchange ended without completing.

    Attributes:
        kind: Category of the failure.
        status: HTTP status code when the endpoint answered with one.
    """

    def __init__(
        self, kind: StreamErrorKind, message: str = "", status: int | None = None
    ) -> None:
        self.kind = kind
        self.status = status
        super().__init__(message or kind.value)

    def __str__(self) -> str:
        text = super().__str__()
        if self.status is not None:
            return f"{self.kind.value} (HTTP {self.status}): {text}"
        return f"{self.kind.value}: {text}"


def kind_for_status(status: int) -> StreamErrorKind:
    """Map a non-2xx HTTP status to an error kind."""
    if status in (401, 403):
        return StreamErrorKind.AUTH
    if status == 429:
        return StreamErrorKind.RATE_LIMITED
    return StreamErrorKind.NETWORK
