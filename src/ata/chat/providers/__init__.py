"""LLM provider factory - selects provider based on the configuration."""

from __future__ import annotations

from ...config import Config
from ..errors import ConfigError
from ..llm_provider import LLMProvider


def create_provider(config: Config) -> LLMProvider:
    """Create the LLM provider named by ``config.provider``.

    Raises:
        ConfigError: If the provider is unknown or no API key is configured.
    """
    if not config.api_key:
        raise ConfigError(
            "No API key found. Set api_key in the config file or ATA_API_KEY in .env"
        )

    if config.provider == "openai":
        from .openai_provider import OpenAIProvider

        return OpenAIProvider.from_config(config)

    if config.provider == "anthropic":
        from .anthropic_provider import AnthropicProvider

        return AnthropicProvider.from_config(config)

    raise ConfigError(f"Unknown provider {config.provider!r}")
