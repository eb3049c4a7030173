"""Tests for config loading, resolution and validation."""

import logging
from dataclasses import replace
from pathlib import Path

import pytest

from ata.chat.errors import ConfigError, ConfigNotFoundError
from ata.config import Config, UiConfig, load_config, resolve_config_path, write_example_config


def _write(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


class TestFromMapping:
    def test_reads_known_keys_and_ui_table(self):
        config = Config.from_mapping({
            "api_key": "sk-1",
            "model": "gpt-4o",
            "max_tokens": 512,
            "stop": "END",
            "ui": {"double_ctrlc": False, "multiline_insertions": True},
        })

        assert config.model == "gpt-4o"
        assert config.max_tokens == 512
        assert config.stop == ("END",)
        assert config.ui == UiConfig(double_ctrlc=False, multiline_insertions=True)

    def test_unknown_keys_are_ignored_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="ata.config"):
            config = Config.from_mapping({"api_key": "sk-1", "suffix": "x", "ui": {"colour": "red"}})

        assert config.api_key == "sk-1"
        assert "suffix" in caplog.text
        assert "colour" in caplog.text

    def test_old_history_keys_are_accepted_quietly(self, caplog):
        with caplog.at_level(logging.WARNING, logger="ata.config"):
            config = Config.from_mapping({
                "api_key": "sk-1",
                "ui": {"save_history": True, "history_file": "~/.ata_history", "double_ctrlc": False},
            })

        assert config.ui.double_ctrlc is False
        assert caplog.text == ""

    def test_provider_picks_its_default_model(self):
        config = Config.from_mapping({"provider": "anthropic", "api_key": "k"})
        assert config.model.startswith("claude")


class TestValidate:
    def test_defaults_are_valid(self):
        Config(api_key="sk-1").validate()

    @pytest.mark.parametrize("changes", [
        {"api_key": ""},
        {"model": ""},
        {"provider": "bard"},
        {"max_tokens": 0},
        {"temperature": 2.5},
        {"top_p": -0.1},
        {"stop": ("a", "b", "c", "d", "e")},
        {"stop": ("",)},
        {"presence_penalty": 3.0},
        {"frequency_penalty": -3.0},
        {"logit_bias": {"50256": -101.0}},
        {"timeout": 0},
        {"max_retries": -1},
    ])
    def test_out_of_range(self, changes):
        with pytest.raises(ConfigError):
            replace(Config(api_key="sk-1"), **changes).validate()

    def test_missing_key_is_not_a_validation_error(self):
        # The key may come from the environment; start() checks it
        Config(api_key=None).validate()


class TestDescribe:
    def test_api_key_redacted(self):
        text = Config(api_key="sk-secret").describe()
        assert "sk-secret" not in text
        assert "[redacted]" in text
        assert "model: gpt-4o-mini" in text

    def test_api_key_shown_when_redaction_off(self):
        config = Config(api_key="sk-secret", ui=UiConfig(redact_api_key=False))
        assert "sk-secret" in config.describe()

    def test_repr_never_shows_key(self):
        assert "sk-secret" not in repr(Config(api_key="sk-secret"))


class TestResolveConfigPath:
    def test_default_location(self, isolated_env):
        assert resolve_config_path("") == isolated_env / "config" / "ata2.toml"

    def test_working_directory_file_is_still_honoured(self, isolated_env, caplog):
        _write(isolated_env / "ata2.toml", "")
        with caplog.at_level(logging.WARNING):
            path = resolve_config_path(None)
        assert path == Path("ata2.toml")
        assert "DEPRECATED" in caplog.text

    def test_named_config(self, isolated_env):
        assert resolve_config_path("work") == isolated_env / "config" / "work.toml"

    def test_literal_path(self, isolated_env):
        assert resolve_config_path("/etc/ata/custom.toml").as_posix() == "/etc/ata/custom.toml"


class TestLoadConfig:
    def test_loads_file(self, isolated_env):
        path = _write(isolated_env / "my.toml", 'api_key = "sk-file"\nmodel = "gpt-4o"\ntemperature = 0.2\n')

        config = load_config(str(path))

        assert config.api_key == "sk-file"
        assert config.model == "gpt-4o"
        assert config.temperature == 0.2

    def test_missing_file(self, isolated_env):
        with pytest.raises(ConfigNotFoundError) as exc_info:
            load_config(str(isolated_env / "nope.toml"))
        assert exc_info.value.path == isolated_env / "nope.toml"

    def test_invalid_toml(self, isolated_env):
        path = _write(isolated_env / "bad.toml", "api_key = \n")
        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_wrong_type(self, isolated_env):
        path = _write(isolated_env / "bad.toml", 'api_key = "k"\nmax_tokens = "lots"\n')
        with pytest.raises(ConfigError):
            load_config(str(path))

    @pytest.mark.parametrize("line", ['ui = "x"', 'logit_bias = "x"', "stop = 5"])
    def test_value_of_wrong_shape(self, isolated_env, line):
        path = _write(isolated_env / "bad.toml", f'api_key = "k"\n{line}\n')
        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_out_of_range_value(self, isolated_env):
        path = _write(isolated_env / "bad.toml", 'api_key = "k"\ntemperature = 9.0\n')
        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_api_key_from_environment(self, isolated_env, monkeypatch):
        path = _write(isolated_env / "nokey.toml", 'model = "gpt-4o"\n')
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")

        assert load_config(str(path)).api_key == "sk-env"

        monkeypatch.setenv("ATA_API_KEY", "sk-ata")
        assert load_config(str(path)).api_key == "sk-ata"

    def test_file_key_wins_over_environment(self, isolated_env, monkeypatch):
        path = _write(isolated_env / "key.toml", 'api_key = "sk-file"\n')
        monkeypatch.setenv("ATA_API_KEY", "sk-env")

        assert load_config(str(path)).api_key == "sk-file"

    def test_model_and_base_url_overrides(self, isolated_env, monkeypatch):
        path = _write(isolated_env / "key.toml", 'api_key = "k"\nmodel = "gpt-4o"\n')
        monkeypatch.setenv("ATA_MODEL", "gpt-4.1")
        monkeypatch.setenv("ATA_BASE_URL", "http://localhost:8080/v1")

        config = load_config(str(path))

        assert config.model == "gpt-4.1"
        assert config.base_url == "http://localhost:8080/v1"

    def test_anthropic_key_from_environment(self, isolated_env, monkeypatch):
        path = _write(isolated_env / "claude.toml", 'provider = "anthropic"\n')
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-openai")

        assert load_config(str(path)).api_key == "sk-ant"

    def test_legacy_config_is_migrated(self, isolated_env, caplog):
        _write(isolated_env / "legacy" / "ata.toml", 'api_key = "sk-old"\nmodel = "gpt-3.5-turbo"\n')

        with caplog.at_level(logging.WARNING):
            config = load_config("")

        assert config.api_key == "sk-old"
        assert (isolated_env / "config" / "ata2.toml").exists()
        assert "Copied old configuration" in caplog.text

    def test_example_config_loads(self, isolated_env):
        path = isolated_env / "config" / "ata2.toml"
        write_example_config(path)

        config = load_config("")

        assert config.model == "gpt-4o-mini"
        assert config.max_tokens == 2048
