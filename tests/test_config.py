"""Tests for configuration loading and validation."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml
from pydantic import ValidationError

from telemetry.config import BackendConfig, GatewayConfig, TelegramConfig, load_config


def _write_config(data: dict | None, path: Path) -> Path:
    """Write a config dict to a YAML file."""
    config_path = path / "config.yaml"
    with open(config_path, "w") as f:
        if data is not None:
            yaml.dump(data, f)
    return config_path


def _env_without_telegram() -> dict:
    env = os.environ.copy()
    env.pop("TELEGRAM_BOT_TOKEN", None)
    env.pop("TELEGRAM_CHAT_ID", None)
    return env


class TestConfigLoading:
    """Test YAML config loading and Pydantic validation."""

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        config = load_config(_write_config(None, tmp_path))

        assert config.storage.data_dir == Path("./data")
        assert config.storage.on_corrupt_record == "skip"
        assert config.ledger.lock_scope == "global"
        assert config.statistics.recalculate_on_trade is True
        assert config.gateway.host == "0.0.0.0"
        assert config.gateway.port == 8765
        assert config.telegram is None
        assert config.logging.level == "INFO"

    def test_full_config(self, tmp_path: Path) -> None:
        data = {
            "storage": {"data_dir": str(tmp_path / "state"), "on_corrupt_record": "raise"},
            "ledger": {"lock_scope": "per_bot"},
            "statistics": {"recalculate_on_trade": False},
            "gateway": {"host": "127.0.0.1", "port": 9100, "max_message_bytes": 1024},
            "telegram": {
                "bot_token": "tok",
                "chat_id": "123",
                "error_cooldown_seconds": 300,
            },
            "logging": {"level": "DEBUG"},
        }
        with patch.dict(os.environ, _env_without_telegram(), clear=True):
            config = load_config(_write_config(data, tmp_path))

        assert config.storage.data_dir == tmp_path / "state"
        assert config.storage.on_corrupt_record == "raise"
        assert config.ledger.lock_scope == "per_bot"
        assert config.statistics.recalculate_on_trade is False
        assert config.gateway.port == 9100
        assert config.gateway.max_message_bytes == 1024
        assert config.telegram is not None
        assert config.telegram.error_cooldown_seconds == 300
        assert config.logging.level == "DEBUG"

    def test_missing_file_raises(self) -> None:
        """Non-existent file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_config("/nonexistent/path.yaml")

    @pytest.mark.parametrize(
        "section",
        [
            {"storage": {"on_corrupt_record": "ignore"}},
            {"ledger": {"lock_scope": "per_account"}},
            {"logging": {"level": "CHATTY"}},
        ],
    )
    def test_unknown_choice_rejected(self, tmp_path: Path, section: dict) -> None:
        with pytest.raises(ValidationError):
            load_config(_write_config(section, tmp_path))

    @pytest.mark.parametrize("port", [0, 65536, -1])
    def test_port_out_of_range(self, port: int) -> None:
        with pytest.raises(ValidationError, match="port must be between"):
            GatewayConfig(port=port)


class TestEnvVarConfig:
    """Test environment variable support for Telegram credentials."""

    def test_env_vars_override_yaml(self, tmp_path: Path) -> None:
        """Env vars take precedence over YAML values."""
        data = {"telegram": {"bot_token": "yaml-token", "chat_id": "yaml-chat"}}
        path = _write_config(data, tmp_path)
        with patch.dict(os.environ, {
            "TELEGRAM_BOT_TOKEN": "env-token",
            "TELEGRAM_CHAT_ID": "env-chat",
        }):
            config = load_config(path)
        assert config.telegram.bot_token == "env-token"
        assert config.telegram.chat_id == "env-chat"

    def test_env_vars_without_yaml_values(self, tmp_path: Path) -> None:
        """Env vars work when YAML has empty telegram section."""
        path = _write_config({"telegram": {}}, tmp_path)
        with patch.dict(os.environ, {
            "TELEGRAM_BOT_TOKEN": "env-token",
            "TELEGRAM_CHAT_ID": "env-chat",
        }):
            config = load_config(path)
        assert config.telegram.bot_token == "env-token"
        assert config.telegram.chat_id == "env-chat"

    def test_partial_env_var_token_only(self, tmp_path: Path) -> None:
        """Env token overrides YAML, chat_id from YAML."""
        data = {"telegram": {"bot_token": "yaml-token", "chat_id": "yaml-chat"}}
        path = _write_config(data, tmp_path)
        env = _env_without_telegram()
        env["TELEGRAM_BOT_TOKEN"] = "env-token"
        with patch.dict(os.environ, env, clear=True):
            config = load_config(path)
        assert config.telegram.bot_token == "env-token"
        assert config.telegram.chat_id == "yaml-chat"

    def test_missing_both_raises(self, tmp_path: Path) -> None:
        """Missing token from both env and YAML raises error."""
        path = _write_config({"telegram": {}}, tmp_path)
        with patch.dict(os.environ, _env_without_telegram(), clear=True):
            with pytest.raises(ValidationError, match="bot_token is required"):
                load_config(path)

    def test_no_telegram_section_needs_no_credentials(self, tmp_path: Path) -> None:
        with patch.dict(os.environ, _env_without_telegram(), clear=True):
            config = load_config(_write_config({"gateway": {"port": 9000}}, tmp_path))
        assert config.telegram is None

    def test_telegram_config_directly_from_env(self) -> None:
        """TelegramConfig can be created with just env vars."""
        with patch.dict(os.environ, {
            "TELEGRAM_BOT_TOKEN": "direct-token",
            "TELEGRAM_CHAT_ID": "direct-chat",
        }):
            tc = TelegramConfig()
        assert tc.bot_token == "direct-token"
        assert tc.chat_id == "direct-chat"

    def test_backend_config_constructible_in_code(self, tmp_path: Path) -> None:
        config = BackendConfig(storage={"data_dir": tmp_path})
        assert config.storage.data_dir == tmp_path
