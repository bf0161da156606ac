"""Configuration models and YAML loader.

Telegram credentials (bot_token, chat_id) can be provided via environment
variables ``TELEGRAM_BOT_TOKEN`` and ``TELEGRAM_CHAT_ID``.  Values in the
YAML file are used as fallback — env vars always take precedence.
"""

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, field_validator, model_validator


class StorageConfig(BaseModel):
    data_dir: Path = Path("./data")
    # "skip": log and treat a corrupt record as empty; "raise": fail closed
    on_corrupt_record: Literal["skip", "raise"] = "skip"


class LedgerConfig(BaseModel):
    lock_scope: Literal["global", "per_bot"] = "global"


class StatisticsConfig(BaseModel):
    recalculate_on_trade: bool = True


class GatewayConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8765
    max_message_bytes: int = 65536

    @field_validator("port")
    @classmethod
    def check_port(cls, v: int) -> int:
        if not 0 < v < 65536:
            raise ValueError(f"port must be between 1 and 65535, got {v}")
        return v


class TelegramConfig(BaseModel):
    bot_token: str = ""
    chat_id: str = ""
    error_cooldown_seconds: int = 60

    @model_validator(mode="before")
    @classmethod
    def _resolve_env_vars(cls, values: dict) -> dict:  # type: ignore[override]
        """Override token / chat_id from env vars if set."""
        values = dict(values or {})
        env_token = os.environ.get("TELEGRAM_BOT_TOKEN")
        env_chat = os.environ.get("TELEGRAM_CHAT_ID")
        if env_token:
            values["bot_token"] = env_token
        if env_chat:
            values["chat_id"] = env_chat
        return values

    @model_validator(mode="after")
    def _check_required(self) -> "TelegramConfig":
        """Ensure both fields are present (from YAML or env)."""
        if not self.bot_token:
            raise ValueError(
                "bot_token is required — set TELEGRAM_BOT_TOKEN env var "
                "or provide it in the YAML config"
            )
        if not self.chat_id:
            raise ValueError(
                "chat_id is required — set TELEGRAM_CHAT_ID env var "
                "or provide it in the YAML config"
            )
        return self


class LoggingConfig(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


class BackendConfig(BaseModel):
    storage: StorageConfig = StorageConfig()
    ledger: LedgerConfig = LedgerConfig()
    statistics: StatisticsConfig = StatisticsConfig()
    gateway: GatewayConfig = GatewayConfig()
    telegram: TelegramConfig | None = None
    logging: LoggingConfig = LoggingConfig()


def load_config(path: str | Path) -> BackendConfig:
    """Load and validate backend configuration from a YAML file."""
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f)

    return BackendConfig(**(raw or {}))
