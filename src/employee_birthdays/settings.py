from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Settings:
    telegram_bot_token: str
    database_path: Path
    bot_config_path: Path


def _required_env(name: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        raise ValueError(f"Missing required environment variable: {name}")
    return value.strip()


def load_settings() -> Settings:
    root = Path.cwd()

    token = _required_env("TELEGRAM_BOT_TOKEN")
    database_path = Path(os.getenv("BIRTHDAY_DB_PATH", root / "data" / "birthdays.db"))
    bot_config_path = Path(os.getenv("BOT_CONFIG_PATH", root / "config" / "bot.toml"))

    return Settings(
        telegram_bot_token=token,
        database_path=database_path,
        bot_config_path=bot_config_path,
    )
