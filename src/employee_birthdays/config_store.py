from __future__ import annotations

import os
import tempfile
import tomllib
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from employee_birthdays.date_logic import LEAP_DAY_RULES
from employee_birthdays.models import AppConfig

DEFAULT_CONFIG = AppConfig(
    timezone="UTC",
    check_interval_minutes=10,
    leap_day_rule="feb28",
    active_window_days=30,
)


def _toml_escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _positive_int(name: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer")
    if value <= 0:
        raise ValueError(f"{name} must be positive")
    return value


def validate_config(config: AppConfig) -> AppConfig:
    timezone = config.timezone.strip()
    if not timezone:
        raise ValueError("timezone must not be empty")
    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone: {timezone}") from exc

    leap_day_rule = config.leap_day_rule.strip().lower()
    if leap_day_rule not in LEAP_DAY_RULES:
        raise ValueError(f"leap_day_rule must be one of {sorted(LEAP_DAY_RULES)}")

    return AppConfig(
        timezone=timezone,
        check_interval_minutes=_positive_int("check_interval_minutes", config.check_interval_minutes),
        leap_day_rule=leap_day_rule,
        active_window_days=_positive_int("active_window_days", config.active_window_days),
    )


def load_config(path: Path) -> AppConfig:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with path.open("rb") as file_obj:
        data = tomllib.load(file_obj)

    config = AppConfig(
        timezone=str(data.get("timezone", DEFAULT_CONFIG.timezone)),
        check_interval_minutes=data.get("check_interval_minutes", DEFAULT_CONFIG.check_interval_minutes),
        leap_day_rule=str(data.get("leap_day_rule", DEFAULT_CONFIG.leap_day_rule)),
        active_window_days=data.get("active_window_days", DEFAULT_CONFIG.active_window_days),
    )
    return validate_config(config)


def render_config(config: AppConfig) -> str:
    validated = validate_config(config)

    lines = [
        "# All birthday arithmetic uses this zone's calendar date.",
        f'timezone = "{_toml_escape(validated.timezone)}"',
        f"check_interval_minutes = {validated.check_interval_minutes}",
        "# Where Feb 29 birthdays fall in non-leap years: feb28 or mar1.",
        f'leap_day_rule = "{validated.leap_day_rule}"',
        "# Chats silent for longer than this stop receiving reminders.",
        f"active_window_days = {validated.active_window_days}",
    ]
    return "\n".join(lines) + "\n"


def save_config_atomic(path: Path, config: AppConfig) -> None:
    rendered = render_config(config)
    path.parent.mkdir(parents=True, exist_ok=True)

    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        prefix=f".{path.name}.",
        delete=False,
    ) as temp_file:
        temp_file.write(rendered)
        temp_name = temp_file.name

    os.replace(temp_name, path)


def ensure_default_config(path: Path) -> None:
    if path.exists():
        return
    save_config_atomic(path, DEFAULT_CONFIG)
