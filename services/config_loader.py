import copy
import os
from pathlib import Path

import yaml

DEFAULT_CONFIG = {
    "scheduler": {
        "check_interval_minutes": 5,
    },
    "schedule": {
        "timezone": "America/Bogota",
        "start_hour": 8,
        "end_hour": 17,
        "lunch_start_hour": 13,
        "lunch_end_hour": 14,
    },
    "holidays": {
        "country": "CO",
        "api_url": "https://date.nager.at/api/v3/PublicHolidays",
        "timeout_seconds": 5,
        "cache_hours": 24,
    },
    "slack": {
        "timeout_seconds": 5,
        "settle_delay_seconds": 1.5,
    },
    "telegram": {
        "enabled": True,
        "timeout_seconds": 5,
    },
}

# 環境変数 -> (セクション, キー, 型)
ENV_OVERRIDES = {
    "HORA_INICIO": ("schedule", "start_hour", int),
    "HORA_FIN": ("schedule", "end_hour", int),
    "HORA_ALMUERZO_INICIO": ("schedule", "lunch_start_hour", int),
    "HORA_ALMUERZO_FIN": ("schedule", "lunch_end_hour", int),
    "TIMEZONE": ("schedule", "timezone", str),
    "HOLIDAY_COUNTRY": ("holidays", "country", str),
    "CHECK_INTERVAL_MINUTES": ("scheduler", "check_interval_minutes", int),
}


def _deep_merge(base: dict, override: dict) -> dict:
    """ベース設定にオーバーライドをマージする"""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def apply_env_overrides(config: dict, environ=None) -> dict:
    """環境変数で指定された値を設定に上書きする"""
    if environ is None:
        environ = os.environ

    for env_name, (section, key, cast) in ENV_OVERRIDES.items():
        raw = environ.get(env_name)
        if raw is None or raw == "":
            continue
        try:
            config[section][key] = cast(raw)
        except ValueError as e:
            raise ValueError(f"{env_name} の値が不正です: {raw!r}") from e
    return config


def load_config(path: str = "config.yaml", environ=None) -> dict:
    """YAML設定ファイルをロードし、デフォルト設定・環境変数とマージして返す"""
    config_path = Path(path)
    if config_path.exists():
        with open(config_path, "r", encoding="utf-8") as f:
            user_config = yaml.safe_load(f) or {}
        config = _deep_merge(copy.deepcopy(DEFAULT_CONFIG), user_config)
    else:
        config = copy.deepcopy(DEFAULT_CONFIG)
    return apply_env_overrides(config, environ)
