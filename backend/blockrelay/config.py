"""Конфигурация приложения."""
import os
from functools import lru_cache

from .constants import DEFAULT_SYNC_INTERVAL_MS


@lru_cache
def get_config():
    return type("Config", (), {
        "sync_interval": int(os.environ.get("SYNC_INTERVAL_MS", DEFAULT_SYNC_INTERVAL_MS)) / 1000,
        "debug": os.environ.get("DEBUG", "0").lower() in ("1", "true", "yes"),
        "log_level": os.environ.get("LOG_LEVEL", "INFO").upper(),
        "allowed_origins": os.environ.get("ALLOWED_ORIGINS", "*").split(","),
    })()
