"""
Configuration for blockgraph.

Settings are read from BLOCKGRAPH_* environment variables once per
process; pass AppSettings explicitly to override them.
"""

from __future__ import annotations

import os
from functools import lru_cache

from .schemas import AppSettings

__all__ = ["AppSettings", "get_settings", "settings_from_env"]

_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_number(name: str, convert=float):
    value = os.getenv(name)
    if not value:
        return None
    try:
        return convert(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}") from None


def settings_from_env() -> AppSettings:
    """
    Build settings from the current environment, without caching.

    Raises:
        ValueError: If a variable is malformed or out of range
            (pydantic's ValidationError is a ValueError)
    """
    values = {
        "service_name": os.getenv("BLOCKGRAPH_SERVICE_NAME", "blockgraph"),
        "environment": os.getenv("BLOCKGRAPH_ENVIRONMENT", "development"),
        "debug": os.getenv("BLOCKGRAPH_DEBUG", "false").lower() in _TRUE_VALUES,
        "log_level": os.getenv("BLOCKGRAPH_LOG_LEVEL", "INFO"),
        "json_logs": os.getenv("BLOCKGRAPH_JSON_LOGS", "false").lower() in _TRUE_VALUES,
        "config_dir": os.getenv("BLOCKGRAPH_CONFIG_DIR", "."),
        "run_duration": _env_number("BLOCKGRAPH_RUN_DURATION"),
    }
    for field, name, convert in (
        ("send_interval", "BLOCKGRAPH_SEND_INTERVAL", float),
        ("call_interval", "BLOCKGRAPH_CALL_INTERVAL", float),
        ("channel_capacity", "BLOCKGRAPH_CHANNEL_CAPACITY", int),
    ):
        value = _env_number(name, convert)
        if value is not None:
            values[field] = value
    return AppSettings(**values)


@lru_cache()
def get_settings() -> AppSettings:
    """
    Get application settings from environment.

    Uses lru_cache for singleton pattern.
    """
    return settings_from_env()
