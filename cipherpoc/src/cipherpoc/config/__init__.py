"""Configuration models and loaders for cipherpoc."""

from .loader import (
    ConfigLoadError,
    RuntimeConfigError,
    get_runtime_config,
    load_runtime_config,
    parse_runtime_config,
    reset_runtime_config,
)
from .schema import DEFAULT_KEY_HEX, DatabaseSettings, LoggingSettings, RuntimeConfig

__all__ = [
    "ConfigLoadError",
    "DEFAULT_KEY_HEX",
    "DatabaseSettings",
    "LoggingSettings",
    "RuntimeConfig",
    "RuntimeConfigError",
    "get_runtime_config",
    "load_runtime_config",
    "parse_runtime_config",
    "reset_runtime_config",
]
