"""Pydantic models describing the cipherpoc configuration document."""
from __future__ import annotations

import re
from typing import Dict, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_KEY_HEX = "00" * 32

_KEY_RE = re.compile(r"^[0-9a-fA-F]{64}$")
_PRAGMA_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class DatabaseSettings(BaseModel):
    """Location and key of the encrypted database.

    ``key`` holds the 32-byte raw SQLCipher key as 64 hex characters. It is
    excluded from ``repr`` so settings can be logged safely.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    path: str = "entries.db"
    key: str = Field(default=DEFAULT_KEY_HEX, repr=False)
    pragmas: Dict[str, Union[int, str]] = Field(default_factory=dict)

    @field_validator("path")
    @classmethod
    def _validate_path(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("database path must not be empty")
        return value

    @field_validator("key")
    @classmethod
    def _validate_key(cls, value: str) -> str:
        if not _KEY_RE.match(value):
            raise ValueError("key must be 64 hexadecimal characters (32 bytes)")
        return value.lower()

    @field_validator("pragmas")
    @classmethod
    def _validate_pragmas(cls, value: Dict[str, Union[int, str]]) -> Dict[str, Union[int, str]]:
        for name, setting in value.items():
            if not _PRAGMA_NAME_RE.match(name):
                raise ValueError(f"invalid pragma name '{name}'")
            if name.lower() in {"key", "rekey"}:
                raise ValueError("the key is configured through 'key', not pragmas")
            if ";" in str(setting) or not str(setting).strip():
                raise ValueError(f"invalid value for pragma '{name}'")
        return value

    @property
    def key_bytes(self) -> bytes:
        return bytes.fromhex(self.key)


class LoggingSettings(BaseModel):
    """Root logger level applied by the CLI."""

    model_config = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"


class RuntimeConfig(BaseModel):
    """Root configuration loaded from ``cipherpoc.yaml``."""

    model_config = ConfigDict(extra="forbid")

    version: Literal[1] = 1
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
