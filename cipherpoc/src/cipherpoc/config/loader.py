"""Strict loader for the cipherpoc runtime configuration.

What:
  Locate, parse, validate and cache ``cipherpoc.yaml``, the document holding
  the database path, the raw encryption key and the log level.

Why:
  The key must be an explicit configuration value rather than a constant buried
  in code, so operators and tests can point the demo at another file or key.
  Centralising discovery and validation keeps every command on the same view.

How:
  Resolve candidate paths from an explicit argument, the
  ``CIPHERPOC_CONFIG_PATH`` environment variable and well-known defaults.
  Parse YAML with :func:`yaml.safe_load`, validate through
  :class:`~cipherpoc.config.schema.RuntimeConfig`, and memoise the result.

Interfaces:
  :func:`load_runtime_config`, :func:`get_runtime_config`,
  :func:`reset_runtime_config`, :func:`parse_runtime_config`,
  :class:`ConfigLoadError`, :class:`RuntimeConfigError`.

Invariants:
  - An explicitly requested path (argument or environment) must exist; only
    the default locations are optional.
  - When no file is found the built-in defaults apply (``entries.db`` and the
    all-zero demo key).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Iterable, Optional, Tuple

from pydantic import ValidationError as _PydanticValidationError
import yaml

from .schema import RuntimeConfig


LOGGER = logging.getLogger("cipherpoc.config")


class ConfigLoadError(Exception):
    """Base error for configuration parsing or validation failures."""


class RuntimeConfigError(ConfigLoadError):
    """Error raised when ``cipherpoc.yaml`` cannot be loaded or validated.

    What:
      Signal discovery, parsing or schema problems with the runtime document.

    Why:
      The CLI reports these separately from database failures so operators
      know to fix the file rather than the database.
    """


_CONFIG_ENV = "CIPHERPOC_CONFIG_PATH"
_DEFAULT_LOCATIONS: Tuple[Path, ...] = (
    Path("cipherpoc.yaml"),
    Path("/etc/cipherpoc/config.yaml"),
)
_RUNTIME_CACHE: Optional[Tuple[Optional[Path], RuntimeConfig]] = None


def _candidate_paths(path: Optional[Path]) -> Iterable[Tuple[Path, bool]]:
    """Yield ``(path, required)`` pairs in priority order.

    What:
      Produce the ordered configuration locations together with whether a
      missing file at that location is an error.

    How:
      The explicit argument and the environment variable are required; the
      default locations are optional. Paths are expanded and deduplicated while
      preserving precedence.
    """

    seen: set[Path] = set()
    if path is not None:
        candidate = path.expanduser()
        seen.add(candidate)
        yield candidate, True
    env_path = os.environ.get(_CONFIG_ENV)
    if env_path:
        candidate = Path(env_path).expanduser()
        if candidate not in seen:
            seen.add(candidate)
            yield candidate, True
    for default in _DEFAULT_LOCATIONS:
        candidate = default.expanduser()
        if candidate not in seen:
            seen.add(candidate)
            yield candidate, False


def parse_runtime_config(text: str, source: Optional[Path] = None) -> RuntimeConfig:
    """Parse and validate configuration text.

    Args:
      text: Raw YAML document. An empty document yields the defaults.
      source: Path the text came from, used in error messages.

    Returns:
      The validated :class:`RuntimeConfig`.

    Raises:
      RuntimeConfigError: If the YAML is malformed, not a mapping, or fails
        schema validation.
    """

    origin = source if source is not None else "<string>"
    try:
        payload: Any = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise RuntimeConfigError(f"Invalid YAML in {origin}: {exc}") from exc
    if not isinstance(payload, dict):
        raise RuntimeConfigError(f"{origin} must contain a mapping at the top-level")
    try:
        return RuntimeConfig.model_validate(payload)
    except _PydanticValidationError as exc:
        raise RuntimeConfigError(f"Invalid configuration in {origin}: {exc}") from exc


def _load_runtime_from_path(path: Path) -> RuntimeConfig:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RuntimeConfigError(f"Unable to read configuration file {path}: {exc}") from exc
    return parse_runtime_config(text, path)


def load_runtime_config(
    path: Optional[Path | str] = None,
    *,
    reload: bool = False,
) -> RuntimeConfig:
    """Resolve, parse, and cache the runtime configuration.

    What:
      Locate ``cipherpoc.yaml`` using the precedence chain, parse it, and
      return a validated :class:`RuntimeConfig` instance.

    How:
      Consult the cache unless ``reload`` is requested or a different explicit
      path is asked for, then walk :func:`_candidate_paths`. The first existing
      file wins; a missing required path raises; exhausting the optional
      defaults falls back to ``RuntimeConfig()``.

    Args:
      path: Optional explicit location of the configuration file.
      reload: When ``True`` forces a fresh load bypassing the cache.

    Returns:
      The validated runtime configuration.

    Raises:
      RuntimeConfigError: If a required file is missing or any file found is
        invalid.
    """

    global _RUNTIME_CACHE

    requested_path = Path(path).expanduser() if isinstance(path, (str, Path)) else None
    if not reload and _RUNTIME_CACHE is not None:
        cached_path, cached_config = _RUNTIME_CACHE
        if requested_path is None or cached_path == requested_path:
            return cached_config

    for candidate, required in _candidate_paths(requested_path):
        if not candidate.exists():
            if required:
                raise RuntimeConfigError(f"Configuration file missing: {candidate}")
            continue
        config = _load_runtime_from_path(candidate)
        LOGGER.debug("config_loaded path=%s", candidate)
        _RUNTIME_CACHE = (candidate, config)
        return config

    LOGGER.debug("config_defaults_applied")
    config = RuntimeConfig()
    _RUNTIME_CACHE = (None, config)
    return config


def get_runtime_config() -> RuntimeConfig:
    """Return the cached runtime configuration, loading it on demand."""

    return load_runtime_config()


def reset_runtime_config() -> None:
    """Clear the runtime configuration cache."""

    global _RUNTIME_CACHE
    _RUNTIME_CACHE = None
