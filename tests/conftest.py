"""Pytest configuration shared by the unit and end-to-end suites.

What:
  Make the in-repo source tree importable and keep configuration discovery and
  driver selection deterministic for every test.

Why:
  The configuration loader caches its result and consults the environment and
  the working directory. Without resets, tests would depend on execution order
  or on files present on the developer's machine.

How:
  Prepend ``cipherpoc/src`` to ``sys.path`` when present. The autouse
  :func:`runtime_config` fixture clears ``CIPHERPOC_CONFIG_PATH``, disables the
  default search locations and resets the cache around each test. The
  :func:`sqlite_driver` and :func:`tracking_driver` fixtures substitute the
  standard library :mod:`sqlite3` module for the SQLCipher driver, which is
  enough to exercise call order, schema and error translation (it ignores
  ``PRAGMA key``). Tests that need real encryption use :func:`real_sqlcipher`.
"""

import sqlite3
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "cipherpoc" / "src"
if SRC_DIR.exists():
    sys.path.insert(0, str(SRC_DIR))

TESTS_DIR = Path(__file__).resolve().parent
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

import pytest

from cipherpoc.config.loader import reset_runtime_config
from cipherpoc.utils import sqlcipher as sqlcipher_module

from fakes import TrackingDriver

INSTALLED_DRIVER = sqlcipher_module.sqlcipher


@pytest.fixture(autouse=True)
def runtime_config(monkeypatch: pytest.MonkeyPatch):
    """Isolate every test from ambient configuration files and cached state."""

    monkeypatch.delenv("CIPHERPOC_CONFIG_PATH", raising=False)
    monkeypatch.setattr("cipherpoc.config.loader._DEFAULT_LOCATIONS", ())
    reset_runtime_config()
    try:
        yield
    finally:
        reset_runtime_config()


@pytest.fixture
def sqlite_driver(monkeypatch: pytest.MonkeyPatch):
    """Use :mod:`sqlite3` as the driver so SQL runs without SQLCipher installed."""

    monkeypatch.setattr(sqlcipher_module, "sqlcipher", sqlite3)
    return sqlite3


@pytest.fixture
def tracking_driver(monkeypatch: pytest.MonkeyPatch) -> TrackingDriver:
    """Like :func:`sqlite_driver` but records statements and close calls."""

    driver = TrackingDriver()
    monkeypatch.setattr(sqlcipher_module, "sqlcipher", driver)
    return driver


@pytest.fixture
def real_sqlcipher():
    """Skip unless a real SQLCipher driver is importable."""

    if INSTALLED_DRIVER is None:
        pytest.skip("SQLCipher driver unavailable; install pysqlcipher3 or sqlcipher3-binary")
    return INSTALLED_DRIVER
