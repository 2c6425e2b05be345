"""SQLCipher helpers for encrypted SQLite storage.

What:
  Provide a guarded import of the SQLCipher DB-API driver plus helpers for
  opening an encrypted database with a raw 32-byte key, verifying that key, and
  translating driver exceptions into :mod:`cipherpoc.errors`.

Why:
  The encryption itself lives entirely inside SQLCipher. What the application
  owns is the call order (key first, before any other statement), a prompt
  failure when the key is wrong, and releasing the handle on every exit path.
  Centralising those rules keeps every caller consistent.

How:
  Attempt to import :mod:`pysqlcipher3` and fall back to :mod:`sqlcipher3`
  (prebuilt wheels). :func:`open_encrypted_database` connects, issues
  ``PRAGMA key`` with the hex-encoded raw key, applies caller-supplied PRAGMAs
  and reads ``sqlite_master`` so a wrong key fails during open rather than on
  the first real statement. :func:`encrypted_database` wraps that in a context
  manager that always closes the connection.

Interfaces:
  :class:`SqlCipherUnavailable`, :func:`format_key_pragma`,
  :func:`open_encrypted_database`, :func:`encrypted_database`,
  :func:`translate_error`, :func:`translating_errors`.

Invariants & Safety:
  - ``PRAGMA key`` is the first statement executed on every connection.
  - Connections are only returned once the key has been verified; a failed
    open closes the half-open connection before raising.
  - Key material never appears in log records or exception messages.
  - Additional PRAGMAs are executed verbatim; their names and values are
    validated by :class:`cipherpoc.config.schema.DatabaseSettings`.
"""
from __future__ import annotations

from contextlib import contextmanager
import logging
import os
from typing import TYPE_CHECKING, Any, Iterator, Mapping, Optional, Tuple, Union

from ..errors import (
    AuthenticationFailed,
    CipherPocError,
    ConstraintViolation,
    QueryError,
    StorageUnavailable,
)

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from pysqlcipher3 import dbapi2 as _sqlcipher

    from ..config.schema import DatabaseSettings

    SqlCipherConnection = _sqlcipher.Connection
else:  # pragma: no cover - runtime fallback
    SqlCipherConnection = object


try:  # pragma: no cover - optional dependency
    from pysqlcipher3 import dbapi2 as sqlcipher
except ImportError:  # pragma: no cover
    try:
        import sqlcipher3 as sqlcipher
    except ImportError:
        sqlcipher = None  # type: ignore[assignment]


LOGGER = logging.getLogger("cipherpoc.sqlcipher")

KEY_LENGTH = 32

_AUTH_MARKERS = ("file is not a database", "file is encrypted")
_STORAGE_MARKERS = (
    "unable to open",
    "cannot open",
    "readonly database",
    "disk i/o error",
    "database is locked",
    "database or disk is full",
    "disk image is malformed",
)


class SqlCipherUnavailable(RuntimeError):
    """Exception signalling missing SQLCipher support.

    What:
      Communicates that neither :mod:`pysqlcipher3` nor :mod:`sqlcipher3` could
      be imported on the current system.

    Why:
      Falling back to the plain :mod:`sqlite3` module would silently write an
      unencrypted file. Callers get a hard failure with remediation instead.
    """


def _driver_errors() -> Tuple[type, ...]:
    if sqlcipher is None:
        return (OSError,)
    return (sqlcipher.Error, OSError)


def format_key_pragma(key: bytes) -> str:
    """Return the ``PRAGMA key`` statement for a raw 32-byte key.

    What:
      Encode ``key`` as the SQLCipher raw-key literal ``"x'<HEX>'"``.

    Why:
      A raw key skips SQLCipher's passphrase derivation, so the bytes supplied
      by configuration are exactly the bytes used to encrypt pages. PRAGMA
      statements cannot take bound parameters, hence the literal.

    Args:
      key: Exactly :data:`KEY_LENGTH` bytes of key material.

    Returns:
      The PRAGMA statement text.

    Raises:
      ValueError: If ``key`` is not :data:`KEY_LENGTH` bytes long.
    """

    if len(key) != KEY_LENGTH:
        raise ValueError(f"encryption key must be {KEY_LENGTH} bytes, got {len(key)}")
    return f"PRAGMA key = \"x'{bytes(key).hex().upper()}'\";"


def translate_error(exc: BaseException) -> CipherPocError:
    """Map a driver or filesystem exception onto the error taxonomy.

    What:
      Classify ``exc`` as :class:`ConstraintViolation`,
      :class:`AuthenticationFailed`, :class:`StorageUnavailable` or
      :class:`QueryError`.

    How:
      Integrity errors are recognised by type. The remaining DB-API classes
      are too coarse (a wrong key and a malformed query are both
      ``DatabaseError``), so the SQLite message text decides. Anything
      unrecognised is a :class:`QueryError`.

    Args:
      exc: Exception raised by the driver or by the operating system.

    Returns:
      A new taxonomy error; the caller raises it ``from exc``.
    """

    message = str(exc)
    lowered = message.lower()
    integrity = getattr(sqlcipher, "IntegrityError", ())
    if integrity and isinstance(exc, integrity):
        return ConstraintViolation(message)
    if any(marker in lowered for marker in _AUTH_MARKERS):
        return AuthenticationFailed(
            f"{message} (wrong key, or the file is not an encrypted database)"
        )
    if isinstance(exc, OSError) or any(marker in lowered for marker in _STORAGE_MARKERS):
        return StorageUnavailable(message)
    return QueryError(message)


@contextmanager
def translating_errors() -> Iterator[None]:
    """Re-raise driver and filesystem exceptions from the wrapped block as taxonomy errors."""

    try:
        yield
    except _driver_errors() as exc:
        raise translate_error(exc) from exc


def open_encrypted_database(
    path: Union[str, "os.PathLike[str]"],
    *,
    key: bytes,
    pragmas: Optional[Mapping[str, Any]] = None,
) -> SqlCipherConnection:
    """Open and unlock an encrypted SQLite database guarded by SQLCipher.

    What:
      Establishes a connection to ``path`` (creating the file when absent),
      applies ``key`` as the raw encryption key, executes optional PRAGMA
      statements and proves the key works.

    Why:
      SQLCipher accepts any key without complaint and only fails when the first
      page is decrypted. Reading ``sqlite_master`` immediately moves that
      failure into the open step, before any schema or data statement runs.

    How:
      Validates the driver is present, connects, issues :func:`format_key_pragma`
      then each ``PRAGMA name = value``, and runs
      ``SELECT count(*) FROM sqlite_master``. Any driver error closes the
      connection and is translated; errors other than authentication failures
      are reported as :class:`StorageUnavailable` because nothing else can go
      wrong before the schema step.

    Args:
      path: Filesystem path to the encrypted database file.
      key: Raw 32-byte encryption key.
      pragmas: Optional mapping of PRAGMA directives applied after the key
        (e.g., ``{"cipher_memory_security": "ON"}``).

    Returns:
      Active SQLCipher connection object ready for database operations.

    Raises:
      SqlCipherUnavailable: If no SQLCipher driver is installed on the host.
      StorageUnavailable: If the file cannot be created, opened or read.
      AuthenticationFailed: If ``key`` does not decrypt the existing file.
    """

    if sqlcipher is None:
        raise SqlCipherUnavailable(
            "SQLCipher driver is required for encrypted stores "
            "(install pysqlcipher3 or sqlcipher3-binary)"
        )
    statement = format_key_pragma(key)
    target = os.fspath(path)
    try:
        connection = sqlcipher.connect(target)
    except sqlcipher.Error as exc:
        raise StorageUnavailable(f"cannot open database {target}: {exc}") from exc

    try:
        connection.execute(statement)
        for pragma, value in (pragmas or {}).items():
            connection.execute(f"PRAGMA {pragma} = {value}")
        connection.execute("SELECT count(*) FROM sqlite_master").fetchone()
    except sqlcipher.Error as exc:
        connection.close()
        error = translate_error(exc)
        if not isinstance(error, AuthenticationFailed):
            error = StorageUnavailable(f"cannot read database {target}: {exc}")
        LOGGER.warning("database_open_failed path=%s reason=%s", target, type(error).__name__)
        raise error from exc
    LOGGER.info("database_opened path=%s pragmas=%s", target, sorted(pragmas or {}))
    return connection


@contextmanager
def encrypted_database(settings: "DatabaseSettings") -> Iterator[SqlCipherConnection]:
    """Yield an unlocked connection for ``settings`` and always close it.

    The connection is released on every exit path, including when the managed
    block raises, so the file is never left locked by an aborted run.
    """

    connection = open_encrypted_database(
        settings.path,
        key=settings.key_bytes,
        pragmas=settings.pragmas,
    )
    try:
        yield connection
    finally:
        connection.close()
        LOGGER.info("database_closed path=%s", settings.path)
