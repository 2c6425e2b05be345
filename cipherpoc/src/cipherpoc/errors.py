"""Error taxonomy surfaced by the encrypted database demo.

What:
  Define the four failure categories a run can end with: the database file
  cannot be opened, the key does not match, a constraint rejected the insert,
  or a statement failed.

Why:
  The underlying SQLCipher driver reports everything through the generic DB-API
  exception hierarchy. Callers (the CLI in particular) need stable types to
  decide on exit codes and messages without parsing driver strings.

How:
  Each category subclasses :class:`CipherPocError`. Translation from driver
  exceptions happens once, in :mod:`cipherpoc.utils.sqlcipher`, and the
  original exception is always chained as ``__cause__``.

Interfaces:
  :class:`CipherPocError`, :class:`StorageUnavailable`,
  :class:`AuthenticationFailed`, :class:`ConstraintViolation`,
  :class:`QueryError`.
"""
from __future__ import annotations


class CipherPocError(Exception):
    """Base class for every failure raised by a demo step."""


class StorageUnavailable(CipherPocError):
    """The database file could not be created, opened, read or written."""


class AuthenticationFailed(CipherPocError):
    """The supplied key does not decrypt the existing database file.

    SQLCipher reports a wrong key, a plaintext SQLite file and arbitrary
    non-database bytes identically, so all three surface as this error.
    """


class ConstraintViolation(CipherPocError):
    """An insert violated a schema constraint (duplicate primary key)."""


class QueryError(CipherPocError):
    """A statement was malformed or did not match the stored schema."""
