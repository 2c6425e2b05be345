"""cipherpoc: drive a SQLCipher-encrypted SQLite database from Python.

What:
  Open an encrypted database with a raw 32-byte key, ensure the ``entries``
  table, insert one record and print everything stored.

Interfaces:
  :mod:`cipherpoc.cli` (command-line entry point), :mod:`cipherpoc.core`
  (demo runner, entry store, inspector), :mod:`cipherpoc.config`
  (runtime configuration), :mod:`cipherpoc.errors` (error taxonomy).
"""

__version__ = "0.1.0"
