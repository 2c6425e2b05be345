"""End-to-end demo sequence against the encrypted database.

What:
  Run the fixed open, schema, insert, query, report, close sequence once.

Why:
  The demo exists to show either a clean success or an immediate, clearly
  typed failure. There is deliberately no retry or partial-success path.

How:
  :func:`~cipherpoc.utils.sqlcipher.encrypted_database` opens and unlocks the
  file and guarantees the close. :class:`~cipherpoc.core.entries.EntryStore`
  performs the table work. Errors propagate unchanged to the caller.

Interfaces:
  :func:`run_demo`.

Invariants & Safety:
  - The key is applied and verified before any schema or data statement.
  - The connection is closed on every exit path, including failures in the
    schema, insert and query steps.
"""
from __future__ import annotations

import logging
from typing import Callable, List, Optional

from ..config.schema import DatabaseSettings
from ..utils.sqlcipher import encrypted_database
from .entries import Entry, EntryStore


LOGGER = logging.getLogger("cipherpoc.runner")


def run_demo(
    settings: DatabaseSettings,
    *,
    entry: Optional[Entry] = None,
    echo: Callable[[str], None] = print,
) -> List[Entry]:
    """Execute the demo sequence and return the entries that were read back.

    Args:
      settings: Database path, raw key and extra PRAGMAs.
      entry: Record to insert; a random one is generated when omitted.
      echo: Sink for the report, called once per entry.

    Returns:
      Every entry found in the table after the insert.

    Raises:
      SqlCipherUnavailable: If no SQLCipher driver is installed.
      StorageUnavailable, AuthenticationFailed: From the open step.
      ConstraintViolation: If ``entry`` duplicates an existing hash.
      QueryError: If a statement fails against the stored schema.
    """

    record = entry if entry is not None else Entry.random()
    LOGGER.info("demo_started path=%s", settings.path)
    with encrypted_database(settings) as connection:
        store = EntryStore(connection)
        store.ensure_schema()
        store.insert(record)
        entries = store.fetch_all()
        for item in entries:
            echo(item.describe())
    LOGGER.info("demo_completed path=%s entries=%d", settings.path, len(entries))
    return entries
