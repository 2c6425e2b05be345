"""Entry records and the table that stores them.

What:
  Define :class:`Entry`, the single record type of the demo (a random
  hash, a 32-bit DHT location and a creation timestamp), and
  :class:`EntryStore`, which owns the ``entries`` table on an open connection.

Why:
  Keeping the SQL in one place gives the runner a small typed surface
  (ensure, insert, fetch) and guarantees every statement goes through the
  driver error translation.

How:
  Statements use positional ``?`` parameters. Timestamps are stored as
  ISO-8601 text normalised to UTC with microsecond precision so that text
  comparison in SQL matches chronological order. Writes run inside
  ``with connection:`` so a failed insert is rolled back.

Interfaces:
  :class:`Entry`, :class:`EntryStore`.

Invariants & Safety:
  - ``hash`` is the primary key; inserting an existing hash raises
    :class:`~cipherpoc.errors.ConstraintViolation` and leaves the table as it
    was.
  - :meth:`EntryStore.ensure_schema` is idempotent.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
import secrets
from typing import Any, List, Optional, Sequence

from ..errors import QueryError
from ..utils.sqlcipher import SqlCipherConnection, translating_errors


LOGGER = logging.getLogger("cipherpoc.entries")

HASH_LENGTH = 16
DHT_LOC_MAX = 2**32 - 1

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS entries (
    hash            BLOB PRIMARY KEY,
    dht_loc         INT NOT NULL,
    created_at      TEXT NOT NULL
);
"""

# Serves range queries on location and time together.
_CREATE_INDEX = """
CREATE INDEX IF NOT EXISTS entries_query_idx ON entries (
    dht_loc, created_at
);
"""

_INSERT = "INSERT INTO entries (hash, dht_loc, created_at) VALUES (?, ?, ?)"
_SELECT_ALL = "SELECT hash, dht_loc, created_at FROM entries"
_SELECT_RANGE = (
    "SELECT hash, dht_loc, created_at FROM entries"
    " WHERE dht_loc >= ? AND dht_loc <= ?"
    " AND created_at >= ? AND created_at <= ?"
)


def _rows_to_entries(rows: Sequence[Sequence[Any]]) -> List["Entry"]:
    try:
        return [Entry.from_row(row) for row in rows]
    except (ValueError, TypeError) as exc:
        raise QueryError(f"stored row does not match the entries schema: {exc}") from exc


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        raise ValueError("timestamps must be timezone-aware")
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


@dataclass(frozen=True)
class Entry:
    """A single row of the ``entries`` table."""

    hash: bytes
    dht_loc: int
    created_at: datetime

    def __post_init__(self) -> None:
        if not self.hash:
            raise ValueError("entry hash must not be empty")
        if not 0 <= self.dht_loc <= DHT_LOC_MAX:
            raise ValueError(f"dht_loc must fit in 32 unsigned bits, got {self.dht_loc}")
        if self.created_at.tzinfo is None:
            raise ValueError("created_at must be timezone-aware")

    @classmethod
    def random(cls, now: Optional[datetime] = None) -> "Entry":
        """Generate an entry with a random hash and location, stamped ``now``.

        The hash is :data:`HASH_LENGTH` random bytes, wide enough that repeated
        runs against one file append rather than collide on the primary key.
        """

        return cls(
            hash=secrets.token_bytes(HASH_LENGTH),
            dht_loc=secrets.randbits(32),
            created_at=now if now is not None else datetime.now(timezone.utc),
        )

    @classmethod
    def from_row(cls, row: Sequence[Any]) -> "Entry":
        hash_value, dht_loc, created_at = row
        return cls(
            hash=bytes(hash_value),
            dht_loc=int(dht_loc),
            created_at=datetime.fromisoformat(created_at),
        )

    def as_params(self) -> tuple:
        return (self.hash, self.dht_loc, _format_timestamp(self.created_at))

    def describe(self) -> str:
        """Render the entry as one human-readable line."""

        return (
            f"hash={self.hash.hex()} dht_loc={self.dht_loc} "
            f"created_at={_format_timestamp(self.created_at)}"
        )


class EntryStore:
    """Table-level operations for ``entries`` on an unlocked connection.

    The store does not own the connection; closing it is the caller's job
    (see :func:`cipherpoc.utils.sqlcipher.encrypted_database`).
    """

    def __init__(self, connection: SqlCipherConnection) -> None:
        self._connection = connection

    def ensure_schema(self) -> None:
        """Create the ``entries`` table and its query index when missing."""

        with translating_errors(), self._connection:
            self._connection.execute(_CREATE_TABLE)
            self._connection.execute(_CREATE_INDEX)
        LOGGER.debug("schema_ensured table=entries")

    def insert(self, entry: Entry) -> None:
        """Insert ``entry`` in its own transaction.

        Raises:
          ConstraintViolation: If an entry with the same hash already exists.
        """

        with translating_errors(), self._connection:
            self._connection.execute(_INSERT, entry.as_params())
        LOGGER.info("entry_inserted hash=%s", entry.hash.hex())

    def fetch_all(self) -> List[Entry]:
        """Return every entry, in whatever order the engine yields them."""

        with translating_errors():
            rows = self._connection.execute(_SELECT_ALL).fetchall()
        return _rows_to_entries(rows)

    def fetch_range(
        self,
        dht_loc_start: int,
        dht_loc_end: int,
        created_at_start: datetime,
        created_at_end: datetime,
    ) -> List[Entry]:
        """Return entries whose location and timestamp fall in the inclusive bounds.

        Location ranges do not wrap: a start above the end matches nothing.
        """

        params = (
            dht_loc_start,
            dht_loc_end,
            _format_timestamp(created_at_start),
            _format_timestamp(created_at_end),
        )
        with translating_errors():
            rows = self._connection.execute(_SELECT_RANGE, params).fetchall()
        return _rows_to_entries(rows)

    def count(self) -> int:
        with translating_errors():
            (total,) = self._connection.execute("SELECT count(*) FROM entries").fetchone()
        return int(total)
