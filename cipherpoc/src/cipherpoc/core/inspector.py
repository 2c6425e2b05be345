"""Schema and statistics reporting for an unlocked database.

What:
  Read ``sqlite_master`` and a few PRAGMAs to describe what an encrypted
  database contains: its tables and indexes, row counts, page geometry and the
  SQLCipher version that wrote it.

Why:
  Mirrors what ``scripts/inspect-db.sh`` does with the ``sqlcipher`` shell,
  without requiring that binary on the host.

Interfaces:
  :class:`SchemaObject`, :class:`DatabaseStatistics`,
  :func:`describe_schema`, :func:`table_statistics`, :func:`render_report`.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..utils.sqlcipher import SqlCipherConnection, translating_errors


@dataclass(frozen=True)
class SchemaObject:
    type: str
    name: str
    sql: str


@dataclass
class DatabaseStatistics:
    page_size: int
    page_count: int
    cipher_version: Optional[str]
    row_counts: Dict[str, int] = field(default_factory=dict)


def _quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def describe_schema(connection: SqlCipherConnection) -> List[SchemaObject]:
    """Return user tables and indexes ordered by name.

    Internal ``sqlite_*`` objects (such as the automatic primary key index)
    have no SQL text and are skipped.
    """

    with translating_errors():
        rows = connection.execute(
            "SELECT type, name, sql FROM sqlite_master"
            " WHERE type IN ('table', 'index') AND sql IS NOT NULL"
            " AND name NOT LIKE 'sqlite_%'"
            " ORDER BY name"
        ).fetchall()
    return [SchemaObject(type=row[0], name=row[1], sql=row[2]) for row in rows]


def table_statistics(connection: SqlCipherConnection) -> DatabaseStatistics:
    """Collect page geometry, cipher version and per-table row counts."""

    with translating_errors():
        (page_size,) = connection.execute("PRAGMA page_size").fetchone()
        (page_count,) = connection.execute("PRAGMA page_count").fetchone()
        # Plain SQLite ignores unknown pragmas and returns no row.
        version_row = connection.execute("PRAGMA cipher_version").fetchone()
        stats = DatabaseStatistics(
            page_size=int(page_size),
            page_count=int(page_count),
            cipher_version=version_row[0] if version_row else None,
        )
        for obj in describe_schema(connection):
            if obj.type != "table":
                continue
            (total,) = connection.execute(
                f"SELECT count(*) FROM {_quote_identifier(obj.name)}"
            ).fetchone()
            stats.row_counts[obj.name] = int(total)
    return stats


def render_report(schema: List[SchemaObject], stats: DatabaseStatistics) -> List[str]:
    """Format schema and statistics as printable lines."""

    lines = [f"{obj.sql.strip()};" for obj in schema]
    lines.append(f"cipher_version: {stats.cipher_version or 'unavailable'}")
    lines.append(f"page_size: {stats.page_size}")
    lines.append(f"page_count: {stats.page_count}")
    for name, total in sorted(stats.row_counts.items()):
        lines.append(f"rows[{name}]: {total}")
    return lines
