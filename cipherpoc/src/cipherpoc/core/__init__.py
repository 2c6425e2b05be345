"""Core demo logic: entry storage, the demo runner and database inspection."""

from .entries import Entry, EntryStore
from .inspector import DatabaseStatistics, SchemaObject, describe_schema, table_statistics
from .runner import run_demo

__all__ = [
    "DatabaseStatistics",
    "Entry",
    "EntryStore",
    "SchemaObject",
    "describe_schema",
    "run_demo",
    "table_statistics",
]
