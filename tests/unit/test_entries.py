"""
Module: tests/unit/test_entries.py

What:
    Exercise the ``entries`` table operations and the ``Entry`` record type.

Why:
    Schema creation must be idempotent across runs, duplicate hashes must be
    reported as constraint violations without partial writes, and timestamps
    must round-trip with their ordering intact for range queries.

How:
    Run :class:`EntryStore` against an in-memory :mod:`sqlite3` connection
    with the ``sqlite_driver`` fixture active so driver errors are translated.
"""

import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from cipherpoc.core.entries import DHT_LOC_MAX, HASH_LENGTH, Entry, EntryStore
from cipherpoc.errors import ConstraintViolation, QueryError

T0 = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def connection(sqlite_driver):
    conn = sqlite3.connect(":memory:")
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture
def store(connection):
    entry_store = EntryStore(connection)
    entry_store.ensure_schema()
    return entry_store


def test_ensure_schema_is_idempotent(connection):
    store = EntryStore(connection)
    store.ensure_schema()
    store.ensure_schema()
    names = connection.execute(
        "SELECT type, name FROM sqlite_master WHERE name IN ('entries', 'entries_query_idx')"
        " ORDER BY name"
    ).fetchall()
    assert names == [("table", "entries"), ("index", "entries_query_idx")]


def test_insert_then_fetch_all_round_trips(store):
    entry = Entry(hash=b"\x1a\x6f\x07\x1f", dht_loc=42, created_at=T0)
    store.insert(entry)
    assert store.fetch_all() == [entry]
    assert store.count() == 1


def test_duplicate_hash_raises_constraint_violation(store):
    store.insert(Entry(hash=b"dupe", dht_loc=1, created_at=T0))
    with pytest.raises(ConstraintViolation) as excinfo:
        store.insert(Entry(hash=b"dupe", dht_loc=2, created_at=T0))
    assert isinstance(excinfo.value.__cause__, sqlite3.IntegrityError)
    assert [e.dht_loc for e in store.fetch_all()] == [1]


def test_fetch_before_schema_raises_query_error(connection):
    with pytest.raises(QueryError):
        EntryStore(connection).fetch_all()


def test_fetch_range_bounds_are_inclusive(store):
    inside_low = Entry(hash=b"\x00\x00\x00\x01", dht_loc=10, created_at=T0)
    inside_high = Entry(hash=b"\x00\x00\x00\x02", dht_loc=20, created_at=T0 + timedelta(hours=1))
    outside_loc = Entry(hash=b"\x00\x00\x00\x03", dht_loc=21, created_at=T0)
    outside_time = Entry(hash=b"\x00\x00\x00\x04", dht_loc=15, created_at=T0 + timedelta(days=2))
    for entry in (inside_low, inside_high, outside_loc, outside_time):
        store.insert(entry)

    found = store.fetch_range(10, 20, T0, T0 + timedelta(hours=1))

    assert sorted(found, key=lambda e: e.dht_loc) == [inside_low, inside_high]


def test_fetch_range_compares_times_across_offsets(store):
    entry = Entry(hash=b"tz01", dht_loc=5, created_at=T0)
    store.insert(entry)
    plus_two = timezone(timedelta(hours=2))
    # 13:59:59+02:00 is 11:59:59 UTC, one second before the entry.
    assert store.fetch_range(0, DHT_LOC_MAX, datetime(2024, 3, 1, 13, 59, 59, tzinfo=plus_two), T0) == [entry]
    assert store.fetch_range(0, DHT_LOC_MAX, T0 + timedelta(microseconds=1), T0 + timedelta(days=1)) == []


def test_fetch_range_with_inverted_bounds_is_empty(store):
    store.insert(Entry(hash=b"inv1", dht_loc=100, created_at=T0))
    assert store.fetch_range(200, 50, T0, T0) == []


def test_random_entry_shape():
    now = datetime.now(timezone.utc)
    entry = Entry.random(now)
    assert len(entry.hash) == HASH_LENGTH
    assert 0 <= entry.dht_loc <= DHT_LOC_MAX
    assert entry.created_at == now
    assert Entry.random().created_at.tzinfo is not None


def test_describe_renders_single_line():
    entry = Entry(hash=b"\xde\xad\xbe\xef", dht_loc=7, created_at=T0)
    assert entry.describe() == "hash=deadbeef dht_loc=7 created_at=2024-03-01T12:00:00.000000+00:00"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"hash": b"", "dht_loc": 1, "created_at": T0},
        {"hash": b"abcd", "dht_loc": -1, "created_at": T0},
        {"hash": b"abcd", "dht_loc": DHT_LOC_MAX + 1, "created_at": T0},
        {"hash": b"abcd", "dht_loc": 1, "created_at": datetime(2024, 1, 1)},
    ],
)
def test_entry_rejects_invalid_fields(kwargs):
    with pytest.raises(ValueError):
        Entry(**kwargs)


def test_random_entries_do_not_collide_across_many_runs(store):
    for _ in range(2000):
        store.insert(Entry.random())
    assert store.count() == 2000


@pytest.mark.parametrize(
    "row",
    [
        (b"\x01\x02\x03\x04", 5, "yesterday"),
        (b"\x01\x02\x03\x05", None, "2024-03-01T12:00:00.000000+00:00"),
        (b"\x01\x02\x03\x06", 5, "2024-03-01T12:00:00"),
        (None, 5, "2024-03-01T12:00:00.000000+00:00"),
    ],
)
def test_rows_not_matching_schema_raise_query_error(connection, store, row):
    # A pre-existing table may hold rows written without these constraints.
    connection.execute("DROP TABLE entries")
    connection.execute("CREATE TABLE entries (hash BLOB, dht_loc INT, created_at TEXT)")
    connection.execute("INSERT INTO entries VALUES (?, ?, ?)", row)
    with pytest.raises(QueryError, match="does not match the entries schema"):
        store.fetch_all()


def test_fetch_range_rejects_naive_stored_timestamp(connection, store):
    connection.execute(
        "INSERT INTO entries VALUES (?, ?, ?)", (b"naive", 5, "2024-03-01T12:00:00")
    )
    with pytest.raises(QueryError):
        store.fetch_range(0, DHT_LOC_MAX, T0 - timedelta(days=1), T0 + timedelta(days=1))
