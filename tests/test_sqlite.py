"""
SQLite backend: upsert/lookup/delete on a temp file, clone sharing, lenient vs strict
reads, and fatal setup errors.
"""

import asyncio
import sqlite3
import tempfile
import threading
import time
from pathlib import Path

import pytest

from kvstore.backends.sqlite import TABLE, SQLiteBackend
from kvstore.errors import BackendSetupError, OperationError, ReadError


@pytest.fixture
def db_path():
    with tempfile.TemporaryDirectory() as tmp:
        yield str(Path(tmp) / "kv.db")


def test_creates_table(db_path):
    backend = SQLiteBackend(db_path)
    backend.close()
    conn = sqlite3.connect(db_path)
    try:
        cols = [r[1] for r in conn.execute(f"PRAGMA table_info({TABLE})")]
    finally:
        conn.close()
    assert cols == ["key", "value"]


def test_set_get_overwrite_delete(db_path):
    async def scenario():
        b = SQLiteBackend(db_path)
        try:
            await b.set("k", "a")
            first = await b.get("k")
            await b.set("k", "b")
            second = await b.get("k")
            await b.delete("k")
            await b.delete("k")
            return first, second, await b.get("k")
        finally:
            b.close()

    assert asyncio.run(scenario()) == ("a", "b", None)


def test_values_persist_across_instances(db_path):
    async def write():
        b = SQLiteBackend(db_path)
        await b.set("color", "blue")
        b.close()

    async def read():
        b = SQLiteBackend(db_path)
        try:
            return await b.get("color")
        finally:
            b.close()

    asyncio.run(write())
    assert asyncio.run(read()) == "blue"


def test_upsert_keeps_one_row(db_path):
    async def scenario():
        b = SQLiteBackend(db_path)
        for v in ("1", "2", "3"):
            await b.set("k", v)
        b.close()

    asyncio.run(scenario())
    conn = sqlite3.connect(db_path)
    try:
        rows = conn.execute(f"SELECT key, value FROM {TABLE}").fetchall()
    finally:
        conn.close()
    assert rows == [("k", "3")]


def test_clone_shares_connection(db_path):
    async def scenario():
        a = SQLiteBackend(db_path)
        b = a.clone()
        await b.set("k", "v")
        result = await a.get("k")
        a.close()
        return result, a._conn is b._conn

    assert asyncio.run(scenario()) == ("v", True)


def test_memory_database():
    async def scenario():
        b = SQLiteBackend(":memory:")
        await b.set("k", "v")
        return await b.get("k")

    assert asyncio.run(scenario()) == "v"


def test_failed_query_is_absent_unless_strict(db_path):
    async def scenario():
        b = SQLiteBackend(db_path)
        await b.set("k", "v")
        b._conn.execute(f"DROP TABLE {TABLE}")
        lenient = await b.get("k")
        with pytest.raises(ReadError):
            await b.get("k", strict=True)
        b.close()
        return lenient

    assert asyncio.run(scenario()) is None


def test_write_failure_raises_operation_error(db_path):
    async def scenario():
        b = SQLiteBackend(db_path)
        b.close()
        with pytest.raises(OperationError):
            await b.set("k", "v")
        with pytest.raises(OperationError):
            await b.delete("k")

    asyncio.run(scenario())


def test_unopenable_path_is_setup_error(db_path):
    missing_dir = str(Path(db_path).parent / "no" / "such" / "dir" / "kv.db")
    with pytest.raises(BackendSetupError):
        SQLiteBackend(missing_dir)


def test_table_creation_failure_is_setup_error(db_path):
    # connect() succeeds lazily; CREATE TABLE is what hits the bad header.
    Path(db_path).write_bytes(b"this is not a sqlite database" * 10)
    with pytest.raises(BackendSetupError):
        SQLiteBackend(db_path)


def test_unencodable_key_reads_as_absent_unless_strict():
    async def scenario():
        b = SQLiteBackend(":memory:")
        lenient = await b.get("bad\ud800key")
        with pytest.raises(ReadError):
            await b.get("bad\ud800key", strict=True)
        return lenient

    assert asyncio.run(scenario()) is None


def test_unencodable_value_is_operation_error():
    async def scenario():
        b = SQLiteBackend(":memory:")
        with pytest.raises(OperationError):
            await b.set("k", "bad\ud800")
        with pytest.raises(OperationError):
            await b.delete("bad\ud800key")
        return await b.get("k")

    assert asyncio.run(scenario()) is None


def test_statements_never_overlap(db_path):
    active = 0
    peak = 0
    calls = 0
    guard = threading.Lock()

    def counted(fn):
        def wrapper(*args):
            nonlocal active, peak, calls
            with guard:
                active += 1
                calls += 1
                peak = max(peak, active)
            try:
                time.sleep(0.05)
                return fn(*args)
            finally:
                with guard:
                    active -= 1
        return wrapper

    async def scenario():
        b = SQLiteBackend(db_path)
        b._select = counted(b._select)
        b._write = counted(b._write)
        other = b.clone()
        try:
            return await asyncio.gather(
                b.set("a", "1"), other.get("a"), other.set("b", "2"), b.get("b"),
            )
        finally:
            b.close()

    asyncio.run(scenario())
    assert calls == 4
    assert peak == 1
