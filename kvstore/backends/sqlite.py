#!/usr/bin/env python3
"""
kvstore SQLite Backend — Single-File Durable Key-Value Store
=============================================================

This backend stores everything in a single .db file with zero external
dependencies beyond Python's standard library. It's the easiest durable
backend to set up — no server process, no cluster, no configuration.

SCHEMA:

  CREATE TABLE kv_store (
      key TEXT PRIMARY KEY,     -- caller's key, stored verbatim
      value TEXT                -- caller's value, stored verbatim
  );

  The table is created on first use if it doesn't already exist.

STATEMENTS:
  Exactly three, all parametrized:

    SELECT value FROM kv_store WHERE key = ?
    INSERT INTO kv_store (key, value) VALUES (?, ?)
        ON CONFLICT(key) DO UPDATE SET value = excluded.value
    DELETE FROM kv_store WHERE key = ?

  The upsert is one atomic statement (SQLite 3.24+), so a write never
  races a separate read-then-insert.

CONCURRENCY:
  One connection per backend, shared by every clone, behind one
  asyncio.Lock. Every statement — reads included — runs with the lock held,
  in a worker thread so the event loop isn't blocked on disk I/O. That
  means statements never overlap on this connection; throughput is bounded
  by one statement at a time, and each statement's effect is atomic
  relative to the others.

READ FAILURES:
  By default a failing SELECT returns None, same as a missing row, so
  callers only ever see "a value" or "no value". Pass strict=True to get()
  to receive a ReadError instead when the query itself failed. A key that
  can't be encoded as UTF-8 counts as a failed query.
"""

import asyncio
import copy
import logging
import os
import sqlite3

from ..errors import BackendSetupError, OperationError, ReadError
from .base import Backend

logger = logging.getLogger(__name__)

TABLE = "kv_store"

_CREATE = f"CREATE TABLE IF NOT EXISTS {TABLE} (key TEXT PRIMARY KEY, value TEXT)"
_SELECT = f"SELECT value FROM {TABLE} WHERE key = ?"
_UPSERT = (
    f"INSERT INTO {TABLE} (key, value) VALUES (?, ?) "
    f"ON CONFLICT(key) DO UPDATE SET value = excluded.value"
)
_DELETE = f"DELETE FROM {TABLE} WHERE key = ?"

# Binding a str that isn't encodable as UTF-8 (lone surrogates) fails
# before SQLite sees it, with UnicodeEncodeError rather than sqlite3.Error.
STATEMENT_ERRORS = (sqlite3.Error, UnicodeEncodeError)


class SQLiteBackend(Backend):
    """
    SQLite key-value backend.

    Usage:
        backend = SQLiteBackend(db_path="~/.kvstore/kv.db")
        await backend.set("color", "blue")
        await backend.get("color")      # → "blue"
    """

    def __init__(self, db_path="kv.db"):
        """
        Open (or create) the database file and ensure the table exists.

        Args:
            db_path: Path to the SQLite database file, "~" is expanded.
                     ":memory:" gives a private in-memory database.

        Raises:
            BackendSetupError: the file can't be opened or the table
                               can't be created. Nothing is retried.
        """
        self.db_path = db_path if db_path == ":memory:" else os.path.expanduser(db_path)
        try:
            # check_same_thread=False: statements run in asyncio.to_thread
            # workers; the lock below keeps them one at a time.
            conn = sqlite3.connect(self.db_path, check_same_thread=False)
        except sqlite3.Error as exc:
            raise BackendSetupError(f"cannot open database {self.db_path}: {exc}") from exc
        try:
            with conn:
                conn.execute(_CREATE)
        except sqlite3.Error as exc:
            conn.close()
            raise BackendSetupError(f"cannot create table {TABLE} in {self.db_path}: {exc}") from exc

        self._conn = conn
        self._lock = asyncio.Lock()
        logger.debug("sqlite backend ready at %s", self.db_path)

    # ── Statement helpers (run in a worker thread) ────────────

    def _select(self, key):
        row = self._conn.execute(_SELECT, (key,)).fetchone()
        return row[0] if row else None

    def _write(self, sql, params):
        with self._conn:
            self._conn.execute(sql, params)

    # ── Interface ─────────────────────────────────────────────

    async def get(self, key, strict=False):
        """
        Point lookup.

        Returns the stored value, or None when no row matches. A failed
        query also returns None unless strict=True, in which case it raises
        ReadError so the caller can tell "absent" from "broken".
        """
        async with self._lock:
            try:
                return await asyncio.to_thread(self._select, key)
            except STATEMENT_ERRORS as exc:
                if strict:
                    raise ReadError(f"lookup of {key!r} failed: {exc}") from exc
                logger.warning("sqlite lookup of %r failed, treating as absent: %s", key, exc)
                return None

    async def set(self, key, value):
        async with self._lock:
            try:
                await asyncio.to_thread(self._write, _UPSERT, (key, value))
            except STATEMENT_ERRORS as exc:
                raise OperationError(f"upsert of {key!r} failed: {exc}") from exc
        logger.debug("sqlite set %s", key)

    async def delete(self, key):
        async with self._lock:
            try:
                await asyncio.to_thread(self._write, _DELETE, (key,))
            except STATEMENT_ERRORS as exc:
                raise OperationError(f"delete of {key!r} failed: {exc}") from exc
        logger.debug("sqlite delete %s", key)

    def clone(self):
        # Same connection, same lock.
        return copy.copy(self)

    def close(self):
        """
        Close the shared connection.

        Optional — the connection is released with the last handle anyway.
        Closes it for every clone, so only call this when you're done with
        all of them.
        """
        self._conn.close()

    def __repr__(self):
        return f"<SQLiteBackend {self.db_path}>"
