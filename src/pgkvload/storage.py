"""
Storage clients.

A store maps an integer key to a row of numbered columns. Both calls are
atomic per key. Failures surface as StoreError so workers can count them and
move on.
"""

from __future__ import annotations

import threading
from typing import Mapping, Protocol

import psycopg
from psycopg import sql

from .errors import StoreError


class Store(Protocol):
    def write(self, key: int, columns: Mapping[int, bytes]) -> None: ...

    def read(self, key: int) -> dict[int, bytes] | None: ...

    def close(self) -> None: ...


# -----------------------------
# In-process store
# -----------------------------
class MemoryStore:
    """Dict-backed store. Used for dry runs and for fault injection in tests."""

    def __init__(self) -> None:
        self._rows: dict[int, dict[int, bytes]] = {}
        self._lock = threading.Lock()

    def write(self, key: int, columns: Mapping[int, bytes]) -> None:
        with self._lock:
            self._rows.setdefault(key, {}).update(columns)

    def read(self, key: int) -> dict[int, bytes] | None:
        with self._lock:
            row = self._rows.get(key)
            return dict(row) if row is not None else None

    def close(self) -> None:
        pass

    def corrupt(self, key: int, col: int = 0, value: bytes = b"corrupted") -> None:
        with self._lock:
            self._rows.setdefault(key, {})[col] = value

    def delete(self, key: int) -> None:
        with self._lock:
            self._rows.pop(key, None)

    def keys(self) -> list[int]:
        with self._lock:
            return sorted(self._rows)

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._rows


# -----------------------------
# PostgreSQL
# -----------------------------
class PostgresStore:
    """
    Rows live in a table keyed by (key, col), so a key's row is the ordered
    set of its column rows. One connection per worker thread, opened lazily
    and reopened after a broken connection.
    """

    def __init__(
        self,
        dsn: str,
        table: str = "load_test",
        schema: str = "kv",
        synchronous_commit: bool = False,
    ):
        self._dsn = dsn
        self._synchronous_commit = synchronous_commit
        ident = sql.Identifier(schema, table)
        self._write_sql = sql.SQL(
            "INSERT INTO {} (key, col, value) VALUES (%s, %s, %s) "
            "ON CONFLICT (key, col) DO UPDATE SET value = EXCLUDED.value"
        ).format(ident)
        self._read_sql = sql.SQL(
            "SELECT col, value FROM {} WHERE key = %s ORDER BY col"
        ).format(ident)

        self._local = threading.local()
        self._conns: list[psycopg.Connection] = []
        self._conns_lock = threading.Lock()

    def _connection(self) -> psycopg.Connection:
        conn = getattr(self._local, "conn", None)
        if conn is not None and not conn.closed:
            return conn

        conn = psycopg.connect(self._dsn, autocommit=True)
        conn.execute("SET client_min_messages=warning")
        if not self._synchronous_commit:
            conn.execute("SET synchronous_commit=off")
        self._local.conn = conn
        with self._conns_lock:
            self._conns.append(conn)
        return conn

    def write(self, key: int, columns: Mapping[int, bytes]) -> None:
        params = [(key, col, value) for col, value in columns.items()]
        try:
            conn = self._connection()
            with conn.transaction():
                with conn.cursor() as cur:
                    cur.executemany(self._write_sql, params)
        except psycopg.Error as e:
            raise StoreError(f"write failed: {e}", key=key) from e

    def read(self, key: int) -> dict[int, bytes] | None:
        try:
            rows = self._connection().execute(self._read_sql, (key,)).fetchall()
        except psycopg.Error as e:
            raise StoreError(f"read failed: {e}", key=key) from e
        if not rows:
            return None
        return {int(col): bytes(value) for col, value in rows}

    def close(self) -> None:
        with self._conns_lock:
            conns, self._conns = self._conns, []
        for conn in conns:
            conn.close()
