"""Persistent, byte-ordered key-value storage kept in a directory."""

from __future__ import annotations

import sqlite3
import threading
from bisect import bisect_left
from pathlib import Path

_DB_FILENAME = "data.sqlite3"

BytesLike = bytes | bytearray | memoryview


class DatabaseError(RuntimeError):
    """Raised when the store cannot be opened or is used while closed."""


class Batch:
    """An ordered list of puts and deletes applied atomically."""

    def __init__(self) -> None:
        self._ops: list[tuple[bytes, bytes | None]] = []

    def put(self, key: BytesLike, value: BytesLike) -> None:
        self._ops.append((bytes(key), bytes(value)))

    def delete(self, key: BytesLike) -> None:
        self._ops.append((bytes(key), None))

    def clear(self) -> None:
        self._ops.clear()

    def __len__(self) -> int:
        return len(self._ops)

    def __iter__(self):
        return iter(self._ops)


class DatabaseIterator:
    """Cursor over a snapshot of the store in ascending key order.

    A new iterator is not positioned; call a seek method first.
    """

    def __init__(self, items: list[tuple[bytes, bytes]]) -> None:
        self._items = items
        self._keys = [key for key, _ in items]
        self._pos = -1

    def valid(self) -> bool:
        return 0 <= self._pos < len(self._items)

    def seek_to_first(self) -> None:
        self._pos = 0

    def seek_to_last(self) -> None:
        self._pos = len(self._items) - 1

    def seek(self, key: BytesLike) -> None:
        """Position at the first key not less than ``key``."""
        self._pos = bisect_left(self._keys, bytes(key))

    def next(self) -> None:
        if self.valid():
            self._pos += 1

    def prev(self) -> None:
        if self.valid():
            self._pos -= 1

    def key(self) -> bytes:
        return self._items[self._pos][0] if self.valid() else b""

    def value(self) -> bytes:
        return self._items[self._pos][1] if self.valid() else b""


class Database:
    """Key-value store with atomic batches and ordered iteration."""

    def __init__(self) -> None:
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    def open(self, path: str | Path, create_if_missing: bool = True) -> None:
        """Open the store in directory ``path``; raise DatabaseError on failure."""
        self.close()
        directory = Path(path)
        db_file = directory / _DB_FILENAME
        if not db_file.exists():
            if not create_if_missing:
                raise DatabaseError(f"Failed to open database: {directory} does not exist")
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise DatabaseError(f"Failed to open database: {exc}") from exc
        try:
            conn = sqlite3.connect(str(db_file), check_same_thread=False, isolation_level=None)
            conn.execute("CREATE TABLE IF NOT EXISTS kv (key BLOB PRIMARY KEY, value BLOB NOT NULL)")
        except sqlite3.Error as exc:
            raise DatabaseError(f"Failed to open database: {exc}") from exc
        with self._lock:
            self._conn = conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def is_open(self) -> bool:
        return self._conn is not None

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise DatabaseError("Database not open")
        return self._conn

    def write(self, key: BytesLike, value: BytesLike) -> None:
        with self._lock:
            self._connection().execute(
                "INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)", (bytes(key), bytes(value))
            )

    def read(self, key: BytesLike) -> bytes | None:
        """Return the value stored under ``key``, or None if there is none."""
        with self._lock:
            row = self._connection().execute(
                "SELECT value FROM kv WHERE key = ?", (bytes(key),)
            ).fetchone()
        return None if row is None else bytes(row[0])

    def delete(self, key: BytesLike) -> None:
        with self._lock:
            self._connection().execute("DELETE FROM kv WHERE key = ?", (bytes(key),))

    def exists(self, key: BytesLike) -> bool:
        return self.read(key) is not None

    def write_batch(self, batch: Batch) -> None:
        """Apply every operation in ``batch`` in order, all or nothing."""
        with self._lock:
            conn = self._connection()
            try:
                conn.execute("BEGIN IMMEDIATE")
                for key, value in batch:
                    if value is None:
                        conn.execute("DELETE FROM kv WHERE key = ?", (key,))
                    else:
                        conn.execute(
                            "INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)", (key, value)
                        )
                conn.execute("COMMIT")
            except sqlite3.Error as exc:
                conn.execute("ROLLBACK")
                raise DatabaseError(f"Batch write failed: {exc}") from exc

    def iterator(self) -> DatabaseIterator:
        """Return a cursor over a snapshot of all entries."""
        with self._lock:
            rows = self._connection().execute("SELECT key, value FROM kv ORDER BY key").fetchall()
        return DatabaseIterator([(bytes(k), bytes(v)) for k, v in rows])

    def stats(self) -> str:
        if self._conn is None:
            return "Database not open"
        with self._lock:
            (count,) = self._conn.execute("SELECT COUNT(*) FROM kv").fetchone()
            (pages,) = self._conn.execute("PRAGMA page_count").fetchone()
            (page_size,) = self._conn.execute("PRAGMA page_size").fetchone()
        return f"entries: {count}\nsize: {pages * page_size} bytes"

    def compact(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.execute("VACUUM")

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()