"""
Per-thread SQLite connections for the hash cache.

Scan workers look files up concurrently and an sqlite3 connection must not
be used from two threads at once, so every thread gets its own long-lived
connection. Writes are serialized by one lock.
"""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator


class ConnectionManager:
    """
    Hands out one WAL-mode connection per thread.

    Reads run in autocommit mode. Exclusive use wraps the block in
    BEGIN IMMEDIATE ... COMMIT and rolls back on any exception.
    """

    def __init__(self, db_path: str):
        """
        Args:
            db_path: Path to SQLite database file (parent is created)
        """
        self.db_path = db_path
        self._local = threading.local()
        self._write_lock = threading.Lock()
        self._opened: list[sqlite3.Connection] = []
        self._opened_lock = threading.Lock()
        Path(self.db_path).resolve().parent.mkdir(parents=True, exist_ok=True)

    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            self.db_path,
            timeout=30.0,
            isolation_level=None,
            check_same_thread=False,  # only so close_all() can run elsewhere
        )
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
        except sqlite3.Error:
            conn.close()
            raise
        return conn

    def _thread_connection(self) -> sqlite3.Connection:
        conn = getattr(self._local, 'conn', None)
        if conn is None:
            conn = self._open()
            self._local.conn = conn
            with self._opened_lock:
                self._opened.append(conn)
        return conn

    @contextmanager
    def connection(self, exclusive: bool = False) -> Generator[sqlite3.Connection, None, None]:
        """
        Borrow this thread's connection.

        Args:
            exclusive: Hold the write lock and run the block as one transaction

        Example:
            with conn_mgr.connection(exclusive=True) as conn:
                conn.execute("INSERT INTO ...")
        """
        conn = self._thread_connection()
        if not exclusive:
            yield conn
            return

        with self._write_lock:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def close_all(self) -> None:
        """Close every connection opened so far, from any thread."""
        with self._opened_lock:
            for conn in self._opened:
                conn.close()
            self._opened.clear()
        self._local = threading.local()


__all__ = ['ConnectionManager']
