"""
Hash cache schema.

One row per (file state, fingerprint size). The file state is the
``path:mtime:size`` cache key, so an edited file simply stops matching and
its old rows are left for cleanup_missing() or overwritten on the next put.
Rows for different hash sizes coexist, so switching --hash-size back and
forth does not throw the cache away.
"""

from __future__ import annotations

import sqlite3

SCHEMA_VERSION = 1

_TABLES = (
    """
    CREATE TABLE IF NOT EXISTS scanned_files (
        cache_key TEXT NOT NULL,
        hash_size INTEGER NOT NULL,
        path TEXT NOT NULL,
        size INTEGER NOT NULL,
        mtime REAL NOT NULL,
        format TEXT,
        width INTEGER,
        height INTEGER,
        content_hash TEXT NOT NULL,
        perceptual_hash TEXT,
        created_at REAL DEFAULT (strftime('%s', 'now')),
        PRIMARY KEY (cache_key, hash_size)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_scanned_files_path ON scanned_files(path)",
)


def _stored_version(conn: sqlite3.Connection) -> int:
    conn.execute("CREATE TABLE IF NOT EXISTS meta (key TEXT PRIMARY KEY, value TEXT)")
    row = conn.execute("SELECT value FROM meta WHERE key = 'schema_version'").fetchone()
    return int(row['value']) if row else 0


def initialize_schema(conn: sqlite3.Connection) -> None:
    """
    Create (or rebuild) the cache tables.

    A cache is disposable: when the stored version differs from
    SCHEMA_VERSION the table is dropped and recreated empty rather than
    migrated.

    Args:
        conn: Connection inside an exclusive transaction
    """
    if _stored_version(conn) != SCHEMA_VERSION:
        conn.execute("DROP TABLE IF EXISTS scanned_files")

    for statement in _TABLES:
        conn.execute(statement)

    conn.execute(
        "INSERT OR REPLACE INTO meta (key, value) VALUES ('schema_version', ?)",
        (str(SCHEMA_VERSION),),
    )


__all__ = ['SCHEMA_VERSION', 'initialize_schema']
