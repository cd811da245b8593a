"""
HashCache: SQLite-backed cache of scanned file hashes.

Rescanning a large library should only hash files that are new or changed.
Entries are looked up by path together with the file's current mtime and
size, so an edited file always misses and is hashed again.

The cache is best-effort: any database failure is logged and treated as a
miss, never as a scan error.
"""

from __future__ import annotations

import logging
import os
import sqlite3
from pathlib import Path
from typing import Iterable, Optional

from ..config import CACHE_DB_FILE, DEFAULT_HASH_SIZE
from ..models import ScannedFile
from .connection import ConnectionManager
from .schema import SCHEMA_VERSION, initialize_schema
from .utils import CHUNK_SIZE, get_file_stats, make_cache_key, row_to_scannedfile

logger = logging.getLogger(__name__)

_INSERT = """
    INSERT OR REPLACE INTO scanned_files (
        cache_key, path, size, mtime, format, width, height,
        content_hash, perceptual_hash, hash_size
    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""


def _insert_params(info: ScannedFile, hash_size: int) -> Optional[tuple]:
    """Row values for info, or None if the file changed since it was hashed."""
    if not info.is_hashed or not os.path.exists(info.path):
        return None
    mtime, size = get_file_stats(info.path)
    if size != info.size or mtime != info.mtime:
        return None
    return (
        make_cache_key(info.path, mtime, size), info.path, size, mtime,
        info.format, info.width, info.height,
        info.content_hash, info.perceptual_hash, hash_size,
    )


class HashCache:
    """
    Persistent cache of ScannedFile hashes.

    Thread-safe: reads run concurrently, writes are serialized.

    Usage:
        cache = HashCache()
        info = cache.get(path)
        if info is None:
            info = analyze_file(...)
            cache.put(info)
    """

    SCHEMA_VERSION = SCHEMA_VERSION

    def __init__(self, db_path: Optional[str | Path] = None):
        """
        Initialize the hash cache.

        Args:
            db_path: Path to SQLite database file. Uses default if None.

        Raises:
            sqlite3.Error: The file exists but is not a usable database
            OSError: The parent directory cannot be created
        """
        self.db_path = str(db_path or CACHE_DB_FILE)
        self._conn_mgr = ConnectionManager(self.db_path)

        try:
            with self._conn_mgr.connection(exclusive=True) as conn:
                initialize_schema(conn)
        except sqlite3.Error:
            self._conn_mgr.close_all()
            raise

    def __repr__(self) -> str:
        return f"HashCache({self.db_path!r})"

    def get(self, filepath: str, hash_size: int = DEFAULT_HASH_SIZE) -> Optional[ScannedFile]:
        """
        Get cached hashes if the file is unchanged since they were stored.

        Args:
            filepath: Path to the image file
            hash_size: Perceptual hash size the caller expects

        Returns:
            ScannedFile if cached and valid, None otherwise
        """
        try:
            if not os.path.exists(filepath):
                return None
            mtime, size = get_file_stats(filepath)
            cache_key = make_cache_key(filepath, mtime, size)

            with self._conn_mgr.connection(exclusive=False) as conn:
                row = conn.execute(
                    "SELECT * FROM scanned_files WHERE cache_key = ? AND hash_size = ?",
                    (cache_key, hash_size),
                ).fetchone()
            return row_to_scannedfile(row) if row else None

        except (sqlite3.Error, OSError) as e:
            logger.debug(f"Failed to get cached hashes for {filepath}: {e}")
            return None

    def put(self, info: ScannedFile, hash_size: int = DEFAULT_HASH_SIZE) -> bool:
        """
        Cache one hashed file.

        Returns:
            True if the entry was stored
        """
        return self.put_batch([info], hash_size=hash_size) == 1

    def get_batch(
        self, filepaths: Iterable[str], hash_size: int = DEFAULT_HASH_SIZE
    ) -> dict[str, Optional[ScannedFile]]:
        """
        Look up many files at once.

        Returns:
            Dict mapping filepath to ScannedFile (or None if not cached)
        """
        filepaths = list(filepaths)
        results: dict[str, Optional[ScannedFile]] = {fp: None for fp in filepaths}

        cache_keys: dict[str, str] = {}
        for fp in filepaths:
            try:
                mtime, size = get_file_stats(fp)
            except OSError:
                continue
            cache_keys[make_cache_key(fp, mtime, size)] = fp

        if not cache_keys:
            return results

        keys = list(cache_keys)
        try:
            with self._conn_mgr.connection(exclusive=False) as conn:
                for i in range(0, len(keys), CHUNK_SIZE):
                    chunk = keys[i:i + CHUNK_SIZE]
                    placeholders = ','.join('?' * len(chunk))
                    rows = conn.execute(
                        f"SELECT * FROM scanned_files "
                        f"WHERE hash_size = ? AND cache_key IN ({placeholders})",
                        [hash_size, *chunk],
                    ).fetchall()
                    for row in rows:
                        results[cache_keys[row['cache_key']]] = row_to_scannedfile(row)
        except sqlite3.Error as e:
            logger.warning(f"Error during batch cache lookup: {e}")

        return results

    def put_batch(self, files: Iterable[ScannedFile], hash_size: int = DEFAULT_HASH_SIZE) -> int:
        """
        Cache many hashed files in one transaction.

        Files modified since they were hashed are skipped.

        Returns:
            Number of entries stored
        """
        cached = 0
        try:
            with self._conn_mgr.connection(exclusive=True) as conn:
                for info in files:
                    try:
                        params = _insert_params(info, hash_size)
                    except OSError:
                        continue
                    if params is None:
                        continue
                    conn.execute(_INSERT, params)
                    cached += 1
        except sqlite3.Error as e:
            logger.warning(f"Error during batch caching: {e}")
            return 0

        logger.debug(f"Cached hashes for {cached:,} files")
        return cached

    def invalidate(self, filepath: str):
        """Remove every entry for a file."""
        try:
            with self._conn_mgr.connection(exclusive=True) as conn:
                conn.execute("DELETE FROM scanned_files WHERE path = ?", (filepath,))
        except sqlite3.Error as e:
            logger.debug(f"Failed to invalidate cache for {filepath}: {e}")

    def cleanup_missing(self) -> int:
        """
        Remove entries for files that no longer exist.

        Returns:
            Number of paths removed
        """
        try:
            with self._conn_mgr.connection(exclusive=True) as conn:
                rows = conn.execute("SELECT DISTINCT path FROM scanned_files").fetchall()
                missing = [row['path'] for row in rows if not os.path.exists(row['path'])]

                for i in range(0, len(missing), CHUNK_SIZE):
                    chunk = missing[i:i + CHUNK_SIZE]
                    placeholders = ','.join('?' * len(chunk))
                    conn.execute(
                        f"DELETE FROM scanned_files WHERE path IN ({placeholders})",
                        chunk,
                    )
            return len(missing)
        except sqlite3.Error as e:
            logger.warning(f"Failed to cleanup missing cache entries: {e}")
            return 0

    def get_stats(self) -> dict:
        """
        Get cache statistics.

        Returns:
            Dictionary with total_entries, db_size_bytes, db_size_mb, db_path
        """
        total = 0
        try:
            with self._conn_mgr.connection(exclusive=False) as conn:
                total = conn.execute("SELECT COUNT(*) AS cnt FROM scanned_files").fetchone()['cnt']
        except sqlite3.Error as e:
            logger.warning(f"Failed to get cache stats: {e}")

        db_size = os.path.getsize(self.db_path) if os.path.exists(self.db_path) else 0
        return {
            'total_entries': total,
            'db_size_bytes': db_size,
            'db_size_mb': round(db_size / (1024 * 1024), 2),
            'db_path': self.db_path,
        }

    def clear(self):
        """Clear all cached data and compact the file."""
        try:
            with self._conn_mgr.connection(exclusive=True) as conn:
                conn.execute("DELETE FROM scanned_files")
            # VACUUM cannot run inside a transaction
            with self._conn_mgr.connection() as conn:
                conn.execute("VACUUM")
        except sqlite3.Error as e:
            logger.warning(f"Failed to clear cache: {e}")

    def close(self):
        """Close the connections of every thread that used this cache."""
        self._conn_mgr.close_all()

    def __enter__(self) -> 'HashCache':
        return self

    def __exit__(self, *exc_info):
        self.close()


__all__ = ['HashCache']
