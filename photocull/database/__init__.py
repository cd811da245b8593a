"""
SQLite hash cache for photocull.

A rescan of an unchanged library should not decode a single image: hashes
are stored per (path, mtime, size, hash_size) and served back to the
scanner until the file changes.

Public API:
- HashCache: The cache itself (also a context manager)
- CacheStats: Hit/miss counters for one scan
- make_cache_key: Key format shared with the schema
- get_cache() / reset_cache(): Process-wide instance for library callers
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Optional

from .core import HashCache
from .utils import CacheStats, make_cache_key

_shared: Optional[HashCache] = None
_shared_lock = threading.Lock()


def get_cache(db_path: Optional[str | Path] = None) -> HashCache:
    """
    Return the shared HashCache, creating it on first use.

    Args:
        db_path: Database to open on first use; defaults to the configured
            cache_db_file. Ignored once the shared cache exists.
    """
    global _shared
    with _shared_lock:
        if _shared is None:
            if db_path is None:
                from ..user_config import get_user_config
                db_path = get_user_config().cache_db_file
            _shared = HashCache(db_path)
        return _shared


def reset_cache() -> None:
    """Close and forget the shared cache so the next get_cache() reopens it."""
    global _shared
    with _shared_lock:
        if _shared is not None:
            _shared.close()
        _shared = None


__all__ = [
    'HashCache',
    'CacheStats',
    'make_cache_key',
    'get_cache',
    'reset_cache',
]
