"""
Shared helpers for the hash cache.
"""

from __future__ import annotations

import os
import sqlite3
from dataclasses import dataclass

from ..models import ScannedFile


# SQLite caps bound variables at 999 on older builds
CHUNK_SIZE = 500


@dataclass
class CacheStats:
    """Statistics about cache usage during a scan."""
    cache_hits: int = 0
    cache_misses: int = 0
    total_files: int = 0

    @property
    def hit_rate(self) -> float:
        """Return cache hit rate as percentage."""
        if self.total_files == 0:
            return 0.0
        return (self.cache_hits / self.total_files) * 100


def make_cache_key(filepath: str, mtime: float, size: int) -> str:
    """
    Create a cache key from file attributes.

    The key changes if the file is modified or its size changes.

    Examples:
        >>> make_cache_key('/p/a.jpg', 1700000000.0, 1024)
        '/p/a.jpg:1700000000.0:1024'
    """
    return f"{filepath}:{mtime}:{size}"


def get_file_stats(filepath: str) -> tuple[float, int]:
    """Return (mtime, size) of a file."""
    stat = os.stat(filepath)
    return stat.st_mtime, stat.st_size


def row_to_scannedfile(row: sqlite3.Row) -> ScannedFile:
    """Convert a scanned_files row to a ScannedFile."""
    return ScannedFile(
        path=row['path'],
        size=row['size'],
        mtime=row['mtime'],
        format=row['format'] or "",
        width=row['width'],
        height=row['height'],
        content_hash=row['content_hash'],
        perceptual_hash=row['perceptual_hash'],
    )


__all__ = [
    'CHUNK_SIZE',
    'CacheStats',
    'make_cache_key',
    'get_file_stats',
    'row_to_scannedfile',
]
