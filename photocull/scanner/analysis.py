"""
Single-file analysis for the scanner package.

Turns a discovered file into a fully hashed ScannedFile, or raises
ImageError when the file cannot be decoded.
"""

from __future__ import annotations

from ..config import DEFAULT_HASH_SIZE
from ..models import ScannedFile
from .file_discovery import DiscoveredFile
from .hashing import hash_file


def analyze_file(discovered: DiscoveredFile, hash_size: int = DEFAULT_HASH_SIZE) -> ScannedFile:
    """
    Hash a discovered file and attach its metadata.

    Args:
        discovered: File found by the walker (path, size, mtime)
        hash_size: pHash size passed through to the hasher

    Returns:
        ScannedFile with content and perceptual hashes set

    Raises:
        ImageError: If the file cannot be read or decoded
    """
    result = hash_file(discovered.path, hash_size=hash_size)
    return ScannedFile(
        path=discovered.path,
        size=discovered.size,
        mtime=discovered.mtime,
        format=result.format,
        width=result.width,
        height=result.height,
        content_hash=result.content_hash,
        perceptual_hash=result.perceptual_hash,
    )


__all__ = ['analyze_file']
