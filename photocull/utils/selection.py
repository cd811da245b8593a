"""
Keep-selection ordering for photocull.

Every duplicate group gets exactly one suggested keep. The choice follows
one total order, so the same set of files always yields the same answer:

1. Earliest modification time first (the original usually predates copies)
2. Largest file size first
3. Lexicographically smallest path
"""

from __future__ import annotations

from typing import Iterable

from ..models import ScannedFile


def keep_order_key(file: ScannedFile) -> tuple[float, int, str]:
    """
    Sort key placing the preferred keep first.

    Examples:
        >>> a = ScannedFile(path='/a.jpg', size=10, mtime=1.0)
        >>> b = ScannedFile(path='/b.jpg', size=10, mtime=2.0)
        >>> sorted([b, a], key=keep_order_key)[0].path
        '/a.jpg'
    """
    return (file.mtime, -file.size, file.path)


def order_for_keep(files: Iterable[ScannedFile]) -> list[ScannedFile]:
    """Return files sorted so the suggested keep comes first."""
    return sorted(files, key=keep_order_key)


def select_keep(files: Iterable[ScannedFile]) -> ScannedFile:
    """
    Pick the suggested keep from a group of files.

    Raises:
        ValueError: If files is empty
    """
    ordered = order_for_keep(files)
    if not ordered:
        raise ValueError("Cannot select a keep from an empty group")
    return ordered[0]


__all__ = ['keep_order_key', 'order_for_keep', 'select_keep']
