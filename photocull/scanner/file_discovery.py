"""
File discovery module for the scanner package.

Walks a directory tree lazily, filtering by extension and reading basic
metadata. Directory symlinks are followed, but a link that leads back to
one of its own ancestors is reported as a loop and skipped. Unreadable
entries are reported as ScanError items instead of aborting the walk.
"""

from __future__ import annotations

import errno
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union

from ..config import IMAGE_EXTENSIONS
from ..context import ScanContext
from ..errors import ScanError, ScanErrorKind
from .dependencies import _logger


@dataclass(frozen=True)
class DiscoveredFile:
    """A candidate file found during the walk, before hashing."""
    path: str
    size: int
    mtime: float
    extension: str


def normalize_extensions(extensions: Optional[Iterable[str]]) -> set[str]:
    """
    Lowercase an extension allow-list and make sure each entry has a dot.

    Examples:
        >>> sorted(normalize_extensions(['JPG', '.png']))
        ['.jpg', '.png']
    """
    if extensions is None:
        return set(IMAGE_EXTENSIONS)
    result = set()
    for ext in extensions:
        ext = ext.strip().lower()
        if not ext:
            continue
        result.add(ext if ext.startswith('.') else f'.{ext}')
    return result


def _error_for(exc: OSError, path: str) -> ScanError:
    if isinstance(exc, PermissionError):
        return ScanError(ScanErrorKind.PERMISSION_DENIED, path, str(exc))
    if exc.errno == errno.ELOOP:
        return ScanError(ScanErrorKind.SYMLINK_LOOP, path, str(exc))
    return ScanError(ScanErrorKind.UNREADABLE, path, str(exc))


def iter_image_files(
    root_path: str | Path,
    recursive: bool = True,
    max_depth: Optional[int] = None,
    extensions: Optional[Iterable[str]] = None,
    context: Optional[ScanContext] = None,
    excluded_dirs: Optional[Iterable[str]] = None,
) -> Iterator[Union[DiscoveredFile, ScanError]]:
    """
    Lazily find image files under a directory.

    Args:
        root_path: Directory path to search for images
        recursive: If False, only the root's own files are considered
        max_depth: Deepest directory level to descend into (0 = root only)
        extensions: Allow-list of extensions (default: IMAGE_EXTENSIONS)
        context: Optional scan context polled for cancellation
        excluded_dirs: Subdirectory names to skip, matched exactly. The root
            itself is always scanned.

    Yields:
        DiscoveredFile for each matching regular file, ScanError for each
        path that could not be read

    Notes:
        - Paths are yielded resolved to their canonical form
        - A file reachable via several paths (symlinks) is yielded once
        - Sorted directory order keeps the walk deterministic
    """
    root = os.path.realpath(os.path.abspath(str(root_path)))
    allowed = normalize_extensions(extensions)
    excluded = frozenset(excluded_dirs or ())
    if not recursive:
        max_depth = 0

    try:
        root_stat = os.stat(root)
    except OSError as e:
        yield _error_for(e, root)
        return
    if not os.path.isdir(root):
        yield ScanError(ScanErrorKind.NOT_A_DIRECTORY, root, "Scan root is not a directory")
        return

    seen_files: set[str] = set()
    visited_dirs: set[tuple[int, int]] = set()

    # Stack of (directory path, depth, ancestor identities incl. itself)
    root_id = (root_stat.st_dev, root_stat.st_ino)
    stack: list[tuple[str, int, frozenset]] = [(root, 0, frozenset([root_id]))]
    visited_dirs.add(root_id)

    while stack:
        if context is not None and context.cancel_requested:
            return

        directory, depth, ancestors = stack.pop()

        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            yield _error_for(e, directory)
            continue

        subdirs: list[tuple[str, int, frozenset]] = []
        for entry in entries:
            if context is not None and context.cancel_requested:
                return

            try:
                is_dir = entry.is_dir(follow_symlinks=True)
            except OSError as e:
                yield _error_for(e, entry.path)
                continue

            if is_dir:
                if entry.name in excluded:
                    _logger.debug(f"Skipping excluded directory {entry.path}")
                    continue
                if max_depth is not None and depth >= max_depth:
                    continue
                try:
                    st = entry.stat(follow_symlinks=True)
                except OSError as e:
                    yield _error_for(e, entry.path)
                    continue
                dir_id = (st.st_dev, st.st_ino)
                if dir_id in ancestors:
                    _logger.debug(f"Symlink loop detected at {entry.path}")
                    yield ScanError(
                        ScanErrorKind.SYMLINK_LOOP, entry.path,
                        "Link points back to one of its parent directories",
                    )
                    continue
                if dir_id in visited_dirs:
                    # Same directory reached through another link
                    continue
                visited_dirs.add(dir_id)
                subdirs.append((entry.path, depth + 1, ancestors | {dir_id}))
                continue

            ext = os.path.splitext(entry.name)[1].lower()
            if ext not in allowed:
                continue

            try:
                if not entry.is_file(follow_symlinks=True):
                    if entry.is_symlink():
                        # Dangling link: stat the target to get a real reason
                        os.stat(entry.path)
                    continue
                st = entry.stat(follow_symlinks=True)
                resolved = os.path.realpath(entry.path)
            except OSError as e:
                yield _error_for(e, entry.path)
                continue

            if resolved in seen_files:
                continue
            seen_files.add(resolved)

            yield DiscoveredFile(
                path=resolved,
                size=st.st_size,
                mtime=st.st_mtime,
                extension=ext,
            )

        # Reverse so the first subdirectory (alphabetically) is walked first
        stack.extend(reversed(subdirs))


def find_image_files(
    root_path: str | Path,
    recursive: bool = True,
    max_depth: Optional[int] = None,
    extensions: Optional[Iterable[str]] = None,
    excluded_dirs: Optional[Iterable[str]] = None,
) -> list[str]:
    """
    Find all image files in the given directory.

    Convenience wrapper around iter_image_files that drops errors.

    Returns:
        List of absolute file paths as strings
    """
    return [
        item.path
        for item in iter_image_files(root_path, recursive, max_depth, extensions, excluded_dirs=excluded_dirs)
        if isinstance(item, DiscoveredFile)
    ]


__all__ = ['DiscoveredFile', 'normalize_extensions', 'iter_image_files', 'find_image_files']
