"""
Input validation for photocull.

Every validator returns (is_valid, error_message) so the CLI can report
problems without raising.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional


def validate_path_in_directory(filepath: str, base_directory: str) -> bool:
    """
    Check whether filepath is base_directory itself or lies beneath it.

    Both paths are resolved first, so symlinks cannot hide containment.

    Examples:
        >>> validate_path_in_directory('/home/user/photos/img.jpg', '/home/user/photos')
        True
        >>> validate_path_in_directory('/etc/passwd', '/home/user/photos')
        False
    """
    try:
        file_resolved = Path(filepath).resolve()
        base_resolved = Path(base_directory).resolve()
    except (OSError, RuntimeError):
        return False
    return file_resolved == base_resolved or base_resolved in file_resolved.parents


def validate_file_accessible(filepath: str) -> tuple[bool, str]:
    """
    Validate that a file exists and can be opened for reading.

    Examples:
        >>> validate_file_accessible('/nonexistent/file.jpg')
        (False, 'File does not exist')
    """
    if not os.path.exists(filepath):
        return False, "File does not exist"

    if not os.path.isfile(filepath):
        return False, "Path is not a file"

    if not os.access(filepath, os.R_OK):
        return False, "File is not readable (permission denied)"

    try:
        with open(filepath, 'rb'):
            pass
    except PermissionError:
        return False, "File is locked by another process"
    except OSError as e:
        return False, f"Cannot access file: {e}"

    return True, ""


def validate_directory(directory: str) -> tuple[bool, str]:
    """
    Validate that a directory exists and is readable.

    Relative paths are accepted and resolved against the working directory.

    Examples:
        >>> validate_directory('/nonexistent/directory')
        (False, 'Directory not found: /nonexistent/directory')
    """
    if not directory:
        return False, "Directory path is required"

    if not os.path.exists(directory):
        return False, f"Directory not found: {directory}"

    if not os.path.isdir(directory):
        return False, f"Path is not a directory: {directory}"

    if not os.access(directory, os.R_OK):
        return False, f"Cannot read directory (permission denied): {directory}"

    return True, ""


def validate_threshold(threshold: float) -> tuple[bool, str]:
    """
    Validate a near-duplicate threshold (normalized distance).

    Examples:
        >>> validate_threshold(0.1)
        (True, '')
        >>> validate_threshold(10)
        (False, 'Threshold must be between 0.0 and 1.0')
    """
    try:
        threshold = float(threshold)
    except (ValueError, TypeError):
        return False, "Threshold must be a number"
    if threshold != threshold or not 0.0 <= threshold <= 1.0:
        return False, "Threshold must be between 0.0 and 1.0"
    return True, ""


def validate_workers(workers: int) -> tuple[bool, str]:
    """
    Validate a worker count.

    Examples:
        >>> validate_workers(4)
        (True, '')
        >>> validate_workers(0)
        (False, 'Workers must be between 1 and 64')
    """
    try:
        workers = int(workers)
    except (ValueError, TypeError):
        return False, "Workers must be an integer"
    if not 1 <= workers <= 64:
        return False, "Workers must be between 1 and 64"
    return True, ""


def validate_quarantine_root(quarantine_root: Optional[str], scan_root: str) -> tuple[bool, str]:
    """
    Validate a quarantine directory for a scan of scan_root.

    The quarantine must not be the scanned tree or lie inside it, otherwise
    a later scan would find the quarantined copies again. It does not have
    to exist yet.

    Examples:
        >>> validate_quarantine_root('/photos/dupes', '/photos')
        (False, 'Quarantine directory must be outside the scanned directory: /photos/dupes')
    """
    if not quarantine_root:
        return False, "Quarantine directory is required for the move action"

    if os.path.exists(quarantine_root) and not os.path.isdir(quarantine_root):
        return False, f"Quarantine path is not a directory: {quarantine_root}"

    if validate_path_in_directory(quarantine_root, scan_root):
        return False, f"Quarantine directory must be outside the scanned directory: {quarantine_root}"

    return True, ""


def validate_scan_params(
    directory: str,
    threshold: Optional[float] = None,
    workers: Optional[int] = None,
) -> tuple[bool, str]:
    """
    Validate all scan parameters at once.

    Examples:
        >>> validate_scan_params('/nonexistent', threshold=0.1)
        (False, 'Directory not found: /nonexistent')
    """
    is_valid, error = validate_directory(directory)
    if not is_valid:
        return False, error

    if threshold is not None:
        is_valid, error = validate_threshold(threshold)
        if not is_valid:
            return False, error

    if workers is not None:
        is_valid, error = validate_workers(workers)
        if not is_valid:
            return False, error

    return True, ""


__all__ = [
    'validate_path_in_directory',
    'validate_file_accessible',
    'validate_directory',
    'validate_threshold',
    'validate_workers',
    'validate_quarantine_root',
    'validate_scan_params',
]
