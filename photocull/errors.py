"""
Error taxonomy for photocull.

Each component owns one closed error type. Every error carries a ``kind``
drawn from a fixed enum plus the affected ``path`` and a human readable
``reason``, so callers can branch on structure instead of parsing messages.

- ScanError: discovery problems (non-fatal, the scan continues)
- ImageError: a file could not be read or decoded (excluded from grouping)
- CullError: a single move/delete failed (excluded from the history record)
- HistoryWriteError: a record could not be durably appended
- RestoreError: a single file could not be put back, or a record is unknown
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class PhotocullError(Exception):
    """Base class for all photocull errors."""

    kind: Enum

    def __init__(self, kind: Enum, path: Optional[str] = None, reason: str = ""):
        self.kind = kind
        self.path = path
        self.reason = reason
        super().__init__(str(self))

    def __str__(self) -> str:
        label = self.kind.value.replace('_', ' ')
        if self.path:
            return f"{label}: {self.path}" + (f" ({self.reason})" if self.reason else "")
        return f"{label}" + (f": {self.reason}" if self.reason else "")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, path={self.path!r}, reason={self.reason!r})"

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return (self.kind, self.path, self.reason) == (other.kind, other.path, other.reason)

    def __hash__(self):
        return hash((type(self).__name__, self.kind, self.path, self.reason))

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'type': type(self).__name__,
            'kind': self.kind.value,
            'path': self.path,
            'reason': self.reason,
        }


class ScanErrorKind(str, Enum):
    UNREADABLE = 'unreadable'
    PERMISSION_DENIED = 'permission_denied'
    SYMLINK_LOOP = 'symlink_loop'
    NOT_A_DIRECTORY = 'not_a_directory'


class ImageErrorKind(str, Enum):
    UNREADABLE = 'unreadable'
    CORRUPT = 'corrupt'
    UNSUPPORTED = 'unsupported'


class CullErrorKind(str, Enum):
    SOURCE_MISSING = 'source_missing'
    KEEP_MISSING = 'keep_missing'
    PERMISSION_DENIED = 'permission_denied'
    OS_ERROR = 'os_error'


class HistoryWriteErrorKind(str, Enum):
    WRITE_FAILED = 'write_failed'


class RestoreErrorKind(str, Enum):
    DESTINATION_OCCUPIED = 'destination_occupied'
    SOURCE_MISSING = 'source_missing'
    OS_ERROR = 'os_error'
    RECORD_NOT_FOUND = 'record_not_found'


class ScanError(PhotocullError):
    """A path could not be walked or read during discovery."""

    def __init__(self, kind: ScanErrorKind, path: Optional[str] = None, reason: str = ""):
        super().__init__(ScanErrorKind(kind), path, reason)


class ImageError(PhotocullError):
    """A file could not be hashed (unreadable, corrupt or unsupported)."""

    def __init__(self, kind: ImageErrorKind, path: Optional[str] = None, reason: str = ""):
        super().__init__(ImageErrorKind(kind), path, reason)


class CullError(PhotocullError):
    """A single move or delete failed."""

    def __init__(self, kind: CullErrorKind, path: Optional[str] = None, reason: str = ""):
        super().__init__(CullErrorKind(kind), path, reason)


class HistoryWriteError(PhotocullError):
    """A history record could not be durably appended."""

    def __init__(self, path: Optional[str] = None, reason: str = ""):
        super().__init__(HistoryWriteErrorKind.WRITE_FAILED, path, reason)


class RestoreError(PhotocullError):
    """A file could not be restored, or the requested record does not exist."""

    def __init__(self, kind: RestoreErrorKind, path: Optional[str] = None, reason: str = ""):
        super().__init__(RestoreErrorKind(kind), path, reason)


__all__ = [
    'PhotocullError',
    'ScanError',
    'ScanErrorKind',
    'ImageError',
    'ImageErrorKind',
    'CullError',
    'CullErrorKind',
    'HistoryWriteError',
    'HistoryWriteErrorKind',
    'RestoreError',
    'RestoreErrorKind',
]
