"""
Data models for photocull.

Contains dataclasses for scanned files, duplicate groups, cull plans and
their per-file outcomes, history records, restore outcomes and scan
progress events.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

from .errors import CullError, HistoryWriteError, RestoreError


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable form."""
    for unit in ['B', 'KB', 'MB', 'GB']:
        if size_bytes < 1024:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024
    return f"{size_bytes:.1f} TB"


def utc_timestamp() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def _iso_from_epoch(seconds: float) -> str:
    return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat()


class GroupKind(str, Enum):
    EXACT = 'exact'
    NEAR = 'near'


class CullAction(str, Enum):
    MOVE = 'move'
    DELETE = 'delete'


class OperationStatus(str, Enum):
    PLANNED = 'planned'
    SUCCESS = 'success'
    FAILED = 'failed'
    UNRECORDED = 'unrecorded'  # moved/deleted but no history record


class RestoreStatus(str, Enum):
    RESTORED = 'restored'
    ALREADY_RESTORED = 'already_restored'
    MISSING = 'missing'
    NON_RESTORABLE = 'non_restorable'
    FAILED = 'failed'


class ScanPhase(str, Enum):
    DISCOVERY = 'discovery'
    HASHING = 'hashing'
    COMPLETE = 'complete'
    CANCELLED = 'cancelled'


@dataclass
class ScannedFile:
    """
    Metadata and hashes for one discovered image file.

    Attributes:
        path: Absolute path to the file (identity of the record)
        size: Size in bytes
        mtime: Modification time as POSIX seconds
        format: Detected image format (PNG, JPEG, ...)
        width: Image width in pixels, if decoded
        height: Image height in pixels, if decoded
        content_hash: SHA-256 hex digest of the file bytes
        perceptual_hash: Hex string of the perceptual fingerprint
    """
    path: str
    size: int = 0
    mtime: float = 0.0
    format: str = ""
    width: Optional[int] = None
    height: Optional[int] = None
    content_hash: Optional[str] = None
    perceptual_hash: Optional[str] = None

    def __hash__(self):
        return hash(str(self.path))

    def __eq__(self, other):
        if not isinstance(other, ScannedFile):
            return False
        return str(self.path) == str(other.path)

    @property
    def filename(self) -> str:
        """Return just the filename portion of the path."""
        return os.path.basename(self.path)

    @property
    def directory(self) -> str:
        """Return the directory containing this file."""
        return os.path.dirname(self.path)

    @property
    def resolution(self) -> str:
        """Return resolution as 'WxH' string, or '?' when unknown."""
        if self.width is None or self.height is None:
            return "?"
        return f"{self.width}x{self.height}"

    @property
    def is_hashed(self) -> bool:
        return self.content_hash is not None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'path': self.path,
            'size': self.size,
            'mtime': self.mtime,
            'format': self.format,
            'width': self.width,
            'height': self.height,
            'content_hash': self.content_hash,
            'perceptual_hash': self.perceptual_hash,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'ScannedFile':
        """Create ScannedFile from dictionary."""
        return cls(
            path=data['path'],
            size=data.get('size', 0),
            mtime=data.get('mtime', 0.0),
            format=data.get('format', ''),
            width=data.get('width'),
            height=data.get('height'),
            content_hash=data.get('content_hash'),
            perceptual_hash=data.get('perceptual_hash'),
        )

    def to_row(self) -> dict:
        """Row shape used by an external asset store."""
        return {
            'path': self.path,
            'size': self.size,
            'width': self.width,
            'height': self.height,
            'hash': self.content_hash,
            'perceptual_hash': self.perceptual_hash,
            'modified_at': _iso_from_epoch(self.mtime),
        }


@dataclass
class DuplicateGroup:
    """
    A group of duplicate or near-duplicate files.

    Attributes:
        id: Identifier for this group (1-based, unique within one grouping run)
        kind: EXACT (same bytes) or NEAR (perceptually similar)
        similarity: 1.0 for exact groups, 1 - worst internal distance for near
        members: Member paths, in insertion order
        suggested_keep: Path recommended to retain
    """
    id: int
    kind: GroupKind
    similarity: float
    members: list[str] = field(default_factory=list)
    suggested_keep: Optional[str] = None

    def __eq__(self, other):
        if not isinstance(other, DuplicateGroup):
            return NotImplemented
        return (
            self.kind == other.kind
            and self.similarity == other.similarity
            and self.suggested_keep == other.suggested_keep
            and set(self.members) == set(other.members)
        )

    @property
    def culled(self) -> list[str]:
        """Members other than the suggested keep."""
        return [p for p in self.members if p != self.suggested_keep]

    @property
    def member_count(self) -> int:
        return len(self.members)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'kind': self.kind.value,
            'similarity': round(self.similarity, 4),
            'members': list(self.members),
            'suggested_keep': self.suggested_keep,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'DuplicateGroup':
        """Create DuplicateGroup from dictionary."""
        return cls(
            id=data['id'],
            kind=GroupKind(data['kind']),
            similarity=data.get('similarity', 1.0),
            members=list(data.get('members', [])),
            suggested_keep=data.get('suggested_keep'),
        )

    def to_rows(self) -> tuple[dict, list[dict]]:
        """
        Rows for an external group store.

        Returns:
            Tuple of (group row, membership rows)
        """
        group_row = {
            'group_id': self.id,
            'group_type': self.kind.value,
            'similarity': round(self.similarity * 100, 2),
            'suggested_keep': self.suggested_keep,
        }
        memberships = [{'group_id': self.id, 'path': p} for p in self.members]
        return group_row, memberships


@dataclass(frozen=True)
class FileOperation:
    """One planned file operation; destination is None for deletes."""
    source: str
    destination: Optional[str] = None


@dataclass
class CullPlan:
    """Planned operations for one group."""
    group_id: int
    keep: str
    operations: list[FileOperation]
    action: CullAction
    dry_run: bool = False
    quarantine_root: Optional[str] = None


@dataclass
class PerFileResult:
    """Outcome of one planned operation."""
    group_id: int
    source: str
    destination: Optional[str]
    action: CullAction
    status: OperationStatus
    error: Optional[Union[CullError, HistoryWriteError]] = None

    @property
    def ok(self) -> bool:
        return self.status in (OperationStatus.SUCCESS, OperationStatus.PLANNED)

    def to_dict(self) -> dict:
        return {
            'group_id': self.group_id,
            'source': self.source,
            'destination': self.destination,
            'action': self.action.value,
            'status': self.status.value,
            'error': self.error.to_dict() if self.error else None,
        }


@dataclass
class HistoryRecord:
    """
    One durable audit entry for an executed cull group.

    Attributes:
        timestamp: UTC ISO-8601 time the group finished
        kept: Path that was retained
        culled: Original paths that were moved/deleted successfully
        action: MOVE or DELETE
        quarantine_root: Quarantine directory used (moves only)
        destinations: Original path -> quarantine path (moves only)
    """
    timestamp: str
    kept: str
    culled: list[str]
    action: CullAction
    quarantine_root: Optional[str] = None
    destinations: dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        self.action = CullAction(self.action)
        if self.kept in self.culled:
            raise ValueError(f"Kept path cannot also be culled: {self.kept}")

    def quarantine_path_for(self, original: str) -> Optional[str]:
        """Where a culled file was moved to, if this was a move."""
        if self.action != CullAction.MOVE:
            return None
        if original in self.destinations:
            return self.destinations[original]
        if self.quarantine_root:
            return os.path.join(self.quarantine_root, os.path.basename(original))
        return None

    def to_dict(self) -> dict:
        data = {
            'timestamp': self.timestamp,
            'kept': self.kept,
            'culled': list(self.culled),
            'action': self.action.value,
        }
        if self.action == CullAction.MOVE:
            data['quarantine_root'] = self.quarantine_root
            data['destinations'] = dict(self.destinations)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'HistoryRecord':
        return cls(
            timestamp=data['timestamp'],
            kept=data['kept'],
            culled=list(data['culled']),
            action=CullAction(data['action']),
            quarantine_root=data.get('quarantine_root'),
            destinations=dict(data.get('destinations') or {}),
        )


def decision_rows(record: HistoryRecord, reason: str = 'duplicate') -> list[dict]:
    """Decision rows (keep/remove) for an external store, one per path."""
    rows = [{
        'path': record.kept,
        'state': 'keep',
        'reason': reason,
        'notes': None,
        'decided_at': record.timestamp,
    }]
    for path in record.culled:
        rows.append({
            'path': path,
            'state': 'remove',
            'reason': reason,
            'notes': f"{record.action.value}d",
            'decided_at': record.timestamp,
        })
    return rows


@dataclass
class PerFileRestoreResult:
    """Outcome of restoring one culled file."""
    record_index: int
    original_path: str
    quarantine_path: Optional[str]
    status: RestoreStatus
    error: Optional[RestoreError] = None

    def to_dict(self) -> dict:
        return {
            'record_index': self.record_index,
            'original_path': self.original_path,
            'quarantine_path': self.quarantine_path,
            'status': self.status.value,
            'error': self.error.to_dict() if self.error else None,
        }


@dataclass(frozen=True)
class ProgressEvent:
    """Snapshot of scan progress."""
    phase: ScanPhase
    processed: int
    discovered: int
    current_file: str = ""

    @property
    def is_terminal(self) -> bool:
        return self.phase in (ScanPhase.COMPLETE, ScanPhase.CANCELLED)
