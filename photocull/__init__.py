"""
photocull
=========
Find exact and near-duplicate photos, cull them into a quarantine (or
delete them) and restore them later from an append-only history log.

Features:
- Streaming, cancellable scan with bounded parallel hashing
- Exact grouping by SHA-256, near grouping by perceptual hash distance
- Deterministic keep selection (earliest, then largest, then path)
- Dry-run by default; every executed group is durably recorded
- Restore by record index, most recent record, or everything
- SQLite cache for fast re-scans
"""

__version__ = "1.0.0"

from .config import DEFAULT_NEAR_THRESHOLD, IMAGE_EXTENSIONS
from .context import CancellationToken, ProgressCounters, ScanContext
from .cull import execute, plan
from .database import CacheStats, HashCache, get_cache
from .errors import (
    CullError,
    HistoryWriteError,
    ImageError,
    PhotocullError,
    RestoreError,
    ScanError,
)
from .grouping import group
from .history import HistoryLog
from .models import (
    CullAction,
    CullPlan,
    DuplicateGroup,
    GroupKind,
    HistoryRecord,
    OperationStatus,
    PerFileRestoreResult,
    PerFileResult,
    ProgressEvent,
    RestoreStatus,
    ScannedFile,
    ScanPhase,
)
from .restore import restore
from .scanner import ScanOptions, collect_scan, hash_file, perceptual_distance, scan

__all__ = [
    "__version__",
    "DEFAULT_NEAR_THRESHOLD",
    "IMAGE_EXTENSIONS",
    "CancellationToken",
    "ProgressCounters",
    "ScanContext",
    "ScanOptions",
    "scan",
    "collect_scan",
    "hash_file",
    "perceptual_distance",
    "group",
    "plan",
    "execute",
    "restore",
    "HistoryLog",
    "HashCache",
    "get_cache",
    "CacheStats",
    "ScannedFile",
    "DuplicateGroup",
    "GroupKind",
    "CullAction",
    "CullPlan",
    "PerFileResult",
    "OperationStatus",
    "HistoryRecord",
    "PerFileRestoreResult",
    "RestoreStatus",
    "ProgressEvent",
    "ScanPhase",
    "PhotocullError",
    "ScanError",
    "ImageError",
    "CullError",
    "HistoryWriteError",
    "RestoreError",
]
