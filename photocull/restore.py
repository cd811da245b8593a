"""
Restore engine for photocull.

Replays the inverse of recorded moves: each culled file is moved from its
quarantine location back to its original path. Deleted files cannot be
brought back and are reported as non-restorable.

Restoring never modifies the history log. Repeated restores are safe:
a file whose quarantine copy is gone but whose original path is occupied
is reported as already restored rather than moved again.
"""

from __future__ import annotations

import logging
import os
import shutil
from typing import Union

from .errors import RestoreError, RestoreErrorKind
from .history import HistoryLog
from .models import CullAction, HistoryRecord, PerFileRestoreResult, RestoreStatus

logger = logging.getLogger(__name__)

RestoreTarget = Union[int, str]


def _restore_file(index: int, original: str, quarantine_path: str | None) -> PerFileRestoreResult:
    """Move one quarantined file back, or explain why not."""

    def result(status: RestoreStatus, error: RestoreError | None = None) -> PerFileRestoreResult:
        return PerFileRestoreResult(
            record_index=index,
            original_path=original,
            quarantine_path=quarantine_path,
            status=status,
            error=error,
        )

    in_quarantine = bool(quarantine_path) and os.path.lexists(quarantine_path)
    at_original = os.path.lexists(original)

    if not in_quarantine:
        if at_original:
            return result(RestoreStatus.ALREADY_RESTORED)
        logger.warning(f"Cannot restore {original}: quarantine copy {quarantine_path} is missing")
        return result(
            RestoreStatus.MISSING,
            RestoreError(RestoreErrorKind.SOURCE_MISSING, quarantine_path, "Quarantined file no longer exists"),
        )

    if at_original:
        logger.warning(f"Cannot restore {original}: path is occupied")
        return result(
            RestoreStatus.FAILED,
            RestoreError(RestoreErrorKind.DESTINATION_OCCUPIED, original, "Original path is occupied by another file"),
        )

    try:
        os.makedirs(os.path.dirname(original), exist_ok=True)
        shutil.move(quarantine_path, original)
    except OSError as e:
        logger.error(f"Failed to restore {quarantine_path} -> {original}: {e}")
        return result(RestoreStatus.FAILED, RestoreError(RestoreErrorKind.OS_ERROR, original, str(e)))

    logger.info(f"Restored: {quarantine_path} -> {original}")
    return result(RestoreStatus.RESTORED)


def restore_record(index: int, record: HistoryRecord) -> list[PerFileRestoreResult]:
    """
    Restore every culled file of one record.

    Args:
        index: Record index (reported back in each result)
        record: The history record

    Returns:
        One result per culled path; delete records yield NON_RESTORABLE
    """
    if record.action != CullAction.MOVE:
        return [
            PerFileRestoreResult(
                record_index=index,
                original_path=path,
                quarantine_path=None,
                status=RestoreStatus.NON_RESTORABLE,
            )
            for path in record.culled
        ]

    return [
        _restore_file(index, path, record.quarantine_path_for(path))
        for path in record.culled
    ]


def _select(history: HistoryLog, target: RestoreTarget) -> list[tuple[int, HistoryRecord]]:
    records = history.list()

    if target == 'all':
        # Empty log: nothing to restore
        return records

    if target == 'last':
        if not records:
            raise RestoreError(RestoreErrorKind.RECORD_NOT_FOUND, history.path, "History is empty")
        return [records[-1]]

    try:
        index = int(target)
    except (TypeError, ValueError):
        raise RestoreError(
            RestoreErrorKind.RECORD_NOT_FOUND, history.path,
            f"Invalid restore target {target!r} (use an index, 'last' or 'all')",
        )
    if not 0 <= index < len(records):
        raise RestoreError(
            RestoreErrorKind.RECORD_NOT_FOUND, history.path,
            f"No history record with index {index}",
        )
    return [records[index]]


def restore(history: HistoryLog, target: RestoreTarget = 'last') -> list[PerFileRestoreResult]:
    """
    Restore one record, the most recent record, or every record.

    Args:
        history: History log to read
        target: Record index, 'last' or 'all'

    Returns:
        Per-file results; records are processed in ascending index order and
        a failure on one file never stops the rest

    Raises:
        RestoreError: RECORD_NOT_FOUND if the index does not exist or the
            log is empty when 'last' is requested
    """
    results: list[PerFileRestoreResult] = []
    for index, record in _select(history, target):
        results.extend(restore_record(index, record))
    return results


__all__ = ['RestoreTarget', 'restore', 'restore_record']
