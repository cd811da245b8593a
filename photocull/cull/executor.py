"""
Cull execution.

Runs CullPlans: files within a group are handled one after another, groups
run concurrently, and every group with at least one success is written to
the history log as exactly one record. A failed file never aborts the rest
of its group and never appears in the record.

If the history append fails, the files are left where they are and the
results are marked UNRECORDED; this is logged at CRITICAL because the
history log no longer describes the filesystem.
"""

from __future__ import annotations

import logging
import os
import shutil
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Optional

from ..config import DEFAULT_CULL_WORKERS
from ..context import ScanContext
from ..errors import CullError, CullErrorKind, HistoryWriteError
from ..history import HistoryLog
from ..models import (
    CullAction,
    CullPlan,
    FileOperation,
    HistoryRecord,
    OperationStatus,
    PerFileResult,
    utc_timestamp,
)
from ..utils.validators import validate_file_accessible
from .planner import suffixed_path

logger = logging.getLogger(__name__)


class DestinationReservations:
    """
    Hands out quarantine destinations that are free on disk and not yet
    claimed by another group running concurrently.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._reserved: set[str] = set()

    def claim(self, planned: str) -> str:
        with self._lock:
            destination, counter = planned, 1
            while destination in self._reserved or os.path.lexists(destination):
                destination = suffixed_path(planned, counter)
                counter += 1
            self._reserved.add(destination)
            return destination


def _dry_run_results(plan: CullPlan) -> list[PerFileResult]:
    for op in plan.operations:
        logger.info(f"[DRY RUN] Would {plan.action.value}: {op.source}"
                    + (f" -> {op.destination}" if op.destination else ""))
    return [
        PerFileResult(
            group_id=plan.group_id,
            source=op.source,
            destination=op.destination,
            action=plan.action,
            status=OperationStatus.PLANNED,
        )
        for op in plan.operations
    ]


def _perform_delete(source: str) -> None:
    """
    Delete a culled file.

    Raises:
        CullError: If the file is missing or cannot be removed
    """
    try:
        os.remove(source)
    except FileNotFoundError as e:
        raise CullError(CullErrorKind.SOURCE_MISSING, source, "File not found (may have been deleted)") from e
    except PermissionError as e:
        raise CullError(CullErrorKind.PERMISSION_DENIED, source, "File is read-only or locked") from e
    except OSError as e:
        raise CullError(CullErrorKind.OS_ERROR, source, str(e)) from e
    logger.info(f"Deleted: {source}")


def _perform_move(op: FileOperation, reservations: DestinationReservations) -> str:
    """
    Move a culled file into quarantine.

    Returns:
        The destination actually used (differs from the plan only when the
        planned name is already occupied on disk)

    Raises:
        CullError: If the file is missing or cannot be moved
    """
    if not os.path.lexists(op.source):
        raise CullError(CullErrorKind.SOURCE_MISSING, op.source, "File not found (may have been moved)")

    destination = reservations.claim(op.destination)
    if destination != op.destination:
        logger.warning(f"Quarantine name taken, using {destination} instead of {op.destination}")

    try:
        os.makedirs(os.path.dirname(destination), exist_ok=True)
        shutil.move(op.source, destination)
    except FileNotFoundError as e:
        raise CullError(CullErrorKind.SOURCE_MISSING, op.source, str(e)) from e
    except PermissionError as e:
        raise CullError(CullErrorKind.PERMISSION_DENIED, op.source, "Source or destination permission denied") from e
    except OSError as e:
        raise CullError(CullErrorKind.OS_ERROR, op.source, str(e)) from e

    logger.info(f"Moved: {op.source} -> {destination}")
    return destination


def _execute_group(
    plan: CullPlan,
    history: HistoryLog,
    reservations: DestinationReservations,
    context: Optional[ScanContext],
) -> list[PerFileResult]:
    """Run one group's operations sequentially, then record the successes."""
    results: list[PerFileResult] = []

    keep_ok, keep_problem = validate_file_accessible(plan.keep)
    keep_missing = not keep_ok
    if keep_missing:
        logger.error(f"Kept file is not accessible ({keep_problem}), refusing to cull group {plan.group_id}: {plan.keep}")

    for op in plan.operations:
        try:
            if keep_missing:
                raise CullError(
                    CullErrorKind.KEEP_MISSING, op.source,
                    f"Kept file {plan.keep}: {keep_problem}",
                )
            if plan.action == CullAction.DELETE:
                _perform_delete(op.source)
                destination = None
            else:
                destination = _perform_move(op, reservations)
        except CullError as e:
            if e.kind != CullErrorKind.KEEP_MISSING:
                logger.error(f"Failed to {plan.action.value} {op.source}: {e}")
            results.append(PerFileResult(
                group_id=plan.group_id,
                source=op.source,
                destination=op.destination,
                action=plan.action,
                status=OperationStatus.FAILED,
                error=e,
            ))
        else:
            results.append(PerFileResult(
                group_id=plan.group_id,
                source=op.source,
                destination=destination,
                action=plan.action,
                status=OperationStatus.SUCCESS,
            ))
        finally:
            if context is not None:
                context.progress.add_processed(current_file=op.source)

    succeeded = [r for r in results if r.status == OperationStatus.SUCCESS]
    if not succeeded:
        return results

    record = HistoryRecord(
        timestamp=utc_timestamp(),
        kept=plan.keep,
        culled=[r.source for r in succeeded],
        action=plan.action,
        quarantine_root=plan.quarantine_root if plan.action == CullAction.MOVE else None,
        destinations=(
            {r.source: r.destination for r in succeeded}
            if plan.action == CullAction.MOVE else {}
        ),
    )

    try:
        index = history.append(record)
    except HistoryWriteError as e:
        logger.critical(
            f"{plan.action.value.upper()} BUT UNRECORDED: group {plan.group_id} "
            f"({len(succeeded)} files) could not be written to {history.path}: {e.reason}. "
            f"Manual reconciliation required for: {', '.join(r.source for r in succeeded)}"
        )
        for r in succeeded:
            r.status = OperationStatus.UNRECORDED
            r.error = e
    else:
        logger.info(
            f"Recorded group {plan.group_id} as history record {index} "
            f"({len(succeeded)} {plan.action.value}d)"
        )

    return results


def execute(
    plans: Iterable[CullPlan],
    history: Optional[HistoryLog] = None,
    context: Optional[ScanContext] = None,
    max_workers: int = DEFAULT_CULL_WORKERS,
) -> list[PerFileResult]:
    """
    Execute cull plans.

    Args:
        plans: Plans produced by plan()
        history: History log receiving one record per group with a success
            (required unless every plan is a dry run)
        context: Optional context whose progress counters are advanced per
            file; culls cannot be cancelled once started
        max_workers: Number of groups processed concurrently

    Returns:
        Per-file results in plan order

    Raises:
        ValueError: If a non-dry-run plan is given without a history log
    """
    plans = list(plans)
    live = [p for p in plans if not p.dry_run]
    if live and history is None:
        raise ValueError("A history log is required to execute a cull")

    if context is not None:
        context.progress.add_discovered(sum(len(p.operations) for p in live))

    by_group: dict[int, list[PerFileResult]] = {}
    for p in plans:
        if p.dry_run:
            by_group[id(p)] = _dry_run_results(p)

    if live:
        reservations = DestinationReservations()
        with ThreadPoolExecutor(max_workers=max(1, max_workers), thread_name_prefix='photocull-cull') as executor:
            futures = {
                id(p): executor.submit(_execute_group, p, history, reservations, context)
                for p in live
            }
            for key, future in futures.items():
                by_group[key] = future.result()

    return [r for p in plans for r in by_group[id(p)]]


def summarize(results: Iterable[PerFileResult]) -> dict[str, int]:
    """Count results per status."""
    counts = {status.value: 0 for status in OperationStatus}
    for r in results:
        counts[r.status.value] += 1
    return counts


__all__ = ['DestinationReservations', 'execute', 'summarize']
