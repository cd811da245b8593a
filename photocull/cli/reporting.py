"""
Report formatting and display for the CLI interface.

Prints grouping results, cull outcomes, the history log and restore
outcomes to stdout.
"""

from __future__ import annotations

from typing import Iterable, Union

from ..errors import ImageError, ScanError
from ..models import (
    DuplicateGroup,
    GroupKind,
    HistoryRecord,
    OperationStatus,
    PerFileResult,
    PerFileRestoreResult,
    RestoreStatus,
    ScannedFile,
    format_size,
)
from ..utils.formatters import format_number, format_similarity


def _print_section_header(title: str) -> None:
    print("\n" + "-" * 70)
    print(title)
    print("-" * 70)


def _print_file_in_group(path: str, info: ScannedFile | None, is_keep: bool) -> None:
    marker = "  [KEEP]" if is_keep else "  [DUPE]"
    print(f"{marker} {path}")
    if info is not None:
        print(f"         {info.resolution} | {format_size(info.size)}")


def _calculate_statistics(groups: list[DuplicateGroup], files_by_path: dict[str, ScannedFile]) -> dict[str, int]:
    """
    Returns:
        Dictionary with total_duplicates, total_groups and total_waste
        (bytes held by files other than the suggested keep)
    """
    culled = [p for g in groups for p in g.culled]
    return {
        'total_duplicates': len(culled),
        'total_groups': len(groups),
        'total_waste': sum(files_by_path[p].size for p in culled if p in files_by_path),
    }


def _print_groups(groups: list[DuplicateGroup], files_by_path: dict[str, ScannedFile], section_title: str) -> None:
    if not groups:
        return

    _print_section_header(section_title)
    for group in groups:
        print(f"\nGroup {group.id} ({group.member_count} files, {format_similarity(group.similarity)} similar):")
        for path in group.members:
            _print_file_in_group(path, files_by_path.get(path), path == group.suggested_keep)


def print_duplicate_report(groups: list[DuplicateGroup], files_by_path: dict[str, ScannedFile]) -> None:
    """
    Print a report of found duplicates.

    Notes:
        - Members are listed in keep order
        - The suggested keep is marked [KEEP], others [DUPE]
    """
    exact = [g for g in groups if g.kind == GroupKind.EXACT]
    near = [g for g in groups if g.kind == GroupKind.NEAR]

    print("\n" + "=" * 70)
    print("DUPLICATE PHOTO REPORT")
    print("=" * 70)

    exact_stats = _calculate_statistics(exact, files_by_path)
    near_stats = _calculate_statistics(near, files_by_path)

    print(f"\nExact duplicates found: {format_number(exact_stats['total_duplicates'])} files in "
          f"{format_number(exact_stats['total_groups'])} groups")
    print(f"Near duplicates found: {format_number(near_stats['total_duplicates'])} files in "
          f"{format_number(near_stats['total_groups'])} groups")

    _print_groups(exact, files_by_path, "EXACT DUPLICATES (identical files)")
    _print_groups(near, files_by_path, "NEAR DUPLICATES (visually similar)")

    total_waste = exact_stats['total_waste'] + near_stats['total_waste']
    print("\n" + "=" * 70)
    print(f"Total space recoverable: {format_size(total_waste)}")
    print("=" * 70)


def print_scan_errors(errors: Iterable[Union[ScanError, ImageError]], limit: int = 20) -> None:
    """Print the first `limit` non-fatal scan problems."""
    errors = list(errors)
    if not errors:
        return
    _print_section_header(f"SKIPPED ({len(errors):,} files or directories)")
    for error in errors[:limit]:
        print(f"  {error}")
    if len(errors) > limit:
        print(f"  ... and {len(errors) - limit:,} more")


_STATUS_LABELS = {
    OperationStatus.PLANNED: "WOULD",
    OperationStatus.SUCCESS: "OK",
    OperationStatus.FAILED: "FAILED",
    OperationStatus.UNRECORDED: "UNRECORDED",
}


def print_cull_results(results: list[PerFileResult]) -> None:
    """Print one line per culled file with its outcome."""
    if not results:
        print("\nNothing to cull.")
        return

    _print_section_header("CULL RESULTS")
    for r in results:
        target = f" -> {r.destination}" if r.destination else ""
        line = f"  [{_STATUS_LABELS[r.status]}] {r.action.value} {r.source}{target}"
        if r.error is not None:
            line += f" ({r.error.reason or r.error.kind.value})"
        print(line)


def print_history(records: list[tuple[int, HistoryRecord]]) -> None:
    """Print the history log as a table."""
    if not records:
        print("History is empty.")
        return

    print(f"{'INDEX':>5}  {'TIMESTAMP':<32}  {'ACTION':<6}  {'FILES':>5}  KEPT")
    for index, record in records:
        print(f"{index:>5}  {record.timestamp:<32}  {record.action.value:<6}  "
              f"{len(record.culled):>5}  {record.kept}")


def print_restore_results(results: list[PerFileRestoreResult]) -> None:
    """Print per-file restore outcomes and a summary line."""
    for r in results:
        line = f"  [{r.status.value.upper()}] #{r.record_index} {r.original_path}"
        if r.error is not None:
            line += f" ({r.error.reason})"
        print(line)

    counts = {status: 0 for status in RestoreStatus}
    for r in results:
        counts[r.status] += 1
    summary = ", ".join(f"{status.value}: {n}" for status, n in counts.items() if n)
    print("\n" + (summary or "Nothing to restore."))


__all__ = [
    'print_duplicate_report',
    'print_scan_errors',
    'print_cull_results',
    'print_history',
    'print_restore_results',
]
