"""
Export functionality for photocull.

Writes grouping results as a readable TXT report, a flat CSV, or JSON
holding store-shaped rows (files, groups, memberships) that map directly
onto an external asset database.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Optional, TextIO

from ..models import DuplicateGroup, GroupKind, ScannedFile, format_size
from .formatters import format_similarity

EXPORT_FORMATS = ('txt', 'csv', 'json')


def _export_txt(
    groups: list[DuplicateGroup],
    files_by_path: dict[str, ScannedFile],
    file_handle: TextIO
) -> None:
    file_handle.write("DUPLICATE PHOTO REPORT\n")
    file_handle.write("=" * 70 + "\n\n")

    for kind, title in ((GroupKind.EXACT, "EXACT DUPLICATES"), (GroupKind.NEAR, "NEAR DUPLICATES")):
        file_handle.write(f"{title}\n")
        file_handle.write("-" * 70 + "\n")
        for group in (g for g in groups if g.kind == kind):
            file_handle.write(f"\nGroup {group.id} ({format_similarity(group.similarity)}):\n")
            for path in group.members:
                marker = "[KEEP]" if path == group.suggested_keep else "[DUPE]"
                info = files_by_path.get(path)
                size = f" ({format_size(info.size)})" if info else ""
                file_handle.write(f"  {marker} {path}{size}\n")
        file_handle.write("\n\n")


def _export_csv(
    groups: list[DuplicateGroup],
    files_by_path: dict[str, ScannedFile],
    file_handle: TextIO
) -> None:
    """
    Notes:
        Columns: group_id, match_type, similarity, status, path, width,
        height, file_size
    """
    writer = csv.writer(file_handle, lineterminator='\n')
    writer.writerow(['group_id', 'match_type', 'similarity', 'status', 'path', 'width', 'height', 'file_size'])

    for group in groups:
        for path in group.members:
            info = files_by_path.get(path)
            writer.writerow([
                group.id,
                group.kind.value,
                f"{group.similarity:.4f}",
                'keep' if path == group.suggested_keep else 'duplicate',
                path,
                info.width if info else '',
                info.height if info else '',
                info.size if info else '',
            ])


def _export_json(
    groups: list[DuplicateGroup],
    files_by_path: dict[str, ScannedFile],
    file_handle: TextIO
) -> None:
    member_paths = {p for g in groups for p in g.members}
    group_rows, memberships = [], []
    for group in groups:
        group_row, rows = group.to_rows()
        group_rows.append(group_row)
        memberships.extend(rows)

    payload = {
        'files': [files_by_path[p].to_row() for p in sorted(member_paths) if p in files_by_path],
        'groups': group_rows,
        'memberships': memberships,
    }
    json.dump(payload, file_handle, indent=2)
    file_handle.write("\n")


def export_results(
    groups: list[DuplicateGroup],
    files_by_path: Optional[dict[str, ScannedFile]],
    output_path: str | Path,
    export_format: str = 'txt'
) -> None:
    """
    Export grouping results to a file.

    Args:
        groups: Duplicate groups (exact and near)
        files_by_path: Scanned files keyed by path, used for sizes and the
            JSON file rows
        output_path: Path to output file
        export_format: 'txt', 'csv' or 'json'

    Raises:
        ValueError: If export_format is not supported
        OSError: If file cannot be written

    Examples:
        >>> export_results(groups, {f.path: f for f in files}, Path('dupes.json'), 'json')
    """
    if export_format not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format: {export_format}. Use one of {', '.join(EXPORT_FORMATS)}.")

    files_by_path = files_by_path or {}
    with open(output_path, 'w', encoding='utf-8', newline='') as f:
        if export_format == 'txt':
            _export_txt(groups, files_by_path, f)
        elif export_format == 'csv':
            _export_csv(groups, files_by_path, f)
        else:
            _export_json(groups, files_by_path, f)


__all__ = ['EXPORT_FORMATS', 'export_results']
