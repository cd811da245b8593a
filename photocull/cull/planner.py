"""
Cull planning.

Turns duplicate groups into per-group CullPlans. Planning is pure: it
never touches the filesystem, so a plan computed for a dry run is exactly
the plan a real run would execute.
"""

from __future__ import annotations

import os
from pathlib import Path, PurePath
from typing import Iterable, Optional, Union

from ..models import CullAction, CullPlan, DuplicateGroup, FileOperation


def suffixed_path(path: str, counter: int) -> str:
    """
    Insert a collision counter before the extension.

    Examples:
        >>> suffixed_path('/q/photo.jpg', 2)
        '/q/photo_2.jpg'
    """
    parent, name = os.path.split(path)
    stem, suffix = os.path.splitext(name)
    return os.path.join(parent, f"{stem}_{counter}{suffix}")


def _relative_to_anchor(path: str) -> str:
    """Path with its drive/root removed, for mirroring outside the base."""
    pure = PurePath(path)
    return str(pure.relative_to(pure.anchor)) if pure.anchor else str(pure)


def _mirrored_relpath(source: str, base: Optional[str]) -> str:
    if base:
        rel = os.path.relpath(source, base)
        if not rel.startswith(os.pardir) and not os.path.isabs(rel):
            return rel
    return _relative_to_anchor(source)


def _common_directory(paths: list[str]) -> Optional[str]:
    dirs = [os.path.dirname(p) for p in paths]
    if not dirs:
        return None
    try:
        return os.path.commonpath(dirs)
    except ValueError:
        # Different drives on Windows
        return None


def plan(
    groups: Iterable[DuplicateGroup],
    action: Union[CullAction, str],
    quarantine_root: Optional[str | Path] = None,
    preserve_structure: bool = False,
    dry_run: bool = False,
    source_root: Optional[str | Path] = None,
) -> list[CullPlan]:
    """
    Compute file operations for each group.

    Args:
        groups: Duplicate groups (each with a suggested keep)
        action: 'move' to quarantine or 'delete'
        quarantine_root: Destination root for moves
        preserve_structure: Mirror each source's path relative to
            source_root under quarantine_root instead of flattening
        dry_run: Mark the plans as dry runs
        source_root: Base for mirrored paths; defaults to the deepest
            directory common to every culled file

    Returns:
        One CullPlan per group with at least one file to cull

    Raises:
        ValueError: If a move is requested without quarantine_root, or a
            group has no suggested keep

    Notes:
        Flattened names that collide are renamed deterministically in plan
        order: photo.jpg, photo_1.jpg, photo_2.jpg, ...
    """
    action = CullAction(action)
    groups = list(groups)

    if action == CullAction.MOVE and not quarantine_root:
        raise ValueError("quarantine_root is required for the 'move' action")

    quarantine = os.path.abspath(str(quarantine_root)) if quarantine_root else None
    base: Optional[str] = None
    if action == CullAction.MOVE and preserve_structure:
        if source_root:
            base = os.path.abspath(str(source_root))
        else:
            base = _common_directory([p for g in groups for p in g.culled])

    assigned: set[str] = set()
    plans: list[CullPlan] = []

    for group in groups:
        if not group.suggested_keep:
            raise ValueError(f"Group {group.id} has no suggested keep")

        operations: list[FileOperation] = []
        for source in group.culled:
            if action == CullAction.DELETE:
                operations.append(FileOperation(source=source, destination=None))
                continue

            if preserve_structure:
                destination = os.path.join(quarantine, _mirrored_relpath(source, base))
            else:
                destination = os.path.join(quarantine, os.path.basename(source))

            candidate, counter = destination, 1
            while candidate in assigned:
                candidate = suffixed_path(destination, counter)
                counter += 1
            assigned.add(candidate)
            operations.append(FileOperation(source=source, destination=candidate))

        if operations:
            plans.append(CullPlan(
                group_id=group.id,
                keep=group.suggested_keep,
                operations=operations,
                action=action,
                dry_run=dry_run,
                quarantine_root=quarantine if action == CullAction.MOVE else None,
            ))

    return plans


__all__ = ['plan', 'suffixed_path']
