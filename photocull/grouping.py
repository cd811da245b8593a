"""
Grouping engine for photocull.

Partitions hashed files into exact-duplicate groups (same content hash)
and near-duplicate groups (connected components of the "perceptual
distance <= threshold" graph), and picks a suggested keep per group.

Near grouping only considers files that are not already in an exact
group. Raising the threshold only adds graph edges, so existing near
groups can merge but never split.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable, Optional

import numpy as np

from .config import DEFAULT_NEAR_THRESHOLD
from .models import DuplicateGroup, GroupKind, ScannedFile
from .scanner.hashing import hash_bits
from .utils.selection import order_for_keep

logger = logging.getLogger(__name__)


class UnionFind:
    """
    Disjoint sets over the integers 0..n-1.

    Parent-pointer array with union by rank and path compression.
    """

    def __init__(self, n: int):
        self.parent = list(range(n))
        self.rank = [0] * n

    def find(self, x: int) -> int:
        root = x
        while self.parent[root] != root:
            root = self.parent[root]
        # Path compression
        while self.parent[x] != root:
            self.parent[x], x = root, self.parent[x]
        return root

    def union(self, x: int, y: int) -> bool:
        """Merge the sets of x and y; return False if already joined."""
        px, py = self.find(x), self.find(y)
        if px == py:
            return False
        if self.rank[px] < self.rank[py]:
            px, py = py, px
        self.parent[py] = px
        if self.rank[px] == self.rank[py]:
            self.rank[px] += 1
        return True

    def components(self) -> list[list[int]]:
        """All sets, each as a list of members in ascending order."""
        groups: dict[int, list[int]] = defaultdict(list)
        for i in range(len(self.parent)):
            groups[self.find(i)].append(i)
        return list(groups.values())


def validate_near_threshold(near_threshold: float) -> float:
    threshold = float(near_threshold)
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"near_threshold must be between 0 and 1, got {near_threshold}")
    return threshold


def find_exact_groups(files: Iterable[ScannedFile]) -> list[list[ScannedFile]]:
    """
    Partition files by content hash.

    Args:
        files: Scanned files; files without a content hash are ignored

    Returns:
        One list per content hash shared by two or more files
    """
    by_hash: dict[str, list[ScannedFile]] = defaultdict(list)
    seen_paths: set[str] = set()
    for f in files:
        if not f.content_hash or f.path in seen_paths:
            continue
        seen_paths.add(f.path)
        by_hash[f.content_hash].append(f)
    return [members for members in by_hash.values() if len(members) > 1]


def _bit_matrix(candidates: list[ScannedFile]) -> tuple[list[ScannedFile], Optional[np.ndarray]]:
    """Parse perceptual hashes into a (n, bits) boolean matrix, dropping bad ones."""
    parsed: list[ScannedFile] = []
    rows: list[np.ndarray] = []
    for f in candidates:
        try:
            rows.append(hash_bits(f.perceptual_hash))
            parsed.append(f)
        except (ValueError, TypeError) as e:
            logger.debug(f"Skipping unparsable perceptual hash for {f.path}: {e}")
    if not rows:
        return [], None
    return parsed, np.stack(rows)


def _max_internal_distance(bits: np.ndarray, members: list[int]) -> float:
    """Largest normalized Hamming distance between any two members."""
    sub = bits[members]
    width = sub.shape[1]
    worst = 0
    for k in range(len(members) - 1):
        diffs = np.count_nonzero(sub[k + 1:] != sub[k], axis=1)
        worst = max(worst, int(diffs.max()))
    return worst / width


def find_near_groups(
    files: Iterable[ScannedFile],
    near_threshold: float = DEFAULT_NEAR_THRESHOLD,
) -> list[tuple[list[ScannedFile], float]]:
    """
    Find connected components of perceptually similar files.

    Args:
        files: Candidate files (only those with a perceptual hash are used)
        near_threshold: Maximum normalized Hamming distance for an edge

    Returns:
        List of (members, max internal distance) per component of size >= 2
    """
    threshold = validate_near_threshold(near_threshold)

    # Hashes of different widths are never compared with each other
    by_width: dict[int, list[ScannedFile]] = defaultdict(list)
    for f in files:
        if f.perceptual_hash:
            by_width[len(f.perceptual_hash)].append(f)

    results: list[tuple[list[ScannedFile], float]] = []
    for width_key in sorted(by_width):
        candidates = sorted(by_width[width_key], key=lambda f: f.path)
        parsed, bits = _bit_matrix(candidates)
        if bits is None or len(parsed) < 2:
            continue

        n, width = bits.shape
        uf = UnionFind(n)
        edges = 0
        for i in range(n - 1):
            distances = np.count_nonzero(bits[i + 1:] != bits[i], axis=1) / width
            for j in np.nonzero(distances <= threshold)[0]:
                if uf.union(i, i + 1 + int(j)):
                    edges += 1

        for members in uf.components():
            if len(members) < 2:
                continue
            results.append(
                ([parsed[m] for m in members], _max_internal_distance(bits, members))
            )

        logger.debug(f"Near grouping: {n:,} candidates, {edges:,} merging edges")

    return results


def group(
    files: Iterable[ScannedFile],
    near_threshold: float = DEFAULT_NEAR_THRESHOLD,
    include_near: bool = True,
) -> list[DuplicateGroup]:
    """
    Group hashed files into exact and near-duplicate groups.

    Args:
        files: All hashed files from a completed scan
        near_threshold: Maximum normalized perceptual distance (0-1)
        include_near: Set False to only report exact duplicates

    Returns:
        Exact groups first, then near groups, each ordered by suggested keep
        path; ids are assigned from 1 in that order. Members are listed in
        keep order, so the suggested keep is always the first member.

    Raises:
        ValueError: If near_threshold is outside [0, 1]

    Examples:
        >>> groups = group(files, near_threshold=0.1)
        >>> [g.kind.value for g in groups]
        ['exact', 'near']
    """
    validate_near_threshold(near_threshold)
    files = list(files)

    exact: list[tuple[list[ScannedFile], float]] = [
        (members, 0.0) for members in find_exact_groups(files)
    ]
    in_exact = {f.path for members, _ in exact for f in members}

    near: list[tuple[list[ScannedFile], float]] = []
    if include_near:
        near = find_near_groups(
            [f for f in files if f.path not in in_exact],
            near_threshold=near_threshold,
        )

    groups: list[DuplicateGroup] = []
    for kind, found in ((GroupKind.EXACT, exact), (GroupKind.NEAR, near)):
        built = []
        for members, distance in found:
            ordered = order_for_keep(members)
            built.append(DuplicateGroup(
                id=0,
                kind=kind,
                similarity=1.0 if kind == GroupKind.EXACT else 1.0 - distance,
                members=[f.path for f in ordered],
                suggested_keep=ordered[0].path,
            ))
        built.sort(key=lambda g: g.suggested_keep)
        groups.extend(built)

    for group_id, g in enumerate(groups, 1):
        g.id = group_id

    logger.info(
        f"Found {len(exact):,} exact and {len(near):,} near duplicate groups "
        f"among {len(files):,} files"
    )
    return groups


__all__ = [
    'UnionFind',
    'validate_near_threshold',
    'find_exact_groups',
    'find_near_groups',
    'group',
]
