"""
Scanner package for photocull.

Walks directory trees, hashes every supported image on a bounded worker
pool and streams the results back as they are produced.

Public API:
- scan: Lazy scan yielding ScannedFile / ProgressEvent / ScanError / ImageError
- collect_scan: Run a scan to completion and split its output
- ScanOptions: Recursion, depth, extension and worker settings
- iter_image_files / find_image_files: Discover image files in directories
- hash_file: Content + perceptual hash of a single file
- calculate_content_hash: SHA-256 of a file's bytes
- perceptual_distance: Normalized Hamming distance of two perceptual hashes
- has_heif_support: Check if HEIC/HEIF support is available
"""

from __future__ import annotations

from .file_discovery import DiscoveredFile, iter_image_files, find_image_files, normalize_extensions
from .hashing import (
    HashResult,
    calculate_content_hash,
    calculate_perceptual_hash,
    hash_bits,
    hash_file,
    perceptual_distance,
)
from .analysis import analyze_file
from .parallel import ScanOptions, ScanItem, scan, collect_scan

# Import dependencies for has_heif_support function
from .dependencies import HAS_HEIF_SUPPORT


def has_heif_support() -> bool:
    """Check if HEIC/HEIF support is available."""
    return HAS_HEIF_SUPPORT


__all__ = [
    # File discovery
    'DiscoveredFile',
    'iter_image_files',
    'find_image_files',
    'normalize_extensions',
    # Hashing
    'HashResult',
    'calculate_content_hash',
    'calculate_perceptual_hash',
    'hash_bits',
    'hash_file',
    'perceptual_distance',
    # Scanning
    'analyze_file',
    'ScanOptions',
    'ScanItem',
    'scan',
    'collect_scan',
    # Feature detection
    'has_heif_support',
]
