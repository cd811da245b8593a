"""
Utilities package for photocull.

Provides:
- formatters: Human-readable formatting for numbers, time, sizes and similarity
- validators: Input validation for CLI arguments
- selection: Keep-selection ordering for duplicate groups
- exporters: Export grouping results to files
"""

from __future__ import annotations

from . import exporters
from . import formatters
from . import selection
from . import validators

from .exporters import EXPORT_FORMATS, export_results
from .formatters import format_number, format_similarity, format_size, format_time_estimate
from .selection import keep_order_key, order_for_keep, select_keep
from .validators import (
    validate_directory,
    validate_file_accessible,
    validate_path_in_directory,
    validate_quarantine_root,
    validate_scan_params,
    validate_threshold,
    validate_workers,
)

__all__ = [
    # Submodules
    'exporters',
    'formatters',
    'selection',
    'validators',
    # Formatters
    'format_number',
    'format_similarity',
    'format_size',
    'format_time_estimate',
    # Selection
    'keep_order_key',
    'order_for_keep',
    'select_keep',
    # Validators
    'validate_directory',
    'validate_file_accessible',
    'validate_path_in_directory',
    'validate_quarantine_root',
    'validate_scan_params',
    'validate_threshold',
    'validate_workers',
    # Exporters
    'EXPORT_FORMATS',
    'export_results',
]
