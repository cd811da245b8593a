"""
CLI workflow orchestration for photocull.

Provides the CLIOrchestrator class that runs one subcommand from argument
parsing through scanning, grouping, culling or restoring, and reporting.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from pathlib import Path
from typing import Optional

from ..context import ScanContext
from ..cull import execute, plan, summarize
from ..database import CacheStats, HashCache
from ..errors import RestoreError
from ..grouping import group
from ..history import HistoryLog
from ..models import CullAction, DuplicateGroup, OperationStatus, ProgressEvent, RestoreStatus, ScannedFile
from ..restore import restore
from ..scanner import ScanOptions, collect_scan
from ..scanner.dependencies import make_progress_bar
from ..user_config import get_user_config
from ..utils.exporters import export_results
from ..utils.formatters import format_time_estimate
from ..utils.validators import validate_quarantine_root, validate_scan_params
from .arg_parser import parse_arguments
from .interactive import confirm_action
from .reporting import (
    print_cull_results,
    print_duplicate_report,
    print_history,
    print_restore_results,
    print_scan_errors,
)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_UNRECORDED = 2


def setup_logging(verbose: bool = False) -> logging.Logger:
    """
    Configure logging for the CLI.

    Args:
        verbose: Enable verbose (DEBUG level) logging

    Returns:
        Configured logger instance
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )
    return logging.getLogger(__name__)


class _ScanProgressBar:
    """tqdm bar driven by ProgressEvents; the total grows during discovery."""

    def __init__(self, enabled: bool):
        self._pbar = make_progress_bar("Hashing photos") if enabled else None

    def __call__(self, event: ProgressEvent) -> None:
        if self._pbar is None:
            return
        self._pbar.total = event.discovered
        self._pbar.n = event.processed
        self._pbar.refresh()

    def close(self) -> None:
        if self._pbar is not None:
            self._pbar.close()


class CLIOrchestrator:
    """
    Orchestrates one CLI invocation.

    Phases for scan and cull:
    1. Setup & argument parsing
    2. Validation
    3. Scanning (streamed, optionally cached)
    4. Grouping & reporting
    5. Planning & execution (cull only)
    """

    def __init__(self, argv: Optional[list[str]] = None):
        self.argv = argv
        self.logger = None
        self.args = None
        self.config = get_user_config()
        self.files: list[ScannedFile] = []
        self.groups: list[DuplicateGroup] = []

    def run(self) -> int:
        """
        Execute the selected subcommand.

        Returns:
            0 for success, 1 for validation errors or failed files,
            2 if a cull left files moved/deleted without a history record
        """
        self._setup_phase()

        handlers = {
            'scan': self._run_scan,
            'cull': self._run_cull,
            'history': self._run_history,
            'restore': self._run_restore,
        }
        try:
            return handlers[self.args.command]()
        except KeyboardInterrupt:
            self.logger.warning("Interrupted.")
            return EXIT_ERROR

    def _setup_phase(self) -> None:
        """Phase 1: Parse arguments, setup logging, resolve defaults."""
        self.args = parse_arguments(self.argv)
        self.logger = setup_logging(self.args.verbose)
        self.show_progress = not self.args.no_progress
        self.history = HistoryLog(self.args.history_file or self.config.history_file)

    # Scan / cull ---------------------------------------------------------

    def _validate_scan_phase(self) -> int:
        """Phase 2: Validate scan arguments and fill in configured defaults."""
        args = self.args

        if args.threshold is None:
            args.threshold = self.config.near_threshold
        if args.workers is None:
            args.workers = self.config.workers

        is_valid, error = validate_scan_params(str(args.directory), args.threshold, args.workers)
        if not is_valid:
            self.logger.error(error)
            return EXIT_ERROR

        if args.max_depth is not None and args.max_depth < 0:
            self.logger.error("--max-depth must be >= 0")
            return EXIT_ERROR

        return EXIT_OK

    def _excluded_dirs(self) -> tuple[str, ...]:
        names = tuple(self.config.excluded_dirs) + tuple(self.args.exclude or ())
        if names:
            self.logger.debug(f"Skipping directories named: {', '.join(names)}")
        return names

    def _open_cache(self) -> Optional[HashCache]:
        """Open the hash cache, or scan without one if it is unusable."""
        db_path = self.config.cache_db_file
        try:
            return HashCache(db_path)
        except (sqlite3.Error, OSError) as e:
            self.logger.warning(f"Hash cache {db_path} is unusable ({e}); hashing all photos fresh")
            return None

    def _scan_phase(self) -> None:
        """Phase 3: Stream the scan, feeding the progress bar."""
        args = self.args
        options = ScanOptions(
            recursive=not args.no_recursive,
            max_depth=args.max_depth,
            extensions=args.ext,
            workers=args.workers,
            hash_size=self.config.hash_size,
            use_cache=not args.no_cache,
            excluded_dirs=self._excluded_dirs(),
        )
        cache = None if args.no_cache else self._open_cache()
        if args.no_cache:
            self.logger.info("Cache disabled - hashing all photos fresh")

        self.logger.info(f"Scanning {args.directory} for photos...")
        context = ScanContext()
        progress = _ScanProgressBar(self.show_progress)
        started = time.monotonic()
        try:
            self.files, errors, _ = collect_scan(
                args.directory,
                options=options,
                context=context,
                cache=cache,
                progress_callback=progress,
            )
        finally:
            progress.close()
            if cache is not None:
                cache.close()

        self.logger.info(f"Hashed {len(self.files):,} photos in {format_time_estimate(time.monotonic() - started)}")
        if cache is not None:
            stats = CacheStats(
                cache_hits=context.progress.cache_hits,
                cache_misses=len(self.files) - context.progress.cache_hits,
                total_files=len(self.files),
            )
            self.logger.info(
                f"Cache: {stats.cache_hits:,} of {stats.total_files:,} photos reused ({stats.hit_rate:.0f}%)"
            )
        if errors:
            self.logger.warning(f"Skipped {len(errors):,} files or directories")
        print_scan_errors(errors)

    def _group_phase(self) -> None:
        """Phase 4: Group, report and export."""
        args = self.args
        self.groups = group(self.files, near_threshold=args.threshold, include_near=not args.exact_only)
        files_by_path = {f.path: f for f in self.files}

        print_duplicate_report(self.groups, files_by_path)

        if args.export:
            export_results(self.groups, files_by_path, args.export, args.export_format)
            self.logger.info(f"Results exported to: {args.export}")

    def _run_scan(self) -> int:
        exit_code = self._validate_scan_phase()
        if exit_code != EXIT_OK:
            return exit_code

        self._scan_phase()
        if not self.files:
            self.logger.info("No photos found.")
            return EXIT_OK

        self._group_phase()
        return EXIT_OK

    def _validate_cull_phase(self) -> int:
        args = self.args
        if args.action != CullAction.MOVE.value:
            return EXIT_OK

        if args.quarantine is None:
            args.quarantine = Path(self.config.quarantine_dir)
        is_valid, error = validate_quarantine_root(str(args.quarantine), str(args.directory))
        if not is_valid:
            self.logger.error(error)
            return EXIT_ERROR
        return EXIT_OK

    def _run_cull(self) -> int:
        exit_code = self._validate_scan_phase()
        if exit_code == EXIT_OK:
            exit_code = self._validate_cull_phase()
        if exit_code != EXIT_OK:
            return exit_code

        self._scan_phase()
        if not self.files:
            self.logger.info("No photos found.")
            return EXIT_OK

        self._group_phase()
        return self._cull_phase()

    def _cull_phase(self) -> int:
        """Phase 5: Plan, confirm and execute."""
        args = self.args
        dry_run = not args.no_dry_run

        plans = plan(
            self.groups,
            action=args.action,
            quarantine_root=args.quarantine if args.action == CullAction.MOVE.value else None,
            preserve_structure=args.preserve_structure,
            dry_run=dry_run,
            source_root=args.directory.resolve(),
        )
        total = sum(len(p.operations) for p in plans)
        if not total:
            self.logger.info("Nothing to cull.")
            return EXIT_OK

        if dry_run:
            self.logger.info("[DRY RUN MODE - No files will be modified]")
        elif not args.yes and not confirm_action(args.action, total):
            self.logger.info("Aborted.")
            return EXIT_OK

        results = execute(plans, history=None if dry_run else self.history)
        print_cull_results(results)

        counts = summarize(results)
        self.logger.info(
            f"Cull finished: {counts['success']:,} succeeded, {counts['failed']:,} failed"
            + (f", {counts['planned']:,} planned" if counts['planned'] else "")
        )

        if counts[OperationStatus.UNRECORDED.value]:
            self.logger.critical(
                f"{counts['unrecorded']:,} files were changed but are NOT in the history log "
                f"({self.history.path}); they cannot be restored automatically"
            )
            return EXIT_UNRECORDED
        return EXIT_ERROR if counts['failed'] else EXIT_OK

    # History / restore ---------------------------------------------------

    def _run_history(self) -> int:
        records = self.history.list()
        if self.args.limit is not None and self.args.limit >= 0:
            records = records[-self.args.limit:] if self.args.limit else []
        print_history(records)
        return EXIT_OK

    def _run_restore(self) -> int:
        try:
            results = restore(self.history, self.args.target)
        except RestoreError as e:
            self.logger.error(str(e))
            return EXIT_ERROR

        print_restore_results(results)
        failed = any(r.status in (RestoreStatus.FAILED, RestoreStatus.MISSING) for r in results)
        return EXIT_ERROR if failed else EXIT_OK


__all__ = ['CLIOrchestrator', 'setup_logging', 'EXIT_OK', 'EXIT_ERROR', 'EXIT_UNRECORDED']
