"""
Parallel scanning for the scanner package.

Streams discovered files into a bounded thread pool that runs the hasher,
and yields hashed files, errors and progress events as they happen.
Discovery and hashing overlap: files are submitted as soon as they are
found, and at most ``2 * workers`` hash tasks are in flight at once.
"""

from __future__ import annotations

import logging
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union

from ..config import DEFAULT_HASH_SIZE, DEFAULT_WORKERS
from ..context import ScanContext
from ..errors import ImageError, ImageErrorKind, ScanError
from ..models import ProgressEvent, ScannedFile, ScanPhase
from .analysis import analyze_file
from .file_discovery import DiscoveredFile, iter_image_files

logger = logging.getLogger(__name__)

ScanItem = Union[ScannedFile, ProgressEvent, ScanError, ImageError]


@dataclass
class ScanOptions:
    """
    Options for a single scan.

    Attributes:
        recursive: Descend into subdirectories
        max_depth: Deepest directory level to enter (None = unlimited)
        extensions: Extension allow-list (None = all supported formats)
        workers: Hash worker pool size
        hash_size: pHash size (bits = hash_size ** 2)
        use_cache: Consult the hash cache when one is supplied
        excluded_dirs: Subdirectory names never descended into
    """
    recursive: bool = True
    max_depth: Optional[int] = None
    extensions: Optional[Iterable[str]] = None
    workers: int = DEFAULT_WORKERS
    hash_size: int = DEFAULT_HASH_SIZE
    use_cache: bool = True
    excluded_dirs: Iterable[str] = ()


def _event(context: ScanContext, phase: ScanPhase, current_file: str = "") -> ProgressEvent:
    processed, discovered = context.progress.snapshot()
    return ProgressEvent(phase=phase, processed=processed, discovered=discovered, current_file=current_file)


def _harvest(
    pending: dict[Future, DiscoveredFile],
    context: ScanContext,
    phase: ScanPhase,
    block: bool,
    newly_hashed: list[ScannedFile],
) -> Iterator[ScanItem]:
    """Yield results (and a progress event) for every finished hash task."""
    if not pending:
        return
    if block:
        done, _ = wait(list(pending), return_when=FIRST_COMPLETED)
    else:
        done = [f for f in pending if f.done()]

    for future in done:
        discovered = pending.pop(future)
        try:
            scanned = future.result()
        except ImageError as e:
            context.progress.add_processed(current_file=discovered.path)
            yield e
        except Exception as e:
            logger.debug(f"Unexpected failure hashing {discovered.path}: {e}")
            context.progress.add_processed(current_file=discovered.path)
            yield ImageError(ImageErrorKind.CORRUPT, discovered.path, str(e))
        else:
            context.progress.add_processed(current_file=discovered.path)
            newly_hashed.append(scanned)
            yield scanned
        yield _event(context, phase, discovered.path)


def _drop_queued(pending: dict[Future, DiscoveredFile]) -> None:
    """Cancel hash tasks that have not started yet and forget them."""
    for future in list(pending):
        if future.cancel():
            logger.debug(f"Skipped hashing {pending[future].path} after cancel")
            del pending[future]


def scan(
    root_path: str | Path,
    options: Optional[ScanOptions] = None,
    context: Optional[ScanContext] = None,
    cache=None,
) -> Iterator[ScanItem]:
    """
    Scan a directory tree and hash every supported image in parallel.

    Args:
        root_path: Directory to scan
        options: ScanOptions (defaults used when None)
        context: ScanContext providing cancellation and progress counters
        cache: Optional HashCache; unchanged files are not re-hashed

    Yields:
        ScannedFile for each hashed file, ScanError/ImageError for each
        non-fatal problem, and ProgressEvent snapshots. The last item is
        always a ProgressEvent with phase COMPLETE or CANCELLED.

    Examples:
        >>> ctx = ScanContext()
        >>> files = [x for x in scan('/photos', context=ctx) if isinstance(x, ScannedFile)]
    """
    options = options or ScanOptions()
    context = context or ScanContext()
    workers = max(1, int(options.workers))
    max_in_flight = workers * 2
    use_cache = cache is not None and options.use_cache

    pending: dict[Future, DiscoveredFile] = {}
    newly_hashed: list[ScannedFile] = []
    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix='photocull-hash')

    try:
        walker = iter_image_files(
            root_path,
            recursive=options.recursive,
            max_depth=options.max_depth,
            extensions=options.extensions,
            context=context,
            excluded_dirs=options.excluded_dirs,
        )

        for item in walker:
            if context.cancel_requested:
                break
            if isinstance(item, ScanError):
                yield item
                continue

            context.progress.add_discovered()
            yield _event(context, ScanPhase.DISCOVERY, item.path)

            # The consumer may cancel while suspended on the event above
            if context.cancel_requested:
                break

            cached = cache.get(item.path, hash_size=options.hash_size) if use_cache else None
            if cached is not None:
                context.progress.add_processed(current_file=item.path)
                context.progress.add_cache_hit()
                yield cached
                yield _event(context, ScanPhase.DISCOVERY, item.path)
            else:
                pending[executor.submit(analyze_file, item, options.hash_size)] = item

            # Bound in-flight work, harvest whatever already finished
            yield from _harvest(
                pending, context, ScanPhase.DISCOVERY,
                block=len(pending) >= max_in_flight,
                newly_hashed=newly_hashed,
            )

        # Barrier: let in-flight hashes finish; after a cancel, queued ones are dropped
        while pending:
            if context.cancel_requested:
                _drop_queued(pending)
                if not pending:
                    break
            yield from _harvest(pending, context, ScanPhase.HASHING, block=True, newly_hashed=newly_hashed)

    finally:
        executor.shutdown(wait=True, cancel_futures=True)
        if use_cache and newly_hashed:
            cache.put_batch(newly_hashed, hash_size=options.hash_size)

    final_phase = ScanPhase.CANCELLED if context.cancel_requested else ScanPhase.COMPLETE
    processed, discovered = context.progress.snapshot()
    logger.info(
        f"Scan {final_phase.value}: {processed:,} of {discovered:,} files processed"
        + (f" ({context.progress.cache_hits:,} from cache)" if context.progress.cache_hits else "")
    )
    yield _event(context, final_phase)


def collect_scan(
    root_path: str | Path,
    options: Optional[ScanOptions] = None,
    context: Optional[ScanContext] = None,
    cache=None,
    progress_callback=None,
) -> tuple[list[ScannedFile], list[Union[ScanError, ImageError]], ProgressEvent]:
    """
    Run a scan to completion and split its output.

    Args:
        progress_callback: Optional callable receiving each ProgressEvent

    Returns:
        Tuple of (hashed files, errors, final progress event)
    """
    files: list[ScannedFile] = []
    errors: list[Union[ScanError, ImageError]] = []
    last_event = ProgressEvent(phase=ScanPhase.DISCOVERY, processed=0, discovered=0)

    for item in scan(root_path, options=options, context=context, cache=cache):
        if isinstance(item, ScannedFile):
            files.append(item)
        elif isinstance(item, ProgressEvent):
            last_event = item
            if progress_callback:
                progress_callback(item)
        else:
            errors.append(item)

    return files, errors, last_event


__all__ = ['ScanOptions', 'ScanItem', 'scan', 'collect_scan']
