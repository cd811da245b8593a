"""
Unit tests for discovery and the streaming scanner.
"""

import os
import sys
from pathlib import Path

import pytest
from PIL import Image

from photocull.context import ScanContext
from photocull.errors import ImageError, ScanError, ScanErrorKind
from photocull.models import ProgressEvent, ScannedFile, ScanPhase
from photocull.scanner import (
    DiscoveredFile,
    ScanOptions,
    collect_scan,
    find_image_files,
    iter_image_files,
    normalize_extensions,
    scan,
)

needs_symlinks = pytest.mark.skipif(sys.platform == 'win32', reason="symlinks need privileges on Windows")


def _write_png(path: Path, color='green'):
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new('RGB', (10, 10), color=color).save(path)


class TestNormalizeExtensions:
    def test_lowercases_and_adds_dot(self):
        assert normalize_extensions(['JPG', '.Png', ' ']) == {'.jpg', '.png'}

    def test_default_is_all_supported(self):
        assert '.jpg' in normalize_extensions(None)


class TestFindImageFiles:
    """Test find_image_files / iter_image_files."""

    def test_filters_by_extension(self, sample_images, photo_dir):
        files = find_image_files(photo_dir)
        names = sorted(os.path.basename(f) for f in files)
        assert names == ['corrupt.jpg', 'identical1.png', 'identical2.png', 'near1.png', 'near2.jpg', 'unique.png']

    def test_paths_are_absolute(self, sample_images, photo_dir):
        assert all(os.path.isabs(f) for f in find_image_files(photo_dir))

    def test_extension_allow_list(self, sample_images, photo_dir):
        files = find_image_files(photo_dir, extensions=['.JPG'])
        assert sorted(os.path.basename(f) for f in files) == ['corrupt.jpg', 'near2.jpg']

    def test_recursive_search(self, photo_dir):
        _write_png(photo_dir / "top.png")
        _write_png(photo_dir / "sub" / "deep.png")

        assert len(find_image_files(photo_dir, recursive=True)) == 2
        files = find_image_files(photo_dir, recursive=False)
        assert [os.path.basename(f) for f in files] == ['top.png']

    def test_max_depth(self, photo_dir):
        _write_png(photo_dir / "0.png")
        _write_png(photo_dir / "a" / "1.png")
        _write_png(photo_dir / "a" / "b" / "2.png")

        def names(depth):
            return sorted(os.path.basename(f) for f in find_image_files(photo_dir, max_depth=depth))

        assert names(0) == ['0.png']
        assert names(1) == ['0.png', '1.png']
        assert names(None) == ['0.png', '1.png', '2.png']

    def test_empty_directory(self, photo_dir):
        assert find_image_files(photo_dir) == []

    def test_excluded_directories(self, photo_dir):
        _write_png(photo_dir / "keep.png")
        _write_png(photo_dir / "duplicates" / "old.png")
        _write_png(photo_dir / "a" / "duplicates" / "older.png")
        _write_png(photo_dir / "duplicates_not" / "kept.png")

        def names(excluded):
            return sorted(os.path.basename(f) for f in find_image_files(photo_dir, excluded_dirs=excluded))

        assert names(None) == ['keep.png', 'kept.png', 'old.png', 'older.png']
        assert names(['duplicates']) == ['keep.png', 'kept.png']

    def test_excluded_name_does_not_apply_to_root(self, temp_dir):
        root = temp_dir / "duplicates"
        _write_png(root / "x.png")
        assert len(find_image_files(root, excluded_dirs=['duplicates'])) == 1

    def test_root_not_a_directory(self, sample_images):
        items = list(iter_image_files(sample_images['unique']))
        assert len(items) == 1
        assert items[0].kind == ScanErrorKind.NOT_A_DIRECTORY

    def test_missing_root(self, temp_dir):
        items = list(iter_image_files(temp_dir / "missing"))
        assert len(items) == 1
        assert isinstance(items[0], ScanError)

    def test_discovered_metadata(self, sample_images, photo_dir):
        items = [i for i in iter_image_files(photo_dir) if isinstance(i, DiscoveredFile)]
        unique = next(i for i in items if i.path.endswith('unique.png'))
        assert unique.size == os.path.getsize(sample_images['unique'])
        assert unique.extension == '.png'

    @needs_symlinks
    def test_symlink_loop_reported_and_skipped(self, photo_dir):
        _write_png(photo_dir / "sub" / "img.png")
        os.symlink(photo_dir, photo_dir / "sub" / "loop")

        items = list(iter_image_files(photo_dir))
        files = [i for i in items if isinstance(i, DiscoveredFile)]
        errors = [i for i in items if isinstance(i, ScanError)]

        assert [os.path.basename(f.path) for f in files] == ['img.png']
        assert len(errors) == 1
        assert errors[0].kind == ScanErrorKind.SYMLINK_LOOP

    @needs_symlinks
    def test_file_reached_twice_is_yielded_once(self, photo_dir, temp_dir):
        outside = temp_dir / "outside"
        _write_png(outside / "shared.png")
        os.symlink(outside, photo_dir / "link1")
        os.symlink(outside, photo_dir / "link2")

        files = find_image_files(photo_dir)
        assert files == [str(outside / "shared.png")]

    @needs_symlinks
    def test_dangling_symlink_is_an_error(self, photo_dir):
        os.symlink(photo_dir / "gone.png", photo_dir / "dangling.png")
        errors = [i for i in iter_image_files(photo_dir) if isinstance(i, ScanError)]
        assert len(errors) == 1
        assert errors[0].kind == ScanErrorKind.UNREADABLE

    @pytest.mark.skipif(sys.platform == 'win32' or os.geteuid() == 0, reason="needs POSIX permissions, non-root")
    def test_unreadable_directory_does_not_stop_scan(self, photo_dir):
        _write_png(photo_dir / "ok.png")
        locked = photo_dir / "locked"
        _write_png(locked / "hidden.png")
        locked.chmod(0)
        try:
            items = list(iter_image_files(photo_dir))
        finally:
            locked.chmod(0o755)

        assert any(isinstance(i, DiscoveredFile) and i.path.endswith('ok.png') for i in items)
        assert any(isinstance(i, ScanError) and i.kind == ScanErrorKind.PERMISSION_DENIED for i in items)


class TestScan:
    """Test the streaming scan generator."""

    def test_yields_files_errors_and_final_event(self, sample_images, photo_dir):
        items = list(scan(photo_dir, ScanOptions(workers=2)))

        files = [i for i in items if isinstance(i, ScannedFile)]
        image_errors = [i for i in items if isinstance(i, ImageError)]
        assert len(files) == 5
        assert all(f.is_hashed for f in files)
        assert [e.path for e in image_errors] == [sample_images['corrupt']]

        last = items[-1]
        assert isinstance(last, ProgressEvent)
        assert last.phase == ScanPhase.COMPLETE
        assert last.processed == last.discovered == 6

    def test_progress_never_decreases(self, sample_images, photo_dir):
        events = [i for i in scan(photo_dir, ScanOptions(workers=3)) if isinstance(i, ProgressEvent)]
        processed = [e.processed for e in events]
        discovered = [e.discovered for e in events]
        assert processed == sorted(processed)
        assert discovered == sorted(discovered)
        assert all(e.processed <= e.discovered for e in events)

    def test_scanned_file_metadata(self, sample_images, photo_dir):
        files, _, _ = collect_scan(photo_dir)
        by_name = {f.filename: f for f in files}
        f = by_name['identical1.png']
        assert f.size == os.path.getsize(sample_images['identical1'])
        assert f.mtime == pytest.approx(1_600_000_000)
        assert (f.width, f.height) == (128, 128)
        assert by_name['identical1.png'].content_hash == by_name['identical2.png'].content_hash

    def test_cancel_before_start(self, sample_images, photo_dir):
        ctx = ScanContext()
        ctx.cancel()
        items = list(scan(photo_dir, context=ctx))
        assert not any(isinstance(i, ScannedFile) for i in items)
        assert items[-1].phase == ScanPhase.CANCELLED

    def test_cancel_mid_scan_stops_submitting(self, photo_dir, monkeypatch):
        import time
        from photocull.scanner import parallel

        for n in range(8):
            _write_png(photo_dir / f"img{n:02d}.png", color=(n * 30, 0, 0))

        real_analyze = parallel.analyze_file

        def slow_analyze(discovered, hash_size):
            time.sleep(0.3)
            return real_analyze(discovered, hash_size)

        monkeypatch.setattr(parallel, 'analyze_file', slow_analyze)

        ctx = ScanContext()
        after_cancel = []
        seen = []
        for item in scan(photo_dir, ScanOptions(workers=1), context=ctx):
            seen.append(item)
            if ctx.cancel_requested:
                if isinstance(item, ScannedFile):
                    after_cancel.append(item)
            elif isinstance(item, ProgressEvent) and item.phase == ScanPhase.DISCOVERY and item.discovered == 2:
                ctx.cancel()

        files = [i for i in seen if isinstance(i, ScannedFile)]
        assert seen[-1].phase == ScanPhase.CANCELLED
        # Only the one file already being hashed by the single worker completes
        assert len(after_cancel) <= 1
        assert len(files) <= 2
        assert seen[-1].processed == len(files)

    def test_cancel_drops_queued_hashes(self):
        import threading
        from concurrent.futures import ThreadPoolExecutor
        from photocull.scanner.file_discovery import DiscoveredFile as Found
        from photocull.scanner.parallel import _drop_queued

        release = threading.Event()
        started = threading.Event()

        def blocker():
            started.set()
            release.wait(5)

        with ThreadPoolExecutor(max_workers=1) as pool:
            running = pool.submit(blocker)
            started.wait(5)
            queued = pool.submit(lambda: None)
            pending = {
                running: Found('/a.png', 1, 0.0, '.png'),
                queued: Found('/b.png', 1, 0.0, '.png'),
            }
            _drop_queued(pending)
            release.set()

        assert list(pending) == [running]
        assert queued.cancelled()

    def test_collect_scan_callback(self, sample_images, photo_dir):
        events = []
        files, errors, last = collect_scan(photo_dir, progress_callback=events.append)
        assert len(files) == 5
        assert len(errors) == 1
        assert last is events[-1]
        assert last.phase == ScanPhase.COMPLETE

    def test_results_independent_of_worker_count(self, sample_images, photo_dir):
        one, _, _ = collect_scan(photo_dir, ScanOptions(workers=1))
        many, _, _ = collect_scan(photo_dir, ScanOptions(workers=4))
        assert {(f.path, f.content_hash, f.perceptual_hash) for f in one} == \
               {(f.path, f.content_hash, f.perceptual_hash) for f in many}

    def test_separate_contexts_do_not_share_counters(self, sample_images, photo_dir):
        ctx_a, ctx_b = ScanContext(), ScanContext()
        list(scan(photo_dir, context=ctx_a))
        assert ctx_a.progress.processed == 6
        assert ctx_b.progress.processed == 0
