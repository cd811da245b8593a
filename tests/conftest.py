"""
Pytest configuration and shared fixtures for test suite.
"""

import os
import shutil
import tempfile
from pathlib import Path

import numpy as np
import pytest
from PIL import Image


def make_pattern_image(seed: int, size: int = 128) -> Image.Image:
    """
    Random image: a 32x32 noise tile upscaled with bicubic filtering.

    Different seeds give perceptually unrelated images; the same seed
    re-encoded (e.g. as JPEG) stays perceptually close.
    """
    rng = np.random.default_rng(seed)
    tile = rng.integers(0, 256, size=(32, 32, 3), dtype=np.uint8)
    return Image.fromarray(tile).resize((size, size), Image.BICUBIC)


def set_mtime(path, mtime: float) -> None:
    """Set both access and modification time of a file."""
    os.utime(path, (mtime, mtime))


def hex_with_flipped_bits(base_hex: str, bits: int) -> str:
    """Return base_hex with its first `bits` bits inverted."""
    width = len(base_hex) * 4
    value = int(base_hex, 16) ^ (((1 << bits) - 1) << (width - bits))
    return f"{value:0{len(base_hex)}x}"


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests (resolved, so it matches scanned paths)."""
    tmpdir = tempfile.mkdtemp()
    yield Path(tmpdir).resolve()
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def photo_dir(temp_dir):
    """Empty directory to scan, separate from quarantine and history."""
    path = temp_dir / "photos"
    path.mkdir()
    return path


@pytest.fixture
def quarantine_dir(temp_dir):
    """Quarantine location outside the scanned directory (not created yet)."""
    return temp_dir / "quarantine"


@pytest.fixture
def history_path(temp_dir):
    return temp_dir / "state" / "history.jsonl"


@pytest.fixture
def sample_images(photo_dir):
    """
    Create a set of sample images for testing.

    Returns:
        dict with paths to:
        - identical1.png, identical2.png (exact duplicates, identical1 older)
        - near1.png, near2.jpg (same picture, different encoding)
        - unique.png (unrelated picture)
        - corrupt.jpg (not an image despite the extension)
        - notes.txt (not an image extension)
    """
    images = {}

    base = make_pattern_image(seed=0)
    path1 = photo_dir / "identical1.png"
    base.save(path1, 'PNG')
    images['identical1'] = str(path1)

    path2 = photo_dir / "identical2.png"
    shutil.copyfile(path1, path2)
    images['identical2'] = str(path2)

    set_mtime(path1, 1_600_000_000)
    set_mtime(path2, 1_700_000_000)

    near = make_pattern_image(seed=1)
    path3 = photo_dir / "near1.png"
    near.save(path3, 'PNG')
    images['near1'] = str(path3)

    path4 = photo_dir / "near2.jpg"
    near.save(path4, 'JPEG', quality=100, subsampling=0)
    images['near2'] = str(path4)

    path5 = photo_dir / "unique.png"
    make_pattern_image(seed=2).save(path5, 'PNG')
    images['unique'] = str(path5)

    path6 = photo_dir / "corrupt.jpg"
    path6.write_bytes(b"definitely not a jpeg")
    images['corrupt'] = str(path6)

    path7 = photo_dir / "notes.txt"
    path7.write_text("not an image")
    images['notes'] = str(path7)

    return images


@pytest.fixture
def duplicate_pair(photo_dir):
    """
    a.jpg and b.jpg with identical bytes; a.jpg is older.

    Returns:
        Tuple of (a path, b path) as strings
    """
    a = photo_dir / "a.jpg"
    b = photo_dir / "b.jpg"
    make_pattern_image(seed=7).save(a, 'JPEG', quality=90)
    shutil.copyfile(a, b)
    set_mtime(a, 1_500_000_000)
    set_mtime(b, 1_600_000_000)
    return str(a), str(b)


@pytest.fixture
def temp_cache_db(temp_dir):
    """Create a temporary database file for cache tests."""
    return str(temp_dir / "test_cache.db")


@pytest.fixture(autouse=True)
def isolated_user_config(temp_dir, monkeypatch):
    """Keep tests away from ~/.photocull and any PHOTOCULL_* settings."""
    for key in list(os.environ):
        if key.startswith('PHOTOCULL_'):
            monkeypatch.delenv(key)
    monkeypatch.setenv('PHOTOCULL_CONFIG_DIR', str(temp_dir / "config"))
    monkeypatch.setenv('PHOTOCULL_CACHE_DB', str(temp_dir / "config" / "hash_cache.db"))
    monkeypatch.setenv('PHOTOCULL_HISTORY_FILE', str(temp_dir / "config" / "history.jsonl"))

    from photocull.user_config import get_user_config
    get_user_config().reload()
    yield
    get_user_config().reload()
