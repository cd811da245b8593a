"""
Hashing module for the scanner package.

Provides the content hash (SHA-256 over the raw bytes), the perceptual
hash (pHash over the decoded, luminance-downsampled image) and the
normalized Hamming distance used to compare perceptual hashes.
"""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from ..config import DEFAULT_HASH_SIZE, HASH_CHUNK_SIZE, HEIF_EXTENSIONS
from ..errors import ImageError, ImageErrorKind
from .dependencies import Image, imagehash, HAS_HEIF_SUPPORT, _logger


@dataclass(frozen=True)
class HashResult:
    """Everything the hasher learns about one file."""
    content_hash: str
    perceptual_hash: str
    width: int
    height: int
    format: str


def calculate_content_hash(filepath: str | Path, algorithm: str = 'sha256') -> str:
    """
    Calculate cryptographic hash of a file.

    Args:
        filepath: Path to the file
        algorithm: Hash algorithm to use (default: sha256)

    Returns:
        Hex digest of the file hash

    Raises:
        OSError: If the file cannot be read
    """
    hasher = hashlib.new(algorithm)
    with open(filepath, 'rb') as f:
        for chunk in iter(lambda: f.read(HASH_CHUNK_SIZE), b''):
            hasher.update(chunk)
    return hasher.hexdigest()


def calculate_perceptual_hash(img, hash_size: int = DEFAULT_HASH_SIZE) -> str:
    """
    Calculate the perceptual hash of an already opened image.

    Uses pHash, which is the most accurate imagehash variant for photos.

    Args:
        img: PIL image (already loaded)
        hash_size: Size of the hash (default 16, resulting in 256-bit hash)

    Returns:
        Hex string representation of the perceptual hash
    """
    if img.mode not in ('RGB', 'L'):
        img = img.convert('RGB')
    return str(imagehash.phash(img, hash_size=hash_size))


def hash_bits(perceptual_hash: str) -> np.ndarray:
    """Flat boolean bit array for a hex perceptual hash."""
    return imagehash.hex_to_hash(perceptual_hash).hash.flatten()


def perceptual_distance(hash_a: str, hash_b: str) -> float:
    """
    Normalized Hamming distance between two perceptual hashes.

    Args:
        hash_a: Hex perceptual hash
        hash_b: Hex perceptual hash of the same width

    Returns:
        Fraction of differing bits in [0, 1]; 0 means identical

    Raises:
        ValueError: If the hashes have different widths
    """
    bits_a = hash_bits(hash_a)
    bits_b = hash_bits(hash_b)
    if bits_a.size != bits_b.size:
        raise ValueError(
            f"Perceptual hashes differ in width: {bits_a.size} vs {bits_b.size} bits"
        )
    return float(np.count_nonzero(bits_a != bits_b)) / bits_a.size


def hash_file(filepath: str | Path, hash_size: int = DEFAULT_HASH_SIZE) -> HashResult:
    """
    Compute the content and perceptual hash of a single image file.

    Args:
        filepath: Path to the image
        hash_size: pHash size (bits = hash_size ** 2)

    Returns:
        HashResult with both hashes and the decoded dimensions

    Raises:
        ImageError: If the file cannot be read or decoded
    """
    filepath = str(filepath)

    try:
        content_hash = calculate_content_hash(filepath)
    except OSError as e:
        raise ImageError(ImageErrorKind.UNREADABLE, filepath, str(e)) from e

    ext = os.path.splitext(filepath)[1].lower()
    if ext in HEIF_EXTENSIONS and not HAS_HEIF_SUPPORT:
        raise ImageError(
            ImageErrorKind.UNSUPPORTED, filepath,
            "HEIC/HEIF support not installed (pip install pillow-heif)",
        )

    try:
        with Image.open(filepath) as img:
            # Force load to detect truncated/corrupt images early
            img.load()
            width, height = img.width, img.height
            fmt = img.format or ext.lstrip('.').upper()
            phash = calculate_perceptual_hash(img, hash_size=hash_size)
    except Image.UnidentifiedImageError as e:
        _logger.debug(f"Unidentified image {filepath}: {e}")
        raise ImageError(ImageErrorKind.UNSUPPORTED, filepath, f"Not a valid image file: {e}") from e
    except OSError as e:
        _logger.debug(f"Decode failed for {filepath}: {e}")
        raise ImageError(ImageErrorKind.CORRUPT, filepath, f"Corrupt or truncated image: {e}") from e
    except (ValueError, SyntaxError, Image.DecompressionBombError) as e:
        _logger.debug(f"Decode failed for {filepath}: {e}")
        raise ImageError(ImageErrorKind.CORRUPT, filepath, str(e)) from e

    return HashResult(
        content_hash=content_hash,
        perceptual_hash=phash,
        width=width,
        height=height,
        format=fmt,
    )


__all__ = [
    'HashResult',
    'calculate_content_hash',
    'calculate_perceptual_hash',
    'hash_bits',
    'perceptual_distance',
    'hash_file',
]
