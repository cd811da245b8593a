"""
Unit tests for content and perceptual hashing.
"""

import hashlib

import pytest

from photocull.errors import ImageError, ImageErrorKind
from photocull.scanner import (
    calculate_content_hash,
    hash_bits,
    hash_file,
    perceptual_distance,
)
from conftest import hex_with_flipped_bits, make_pattern_image


class TestCalculateContentHash:
    """Test calculate_content_hash function."""

    def test_identical_files_same_hash(self, sample_images):
        hash1 = calculate_content_hash(sample_images['identical1'])
        hash2 = calculate_content_hash(sample_images['identical2'])
        assert hash1 == hash2
        assert len(hash1) == 64  # SHA-256 hex length

    def test_matches_hashlib(self, sample_images):
        with open(sample_images['unique'], 'rb') as f:
            expected = hashlib.sha256(f.read()).hexdigest()
        assert calculate_content_hash(sample_images['unique']) == expected

    def test_different_files_different_hash(self, sample_images):
        assert calculate_content_hash(sample_images['identical1']) != calculate_content_hash(sample_images['unique'])

    def test_nonexistent_file_raises(self):
        with pytest.raises(OSError):
            calculate_content_hash("/nonexistent/file.jpg")


class TestPerceptualDistance:
    """Test perceptual_distance function."""

    BASE = "0f" * 32  # 256-bit hash

    def test_identical_is_zero(self):
        assert perceptual_distance(self.BASE, self.BASE) == 0.0

    def test_counts_differing_bits(self):
        other = hex_with_flipped_bits(self.BASE, 31)
        assert perceptual_distance(self.BASE, other) == pytest.approx(31 / 256)

    def test_symmetric(self):
        other = hex_with_flipped_bits(self.BASE, 10)
        assert perceptual_distance(self.BASE, other) == perceptual_distance(other, self.BASE)

    def test_all_bits_differ(self):
        inverted = hex_with_flipped_bits(self.BASE, 256)
        assert perceptual_distance(self.BASE, inverted) == 1.0

    def test_width_mismatch_raises(self):
        with pytest.raises(ValueError):
            perceptual_distance("0f" * 32, "0f" * 8)

    def test_hash_bits_width(self):
        assert hash_bits(self.BASE).size == 256


class TestHashFile:
    """Test hash_file function."""

    def test_valid_image(self, sample_images):
        result = hash_file(sample_images['unique'])
        assert result.width == 128
        assert result.height == 128
        assert result.format == 'PNG'
        assert len(result.content_hash) == 64
        assert len(result.perceptual_hash) == 64  # 256 bits as hex

    def test_hash_size_controls_width(self, sample_images):
        result = hash_file(sample_images['unique'], hash_size=8)
        assert len(result.perceptual_hash) == 16

    def test_reencoded_image_is_perceptually_close(self, sample_images):
        a = hash_file(sample_images['near1'])
        b = hash_file(sample_images['near2'])
        assert a.content_hash != b.content_hash
        assert perceptual_distance(a.perceptual_hash, b.perceptual_hash) <= 0.10

    def test_unrelated_images_are_far_apart(self, sample_images):
        a = hash_file(sample_images['identical1'])
        b = hash_file(sample_images['unique'])
        assert perceptual_distance(a.perceptual_hash, b.perceptual_hash) > 0.2

    def test_not_an_image(self, sample_images):
        with pytest.raises(ImageError) as exc_info:
            hash_file(sample_images['corrupt'])
        assert exc_info.value.kind in (ImageErrorKind.UNSUPPORTED, ImageErrorKind.CORRUPT)
        assert exc_info.value.path == sample_images['corrupt']

    def test_truncated_image(self, temp_dir):
        path = temp_dir / "truncated.png"
        make_pattern_image(seed=3).save(path, 'PNG')
        data = path.read_bytes()
        path.write_bytes(data[:len(data) // 2])
        with pytest.raises(ImageError):
            hash_file(path)

    def test_missing_file(self):
        with pytest.raises(ImageError) as exc_info:
            hash_file("/nonexistent/file.jpg")
        assert exc_info.value.kind == ImageErrorKind.UNREADABLE

    def test_rgba_image(self, temp_dir):
        path = temp_dir / "alpha.png"
        make_pattern_image(seed=4).convert('RGBA').save(path, 'PNG')
        assert hash_file(path).format == 'PNG'
