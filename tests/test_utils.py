"""
Unit tests for validators, formatters and exporters.
"""

import csv
import json
import os

import pytest

from photocull.models import DuplicateGroup, GroupKind, ScannedFile
from photocull.utils import (
    export_results,
    format_number,
    format_similarity,
    format_time_estimate,
    validate_directory,
    validate_file_accessible,
    validate_path_in_directory,
    validate_quarantine_root,
    validate_scan_params,
    validate_threshold,
    validate_workers,
)


class TestValidators:
    def test_path_in_directory(self, temp_dir):
        assert validate_path_in_directory(str(temp_dir / "a" / "b.jpg"), str(temp_dir))
        assert validate_path_in_directory(str(temp_dir), str(temp_dir))
        assert not validate_path_in_directory(str(temp_dir.parent), str(temp_dir))

    def test_sibling_prefix_is_not_inside(self, temp_dir):
        assert not validate_path_in_directory(str(temp_dir / "photos2"), str(temp_dir / "photos"))

    def test_file_accessible(self, sample_images, photo_dir):
        assert validate_file_accessible(sample_images['unique']) == (True, "")
        assert validate_file_accessible(str(photo_dir / "missing.jpg")) == (False, "File does not exist")
        assert validate_file_accessible(str(photo_dir)) == (False, "Path is not a file")

    def test_directory(self, photo_dir, sample_images):
        assert validate_directory(str(photo_dir)) == (True, "")
        assert validate_directory("")[0] is False
        is_valid, error = validate_directory(str(photo_dir / "missing"))
        assert not is_valid and "not found" in error
        is_valid, error = validate_directory(sample_images['unique'])
        assert not is_valid and "not a directory" in error

    @pytest.mark.parametrize("value", [0.0, 0.1, 1.0, "0.5"])
    def test_threshold_valid(self, value):
        assert validate_threshold(value) == (True, "")

    @pytest.mark.parametrize("value", [-0.1, 1.01, 10, float("nan")])
    def test_threshold_out_of_range(self, value):
        assert validate_threshold(value) == (False, "Threshold must be between 0.0 and 1.0")

    def test_threshold_not_a_number(self):
        assert validate_threshold("abc") == (False, "Threshold must be a number")

    def test_workers(self):
        assert validate_workers(1) == (True, "")
        assert validate_workers(64) == (True, "")
        assert validate_workers(0)[0] is False
        assert validate_workers(65)[0] is False
        assert validate_workers("x") == (False, "Workers must be an integer")

    def test_quarantine_required(self, photo_dir):
        assert validate_quarantine_root(None, str(photo_dir)) == (
            False, "Quarantine directory is required for the move action")

    def test_quarantine_inside_scan_root_rejected(self, photo_dir):
        for inside in (photo_dir, photo_dir / "dupes"):
            is_valid, error = validate_quarantine_root(str(inside), str(photo_dir))
            assert not is_valid
            assert error.startswith("Quarantine directory must be outside the scanned directory")

    def test_quarantine_outside_scan_root(self, photo_dir, quarantine_dir):
        assert validate_quarantine_root(str(quarantine_dir), str(photo_dir)) == (True, "")

    def test_quarantine_is_a_file(self, temp_dir, photo_dir):
        target = temp_dir / "not_a_dir"
        target.write_text("x")
        is_valid, error = validate_quarantine_root(str(target), str(photo_dir))
        assert not is_valid and "not a directory" in error

    def test_scan_params(self, photo_dir):
        assert validate_scan_params(str(photo_dir), threshold=0.1, workers=4) == (True, "")
        assert validate_scan_params(str(photo_dir), threshold=2.0)[0] is False
        assert validate_scan_params(str(photo_dir), workers=0)[0] is False
        assert validate_scan_params(str(photo_dir / "missing"))[0] is False


class TestFormatters:
    def test_format_number(self):
        assert format_number(1234567) == "1,234,567"

    @pytest.mark.parametrize("seconds,expected", [(0.42, "0.4s"), (45, "45s"), (150, "2m 30s"), (3665, "1h 1m")])
    def test_format_time_estimate(self, seconds, expected):
        assert format_time_estimate(seconds) == expected

    def test_format_similarity(self):
        assert format_similarity(0.8789) == "87.9%"
        assert format_similarity(1.0) == "100.0%"


@pytest.fixture
def grouped(temp_dir):
    """Two groups and their scanned files."""
    files = [
        ScannedFile(path="/p/a.jpg", size=2048, mtime=1_500_000_000.0, format="JPEG",
                    width=640, height=480, content_hash="h1", perceptual_hash="00" * 32),
        ScannedFile(path="/p/b.jpg", size=2048, mtime=1_600_000_000.0, format="JPEG",
                    width=640, height=480, content_hash="h1", perceptual_hash="00" * 32),
        ScannedFile(path="/p/c.png", size=4096, mtime=1_500_000_000.0, format="PNG",
                    width=800, height=600, content_hash="h2", perceptual_hash="ff" * 32),
        ScannedFile(path="/p/d.jpg", size=1024, mtime=1_600_000_000.0, format="JPEG",
                    width=800, height=600, content_hash="h3", perceptual_hash="fe" + "ff" * 31),
    ]
    groups = [
        DuplicateGroup(id=1, kind=GroupKind.EXACT, similarity=1.0,
                       members=["/p/a.jpg", "/p/b.jpg"], suggested_keep="/p/a.jpg"),
        DuplicateGroup(id=2, kind=GroupKind.NEAR, similarity=0.9961,
                       members=["/p/c.png", "/p/d.jpg"], suggested_keep="/p/c.png"),
    ]
    return groups, {f.path: f for f in files}


class TestExporters:
    def test_txt(self, grouped, temp_dir):
        groups, files_by_path = grouped
        out = temp_dir / "report.txt"

        export_results(groups, files_by_path, out, 'txt')

        text = out.read_text(encoding="utf-8")
        assert text.startswith("DUPLICATE PHOTO REPORT")
        assert "EXACT DUPLICATES" in text and "NEAR DUPLICATES" in text
        assert "[KEEP] /p/a.jpg" in text
        assert "[DUPE] /p/b.jpg" in text
        assert "Group 2 (99.6%)" in text

    def test_csv(self, grouped, temp_dir):
        groups, files_by_path = grouped
        out = temp_dir / "report.csv"

        export_results(groups, files_by_path, out, 'csv')

        with open(out, newline='', encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == 4
        assert rows[0] == {
            'group_id': '1', 'match_type': 'exact', 'similarity': '1.0000', 'status': 'keep',
            'path': '/p/a.jpg', 'width': '640', 'height': '480', 'file_size': '2048',
        }
        assert [r['status'] for r in rows] == ['keep', 'duplicate', 'keep', 'duplicate']
        assert rows[3]['match_type'] == 'near'

    def test_json_store_rows(self, grouped, temp_dir):
        groups, files_by_path = grouped
        out = temp_dir / "report.json"

        export_results(groups, files_by_path, out, 'json')

        with open(out, encoding="utf-8") as f:
            payload = json.load(f)
        assert set(payload) == {'files', 'groups', 'memberships'}
        assert [row['path'] for row in payload['files']] == ["/p/a.jpg", "/p/b.jpg", "/p/c.png", "/p/d.jpg"]
        assert payload['files'][0]['hash'] == "h1"
        assert payload['groups'][1] == {
            'group_id': 2, 'group_type': 'near', 'similarity': 99.61, 'suggested_keep': '/p/c.png',
        }
        assert {'group_id': 1, 'path': '/p/b.jpg'} in payload['memberships']

    def test_without_file_metadata(self, grouped, temp_dir):
        groups, _ = grouped
        out = temp_dir / "report.txt"
        export_results(groups, None, out)
        assert "[KEEP] /p/a.jpg\n" in out.read_text(encoding="utf-8")

    def test_unknown_format(self, grouped, temp_dir):
        groups, files_by_path = grouped
        with pytest.raises(ValueError):
            export_results(groups, files_by_path, temp_dir / "report.xml", 'xml')
        assert not os.path.exists(temp_dir / "report.xml")
