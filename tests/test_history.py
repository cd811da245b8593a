"""
Tests for the append-only history log.
"""

import threading

import pytest

from photocull.errors import HistoryWriteError
from photocull.history import HistoryLog
from photocull.models import CullAction, HistoryRecord


def _record(n, action=CullAction.MOVE):
    return HistoryRecord(
        timestamp=f"2024-01-01T00:00:{n:02d}Z",
        kept=f"/photos/keep{n}.jpg",
        culled=[f"/photos/dupe{n}.jpg"],
        action=action,
        quarantine_root="/quarantine" if action == CullAction.MOVE else None,
        destinations={f"/photos/dupe{n}.jpg": f"/quarantine/dupe{n}.jpg"} if action == CullAction.MOVE else {},
    )


class TestAppendAndList:
    def test_empty_log(self, history_path):
        log = HistoryLog(history_path)
        assert log.list() == []
        assert log.last() is None
        assert len(log) == 0

    def test_indexes_are_positions(self, history_path):
        log = HistoryLog(history_path)
        assert [log.append(_record(n)) for n in range(3)] == [0, 1, 2]
        assert [i for i, _ in log.list()] == [0, 1, 2]
        assert [r.kept for _, r in log.list()] == ["/photos/keep0.jpg", "/photos/keep1.jpg", "/photos/keep2.jpg"]

    def test_creates_parent_directory(self, history_path):
        assert not history_path.parent.exists()
        HistoryLog(history_path).append(_record(0))
        assert history_path.exists()

    def test_persists_across_instances(self, history_path):
        HistoryLog(history_path).append(_record(0))
        HistoryLog(history_path).append(_record(1, CullAction.DELETE))

        records = HistoryLog(history_path).list()
        assert len(records) == 2
        assert records[1][1].action == CullAction.DELETE
        assert records[0][1] == _record(0)

    def test_one_line_per_record(self, history_path):
        log = HistoryLog(history_path)
        log.append(_record(0))
        log.append(_record(1))
        lines = history_path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        assert history_path.read_bytes().endswith(b"\n")

    def test_get_and_last(self, history_path):
        log = HistoryLog(history_path)
        for n in range(2):
            log.append(_record(n))
        assert log.get(1).kept == "/photos/keep1.jpg"
        assert log.get(2) is None
        assert log.get(-1) is None
        assert log.last()[0] == 1


class TestRecovery:
    def test_torn_tail_is_ignored(self, history_path):
        log = HistoryLog(history_path)
        log.append(_record(0))
        with open(history_path, "ab") as f:
            f.write(b'{"timestamp": "2024-01-0')

        assert len(log.list()) == 1

    def test_torn_tail_truncated_before_next_append(self, history_path):
        log = HistoryLog(history_path)
        log.append(_record(0))
        with open(history_path, "ab") as f:
            f.write(b'{"timestamp": "2024-01-0')

        assert log.append(_record(1)) == 1
        records = log.list()
        assert [r.kept for _, r in records] == ["/photos/keep0.jpg", "/photos/keep1.jpg"]
        assert b"2024-01-0{" not in history_path.read_bytes()

    def test_corrupt_line_is_skipped(self, history_path):
        log = HistoryLog(history_path)
        log.append(_record(0))
        with open(history_path, "ab") as f:
            f.write(b"not json at all\n")
        log.append(_record(1))

        records = log.list()
        assert [i for i, _ in records] == [0, 1]
        assert records[1][1].kept == "/photos/keep1.jpg"

    def test_blank_lines_are_skipped(self, history_path):
        history_path.parent.mkdir(parents=True)
        history_path.write_bytes(b"\n\n")
        log = HistoryLog(history_path)
        assert log.append(_record(0)) == 0


class TestRecordCounting:
    def test_appends_do_not_reread_the_log(self, history_path, monkeypatch):
        log = HistoryLog(history_path)
        log.append(_record(0))

        def no_reads():
            raise AssertionError("log was re-read")

        monkeypatch.setattr(log, '_read_lines', no_reads)
        assert [log.append(_record(n)) for n in range(1, 4)] == [1, 2, 3]

    def test_appends_from_another_instance_are_counted(self, history_path):
        first = HistoryLog(history_path)
        second = HistoryLog(history_path)

        assert first.append(_record(0)) == 0
        assert second.append(_record(1)) == 1
        assert first.append(_record(2)) == 2
        assert [i for i, _ in HistoryLog(history_path).list()] == [0, 1, 2]


class TestConcurrency:
    def test_concurrent_appends_get_unique_indexes(self, history_path):
        log = HistoryLog(history_path)
        indexes = []
        lock = threading.Lock()

        def worker(n):
            index = log.append(_record(n))
            with lock:
                indexes.append(index)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(indexes) == list(range(20))
        assert len(log.list()) == 20


class TestWriteFailure:
    def test_unwritable_path_raises(self, temp_dir):
        target = temp_dir / "history_is_a_directory"
        target.mkdir()
        log = HistoryLog(target)

        with pytest.raises(HistoryWriteError) as exc_info:
            log.append(_record(0))
        assert exc_info.value.path == str(target)
