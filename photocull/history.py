"""
Append-only history log for photocull.

Every executed cull group is written as one JSON object per line
(JSON Lines). The log is the only source of truth for restoration, so:

- An append is a single write of one complete line, followed by flush and
  fsync, before the index is returned. A crash can at worst leave a torn
  final line without its newline; readers ignore it and the next append
  truncates it first, so it can never glue onto a new record.
- Record indexes are never stored. They are the 0-based position of each
  valid record, derived when the file is read.
- Records are never rewritten, reordered or compacted.

Appends from concurrent cull workers are serialized by one lock, so
record order equals completion order.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Optional

from .config import HISTORY_FILE
from .errors import HistoryWriteError
from .models import HistoryRecord

logger = logging.getLogger(__name__)


def _fsync_directory(directory: str) -> None:
    """Make a newly created file's directory entry durable (POSIX only)."""
    if os.name == 'nt':
        return
    fd = os.open(directory, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


class HistoryLog:
    """
    Durable, append-only log of HistoryRecord entries.

    Usage:
        log = HistoryLog('/path/to/history.jsonl')
        index = log.append(record)
        for index, record in log.list():
            ...
    """

    def __init__(self, path: Optional[str | Path] = None):
        """
        Initialize the history log.

        Args:
            path: Path of the JSON Lines file. Uses the default if None.
        """
        self.path = str(path or HISTORY_FILE)
        self._lock = threading.Lock()
        # (file size, valid records) as of this instance's last append
        self._known_count: Optional[tuple[int, int]] = None

    def __repr__(self) -> str:
        return f"HistoryLog({self.path!r})"

    def _read_lines(self) -> tuple[list[bytes], bytes]:
        """Return (complete lines, torn trailing fragment)."""
        try:
            with open(self.path, 'rb') as f:
                data = f.read()
        except FileNotFoundError:
            return [], b''

        if not data:
            return [], b''
        if data.endswith(b'\n'):
            return data.split(b'\n')[:-1], b''
        cut = data.rfind(b'\n') + 1
        return (data[:cut].split(b'\n')[:-1] if cut else []), data[cut:]

    def _parse(self, lines: list[bytes]) -> list[HistoryRecord]:
        records: list[HistoryRecord] = []
        for lineno, raw in enumerate(lines, 1):
            if not raw.strip():
                continue
            try:
                records.append(HistoryRecord.from_dict(json.loads(raw.decode('utf-8'))))
            except (ValueError, KeyError, TypeError) as e:
                logger.warning(f"Skipping corrupt history line {lineno} in {self.path}: {e}")
        return records

    def _truncate_torn_tail(self) -> None:
        """Drop a trailing partial line left by an interrupted append."""
        try:
            size = os.path.getsize(self.path)
        except FileNotFoundError:
            return
        if size == 0:
            return

        with open(self.path, 'rb+') as f:
            f.seek(-1, os.SEEK_END)
            if f.read(1) == b'\n':
                return
            f.seek(0)
            data = f.read()
            keep = data.rfind(b'\n') + 1
            logger.warning(
                f"Truncating {size - keep} bytes of incomplete history record in {self.path}"
            )
            f.truncate(keep)
            f.flush()
            os.fsync(f.fileno())

    def _record_count(self) -> int:
        """
        Number of valid records, reparsing only if the file changed size.

        Caller must hold the lock and have truncated any torn tail.
        """
        try:
            size = os.path.getsize(self.path)
        except FileNotFoundError:
            return 0
        if self._known_count is not None and self._known_count[0] == size:
            return self._known_count[1]
        lines, _ = self._read_lines()
        return len(self._parse(lines))

    def append(self, record: HistoryRecord) -> int:
        """
        Durably append one record.

        Args:
            record: HistoryRecord to write

        Returns:
            Index of the new record (its 0-based position in the log)

        Raises:
            HistoryWriteError: If the record could not be written and synced
        """
        line = json.dumps(record.to_dict(), ensure_ascii=False, sort_keys=True) + '\n'
        payload = line.encode('utf-8')

        with self._lock:
            try:
                directory = os.path.dirname(os.path.abspath(self.path))
                os.makedirs(directory, exist_ok=True)
                created = not os.path.exists(self.path)

                self._truncate_torn_tail()
                index = self._record_count()

                with open(self.path, 'ab') as f:
                    f.write(payload)
                    f.flush()
                    os.fsync(f.fileno())
                    self._known_count = (f.tell(), index + 1)

                if created:
                    _fsync_directory(directory)
            except OSError as e:
                self._known_count = None
                raise HistoryWriteError(self.path, str(e)) from e

        logger.debug(f"History record {index} appended to {self.path}")
        return index

    def list(self) -> list[tuple[int, HistoryRecord]]:
        """
        Read every valid record in append order.

        Returns:
            List of (index, HistoryRecord) tuples
        """
        lines, torn = self._read_lines()
        if torn:
            logger.warning(f"Ignoring incomplete trailing record in {self.path}")
        return list(enumerate(self._parse(lines)))

    def get(self, index: int) -> Optional[HistoryRecord]:
        """Return the record at index, or None if there is none."""
        if index < 0:
            return None
        records = self.list()
        if index >= len(records):
            return None
        return records[index][1]

    def last(self) -> Optional[tuple[int, HistoryRecord]]:
        """Return the most recent (index, record), or None if empty."""
        records = self.list()
        return records[-1] if records else None

    def __len__(self) -> int:
        return len(self.list())


__all__ = ['HistoryLog']
