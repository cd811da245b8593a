"""
Per-invocation context for scans and culls.

Replaces a process-wide state singleton with an explicit object that is
passed into every scan/cull call, so independent scans never share a
cancellation flag or progress counters.
"""

import threading
from typing import Optional


class CancellationToken:
    """Single-writer, multi-reader cancellation flag."""

    def __init__(self):
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self):
        self._event.set()


class ProgressCounters:
    """
    Aggregate progress counters.

    Counters only ever increase; every update is taken under a lock so
    readers always see a consistent (processed, discovered) pair.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._processed = 0
        self._discovered = 0
        self._cache_hits = 0
        self.current_file = ''

    def add_discovered(self, n: int = 1) -> int:
        with self._lock:
            self._discovered += n
            return self._discovered

    def add_processed(self, n: int = 1, current_file: Optional[str] = None) -> int:
        with self._lock:
            self._processed += n
            if current_file is not None:
                self.current_file = current_file
            return self._processed

    def add_cache_hit(self) -> int:
        with self._lock:
            self._cache_hits += 1
            return self._cache_hits

    def snapshot(self) -> tuple[int, int]:
        """Return (processed, discovered)."""
        with self._lock:
            return self._processed, self._discovered

    @property
    def processed(self) -> int:
        with self._lock:
            return self._processed

    @property
    def discovered(self) -> int:
        with self._lock:
            return self._discovered

    @property
    def cache_hits(self) -> int:
        with self._lock:
            return self._cache_hits


class ScanContext:
    """
    Cancellation token plus progress counters for one scan or cull.

    Usage:
        ctx = ScanContext()
        for item in scan(root, context=ctx):
            if user_pressed_stop:
                ctx.cancel()
    """

    def __init__(self, token: Optional[CancellationToken] = None):
        self.token = token or CancellationToken()
        self.progress = ProgressCounters()

    @property
    def cancel_requested(self) -> bool:
        """Check if cancel has been requested."""
        return self.token.cancelled

    def cancel(self):
        """Request cancellation of the current scan."""
        self.token.cancel()


__all__ = ['CancellationToken', 'ProgressCounters', 'ScanContext']
