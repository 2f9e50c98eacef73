"""
Collection Engine - Concurrency Utilities

This module provides the read-write lock that serializes every mutating
collection operation behind a single writer while letting queries share
the read side.
"""

import threading
import time
from collections import deque
from contextlib import contextmanager
from datetime import datetime, timezone
from threading import Condition, Lock
from typing import Any, Dict, Optional


class ConcurrencyError(Exception):
    """General concurrency operation exception."""
    pass


class LockMetrics:
    """Lock performance metrics."""

    def __init__(self):
        self.acquisition_count = 0
        self.contention_count = 0
        self.total_wait_time = 0.0
        self.max_wait_time = 0.0
        self.last_acquisition: Optional[datetime] = None
        self.lock_history = deque(maxlen=100)  # Last 100 lock events

    def record_acquisition(self, wait_time: float, contended: bool, mode: str) -> None:
        """Record lock acquisition metrics."""
        self.acquisition_count += 1
        self.total_wait_time += wait_time
        self.max_wait_time = max(self.max_wait_time, wait_time)
        self.last_acquisition = datetime.now(timezone.utc)

        if contended:
            self.contention_count += 1

        self.lock_history.append({
            'timestamp': self.last_acquisition,
            'mode': mode,
            'wait_time': wait_time,
            'contended': contended,
            'thread_id': threading.get_ident()
        })

    def get_contention_ratio(self) -> float:
        """Get lock contention ratio."""
        if self.acquisition_count == 0:
            return 0.0
        return self.contention_count / self.acquisition_count

    def get_average_wait_time(self) -> float:
        """Get average wait time."""
        if self.acquisition_count == 0:
            return 0.0
        return self.total_wait_time / self.acquisition_count


class ReadWriteLock:
    """
    Read-write lock with a reentrant writer.

    The thread holding the write side may re-acquire either side without
    blocking. Readers may re-enter their own read side. Upgrading a held
    read lock to a write lock is refused.
    """

    def __init__(self, name: str = "unnamed", timeout: float = 30.0):
        self.name = name
        self.timeout = timeout
        self._cond = Condition(Lock())
        self._readers: Dict[int, int] = {}
        self._reader_total = 0
        self._writer: Optional[int] = None
        self._write_depth = 0
        self._nested_reads = 0
        self._writers_waiting = 0
        self._metrics = LockMetrics()

    @contextmanager
    def read_lock(self, timeout: Optional[float] = None):
        """Acquire the shared side with a context manager."""
        if not self.acquire_read(timeout):
            raise ConcurrencyError(f"Timed out acquiring read lock '{self.name}'")
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_lock(self, timeout: Optional[float] = None):
        """Acquire the exclusive side with a context manager."""
        if not self.acquire_write(timeout):
            raise ConcurrencyError(f"Timed out acquiring write lock '{self.name}'")
        try:
            yield
        finally:
            self.release_write()

    def _wait(self, predicate, timeout: Optional[float]) -> bool:
        deadline = time.monotonic() + (self.timeout if timeout is None else timeout)
        while not predicate():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            self._cond.wait(remaining)
        return True

    def acquire_read(self, timeout: Optional[float] = None) -> bool:
        """Acquire read lock."""
        thread_id = threading.get_ident()
        start_time = time.monotonic()

        with self._cond:
            if self._writer == thread_id:
                self._nested_reads += 1
                return True

            if thread_id in self._readers:
                self._readers[thread_id] += 1
                self._reader_total += 1
                return True

            contended = self._writer is not None or self._writers_waiting > 0
            acquired = self._wait(
                lambda: self._writer is None and self._writers_waiting == 0,
                timeout
            )
            if not acquired:
                return False

            self._readers[thread_id] = 1
            self._reader_total += 1
            self._metrics.record_acquisition(time.monotonic() - start_time, contended, "read")
            return True

    def release_read(self) -> None:
        """Release read lock."""
        thread_id = threading.get_ident()

        with self._cond:
            if self._writer == thread_id and self._nested_reads > 0:
                self._nested_reads -= 1
                return

            if thread_id not in self._readers:
                raise ConcurrencyError("Thread does not hold read lock")

            self._readers[thread_id] -= 1
            self._reader_total -= 1
            if self._readers[thread_id] == 0:
                del self._readers[thread_id]

            if self._reader_total == 0:
                self._cond.notify_all()

    def acquire_write(self, timeout: Optional[float] = None) -> bool:
        """Acquire write lock."""
        thread_id = threading.get_ident()
        start_time = time.monotonic()

        with self._cond:
            if self._writer == thread_id:
                self._write_depth += 1
                return True

            if thread_id in self._readers:
                raise ConcurrencyError("Cannot upgrade a read lock to a write lock")

            contended = self._writer is not None or self._reader_total > 0
            self._writers_waiting += 1
            try:
                acquired = self._wait(
                    lambda: self._writer is None and self._reader_total == 0,
                    timeout
                )
            finally:
                self._writers_waiting -= 1

            if not acquired:
                # Readers blocked on a waiting writer may proceed now
                self._cond.notify_all()
                return False

            self._writer = thread_id
            self._write_depth = 1
            self._metrics.record_acquisition(time.monotonic() - start_time, contended, "write")
            return True

    def release_write(self) -> None:
        """Release write lock."""
        thread_id = threading.get_ident()

        with self._cond:
            if self._writer != thread_id:
                raise ConcurrencyError("Thread does not hold write lock")

            self._write_depth -= 1
            if self._write_depth == 0:
                self._writer = None
                self._nested_reads = 0
                self._cond.notify_all()

    def is_write_locked(self) -> bool:
        with self._cond:
            return self._writer is not None

    def get_metrics(self) -> Dict[str, Any]:
        """Get lock performance metrics."""
        with self._cond:
            return {
                'name': self.name,
                'readers': self._reader_total,
                'writer_active': self._writer is not None,
                'writers_waiting': self._writers_waiting,
                'acquisition_count': self._metrics.acquisition_count,
                'contention_count': self._metrics.contention_count,
                'contention_ratio': self._metrics.get_contention_ratio(),
                'average_wait_time': self._metrics.get_average_wait_time(),
                'max_wait_time': self._metrics.max_wait_time,
                'last_acquisition': self._metrics.last_acquisition
            }
