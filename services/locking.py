"""
Read/write lock guarding the catalog database.

Any number of readers may hold the lock together; a writer holds it
alone. Waiting writers block new readers so a steady stream of queries
cannot starve mutations.

The lock is not reentrant: do not take read() while already holding
read() or write() on the same thread.
"""

import threading
from contextlib import contextmanager


class ReadWriteLock:
    """Writer-preferring readers/writer lock."""

    def __init__(self, shared_reads: bool = True):
        # With shared_reads=False readers are exclusive too; used when all
        # sessions share one DBAPI connection (in-memory SQLite).
        self.shared_reads = shared_reads
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @contextmanager
    def read(self):
        if not self.shared_reads:
            with self.write():
                yield
            return

        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self):
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()

    @property
    def readers(self) -> int:
        with self._cond:
            return self._readers
