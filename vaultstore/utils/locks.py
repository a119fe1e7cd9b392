"""
Locking Primitives
==================

Thread synchronisation helpers used by the crypto and storage layers.

Components:
    - ReadWriteLock: many concurrent readers, one exclusive writer
    - KeyedLock: one mutex per key (e.g. per file id), created on demand
      and discarded once no thread holds or waits on it
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List


class ReadWriteLock:
    """
    Writer-preferring read/write lock.

    Readers proceed concurrently while no writer holds or waits for the
    lock. A waiting writer blocks new readers, so lifecycle transitions
    cannot be starved by a steady stream of crypto calls.

    Usage:
        lock = ReadWriteLock()

        with lock.read_locked():
            use_key()

        with lock.write_locked():
            replace_key()
    """

    __slots__ = ("_cond", "_readers", "_writer", "_writers_waiting")

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            if self._readers <= 0:
                raise RuntimeError("release_read() without matching acquire_read()")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            if not self._writer:
                raise RuntimeError("release_write() without matching acquire_write()")
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class KeyedLock:
    """
    Mutual exclusion scoped to a key.

    Operations on distinct keys never contend; operations on the same
    key are serialised. Entries are reference counted so the registry
    does not grow with every key ever seen.
    """

    __slots__ = ("_guard", "_locks")

    def __init__(self) -> None:
        self._guard = threading.Lock()
        # key -> [lock, refcount]
        self._locks: Dict[str, List] = {}

    @contextmanager
    def locked(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._locks[key] = entry
            entry[1] += 1

        lock: threading.Lock = entry[0]
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
