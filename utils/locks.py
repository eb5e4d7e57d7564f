"""Keyed mutual exclusion for check-then-act sequences."""
from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional


class KeyedLocks:
    """One re-entrant lock per key, created on first use."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.RLock] = {}

    def _lock_for(self, key: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: Optional[str]) -> Iterator[None]:
        if key is None:
            yield
            return
        lock = self._lock_for(str(key))
        with lock:
            yield


class LockRegistry:
    """Locks for every entity kind the loan services serialize on.

    Acquisition order is always equipment, then loan, then fine.
    """

    def __init__(self) -> None:
        self.equipment = KeyedLocks("equipment")
        self.loan = KeyedLocks("loan")
        self.fine = KeyedLocks("fine")


__all__ = ["KeyedLocks", "LockRegistry"]
