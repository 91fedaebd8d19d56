"""
Purpose: Per-record mutual exclusion.
What it does:
Hands out one threading.Lock per key (e.g. "assignment:<id>") so that
read-modify-write on a single record is serialized while different records
never block each other. Locks are created on first use and dropped once
nobody holds or waits on them.
"""

from __future__ import annotations

from contextlib import contextmanager
from threading import Lock
from typing import Dict, Iterator


class KeyedLockManager:

    def __init__(self):
        self._registry_lock = Lock()
        self._locks: Dict[str, Lock] = {}
        self._users: Dict[str, int] = {}

    @contextmanager
    def lock(self, key: str) -> Iterator[None]:
        with self._registry_lock:
            key_lock = self._locks.get(key)
            if key_lock is None:
                key_lock = Lock()
                self._locks[key] = key_lock
            self._users[key] = self._users.get(key, 0) + 1

        key_lock.acquire()
        try:
            yield
        finally:
            key_lock.release()
            with self._registry_lock:
                self._users[key] -= 1
                if self._users[key] == 0:
                    del self._users[key]
                    del self._locks[key]

    def active_keys(self) -> int:
        """Number of keys currently held or waited on."""
        with self._registry_lock:
            return len(self._locks)


def assignment_lock_key(assignment_id: str) -> str:
    return f"assignment:{assignment_id}"


def order_lock_key(order_id: str) -> str:
    return f"order:{order_id}"
