"""
Lock Registry - Keyed Exclusion Scopes

One re-entrant lock per key (``project:<id>``, ``application:<id>``,
``user:<nric>``, ...). Locks for an operation are always taken in sorted key
order, so two operations that share keys cannot deadlock.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


def project_key(project_id: str) -> str:
    return f"project:{project_id}"


def application_key(application_id: str) -> str:
    return f"application:{application_id}"


def user_key(user_id: str) -> str:
    """Scope for an applicant's submissions and an officer's registrations."""
    return f"user:{user_id}"


def registration_key(registration_id: str) -> str:
    return f"registration:{registration_id}"


def withdrawal_key(request_id: str) -> str:
    return f"withdrawal:{request_id}"


class LockRegistry:
    """Creates and hands out keyed RLocks."""

    def __init__(self):
        self._locks: dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, key: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, *keys: str) -> Iterator[None]:
        """Acquire every key in sorted order; release in reverse."""
        ordered = sorted(set(keys))
        acquired: list[threading.RLock] = []
        try:
            for key in ordered:
                lock = self._lock_for(key)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()

    def __len__(self) -> int:
        return len(self._locks)
