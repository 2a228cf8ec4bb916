"""
KeyedLockRegistry -- per-key in-process mutexes.

Responsibility:
    Serializes commands on the same order (or location) within one process
    while letting commands on different keys run in parallel.

Invariants enforced:
    - At most one holder per key at a time.
    - Entries are reference-counted and dropped when the last holder and
      waiter leave, so the registry does not grow with every order id.

Callers take order locks before location locks, and both before opening a
database transaction.
"""

import threading
from collections.abc import Hashable
from contextlib import contextmanager
from typing import Iterator

from supply_kernel.logging_config import get_logger

logger = get_logger("services.locks")


class _Entry:
    __slots__ = ("lock", "refs")

    def __init__(self):
        self.lock = threading.Lock()
        self.refs = 0


class KeyedLockRegistry:
    """A dictionary of mutexes keyed by id."""

    def __init__(self, name: str):
        self.name = name
        self._mutex = threading.Lock()
        self._entries: dict[Hashable, _Entry] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        entry = self._checkout(key)
        try:
            entry.lock.acquire()
            try:
                logger.debug("lock_acquired", extra={"registry": self.name, "key": str(key)})
                yield
            finally:
                entry.lock.release()
        finally:
            self._checkin(key, entry)

    def active_keys(self) -> int:
        with self._mutex:
            return len(self._entries)

    def _checkout(self, key: Hashable) -> _Entry:
        with self._mutex:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.refs += 1
            return entry

    def _checkin(self, key: Hashable, entry: _Entry) -> None:
        with self._mutex:
            entry.refs -= 1
            if entry.refs == 0:
                del self._entries[key]
