"""Per-key serialization for create-or-get paths."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


class KeyedLocks:
    """One lock per key, created on demand and dropped when nobody holds it.

    Concurrent synchronization calls for the same xid run one at a time, so two
    deliveries of a new object cannot both observe "absent" and both create it.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        # key -> [lock, holders]
        self._locks: dict[str, list] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        entry[0].acquire()
        try:
            yield
        finally:
            entry[0].release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
