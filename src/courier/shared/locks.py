"""Per-key in-process locks.

Writes to the same booking are serialized; writes to different bookings
never contend. Locks are re-entrant within a thread. Each critical section
gets its own registry so the status lock and the invoicing lock are never
nested inside each other.

These locks only order writers inside one process. Across processes the
store's version check on save is what rejects the losing write.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class _Entry:
    __slots__ = ("lock", "holders")

    def __init__(self):
        self.lock = threading.RLock()
        self.holders = 0


class KeyedLocks:
    def __init__(self, name: str):
        self.name = name
        self._guard = threading.Lock()
        # Only keys with a holder or waiter are kept
        self._locks: dict[str, _Entry] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def _checkout(self, key: str) -> _Entry:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = _Entry()
            entry.holders += 1
            return entry

    def _checkin(self, key: str, entry: _Entry) -> None:
        with self._guard:
            entry.holders -= 1
            if entry.holders == 0:
                del self._locks[key]

    @contextmanager
    def hold(self, *keys: str) -> Iterator[None]:
        """Acquire the locks for ``keys`` in sorted order and release them on exit."""
        entries = [(key, self._checkout(key)) for key in sorted(set(map(str, keys)))]
        acquired = []
        try:
            for key, entry in entries:
                entry.lock.acquire()
                acquired.append((key, entry))
            yield
        finally:
            for _, entry in reversed(acquired):
                entry.lock.release()
            for key, entry in entries:
                self._checkin(key, entry)


status_locks = KeyedLocks("booking-status")
invoicing_locks = KeyedLocks("booking-invoicing")
invoice_locks = KeyedLocks("invoice")
