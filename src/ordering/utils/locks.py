"""Per-key mutual exclusion for commands that race on shared aggregates.

Protean's memory and SQL providers persist a unit of work when the command
handler returns. Two handlers loading the same cart, coupon or order can
therefore both pass their checks before either commits. Running the whole
``current_domain.process`` call under a per-key lock closes that window.
"""

import threading
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager

from protean.utils.globals import current_domain


class KeyedLocks:
    """A lazily populated map of re-entrant locks, one per key."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}
        self._held = threading.local()

    def lock_for(self, key: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, *keys: str) -> Iterator[None]:
        """Acquire the locks for every key, always in sorted order."""
        with ExitStack() as stack:
            for key in sorted({k for k in keys if k}):
                stack.enter_context(self.lock_for(key))
                self._count(key, 1)
                stack.callback(self._count, key, -1)
            yield

    def is_held(self, key: str) -> bool:
        """Whether the calling thread currently holds ``key``."""
        return self._counts().get(key, 0) > 0

    def _counts(self) -> dict[str, int]:
        if not hasattr(self._held, "counts"):
            self._held.counts = {}
        return self._held.counts

    def _count(self, key: str, delta: int) -> None:
        counts = self._counts()
        counts[key] = counts.get(key, 0) + delta
        if counts[key] <= 0:
            del counts[key]

    def clear(self) -> None:
        with self._guard:
            self._locks.clear()


_locks = KeyedLocks()


def cart_key(customer_id) -> str:
    return f"cart:{customer_id}"


def coupon_key(coupon_id) -> str:
    return f"coupon:{coupon_id}"


def order_key(order_id) -> str:
    return f"order:{order_id}"


def hold(*keys: str):
    return _locks.hold(*keys)


def is_held(key: str) -> bool:
    return _locks.is_held(key)


def process_exclusively(command, *keys: str):
    """Process ``command`` synchronously while holding the locks for ``keys``."""
    with _locks.hold(*keys):
        return current_domain.process(command, asynchronous=False)
