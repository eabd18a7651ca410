"""Per-order mutual exclusion within one process.

Every read-modify-write of an existing order runs while holding that order's
lock, so a webhook settlement and a farmer status update handled by the same
worker queue up instead of racing to a version conflict. Across processes
the aggregate version check is what keeps writes serial. Locks are created on
first use and dropped once nobody holds or waits for them.
"""

import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from shared.errors import OrderBusyError

logger = structlog.get_logger(__name__)

DEFAULT_LOCK_TIMEOUT_SECONDS = 10.0


def lock_timeout_from_env() -> float:
    return float(os.environ.get("ORDER_LOCK_TIMEOUT_SECONDS", DEFAULT_LOCK_TIMEOUT_SECONDS))


class _Slot:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class OrderLocks:
    """Reference-counted registry of one lock per order id."""

    def __init__(self, timeout: float | None = None) -> None:
        self.timeout = lock_timeout_from_env() if timeout is None else timeout
        self._guard = threading.Lock()
        self._slots: dict[str, _Slot] = {}

    @contextmanager
    def hold(self, order_id: str) -> Iterator[None]:
        key = str(order_id)
        with self._guard:
            slot = self._slots.setdefault(key, _Slot())
            slot.users += 1

        try:
            if not slot.lock.acquire(timeout=self.timeout):
                logger.warning("order_lock_timeout", order_id=key, timeout=self.timeout)
                raise OrderBusyError(f"Order {key} is busy, retry shortly")
            try:
                yield
            finally:
                slot.lock.release()
        finally:
            with self._guard:
                slot.users -= 1
                if slot.users == 0:
                    del self._slots[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._slots)
