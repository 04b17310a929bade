"""
Scoped mutual exclusion with bounded waits.

Responsibility:
    Guards the shared loan ledger so that a payslip sync and the balance
    recalculation it triggers run as one critical section.  Acquisition
    waits at most ``timeout`` seconds; on expiry ``LockTimeoutError`` is
    raised and the caller abandons the cycle instead of blocking forever.

Architecture position:
    Kernel > Utils.  In-process only: one lock object per name, shared by
    every handler in the process via ``named_lock``.

Invariants enforced:
    - A lock is released on every exit path of ``hold()``.
    - Non-reentrant: a thread holding the lock and asking again times out.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager

from paytime_kernel.exceptions import LockTimeoutError
from paytime_kernel.logging_config import get_logger

logger = get_logger("utils.locking")

DEFAULT_LOCK_TIMEOUT_SECONDS = 30.0


class ScopedLock:
    """A named, non-reentrant lock acquired with a bounded wait."""

    def __init__(self, name: str):
        self.name = name
        self._lock = threading.Lock()

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def hold(self, timeout: float = DEFAULT_LOCK_TIMEOUT_SECONDS) -> Iterator[None]:
        """
        Hold the lock for the duration of the ``with`` block.

        Raises:
            LockTimeoutError: if the lock is not acquired within ``timeout``.
        """
        t0 = time.monotonic()
        if not self._lock.acquire(timeout=timeout):
            logger.warning(
                "lock_acquire_timeout",
                extra={"lock_name": self.name, "timeout_seconds": timeout},
            )
            raise LockTimeoutError(self.name, timeout)
        waited_ms = round((time.monotonic() - t0) * 1000, 2)
        logger.debug(
            "lock_acquired",
            extra={"lock_name": self.name, "waited_ms": waited_ms},
        )
        try:
            yield
        finally:
            self._lock.release()
            logger.debug("lock_released", extra={"lock_name": self.name})


_registry: dict[str, ScopedLock] = {}
_registry_lock = threading.Lock()


def named_lock(name: str) -> ScopedLock:
    """Return the process-wide lock registered under ``name``."""
    with _registry_lock:
        lock = _registry.get(name)
        if lock is None:
            lock = ScopedLock(name)
            _registry[name] = lock
        return lock
