"""HostSemaphore — fixed-size lock slot table for a single host.

Each slot is either empty (``None``) or holds the id of the process using
it.  When every slot is taken, holders whose process has died are reclaimed
for the new requester instead of waiting forever on a release that will
never come.

Usage::

    pool = HostSemaphore("debian", capacity=2, probe=SignalProbe())
    pool.acquire(os.getpid())
    try:
        ...
    finally:
        pool.release(os.getpid())
"""

from __future__ import annotations

import threading
import time
from typing import Hashable

from host_semaphore.exceptions import (
    AcquireTimeoutError,
    DuplicateHolderError,
    LockReleaseError,
)
from host_semaphore.logging import get_logger
from host_semaphore.probe import ProcessProbe, SignalProbe

log = get_logger(__name__)

EMPTY_MARKER = "empty"


class HostSemaphore:
    """Slot table arbitrating one host's concurrency, tolerant of dead holders.

    Slots are scanned lowest index first, both when looking for an empty
    slot and when looking for a dead holder to reclaim.  ``acquire``,
    ``release`` and ``cleanup`` run under a single condition variable.
    """

    def __init__(
        self,
        host: str,
        capacity: int,
        probe: ProcessProbe | None = None,
        *,
        poll_interval: float = 0.1,
        max_poll_interval: float = 2.0,
    ) -> None:
        if capacity < 1:
            raise ValueError(f"capacity for host '{host}' must be >= 1, got {capacity}")
        # A zero interval would turn the wait into a hot probe loop.
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be > 0, got {poll_interval}")
        self.host = host
        self.capacity = capacity
        self._probe = probe or SignalProbe()
        self._poll_interval = poll_interval
        self._max_poll_interval = max(max_poll_interval, poll_interval)
        self._slots: list[Hashable | None] = [None] * capacity
        self._cond = threading.Condition()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def slots(self) -> tuple[Hashable | None, ...]:
        """Snapshot of the slot table; ``None`` marks an empty slot."""
        with self._cond:
            return tuple(self._slots)

    @property
    def holders(self) -> tuple[Hashable, ...]:
        with self._cond:
            return tuple(h for h in self._slots if h is not None)

    @property
    def in_use(self) -> int:
        return len(self.holders)

    @property
    def available(self) -> int:
        return self.capacity - self.in_use

    def report(self) -> list[str]:
        """Return one line per slot, in slot order.  Does not mutate."""
        lines = []
        for index, holder in enumerate(self.slots):
            shown = EMPTY_MARKER if holder is None else holder
            lines.append(f"{self.host} slot {index}: {shown}")
        return lines

    # ------------------------------------------------------------------
    # Locking protocol
    # ------------------------------------------------------------------

    def acquire(self, holder_id: Hashable, timeout: float | None = None) -> int:
        """Occupy a slot for *holder_id* and return its index.

        Blocks while every slot is held by a live process.  Raises
        :class:`AcquireTimeoutError` if *timeout* seconds pass first.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        interval = self._poll_interval

        with self._cond:
            for index, holder in enumerate(self._slots):
                if holder == holder_id:
                    raise DuplicateHolderError(self.host, holder_id, index)

            while True:
                index = self._claim(holder_id)
                if index is not None:
                    return index

                wait_for = interval
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        log.warning(
                            "acquire_timeout",
                            host=self.host,
                            holder_id=holder_id,
                            timeout_seconds=timeout,
                        )
                        raise AcquireTimeoutError(self.host, holder_id, timeout)
                    wait_for = min(wait_for, remaining)

                log.debug(
                    "acquire_waiting",
                    host=self.host,
                    holder_id=holder_id,
                    holders=list(self._slots),
                    wait_seconds=wait_for,
                )
                # Woken early by release/cleanup; otherwise re-probe on expiry.
                if not self._cond.wait(wait_for):
                    interval = min(interval * 2, self._max_poll_interval)

    def release(self, holder_id: Hashable) -> None:
        """Free the slot held by *holder_id*.

        Raises :class:`LockReleaseError` if no slot holds it, i.e. the slot
        was reclaimed while the holder was still working.
        """
        with self._cond:
            for index, holder in enumerate(self._slots):
                if holder == holder_id:
                    self._slots[index] = None
                    self._cond.notify()
                    log.debug("lock_released", host=self.host, holder_id=holder_id, slot=index)
                    return

        log.error("lock_release_failed", host=self.host, holder_id=holder_id)
        raise LockReleaseError(self.host, holder_id)

    def cleanup(self) -> list[Hashable]:
        """Clear every slot whose holder is dead and return the cleared ids."""
        cleared: list[Hashable] = []
        with self._cond:
            for index, holder in enumerate(self._slots):
                if holder is None or self._probe.is_alive(holder):
                    continue
                self._slots[index] = None
                cleared.append(holder)
                log.warning("stale_lock_cleared", host=self.host, holder_id=holder, slot=index)
            if cleared:
                self._cond.notify(len(cleared))
        return cleared

    def _claim(self, holder_id: Hashable) -> int | None:
        # Caller holds self._cond.
        for index, holder in enumerate(self._slots):
            if holder is None:
                self._slots[index] = holder_id
                log.debug("lock_acquired", host=self.host, holder_id=holder_id, slot=index)
                return index

        for index, holder in enumerate(self._slots):
            if not self._probe.is_alive(holder):
                self._slots[index] = holder_id
                log.warning(
                    "lock_reclaimed",
                    host=self.host,
                    holder_id=holder_id,
                    previous_holder=holder,
                    slot=index,
                )
                return index

        return None

    def __repr__(self) -> str:
        return f"HostSemaphore(host={self.host!r}, capacity={self.capacity}, slots={list(self.slots)!r})"
