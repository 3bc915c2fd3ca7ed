"""Semaphore — per-host concurrency limiter with dead-holder reclamation.

Controls how many holders can work against each host at once (e.g. max 2
git clones from the same server).  Each host gets a fixed
:class:`~host_semaphore.host.HostSemaphore` sized at construction.

Usage::

    sem = Semaphore({"debian": 2, "kde": 4})
    with sem.synchronize(os.getpid(), "debian"):
        clone_repository()

    sem.log_locks()  # also reclaims slots of dead holders
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Hashable, Iterator, Mapping, TypeVar

from host_semaphore.config import Settings, get_settings
from host_semaphore.exceptions import UnknownHostError
from host_semaphore.host import HostSemaphore
from host_semaphore.logging import bind_holder_context, get_logger
from host_semaphore.probe import ProcessProbe, SignalProbe, create_probe

T = TypeVar("T")

LineSink = Callable[[str], None]


def _log_sink(line: str) -> None:
    # Resolved per call so the sink follows the current structlog config.
    get_logger(__name__).info(line)


class Semaphore:
    """Fixed map of host → HostSemaphore."""

    def __init__(
        self,
        hosts: Mapping[str, int],
        probe: ProcessProbe | None = None,
        *,
        sink: LineSink | None = None,
        poll_interval: float = 0.1,
        max_poll_interval: float = 2.0,
        acquire_timeout: float | None = None,
    ) -> None:
        if not hosts:
            raise ValueError("Semaphore needs at least one host")
        self._probe = probe or SignalProbe()
        self._sink = sink or _log_sink
        self._acquire_timeout = acquire_timeout
        self.host_semaphores: dict[str, HostSemaphore] = {
            host: HostSemaphore(
                host,
                capacity,
                self._probe,
                poll_interval=poll_interval,
                max_poll_interval=max_poll_interval,
            )
            for host, capacity in hosts.items()
        }

    @classmethod
    def from_settings(
        cls, settings: Settings | None = None, *, sink: LineSink | None = None
    ) -> "Semaphore":
        """Build a limiter from :class:`~host_semaphore.config.Settings`.

        Without *settings* the cached :func:`~host_semaphore.config.get_settings`
        instance is used.
        """
        settings = settings or get_settings()
        return cls(
            settings.hosts,
            create_probe(settings.locks.probe),
            sink=sink,
            poll_interval=settings.locks.poll_interval,
            max_poll_interval=settings.locks.max_poll_interval,
            acquire_timeout=settings.locks.acquire_timeout,
        )

    @property
    def hosts(self) -> tuple[str, ...]:
        return tuple(self.host_semaphores)

    def pool(self, host: str) -> HostSemaphore:
        """Return the slot table for *host*."""
        try:
            return self.host_semaphores[host]
        except KeyError:
            raise UnknownHostError(host, list(self.host_semaphores)) from None

    @contextmanager
    def synchronize(self, holder_id: Hashable, host: str) -> Iterator[int]:
        """Hold a slot on *host* for the duration of the ``with`` block.

        Yields the slot index.  The slot is released on every exit path.  A
        :class:`~host_semaphore.exceptions.LockReleaseError` from that release
        replaces any error raised by the block (which stays reachable as the
        release error's ``__context__``): the block ran unprotected, and
        that must not be hidden behind the block's own failure.
        """
        pool = self.pool(host)
        with bind_holder_context(holder_id, host):
            index = pool.acquire(holder_id, timeout=self._acquire_timeout)
            try:
                yield index
            finally:
                pool.release(holder_id)

    def run(
        self,
        holder_id: Hashable,
        host: str,
        work: Callable[..., T],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """Call *work* while holding a slot on *host* and return its result."""
        with self.synchronize(holder_id, host):
            return work(*args, **kwargs)

    def cleanup(self) -> dict[str, list[Hashable]]:
        """Reclaim dead holders' slots on every host."""
        return {host: sem.cleanup() for host, sem in self.host_semaphores.items()}

    def log_locks(self) -> None:
        """Sweep dead holders, then write every host's slot table to the sink."""
        for host, sem in self.host_semaphores.items():
            sem.cleanup()
            self._sink(f"{host}: {sem.in_use}/{sem.capacity} slots in use")
            for line in sem.report():
                self._sink(line)

    def status(self) -> dict[str, dict[str, Any]]:
        """Return current slot usage per host for monitoring."""
        result: dict[str, dict[str, Any]] = {}
        for host, sem in self.host_semaphores.items():
            holders = sem.holders
            result[host] = {
                "capacity": sem.capacity,
                "in_use": len(holders),
                "available": sem.capacity - len(holders),
                "holders": list(holders),
            }
        return result
