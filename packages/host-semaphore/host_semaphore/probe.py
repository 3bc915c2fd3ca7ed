"""Liveness probes — decide whether a lock holder's process still runs.

A probe only ever answers "dead" when the process is provably gone.  Any
ambiguous outcome (permission denied, unprobeable holder id, unexpected OS
error) resolves to "alive" so that no slot is reclaimed on a guess.
"""

from __future__ import annotations

import errno
import os
from abc import ABC, abstractmethod
from typing import Hashable

import psutil

from host_semaphore.logging import get_logger

log = get_logger(__name__)


class ProcessProbe(ABC):
    """Capability boundary for holder liveness checks."""

    @abstractmethod
    def is_alive(self, holder_id: Hashable) -> bool:
        """Return False only if *holder_id* no longer names a running process."""


def _as_pid(holder_id: Hashable) -> int | None:
    # bool is an int subclass but never a pid.
    if isinstance(holder_id, bool) or not isinstance(holder_id, int):
        return None
    # 0 and negatives address process groups, not a single process.
    if holder_id <= 0:
        return None
    return holder_id


class SignalProbe(ProcessProbe):
    """Send signal 0 to the holder pid."""

    def is_alive(self, holder_id: Hashable) -> bool:
        pid = _as_pid(holder_id)
        if pid is None:
            log.debug("probe_inconclusive", holder_id=holder_id, reason="not a pid")
            return True
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            # Exists, owned by another user.
            return True
        except OSError as exc:
            if exc.errno == errno.ESRCH:
                return False
            log.debug("probe_inconclusive", holder_id=holder_id, reason=str(exc))
            return True
        return True


class PsutilProbe(ProcessProbe):
    """Inspect the holder pid with psutil.

    Unlike :class:`SignalProbe` this treats zombie processes as dead: they
    have exited and will never release their slot, but still accept signals
    until reaped.
    """

    def is_alive(self, holder_id: Hashable) -> bool:
        pid = _as_pid(holder_id)
        if pid is None:
            log.debug("probe_inconclusive", holder_id=holder_id, reason="not a pid")
            return True
        try:
            return psutil.Process(pid).status() != psutil.STATUS_ZOMBIE
        except psutil.NoSuchProcess:
            return False
        except psutil.AccessDenied:
            return True
        except psutil.Error as exc:
            log.debug("probe_inconclusive", holder_id=holder_id, reason=str(exc))
            return True


_PROBES: dict[str, type[ProcessProbe]] = {
    "signal": SignalProbe,
    "psutil": PsutilProbe,
}


def create_probe(kind: str = "signal") -> ProcessProbe:
    """Return a probe instance for a configured probe *kind*."""
    try:
        return _PROBES[kind]()
    except KeyError:
        raise ValueError(
            f"Unknown probe kind '{kind}'; expected one of {sorted(_PROBES)}"
        ) from None
