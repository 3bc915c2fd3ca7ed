"""host-semaphore — Per-host concurrency limiter that survives crashed holders.

Each configured host owns a fixed table of lock slots.  Holders are usually
process ids; when every slot of a host is taken, slots whose holder process
has died are reclaimed for the next requester.  A holder whose slot was
reclaimed while it was still working learns about it when releasing.

Layers (bottom to top):
    1. Probe     — liveness checks for holder processes (signal, psutil)
    2. Host      — HostSemaphore, one host's slot table
    3. Semaphore — host routing, scoped ``synchronize``, status and sweeps
"""

__version__ = "0.1.0"

from host_semaphore.exceptions import (
    AcquireTimeoutError,
    DuplicateHolderError,
    LockError,
    LockReleaseError,
    SemaphoreError,
    UnknownHostError,
)
from host_semaphore.host import HostSemaphore
from host_semaphore.logging import configure_logging, configure_logging_from_settings
from host_semaphore.probe import ProcessProbe, PsutilProbe, SignalProbe, create_probe
from host_semaphore.semaphore import Semaphore

__all__ = [
    "__version__",
    "AcquireTimeoutError",
    "DuplicateHolderError",
    "HostSemaphore",
    "LockError",
    "LockReleaseError",
    "ProcessProbe",
    "PsutilProbe",
    "Semaphore",
    "SemaphoreError",
    "SignalProbe",
    "UnknownHostError",
    "configure_logging",
    "configure_logging_from_settings",
    "create_probe",
]
