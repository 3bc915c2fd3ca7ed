"""host-semaphore — Exception hierarchy.

All exceptions raised by the limiter inherit from SemaphoreError so that
callers can catch the full family with a single except clause when needed.

Hierarchy:
    SemaphoreError
    ├── UnknownHostError
    └── LockError
        ├── LockReleaseError
        ├── DuplicateHolderError
        └── AcquireTimeoutError
"""

from __future__ import annotations

from typing import Any, Hashable


class SemaphoreError(Exception):
    """Base exception for all host-semaphore errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context or {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context})"


class UnknownHostError(SemaphoreError):
    """The requested host has no configured lock pool."""

    def __init__(self, host: str, known_hosts: list[str] | None = None) -> None:
        super().__init__(
            f"Unknown host '{host}'",
            context={"host": host, "known_hosts": known_hosts or []},
        )
        self.host = host


# ---------------------------------------------------------------------------
# Lock table
# ---------------------------------------------------------------------------


class LockError(SemaphoreError):
    """Base for errors raised by a host's slot table."""


class LockReleaseError(LockError):
    """The holder no longer owns a slot when releasing.

    Raised when the slot was reclaimed by another acquirer that judged the
    holder dead.  The holder's critical section ran unprotected for some
    interval.
    """

    def __init__(self, host: str, holder_id: Hashable) -> None:
        super().__init__(
            f"Holder {holder_id!r} does not own a slot on host '{host}'; "
            "the lock was reclaimed while still in use",
            context={"host": host, "holder_id": holder_id},
        )
        self.host = host
        self.holder_id = holder_id


class DuplicateHolderError(LockError):
    """The holder already occupies a slot of the same host."""

    def __init__(self, host: str, holder_id: Hashable, slot: int) -> None:
        super().__init__(
            f"Holder {holder_id!r} already holds slot {slot} on host '{host}'",
            context={"host": host, "holder_id": holder_id, "slot": slot},
        )
        self.host = host
        self.holder_id = holder_id
        self.slot = slot


class AcquireTimeoutError(LockError):
    """No slot became available within the acquire timeout."""

    def __init__(self, host: str, holder_id: Hashable, timeout_seconds: float) -> None:
        super().__init__(
            f"Holder {holder_id!r} timed out after {timeout_seconds}s "
            f"waiting for a slot on host '{host}'",
            context={
                "host": host,
                "holder_id": holder_id,
                "timeout_seconds": timeout_seconds,
            },
        )
        self.host = host
        self.holder_id = holder_id
        self.timeout_seconds = timeout_seconds
