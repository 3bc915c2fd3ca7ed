"""Unit tests — liveness probes."""

from __future__ import annotations

import errno
import os
import subprocess
import sys
import time

import psutil
import pytest

from host_semaphore import probe as probe_module
from host_semaphore.probe import PsutilProbe, SignalProbe, create_probe


def _reaped_pid() -> int:
    proc = subprocess.Popen([sys.executable, "-c", "pass"])
    proc.wait()
    return proc.pid


@pytest.mark.unit
class TestSignalProbe:
    def test_current_process_is_alive(self) -> None:
        assert SignalProbe().is_alive(os.getpid()) is True

    def test_exited_process_is_dead(self) -> None:
        assert SignalProbe().is_alive(_reaped_pid()) is False

    @pytest.mark.parametrize("holder_id", ["build-42", None, 0, -1, True])
    def test_unprobeable_holder_presumed_alive(self, holder_id: object) -> None:
        assert SignalProbe().is_alive(holder_id) is True

    def test_permission_error_is_alive(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def deny(pid: int, sig: int) -> None:
            raise PermissionError(errno.EPERM, "Operation not permitted")

        monkeypatch.setattr(probe_module.os, "kill", deny)
        assert SignalProbe().is_alive(1234) is True

    def test_process_lookup_error_is_dead(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def missing(pid: int, sig: int) -> None:
            raise ProcessLookupError(errno.ESRCH, "No such process")

        monkeypatch.setattr(probe_module.os, "kill", missing)
        assert SignalProbe().is_alive(1234) is False

    def test_other_os_error_is_inconclusive(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def weird(pid: int, sig: int) -> None:
            raise OSError(errno.EINVAL, "Invalid argument")

        monkeypatch.setattr(probe_module.os, "kill", weird)
        assert SignalProbe().is_alive(1234) is True

    def test_sends_signal_zero(self, monkeypatch: pytest.MonkeyPatch) -> None:
        sent: list[tuple[int, int]] = []
        monkeypatch.setattr(probe_module.os, "kill", lambda pid, sig: sent.append((pid, sig)))
        SignalProbe().is_alive(4321)
        assert sent == [(4321, 0)]


@pytest.mark.unit
class TestPsutilProbe:
    def test_current_process_is_alive(self) -> None:
        assert PsutilProbe().is_alive(os.getpid()) is True

    def test_exited_process_is_dead(self) -> None:
        assert PsutilProbe().is_alive(_reaped_pid()) is False

    def test_unprobeable_holder_presumed_alive(self) -> None:
        assert PsutilProbe().is_alive("build-42") is True

    def test_access_denied_is_alive(self, monkeypatch: pytest.MonkeyPatch) -> None:
        class Denied:
            def __init__(self, pid: int) -> None:
                raise psutil.AccessDenied(pid)

        monkeypatch.setattr(probe_module.psutil, "Process", Denied)
        assert PsutilProbe().is_alive(1234) is True

    @pytest.mark.skipif(not sys.platform.startswith("linux"), reason="zombie status is reported on Linux")
    def test_zombie_is_dead(self) -> None:
        proc = subprocess.Popen([sys.executable, "-c", "pass"])
        try:
            deadline = time.monotonic() + 10
            while psutil.Process(proc.pid).status() != psutil.STATUS_ZOMBIE:
                assert time.monotonic() < deadline, "child never became a zombie"
                time.sleep(0.01)

            assert SignalProbe().is_alive(proc.pid) is True
            assert PsutilProbe().is_alive(proc.pid) is False
        finally:
            proc.wait()


@pytest.mark.unit
class TestCreateProbe:
    def test_kinds(self) -> None:
        assert isinstance(create_probe(), SignalProbe)
        assert isinstance(create_probe("signal"), SignalProbe)
        assert isinstance(create_probe("psutil"), PsutilProbe)

    def test_unknown_kind(self) -> None:
        with pytest.raises(ValueError, match="Unknown probe kind"):
            create_probe("ptrace")
