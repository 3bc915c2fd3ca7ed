"""Shared pytest fixtures for the host-semaphore test suite."""

from __future__ import annotations

from typing import Hashable

import pytest

from host_semaphore.probe import ProcessProbe
from host_semaphore.semaphore import Semaphore


class FakeProbe(ProcessProbe):
    """Probe double: every holder is alive unless listed in ``dead``."""

    def __init__(self, *, all_dead: bool = False) -> None:
        self.all_dead = all_dead
        self.dead: set[Hashable] = set()
        self.calls: list[Hashable] = []

    def is_alive(self, holder_id: Hashable) -> bool:
        self.calls.append(holder_id)
        if self.all_dead:
            return False
        return holder_id not in self.dead


@pytest.fixture
def probe() -> FakeProbe:
    return FakeProbe()


@pytest.fixture
def lines() -> list[str]:
    return []


@pytest.fixture
def semaphore(probe: FakeProbe, lines: list[str]) -> Semaphore:
    return Semaphore(
        {"debian": 1, "kde": 2},
        probe,
        sink=lines.append,
        poll_interval=0.01,
        max_poll_interval=0.05,
    )
