from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import pytest


@dataclass
class FakeHandle:
    delay_s: float
    callback: Callable[[], None]
    cancelled: bool = False
    fired: bool = False


class FakeTimer:
    """Records scheduled callbacks; tests fire them by hand."""

    def __init__(self) -> None:
        self.handles: list[FakeHandle] = []

    def schedule_after(self, delay_s: float, callback: Callable[[], None]) -> FakeHandle:
        handle = FakeHandle(delay_s, callback)
        self.handles.append(handle)
        return handle

    def cancel(self, handle: FakeHandle) -> None:
        handle.cancelled = True

    @property
    def pending(self) -> list[FakeHandle]:
        return [h for h in self.handles if not h.cancelled and not h.fired]

    def fire(self) -> FakeHandle:
        assert len(self.pending) == 1, f"expected one pending timer, got {len(self.pending)}"
        handle = self.pending[0]
        handle.fired = True
        handle.callback()
        return handle


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def timer() -> FakeTimer:
    return FakeTimer()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def wall_clock() -> FakeClock:
    """A second clock standing in for time.time, independent of ``clock``."""
    return FakeClock(now=5000.0)
