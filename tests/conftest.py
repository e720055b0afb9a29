"""Shared test fixtures for one-shot."""

import logging
import threading
import time
from dataclasses import dataclass, field

import pytest

from one_shot.log import configure_logging

configure_logging(logging.DEBUG)


@dataclass
class TimingContext:
    """Captures elapsed time and provides tolerance-aware assertions."""

    _start: float = field(default=0, repr=False)
    _end: float = field(default=0, repr=False)

    def start(self) -> None:
        self._start = time.monotonic()

    def stop(self) -> None:
        self._end = time.monotonic()

    @property
    def elapsed(self) -> float:
        if self._end == 0.0:
            return time.monotonic() - self._start
        return self._end - self._start

    def assert_elapsed_between(
        self, lower: float, upper: float, *, msg: str = ""
    ) -> None:
        """Assert elapsed time is within [lower, upper] seconds."""
        elapsed = self.elapsed
        context = f" ({msg})" if msg else ""
        assert lower <= elapsed <= upper, (
            f"Expected elapsed time in [{lower}, {upper}]s, got {elapsed:.3f}s{context}"
        )


@dataclass
class RecordingWaker:
    """Waker that counts how often it was called, from any thread."""

    calls: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _woken: threading.Event = field(default_factory=threading.Event, repr=False)

    def __call__(self) -> None:
        with self._lock:
            self.calls += 1
        self._woken.set()

    def wait(self, timeout: float = 1.0) -> bool:
        """Blocks until the waker has been called at least once."""
        return self._woken.wait(timeout)


@dataclass
class CancellationFlag:
    """Attached value that records how often it was torn down."""

    closed: int = 0

    def close(self) -> None:
        self.closed += 1


@pytest.fixture
def waker() -> RecordingWaker:
    """Provide a fresh recording waker."""
    return RecordingWaker()


@pytest.fixture
def make_waker() -> type[RecordingWaker]:
    """Provide a factory for additional recording wakers."""
    return RecordingWaker


@pytest.fixture
def cancellation_flag() -> CancellationFlag:
    """Provide a value whose teardown can be observed."""
    return CancellationFlag()


@pytest.fixture
def timing() -> TimingContext:
    """Provide a timing context for measuring elapsed time in tests."""
    return TimingContext()


@pytest.fixture
def make_cancellation_flag() -> type[CancellationFlag]:
    """Provide a factory for additional cancellation flags."""
    return CancellationFlag
