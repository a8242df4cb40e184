"""Pytest fixtures for SnapSight tests.

Provides a controllable clock, a frame source and an analysis client that
stand in for the camera and the gateway, so the scheduler can be driven
without hardware or network.
"""

import threading
import time
from typing import Callable, List, Optional

import numpy as np
import pytest

from snapsight.errors import FrameSourceError
from snapsight.schemas.analysis import AnalysisResult
from snapsight.services.session_state import SessionState


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self._now = start
        self._lock = threading.Lock()

    def __call__(self) -> float:
        with self._lock:
            return self._now

    def advance(self, seconds: float):
        with self._lock:
            self._now += seconds


class FakeFrameSource:
    def __init__(self, width: int = 64, height: int = 48):
        self.width = width
        self.height = height
        self.open_error: Optional[FrameSourceError] = None
        self.read_errors: List[Exception] = []
        self.opened = 0
        self.closed = 0
        self.reads = 0

    @property
    def is_open(self) -> bool:
        return self.opened > self.closed

    def open(self):
        if self.open_error is not None:
            raise self.open_error
        self.opened += 1

    def read(self) -> np.ndarray:
        self.reads += 1
        if self.read_errors:
            raise self.read_errors.pop(0)
        return np.full((self.height, self.width, 3), 127, dtype=np.uint8)

    def close(self):
        self.closed += 1


class FakeAnalysisClient:
    """
    Scripted analysis client.

    Each analyze() call consumes the next entry of ``script``: an
    AnalysisResult to return or an exception to raise. ``delays_s`` advances
    the fake clock during the call to simulate the round trip.
    """

    def __init__(self, clock: Optional[FakeClock] = None):
        self.clock = clock
        self.script: List = []
        self.delays_s: List[float] = []
        self.calls = []
        self.on_analyze: Optional[Callable] = None
        self.default = AnalysisResult(success=True, message="Image processed successfully")
        self._lock = threading.Lock()

    def analyze(self, capture):
        with self._lock:
            self.calls.append(capture)
            item = self.script.pop(0) if self.script else self.default
            delay = self.delays_s.pop(0) if self.delays_s else 0.0
        if self.on_analyze is not None:
            self.on_analyze(capture)
        if self.clock is not None and delay:
            self.clock.advance(delay)
        if isinstance(item, Exception):
            raise item
        return item

    def probe(self):
        return None

    def close(self):
        pass


def wait_for(predicate: Callable[[], bool], timeout: float = 3.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def frame_source():
    return FakeFrameSource()


@pytest.fixture
def client(clock):
    return FakeAnalysisClient(clock)


@pytest.fixture
def session():
    return SessionState()


@pytest.fixture
def wait():
    return wait_for
