import sys
from datetime import date
from pathlib import Path

import pytest

# Ensure the project root is importable during tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from dailyedge_app.tracker.storage import MemoryMedium, StateStore  # noqa: E402

TODAY = date(2025, 1, 8)


class FakeClock:
    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def medium():
    return MemoryMedium()


@pytest.fixture
def store(medium):
    return StateStore(medium, today=lambda: TODAY)


@pytest.fixture
def clock():
    return FakeClock()
