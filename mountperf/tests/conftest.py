"""Module with fixtures shared by the tests."""

import pytest


class FakeClock:
    """Manually advanced replacement for time.time()."""

    def __init__(self, now: float = 1_600_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()
