"""Shared fixtures for volatilestore tests."""

import tempfile
from pathlib import Path

import pytest

from volatilestore import VolatileStorage


class FakeClock:
    """Settable clock returning epoch seconds."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def temp_cache_dir():
    """Create temporary cache directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage(temp_cache_dir, clock):
    """Create test storage on a temporary directory."""
    return VolatileStorage({"directory": str(temp_cache_dir)}, clock=clock)
