"""Pytest configuration and shared fixtures."""

import tempfile
from pathlib import Path

import pytest  # type: ignore[import-not-found]

# 2023-11-14T22:13:20Z
WALL_START_MS = 1_700_000_000_000


class FakeClock:
    """Clock whose wall and monotonic readings only move when told to."""

    def __init__(self, wall: int = WALL_START_MS, monotonic: float = 0.0):
        self.wall = wall
        self.monotonic = monotonic

    def wall_ms(self) -> int:
        return self.wall

    def monotonic_ms(self) -> float:
        return self.monotonic

    def advance(self, ms: int) -> None:
        """Move both clocks forward together, as during normal running."""
        self.wall += ms
        self.monotonic += ms


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest."""
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")


@pytest.fixture
def clock() -> FakeClock:
    """Create a controllable clock."""
    return FakeClock()


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)
