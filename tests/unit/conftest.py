"""Shared fixtures for unit tests."""

from __future__ import annotations

import pytest

from tickboard.pipeline.store import SymbolDataStore


class FakeClock:
    """Manually advanced wall clock (epoch seconds)."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    """Fake clock starting on a minute boundary."""
    return FakeClock(start=1_700_000_040.0)


@pytest.fixture
def store(clock):
    """Store driven by the fake clock."""
    return SymbolDataStore(clock=clock)
