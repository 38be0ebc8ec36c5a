"""Shared fixtures for the citygrid test suite."""

from __future__ import annotations

from datetime import datetime

import numpy as np
import pytest

from citygrid.simulation.config import EngineConfig
from citygrid.world.grid import Grid, empty_grid
from citygrid.world.state import CityState


class FakeClock:
    """Monotonic clock the tests can move by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def config() -> EngineConfig:
    """Default engine config (no YAML file needed)."""
    return EngineConfig()


@pytest.fixture
def now() -> datetime:
    """A fixed wall-clock time for reproducible tests."""
    return datetime(2024, 5, 17, 12, 0, 0)


@pytest.fixture
def grid() -> Grid:
    """An empty 48x48 grid."""
    return empty_grid(48)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def new_city(config: EngineConfig, now: datetime) -> CityState:
    """A freshly created city with the default grid and seed money."""
    return CityState.create(config, now)


def place(grid: Grid, code: int, *cells: tuple[int, int]) -> Grid:
    """Set each ``(row, col)`` in ``grid`` to ``code`` and return it."""
    for row, col in cells:
        grid[row, col] = code
    return grid


def fill(grid: Grid, code: int, count: int) -> Grid:
    """Set the first ``count`` tiles (row-major) to ``code``."""
    flat = grid.reshape(-1)
    flat[:count] = code
    return grid


@pytest.fixture
def rng() -> np.random.Generator:
    """A deterministic random generator for property-style tests."""
    return np.random.default_rng(seed=12345)
