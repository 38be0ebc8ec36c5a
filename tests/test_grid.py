"""Tests for citygrid.world.grid and citygrid.world.state."""

import json
from datetime import datetime, timedelta

import numpy as np
import pytest

from citygrid.simulation.config import EngineConfig
from citygrid.world.cell import CellKind
from citygrid.world.grid import (
    GridShapeError,
    changed_cells,
    default_grid,
    load_stored_grid,
    parse_grid,
    serialize_grid,
)
from citygrid.world.state import CityState


class TestParseGrid:
    """Tests for strict grid parsing."""

    def test_nested_list(self) -> None:
        data = [[1] * 4 for _ in range(4)]
        grid = parse_grid(data, 4)
        assert grid.shape == (4, 4)
        assert grid.dtype == np.int64

    def test_json_string(self) -> None:
        grid = parse_grid(json.dumps([[0, 1], [2, 3]]), 2)
        assert grid.tolist() == [[0, 1], [2, 3]]

    def test_tiles_object(self) -> None:
        payload = json.dumps({"tiles": [[5, 5], [5, 5]], "env": {}})
        assert parse_grid(payload, 2).sum() == 20

    def test_does_not_alias_input(self) -> None:
        source = np.zeros((3, 3), dtype=np.int64)
        grid = parse_grid(source, 3)
        grid[0, 0] = 7
        assert source[0, 0] == 0

    @pytest.mark.parametrize(
        "payload",
        [
            None,
            [],
            [[0, 0], [0, 0]],
            [[0, 0, 0], [0, 0], [0, 0, 0]],
            [[0.5, 0, 0]] * 3,
            [["a", "b", "c"]] * 3,
            "not json",
            {"cells": [[0] * 3] * 3},
        ],
    )
    def test_rejects_malformed(self, payload: object) -> None:
        with pytest.raises(GridShapeError):
            parse_grid(payload, 3)

    def test_unknown_codes_survive_parsing(self) -> None:
        grid = parse_grid([[99, 0], [0, 0]], 2)
        assert grid[0, 0] == 99


class TestStoredGrid:
    """Tests for the lenient read-path loader."""

    def test_corrupt_grid_degrades_to_empty(self) -> None:
        grid = load_stored_grid("{broken", 48)
        assert grid.shape == (48, 48)
        assert not grid.any()

    def test_round_trip(self) -> None:
        grid = default_grid(48)
        assert np.array_equal(load_stored_grid(serialize_grid(grid), 48), grid)


class TestDefaultGrid:
    def test_boundary_rows_locked(self) -> None:
        grid = default_grid(10, boundary_rows=2)
        assert (grid[8:, :] == CellKind.LOCKED_ROAD_4LANE.code).all()
        assert (grid[:8, :] == CellKind.EMPTY.code).all()

    def test_no_boundary(self) -> None:
        assert not default_grid(5, boundary_rows=0).any()

    def test_changed_cells(self) -> None:
        old = default_grid(4, boundary_rows=0)
        new = old.copy()
        new[1, 2] = 1
        assert changed_cells(old, new).sum() == 1


class TestCityState:
    """Tests for the CityState record and its mutators."""

    def test_create(self, config: EngineConfig, now: datetime) -> None:
        state = CityState.create(config, now)
        assert state.money == 5000
        assert state.happiness == 50
        assert state.action_points == 10
        assert state.created_at == now
        assert state.last_collected_at == now
        grid = parse_grid(state.grid_data, 48)
        assert (grid[46:, :] == CellKind.LOCKED_ROAD_4LANE.code).all()

    def test_power_shortage(self, new_city: CityState) -> None:
        new_city.power_capacity = 10
        new_city.power_usage = 12
        assert new_city.has_power_shortage
        assert new_city.power_balance == -2

    def test_collect_tax(self, new_city: CityState, now: datetime) -> None:
        later = now + timedelta(hours=3)
        new_city.unclaimed_tax = 400
        new_city.collect_tax(700, later)
        assert new_city.money == 5700
        assert new_city.unclaimed_tax == 0
        assert new_city.last_collected_at == later
        assert new_city.updated_at == later

    def test_update_map_floors_money(self, new_city: CityState, now: datetime) -> None:
        new_city.update_map(default_grid(48), -50, 0, now)
        assert new_city.money == 0
