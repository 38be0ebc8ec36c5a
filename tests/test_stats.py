"""Tests for citygrid.stats — coverage rasters and the grid scan."""

import numpy as np
from conftest import fill, place

from citygrid.stats.coverage import (
    Facility,
    coverage_mask,
    coverage_maps,
    facility_sites,
)
from citygrid.stats.scanner import (
    compute_stats,
    happiness_score,
    hourly_tax_rate,
    traffic_level,
)
from citygrid.world.cell import CellKind
from citygrid.world.grid import Grid, default_grid

RES_LOW = CellKind.RESIDENTIAL_LOW.code
ROAD = CellKind.ROAD.code
POLICE = CellKind.POLICE_STATION.code


class TestCoverage:
    """Tests for squared-Euclidean coverage."""

    def test_disc_not_square(self) -> None:
        covered = coverage_mask((21, 21), [(10, 10, 3)])
        assert covered[10, 13]
        assert covered[12, 12]  # 4 + 4 <= 9
        assert not covered[13, 13]  # corner of the square is outside
        assert covered.sum() == 29

    def test_clipped_at_edges(self) -> None:
        covered = coverage_mask((5, 5), [(0, 0, 2)])
        assert covered[0, 0]
        assert covered[2, 0]
        assert not covered[2, 2]

    def test_union_of_sites(self) -> None:
        one = coverage_mask((20, 20), [(2, 2, 2)])
        two = coverage_mask((20, 20), [(2, 2, 2), (15, 15, 2)])
        assert two.sum() == 2 * one.sum()

    def test_sites_use_own_radius(self, grid: Grid) -> None:
        place(grid, CellKind.POWER_PLANT.code, (5, 5))
        place(grid, CellKind.LARGE_POWER_PLANT.code, (30, 30))
        sites = sorted(facility_sites(grid, Facility.POWER))
        assert sites == [(5, 5, 10), (30, 30, 15)]

    def test_monotonic_when_adding_facility(
        self,
        grid: Grid,
        rng: np.random.Generator,
    ) -> None:
        place(grid, POLICE, (10, 10))
        before = coverage_maps(grid)[Facility.POLICE]
        for _ in range(5):
            row, col = (int(v) for v in rng.integers(0, 48, size=2))
            grid[row, col] = POLICE
            after = coverage_maps(grid)[Facility.POLICE]
            assert not (before & ~after).any()
            before = after

    def test_empty_grid_has_no_coverage(self, grid: Grid) -> None:
        for raster in coverage_maps(grid).values():
            assert not raster.any()


class TestScenarios:
    """End-to-end scans of small hand-built cities."""

    def test_empty_grid(self, grid: Grid) -> None:
        stats = compute_stats(grid)
        assert stats.population == 0
        assert stats.power_capacity == 0
        assert stats.power_usage == 0
        assert stats.tax_per_hour == 0
        assert stats.traffic_level == 0
        assert stats.happiness == 50
        assert stats.kind_counts == {CellKind.EMPTY: 48 * 48}

    def test_police_covers_all_housing(self, grid: Grid) -> None:
        place(grid, POLICE, (10, 10))
        houses = [(15, col) for col in range(6, 16)]
        place(grid, RES_LOW, *houses)
        stats = compute_stats(grid)
        assert stats.residential_count == 10
        assert stats.crime_rate == 0
        assert stats.fire_risk == 100

    def test_partial_police_coverage(self, grid: Grid) -> None:
        place(grid, POLICE, (0, 0))
        place(grid, RES_LOW, (0, 5), (40, 40), (40, 41))
        stats = compute_stats(grid)
        # 1 of 3 covered -> 100 - 33
        assert stats.crime_rate == 67

    def test_no_housing_means_no_crime(self, grid: Grid) -> None:
        place(grid, CellKind.COMMERCIAL.code, (3, 3), (3, 4))
        stats = compute_stats(grid)
        assert stats.crime_rate == 0
        assert stats.fire_risk == 0

    def test_population_power_and_tax(self, grid: Grid) -> None:
        place(grid, CellKind.RESIDENTIAL_HIGH.code, (1, 1), (1, 2))
        place(grid, CellKind.POWER_PLANT.code, (5, 5))
        place(grid, CellKind.AIRPORT.code, (9, 9))
        stats = compute_stats(grid)
        assert stats.population == 20
        assert stats.power_capacity == 50
        assert stats.power_usage == 6 + 20
        assert stats.tax_per_hour == 1600 + 500
        assert hourly_tax_rate(grid) == stats.tax_per_hour

    def test_power_shortage_penalty(self, grid: Grid) -> None:
        place(grid, RES_LOW, (20, 20))
        short = compute_stats(grid, baseline_happiness=100)
        # crime -30, fire -20, blackout -20
        assert short.has_power_shortage
        assert short.happiness == 30

        place(grid, CellKind.POWER_PLANT.code, (40, 40))
        powered = compute_stats(grid, baseline_happiness=100)
        assert not powered.has_power_shortage
        assert powered.happiness == 50

    def test_park_bonus_is_capped(self, grid: Grid) -> None:
        place(grid, CellKind.PARK.code, (0, 0), (0, 1))
        assert compute_stats(grid).happiness == 56
        fill(grid, CellKind.PARK.code, 20)
        assert compute_stats(grid).happiness == 80

    def test_unknown_codes_are_empty_land(self, grid: Grid) -> None:
        place(grid, 99, (0, 0))
        place(grid, -3, (1, 1))
        stats = compute_stats(grid)
        assert stats.population == 0
        assert stats.kind_counts == {CellKind.EMPTY: 48 * 48}


class TestTraffic:
    """Tests for the traffic heuristic and congestion raster."""

    def test_zero_roads(self, grid: Grid) -> None:
        fill(grid, CellKind.INDUSTRIAL.code, 200)
        stats = compute_stats(grid)
        assert stats.traffic_level == 0
        assert not stats.congestion.any()

    def test_ratio_plus_impact(self) -> None:
        assert traffic_level(4, 4, 0) == 50
        assert traffic_level(4, 4, 10) == 60
        assert traffic_level(100, 1, 0) == 100
        assert traffic_level(5, 0, 40) == 0

    def test_negative_impact_clamped(self, grid: Grid) -> None:
        place(grid, ROAD, (0, 0))
        fill(grid[10:], CellKind.PARK.code, 10)
        assert compute_stats(grid).traffic_level == 0

    def test_congestion_counts_square_neighbourhood(self, grid: Grid) -> None:
        grid[0, :] = ROAD
        place(grid, RES_LOW, (1, 0), (3, 3), (4, 10))
        stats = compute_stats(grid)
        # base = 3 * 50 // 48 = 3
        assert stats.congestion[0, 0] == 3 + 2 * 5
        assert stats.congestion[0, 10] == 3
        assert stats.congestion[0, 7] == 3
        assert stats.congestion[1, 0] == 0
        assert stats.traffic_level == 3

    def test_congestion_capped(self, grid: Grid) -> None:
        place(grid, ROAD, (5, 5))
        place(grid, RES_LOW, (5, 6), (6, 6))
        stats = compute_stats(grid)
        assert stats.congestion[5, 5] == 100
        assert stats.congestion.max() == 100

    def test_default_grid_roads(self) -> None:
        stats = compute_stats(default_grid(48))
        assert stats.road_count == 96
        assert stats.traffic_level == 0
        assert not stats.congestion.any()


class TestBounds:
    """Percentages stay inside [0, 100] on arbitrary grids."""

    def test_random_grids(self, rng: np.random.Generator) -> None:
        codes = np.array([kind.code for kind in CellKind] + [50, -1])
        for _ in range(20):
            grid = rng.choice(codes, size=(48, 48))
            baseline = int(rng.integers(0, 101))
            stats = compute_stats(grid, baseline)
            for value in (
                stats.happiness,
                stats.crime_rate,
                stats.fire_risk,
                stats.traffic_level,
            ):
                assert 0 <= value <= 100
            assert stats.congestion.min() >= 0
            assert stats.congestion.max() <= 100

    def test_happiness_clamped(self) -> None:
        low = happiness_score(
            0,
            crime_rate=100,
            fire_risk=100,
            traffic=100,
            park_count=0,
            power_shortage=True,
        )
        high = happiness_score(
            100,
            crime_rate=0,
            fire_risk=0,
            traffic=0,
            park_count=50,
            power_shortage=False,
        )
        assert low == 0
        assert high == 100

    def test_to_dict(self, grid: Grid) -> None:
        data = compute_stats(grid).to_dict()
        assert data["happiness"] == 50
        assert data["trafficStatus"] == "smooth"
        assert len(data["congestionMap"]) == 48
