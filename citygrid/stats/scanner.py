"""Grid statistics — derive city metrics from a tile grid.

The scan follows a fixed order:

1. Classify every tile and accumulate population, power, tax, traffic
   impact and per-kind counts.
2. Build coverage rasters for radius-emitting facilities.
3. Crime rate and fire risk from police / fire coverage of housing.
4. Traffic level from the building-to-road ratio plus flat impacts.
5. Happiness from the stored baseline and the metrics above.
6. Congestion raster over road tiles.

Every percentage is clamped to [0, 100] and every division has an
explicit zero branch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view
from numpy.typing import NDArray

from citygrid.stats.coverage import Facility, coverage_maps
from citygrid.world.cell import (
    BUILDING_KINDS,
    RESIDENTIAL_KINDS,
    ROAD_KINDS,
    CellKind,
    attribute_table,
    kind_mask,
    normalise_codes,
)

# Happiness weights
_CRIME_WEIGHT = 30
_FIRE_WEIGHT = 20
_TRAFFIC_WEIGHT = 25
_PARK_BONUS = 3
_PARK_BONUS_CAP = 30
_BLACKOUT_PENALTY = 20

# Congestion
_CONGESTION_BASE_FACTOR = 50
_CONGESTION_PER_BUILDING = 5


def clamp_percent(value: int) -> int:
    return max(0, min(100, int(value)))


@dataclass(frozen=True)
class CityStats:
    """Metrics derived from one scan of a grid.

    Attributes:
        population: Total residents.
        happiness: Derived happiness (0-100).
        power_capacity: Total power production.
        power_usage: Total power consumption.
        crime_rate: Share of housing outside police coverage (0-100).
        fire_risk: Share of housing outside fire coverage (0-100).
        traffic_level: Traffic heuristic (0-100).
        tax_per_hour: Hourly tax yield of the grid.
        road_count: Road tiles (including locked roads and bridges).
        residential_count: Housing tiles.
        commercial_count: Commercial tiles.
        industrial_count: Industrial tiles.
        park_count: Park tiles.
        kind_counts: Tile count per kind present on the grid.
        congestion: Per-tile congestion (0-100), zero off-road.
        coverage: Boolean coverage raster per facility category.
    """

    population: int
    happiness: int
    power_capacity: int
    power_usage: int
    crime_rate: int
    fire_risk: int
    traffic_level: int
    tax_per_hour: int
    road_count: int
    residential_count: int
    commercial_count: int
    industrial_count: int
    park_count: int
    kind_counts: dict[CellKind, int]
    congestion: NDArray[np.int64] = field(repr=False)
    coverage: dict[Facility, NDArray[np.bool_]] = field(repr=False)

    @property
    def building_count(self) -> int:
        return self.residential_count + self.commercial_count + self.industrial_count

    @property
    def has_power_shortage(self) -> bool:
        return self.power_usage > self.power_capacity

    @property
    def power_balance(self) -> int:
        return self.power_capacity - self.power_usage

    @property
    def traffic_status(self) -> str:
        """Coarse traffic band for display."""
        if self.traffic_level < 30:
            return "smooth"
        if self.traffic_level < 60:
            return "moderate"
        if self.traffic_level < 80:
            return "congested"
        return "jammed"

    def to_dict(self) -> dict[str, Any]:
        """Plain-data view suitable for JSON responses."""
        return {
            "population": self.population,
            "happiness": self.happiness,
            "powerCapacity": self.power_capacity,
            "powerUsage": self.power_usage,
            "powerBalance": self.power_balance,
            "crimeRate": self.crime_rate,
            "fireRisk": self.fire_risk,
            "trafficLevel": self.traffic_level,
            "trafficStatus": self.traffic_status,
            "taxPerHour": self.tax_per_hour,
            "roadCount": self.road_count,
            "residentialCount": self.residential_count,
            "commercialCount": self.commercial_count,
            "industrialCount": self.industrial_count,
            "parkCount": self.park_count,
            "kindCounts": {kind.name: n for kind, n in self.kind_counts.items()},
            "congestionMap": self.congestion.tolist(),
        }


def hourly_tax_rate(grid: NDArray[np.int64]) -> int:
    """Sum the hourly tax yield of every tile."""
    codes = normalise_codes(np.asarray(grid))
    return int(attribute_table("tax_per_hour")[codes].sum())


def total_population(grid: NDArray[np.int64]) -> int:
    codes = normalise_codes(np.asarray(grid))
    return int(attribute_table("population")[codes].sum())


def unprotected_rate(residential: NDArray[np.bool_], covered: NDArray[np.bool_]) -> int:
    """Percentage of housing tiles outside ``covered``; 0 with no housing."""
    total = int(residential.sum())
    if total == 0:
        return 0
    protected = int((residential & covered).sum())
    return clamp_percent(100 - protected * 100 // max(1, total))


def traffic_level(building_count: int, road_count: int, traffic_impact: int) -> int:
    """Building-to-road ratio plus flat impacts; 0 without roads."""
    if road_count <= 0:
        return 0
    return clamp_percent(
        min(100, building_count * 100 // (road_count * 2) + traffic_impact),
    )


def happiness_score(
    baseline: int,
    *,
    crime_rate: int,
    fire_risk: int,
    traffic: int,
    park_count: int,
    power_shortage: bool,
) -> int:
    """Adjust the baseline by crime, fire, traffic, parks and blackouts."""
    happiness = baseline
    happiness -= crime_rate * _CRIME_WEIGHT // 100
    happiness -= fire_risk * _FIRE_WEIGHT // 100
    happiness -= traffic * _TRAFFIC_WEIGHT // 100
    happiness += min(_PARK_BONUS_CAP, park_count * _PARK_BONUS)
    if power_shortage:
        happiness -= _BLACKOUT_PENALTY
    return clamp_percent(happiness)


def congestion_map(
    codes: NDArray[np.int64],
    road_count: int,
    building_count: int,
    radius: int = 3,
) -> NDArray[np.int64]:
    """Per-road congestion from global density plus nearby buildings.

    Nearby buildings are counted over the inclusive square of half-width
    ``radius`` centred on each road tile.

    Args:
        codes: Normalised grid of cell codes.
        road_count: Road tiles on the grid.
        building_count: Residential, commercial and industrial tiles.
        radius: Half-width of the counting square.

    Returns:
        Integer raster, 0 on every non-road tile.
    """
    congestion = np.zeros(codes.shape, dtype=np.int64)
    if road_count <= 0:
        return congestion

    base = min(100, building_count * _CONGESTION_BASE_FACTOR // road_count)
    buildings = kind_mask(codes, BUILDING_KINDS).astype(np.int64)
    window = 2 * radius + 1
    padded = np.pad(buildings, radius)
    nearby = sliding_window_view(padded, (window, window)).sum(axis=(-2, -1))

    roads = kind_mask(codes, ROAD_KINDS)
    local = np.minimum(100, base + _CONGESTION_PER_BUILDING * nearby)
    congestion[roads] = local[roads]
    return congestion


def compute_stats(
    grid: NDArray[np.int64],
    baseline_happiness: int = 50,
    *,
    congestion_radius: int = 3,
) -> CityStats:
    """Scan a grid and derive every city metric.

    Args:
        grid: Grid of cell codes; unknown codes count as empty land.
        baseline_happiness: Stored happiness the adjustments start from.
        congestion_radius: Half-width of the congestion neighbourhood.

    Returns:
        A frozen CityStats; the input grid is not modified.
    """
    codes = normalise_codes(np.asarray(grid))

    # 1. Classification scan
    roads = kind_mask(codes, ROAD_KINDS)
    off_road = ~roads
    power_delta = attribute_table("power_delta")[codes]
    population = int(attribute_table("population")[codes][off_road].sum())
    power_capacity = int(-power_delta[off_road & (power_delta < 0)].sum())
    power_usage = int(power_delta[off_road & (power_delta > 0)].sum())
    tax_per_hour = int(attribute_table("tax_per_hour")[codes][off_road].sum())
    traffic_impact = int(attribute_table("traffic_impact")[codes][off_road].sum())

    values, counts = np.unique(codes, return_counts=True)
    kind_counts = {CellKind(int(v)): int(n) for v, n in zip(values, counts)}
    road_count = int(roads.sum())
    residential = kind_mask(codes, RESIDENTIAL_KINDS)
    residential_count = int(residential.sum())
    commercial_count = kind_counts.get(CellKind.COMMERCIAL, 0)
    industrial_count = kind_counts.get(CellKind.INDUSTRIAL, 0)
    park_count = kind_counts.get(CellKind.PARK, 0)

    # 2. Coverage
    coverage = coverage_maps(codes)

    # 3. Crime and fire
    crime_rate = unprotected_rate(residential, coverage[Facility.POLICE])
    fire_risk = unprotected_rate(residential, coverage[Facility.FIRE])

    # 4. Traffic
    building_count = residential_count + commercial_count + industrial_count
    traffic = traffic_level(building_count, road_count, traffic_impact)

    # 5. Happiness
    happiness = happiness_score(
        baseline_happiness,
        crime_rate=crime_rate,
        fire_risk=fire_risk,
        traffic=traffic,
        park_count=park_count,
        power_shortage=power_usage > power_capacity,
    )

    # 6. Congestion
    congestion = congestion_map(
        codes,
        road_count,
        building_count,
        radius=congestion_radius,
    )

    return CityStats(
        population=population,
        happiness=happiness,
        power_capacity=power_capacity,
        power_usage=power_usage,
        crime_rate=crime_rate,
        fire_risk=fire_risk,
        traffic_level=traffic,
        tax_per_hour=tax_per_hour,
        road_count=road_count,
        residential_count=residential_count,
        commercial_count=commercial_count,
        industrial_count=industrial_count,
        park_count=park_count,
        kind_counts=kind_counts,
        congestion=congestion,
        coverage=coverage,
    )
