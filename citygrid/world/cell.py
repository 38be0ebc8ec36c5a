"""Cell — the closed taxonomy of tile kinds in a city grid.

Every tile stores a bare integer code.  ``CellKind`` names those codes and
``CELL_ATTRIBUTES`` attaches the static economic attributes of each kind.
Unknown codes resolve to ``CellKind.EMPTY`` so that malformed or
future-versioned grids degrade to empty land instead of failing.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import numpy as np
from numpy.typing import NDArray


class CellKind(Enum):
    """Tile kinds, valued by their stored integer code."""

    EMPTY = 0
    ROAD = 1
    LOCKED_ROAD = 2

    RESIDENTIAL_LOW = 3
    RESIDENTIAL_MID = 4
    RESIDENTIAL_HIGH = 5
    COMMERCIAL = 6
    INDUSTRIAL = 7

    ZONE_RESIDENTIAL = 8
    ZONE_COMMERCIAL = 9
    ZONE_INDUSTRIAL = 10

    WATER = 11
    BRIDGE = 12
    ROAD_4LANE = 13
    LOCKED_ROAD_4LANE = 14

    POWER_PLANT = 20
    POLICE_STATION = 21
    FIRE_STATION = 22
    PARK = 23
    SCHOOL = 24
    HOSPITAL = 25

    LARGE_POWER_PLANT = 30
    SUBWAY_STATION = 31
    AIRPORT = 32
    LANDMARK = 33

    @property
    def code(self) -> int:
        """Integer code stored in the grid."""
        return self.value

    @property
    def attributes(self) -> CellAttributes:
        return CELL_ATTRIBUTES[self]

    @property
    def is_road(self) -> bool:
        return self in ROAD_KINDS

    @property
    def is_locked_road(self) -> bool:
        return self in LOCKED_ROADS

    @property
    def is_residential(self) -> bool:
        return self in RESIDENTIAL_KINDS

    @property
    def is_zone(self) -> bool:
        """Return True for player-designated zones awaiting construction."""
        return self in ZONE_KINDS

    @property
    def is_building(self) -> bool:
        """Return True for tiles that generate traffic demand.

        Residential, commercial and industrial tiles count; public
        buildings do not.
        """
        return self in BUILDING_KINDS

    @property
    def is_public_building(self) -> bool:
        return 20 <= self.value < 40

    @property
    def produces_power(self) -> bool:
        return self.attributes.power_delta < 0

    @property
    def power_production(self) -> int:
        delta = self.attributes.power_delta
        return -delta if delta < 0 else 0

    @property
    def power_consumption(self) -> int:
        delta = self.attributes.power_delta
        return delta if delta > 0 else 0


@dataclass(frozen=True)
class CellAttributes:
    """Static economic attributes of a tile kind.

    Attributes:
        label: Human-readable name.
        population: Residents housed by the tile.
        power_delta: Power consumed per tile; negative values are production.
        tax_per_hour: Hourly tax yield.
        traffic_impact: Flat contribution to the city traffic level.
        build_cost: Money charged when a tile is changed to this kind.
        action_points: Daily action points needed to build it.
        effect_radius: Coverage radius in tiles (0 = no coverage).
    """

    label: str
    population: int = 0
    power_delta: int = 0
    tax_per_hour: int = 0
    traffic_impact: int = 0
    build_cost: int = 0
    action_points: int = 0
    effect_radius: int = 0


CELL_ATTRIBUTES: dict[CellKind, CellAttributes] = {
    CellKind.EMPTY: CellAttributes("Empty land"),
    CellKind.ROAD: CellAttributes("Road", build_cost=50),
    CellKind.LOCKED_ROAD: CellAttributes("Boundary road"),
    CellKind.RESIDENTIAL_LOW: CellAttributes(
        "Low-income housing",
        population=5,
        power_delta=1,
        tax_per_hour=100,
    ),
    CellKind.RESIDENTIAL_MID: CellAttributes(
        "Middle-income housing",
        population=8,
        power_delta=2,
        tax_per_hour=300,
    ),
    CellKind.RESIDENTIAL_HIGH: CellAttributes(
        "High-income housing",
        population=10,
        power_delta=3,
        tax_per_hour=800,
    ),
    CellKind.COMMERCIAL: CellAttributes(
        "Commercial",
        power_delta=2,
        tax_per_hour=200,
        traffic_impact=10,
    ),
    CellKind.INDUSTRIAL: CellAttributes(
        "Industrial",
        power_delta=3,
        tax_per_hour=150,
        traffic_impact=15,
    ),
    CellKind.ZONE_RESIDENTIAL: CellAttributes(
        "Residential zone",
        build_cost=100,
        action_points=1,
    ),
    CellKind.ZONE_COMMERCIAL: CellAttributes(
        "Commercial zone",
        build_cost=100,
        action_points=1,
    ),
    CellKind.ZONE_INDUSTRIAL: CellAttributes(
        "Industrial zone",
        build_cost=100,
        action_points=1,
    ),
    CellKind.WATER: CellAttributes("Canal", build_cost=50),
    CellKind.BRIDGE: CellAttributes("Bridge", build_cost=75),
    CellKind.ROAD_4LANE: CellAttributes("Four-lane road", build_cost=100),
    CellKind.LOCKED_ROAD_4LANE: CellAttributes("Boundary four-lane road"),
    CellKind.POWER_PLANT: CellAttributes(
        "Power plant",
        power_delta=-50,
        traffic_impact=5,
        build_cost=5000,
        action_points=2,
        effect_radius=10,
    ),
    CellKind.POLICE_STATION: CellAttributes(
        "Police station",
        power_delta=2,
        traffic_impact=3,
        build_cost=3000,
        action_points=2,
        effect_radius=8,
    ),
    CellKind.FIRE_STATION: CellAttributes(
        "Fire station",
        power_delta=2,
        traffic_impact=3,
        build_cost=3000,
        action_points=2,
        effect_radius=8,
    ),
    CellKind.PARK: CellAttributes(
        "Park",
        traffic_impact=-5,
        build_cost=1000,
        action_points=2,
        effect_radius=5,
    ),
    CellKind.SCHOOL: CellAttributes(
        "School",
        power_delta=3,
        traffic_impact=8,
        build_cost=4000,
        action_points=2,
        effect_radius=6,
    ),
    CellKind.HOSPITAL: CellAttributes(
        "Hospital",
        power_delta=5,
        traffic_impact=10,
        build_cost=6000,
        action_points=2,
        effect_radius=6,
    ),
    CellKind.LARGE_POWER_PLANT: CellAttributes(
        "Large power plant",
        power_delta=-150,
        traffic_impact=10,
        build_cost=15000,
        action_points=3,
        effect_radius=15,
    ),
    CellKind.SUBWAY_STATION: CellAttributes(
        "Subway station",
        power_delta=5,
        traffic_impact=-20,
        build_cost=20000,
        action_points=3,
        effect_radius=12,
    ),
    CellKind.AIRPORT: CellAttributes(
        "Airport",
        power_delta=20,
        tax_per_hour=500,
        traffic_impact=30,
        build_cost=100000,
        action_points=5,
    ),
    CellKind.LANDMARK: CellAttributes(
        "Landmark",
        power_delta=10,
        traffic_impact=20,
        build_cost=50000,
        action_points=5,
    ),
}

LOCKED_ROADS = frozenset({CellKind.LOCKED_ROAD, CellKind.LOCKED_ROAD_4LANE})

ROAD_KINDS = frozenset(
    {
        CellKind.ROAD,
        CellKind.LOCKED_ROAD,
        CellKind.ROAD_4LANE,
        CellKind.LOCKED_ROAD_4LANE,
        CellKind.BRIDGE,
    },
)
RESIDENTIAL_KINDS = frozenset(
    {
        CellKind.RESIDENTIAL_LOW,
        CellKind.RESIDENTIAL_MID,
        CellKind.RESIDENTIAL_HIGH,
    },
)
ZONE_KINDS = frozenset(
    {
        CellKind.ZONE_RESIDENTIAL,
        CellKind.ZONE_COMMERCIAL,
        CellKind.ZONE_INDUSTRIAL,
    },
)
BUILDING_KINDS = RESIDENTIAL_KINDS | {CellKind.COMMERCIAL, CellKind.INDUSTRIAL}

_BY_CODE: dict[int, CellKind] = {kind.value: kind for kind in CellKind}
_MAX_CODE = max(_BY_CODE)


def kind_of(code: int) -> CellKind:
    """Return the kind stored under ``code``, or EMPTY if it is unknown."""
    return _BY_CODE.get(int(code), CellKind.EMPTY)


def normalise_codes(grid: NDArray[np.int64]) -> NDArray[np.int64]:
    """Replace every unknown code in ``grid`` with the EMPTY code.

    Returns a new array; the input is left untouched.
    """
    known = np.zeros(_MAX_CODE + 1, dtype=bool)
    known[list(_BY_CODE)] = True
    in_range = (grid >= 0) & (grid <= _MAX_CODE)
    mask = np.zeros(grid.shape, dtype=bool)
    mask[in_range] = known[grid[in_range]]
    return np.where(mask, grid, CellKind.EMPTY.value)


def attribute_table(name: str) -> NDArray[np.int64]:
    """Return a lookup array mapping code -> attribute ``name``.

    Index it with a grid that went through ``normalise_codes`` to get a
    per-tile raster of that attribute.

    Args:
        name: A ``CellAttributes`` integer field, e.g. ``"tax_per_hour"``.
    """
    table = np.zeros(_MAX_CODE + 1, dtype=np.int64)
    for kind, attrs in CELL_ATTRIBUTES.items():
        table[kind.value] = getattr(attrs, name)
    return table


def kind_mask(
    grid: NDArray[np.int64],
    kinds: frozenset[CellKind] | set[CellKind],
) -> NDArray[np.bool_]:
    """Boolean raster of tiles whose code belongs to one of ``kinds``."""
    return np.isin(grid, [kind.value for kind in kinds])
