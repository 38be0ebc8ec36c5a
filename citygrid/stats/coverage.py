"""Coverage rasters for radius-emitting facilities.

A tile is covered by a facility category when it lies within the effect
radius of at least one facility of that category, measured as squared
Euclidean distance (``dx**2 + dy**2 <= radius**2``).  Each facility uses
its own kind's radius, so a large power plant reaches further than a
small one.  Rasters are independent per category.
"""

from __future__ import annotations

from enum import Enum, auto

import numpy as np
from numpy.typing import NDArray

from citygrid.world.cell import CellKind, normalise_codes


class Facility(Enum):
    """Facility categories that project coverage over nearby tiles."""

    POWER = auto()
    POLICE = auto()
    FIRE = auto()
    SCHOOL = auto()
    HOSPITAL = auto()
    PARK = auto()
    TRANSIT = auto()


FACILITY_KINDS: dict[Facility, tuple[CellKind, ...]] = {
    Facility.POWER: (CellKind.POWER_PLANT, CellKind.LARGE_POWER_PLANT),
    Facility.POLICE: (CellKind.POLICE_STATION,),
    Facility.FIRE: (CellKind.FIRE_STATION,),
    Facility.SCHOOL: (CellKind.SCHOOL,),
    Facility.HOSPITAL: (CellKind.HOSPITAL,),
    Facility.PARK: (CellKind.PARK,),
    Facility.TRANSIT: (CellKind.SUBWAY_STATION,),
}

Site = tuple[int, int, int]


def facility_sites(grid: NDArray[np.int64], facility: Facility) -> list[Site]:
    """Locate every facility of a category.

    Args:
        grid: Grid of cell codes.
        facility: Category to look for.

    Returns:
        ``(row, col, radius)`` for each facility with a nonzero radius.
    """
    codes = normalise_codes(np.asarray(grid))
    sites: list[Site] = []
    for kind in FACILITY_KINDS[facility]:
        radius = kind.attributes.effect_radius
        if radius <= 0:
            continue
        rows, cols = np.nonzero(codes == kind.value)
        sites.extend((int(r), int(c), radius) for r, c in zip(rows, cols))
    return sites


def coverage_mask(shape: tuple[int, int], sites: list[Site]) -> NDArray[np.bool_]:
    """Union of the discs around ``sites`` on a raster of ``shape``.

    Args:
        shape: ``(rows, cols)`` of the raster.
        sites: ``(row, col, radius)`` triples.

    Returns:
        Boolean raster, True where at least one site reaches.
    """
    covered = np.zeros(shape, dtype=bool)
    rows, cols = np.ogrid[: shape[0], : shape[1]]
    for r, c, radius in sites:
        covered |= (rows - r) ** 2 + (cols - c) ** 2 <= radius * radius
    return covered


def coverage_maps(grid: NDArray[np.int64]) -> dict[Facility, NDArray[np.bool_]]:
    """Compute one coverage raster per facility category."""
    shape = np.asarray(grid).shape
    return {
        facility: coverage_mask(shape, facility_sites(grid, facility))
        for facility in Facility
    }
