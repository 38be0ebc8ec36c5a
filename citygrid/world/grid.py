"""Grid — parsing, validation and serialization of tile grids.

A grid is a square ``numpy`` array of cell codes indexed ``grid[row, col]``.
Untrusted grids must have exactly the configured shape; anything else is a
structural failure raised before any simulation runs.  Stored grids read
back on display paths take the lenient route and degrade to empty land.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import numpy as np
from numpy.typing import NDArray

from citygrid.world.cell import LOCKED_ROADS, CellKind, kind_mask

logger = logging.getLogger(__name__)

Grid = NDArray[np.int64]


class GridShapeError(ValueError):
    """Raised when a grid payload is not a square integer matrix of the right size."""


def parse_grid(data: Any, size: int) -> Grid:
    """Parse a grid payload into a ``size`` x ``size`` integer array.

    Accepts a nested sequence, a numpy array, a JSON string holding a 2-D
    array, or a JSON object whose ``tiles`` key holds the array.

    Args:
        data: The grid payload.
        size: Required side length.

    Returns:
        A fresh ``int64`` array; the payload is never aliased.

    Raises:
        GridShapeError: If the payload cannot be decoded or has the wrong
            shape or element type.
    """
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as exc:
            msg = f"grid payload is not valid JSON: {exc}"
            raise GridShapeError(msg) from exc
    if isinstance(data, dict):
        if "tiles" not in data:
            msg = "grid object has no 'tiles' entry"
            raise GridShapeError(msg)
        data = data["tiles"]
    if data is None:
        msg = "grid payload is missing"
        raise GridShapeError(msg)

    try:
        grid = np.array(data)
    except ValueError as exc:
        msg = f"grid rows are ragged: {exc}"
        raise GridShapeError(msg) from exc

    if grid.shape != (size, size):
        msg = f"grid must be {size}x{size}, got shape {grid.shape}"
        raise GridShapeError(msg)
    if grid.dtype == np.bool_ or not np.issubdtype(grid.dtype, np.integer):
        msg = f"grid cells must be integers, got {grid.dtype}"
        raise GridShapeError(msg)
    return grid.astype(np.int64, copy=True)


def load_stored_grid(data: Any, size: int) -> Grid:
    """Parse a persisted grid, degrading to empty land on any failure.

    Used on read paths, where the viewer did not cause the corruption and
    should still get a response.
    """
    try:
        return parse_grid(data, size)
    except GridShapeError as exc:
        logger.warning("Stored grid unreadable, using empty grid: %s", exc)
        return empty_grid(size)


def empty_grid(size: int) -> Grid:
    return np.full((size, size), CellKind.EMPTY.value, dtype=np.int64)


def default_grid(size: int, boundary_rows: int = 2) -> Grid:
    """Return the starting grid of a new city.

    Empty land with the bottom ``boundary_rows`` rows laid as locked
    four-lane road.
    """
    grid = empty_grid(size)
    if boundary_rows > 0:
        grid[size - boundary_rows :, :] = CellKind.LOCKED_ROAD_4LANE.value
    return grid


def serialize_grid(grid: Grid) -> str:
    """Encode a grid as a row-major JSON array of arrays."""
    return json.dumps(np.asarray(grid).tolist(), separators=(",", ":"))


def changed_cells(old: Grid, new: Grid) -> NDArray[np.bool_]:
    """Boolean raster of tiles whose code differs between two grids."""
    return np.asarray(old) != np.asarray(new)


def locked_cells(grid: Grid) -> NDArray[np.bool_]:
    """Boolean raster of locked boundary-road tiles."""
    return kind_mask(grid, LOCKED_ROADS)
