"""Grid Bounded Context - Domain Services.

Pure functions converting between continuous coordinates and lattice cells.
NO I/O and NO state: every function takes the GridSpec it operates on.

Contract:
    - locate() is deterministic and many-to-one
    - locate(center(c)) == c for every cell produced by locate()
    - neighbors(c, r) has exactly (2r+1)^2 members and is symmetric
"""

from __future__ import annotations

import math

from domain.grid.errors import InvalidCellError, InvalidCoordinateError, InvalidRadiusError
from domain.grid.value_objects import DEFAULT_GRID, CellId, GeoPoint, GridSpec

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
MAX_LATITUDE = 90.0
MAX_LONGITUDE = 180.0


# ---------------------------------------------------------------------------
# Coordinate Validation
# ---------------------------------------------------------------------------
def make_point(latitude: float, longitude: float) -> GeoPoint:
    """Build a GeoPoint, raising InvalidCoordinateError for out-of-range input.

    NaN fails both range comparisons and is rejected the same way.
    """
    try:
        lat = float(latitude)
        lng = float(longitude)
    except (TypeError, ValueError):
        raise InvalidCoordinateError(latitude, longitude) from None
    if not (-MAX_LATITUDE <= lat <= MAX_LATITUDE):
        raise InvalidCoordinateError(latitude, longitude)
    if not (-MAX_LONGITUDE <= lng <= MAX_LONGITUDE):
        raise InvalidCoordinateError(latitude, longitude)
    return GeoPoint(latitude=lat, longitude=lng)


def parse_cell(cell_id: str | CellId, grid: GridSpec = DEFAULT_GRID) -> CellId:
    """Parse and check a cell id against the grid's resolution.

    Raises:
        InvalidCellError: Malformed id or resolution mismatch
    """
    cell = cell_id if isinstance(cell_id, CellId) else CellId.parse(cell_id)
    if cell.resolution != grid.resolution:
        raise InvalidCellError(
            cell_id,
            f"resolution {cell.resolution} does not match grid resolution "
            f"{grid.resolution}",
        )
    return cell


# ---------------------------------------------------------------------------
# Quantization
# ---------------------------------------------------------------------------
def _fold_index(index: int, size: float, limit: float) -> int:
    """Pull edge indices back so the cell center stays within [-limit, limit].

    Only latitude 90 / longitude 180 (and float noise at the negative edge)
    ever land here.
    """
    if (index + 0.5) * size > limit:
        return index - 1
    if (index + 0.5) * size < -limit:
        return index + 1
    return index


def locate(latitude: float, longitude: float, grid: GridSpec = DEFAULT_GRID) -> CellId:
    """Quantize a coordinate onto the lattice.

    Args:
        latitude: Degrees in [-90, 90]
        longitude: Degrees in [-180, 180]
        grid: Lattice to quantize onto

    Returns:
        The CellId containing the coordinate

    Raises:
        InvalidCoordinateError: If the coordinate is out of range

    Example:
        >>> str(locate(0.0095, 0.0185))
        '10_20_9'
    """
    point = make_point(latitude, longitude)
    size = grid.cell_size_deg
    row = _fold_index(math.floor(point.latitude / size), size, MAX_LATITUDE)
    col = _fold_index(math.floor(point.longitude / size), size, MAX_LONGITUDE)
    return CellId(row=row, col=col, resolution=grid.resolution)


def locate_point(point: GeoPoint, grid: GridSpec = DEFAULT_GRID) -> CellId:
    """locate() for an already validated GeoPoint."""
    return locate(point.latitude, point.longitude, grid)


# ---------------------------------------------------------------------------
# Cell Geometry
# ---------------------------------------------------------------------------
def center(cell_id: str | CellId, grid: GridSpec = DEFAULT_GRID) -> GeoPoint:
    """Return the center coordinate of a cell.

    Raises:
        InvalidCellError: Malformed id, or the cell lies beyond the poles or
            the antimeridian (possible for neighbors of edge cells)
    """
    cell = parse_cell(cell_id, grid)
    size = grid.cell_size_deg
    lat = (cell.row + 0.5) * size
    lng = (cell.col + 0.5) * size
    if abs(lat) > MAX_LATITUDE or abs(lng) > MAX_LONGITUDE:
        raise InvalidCellError(cell_id, "cell lies outside the coordinate domain")
    return GeoPoint(latitude=lat, longitude=lng)


def _clamp(value: float, limit: float) -> float:
    return max(-limit, min(limit, value))


def boundary(cell_id: str | CellId, grid: GridSpec = DEFAULT_GRID) -> list[GeoPoint]:
    """Return the cell outline as a closed ring (first point repeated last).

    Corners run counter-clockwise from south-west. Corners are clamped to the
    coordinate domain, so the ring always contains center(cell_id).
    """
    cell = parse_cell(cell_id, grid)
    center(cell, grid)  # rejects off-map cells
    size = grid.cell_size_deg
    south = _clamp(cell.row * size, MAX_LATITUDE)
    north = _clamp((cell.row + 1) * size, MAX_LATITUDE)
    west = _clamp(cell.col * size, MAX_LONGITUDE)
    east = _clamp((cell.col + 1) * size, MAX_LONGITUDE)
    corners = [
        GeoPoint(latitude=south, longitude=west),
        GeoPoint(latitude=south, longitude=east),
        GeoPoint(latitude=north, longitude=east),
        GeoPoint(latitude=north, longitude=west),
    ]
    return [*corners, corners[0]]


# ---------------------------------------------------------------------------
# Neighborhoods
# ---------------------------------------------------------------------------
def neighbors(
    cell_id: str | CellId, radius: int, grid: GridSpec = DEFAULT_GRID
) -> set[CellId]:
    """Return every cell within ``radius`` Chebyshev steps, the cell included.

    The lattice is treated as unbounded (no wrap at the antimeridian), which
    keeps the result at exactly (2r+1)^2 cells and symmetric.

    Raises:
        InvalidCellError: Malformed id
        InvalidRadiusError: If radius is negative or not an integer
    """
    if isinstance(radius, bool) or not isinstance(radius, int) or radius < 0:
        raise InvalidRadiusError(radius)
    cell = parse_cell(cell_id, grid)
    steps = range(-radius, radius + 1)
    return {cell.offset(d_row, d_col) for d_row in steps for d_col in steps}


def ring_distance(
    a: str | CellId, b: str | CellId, grid: GridSpec = DEFAULT_GRID
) -> int:
    """Chebyshev distance in lattice steps: b in neighbors(a, r) iff <= r."""
    first = parse_cell(a, grid)
    second = parse_cell(b, grid)
    return max(abs(first.row - second.row), abs(first.col - second.col))


def claimable_cells(
    point: GeoPoint, reach: int = 0, grid: GridSpec = DEFAULT_GRID
) -> set[CellId]:
    """Cells an actor standing at ``point`` can see within ``reach`` steps."""
    return neighbors(locate_point(point, grid), reach, grid)
