"""Grid Bounded Context - Value Objects.

Immutable data structures for the spatial lattice.
All validation occurs at construction time via Pydantic.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field

from domain.grid.errors import InvalidCellError

# ---------------------------------------------------------------------------
# Lattice Constants
# ---------------------------------------------------------------------------
DEFAULT_CELL_SIZE_DEG = 0.0009  # ~100 m of latitude per cell
DEFAULT_RESOLUTION = 9

_CELL_ID_PATTERN = re.compile(r"^(-?\d+)_(-?\d+)_(\d+)$")


# ---------------------------------------------------------------------------
# GeoPoint
# ---------------------------------------------------------------------------
class GeoPoint(BaseModel):
    """Geographic coordinate in WGS84 (Value Object).

    Invariants:
        GP-1: latitude in [-90, 90]
        GP-2: longitude in [-180, 180]

    Pydantic frozen models compare by value and are hashable.
    """

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# GridSpec
# ---------------------------------------------------------------------------
class GridSpec(BaseModel):
    """Fixed-resolution square lattice over latitude/longitude (Value Object).

    Rows step through latitude, columns through longitude, both by
    ``cell_size_deg``. The resolution tag is embedded in every CellId so ids
    from a differently configured lattice are rejected instead of misread.
    """

    cell_size_deg: float = Field(default=DEFAULT_CELL_SIZE_DEG, gt=0, le=1)
    resolution: int = Field(default=DEFAULT_RESOLUTION, ge=0)

    model_config = ConfigDict(frozen=True)


DEFAULT_GRID = GridSpec()


# ---------------------------------------------------------------------------
# CellId
# ---------------------------------------------------------------------------
class CellId(BaseModel):
    """Address of one lattice cell (Value Object).

    Text form is ``"{row}_{col}_{resolution}"``, e.g. ``"10_20_9"``.
    Rows and columns are unbounded integers: neighborhoods near the poles
    may name cells that have no valid center.
    """

    row: int
    col: int
    resolution: int = Field(ge=0)

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.row}_{self.col}_{self.resolution}"

    @classmethod
    def parse(cls, text: object) -> "CellId":
        """Parse the text form.

        Raises:
            InvalidCellError: If ``text`` is not a string of the expected shape
        """
        if not isinstance(text, str):
            raise InvalidCellError(text, "cell id must be a string")
        match = _CELL_ID_PATTERN.match(text.strip())
        if match is None:
            raise InvalidCellError(text)
        row, col, resolution = (int(part) for part in match.groups())
        return cls(row=row, col=col, resolution=resolution)

    def offset(self, d_row: int, d_col: int) -> "CellId":
        """Return the cell ``d_row`` rows and ``d_col`` columns away."""
        return CellId(
            row=self.row + d_row, col=self.col + d_col, resolution=self.resolution
        )
