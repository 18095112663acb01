"""Grid Bounded Context - Error Hierarchy.

Precondition violations raised before any ownership state is touched.
Each error carries the stable code surfaced verbatim to callers.
"""

from __future__ import annotations

from typing import Any, ClassVar


class GridError(Exception):
    """Base error for grid operations."""

    code: ClassVar[str] = "GRID_ERROR"

    @property
    def context(self) -> dict[str, Any]:
        return {}


class InvalidCellError(GridError):
    """Cell identifier is malformed, has the wrong resolution, or lies off the map.

    Attributes:
        cell_id: The offending identifier as received
    """

    code: ClassVar[str] = "INVALID_CELL"

    def __init__(self, cell_id: object, reason: str = "malformed cell id") -> None:
        self.cell_id = cell_id
        self.reason = reason
        super().__init__(f"Invalid cell {cell_id!r}: {reason}")

    @property
    def context(self) -> dict[str, Any]:
        return {"cell_id": str(self.cell_id)}


class InvalidCoordinateError(GridError):
    """Coordinate is outside latitude [-90, 90] / longitude [-180, 180].

    Attributes:
        latitude: Latitude as received
        longitude: Longitude as received
    """

    code: ClassVar[str] = "INVALID_COORDINATE"

    def __init__(self, latitude: float, longitude: float) -> None:
        self.latitude = latitude
        self.longitude = longitude
        super().__init__(
            f"Coordinate ({latitude}, {longitude}) outside "
            "[lat: -90 to 90, lon: -180 to 180]"
        )

    @property
    def context(self) -> dict[str, Any]:
        return {"latitude": self.latitude, "longitude": self.longitude}


class InvalidRadiusError(GridError):
    """Neighborhood radius is negative.

    Attributes:
        radius: Radius as received
    """

    code: ClassVar[str] = "INVALID_RADIUS"

    def __init__(self, radius: object) -> None:
        self.radius = radius
        super().__init__(f"Invalid radius {radius!r}: must be a non-negative integer")

    @property
    def context(self) -> dict[str, Any]:
        return {"radius": str(self.radius)}
