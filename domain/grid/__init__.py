"""Grid Bounded Context.

Responsible for the discrete spatial lattice:
- Value Objects: GeoPoint, CellId, GridSpec
- Services: locate, neighbors, center, boundary
- Errors: InvalidCellError, InvalidCoordinateError, InvalidRadiusError
"""
