"""Territory Engine Domain Layer.

This package contains the core business logic organized by bounded contexts:
- grid: Coordinate quantization, cell identifiers, neighborhoods
- geofence: Circular safe zones and eligibility predicates
- territory: Ownership records, claim arbitration, reconciliation
"""

# Imports alphabetized per project style (isort)
from domain import geofence, grid, territory

__all__ = ["geofence", "grid", "territory"]
