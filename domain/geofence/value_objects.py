"""Geofence Bounded Context - Value Objects.

GeoZones are created and edited by the account-linking subsystem; the core
only reads them.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from domain.grid.value_objects import GeoPoint


class GeoZone(BaseModel):
    """Circular safe area a parent defines for a child (Value Object).

    Invariants:
        GZ-1: radius_meters >= 0
        GZ-2: center is a valid GeoPoint
    """

    zone_id: str
    owner_user_id: str  # parent who manages the zone
    subject_user_id: str  # child the zone restricts
    center: GeoPoint
    radius_meters: float = Field(ge=0)
    name: str = ""

    model_config = ConfigDict(frozen=True)
