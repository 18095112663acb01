"""Geofence Bounded Context - Domain Services.

Pure predicates over points and circular zones. Zones are supplied by the
caller; nothing here fetches or caches them.

Distances are great-circle distances on a sphere of mean Earth radius
(6,371,000 m), i.e. what the haversine formula gives. pyproj.Geod on a
zero-flattening ellipsoid computes exactly that, and vectorises over numpy
arrays for batch filtering.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import numpy as np
from numpy.typing import NDArray
from pyproj import Geod

from domain.geofence.value_objects import GeoZone
from domain.grid.value_objects import GeoPoint

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
EARTH_RADIUS_M = 6_371_000.0

# Spherical Earth model; flattening 0 turns geodesics into great circles
_sphere = Geod(a=EARTH_RADIUS_M, f=0.0)


# ---------------------------------------------------------------------------
# Great-circle Distance
# ---------------------------------------------------------------------------
def distance_m(start: GeoPoint, end: GeoPoint) -> float:
    """Great-circle distance between two points in meters (always >= 0)."""
    _, _, distance = _sphere.inv(
        start.longitude, start.latitude, end.longitude, end.latitude
    )
    return float(abs(distance))


def distances_m(origin: GeoPoint, points: Sequence[GeoPoint]) -> NDArray[np.float64]:
    """Distances from ``origin`` to each point, as a float64 array."""
    if not points:
        return np.empty(0, dtype=np.float64)
    lats = np.fromiter((p.latitude for p in points), dtype=np.float64, count=len(points))
    lons = np.fromiter((p.longitude for p in points), dtype=np.float64, count=len(points))
    _, _, dist = _sphere.inv(
        np.full_like(lons, origin.longitude),
        np.full_like(lats, origin.latitude),
        lons,
        lats,
    )
    return np.abs(np.asarray(dist, dtype=np.float64))


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------
def contains(point: GeoPoint, zone: GeoZone) -> bool:
    """True iff ``point`` lies within ``zone.radius_meters`` of the zone center."""
    return distance_m(point, zone.center) <= zone.radius_meters


def zones_for(actor_user_id: str, zones: Iterable[GeoZone]) -> list[GeoZone]:
    """Zones that restrict ``actor_user_id``; zones for other subjects are ignored."""
    return [zone for zone in zones if zone.subject_user_id == actor_user_id]


def zones_containing(point: GeoPoint, zones: Iterable[GeoZone]) -> list[GeoZone]:
    """Zones (of any subject) whose circle contains ``point``."""
    return [zone for zone in zones if contains(point, zone)]


def is_eligible(
    actor_user_id: str, point: GeoPoint | None, zones: Iterable[GeoZone]
) -> bool:
    """Decide whether an actor may act from ``point``.

    An actor with no zones restricting them is always eligible (fail-open).
    Otherwise the point must be inside at least one of their zones; a missing
    point cannot be proven inside and is ineligible.
    """
    restricting = zones_for(actor_user_id, zones)
    if not restricting:
        return True
    if point is None:
        return False
    return any(contains(point, zone) for zone in restricting)
