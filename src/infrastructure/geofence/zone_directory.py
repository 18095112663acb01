"""In-memory adapter for ZoneDirectory.

Stands in for the account-linking subsystem that owns GeoZones. Parents
create, update and delete zones here; the core only calls
fetch_zones_for_subject().
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

from domain.geofence.value_objects import GeoZone

logger = logging.getLogger(__name__)


class InMemoryZoneDirectory:
    """Thread-safe zone table keyed by zone_id."""

    def __init__(self, zones: Iterable[GeoZone] = ()) -> None:
        self._lock = threading.Lock()
        self._zones: dict[str, GeoZone] = {zone.zone_id: zone for zone in zones}

    def put(self, zone: GeoZone) -> None:
        """Create or replace a zone."""
        with self._lock:
            self._zones[zone.zone_id] = zone
        logger.debug("Zone %s stored for subject %s", zone.zone_id, zone.subject_user_id)

    def delete(self, zone_id: str) -> GeoZone | None:
        with self._lock:
            return self._zones.pop(zone_id, None)

    def fetch_zones_for_subject(self, subject_user_id: str) -> list[GeoZone]:
        with self._lock:
            return [z for z in self._zones.values() if z.subject_user_id == subject_user_id]

    def zones_owned_by(self, owner_user_id: str) -> list[GeoZone]:
        """Zones a parent manages."""
        with self._lock:
            return [z for z in self._zones.values() if z.owner_user_id == owner_user_id]
