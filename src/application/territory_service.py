"""Territory application service.

The surface exposed to presentation layers. Every operation returns either
its value or an ErrorResult with a stable ``code``; domain errors never
escape as exceptions from here.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import TypeVar

from domain.geofence.repositories import ZoneDirectory
from domain.geofence.services import distances_m
from domain.grid.errors import GridError, InvalidCoordinateError
from domain.grid.services import boundary, center, locate, make_point, neighbors, parse_cell
from domain.grid.value_objects import DEFAULT_GRID, GeoPoint, GridSpec
from domain.territory.errors import TerritoryError
from domain.territory.reconciliation import DEFAULT_CONTESTED_WINDOW, ReconciliationCache
from domain.territory.repositories import OwnershipStore
from domain.territory.services import ClaimArbitrator, Clock
from domain.territory.value_objects import (
    ActivityRequest,
    ClaimRequest,
    ErrorResult,
    ReleaseRequest,
    TerritoryFilter,
    TerritoryRecord,
)
from src.config import Settings, get_settings
from src.infrastructure.geofence import InMemoryZoneDirectory
from src.infrastructure.territory import InMemoryOwnershipStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

Location = GeoPoint | tuple[float, float]


class TerritoryService:
    """Claim, release, activity, listing and geometry helpers for callers.

    Holds explicit store / directory handles; there is no process-wide
    singleton. Several services (or read models) may share one store.
    """

    def __init__(
        self,
        store: OwnershipStore,
        zones: ZoneDirectory,
        grid: GridSpec = DEFAULT_GRID,
        clock: Clock | None = None,
        contested_window: timedelta = DEFAULT_CONTESTED_WINDOW,
    ) -> None:
        self.store = store
        self.zones = zones
        self.grid = grid
        self.contested_window = contested_window
        self.arbitrator = ClaimArbitrator(store, zones, grid=grid, clock=clock)

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        *,
        zones: ZoneDirectory | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> "TerritoryService":
        """Compose an in-memory engine from settings."""
        settings = settings or get_settings()
        return cls(
            InMemoryOwnershipStore(clock=clock),
            zones if zones is not None else InMemoryZoneDirectory(),
            grid=settings.grid(),
            clock=clock,
            contested_window=timedelta(seconds=settings.contested_window_seconds),
        )

    def read_model(self) -> ReconciliationCache:
        """Fresh consumer-side cache using this service's contested window."""
        return ReconciliationCache(contested_window=self.contested_window)

    @staticmethod
    def _guard(operation: str, call: Callable[[], T]) -> T | ErrorResult:
        try:
            return call()
        except (GridError, TerritoryError) as exc:
            logger.info("%s rejected: %s (%s)", operation, exc.code, exc)
            return ErrorResult.from_error(exc)

    @staticmethod
    def _to_point(location: Location | None) -> GeoPoint | None:
        if location is None or isinstance(location, GeoPoint):
            return location
        try:
            latitude, longitude = location
        except (TypeError, ValueError):
            raise InvalidCoordinateError(location, None) from None
        return make_point(latitude, longitude)

    def _cell_key(self, cell_id: str) -> str:
        return str(parse_cell(cell_id, self.grid))

    # -----------------------------------------------------------------------
    # Ownership
    # -----------------------------------------------------------------------
    def claim(
        self,
        cell_id: str,
        user_id: str,
        category_id: str,
        location: Location | None = None,
        *,
        geofence_restricted: bool = False,
    ) -> TerritoryRecord | ErrorResult:
        def run() -> TerritoryRecord:
            request = ClaimRequest(
                cell_id=self._cell_key(cell_id),
                actor_user_id=user_id,
                category_id=category_id,
                actor_location=self._to_point(location),
                geofence_restricted=geofence_restricted,
            )
            return self.arbitrator.claim(request)

        return self._guard("claim", run)

    def release(self, cell_id: str, user_id: str) -> TerritoryRecord | ErrorResult:
        def run() -> TerritoryRecord:
            request = ReleaseRequest(cell_id=self._cell_key(cell_id), actor_user_id=user_id)
            return self.arbitrator.release(request)

        return self._guard("release", run)

    def update_activity(self, cell_id: str, user_id: str) -> TerritoryRecord | ErrorResult:
        def run() -> TerritoryRecord:
            request = ActivityRequest(cell_id=self._cell_key(cell_id), actor_user_id=user_id)
            return self.arbitrator.update_activity(request)

        return self._guard("activity", run)

    def get_territory(self, cell_id: str) -> TerritoryRecord | ErrorResult:
        """Stored record, or the implicit unclaimed record for a fresh cell."""

        def run() -> TerritoryRecord:
            key = self._cell_key(cell_id)
            stored = self.store.get(key)
            return stored if stored is not None else TerritoryRecord.unclaimed(key)

        return self._guard("get", run)

    def list_territories(
        self, territory_filter: TerritoryFilter | None = None
    ) -> list[TerritoryRecord]:
        """Stored records matching the filter, ordered by cell id."""
        territory_filter = territory_filter or TerritoryFilter.all()
        selected = [r for r in self.store.records() if territory_filter.matches(r)]

        if territory_filter.near is not None and selected:
            centers: list[GeoPoint] = []
            on_map: list[TerritoryRecord] = []
            for record in selected:
                try:
                    centers.append(center(record.cell_id, self.grid))
                except GridError:
                    continue
                on_map.append(record)
            distances = distances_m(territory_filter.near, centers)
            selected = [
                record
                for record, dist in zip(on_map, distances)
                if dist <= territory_filter.radius_meters
            ]

        return sorted(selected, key=lambda r: r.cell_id)

    # -----------------------------------------------------------------------
    # Geometry helpers (read-only)
    # -----------------------------------------------------------------------
    def locate(self, latitude: float, longitude: float) -> str | ErrorResult:
        return self._guard("locate", lambda: str(locate(latitude, longitude, self.grid)))

    def neighbors(self, cell_id: str, radius: int) -> list[str] | ErrorResult:
        return self._guard(
            "neighbors",
            lambda: sorted(str(cell) for cell in neighbors(cell_id, radius, self.grid)),
        )

    def boundary(self, cell_id: str) -> list[GeoPoint] | ErrorResult:
        return self._guard("boundary", lambda: boundary(cell_id, self.grid))
