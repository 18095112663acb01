"""Territory Bounded Context - Domain Services.

ClaimArbitrator orchestrates claim / release / activity requests against an
OwnershipStore. Each operation ends in exactly one store transition (or in
a typed TerritoryError before any write).

State machine per cell:
    unclaimed --claim--> claimed
    claimed --release (owner)--> unclaimed
    claimed --activity (owner)--> claimed (activity_count + 1)

A claim on a claimed cell is rejected; no transition produces CONTESTED.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from domain.geofence.repositories import ZoneDirectory
from domain.geofence.services import is_eligible
from domain.grid.services import parse_cell
from domain.grid.value_objects import DEFAULT_GRID, GridSpec
from domain.territory.errors import (
    AlreadyClaimedError,
    GeozoneOutOfBoundsError,
    InvalidStateError,
    NotClaimedError,
    NotOwnerError,
    StaleWriteError,
)
from domain.territory.repositories import OwnershipStore
from domain.territory.value_objects import (
    ActivityRequest,
    ClaimRequest,
    Conflict,
    ReleaseRequest,
    TerritoryRecord,
    TerritoryStatus,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ClaimArbitrator:
    """Resolves ownership requests into store transitions.

    Parameters
    ----------
    store: OwnershipStore
        Sole holder of TerritoryRecords; all writes go through its transition().
    zones: ZoneDirectory
        Read-only zone lookup for geofence-restricted actors.
    grid: GridSpec
        Lattice that cell ids are validated against.
    clock: Callable[[], datetime]
        Source of claimed_at / last_activity_at timestamps.
    """

    def __init__(
        self,
        store: OwnershipStore,
        zones: ZoneDirectory,
        grid: GridSpec = DEFAULT_GRID,
        clock: Clock | None = None,
    ) -> None:
        self.store = store
        self.zones = zones
        self.grid = grid
        self.clock = clock or utc_now

    def _cell_key(self, cell_id: str) -> str:
        # Canonical text form, so "010_20_9" and "10_20_9" share one record
        return str(parse_cell(cell_id, self.grid))

    # -----------------------------------------------------------------------
    # Claim
    # -----------------------------------------------------------------------
    def claim(self, request: ClaimRequest) -> TerritoryRecord:
        """Make the actor the sole owner of an unclaimed cell.

        Raises:
            InvalidCellError: Malformed cell id
            GeozoneOutOfBoundsError: Restricted actor outside their zones
            AlreadyClaimedError: Someone owns the cell
            InvalidStateError: Conflict in any other observed state
        """
        cell_id = self._cell_key(request.cell_id)
        actor = request.actor_user_id

        if request.geofence_restricted:
            zones = self.zones.fetch_zones_for_subject(actor)
            if not is_eligible(actor, request.actor_location, zones):
                logger.info(
                    "Claim of %s by %s rejected: outside %d geozone(s)",
                    cell_id,
                    actor,
                    len(zones),
                )
                raise GeozoneOutOfBoundsError(cell_id, actor)

        now = self.clock()
        result = self.store.transition(
            cell_id,
            TerritoryStatus.UNCLAIMED,
            lambda current: {
                "status": TerritoryStatus.CLAIMED,
                "owner_id": actor,
                "category_id": request.category_id,
                "claimed_at": now,
                "last_activity_at": now,
                "activity_count": 1,
            },
        )
        if isinstance(result, Conflict):
            current = result.current
            if current.status is TerritoryStatus.CLAIMED:
                logger.info(
                    "Claim of %s by %s rejected: owned by %s",
                    cell_id,
                    actor,
                    current.owner_id,
                )
                raise AlreadyClaimedError(cell_id, current.owner_id, current.category_id)
            raise InvalidStateError(cell_id, current.status.value)

        logger.info("Cell %s claimed by %s for %s", cell_id, actor, request.category_id)
        return result

    # -----------------------------------------------------------------------
    # Release
    # -----------------------------------------------------------------------
    def _require_owner(self, cell_id: str, actor: str) -> TerritoryRecord:
        current = self.store.get(cell_id)
        if current is None or current.status is not TerritoryStatus.CLAIMED:
            raise NotClaimedError(cell_id)
        if current.owner_id != actor:
            raise NotOwnerError(cell_id, actor)
        return current

    def release(self, request: ReleaseRequest) -> TerritoryRecord:
        """Give up ownership; only the current owner may release.

        Raises:
            InvalidCellError: Malformed cell id
            NotClaimedError: Cell absent or not claimed
            NotOwnerError: Actor is not the owner
            StaleWriteError: Owner changed between read and write
        """
        cell_id = self._cell_key(request.cell_id)
        actor = request.actor_user_id
        self._require_owner(cell_id, actor)

        result = self.store.transition(
            cell_id,
            TerritoryStatus.CLAIMED,
            lambda current: {
                "status": TerritoryStatus.UNCLAIMED,
                "owner_id": None,
                "activity_count": 0,
            },
            expected_owner_id=actor,
        )
        if isinstance(result, Conflict):
            logger.warning("Release of %s by %s lost a race", cell_id, actor)
            raise StaleWriteError(cell_id)

        logger.info("Cell %s released by %s", cell_id, actor)
        return result

    # -----------------------------------------------------------------------
    # Activity
    # -----------------------------------------------------------------------
    def update_activity(self, request: ActivityRequest) -> TerritoryRecord:
        """Record engagement on an owned cell without changing ownership.

        Raises:
            InvalidCellError: Malformed cell id
            NotClaimedError: Cell absent or not claimed
            NotOwnerError: Actor is not the owner
            StaleWriteError: Owner changed between read and write
        """
        cell_id = self._cell_key(request.cell_id)
        actor = request.actor_user_id
        self._require_owner(cell_id, actor)

        now = self.clock()
        result = self.store.transition(
            cell_id,
            TerritoryStatus.CLAIMED,
            lambda current: {
                "activity_count": current.activity_count + 1,
                "last_activity_at": now,
            },
            expected_owner_id=actor,
        )
        if isinstance(result, Conflict):
            logger.warning("Activity on %s by %s lost a race", cell_id, actor)
            raise StaleWriteError(cell_id)

        logger.debug("Cell %s activity %d", cell_id, result.activity_count)
        return result
