"""Tests for ClaimArbitrator.

Use the in-memory store and zone directory from conftest; geofence tests
place zones around the "10_20_9" cell (lat 0.0095, lng 0.0185).
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from unittest.mock import MagicMock

import pytest

from domain.grid.errors import InvalidCellError
from domain.grid.value_objects import GeoPoint
from domain.territory.errors import (
    AlreadyClaimedError,
    GeozoneOutOfBoundsError,
    InvalidStateError,
    NotClaimedError,
    NotOwnerError,
    StaleWriteError,
)
from domain.territory.services import ClaimArbitrator
from domain.territory.value_objects import (
    ActivityRequest,
    ClaimRequest,
    Conflict,
    ReleaseRequest,
    TerritoryRecord,
    TerritoryStatus,
)
from src.infrastructure.geofence import InMemoryZoneDirectory
from src.infrastructure.territory import InMemoryOwnershipStore
from tests.conftest_utils import make_zone

CELL = "10_20_9"
INSIDE = GeoPoint(latitude=0.0095, longitude=0.0185)
FAR_AWAY = GeoPoint(latitude=0.5, longitude=0.5)


def claim(user: str, category: str = "fitness", **kwargs) -> ClaimRequest:
    return ClaimRequest(cell_id=CELL, actor_user_id=user, category_id=category, **kwargs)


# ===========================================================================
# Claim
# ===========================================================================
class TestClaim:
    """unclaimed --claim--> claimed"""

    def test_claim_unclaimed_cell(self, arbitrator):
        record = arbitrator.claim(claim("alice"))

        assert record.status is TerritoryStatus.CLAIMED
        assert record.owner_id == "alice"
        assert record.category_id == "fitness"
        assert record.activity_count == 1
        assert record.claimed_at == record.last_activity_at

    def test_claim_claimed_cell_rejected(self, arbitrator, store):
        arbitrator.claim(claim("alice"))
        before = store.get(CELL)

        with pytest.raises(AlreadyClaimedError) as exc_info:
            arbitrator.claim(claim("bob", category="art"))

        assert exc_info.value.owner_id == "alice"
        assert exc_info.value.category_id == "fitness"
        assert exc_info.value.code == "ALREADY_CLAIMED"
        assert store.get(CELL) is before

    def test_one_record_per_cell_across_categories(self, arbitrator):
        arbitrator.claim(claim("alice", category="fitness"))
        with pytest.raises(AlreadyClaimedError):
            arbitrator.claim(claim("alice", category="reading"))

    def test_cell_id_canonicalized(self, arbitrator, store):
        arbitrator.claim(ClaimRequest(cell_id="010_020_9", actor_user_id="alice", category_id="x"))
        assert store.get(CELL).owner_id == "alice"

    @pytest.mark.parametrize("cell_id", ["bogus", "10_20_8"])
    def test_invalid_cell_rejected_before_store(self, cell_id):
        store = MagicMock()
        arbitrator = ClaimArbitrator(store, InMemoryZoneDirectory())

        with pytest.raises(InvalidCellError):
            arbitrator.claim(ClaimRequest(cell_id=cell_id, actor_user_id="a", category_id="x"))
        store.transition.assert_not_called()

    def test_conflict_in_unexpected_state(self):
        store = MagicMock()
        store.transition.return_value = Conflict(
            cell_id=CELL,
            expected_status=TerritoryStatus.UNCLAIMED,
            current=TerritoryRecord(cell_id=CELL, status=TerritoryStatus.CONTESTED),
        )
        arbitrator = ClaimArbitrator(store, InMemoryZoneDirectory())

        with pytest.raises(InvalidStateError, match="contested"):
            arbitrator.claim(claim("alice"))


# ===========================================================================
# Geofence
# ===========================================================================
class TestGeofencedClaim:
    """Restricted actors must stand inside one of their zones."""

    def test_restricted_inside_zone(self, arbitrator, zones):
        zones.put(make_zone(subject="child"))
        record = arbitrator.claim(
            claim("child", actor_location=INSIDE, geofence_restricted=True)
        )
        assert record.owner_id == "child"

    def test_restricted_outside_zone_no_store_access(self, zones):
        zones.put(make_zone(subject="child"))
        store = MagicMock()
        arbitrator = ClaimArbitrator(store, zones)

        with pytest.raises(GeozoneOutOfBoundsError) as exc_info:
            arbitrator.claim(
                claim("child", actor_location=FAR_AWAY, geofence_restricted=True)
            )

        assert exc_info.value.code == "GEOZONE_OUT_OF_BOUNDS"
        store.transition.assert_not_called()
        store.get.assert_not_called()

    def test_restricted_without_location(self, arbitrator, zones):
        zones.put(make_zone(subject="child"))
        with pytest.raises(GeozoneOutOfBoundsError):
            arbitrator.claim(claim("child", geofence_restricted=True))

    def test_restricted_without_zones_fail_open(self, arbitrator):
        record = arbitrator.claim(
            claim("child", actor_location=FAR_AWAY, geofence_restricted=True)
        )
        assert record.owner_id == "child"

    def test_unrestricted_actor_ignores_zones(self, arbitrator, zones):
        zones.put(make_zone(subject="adult"))
        record = arbitrator.claim(claim("adult", actor_location=FAR_AWAY))
        assert record.owner_id == "adult"

    def test_zone_directory_only_consulted_when_restricted(self, store):
        directory = MagicMock()
        arbitrator = ClaimArbitrator(store, directory)
        arbitrator.claim(claim("adult"))
        directory.fetch_zones_for_subject.assert_not_called()


# ===========================================================================
# Release
# ===========================================================================
class TestRelease:
    """claimed --release (owner)--> unclaimed"""

    def test_owner_releases(self, arbitrator):
        arbitrator.claim(claim("alice"))
        record = arbitrator.release(ReleaseRequest(cell_id=CELL, actor_user_id="alice"))

        assert record.status is TerritoryStatus.UNCLAIMED
        assert record.owner_id is None
        assert record.activity_count == 0

    def test_non_owner_cannot_release(self, arbitrator, store):
        arbitrator.claim(claim("alice"))

        with pytest.raises(NotOwnerError):
            arbitrator.release(ReleaseRequest(cell_id=CELL, actor_user_id="bob"))

        current = store.get(CELL)
        assert current.status is TerritoryStatus.CLAIMED
        assert current.owner_id == "alice"

    def test_release_unclaimed(self, arbitrator):
        with pytest.raises(NotClaimedError):
            arbitrator.release(ReleaseRequest(cell_id=CELL, actor_user_id="alice"))

    def test_release_after_release(self, arbitrator):
        arbitrator.claim(claim("alice"))
        arbitrator.release(ReleaseRequest(cell_id=CELL, actor_user_id="alice"))
        with pytest.raises(NotClaimedError):
            arbitrator.release(ReleaseRequest(cell_id=CELL, actor_user_id="alice"))

    def test_owner_changed_between_read_and_write(self, clock):
        """Read sees alice, write finds bob: StaleWrite, bob keeps the cell."""
        store = InMemoryOwnershipStore(clock=clock)
        arbitrator = ClaimArbitrator(store, InMemoryZoneDirectory(), clock=clock)
        arbitrator.claim(claim("alice"))
        stale_view = store.get(CELL)

        arbitrator.release(ReleaseRequest(cell_id=CELL, actor_user_id="alice"))
        arbitrator.claim(claim("bob"))

        racing = MagicMock(wraps=store)
        racing.get.return_value = stale_view
        with pytest.raises(StaleWriteError) as exc_info:
            ClaimArbitrator(racing, InMemoryZoneDirectory()).release(
                ReleaseRequest(cell_id=CELL, actor_user_id="alice")
            )

        assert exc_info.value.retryable is True
        assert store.get(CELL).owner_id == "bob"

    def test_reclaim_after_release_resets_counter(self, arbitrator):
        arbitrator.claim(claim("alice"))
        arbitrator.update_activity(ActivityRequest(cell_id=CELL, actor_user_id="alice"))
        arbitrator.release(ReleaseRequest(cell_id=CELL, actor_user_id="alice"))

        record = arbitrator.claim(claim("carol"))
        assert record.activity_count == 1
        assert record.owner_id == "carol"


# ===========================================================================
# Activity
# ===========================================================================
class TestUpdateActivity:
    """claimed --activity (owner)--> claimed"""

    def test_owner_activity_increments(self, arbitrator):
        first = arbitrator.claim(claim("alice"))
        second = arbitrator.update_activity(ActivityRequest(cell_id=CELL, actor_user_id="alice"))
        third = arbitrator.update_activity(ActivityRequest(cell_id=CELL, actor_user_id="alice"))

        assert [first.activity_count, second.activity_count, third.activity_count] == [1, 2, 3]
        assert third.status is TerritoryStatus.CLAIMED
        assert third.owner_id == "alice"
        assert third.claimed_at == first.claimed_at
        assert third.last_activity_at > first.last_activity_at
        assert third.updated_at > second.updated_at > first.updated_at

    def test_non_owner_activity(self, arbitrator):
        arbitrator.claim(claim("alice"))
        with pytest.raises(NotOwnerError):
            arbitrator.update_activity(ActivityRequest(cell_id=CELL, actor_user_id="bob"))

    def test_activity_on_unclaimed(self, arbitrator):
        with pytest.raises(NotClaimedError):
            arbitrator.update_activity(ActivityRequest(cell_id=CELL, actor_user_id="alice"))


# ===========================================================================
# Mutual exclusion
# ===========================================================================
@pytest.mark.parametrize("contenders", [2, 8, 32])
def test_exactly_one_concurrent_claim_wins(contenders):
    """N racing claims on one cell: one success, N-1 AlreadyClaimed."""
    store = InMemoryOwnershipStore()
    arbitrator = ClaimArbitrator(store, InMemoryZoneDirectory())
    barrier = threading.Barrier(contenders)

    def attempt(index: int) -> object:
        barrier.wait()
        try:
            return arbitrator.claim(claim(f"user-{index}"))
        except AlreadyClaimedError as exc:
            return exc

    with ThreadPoolExecutor(max_workers=contenders) as pool:
        outcomes = list(pool.map(attempt, range(contenders)))

    winners = [o for o in outcomes if isinstance(o, TerritoryRecord)]
    losers = [o for o in outcomes if isinstance(o, AlreadyClaimedError)]
    assert len(winners) == 1
    assert len(losers) == contenders - 1
    assert all(loser.owner_id == winners[0].owner_id for loser in losers)
    assert store.get(CELL) == winners[0]


@pytest.mark.slow
def test_claim_release_churn_never_double_owns():
    """Owners keep releasing while others claim; every success is exclusive.

    Each ownership spans claim.updated_at .. release.updated_at. A release
    that succeeds proves the holder kept the cell throughout, and the spans
    of different holders never overlap.
    """
    store = InMemoryOwnershipStore()
    arbitrator = ClaimArbitrator(store, InMemoryZoneDirectory())
    spans: list[tuple[datetime, datetime, str]] = []
    spans_lock = threading.Lock()

    def worker(index: int) -> None:
        user = f"user-{index}"
        for _ in range(200):
            try:
                won = arbitrator.claim(claim(user))
            except AlreadyClaimedError:
                continue
            assert won.owner_id == user
            released = arbitrator.release(ReleaseRequest(cell_id=CELL, actor_user_id=user))
            assert released.owner_id is None
            with spans_lock:
                spans.append((won.updated_at, released.updated_at, user))

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(worker, range(8)))

    spans.sort()
    assert spans
    for (_, previous_end, _), (next_start, _, _) in zip(spans, spans[1:]):
        assert previous_end < next_start
    assert store.get(CELL).status is TerritoryStatus.UNCLAIMED
