"""Root pytest configuration for all tests.

Provides a deterministic clock and freshly composed engine parts. Every
fixture builds new instances; no state is shared between tests.
"""

from __future__ import annotations

import pytest

from domain.territory.services import ClaimArbitrator
from src.application import TerritoryService
from src.infrastructure.geofence import InMemoryZoneDirectory
from src.infrastructure.territory import InMemoryOwnershipStore
from tests.conftest_utils import TickingClock


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def store(clock: TickingClock) -> InMemoryOwnershipStore:
    return InMemoryOwnershipStore(clock=clock)


@pytest.fixture
def zones() -> InMemoryZoneDirectory:
    return InMemoryZoneDirectory()


@pytest.fixture
def arbitrator(
    store: InMemoryOwnershipStore, zones: InMemoryZoneDirectory, clock: TickingClock
) -> ClaimArbitrator:
    return ClaimArbitrator(store, zones, clock=clock)


@pytest.fixture
def service(
    store: InMemoryOwnershipStore, zones: InMemoryZoneDirectory, clock: TickingClock
) -> TerritoryService:
    return TerritoryService(store, zones, clock=clock)
