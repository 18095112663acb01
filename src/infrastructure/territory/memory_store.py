"""In-memory adapter for OwnershipStore.

Holds the authoritative cell -> TerritoryRecord table for one process.

Locking:
1) A short-lived registry lock hands out one lock per cell id
2) transition() runs entirely under that cell's lock, so writes to one
   cell are totally ordered and writes to different cells run in parallel
3) The table lock only guards the dict itself (insert / snapshot), never
   a read-compare-write sequence
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from domain.territory.repositories import Mutation
from domain.territory.value_objects import Conflict, TerritoryRecord, TerritoryStatus

# Module-level logger (reused across all calls)
logger = logging.getLogger(__name__)

# Smallest step that keeps updated_at strictly increasing per cell
_VERSION_STEP = timedelta(microseconds=1)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryOwnershipStore:
    """Thread-safe OwnershipStore backed by a dict.

    Parameters
    ----------
    clock: Callable[[], datetime] | None
        Source of ``updated_at`` stamps. If the clock stalls or runs
        backwards, stamps still advance by one microsecond per write.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or _utc_now
        self._records: dict[str, TerritoryRecord] = {}
        self._cell_locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self._table_lock = threading.Lock()

    def _lock_for(self, cell_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._cell_locks.get(cell_id)
            if lock is None:
                lock = self._cell_locks[cell_id] = threading.Lock()
            return lock

    def _next_version(self, current: TerritoryRecord) -> datetime:
        return max(self._clock(), current.updated_at + _VERSION_STEP)

    def get(self, cell_id: str) -> TerritoryRecord | None:
        with self._table_lock:
            return self._records.get(cell_id)

    def transition(
        self,
        cell_id: str,
        expected_status: TerritoryStatus,
        mutation: Mutation,
        *,
        expected_owner_id: str | None = None,
    ) -> TerritoryRecord | Conflict:
        with self._lock_for(cell_id):
            with self._table_lock:
                stored = self._records.get(cell_id)
            current = stored if stored is not None else TerritoryRecord.unclaimed(cell_id)

            if current.status is not expected_status or (
                expected_owner_id is not None and current.owner_id != expected_owner_id
            ):
                logger.debug(
                    "Conflict on %s: expected %s/%s, found %s/%s",
                    cell_id,
                    expected_status.value,
                    expected_owner_id,
                    current.status.value,
                    current.owner_id,
                )
                return Conflict(
                    cell_id=cell_id, expected_status=expected_status, current=current
                )

            # Build the whole new record before touching the table; a failing
            # mutation or an invalid result leaves the stored record as is.
            changes = dict(mutation(current))
            changes["updated_at"] = self._next_version(current)
            updated = current.evolve(**changes)

            with self._table_lock:
                self._records[cell_id] = updated
            return updated

    def records(self) -> list[TerritoryRecord]:
        with self._table_lock:
            return list(self._records.values())

    def __len__(self) -> int:
        with self._table_lock:
            return len(self._records)
