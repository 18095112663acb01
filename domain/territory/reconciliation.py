"""Territory Bounded Context - Reconciliation Cache.

Consumer-side read model fed with territory snapshots that may arrive out of
order, twice, or partially. Merging is last-write-wins on ``updated_at``:
an incoming record replaces the cached one only if it is strictly newer.
Applying any multiset of snapshots in any order therefore converges to the
newest record per cell.

No network access here; callers hand in the records they fetched.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Iterator
from datetime import datetime, timedelta

from domain.territory.value_objects import TerritoryRecord, TerritoryStatus

DEFAULT_CONTESTED_WINDOW = timedelta(seconds=30)


class ReconciliationCache:
    """Local cell_id -> TerritoryRecord mapping merged by last-write-wins.

    Also derives the presentational CONTESTED label from claim attempts the
    consumer observed; that label never enters the cached records.
    """

    def __init__(self, contested_window: timedelta = DEFAULT_CONTESTED_WINDOW) -> None:
        self.contested_window = contested_window
        self._records: dict[str, TerritoryRecord] = {}
        self._attempts: dict[str, deque[datetime]] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[TerritoryRecord]:
        return iter(list(self._records.values()))

    def __contains__(self, cell_id: object) -> bool:
        return cell_id in self._records

    # -----------------------------------------------------------------------
    # Merge
    # -----------------------------------------------------------------------
    def upsert(self, records: Iterable[TerritoryRecord]) -> list[TerritoryRecord]:
        """Merge records; return those that replaced (or created) an entry."""
        applied: list[TerritoryRecord] = []
        for record in records:
            cached = self._records.get(record.cell_id)
            if cached is not None and record.updated_at <= cached.updated_at:
                continue
            self._records[record.cell_id] = record
            applied.append(record)
        return applied

    def remove(self, cell_id: str) -> TerritoryRecord | None:
        """Evict a cell whose claim is known to be fully cleared."""
        self._attempts.pop(cell_id, None)
        return self._records.pop(cell_id, None)

    def clear(self) -> None:
        self._records.clear()
        self._attempts.clear()

    # -----------------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------------
    def get(self, cell_id: str) -> TerritoryRecord | None:
        return self._records.get(cell_id)

    def status_of(self, cell_id: str) -> TerritoryStatus:
        """Cached status; cells never seen are unclaimed."""
        record = self._records.get(cell_id)
        return record.status if record is not None else TerritoryStatus.UNCLAIMED

    def is_claimed_by(self, cell_id: str, user_id: str) -> bool:
        record = self._records.get(cell_id)
        return record is not None and record.is_owned_by(user_id)

    def claimed(self) -> list[TerritoryRecord]:
        """Records worth drawing: everything not unclaimed."""
        return [
            record
            for record in self._records.values()
            if record.status is not TerritoryStatus.UNCLAIMED
        ]

    # -----------------------------------------------------------------------
    # Contested (presentational)
    # -----------------------------------------------------------------------
    def _trim(self, cell_id: str, now: datetime) -> deque[datetime]:
        attempts = self._attempts.get(cell_id, deque())
        while attempts and now - attempts[0] > self.contested_window:
            attempts.popleft()
        if not attempts:
            self._attempts.pop(cell_id, None)
        return attempts

    def note_claim_attempt(self, cell_id: str, at: datetime) -> None:
        """Record that a claim on ``cell_id`` was observed at ``at``."""
        attempts = self._attempts.setdefault(cell_id, deque())
        attempts.append(at)
        # attempts may be reported out of order
        if len(attempts) > 1 and attempts[-2] > at:
            attempts = self._attempts[cell_id] = deque(sorted(attempts))
        self._trim(cell_id, attempts[-1])

    def display_status(self, cell_id: str, now: datetime) -> TerritoryStatus:
        """Status to show: CONTESTED when two or more attempts fall in the window."""
        recent = [
            at for at in self._trim(cell_id, now) if abs(now - at) <= self.contested_window
        ]
        if len(recent) >= 2:
            return TerritoryStatus.CONTESTED
        return self.status_of(cell_id)
