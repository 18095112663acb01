"""Domain Port(s) for ownership persistence.

Defines the single mutation primitive every territory write goes through.
No concrete storage here.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol

from .value_objects import Conflict, TerritoryRecord, TerritoryStatus

# Receives the current record, returns the field changes to apply
Mutation = Callable[[TerritoryRecord], Mapping[str, Any]]


class OwnershipStore(Protocol):
    """Port for the authoritative cell -> TerritoryRecord table.

    Implementations must serialize transition() per cell id while letting
    different cells proceed independently.
    """

    def get(self, cell_id: str) -> TerritoryRecord | None:
        """Return the stored record, or None if the cell was never written."""
        ...

    def transition(
        self,
        cell_id: str,
        expected_status: TerritoryStatus,
        mutation: Mutation,
        *,
        expected_owner_id: str | None = None,
    ) -> TerritoryRecord | Conflict:
        """Atomically compare-and-transition one cell.

        Reads the record (an implicit unclaimed one if absent), checks its
        status (and owner, when ``expected_owner_id`` is given), then applies
        ``mutation`` and bumps ``updated_at``. On mismatch returns Conflict
        and writes nothing. No retries.
        """
        ...

    def records(self) -> list[TerritoryRecord]:
        """Snapshot of every stored record."""
        ...
