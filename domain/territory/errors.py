"""Territory Bounded Context - Error Hierarchy.

Business outcomes of claim arbitration. None of these is a system fault:
the application service turns each into an ErrorResult carrying ``code``.

Taxonomy:
    - concurrency (retryable): AlreadyClaimedError, StaleWriteError
    - authorization (terminal): NotOwnerError, NotClaimedError
    - eligibility (terminal until the actor moves): GeozoneOutOfBoundsError
    - InvalidStateError: a conflict the arbitrator cannot explain
"""

from __future__ import annotations

from typing import Any, ClassVar


class TerritoryError(Exception):
    """Base error for territory operations."""

    code: ClassVar[str] = "TERRITORY_ERROR"
    retryable: ClassVar[bool] = False

    def __init__(self, message: str, *, cell_id: str | None = None) -> None:
        self.cell_id = cell_id
        super().__init__(message)

    @property
    def context(self) -> dict[str, Any]:
        return {"cell_id": self.cell_id} if self.cell_id is not None else {}


class AlreadyClaimedError(TerritoryError):
    """Cell already has an owner.

    Attributes:
        owner_id: Current owner, for display
        category_id: Category the cell is claimed for
    """

    code: ClassVar[str] = "ALREADY_CLAIMED"
    retryable: ClassVar[bool] = True

    def __init__(self, cell_id: str, owner_id: str | None, category_id: str | None) -> None:
        self.owner_id = owner_id
        self.category_id = category_id
        super().__init__(
            f"Cell {cell_id} is already claimed by {owner_id} for {category_id}",
            cell_id=cell_id,
        )

    @property
    def context(self) -> dict[str, Any]:
        return {**super().context, "owner_id": self.owner_id, "category_id": self.category_id}


class GeozoneOutOfBoundsError(TerritoryError):
    """Restricted actor is outside every zone assigned to them."""

    code: ClassVar[str] = "GEOZONE_OUT_OF_BOUNDS"

    def __init__(self, cell_id: str, actor_user_id: str) -> None:
        self.actor_user_id = actor_user_id
        super().__init__(
            f"User {actor_user_id} is outside all assigned geozones", cell_id=cell_id
        )

    @property
    def context(self) -> dict[str, Any]:
        return {**super().context, "actor_user_id": self.actor_user_id}


class NotOwnerError(TerritoryError):
    """Actor does not own the cell."""

    code: ClassVar[str] = "NOT_OWNER"

    def __init__(self, cell_id: str, actor_user_id: str) -> None:
        self.actor_user_id = actor_user_id
        super().__init__(f"User {actor_user_id} does not own cell {cell_id}", cell_id=cell_id)


class NotClaimedError(TerritoryError):
    """Cell has no owner."""

    code: ClassVar[str] = "NOT_CLAIMED"

    def __init__(self, cell_id: str) -> None:
        super().__init__(f"Cell {cell_id} is not claimed", cell_id=cell_id)


class StaleWriteError(TerritoryError):
    """Record changed between read and write; re-fetch before retrying."""

    code: ClassVar[str] = "STALE_WRITE"
    retryable: ClassVar[bool] = True

    def __init__(self, cell_id: str) -> None:
        super().__init__(f"Cell {cell_id} changed concurrently", cell_id=cell_id)


class InvalidStateError(TerritoryError):
    """Conflict observed in a state no transition should produce."""

    code: ClassVar[str] = "INVALID_STATE"

    def __init__(self, cell_id: str, status: str) -> None:
        self.status = status
        super().__init__(f"Cell {cell_id} is in unexpected state {status!r}", cell_id=cell_id)
