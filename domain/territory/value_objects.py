"""Territory Bounded Context - Value Objects.

Immutable records and commands for cell ownership.
All validation occurs at construction time via Pydantic; an invalid
TerritoryRecord cannot be instantiated, so the store can never hold one.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from domain.grid.value_objects import GeoPoint

# Version stamp of a cell that has never been written
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class TerritoryStatus(str, Enum):
    """Status vocabulary.

    CONTESTED is presentational only: no store transition produces it.
    """

    UNCLAIMED = "unclaimed"
    CLAIMED = "claimed"
    CONTESTED = "contested"


# ---------------------------------------------------------------------------
# TerritoryRecord
# ---------------------------------------------------------------------------
class TerritoryRecord(BaseModel):
    """Ownership row for one cell (Value Object).

    Invariants:
        TR-1: status == claimed  =>  owner_id is not None
        TR-2: status != claimed  =>  owner_id is None
        TR-3: status == unclaimed  =>  activity_count == 0
        TR-4: activity_count >= 0

    ``updated_at`` is the per-cell version: the store bumps it strictly on
    every write, and read models use it for last-write-wins.
    """

    cell_id: str
    category_id: str | None = None
    status: TerritoryStatus = TerritoryStatus.UNCLAIMED
    owner_id: str | None = None
    claimed_at: datetime | None = None
    last_activity_at: datetime | None = None
    activity_count: int = Field(default=0, ge=0)
    updated_at: datetime = EPOCH

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_ownership(self) -> "TerritoryRecord":
        if self.status is TerritoryStatus.CLAIMED and self.owner_id is None:
            raise ValueError("claimed record requires owner_id")
        if self.status is not TerritoryStatus.CLAIMED and self.owner_id is not None:
            raise ValueError(f"{self.status.value} record cannot have owner_id")
        if self.status is TerritoryStatus.UNCLAIMED and self.activity_count != 0:
            raise ValueError("unclaimed record must have activity_count == 0")
        return self

    @classmethod
    def unclaimed(cls, cell_id: str) -> "TerritoryRecord":
        """Implicit record for a cell that has never been claimed."""
        return cls(cell_id=cell_id)

    def evolve(self, **changes: Any) -> "TerritoryRecord":
        """Return a validated copy with ``changes`` applied."""
        return type(self).model_validate({**self.model_dump(), **changes})

    def is_owned_by(self, user_id: str) -> bool:
        return self.status is TerritoryStatus.CLAIMED and self.owner_id == user_id


class Conflict(BaseModel):
    """Result of a transition whose expectation did not hold.

    Carries the record as it actually is; nothing was written.
    """

    cell_id: str
    expected_status: TerritoryStatus
    current: TerritoryRecord

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
class ClaimRequest(BaseModel):
    """Transient command: become the owner of ``cell_id``.

    ``geofence_restricted`` is the role flag supplied by identity resolution;
    restricted actors must send ``actor_location``.
    """

    cell_id: str
    actor_user_id: str
    category_id: str
    actor_location: GeoPoint | None = None
    geofence_restricted: bool = False

    model_config = ConfigDict(frozen=True)


class ReleaseRequest(BaseModel):
    cell_id: str
    actor_user_id: str

    model_config = ConfigDict(frozen=True)


class ActivityRequest(BaseModel):
    cell_id: str
    actor_user_id: str

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------
class TerritoryFilter(BaseModel):
    """Selection for listing territories; all given criteria must match.

    near/radius_meters select records whose cell center is within the radius
    of the point. status and owner_id narrow any selection.
    """

    near: GeoPoint | None = None
    radius_meters: float | None = Field(default=None, ge=0)
    category_id: str | None = None
    status: TerritoryStatus | None = None
    owner_id: str | None = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_near(self) -> "TerritoryFilter":
        if (self.near is None) != (self.radius_meters is None):
            raise ValueError("near and radius_meters must be given together")
        return self

    @classmethod
    def all(cls) -> "TerritoryFilter":
        return cls()

    @classmethod
    def around(cls, point: GeoPoint, radius_meters: float) -> "TerritoryFilter":
        return cls(near=point, radius_meters=radius_meters)

    @classmethod
    def for_category(cls, category_id: str) -> "TerritoryFilter":
        return cls(category_id=category_id)

    def matches(self, record: TerritoryRecord) -> bool:
        """Check the non-spatial criteria."""
        if self.category_id is not None and record.category_id != self.category_id:
            return False
        if self.status is not None and record.status is not self.status:
            return False
        if self.owner_id is not None and record.owner_id != self.owner_id:
            return False
        return True


# ---------------------------------------------------------------------------
# ErrorResult
# ---------------------------------------------------------------------------
class ErrorResult(BaseModel):
    """Failure returned to callers instead of an exception.

    ``code`` is one of the stable error codes (ALREADY_CLAIMED, ...);
    ``context`` carries structured extras such as the current owner.
    """

    code: str
    detail: str
    context: dict[str, Any] = Field(default_factory=dict)
    retryable: bool = False

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_error(cls, error: Any) -> "ErrorResult":
        """Build from a GridError or TerritoryError."""
        return cls(
            code=error.code,
            detail=str(error),
            context=dict(error.context),
            retryable=bool(getattr(error, "retryable", False)),
        )
