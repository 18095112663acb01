"""Domain Port(s) for GeoZone lookup.

Zones are owned by the account-linking subsystem; infrastructure adapters
expose them to the core through this Protocol.
"""

from __future__ import annotations

from typing import Protocol

from .value_objects import GeoZone


class ZoneDirectory(Protocol):
    """Port for obtaining the zones that restrict a subject."""

    def fetch_zones_for_subject(self, subject_user_id: str) -> list[GeoZone]:
        """Return every zone whose subject is ``subject_user_id`` (may be empty)."""
        ...
