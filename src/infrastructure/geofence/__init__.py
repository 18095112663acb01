"""Infrastructure adapters for the geofence bounded context."""

from .zone_directory import InMemoryZoneDirectory

__all__ = ["InMemoryZoneDirectory"]
