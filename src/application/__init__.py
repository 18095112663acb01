"""Caller-facing services composed from domain services and adapters."""

from .territory_service import TerritoryService

__all__ = ["TerritoryService"]
