"""Infrastructure adapters for the territory bounded context.

Adapter exported for simplified imports.
"""

from .memory_store import InMemoryOwnershipStore

__all__ = ["InMemoryOwnershipStore"]
