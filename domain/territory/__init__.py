"""Territory Bounded Context.

Responsible for cell ownership and its lifecycle:
- Value Objects: TerritoryRecord, Conflict, requests, TerritoryFilter
- Ports: OwnershipStore
- Services: ClaimArbitrator
- Read model: ReconciliationCache
"""
