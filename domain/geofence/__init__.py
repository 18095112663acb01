"""Geofence Bounded Context.

Responsible for circular safe zones restricting where an actor may act:
- Value Objects: GeoZone
- Services: distance_m, contains, is_eligible
- Ports: ZoneDirectory
"""
