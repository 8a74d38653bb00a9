"""
Artifact synchronization.

- artifact: generated block and load function maintenance
- route_map: the persisted RouteKeyMap module
- writer: batched, conflict-tolerant writes
"""
