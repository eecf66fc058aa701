"""
fleet_layout

This package computes a deterministic layout of service instances for a fleet
of servers grouped into racks and availability zones.

We keep modules small and well separated:
core contains shared data structures and errors
inventory contains the fleet description schema and loader
fabric contains service roles, striping and capacity math
planner contains fleet preflight, the layout generator and the layout result
"""
