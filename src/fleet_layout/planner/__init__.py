"""
Planner package.

This makes the planner folder an explicit package so both Python and mypy
resolve modules consistently.
"""

from fleet_layout.planner.layout import Layout
from fleet_layout.planner.planner import LayoutPlanner, generate_layout

__all__ = ["Layout", "LayoutPlanner", "generate_layout"]
