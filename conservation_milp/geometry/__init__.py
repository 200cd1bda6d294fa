"""Spatial adapters producing boundary, adjacency and connectivity matrices."""

from .boundary import (
    PLANNING_UNIT_TYPES,
    LinePlanningUnits,
    PlanningUnits,
    PointPlanningUnits,
    PolygonPlanningUnits,
    RasterPlanningUnits,
    adjacency_matrix,
    as_planning_units,
    boundary_matrix,
    connectivity_matrix,
)

__all__ = [
    # Adapters
    "PlanningUnits",
    "RasterPlanningUnits",
    "PolygonPlanningUnits",
    "LinePlanningUnits",
    "PointPlanningUnits",
    "PLANNING_UNIT_TYPES",
    "as_planning_units",
    # Matrices
    "boundary_matrix",
    "adjacency_matrix",
    "connectivity_matrix",
]
