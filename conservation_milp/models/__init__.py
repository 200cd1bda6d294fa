"""Data models package for conservation problems, compiled MILPs and solutions."""

from .problem import (
    AsymConnectivityPenalty,
    BoundaryPenalty,
    ConnectivityPenalty,
    ConservationProblem,
    ContiguityConstraint,
    Decisions,
    DecisionType,
    LinearConstraint,
    LockedConstraint,
    LockStatus,
    MaxFeaturesObjective,
    MaxPhyloDivObjective,
    MaxUtilityObjective,
    MinSetObjective,
    NeighborConstraint,
    Targets,
    problem_from_geodataframe,
    problem_from_raster,
)

from .optimization_problem import OptimizationProblem

from .solution import Solution

__all__ = [
    # Problem definition
    "ConservationProblem",
    "problem_from_geodataframe",
    "problem_from_raster",
    "Decisions",
    "DecisionType",
    "Targets",
    # Objectives
    "MinSetObjective",
    "MaxUtilityObjective",
    "MaxFeaturesObjective",
    "MaxPhyloDivObjective",
    # Constraints and penalties
    "LockedConstraint",
    "LockStatus",
    "NeighborConstraint",
    "ContiguityConstraint",
    "LinearConstraint",
    "BoundaryPenalty",
    "ConnectivityPenalty",
    "AsymConnectivityPenalty",
    # Compiled problem and results
    "OptimizationProblem",
    "Solution",
]
