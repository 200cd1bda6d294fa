"""
Conservation MILP

Systematic conservation planning problems compiled to mixed-integer linear
programs, with presolve checks for numerically risky formulations.
"""

from conservation_milp.category import category_vector
from conservation_milp.compiler import compile_problem
from conservation_milp.config import CONFIG
from conservation_milp.exceptions import InvalidSpecificationError, SolverUnavailableError
from conservation_milp.models import (
    ConservationProblem,
    OptimizationProblem,
    Solution,
    problem_from_geodataframe,
    problem_from_raster,
)
from conservation_milp.presolve import PresolveReport, check, presolve_check
from conservation_milp.solvers import solve

__all__ = [
    "ConservationProblem",
    "OptimizationProblem",
    "Solution",
    "problem_from_geodataframe",
    "problem_from_raster",
    "compile_problem",
    "presolve_check",
    "check",
    "PresolveReport",
    "solve",
    "category_vector",
    "InvalidSpecificationError",
    "SolverUnavailableError",
    "CONFIG",
]
