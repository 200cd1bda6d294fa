"""MILP solver backends and solve orchestration."""

from .solver_backends import HIGHSPY_AVAILABLE, solve_milp
from .solver_orchestration import solve

__all__ = [
    "HIGHSPY_AVAILABLE",
    "solve_milp",
    "solve",
]
