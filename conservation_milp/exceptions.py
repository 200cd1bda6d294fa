"""
Exception types for conservation problem building, compilation and solving.

Presolve findings are never exceptions; they are collected as warnings in a
PresolveReport (see presolve.py).
"""


class InvalidSpecificationError(ValueError):
    """Raised when a conservation problem is malformed or contradictory.

    Examples: zero features, non-finite costs, relative targets outside
    [0, 1], a planning unit locked both in and out.
    """


class SolverUnavailableError(RuntimeError):
    """Raised when the requested MILP backend library is not installed."""
