"""
Solver result returned by the MILP backends.

status is the backend's own status string ("Optimal", "TimeLimit",
"Infeasible", ...) passed through verbatim; it is never reinterpreted here.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd

from conservation_milp.category import category_vector


@dataclass(frozen=True, eq=False)
class Solution:
    """Assignment vector, objective value, runtime and status of one solve."""

    values: Optional[np.ndarray]
    objective: Optional[float]
    runtime: float
    status: str
    method: str
    number_of_planning_units: int
    number_of_zones: int = 1

    @property
    def has_solution(self) -> bool:
        return self.values is not None

    def planning_unit_values(self) -> np.ndarray:
        """Allocation values as an (N, Z) array.

        Raises:
            ValueError: if the solver returned no assignment.
        """
        if self.values is None:
            raise ValueError(f"no solution available (status: {self.status})")
        n, z = self.number_of_planning_units, self.number_of_zones
        return np.asarray(self.values[: n * z]).reshape(z, n).T

    def allocation(self) -> pd.arrays.IntegerArray:
        """1-based zone allocated to each planning unit (0 = not selected)."""
        selected = (self.planning_unit_values() > 0.5).astype(np.float64)
        return category_vector(selected)

    def as_dict(self) -> Dict[str, Any]:
        """Summary for logging and export."""
        n_selected = (
            int((self.planning_unit_values() > 0.5).sum()) if self.has_solution else 0
        )
        return {
            "method": self.method,
            "status": self.status,
            "objective_value": self.objective,
            "runtime_s": self.runtime,
            "n_selected": n_selected,
        }
