"""
Compiled optimization problem (generic MILP arrays).

Architectural Overview:
=======================
OptimizationProblem is the artifact produced by compiler.compile_problem()
and consumed by presolve.presolve_check() and the solver backends:

    modelsense  obj . x
    subject to  A x {sense} rhs
                lb <= x <= ub,  x_j binary where vtype[j] == "B"

col_ids/row_ids carry a category tag per column/row ("pu", "b", "budget",
"spp_target", ...). Tags are only used for diagnostics, never for solving.

Column Layout:
--------------
The first N * Z columns are planning-unit allocations ordered zone-major:
column z * N + i is planning unit i in zone z.
"""

from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, Sequence, Tuple

import numpy as np
from scipy import sparse

from conservation_milp.exceptions import InvalidSpecificationError

VALID_SENSES = ("<=", ">=", "=")
VALID_VTYPES = ("B", "C")


@dataclass(frozen=True, eq=False)
class OptimizationProblem:
    """Immutable MILP in matrix form. Create with from_arrays()."""

    modelsense: str
    obj: np.ndarray
    A: sparse.csr_matrix
    sense: Tuple[str, ...]
    rhs: np.ndarray
    lb: np.ndarray
    ub: np.ndarray
    vtype: Tuple[str, ...]
    col_ids: Tuple[str, ...]
    row_ids: Tuple[str, ...]
    number_of_planning_units: int
    number_of_zones: int
    number_of_features: int

    def __post_init__(self) -> None:
        """Validate dimensions and categorical values."""
        n_col = len(self.obj)
        n_row = len(self.rhs)
        if self.modelsense not in ("min", "max"):
            raise InvalidSpecificationError(
                f"modelsense must be 'min' or 'max', got {self.modelsense!r}"
            )
        if self.A.shape != (n_row, n_col):
            raise InvalidSpecificationError(
                f"constraint matrix shape {self.A.shape} does not match "
                f"{n_row} rows x {n_col} columns"
            )
        for name, seq, n in (
            ("lb", self.lb, n_col),
            ("ub", self.ub, n_col),
            ("vtype", self.vtype, n_col),
            ("col_ids", self.col_ids, n_col),
            ("sense", self.sense, n_row),
            ("row_ids", self.row_ids, n_row),
        ):
            if len(seq) != n:
                raise InvalidSpecificationError(
                    f"{name} has {len(seq)} entries, expected {n}"
                )
        bad_senses = set(self.sense) - set(VALID_SENSES)
        if bad_senses:
            raise InvalidSpecificationError(f"invalid row senses: {sorted(bad_senses)}")
        bad_vtypes = set(self.vtype) - set(VALID_VTYPES)
        if bad_vtypes:
            raise InvalidSpecificationError(f"invalid variable types: {sorted(bad_vtypes)}")
        if self.number_of_pu_variables > n_col:
            raise InvalidSpecificationError(
                f"{self.number_of_planning_units} planning units x "
                f"{self.number_of_zones} zones exceeds {n_col} columns"
            )
        if np.any(self.lb > self.ub):
            raise InvalidSpecificationError("lower bounds must not exceed upper bounds")

    @classmethod
    def from_arrays(
        cls,
        modelsense: str,
        obj: Sequence[float],
        A: Any,
        sense: Sequence[str],
        rhs: Sequence[float],
        lb: Sequence[float],
        ub: Sequence[float],
        vtype: Sequence[str],
        col_ids: Sequence[str],
        row_ids: Sequence[str],
        number_of_planning_units: int,
        number_of_zones: int = 1,
        number_of_features: int = 0,
    ) -> "OptimizationProblem":
        """Coerce array-likes, freeze them and build the problem."""

        def _frozen(x: Sequence[float]) -> np.ndarray:
            a = np.array(x, dtype=np.float64).ravel()
            a.setflags(write=False)
            return a

        m = sparse.csr_matrix(A, dtype=np.float64)
        m.sum_duplicates()
        m.sort_indices()
        return cls(
            modelsense=modelsense,
            obj=_frozen(obj),
            A=m,
            sense=tuple(sense),
            rhs=_frozen(rhs),
            lb=_frozen(lb),
            ub=_frozen(ub),
            vtype=tuple(vtype),
            col_ids=tuple(col_ids),
            row_ids=tuple(row_ids),
            number_of_planning_units=int(number_of_planning_units),
            number_of_zones=int(number_of_zones),
            number_of_features=int(number_of_features),
        )

    # ─────────────────────────────────────────────────────────────────────
    # Dimensions
    # ─────────────────────────────────────────────────────────────────────

    @property
    def number_of_variables(self) -> int:
        return len(self.obj)

    @property
    def number_of_constraints(self) -> int:
        return len(self.rhs)

    @property
    def number_of_pu_variables(self) -> int:
        return self.number_of_planning_units * self.number_of_zones

    def pu_index(self, planning_unit: int, zone: int = 0) -> int:
        """Column index of a planning-unit/zone allocation variable."""
        return zone * self.number_of_planning_units + planning_unit

    # ─────────────────────────────────────────────────────────────────────
    # Reporting
    # ─────────────────────────────────────────────────────────────────────

    def column_tag_counts(self) -> Dict[str, int]:
        return dict(Counter(self.col_ids))

    def row_tag_counts(self) -> Dict[str, int]:
        return dict(Counter(self.row_ids))

    def as_dict(self) -> Dict[str, Any]:
        """Summary statistics for logging."""
        return {
            "modelsense": self.modelsense,
            "n_variables": self.number_of_variables,
            "n_constraints": self.number_of_constraints,
            "n_nonzeros": int(self.A.nnz),
            "n_binary": sum(1 for v in self.vtype if v == "B"),
            "column_tags": self.column_tag_counts(),
            "row_tags": self.row_tag_counts(),
        }
