"""
Immutable conservation planning problem (declarative definition).

Architectural Overview:
=======================
A ConservationProblem holds planning-unit costs, feature amounts and every
modelling choice (objective, targets, decisions, constraints, penalties).
It is a frozen dataclass: each add_* modifier validates its arguments and
returns a NEW problem built with dataclasses.replace(), so a base problem can
be shared between any number of derived variants.

Key Interactions:
-----------------
- Input: numpy arrays / scipy sparse matrices, or GeoDataFrames and rasters
  through problem_from_geodataframe() and problem_from_raster()
- Output: compiler.compile_problem() turns a problem into an
  OptimizationProblem
- Geometry-derived data (boundary, adjacency, connectivity matrices) comes
  from geometry.boundary

Data Layout:
------------
- costs: (N, Z) float array
- amounts: tuple of Z sparse (F, N) matrices (feature x planning unit)
- components: constraints and penalties in the order they were added

MODIFICATION POINT: Add new component dataclasses in the COMPONENTS section
and register their formulation in compiler._COMPONENT_APPLIERS
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union, TYPE_CHECKING

import numpy as np
from scipy import sparse

from conservation_milp.exceptions import InvalidSpecificationError

if TYPE_CHECKING:
    import geopandas as gpd


ArrayLike = Union[np.ndarray, Sequence[float], float]


# ═══════════════════════════════════════════════════════════════════════════
# 🏷️ ENUMS SECTION
# ═══════════════════════════════════════════════════════════════════════════


class DecisionType(Enum):
    """How planning-unit allocation variables are typed."""

    BINARY = "binary"
    PROPORTION = "proportion"
    SEMICONTINUOUS = "semicontinuous"


class LockStatus(Enum):
    """Direction of a locked constraint."""

    IN = "locked_in"
    OUT = "locked_out"


SENSES = ("<=", ">=", "=")


# ═══════════════════════════════════════════════════════════════════════════
# 🎯 OBJECTIVES SECTION
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, eq=False)
class MinSetObjective:
    """Minimize cost while meeting every target."""

    name = "min_set"
    modelsense = "min"
    requires_targets = True


@dataclass(frozen=True, eq=False)
class MaxUtilityObjective:
    """Maximize weighted feature amounts subject to a budget."""

    budget: np.ndarray

    name = "max_utility"
    modelsense = "max"
    requires_targets = False


@dataclass(frozen=True, eq=False)
class MaxFeaturesObjective:
    """Maximize the (weighted) number of targets met subject to a budget."""

    budget: np.ndarray

    name = "max_features"
    modelsense = "max"
    requires_targets = True


@dataclass(frozen=True, eq=False)
class MaxPhyloDivObjective:
    """Maximize total branch length of represented features under a budget.

    branch_matrix is a sparse (F, B) matrix with a 1 where feature f descends
    from branch b.
    """

    budget: np.ndarray
    branch_matrix: sparse.csr_matrix
    branch_lengths: np.ndarray

    name = "max_phylo_div"
    modelsense = "max"
    requires_targets = True


Objective = Union[
    MinSetObjective, MaxUtilityObjective, MaxFeaturesObjective, MaxPhyloDivObjective
]


# ═══════════════════════════════════════════════════════════════════════════
# 📏 TARGETS AND DECISIONS SECTION
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, eq=False)
class Targets:
    """Feature targets.

    values has shape (F,) (target on the total over all zones) or (F, Z)
    (one target per feature and zone). Relative targets are fractions of the
    total amount and are converted to absolute amounts at compilation.
    """

    values: np.ndarray
    relative: bool

    @property
    def per_zone(self) -> bool:
        return self.values.ndim == 2


@dataclass(frozen=True)
class Decisions:
    """Variable type for planning-unit allocations."""

    kind: DecisionType = DecisionType.BINARY
    upper_limit: float = 1.0

    @property
    def vtype(self) -> str:
        return "B" if self.kind is DecisionType.BINARY else "C"


# ═══════════════════════════════════════════════════════════════════════════
# 🧩 COMPONENTS SECTION (constraints and penalties)
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, eq=False)
class LockedConstraint:
    """Force (N, Z) planning-unit/zone variables in or out of the solution."""

    status: LockStatus
    mask: np.ndarray

    @property
    def name(self) -> str:
        return self.status.value


@dataclass(frozen=True, eq=False)
class NeighborConstraint:
    """Each selected planning unit needs at least k selected neighbours."""

    k: int
    data: sparse.csr_matrix

    name = "neighbors"


@dataclass(frozen=True, eq=False)
class ContiguityConstraint:
    """All selected planning units must form one connected cluster."""

    data: sparse.csr_matrix

    name = "contiguity"


@dataclass(frozen=True, eq=False)
class LinearConstraint:
    """sum(data * x) {sense} threshold over planning-unit/zone variables."""

    threshold: float
    sense: str
    data: np.ndarray

    name = "linear"


@dataclass(frozen=True, eq=False)
class BoundaryPenalty:
    """Penalize exposed boundary length of the selected planning units."""

    penalty: float
    data: sparse.csr_matrix
    edge_factor: np.ndarray
    zone_weights: np.ndarray

    name = "boundary"


@dataclass(frozen=True, eq=False)
class ConnectivityPenalty:
    """Penalize splitting pairs of planning units with symmetric connectivity."""

    penalty: float
    data: sparse.csr_matrix

    name = "connectivity"


@dataclass(frozen=True, eq=False)
class AsymConnectivityPenalty:
    """Penalize selecting i without j for directed connectivity c_ij."""

    penalty: float
    data: sparse.csr_matrix

    name = "asym_connectivity"


Component = Union[
    LockedConstraint,
    NeighborConstraint,
    ContiguityConstraint,
    LinearConstraint,
    BoundaryPenalty,
    ConnectivityPenalty,
    AsymConnectivityPenalty,
]

PENALTY_TYPES = (BoundaryPenalty, ConnectivityPenalty, AsymConnectivityPenalty)


# ═══════════════════════════════════════════════════════════════════════════
# 🔧 VALIDATION HELPERS
# ═══════════════════════════════════════════════════════════════════════════


def _readonly(a: np.ndarray) -> np.ndarray:
    a.setflags(write=False)
    return a


def _as_float_array(x: Any, name: str) -> np.ndarray:
    try:
        out = np.array(x, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidSpecificationError(f"{name} must be numeric: {e}") from e
    if not np.all(np.isfinite(out)):
        raise InvalidSpecificationError(f"{name} must contain only finite values")
    return out


def _as_square_matrix(
    data: Any, n: int, name: str, symmetric: bool = False
) -> sparse.csr_matrix:
    """Coerce planning-unit x planning-unit data to a finite csr matrix."""
    m = sparse.csr_matrix(data, dtype=np.float64)
    if m.shape != (n, n):
        raise InvalidSpecificationError(
            f"{name} must have shape ({n}, {n}), got {m.shape}"
        )
    if m.nnz and not np.all(np.isfinite(m.data)):
        raise InvalidSpecificationError(f"{name} must contain only finite values")
    if symmetric and m.nnz:
        asym = abs(m - m.T)
        if asym.nnz and asym.max() > 1e-10 * max(1.0, abs(m).max()):
            raise InvalidSpecificationError(f"{name} must be a symmetric matrix")
    m.sort_indices()
    return m


def _as_budget(budget: ArrayLike, n_zones: int) -> np.ndarray:
    b = np.atleast_1d(_as_float_array(budget, "budget"))
    if b.ndim != 1 or b.size not in (1, n_zones):
        raise InvalidSpecificationError(
            f"budget must be a scalar or have one value per zone ({n_zones})"
        )
    if np.any(b < 0):
        raise InvalidSpecificationError("budget must be >= 0")
    return _readonly(b)


def _as_penalty(penalty: float, name: str) -> float:
    p = float(_as_float_array(penalty, name))
    if p < 0:
        raise InvalidSpecificationError(f"{name} must be >= 0, got {p}")
    return p


# ═══════════════════════════════════════════════════════════════════════════
# 🏗️ CONSERVATION PROBLEM DATACLASS
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, eq=False)
class ConservationProblem:
    """Declarative conservation planning problem.

    Build with ConservationProblem.create() (or problem_from_geodataframe /
    problem_from_raster), then chain modifiers:

    ```python
    p = (
        ConservationProblem.create(costs, amounts)
        .add_min_set_objective()
        .add_relative_targets(0.2)
        .add_boundary_penalties(0.01, data=bm)
        .add_binary_decisions()
    )
    op = compile_problem(p)
    ```
    """

    costs: np.ndarray
    amounts: Tuple[sparse.csr_matrix, ...]
    feature_names: Tuple[str, ...]
    zone_names: Tuple[str, ...]
    objective: Optional[Objective] = None
    targets: Optional[Targets] = None
    decisions: Decisions = field(default_factory=Decisions)
    feature_weights: Optional[np.ndarray] = None
    components: Tuple[Component, ...] = ()

    # ─────────────────────────────────────────────────────────────────────
    # Construction
    # ─────────────────────────────────────────────────────────────────────

    @classmethod
    def create(
        cls,
        costs: ArrayLike,
        amounts: Any,
        feature_names: Optional[Sequence[str]] = None,
        zone_names: Optional[Sequence[str]] = None,
    ) -> "ConservationProblem":
        """
        Create a problem from cost and feature data.

        Args:
            costs: (N,) costs for one zone, or (N, Z) costs for Z zones.
            amounts: (F, N) dense/sparse matrix for one zone, or a sequence of
                Z such matrices (one per zone).
            feature_names: Optional F names (default "feature_1", ...).
            zone_names: Optional Z names (default "zone_1", ...).

        Raises:
            InvalidSpecificationError: on empty, non-finite, negative or
                inconsistently shaped data.
        """
        c = _as_float_array(costs, "costs")
        if c.ndim == 1:
            c = c.reshape(-1, 1)
        if c.ndim != 2 or c.shape[0] < 1 or c.shape[1] < 1:
            raise InvalidSpecificationError(
                "costs must be a non-empty (N,) or (N, Z) array"
            )
        n_pu, n_zones = c.shape

        if sparse.issparse(amounts) or (
            isinstance(amounts, np.ndarray) and amounts.ndim == 2
        ):
            zone_amounts = [amounts]
        elif isinstance(amounts, np.ndarray) and amounts.ndim == 3:
            zone_amounts = list(amounts)
        else:
            zone_amounts = list(amounts)
            if zone_amounts and np.ndim(zone_amounts[0]) < 2 and not sparse.issparse(
                zone_amounts[0]
            ):
                # A plain nested list for a single zone
                zone_amounts = [np.asarray(amounts, dtype=np.float64)]
        if len(zone_amounts) != n_zones:
            raise InvalidSpecificationError(
                f"amounts must provide one (F, N) matrix per zone: "
                f"expected {n_zones}, got {len(zone_amounts)}"
            )

        mats: List[sparse.csr_matrix] = []
        for z, a in enumerate(zone_amounts):
            m = sparse.csr_matrix(a, dtype=np.float64)
            if m.shape[1] != n_pu:
                raise InvalidSpecificationError(
                    f"amounts for zone {z} must have {n_pu} columns "
                    f"(planning units), got {m.shape[1]}"
                )
            if m.nnz and not np.all(np.isfinite(m.data)):
                raise InvalidSpecificationError("amounts must be finite")
            if m.nnz and np.any(m.data < 0):
                raise InvalidSpecificationError("amounts must be >= 0")
            m.eliminate_zeros()
            m.sort_indices()
            mats.append(m)
        n_features = mats[0].shape[0]
        if n_features < 1:
            raise InvalidSpecificationError("problem must contain at least one feature")
        if any(m.shape[0] != n_features for m in mats):
            raise InvalidSpecificationError(
                "amounts must have the same number of features in every zone"
            )

        if feature_names is None:
            feature_names = [f"feature_{i + 1}" for i in range(n_features)]
        if zone_names is None:
            zone_names = [f"zone_{z + 1}" for z in range(n_zones)]
        if len(feature_names) != n_features:
            raise InvalidSpecificationError(
                f"expected {n_features} feature names, got {len(feature_names)}"
            )
        if len(zone_names) != n_zones:
            raise InvalidSpecificationError(
                f"expected {n_zones} zone names, got {len(zone_names)}"
            )

        return cls(
            costs=_readonly(c),
            amounts=tuple(mats),
            feature_names=tuple(str(f) for f in feature_names),
            zone_names=tuple(str(z) for z in zone_names),
        )

    # ─────────────────────────────────────────────────────────────────────
    # Dimensions and derived data
    # ─────────────────────────────────────────────────────────────────────

    @property
    def number_of_planning_units(self) -> int:
        return int(self.costs.shape[0])

    @property
    def number_of_zones(self) -> int:
        return int(self.costs.shape[1])

    @property
    def number_of_features(self) -> int:
        return int(self.amounts[0].shape[0]) if self.amounts else 0

    @property
    def constraints(self) -> Tuple[Component, ...]:
        return tuple(c for c in self.components if not isinstance(c, PENALTY_TYPES))

    @property
    def penalties(self) -> Tuple[Component, ...]:
        return tuple(c for c in self.components if isinstance(c, PENALTY_TYPES))

    def feature_abundances(self) -> np.ndarray:
        """Total amount of each feature per zone, shape (F, Z)."""
        return np.column_stack(
            [np.asarray(m.sum(axis=1)).ravel() for m in self.amounts]
        )

    def validate(self) -> None:
        """Check structural preconditions for compilation.

        Raises:
            InvalidSpecificationError: if the data are empty or non-finite.
        """
        if self.costs.ndim != 2 or self.number_of_planning_units < 1:
            raise InvalidSpecificationError("problem must have at least one planning unit")
        if not np.all(np.isfinite(self.costs)):
            raise InvalidSpecificationError("costs must contain only finite values")
        if len(self.amounts) != self.number_of_zones:
            raise InvalidSpecificationError("amounts must have one matrix per zone")
        if self.number_of_features < 1:
            raise InvalidSpecificationError("problem must contain at least one feature")
        if self.objective is None:
            raise InvalidSpecificationError(
                "problem has no objective, use an add_*_objective() modifier"
            )
        if self.objective.requires_targets and self.targets is None:
            raise InvalidSpecificationError(
                f"the {self.objective.name} objective requires targets, "
                "use add_relative_targets() or add_absolute_targets()"
            )

    # ─────────────────────────────────────────────────────────────────────
    # Objectives
    # ─────────────────────────────────────────────────────────────────────

    def add_min_set_objective(self) -> "ConservationProblem":
        """Minimize cost subject to meeting all targets."""
        return replace(self, objective=MinSetObjective())

    def add_max_utility_objective(self, budget: ArrayLike) -> "ConservationProblem":
        """Maximize weighted feature amounts subject to a budget."""
        return replace(
            self,
            objective=MaxUtilityObjective(_as_budget(budget, self.number_of_zones)),
        )

    def add_max_features_objective(self, budget: ArrayLike) -> "ConservationProblem":
        """Maximize the number (or weight) of targets met subject to a budget."""
        return replace(
            self,
            objective=MaxFeaturesObjective(_as_budget(budget, self.number_of_zones)),
        )

    def add_max_phylo_div_objective(
        self, budget: ArrayLike, branch_matrix: Any, branch_lengths: ArrayLike
    ) -> "ConservationProblem":
        """
        Maximize represented phylogenetic diversity subject to a budget.

        Args:
            budget: Scalar or per-zone budget.
            branch_matrix: (F, B) 0/1 matrix, 1 where feature f lies below
                branch b of the phylogeny.
            branch_lengths: (B,) non-negative branch lengths.
        """
        bm = sparse.csr_matrix(branch_matrix, dtype=np.float64)
        lengths = np.atleast_1d(_as_float_array(branch_lengths, "branch_lengths"))
        if bm.shape[0] != self.number_of_features:
            raise InvalidSpecificationError(
                f"branch_matrix must have {self.number_of_features} rows (features), "
                f"got {bm.shape[0]}"
            )
        if lengths.ndim != 1 or lengths.size != bm.shape[1]:
            raise InvalidSpecificationError(
                f"branch_lengths must have {bm.shape[1]} values (one per branch)"
            )
        if bm.nnz and not np.all(np.isin(bm.data, (0.0, 1.0))):
            raise InvalidSpecificationError("branch_matrix must contain only 0 and 1")
        if np.any(lengths < 0):
            raise InvalidSpecificationError("branch_lengths must be >= 0")
        bm.eliminate_zeros()
        bm.sort_indices()
        return replace(
            self,
            objective=MaxPhyloDivObjective(
                _as_budget(budget, self.number_of_zones), bm, _readonly(lengths)
            ),
        )

    # ─────────────────────────────────────────────────────────────────────
    # Targets and weights
    # ─────────────────────────────────────────────────────────────────────

    def _target_array(self, targets: ArrayLike) -> np.ndarray:
        t = _as_float_array(targets, "targets")
        n_f, n_z = self.number_of_features, self.number_of_zones
        if t.ndim == 0:
            t = np.full(n_f, float(t))
        if t.shape not in ((n_f,), (n_f, n_z)):
            raise InvalidSpecificationError(
                f"targets must be a scalar, ({n_f},) or ({n_f}, {n_z}), got {t.shape}"
            )
        return t

    def add_relative_targets(self, targets: ArrayLike) -> "ConservationProblem":
        """Targets as fractions (0-1) of each feature's total amount."""
        t = self._target_array(targets)
        if np.any(t < 0) or np.any(t > 1):
            raise InvalidSpecificationError("relative targets must be in [0, 1]")
        return replace(self, targets=Targets(_readonly(t), relative=True))

    def add_absolute_targets(self, targets: ArrayLike) -> "ConservationProblem":
        """Targets as absolute feature amounts."""
        t = self._target_array(targets)
        if np.any(t < 0):
            raise InvalidSpecificationError("absolute targets must be >= 0")
        return replace(self, targets=Targets(_readonly(t), relative=False))

    def add_feature_weights(self, weights: ArrayLike) -> "ConservationProblem":
        """Per-feature weights for the max utility / features / phylo objectives."""
        w = np.atleast_1d(_as_float_array(weights, "weights"))
        if w.size == 1:
            w = np.full(self.number_of_features, float(w[0]))
        if w.shape != (self.number_of_features,):
            raise InvalidSpecificationError(
                f"weights must have {self.number_of_features} values, got {w.shape}"
            )
        return replace(self, feature_weights=_readonly(w))

    # ─────────────────────────────────────────────────────────────────────
    # Decisions
    # ─────────────────────────────────────────────────────────────────────

    def add_binary_decisions(self) -> "ConservationProblem":
        return replace(self, decisions=Decisions(DecisionType.BINARY))

    def add_proportion_decisions(self) -> "ConservationProblem":
        return replace(self, decisions=Decisions(DecisionType.PROPORTION))

    def add_semicontinuous_decisions(self, upper_limit: float) -> "ConservationProblem":
        """Continuous allocations in [0, upper_limit]."""
        u = float(_as_float_array(upper_limit, "upper_limit"))
        if not 0 < u <= 1:
            raise InvalidSpecificationError(
                f"upper_limit must be in (0, 1], got {upper_limit}"
            )
        return replace(self, decisions=Decisions(DecisionType.SEMICONTINUOUS, u))

    # ─────────────────────────────────────────────────────────────────────
    # Constraints
    # ─────────────────────────────────────────────────────────────────────

    def _lock_mask(self, locked: Any, zone: Optional[int], status: LockStatus) -> np.ndarray:
        n_pu, n_z = self.number_of_planning_units, self.number_of_zones
        arr = np.asarray(locked)
        if arr.ndim == 2:
            if arr.shape != (n_pu, n_z):
                raise InvalidSpecificationError(
                    f"locked matrix must have shape ({n_pu}, {n_z}), got {arr.shape}"
                )
            if zone is not None:
                raise InvalidSpecificationError(
                    "zone cannot be combined with a (N, Z) locked matrix"
                )
            return _readonly(arr.astype(bool))
        if arr.ndim != 1:
            raise InvalidSpecificationError("locked must be a 1D or 2D array")

        if arr.dtype == bool:
            if arr.size != n_pu:
                raise InvalidSpecificationError(
                    f"locked mask must have {n_pu} values, got {arr.size}"
                )
            pu_mask = arr
        else:
            idx = arr.astype(np.int64) if arr.size else np.zeros(0, dtype=np.int64)
            if arr.size and not np.array_equal(idx, arr):
                raise InvalidSpecificationError("locked indices must be integers")
            if np.any(idx < 0) or np.any(idx >= n_pu):
                raise InvalidSpecificationError(
                    f"locked indices must be in [0, {n_pu - 1}]"
                )
            pu_mask = np.zeros(n_pu, dtype=bool)
            pu_mask[idx] = True

        mask = np.zeros((n_pu, n_z), dtype=bool)
        if zone is None:
            if n_z > 1 and status is LockStatus.IN:
                raise InvalidSpecificationError(
                    "zone must be specified when locking planning units in "
                    "for a problem with multiple zones"
                )
            mask[pu_mask, :] = True
        else:
            if not 0 <= zone < n_z:
                raise InvalidSpecificationError(f"zone must be in [0, {n_z - 1}]")
            mask[pu_mask, zone] = True
        return _readonly(mask)

    def add_locked_in_constraints(
        self, locked: Any, zone: Optional[int] = None
    ) -> "ConservationProblem":
        """
        Force planning units into the solution.

        Args:
            locked: Boolean mask (N,), integer planning-unit indices, or a
                boolean (N, Z) matrix.
            zone: Zone index for 1D input (required with multiple zones).
        """
        mask = self._lock_mask(locked, zone, LockStatus.IN)
        return replace(
            self, components=self.components + (LockedConstraint(LockStatus.IN, mask),)
        )

    def add_locked_out_constraints(
        self, locked: Any, zone: Optional[int] = None
    ) -> "ConservationProblem":
        """Exclude planning units from the solution (all zones unless zone given)."""
        mask = self._lock_mask(locked, zone, LockStatus.OUT)
        return replace(
            self, components=self.components + (LockedConstraint(LockStatus.OUT, mask),)
        )

    def add_neighbor_constraints(self, k: int, data: Any) -> "ConservationProblem":
        """Require each selected planning unit to have k selected neighbours.

        Planning units with fewer than k neighbours need all of them.
        """
        if int(k) != k or k < 1:
            raise InvalidSpecificationError(f"k must be a positive integer, got {k}")
        adj = _as_square_matrix(data, self.number_of_planning_units, "data", True)
        return replace(
            self, components=self.components + (NeighborConstraint(int(k), adj),)
        )

    def add_contiguity_constraints(self, data: Any) -> "ConservationProblem":
        """Require the selected planning units to form a single connected cluster."""
        adj = _as_square_matrix(data, self.number_of_planning_units, "data", True)
        return replace(self, components=self.components + (ContiguityConstraint(adj),))

    def add_linear_constraints(
        self, threshold: float, sense: str, data: ArrayLike
    ) -> "ConservationProblem":
        """Add sum(data * x) {sense} threshold.

        Args:
            threshold: Right-hand side.
            sense: "<=", ">=" or "=".
            data: (N,) values (applied to every zone) or (N, Z).
        """
        if sense not in SENSES:
            raise InvalidSpecificationError(f"sense must be one of {SENSES}, got {sense!r}")
        d = _as_float_array(data, "data")
        n_pu, n_z = self.number_of_planning_units, self.number_of_zones
        if d.shape == (n_pu,):
            d = np.repeat(d[:, None], n_z, axis=1)
        if d.shape != (n_pu, n_z):
            raise InvalidSpecificationError(
                f"data must have shape ({n_pu},) or ({n_pu}, {n_z}), got {d.shape}"
            )
        t = float(_as_float_array(threshold, "threshold"))
        return replace(
            self,
            components=self.components + (LinearConstraint(t, sense, _readonly(d)),),
        )

    # ─────────────────────────────────────────────────────────────────────
    # Penalties
    # ─────────────────────────────────────────────────────────────────────

    def add_boundary_penalties(
        self,
        penalty: float,
        data: Any,
        edge_factor: ArrayLike = 1.0,
        zone_weights: Optional[ArrayLike] = None,
    ) -> "ConservationProblem":
        """
        Penalize fragmented solutions by their exposed boundary length.

        Args:
            penalty: Multiplier applied to boundary lengths (>= 0).
            data: (N, N) symmetric boundary matrix, diagonal = exposed edges
                (see geometry.boundary_matrix).
            edge_factor: Scalar or per-zone fraction (0-1) of the exposed
                edge length that is penalized.
            zone_weights: Per-zone multiplier for the penalty (default 1).
        """
        n_z = self.number_of_zones
        p = _as_penalty(penalty, "penalty")
        bm = _as_square_matrix(data, self.number_of_planning_units, "data", True)
        ef = np.atleast_1d(_as_float_array(edge_factor, "edge_factor"))
        if ef.size == 1:
            ef = np.full(n_z, float(ef[0]))
        if ef.shape != (n_z,) or np.any(ef < 0) or np.any(ef > 1):
            raise InvalidSpecificationError(
                f"edge_factor must be a scalar or {n_z} values in [0, 1]"
            )
        zw = np.ones(n_z) if zone_weights is None else np.atleast_1d(
            _as_float_array(zone_weights, "zone_weights")
        )
        if zw.shape != (n_z,) or np.any(zw < 0):
            raise InvalidSpecificationError(
                f"zone_weights must have {n_z} non-negative values"
            )
        return replace(
            self,
            components=self.components
            + (BoundaryPenalty(p, bm, _readonly(ef), _readonly(zw)),),
        )

    def add_connectivity_penalties(self, penalty: float, data: Any) -> "ConservationProblem":
        """Penalize leaving connected planning units out (symmetric data)."""
        p = _as_penalty(penalty, "penalty")
        cm = _as_square_matrix(data, self.number_of_planning_units, "data", True)
        return replace(self, components=self.components + (ConnectivityPenalty(p, cm),))

    def add_asym_connectivity_penalties(
        self, penalty: float, data: Any
    ) -> "ConservationProblem":
        """Penalize selecting i but not j, weighted by directed connectivity c_ij."""
        p = _as_penalty(penalty, "penalty")
        cm = _as_square_matrix(data, self.number_of_planning_units, "data")
        return replace(
            self, components=self.components + (AsymConnectivityPenalty(p, cm),)
        )

    # ─────────────────────────────────────────────────────────────────────
    # Reporting
    # ─────────────────────────────────────────────────────────────────────

    def describe(self) -> Dict[str, Any]:
        """Summary of the problem for logging."""
        targets = "none"
        if self.targets is not None:
            kind = "relative" if self.targets.relative else "absolute"
            targets = (
                f"{kind} [{self.targets.values.min():g}, {self.targets.values.max():g}]"
            )
        return {
            "planning_units": self.number_of_planning_units,
            "features": self.number_of_features,
            "zones": self.number_of_zones,
            "cost_range": (float(self.costs.min()), float(self.costs.max())),
            "objective": self.objective.name if self.objective else "none",
            "targets": targets,
            "decisions": self.decisions.kind.value,
            "constraints": [c.name for c in self.constraints],
            "penalties": [p.name for p in self.penalties],
        }


# ═══════════════════════════════════════════════════════════════════════════
# 🗺️ SPATIAL CONSTRUCTORS
# ═══════════════════════════════════════════════════════════════════════════


def problem_from_geodataframe(
    gdf: "gpd.GeoDataFrame",
    cost_columns: Union[str, Sequence[str]],
    feature_columns: Union[Sequence[str], Sequence[Sequence[str]]],
    zone_names: Optional[Sequence[str]] = None,
) -> ConservationProblem:
    """
    Build a problem from planning units stored as GeoDataFrame rows.

    Args:
        gdf: One row per planning unit.
        cost_columns: Cost column (one zone) or one column per zone.
        feature_columns: Feature amount columns (one zone) or one list of
            columns per zone (same feature order in each list).
        zone_names: Optional zone names.

    Returns:
        ConservationProblem with feature names taken from the first zone's
        column names.
    """
    if isinstance(cost_columns, str):
        cost_columns = [cost_columns]
    feature_columns = list(feature_columns)
    if feature_columns and isinstance(feature_columns[0], str):
        zone_feature_columns = [list(feature_columns)]
    else:
        zone_feature_columns = [list(cols) for cols in feature_columns]

    missing = [
        col
        for col in list(cost_columns) + [c for cols in zone_feature_columns for c in cols]
        if col not in gdf.columns
    ]
    if missing:
        raise InvalidSpecificationError(f"columns not found in data: {missing}")

    costs = gdf[list(cost_columns)].to_numpy(dtype=np.float64)
    amounts = [
        gdf[cols].fillna(0.0).to_numpy(dtype=np.float64).T
        for cols in zone_feature_columns
    ]
    return ConservationProblem.create(
        costs,
        amounts,
        feature_names=zone_feature_columns[0],
        zone_names=zone_names,
    )


def problem_from_raster(
    cost_raster: np.ndarray,
    feature_rasters: np.ndarray,
    feature_names: Optional[Sequence[str]] = None,
) -> ConservationProblem:
    """
    Build a single-zone problem from a cost raster and a feature raster stack.

    Cells with a non-finite cost are not planning units. Planning units are
    the remaining cells in row-major order, which matches
    RasterPlanningUnits(cost_raster, finite_only=True).

    Args:
        cost_raster: (rows, cols) cost values (NaN outside the study area).
        feature_rasters: (F, rows, cols) feature amounts; NaN counts as 0.
    """
    cost = np.asarray(cost_raster, dtype=np.float64)
    feats = np.asarray(feature_rasters, dtype=np.float64)
    if feats.ndim == 2:
        feats = feats[None, :, :]
    if cost.ndim != 2 or feats.shape[1:] != cost.shape:
        raise InvalidSpecificationError(
            "feature_rasters must have shape (F, rows, cols) matching cost_raster"
        )
    include = np.isfinite(cost).ravel()
    amounts = np.nan_to_num(feats.reshape(feats.shape[0], -1)[:, include], nan=0.0)
    return ConservationProblem.create(
        cost.ravel()[include], amounts, feature_names=feature_names
    )
