#!/usr/bin/env python3
"""
Conservation Problem Matrix Compiler

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Translate a declarative ConservationProblem into a generic
MILP (OptimizationProblem): objective vector, sparse constraint matrix, row
senses/right-hand sides, variable bounds/types and diagnostic tags.

Key Functions:
- compile_problem: Main entry point (pure, deterministic)
- _apply_objective: Objective-specific columns and rows
- _apply_neighbor_constraints / _apply_contiguity_constraints /
  _apply_linear_constraints: Structural constraint families
- _apply_boundary_penalties / _apply_connectivity_penalties /
  _apply_asym_connectivity_penalties: Linearised pairwise penalties

COLUMN / ROW LAYOUT:
- Columns: "pu" (N * Z, zone-major), objective auxiliaries ("amount",
  "spp_met", "branch_met"), then auxiliaries of each constraint/penalty in
  the order they were added to the problem ("b", "c", "ac", "cf_*")
- Rows: objective rows ("spp_target", "spp_amount", "branch_target",
  "budget"), "pu_zone" when Z > 1, then per-component rows

NUMERIC SEMANTICS:
- Targets are converted to absolute amounts without rounding; tiny values
  are only flagged later by presolve_check()
- Penalties are added to the objective for "min" problems and subtracted
  for "max" problems

For Navigation: Use VS Code outline (Ctrl+Shift+O) to jump between sections.
"""

import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
from scipy import sparse

from conservation_milp.exceptions import InvalidSpecificationError
from conservation_milp.models.optimization_problem import OptimizationProblem
from conservation_milp.models.problem import (
    AsymConnectivityPenalty,
    BoundaryPenalty,
    ConnectivityPenalty,
    ConservationProblem,
    ContiguityConstraint,
    LinearConstraint,
    LockedConstraint,
    LockStatus,
    MaxFeaturesObjective,
    MaxPhyloDivObjective,
    MaxUtilityObjective,
    MinSetObjective,
    NeighborConstraint,
)

_logger = logging.getLogger("ConservationMILP.Compiler")


# ===========================================================================
# 🧱 MATRIX BUILDER SECTION
# ===========================================================================


class _MatrixBuilder:
    """
    Accumulates columns, rows and coefficient triplets for one compilation.

    One builder per compile_problem() call.
    """

    def __init__(self) -> None:
        self.n_cols = 0
        self.n_rows = 0
        self._obj: List[np.ndarray] = []
        self._lb: List[np.ndarray] = []
        self._ub: List[np.ndarray] = []
        self._vtype: List[str] = []
        self._col_ids: List[str] = []
        self._obj_idx: List[np.ndarray] = []
        self._obj_inc: List[np.ndarray] = []
        self._i: List[np.ndarray] = []
        self._j: List[np.ndarray] = []
        self._x: List[np.ndarray] = []
        self._sense: List[str] = []
        self._rhs: List[np.ndarray] = []
        self._row_ids: List[str] = []

    def add_columns(
        self,
        n: int,
        tag: str,
        obj: Union[float, np.ndarray] = 0.0,
        lb: Union[float, np.ndarray] = 0.0,
        ub: Union[float, np.ndarray] = 1.0,
        vtype: str = "C",
    ) -> int:
        """Append n columns and return the index of the first one."""
        start = self.n_cols
        self._obj.append(np.broadcast_to(np.asarray(obj, dtype=np.float64), (n,)).copy())
        self._lb.append(np.broadcast_to(np.asarray(lb, dtype=np.float64), (n,)).copy())
        self._ub.append(np.broadcast_to(np.asarray(ub, dtype=np.float64), (n,)).copy())
        self._vtype.extend([vtype] * n)
        self._col_ids.extend([tag] * n)
        self.n_cols += n
        return start

    def add_to_objective(self, cols: np.ndarray, values: np.ndarray) -> None:
        """Increment objective coefficients of existing columns."""
        self._obj_idx.append(np.asarray(cols, dtype=np.int64))
        self._obj_inc.append(np.asarray(values, dtype=np.float64))

    def add_rows(
        self,
        n: int,
        tag: str,
        sense: str,
        rhs: Union[float, np.ndarray],
        rows: np.ndarray,
        cols: np.ndarray,
        values: np.ndarray,
    ) -> int:
        """
        Append n rows with coefficients given as (local row, column, value).

        Local row indices run from 0 to n - 1 and are offset here.
        """
        start = self.n_rows
        self._i.append(np.asarray(rows, dtype=np.int64) + start)
        self._j.append(np.asarray(cols, dtype=np.int64))
        self._x.append(np.asarray(values, dtype=np.float64))
        self._sense.extend([sense] * n)
        self._rhs.append(np.broadcast_to(np.asarray(rhs, dtype=np.float64), (n,)).copy())
        self._row_ids.extend([tag] * n)
        self.n_rows += n
        return start

    def build(
        self, modelsense: str, n_pu: int, n_zones: int, n_features: int
    ) -> OptimizationProblem:
        def _cat(chunks: List[np.ndarray], dtype: type) -> np.ndarray:
            return np.concatenate(chunks).astype(dtype) if chunks else np.zeros(0, dtype)

        obj = _cat(self._obj, np.float64)
        if self._obj_idx:
            np.add.at(obj, _cat(self._obj_idx, np.int64), _cat(self._obj_inc, np.float64))
        a = sparse.coo_matrix(
            (_cat(self._x, np.float64), (_cat(self._i, np.int64), _cat(self._j, np.int64))),
            shape=(self.n_rows, self.n_cols),
        ).tocsr()
        return OptimizationProblem.from_arrays(
            modelsense=modelsense,
            obj=obj,
            A=a,
            sense=self._sense,
            rhs=_cat(self._rhs, np.float64),
            lb=_cat(self._lb, np.float64),
            ub=_cat(self._ub, np.float64),
            vtype=self._vtype,
            col_ids=self._col_ids,
            row_ids=self._row_ids,
            number_of_planning_units=n_pu,
            number_of_zones=n_zones,
            number_of_features=n_features,
        )


def _pu_columns(n_pu: int, zone: int, idx: np.ndarray) -> np.ndarray:
    """Column indices of planning units idx in a zone (zone-major layout)."""
    return zone * n_pu + np.asarray(idx, dtype=np.int64)


def _off_diagonal_pairs(
    m: sparse.csr_matrix, upper_only: bool
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Non-zero off-diagonal entries (i, j, value), row-major order."""
    coo = m.tocoo()
    keep = (coo.row != coo.col) & (coo.data != 0)
    if upper_only:
        keep &= coo.row < coo.col
    i, j, v = coo.row[keep], coo.col[keep], coo.data[keep]
    order = np.lexsort((j, i))
    return i[order].astype(np.int64), j[order].astype(np.int64), v[order]


# ===========================================================================
# 🔒 PLANNING UNIT VARIABLES AND LOCKS
# ===========================================================================


def _lock_masks(problem: ConservationProblem) -> Tuple[np.ndarray, np.ndarray]:
    """Combine all locked constraints into (locked_in, locked_out) masks.

    Raises:
        InvalidSpecificationError: when a variable is locked both in and out,
            or a planning unit is locked into more than one zone.
    """
    shape = (problem.number_of_planning_units, problem.number_of_zones)
    locked_in = np.zeros(shape, dtype=bool)
    locked_out = np.zeros(shape, dtype=bool)
    for c in problem.components:
        if isinstance(c, LockedConstraint):
            if c.status is LockStatus.IN:
                locked_in |= c.mask
            else:
                locked_out |= c.mask

    conflict = locked_in & locked_out
    if conflict.any():
        pu, zone = np.nonzero(conflict)
        pairs = ", ".join(f"(pu={p}, zone={z})" for p, z in list(zip(pu, zone))[:5])
        raise InvalidSpecificationError(
            f"{int(conflict.sum())} planning unit/zone variable(s) are both locked "
            f"in and locked out: {pairs}"
        )
    multi = locked_in.sum(axis=1) > 1
    if multi.any():
        raise InvalidSpecificationError(
            f"planning unit(s) locked into more than one zone: "
            f"{np.flatnonzero(multi)[:5].tolist()}"
        )
    return locked_in, locked_out


def _add_planning_unit_columns(
    b: _MatrixBuilder, problem: ConservationProblem, minimize: bool
) -> None:
    """Add the N * Z allocation columns with costs, bounds and locks."""
    n_pu, n_zones = problem.number_of_planning_units, problem.number_of_zones
    upper = problem.decisions.upper_limit
    locked_in, locked_out = _lock_masks(problem)

    # zone-major: transpose (N, Z) -> (Z, N) before flattening
    lb = np.where(locked_in, upper, 0.0).T.ravel()
    ub = np.where(locked_out, 0.0, upper).T.ravel()
    obj = problem.costs.T.ravel() if minimize else 0.0
    b.add_columns(n_pu * n_zones, "pu", obj=obj, lb=lb, ub=ub, vtype=problem.decisions.vtype)


# ===========================================================================
# 🎯 OBJECTIVE SECTION
# ===========================================================================


def _target_rows(problem: ConservationProblem) -> List[Tuple[int, Tuple[int, ...], float]]:
    """
    Expand targets into (feature, zones, absolute amount) triples.

    (F,) targets apply to the feature total over all zones; (F, Z) targets
    give one row per feature and zone.
    """
    targets = problem.targets
    n_f, n_z = problem.number_of_features, problem.number_of_zones
    values = targets.values
    if values.shape not in ((n_f,), (n_f, n_z)):
        raise InvalidSpecificationError(
            f"targets must have shape ({n_f},) or ({n_f}, {n_z}), got {values.shape}"
        )
    if targets.relative and (np.any(values < 0) or np.any(values > 1)):
        raise InvalidSpecificationError("relative targets must be in [0, 1]")

    abundance = problem.feature_abundances()
    out: List[Tuple[int, Tuple[int, ...], float]] = []
    if targets.per_zone:
        for f in range(n_f):
            for z in range(n_z):
                t = values[f, z] * abundance[f, z] if targets.relative else values[f, z]
                out.append((f, (z,), float(t)))
    else:
        all_zones = tuple(range(n_z))
        for f in range(n_f):
            t = values[f] * abundance[f].sum() if targets.relative else values[f]
            out.append((f, all_zones, float(t)))
    return out


def _feature_entries(
    problem: ConservationProblem, feature: int, zones: Sequence[int]
) -> Tuple[np.ndarray, np.ndarray]:
    """(columns, amounts) of one feature across planning-unit columns of zones."""
    n_pu = problem.number_of_planning_units
    cols, vals = [], []
    for z in zones:
        m = problem.amounts[z]
        start, end = m.indptr[feature], m.indptr[feature + 1]
        cols.append(_pu_columns(n_pu, z, m.indices[start:end]))
        vals.append(m.data[start:end])
    return np.concatenate(cols), np.concatenate(vals)


def _add_budget_rows(b: _MatrixBuilder, problem: ConservationProblem, budget: np.ndarray) -> None:
    n_pu, n_zones = problem.number_of_planning_units, problem.number_of_zones
    costs = problem.costs.T.ravel()
    cols = np.arange(n_pu * n_zones, dtype=np.int64)
    if budget.size == 1:
        b.add_rows(1, "budget", "<=", budget[0], np.zeros(cols.size), cols, costs)
    else:
        b.add_rows(n_zones, "budget", "<=", budget, cols // n_pu, cols, costs)


def _add_target_rows(
    b: _MatrixBuilder,
    problem: ConservationProblem,
    met_start: Optional[int] = None,
) -> None:
    """
    Add one "spp_target" row per target.

    Without met_start: sum(rij * x) >= target.
    With met_start: sum(rij * x) - target * spp_met >= 0 where spp_met for
    target t is column met_start + t.
    """
    rows, cols, vals, rhs = [], [], [], []
    for t, (f, zones, amount) in enumerate(_target_rows(problem)):
        c, v = _feature_entries(problem, f, zones)
        if met_start is not None:
            c = np.append(c, met_start + t)
            v = np.append(v, -amount)
        rows.append(np.full(c.size, t))
        cols.append(c)
        vals.append(v)
        rhs.append(0.0 if met_start is not None else amount)
    b.add_rows(
        len(rhs),
        "spp_target",
        ">=",
        np.array(rhs),
        np.concatenate(rows),
        np.concatenate(cols),
        np.concatenate(vals),
    )


def _weights(problem: ConservationProblem) -> np.ndarray:
    if problem.feature_weights is None:
        return np.ones(problem.number_of_features)
    return problem.feature_weights


def _apply_objective(b: _MatrixBuilder, problem: ConservationProblem) -> None:
    """Add objective-specific auxiliary columns and rows."""
    objective = problem.objective
    n_f = problem.number_of_features

    if isinstance(objective, MinSetObjective):
        _add_target_rows(b, problem)
        return

    if isinstance(objective, MaxUtilityObjective):
        start = b.add_columns(n_f, "amount", obj=_weights(problem), ub=np.inf)
        rows, cols, vals = [], [], []
        all_zones = range(problem.number_of_zones)
        for f in range(n_f):
            c, v = _feature_entries(problem, f, all_zones)
            rows.append(np.full(c.size + 1, f))
            cols.append(np.append(c, start + f))
            vals.append(np.append(v, -1.0))
        b.add_rows(
            n_f, "spp_amount", "=", 0.0,
            np.concatenate(rows), np.concatenate(cols), np.concatenate(vals),
        )
        _add_budget_rows(b, problem, objective.budget)
        return

    if isinstance(objective, MaxFeaturesObjective):
        targets = _target_rows(problem)
        weights = _weights(problem)
        met_obj = np.array([weights[f] for f, _, _ in targets])
        start = b.add_columns(len(targets), "spp_met", obj=met_obj, vtype="B")
        _add_target_rows(b, problem, met_start=start)
        _add_budget_rows(b, problem, objective.budget)
        return

    if isinstance(objective, MaxPhyloDivObjective):
        if problem.targets.per_zone:
            raise InvalidSpecificationError(
                "the max_phylo_div objective requires one target per feature"
            )
        met_obj = (
            problem.feature_weights if problem.feature_weights is not None else 0.0
        )
        met_start = b.add_columns(n_f, "spp_met", obj=met_obj, vtype="B")
        n_branches = objective.branch_matrix.shape[1]
        branch_start = b.add_columns(
            n_branches, "branch_met", obj=objective.branch_lengths, vtype="B"
        )
        _add_target_rows(b, problem, met_start=met_start)
        # branch_met_b - sum(spp_met_f for f below b) <= 0
        bm = objective.branch_matrix.tocsc()
        rows, cols, vals = [], [], []
        for br in range(n_branches):
            feats = bm.indices[bm.indptr[br]: bm.indptr[br + 1]]
            rows.append(np.full(feats.size + 1, br))
            cols.append(np.append(branch_start + br, met_start + feats))
            vals.append(np.append(1.0, -np.ones(feats.size)))
        if n_branches:
            b.add_rows(
                n_branches, "branch_target", "<=", 0.0,
                np.concatenate(rows), np.concatenate(cols), np.concatenate(vals),
            )
        _add_budget_rows(b, problem, objective.budget)
        return

    raise InvalidSpecificationError(f"unsupported objective: {objective!r}")


def _add_zone_allocation_rows(b: _MatrixBuilder, problem: ConservationProblem) -> None:
    """Each planning unit is allocated to at most one zone."""
    n_pu, n_zones = problem.number_of_planning_units, problem.number_of_zones
    if n_zones < 2:
        return
    cols = np.arange(n_pu * n_zones, dtype=np.int64)
    b.add_rows(n_pu, "pu_zone", "<=", 1.0, cols % n_pu, cols, np.ones(cols.size))


# ===========================================================================
# 🧩 CONSTRAINT SECTION
# ===========================================================================


def _apply_neighbor_constraints(
    b: _MatrixBuilder, problem: ConservationProblem, c: NeighborConstraint, sign: float
) -> None:
    """
    sum(x_jz for j adjacent to i) - k_i * x_iz >= 0 for each zone z.

    k_i = min(k, number of neighbours of i); planning units without
    neighbours get no row.
    """
    n_pu = problem.number_of_planning_units
    i, j, _ = _off_diagonal_pairs(c.data, upper_only=False)
    degree = np.bincount(i, minlength=n_pu)
    k_i = np.minimum(c.k, degree)
    constrained = np.flatnonzero(k_i > 0)
    local = np.full(n_pu, -1, dtype=np.int64)
    local[constrained] = np.arange(constrained.size)
    keep = k_i[i] > 0
    i, j = i[keep], j[keep]
    for z in range(problem.number_of_zones):
        rows = np.concatenate([local[i], local[constrained]])
        cols = np.concatenate([_pu_columns(n_pu, z, j), _pu_columns(n_pu, z, constrained)])
        vals = np.concatenate([np.ones(i.size), -k_i[constrained].astype(np.float64)])
        b.add_rows(constrained.size, "n", ">=", 0.0, rows, cols, vals)


def _apply_linear_constraints(
    b: _MatrixBuilder, problem: ConservationProblem, c: LinearConstraint, sign: float
) -> None:
    coeffs = c.data.T.ravel()
    cols = np.flatnonzero(coeffs)
    b.add_rows(1, "linear", c.sense, c.threshold, np.zeros(cols.size), cols, coeffs[cols])


def _apply_contiguity_constraints(
    b: _MatrixBuilder, problem: ConservationProblem, c: ContiguityConstraint, sign: float
) -> None:
    """
    Single-commodity flow formulation over the zone-aggregated selection.

    Every selected planning unit consumes one unit of flow, supplied from a
    single root (cf_root) through source arcs (cf_source) and carried along
    adjacency arcs (cf_flow) that may only use selected planning units.
    """
    n_pu, n_zones = problem.number_of_planning_units, problem.number_of_zones
    ui, uj, _ = _off_diagonal_pairs(c.data, upper_only=True)
    tail = np.concatenate([ui, uj])
    head = np.concatenate([uj, ui])
    n_arcs = tail.size
    big_m = float(n_pu)
    pu = np.arange(n_pu, dtype=np.int64)

    def _xsum(local_rows: np.ndarray, units: np.ndarray, coeff: float):
        """Entries coeff * sum_z x_{unit, z} on the given local rows."""
        rows = np.tile(local_rows, n_zones)
        cols = np.concatenate([_pu_columns(n_pu, z, units) for z in range(n_zones)])
        return rows, cols, np.full(cols.size, coeff)

    root = b.add_columns(n_pu, "cf_root", vtype="B")
    source = b.add_columns(n_pu, "cf_source", ub=big_m)
    flow = b.add_columns(n_arcs, "cf_flow", ub=max(big_m - 1.0, 0.0))

    # at most one root
    b.add_rows(1, "cf_root", "<=", 1.0, np.zeros(n_pu), root + pu, np.ones(n_pu))
    # root must be selected: r_i - sum_z x_iz <= 0
    xr, xc, xv = _xsum(pu, pu, -1.0)
    b.add_rows(
        n_pu, "cf_root", "<=", 0.0,
        np.concatenate([pu, xr]), np.concatenate([root + pu, xc]),
        np.concatenate([np.ones(n_pu), xv]),
    )
    # source flow only at the root: g_i - N r_i <= 0
    b.add_rows(
        n_pu, "cf_source", "<=", 0.0,
        np.concatenate([pu, pu]), np.concatenate([source + pu, root + pu]),
        np.concatenate([np.ones(n_pu), np.full(n_pu, -big_m)]),
    )
    # arcs only between selected units: f_a - (N - 1) xsum_{tail,head} <= 0
    if n_arcs:
        arcs = np.arange(n_arcs, dtype=np.int64)
        for endpoint in (tail, head):
            xr, xc, xv = _xsum(arcs, endpoint, -(big_m - 1.0))
            b.add_rows(
                n_arcs, "cf_arc", "<=", 0.0,
                np.concatenate([arcs, xr]), np.concatenate([flow + arcs, xc]),
                np.concatenate([np.ones(n_arcs), xv]),
            )
    # balance: g_i + inflow_i - outflow_i - sum_z x_iz = 0
    xr, xc, xv = _xsum(pu, pu, -1.0)
    arcs = np.arange(n_arcs, dtype=np.int64)
    b.add_rows(
        n_pu, "cf_balance", "=", 0.0,
        np.concatenate([pu, head, tail, xr]),
        np.concatenate([source + pu, flow + arcs, flow + arcs, xc]),
        np.concatenate([np.ones(n_pu), np.ones(n_arcs), -np.ones(n_arcs), xv]),
    )


# ===========================================================================
# ⚖️ PENALTY SECTION
# ===========================================================================


def _add_pairwise_penalty(
    b: _MatrixBuilder,
    problem: ConservationProblem,
    zone: int,
    pu_increment: np.ndarray,
    i: np.ndarray,
    j: np.ndarray,
    pair_obj: np.ndarray,
    tag: str,
) -> None:
    """
    Linearise pairwise terms with auxiliary y_ij in [0, 1]:
    y_ij - x_iz <= 0 (tag + "1") and y_ij - x_jz <= 0 (tag + "2").
    """
    n_pu = problem.number_of_planning_units
    pu_cols = _pu_columns(n_pu, zone, np.arange(n_pu))
    nz = np.flatnonzero(pu_increment)
    b.add_to_objective(pu_cols[nz], pu_increment[nz])
    n_pairs = i.size
    if not n_pairs:
        return
    start = b.add_columns(n_pairs, tag, obj=pair_obj)
    pairs = np.arange(n_pairs, dtype=np.int64)
    for suffix, endpoint in (("1", i), ("2", j)):
        b.add_rows(
            n_pairs, tag + suffix, "<=", 0.0,
            np.concatenate([pairs, pairs]),
            np.concatenate([start + pairs, _pu_columns(n_pu, zone, endpoint)]),
            np.concatenate([np.ones(n_pairs), -np.ones(n_pairs)]),
        )


def _apply_boundary_penalties(
    b: _MatrixBuilder, problem: ConservationProblem, c: BoundaryPenalty, sign: float
) -> None:
    """
    Exposed boundary: each selected unit pays its scaled exposed edge plus
    all shared edges; each pair selected together gets 2 * shared back.
    """
    diag = c.data.diagonal()
    i, j, shared = _off_diagonal_pairs(c.data, upper_only=True)
    shared_total = np.asarray(c.data.sum(axis=1)).ravel() - diag
    for z in range(problem.number_of_zones):
        scale = sign * c.penalty * c.zone_weights[z]
        if scale == 0:
            continue
        total = scale * (c.edge_factor[z] * diag + shared_total)
        _add_pairwise_penalty(b, problem, z, total, i, j, -2.0 * scale * shared, "b")


def _apply_connectivity_penalties(
    b: _MatrixBuilder, problem: ConservationProblem, c: ConnectivityPenalty, sign: float
) -> None:
    i, j, conn = _off_diagonal_pairs(c.data, upper_only=True)
    total = np.asarray(c.data.sum(axis=1)).ravel() - c.data.diagonal()
    scale = sign * c.penalty
    if scale == 0:
        return
    for z in range(problem.number_of_zones):
        _add_pairwise_penalty(b, problem, z, scale * total, i, j, -2.0 * scale * conn, "c")


def _apply_asym_connectivity_penalties(
    b: _MatrixBuilder, problem: ConservationProblem, c: AsymConnectivityPenalty, sign: float
) -> None:
    i, j, conn = _off_diagonal_pairs(c.data, upper_only=False)
    total = np.asarray(c.data.sum(axis=1)).ravel() - c.data.diagonal()
    scale = sign * c.penalty
    if scale == 0:
        return
    for z in range(problem.number_of_zones):
        _add_pairwise_penalty(b, problem, z, scale * total, i, j, -scale * conn, "ac")


_COMPONENT_APPLIERS: Dict[type, Callable[..., None]] = {
    NeighborConstraint: _apply_neighbor_constraints,
    LinearConstraint: _apply_linear_constraints,
    ContiguityConstraint: _apply_contiguity_constraints,
    BoundaryPenalty: _apply_boundary_penalties,
    ConnectivityPenalty: _apply_connectivity_penalties,
    AsymConnectivityPenalty: _apply_asym_connectivity_penalties,
}


# ===========================================================================
# 🚀 MAIN ENTRY POINT
# ===========================================================================


def compile_problem(
    problem: ConservationProblem,
    logger: Optional[logging.Logger] = None,
) -> OptimizationProblem:
    """
    Compile a conservation problem into matrix form.

    Pure and deterministic: the same problem always gives identical arrays
    and tags, and the problem itself is never modified.

    Args:
        problem: ConservationProblem with an objective (and targets when the
            objective needs them).
        logger: Optional logger for a one-line summary.

    Returns:
        OptimizationProblem ready for presolve_check() or a solver backend.

    Raises:
        InvalidSpecificationError: on structural problems (no features,
            non-finite costs, missing objective/targets, lock conflicts).
    """
    log = logger or _logger
    problem.validate()
    ignores_targets = isinstance(problem.objective, MaxUtilityObjective)
    if ignores_targets and problem.targets is not None:
        log.info("   ℹ️ Targets are ignored by the max_utility objective")
    minimize = problem.objective.modelsense == "min"
    # penalties add cost when minimizing and subtract value when maximizing
    sign = 1.0 if minimize else -1.0

    b = _MatrixBuilder()
    _add_planning_unit_columns(b, problem, minimize)
    _apply_objective(b, problem)
    _add_zone_allocation_rows(b, problem)
    for component in problem.components:
        if isinstance(component, LockedConstraint):
            continue  # applied as variable bounds
        applier = _COMPONENT_APPLIERS.get(type(component))
        if applier is None:
            raise InvalidSpecificationError(f"unsupported component: {component!r}")
        applier(b, problem, component, sign)

    op = b.build(
        problem.objective.modelsense,
        problem.number_of_planning_units,
        problem.number_of_zones,
        problem.number_of_features,
    )
    log.debug(
        f"   🧮 Compiled {problem.objective.name} problem: "
        f"{op.number_of_variables} variables, {op.number_of_constraints} "
        f"constraints, {op.A.nnz} non-zeros"
    )
    return op
