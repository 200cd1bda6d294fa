#!/usr/bin/env python3
"""
MILP Solver Backends

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Solve a compiled OptimizationProblem with an external MILP
engine and return a Solution (assignment, objective, runtime, status).

Key Functions:
- solve_milp: Backend dispatcher (highspy primary, PuLP fallback)
- _solve_highspy: Native highspy implementation (primary)
- _solve_pulp: PuLP implementation (HiGHS, then CBC)
- _get_best_solver: PuLP solver selection

SOLVER BACKENDS:
- Primary: Native highspy backend (direct HiGHS API, column/row arrays
  passed straight from the sparse matrix)
- Fallback: PuLP backend (if highspy not installed, or backend="pulp")
- Install highspy: pip install highspy

Statuses are passed through from the backend ("Optimal", "TimeLimit",
"Infeasible", ...). Backends never retry and never raise on a failed solve;
only a missing library raises SolverUnavailableError.

For Navigation: Use VS Code outline (Ctrl+Shift+O) to jump between sections.
"""

import logging
import time
from typing import Dict, Optional, Tuple, TYPE_CHECKING

import numpy as np

from conservation_milp.config_types import SolverConfig
from conservation_milp.exceptions import SolverUnavailableError
from conservation_milp.models.optimization_problem import OptimizationProblem
from conservation_milp.models.solution import Solution

if TYPE_CHECKING:
    import pulp

# Check for highspy availability at module load
HIGHSPY_AVAILABLE = False
try:
    import highspy

    HIGHSPY_AVAILABLE = True
except ImportError:
    # Will use PuLP fallback
    pass

_logger = logging.getLogger("ConservationMILP.Solvers")


# ===========================================================================
# 🔧 ROW BOUNDS
# ===========================================================================


def _row_bounds(op: OptimizationProblem, inf: float) -> Tuple[np.ndarray, np.ndarray]:
    """Convert (sense, rhs) pairs to (lower, upper) row bounds."""
    sense = np.asarray(op.sense, dtype=object)
    lower = np.where(sense == "<=", -inf, op.rhs)
    upper = np.where(sense == ">=", inf, op.rhs)
    return lower.astype(np.float64), upper.astype(np.float64)


# ===========================================================================
# 🧮 HIGHSPY NATIVE SOLVER SECTION
# ===========================================================================

# Module-level constant: HiGHS status code to name mapping
_HIGHS_STATUS_NAMES: Dict[int, str] = {}  # Populated at first use

# HighsInfo.primal_solution_status value for a feasible primal point
_HIGHS_SOLUTION_FEASIBLE = 2


def _get_highs_status_name(model_status: "highspy.HighsModelStatus") -> str:
    """Get human-readable name for HiGHS model status."""
    global _HIGHS_STATUS_NAMES
    if not _HIGHS_STATUS_NAMES:
        _HIGHS_STATUS_NAMES = {
            highspy.HighsModelStatus.kOptimal: "Optimal",
            highspy.HighsModelStatus.kInfeasible: "Infeasible",
            highspy.HighsModelStatus.kUnbounded: "Unbounded",
            highspy.HighsModelStatus.kUnboundedOrInfeasible: "UnboundedOrInfeasible",
            highspy.HighsModelStatus.kNotset: "NotSet",
            highspy.HighsModelStatus.kLoadError: "LoadError",
            highspy.HighsModelStatus.kModelError: "ModelError",
            highspy.HighsModelStatus.kPresolveError: "PresolveError",
            highspy.HighsModelStatus.kSolveError: "SolveError",
            highspy.HighsModelStatus.kPostsolveError: "PostsolveError",
            highspy.HighsModelStatus.kModelEmpty: "ModelEmpty",
            highspy.HighsModelStatus.kObjectiveBound: "ObjectiveBound",
            highspy.HighsModelStatus.kObjectiveTarget: "ObjectiveTarget",
            highspy.HighsModelStatus.kTimeLimit: "TimeLimit",
            highspy.HighsModelStatus.kIterationLimit: "IterationLimit",
            highspy.HighsModelStatus.kSolutionLimit: "SolutionLimit",
            highspy.HighsModelStatus.kInterrupt: "Interrupt",
            highspy.HighsModelStatus.kMemoryLimit: "MemoryLimit",
        }
    return _HIGHS_STATUS_NAMES.get(model_status, str(model_status))


def _init_highs_solver(config: SolverConfig) -> "highspy.Highs":
    h = highspy.Highs()
    h.setOptionValue("output_flag", config.verbose > 0)
    h.setOptionValue("time_limit", float(config.time_limit))
    h.setOptionValue("mip_rel_gap", config.mip_gap)
    h.setOptionValue("threads", config.threads)
    return h


def _solve_highspy(
    op: OptimizationProblem, config: SolverConfig, logger: logging.Logger
) -> Solution:
    """Solve with the native HiGHS API."""
    inf = highspy.kHighsInf
    h = _init_highs_solver(config)

    n_col = op.number_of_variables
    lb = np.where(np.isinf(op.lb), -inf, op.lb)
    ub = np.where(np.isinf(op.ub), inf, op.ub)
    no_entries = np.zeros(0, dtype=np.int32)
    h.addCols(n_col, op.obj, lb, ub, 0, no_entries, no_entries, np.zeros(0))
    for j in np.flatnonzero(np.asarray(op.vtype) == "B"):
        h.changeColIntegrality(int(j), highspy.HighsVarType.kInteger)

    if op.number_of_constraints:
        lower, upper = _row_bounds(op, inf)
        a = op.A
        h.addRows(
            op.number_of_constraints,
            lower,
            upper,
            a.nnz,
            a.indptr[:-1].astype(np.int32),
            a.indices.astype(np.int32),
            a.data,
        )
    if op.modelsense == "max":
        h.changeObjectiveSense(highspy.ObjSense.kMaximize)

    start = time.perf_counter()
    h.run()
    runtime = time.perf_counter() - start

    model_status = h.getModelStatus()
    status = _get_highs_status_name(model_status)
    has_feasible_solution = model_status in (
        highspy.HighsModelStatus.kOptimal,
        highspy.HighsModelStatus.kInterrupt,
        highspy.HighsModelStatus.kTimeLimit,
        highspy.HighsModelStatus.kSolutionLimit,
    )
    info = h.getInfo()
    values, objective = None, None
    # HiGHS fills col_value even when no incumbent was found before a limit
    if has_feasible_solution and info.primal_solution_status == _HIGHS_SOLUTION_FEASIBLE:
        sol = h.getSolution()
        if sol.value_valid and len(sol.col_value) >= n_col:
            values = np.asarray(sol.col_value[:n_col], dtype=np.float64)
            objective = float(info.objective_function_value)
    if values is None:
        logger.warning(f"⚠️ MILP solver status (highspy): {status}")

    return Solution(
        values=values,
        objective=objective,
        runtime=runtime,
        status=status,
        method="highspy",
        number_of_planning_units=op.number_of_planning_units,
        number_of_zones=op.number_of_zones,
    )


# ===========================================================================
# 📦 PULP FALLBACK SOLVER SECTION
# ===========================================================================


def _get_best_solver(config: SolverConfig, logger: logging.Logger) -> "pulp.apis.LpSolver":
    """
    Get the best available PuLP solver.

    Priority order:
    1. HiGHS API (uses highspy)
    2. HiGHS CMD (command-line version)
    3. CBC (bundled with PuLP)
    """
    import pulp

    msg_level = min(config.verbose, 1)
    candidates = (
        ("HiGHS", lambda: pulp.HiGHS(
            msg=msg_level,
            timeLimit=config.time_limit,
            gapRel=config.mip_gap,
            threads=config.threads,
        )),
        ("HiGHS CMD", lambda: pulp.HiGHS_CMD(
            msg=msg_level,
            timeLimit=config.time_limit,
            gapRel=config.mip_gap,
            threads=config.threads,
        )),
    )
    for name, factory in candidates:
        try:
            solver = factory()
        except pulp.PulpSolverError as e:
            logger.debug(f"   {name} not usable: {e}")
            continue
        if solver.available():
            logger.info(f"   🚀 Using {name} solver through PuLP")
            return solver

    logger.info("   📦 Using CBC solver (default)")
    return pulp.PULP_CBC_CMD(
        msg=msg_level,
        timeLimit=config.time_limit,
        threads=config.threads,
        gapRel=config.mip_gap,
    )


def _solve_pulp(
    op: OptimizationProblem, config: SolverConfig, logger: logging.Logger
) -> Solution:
    """Solve through PuLP, building the model row by row from the csr matrix."""
    import pulp

    sense = pulp.LpMaximize if op.modelsense == "max" else pulp.LpMinimize
    prob = pulp.LpProblem("ConservationProblem", sense)

    def _bound(v: float) -> Optional[float]:
        return None if np.isinf(v) else float(v)

    # PuLP 4 registers variables through the problem; older releases only
    # provide the LpVariable constructor
    new_variable = getattr(prob, "add_variable", pulp.LpVariable)
    # Binaries are declared as bounded integers so locked bounds survive
    x = [
        new_variable(
            f"x_{j}",
            lowBound=_bound(op.lb[j]),
            upBound=_bound(op.ub[j]),
            cat=pulp.LpInteger if op.vtype[j] == "B" else pulp.LpContinuous,
        )
        for j in range(op.number_of_variables)
    ]
    prob += pulp.lpSum(float(c) * x[j] for j, c in enumerate(op.obj) if c != 0), "objective"

    a = op.A
    for i in range(op.number_of_constraints):
        start, end = a.indptr[i], a.indptr[i + 1]
        expr = pulp.lpSum(
            float(v) * x[j] for j, v in zip(a.indices[start:end], a.data[start:end])
        )
        rhs = float(op.rhs[i])
        if op.sense[i] == "<=":
            prob += expr <= rhs, f"{op.row_ids[i]}_{i}"
        elif op.sense[i] == ">=":
            prob += expr >= rhs, f"{op.row_ids[i]}_{i}"
        else:
            prob += expr == rhs, f"{op.row_ids[i]}_{i}"

    solver = _get_best_solver(config, logger)
    start_time = time.perf_counter()
    prob.solve(solver)
    runtime = time.perf_counter() - start_time

    status = pulp.LpStatus.get(prob.status, "Unknown")
    values, objective = None, None
    raw = [v.varValue for v in x]
    if prob.status == pulp.LpStatusOptimal and all(v is not None for v in raw):
        values = np.asarray(raw, dtype=np.float64)
        objective = float(np.dot(op.obj, values))
    else:
        logger.warning(f"⚠️ MILP solver status (PuLP): {status}")

    return Solution(
        values=values,
        objective=objective,
        runtime=runtime,
        status=status,
        method=f"pulp_{solver.name}",
        number_of_planning_units=op.number_of_planning_units,
        number_of_zones=op.number_of_zones,
    )


# ===========================================================================
# 🚀 DISPATCHER
# ===========================================================================


def solve_milp(
    op: OptimizationProblem,
    config: Optional[SolverConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> Solution:
    """Solve a compiled problem using highspy (primary) or PuLP (fallback).

    Backend selection (config.backend):
    - "auto": highspy when installed, otherwise PuLP
    - "highspy" / "pulp": that backend only

    Raises:
        SolverUnavailableError: if the selected backend is not installed.
    """
    config = config or SolverConfig()
    log = logger or _logger

    if config.backend == "highspy" or (config.backend == "auto" and HIGHSPY_AVAILABLE):
        if not HIGHSPY_AVAILABLE:
            raise SolverUnavailableError("highspy is not installed: pip install highspy")
        log.info(
            f"   🚀 Solving with highspy: {op.number_of_variables} variables, "
            f"{op.number_of_constraints} constraints"
        )
        return _solve_highspy(op, config, log)

    try:
        import pulp  # noqa: F401
    except ImportError as e:
        raise SolverUnavailableError(
            "no MILP solver available: pip install highspy (or pulp)"
        ) from e
    if config.backend == "auto":
        log.info("   ⚠️ highspy not available, using PuLP fallback")
    return _solve_pulp(op, config, log)
