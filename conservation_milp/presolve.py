#!/usr/bin/env python3
"""
Presolve Checks for Compiled Conservation Problems

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Inspect a compiled OptimizationProblem for values that are
likely to produce "strange" solutions (everything locked in/out) or
numerical instability in MILP solvers (very large or tiny coefficients),
before any time is spent solving it.

Key Functions:
- presolve_check: Main entry point (alias: check)
- _check_locks / _check_objective / _check_rhs_upper / _check_rhs_lower /
  _check_matrix / _check_feature_data: One function per check family

Design:
- Every check runs, even after an earlier one failed, so a single call
  reports every problem at once
- Findings are advisory: returned as warning strings in a PresolveReport
  and logged with logger.warning, never raised
- Messages are chosen from the column/row tags of the offending entries,
  at most one message per tag category

Thresholds come from PresolveConfig (upper_value, lower_value, ...). All
comparisons are strict: a value equal to upper_value passes.

Typical fixes: rescale costs (USD -> millions of USD) or feature amounts
(m^2 -> km^2), or use smaller penalty values.
"""

import logging
from typing import Iterable, List, NamedTuple, Optional, Tuple, Union

import numpy as np

from conservation_milp.compiler import compile_problem
from conservation_milp.config_types import PresolveConfig
from conservation_milp.models.optimization_problem import OptimizationProblem
from conservation_milp.models.problem import ConservationProblem

_logger = logging.getLogger("ConservationMILP.Presolve")

FEATURE_ROW_TAGS = ("spp_amount", "spp_target", "spp_present", "pu_ijz")
FEATURE_COL_TAGS = ("pu_ijz", "pu")
PENALTY_COL_TAGS = ("b", "c", "ac")


class PresolveReport(NamedTuple):
    """Result of presolve_check(). Unpacks as (passed, warnings)."""

    passed: bool
    warnings: Tuple[str, ...]


# ===========================================================================
# 💬 WARNING MESSAGES
# ===========================================================================


def _objective_messages(upper: str) -> dict:
    return {
        "pu": (
            f"planning units with very high costs (> {upper}), please consider "
            "re-scaling the values to avoid numerical issues "
            "(e.g., convert units from USD to millions of USD)"
        ),
        "spp_met": (
            f"feature(s) with very high target weight(s) (> {upper}), "
            "try using lower values in add_feature_weights()"
        ),
        "amount": (
            f"feature(s) with very high weight(s) (> {upper}), "
            "try using lower values in add_feature_weights()"
        ),
        "branch_met": (
            f"feature(s) with very large branch lengths (> {upper}), try "
            "rescaling the phylogenetic tree data "
            "(e.g., convert units from years to millions of years)"
        ),
        "b": (
            f"penalty multiplied boundary lengths are very high (> {upper}), "
            "try using a smaller penalty value in add_boundary_penalties()"
        ),
        "c": (
            f"penalty multiplied connectivity values are very high (> {upper}), "
            "try using a smaller penalty value in add_connectivity_penalties()"
        ),
        "ac": (
            "penalty multiplied asymmetric connectivity values are very high "
            f"(> {upper}), try using a smaller penalty value in "
            "add_asym_connectivity_penalties()"
        ),
    }


def _ordered_tags(tags: Iterable[str]) -> List[str]:
    """Unique tags in first-seen order."""
    return list(dict.fromkeys(tags))


# ===========================================================================
# 🔍 CHECK FUNCTIONS
# ===========================================================================


def _check_locks(op: OptimizationProblem, cfg: PresolveConfig) -> List[str]:
    n = op.number_of_pu_variables
    out = []
    if n and np.all(op.ub[:n] < cfg.locked_out_threshold):
        out.append(
            "all planning units locked out, solve again with force=True "
            "if this is correct"
        )
    if n and np.all(op.lb[:n] > cfg.locked_in_threshold):
        out.append(
            "all planning units locked in, solve again with force=True "
            "if this is correct"
        )
    return out


def _check_objective(op: OptimizationProblem, cfg: PresolveConfig) -> List[str]:
    """
    Large objective coefficients, one message per column tag.

    Penalties are folded into the planning-unit coefficients, so the cost
    message is only given when no penalty tag also exceeds the threshold.
    """
    idx = np.flatnonzero(np.abs(op.obj) > cfg.upper_value)
    if not idx.size:
        return []
    tags = _ordered_tags(op.col_ids[i] for i in idx)
    messages = _objective_messages(f"{cfg.upper_value:g}")
    penalised = any(t in PENALTY_COL_TAGS for t in tags)
    out = []
    for tag in ("pu", "spp_met", "amount", "branch_met", "b", "c", "ac"):
        if tag not in tags or (tag == "pu" and penalised):
            continue
        out.append(messages[tag])
    for tag in tags:
        if tag not in messages:
            out.append(
                f"objective coefficients of {tag!r} variables are very high "
                f"(> {cfg.upper_value:g}), try re-scaling the input data"
            )
    return out


def _check_rhs_upper(op: OptimizationProblem, cfg: PresolveConfig) -> List[str]:
    """
    Large right-hand sides by magnitude.

    Unlike _check_rhs_lower this uses abs(rhs), so large negative
    thresholds (e.g. in linear constraints) are flagged too.
    """
    idx = np.flatnonzero(np.abs(op.rhs) > cfg.upper_value)
    tags = _ordered_tags(op.row_ids[i] for i in idx)
    upper = f"{cfg.upper_value:g}"
    out = []
    if "budget" in tags:
        out.append(
            f"budget is very high (> {upper}), try re-scaling cost data so the "
            "same budget can be specified by using a smaller value with "
            "different units (e.g., convert units from USD to millions of USD)"
        )
    if "spp_target" in tags:
        out.append(
            f"feature(s) with very high target(s) (> {upper}), try re-scaling "
            "the feature data to avoid numerical issues "
            "(e.g., convert units from m^2 to km^2)"
        )
    for tag in tags:
        if tag not in ("budget", "spp_target"):
            out.append(
                f"right-hand side of {tag!r} constraints is very high (> {upper})"
            )
    return out


def _check_rhs_lower(op: OptimizationProblem, cfg: PresolveConfig) -> List[str]:
    """Small positive right-hand sides; zero and negative values are not flagged."""
    idx = np.flatnonzero((op.rhs < cfg.lower_value) & (op.rhs > cfg.rhs_zero_floor))
    tags = _ordered_tags(op.row_ids[i] for i in idx)
    lower = f"{cfg.lower_value:g}"
    out = []
    if "budget" in tags:
        out.append(
            f"budget(s) is very low (< {lower}), so the budget will be rounded to zero"
        )
    if "spp_target" in tags:
        out.append(
            f"feature(s) with very low target(s) (< {lower}), "
            "so the target(s) will be rounded to zero"
        )
    for tag in tags:
        if tag not in ("budget", "spp_target"):
            out.append(
                f"right-hand side of {tag!r} constraints is very low (< {lower}), "
                "so it will be rounded to zero"
            )
    return out


def _feature_masks(op: OptimizationProblem) -> Tuple[np.ndarray, np.ndarray]:
    rows = np.isin(np.asarray(op.row_ids, dtype=object), FEATURE_ROW_TAGS)
    cols = np.isin(np.asarray(op.col_ids, dtype=object), FEATURE_COL_TAGS)
    return rows, cols


def _check_matrix(op: OptimizationProblem, cfg: PresolveConfig) -> List[str]:
    """Large constraint coefficients outside the feature data block."""
    coo = op.A.tocoo()
    feature_rows, feature_cols = _feature_masks(op)
    outside = ~(feature_rows[coo.row] & feature_cols[coo.col])
    hit = outside & (np.abs(coo.data) > cfg.upper_value)
    tags = _ordered_tags(op.row_ids[i] for i in coo.row[hit])
    upper = f"{cfg.upper_value:g}"
    out = []
    if "budget" in tags:
        out.append(
            f"planning units with very high costs (> {upper}), try re-scaling "
            "cost data to different units to avoid numerical issues "
            "(e.g., convert units from USD to millions of USD)"
        )
    if "n" in tags:
        out.append(f"number of neighbors required is very high (> {upper})")
    for tag in tags:
        if tag not in ("budget", "n"):
            out.append(
                f"coefficients in {tag!r} constraints are very high (> {upper})"
            )
    return out


def _check_feature_data(op: OptimizationProblem, cfg: PresolveConfig) -> List[str]:
    feature_rows, feature_cols = _feature_masks(op)
    rij = op.A[np.flatnonzero(feature_rows)][:, np.flatnonzero(feature_cols)]
    out = []
    if rij.nnz and np.any(rij.data > cfg.upper_value):
        out.append(
            f"feature or rij data have very high values (> {cfg.upper_value:g}), "
            "try re-scaling them to avoid numerical issues "
            "(e.g., convert units from m^2 to km^2)"
        )
    if rij.shape[1]:
        col_sums = np.asarray(rij.sum(axis=0)).ravel()
        if np.mean(col_sums <= cfg.lower_value) >= cfg.empty_feature_fraction:
            out.append(
                "most planning units do not have any features inside them, try "
                "obtaining data for more features to ensure that solutions are "
                "biologically meaningful"
            )
    return out


_CHECKS = (
    _check_locks,
    _check_objective,
    _check_rhs_upper,
    _check_rhs_lower,
    _check_matrix,
    _check_feature_data,
)


# ===========================================================================
# 🚀 MAIN ENTRY POINT
# ===========================================================================


def presolve_check(
    x: Union[ConservationProblem, OptimizationProblem],
    config: Optional[PresolveConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> PresolveReport:
    """
    Check a problem for issues before solving it.

    Some findings may be false positives, and passing the checks does not
    mean the problem is feasible.

    Args:
        x: ConservationProblem (compiled first) or OptimizationProblem.
        config: Thresholds. Defaults to PresolveConfig().
        logger: Logger receiving one warning per finding.

    Returns:
        PresolveReport(passed, warnings); passed is True only when no
        warning was produced.
    """
    cfg = config or PresolveConfig()
    log = logger or _logger
    op = compile_problem(x) if isinstance(x, ConservationProblem) else x

    warnings: List[str] = []
    for check_fn in _CHECKS:
        warnings.extend(check_fn(op, cfg))

    for message in warnings:
        log.warning(f"⚠️ {message}")
    if not warnings:
        log.info("   ✅ Presolve checks passed")
    return PresolveReport(passed=not warnings, warnings=tuple(warnings))


check = presolve_check
