#!/usr/bin/env python3
"""
Conservation Problem Solve Orchestration

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Run compile -> presolve -> solve for a single problem.

Key Functions:
- solve: Main entry point, accepts a ConservationProblem or an already
  compiled OptimizationProblem

CONFIGURATION ARCHITECTURE:
- No CONFIG access - all functions accept explicit config objects
- Presolve is advisory here: findings are logged and the solve goes ahead.
  Blocking on a failed presolve is done by main.run_conservation_analysis()
  (controlled by SolverConfig.force)
"""

import logging
from typing import Optional, Union

from conservation_milp.compiler import compile_problem
from conservation_milp.config_types import PresolveConfig, SolverConfig
from conservation_milp.models.optimization_problem import OptimizationProblem
from conservation_milp.models.problem import ConservationProblem
from conservation_milp.models.solution import Solution
from conservation_milp.presolve import presolve_check
from conservation_milp.solvers.solver_backends import solve_milp

_logger = logging.getLogger("ConservationMILP.Solvers")


def solve(
    x: Union[ConservationProblem, OptimizationProblem],
    solver_config: Optional[SolverConfig] = None,
    presolve_config: Optional[PresolveConfig] = None,
    run_presolve: bool = True,
    logger: Optional[logging.Logger] = None,
) -> Solution:
    """
    Solve a conservation problem.

    Args:
        x: ConservationProblem (compiled here) or OptimizationProblem.
        solver_config: Backend, time limit and gap. Defaults to SolverConfig().
        presolve_config: Thresholds for presolve_check().
        run_presolve: Run presolve_check() and log its findings first.
        logger: Optional logger.

    Returns:
        Solution with the backend's status string.
    """
    log = logger or _logger
    op = compile_problem(x, logger=log) if isinstance(x, ConservationProblem) else x

    if run_presolve:
        report = presolve_check(op, config=presolve_config, logger=log)
        if not report.passed:
            log.warning(
                f"⚠️ Presolve found {len(report.warnings)} issue(s), solving anyway"
            )

    solution = solve_milp(op, config=solver_config, logger=log)
    log.info(
        f"   ✅ Solve finished: status={solution.status}, "
        f"objective={solution.objective}, runtime={solution.runtime:.2f}s"
    )
    return solution
