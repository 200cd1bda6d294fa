#!/usr/bin/env python3
"""
Conservation MILP - Main Entry Point

Compile a conservation planning problem, run presolve checks and solve it.
Running the module solves a demo problem built from simulated raster data.

Usage:
    python -m conservation_milp.main
"""

import sys
import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

# Fix Windows console encoding for emoji support
if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    sys.stderr.reconfigure(encoding="utf-8", errors="replace")

from conservation_milp.compiler import compile_problem
from conservation_milp.config import CONFIG
from conservation_milp.config_types import AppConfig
from conservation_milp.datasets import simulate_raster_data
from conservation_milp.geometry import boundary_matrix
from conservation_milp.models import ConservationProblem, problem_from_raster
from conservation_milp.presolve import presolve_check
from conservation_milp.solvers import solve_milp

# ═══════════════════════════════════════════════════════════════════════════
# 🎯 MODULE-LEVEL CONFIG (Single Source of Truth)
# ═══════════════════════════════════════════════════════════════════════════
APP_CONFIG = AppConfig.from_dict(CONFIG)


# ═══════════════════════════════════════════════════════════════════════════
# 📋 LOGGING SETUP
# ═══════════════════════════════════════════════════════════════════════════


def setup_logging(log_dir: Optional[Path] = None) -> Tuple[logging.Logger, Path]:
    """Configure logging with file and console handlers.

    Returns:
        Tuple of (logger, run_log_folder). Each run gets its own folder named
        run_{MMDD}_{HHMM} holding main.log.
    """
    log_dir = Path(log_dir) if log_dir is not None else APP_CONFIG.logging.log_path
    timestamp = datetime.now().strftime("%m%d_%H%M")
    run_log_folder = log_dir / f"run_{timestamp}"
    run_log_folder.mkdir(parents=True, exist_ok=True)
    level = getattr(logging, APP_CONFIG.logging.level.upper(), logging.INFO)

    logger = logging.getLogger("ConservationMILP")
    logger.setLevel(level)
    logger.handlers.clear()

    # File handler
    fh = logging.FileHandler(run_log_folder / "main.log", encoding="utf-8")
    fh.setLevel(level)
    fh.setFormatter(
        logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
        )
    )

    # Console handler
    ch = logging.StreamHandler(sys.stdout)
    ch.setLevel(level)
    ch.setFormatter(logging.Formatter("%(message)s"))

    logger.addHandler(fh)
    logger.addHandler(ch)

    return logger, run_log_folder


# ═══════════════════════════════════════════════════════════════════════════
# 🚀 ANALYSIS PIPELINE
# ═══════════════════════════════════════════════════════════════════════════


def run_conservation_analysis(
    problem: ConservationProblem,
    app_config: Optional[AppConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> Dict[str, Any]:
    """
    Compile, check and solve a problem.

    The solve is skipped when presolve checks fail, unless
    app_config.solver.force is set.

    Returns:
        Dict with "optimization_problem", "presolve_report", "solution"
        (None when skipped) and "timings" (seconds per step).
    """
    app_config = app_config or APP_CONFIG
    logger = logger or logging.getLogger("ConservationMILP")
    timings: Dict[str, float] = {}
    total_start = time.perf_counter()

    logger.info("🧮 Compiling problem")
    step_start = time.perf_counter()
    op = compile_problem(problem, logger=logger)
    timings["1_compile"] = time.perf_counter() - step_start
    logger.info(
        f"   ✅ {op.number_of_variables} variables, "
        f"{op.number_of_constraints} constraints"
    )

    logger.info("🩺 Running presolve checks")
    step_start = time.perf_counter()
    report = presolve_check(op, config=app_config.presolve, logger=logger)
    timings["2_presolve"] = time.perf_counter() - step_start

    solution = None
    if report.passed or app_config.solver.force:
        logger.info("🚀 Solving")
        step_start = time.perf_counter()
        solution = solve_milp(op, config=app_config.solver, logger=logger)
        timings["3_solve"] = time.perf_counter() - step_start
        logger.info(f"   ✅ Status: {solution.status}, objective: {solution.objective}")
    else:
        logger.warning(
            "⚠️ Presolve checks failed, not solving "
            "(set CM_FORCE_SOLVE=true to solve anyway)"
        )

    timings["total"] = time.perf_counter() - total_start
    logger.info(f"\nTOTAL: {timings['total']:.2f}s")
    return {
        "optimization_problem": op,
        "presolve_report": report,
        "solution": solution,
        "timings": timings,
    }


def build_demo_problem() -> ConservationProblem:
    """Minimum set problem on simulated rasters with boundary penalties."""
    cost, features = simulate_raster_data()
    return (
        problem_from_raster(cost, features)
        .add_min_set_objective()
        .add_relative_targets(0.2)
        .add_boundary_penalties(0.1, data=boundary_matrix(cost, finite_only=True))
        .add_binary_decisions()
    )


def main() -> Dict[str, Any]:
    """Solve the demo problem with logging to a run folder."""
    logger, run_log_folder = setup_logging()
    logger.info("=" * 60)
    logger.info("🎯 Conservation MILP")
    logger.info("=" * 60)
    logger.info(f"   Log folder: {run_log_folder}")

    result = run_conservation_analysis(build_demo_problem(), logger=logger)
    solution = result["solution"]
    if solution is not None and solution.has_solution:
        logger.info(f"   Selected planning units: {solution.as_dict()['n_selected']}")
    logger.info("=" * 60 + "\n✅ Analysis complete!")
    return result


if __name__ == "__main__":
    main()
