#!/usr/bin/env python3
"""
MILP Solver Tests

Tests:
1. highspy backend on small problems with known optima
2. PuLP fallback backend
3. Backend selection and missing-library errors
4. Analysis pipeline (presolve blocking, force)

Run with: python -m pytest conservation_milp/_tests/test_solvers.py -v
"""

import warnings

import numpy as np
import pytest

from conservation_milp.compiler import compile_problem
from conservation_milp.config_types import AppConfig, SolverConfig
from conservation_milp.datasets import simulate_raster_data
from conservation_milp.exceptions import SolverUnavailableError
from conservation_milp.geometry import boundary_matrix
from conservation_milp.main import build_demo_problem, run_conservation_analysis
from conservation_milp.models import ConservationProblem, problem_from_raster
from conservation_milp.solvers import solve, solve_milp, solver_backends

EXACT = SolverConfig(mip_gap=0.0, time_limit=30)


@pytest.fixture
def min_set_problem():
    return (
        ConservationProblem.create([1.0, 2.0, 3.0, 4.0], [[1.0, 1.0, 1.0, 1.0]])
        .add_min_set_objective()
        .add_absolute_targets([2.0])
        .add_binary_decisions()
    )


@pytest.fixture
def max_utility_problem():
    return (
        ConservationProblem.create([1.0, 2.0, 3.0, 4.0], [[5.0, 1.0, 1.0, 10.0]])
        .add_max_utility_objective(3.0)
        .add_binary_decisions()
    )


@pytest.fixture
def path_problem():
    """Five units in a line; the features sit at both ends."""
    adjacency = np.diag(np.ones(4), 1) + np.diag(np.ones(4), -1)
    problem = (
        ConservationProblem.create(
            [1.0, 100.0, 100.0, 1.0, 1.0],
            [[1.0, 0.0, 0.0, 0.0, 0.0], [0.0, 0.0, 0.0, 0.0, 1.0]],
        )
        .add_min_set_objective()
        .add_absolute_targets([1.0, 1.0])
        .add_binary_decisions()
    )
    return problem, adjacency


# ============================================================================
# HIGHSPY BACKEND
# ============================================================================


class TestHighspy:
    """Native HiGHS backend."""

    @pytest.fixture(autouse=True)
    def _require_highspy(self):
        pytest.importorskip("highspy")

    def _solve(self, problem):
        config = SolverConfig(backend="highspy", mip_gap=0.0, time_limit=30)
        return solve(problem, solver_config=config)

    def test_min_set(self, min_set_problem):
        sol = self._solve(min_set_problem)
        assert sol.status == "Optimal"
        assert sol.method == "highspy"
        assert sol.objective == pytest.approx(3.0)
        np.testing.assert_allclose(sol.planning_unit_values()[:, 0], [1, 1, 0, 0], atol=1e-6)

    def test_max_utility(self, max_utility_problem):
        sol = self._solve(max_utility_problem)
        assert sol.objective == pytest.approx(6.0)
        assert sol.allocation().tolist() == [1, 1, 0, 0]

    def test_locked_in(self, min_set_problem):
        sol = self._solve(min_set_problem.add_locked_in_constraints([3]))
        assert sol.objective == pytest.approx(5.0)

    def test_locked_out(self, min_set_problem):
        sol = self._solve(min_set_problem.add_locked_out_constraints([0]))
        assert sol.objective == pytest.approx(5.0)

    def test_contiguity(self, path_problem):
        problem, adjacency = path_problem
        assert self._solve(problem).objective == pytest.approx(2.0)
        sol = self._solve(problem.add_contiguity_constraints(adjacency))
        assert sol.objective == pytest.approx(203.0)
        assert sol.as_dict()["n_selected"] == 5

    def test_proportion_decisions(self, min_set_problem):
        sol = self._solve(
            min_set_problem.add_absolute_targets([1.5]).add_proportion_decisions()
        )
        assert sol.objective == pytest.approx(2.0)

    def test_infeasible(self, min_set_problem):
        sol = self._solve(min_set_problem.add_absolute_targets([10.0]))
        assert sol.status in ("Infeasible", "UnboundedOrInfeasible")
        assert not sol.has_solution
        assert sol.objective is None
        with pytest.raises(ValueError, match="no solution"):
            sol.planning_unit_values()

    def test_solve_compiled_problem(self, min_set_problem):
        op = compile_problem(min_set_problem)
        sol = solve_milp(op, config=SolverConfig(backend="highspy", mip_gap=0.0))
        assert sol.objective == pytest.approx(3.0)
        assert sol.number_of_planning_units == 4

    def test_time_limit_without_incumbent(self):
        cost, features = simulate_raster_data(n_rows=30, n_cols=30, n_features=5, seed=7)
        problem = (
            problem_from_raster(cost, features)
            .add_min_set_objective()
            .add_relative_targets(0.3)
            .add_boundary_penalties(1.0, data=boundary_matrix(cost))
            .add_binary_decisions()
        )
        op = compile_problem(problem)
        sol = solve_milp(op, config=SolverConfig(backend="highspy", time_limit=1e-9))
        assert sol.status == "TimeLimit"
        assert not sol.has_solution
        assert sol.objective is None
        assert sol.as_dict()["n_selected"] == 0


# ============================================================================
# PULP BACKEND
# ============================================================================


class TestPulp:
    """PuLP fallback backend."""

    @pytest.fixture(autouse=True)
    def _require_pulp(self):
        pytest.importorskip("pulp")

    def test_min_set(self, min_set_problem):
        config = SolverConfig(backend="pulp", mip_gap=0.0, time_limit=30)
        sol = solve(min_set_problem, solver_config=config)
        assert sol.status == "Optimal"
        assert sol.method.startswith("pulp_")
        assert sol.objective == pytest.approx(3.0)

    def test_max_utility(self, max_utility_problem):
        config = SolverConfig(backend="pulp", mip_gap=0.0, time_limit=30)
        sol = solve(max_utility_problem, solver_config=config)
        assert sol.objective == pytest.approx(6.0)

    def test_variables_built_without_deprecation_warnings(self, min_set_problem):
        config = SolverConfig(backend="pulp", mip_gap=0.0, time_limit=30)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            sol = solve(min_set_problem, solver_config=config)
        assert sol.objective == pytest.approx(3.0)
        assert not [w for w in caught if "LpVariable" in str(w.message)]

    def test_auto_falls_back_without_highspy(self, monkeypatch, min_set_problem):
        monkeypatch.setattr(solver_backends, "HIGHSPY_AVAILABLE", False)
        sol = solve(min_set_problem, solver_config=SolverConfig(mip_gap=0.0))
        assert sol.method.startswith("pulp_")


def test_missing_highspy_raises(monkeypatch, min_set_problem):
    monkeypatch.setattr(solver_backends, "HIGHSPY_AVAILABLE", False)
    op = compile_problem(min_set_problem)
    with pytest.raises(SolverUnavailableError, match="highspy"):
        solve_milp(op, config=SolverConfig(backend="highspy"))


# ============================================================================
# ANALYSIS PIPELINE
# ============================================================================


class TestAnalysisPipeline:
    """run_conservation_analysis() blocks on failed presolve unless forced."""

    def test_failed_presolve_skips_solve(self, min_set_problem):
        problem = min_set_problem.add_locked_out_constraints([0, 1, 2, 3])
        result = run_conservation_analysis(problem, app_config=AppConfig())
        assert not result["presolve_report"].passed
        assert result["solution"] is None
        assert "3_solve" not in result["timings"]
        assert set(result["timings"]) == {"1_compile", "2_presolve", "total"}

    def test_force_solves_anyway(self, min_set_problem):
        pytest.importorskip("highspy")
        problem = min_set_problem.add_locked_out_constraints([0, 1, 2, 3])
        app_config = AppConfig(solver=SolverConfig(backend="highspy", force=True))
        result = run_conservation_analysis(problem, app_config=app_config)
        assert result["solution"] is not None
        assert not result["solution"].has_solution

    def test_demo_problem(self):
        pytest.importorskip("highspy")
        app_config = AppConfig(solver=SolverConfig(backend="highspy", time_limit=30))
        result = run_conservation_analysis(build_demo_problem(), app_config=app_config)
        assert result["presolve_report"].passed
        assert result["solution"].has_solution
        assert result["optimization_problem"].number_of_planning_units == 100


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
