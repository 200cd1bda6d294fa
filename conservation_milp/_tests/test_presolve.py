#!/usr/bin/env python3
"""
Presolve Check Tests

Tests:
1. Lock checks (all locked out / all locked in)
2. Objective, right-hand side and matrix magnitude checks with tag-specific
   messages
3. Feature data checks (large values, mostly empty planning units)
4. Every check runs even when an earlier one fails
5. Strict thresholds and configurable limits
6. Well-formed problems pass without warnings

Run with: python -m pytest conservation_milp/_tests/test_presolve.py -v
"""

import logging

import numpy as np
import pytest

from conservation_milp.config_types import PresolveConfig
from conservation_milp.datasets import simulate_raster_data
from conservation_milp.models import ConservationProblem, OptimizationProblem, problem_from_raster
from conservation_milp.presolve import PresolveReport, check, presolve_check


# ============================================================================
# HELPERS AND FIXTURES
# ============================================================================


def _make_op(
    obj=(1.0, 1.0),
    a=((1.0, 1.0),),
    rhs=(1.0,),
    lb=None,
    ub=None,
    col_ids=None,
    row_ids=("spp_target",),
    sense=None,
    modelsense="min",
):
    """Small synthetic compiled problem; the first two columns are planning units."""
    n_col = len(obj)
    return OptimizationProblem.from_arrays(
        modelsense=modelsense,
        obj=obj,
        A=np.array(a, dtype=float),
        sense=sense or (">=",) * len(rhs),
        rhs=rhs,
        lb=lb if lb is not None else np.zeros(n_col),
        ub=ub if ub is not None else np.ones(n_col),
        vtype=("B",) * n_col,
        col_ids=col_ids or ("pu",) * n_col,
        row_ids=row_ids,
        number_of_planning_units=2,
    )


@pytest.fixture
def simple_problem():
    return (
        ConservationProblem.create([1.0, 2.0, 3.0], [[1.0, 1.0, 1.0], [2.0, 0.5, 1.0]])
        .add_min_set_objective()
        .add_relative_targets(0.3)
        .add_binary_decisions()
    )


# ============================================================================
# LOCK CHECKS
# ============================================================================


class TestLockChecks:
    """All planning units locked in or out."""

    def test_all_locked_out(self, simple_problem):
        report = presolve_check(simple_problem.add_locked_out_constraints([0, 1, 2]))
        assert not report.passed
        assert sum("locked out" in w for w in report.warnings) == 1

    def test_all_locked_in(self, simple_problem):
        report = presolve_check(simple_problem.add_locked_in_constraints([0, 1, 2]))
        assert not report.passed
        assert sum("locked in" in w for w in report.warnings) == 1

    def test_some_locked_out_passes(self, simple_problem):
        report = presolve_check(simple_problem.add_locked_out_constraints([2]))
        assert report.passed


# ============================================================================
# OBJECTIVE CHECKS
# ============================================================================


class TestObjectiveChecks:
    """Large objective coefficients."""

    def test_threshold_is_strict(self):
        assert presolve_check(_make_op(obj=(1e6, 1.0))).passed
        report = presolve_check(_make_op(obj=(np.nextafter(1e6, np.inf), 1.0)))
        assert not report.passed
        assert len(report.warnings) == 1
        assert "very high costs" in report.warnings[0]

    def test_negative_coefficients_use_magnitude(self):
        report = presolve_check(_make_op(obj=(-2e6, 1.0), modelsense="max"))
        assert not report.passed

    def test_high_cost_from_problem(self):
        p = (
            ConservationProblem.create([1e7, 1.0], [[1.0, 1.0]])
            .add_min_set_objective()
            .add_relative_targets(0.5)
        )
        report = presolve_check(p)
        assert report.warnings == (
            "planning units with very high costs (> 1e+06), please consider "
            "re-scaling the values to avoid numerical issues "
            "(e.g., convert units from USD to millions of USD)",
        )

    def test_boundary_penalty_replaces_cost_message(self, simple_problem):
        bm = np.array([[2.0, 1.0, 0.0], [1.0, 2.0, 1.0], [0.0, 1.0, 2.0]])
        report = presolve_check(simple_problem.add_boundary_penalties(1e7, data=bm))
        assert not report.passed
        assert any("boundary lengths are very high" in w for w in report.warnings)
        assert not any("very high costs" in w for w in report.warnings)

    def test_connectivity_penalty_message(self, simple_problem):
        cm = np.array([[0.0, 1.0, 0.0], [1.0, 0.0, 1.0], [0.0, 1.0, 0.0]])
        report = presolve_check(simple_problem.add_connectivity_penalties(1e7, data=cm))
        assert any("add_connectivity_penalties()" in w for w in report.warnings)

    def test_asym_connectivity_penalty_message(self, simple_problem):
        cm = np.array([[0.0, 1.0, 0.0], [0.0, 0.0, 1.0], [0.0, 0.0, 0.0]])
        p = simple_problem.add_asym_connectivity_penalties(1e7, data=cm)
        report = presolve_check(p)
        assert any("add_asym_connectivity_penalties()" in w for w in report.warnings)

    def test_feature_weight_messages(self, simple_problem):
        p = simple_problem.add_max_features_objective(2.0).add_feature_weights([1e7, 1.0])
        report = presolve_check(p)
        assert any("very high target weight(s)" in w for w in report.warnings)

        p = simple_problem.add_max_utility_objective(2.0).add_feature_weights([1e7, 1.0])
        report = presolve_check(p)
        assert any("feature(s) with very high weight(s)" in w for w in report.warnings)

    def test_branch_length_message(self, simple_problem):
        p = simple_problem.add_max_phylo_div_objective(
            2.0, np.array([[1.0], [1.0]]), [1e7]
        )
        report = presolve_check(p)
        assert any("very large branch lengths" in w for w in report.warnings)

    def test_one_message_per_tag(self):
        report = presolve_check(_make_op(obj=(2e6, 3e6)))
        assert len(report.warnings) == 1

    def test_untagged_columns_get_generic_message(self):
        op = _make_op(
            obj=(1.0, 1.0, 2e6),
            a=((1.0, 1.0, 0.0),),
            col_ids=("pu", "pu", "cf_flow"),
        )
        report = presolve_check(op)
        assert not report.passed
        assert "'cf_flow'" in report.warnings[0]


# ============================================================================
# RIGHT-HAND SIDE CHECKS
# ============================================================================


class TestRhsChecks:
    """Very large and very small right-hand sides."""

    def test_high_target(self):
        p = (
            ConservationProblem.create([1.0, 1.0], [[1.0, 1.0]])
            .add_min_set_objective()
            .add_absolute_targets([2e6])
        )
        report = presolve_check(p)
        assert any("very high target(s)" in w for w in report.warnings)

    def test_high_budget(self, simple_problem):
        report = presolve_check(simple_problem.add_max_utility_objective(2e6))
        assert any("budget is very high" in w for w in report.warnings)

    def test_low_budget(self, simple_problem):
        report = presolve_check(simple_problem.add_max_utility_objective(1e-7))
        assert not report.passed
        assert any("budget will be rounded to zero" in w for w in report.warnings)

    def test_low_target(self, simple_problem):
        report = presolve_check(simple_problem.add_absolute_targets([1e-8, 1.0]))
        assert any("target(s) will be rounded to zero" in w for w in report.warnings)

    def test_zero_rhs_is_not_flagged(self, simple_problem):
        report = presolve_check(simple_problem.add_absolute_targets([0.0, 1.0]))
        assert report.passed

    def test_rhs_below_zero_floor_is_not_flagged(self):
        assert presolve_check(_make_op(rhs=(1e-301,))).passed

    def test_small_negative_rhs_is_not_flagged(self):
        op = _make_op(
            a=((1.0, 1.0), (1.0, 0.0)),
            rhs=(1.0, -1e-7),
            row_ids=("spp_target", "linear"),
        )
        assert presolve_check(op) == PresolveReport(passed=True, warnings=())

    def test_large_negative_rhs_is_flagged(self):
        op = _make_op(
            a=((1.0, 1.0), (1.0, 0.0)),
            rhs=(1.0, -2e6),
            row_ids=("spp_target", "linear"),
            sense=(">=", "<="),
        )
        report = presolve_check(op)
        assert report.warnings == ("right-hand side of 'linear' constraints is very high (> 1e+06)",)

    def test_other_rows_get_generic_message(self):
        op = _make_op(
            a=((1.0, 1.0), (1.0, 0.0)),
            rhs=(1.0, 1e-8),
            row_ids=("spp_target", "linear"),
        )
        report = presolve_check(op)
        assert len(report.warnings) == 1
        assert "'linear'" in report.warnings[0]


# ============================================================================
# CONSTRAINT MATRIX CHECKS
# ============================================================================


class TestMatrixChecks:
    """Large coefficients outside the feature data."""

    def test_high_cost_in_budget_row(self):
        p = (
            ConservationProblem.create([2e6, 1.0], [[1.0, 1.0]])
            .add_max_utility_objective(3e6)
        )
        report = presolve_check(p)
        assert any("try re-scaling cost data to different units" in w for w in report.warnings)

    def test_high_neighbor_coefficient(self):
        op = _make_op(
            a=((1.0, 1.0), (1.0, -2e6)),
            rhs=(1.0, 0.0),
            row_ids=("spp_target", "n"),
        )
        report = presolve_check(op)
        assert report.warnings == ("number of neighbors required is very high (> 1e+06)",)


# ============================================================================
# FEATURE DATA CHECKS
# ============================================================================


class TestFeatureDataChecks:
    """Feature amounts in target/amount rows."""

    def test_high_feature_values(self):
        report = presolve_check(_make_op(a=((2e6, 1.0),)))
        assert report.warnings == (
            "feature or rij data have very high values (> 1e+06), try re-scaling "
            "them to avoid numerical issues (e.g., convert units from m^2 to km^2)",
        )

    def test_most_planning_units_empty(self):
        p = (
            ConservationProblem.create([1.0, 1.0, 1.0, 1.0], [[1.0, 1.0, 0.0, 0.0]])
            .add_min_set_objective()
            .add_relative_targets(0.5)
        )
        report = presolve_check(p)
        assert not report.passed
        assert any("most planning units do not have any features" in w for w in report.warnings)

    def test_few_empty_planning_units_pass(self):
        p = (
            ConservationProblem.create([1.0, 1.0, 1.0, 1.0], [[1.0, 1.0, 1.0, 0.0]])
            .add_min_set_objective()
            .add_relative_targets(0.5)
        )
        assert presolve_check(p).passed


# ============================================================================
# REPORT BEHAVIOUR
# ============================================================================


class TestReport:
    """Combined behaviour of the checks."""

    def test_checks_do_not_short_circuit(self):
        op = _make_op(obj=(2e6, 1.0), a=((2e6, 1.0),), ub=np.zeros(2))
        report = presolve_check(op)
        assert not report.passed
        assert len(report.warnings) == 3
        assert "locked out" in report.warnings[0]
        assert "very high costs" in report.warnings[1]
        assert "feature or rij data" in report.warnings[2]

    def test_well_formed_problem_passes(self):
        cost, features = simulate_raster_data(n_rows=8, n_cols=8, n_features=5, seed=1)
        p = (
            problem_from_raster(cost, features)
            .add_min_set_objective()
            .add_relative_targets(np.linspace(0.1, 0.9, 5))
            .add_binary_decisions()
        )
        report = presolve_check(p)
        assert report == PresolveReport(passed=True, warnings=())

    def test_report_unpacks(self, simple_problem):
        passed, warnings = presolve_check(simple_problem)
        assert passed is True
        assert warnings == ()

    def test_check_alias(self):
        assert check is presolve_check

    def test_custom_threshold(self):
        op = _make_op(obj=(2e6, 1.0))
        assert not presolve_check(op).passed
        assert presolve_check(op, config=PresolveConfig(upper_value=1e9)).passed

    def test_warnings_are_logged(self, caplog):
        op = _make_op(obj=(2e6, 1.0))
        with caplog.at_level(logging.WARNING, logger="ConservationMILP.Presolve"):
            report = presolve_check(op)
        assert len(report.warnings) == 1
        assert any("very high costs" in r.getMessage() for r in caplog.records)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
