# File: tests/test_iteration.py
"""
Tests for IterationResult: convergence metrics, convergence/stop checks
and cloning.
"""

import numpy as np

from mini_fem.analysis.iteration import IterationResult, calculate_convergence
from mini_fem.analysis.parameters import AnalysisParameters


def _iteration(number=3, residual=(0.0, 0.0), increment=(0.0, 0.0)):
    it = IterationResult(np.zeros(2), np.array(residual, dtype=float), np.eye(2), number)
    it.displacement_increment = np.array(increment, dtype=float)
    return it


def test_calculate_convergence_ratio():
    assert calculate_convergence(np.array([3.0, 4.0]), np.array([0.0, 10.0])) == 0.5


def test_calculate_convergence_zero_denominator():
    """
    Zero applied force (or zero first increment): metric is 0, never NaN.
    """
    assert calculate_convergence(np.array([1.0, 1.0]), np.zeros(2)) == 0.0


def test_convergence_is_idempotent():
    """
    Computing the metrics twice on the same state gives the same result.
    """
    it = _iteration(residual=(1e-3, 0.0), increment=(1e-5, 0.0))
    applied = np.array([10.0, 0.0])
    first = np.array([1.0, 0.0])

    it.calculate_convergence(applied, first)
    once = (it.force_convergence, it.displacement_convergence)
    it.calculate_convergence(applied, first)

    assert (it.force_convergence, it.displacement_convergence) == once
    np.testing.assert_allclose(once, (1e-4, 1e-5))


def test_convergence_accepts_either_metric():
    """
    WHAT IS THIS TEST?
    ==================
    Convergence needs ONE of the two metrics within tolerance, not both.
    """
    params = AnalysisParameters(force_tolerance=1e-3, displacement_tolerance=1e-8, min_iterations=2)

    force_only = _iteration()
    force_only.force_convergence = 1e-4
    force_only.displacement_convergence = 1.0
    assert force_only.check_convergence(params)

    displacement_only = _iteration()
    displacement_only.force_convergence = 1.0
    displacement_only.displacement_convergence = 1e-9
    assert displacement_only.check_convergence(params)

    neither = _iteration()
    neither.force_convergence = 1.0
    neither.displacement_convergence = 1.0
    assert not neither.check_convergence(params)


def test_convergence_respects_min_iterations():
    params = AnalysisParameters(min_iterations=2)
    it = _iteration(number=1)
    it.force_convergence = 0.0
    it.displacement_convergence = 0.0

    assert not it.check_convergence(params)


def test_stop_condition_on_nan_and_budget():
    params = AnalysisParameters(max_iterations=10, min_iterations=2)

    healthy = _iteration(number=3, residual=(1.0, 2.0))
    assert not healthy.check_stop_condition(params)

    nan_residual = _iteration(number=3, residual=(np.nan, 0.0))
    assert nan_residual.check_stop_condition(params)

    inf_displacement = _iteration(number=3)
    inf_displacement.displacements = np.array([np.inf, 0.0])
    assert inf_displacement.check_stop_condition(params)

    nan_stiffness = _iteration(number=3)
    nan_stiffness.stiffness = np.array([[np.nan, 0.0], [0.0, 1.0]])
    assert nan_stiffness.check_stop_condition(params)

    out_of_budget = _iteration(number=10)
    assert out_of_budget.check_stop_condition(params)


def test_update_forces_and_increment():
    it = IterationResult.zeros(2)

    it.increment_displacements(np.array([0.5, -0.5]))
    it.update_forces(np.array([10.0, 0.0]), np.array([4.0, 1.0]))

    np.testing.assert_allclose(it.displacements, [0.5, -0.5])
    np.testing.assert_allclose(it.displacement_increment, [0.5, -0.5])
    np.testing.assert_allclose(it.residual_forces, [6.0, -1.0])


def test_clone_is_deep():
    it = _iteration(number=4, residual=(1.0, 2.0))
    copy = it.clone(number=5)

    copy.residual_forces[0] = 99.0
    copy.stiffness[0, 0] = 99.0

    assert copy.number == 5
    assert it.number == 4
    assert it.residual_forces[0] == 1.0
    assert it.stiffness[0, 0] == 1.0


def test_nan_state_never_converges():
    """
    Zero applied force makes the force metric 0, but a NaN residual is
    still divergence, not convergence.
    """
    params = AnalysisParameters(min_iterations=1)
    it = _iteration(number=1, residual=(np.nan, 0.0))
    it.calculate_convergence(np.zeros(2), np.array([1.0, 0.0]))

    assert it.force_convergence == 0.0
    assert not it.is_finite
    assert not it.check_convergence(params)
    assert it.check_stop_condition(params)
