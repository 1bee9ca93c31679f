# File: tests/test_arc_length.py
"""
Arc-length control: every load step covers the same distance Δs along
the equilibrium path, with the load factor solved for, so the analysis
passes limit points without prescribing any single DOF.

Bar: L = 1000 mm, A = 100 mm², σ = E·ε·exp(-ε/ε0), E = 200 GPa, ε0 = 0.002,
reference load P = 10 kN. In terms of the tip displacement u (mm):

    λ(u) = 2·u·exp(-u/2)        peak at u = 2 mm, λ = 4/e
"""

import numpy as np
import pytest

from mini_fem import (
    Grip,
    Constraint,
    FEMInput,
    NonlinearTruss2D,
    NonlinearAnalysis,
    AnalysisParameters,
    AnalysisControl,
    NonlinearSolver,
)
from mini_fem.analysis import LoadStep

E = 200000.0
EPS0 = 0.002
BETA = 1e9
P = 10000.0
TIP_UX = 2


def _bar(stress, modulus, force=P):
    g1 = Grip(1, 0.0, 0.0, Constraint.full())
    g2 = Grip(2, 1000.0, 0.0, Constraint.y_only(), force=(force, 0.0))
    bar = NonlinearTruss2D(1, (g1, g2), A=100.0, stress=stress, modulus=modulus)
    return FEMInput([g1, g2], [bar])


def softening_bar():
    return _bar(
        stress=lambda e: E * e * np.exp(-e / EPS0),
        modulus=lambda e: E * np.exp(-e / EPS0) * (1.0 - e / EPS0),
    )


def hardening_bar():
    return _bar(
        stress=lambda e: E * e + BETA * e ** 3,
        modulus=lambda e: E + 3 * BETA * e ** 2,
    )


def load_factor_at(u):
    return 2.0 * u * np.exp(-u / 2.0)


def test_first_step_sets_arc_length():
    """
    Step 1 starts with the prescribed load increment: λ = 9/30 = 0.3 on an
    initial stiffness EA/L = 20 kN/mm moves the tip 0.15 mm, which becomes
    the arc length of the analysis.
    """
    model = softening_bar()
    params = AnalysisParameters(control=AnalysisControl.ArcLength, number_of_steps=30)
    step = LoadStep(1, model, params, model.force_vector, 0.0, control_increment=0.3)

    assert step.iterate()

    assert step.arc_length == pytest.approx(0.15, rel=1e-12)
    assert step.iterations[0].number == 0
    assert step.first_increment[TIP_UX] == pytest.approx(0.15, rel=1e-12)
    assert step.final_displacements[TIP_UX] == pytest.approx(0.15, rel=1e-9)
    assert step.load_factor == pytest.approx(load_factor_at(0.15), rel=1e-6)


@pytest.mark.parametrize("solver", [NonlinearSolver.NewtonRaphson, NonlinearSolver.ModifiedNewtonRaphson])
def test_softening_branch_is_followed(solver):
    """
    WHAT IS THIS TEST?
    ==================
    30 steps of Δs = 0.15 mm: the tip reaches 4.5 mm, the load factor
    rises to the peak, then the stiffness parameter turns negative and the
    load factor falls along the descending branch. Force control stops at
    the peak (see test_nonlinear_analysis); arc-length control doesn't.
    """
    model = softening_bar()
    params = AnalysisParameters(solver=solver, control=AnalysisControl.ArcLength, number_of_steps=30)

    analysis = NonlinearAnalysis(model, params, monitored_index=TIP_UX)
    analysis.execute(load_factor=9.0)

    assert not analysis.stop, analysis.stop_message
    assert len(analysis.converged_steps) == 30

    samples = analysis.monitored_displacements
    u = np.array([s.displacement for s in samples])
    lam = np.array([s.load_factor for s in samples])

    # One free DOF: each step moves it by exactly Δs
    np.testing.assert_allclose(u, 0.15 * np.arange(1, 31), rtol=1e-9)

    # Every sample sits on the equilibrium curve
    np.testing.assert_allclose(lam, load_factor_at(u), rtol=1e-6)

    # Peak sample at u = 1.95 mm, then the load factor falls
    assert int(np.argmax(lam)) == 12
    assert lam.max() < 4.0 / np.e
    assert lam[-1] == pytest.approx(load_factor_at(4.5), rel=1e-6)
    assert np.all(np.diff(lam[13:]) < 0.0)
    print(f"✓ {solver.name}: peak λ = {lam.max():.4f}, final λ = {lam[-1]:.4f}")


def test_hardening_bar_equal_arc_lengths():
    """
    On a stiffening bar the load factor keeps rising and every converged
    step is on the curve λ·P = A·(E·ε + β·ε³), Δs apart.
    """
    model = hardening_bar()
    params = AnalysisParameters(control=AnalysisControl.ArcLength, number_of_steps=10, force_tolerance=1e-8)

    analysis = NonlinearAnalysis(model, params, monitored_index=TIP_UX)
    analysis.execute(load_factor=5.0)

    assert not analysis.stop, analysis.stop_message
    u = np.array([s.displacement for s in analysis.monitored_displacements])
    lam = np.array([s.load_factor for s in analysis.monitored_displacements])

    # First step: λ = 0.5 on EA/L = 20 kN/mm gives Δs = 0.25 mm
    np.testing.assert_allclose(np.diff(np.concatenate([[0.0], u])), 0.25, rtol=1e-9)

    eps = u / 1000.0
    np.testing.assert_allclose(lam * P, 100.0 * (E * eps + BETA * eps ** 3), rtol=1e-6)
    assert np.all(np.diff(lam) > 0.0)

    # Reactions follow the solved load factor
    assert model.grip_by_number(1).reaction[0] == pytest.approx(-lam[-1] * P, rel=1e-6)


def test_arc_length_needs_a_load():
    params = AnalysisParameters(control=AnalysisControl.ArcLength)

    with pytest.raises(ValueError, match="reference load"):
        NonlinearAnalysis(_bar(lambda e: E * e, lambda e: E, force=0.0), params)
