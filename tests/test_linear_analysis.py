# File: tests/test_linear_analysis.py
"""
Linear path: one solve of the simplified system, displacements and
reactions written back to the grips.
"""

import numpy as np
import pytest

from mini_fem import (
    Grip,
    Constraint,
    FEMInput,
    LinearElement,
    Truss2D,
    LinearAnalysis,
    MechanismError,
    run_analysis,
)
from mini_fem.kernel import simplified_stiffness, simplified_forces


def _identity_block_model():
    """One element, grip 1 fully fixed, grip 2 free with (100 N, 0)."""
    g1 = Grip(1, 0.0, 0.0, Constraint.full())
    g2 = Grip(2, 1.0, 0.0, Constraint.free(), force=(100.0, 0.0))
    I = np.eye(2)
    ke = np.block([[I, -I], [-I, I]])
    element = LinearElement(1, (g1, g2), ke)
    return FEMInput([g1, g2], [element]), g1, g2


def test_linear_identity_block():
    """
    WHAT IS THIS TEST?
    ==================
    With an identity-like stiffness the displacement of the free grip
    equals its force: u = Ks⁻¹ · Fs exactly, in one iteration.
    """
    model, g1, g2 = _identity_block_model()

    result = LinearAnalysis(model).execute()

    K = model.assemble_stiffness()
    Ks = simplified_stiffness(K, model.constraint_index)
    Fs = simplified_forces(model.force_vector, model.constraint_index)
    expected = np.linalg.solve(Ks, Fs)

    np.testing.assert_allclose(result.displacements, expected, atol=1e-12)
    np.testing.assert_allclose(g2.displacement, [100.0, 0.0], atol=1e-12)
    np.testing.assert_allclose(g1.displacement, [0.0, 0.0], atol=1e-12)
    assert result.converged
    assert result.iterations == 1

    # The support takes the whole load back
    np.testing.assert_allclose(g1.reaction, [-100.0, 0.0], atol=1e-12)
    np.testing.assert_allclose(g2.reaction, [0.0, 0.0])
    print("✓ Linear identity block solved exactly")


def test_linear_bar_axial_deflection():
    """
    Bar along X, fixed at grip 1, roller at grip 2 pulled by P.
    Analytic: δ = P·L / (E·A).
    """
    L, E, A, P = 1000.0, 200000.0, 100.0, 10000.0
    g1 = Grip(1, 0.0, 0.0, Constraint.full())
    g2 = Grip(2, L, 0.0, Constraint.y_only(), force=(P, 0.0))
    bar = Truss2D(1, (g1, g2), E=E, A=A)
    model = FEMInput([g1, g2], [bar])

    analysis = run_analysis(model, "linear", monitored_index=2)

    assert np.isclose(g2.displacement[0], P * L / (E * A), rtol=1e-10)
    assert np.isclose(bar.axial_force, P, rtol=1e-10)
    assert np.isclose(g1.reaction[0], -P, rtol=1e-10)
    assert analysis.result.monitored_displacement.displacement == pytest.approx(0.5)


def test_linear_mechanism():
    """
    A single inclined bar with a free tip: the tip can swing about the
    support, the system is singular, and the analysis says so.
    """
    g1 = Grip(1, 0.0, 0.0, Constraint.full())
    g2 = Grip(2, 1000.0, 1000.0, Constraint.free(), force=(0.0, -10.0))
    model = FEMInput([g1, g2], [Truss2D(1, (g1, g2), E=200000.0, A=100.0)])

    with pytest.raises(MechanismError):
        LinearAnalysis(model).execute()


def test_load_factor_scales_linear_solution():
    model, _, g2 = _identity_block_model()

    LinearAnalysis(model).execute(load_factor=0.5)

    np.testing.assert_allclose(g2.displacement, [50.0, 0.0], atol=1e-12)
